"""The categorization cascade as an explicit state machine.

    START -> TRY_RULE -> (ACCEPT | TRY_VECTOR) -> (ACCEPT | TRY_LLM)
          -> (ACCEPT | RESOLVE_BEST) -> DONE

Every transition is its own method returning the next state, so each guard
can be exercised on its own. A run always ends with exactly one result,
possibly empty.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple
from models.categorization import CategorizationResult
from models.transaction import TransactionData
from logger import get_logger

logger = get_logger("categorization")


class CascadeState(str, Enum):
    START = "start"
    TRY_RULE = "try_rule"
    TRY_VECTOR = "try_vector"
    TRY_LLM = "try_llm"
    RESOLVE_BEST = "resolve_best"
    ACCEPT = "accept"
    DONE = "done"


@dataclass
class Candidates:
    """Per-tier results kept as fallbacks."""

    rule: Optional[CategorizationResult] = None
    vector: Optional[CategorizationResult] = None
    llm: Optional[CategorizationResult] = None

    def as_tuple(
        self,
    ) -> Tuple[
        Optional[CategorizationResult],
        Optional[CategorizationResult],
        Optional[CategorizationResult],
    ]:
        return (self.rule, self.vector, self.llm)


@dataclass
class CascadeRun:
    """State of one cascade execution. Never shared between requests."""

    user_id: int
    transaction: TransactionData
    candidates: Candidates = field(default_factory=Candidates)
    accepted: Optional[CategorizationResult] = None
    result: Optional[CategorizationResult] = None
    trace: List[CascadeState] = field(default_factory=list)


def select_best(
    candidates: Tuple[Optional[CategorizationResult], ...]
) -> CategorizationResult:
    """Highest-confidence candidate; earlier tiers win ties; empty if none."""
    best = None
    for candidate in candidates:
        if candidate is None:
            continue
        if best is None or candidate.confidence > best.confidence:
            best = candidate
    return best or CategorizationResult.empty()


class Cascade:
    """Runs the tiers in order and stops at the first confident answer.

    Args:
        rule_matcher: Tier 1 matcher, or None to skip the tier.
        vector_matcher: Tier 2 matcher, or None to skip the tier.
        llm_matcher: Tier 3 matcher, or None to skip the tier.
        rule_accept: Minimum Tier 1 confidence accepted as final.
        vector_accept: Minimum Tier 2 confidence accepted as final.
        llm_accept: Minimum Tier 3 confidence accepted as final.
    """

    def __init__(
        self,
        rule_matcher,
        vector_matcher,
        llm_matcher,
        rule_accept: float = 0.9,
        vector_accept: float = 0.75,
        llm_accept: float = 0.7,
    ):
        self.rule_matcher = rule_matcher
        self.vector_matcher = vector_matcher
        self.llm_matcher = llm_matcher
        self.rule_accept = rule_accept
        self.vector_accept = vector_accept
        self.llm_accept = llm_accept

        self._transitions = {
            CascadeState.START: self._start,
            CascadeState.TRY_RULE: self._try_rule,
            CascadeState.TRY_VECTOR: self._try_vector,
            CascadeState.TRY_LLM: self._try_llm,
            CascadeState.ACCEPT: self._accept,
            CascadeState.RESOLVE_BEST: self._resolve_best,
        }

    async def run(
        self, user_id: int, transaction: TransactionData
    ) -> CategorizationResult:
        """Categorize one transaction and return the final result."""
        return (await self.execute(user_id, transaction)).result

    async def execute(self, user_id: int, transaction: TransactionData) -> CascadeRun:
        """Run the state machine to DONE and return the full run record."""
        run = CascadeRun(user_id=user_id, transaction=transaction)
        state = CascadeState.START
        while state is not CascadeState.DONE:
            run.trace.append(state)
            state = await self.step(state, run)
        run.trace.append(CascadeState.DONE)
        return run

    async def step(self, state: CascadeState, run: CascadeRun) -> CascadeState:
        """Perform the work of `state` and return the next state."""
        return await self._transitions[state](run)

    async def _start(self, run: CascadeRun) -> CascadeState:
        return CascadeState.TRY_RULE

    async def _try_rule(self, run: CascadeRun) -> CascadeState:
        run.candidates.rule = await self._attempt(self.rule_matcher, "rule", run)
        return self._gate(
            run, run.candidates.rule, self.rule_accept, CascadeState.TRY_VECTOR
        )

    async def _try_vector(self, run: CascadeRun) -> CascadeState:
        run.candidates.vector = await self._attempt(self.vector_matcher, "vector", run)
        return self._gate(
            run, run.candidates.vector, self.vector_accept, CascadeState.TRY_LLM
        )

    async def _try_llm(self, run: CascadeRun) -> CascadeState:
        run.candidates.llm = await self._attempt(self.llm_matcher, "llm", run)
        return self._gate(
            run, run.candidates.llm, self.llm_accept, CascadeState.RESOLVE_BEST
        )

    async def _accept(self, run: CascadeRun) -> CascadeState:
        run.result = run.accepted
        return CascadeState.DONE

    async def _resolve_best(self, run: CascadeRun) -> CascadeState:
        run.result = select_best(run.candidates.as_tuple())
        return CascadeState.DONE

    def _gate(
        self,
        run: CascadeRun,
        result: Optional[CategorizationResult],
        threshold: float,
        otherwise: CascadeState,
    ) -> CascadeState:
        if result is not None and result.confidence >= threshold:
            run.accepted = result
            return CascadeState.ACCEPT
        return otherwise

    async def _attempt(
        self, matcher, tier: str, run: CascadeRun
    ) -> Optional[CategorizationResult]:
        if matcher is None:
            return None

        try:
            result = await matcher.match(run.user_id, run.transaction)
        except Exception as e:
            logger.warning(f"{tier} tier failed: {type(e).__name__}: {e}")
            return None

        if result is None:
            logger.debug(f"{tier} tier: no candidate")
        else:
            logger.debug(
                f"{tier} tier: '{result.category_name}' at {result.confidence:.2f}"
            )
        return result
