"""Parsing of line-record responses from batch categorization prompts.

The model is asked to answer with one record per line:

    TXN|<number>|<category name or NONE>|<confidence>
    NEW|<category name>|<income|expense>|<numbers, comma separated>|<reason>

Model output is untrusted. Every line is validated on its own and anything
that does not fit the expected shape is skipped, so one bad line never
costs the rest of the batch.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from logger import get_logger

logger = get_logger("llm.parsing")

NO_CATEGORY = "NONE"


@dataclass
class BatchDecision:
    """The model's answer for transaction number `index` (1-based)."""

    index: int
    category_name: Optional[str]
    confidence: float


@dataclass
class NewCategoryProposal:
    """A category the model suggests creating."""

    name: str
    is_income: bool
    indices: List[int]
    reason: Optional[str] = None


@dataclass
class BatchResponse:
    decisions: List[BatchDecision] = field(default_factory=list)
    new_categories: List[NewCategoryProposal] = field(default_factory=list)


def _parse_index(value: str, transaction_count: int) -> Optional[int]:
    try:
        index = int(value.strip())
    except ValueError:
        return None
    if 1 <= index <= transaction_count:
        return index
    return None


def _parse_confidence(value: str) -> Optional[float]:
    try:
        confidence = float(value.strip())
    except ValueError:
        return None
    # float() accepts "nan"; NaN fails both comparisons below
    if 0.0 <= confidence <= 1.0:
        return confidence
    return None


def _parse_decision(
    fields: List[str], transaction_count: int
) -> Optional[BatchDecision]:
    if len(fields) != 4:
        return None

    index = _parse_index(fields[1], transaction_count)
    confidence = _parse_confidence(fields[3])
    if index is None or confidence is None:
        return None

    name = fields[2].strip()
    if not name:
        return None
    if name.upper() == NO_CATEGORY:
        return BatchDecision(index=index, category_name=None, confidence=0.0)
    return BatchDecision(index=index, category_name=name, confidence=confidence)


def _parse_proposal(
    fields: List[str], transaction_count: int
) -> Optional[NewCategoryProposal]:
    if len(fields) not in (4, 5):
        return None

    name = fields[1].strip()
    kind = fields[2].strip().lower()
    if not name or kind not in ("income", "expense"):
        return None

    indices = []
    for part in fields[3].split(","):
        index = _parse_index(part, transaction_count)
        if index is not None and index not in indices:
            indices.append(index)
    if not indices:
        return None

    reason = fields[4].strip() if len(fields) == 5 else ""
    return NewCategoryProposal(
        name=name,
        is_income=kind == "income",
        indices=indices,
        reason=reason or None,
    )


def parse_batch_response(text: Optional[str], transaction_count: int) -> BatchResponse:
    """Parse a batch categorization response.

    Args:
        text: Raw model output.
        transaction_count: Number of transactions in the prompt; numbers
                           outside 1..transaction_count are rejected.

    Returns:
        BatchResponse with every well-formed record. Only the first decision
        for a given transaction number is kept.
    """
    response = BatchResponse()
    if not text:
        return response

    seen = set()
    skipped = 0
    for raw_line in text.splitlines():
        line = raw_line.strip().strip("`").strip()
        if not line:
            continue

        fields = line.split("|")
        tag = fields[0].strip().upper()

        if tag == "TXN":
            decision = _parse_decision(fields, transaction_count)
            if decision is None or decision.index in seen:
                skipped += 1
                logger.debug(f"Skipping batch line: {line!r}")
                continue
            seen.add(decision.index)
            response.decisions.append(decision)
        elif tag == "NEW":
            proposal = _parse_proposal(fields, transaction_count)
            if proposal is None:
                skipped += 1
                logger.debug(f"Skipping new-category line: {line!r}")
                continue
            response.new_categories.append(proposal)
        else:
            skipped += 1

    if skipped:
        logger.info(f"Skipped {skipped} malformed line(s) in batch response")

    return response
