"""In-memory stand-ins for external providers and stores."""

import asyncio
from typing import Dict, List, Optional

from llm.parsing import BatchResponse, parse_batch_response
from llm.providers.base import CategoryChoice, EmbeddingProvider, LLMProvider


class FakeEmbeddingProvider(EmbeddingProvider):
    """Returns canned vectors and records every text it was asked to embed."""

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        default: Optional[List[float]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.error = error
        self.delay = delay
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.vectors.get(text, self.default))


class LoopBoundEmbeddingProvider(FakeEmbeddingProvider):
    """Embedding provider that, like a pooled async HTTP client, only works
    on the event loop it was first used from."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.loop = None

    async def embed(self, text: str) -> List[float]:
        loop = asyncio.get_running_loop()
        if self.loop is None:
            self.loop = loop
        elif loop is not self.loop:
            raise RuntimeError("Event loop is closed")
        return await super().embed(text)


class FakeLLMProvider(LLMProvider):
    """Generative provider with scripted answers.

    Args:
        choice: Returned by choose_category.
        batch_text: Raw line-record text parsed for categorize_batch.
        error: Raised by both methods when set.
        delay: Seconds to sleep before answering.
    """

    def __init__(
        self,
        choice: Optional[CategoryChoice] = None,
        batch_text: Optional[str] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.choice = choice or CategoryChoice(category=None, confidence=0.0)
        self.batch_text = batch_text
        self.error = error
        self.delay = delay
        self.single_calls = []
        self.batch_calls = []

    async def choose_category(self, transaction, categories) -> CategoryChoice:
        self.single_calls.append((transaction, [c.name for c in categories]))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.choice

    async def categorize_batch(self, transactions, categories) -> BatchResponse:
        self.batch_calls.append(list(transactions))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return parse_batch_response(self.batch_text, len(transactions))


class CountingMatcher:
    """Tier stand-in returning a fixed result and counting calls."""

    def __init__(self, result=None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls = 0

    async def match(self, user_id, transaction):
        self.calls += 1
        if self.error:
            raise self.error
        return self.result


class RecordingCorpus:
    """Wraps a corpus service and records every argument it receives."""

    def __init__(self, inner):
        self.inner = inner
        self.received: List[tuple] = []

    async def find_by_hash(self, merchant_hash):
        self.received.append(("find_by_hash", merchant_hash))
        return await self.inner.find_by_hash(merchant_hash)

    async def nearest_neighbors(self, embedding, min_similarity, limit):
        self.received.append(("nearest_neighbors", min_similarity, limit))
        return await self.inner.nearest_neighbors(embedding, min_similarity, limit)

    async def upsert_by_hash(self, merchant_hash, embedding, category_name, **kwargs):
        self.received.append(
            ("upsert_by_hash", merchant_hash, category_name, *kwargs.values())
        )
        return await self.inner.upsert_by_hash(
            merchant_hash, embedding, category_name, **kwargs
        )

    def strings_received(self) -> List[str]:
        return [value for call in self.received for value in call if isinstance(value, str)]


class FailingCorpus:
    """Corpus whose every operation raises."""

    def __init__(self, error: Exception):
        self.error = error

    async def find_by_hash(self, merchant_hash):
        raise self.error

    async def nearest_neighbors(self, embedding, min_similarity, limit):
        raise self.error

    async def upsert_by_hash(self, merchant_hash, embedding, category_name, **kwargs):
        raise self.error
