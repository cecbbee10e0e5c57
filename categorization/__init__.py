"""Automatic transaction categorization.

A transaction is matched against the user's own rules first, then against
an anonymized cross-user corpus of merchant embeddings, and finally handed
to a generative model. Confirmed categorizations feed back into the rules
and the corpus.
"""

from categorization.engine import CategorizationEngine
from categorization.normalizer import hash_merchant, normalize_merchant

__all__ = ["CategorizationEngine", "hash_merchant", "normalize_merchant"]
