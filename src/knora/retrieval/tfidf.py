"""TF-IDF vocabulary and bag-of-words embeddings.

Vectors are not learned embeddings: each token that fits in the vector
space gets one coordinate, assigned in first-seen order until the
configured dimension is full.  Tokens arriving after that are still
counted for document frequency but never contribute to a vector.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from knora.ingestion.models import ProcessedDocument

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"[^\W_]+")
MIN_TOKEN_LENGTH = 3
# Coordinates filled for texts with no in-vocabulary tokens.
FALLBACK_COORDINATES = 5
FALLBACK_VALUE = 0.1


def tokenize(text: str) -> list[str]:
    """Lower-case *text* and return its alphanumeric runs longer than two UTF-8 bytes."""
    return [token for token in _TOKEN.findall(text.lower()) if len(token.encode("utf-8")) >= MIN_TOKEN_LENGTH]


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Return the cosine similarity of *a* and *b*.

    Mismatched lengths, empty input and zero-norm vectors all score 0.
    """
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    if vec_a.shape != vec_b.shape or vec_a.size == 0:
        return 0.0

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


class TfidfIndex:
    """Word → coordinate vocabulary plus per-word document frequency.

    The index only grows; :meth:`reset` is the single way to shrink it.

    Parameters
    ----------
    dimension:
        Length of every produced vector and hard cap on vocabulary size.
    """

    def __init__(self, dimension: int) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self.dimension = dimension
        self.vocabulary: dict[str, int] = {}
        self.doc_frequencies: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self.vocabulary)

    def reset(self) -> None:
        self.vocabulary.clear()
        self.doc_frequencies.clear()

    def update_vocabulary(self, documents: Iterable[ProcessedDocument]) -> None:
        """Register the tokens of every chunk in *documents*.

        New tokens get the next free coordinate while one is available.
        Document frequency is set (not added) to the number of distinct
        file paths containing the token within this call.
        """
        token_docs: dict[str, set[str]] = {}
        for document in documents:
            for chunk in document.chunks:
                for token in tokenize(chunk.text):
                    token_docs.setdefault(token, set()).add(document.file_path)

        next_index = len(self.vocabulary)
        for token, paths in token_docs.items():
            if token not in self.vocabulary and next_index < self.dimension:
                self.vocabulary[token] = next_index
                next_index += 1
            self.doc_frequencies[token] = len(paths)

        logger.debug(
            "Vocabulary updated: %d tokens seen, %d coordinates assigned",
            len(token_docs),
            len(self.vocabulary),
        )

    def idf(self, token: str, num_docs: int) -> float:
        doc_count = self.doc_frequencies.get(token)
        if not doc_count:
            return 1.0
        return math.log(max(num_docs, 1) / doc_count) + 1.0

    def embed_one(self, text: str, num_docs: int) -> np.ndarray:
        """Return the L2-normalised TF-IDF vector of *text*.

        Never returns a zero vector: when no token lands in the vocabulary
        the first few coordinates are set to a small constant instead.
        """
        vector = np.zeros(self.dimension, dtype=np.float32)
        tokens = tokenize(text)

        if tokens:
            total = len(tokens)
            for token, count in Counter(tokens).items():
                index = self.vocabulary.get(token)
                if index is None or index >= self.dimension:
                    continue
                vector[index] += (count / total) * self.idf(token, num_docs)

        norm = np.linalg.norm(vector)
        if norm == 0.0:
            vector[: min(self.dimension, FALLBACK_COORDINATES)] = FALLBACK_VALUE
            norm = np.linalg.norm(vector)
        return vector / norm

    def embed(self, texts: Sequence[str], num_docs: int) -> np.ndarray:
        """Embed *texts* into a ``(len(texts), dimension)`` float32 matrix.

        Parameters
        ----------
        texts:
            Texts to embed, in order.
        num_docs:
            Corpus size used in the IDF numerator (clamped to at least 1).
        """
        if not texts:
            return np.empty((0, self.dimension), dtype=np.float32)
        return np.vstack([self.embed_one(text, num_docs) for text in texts])
