"""Unit tests for the TF-IDF index and similarity helpers."""

from __future__ import annotations

import math
from collections.abc import Callable

import numpy as np
import pytest

from knora.ingestion.models import ProcessedDocument
from knora.retrieval.tfidf import TfidfIndex, cosine_similarity, tokenize

MakeDocument = Callable[..., ProcessedDocument]


class TestTokenize:
    def test_lowercases_and_drops_short_tokens(self) -> None:
        assert tokenize("Hello, World! an to the x123 ab") == ["hello", "world", "the", "x123"]

    def test_underscore_is_a_boundary(self) -> None:
        assert tokenize("snake_case_name") == ["snake", "case", "name"]

    def test_unicode_letters_kept(self) -> None:
        assert tokenize("Café Zürich") == ["café", "zürich"]

    def test_length_counted_in_utf8_bytes(self) -> None:
        assert tokenize("né ab été") == ["né", "été"]

    def test_empty(self) -> None:
        assert tokenize("") == []
        assert tokenize("a b c -- !!") == []


class TestCosineSimilarity:
    def test_identical_vectors(self) -> None:
        assert cosine_similarity([1.0, 0.0, 0.0], [1.0, 0.0, 0.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 2.0]) == pytest.approx(0.0)

    def test_zero_vector(self) -> None:
        assert cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0

    def test_length_mismatch(self) -> None:
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_empty_input(self) -> None:
        assert cosine_similarity([], []) == 0.0


class TestUpdateVocabulary:
    def test_first_seen_order(self, make_document: MakeDocument) -> None:
        index = TfidfIndex(384)
        index.update_vocabulary([make_document("a.txt", "alpha beta gamma", "beta delta")])
        assert index.vocabulary == {"alpha": 0, "beta": 1, "gamma": 2, "delta": 3}

    def test_indices_continue_across_batches(self, make_document: MakeDocument) -> None:
        index = TfidfIndex(384)
        index.update_vocabulary([make_document("a.txt", "alpha beta")])
        index.update_vocabulary([make_document("b.txt", "beta gamma")])
        assert index.vocabulary == {"alpha": 0, "beta": 1, "gamma": 2}

    def test_dimension_caps_vocabulary_but_not_frequencies(self, make_document: MakeDocument) -> None:
        index = TfidfIndex(2)
        index.update_vocabulary([make_document("a.txt", "alpha beta gamma")])
        assert index.vocabulary == {"alpha": 0, "beta": 1}
        assert index.doc_frequencies == {"alpha": 1, "beta": 1, "gamma": 1}

    def test_frequencies_count_distinct_documents(self, make_document: MakeDocument) -> None:
        index = TfidfIndex(384)
        index.update_vocabulary(
            [
                make_document("a.txt", "shared alpha", "shared again"),
                make_document("b.txt", "shared beta"),
            ]
        )
        assert index.doc_frequencies["shared"] == 2
        assert index.doc_frequencies["alpha"] == 1

    def test_frequencies_overwritten_by_latest_batch(self, make_document: MakeDocument) -> None:
        index = TfidfIndex(384)
        index.update_vocabulary([make_document("a.txt", "shared"), make_document("b.txt", "shared")])
        index.update_vocabulary([make_document("c.txt", "shared")])
        assert index.doc_frequencies["shared"] == 1

    def test_reset(self, make_document: MakeDocument) -> None:
        index = TfidfIndex(384)
        index.update_vocabulary([make_document("a.txt", "alpha")])
        index.reset()
        assert len(index) == 0
        assert index.doc_frequencies == {}

    def test_rejects_non_positive_dimension(self) -> None:
        with pytest.raises(ValueError):
            TfidfIndex(0)


class TestEmbed:
    def test_shape_and_unit_norm(self, make_document: MakeDocument) -> None:
        index = TfidfIndex(384)
        index.update_vocabulary([make_document("a.txt", "alpha beta gamma")])
        vectors = index.embed(["alpha beta", "gamma gamma alpha"], num_docs=1)
        assert vectors.shape == (2, 384)
        assert np.linalg.norm(vectors, axis=1) == pytest.approx([1.0, 1.0], abs=1e-6)

    def test_out_of_vocabulary_uses_fallback(self) -> None:
        index = TfidfIndex(384)
        vector = index.embed(["completely unknown words"], num_docs=1)[0]
        expected = 1.0 / math.sqrt(5)
        assert vector[:5] == pytest.approx([expected] * 5, abs=1e-6)
        assert not vector[5:].any()
        assert float(np.linalg.norm(vector)) == pytest.approx(1.0, abs=1e-6)

    def test_empty_text_uses_fallback(self) -> None:
        index = TfidfIndex(384)
        vector = index.embed([""], num_docs=1)[0]
        assert float(np.linalg.norm(vector)) == pytest.approx(1.0, abs=1e-6)

    def test_fallback_respects_small_dimension(self) -> None:
        index = TfidfIndex(3)
        vector = index.embed(["nothing known"], num_docs=1)[0]
        assert vector == pytest.approx([1.0 / math.sqrt(3)] * 3, abs=1e-6)

    def test_idf_weights_rare_tokens_higher(self, make_document: MakeDocument) -> None:
        index = TfidfIndex(384)
        index.update_vocabulary(
            [
                make_document("a.txt", "common rare"),
                make_document("b.txt", "common"),
                make_document("c.txt", "common"),
            ]
        )
        vector = index.embed(["common rare"], num_docs=4)[0]
        common, rare = index.vocabulary["common"], index.vocabulary["rare"]
        # idf(common) = ln(4/3) + 1, idf(rare) = ln(4/1) + 1
        ratio = (math.log(4) + 1) / (math.log(4 / 3) + 1)
        assert vector[rare] / vector[common] == pytest.approx(ratio, rel=1e-5)

    def test_idf_defaults_to_one_without_frequency(self) -> None:
        index = TfidfIndex(384)
        assert index.idf("unseen", num_docs=10) == 1.0

    def test_num_docs_clamped_to_one(self, make_document: MakeDocument) -> None:
        index = TfidfIndex(384)
        index.update_vocabulary([make_document("a.txt", "alpha")])
        assert index.idf("alpha", num_docs=0) == pytest.approx(1.0)

    def test_empty_batch(self) -> None:
        assert TfidfIndex(8).embed([], num_docs=1).shape == (0, 8)
