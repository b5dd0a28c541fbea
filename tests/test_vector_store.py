"""
Unit tests for the sqlite-vec backed vector index.
"""

import numpy as np
import pytest

from conftest import FAKE_DIMENSION, FakeEmbeddingProvider, bag_of_words, run
from embeddings import OnnxEmbeddingModel, VectorIndex
from models import ProviderUnavailable, StoreErrorType, ValidationError


def unit(slot: int) -> np.ndarray:
    vector = np.zeros(FAKE_DIMENSION, dtype=np.float32)
    vector[slot] = 1.0
    return vector


class TestAdd:
    """Tests for appending records."""

    def test_add_returns_increasing_ids(self, index):
        first = run(index.add(unit(1), {"entity_id": "e1"}, "one"))
        second = run(index.add(unit(2), {"entity_id": "e2"}, "two"))
        assert second > first

    def test_add_does_not_call_provider(self, index, provider):
        run(index.add(unit(1), {"entity_id": "e1"}))
        assert provider.calls == 0

    def test_add_text_calls_provider_once(self, index, provider):
        run(index.add_text("taxi to the airport", {"entity_id": "e1"}))
        assert provider.calls == 1
        assert run(index.count()) == 1

    def test_no_deduplication(self, index):
        run(index.add(unit(1), {"entity_id": "e1"}))
        run(index.add(unit(1), {"entity_id": "e1"}))
        assert run(index.count({"entity_id": "e1"})) == 2

    def test_dimension_mismatch(self, index):
        with pytest.raises(ValidationError) as excinfo:
            run(index.add(np.ones(FAKE_DIMENSION + 1), {"entity_id": "e1"}))
        assert excinfo.value.error_type == StoreErrorType.DIMENSION_MISMATCH

    def test_zero_vector_rejected(self, index):
        with pytest.raises(ValidationError):
            run(index.add(np.zeros(FAKE_DIMENSION), {"entity_id": "e1"}))

    def test_metadata_requires_entity_id(self, index):
        with pytest.raises(ValidationError):
            run(index.add(unit(1), {"kind": "text"}))
        with pytest.raises(ValidationError):
            run(index.add(unit(1), {"entity_id": "  "}))

    def test_add_many_is_all_or_nothing(self, index):
        rows = [
            (unit(1), {"entity_id": "e1"}, "ok"),
            (np.ones(3), {"entity_id": "e1"}, "bad"),
        ]
        with pytest.raises(ValidationError):
            run(index.add_many(rows))
        assert run(index.count()) == 0

    def test_add_image_requires_capable_provider(self, index):
        with pytest.raises(ProviderUnavailable):
            run(index.add_image(b"\x89PNG", {"entity_id": "e1"}))

    def test_add_image_with_capable_provider(self, connection):
        image_index = VectorIndex(connection, FakeEmbeddingProvider(images=True))
        row_id = run(image_index.add_image(b"red car", {"entity_id": "e1", "kind": "image"}))
        records = run(image_index.query(bag_of_words("red car"), top_k=1))
        assert records[0].id == row_id


class TestQuery:
    """Tests for similarity queries."""

    def test_best_match_first(self, index):
        run(index.add_text("airport taxi service", {"entity_id": "taxi"}))
        run(index.add_text("homemade idli batter", {"entity_id": "food"}))

        records = run(index.query("taxi to airport", top_k=2))

        assert [r.entity_id for r in records] == ["taxi", "food"]
        assert records[0].similarity > records[1].similarity

    def test_identical_vector_has_similarity_one(self, index):
        run(index.add(unit(5), {"entity_id": "e1"}, "doc"))
        records = run(index.query(unit(5), top_k=1))

        assert records[0].similarity == pytest.approx(1.0, abs=1e-5)
        assert records[0].document == "doc"
        assert records[0].metadata == {"entity_id": "e1"}

    def test_ties_broken_by_insertion_order(self, index):
        ids = [run(index.add(unit(3), {"entity_id": f"e{i}"})) for i in range(4)]
        records = run(index.query(unit(3), top_k=4))
        assert [r.id for r in records] == ids

    def test_top_k_limits_results(self, index):
        for i in range(5):
            run(index.add(unit(i + 1), {"entity_id": f"e{i}"}))
        assert len(run(index.query(unit(1), top_k=3))) == 3

    def test_non_positive_top_k(self, index, provider):
        run(index.add(unit(1), {"entity_id": "e1"}))
        assert run(index.query("anything", top_k=0)) == []
        assert provider.calls == 0

    def test_empty_index(self, index):
        assert run(index.query("anything", top_k=5)) == []

    def test_query_dimension_mismatch(self, index):
        with pytest.raises(ValidationError):
            run(index.query(np.ones(4), top_k=1))


class TestDelete:
    """Tests for predicate deletion and atomic replacement."""

    def test_delete_by_mapping(self, index):
        run(index.add(unit(1), {"entity_id": "e1", "kind": "text"}))
        run(index.add(unit(2), {"entity_id": "e1", "kind": "image"}))
        run(index.add(unit(3), {"entity_id": "e2", "kind": "text"}))

        assert run(index.delete({"entity_id": "e1", "kind": "text"})) == 1
        assert run(index.count()) == 2

    def test_delete_by_predicate(self, index):
        for i in range(4):
            run(index.add(unit(i + 1), {"entity_id": f"e{i}", "chunk": i}))

        removed = run(index.delete(lambda metadata: metadata["chunk"] % 2 == 0))

        assert removed == 2
        remaining = run(index.query(unit(2), top_k=10))
        assert sorted(r.entity_id for r in remaining) == ["e1", "e3"]

    def test_delete_matching_nothing_is_noop(self, index):
        run(index.add(unit(1), {"entity_id": "e1"}))
        assert run(index.delete({"entity_id": "missing"})) == 0
        assert run(index.delete(lambda metadata: False)) == 0
        assert run(index.count()) == 1

    def test_empty_mapping_rejected(self, index):
        with pytest.raises(ValidationError):
            run(index.delete({}))

    def test_invalid_metadata_key_rejected(self, index):
        with pytest.raises(ValidationError):
            run(index.delete({"entity_id') OR 1=1 --": "x"}))

    def test_replace_swaps_records(self, index):
        run(index.add(unit(1), {"entity_id": "e1"}, "old"))
        run(index.add(unit(9), {"entity_id": "e2"}, "other"))

        ids = run(
            index.replace(
                {"entity_id": "e1"},
                [(unit(2), {"entity_id": "e1"}, "new a"), (unit(3), {"entity_id": "e1"}, "new b")],
            )
        )

        assert len(ids) == 2
        assert run(index.count({"entity_id": "e1"})) == 2
        assert run(index.count({"entity_id": "e2"})) == 1
        documents = {r.document for r in run(index.query(unit(2), top_k=10))}
        assert "old" not in documents

    def test_failed_replace_keeps_old_records(self, index):
        run(index.add(unit(1), {"entity_id": "e1"}, "old"))

        with pytest.raises(ValidationError):
            run(index.replace({"entity_id": "e1"}, [(np.ones(2), {"entity_id": "e1"}, "bad")]))

        records = run(index.query(unit(1), top_k=1))
        assert records[0].document == "old"


class TestStats:
    """Tests for count and stats."""

    def test_stats(self, index):
        run(index.add(unit(1), {"entity_id": "e1"}))
        run(index.add(unit(2), {"entity_id": "e1"}))
        run(index.add(unit(3), {"entity_id": "e2"}))

        stats = run(index.stats())

        assert stats["total_vectors"] == 3
        assert stats["total_entities"] == 2
        assert stats["avg_chunks_per_entity"] == 1.5
        assert stats["dimension"] == FAKE_DIMENSION

    def test_empty_stats(self, index):
        stats = run(index.stats())
        assert stats["total_vectors"] == 0
        assert stats["avg_chunks_per_entity"] == 0.0


class TestOnnxEmbeddingModel:
    """The local model reports a missing or unloaded model as unavailable."""

    def test_missing_model_files(self, tmp_path):
        model = OnnxEmbeddingModel(model_path=str(tmp_path), max_length=16, dimension=8)

        with pytest.raises(ProviderUnavailable) as excinfo:
            run(model.embed("airport taxi"))
        assert excinfo.value.error_type == StoreErrorType.PROVIDER_UNAVAILABLE
        assert not model.is_loaded

    def test_tokenize_before_load(self, tmp_path):
        model = OnnxEmbeddingModel(model_path=str(tmp_path), max_length=16, dimension=8)

        with pytest.raises(ProviderUnavailable):
            model._tokenize(["airport taxi"])
