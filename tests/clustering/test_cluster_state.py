"""
Test suite for the cluster model state and the objective function.

Covers:
- Round-robin initialization over the frequency-sorted vocabulary
- Count invariants after merges and detection of corrupted tables
- Read-only snapshots
- Merging of partial updates (order independence, zero purging)
- Objective evaluation edge cases
"""

import math
import pickle
from collections import Counter

import pytest

from wordclasses.clustering import (
    ClusterState,
    PartialUpdate,
    exchange_slice,
    objective_terms,
    objective_value,
    scan_lines,
    sort_vocabulary,
)


def _state(lines, num_classes, order=2):
    counts = scan_lines(lines, order=order)
    counts.contexts.freeze()
    return counts, ClusterState.initialize(counts, num_classes)


class TestInitialization:
    """Test the round-robin initial assignment."""

    def test_sort_vocabulary_breaks_ties_lexically(self):
        counts = Counter({"b": 2, "a": 2, "z": 5, "c": 1})
        assert sort_vocabulary(counts) == ["z", "a", "b", "c"]

    def test_toy_corpus_assignment(self, toy_corpus):
        _, state = _state(toy_corpus, num_classes=2)

        assert state.word_to_class == {"a": 0, "b": 1, "c": 0}
        assert state.class_counts[0] == 5
        assert state.class_counts[1] == 3
        state.check_invariants()

    def test_round_robin_spreads_words(self, synthetic_corpus):
        counts, state = _state(synthetic_corpus, num_classes=4)
        vocab = sort_vocabulary(counts.word_counts)
        for i, word in enumerate(vocab):
            assert state.word_to_class[word] == i % 4
        sizes = state.class_sizes()
        assert max(sizes.values()) - min(sizes.values()) <= 1

    def test_covers_exactly_the_vocabulary(self, synthetic_corpus):
        counts, state = _state(synthetic_corpus, num_classes=5)
        assert set(state.word_to_class) == set(counts.word_counts)

    def test_more_classes_than_words(self, toy_corpus):
        _, state = _state(toy_corpus, num_classes=10)
        assert sorted(state.word_to_class.values()) == [0, 1, 2]
        state.check_invariants()

    def test_invalid_class_count(self, toy_corpus):
        counts = scan_lines(toy_corpus, order=2)
        with pytest.raises(ValueError):
            ClusterState.initialize(counts, 0)

    def test_from_assignment_rejects_partial_mapping(self, toy_corpus):
        counts = scan_lines(toy_corpus, order=2)
        with pytest.raises(ValueError, match="exactly"):
            ClusterState.from_assignment(counts, 2, {"a": 0, "b": 1})

    def test_from_assignment_rejects_bad_class(self, toy_corpus):
        counts = scan_lines(toy_corpus, order=2)
        with pytest.raises(ValueError, match="outside"):
            ClusterState.from_assignment(counts, 2, {"a": 0, "b": 1, "c": 2})


class TestApplyUpdate:
    """Test merging of partial updates."""

    def test_move_keeps_invariants(self, toy_corpus):
        counts, state = _state(toy_corpus, num_classes=2)
        update = PartialUpdate()
        update.record("c", 0, 1, counts.word_counts["c"], counts.word_context_counts["c"])

        assert state.apply_update(update) == 1
        assert state.word_to_class["c"] == 1
        assert state.class_counts[0] == 4
        assert state.class_counts[1] == 4
        state.check_invariants()

    def test_unchanged_assignment_counts_no_update(self, toy_corpus):
        counts, state = _state(toy_corpus, num_classes=2)
        update = PartialUpdate()
        update.record("a", 0, 0, counts.word_counts["a"], counts.word_context_counts["a"])

        assert update.assignments == {"a": 0}
        assert not update.delta_class_counts
        assert state.apply_update(update) == 0
        state.check_invariants()

    def test_emptied_class_is_removed(self):
        counts, state = _state(["x y"], num_classes=2)
        # x -> 0, y -> 1; move y into class 0
        update = PartialUpdate()
        update.record("y", 1, 0, counts.word_counts["y"], counts.word_context_counts["y"])
        state.apply_update(update)

        assert 1 not in state.class_counts
        assert not state.class_context_counts.get(1)
        state.check_invariants()

    def test_merge_order_does_not_matter(self, synthetic_corpus):
        counts, state_a = _state(synthetic_corpus, num_classes=3)
        state_b = ClusterState.initialize(counts, 3)
        vocab = sort_vocabulary(counts.word_counts)
        snapshot = state_a.snapshot()
        updates = [exchange_slice(snapshot, vocab[:10]), exchange_slice(snapshot, vocab[10:])]

        moved_a = sum(state_a.apply_update(u) for u in updates)
        moved_b = sum(state_b.apply_update(u) for u in reversed(updates))

        assert moved_a == moved_b
        assert state_a.word_to_class == state_b.word_to_class
        assert state_a.class_counts == state_b.class_counts
        state_a.check_invariants()
        state_b.check_invariants()

    def test_corrupted_class_count_is_detected(self, toy_corpus):
        _, state = _state(toy_corpus, num_classes=2)
        state.class_counts[0] += 100

        with pytest.raises(ValueError, match="class 0"):
            state.check_invariants()

    def test_corrupted_context_count_is_detected(self, toy_corpus):
        _, state = _state(toy_corpus, num_classes=2)
        context_id = next(iter(state.class_context_counts[1]))
        state.class_context_counts[1][context_id] += 1

        with pytest.raises(ValueError, match="context count mismatch for class 1"):
            state.check_invariants()

    def test_unassigned_word_is_detected(self, toy_corpus):
        _, state = _state(toy_corpus, num_classes=2)
        del state.word_to_class["c"]

        with pytest.raises(ValueError, match="1 words unassigned"):
            state.check_invariants()


class TestSnapshot:
    """Test the read-only view handed to workers."""

    def test_class_tables_are_read_only(self, toy_corpus):
        _, state = _state(toy_corpus, num_classes=2)
        snapshot = state.snapshot()

        with pytest.raises(TypeError):
            snapshot.word_to_class["a"] = 1
        with pytest.raises(TypeError):
            snapshot.class_counts[0] = 0
        with pytest.raises(TypeError):
            snapshot.class_context_counts[0][0] = 0

    def test_pickles_to_plain_copies(self, toy_corpus):
        _, state = _state(toy_corpus, num_classes=2)
        snapshot = state.snapshot()

        restored = pickle.loads(pickle.dumps(snapshot))

        assert restored.num_classes == 2
        assert dict(restored.word_to_class) == state.word_to_class
        assert dict(restored.class_counts) == dict(state.class_counts)
        assert dict(restored.class_context_counts[0]) == dict(state.class_context_counts[0])
        with pytest.raises(TypeError):
            restored.class_counts[1] = 0


class TestObjective:
    """Test objective evaluation."""

    def test_toy_corpus_objective(self, toy_corpus):
        _, state = _state(toy_corpus, num_classes=2)
        value = objective_value(state)

        # contexts: class 0 {<s>:2, b:2, a:1}, class 1 {a:3}; class mass 5 and 3
        expected = 4 * math.log(2) + 3 * math.log(3) - 5 * math.log(5) - 3 * math.log(3)
        assert math.isfinite(value)
        assert value == pytest.approx(expected)

    def test_single_class_second_term(self, synthetic_corpus):
        counts, state = _state(synthetic_corpus, num_classes=1)
        n = counts.num_tokens

        assert state.class_counts[0] == n
        _, class_term = objective_terms(state)
        assert class_term == pytest.approx(n * math.log(n))

    def test_empty_class_is_tolerated(self, toy_corpus, caplog):
        _, state = _state(toy_corpus, num_classes=5)
        with caplog.at_level("WARNING"):
            value = objective_value(state)

        assert math.isfinite(value)
        assert "Empty cluster: 3" in caplog.text
        assert "Empty cluster: 4" in caplog.text

    def test_zero_entries_are_purged(self, toy_corpus):
        _, state = _state(toy_corpus, num_classes=2)
        reference = objective_value(state)
        state.class_context_counts[1][999] = 0
        state.class_counts[7] = 0

        assert objective_value(state) == pytest.approx(reference)
        assert 999 not in state.class_context_counts[1]
        assert 7 not in state.class_counts

    def test_objective_for_empty_corpus(self):
        counts = scan_lines([], order=2)
        state = ClusterState.initialize(counts, 2)
        assert objective_value(state) == 0.0

    def test_objective_ignores_table_order(self, synthetic_corpus):
        _, state = _state(synthetic_corpus, num_classes=6)
        reference = objective_value(state)

        state.class_counts = Counter(dict(reversed(list(state.class_counts.items()))))
        state.class_context_counts = {
            class_id: Counter(dict(reversed(list(contexts.items()))))
            for class_id, contexts in reversed(list(state.class_context_counts.items()))
        }

        assert objective_value(state) == reference
