"""
Cluster model state for word class induction.

``ClusterState`` is the single owner of the word-to-class mapping and of the
class-level count tables. Workers only ever see a ``ClusterSnapshot`` of it;
the state itself is mutated exclusively by ``apply_update`` between
iterations.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping

from .corpus import CorpusCounts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterSnapshot:
    """
    Read-only view of the model state handed to exchange workers.

    The class tables are wrapped in ``MappingProxyType`` so a worker cannot
    write through them. The per-word context tables are shared as they are;
    nothing mutates them after the corpus scan.
    """
    num_classes: int
    word_counts: Mapping[str, int]
    word_context_counts: Mapping[str, Mapping[int, int]]
    word_to_class: Mapping[str, int]
    class_counts: Mapping[int, int]
    class_context_counts: Mapping[int, Mapping[int, int]]

    @classmethod
    def of(cls, num_classes: int, word_counts: Mapping[str, int],
           word_context_counts: Mapping[str, Mapping[int, int]], word_to_class: Mapping[str, int],
           class_counts: Mapping[int, int],
           class_context_counts: Mapping[int, Mapping[int, int]]) -> "ClusterSnapshot":
        return cls(
            num_classes=num_classes,
            word_counts=MappingProxyType(word_counts),
            word_context_counts=MappingProxyType(word_context_counts),
            word_to_class=MappingProxyType(word_to_class),
            class_counts=MappingProxyType(class_counts),
            class_context_counts=MappingProxyType(
                {class_id: MappingProxyType(contexts) for class_id, contexts in class_context_counts.items()}
            ),
        )

    def __reduce__(self):
        # mappingproxy cannot be pickled; worker processes get plain copies
        return (ClusterSnapshot.of, (
            self.num_classes,
            dict(self.word_counts),
            dict(self.word_context_counts),
            dict(self.word_to_class),
            dict(self.class_counts),
            {class_id: dict(contexts) for class_id, contexts in self.class_context_counts.items()},
        ))


@dataclass
class PartialUpdate:
    """
    Reassignments proposed by one worker for one vocabulary slice.

    ``assignments`` holds the chosen class of every word in the slice (moved
    or not); the deltas only reflect words whose class changed, relative to
    the snapshot the worker read.
    """
    assignments: Dict[str, int] = field(default_factory=dict)
    delta_class_counts: Counter = field(default_factory=Counter)
    delta_class_context_counts: Dict[int, Counter] = field(default_factory=dict)

    def record(self, word: str, old_class: int, new_class: int,
               word_count: int, word_contexts: Mapping[int, int]) -> None:
        """Record the choice for ``word`` and the count deltas it implies."""
        self.assignments[word] = new_class
        if new_class == old_class:
            return
        self.delta_class_counts[old_class] -= word_count
        self.delta_class_counts[new_class] += word_count
        old_deltas = self.delta_class_context_counts.setdefault(old_class, Counter())
        new_deltas = self.delta_class_context_counts.setdefault(new_class, Counter())
        for context_id, count in word_contexts.items():
            old_deltas[context_id] -= count
            new_deltas[context_id] += count


def sort_vocabulary(word_counts: Mapping[str, int]) -> List[str]:
    """Vocabulary by descending frequency, ties broken by lexical order."""
    return sorted(word_counts, key=lambda w: (-word_counts[w], w))


class ClusterState:
    """
    Word-to-class mapping plus the class count tables derived from it.

    Invariants, maintained exactly after every ``apply_update``:
        class_counts[c] == sum(word_counts[w] for w in class c)
        class_context_counts[c][h] == sum(word_context_counts[w][h] for w in class c)
    """

    def __init__(self, corpus: CorpusCounts, num_classes: int):
        if num_classes < 1:
            raise ValueError(f"Number of classes must be > 0, got {num_classes}")
        self.num_classes = num_classes
        self.word_counts = corpus.word_counts
        self.word_context_counts = corpus.word_context_counts
        self.word_to_class: Dict[str, int] = {}
        self.class_counts: Counter = Counter()
        self.class_context_counts: Dict[int, Counter] = {}

    @classmethod
    def from_assignment(cls, corpus: CorpusCounts, num_classes: int,
                        word_to_class: Mapping[str, int]) -> "ClusterState":
        """
        Build a state from an explicit assignment of every vocabulary word.

        Raises:
            ValueError: If the assignment does not cover exactly the vocabulary
                or uses a class id outside ``[0, num_classes)``
        """
        state = cls(corpus, num_classes)
        if set(word_to_class) != set(corpus.word_counts):
            raise ValueError("Assignment must cover exactly the scanned vocabulary")
        for word, class_id in word_to_class.items():
            if not 0 <= class_id < num_classes:
                raise ValueError(f"Class id {class_id} for '{word}' outside [0, {num_classes})")
            state._add_word(word, class_id)
        return state

    @classmethod
    def initialize(cls, corpus: CorpusCounts, num_classes: int) -> "ClusterState":
        """
        Round-robin seeding over the frequency-sorted vocabulary.

        The i-th most frequent word goes to class ``i mod num_classes`` so
        frequent words are spread evenly across classes.
        """
        vocab = sort_vocabulary(corpus.word_counts)
        assignment = {word: i % num_classes for i, word in enumerate(vocab)}
        state = cls.from_assignment(corpus, num_classes, assignment)
        logger.info("Finished generating initial cluster assignment")
        return state

    def _add_word(self, word: str, class_id: int) -> None:
        self.word_to_class[word] = class_id
        self.class_counts[class_id] += self.word_counts[word]
        class_contexts = self.class_context_counts.setdefault(class_id, Counter())
        for context_id, count in self.word_context_counts[word].items():
            class_contexts[context_id] += count

    def snapshot(self) -> ClusterSnapshot:
        """Read-only view for the parallel phase of an iteration."""
        return ClusterSnapshot.of(
            self.num_classes,
            self.word_counts,
            self.word_context_counts,
            self.word_to_class,
            self.class_counts,
            self.class_context_counts,
        )

    def apply_update(self, update: PartialUpdate) -> int:
        """
        Fold one worker's partial update into the state.

        All deltas are additive integers, so updates of one iteration can be
        applied in any order with the same result.

        Returns:
            Number of words whose class actually changed
        """
        for class_id, delta in update.delta_class_counts.items():
            if not delta:
                continue
            count = self.class_counts[class_id] + delta
            if count:
                self.class_counts[class_id] = count
            else:
                del self.class_counts[class_id]

        for class_id, deltas in update.delta_class_context_counts.items():
            class_contexts = self.class_context_counts.setdefault(class_id, Counter())
            for context_id, delta in deltas.items():
                if not delta:
                    continue
                count = class_contexts[context_id] + delta
                if count:
                    class_contexts[context_id] = count
                else:
                    del class_contexts[context_id]

        num_updates = 0
        for word, class_id in update.assignments.items():
            if self.word_to_class[word] != class_id:
                self.word_to_class[word] = class_id
                num_updates += 1
        return num_updates

    def purge_zeros(self) -> None:
        """Drop zero-valued class and class-context entries."""
        for class_id in [c for c, n in self.class_counts.items() if n == 0]:
            del self.class_counts[class_id]
        for class_id, class_contexts in list(self.class_context_counts.items()):
            for context_id in [h for h, n in class_contexts.items() if n == 0]:
                del class_contexts[context_id]
            if not class_contexts:
                del self.class_context_counts[class_id]

    def class_sizes(self) -> Counter:
        """Number of vocabulary words per class."""
        return Counter(self.word_to_class.values())

    def check_invariants(self) -> None:
        """
        Recompute class tables from scratch and compare with the maintained ones.

        Raises:
            ValueError: On any mismatch, naming the first class that differs
        """
        if set(self.word_to_class) != set(self.word_counts):
            missing = len(set(self.word_counts) - set(self.word_to_class))
            extra = len(set(self.word_to_class) - set(self.word_counts))
            raise ValueError(f"word_to_class does not cover exactly the vocabulary "
                             f"({missing} words unassigned, {extra} unknown words)")
        expected = ClusterState.from_assignment(
            CorpusCounts(word_counts=self.word_counts, word_context_counts=self.word_context_counts),
            self.num_classes,
            self.word_to_class,
        )
        for class_id in range(self.num_classes):
            actual_count = self.class_counts.get(class_id, 0)
            expected_count = expected.class_counts.get(class_id, 0)
            if actual_count != expected_count:
                raise ValueError(f"Class count mismatch for class {class_id}: "
                                 f"{actual_count} maintained, {expected_count} recomputed")
            actual_contexts = {h: n for h, n in self.class_context_counts.get(class_id, {}).items() if n}
            expected_contexts = {h: n for h, n in expected.class_context_counts.get(class_id, {}).items() if n}
            if actual_contexts != expected_contexts:
                raise ValueError(f"Class context count mismatch for class {class_id}")
