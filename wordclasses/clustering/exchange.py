"""
Local exchange step of the one-sided clustering algorithm.

Each worker receives a read-only ``ClusterSnapshot`` and a slice of the
vocabulary. Every word of the slice is moved (on paper) to the class that
maximizes the objective, evaluated against the same snapshot: workers never
see each other's moves within an iteration. Results are returned as
``PartialUpdate`` objects and merged by the controller.
"""

import logging
import traceback
from multiprocessing import Queue
from typing import List, Optional, Sequence

from .objective import insertion_gain
from .partition import VocabularySlice
from .state import ClusterSnapshot, PartialUpdate

logger = logging.getLogger(__name__)

_NO_CONTEXTS = {}


class WorkerTask:
    """One micro-slice to be processed by a worker."""
    def __init__(self, vocab_slice: VocabularySlice):
        self.vocab_slice = vocab_slice


class SliceResult:
    """A worker's answer for one task: a partial update or an error message."""
    def __init__(self, worker_id: int, success: bool, update: Optional[PartialUpdate] = None,
                 error: Optional[str] = None):
        self.worker_id = worker_id
        self.success = success
        self.update = update
        self.error = error


def candidate_gains(snapshot: ClusterSnapshot, word: str) -> List[float]:
    """
    Objective gain of placing ``word`` in each class.

    The word's counts are taken out of its current class first, so all gains
    are measured from the same state (the word unassigned) and differ only in
    the two class terms that a move touches.

    Returns:
        Gain per class id
    """
    current = snapshot.word_to_class[word]
    word_count = snapshot.word_counts[word]
    word_contexts = snapshot.word_context_counts[word]
    return [
        insertion_gain(
            word_count,
            word_contexts,
            snapshot.class_counts.get(class_id, 0),
            snapshot.class_context_counts.get(class_id, _NO_CONTEXTS),
            contains_word=(class_id == current),
        )
        for class_id in range(snapshot.num_classes)
    ]


def choose_class(gains: Sequence[float], current: int) -> int:
    """
    Pick the class with the highest gain.

    Ties keep the current class, then prefer the lowest class id.
    """
    best_class = current
    best_gain = gains[current]
    for class_id, gain in enumerate(gains):
        if gain > best_gain:
            best_class, best_gain = class_id, gain
    return best_class


def exchange_slice(snapshot: ClusterSnapshot, words: Sequence[str]) -> PartialUpdate:
    """
    Compute the best class for every word of a slice.

    Args:
        snapshot: Frozen model state of the current iteration
        words: Words to evaluate

    Returns:
        Partial update with one assignment per word and the count deltas of
        the words that moved
    """
    update = PartialUpdate()
    for word in words:
        current = snapshot.word_to_class[word]
        best = choose_class(candidate_gains(snapshot, word), current)
        update.record(word, current, best, snapshot.word_counts[word],
                      snapshot.word_context_counts[word])
    return update


def exchange_worker(snapshot: ClusterSnapshot, task_queue: Queue, result_queue: Queue, worker_id: int) -> None:
    """
    Worker process loop.

    Pulls ``WorkerTask`` objects until a ``None`` poison pill arrives and
    pushes one ``SliceResult`` per task. Failures are sent back as error
    results; the controller decides how to handle them.

    Args:
        snapshot: Frozen model state shared by all workers of the iteration
        task_queue: Queue of WorkerTask objects, terminated by None
        result_queue: Queue receiving SliceResult objects
        worker_id: Identifier used in log messages
    """
    while True:
        task = task_queue.get()
        if task is None:
            break
        vocab_slice = task.vocab_slice
        try:
            update = exchange_slice(snapshot, vocab_slice.words)
            result_queue.put(SliceResult(vocab_slice.worker_id, True, update=update))
        except Exception as e:
            error_msg = (f"Worker {worker_id} error on partition {vocab_slice.partition} "
                         f"slice {vocab_slice.worker_id}: {e}\n{traceback.format_exc()}")
            result_queue.put(SliceResult(vocab_slice.worker_id, False, error=error_msg))
