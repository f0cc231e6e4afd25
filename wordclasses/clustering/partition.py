"""
Vocabulary partitioning for the exchange iterations.

The vocabulary is shuffled once per run and cut into ``num_partitions``
contiguous macro-partitions. Iteration ``e`` works on partition
``e mod num_partitions``, which is split again into one contiguous
micro-slice per worker.
"""

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VocabularySlice:
    """The words one worker evaluates in one iteration."""
    partition: int
    worker_id: int
    start: int
    end: int
    words: Tuple[str, ...]

    def __len__(self) -> int:
        return len(self.words)


class VocabularyPartitioner:
    """
    Plans macro-partitions and per-worker micro-slices over a fixed vocabulary order.

    Sizes follow integer division; the last partition and the last slice of
    every partition absorb the remainder.
    """

    def __init__(self, vocabulary: Sequence[str], num_partitions: int, seed: Optional[int] = 0):
        if num_partitions < 1:
            raise ValueError(f"Number of vocabulary partitions must be > 0, got {num_partitions}")
        self.num_partitions = num_partitions
        self.seed = seed
        self.vocabulary: List[str] = list(vocabulary)
        random.Random(seed).shuffle(self.vocabulary)

    def partition_index(self, iteration: int) -> int:
        return iteration % self.num_partitions

    def partition_bounds(self, partition: int) -> Tuple[int, int]:
        """Half-open ``[start, end)`` range of a macro-partition."""
        size = len(self.vocabulary) // self.num_partitions
        start = partition * size
        end = len(self.vocabulary) if partition == self.num_partitions - 1 else start + size
        return start, end

    def slices(self, iteration: int, num_workers: int) -> List[VocabularySlice]:
        """
        Split the macro-partition of ``iteration`` into ``num_workers`` slices.

        Slices are empty when the partition has fewer words than workers.
        """
        if num_workers < 1:
            raise ValueError(f"Number of workers must be > 0, got {num_workers}")
        partition = self.partition_index(iteration)
        partition_start, partition_end = self.partition_bounds(partition)
        slice_size = (partition_end - partition_start) // num_workers

        result = []
        for worker_id in range(num_workers):
            start = partition_start + worker_id * slice_size
            end = partition_end if worker_id == num_workers - 1 else start + slice_size
            logger.debug(f"Partition {partition} worker {worker_id} size "
                         f"{partition_end - partition_start}: input {start}-{end - 1}")
            result.append(VocabularySlice(
                partition=partition,
                worker_id=worker_id,
                start=start,
                end=end,
                words=tuple(self.vocabulary[start:end]),
            ))
        return result
