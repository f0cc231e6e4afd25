"""
Iteration controller for one-sided word class induction.

``WordClusterer`` drives a run through its phases:

    SCANNING -> INITIALIZING -> ITERATING -> WRITING -> DONE

Each iteration plans a vocabulary partition, dispatches one micro-slice per
worker against a frozen snapshot, waits for every worker (barrier), and merges
the partial updates into the model state. The merge is the only writer of the
state and never overlaps with worker reads.
"""

import logging
import time
from enum import Enum
from multiprocessing import Process, Queue
from pathlib import Path
from queue import Empty
from typing import List, Optional, TextIO, Union

from wordclasses.schema.cluster import ClusterConfig, ClusterStats, IterationStats, OutputFormat

from .corpus import CorpusCounts, scan_corpus
from .errors import ClusteringError
from .exchange import SliceResult, WorkerTask, exchange_slice, exchange_worker
from .objective import objective_value
from .partition import VocabularyPartitioner, VocabularySlice
from .state import ClusterSnapshot, ClusterState, PartialUpdate, sort_vocabulary
from .writer import write_assignments

logger = logging.getLogger(__name__)

RESULT_POLL_SECONDS = 1.0


class ClusteringPhase(Enum):
    SCANNING = "scanning"
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    WRITING = "writing"
    DONE = "done"


class WordClusterer:
    """
    Learns a mapping from words to a fixed number of classes.

    The number of iterations is a fixed budget: the run never stops early,
    even when an iteration moves no word.
    """

    def __init__(self, num_classes: int = 512, num_iterations: int = 20, num_workers: int = 1,
                 num_partitions: int = 3, order: int = 2, seed: Optional[int] = 0):
        if num_classes < 1:
            raise ValueError(f"Number of classes must be > 0, got {num_classes}")
        if num_iterations < 0:
            raise ValueError(f"Number of iterations must be >= 0, got {num_iterations}")
        if num_workers < 1:
            raise ValueError(f"Number of workers must be > 0, got {num_workers}")
        if num_partitions < 1:
            raise ValueError(f"Number of vocabulary partitions must be > 0, got {num_partitions}")
        if order < 2:
            raise ValueError(f"Model order must be > 1, got {order}")

        self.num_classes = num_classes
        self.num_iterations = num_iterations
        self.num_workers = num_workers
        self.num_partitions = num_partitions
        self.order = order
        self.seed = seed

        self.phase: Optional[ClusteringPhase] = None
        self.corpus: Optional[CorpusCounts] = None
        self.state: Optional[ClusterState] = None
        self.partitioner: Optional[VocabularyPartitioner] = None
        self.initial_objective = 0.0
        self.current_objective = 0.0
        self.iteration_stats: List[IterationStats] = []
        self.clustering_seconds = 0.0

        logger.info(f"#iterations: {num_iterations}")
        logger.info(f"#classes: {num_classes}")
        logger.info(f"order: {order}")

    @classmethod
    def from_config(cls, config: ClusterConfig) -> "WordClusterer":
        return cls(
            num_classes=config.nclasses,
            num_iterations=config.niters,
            num_workers=config.nthreads,
            num_partitions=config.vparts,
            order=config.order,
            seed=config.seed,
        )

    def _enter(self, phase: ClusteringPhase) -> None:
        logger.debug(f"Phase: {self.phase.value if self.phase else 'none'} -> {phase.value}")
        self.phase = phase

    def run(self, paths: List[Union[str, Path]]) -> ClusterState:
        """
        Scan the corpus files and cluster their vocabulary.

        Raises:
            CorpusReadError: If any source is unreadable; nothing is clustered
            ClusteringError: If a worker fails
        """
        self._enter(ClusteringPhase.SCANNING)
        corpus = scan_corpus(paths, self.order)
        return self.cluster(corpus)

    def cluster(self, corpus: CorpusCounts) -> ClusterState:
        """Cluster already scanned counts; the context index must be frozen."""
        if not corpus.contexts.frozen:
            corpus.contexts.freeze()
        self.initialize(corpus)
        self.iterate()
        return self.state

    def initialize(self, corpus: CorpusCounts) -> None:
        """Round-robin initial assignment, baseline objective and vocabulary shuffle."""
        self._enter(ClusteringPhase.INITIALIZING)
        self.corpus = corpus
        self.state = ClusterState.initialize(corpus, self.num_classes)
        self.initial_objective = self.current_objective = objective_value(self.state)
        logger.info(f"Initial objective function value: {self.initial_objective:.3f}")

        self.partitioner = VocabularyPartitioner(
            sort_vocabulary(corpus.word_counts), self.num_partitions, self.seed
        )
        self.iteration_stats = []

    def iterate(self) -> None:
        """Run the full iteration budget."""
        if self.state is None:
            raise RuntimeError("initialize() must be called before iterate()")
        self._enter(ClusteringPhase.ITERATING)
        logger.info(f"Starting clustering with {self.num_workers} workers")
        start_time = time.time()
        for iteration in range(self.num_iterations):
            self.run_iteration(iteration)
        self.clustering_seconds = time.time() - start_time

    def run_iteration(self, iteration: int) -> IterationStats:
        """Plan, dispatch, join and merge one iteration."""
        partition = self.partitioner.partition_index(iteration)
        logger.info(f"Iteration {iteration}: partition {partition} start")
        start_time = time.time()

        slices = self.partitioner.slices(iteration, self.num_workers)
        snapshot = self.state.snapshot()
        if self.num_workers <= 1:
            updates = self._dispatch_sequential(snapshot, slices)
        else:
            updates = self._dispatch_parallel(snapshot, slices)

        # Barrier passed: all workers are done reading the snapshot
        num_updates = 0
        for update in updates:
            num_updates += self.state.apply_update(update)
        self.current_objective = objective_value(self.state)

        elapsed = time.time() - start_time
        logger.info(f"Iteration {iteration}: elapsed time {elapsed:.3f}sec")
        logger.info(f"Iteration {iteration}: #updates {num_updates}")
        logger.info(f"Iteration {iteration}: objective: {self.current_objective:.4f}")
        if num_updates == 0:
            logger.debug(f"Iteration {iteration}: no word changed class")

        stats = IterationStats(
            iteration=iteration,
            partition=partition,
            num_updates=num_updates,
            objective=self.current_objective,
            elapsed_seconds=elapsed,
        )
        self.iteration_stats.append(stats)
        return stats

    def _dispatch_sequential(self, snapshot: ClusterSnapshot,
                             slices: List[VocabularySlice]) -> List[PartialUpdate]:
        """Evaluate every slice in this process, all against the same snapshot."""
        return [exchange_slice(snapshot, vocab_slice.words) for vocab_slice in slices]

    def _dispatch_parallel(self, snapshot: ClusterSnapshot,
                           slices: List[VocabularySlice]) -> List[PartialUpdate]:
        """
        Evaluate slices in worker processes through a task queue and a result queue.

        One task per slice is queued, followed by one poison pill per worker.
        Exactly ``len(slices)`` results are drained before the workers are
        joined.

        Raises:
            ClusteringError: If any slice failed or a worker process died
        """
        task_queue = Queue()
        result_queue = Queue()

        workers = []
        for worker_id in range(self.num_workers):
            worker = Process(
                target=exchange_worker,
                args=(snapshot, task_queue, result_queue, worker_id),
                name=f"ExchangeWorker-{worker_id}"
            )
            worker.start()
            workers.append(worker)

        for vocab_slice in slices:
            task_queue.put(WorkerTask(vocab_slice))
        for _ in workers:
            task_queue.put(None)

        # Drain before join so no worker blocks on a full result pipe
        results = self._collect_results(result_queue, workers, len(slices))
        for worker in workers:
            worker.join()

        errors = [r.error for r in results if not r.success]
        if errors:
            for error in errors:
                logger.error(error)
            raise ClusteringError(f"{len(errors)} of {len(slices)} worker slices failed")

        # Same merge order regardless of completion order
        results.sort(key=lambda r: r.worker_id)
        return [r.update for r in results]

    def _collect_results(self, result_queue: Queue, workers: List[Process],
                         expected: int) -> List[SliceResult]:
        """
        Wait for ``expected`` results, polling the workers while the queue is idle.

        Raises:
            ClusteringError: If a worker crashed, or all workers exited with
                results still missing; live workers are terminated first
        """
        results: List[SliceResult] = []
        while len(results) < expected:
            try:
                results.append(result_queue.get(timeout=RESULT_POLL_SECONDS))
                continue
            except Empty:
                pass

            crashed = [w for w in workers if not w.is_alive() and w.exitcode != 0]
            if not crashed and any(w.is_alive() for w in workers):
                continue
            # Pick up results that arrived since the last poll
            while len(results) < expected:
                try:
                    results.append(result_queue.get(timeout=0.1))
                except Empty:
                    break
            if len(results) == expected and not crashed:
                break

            for worker in crashed:
                logger.error(f"Worker {worker.name} died unexpectedly (exit code {worker.exitcode})")
            for worker in workers:
                if worker.is_alive():
                    worker.terminate()
                worker.join()
            raise ClusteringError(
                f"{len(crashed)} workers crashed; {expected - len(results)} of {expected} "
                f"worker slices unanswered"
            )
        return results

    def write_results(self, out: TextIO, fmt: Union[OutputFormat, str] = OutputFormat.TSV) -> int:
        """Write the current assignment; returns the number of lines written."""
        if self.state is None:
            raise RuntimeError("Nothing to write: clustering has not been initialized")
        self._enter(ClusteringPhase.WRITING)
        num_lines = write_assignments(self.state.word_to_class, out, fmt)
        self._enter(ClusteringPhase.DONE)
        return num_lines

    @property
    def stats(self) -> ClusterStats:
        if self.corpus is None:
            raise RuntimeError("No statistics before initialization")
        return ClusterStats(
            vocabulary_size=self.corpus.vocabulary_size,
            num_tokens=self.corpus.num_tokens,
            num_contexts=len(self.corpus.contexts),
            num_classes=self.num_classes,
            initial_objective=self.initial_objective,
            final_objective=self.current_objective,
            iterations=list(self.iteration_stats),
            total_seconds=self.clustering_seconds,
        )
