"""
Word Class Induction Package

This package contains the one-sided exchange clustering of Uszkoreit and
Brants (2008): words are grouped into a fixed number of classes so that each
class predicts its preceding n-gram contexts well.

Key modules:
- context: Interning of n-gram contexts
- corpus: Corpus scanning and counting
- state: Model state, snapshots and partial updates
- objective: Objective function and local move gains
- partition: Vocabulary partitions and per-worker slices
- exchange: Local exchange worker
- clusterer: Iteration controller
- writer: Output of the final assignment
"""

from .errors import (
    WordClassError,
    CorpusReadError,
    ContextIndexFrozenError,
    ClusteringError
)

from .context import ContextIndex, START_TOKEN, initial_context

from .corpus import CorpusCounts, read_lines, scan_lines, scan_corpus

from .state import ClusterSnapshot, ClusterState, PartialUpdate, sort_vocabulary

from .objective import objective_terms, objective_value, insertion_gain

from .partition import VocabularyPartitioner, VocabularySlice

from .exchange import candidate_gains, choose_class, exchange_slice

from .clusterer import ClusteringPhase, WordClusterer

from .writer import format_assignment, write_assignments

__all__ = [
    # Errors
    "WordClassError",
    "CorpusReadError",
    "ContextIndexFrozenError",
    "ClusteringError",

    # Scanning
    "ContextIndex",
    "START_TOKEN",
    "initial_context",
    "CorpusCounts",
    "read_lines",
    "scan_lines",
    "scan_corpus",

    # State and objective
    "ClusterSnapshot",
    "ClusterState",
    "PartialUpdate",
    "sort_vocabulary",
    "objective_terms",
    "objective_value",
    "insertion_gain",

    # Iterations
    "VocabularyPartitioner",
    "VocabularySlice",
    "candidate_gains",
    "choose_class",
    "exchange_slice",
    "ClusteringPhase",
    "WordClusterer",

    # Output
    "format_assignment",
    "write_assignments"
]
