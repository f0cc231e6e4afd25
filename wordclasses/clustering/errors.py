"""Error types for word class induction."""


class WordClassError(Exception):
    """Base error for all word class induction failures."""


class CorpusReadError(WordClassError):
    """A corpus source could not be opened, read or decoded."""


class ContextIndexFrozenError(WordClassError):
    """An unseen context was interned after the index was frozen."""


class ClusteringError(WordClassError):
    """A worker failed while computing class reassignments."""
