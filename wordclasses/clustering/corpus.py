"""
Corpus scanning for word class induction.

Reads plain-text corpora (one sentence per line, whitespace tokenized) and
accumulates the word and (word, context) frequencies that the clustering
operates on. Scanning is the first of two phases: it must finish over all
sources before any class assignment is computed.
"""

import gzip
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, TextIO, Union

from .context import ContextIndex, initial_context
from .errors import CorpusReadError

logger = logging.getLogger(__name__)


@dataclass
class CorpusCounts:
    """
    Frozen result of a corpus scan.

    Attributes:
        word_counts: Corpus frequency per word
        word_context_counts: Per word, frequency of each interned context id
        contexts: The frozen context index
        num_lines: Number of lines read across all sources
        num_tokens: Total number of tokens counted
    """
    word_counts: Counter = field(default_factory=Counter)
    word_context_counts: Dict[str, Counter] = field(default_factory=dict)
    contexts: ContextIndex = field(default_factory=ContextIndex)
    num_lines: int = 0
    num_tokens: int = 0

    @property
    def vocabulary_size(self) -> int:
        return len(self.word_counts)


def _open_text(path: Path) -> TextIO:
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="utf-8")
    return open(path, "r", encoding="utf-8")


def read_lines(path: Union[str, Path]) -> Iterator[str]:
    """
    Yield the lines of a corpus file, transparently decompressing ``.gz`` files.

    Raises:
        CorpusReadError: If the file cannot be opened, read or decoded
    """
    path = Path(path)
    try:
        with _open_text(path) as f:
            for line in f:
                yield line
    except (OSError, UnicodeDecodeError) as e:
        raise CorpusReadError(f"Unable to read corpus file {path}: {e}") from e


def count_line(line: str, order: int, counts: CorpusCounts) -> int:
    """
    Add the tokens of one line to ``counts``.

    Each token is counted with the ``order-1`` tokens that precede it; the
    first tokens of the line see start-of-sequence padding.

    Returns:
        Number of tokens counted
    """
    tokens = line.split()
    history = list(initial_context(order))
    for token in tokens:
        context_id = counts.contexts.intern(tuple(history))
        counts.word_counts[token] += 1
        word_contexts = counts.word_context_counts.get(token)
        if word_contexts is None:
            word_contexts = counts.word_context_counts[token] = Counter()
        word_contexts[context_id] += 1
        history.append(token)
        history.pop(0)
    counts.num_tokens += len(tokens)
    return len(tokens)


def scan_lines(lines: Iterable[str], order: int, counts: Optional[CorpusCounts] = None) -> CorpusCounts:
    """
    Count an in-memory stream of lines. The context index is left open.

    Args:
        lines: Iterable of sentences
        order: n-gram order (context length is ``order-1``)
        counts: Existing counts to extend; a fresh instance is created if None

    Returns:
        The updated counts
    """
    if order < 2:
        raise ValueError(f"Model order must be > 1, got {order}")
    if counts is None:
        counts = CorpusCounts()
    for line in lines:
        count_line(line, order, counts)
        counts.num_lines += 1
    return counts


def scan_corpus(paths: List[Union[str, Path]], order: int) -> CorpusCounts:
    """
    Scan every source and freeze the resulting counts.

    Args:
        paths: Corpus files, plain text or gzip
        order: n-gram order

    Returns:
        Frozen corpus counts

    Raises:
        CorpusReadError: On the first unreadable source; no partial counts are returned
    """
    counts = CorpusCounts()
    start_time = time.time()
    for path in paths:
        logger.info(f"Reading: {path}")
        lines_before = counts.num_lines
        scan_lines(read_lines(path), order, counts)
        logger.debug(f"  {counts.num_lines - lines_before:,} lines from {path}")
    counts.contexts.freeze()

    elapsed = time.time() - start_time
    logger.info(f"Done reading input files ({elapsed:.3f}sec)")
    logger.info(f"Input gross statistics: {counts.vocabulary_size:,} words  "
                f"{counts.num_tokens:,} tokens  {len(counts.contexts):,} contexts")
    return counts
