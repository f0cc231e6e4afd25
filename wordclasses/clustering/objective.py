"""
Objective function for one-sided class induction.

Implements Eq. 10 of Uszkoreit and Brants (2008):

    O = sum_c sum_h n(c,h) log n(c,h) - sum_c n(c) log n(c)

where n(c,h) is the number of times a word of class c follows history h and
n(c) the total frequency of class c. Higher is better.
"""

import math
import logging
from typing import Mapping, Tuple

logger = logging.getLogger(__name__)


def xlogx(x: float) -> float:
    """x * log(x) with the limit 0 * log(0) = 0."""
    return x * math.log(x) if x > 0 else 0.0


def objective_terms(state) -> Tuple[float, float]:
    """
    Compute the two sums of the objective separately.

    Zero-valued entries are purged from ``state`` first. Classes without any
    mass are reported and contribute nothing to the second sum.

    Args:
        state: ClusterState to evaluate (purged in place)

    Returns:
        Tuple of (context_term, class_term); the objective is their difference
    """
    state.purge_zeros()

    context_terms = []
    class_terms = []
    for class_id in range(state.num_classes):
        class_contexts = state.class_context_counts.get(class_id)
        if class_contexts:
            context_terms.extend(n * math.log(n) for n in class_contexts.values())
        count = state.class_counts.get(class_id, 0)
        if count > 0:
            class_terms.append(count * math.log(count))
        else:
            logger.warning(f"Empty cluster: {class_id}")
    return math.fsum(context_terms), math.fsum(class_terms)


def objective_value(state) -> float:
    """Objective of the current clustering; see ``objective_terms``."""
    context_term, class_term = objective_terms(state)
    return context_term - class_term


def insertion_gain(word_count: int, word_contexts: Mapping[int, int],
                   class_count: int, class_contexts: Mapping[int, int],
                   contains_word: bool = False) -> float:
    """
    Change in the objective from adding one word to one class.

    Only the terms of the receiving class change, and only for the contexts
    the word occurs in, so the gain is a sum over the word's own contexts.

    Args:
        word_count: Corpus frequency of the word
        word_contexts: Context id -> frequency for the word
        class_count: Current mass of the class
        class_contexts: Context id -> frequency for the class
        contains_word: The class counts currently include the word; its
            counts are taken out before measuring the gain

    Returns:
        Objective gain of the insertion
    """
    gain = 0.0
    for context_id, count in word_contexts.items():
        base = class_contexts.get(context_id, 0)
        if contains_word:
            base -= count
        gain += xlogx(base + count) - xlogx(base)
    base = class_count - word_count if contains_word else class_count
    gain -= xlogx(base + word_count) - xlogx(base)
    return gain
