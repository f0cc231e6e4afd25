"""
Context interning for n-gram histories.

Every occurrence of a word is paired with the tuple of ``order-1`` preceding
tokens. The tuples are mapped to dense integer ids once during the corpus scan
so the clustering hot loop only hashes and compares small ints.
"""

import logging
from typing import Dict, List, Tuple

from .errors import ContextIndexFrozenError

logger = logging.getLogger(__name__)

START_TOKEN = "<s>"

Context = Tuple[str, ...]


class ContextIndex:
    """
    Two-phase interning table for n-gram contexts.

    While open, ``intern`` assigns the next free id to unseen contexts. After
    ``freeze`` the table is read-only: known contexts still resolve, unseen
    ones raise ``ContextIndexFrozenError``.
    """

    def __init__(self):
        self._ids: Dict[Context, int] = {}
        self._contexts: List[Context] = []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def intern(self, context: Context) -> int:
        """
        Return the integer id of ``context``, assigning one if it is new.

        Args:
            context: Tuple of preceding tokens

        Returns:
            Dense integer id, stable for the lifetime of the index

        Raises:
            ContextIndexFrozenError: If the index is frozen and the context is unseen
        """
        context_id = self._ids.get(context)
        if context_id is not None:
            return context_id
        if self._frozen:
            raise ContextIndexFrozenError(f"Cannot intern unseen context {context!r} after freeze")
        context_id = len(self._contexts)
        self._ids[context] = context_id
        self._contexts.append(context)
        return context_id

    def freeze(self) -> None:
        """Close the index; later interning of unseen contexts is an error."""
        if not self._frozen:
            logger.debug(f"Freezing context index with {len(self._contexts):,} contexts")
        self._frozen = True

    def lookup(self, context_id: int) -> Context:
        """Return the context tuple for an id (diagnostics only)."""
        return self._contexts[context_id]

    def __contains__(self, context: Context) -> bool:
        return context in self._ids

    def __len__(self) -> int:
        return len(self._contexts)


def initial_context(order: int) -> Context:
    """Start-of-sequence padding used as the first context of every line."""
    return (START_TOKEN,) * (order - 1)
