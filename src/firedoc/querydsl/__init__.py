"""Query DSL.

`Q` composes filter expressions; `compilers.firestore` turns them into
structured-query filters.
"""

from .q import Q, split_lookup

__all__ = ("Q", "split_lookup")
