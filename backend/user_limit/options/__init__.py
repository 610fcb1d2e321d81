"""Named option storage.

Generic key-value persistence over the ``options`` table. Typed access to
the retention settings lives in ``retention.config_store``.
"""

from .store import OptionStore

__all__ = [
    "OptionStore",
]
