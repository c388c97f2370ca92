"""Feature modules for the launchpad core.

- pools: pool drafts, the pool registry cache and the pool lifecycle service
"""

from launchpad.features import pools

__all__ = ["pools"]
