"""twohop: two-hop link discovery for markdown knowledge bases."""

from .session import DiscoverySession

__version__ = "0.1.0"

__all__ = ["DiscoverySession", "__version__"]
