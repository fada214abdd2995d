"""
bondpool Package

Pooled-reserve exchange with virtual per-pair entries, and Dutch auctions
for bond positions.

Core imports are lazily loaded so that importing a submodule does not
configure logging twice or pull in the whole engine. For direct access,
import from submodules:

    from bondpool.pool import ReservePool
    from bondpool.auction import AuctionController
    from bondpool.exceptions import InvariantViolationError
"""


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'ReservePool':
        from .pool import ReservePool
        return ReservePool
    elif name == 'AuctionController':
        from .auction import AuctionController
        return AuctionController
    elif name == 'BondPoolException':
        from .exceptions import BondPoolException
        return BondPoolException
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'bondpool' has no attribute {name!r}")


__all__ = ['ReservePool', 'AuctionController', 'BondPoolException', 'load_config']
