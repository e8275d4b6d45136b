"""
Info objects: ordered key/value maps over the runtime's native store.

Modules:
    handle    - HandleOwner (handle + freeable ownership)
    info_map  - InfoMap, erase_if(), swap()
    proxy     - InfoProxy returned by InfoMap[key]
    iterator  - InfoIterator, ConstInfoIterator, ReverseInfoIterator
"""

from mpifacade.info.handle import HandleOwner
from mpifacade.info.info_map import InfoMap, erase_if, swap
from mpifacade.info.iterator import ConstInfoIterator, InfoIterator, ReverseInfoIterator
from mpifacade.info.proxy import PLACEHOLDER, InfoProxy

__all__ = [
    "HandleOwner",
    "InfoMap",
    "erase_if",
    "swap",
    "ConstInfoIterator",
    "InfoIterator",
    "ReverseInfoIterator",
    "InfoProxy",
    "PLACEHOLDER",
]
