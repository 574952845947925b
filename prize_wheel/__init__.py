"""Prize wheel draw engine and its Flask/Socket.IO front end."""

from .errors import CorruptPersistedState, EmptyInventory, MediaReadFailure, PrizeWheelError
from .inventory import DEFAULT_PRIZES, InventoryStore, Prize, PrizeTier
from .media import MediaAssets, MediaRegistry
from .rotation import plan_rotation
from .selector import Selection, select_prize, select_with_draw
from .spin import Idle, Settled, SpinMachine, Spinning

__all__ = [
    "CorruptPersistedState",
    "DEFAULT_PRIZES",
    "EmptyInventory",
    "Idle",
    "InventoryStore",
    "MediaAssets",
    "MediaReadFailure",
    "MediaRegistry",
    "Prize",
    "PrizeTier",
    "PrizeWheelError",
    "Selection",
    "Settled",
    "SpinMachine",
    "Spinning",
    "plan_rotation",
    "select_prize",
    "select_with_draw",
]
