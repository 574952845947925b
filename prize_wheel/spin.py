"""
Spin state machine: Idle -> Spinning -> Settled.

A draw picks the winner and the landing rotation up front, then schedules the
settle step on the injected timer. Stock only changes when a spin settles, and
no draw is accepted while one is spinning, so a settle never races another
draw.
"""
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import DEFAULT_CONFIG
from .errors import EmptyInventory
from .inventory import NO_CELEBRATION_TIER, InventoryStore, Prize, total_remaining
from .media import MediaRegistry
from .rotation import plan_rotation
from .selector import select_prize


@dataclass(frozen=True)
class Idle:
    name = 'idle'


@dataclass(frozen=True)
class Spinning:
    target_rotation: float
    winner: Prize
    started_at: float
    name = 'spinning'


@dataclass(frozen=True)
class Settled:
    winner: Prize
    name = 'settled'


def _no_emit(event, payload):
    pass


class SpinMachine:
    def __init__(
        self,
        inventory: InventoryStore,
        media: MediaRegistry,
        timer,
        emit: Optional[Callable[[str, dict], None]] = None,
        rng: Optional[random.Random] = None,
        config: Optional[dict] = None,
    ):
        self.inventory = inventory
        self.media = media
        self.config = config if config is not None else dict(DEFAULT_CONFIG)
        self._timer = timer
        self._emit = emit or _no_emit
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._pending = None

        self.prizes: List[Prize] = inventory.load()
        self.rotation = 0.0
        self.state = Idle()
        self.total_spins_session = 0

    @property
    def is_spinning(self):
        return isinstance(self.state, Spinning)

    @property
    def winner(self) -> Optional[Prize]:
        if isinstance(self.state, (Spinning, Settled)):
            return self.state.winner
        return None

    def draw(self) -> Optional[Spinning]:
        """
        Start a spin and return the new Spinning state.

        Returns None without touching anything while a spin is in progress.
        Raises EmptyInventory, leaving the state unchanged, when no stock is
        left.
        """
        with self._lock:
            if self.is_spinning:
                logging.warning(f"🔄 Draw BLOCKED: wheel is busy (spin #{self.total_spins_session})")
                self._emit('spin_rejected', {
                    'reason': 'wheel_busy',
                    'message': 'Wheel is currently spinning. Please wait.',
                })
                return None

            try:
                selection = select_prize(self.prizes, self._rng)
            except EmptyInventory:
                logging.warning("⚠️ Draw ABORTED: inventory is empty")
                raise

            target = plan_rotation(
                selection.index,
                len(self.prizes),
                self.rotation,
                full_spins=self.config['full_spins'],
                pointer_angle=self.config['pointer_angle'],
            )
            duration_ms = self.config['spin_duration_ms']

            self.rotation = target
            self.state = Spinning(target, selection.prize, time.time())
            self.total_spins_session += 1
            self._pending = self._timer.schedule(duration_ms / 1000.0, self._settle)

            logging.info(
                f"🎲 Spin #{self.total_spins_session} STARTED: winner='{selection.prize.name}' "
                f"rotation={target:.1f} duration={duration_ms}ms"
            )
            self._emit('spin_started', {
                'winner_id': selection.prize.id.value,
                'winner_index': selection.index,
                'rotation': target,
                'spin_duration': duration_ms,
                'spin_number': self.total_spins_session,
            })
            return self.state

    def _settle(self):
        with self._lock:
            if not self.is_spinning:
                logging.debug("Settle skipped: no spin in progress")
                return

            winner = self.state.winner
            duration = time.time() - self.state.started_at
            self.prizes = InventoryStore.decrement(self.prizes, winner.id)
            self.state = Settled(winner)
            self._pending = None

            try:
                self.inventory.save(self.prizes)
            except OSError as e:
                logging.error(f"💥 Could not persist inventory after spin: {e}")

            logging.info(
                f"✅ Spin #{self.total_spins_session} COMPLETED: '{winner.name}' "
                f"(duration: {duration:.1f}s, {total_remaining(self.prizes)} left)"
            )
            self._emit('spin_complete', {
                'winner': winner.to_dict(),
                'prizes': [p.to_dict() for p in self.prizes],
                'rotation': self.rotation,
            })

            if winner.id != NO_CELEBRATION_TIER:
                self._emit('celebrate', {
                    'tier': winner.id.value,
                    'sound': self.media.get_sound(winner.id),
                    'confetti': dict(self.config['confetti']),
                })

    def reset(self):
        """Return to Idle with the default inventory and zero rotation"""
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
            self.state = Idle()
            self.rotation = 0.0
            self.prizes = self.inventory.reset()
            self._emit('inventory_reset', self.snapshot())

    def snapshot(self):
        with self._lock:
            winner = self.winner
            return {
                'prizes': [p.to_dict() for p in self.prizes],
                'rotation': self.rotation,
                'is_spinning': self.is_spinning,
                'winner': winner.to_dict() if winner else None,
                'state': self.state.name,
                'total_remaining': total_remaining(self.prizes),
                'session_spins': self.total_spins_session,
            }
