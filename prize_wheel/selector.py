"""Weighted winner selection over remaining stock."""
import logging
import random
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .errors import EmptyInventory
from .inventory import Prize, PrizeTier, total_remaining


@dataclass(frozen=True)
class Selection:
    prize: Prize
    index: int


def select_with_draw(prizes: Sequence[Prize], r: int) -> Selection:
    """
    Pick the prize owning ``r`` in the cumulative ``[0, total_remaining)`` interval.

    Prizes claim consecutive slices in list order, each as wide as its
    remaining stock, so the result is a pure function of ``(prizes, r)``.
    """
    total = total_remaining(prizes)
    if total == 0:
        raise EmptyInventory()
    if not 0 <= r < total:
        raise ValueError(f"r must be in [0, {total}), got {r}")

    cumulative = 0
    for index, prize in enumerate(prizes):
        if prize.remaining <= 0:
            continue
        cumulative += prize.remaining
        if r < cumulative:
            logging.debug(f"Winner calculation: {r}/{total} -> {prize.id.value} (index {index})")
            return Selection(prize, index)

    # Unreachable while total_remaining matches the loop's sum
    raise AssertionError("cumulative walk ended without a winner")


def select_prize(prizes: Sequence[Prize], rng: Optional[random.Random] = None) -> Selection:
    """Draw ``r`` from ``rng`` and select the matching prize"""
    total = total_remaining(prizes)
    if total == 0:
        raise EmptyInventory()
    rng_obj = rng or random
    return select_with_draw(prizes, rng_obj.randrange(total))


def odds(prizes: Sequence[Prize]) -> Dict[PrizeTier, float]:
    """Current win probability of every tier"""
    total = total_remaining(prizes)
    if total == 0:
        return {p.id: 0.0 for p in prizes}
    return {p.id: p.remaining / total for p in prizes}
