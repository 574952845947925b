"""
Prize tiers and their remaining stock.

The prize list order is the wheel order: the tier at index ``i`` owns the
``i``-th segment. Only ``remaining`` ever changes during a session.
"""
import json
import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import List, Sequence

from .errors import CorruptPersistedState
from .storage import KeyValueStore

INVENTORY_KEY = 'inventory'
CORRUPT_INVENTORY_KEY = 'inventory.corrupt'
SCHEMA_VERSION = 1


class PrizeTier(str, Enum):
    FIRST = 'first'
    SECOND = 'second'
    THIRD = 'third'
    SURPRISE = 'surprise'


# Tier that settles without sound or confetti
NO_CELEBRATION_TIER = PrizeTier.SURPRISE


@dataclass(frozen=True)
class Prize:
    id: PrizeTier
    name: str
    remaining: int
    total: int

    def __post_init__(self):
        if not 0 <= self.remaining <= self.total:
            raise ValueError(
                f"remaining must be between 0 and {self.total} for {self.id.value}, got {self.remaining}"
            )

    def to_dict(self):
        data = asdict(self)
        data['id'] = self.id.value
        return data


DEFAULT_PRIZES: List[Prize] = [
    Prize(PrizeTier.FIRST, 'First Prize', 3, 3),
    Prize(PrizeTier.SECOND, 'Second Prize', 10, 10),
    Prize(PrizeTier.THIRD, 'Third Prize', 30, 30),
    Prize(PrizeTier.SURPRISE, 'Surprise Gift', 100, 100),
]


def validate_prize_data(data, expected):
    """Validate one persisted prize entry against its default counterpart"""
    if not isinstance(data, dict):
        return False, "Prize entry must be an object"

    required_fields = ['id', 'name', 'remaining', 'total']
    for field in required_fields:
        if field not in data:
            return False, f"Missing required field: {field}"

    if data['id'] != expected.id.value:
        return False, f"Expected tier '{expected.id.value}', got '{data['id']}'"

    if not isinstance(data['name'], str) or not data['name'].strip():
        return False, "Name must be a non-empty string"

    for field in ('remaining', 'total'):
        # bool is an int subclass but never a valid count
        if isinstance(data[field], bool) or not isinstance(data[field], int):
            return False, f"{field} must be an integer"

    if data['total'] != expected.total:
        return False, f"Total for '{expected.id.value}' changed from {expected.total} to {data['total']}"

    if not 0 <= data['remaining'] <= data['total']:
        return False, f"Remaining for '{expected.id.value}' out of range: {data['remaining']}"

    return True, None


def parse_inventory(raw, defaults=DEFAULT_PRIZES):
    """Decode a persisted inventory payload, raising CorruptPersistedState on any mismatch"""
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise CorruptPersistedState(f"Inventory is not valid JSON: {e}") from e

    if not isinstance(payload, dict) or payload.get('version') != SCHEMA_VERSION:
        raise CorruptPersistedState(f"Unsupported inventory schema: expected version {SCHEMA_VERSION}")

    entries = payload.get('prizes')
    if not isinstance(entries, list) or len(entries) != len(defaults):
        raise CorruptPersistedState("Inventory tier list does not match the wheel layout")

    prizes = []
    for entry, expected in zip(entries, defaults):
        valid, error = validate_prize_data(entry, expected)
        if not valid:
            raise CorruptPersistedState(error)
        prizes.append(replace(expected, name=entry['name'], remaining=entry['remaining']))
    return prizes


def serialize_inventory(prizes: Sequence[Prize]) -> str:
    return json.dumps(
        {'version': SCHEMA_VERSION, 'prizes': [p.to_dict() for p in prizes]},
        ensure_ascii=False,
    )


def total_remaining(prizes: Sequence[Prize]) -> int:
    return sum(p.remaining for p in prizes)


class InventoryStore:
    """Load, save and reset the prize list through a key-value store"""

    def __init__(self, store: KeyValueStore, defaults: Sequence[Prize] = DEFAULT_PRIZES):
        self._store = store
        self._defaults = list(defaults)

    @property
    def defaults(self) -> List[Prize]:
        return list(self._defaults)

    def load(self) -> List[Prize]:
        """Return the persisted list if present and well-formed, else the default table"""
        raw = self._store.get(INVENTORY_KEY)
        if raw is None:
            return self.defaults
        try:
            prizes = parse_inventory(raw, self._defaults)
        except CorruptPersistedState as e:
            logging.error(f"🚨 Stored inventory rejected ({e}). Falling back to defaults.")
            self._store.set(CORRUPT_INVENTORY_KEY, raw)
            self._store.remove(INVENTORY_KEY)
            return self.defaults
        logging.info(f"📦 Inventory restored: {total_remaining(prizes)} prizes remaining")
        return prizes

    def save(self, prizes: Sequence[Prize]) -> None:
        payload = serialize_inventory(prizes)
        if self._store.get(INVENTORY_KEY) == payload:
            return
        self._store.set(INVENTORY_KEY, payload)

    def reset(self) -> List[Prize]:
        self._store.remove(INVENTORY_KEY)
        logging.info("🔄 Inventory reset to defaults")
        return self.defaults

    @staticmethod
    def decrement(prizes: Sequence[Prize], tier: PrizeTier) -> List[Prize]:
        """Return a copy of ``prizes`` with one unit of ``tier`` taken out of stock"""
        updated = []
        found = False
        for prize in prizes:
            if prize.id == tier:
                if prize.remaining == 0:
                    raise ValueError(f"No stock left for tier '{tier.value}'")
                prize = replace(prize, remaining=prize.remaining - 1)
                found = True
            updated.append(prize)
        if not found:
            raise KeyError(tier)
        return updated
