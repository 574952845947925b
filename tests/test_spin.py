"""Tests for the spin state machine."""

import random

import pytest

from prize_wheel.errors import EmptyInventory
from prize_wheel.inventory import DEFAULT_PRIZES, INVENTORY_KEY, InventoryStore, PrizeTier
from prize_wheel.rotation import target_offset
from prize_wheel.spin import Idle, Settled, SpinMachine, Spinning

from conftest import with_remaining


class FixedRandom:
    """Random source returning a fixed value from randrange."""

    def __init__(self, value):
        self.value = value

    def randrange(self, n):
        return self.value


def make_machine(store, media, timer, recorder, prizes=None, rng=None):
    inventory = InventoryStore(store)
    if prizes is not None:
        inventory.save(prizes)
    return SpinMachine(inventory, media, timer, emit=recorder, rng=rng or random.Random(0))


def test_starts_idle_with_loaded_inventory(machine):
    assert isinstance(machine.state, Idle)
    assert machine.rotation == 0
    assert machine.prizes == DEFAULT_PRIZES
    assert machine.winner is None


def test_draw_enters_spinning_without_touching_stock(machine, timer, recorder):
    state = machine.draw()
    assert isinstance(state, Spinning)
    assert machine.is_spinning
    assert machine.rotation == state.target_rotation > 0
    assert machine.prizes == DEFAULT_PRIZES
    assert timer.pending == 1
    assert recorder.names() == ["spin_started"]
    started = recorder.payloads("spin_started")[0]
    assert started["winner_id"] == state.winner.id.value
    assert started["spin_duration"] == 4000


def test_rotation_lands_on_winner_segment(store, media, timer, recorder):
    machine = make_machine(store, media, timer, recorder,
                           prizes=with_remaining(0, 3, 5, 0), rng=FixedRandom(2))
    state = machine.draw()
    assert state.winner.id == PrizeTier.SECOND
    assert state.target_rotation % 360 == pytest.approx(target_offset(1, 4))


def test_draw_while_spinning_is_a_noop(machine, timer, recorder):
    machine.draw()
    before = (machine.state, machine.rotation, list(machine.prizes), timer.pending)
    assert machine.draw() is None
    assert (machine.state, machine.rotation, list(machine.prizes), timer.pending) == before
    assert recorder.names() == ["spin_started", "spin_rejected"]


def test_settles_after_configured_duration(machine, timer):
    machine.draw()
    timer.advance(3.5)
    assert machine.is_spinning
    timer.advance(0.5)
    assert isinstance(machine.state, Settled)


def test_full_cycle_decrements_exactly_one_prize(machine, timer, store):
    before = {p.id: p.remaining for p in machine.prizes}
    winner = machine.draw().winner
    timer.advance(4)
    after = {p.id: p.remaining for p in machine.prizes}

    assert after[winner.id] == before[winner.id] - 1
    changed = [tier for tier in before if before[tier] != after[tier]]
    assert changed == [winner.id]
    assert sum(after.values()) == sum(before.values()) - 1
    assert InventoryStore(store).load() == machine.prizes


def test_settle_celebrates_with_registered_sound(store, media, timer, recorder):
    media.set_sound(PrizeTier.FIRST, "data:audio/mpeg;base64,AA==")
    machine = make_machine(store, media, timer, recorder,
                           prizes=with_remaining(3, 0, 0, 0))
    machine.draw()
    timer.advance(4)
    assert recorder.names() == ["spin_started", "spin_complete", "celebrate"]
    celebrate = recorder.payloads("celebrate")[0]
    assert celebrate["tier"] == "first"
    assert celebrate["sound"] == "data:audio/mpeg;base64,AA=="
    assert celebrate["confetti"]["particle_count"] == 200


def test_celebration_without_sound_still_emits(store, media, timer, recorder):
    machine = make_machine(store, media, timer, recorder,
                           prizes=with_remaining(0, 0, 1, 0))
    machine.draw()
    timer.advance(4)
    assert recorder.payloads("celebrate")[0]["sound"] is None


def test_surprise_tier_settles_without_celebration(store, media, timer, recorder):
    media.set_sound(PrizeTier.SURPRISE, "data:audio/mpeg;base64,AA==")
    machine = make_machine(store, media, timer, recorder,
                           prizes=with_remaining(0, 0, 0, 5))
    machine.draw()
    timer.advance(4)
    assert "celebrate" not in recorder.names()
    assert machine.winner.id == PrizeTier.SURPRISE


def test_empty_inventory_leaves_state_unchanged(store, media, timer, recorder):
    machine = make_machine(store, media, timer, recorder,
                           prizes=with_remaining(0, 0, 0, 0))
    with pytest.raises(EmptyInventory):
        machine.draw()
    assert isinstance(machine.state, Idle)
    assert machine.rotation == 0
    assert timer.pending == 0
    assert recorder.names() == []


def test_empty_after_last_prize_is_drawn(store, media, timer, recorder):
    machine = make_machine(store, media, timer, recorder,
                           prizes=with_remaining(1, 0, 0, 0))
    machine.draw()
    timer.advance(4)
    settled = machine.state
    rotation = machine.rotation
    with pytest.raises(EmptyInventory):
        machine.draw()
    assert machine.state is settled
    assert machine.rotation == rotation


def test_draw_from_settled_keeps_rotation_increasing(machine, timer):
    rotations = []
    for _ in range(5):
        machine.draw()
        rotations.append(machine.rotation)
        timer.advance(4)
    assert rotations == sorted(rotations)
    assert len(set(rotations)) == len(rotations)
    assert machine.total_spins_session == 5


def test_reset_during_spin_cancels_settle(machine, timer, store, recorder):
    machine.draw()
    machine.reset()
    timer.advance(10)
    assert isinstance(machine.state, Idle)
    assert machine.rotation == 0
    assert machine.prizes == DEFAULT_PRIZES
    assert "spin_complete" not in recorder.names()
    assert store.get(INVENTORY_KEY) is None


def test_reset_after_draws_restores_defaults(machine, timer, store, recorder):
    for _ in range(3):
        machine.draw()
        timer.advance(4)
    machine.reset()
    assert machine.prizes == DEFAULT_PRIZES
    assert machine.rotation == 0
    assert machine.winner is None
    assert store.get(INVENTORY_KEY) is None
    assert recorder.names()[-1] == "inventory_reset"


def test_config_changes_apply_to_next_draw(machine, timer):
    machine.config = dict(machine.config, spin_duration_ms=1000, full_spins=1)
    state = machine.draw()
    assert state.target_rotation < 720
    timer.advance(1)
    assert isinstance(machine.state, Settled)


def test_snapshot_reports_renderer_inputs(machine, timer):
    machine.draw()
    snapshot = machine.snapshot()
    assert snapshot["is_spinning"] is True
    assert snapshot["state"] == "spinning"
    assert snapshot["rotation"] == machine.rotation
    assert snapshot["winner"]["id"] == machine.winner.id.value
    assert len(snapshot["prizes"]) == 4
