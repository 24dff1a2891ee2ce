"""Tests for the relay driver of a shade."""

import asyncio
from datetime import timedelta

import pytest

from sunscreen.domain.actuator import ShadeActuator
from sunscreen.domain.models import Mode, MoveEvent, Position
from sunscreen.drivers.gpio_sim import SimulatedPin


def _actuator(position=Position.UNKNOWN, duration=timedelta(0), **kw):
    pin_up, pin_down = SimulatedPin(20), SimulatedPin(21)
    act = ShadeActuator("1", pin_up, pin_down, duration, duration, position=position, tick=0.01, **kw)
    act.init_pins()
    return act, pin_up, pin_down


class TestStateMachine:
    @pytest.mark.asyncio
    async def test_unknown_moves_up(self):
        act, pin_up, pin_down = _actuator()
        assert await act.move()
        assert act.position == Position.UP
        assert pin_up.toggles == 1
        assert pin_down.toggles == 0

    @pytest.mark.asyncio
    async def test_up_moves_down_and_back(self):
        act, pin_up, pin_down = _actuator(Position.UP)
        await act.move()
        assert act.position == Position.DOWN
        await act.move()
        assert act.position == Position.UP
        assert (pin_up.toggles, pin_down.toggles) == (1, 1)

    @pytest.mark.asyncio
    async def test_pins_idle_high(self):
        act, pin_up, pin_down = _actuator(Position.UP)
        await act.down()
        assert pin_down.calls[-2:] == ["low", "high"]
        assert pin_up.calls == ["output", "high"]

    @pytest.mark.asyncio
    async def test_down_from_unknown_moves_up(self):
        act, pin_up, _ = _actuator()
        assert await act.down()
        assert act.position == Position.UP
        assert pin_up.toggles == 1

    def test_moving_is_not_a_start_position(self):
        act, _, _ = _actuator(Position.MOVING)
        assert act.position == Position.UNKNOWN


class TestTargetedMoves:
    @pytest.mark.asyncio
    async def test_up_when_up_does_nothing(self, repo, notifier):
        act, pin_up, pin_down = _actuator(Position.UP, repo=repo, notifier=notifier)
        assert not await act.up()
        assert pin_up.toggles == 0
        assert pin_down.toggles == 0
        repo.insert_move.assert_not_called()
        notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_down_when_down_does_nothing(self):
        act, _, pin_down = _actuator(Position.DOWN)
        assert not await act.down()
        assert pin_down.toggles == 0


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_second_move_is_rejected(self):
        act, pin_up, pin_down = _actuator(Position.UP, duration=timedelta(seconds=0.2))

        first = asyncio.create_task(act.move())
        await asyncio.sleep(0.05)
        assert act.position == Position.MOVING
        assert act.moving

        assert not await act.move()
        assert await first
        assert act.position == Position.DOWN
        assert pin_up.toggles + pin_down.toggles == 1

    @pytest.mark.asyncio
    async def test_cancelled_move_releases_pin(self):
        act, _, pin_down = _actuator(Position.UP, duration=timedelta(seconds=5))

        task = asyncio.create_task(act.move())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert pin_down.calls[-1] == "high"
        assert act.position == Position.UNKNOWN
        assert not act.moving

    @pytest.mark.asyncio
    async def test_rebind_swaps_pins(self):
        act, old_up, _ = _actuator(Position.DOWN)
        new_up, new_down = SimulatedPin(5), SimulatedPin(6)

        await act.rebind(new_up, new_down, timedelta(0), timedelta(0))
        await act.up()

        assert old_up.toggles == 0
        assert new_up.toggles == 1
        assert new_down.calls == ["output", "high"]


class TestAfterMove:
    @pytest.mark.asyncio
    async def test_notifies_and_stores(self, repo, notifier):
        act, _, _ = _actuator(Position.UP, repo=repo, notifier=notifier, mode_of=lambda: Mode.AUTO)

        await act.down([5, 6, 7])

        subject = notifier.notify.await_args.args[0]
        assert subject == "Moved sunscreen down"
        event = repo.insert_move.await_args.args[0]
        assert isinstance(event, MoveEvent)
        assert event.mode == Mode.AUTO
        assert (event.old_position, event.new_position) == (Position.UP, Position.DOWN)
        assert event.light == [5, 6, 7]
        repo.save_shade_state.assert_awaited_once_with("1", Mode.AUTO, Position.DOWN)

    @pytest.mark.asyncio
    async def test_failing_notifier_does_not_break_move(self, repo, notifier):
        notifier.notify.side_effect = RuntimeError("smtp down")
        act, _, _ = _actuator(Position.UP, repo=repo, notifier=notifier)

        assert await act.down()

        assert act.position == Position.DOWN
        repo.insert_move.assert_awaited_once()
