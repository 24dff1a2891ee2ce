"""Tests for the light monitoring service."""

from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from sunscreen.domain.models import LightReading, Mode, OperatingWindow, Position
from sunscreen.sensors.light_sampler import LightSampler
from sunscreen.services.coordinator import ScheduleCoordinator
from sunscreen.services.sampler import SamplerService

from conftest import UTC, FixedClock, ScriptedLightPin, wait_for_condition

DAY = date(2024, 6, 1)


def _service(sensor, shades, counts, now, repo=None, pin_factory=None):
    sampler = LightSampler(ScriptedLightPin(counts), settle=0)
    return SamplerService(
        sensor=sensor,
        sampler=sampler,
        shades=shades,
        repo=repo,
        clock=now if isinstance(now, FixedClock) else FixedClock(now),
        pin_factory=pin_factory,
        tick=0.01,
    )


class TestSampleOnce:
    @pytest.mark.asyncio
    async def test_usable_reading_is_recorded_and_stored(self, make_shade, sensor, repo):
        shade, _, _ = make_shade(day=DAY)
        svc = _service(sensor, [shade], [12], datetime(2024, 6, 1, 12, tzinfo=UTC), repo=repo)

        reading = await svc.sample_once()

        assert reading.value == 12
        assert reading.ok
        assert sensor.values() == [12]
        assert svc.last_reading is reading
        stored = repo.insert_reading.await_args.args[0]
        assert isinstance(stored, LightReading)
        assert stored.sensor_id == "light_test"

    @pytest.mark.asyncio
    async def test_failed_reading_is_stored_but_not_recorded(self, make_shade, sensor, repo):
        shade, _, _ = make_shade(day=DAY)
        svc = _service(sensor, [shade], [0], datetime(2024, 6, 1, 12, tzinfo=UTC), repo=repo)

        reading = await svc.sample_once()

        assert not reading.ok
        assert reading.error.startswith("All 10 attempts failed")
        assert sensor.values() == []
        repo.insert_reading.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_partial_failure_is_recorded(self, make_shade, sensor):
        shade, _, _ = make_shade(day=DAY)
        svc = _service(sensor, [shade], [10, 0], datetime(2024, 6, 1, 12, tzinfo=UTC))

        reading = await svc.sample_once()

        assert reading.value == 10
        assert reading.error.startswith("5/10 attempts failed")
        assert sensor.values() == [10]

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_fatal(self, make_shade, sensor, repo):
        repo.insert_reading.side_effect = OSError("disk full")
        shade, _, _ = make_shade(day=DAY)
        svc = _service(sensor, [shade], [12], datetime(2024, 6, 1, 12, tzinfo=UTC), repo=repo)

        reading = await svc.sample_once()

        assert reading.ok
        assert sensor.values() == [12]

    @pytest.mark.asyncio
    async def test_pin_change_rebuilds_sampler(self, make_shade, sensor, light_config):
        shade, _, _ = make_shade(day=DAY)
        made = []

        def factory(number):
            pin = ScriptedLightPin([33], number=number)
            made.append(pin)
            return pin

        svc = _service(sensor, [shade], [12], datetime(2024, 6, 1, 12, tzinfo=UTC), pin_factory=factory)
        await sensor.replace_config(replace(light_config, pin=7))

        reading = await svc.sample_once()

        assert [p.number for p in made] == [7]
        assert reading.value == 33


class TestSamplerLoop:
    """Service loop against a fixed clock."""

    @pytest.mark.asyncio
    async def test_samples_while_window_open(self, make_shade, sensor):
        shade, _, _ = make_shade(day=DAY)
        svc = _service(sensor, [shade], [15], datetime(2024, 6, 1, 12, tzinfo=UTC))

        await svc.start()
        await wait_for_condition(lambda: sensor.values() == [15])
        await svc.stop()

        assert not svc.running
        # history is emptied once monitoring ends
        assert sensor.values() == []

    @pytest.mark.asyncio
    async def test_history_cleared_before_window(self, make_shade, sensor):
        shade, _, _ = make_shade(day=DAY)
        await sensor.record(5)
        svc = _service(sensor, [shade], [15], datetime(2024, 6, 1, 6, tzinfo=UTC))

        await svc.start()
        await wait_for_condition(lambda: sensor.values() == [])
        await svc.stop()

    @pytest.mark.asyncio
    async def test_window_advanced_after_stop(self, make_shade, sensor):
        # shades in manual mode still get tomorrow's window
        shade, _, _ = make_shade(mode=Mode.MANUAL, day=DAY)
        svc = _service(sensor, [shade], [15], datetime(2024, 6, 1, 21, tzinfo=UTC))

        await svc.start()
        await wait_for_condition(lambda: shade.window.start.date() == DAY + timedelta(days=1))
        await svc.stop()

        assert sensor.values() == []

    def test_window_covers_shades(self, make_shade, sensor):
        shade, _, _ = make_shade(day=DAY)
        svc = _service(sensor, [shade], [15], datetime(2024, 6, 1, 12, tzinfo=UTC))
        w = svc.window()
        assert w.start == datetime(2024, 6, 1, 8, 56, tzinfo=UTC)
        assert w.stop == datetime(2024, 6, 1, 20, 30, tzinfo=UTC)


class TestStopBuffer:
    """Monitoring continues past shade stop while the coordinator rolls over."""

    @pytest.mark.asyncio
    async def test_monitoring_continues_after_shade_stop(self, make_shade, sensor):
        shade, pin_up, _ = make_shade(position=Position.DOWN, day=DAY)
        now = datetime(2024, 6, 1, 20, 10, tzinfo=UTC)
        svc = _service(sensor, [shade], [15], now)
        opened = svc.window()
        coord = ScheduleCoordinator(shade, sensor, clock=FixedClock(now), tick=0.01)

        await coord.start()
        await wait_for_condition(lambda: shade.window.start.date() == DAY + timedelta(days=1))
        assert pin_up.toggles == 1

        assert svc.window() == opened
        assert svc.window().contains(now)
        assert svc.window().stop == datetime(2024, 6, 1, 20, 30, tzinfo=UTC)

        await svc.start()
        await wait_for_condition(lambda: sensor.values() == [15])
        assert svc.running
        await svc.stop()
        await coord.stop()

    @pytest.mark.asyncio
    async def test_window_moves_to_tomorrow_after_buffer(self, make_shade, sensor):
        shade, _, _ = make_shade(day=DAY)
        clock = FixedClock(datetime(2024, 6, 1, 20, 10, tzinfo=UTC))
        svc = _service(sensor, [shade], [15], clock)
        svc.window()
        shade.advance_window(datetime(2024, 6, 1, 20, 0, tzinfo=UTC), None)

        clock.now = datetime(2024, 6, 1, 20, 40, tzinfo=UTC)
        await svc.start()
        await wait_for_condition(lambda: svc.window().start.date() == DAY + timedelta(days=1))
        await svc.stop()

        assert svc.window().start == datetime(2024, 6, 2, 8, 56, tzinfo=UTC)
        assert svc.window().stop == datetime(2024, 6, 2, 20, 30, tzinfo=UTC)

    def test_refresh_window_follows_shades(self, make_shade, sensor):
        shade, _, _ = make_shade(day=DAY)
        svc = _service(sensor, [shade], [15], datetime(2024, 6, 1, 12, tzinfo=UTC))
        svc.window()
        shade.window = OperatingWindow(
            datetime(2024, 6, 1, 11, tzinfo=UTC), datetime(2024, 6, 1, 20, tzinfo=UTC)
        )

        assert svc.window().start == datetime(2024, 6, 1, 8, 56, tzinfo=UTC)
        assert svc.refresh_window().start == datetime(2024, 6, 1, 10, 56, tzinfo=UTC)
