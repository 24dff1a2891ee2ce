from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Callable, Optional

from fastapi import FastAPI

from .core.config import settings
from .core.log import configure_logging
from .core.timeutil import local_tz, now_local

from .api.routes import router as api_router
import sunscreen.api.routes as routes_module

from .domain.actuator import ShadeActuator
from .domain.errors import ConfigurationError
from .domain.interfaces import Notifier, Pin
from .domain.light_sensor import LightSensor
from .domain.models import LightSensorConfig, Mode, Position, ShadeConfig
from .domain.schedule import shade_window
from .domain.shade import Shade
from .domain.sun import AstralSunCalculator
from .domain.validation import update_light_sensor, update_shade
from .drivers.gpio_sim import SimulatedLightPin, SimulatedPin
from .sensors.light_sampler import LightSampler
from .services.control import ControlService
from .services.notify import LogNotifier, WebhookNotifier
from .services.sampler import SamplerService
from .storage.sqlite_repo import SQLiteRepository


logger = logging.getLogger(__name__)

SHADE_ID = "1"

pin_factory: Callable[[int], Pin] = SimulatedPin
close_gpio: Optional[Callable[[], None]] = None
sim_light_pin: SimulatedLightPin | None = None


def open_gpio() -> Pin:
    """Select the GPIO backend and return the light sensor pin."""
    global pin_factory, close_gpio, sim_light_pin

    if settings.gpio_mode.lower() == "rpi":
        from .drivers import gpio_rpi

        gpio_rpi.open_gpio()
        pin_factory = gpio_rpi.RPiPin
        close_gpio = gpio_rpi.close_gpio
        return gpio_rpi.RPiPin(settings.light_pin)

    # default to sim
    pin_factory = SimulatedPin
    sim_light_pin = SimulatedLightPin(settings.light_pin)
    return sim_light_pin


def light_config_from_settings() -> LightSensorConfig:
    cfg, messages = update_light_sensor(LightSensorConfig(), {
        "pin": settings.light_pin,
        "calibration_factor": settings.light_factor,
        "sampling_interval_s": settings.sample_seconds,
        "good": settings.light_good,
        "neutral": settings.light_neutral,
        "bad": settings.light_bad,
        "times_good": settings.times_good,
        "times_neutral": settings.times_neutral,
        "times_bad": settings.times_bad,
        "allowed_outliers": settings.allowed_outliers,
        "attempts": settings.sample_attempts,
    })
    if messages:
        raise ConfigurationError("Invalid light sensor settings: " + "; ".join(messages))
    return cfg


def shade_config_from_settings() -> ShadeConfig:
    cfg, messages = update_shade(ShadeConfig(), {
        "pin_up": settings.pin_up,
        "pin_down": settings.pin_down,
        "move_up_s": settings.move_up_seconds,
        "move_down_s": settings.move_down_seconds,
        "auto_start": settings.auto_start,
        "auto_stop": settings.auto_stop,
        "sun_start_min": settings.sun_start_minutes,
        "sun_stop_min": settings.sun_stop_minutes,
        "start_time": settings.start_time,
        "stop_time": settings.stop_time,
        "pre_stop_min": settings.pre_stop_minutes,
    })
    if messages:
        raise ConfigurationError("Invalid sunscreen settings: " + "; ".join(messages))
    return cfg


def build_notifier() -> Notifier:
    if settings.notify_url:
        return WebhookNotifier(settings.notify_url, timeout=settings.notify_timeout_seconds)
    return LogNotifier()


async def _load(repo: SQLiteRepository, key: str, parse, default):
    stored = await repo.load_state(key)
    if stored is None:
        return default
    try:
        return parse(stored)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Stored '%s' is corrupt, using settings instead: %s", key, e)
        return default


# --- Singletons ---
repo = SQLiteRepository(settings.sqlite_path)
sun = AstralSunCalculator(settings.latitude, settings.longitude, local_tz())
control: ControlService | None = None
sampler: SamplerService | None = None


async def build_runtime(light_pin: Pin) -> tuple[ControlService, SamplerService]:
    light_cfg = await _load(repo, "light_sensor", LightSensorConfig.from_dict, light_config_from_settings())
    shade_cfg = await _load(repo, f"shade.{SHADE_ID}", ShadeConfig.from_dict, shade_config_from_settings())
    mode, position = await _load(
        repo,
        f"shade_state.{SHADE_ID}",
        lambda d: (Mode(d["mode"]), Position(d["position"])),
        (Mode(settings.shade_mode), Position.UNKNOWN),
    )

    sensor = LightSensor(light_cfg, sensor_id=f"light_pin{light_cfg.pin}")
    shade: Shade

    actuator = ShadeActuator(
        SHADE_ID,
        pin_factory(shade_cfg.pin_up),
        pin_factory(shade_cfg.pin_down),
        shade_cfg.move_duration_up,
        shade_cfg.move_duration_down,
        position=position,
        notifier=build_notifier(),
        repo=repo,
        mode_of=lambda: shade.mode,
    )
    actuator.init_pins()

    now = now_local()
    shade = Shade(
        SHADE_ID,
        settings.shade_name,
        shade_cfg,
        actuator,
        window=shade_window(shade_cfg, now.date(), now.tzinfo, sun),
        mode=mode,
    )
    logger.info(
        "Sunscreen %s: mode=%s position=%s start=%s stop=%s",
        shade.id, shade.mode.value, shade.position.value,
        shade.window.start.strftime("%H:%M"), shade.window.stop.strftime("%H:%M"),
    )

    svc = SamplerService(
        sensor=sensor,
        sampler=LightSampler(light_pin, light_cfg.calibration_factor),
        shades=[shade],
        repo=repo,
        sun=sun,
        stop_buffer=timedelta(minutes=settings.sensor_stop_buffer_minutes),
        pin_factory=pin_factory,
    )
    ctrl = ControlService([shade], sensor, repo=repo, sun=sun, sampler=svc, pin_factory=pin_factory)
    return ctrl, svc


def get_control() -> ControlService:
    assert control is not None
    return control


def get_sampler() -> SamplerService:
    assert sampler is not None
    return sampler


def get_repo() -> SQLiteRepository:
    return repo


def get_sim_light_pin() -> SimulatedLightPin:
    if sim_light_pin is None:
        raise RuntimeError("Simulated light pin not available (gpio_mode is not 'sim').")
    return sim_light_pin


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("--------Start of program--------")
    logger.info("Starting %s (gpio=%s)", settings.app_name, settings.gpio_mode)

    await repo.init()
    light_pin = open_gpio()

    global control, sampler
    control, sampler = await build_runtime(light_pin)
    await sampler.start()
    await control.start()

    try:
        yield
    finally:
        if sampler:
            await sampler.stop()
        if control:
            await control.shutdown()
        if close_gpio is not None:
            close_gpio()

        logger.info("Shutdown complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Make the dependency functions in routes resolve to the real ones
app.dependency_overrides[routes_module.get_control] = get_control
app.dependency_overrides[routes_module.get_sampler] = get_sampler
app.dependency_overrides[routes_module.get_repo] = get_repo
app.dependency_overrides[routes_module.get_sim_light_pin] = get_sim_light_pin

app.include_router(api_router, prefix="/api")
