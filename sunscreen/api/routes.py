from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException

from ..core.config import settings
from ..core.timeutil import now_utc, now_local
from ..domain.models import Position
from ..drivers.gpio_sim import SimulatedLightPin
from ..services.control import ControlService
from ..services.sampler import SamplerService
from ..storage.sqlite_repo import SQLiteRepository
from .schemas import LightSensorUpdateRequest, ShadeUpdateRequest, SimLightRequest

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependency getters ---
# main.py replaces these through app.dependency_overrides.
def get_control() -> ControlService:  # overridden in main
    raise RuntimeError("Control dependency not configured")

def get_sampler() -> SamplerService:  # overridden in main
    raise RuntimeError("Sampler dependency not configured")

def get_repo() -> SQLiteRepository:  # overridden in main
    raise RuntimeError("Repo dependency not configured")

def get_sim_light_pin() -> SimulatedLightPin:  # overridden in main
    raise RuntimeError("Simulated light pin dependency not configured")


def _shade_or_404(ctrl: ControlService, shade_id: str):
    try:
        return ctrl.shade(shade_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown sunscreen: {shade_id}")


@router.get("/live")
async def get_live(
    ctrl: ControlService = Depends(get_control),
    svc: SamplerService = Depends(get_sampler),
):
    r = svc.last_reading
    w = svc.window()
    return {
        "app": settings.app_name,
        "now_local": now_local().isoformat(),
        **ctrl.status(),
        "light_window": {
            "start": w.start.isoformat() if w else None,
            "stop": w.stop.isoformat() if w else None,
        },
        "last_reading": {
            "ts_utc": r.ts_utc.isoformat() if r else None,
            "value": r.value if r else None,
            "ok": r.ok if r else None,
            "error": r.error if r else None,
        },
    }


@router.post("/shades/{shade_id}/mode/auto")
async def mode_auto(shade_id: str, ctrl: ControlService = Depends(get_control)):
    shade = _shade_or_404(ctrl, shade_id)
    await ctrl.set_auto(shade_id)
    return {"ok": True, **shade.status()}


@router.post("/shades/{shade_id}/mode/manual/{direction}")
async def mode_manual(shade_id: str, direction: str, ctrl: ControlService = Depends(get_control)):
    shade = _shade_or_404(ctrl, shade_id)
    if direction not in (Position.UP.value, Position.DOWN.value):
        raise HTTPException(status_code=400, detail=f"Unknown mode: manual/{direction}")
    moved = await ctrl.set_manual(shade_id, Position(direction))
    return {"ok": True, "moved": moved, **shade.status()}


@router.get("/config/light-sensor")
async def get_light_sensor_config(ctrl: ControlService = Depends(get_control)):
    return {"config": ctrl.sensor.config.to_dict()}


@router.put("/config/light-sensor")
async def put_light_sensor_config(
    req: LightSensorUpdateRequest,
    ctrl: ControlService = Depends(get_control),
):
    messages = await ctrl.update_light_sensor(req.model_dump(exclude_none=True))
    return {"ok": not messages, "messages": messages, "config": ctrl.sensor.config.to_dict()}


@router.get("/config/shades/{shade_id}")
async def get_shade_config(shade_id: str, ctrl: ControlService = Depends(get_control)):
    shade = _shade_or_404(ctrl, shade_id)
    return {"config": shade.config.to_dict()}


@router.put("/config/shades/{shade_id}")
async def put_shade_config(
    shade_id: str,
    req: ShadeUpdateRequest,
    ctrl: ControlService = Depends(get_control),
):
    shade = _shade_or_404(ctrl, shade_id)
    messages = await ctrl.update_shade(shade_id, req.model_dump(exclude_none=True))
    return {"ok": not messages, "messages": messages, "config": shade.config.to_dict(), **shade.status()}


@router.get("/readings")
async def readings(
    minutes: int = 60,
    limit: int = 5000,
    repo: SQLiteRepository = Depends(get_repo),
):
    end = now_utc()
    start = end - timedelta(minutes=max(1, minutes))
    rows = await repo.query_readings(start.isoformat(), end.isoformat(), limit=min(limit, 20000))
    return {
        "start_utc": start.isoformat(),
        "end_utc": end.isoformat(),
        "rows": [
            {"ts_utc": r.ts_utc.isoformat(), "value": r.value, "ok": r.ok, "error": r.error}
            for r in rows
        ],
    }


@router.get("/moves")
async def moves(
    minutes: int = 7 * 24 * 60,
    limit: int = 2000,
    repo: SQLiteRepository = Depends(get_repo),
):
    end = now_utc()
    start = end - timedelta(minutes=max(1, minutes))
    rows = await repo.query_moves(start.isoformat(), end.isoformat(), limit=min(limit, 20000))
    return {
        "start_utc": start.isoformat(),
        "end_utc": end.isoformat(),
        "rows": [
            {
                "ts_utc": m.ts_utc.isoformat(),
                "shade_id": m.shade_id,
                "mode": m.mode.value,
                "old": m.old_position.value,
                "new": m.new_position.value,
                "light": m.light,
            }
            for m in rows
        ],
    }


# --- Simulation endpoints ---
@router.get("/sim/status")
async def sim_status(pin: SimulatedLightPin = Depends(get_sim_light_pin)):
    return pin.status()


@router.post("/sim/light")
async def sim_set_light(req: SimLightRequest, pin: SimulatedLightPin = Depends(get_sim_light_pin)):
    pin.set_count(req.count, req.noise)
    if req.enabled:
        pin.enable()
    else:
        pin.disable()
    return {"ok": True, **pin.status()}
