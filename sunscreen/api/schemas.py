from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional, Union

# Values are validated field by field in domain.validation so a bad field is
# reported back instead of rejecting the whole request.
Raw = Union[int, str]


class LightSensorUpdateRequest(BaseModel):
    pin: Optional[Raw] = None
    calibration_factor: Optional[Raw] = None
    sampling_interval_s: Optional[Raw] = None
    good: Optional[Raw] = None
    neutral: Optional[Raw] = None
    bad: Optional[Raw] = None
    times_good: Optional[Raw] = None
    times_neutral: Optional[Raw] = None
    times_bad: Optional[Raw] = None
    allowed_outliers: Optional[Raw] = None
    attempts: Optional[Raw] = None


class ShadeUpdateRequest(BaseModel):
    pin_up: Optional[Raw] = None
    pin_down: Optional[Raw] = None
    move_up_s: Optional[Raw] = None
    move_down_s: Optional[Raw] = None
    auto_start: Optional[Union[bool, str]] = None
    auto_stop: Optional[Union[bool, str]] = None
    sun_start_min: Optional[Raw] = None
    sun_stop_min: Optional[Raw] = None
    start_time: Optional[str] = None   # "HH:MM"
    stop_time: Optional[str] = None    # "HH:MM"
    pre_stop_min: Optional[Raw] = None


class SimLightRequest(BaseModel):
    count: int = Field(ge=0)
    noise: int = Field(default=0, ge=0)
    enabled: bool = True
