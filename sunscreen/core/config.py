from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Sunscreen Control"
    timezone: str = "Europe/Amsterdam"

    # Location for sunrise/sunset
    latitude: float = 52.2130
    longitude: float = 5.2794

    # GPIO: "sim" for development, "rpi" on the Raspberry Pi
    gpio_mode: str = Field(default="sim")

    # Light sensor
    light_pin: int = 23
    light_factor: int = 1
    sample_seconds: int = 60
    sample_attempts: int = 10
    light_good: int = 9
    light_neutral: int = 11
    light_bad: int = 20
    times_good: int = 15
    times_neutral: int = 20
    times_bad: int = 5
    allowed_outliers: int = 2

    # Light monitoring keeps running this long after the last shade stops
    sensor_stop_buffer_minutes: int = 30

    # Sunscreen
    shade_name: str = "Sunscreen"
    shade_mode: str = "manual"
    pin_up: int = 20
    pin_down: int = 21
    move_up_seconds: int = 20
    move_down_seconds: int = 17
    auto_start: bool = True
    auto_stop: bool = True
    sun_start_minutes: int = 0
    sun_stop_minutes: int = 0
    start_time: str = "10:00"   # HH:MM, used when auto_start is off
    stop_time: str = "18:00"    # HH:MM, used when auto_stop is off
    pre_stop_minutes: int = 70

    # Storage
    sqlite_path: str = Field(default="sunscreen.db")
    log_path: str = Field(default="sunscreen.log")
    log_level: str = "INFO"

    # Notifications: empty url = log only
    notify_url: str = ""
    notify_timeout_seconds: float = 5.0


settings = Settings()
