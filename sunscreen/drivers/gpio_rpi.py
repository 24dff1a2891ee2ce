from __future__ import annotations
import logging

import RPi.GPIO as GPIO

from ..domain.models import Level

logger = logging.getLogger(__name__)


def open_gpio() -> None:
    GPIO.setwarnings(False)
    GPIO.setmode(GPIO.BCM)
    logger.info("GPIO opened (BCM numbering)")


def close_gpio() -> None:
    GPIO.cleanup()
    logger.info("GPIO released")


class RPiPin:
    """BCM-numbered pin on the Raspberry Pi header."""

    def __init__(self, number: int) -> None:
        self.number = number

    def set_output(self) -> None:
        GPIO.setup(self.number, GPIO.OUT)

    def set_input(self) -> None:
        GPIO.setup(self.number, GPIO.IN)

    def set_low(self) -> None:
        GPIO.output(self.number, GPIO.LOW)

    def set_high(self) -> None:
        GPIO.output(self.number, GPIO.HIGH)

    def read(self) -> Level:
        return Level.HIGH if GPIO.input(self.number) == GPIO.HIGH else Level.LOW
