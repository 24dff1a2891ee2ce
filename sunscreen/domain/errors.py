"""Exception definitions for the sunscreen controller."""


class SunscreenError(Exception):
    """Base exception for all sunscreen errors."""
    pass


class SamplingError(SunscreenError):
    """Raised when a single light measurement fails."""
    pass


class InsufficientHistoryError(SunscreenError):
    """Raised when the decision engine is asked to scan more light data than is available."""
    pass


class SunTimeError(SunscreenError):
    """Raised when sunrise/sunset cannot be determined for a day."""
    pass


class ConfigurationError(SunscreenError):
    """Raised when configuration is invalid."""
    pass
