"""
Magnetic Pendulum Errors
Exceptions raised by the simulation core
"""


class PendulumError(Exception):
    """Base class for all simulation errors."""


class InvalidStepError(PendulumError, ValueError):
    """Raised when the time increment is not a positive finite number."""


class StateSizeMismatchError(PendulumError, ValueError):
    """Raised when a state vector does not match the configured body count."""


class InvalidParameterError(PendulumError, ValueError):
    """Raised when a parameter setter receives an out-of-range value."""


class IntegrationError(PendulumError, RuntimeError):
    """Raised when the ODE solver fails to complete a step."""
