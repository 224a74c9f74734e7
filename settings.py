"""
Magnetic Pendulum Settings
Default constants, parameter bounds and the two presets used by the demos
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Tuple

from errors import InvalidParameterError

# Fixed time increment of one animation step (simulation time units).
TIME_STEP: float = 0.005

# Minimum pause between two animation steps (seconds).
IDLE_INTERVAL: float = 0.001

# Half-width of the arc used to seed a swarm around a clicked point.
ARC_HALF_WIDTH: float = 0.005 * 2 * math.pi

# Spacing of the initial line of swarm pendula.
LINE_SPACING: float = 0.0002

SEED_POLICIES = ('point', 'line', 'arc')

DEFAULT_SOLVER_OPTIONS = dict(
    method='DOP853',  # High-order Runge-Kutta method
    rtol=1e-8,
    atol=1e-10,
)


@dataclass(frozen=True)
class ParameterBounds:
    """Closed ranges accepted by the live parameter setters."""

    friction: Tuple[float, float] = (0.0, 2.0)
    magnet_strength: Tuple[float, float] = (0.0, 40.0)
    magnet_radius: Tuple[float, float] = (0.0, 1.0)
    magnet_count: Tuple[int, int] = (1, 10)
    restoring: Tuple[float, float] = (0.0, 10.0)

    def check(self, name: str, value: float) -> float:
        """Return ``value`` as float if it lies within the range called ``name``."""
        low, high = getattr(self, name)
        try:
            value = float(value)
        except (TypeError, ValueError) as err:
            raise InvalidParameterError(f"{name} must be a number, got {value!r}") from err
        if not math.isfinite(value) or not low <= value <= high:
            raise InvalidParameterError(f"{name} must lie in [{low}, {high}], got {value}")
        return value

    def check_count(self, value: int) -> int:
        low, high = self.magnet_count
        try:
            integral = not isinstance(value, bool) and int(value) == value
        except (TypeError, ValueError, OverflowError):
            integral = False
        if not integral:
            raise InvalidParameterError(f"magnet_count must be an integer, got {value!r}")
        value = int(value)
        if not low <= value <= high:
            raise InvalidParameterError(f"magnet_count must lie in [{low}, {high}], got {value}")
        return value


def check_height(value: float) -> float:
    """Magnet plane height must stay strictly positive (it bounds the force)."""
    try:
        value = float(value)
    except (TypeError, ValueError) as err:
        raise InvalidParameterError(f"height must be a number, got {value!r}") from err
    if not math.isfinite(value) or value <= 0:
        raise InvalidParameterError(f"height must be positive, got {value}")
    return value


def check_polarity(sign) -> int:
    """Accept +1/-1 or a bool (True means attractive)."""
    if isinstance(sign, bool):
        return 1 if sign else -1
    if sign in (1, -1):
        return int(sign)
    raise InvalidParameterError(f"polarity must be +1, -1 or a bool, got {sign!r}")


@dataclass
class SimulationSettings:
    """Everything needed to build a SimulationController."""

    bodies: int = 1
    start: Tuple[float, float] = (1.5, 1.5)
    seed: str = 'point'
    reseed: str = 'point'
    restoring: float = 1.0
    friction: float = 0.3
    height: float = 0.2
    magnet_count: int = 3
    magnet_strength: float = 0.0
    magnet_radius: float = 1.0
    polarity: int = 1
    tail_length: int = 1000
    dt: float = TIME_STEP
    idle_interval: float = IDLE_INTERVAL
    line_spacing: float = LINE_SPACING
    arc_half_width: float = ARC_HALF_WIDTH
    bounds: ParameterBounds = field(default_factory=ParameterBounds)
    solver_options: dict = field(default_factory=lambda: dict(DEFAULT_SOLVER_OPTIONS))

    def validate(self) -> 'SimulationSettings':
        """Raise InvalidParameterError on the first inconsistent field."""
        if isinstance(self.bodies, bool) or int(self.bodies) != self.bodies or self.bodies < 1:
            raise InvalidParameterError(f"bodies must be a positive integer, got {self.bodies!r}")
        if isinstance(self.tail_length, bool) or int(self.tail_length) != self.tail_length \
                or self.tail_length < 1:
            raise InvalidParameterError(
                f"tail_length must be a positive integer, got {self.tail_length!r}"
            )
        for name in ('seed', 'reseed'):
            policy = getattr(self, name)
            if policy not in SEED_POLICIES:
                raise InvalidParameterError(f"{name} must be one of {SEED_POLICIES}, got {policy!r}")
        if len(self.start) != 2:
            raise InvalidParameterError(f"start must be an (x, y) pair, got {self.start!r}")
        if not (math.isfinite(self.dt) and self.dt > 0):
            raise InvalidParameterError(f"dt must be positive, got {self.dt}")
        if not (math.isfinite(self.idle_interval) and self.idle_interval > 0):
            raise InvalidParameterError(f"idle_interval must be positive, got {self.idle_interval}")
        self.bounds.check('friction', self.friction)
        self.bounds.check('magnet_strength', self.magnet_strength)
        self.bounds.check('magnet_radius', self.magnet_radius)
        self.bounds.check('restoring', self.restoring)
        self.bounds.check_count(self.magnet_count)
        check_height(self.height)
        check_polarity(self.polarity)
        return self

    def with_changes(self, **changes) -> 'SimulationSettings':
        return replace(self, **changes)


def single_pendulum_settings(**overrides) -> SimulationSettings:
    """One pendulum above three magnets that start switched off."""
    settings = SimulationSettings(
        bodies=1,
        start=(1.5, 1.5),
        seed='point',
        restoring=1.0,
        friction=0.3,
        height=0.2,
        magnet_count=3,
        magnet_strength=0.0,
        magnet_radius=1.0,
        tail_length=1000,
    )
    return settings.with_changes(**overrides).validate()


def pendulum_swarm_settings(**overrides) -> SimulationSettings:
    """200 pendula with nearby initial conditions above five magnets."""
    settings = SimulationSettings(
        bodies=200,
        start=(1.5, 1.5),
        seed='line',
        reseed='arc',
        restoring=0.2,
        friction=0.3,
        height=0.2,
        magnet_count=5,
        magnet_strength=20.0,
        magnet_radius=1.0,
        tail_length=200,
    )
    return settings.with_changes(**overrides).validate()
