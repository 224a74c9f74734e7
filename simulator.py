"""
Magnetic Pendulum Simulation
Thread-safe controller that owns the integrator, the parameters and the tails
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

import numpy as np

from errors import InvalidParameterError, StateSizeMismatchError
from integrator import Integrator
from magnet_forces import MagnetArray, PhysicalParameters, magnet_ring
from pendulum_state import (
    pack_state,
    positions as state_positions,
    seed_positions,
    velocities as state_velocities,
)
from settings import SimulationSettings, check_height, check_polarity
from trajectory import TrajectoryHistory

logger = logging.getLogger(__name__)

# Single-body demo switch: magnet strength and restoring coefficient when on / off.
MAGNETS_ON = (20.0, 0.2)
MAGNETS_OFF = (0.0, 1.0)


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=float)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class Frame:
    """
    Result of one step handed to the rendering sink.

    positions    : (N, 2) current body positions
    trajectories : (N, T, 2) tails, oldest point first
    magnets      : (K, 2) magnet positions in effect
    """

    positions: np.ndarray
    trajectories: np.ndarray
    magnets: np.ndarray
    time: float
    step: int


class SimulationController:
    """
    Owns every piece of mutable simulation state.

    ``step``, ``reinitialize`` and the parameter setters all hold the same
    re-entrant lock, so the animation thread and UI callbacks never touch the
    integrator, parameters, magnets or tails at the same time. Setters
    validate first and only then mutate, leaving state unchanged on error.
    """

    def __init__(self, settings: SimulationSettings | None = None):
        settings = (settings or SimulationSettings()).validate()
        self.settings = settings
        self.bounds = settings.bounds
        self.dt = settings.dt
        self.lock = threading.RLock()

        self._params = PhysicalParameters(
            restoring=float(settings.restoring),
            friction=float(settings.friction),
            height=float(settings.height),
        )
        self._magnet_count = int(settings.magnet_count)
        self._magnet_radius = float(settings.magnet_radius)
        self._magnet_strength = float(settings.magnet_strength)
        self._polarity = check_polarity(settings.polarity)
        self._magnets = self._build_magnets()

        initial = self._seed(settings.seed, settings.start)
        self._integrator = Integrator(pack_state(initial), settings.solver_options)
        self._positions = initial
        self._histories = [TrajectoryHistory(settings.tail_length, p) for p in initial]
        self._steps = 0

    # ------------------------------------------------------------------ helpers
    def _build_magnets(self, count=None, radius=None, strength=None, polarity=None) -> MagnetArray:
        return magnet_ring(
            self._magnet_count if count is None else count,
            self._magnet_radius if radius is None else radius,
            self._magnet_strength if strength is None else strength,
            self._polarity if polarity is None else polarity,
        )

    def _seed(self, policy: str, point) -> np.ndarray:
        return seed_positions(
            policy,
            point,
            self.settings.bodies,
            spacing=self.settings.line_spacing,
            half_width=self.settings.arc_half_width,
        )

    def _frame(self) -> Frame:
        return Frame(
            positions=_frozen(self._positions),
            trajectories=_frozen(np.stack([h.snapshot() for h in self._histories])),
            magnets=_frozen(self._magnets.positions),
            time=self._integrator.t,
            step=self._steps,
        )

    # --------------------------------------------------------------- accessors
    @property
    def body_count(self) -> int:
        return self.settings.bodies

    @property
    def tail_length(self) -> int:
        return self.settings.tail_length

    @property
    def steps(self) -> int:
        with self.lock:
            return self._steps

    @property
    def time(self) -> float:
        with self.lock:
            return self._integrator.t

    @property
    def polarity(self) -> int:
        with self.lock:
            return self._polarity

    @property
    def magnet_strength(self) -> float:
        """Configured strength magnitude (sign comes from ``polarity``)."""
        with self.lock:
            return self._magnet_strength

    @property
    def magnet_radius(self) -> float:
        with self.lock:
            return self._magnet_radius

    @property
    def magnets(self) -> MagnetArray:
        with self.lock:
            return self._magnets

    def parameters(self) -> PhysicalParameters:
        with self.lock:
            return self._params.copy()

    def positions(self) -> np.ndarray:
        with self.lock:
            return _frozen(self._positions)

    def velocities(self) -> np.ndarray:
        with self.lock:
            return _frozen(state_velocities(self._integrator.state))

    def trajectories(self) -> np.ndarray:
        with self.lock:
            return _frozen(np.stack([h.snapshot() for h in self._histories]))

    def magnet_positions(self) -> np.ndarray:
        with self.lock:
            return _frozen(self._magnets.positions)

    def snapshot(self) -> Frame:
        """Current frame without advancing the simulation."""
        with self.lock:
            return self._frame()

    # -------------------------------------------------------------- simulation
    def step(self) -> Frame:
        """Advance by one fixed time step and record the new positions."""
        with self.lock:
            state = self._integrator.advance(self.dt, self._params, self._magnets)
            self._positions = state_positions(state).copy()
            for history, point in zip(self._histories, self._positions):
                history.push(point)
            self._steps += 1
            return self._frame()

    def reinitialize(self, new_positions) -> Frame:
        """
        Restart every body at rest from ``new_positions``.

        Parameters
        ----------
        new_positions : array
            (N, 2) finite starting positions, one row per body.

        Returns
        -------
        frame : Frame
            Frame at t=0 whose tails hold T copies of each new position.
        """
        new_positions = np.array(new_positions, dtype=float)
        if new_positions.shape != (self.body_count, 2):
            raise StateSizeMismatchError(
                f"expected positions of shape ({self.body_count}, 2), got {new_positions.shape}"
            )
        if not np.all(np.isfinite(new_positions)):
            raise InvalidParameterError("initial positions must be finite")
        with self.lock:
            self._integrator.reinitialize(pack_state(new_positions))
            self._positions = new_positions
            for history, point in zip(self._histories, new_positions):
                history.reset_to(point)
            logger.info("Reinitialized %d bodies", self.body_count)
            return self._frame()

    def reinitialize_at(self, point) -> Frame:
        """Seed all bodies near ``point`` with the configured policy and restart."""
        return self.reinitialize(self._seed(self.settings.reseed, point))

    # ---------------------------------------------------------- live parameters
    def set_friction(self, gamma: float) -> None:
        gamma = self.bounds.check('friction', gamma)
        with self.lock:
            self._params.friction = gamma
        logger.debug("friction -> %.3f", gamma)

    def set_restoring(self, k: float) -> None:
        k = self.bounds.check('restoring', k)
        with self.lock:
            self._params.restoring = k
        logger.debug("restoring coefficient -> %.3f", k)

    def set_magnet_height(self, h: float) -> None:
        h = check_height(h)
        with self.lock:
            self._params.height = h
        logger.debug("magnet height -> %.3f", h)

    def set_magnet_strength(self, value: float) -> None:
        """Set the strength magnitude of every magnet, keeping the current polarity."""
        value = self.bounds.check('magnet_strength', value)
        with self.lock:
            magnets = self._magnets.with_strengths(self._polarity * value)
            self._magnet_strength = value
            self._magnets = magnets
        logger.debug("magnet strength -> %.2f", value)

    def set_magnet_count(self, n: int) -> None:
        """Rebuild the magnet ring with ``n`` magnets at the current radius."""
        n = self.bounds.check_count(n)
        with self.lock:
            magnets = self._build_magnets(count=n)
            self._magnet_count = n
            self._magnets = magnets
        logger.debug("magnet count -> %d", n)

    def set_magnet_radius(self, r: float) -> None:
        r = self.bounds.check('magnet_radius', r)
        with self.lock:
            magnets = self._build_magnets(radius=r)
            self._magnet_radius = r
            self._magnets = magnets
        logger.debug("magnet radius -> %.2f", r)

    def set_polarity(self, sign) -> None:
        """+1 (or True) makes magnets attractive, -1 (or False) repulsive."""
        sign = check_polarity(sign)
        with self.lock:
            if sign != self._polarity:
                self._magnets = self._magnets.with_strengths(-self._magnets.strengths)
                self._polarity = sign
        logger.debug("polarity -> %+d", sign)

    def toggle_polarity(self) -> int:
        with self.lock:
            self.set_polarity(-self._polarity)
            return self._polarity

    def set_magnets_enabled(self, enabled: bool) -> None:
        """Switch the magnets on or off, retuning the restoring force as the single-body demo does."""
        strength, restoring = MAGNETS_ON if enabled else MAGNETS_OFF
        strength = self.bounds.check('magnet_strength', strength)
        restoring = self.bounds.check('restoring', restoring)
        with self.lock:
            self.set_magnet_strength(strength)
            self.set_restoring(restoring)
        logger.info("Magnets %s", "on" if enabled else "off")
