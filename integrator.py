"""
Magnetic Pendulum Integrator
Advance the state vector step by step with scipy's DOP853 solver
"""

from __future__ import annotations

import logging
import math

import numpy as np
from scipy.integrate import solve_ivp

from errors import IntegrationError, InvalidStepError, StateSizeMismatchError
from magnet_forces import MagnetArray, PhysicalParameters, build_equations_of_motion
from pendulum_state import body_count
from settings import DEFAULT_SOLVER_OPTIONS

logger = logging.getLogger(__name__)


class Integrator:
    """
    Stateful ODE integrator for a fixed number of bodies.

    Each ``advance`` call integrates over ``[t, t + dt]`` and lands exactly on
    ``t + dt``. The last accepted internal step size is carried into the next
    call so the adaptive solver does not restart its step selection every
    frame; ``reinitialize`` discards that history.
    """

    def __init__(self, state: np.ndarray, solver_options: dict | None = None):
        state = np.array(state, dtype=float)
        self.bodies = body_count(state)
        self.solver_options = dict(DEFAULT_SOLVER_OPTIONS if solver_options is None else solver_options)
        self._state = state
        self._t = 0.0
        self._last_step: float | None = None

    @property
    def t(self) -> float:
        return self._t

    @property
    def state(self) -> np.ndarray:
        """Copy of the current state vector."""
        return self._state.copy()

    def advance(self, dt: float, params: PhysicalParameters, magnets: MagnetArray) -> np.ndarray:
        """
        Integrate forward by exactly ``dt`` and return a copy of the new state.

        Parameters
        ----------
        dt : float
            Positive, finite time increment.
        params : PhysicalParameters
            Restoring coefficient, friction and magnet height in effect for this step.
        magnets : MagnetArray
            Magnet positions and signed strengths in effect for this step.

        Returns
        -------
        state : array
            State vector at ``t + dt`` (length 4N).
        """
        if not isinstance(dt, (int, float, np.floating, np.integer)) or not math.isfinite(dt) or dt <= 0:
            raise InvalidStepError(f"time increment must be positive and finite, got {dt!r}")

        t0 = self._t
        t1 = t0 + dt
        solver_kwargs = dict(self.solver_options)
        if self._last_step is not None:
            # t1 - t0 can be one ulp shorter than dt; the solver rejects a longer first step.
            solver_kwargs['first_step'] = min(self._last_step, t1 - t0)

        sol = solve_ivp(
            build_equations_of_motion(params, magnets),
            (t0, t1),
            self._state,
            **solver_kwargs,
        )
        if not sol.success:
            raise IntegrationError(f"Integration failed at t={t0:.4f}: {sol.message}")

        if sol.t.size > 1:
            self._last_step = float(sol.t[-1] - sol.t[-2])
        self._state = sol.y[:, -1].copy()
        self._t = t1
        return self._state.copy()

    def reinitialize(self, new_state: np.ndarray) -> None:
        """Restart from ``new_state`` at t=0, discarding step-size history."""
        new_state = np.array(new_state, dtype=float)
        if new_state.ndim != 1 or new_state.size != 4 * self.bodies:
            raise StateSizeMismatchError(
                f"expected a state vector of length {4 * self.bodies}, got shape {new_state.shape}"
            )
        self._state = new_state
        self._t = 0.0
        self._last_step = None
        logger.debug("Integrator reinitialized for %d bodies", self.bodies)
