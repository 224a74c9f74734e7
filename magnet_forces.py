"""
Magnetic Pendulum Force Model
Equations of motion for N independent damped pendula above point magnets
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from pendulum_state import STRIDE


@dataclass
class PhysicalParameters:
    """Mutable record shared by reference with the equations of motion."""

    restoring: float = 1.0
    friction: float = 0.3
    height: float = 0.2

    def copy(self) -> 'PhysicalParameters':
        return PhysicalParameters(self.restoring, self.friction, self.height)


@dataclass(frozen=True, eq=False)
class MagnetArray:
    """
    Ordered magnet sequence.

    positions : (K, 2) array of magnet coordinates in the pendulum plane.
    strengths : (K,) array of signed strengths, positive attracts.
    """

    positions: np.ndarray
    strengths: np.ndarray

    def __post_init__(self):
        positions = np.array(self.positions, dtype=float).reshape(-1, 2)
        strengths = np.array(self.strengths, dtype=float).reshape(-1)
        if positions.shape[0] != strengths.shape[0]:
            raise ValueError("Magnet positions and strengths must have the same length")
        positions.setflags(write=False)
        strengths.setflags(write=False)
        object.__setattr__(self, 'positions', positions)
        object.__setattr__(self, 'strengths', strengths)

    def __len__(self) -> int:
        return self.strengths.shape[0]

    def __eq__(self, other) -> bool:
        if not isinstance(other, MagnetArray):
            return NotImplemented
        return (
            np.array_equal(self.positions, other.positions)
            and np.array_equal(self.strengths, other.strengths)
        )

    def with_strengths(self, strengths) -> 'MagnetArray':
        return MagnetArray(self.positions, np.broadcast_to(strengths, (len(self),)))


def magnet_ring(count: int, radius: float, strength: float, polarity: int = 1) -> MagnetArray:
    """
    Place ``count`` magnets evenly on a circle.

    Parameters
    ----------
    count : int
        Number of magnets; magnet i (1..count) sits at
        radius*(sin(2*pi*i/count), cos(2*pi*i/count)).
    radius : float
        Radius of the ring.
    strength : float
        Strength magnitude shared by every magnet.
    polarity : int
        +1 for attractive, -1 for repulsive magnets.

    Returns
    -------
    magnets : MagnetArray
        (count, 2) positions with strengths ``polarity * strength``.
    """
    angles = 2 * np.pi * np.arange(1, count + 1) / count
    positions = radius * np.column_stack([np.sin(angles), np.cos(angles)])
    return MagnetArray(positions, np.full(count, polarity * strength))


def derivative(state: np.ndarray, params: PhysicalParameters, magnets: MagnetArray) -> np.ndarray:
    """
    Return the time derivative of ``state``.

    d(pos)/dt = vel
    d(vel)/dt = -k pos - gamma vel - sum_k s_k (pos - m_k) / (|pos - m_k|^2 + h^2)^(3/2)
    """
    u = state.reshape(-1, STRIDE)
    pos = u[:, :2]
    vel = u[:, 2:]

    du = np.empty_like(u)
    du[:, :2] = vel
    du[:, 2:] = -params.restoring * pos - params.friction * vel

    if len(magnets):
        # (N, K, 2) displacement of every body from every magnet
        delta = pos[:, None, :] - magnets.positions[None, :, :]
        d3 = np.sqrt(np.sum(delta**2, axis=-1) + params.height**2) ** 3
        weights = magnets.strengths[None, :] / d3
        du[:, 2:] -= np.einsum('nk,nkd->nd', weights, delta)

    return du.reshape(-1)


def build_equations_of_motion(
    params: PhysicalParameters,
    magnets: MagnetArray,
) -> Callable:
    """
    Equations of motion closure for ``solve_ivp``.

    ``params`` is read at call time, so edits to the record apply to the
    next solver evaluation.
    """

    def equations_of_motion(t: float, u: np.ndarray) -> np.ndarray:
        """Return time derivative of state [x, y, vx, vy] * N."""
        return derivative(u, params, magnets)

    return equations_of_motion
