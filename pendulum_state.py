"""
Pendulum State Vector
Flat layout helpers and initial-condition policies

Body ``i`` occupies ``u[4i:4i+4] = (x, y, vx, vy)``.
"""

from __future__ import annotations

import numpy as np

from errors import InvalidParameterError, StateSizeMismatchError

STRIDE = 4


def body_count(state: np.ndarray) -> int:
    if state.ndim != 1 or state.size % STRIDE:
        raise StateSizeMismatchError(
            f"state vector must be 1-D with a multiple of {STRIDE} entries, got shape {state.shape}"
        )
    return state.size // STRIDE


def positions(state: np.ndarray) -> np.ndarray:
    """Return an (N, 2) view of body positions."""
    return state.reshape(-1, STRIDE)[:, :2]


def velocities(state: np.ndarray) -> np.ndarray:
    """Return an (N, 2) view of body velocities."""
    return state.reshape(-1, STRIDE)[:, 2:]


def pack_state(pos: np.ndarray, vel: np.ndarray | None = None) -> np.ndarray:
    """Build a fresh state vector from (N, 2) positions and optional velocities."""
    pos = np.asarray(pos, dtype=float)
    if pos.ndim != 2 or pos.shape[1] != 2:
        raise StateSizeMismatchError(f"positions must have shape (N, 2), got {pos.shape}")
    u = np.zeros((pos.shape[0], STRIDE))
    u[:, :2] = pos
    if vel is not None:
        vel = np.asarray(vel, dtype=float)
        if vel.shape != pos.shape:
            raise StateSizeMismatchError(
                f"velocities shape {vel.shape} does not match positions shape {pos.shape}"
            )
        u[:, 2:] = vel
    return u.reshape(-1)


def point_positions(point, n: int) -> np.ndarray:
    """All ``n`` bodies start on the same point."""
    x, y = point
    return np.tile([float(x), float(y)], (n, 1))


def line_positions(point, n: int, spacing: float) -> np.ndarray:
    """Bodies spread along +x from ``point``: ``x_i = x + (i + 1) * spacing``."""
    x, y = point
    pos = np.empty((n, 2))
    pos[:, 0] = float(x) + spacing * np.arange(1, n + 1)
    pos[:, 1] = float(y)
    return pos


def arc_positions(point, n: int, half_width: float) -> np.ndarray:
    """
    Bodies spread on a small arc of the circle through ``point`` centred on the origin.

    The arc spans ``phi +/- half_width`` where ``phi`` is the polar angle of
    ``point``; a single body sits at the start of the arc.
    """
    x, y = float(point[0]), float(point[1])
    r = np.hypot(x, y)
    phi = np.arctan2(y, x)
    phi_range = np.linspace(phi - half_width, phi + half_width, n)
    return np.column_stack([r * np.cos(phi_range), r * np.sin(phi_range)])


def seed_positions(policy: str, point, n: int, *, spacing: float, half_width: float) -> np.ndarray:
    """
    Expand ``point`` into ``n`` initial positions using the named policy.

    Parameters
    ----------
    policy : str
        'point' (all bodies on ``point``), 'line' (horizontal row starting at
        ``point``) or 'arc' (arc of the origin-centred circle through ``point``).
    point : (x, y)
        Seed position.
    n : int
        Number of bodies.
    spacing : float
        Distance between neighbours for 'line'.
    half_width : float
        Angular half-width in radians for 'arc'.

    Returns
    -------
    positions : array
        (n, 2) initial positions.
    """
    if policy == 'point':
        return point_positions(point, n)
    if policy == 'line':
        return line_positions(point, n, spacing)
    if policy == 'arc':
        return arc_positions(point, n, half_width)
    raise InvalidParameterError(f"Unknown seeding policy '{policy}'. Use 'point', 'line' or 'arc'.")
