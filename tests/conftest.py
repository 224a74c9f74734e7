"""Pytest fixtures for the magnetic pendulum tests."""
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from settings import SimulationSettings
from simulator import SimulationController


class RecordingSink:
    """Render sink that records frames and reports closed after ``alive_checks`` polls."""

    def __init__(self, alive_checks=None):
        self.alive_checks = alive_checks
        self.checks = 0
        self.frames = []

    def is_alive(self):
        self.checks += 1
        return self.alive_checks is None or self.checks <= self.alive_checks

    def render(self, frame):
        self.frames.append(frame)


@pytest.fixture
def small_settings():
    """Three bodies, short tails, arc re-seeding."""
    return SimulationSettings(
        bodies=3,
        start=(1.0, 0.5),
        seed='line',
        reseed='arc',
        restoring=0.2,
        friction=0.3,
        height=0.2,
        magnet_count=5,
        magnet_strength=20.0,
        magnet_radius=1.0,
        tail_length=8,
    )


@pytest.fixture
def controller(small_settings):
    return SimulationController(small_settings)


@pytest.fixture
def recording_sink():
    return RecordingSink
