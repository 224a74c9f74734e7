"""Tests for the simulation controller."""

import threading

import numpy as np
import pytest

from errors import InvalidParameterError, StateSizeMismatchError
from settings import ARC_HALF_WIDTH, pendulum_swarm_settings, single_pendulum_settings
from simulator import SimulationController


class TestStep:
    """Test SimulationController.step."""

    def test_initial_frame(self, controller):
        frame = controller.snapshot()
        assert frame.positions.shape == (3, 2)
        assert frame.trajectories.shape == (3, 8, 2)
        assert frame.magnets.shape == (5, 2)
        assert frame.step == 0
        for i in range(3):
            np.testing.assert_array_equal(frame.trajectories[i], np.tile(frame.positions[i], (8, 1)))

    def test_step_appends_to_tails(self, controller):
        """The newest tail point equals the current position after each step."""
        for n in range(1, 4):
            frame = controller.step()
            assert frame.step == n
            assert frame.time == pytest.approx(n * 0.005)
            np.testing.assert_array_equal(frame.trajectories[:, -1], frame.positions)
        np.testing.assert_array_equal(frame.trajectories[:, -2], controller.trajectories()[:, -2])

    def test_frame_is_read_only(self, controller):
        frame = controller.step()
        with pytest.raises(ValueError):
            frame.positions[0, 0] = 10.0
        with pytest.raises(ValueError):
            frame.trajectories[0, 0, 0] = 10.0

    def test_single_pendulum_damped_step(self):
        """Single body moves towards the origin."""
        controller = SimulationController(single_pendulum_settings(magnet_count=1, magnet_radius=0.0))
        frame = controller.step()
        start = np.hypot(1.5, 1.5)
        assert np.hypot(*frame.positions[0]) < start
        assert frame.positions[0, 0] == pytest.approx(frame.positions[0, 1])

    def test_parameter_change_applies_to_next_step(self, controller):
        """Friction set between steps is used by the following step only."""
        reference = SimulationController(controller.settings)
        controller.step()
        reference.step()
        np.testing.assert_array_equal(controller.positions(), reference.positions())
        controller.set_friction(2.0)
        controller.step()
        reference.step()
        assert not np.array_equal(controller.positions(), reference.positions())


class TestReinitialize:
    """Test SimulationController.reinitialize."""

    def test_no_stale_tail_after_reinitialize(self, controller):
        """After T steps and a reinitialize every tail is T copies of the new position."""
        for _ in range(controller.tail_length):
            controller.step()
        new_positions = np.array([[0.1, 0.2], [0.3, 0.4], [-0.5, 0.6]])
        frame = controller.reinitialize(new_positions)
        assert frame.time == 0.0
        for i in range(3):
            np.testing.assert_array_equal(frame.trajectories[i], np.tile(new_positions[i], (8, 1)))
        np.testing.assert_array_equal(controller.velocities(), np.zeros((3, 2)))

    def test_reinitialize_with_magnet_changes(self):
        """Holds for any magnet configuration."""
        for count in (1, 4, 10):
            controller = SimulationController(pendulum_swarm_settings(bodies=4, tail_length=5,
                                                                      magnet_count=count))
            for _ in range(5):
                controller.step()
            frame = controller.reinitialize_at((0.7, -0.2))
            for i in range(4):
                np.testing.assert_array_equal(frame.trajectories[i],
                                              np.tile(frame.positions[i], (5, 1)))

    def test_swarm_reinitialize_on_arc(self):
        """200 bodies land on a small arc around the click point, at rest."""
        controller = SimulationController(pendulum_swarm_settings())
        for _ in range(3):
            controller.step()
        point = np.array([0.8, 1.1])
        frame = controller.reinitialize_at(point)
        r = np.hypot(*point)
        assert frame.positions.shape == (200, 2)
        np.testing.assert_allclose(np.hypot(frame.positions[:, 0], frame.positions[:, 1]), r)
        distances = np.linalg.norm(frame.positions - point, axis=1)
        assert np.all(distances <= r * ARC_HALF_WIDTH + 1e-12)
        np.testing.assert_array_equal(controller.velocities(), np.zeros((200, 2)))

    def test_size_mismatch_leaves_state(self, controller):
        for _ in range(2):
            controller.step()
        before = controller.snapshot()
        with pytest.raises(StateSizeMismatchError):
            controller.reinitialize(np.zeros((2, 2)))
        after = controller.snapshot()
        np.testing.assert_array_equal(before.positions, after.positions)
        np.testing.assert_array_equal(before.trajectories, after.trajectories)
        assert after.time == before.time

    @pytest.mark.parametrize("bad", [float('nan'), float('inf'), -float('inf')])
    def test_non_finite_positions_rejected(self, controller, bad):
        """NaN or infinite starting positions leave the state unchanged."""
        controller.step()
        before = controller.snapshot()
        positions = np.zeros((3, 2))
        positions[1, 0] = bad
        with pytest.raises(InvalidParameterError):
            controller.reinitialize(positions)
        after = controller.snapshot()
        np.testing.assert_array_equal(before.positions, after.positions)
        np.testing.assert_array_equal(before.trajectories, after.trajectories)
        assert after.time == before.time
        assert controller.steps == 1


class TestParameters:
    """Test live parameter setters."""

    def test_magnet_count_idempotent(self, controller):
        controller.set_magnet_count(7)
        first = controller.magnets
        controller.set_magnet_count(7)
        assert controller.magnets == first
        assert len(first) == 7

    def test_magnet_count_keeps_polarity(self, controller):
        controller.set_polarity(-1)
        controller.set_magnet_count(4)
        np.testing.assert_array_equal(controller.magnets.strengths, -20.0 * np.ones(4))

    def test_magnet_count_uses_current_radius(self, controller):
        controller.set_magnet_radius(0.5)
        controller.set_magnet_count(6)
        np.testing.assert_allclose(np.hypot(*controller.magnet_positions().T), 0.5)

    def test_polarity_round_trip(self, controller):
        original = controller.magnets.strengths.copy()
        controller.set_polarity(False)
        np.testing.assert_array_equal(controller.magnets.strengths, -original)
        controller.set_polarity(True)
        np.testing.assert_array_equal(controller.magnets.strengths, original)

    def test_toggle_polarity_twice(self, controller):
        original = controller.magnets.strengths.copy()
        assert controller.toggle_polarity() == -1
        assert controller.toggle_polarity() == 1
        np.testing.assert_array_equal(controller.magnets.strengths, original)

    def test_strength_respects_sign(self, controller):
        controller.set_polarity(-1)
        controller.set_magnet_strength(12)
        np.testing.assert_array_equal(controller.magnets.strengths, -12.0 * np.ones(5))
        assert controller.magnet_strength == 12.0

    def test_radius_moves_magnets(self, controller):
        controller.set_magnet_radius(0.3)
        np.testing.assert_allclose(np.hypot(*controller.magnet_positions().T), 0.3)

    def test_friction_and_restoring(self, controller):
        controller.set_friction(1.2)
        controller.set_restoring(0.5)
        params = controller.parameters()
        assert (params.friction, params.restoring) == (1.2, 0.5)

    def test_parameters_returns_copy(self, controller):
        params = controller.parameters()
        params.friction = 1.9
        assert controller.parameters().friction == 0.3

    def test_magnets_enabled_switch(self):
        controller = SimulationController(single_pendulum_settings())
        controller.set_magnets_enabled(True)
        np.testing.assert_array_equal(controller.magnets.strengths, 20.0 * np.ones(3))
        assert controller.parameters().restoring == 0.2
        controller.set_magnets_enabled(False)
        np.testing.assert_array_equal(controller.magnets.strengths, np.zeros(3))
        assert controller.parameters().restoring == 1.0

    @pytest.mark.parametrize("setter, value", [
        ('set_friction', -0.1),
        ('set_friction', float('nan')),
        ('set_magnet_strength', 41.0),
        ('set_magnet_radius', 1.5),
        ('set_magnet_count', 0),
        ('set_magnet_count', 11),
        ('set_magnet_count', 2.5),
        ('set_polarity', 0),
        ('set_restoring', -1.0),
        ('set_magnet_height', 0.0),
        ('set_magnet_height', -0.2),
    ])
    def test_invalid_values_leave_state_unchanged(self, controller, setter, value):
        before_params = controller.parameters()
        before_magnets = controller.magnets
        before_polarity = controller.polarity
        with pytest.raises(InvalidParameterError):
            getattr(controller, setter)(value)
        assert controller.parameters() == before_params
        assert controller.magnets == before_magnets
        assert controller.polarity == before_polarity


class TestConcurrency:
    """Test interleaving of steps with UI-style mutations."""

    def test_reinitialize_during_stepping(self, controller):
        """Tails are never a mix of old and new data when reinitialize races step."""
        errors = []
        stop = threading.Event()

        def stepper():
            try:
                while not stop.is_set():
                    controller.step()
                    stop.wait(0.0005)
            except Exception as err:  # pragma: no cover - reported below
                errors.append(err)

        worker = threading.Thread(target=stepper)
        worker.start()
        try:
            for k in range(20):
                point = np.full((3, 2), 0.05 * (k + 1))
                with controller.lock:
                    frame = controller.reinitialize(point)
                    np.testing.assert_array_equal(frame.trajectories, np.broadcast_to(point[:, None], (3, 8, 2)))
                controller.set_magnet_count(1 + k % 10)
                controller.set_polarity(k % 2 == 0)
        finally:
            stop.set()
            worker.join(timeout=10)
        assert not errors
        assert controller.steps > 0


class TestLongRuns:
    """Test the presets over many consecutive steps."""

    def test_single_preset_runs_long(self):
        """The single-body demo keeps stepping with the magnets off and on."""
        controller = SimulationController(single_pendulum_settings())
        for _ in range(1000):
            frame = controller.step()
        assert np.all(np.isfinite(frame.positions))
        assert controller.steps == 1000
        assert frame.time == pytest.approx(1000 * 0.005)

        controller.set_magnets_enabled(True)
        for _ in range(500):
            frame = controller.step()
        assert np.all(np.isfinite(frame.positions))
        assert np.all(np.isfinite(frame.trajectories))
        assert controller.steps == 1500

    def test_swarm_preset_runs_long(self):
        controller = SimulationController(pendulum_swarm_settings(bodies=5))
        for _ in range(300):
            frame = controller.step()
        assert np.all(np.isfinite(frame.positions))
        assert np.all(np.isfinite(controller.velocities()))
        assert controller.steps == 300

    def test_reinitialize_mid_run_keeps_stepping(self):
        controller = SimulationController(single_pendulum_settings())
        for _ in range(50):
            controller.step()
        controller.reinitialize_at((0.5, -0.8))
        for _ in range(200):
            frame = controller.step()
        assert np.all(np.isfinite(frame.positions))
        assert frame.time == pytest.approx(200 * 0.005)
