"""
Magnetic Pendulum Animation
Start/stop-able animation loop and the matplotlib rendering sink
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Protocol

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation
from matplotlib.collections import LineCollection

from errors import InvalidParameterError
from settings import IDLE_INTERVAL
from simulator import Frame, SimulationController

logger = logging.getLogger(__name__)


class RenderSink(Protocol):
    def is_alive(self) -> bool: ...

    def render(self, frame: Frame) -> None: ...


class LoopState(enum.Enum):
    STOPPED = 'stopped'
    RUNNING = 'running'


class AnimationLoop:
    """
    Repeatedly step the controller and push frames to a sink.

    Each iteration polls ``sink.is_alive()``, steps, renders and then waits
    ``idle_interval`` seconds on an event that ``stop()`` sets, so a stop
    request is observed within one idle interval plus one step.
    """

    def __init__(self, controller: SimulationController, sink: RenderSink,
                 idle_interval: float = IDLE_INTERVAL):
        if not idle_interval > 0:
            raise InvalidParameterError(f"idle_interval must be positive, got {idle_interval}")
        self.controller = controller
        self.sink = sink
        self.idle_interval = idle_interval
        self._state = LoopState.STOPPED
        self._state_lock = threading.Lock()
        self._wake = threading.Event()
        self._thread: threading.Thread | None = None
        self._error: BaseException | None = None

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is LoopState.RUNNING

    def start(self, background: bool = True) -> None:
        """Switch to RUNNING; with ``background=False`` run on the calling thread until stopped."""
        with self._state_lock:
            if self._state is LoopState.RUNNING:
                return
            if self._thread is not None and self._thread.is_alive():
                # A previous worker is still finishing its last step.
                self._thread.join()
            self._state = LoopState.RUNNING
            self._wake.clear()
            self._error = None
            logger.info("Animation started")
            if background:
                self._thread = threading.Thread(target=self._run, name='animation-loop', daemon=True)
                self._thread.start()
        if not background:
            self._run()
            self.join()

    def stop(self) -> None:
        with self._state_lock:
            if self._state is LoopState.STOPPED:
                return
            self._state = LoopState.STOPPED
            self._wake.set()
        logger.info("Animation stopped")

    def toggle(self) -> LoopState:
        """Start when stopped, stop when running; return the new state."""
        if self.running:
            self.stop()
        else:
            self.start()
        return self._state

    def join(self, timeout: float | None = None) -> None:
        """Wait for the worker thread, re-raising an error that ended the loop."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        if self._error is not None:
            error, self._error = self._error, None
            raise error

    def _run(self) -> None:
        try:
            while self._state is LoopState.RUNNING:
                if not self.sink.is_alive():
                    logger.info("Render sink closed, ending animation")
                    break
                frame = self.controller.step()
                self.sink.render(frame)
                self._wake.wait(self.idle_interval)
        except Exception as err:
            logger.exception("Animation loop failed")
            self._error = err
        finally:
            self._state = LoopState.STOPPED


def fade_alpha(tail_length: int) -> np.ndarray:
    """Opacity of each tail point, oldest first: (j / T)^2."""
    return (np.arange(1, tail_length + 1) / tail_length) ** 2


def tail_colors(body_colors: np.ndarray, tail_length: int) -> np.ndarray:
    """RGBA colours for the (N * (T-1)) tail segments drawn by ``FigureSink``."""
    alpha = fade_alpha(tail_length)[1:]
    colors = np.repeat(np.asarray(body_colors, dtype=float)[:, None, :4], tail_length - 1, axis=1)
    colors[:, :, 3] = alpha[None, :]
    return colors.reshape(-1, 4)


def tail_segments(trajectories: np.ndarray) -> np.ndarray:
    """(N, T, 2) tails -> (N * (T-1), 2, 2) line segments."""
    segments = np.stack([trajectories[:, :-1], trajectories[:, 1:]], axis=2)
    return segments.reshape(-1, 2, 2)


class FigureSink:
    """
    Rendering sink drawing bodies, magnets and fading tails on a matplotlib axis.

    ``render`` may be called from the animation thread; it only stores the
    frame. A ``FuncAnimation`` timer on the GUI thread draws the latest frame.
    """

    def __init__(self, fig, ax, frame: Frame, body_colors, magnet_size: float = 400,
                 ball_size: float = 60, interval: float = 1000 / 60):
        self.fig = fig
        self.ax = ax
        self._latest = frame
        self._dirty = True
        self._frame_lock = threading.Lock()
        self._closed = False

        bodies, tail_length, _ = frame.trajectories.shape
        self.tail_length = tail_length
        self.tails = LineCollection([], linewidths=2, zorder=1)
        ax.add_collection(self.tails)
        self.magnet_markers = ax.scatter(
            [], [], s=magnet_size, facecolors='none', edgecolors='black', linewidths=3, zorder=2,
        )
        self.balls = ax.scatter([], [], s=ball_size, zorder=3)
        self.set_colors(body_colors)

        fig.canvas.mpl_connect('close_event', self._on_close)
        self.animation = FuncAnimation(
            fig, self._draw, interval=interval, blit=False, cache_frame_data=False,
        )

    def set_colors(self, body_colors) -> None:
        body_colors = np.asarray(body_colors, dtype=float)
        self.balls.set_facecolor(body_colors)
        self.balls.set_edgecolor(body_colors)
        if self.tail_length > 1:
            self.tails.set_color(tail_colors(body_colors, self.tail_length))
        self._dirty = True

    def set_magnet_color(self, color) -> None:
        self.magnet_markers.set_edgecolor(color)

    def set_magnets_visible(self, visible: bool) -> None:
        self.magnet_markers.set_visible(visible)

    def is_alive(self) -> bool:
        return not self._closed and plt.fignum_exists(self.fig.number)

    def render(self, frame: Frame) -> None:
        with self._frame_lock:
            self._latest = frame
            self._dirty = True

    def _on_close(self, event) -> None:
        self._closed = True

    def _draw(self, _):
        with self._frame_lock:
            frame, dirty = self._latest, self._dirty
            self._dirty = False
        if dirty:
            self.balls.set_offsets(frame.positions)
            self.magnet_markers.set_offsets(frame.magnets)
            if self.tail_length > 1:
                self.tails.set_segments(tail_segments(frame.trajectories))
        return [self.tails, self.magnet_markers, self.balls]
