"""
Magnetic Pendulum Interactive Figure
matplotlib widgets wired to the simulation controller
"""

from __future__ import annotations

import logging

import numpy as np
import matplotlib.pyplot as plt
from matplotlib import colormaps
from matplotlib.colors import to_rgba
from matplotlib.widgets import Button, CheckButtons, Slider

from animator import AnimationLoop, FigureSink
from errors import InvalidParameterError
from simulator import SimulationController

logger = logging.getLogger(__name__)

AXIS_LIMIT = 2.0

THEMES = {
    'light': dict(background='white', foreground='black', colormap='twilight'),
    'dark': dict(background='black', foreground='white', colormap='coolwarm'),
}


class PendulumApp:
    """
    Base window: main axis, Start/Stop and Home buttons, click-to-reinitialize.

    Subclasses add their own controls in ``_build_controls``.
    """

    title = 'Magnetic pendulum'
    figsize = (10, 10)
    plot_rect = [0.1, 0.2, 0.8, 0.75]

    def __init__(self, controller: SimulationController):
        self.controller = controller
        self.fig = plt.figure(figsize=self.figsize)
        if self.fig.canvas.manager is not None:
            self.fig.canvas.manager.set_window_title(self.title)
        self.ax = self.fig.add_axes(self.plot_rect)
        self.ax.set_aspect('equal')
        self.ax.set_xticks([])
        self.ax.set_yticks([])
        self.reset_view()

        self.sink = FigureSink(self.fig, self.ax, controller.snapshot(), self.body_colors())
        self.loop = AnimationLoop(controller, self.sink, controller.settings.idle_interval)

        self.run_button = Button(self.fig.add_axes([0.1, 0.03, 0.18, 0.06]), 'Start / Stop')
        self.run_button.on_clicked(self._on_run)
        self.home_button = Button(self.fig.add_axes([0.3, 0.03, 0.12, 0.06]), 'Home')
        self.home_button.on_clicked(lambda _: self.reset_view())
        self.fig.canvas.mpl_connect('button_press_event', self._on_click)
        self.fig.canvas.mpl_connect('close_event', lambda _: self.loop.stop())

        self._build_controls()

    def _build_controls(self) -> None:
        pass

    def body_colors(self) -> np.ndarray:
        raise NotImplementedError

    def reset_view(self) -> None:
        self.ax.set_xlim(-AXIS_LIMIT, AXIS_LIMIT)
        self.ax.set_ylim(-AXIS_LIMIT, AXIS_LIMIT)

    def _on_run(self, _) -> None:
        state = self.loop.toggle()
        logger.debug("Start / Stop -> %s", state.value)

    def _on_click(self, event) -> None:
        # Ignore clicks on widgets and while a toolbar zoom/pan mode is active.
        if event.inaxes is not self.ax or event.button != 1:
            return
        toolbar = getattr(self.fig.canvas, 'toolbar', None)
        if toolbar is not None and getattr(toolbar, 'mode', ''):
            return
        self.controller.reinitialize_at((event.xdata, event.ydata))
        self.sink.render(self.controller.snapshot())

    def _apply(self, setter, value) -> None:
        """Forward a widget value to a controller setter and keep the figure in sync."""
        try:
            setter(value)
        except InvalidParameterError as err:
            logger.warning("Ignoring control change: %s", err)
            return
        self.sink.render(self.controller.snapshot())

    def show(self) -> None:
        plt.show()
        self.loop.stop()
        self.loop.join(timeout=1.0)


class SinglePendulumApp(PendulumApp):
    """One pendulum above three magnets with an on/off switch."""

    title = 'Magnetic pendulum'
    figsize = (8, 9)

    def body_colors(self) -> np.ndarray:
        return np.array([to_rgba('royalblue')] * self.controller.body_count)

    def _build_controls(self) -> None:
        self.sink.set_magnet_color('goldenrod')
        self.sink.set_magnets_visible(False)
        self.magnet_switch = CheckButtons(
            self.fig.add_axes([0.55, 0.02, 0.35, 0.08]), ['Magnets on / off'], [False],
        )
        self.magnet_switch.on_clicked(self._on_magnets)

    def _on_magnets(self, _) -> None:
        enabled = bool(self.magnet_switch.get_status()[0])
        self.controller.set_magnets_enabled(enabled)
        self.sink.set_magnets_visible(enabled)


class PendulumSwarmApp(PendulumApp):
    """Many pendula with sliders for friction and the magnet ring."""

    title = 'Magnetic pendula'
    figsize = (14, 9)
    plot_rect = [0.38, 0.05, 0.6, 0.9]

    def __init__(self, controller: SimulationController):
        self.theme = 'light'
        super().__init__(controller)
        self.apply_theme(self.theme)

    def body_colors(self) -> np.ndarray:
        cmap = colormaps[THEMES[self.theme]['colormap']]
        return cmap(np.linspace(0, 1, self.controller.body_count))

    def _build_controls(self) -> None:
        settings = self.controller.settings
        bounds = self.controller.bounds
        params = self.controller.parameters()

        def slider(y, label, limits, value, step, fmt='%.1f'):
            return Slider(
                self.fig.add_axes([0.12, y, 0.2, 0.03]), label,
                valmin=limits[0], valmax=limits[1], valinit=value, valstep=step, valfmt=fmt,
            )

        self.friction_slider = slider(0.9, 'Friction', bounds.friction, params.friction, 0.1)
        self.strength_slider = slider(0.85, 'Magnet strength', bounds.magnet_strength,
                                      settings.magnet_strength, 1.0)
        self.radius_slider = slider(0.8, 'Magnet radius', bounds.magnet_radius,
                                    settings.magnet_radius, 0.1)
        self.count_slider = slider(0.75, 'Magnet count', bounds.magnet_count,
                                   settings.magnet_count, 1, fmt='%d')

        self.friction_slider.on_changed(lambda v: self._apply(self.controller.set_friction, v))
        self.strength_slider.on_changed(lambda v: self._apply(self.controller.set_magnet_strength, v))
        self.radius_slider.on_changed(lambda v: self._apply(self.controller.set_magnet_radius, v))
        self.count_slider.on_changed(lambda v: self._apply(self.controller.set_magnet_count, int(v)))

        self.switches = CheckButtons(
            self.fig.add_axes([0.05, 0.5, 0.25, 0.18]),
            ['Attractive magnets', 'Show magnets', 'Light theme'],
            [self.controller.polarity > 0, True, True],
        )
        self.switches.on_clicked(self._on_switch)

    def _on_switch(self, label) -> None:
        attractive, show_magnets, light = self.switches.get_status()
        if label == 'Attractive magnets':
            self._apply(self.controller.set_polarity, bool(attractive))
        elif label == 'Show magnets':
            self.sink.set_magnets_visible(show_magnets)
        else:
            self.apply_theme('light' if light else 'dark')

    def apply_theme(self, name: str) -> None:
        theme = THEMES[name]
        self.theme = name
        self.fig.set_facecolor(theme['background'])
        self.ax.set_facecolor(theme['background'])
        for spine in self.ax.spines.values():
            spine.set_color(theme['foreground'])
        for s in (self.friction_slider, self.strength_slider, self.radius_slider, self.count_slider):
            s.label.set_color(theme['foreground'])
            s.valtext.set_color(theme['foreground'])
        for text in self.switches.labels:
            text.set_color(theme['foreground'])
        self.sink.set_magnet_color(theme['foreground'])
        self.sink.set_colors(self.body_colors())
