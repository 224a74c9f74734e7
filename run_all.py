"""
Run the interactive magnetic pendulum simulation

Usage: python run_all.py [single|swarm]
"""

import logging
import sys

import interactive
import settings
import simulator


def main(variant: str = 'swarm'):
    """
    Open one of the two interactive figures:
    single - one pendulum above three switchable magnets
    swarm  - 200 pendula with nearby initial conditions and live controls
    """

    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    if variant == 'single':
        config = settings.single_pendulum_settings()
        app_class = interactive.SinglePendulumApp
    elif variant == 'swarm':
        config = settings.pendulum_swarm_settings()
        app_class = interactive.PendulumSwarmApp
    else:
        raise ValueError(f"Unknown variant '{variant}'. Use 'single' or 'swarm'.")

    print("=" * 60)
    print("MAGNETIC PENDULUM SIMULATION")
    print("=" * 60)
    print()
    print(f"Configuration:")
    print(f"  Pendula: {config.bodies}")
    print(f"  Magnets: {config.magnet_count} (strength {config.magnet_strength:.1f}, radius {config.magnet_radius:.1f})")
    print(f"  Restoring / friction / height: {config.restoring} / {config.friction} / {config.height}")
    print(f"  Tail length: {config.tail_length}")
    print(f"  Time step: {config.dt}")
    print()
    print("Press 'Start / Stop' to run, click into the plot to pick new initial conditions.")

    controller = simulator.SimulationController(config)
    app = app_class(controller)
    app.show()


if __name__ == '__main__':
    main(sys.argv[1] if len(sys.argv) > 1 else 'swarm')
