# main.py
import logging
import cProfile
import argparse # For command line argument to enable profiling
from typing import Dict, List, Optional

import pygame

from config import ConfigurationError # Importing config also configures logging
from physics_utils import PhysicsError
from simulation import OrrerySimulation
from visualization import Visualization

def apply_actions(simulation: OrrerySimulation, actions: List[Dict], now_ms: float):
    """Applies input actions (as produced by `Visualization.event_to_actions`) to the simulation.

    Must run before `simulation.step` for the same frame, so that a manual
    camera input cancels scripted motion before the camera update.
    """
    for action in actions:
        action_type = action.get('type')
        if action_type == 'jump':
            simulation.request_jump(action['body'], now_ms)
        elif action_type == 'follow':
            simulation.request_follow(action['body'])
        elif action_type == 'cancel':
            simulation.cancel_camera()
        elif action_type == 'manual':
            simulation.apply_manual_control(action.get('orbit_dx', 0.0), action.get('orbit_dy', 0.0),
                                            action.get('zoom_steps', 0.0))
        elif action_type == 'time_scale':
            operation = action.get('op')
            if operation == 'faster':
                simulation.faster()
            elif operation == 'slower':
                simulation.slower()
            elif operation == 'pause':
                simulation.toggle_pause()
            elif operation == 'reverse':
                simulation.reverse()
            elif operation == 'realtime':
                simulation.set_realtime()
            else:
                logging.warning(f"Unknown time scale operation: {operation}")
        elif action_type == 'visual_scale':
            simulation.change_visual_scale(action.get('steps', 0))
        else:
            logging.warning(f"Unknown input action: {action}")


class OrreryApplication:
    """Owns the `OrrerySimulation` and the `Visualization` and runs the frame loop.

    Frame order: events -> actions -> simulation step (clock, orbits, camera) -> render.

    Attributes:
        simulation (OrrerySimulation): The simulation state.
        visualization (Visualization): Pygame window and input.
        running (bool): Cleared when the window is closed or a frame fails badly.
    """
    def __init__(self):
        self.simulation = OrrerySimulation()
        self.visualization = Visualization(self.simulation.body_names())
        self.running = self.visualization.visualization_enabled
        if not self.running:
            logging.error("Visualization is unavailable; the orrery will not run.")

    def run(self, max_frames: Optional[int] = None):
        """Runs the frame loop until the window closes (or `max_frames` frames have been drawn)."""
        frames = 0
        self.visualization.tick() # Discard time spent on startup
        while self.running and (max_frames is None or frames < max_frames):
            try:
                keep_running, actions = self.visualization.handle_events(self.simulation.camera.current_tracked_body())
                if not keep_running:
                    self.running = False
                    logging.info("Orrery stopped by user (window closed).")
                    break

                now_ms = float(pygame.time.get_ticks())
                apply_actions(self.simulation, actions, now_ms)

                wall_delta_ms = self.visualization.tick()
                frame_state = self.simulation.step(wall_delta_ms, now_ms)
                self.visualization.render(frame_state, self.simulation)
                frames += 1
            except Exception as e_frame:
                logging.error(f"Unhandled error in frame {self.simulation.frame_count}: {e_frame}", exc_info=True)
                self.running = False
                logging.critical("Critical error in frame loop. Terminating orrery.")

        logging.info(f"Orrery finished after {frames} frames at simulated date {self.simulation.date.format()}.")

    def close(self):
        self.visualization.close()


if __name__ == "__main__":
    """
    Entry point of the Keplerian orrery.

    Parses `--profile` (enables cProfile; statistics are written to
    `simulation_profile.prof` on exit), then builds and runs the application.
    Configuration and element-table errors are logged as critical and stop
    startup.
    """
    parser = argparse.ArgumentParser(description="Run the Keplerian orrery.")
    parser.add_argument("--profile", action="store_true", help="Enable cProfile for performance analysis.")
    args = parser.parse_args()

    profiler = None
    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        logging.info("cProfile profiling enabled. Output will be saved to simulation_profile.prof upon completion.")

    application = None
    try:
        logging.info("Initializing OrreryApplication...")
        application = OrreryApplication()
        application.run()
    except (ConfigurationError, PhysicsError) as e_startup:
        logging.critical(f"Orrery could not be initialized: {e_startup}", exc_info=True)
        print(f"FATAL CONFIGURATION ERROR: {e_startup}. Orrery cannot start. Check logs for details.")
    finally:
        if application is not None:
            application.close()
        if profiler:
            profiler.disable()
            stats_file = "simulation_profile.prof"
            try:
                profiler.dump_stats(stats_file)
                logging.info(f"Profiling data successfully saved to {stats_file}")
            except OSError as e_profile_dump:
                logging.error(f"Failed to save profiling data to {stats_file}: {e_profile_dump}", exc_info=True)
