# simulation.py
import math
import logging
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional
from config import config, ConfigurationError
from physics_utils import PhysicsError, clamp
from solarsystem import SolarSystem
from simulation_clock import SimulationClock, SimulationDate, format_time_scale
from camera_controller import CameraMotionController, CameraPose, CameraState

@dataclass
class FrameState:
    """Everything the front end needs to draw one frame."""
    elapsed_days: float
    date: SimulationDate
    body_positions: Dict[str, np.ndarray]
    camera_pose: CameraPose
    camera_state: CameraState
    tracked_body: Optional[str]


class OrrerySimulation:
    """
    Per-frame pipeline of the orrery, independent of any window or renderer.

    Each `step` runs clock -> orbit propagation -> camera, in that order, so the
    camera always frames positions from the current tick. Input handlers call
    the request methods (`request_jump`, `cancel_camera`, `faster`, ...)
    before the step of the frame they belong to.

    Attributes:
        date (SimulationDate): Current simulated date.
        solar_system (SolarSystem): Orbital state of every body.
        camera (CameraMotionController): Camera state machine.
        clock (SimulationClock): Wall delta -> simulated days conversion.
        frame_count (int): Number of steps taken.
    """
    def __init__(self, start_date: Optional[SimulationDate] = None,
                 solar_system: Optional[SolarSystem] = None,
                 camera: Optional[CameraMotionController] = None,
                 clock: Optional[SimulationClock] = None):
        try:
            self.date = start_date if start_date is not None else SimulationDate.from_wall_clock()
            self.solar_system = solar_system if solar_system is not None else SolarSystem(
                epoch_offset_days=self.date.days_since_j2000
            )
            self.camera = camera if camera is not None else CameraMotionController()
            self.clock = clock if clock is not None else SimulationClock()

            self._time_scale: float = config.Time.DEFAULT_TIME_SCALE
            self._paused: bool = False
            self.frame_count: int = 0
            logging.info(f"OrrerySimulation initialized at {self.date.format()} with {len(self.solar_system.bodies)} bodies.")
        except (ConfigurationError, PhysicsError) as e_init:
            logging.critical(f"OrrerySimulation initialization failed: {e_init}", exc_info=True)
            raise

    # --- Time scale ---
    @property
    def time_scale(self) -> float:
        return self._time_scale

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def effective_time_scale(self) -> float:
        return 0.0 if self._paused else self._time_scale

    def set_time_scale(self, scale: float) -> float:
        """Sets the time scale, clamped to +/- MAX_TIME_SCALE. Returns the applied value."""
        if not math.isfinite(scale):
            logging.warning(f"Ignoring non-finite time scale {scale}.")
            return self._time_scale
        max_scale = config.Time.MAX_TIME_SCALE
        self._time_scale = clamp(float(scale), -max_scale, max_scale)
        logging.info(f"Time scale set to {self.time_scale_label()}.")
        return self._time_scale

    def faster(self) -> float:
        return self.set_time_scale(self._time_scale * config.Time.TIME_SCALE_STEP)

    def slower(self) -> float:
        return self.set_time_scale(self._time_scale / config.Time.TIME_SCALE_STEP)

    def reverse(self) -> float:
        return self.set_time_scale(-self._time_scale)

    def set_realtime(self) -> float:
        return self.set_time_scale(config.Time.REALTIME_SPEED)

    def toggle_pause(self) -> bool:
        self._paused = not self._paused
        logging.info("Simulation paused." if self._paused else "Simulation resumed.")
        return self._paused

    def time_scale_label(self) -> str:
        if self._paused:
            return "paused"
        return format_time_scale(self._time_scale)

    # --- Visual scale ---
    def set_visual_scale(self, scale: float) -> float:
        return self.solar_system.set_visual_scale(scale)

    def change_visual_scale(self, steps: int) -> float:
        return self.set_visual_scale(self.solar_system.visual_scale + steps * config.Visualization.VISUAL_SCALE_STEP)

    # --- Camera requests ---
    def body_names(self) -> List[str]:
        return self.solar_system.body_names()

    def request_jump(self, name: str, now_ms: float) -> bool:
        """Flies the camera to `name`. Unknown bodies are ignored (returns False)."""
        return self.camera.jump_to(name, self.solar_system.body_position(name),
                                   self.solar_system.visual_size(name), now_ms)

    def request_follow(self, name: str) -> bool:
        return self.camera.follow(name, self.solar_system.body_position(name),
                                  self.solar_system.visual_size(name))

    def cancel_camera(self):
        self.camera.cancel()

    def apply_manual_control(self, orbit_dx: float = 0.0, orbit_dy: float = 0.0, zoom_steps: float = 0.0):
        self.camera.apply_manual_control(orbit_dx, orbit_dy, zoom_steps)

    # --- Frame ---
    def step(self, wall_delta_ms: float, now_ms: float) -> FrameState:
        """
        Advances the whole simulation by one frame.

        Args:
            wall_delta_ms (float): Wall-clock time since the previous frame.
            now_ms (float): Current wall-clock time in ms (drives camera animation progress).

        Returns:
            FrameState: Positions, date and camera pose after this frame.
        """
        elapsed_days = self.clock.tick(wall_delta_ms, self.effective_time_scale)
        self.date.advance(elapsed_days)
        positions = self.solar_system.update(elapsed_days)
        pose = self.camera.update(now_ms, positions, self.solar_system.visual_size)
        self.frame_count += 1

        interval = config.Debug.LOG_POSITIONS_INTERVAL_FRAMES
        if interval > 0 and self.frame_count % interval == 0:
            for name in config.Debug.LOG_BODY_NAMES:
                if name in positions:
                    logging.info(f"Frame {self.frame_count} ({self.date.format()}): {name} at {np.round(positions[name], 3)}")

        return FrameState(
            elapsed_days=elapsed_days,
            date=self.date,
            body_positions=positions,
            camera_pose=pose,
            camera_state=self.camera.state,
            tracked_body=self.camera.current_tracked_body(),
        )
