# camera_controller.py
import math
import logging
import numpy as np
from enum import Enum
from dataclasses import dataclass
from typing import Callable, Dict, Optional
from config import config, ConfigurationError
from physics_utils import (clamp, ease_in_out_quad, is_finite_vector, lerp,
                           normalize_vector, quadratic_bezier)

X_AXIS = np.array([1.0, 0.0, 0.0])
MAX_MANUAL_ELEVATION_RAD = math.pi / 2.0 - 0.01 # Keep manual orbit off the poles

class CameraState(Enum):
    IDLE = "idle"
    FLYING_TO = "flying_to"
    FOLLOWING = "following"


@dataclass
class CameraPose:
    """Camera position plus an orthonormal (forward, up) basis.

    `rotation_matrix` maps camera-space vectors to world space; its columns
    are right, up and -forward (camera looks down its local -Z).
    """
    position: np.ndarray
    forward: np.ndarray
    up: np.ndarray

    @classmethod
    def looking_at(cls, position, target, world_up=None) -> 'CameraPose':
        pose = cls(position=np.array(position, dtype=np.float64),
                   forward=np.array([0.0, 1.0, 0.0]),
                   up=np.array([0.0, 0.0, 1.0]))
        pose.look_at(target, world_up)
        return pose

    def look_at(self, target, world_up=None):
        """Points the camera at `target`. Orientation is recomputed, never interpolated."""
        if world_up is None:
            world_up = config.Camera.WORLD_UP
        world_up = normalize_vector(world_up)
        self.forward = normalize_vector(np.asarray(target, dtype=np.float64) - self.position, fallback=self.forward)
        right = np.cross(self.forward, world_up)
        if np.dot(right, right) < config.Camera.DEGENERATE_DIRECTION_EPSILON_SQ: # Looking straight along world up
            right = np.cross(self.forward, X_AXIS)
        right = normalize_vector(right)
        self.up = np.cross(right, self.forward)

    @property
    def right(self) -> np.ndarray:
        return np.cross(self.forward, self.up)

    @property
    def rotation_matrix(self) -> np.ndarray:
        return np.column_stack((self.right, self.up, -self.forward))

    def copy(self) -> 'CameraPose':
        return CameraPose(self.position.copy(), self.forward.copy(), self.up.copy())


@dataclass
class CameraAnimation:
    """A single fly-to: quadratic Bezier up to `transition_fraction`, then a straight line into the end framing."""
    start_position: np.ndarray
    end_position: np.ndarray
    control_point: np.ndarray
    look_at_target: np.ndarray
    start_time_ms: float
    duration_ms: float
    transition_fraction: float
    transition_point: np.ndarray
    target_name: str
    visual_size: float
    offset_direction: np.ndarray
    last_progress: float = 0.0

    def progress(self, now_ms: float) -> float:
        """Eased progress in [0, 1], never decreasing between calls."""
        if math.isfinite(now_ms):
            ratio = clamp((now_ms - self.start_time_ms) / self.duration_ms, 0.0, 1.0)
            self.last_progress = max(self.last_progress, ease_in_out_quad(ratio))
        return self.last_progress

    def position_at(self, progress: float) -> np.ndarray:
        if progress < self.transition_fraction:
            return quadratic_bezier(self.start_position, self.control_point, self.end_position, progress)
        linear_t = (progress - self.transition_fraction) / (1.0 - self.transition_fraction)
        return lerp(self.transition_point, self.end_position, linear_t)


@dataclass
class TrackState:
    target_name: str
    direction: np.ndarray # unit vector from body to camera
    visual_size: float # size at the moment tracking started


def compute_follow_offset(direction, visual_size: float, multiplier: float) -> np.ndarray:
    """Camera offset from a tracked body: direction * (visual_size * multiplier)."""
    return np.asarray(direction, dtype=np.float64) * (visual_size * multiplier)


class CameraMotionController:
    """
    Owns the camera pose and drives it through three states.

    - IDLE: the pose is left alone (manual control may move it).
    - FLYING_TO: a `CameraAnimation` moves the camera to a standoff point
      `visual_size * reframe_multiplier` away from the target while always
      looking at it. On completion the camera snaps to the exact end point
      and starts FOLLOWING the same body with the same offset direction.
    - FOLLOWING: each tick the camera closes `follow_lerp_factor` of the gap
      to `body + compute_follow_offset(...)`, using the body's current
      visual size, and looks at the body.

    `cancel()` returns to IDLE from any state, synchronously. Only one of
    fly-to, follow or manual control writes the pose in a given tick.
    """

    def __init__(self, pose: Optional[CameraPose] = None,
                 reframe_multiplier: Optional[float] = None,
                 duration_ms: Optional[float] = None,
                 transition_fraction: Optional[float] = None,
                 follow_lerp_factor: Optional[float] = None,
                 curve_forward_fraction: Optional[float] = None,
                 curve_sideways_fraction: Optional[float] = None,
                 default_view_direction=None,
                 world_up=None,
                 focus_point=None):
        cam_cfg = config.Camera
        self.reframe_multiplier = cam_cfg.REFRAME_MULTIPLIER if reframe_multiplier is None else reframe_multiplier
        self.duration_ms = cam_cfg.FLY_TO_DURATION_MS if duration_ms is None else duration_ms
        self.transition_fraction = cam_cfg.TRANSITION_FRACTION if transition_fraction is None else transition_fraction
        self.follow_lerp_factor = cam_cfg.FOLLOW_LERP_FACTOR if follow_lerp_factor is None else follow_lerp_factor
        self.curve_forward_fraction = cam_cfg.CURVE_FORWARD_FRACTION if curve_forward_fraction is None else curve_forward_fraction
        self.curve_sideways_fraction = cam_cfg.CURVE_SIDEWAYS_FRACTION if curve_sideways_fraction is None else curve_sideways_fraction
        self.world_up = normalize_vector(cam_cfg.WORLD_UP if world_up is None else world_up)
        self.default_view_direction = normalize_vector(
            cam_cfg.DEFAULT_VIEW_DIRECTION if default_view_direction is None else default_view_direction
        )

        if not (math.isfinite(self.duration_ms) and self.duration_ms > 0):
            raise ConfigurationError(f"Fly-to duration must be positive, got {self.duration_ms}ms.")
        if not (0.0 < self.transition_fraction < 1.0):
            raise ConfigurationError(f"Transition fraction must be strictly between 0 and 1, got {self.transition_fraction}.")
        if not (0.0 < self.follow_lerp_factor <= 1.0):
            raise ConfigurationError(f"Follow lerp factor must be in (0, 1], got {self.follow_lerp_factor}.")
        if not (math.isfinite(self.reframe_multiplier) and self.reframe_multiplier > 0):
            raise ConfigurationError(f"Reframe multiplier must be positive, got {self.reframe_multiplier}.")
        if not self.default_view_direction.any() or not self.world_up.any():
            raise ConfigurationError("Default view direction and world up must be non-zero vectors.")

        if pose is None:
            pose = CameraPose.looking_at(cam_cfg.INITIAL_POSITION, cam_cfg.INITIAL_LOOK_AT, self.world_up)
            if focus_point is None:
                focus_point = cam_cfg.INITIAL_LOOK_AT
        if focus_point is None:
            focus_point = pose.position + pose.forward
        self._focus_point = np.array(focus_point, dtype=np.float64)
        self._pose = pose
        self._state = CameraState.IDLE
        self._animation: Optional[CameraAnimation] = None
        self._track: Optional[TrackState] = None

    # --- Queries ---
    @property
    def state(self) -> CameraState:
        return self._state

    @property
    def pose(self) -> CameraPose:
        return self._pose

    @property
    def animation(self) -> Optional[CameraAnimation]:
        return self._animation

    @property
    def track(self) -> Optional[TrackState]:
        return self._track

    @property
    def focus_point(self) -> np.ndarray:
        """The point the camera was last aimed at; manual orbit pivots around it."""
        return self._focus_point.copy()

    def is_animating(self) -> bool:
        return self._state == CameraState.FLYING_TO

    def current_tracked_body(self) -> Optional[str]:
        if self._state == CameraState.FOLLOWING and self._track is not None:
            return self._track.target_name
        return None

    # --- Requests ---
    def _validate_target(self, request: str, name: str, target_position, visual_size) -> bool:
        if target_position is None:
            logging.warning(f"{request} ignored: no body named '{name}'.")
            return False
        if not is_finite_vector(target_position):
            logging.warning(f"{request} ignored: position of '{name}' is not a finite 3-vector ({target_position}).")
            return False
        if visual_size is None or not math.isfinite(visual_size) or visual_size <= 0:
            logging.warning(f"{request} ignored: visual size of '{name}' must be positive and finite ({visual_size}).")
            return False
        return True

    def _offset_direction(self, target: np.ndarray) -> np.ndarray:
        """Unit vector from target towards the camera, with heading and default fallbacks."""
        eps_sq = config.Camera.DEGENERATE_DIRECTION_EPSILON_SQ
        direction = self._pose.position - target
        if np.dot(direction, direction) < eps_sq: # Camera sits on the target
            direction = -self._pose.forward
            if np.dot(direction, direction) < eps_sq:
                direction = self.default_view_direction
        return normalize_vector(direction, fallback=self.default_view_direction)

    def _curve_control_point(self, start: np.ndarray, end: np.ndarray) -> np.ndarray:
        heading = self._pose.forward
        path = end - start
        distance = float(np.linalg.norm(path))
        if distance < config.Camera.DEGENERATE_PATH_LENGTH:
            return start.copy()

        side = np.cross(heading, path / distance)
        if np.dot(side, side) < config.Camera.DEGENERATE_DIRECTION_EPSILON_SQ: # Heading (anti)parallel to the path
            if abs(np.dot(heading, self.world_up)) < 0.9:
                side = np.cross(heading, self.world_up)
            else:
                side = np.cross(heading, X_AXIS)
        side = normalize_vector(side)

        return (start
                + heading * (distance * self.curve_forward_fraction)
                + side * (distance * self.curve_sideways_fraction))

    def jump_to(self, name: str, target_position, visual_size: Optional[float], now_ms: float) -> bool:
        """
        Starts a fly-to towards a body. Any running animation or follow is replaced.

        Args:
            name (str): Body name, followed after the animation completes.
            target_position (np.ndarray): Current position of the body (None if the body does not exist).
            visual_size (float): Current visual size of the body.
            now_ms (float): Current time in milliseconds; animation progress is measured from here.

        Returns:
            bool: True if an animation was started. Invalid or missing targets leave the state untouched.
        """
        if not self._validate_target("Jump request", name, target_position, visual_size):
            return False
        if not math.isfinite(now_ms):
            logging.warning(f"Jump request to '{name}' ignored: non-finite timestamp {now_ms}.")
            return False

        self._clear()

        target = np.array(target_position, dtype=np.float64)
        start = self._pose.position.copy()
        direction = self._offset_direction(target)
        end = target + direction * (visual_size * self.reframe_multiplier)
        control = self._curve_control_point(start, end)
        transition_point = quadratic_bezier(start, control, end, self.transition_fraction)

        self._animation = CameraAnimation(
            start_position=start, end_position=end, control_point=control,
            look_at_target=target, start_time_ms=float(now_ms), duration_ms=float(self.duration_ms),
            transition_fraction=self.transition_fraction, transition_point=transition_point,
            target_name=name, visual_size=float(visual_size), offset_direction=direction,
        )
        self._state = CameraState.FLYING_TO

        if config.Debug.CAMERA_CONTROLLER:
            logging.debug(f"Fly-to '{name}': target={np.round(target, 3)}, start={np.round(start, 3)}, "
                          f"size={visual_size:.3f}, offset={visual_size * self.reframe_multiplier:.3f}, "
                          f"direction={np.round(direction, 3)}, end={np.round(end, 3)}, control={np.round(control, 3)}")
        logging.info(f"Camera flying to {name}.")
        return True

    def follow(self, name: str, target_position, visual_size: Optional[float]) -> bool:
        """Starts following a body directly, keeping the current viewing direction. Returns True on success."""
        if not self._validate_target("Follow request", name, target_position, visual_size):
            return False
        target = np.array(target_position, dtype=np.float64)
        direction = self._offset_direction(target)
        self._clear()
        self._track = TrackState(target_name=name, direction=direction, visual_size=float(visual_size))
        self._state = CameraState.FOLLOWING
        logging.info(f"Camera following {name}.")
        return True

    def cancel(self):
        """Stops any animation or follow immediately. The pose stays where it is."""
        if self._state != CameraState.IDLE and config.Debug.CAMERA_CONTROLLER:
            logging.debug(f"Camera {self._state.value} cancelled.")
        self._clear()

    def _clear(self):
        self._animation = None
        self._track = None
        self._state = CameraState.IDLE

    def apply_manual_control(self, orbit_dx: float = 0.0, orbit_dy: float = 0.0, zoom_steps: float = 0.0):
        """
        Manual camera input (mouse drag / wheel). Always cancels scripted motion first.

        Orbits the camera around its focus point: `orbit_dx`/`orbit_dy` are pixel
        deltas, `zoom_steps` > 0 moves closer by `MANUAL_ZOOM_STEP` per step.
        """
        self.cancel()
        if not all(math.isfinite(v) for v in (orbit_dx, orbit_dy, zoom_steps)):
            logging.warning(f"Ignoring non-finite manual control input ({orbit_dx}, {orbit_dy}, {zoom_steps}).")
            return

        sensitivity = config.Camera.MANUAL_ORBIT_SENSITIVITY
        offset = self._pose.position - self._focus_point
        radius = float(np.linalg.norm(offset))
        if radius < config.Camera.DEGENERATE_PATH_LENGTH:
            offset = self.default_view_direction
            radius = 1.0

        azimuth = math.atan2(offset[1], offset[0]) - orbit_dx * sensitivity
        elevation = math.asin(clamp(offset[2] / radius, -1.0, 1.0)) + orbit_dy * sensitivity
        elevation = clamp(elevation, -MAX_MANUAL_ELEVATION_RAD, MAX_MANUAL_ELEVATION_RAD)
        radius /= config.Camera.MANUAL_ZOOM_STEP ** zoom_steps

        self._pose.position = self._focus_point + radius * np.array([
            math.cos(elevation) * math.cos(azimuth),
            math.cos(elevation) * math.sin(azimuth),
            math.sin(elevation),
        ])
        self._pose.look_at(self._focus_point, self.world_up)

    # --- Per-tick update ---
    def update(self, now_ms: float, body_positions: Dict[str, np.ndarray],
               visual_size: Callable[[str], Optional[float]]) -> CameraPose:
        """
        Advances the camera by one tick. Body positions must already be
        propagated for this tick.

        Args:
            now_ms (float): Current time in milliseconds (same clock as `jump_to`).
            body_positions (Dict[str, np.ndarray]): Current absolute body positions.
            visual_size (Callable[[str], Optional[float]]): Live visual size accessor.

        Returns:
            CameraPose: The (possibly updated) camera pose.
        """
        if self._state == CameraState.FLYING_TO:
            self._update_flight(now_ms)
        elif self._state == CameraState.FOLLOWING:
            self._update_follow(body_positions, visual_size)
        return self._pose

    def _update_flight(self, now_ms: float):
        animation = self._animation
        progress = animation.progress(now_ms)

        if progress >= 1.0:
            self._pose.position = animation.end_position.copy()
            self._aim_at(animation.look_at_target)
            self._animation = None
            self._track = TrackState(target_name=animation.target_name,
                                     direction=animation.offset_direction.copy(),
                                     visual_size=animation.visual_size)
            self._state = CameraState.FOLLOWING
            logging.info(f"Camera arrived at {animation.target_name}; now following.")
            return

        self._pose.position = animation.position_at(progress)
        self._aim_at(animation.look_at_target)

    def _update_follow(self, body_positions: Dict[str, np.ndarray],
                       visual_size: Callable[[str], Optional[float]]):
        track = self._track
        body_position = body_positions.get(track.target_name)
        if body_position is None or not is_finite_vector(body_position):
            if config.Debug.CAMERA_CONTROLLER:
                logging.debug(f"Followed body '{track.target_name}' has no usable position this tick; holding pose.")
            return

        size = visual_size(track.target_name)
        if size is None or not math.isfinite(size) or size <= 0:
            size = track.visual_size

        desired = body_position + compute_follow_offset(track.direction, size, self.reframe_multiplier)
        self._pose.position = self._pose.position + (desired - self._pose.position) * self.follow_lerp_factor
        self._aim_at(body_position)

    def _aim_at(self, target: np.ndarray):
        self._focus_point = np.array(target, dtype=np.float64)
        self._pose.look_at(self._focus_point, self.world_up)
