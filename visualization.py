# visualization.py
import pygame
import numpy as np
from typing import Dict, List, Optional, Tuple
import math
import logging
from config import config, ConfigurationError
from camera_controller import CameraPose, CameraState

COORD_LIMIT = 100000 # pygame draw calls misbehave with huge coordinates

def project_point(pose: CameraPose, point: np.ndarray, screen_size: Tuple[int, int],
                  fov_deg: float, near_plane: float) -> Optional[Tuple[float, float, float]]:
    """
    Perspective-projects a world point through the camera pose.

    Args:
        pose (CameraPose): Camera position and orientation.
        point (np.ndarray): World position (3,).
        screen_size (Tuple[int, int]): (width, height) in pixels.
        fov_deg (float): Vertical field of view in degrees.
        near_plane (float): Points closer than this along the view axis are not drawn.

    Returns:
        Optional[Tuple[float, float, float]]: (screen_x, screen_y, depth), or None if
        the point is behind the near plane. Screen Y grows downwards.
    """
    relative = np.asarray(point, dtype=np.float64) - pose.position
    depth = float(np.dot(relative, pose.forward))
    if depth < near_plane:
        return None
    width, height = screen_size
    focal_px = (height / 2.0) / math.tan(math.radians(fov_deg) / 2.0)
    x_cam = float(np.dot(relative, pose.right))
    y_cam = float(np.dot(relative, pose.up))
    screen_x = width / 2.0 + x_cam * focal_px / depth
    screen_y = height / 2.0 - y_cam * focal_px / depth
    return (max(-COORD_LIMIT, min(COORD_LIMIT, screen_x)),
            max(-COORD_LIMIT, min(COORD_LIMIT, screen_y)),
            depth)

def projected_radius_px(visual_size: float, depth: float, screen_height: int, fov_deg: float) -> float:
    """On-screen radius of a sphere of diameter `visual_size` at `depth`."""
    focal_px = (screen_height / 2.0) / math.tan(math.radians(fov_deg) / 2.0)
    return (visual_size / 2.0) * focal_px / depth

def meridian_point(position: np.ndarray, visual_size: float, spin_angle: float) -> np.ndarray:
    """Point on the equator of a body at its prime meridian, for drawing the spin tick."""
    radius = visual_size / 2.0
    return np.asarray(position, dtype=np.float64) + radius * np.array([math.cos(spin_angle), math.sin(spin_angle), 0.0])


class Visualization:
    """Renders the orrery with Pygame and turns input events into simulation actions.

    Rendering is a simple software perspective projection of the current
    `CameraPose`: orbit lines, bodies (painter's order, far to near) with
    labels, and a HUD showing the simulated date, time scale, visual scale and
    camera state.

    Input is translated into plain action dictionaries; the caller applies
    them to the `OrrerySimulation` before stepping it, so a manual camera
    input always cancels scripted motion before the frame's camera update.

    Controls:
        1-9, 0: fly to the Nth body of the body list (Shift: follow directly).
        Tab: fly to the next body after the currently tracked one.
        Left mouse drag: orbit the camera (cancels fly-to / follow).
        Mouse wheel: zoom (cancels fly-to / follow).
        Esc: cancel camera motion.
        ] / [: faster / slower. Space: pause. R: reverse. T: realtime.
        = / -: larger / smaller bodies.

    Attributes:
        screen (pygame.Surface | None): The main display surface.
        visualization_enabled (bool): False if Pygame could not open a window.
        clock (pygame.time.Clock | None): Frame limiter.
        font (pygame.font.Font | None): HUD font.
        small_font (pygame.font.Font | None): Label font.
        body_names (List[str]): Ordered body list used by the number keys.
    """
    def __init__(self, body_names: List[str]):
        """Initializes Pygame, the window and the fonts.

        Raises:
            ConfigurationError: If the screen dimensions are invalid.
        """
        self.body_names = list(body_names)
        self.screen_size = (config.Visualization.SCREEN_WIDTH_PX, config.Visualization.SCREEN_HEIGHT_PX)
        self.screen = None
        self.clock = self.font = self.small_font = None
        try:
            pygame.init()
            self.visualization_enabled = True

            screen_w, screen_h = self.screen_size
            if not (isinstance(screen_w, int) and screen_w > 0 and isinstance(screen_h, int) and screen_h > 0):
                raise ConfigurationError("SCREEN_WIDTH_PX and SCREEN_HEIGHT_PX must be positive integers.")
            try:
                self.screen = pygame.display.set_mode(self.screen_size)
            except pygame.error as e_disp:
                logging.critical(f"Error setting display mode: {e_disp}. Visualization disabled.", exc_info=True)
                self.visualization_enabled = False
                return

            pygame.display.set_caption("Keplerian Orrery")
            self.clock = pygame.time.Clock()
            try:
                self.font = pygame.font.Font(None, 24)
                self.small_font = pygame.font.Font(None, 18)
            except pygame.error as e_font:
                logging.error(f"Pygame error initializing fonts: {e_font}. Text rendering disabled.", exc_info=True)
                self.font = self.small_font = None

            logging.info(f"Visualization initialized ({screen_w}x{screen_h}).")
        except ConfigurationError as e_config:
            logging.critical(f"Visualization initialization failed due to ConfigurationError: {e_config}", exc_info=True)
            self.visualization_enabled = False
            raise

    # --- Rendering ---
    def project(self, pose: CameraPose, point: np.ndarray) -> Optional[Tuple[float, float, float]]:
        return project_point(pose, point, self.screen_size,
                             config.Visualization.FIELD_OF_VIEW_DEG, config.Visualization.NEAR_PLANE)

    def render(self, frame_state, simulation):
        """Draws one frame.

        Args:
            frame_state (FrameState): Result of `OrrerySimulation.step` for this frame.
            simulation (OrrerySimulation): Source of orbit lines, visual sizes and HUD values.
        """
        if not self.visualization_enabled or self.screen is None:
            return
        try:
            self.screen.fill(config.Visualization.BACKGROUND_COLOR)
            pose = frame_state.camera_pose
            self._draw_orbit_lines(pose, simulation.solar_system)
            self._draw_bodies(pose, frame_state.body_positions, simulation.solar_system)
            self._draw_hud(frame_state, simulation)
            pygame.display.flip()
        except pygame.error as e_pygame:
            logging.error(f"Pygame error during rendering: {e_pygame}", exc_info=True)

    def _draw_orbit_lines(self, pose: CameraPose, solar_system):
        for name in solar_system.body_names():
            points = solar_system.orbit_line(name)
            if points is None:
                continue
            run: List[Tuple[float, float]] = []
            for point in points:
                projected = self.project(pose, point)
                if projected is None: # Break the polyline at the near plane
                    if len(run) > 1:
                        pygame.draw.lines(self.screen, config.Visualization.ORBIT_LINE_COLOR, False, run)
                    run = []
                    continue
                run.append((projected[0], projected[1]))
            if len(run) > 1:
                pygame.draw.lines(self.screen, config.Visualization.ORBIT_LINE_COLOR, False, run)

    def _draw_bodies(self, pose: CameraPose, positions: Dict[str, np.ndarray], solar_system):
        drawable = []
        for name, position in positions.items():
            projected = self.project(pose, position)
            if projected is not None:
                drawable.append((projected[2], name, projected))
        drawable.sort(key=lambda item: item[0], reverse=True) # Far to near

        screen_h = self.screen_size[1]
        for depth, name, (screen_x, screen_y, _) in drawable:
            body = solar_system.get_body(name)
            radius = projected_radius_px(solar_system.visual_size(name), depth, screen_h,
                                         config.Visualization.FIELD_OF_VIEW_DEG)
            radius = int(min(COORD_LIMIT, max(config.Visualization.MIN_BODY_RADIUS_PX, radius)))
            center = (int(screen_x), int(screen_y))
            pygame.draw.circle(self.screen, body.color, center, radius)
            if radius >= config.Visualization.MIN_MERIDIAN_RADIUS_PX:
                self._draw_meridian(pose, positions[name], solar_system.visual_size(name), body.spin_angle, center)
            if self.small_font:
                label = self.small_font.render(name, True, config.Visualization.HUD_TEXT_COLOR)
                self.screen.blit(label, (center[0] + radius + 4, center[1] - label.get_height() // 2))

    def _draw_meridian(self, pose: CameraPose, position: np.ndarray, visual_size: float,
                       spin_angle: float, center: Tuple[int, int]):
        projected = self.project(pose, meridian_point(position, visual_size, spin_angle))
        if projected is None:
            return
        pygame.draw.line(self.screen, config.Visualization.MERIDIAN_COLOR, center,
                         (int(projected[0]), int(projected[1])), 2)

    def _draw_hud(self, frame_state, simulation):
        if not self.font:
            return
        if frame_state.camera_state == CameraState.FLYING_TO:
            camera_text = f"Flying to {simulation.camera.animation.target_name}"
        elif frame_state.camera_state == CameraState.FOLLOWING:
            camera_text = f"Following {frame_state.tracked_body}"
        else:
            camera_text = "Free camera"

        lines = [
            frame_state.date.format(),
            f"Speed: {simulation.time_scale_label()}",
            f"Body scale: {simulation.solar_system.visual_scale:.0f}x",
            camera_text,
        ]
        y = 10
        for text in lines:
            surface = self.font.render(text, True, config.Visualization.HUD_TEXT_COLOR)
            self.screen.blit(surface, (10, y))
            y += surface.get_height() + 4

        if self.small_font:
            keys = "  ".join(f"{(index + 1) % 10}:{name}" for index, name in enumerate(self.body_names[:10]))
            help_surface = self.small_font.render(keys, True, config.Visualization.HUD_TEXT_COLOR)
            self.screen.blit(help_surface, (10, self.screen_size[1] - help_surface.get_height() - 10))

    # --- Input ---
    def event_to_actions(self, event, tracked_body: Optional[str] = None) -> List[Dict]:
        """Translates a single Pygame event into zero or more action dictionaries."""
        actions: List[Dict] = []
        if event.type == pygame.KEYDOWN:
            body_index = self._body_index_for_key(event.key)
            if body_index is not None:
                if body_index < len(self.body_names):
                    action_type = 'follow' if event.mod & pygame.KMOD_SHIFT else 'jump'
                    actions.append({'type': action_type, 'body': self.body_names[body_index]})
            elif event.key == pygame.K_TAB and self.body_names:
                next_index = 0
                if tracked_body in self.body_names:
                    next_index = (self.body_names.index(tracked_body) + 1) % len(self.body_names)
                actions.append({'type': 'jump', 'body': self.body_names[next_index]})
            elif event.key == pygame.K_ESCAPE:
                actions.append({'type': 'cancel'})
            elif event.key == pygame.K_RIGHTBRACKET:
                actions.append({'type': 'time_scale', 'op': 'faster'})
            elif event.key == pygame.K_LEFTBRACKET:
                actions.append({'type': 'time_scale', 'op': 'slower'})
            elif event.key == pygame.K_SPACE:
                actions.append({'type': 'time_scale', 'op': 'pause'})
            elif event.key == pygame.K_r:
                actions.append({'type': 'time_scale', 'op': 'reverse'})
            elif event.key == pygame.K_t:
                actions.append({'type': 'time_scale', 'op': 'realtime'})
            elif event.key in (pygame.K_EQUALS, pygame.K_PLUS):
                actions.append({'type': 'visual_scale', 'steps': 1})
            elif event.key == pygame.K_MINUS:
                actions.append({'type': 'visual_scale', 'steps': -1})
        elif event.type == pygame.MOUSEMOTION and event.buttons[0]:
            dx, dy = event.rel
            if dx or dy:
                actions.append({'type': 'manual', 'orbit_dx': float(dx), 'orbit_dy': float(dy), 'zoom_steps': 0.0})
        elif event.type == pygame.MOUSEWHEEL and event.y:
            actions.append({'type': 'manual', 'orbit_dx': 0.0, 'orbit_dy': 0.0, 'zoom_steps': float(event.y)})
        return actions

    @staticmethod
    def _body_index_for_key(key) -> Optional[int]:
        if pygame.K_1 <= key <= pygame.K_9:
            return key - pygame.K_1
        if key == pygame.K_0:
            return 9
        return None

    def handle_events(self, tracked_body: Optional[str] = None) -> Tuple[bool, List[Dict]]:
        """Drains the Pygame event queue.

        Returns:
            Tuple[bool, List[Dict]]: (`False` if the window was closed, actions in event order).
        """
        actions: List[Dict] = []
        try:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    logging.info("QUIT event received via Pygame window. Signaling shutdown.")
                    return False, actions
                actions.extend(self.event_to_actions(event, tracked_body))
        except pygame.error as e_pygame_event:
            logging.error(f"Pygame error during event handling: {e_pygame_event}. Attempting to continue.", exc_info=True)
        return True, actions

    def tick(self) -> float:
        """Limits the frame rate; returns milliseconds since the previous call."""
        if self.clock is None:
            return 0.0
        return float(self.clock.tick(config.Visualization.FPS))

    def close(self):
        pygame.quit()
        logging.info("Pygame shut down.")
