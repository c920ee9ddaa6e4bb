# config.py
import numpy as np
import logging

# Configure basic logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(module)s - %(message)s')

# Fundamental Physical Constants (used across different config sections)
AU_KM = 149597870.7  # Astronomical Unit in kilometers
SUN_RADIUS_KM = 696340.0
SECONDS_PER_DAY = 86400.0

# Scene Scale Constants (also fundamental for conversions)
KM_SCALE = 1.2 / SUN_RADIUS_KM  # Scene units per km
AU_SCALE = AU_KM * KM_SCALE  # Scene units per AU

class ConfigurationError(Exception):
    """Custom exception for orrery configuration errors.

    Raised by `SimulationConfig.validate()` and by components that check their
    configuration at construction time (e.g. `CameraMotionController`) when
    settings are invalid, inconsistent, or missing.

    Attributes:
        message (str): A human-readable explanation of the configuration error.
                       This is the first argument passed to the exception constructor.
    """
    pass

class SimulationConfig:
    """Centralized, hierarchical configuration for the Keplerian orrery.

    Parameters are grouped into nested static classes (`SimulationConfig.Orbits`,
    `SimulationConfig.SolarSystem`, `SimulationConfig.Time`, `SimulationConfig.Camera`,
    `SimulationConfig.Visualization`, `SimulationConfig.Debug`). An instance named
    `config` is created at the end of this module, making it globally available
    via `from config import config`.

    The `__init__` method invokes `validate()`, which checks ranges and
    interdependencies and raises a `ConfigurationError` if anything is off.

    Example Usage:
        >>> from config import config
        >>> print(f"Reframe multiplier: {config.Camera.REFRAME_MULTIPLIER}")
        >>> print(f"Earth period (days): {config.SolarSystem.BODY_DATA['Earth']['orbital_period_days']}")
    """

    # --- Orbit Propagation Configuration ---
    class Orbits:
        """Settings for the Kepler equation solver.

        Attributes:
            KEPLER_TOLERANCE (float): Newton step size (radians) below which the solver stops.
            KEPLER_MAX_ITERATIONS (int): Hard cap on Newton iterations per solve.
            KEPLER_HIGH_ECCENTRICITY (float): Above this eccentricity the initial guess is pi
                                              instead of the mean anomaly.
            KEPLER_MIN_DERIVATIVE (float): If |1 - e*cos(E)| drops below this the solver returns
                                           its current estimate instead of dividing.
            ORBIT_LINE_SEGMENTS (int): Number of segments used to sample an orbit for drawing.
        """
        KEPLER_TOLERANCE = 1e-7
        KEPLER_MAX_ITERATIONS = 16
        KEPLER_HIGH_ECCENTRICITY = 0.8
        KEPLER_MIN_DERIVATIVE = 1e-10
        ORBIT_LINE_SEGMENTS = 128

    # --- Solar System Data ---
    class SolarSystem:
        """Static per-body data: orbital elements, periods and visual sizes.

        Attributes:
            REFERENCE_EPOCH_JD (float): Julian Date of the J2000.0 epoch the mean anomalies refer to.
            CENTRAL_BODY (str): Name of the body fixed at the origin of the reference frame.
            SATELLITE_ORBIT_EXAGGERATION (float): Factor applied to the semi-major axis of bodies
                                                  orbiting something other than the central body,
                                                  so they clear their (visually enlarged) primary.
            BODY_DATA (Dict[str, Dict]): Per-body table. Keys: semi_major_axis_km, eccentricity,
                                         inclination_deg, node_deg, periapsis_arg_deg,
                                         mean_anomaly_at_epoch_deg, orbital_period_days,
                                         rotation_period_days (negative = retrograde),
                                         visual_size (scene units), color, central_body.
                                         Primaries must be listed before their satellites.
        """
        REFERENCE_EPOCH_JD = 2451545.0
        CENTRAL_BODY = 'Sun'
        SATELLITE_ORBIT_EXAGGERATION = 18.0

        BODY_DATA = {
            'Sun': {
                'semi_major_axis_km': 0.0, 'eccentricity': 0.0, 'inclination_deg': 0.0,
                'node_deg': 0.0, 'periapsis_arg_deg': 0.0, 'mean_anomaly_at_epoch_deg': 0.0,
                'orbital_period_days': 0.0, 'rotation_period_days': 25.0,
                'visual_size': 0.96, 'color': (255, 255, 100), 'central_body': None
            },
            'Mercury': {
                'semi_major_axis_km': 0.387098 * AU_KM, 'eccentricity': 0.205630, 'inclination_deg': 7.005,
                'node_deg': 48.331, 'periapsis_arg_deg': 29.124, 'mean_anomaly_at_epoch_deg': 174.794,
                'orbital_period_days': 87.97, 'rotation_period_days': 58.646,
                'visual_size': 0.2, 'color': (169, 169, 169), 'central_body': 'Sun'
            },
            'Venus': {
                'semi_major_axis_km': 0.723332 * AU_KM, 'eccentricity': 0.006772, 'inclination_deg': 3.39458,
                'node_deg': 76.680, 'periapsis_arg_deg': 54.884, 'mean_anomaly_at_epoch_deg': 50.447,
                'orbital_period_days': 224.70, 'rotation_period_days': -243.025,
                'visual_size': 0.32, 'color': (255, 198, 73), 'central_body': 'Sun'
            },
            'Earth': {
                'semi_major_axis_km': 1.00000261 * AU_KM, 'eccentricity': 0.01671123, 'inclination_deg': 0.00005,
                'node_deg': -11.26064, 'periapsis_arg_deg': 114.20783, 'mean_anomaly_at_epoch_deg': 357.51716,
                'orbital_period_days': 365.26, 'rotation_period_days': 0.997,
                'visual_size': 0.4, 'color': (100, 149, 237), 'central_body': 'Sun'
            },
            'Moon': {
                'semi_major_axis_km': 384400.0, 'eccentricity': 0.0549, 'inclination_deg': 5.145,
                'node_deg': 125.08, 'periapsis_arg_deg': 318.15, 'mean_anomaly_at_epoch_deg': 115.36,
                'orbital_period_days': 27.32, 'rotation_period_days': 27.32,
                'visual_size': 0.4 * 0.273, 'color': (200, 200, 200), 'central_body': 'Earth'
            },
            'Mars': {
                'semi_major_axis_km': 1.523679 * AU_KM, 'eccentricity': 0.09340, 'inclination_deg': 1.850,
                'node_deg': 49.558, 'periapsis_arg_deg': 286.502, 'mean_anomaly_at_epoch_deg': 19.412,
                'orbital_period_days': 686.98, 'rotation_period_days': 1.026,
                'visual_size': 0.28, 'color': (193, 68, 14), 'central_body': 'Sun'
            },
            'Jupiter': {
                'semi_major_axis_km': 5.2044 * AU_KM, 'eccentricity': 0.0489, 'inclination_deg': 1.303,
                'node_deg': 100.464, 'periapsis_arg_deg': 273.867, 'mean_anomaly_at_epoch_deg': 20.020,
                'orbital_period_days': 4332.59, 'rotation_period_days': 0.4135,
                'visual_size': 0.72, 'color': (200, 160, 120), 'central_body': 'Sun'
            },
            'Saturn': {
                'semi_major_axis_km': 9.5826 * AU_KM, 'eccentricity': 0.0565, 'inclination_deg': 2.485,
                'node_deg': 113.665, 'periapsis_arg_deg': 339.392, 'mean_anomaly_at_epoch_deg': 317.020,
                'orbital_period_days': 10759.22, 'rotation_period_days': 0.444,
                'visual_size': 0.64, 'color': (234, 214, 184), 'central_body': 'Sun'
            },
            'Uranus': {
                'semi_major_axis_km': 19.2184 * AU_KM, 'eccentricity': 0.0457, 'inclination_deg': 0.772,
                'node_deg': 74.006, 'periapsis_arg_deg': 96.999, 'mean_anomaly_at_epoch_deg': 142.238600,
                'orbital_period_days': 30688.5, 'rotation_period_days': -0.718,
                'visual_size': 0.48, 'color': (155, 221, 221), 'central_body': 'Sun'
            },
            'Neptune': {
                'semi_major_axis_km': 30.110 * AU_KM, 'eccentricity': 0.0113, 'inclination_deg': 1.770,
                'node_deg': 131.783, 'periapsis_arg_deg': 276.336, 'mean_anomaly_at_epoch_deg': 256.228,
                'orbital_period_days': 60182.0, 'rotation_period_days': 0.671,
                'visual_size': 0.48, 'color': (63, 81, 181), 'central_body': 'Sun'
            },
            'Pluto': {
                'semi_major_axis_km': 39.482 * AU_KM, 'eccentricity': 0.2488, 'inclination_deg': 17.16,
                'node_deg': 110.299, 'periapsis_arg_deg': 113.834, 'mean_anomaly_at_epoch_deg': 14.53,
                'orbital_period_days': 90560.0, 'rotation_period_days': -6.387,
                'visual_size': 0.144, 'color': (200, 180, 160), 'central_body': 'Sun'
            }
        }

    # --- Time Configuration ---
    class Time:
        """Configuration related to simulated time progression.

        Attributes:
            DAYS_PER_WALL_SECOND (float): Simulated days per wall-clock second at time scale 1.0.
            REALTIME_SPEED (float): Time scale at which simulated time matches wall-clock time.
            DEFAULT_TIME_SCALE (float): Time scale at startup.
            TIME_SCALE_STEP (float): Multiplicative step applied by the faster/slower controls.
            MAX_TIME_SCALE (float): Largest allowed magnitude of the time scale.
        """
        DAYS_PER_WALL_SECOND = 1.0
        REALTIME_SPEED = 1.0 / SECONDS_PER_DAY
        DEFAULT_TIME_SCALE = 1.0
        TIME_SCALE_STEP = 2.0
        MAX_TIME_SCALE = 1000.0

    # --- Camera Configuration ---
    class Camera:
        """Configuration for the camera motion controller.

        Attributes:
            REFRAME_MULTIPLIER (float): Scales a body's visual size into a camera standoff distance.
            TRANSITION_FRACTION (float): Eased progress at which the fly-to path switches from the
                                         Bezier curve to a straight line into the final framing.
            FLY_TO_DURATION_MS (float): Duration of a fly-to animation in milliseconds.
            FOLLOW_LERP_FACTOR (float): Fraction of the remaining distance covered per tick while following.
            CURVE_FORWARD_FRACTION (float): Bezier control point offset along the initial heading,
                                            as a fraction of the start-to-end distance.
            CURVE_SIDEWAYS_FRACTION (float): Bezier control point sideways offset, same units.
            DEFAULT_VIEW_DIRECTION (Tuple[float, float, float]): Offset direction used when neither
                                         the camera-to-target vector nor the heading is usable.
            WORLD_UP (Tuple[float, float, float]): Camera up vector; +Z is height above the ecliptic.
            INITIAL_POSITION (Tuple[float, float, float]): Camera position at startup.
            INITIAL_LOOK_AT (Tuple[float, float, float]): Point the camera faces at startup.
            DEGENERATE_DIRECTION_EPSILON_SQ (float): Squared length below which a direction is unusable.
            DEGENERATE_PATH_LENGTH (float): Start-to-end distance below which no curve is built.
            MANUAL_ORBIT_SENSITIVITY (float): Radians of manual orbit per pixel of mouse drag.
            MANUAL_ZOOM_STEP (float): Distance factor per mouse wheel notch.
        """
        REFRAME_MULTIPLIER = 4.0
        TRANSITION_FRACTION = 0.7
        FLY_TO_DURATION_MS = 1500.0
        FOLLOW_LERP_FACTOR = 0.1
        CURVE_FORWARD_FRACTION = 0.4
        CURVE_SIDEWAYS_FRACTION = 0.3
        DEFAULT_VIEW_DIRECTION = (0.0, -1.0, 0.3)
        WORLD_UP = (0.0, 0.0, 1.0)
        INITIAL_POSITION = (0.0, -600.0, 300.0)
        INITIAL_LOOK_AT = (0.0, 0.0, 0.0)
        DEGENERATE_DIRECTION_EPSILON_SQ = 1e-4
        DEGENERATE_PATH_LENGTH = 1e-3
        MANUAL_ORBIT_SENSITIVITY = 0.005
        MANUAL_ZOOM_STEP = 1.1

    # --- Visualization Configuration ---
    class Visualization:
        """Configuration for the pygame front end.

        Attributes:
            SCREEN_WIDTH_PX (int): Width of the display window in pixels.
            SCREEN_HEIGHT_PX (int): Height of the display window in pixels.
            FPS (int): Target frames per second.
            FIELD_OF_VIEW_DEG (float): Vertical field of view of the perspective projection.
            NEAR_PLANE (float): Points closer than this (scene units, along the view axis) are culled.
            MIN_BODY_RADIUS_PX (int): Smallest on-screen radius a body is drawn with.
            DEFAULT_VISUAL_SCALE (float): Body size multiplier at startup.
            MIN_VISUAL_SCALE (float): Lower bound of the user-controlled body size multiplier.
            MAX_VISUAL_SCALE (float): Upper bound of the user-controlled body size multiplier.
            VISUAL_SCALE_STEP (float): Increment applied by the scale keys.
            BACKGROUND_COLOR (Tuple[int, int, int]): Clear color.
            ORBIT_LINE_COLOR (Tuple[int, int, int]): Orbit line color.
            HUD_TEXT_COLOR (Tuple[int, int, int]): HUD text color.
            MERIDIAN_COLOR (Tuple[int, int, int]): Color of the tick showing a body's spin angle.
            MIN_MERIDIAN_RADIUS_PX (int): Bodies drawn smaller than this get no spin tick.
        """
        SCREEN_WIDTH_PX = 1400
        SCREEN_HEIGHT_PX = 900
        FPS = 60
        FIELD_OF_VIEW_DEG = 75.0
        NEAR_PLANE = 0.1
        MIN_BODY_RADIUS_PX = 2
        DEFAULT_VISUAL_SCALE = 1.0
        MIN_VISUAL_SCALE = 1.0
        MAX_VISUAL_SCALE = 50.0
        VISUAL_SCALE_STEP = 1.0
        BACKGROUND_COLOR = (5, 5, 20)
        ORBIT_LINE_COLOR = (70, 70, 90)
        HUD_TEXT_COLOR = (220, 220, 220)
        MERIDIAN_COLOR = (30, 30, 30)
        MIN_MERIDIAN_RADIUS_PX = 6

    # --- Debug Configuration ---
    class Debug:
        """Configuration for debugging features and logging verbosity.

        Attributes:
            ORBITAL_MECHANICS (bool): Verbose logging from body propagation.
            KEPLER_SOLVER (bool): Log when the Kepler solver stops early or hits its iteration cap.
            CAMERA_CONTROLLER (bool): Log fly-to path calculations and state transitions in detail.
            CONFIG_VALIDATION (bool): If True, logs a summary after validation.
            LOG_POSITIONS_INTERVAL_FRAMES (int): Frequency (frames) for logging positions of selected bodies.
            LOG_BODY_NAMES (List[str]): Names of bodies whose positions to log.
        """
        ORBITAL_MECHANICS = False
        KEPLER_SOLVER = False
        CAMERA_CONTROLLER = False
        CONFIG_VALIDATION = True
        LOG_POSITIONS_INTERVAL_FRAMES = 600
        LOG_BODY_NAMES = ["Earth", "Moon"]

    def __init__(self):
        """Initializes the `SimulationConfig` instance and validates it.

        Raises:
            ConfigurationError: If `self.validate()` detects any issues with the
                                configuration values.
        """
        self.validate()

    def validate(self):
        """Performs validation of all configuration settings.

        Checks solver limits, the body table (required keys, positive periods
        and sizes, primaries listed before satellites), time-scale settings,
        camera constants (transition fraction strictly inside (0, 1), positive
        duration, lerp factor in (0, 1]) and visualization ranges.

        An eccentricity outside [0, 1) only logs a warning: the position
        evaluator falls back to a circular orbit for such bodies.

        Raises:
            ConfigurationError: If any configuration setting is found to be invalid.
        """
        # Global scale checks
        if KM_SCALE <= 0 or AU_SCALE <= 0:
            raise ConfigurationError("Global KM_SCALE and AU_SCALE must be positive.")

        # Solver validation
        if self.Orbits.KEPLER_TOLERANCE <= 0:
            raise ConfigurationError("Orbits.KEPLER_TOLERANCE must be positive.")
        if self.Orbits.KEPLER_MAX_ITERATIONS <= 0:
            raise ConfigurationError("Orbits.KEPLER_MAX_ITERATIONS must be positive.")
        if not (0.0 < self.Orbits.KEPLER_HIGH_ECCENTRICITY < 1.0):
            raise ConfigurationError("Orbits.KEPLER_HIGH_ECCENTRICITY must be strictly between 0 and 1.")
        if self.Orbits.ORBIT_LINE_SEGMENTS < 3:
            raise ConfigurationError("Orbits.ORBIT_LINE_SEGMENTS must be at least 3.")

        # Solar System Data Validation
        required_keys = (
            'semi_major_axis_km', 'eccentricity', 'inclination_deg', 'node_deg',
            'periapsis_arg_deg', 'mean_anomaly_at_epoch_deg', 'orbital_period_days',
            'rotation_period_days', 'visual_size', 'color', 'central_body'
        )
        central_name = self.SolarSystem.CENTRAL_BODY
        if central_name not in self.SolarSystem.BODY_DATA:
            raise ConfigurationError(f"Central body '{central_name}' missing from SolarSystem.BODY_DATA.")
        if self.SolarSystem.SATELLITE_ORBIT_EXAGGERATION <= 0:
            raise ConfigurationError("SolarSystem.SATELLITE_ORBIT_EXAGGERATION must be positive.")

        seen_names = []
        for name, data in self.SolarSystem.BODY_DATA.items():
            missing = [key for key in required_keys if key not in data]
            if missing:
                raise ConfigurationError(f"Body '{name}' is missing keys: {missing}")
            if data['visual_size'] <= 0:
                raise ConfigurationError(f"Visual size of body '{name}' must be positive.")
            if data['rotation_period_days'] == 0:
                raise ConfigurationError(f"Rotation period of body '{name}' cannot be zero.")
            if not (0.0 <= data['eccentricity'] < 1.0):
                logging.warning(f"Eccentricity of body '{name}' ({data['eccentricity']}) is outside [0, 1); "
                                "it will be drawn on a circular orbit.")

            central_body_name = data['central_body']
            if central_body_name is None:
                if name != central_name:
                    raise ConfigurationError(f"Body '{name}' (which is not {central_name}) must have a 'central_body' defined.")
            else:
                if central_body_name == name:
                    raise ConfigurationError(f"Body '{name}' cannot orbit itself.")
                if central_body_name not in seen_names:
                    raise ConfigurationError(
                        f"Central body '{central_body_name}' for '{name}' must be listed before it in BODY_DATA."
                    )
                if data['semi_major_axis_km'] <= 0:
                    raise ConfigurationError(f"Semi-major axis of orbiting body '{name}' must be positive.")
                if data['orbital_period_days'] <= 0:
                    raise ConfigurationError(f"Orbital period of orbiting body '{name}' must be positive.")
            seen_names.append(name)

        # Time validation
        if self.Time.DAYS_PER_WALL_SECOND <= 0:
            raise ConfigurationError("Time.DAYS_PER_WALL_SECOND must be positive.")
        if self.Time.REALTIME_SPEED <= 0:
            raise ConfigurationError("Time.REALTIME_SPEED must be positive.")
        if self.Time.TIME_SCALE_STEP <= 1.0:
            raise ConfigurationError("Time.TIME_SCALE_STEP must be greater than 1.")
        if not (0 < abs(self.Time.DEFAULT_TIME_SCALE) <= self.Time.MAX_TIME_SCALE):
            raise ConfigurationError(
                f"Time.DEFAULT_TIME_SCALE ({self.Time.DEFAULT_TIME_SCALE}) must be non-zero "
                f"and not exceed MAX_TIME_SCALE ({self.Time.MAX_TIME_SCALE}) in magnitude."
            )

        # Camera validation
        if self.Camera.REFRAME_MULTIPLIER <= 0:
            raise ConfigurationError("Camera.REFRAME_MULTIPLIER must be positive.")
        if not (0.0 < self.Camera.TRANSITION_FRACTION < 1.0):
            raise ConfigurationError(
                f"Camera.TRANSITION_FRACTION ({self.Camera.TRANSITION_FRACTION}) must be strictly between 0 and 1."
            )
        if self.Camera.FLY_TO_DURATION_MS <= 0:
            raise ConfigurationError("Camera.FLY_TO_DURATION_MS must be positive.")
        if not (0.0 < self.Camera.FOLLOW_LERP_FACTOR <= 1.0):
            raise ConfigurationError("Camera.FOLLOW_LERP_FACTOR must be in (0, 1].")
        if np.linalg.norm(self.Camera.DEFAULT_VIEW_DIRECTION) < 1e-6:
            raise ConfigurationError("Camera.DEFAULT_VIEW_DIRECTION must be a non-zero vector.")
        if np.linalg.norm(self.Camera.WORLD_UP) < 1e-6:
            raise ConfigurationError("Camera.WORLD_UP must be a non-zero vector.")
        if self.Camera.MANUAL_ZOOM_STEP <= 1.0:
            raise ConfigurationError("Camera.MANUAL_ZOOM_STEP must be greater than 1.")

        # Visualization
        if self.Visualization.SCREEN_WIDTH_PX <= 0 or self.Visualization.SCREEN_HEIGHT_PX <= 0:
            raise ConfigurationError("Visualization screen dimensions (SCREEN_WIDTH_PX, SCREEN_HEIGHT_PX) must be positive.")
        if self.Visualization.FPS <= 0:
            raise ConfigurationError("Visualization.FPS must be positive.")
        if not (0.0 < self.Visualization.FIELD_OF_VIEW_DEG < 180.0):
            raise ConfigurationError("Visualization.FIELD_OF_VIEW_DEG must be between 0 and 180.")
        if not (0 < self.Visualization.MIN_VISUAL_SCALE <= self.Visualization.DEFAULT_VISUAL_SCALE
                <= self.Visualization.MAX_VISUAL_SCALE):
            raise ConfigurationError(
                "Visual scale settings must satisfy 0 < MIN_VISUAL_SCALE <= DEFAULT_VISUAL_SCALE <= MAX_VISUAL_SCALE."
            )

        if self.Debug.CONFIG_VALIDATION:
            logging.info(f"Configuration validated successfully ({len(self.SolarSystem.BODY_DATA)} bodies).")


# --- Instantiate the configuration ---
# This makes the config object available for import and runs validation.
# e.g., from config import config
try:
    config = SimulationConfig()
except ConfigurationError as e:
    logging.error(f"FATAL CONFIGURATION ERROR: {e}", exc_info=True)
    raise
