# solarsystem.py
import math
import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple
from config import config, KM_SCALE # Import the global config instance
from physics_utils import PhysicsError, clamp, safe_divide, wrap_angle

# Reference frame used throughout: the X-Y plane is the orbital reference plane
# (ecliptic) and +Z is height above it. The central body sits at the origin.

ELEMENT_TABLE_KEYS = (
    'semi_major_axis_km', 'eccentricity', 'inclination_deg', 'node_deg',
    'periapsis_arg_deg', 'mean_anomaly_at_epoch_deg', 'orbital_period_days'
)

@dataclass(frozen=True)
class OrbitalElements:
    """
    Keplerian orbital elements of one body, in scene units and radians.

    Attributes:
        a: Semi-major axis (scene units)
        e: Eccentricity (0 <= e < 1 for ellipses; anything else is drawn on a circle of radius a)
        i: Inclination relative to the reference plane (rad)
        node: Longitude of the ascending node, Omega (rad)
        periapsis_arg: Argument of periapsis, omega (rad)
        mean_anomaly_at_epoch: Mean anomaly at J2000.0, M0 (rad)
        mean_motion: n (rad per simulated day)
    """
    a: float
    e: float
    i: float
    node: float
    periapsis_arg: float
    mean_anomaly_at_epoch: float
    mean_motion: float

    @classmethod
    def from_table_row(cls, row: Dict, distance_scale: float = KM_SCALE) -> 'OrbitalElements':
        """Converts one row of the static element table (km, degrees, days) once at startup.

        Raises:
            PhysicsError: If a key is missing, a value is not a finite number,
                          or the semi-major axis / period is negative.
        """
        missing = [key for key in ELEMENT_TABLE_KEYS if key not in row]
        if missing:
            raise PhysicsError(f"Orbital element table row is missing keys: {missing}")
        try:
            values = {key: float(row[key]) for key in ELEMENT_TABLE_KEYS}
        except (TypeError, ValueError) as e_value:
            raise PhysicsError(f"Orbital element table row has a non-numeric value: {e_value}")
        if not all(math.isfinite(value) for value in values.values()):
            raise PhysicsError(f"Orbital element table row has non-finite values: {values}")
        if values['semi_major_axis_km'] < 0 or values['orbital_period_days'] < 0:
            raise PhysicsError("Semi-major axis and orbital period cannot be negative.")

        period = values['orbital_period_days']
        return cls(
            a=values['semi_major_axis_km'] * distance_scale,
            e=values['eccentricity'],
            i=math.radians(values['inclination_deg']),
            node=math.radians(values['node_deg']),
            periapsis_arg=math.radians(values['periapsis_arg_deg']),
            mean_anomaly_at_epoch=math.radians(values['mean_anomaly_at_epoch_deg']),
            mean_motion=(2.0 * math.pi / period) if period > 0 else 0.0,
        )

    @property
    def is_elliptical(self) -> bool:
        return 0.0 <= self.e < 1.0

    @property
    def period_days(self) -> float:
        if self.mean_motion == 0:
            return math.inf
        return 2.0 * math.pi / abs(self.mean_motion)


class OrbitalElementStore:
    """Read-only mapping of body name to `OrbitalElements`, built once at startup.

    Bodies without an orbit (the central body) are not stored. Iteration order
    follows the source table, which lists primaries before their satellites.
    """
    def __init__(self, elements: Dict[str, OrbitalElements], primaries: Dict[str, str]):
        self._elements = dict(elements)
        self._primaries = dict(primaries)

    @classmethod
    def from_config(cls, body_data: Optional[Dict[str, Dict]] = None) -> 'OrbitalElementStore':
        """Builds the store from `config.SolarSystem.BODY_DATA` (or an equivalent table).

        Satellites (bodies whose primary is not the central body) get their
        semi-major axis multiplied by `SATELLITE_ORBIT_EXAGGERATION`.
        """
        if body_data is None:
            body_data = config.SolarSystem.BODY_DATA
        central_name = config.SolarSystem.CENTRAL_BODY

        elements: Dict[str, OrbitalElements] = {}
        primaries: Dict[str, str] = {}
        for name, row in body_data.items():
            primary = row.get('central_body')
            if primary is None:
                continue
            if primary != central_name and primary not in elements:
                raise PhysicsError(f"Primary '{primary}' of '{name}' must appear before it in the element table.")
            scale = KM_SCALE
            if primary != central_name:
                scale *= config.SolarSystem.SATELLITE_ORBIT_EXAGGERATION
            elements[name] = OrbitalElements.from_table_row(row, distance_scale=scale)
            primaries[name] = primary
            if config.Debug.ORBITAL_MECHANICS:
                logging.debug(f"Loaded elements for {name} (orbits {primary}): {elements[name]}")
        return cls(elements, primaries)

    def get(self, name: str) -> Optional[OrbitalElements]:
        return self._elements.get(name)

    def primary_of(self, name: str) -> Optional[str]:
        return self._primaries.get(name)

    def __contains__(self, name) -> bool:
        return name in self._elements

    def __iter__(self) -> Iterator[str]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)


class OrbitalMechanics:
    """Pure, stateless orbit math: Kepler solver and position evaluator."""

    @staticmethod
    def solve_kepler_equation(M_rad: float, e: float, tolerance: Optional[float] = None,
                              max_iterations: Optional[int] = None) -> float:
        """
        Solves Kepler's Equation M = E - e * sin(E) for eccentric anomaly E using Newton-Raphson.

        The initial guess is E = M, or E = pi when e exceeds
        `config.Orbits.KEPLER_HIGH_ECCENTRICITY`. If the derivative 1 - e*cos(E)
        becomes negligible the current estimate is returned instead of
        dividing by it. Non-finite input returns M (or 0 when M itself is not
        finite). Never raises; always returns the best estimate found.

        Args:
            M_rad: Mean anomaly in radians.
            e: Eccentricity (0 <= e < 1).
            tolerance: Newton step size at which the iteration stops.
            max_iterations: Maximum number of iterations.

        Returns:
            Eccentric anomaly E in radians.
        """
        if tolerance is None:
            tolerance = config.Orbits.KEPLER_TOLERANCE
        if max_iterations is None:
            max_iterations = config.Orbits.KEPLER_MAX_ITERATIONS

        if not (math.isfinite(M_rad) and math.isfinite(e)):
            if config.Debug.KEPLER_SOLVER:
                logging.debug(f"Kepler solver given non-finite input M={M_rad}, e={e}")
            return M_rad if math.isfinite(M_rad) else 0.0

        E_rad = math.pi if e > config.Orbits.KEPLER_HIGH_ECCENTRICITY else M_rad

        for iteration in range(max_iterations):
            f_E = E_rad - e * math.sin(E_rad) - M_rad
            f_prime_E = 1.0 - e * math.cos(E_rad)

            if abs(f_prime_E) < config.Orbits.KEPLER_MIN_DERIVATIVE:
                if config.Debug.KEPLER_SOLVER:
                    logging.debug(f"Kepler solver derivative near zero for M={M_rad}, e={e}, E={E_rad} at iter {iteration}")
                break

            delta_E = f_E / f_prime_E
            E_rad -= delta_E
            if abs(delta_E) < tolerance:
                return E_rad
        else:
            if config.Debug.KEPLER_SOLVER:
                logging.debug(f"Kepler solver hit {max_iterations} iterations for M={M_rad}, e={e}. Last E={E_rad}")

        return E_rad

    @staticmethod
    def calculate_true_anomaly(E_rad: float, e: float) -> float:
        """nu = 2 * atan2(sqrt(1+e) * sin(E/2), sqrt(1-e) * cos(E/2))"""
        return 2.0 * math.atan2(math.sqrt(1.0 + e) * math.sin(E_rad / 2.0),
                                math.sqrt(1.0 - e) * math.cos(E_rad / 2.0))

    @staticmethod
    def calculate_radius(a: float, e: float, E_rad: float) -> float:
        return a * (1.0 - e * math.cos(E_rad))

    @staticmethod
    def rotate_to_reference_frame(x_orb: float, y_orb: float, i: float, node: float,
                                  periapsis_arg: float) -> np.ndarray:
        """
        Rotates an in-plane point (x_orb, y_orb, 0) into the reference frame.

        Applies, in order: omega about +Z (in-plane), i about +X (line of nodes),
        Omega about +Z. The expressions below are the combined matrix
        Rz(Omega) @ Rx(i) @ Rz(omega) applied to (x_orb, y_orb, 0).
        """
        cos_w, sin_w = math.cos(periapsis_arg), math.sin(periapsis_arg)
        cos_O, sin_O = math.cos(node), math.sin(node)
        cos_i, sin_i = math.cos(i), math.sin(i)

        x = x_orb * (cos_w * cos_O - sin_w * sin_O * cos_i) - y_orb * (sin_w * cos_O + cos_w * sin_O * cos_i)
        y = x_orb * (cos_w * sin_O + sin_w * cos_O * cos_i) + y_orb * (cos_w * cos_O * cos_i - sin_w * sin_O)
        z = x_orb * (sin_w * sin_i) + y_orb * (cos_w * sin_i)
        return np.array([x, y, z], dtype=np.float64)

    @staticmethod
    def calculate_position_from_eccentric_anomaly(a: float, e: float, i: float, node: float,
                                                  periapsis_arg: float, E_rad: float) -> np.ndarray:
        """3D position relative to the focus, from a solved eccentric anomaly."""
        nu_rad = OrbitalMechanics.calculate_true_anomaly(E_rad, e)
        r = OrbitalMechanics.calculate_radius(a, e, E_rad)
        return OrbitalMechanics.rotate_to_reference_frame(
            r * math.cos(nu_rad), r * math.sin(nu_rad), i, node, periapsis_arg
        )

    @staticmethod
    def calculate_position(elements: OrbitalElements, M_rad: float) -> np.ndarray:
        """
        Position of a body at mean anomaly M, relative to its primary.

        Non-elliptical elements (e outside [0, 1)) skip Kepler's equation and
        are placed on a circle of radius a at angle M in the orbital plane.
        """
        if not elements.is_elliptical:
            return OrbitalMechanics.rotate_to_reference_frame(
                elements.a * math.cos(M_rad), elements.a * math.sin(M_rad),
                elements.i, elements.node, elements.periapsis_arg
            )
        E_rad = OrbitalMechanics.solve_kepler_equation(M_rad, elements.e)
        return OrbitalMechanics.calculate_position_from_eccentric_anomaly(
            elements.a, elements.e, elements.i, elements.node, elements.periapsis_arg, E_rad
        )

    @staticmethod
    def advance_mean_anomaly(M_rad: float, mean_motion: float, elapsed_days: float) -> float:
        """M <- (M + n * dt) mod 2*pi, always in [0, 2*pi)."""
        return wrap_angle(M_rad + mean_motion * elapsed_days)

    @staticmethod
    def calculate_orbit_points(elements: OrbitalElements, segments: Optional[int] = None) -> np.ndarray:
        """
        Samples the full orbit as a closed polyline of `segments + 1` points (for orbit lines).

        Ellipses are sampled uniformly in eccentric anomaly with the focus at the
        origin; non-elliptical elements give the same fallback circle used by
        `calculate_position`.
        """
        if segments is None:
            segments = config.Orbits.ORBIT_LINE_SEGMENTS
        points = np.empty((segments + 1, 3), dtype=np.float64)
        for index in range(segments + 1):
            theta = 2.0 * math.pi * index / segments
            if elements.is_elliptical:
                points[index] = OrbitalMechanics.calculate_position_from_eccentric_anomaly(
                    elements.a, elements.e, elements.i, elements.node, elements.periapsis_arg, theta
                )
            else:
                points[index] = OrbitalMechanics.rotate_to_reference_frame(
                    elements.a * math.cos(theta), elements.a * math.sin(theta),
                    elements.i, elements.node, elements.periapsis_arg
                )
        return points


@dataclass
class CelestialBody:
    name: str
    base_visual_size: float
    rotation_period_days: float
    color: Tuple[int, int, int]
    elements: Optional[OrbitalElements] = None # None for the central body
    orbits_around: Optional[str] = None

    # Orbital state, mutated every tick
    mean_anomaly: float = 0.0
    spin_angle: float = 0.0
    position: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))

    # Relative orbit polyline, computed once
    orbit_points: Optional[np.ndarray] = field(default=None, repr=False)


class SolarSystem:
    """Owns every body's orbital state and propagates it each tick.

    `update(elapsed_days)` advances each body's mean anomaly, solves for its
    position relative to its primary and composes absolute positions
    primary-first, so a satellite always sees its primary's position for the
    same tick. The visual size of a body is its base size times a live,
    user-controlled visual scale.
    """
    def __init__(self, element_store: Optional[OrbitalElementStore] = None,
                 body_data: Optional[Dict[str, Dict]] = None,
                 epoch_offset_days: float = 0.0,
                 visual_scale: Optional[float] = None):
        if body_data is None:
            body_data = config.SolarSystem.BODY_DATA
        if element_store is None:
            element_store = OrbitalElementStore.from_config(body_data)
        if not math.isfinite(epoch_offset_days):
            logging.warning(f"Non-finite epoch offset {epoch_offset_days}; starting at J2000.0.")
            epoch_offset_days = 0.0

        self.element_store = element_store
        self.bodies: Dict[str, CelestialBody] = {}
        self._visual_scale = config.Visualization.DEFAULT_VISUAL_SCALE

        for name, row in body_data.items():
            elements = element_store.get(name)
            body = CelestialBody(
                name=name,
                base_visual_size=float(row['visual_size']),
                rotation_period_days=float(row['rotation_period_days']),
                color=tuple(row['color']),
                elements=elements,
                orbits_around=element_store.primary_of(name),
            )
            if elements is not None:
                # Bring M0 (at J2000.0) forward to the starting date
                body.mean_anomaly = OrbitalMechanics.advance_mean_anomaly(
                    elements.mean_anomaly_at_epoch, elements.mean_motion, epoch_offset_days
                )
                body.orbit_points = OrbitalMechanics.calculate_orbit_points(elements)
            self.bodies[name] = body

        if visual_scale is not None:
            self.set_visual_scale(visual_scale)
        self.update(0.0)
        logging.info(f"SolarSystem initialized with {len(self.bodies)} bodies "
                     f"({len(self.element_store)} orbiting), epoch offset {epoch_offset_days:.2f} days.")

    def update(self, elapsed_days: float) -> Dict[str, np.ndarray]:
        """Propagates every body by `elapsed_days` simulated days (may be negative or zero).

        Returns:
            Dict[str, np.ndarray]: The new absolute position of every body.
        """
        if not math.isfinite(elapsed_days):
            logging.warning(f"Ignoring non-finite elapsed_days={elapsed_days} in SolarSystem.update.")
            elapsed_days = 0.0

        for body in self.bodies.values():
            spin_rate = safe_divide(2.0 * math.pi, body.rotation_period_days) # rad per day, negative = retrograde
            body.spin_angle = wrap_angle(body.spin_angle + spin_rate * elapsed_days)

            if body.elements is None:
                body.position = np.zeros(3, dtype=np.float64)
                continue

            body.mean_anomaly = OrbitalMechanics.advance_mean_anomaly(
                body.mean_anomaly, body.elements.mean_motion, elapsed_days
            )
            relative_position = OrbitalMechanics.calculate_position(body.elements, body.mean_anomaly)
            primary = self.bodies.get(body.orbits_around)
            primary_position = primary.position if primary is not None else np.zeros(3, dtype=np.float64)
            body.position = primary_position + relative_position

        return self.body_positions()

    def get_body(self, name: str) -> Optional[CelestialBody]:
        return self.bodies.get(name)

    def body_names(self) -> List[str]:
        return list(self.bodies.keys())

    def body_position(self, name: str) -> Optional[np.ndarray]:
        body = self.bodies.get(name)
        return body.position.copy() if body is not None else None

    def body_positions(self) -> Dict[str, np.ndarray]:
        return {name: body.position.copy() for name, body in self.bodies.items()}

    def orbit_line(self, name: str) -> Optional[np.ndarray]:
        """Orbit polyline of `name` in absolute coordinates (centred on its primary's current position)."""
        body = self.bodies.get(name)
        if body is None or body.orbit_points is None:
            return None
        primary = self.bodies.get(body.orbits_around)
        offset = primary.position if primary is not None else np.zeros(3, dtype=np.float64)
        return body.orbit_points + offset

    @property
    def visual_scale(self) -> float:
        return self._visual_scale

    def set_visual_scale(self, scale: float) -> float:
        """Sets the live body size multiplier, clamped to the configured range. Returns the applied value."""
        if not math.isfinite(scale):
            logging.warning(f"Ignoring non-finite visual scale {scale}.")
            return self._visual_scale
        self._visual_scale = clamp(float(scale), config.Visualization.MIN_VISUAL_SCALE,
                                   config.Visualization.MAX_VISUAL_SCALE)
        return self._visual_scale

    def visual_size(self, name: str) -> Optional[float]:
        """Current visual size of a body (base size x live visual scale), or None if unknown."""
        body = self.bodies.get(name)
        if body is None:
            return None
        return body.base_visual_size * self._visual_scale
