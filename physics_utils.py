# physics_utils.py

import math
import numpy as np

class PhysicsError(Exception):
    """Custom exception for physics-related errors, such as an unusable orbital element table."""
    pass

def safe_divide(numerator, denominator, epsilon=1e-12, default_on_zero_denom=0.0):
    """
    Safely divides two numbers, handling potential division by zero.

    Args:
        numerator (float): The number to be divided.
        denominator (float): The number to divide by.
        epsilon (float): Threshold below which the denominator is considered zero.
        default_on_zero_denom (float): Value to return if denominator is effectively zero.

    Returns:
        float: The result of the division, or default_on_zero_denom if denominator is near zero.
    """
    if abs(denominator) < epsilon:
        return default_on_zero_denom
    return numerator / denominator

def normalize_vector(vector, epsilon=1e-12, fallback=None):
    """
    Normalizes a vector to unit length.

    Args:
        vector (np.ndarray): The vector to normalize.
        epsilon (float): Threshold below which the vector's magnitude is considered zero.
        fallback (np.ndarray, optional): Returned (normalized) when `vector` is degenerate.
                                         If None, a zero vector is returned instead.

    Returns:
        np.ndarray: The normalized vector, the normalized fallback, or a zero vector.
    """
    if not isinstance(vector, np.ndarray):
        vector = np.array(vector, dtype=float)

    norm = np.linalg.norm(vector)
    if norm < epsilon or not np.isfinite(norm):
        if fallback is not None:
            return normalize_vector(fallback, epsilon)
        return np.zeros_like(vector, dtype=float)
    return vector / norm

def is_finite_vector(vector, size=3):
    """True if `vector` has `size` components and none of them is NaN or infinite."""
    try:
        array = np.asarray(vector, dtype=float)
    except (TypeError, ValueError):
        return False
    return array.shape == (size,) and bool(np.all(np.isfinite(array)))

def clamp(value, lower, upper):
    return max(lower, min(upper, value))

def lerp(start, end, t):
    """Linear interpolation between two points (scalars or arrays)."""
    return start + (end - start) * t

def ease_in_out_quad(t):
    """Quadratic ease-in/ease-out. Maps [0, 1] onto [0, 1] with ease(0) = 0 and ease(1) = 1."""
    if t < 0.5:
        return 2.0 * t * t
    return 1.0 - math.pow(-2.0 * t + 2.0, 2) / 2.0

def quadratic_bezier(p0, p1, p2, t):
    """
    Evaluates the quadratic Bezier curve (p0, p1, p2) at parameter t.

    B(t) = (1-t)^2 * p0 + 2(1-t)t * p1 + t^2 * p2
    """
    one_minus_t = 1.0 - t
    return (one_minus_t * one_minus_t) * p0 + (2.0 * one_minus_t * t) * p1 + (t * t) * p2

def wrap_angle(angle_rad):
    """Normalizes an angle into [0, 2*pi). Non-finite angles map to 0."""
    if not math.isfinite(angle_rad):
        return 0.0
    wrapped = math.fmod(angle_rad, 2.0 * math.pi)
    if wrapped < 0.0:
        wrapped += 2.0 * math.pi
    if wrapped >= 2.0 * math.pi: # fmod of a tiny negative can round up to exactly 2*pi
        wrapped = 0.0
    return wrapped
