"""
SteelCad Geometry Utilities

Pure geometry helper functions shared by the snap resolver, the connection
calculators and the parametric recipes. These functions are stateless.

Vectors are numpy arrays internally and plain lists in element records.
"""

import math
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from config.tolerances import Tolerances

Vec3 = np.ndarray

WORLD_AXES = {
    "X": np.array([1.0, 0.0, 0.0]),
    "Y": np.array([0.0, 1.0, 0.0]),
    "Z": np.array([0.0, 0.0, 1.0]),
}


def as_vec3(value: Any) -> Optional[Vec3]:
    """Convert a list/tuple/array of three numbers into a float vector."""
    if value is None:
        return None
    try:
        arr = np.asarray(value, dtype=float).reshape(-1)
    except (TypeError, ValueError):
        return None
    if arr.shape[0] < 3:
        return None
    return arr[:3].copy()


def to_list(v: Sequence[float]) -> List[float]:
    """Element records store plain float lists."""
    return [float(v[0]), float(v[1]), float(v[2])]


def normalize(v: Vec3, min_length_sq: float = Tolerances.EPSILON_MATH) -> Optional[Vec3]:
    length_sq = float(np.dot(v, v))
    if length_sq <= min_length_sq:
        return None
    return v / math.sqrt(length_sq)


def midpoint(a: Vec3, b: Vec3) -> Vec3:
    return (a + b) * 0.5


def rotate_about_axis(v: Vec3, axis: Vec3, angle: float) -> Vec3:
    """Rodrigues rotation of ``v`` around the unit ``axis`` by ``angle`` radians."""
    k = normalize(axis)
    if k is None:
        return v.copy()
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return v * cos_a + np.cross(k, v) * sin_a + k * float(np.dot(k, v)) * (1.0 - cos_a)


# =============================================================================
# Rotation helpers
# =============================================================================

def look_at_matrix(direction: Vec3, up: Vec3) -> Optional[np.ndarray]:
    """
    3x3 rotation whose columns are the x/y/z basis of a look-at frame.

    The frame looks from the origin towards ``direction`` (z axis points
    backwards, x = up cross z). Returns None for a degenerate direction.
    """
    up = np.asarray(up, dtype=float)
    z = normalize(-np.asarray(direction, dtype=float))
    if z is None:
        return None
    x = np.cross(up, z)
    if float(np.dot(x, x)) <= Tolerances.EPSILON_MATH:
        # up parallel to direction: nudge z off the up axis
        nudge = np.array([1e-4, 0.0, 0.0]) if abs(up[2]) == 1.0 else np.array([0.0, 0.0, 1e-4])
        z = normalize(z + nudge)
        if z is None:
            return None
        x = np.cross(up, z)
    x = normalize(x)
    if x is None:
        return None
    y = np.cross(z, x)
    return np.column_stack((x, y, z))


def euler_zyx_from_matrix(m: np.ndarray) -> Tuple[float, float, float]:
    """Decompose a rotation matrix into ZYX Euler angles (radians, x/y/z order)."""
    m31 = float(np.clip(m[2, 0], -1.0, 1.0))
    y = math.asin(-m31)
    if abs(m31) < 0.9999999:
        x = math.atan2(m[2, 1], m[2, 2])
        z = math.atan2(m[1, 0], m[0, 0])
    else:
        x = 0.0
        z = math.atan2(-m[0, 1], m[1, 1])
    return x, y, z


def matrix_from_euler(values_deg: Sequence[float], order: str = "ZYX") -> np.ndarray:
    """
    Rotation matrix for Euler angles (x, y, z in degrees).

    ``order`` lists the axes left to right in multiplication order, so "ZYX"
    is Rz @ Ry @ Rx and is the inverse of :func:`euler_zyx_from_matrix`.
    """
    ax, ay, az = (math.radians(float(a)) for a in values_deg)
    cx, sx = math.cos(ax), math.sin(ax)
    cy, sy = math.cos(ay), math.sin(ay)
    cz, sz = math.cos(az), math.sin(az)
    basis = {
        "X": np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]]),
        "Y": np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]]),
        "Z": np.array([[cz, -sz, 0.0], [sz, cz, 0.0], [0.0, 0.0, 1.0]]),
    }
    m = np.identity(3)
    for axis in order.upper():
        m = m @ basis[axis]
    return m


def matrix_from_rotation_record(rotation: Optional[dict]) -> np.ndarray:
    """Rotation record ({type, order, values, units}) to a matrix; identity when absent."""
    if not rotation or rotation.get("type") != "Euler":
        return np.identity(3)
    values = list(rotation.get("values") or [0.0, 0.0, 0.0])
    if rotation.get("units") == "radians":
        values = [math.degrees(v) for v in values]
    return matrix_from_euler(values, rotation.get("order", "XYZ"))


def look_at_rotation(direction: Vec3, up: Vec3) -> Optional[dict]:
    """
    Plate rotation record built from (direction, up).

    Returns None when the direction is too short to orient anything.
    """
    if normalize(np.asarray(direction, dtype=float), Tolerances.DIRECTION_MIN_LENGTH_SQ) is None:
        logger.warning("[GEOMETRY] Degenerate direction, skipping orientation")
        return None
    m = look_at_matrix(direction, up)
    if m is None:
        return None
    x, y, z = euler_zyx_from_matrix(m)
    return rotation_record([math.degrees(x), math.degrees(y), math.degrees(z)])


def rotation_record(values_deg: Sequence[float]) -> dict:
    return {
        "type": "Euler",
        "order": "ZYX",
        "values": [float(v) for v in values_deg],
        "units": "degrees",
    }


def plan_orientation_deg(start: Vec3, end: Vec3) -> Optional[float]:
    """
    Rotation about +Y (degrees) that turns the -Z web direction onto the
    horizontal projection of ``end - start``. None for a vertical or
    zero-length span.
    """
    d = np.array([end[0] - start[0], 0.0, end[2] - start[2]])
    d = normalize(d, Tolerances.DIRECTION_MIN_LENGTH_SQ)
    if d is None:
        return None
    return math.degrees(math.atan2(-d[0], -d[2]))


# =============================================================================
# Ray / segment / line math
# =============================================================================

def closest_point_on_segment_to_ray(
    ray_origin: Vec3, ray_dir: Vec3, seg_start: Vec3, seg_end: Vec3
) -> Tuple[Vec3, float]:
    """
    Point on the segment closest to the ray and the squared distance between
    them. The ray parameter is clamped to t >= 0.
    """
    seg_center = (seg_start + seg_end) * 0.5
    seg_vec = seg_end - seg_start
    seg_extent = float(np.linalg.norm(seg_vec)) * 0.5
    if seg_extent <= Tolerances.EPSILON_MATH:
        point = seg_start.copy()
        return point, distance_sq_point_to_ray(point, ray_origin, ray_dir)
    seg_dir = seg_vec / (seg_extent * 2.0)
    d = normalize(ray_dir)
    if d is None:
        return seg_start.copy(), float(np.dot(seg_start - ray_origin, seg_start - ray_origin))

    diff = ray_origin - seg_center
    a01 = -float(np.dot(d, seg_dir))
    b0 = float(np.dot(diff, d))
    b1 = -float(np.dot(diff, seg_dir))
    det = abs(1.0 - a01 * a01)

    if det > Tolerances.EPSILON_MATH:
        s0 = a01 * b1 - b0
        s1 = a01 * b0 - b1
        ext_det = seg_extent * det
        if s0 >= 0.0:
            if -ext_det <= s1 <= ext_det:
                s1 /= det
            else:
                s1 = seg_extent if s1 > ext_det else -seg_extent
                s0 = max(0.0, -(a01 * s1 + b0))
        else:
            s1 = float(np.clip(-b1, -seg_extent, seg_extent))
            s0 = 0.0
    else:
        s1 = -seg_extent if a01 > 0.0 else seg_extent
        s0 = max(0.0, -(a01 * s1 + b0))

    on_ray = ray_origin + d * s0
    on_seg = seg_center + seg_dir * s1
    delta = on_ray - on_seg
    return on_seg, float(np.dot(delta, delta))


def distance_sq_point_to_ray(point: Vec3, ray_origin: Vec3, ray_dir: Vec3) -> float:
    d = normalize(ray_dir)
    v = point - ray_origin
    if d is None:
        return float(np.dot(v, v))
    t = max(0.0, float(np.dot(v, d)))
    closest = ray_origin + d * t
    delta = point - closest
    return float(np.dot(delta, delta))


def line_line_intersection(
    p1: Vec3, q1: Vec3, p2: Vec3, q2: Vec3,
    parallel_eps: float = Tolerances.INTERSECTION_PARALLEL,
    coplanar_tol: float = Tolerances.INTERSECTION_COPLANAR,
) -> Optional[Vec3]:
    """
    Intersection of the infinite lines through (p1, q1) and (p2, q2).

    Degenerate segments and (near) parallel pairs are rejected before any
    division; skew lines farther apart than ``coplanar_tol`` return None.
    """
    v1 = normalize(q1 - p1, Tolerances.INTERSECTION_MIN_LENGTH)
    v2 = normalize(q2 - p2, Tolerances.INTERSECTION_MIN_LENGTH)
    if v1 is None or v2 is None:
        return None

    v12 = np.cross(v1, v2)
    cross_sq = float(np.dot(v12, v12))
    if cross_sq < parallel_eps:
        return None

    w0 = p1 - p2
    if abs(float(np.dot(w0, v12))) > coplanar_tol:
        return None

    # p1 + s*v1 = p2 + t*v2  =>  s = ((p2 - p1) x v2) . v12 / |v12|^2
    s = float(np.dot(np.cross(-w0, v2), v12)) / cross_sq
    return p1 + v1 * s
