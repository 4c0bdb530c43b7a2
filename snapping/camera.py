"""
SteelCad - Camera Helpers
=========================

Picking ray and world -> normalized device coordinates (NDC) projection for
the snap resolver. The renderer owns the real camera; this is the minimal
math the resolver needs, computed with numpy.

NDC follow the usual convention: x and y in [-1, 1], +y up.
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from modeling.geometry_utils import as_vec3, normalize


@dataclass
class Ray:
    """Picking ray. ``camera`` is used to project snap candidates to screen space."""
    origin: np.ndarray
    direction: np.ndarray
    camera: Optional["PerspectiveCamera"] = None

    def __post_init__(self):
        self.origin = as_vec3(self.origin)
        d = normalize(as_vec3(self.direction))
        if d is None:
            raise ValueError("Ray direction must not be zero")
        self.direction = d

    def at(self, t: float) -> np.ndarray:
        return self.origin + self.direction * t


@dataclass
class PerspectiveCamera:
    """
    Look-at perspective camera.

    Usage:
        camera = PerspectiveCamera(position=[0, 0, 5000], target=[0, 0, 0])
        ray = camera.ray_through((0.1, -0.2))
        ndc = camera.project([100, 0, 0])
    """
    position: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 5000.0]))
    target: np.ndarray = field(default_factory=lambda: np.zeros(3))
    up: np.ndarray = field(default_factory=lambda: np.array([0.0, 1.0, 0.0]))
    fov: float = 50.0       # vertical, degrees
    aspect: float = 1.0
    near: float = 1.0
    far: float = 100000.0

    def __post_init__(self):
        self.position = as_vec3(self.position)
        self.target = as_vec3(self.target)
        self.up = as_vec3(self.up)

    # -------------------------------------------------------------------------

    def view_matrix(self) -> np.ndarray:
        z = normalize(self.position - self.target)
        if z is None:
            raise ValueError("Camera position and target coincide")
        x = normalize(np.cross(self.up, z))
        if x is None:
            # up parallel to the view direction
            x = normalize(np.cross(np.array([0.0, 0.0, 1.0]) if abs(z[2]) < 0.9 else np.array([1.0, 0.0, 0.0]), z))
        y = np.cross(z, x)

        view = np.eye(4)
        view[0, :3], view[1, :3], view[2, :3] = x, y, z
        view[:3, 3] = -view[:3, :3] @ self.position
        return view

    def projection_matrix(self) -> np.ndarray:
        f = 1.0 / math.tan(math.radians(self.fov) / 2.0)
        n, fa = self.near, self.far
        proj = np.zeros((4, 4))
        proj[0, 0] = f / self.aspect
        proj[1, 1] = f
        proj[2, 2] = (fa + n) / (n - fa)
        proj[2, 3] = 2.0 * fa * n / (n - fa)
        proj[3, 2] = -1.0
        return proj

    # -------------------------------------------------------------------------

    def project(self, point) -> np.ndarray:
        """World point -> NDC (x, y, z)."""
        p = np.append(as_vec3(point), 1.0)
        clip = self.projection_matrix() @ self.view_matrix() @ p
        w = clip[3] if abs(clip[3]) > 1e-12 else 1e-12
        return clip[:3] / w

    def unproject(self, ndc: Tuple[float, float, float]) -> np.ndarray:
        inverse = np.linalg.inv(self.projection_matrix() @ self.view_matrix())
        world = inverse @ np.array([ndc[0], ndc[1], ndc[2], 1.0])
        return world[:3] / world[3]

    def ray_through(self, pointer: Tuple[float, float]) -> Ray:
        """Picking ray from the camera through the NDC ``pointer``."""
        far_point = self.unproject((pointer[0], pointer[1], 0.5))
        return Ray(origin=self.position.copy(), direction=far_point - self.position, camera=self)

    def screen_distance(self, point, pointer: Tuple[float, float]) -> float:
        ndc = self.project(point)
        return math.hypot(ndc[0] - pointer[0], ndc[1] - pointer[1])
