from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass
class PerspectiveCamera:
    """固定朝向 -Z 的透视相机。"""

    position: Tuple[float, float, float] = (0.0, 2.0, 50.0)
    fov_deg: float = 50.0
    near: float = 0.1
    far: float = 1000.0


def rotate_rig(points: np.ndarray, yaw: float, pitch: float) -> np.ndarray:
    """按根节点的 XYZ 欧拉角 (pitch, yaw, 0) 旋转点集。"""

    cy, sy = math.cos(yaw), math.sin(yaw)
    cx, sx = math.cos(pitch), math.sin(pitch)
    rot_y = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    rot_x = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    return points @ (rot_x @ rot_y).T


def project_points(
    points: np.ndarray, camera: PerspectiveCamera, width: int, height: int
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    将世界坐标投影到像素坐标。

    Returns:
        (pixels (N, 2) int32, depth (N,), visible (N,) bool)
    """

    rel = points - np.asarray(camera.position, dtype=np.float64)
    depth = -rel[:, 2]
    visible = (depth > camera.near) & (depth < camera.far)
    safe_depth = np.where(visible, depth, 1.0)

    focal = focal_length(camera, height)
    px = width / 2.0 + rel[:, 0] * focal / safe_depth
    py = height / 2.0 - rel[:, 1] * focal / safe_depth
    visible &= (px >= 0) & (px < width) & (py >= 0) & (py < height)
    pixels = np.stack([px, py], axis=-1).astype(np.int32)
    return pixels, depth, visible


def focal_length(camera: PerspectiveCamera, height: int) -> float:
    return (height / 2.0) / math.tan(math.radians(camera.fov_deg) / 2.0)
