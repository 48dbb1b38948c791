from __future__ import annotations

import numpy as np

# 四元数统一使用 (x, y, z, w) 顺序，欧拉角统一使用 XYZ 顺序。

IDENTITY = np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)


def yaw_quaternion(angle) -> np.ndarray:
    """绕 Y 轴旋转 angle 弧度的四元数；angle 可以是标量或一维数组。"""

    half = np.asarray(angle, dtype=np.float64) * 0.5
    zeros = np.zeros_like(half)
    return np.stack([zeros, np.sin(half), zeros, np.cos(half)], axis=-1)


def euler_to_quaternion(euler: np.ndarray) -> np.ndarray:
    """XYZ 欧拉角 (..., 3) -> 四元数 (..., 4)。"""

    half = np.asarray(euler, dtype=np.float64) * 0.5
    c1, c2, c3 = np.cos(half[..., 0]), np.cos(half[..., 1]), np.cos(half[..., 2])
    s1, s2, s3 = np.sin(half[..., 0]), np.sin(half[..., 1]), np.sin(half[..., 2])
    return np.stack(
        [
            s1 * c2 * c3 + c1 * s2 * s3,
            c1 * s2 * c3 - s1 * c2 * s3,
            c1 * c2 * s3 + s1 * s2 * c3,
            c1 * c2 * c3 - s1 * s2 * s3,
        ],
        axis=-1,
    )


def quaternion_to_euler(quat: np.ndarray) -> np.ndarray:
    """四元数 (..., 4) -> XYZ 欧拉角 (..., 3)，经由旋转矩阵分解。"""

    q = np.asarray(quat, dtype=np.float64)
    x, y, z, w = q[..., 0], q[..., 1], q[..., 2], q[..., 3]

    m11 = 1.0 - 2.0 * (y * y + z * z)
    m12 = 2.0 * (x * y - z * w)
    m13 = 2.0 * (x * z + y * w)
    m22 = 1.0 - 2.0 * (x * x + z * z)
    m23 = 2.0 * (y * z - x * w)
    m32 = 2.0 * (y * z + x * w)
    m33 = 1.0 - 2.0 * (x * x + y * y)

    ey = np.arcsin(np.clip(m13, -1.0, 1.0))
    # 万向锁附近退化为只求 X 轴
    gimbal = np.abs(m13) >= 0.9999999
    ex = np.where(gimbal, np.arctan2(m32, m22), np.arctan2(-m23, m33))
    ez = np.where(gimbal, 0.0, np.arctan2(-m12, m11))
    return np.stack([ex, ey, ez], axis=-1)


def normalize(quat: np.ndarray) -> np.ndarray:
    q = np.asarray(quat, dtype=np.float64)
    norm = np.linalg.norm(q, axis=-1, keepdims=True)
    norm = np.where(norm < 1e-12, 1.0, norm)
    return q / norm


def slerp(current: np.ndarray, target: np.ndarray, alpha: float) -> np.ndarray:
    """
    球面插值，沿最短路径从 current 转向 target。
    支持 (4,) 或 (N, 4) 的批量输入；alpha 为标量。
    """

    a = np.asarray(current, dtype=np.float64)
    b = np.array(target, dtype=np.float64)
    if alpha <= 0.0:
        return a.copy()
    if alpha >= 1.0:
        return b

    cos_half = np.sum(a * b, axis=-1, keepdims=True)
    flip = cos_half < 0.0
    b = np.where(flip, -b, b)
    cos_half = np.abs(cos_half)

    sqr_sin = np.clip(1.0 - cos_half * cos_half, 0.0, None)
    near = sqr_sin <= np.finfo(np.float64).eps
    sin_half = np.sqrt(np.where(near, 1.0, sqr_sin))
    half_theta = np.arctan2(sin_half, cos_half)

    ratio_a = np.where(near, 1.0 - alpha, np.sin((1.0 - alpha) * half_theta) / sin_half)
    ratio_b = np.where(near, alpha, np.sin(alpha * half_theta) / sin_half)
    blended = a * ratio_a + b * ratio_b
    # 两者已重合时保持原值
    same = cos_half >= 1.0
    return np.where(same, a, normalize(blended))
