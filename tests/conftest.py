from __future__ import annotations

import numpy as np
import pytest

WRIST = np.array([0.5, 0.8, 0.0])
# 四指指尖相对手腕的方向（单位向量，指向画面上方并略微展开）
TIP_DIRECTIONS = {
    8: np.array([-0.3, -1.0, 0.0]),
    12: np.array([-0.1, -1.0, 0.0]),
    16: np.array([0.1, -1.0, 0.0]),
    20: np.array([0.3, -1.0, 0.0]),
}


def build_hand(pinch: float, spread: float, center=(0.5, 0.5)) -> np.ndarray:
    """构造一只合成的手：指定捏合距离、平均指尖距离与中指根部坐标。"""

    landmarks = np.tile(WRIST, (21, 1))
    for idx, direction in TIP_DIRECTIONS.items():
        landmarks[idx] = WRIST + spread * direction / np.linalg.norm(direction)
    landmarks[4] = landmarks[8] + np.array([pinch, 0.0, 0.0])
    landmarks[9] = np.array([center[0], center[1], 0.0])
    return landmarks


@pytest.fixture
def make_hand():
    return build_hand
