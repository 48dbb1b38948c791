from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from gesturetree.errors import ConfigurationError, InputUnavailable
from gesturetree.utils.landmark_preprocess import (
    as_landmark_array,
    compute_hand_center,
    finger_spread,
    pinch_distance,
)


class Gesture(str, Enum):
    PINCH = "pinch"
    FIST = "fist"
    OPEN = "open"
    NONE = "none"


@dataclass
class GestureThresholds:
    """与关键点坐标同一归一化单位的阈值。"""

    pinch: float = 0.05
    fist: float = 0.25
    open: float = 0.4

    def validate(self) -> None:
        for name in ("pinch", "fist", "open"):
            value = getattr(self, name)
            if not value > 0.0:
                raise ConfigurationError(f"手势阈值 {name} 必须为正数，当前为 {value}")
        if self.fist >= self.open:
            raise ConfigurationError(
                f"握拳阈值 ({self.fist}) 必须小于张开阈值 ({self.open})"
            )


@dataclass(frozen=True)
class GestureReading:
    """单帧分类结果：离散手势 + 连续指向信号。"""

    gesture: Gesture
    hand_x: float
    hand_y: float
    pinch_distance: float
    finger_spread: float


class GestureClassifier:
    """基于关键点几何的启发式手势分类，按 捏合 > 握拳 > 张开 的顺序判定。"""

    def __init__(self, thresholds: Optional[GestureThresholds] = None) -> None:
        self.thresholds = thresholds or GestureThresholds()
        self.thresholds.validate()

    def classify(self, landmarks) -> Optional[GestureReading]:
        """无手时返回 None，模式保持不变。"""

        try:
            return self.read(landmarks)
        except InputUnavailable:
            return None

    def read(self, landmarks) -> GestureReading:
        if landmarks is None:
            raise InputUnavailable("本帧未检测到手部")
        coords = as_landmark_array(landmarks)

        pinch = pinch_distance(coords)
        spread = finger_spread(coords)

        if pinch < self.thresholds.pinch:
            gesture = Gesture.PINCH
        elif spread < self.thresholds.fist:
            gesture = Gesture.FIST
        elif spread > self.thresholds.open:
            gesture = Gesture.OPEN
        else:
            gesture = Gesture.NONE

        cx, cy = compute_hand_center(coords)
        return GestureReading(
            gesture=gesture,
            hand_x=(cx - 0.5) * 2.0,
            hand_y=(cy - 0.5) * 2.0,
            pinch_distance=pinch,
            finger_spread=spread,
        )
