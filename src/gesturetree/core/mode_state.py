from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from gesturetree.core.gesture_classifier import Gesture, GestureReading

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    TREE = "TREE"
    SCATTER = "SCATTER"
    FOCUS = "FOCUS"


@dataclass(frozen=True)
class ModeState:
    mode: Mode = Mode.TREE
    hand_x: float = 0.0
    hand_y: float = 0.0
    active_photo_index: int = 0


def apply_gesture(state: ModeState, reading: Optional[GestureReading]) -> ModeState:
    """
    根据一帧分类结果推进状态机，返回新的快照。
    reading 为 None（本帧无手）时原样返回。
    """

    if reading is None:
        return state

    mode = state.mode
    photo_index = state.active_photo_index

    if reading.gesture is Gesture.PINCH:
        # 持续捏合时不重复触发
        if mode is not Mode.FOCUS:
            mode = Mode.FOCUS
            photo_index += 1
    elif reading.gesture is Gesture.FIST:
        mode = Mode.TREE
    elif reading.gesture is Gesture.OPEN:
        mode = Mode.SCATTER

    if mode is not state.mode:
        logger.info("模式切换: %s -> %s (照片索引 %d)", state.mode.value, mode.value, photo_index)

    return replace(
        state,
        mode=mode,
        hand_x=reading.hand_x,
        hand_y=reading.hand_y,
        active_photo_index=photo_index,
    )


class ModeStateChannel:
    """检测节奏与渲染节奏之间唯一共享的数据，用一把锁保护发布/读取。"""

    def __init__(self, initial: Optional[ModeState] = None) -> None:
        self._lock = threading.Lock()
        self._state = initial or ModeState()

    def snapshot(self) -> ModeState:
        with self._lock:
            return self._state

    def publish(self, reading: Optional[GestureReading]) -> ModeState:
        with self._lock:
            self._state = apply_gesture(self._state, reading)
            return self._state
