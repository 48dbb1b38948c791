from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks.python import BaseOptions
from mediapipe.tasks.python import vision

from gesturetree.utils.landmark_preprocess import LandmarkPacket

MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)


@dataclass
class HandTrackerConfig:
    model_path: Optional[Path] = None
    max_num_hands: int = 1
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    frame_interval_ms: int = 33


def _points(landmark_list) -> np.ndarray:
    return np.array([[lm.x, lm.y, lm.z] for lm in landmark_list], dtype=np.float32)


def _top_category(hand_info):
    # MediaPipe 0.10.21+ 返回 Classifications 对象，旧版本为列表
    if hasattr(hand_info, "categories"):
        hand_info = hand_info.categories
    return hand_info[0] if hand_info else None


def primary_hand_index(result) -> int:
    """检测到多只手时取左右手置信度最高的一只，引擎只跟随一只手。"""

    best_index, best_score = 0, -1.0
    for idx, hand_info in enumerate(result.handedness or []):
        category = _top_category(hand_info)
        if category is not None and category.score > best_score:
            best_index, best_score = idx, category.score
    return best_index if best_index < len(result.hand_landmarks) else 0


def result_to_packet(result) -> Optional[LandmarkPacket]:
    if not result.hand_landmarks:
        return None

    idx = primary_hand_index(result)
    world_np = None
    if result.hand_world_landmarks and len(result.hand_world_landmarks) > idx:
        world_np = _points(result.hand_world_landmarks[idx])

    handedness = "Right"
    if result.handedness and len(result.handedness) > idx:
        category = _top_category(result.handedness[idx])
        if category is not None:
            handedness = category.category_name

    return LandmarkPacket(
        handedness=handedness,
        landmarks=_points(result.hand_landmarks[idx]),
        world_landmarks=world_np,
    )


class HandTracker:
    """MediaPipe HandLandmarker 的 VIDEO 模式封装。"""

    def __init__(self, cfg: HandTrackerConfig) -> None:
        self.cfg = cfg
        self._timestamp_ms = 0

        model_path = cfg.model_path
        if model_path is None:
            model_path = Path(__file__).resolve().parents[3] / "weights" / "hand_landmarker.task"
        if not model_path.exists():
            raise FileNotFoundError(
                f"未找到手部关键点模型：{model_path}\n"
                f"请运行 python download_models.py，或从 {MODEL_URL} 手动下载并放置于 weights/ 目录。"
            )

        options = vision.HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=cfg.max_num_hands,
            min_hand_detection_confidence=cfg.min_detection_confidence,
            min_hand_presence_confidence=cfg.min_presence_confidence,
            min_tracking_confidence=cfg.min_tracking_confidence,
        )
        self._landmarker = vision.HandLandmarker.create_from_options(options)

    def process(self, frame_bgr) -> Optional[LandmarkPacket]:
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        # VIDEO 模式要求时间戳单调递增
        self._timestamp_ms += self.cfg.frame_interval_ms
        return result_to_packet(self._landmarker.detect_for_video(mp_image, self._timestamp_ms))

    def detect(self, frame_bgr) -> Optional[np.ndarray]:
        """只返回分类器需要的 (21, 3) 关键点；无手时为 None。"""

        packet = self.process(frame_bgr)
        return None if packet is None else packet.landmarks

    def close(self) -> None:
        if hasattr(self._landmarker, "close"):
            self._landmarker.close()
