from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

WRIST = 0
THUMB_TIP = 4
INDEX_TIP = 8
MIDDLE_MCP = 9
FINGER_TIPS = [8, 12, 16, 20]
NUM_LANDMARKS = 21


@dataclass
class LandmarkPacket:
    """打包 MediaPipe 返回的手部关键点数组。"""

    handedness: str
    landmarks: np.ndarray  # (21, 3) 归一化坐标
    world_landmarks: Optional[np.ndarray] = None  # (21, 3)


def as_landmark_array(landmarks) -> np.ndarray:
    """接受 LandmarkPacket 或任意 (21, 3) 数组，返回 float64 数组。"""

    if isinstance(landmarks, LandmarkPacket):
        landmarks = landmarks.landmarks
    coords = np.asarray(landmarks, dtype=np.float64)
    if coords.shape != (NUM_LANDMARKS, 3):
        raise ValueError(f"landmarks 形状必须为 (21, 3)，实际为 {coords.shape}")
    return coords


def pinch_distance(landmarks: np.ndarray) -> float:
    """拇指尖 (4) 与食指尖 (8) 的三维欧氏距离。"""

    return float(np.linalg.norm(landmarks[THUMB_TIP] - landmarks[INDEX_TIP]))


def finger_spread(landmarks: np.ndarray) -> float:
    """手腕到食指/中指/无名指/小指指尖的平均距离。"""

    tips = landmarks[FINGER_TIPS]
    return float(np.linalg.norm(tips - landmarks[WRIST], axis=1).mean())


def compute_hand_center(landmarks: np.ndarray) -> Tuple[float, float]:
    """以中指根部 (9) 为手部中心，返回 [0,1] 范围的 x, y。"""

    center = landmarks[MIDDLE_MCP]
    return float(center[0]), float(center[1])


def save_landmark_csv(landmarks: np.ndarray, csv_path: Path) -> None:
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    with csv_path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["x", "y", "z"])
        for (x, y, z) in as_landmark_array(landmarks):
            writer.writerow([float(x), float(y), float(z)])


def load_landmark_csv(csv_path: Path) -> np.ndarray:
    """读取 record_landmarks 保存的单帧关键点。"""

    with csv_path.open("r", newline="") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if header != ["x", "y", "z"]:
            raise ValueError(f"不是关键点文件：{csv_path}")
        rows = [[float(v) for v in row] for row in reader if row]
    return as_landmark_array(rows)
