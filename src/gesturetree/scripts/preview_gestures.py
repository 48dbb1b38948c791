from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import cv2
import numpy as np
from PyQt6 import QtCore, QtGui, QtWidgets

from gesturetree.core.gesture_classifier import GestureClassifier, GestureThresholds
from gesturetree.core.hand_tracker import HandTracker, HandTrackerConfig
from gesturetree.core.mode_state import ModeStateChannel

HAND_CONNECTIONS: Sequence[tuple[int, int]] = (
    (0, 1),
    (1, 2),
    (2, 3),
    (3, 4),
    (0, 5),
    (5, 6),
    (6, 7),
    (7, 8),
    (5, 9),
    (9, 10),
    (10, 11),
    (11, 12),
    (9, 13),
    (13, 14),
    (14, 15),
    (15, 16),
    (13, 17),
    (17, 18),
    (18, 19),
    (19, 20),
    (0, 17),
)


@dataclass
class PreviewConfig:
    camera_index: int
    mirror: bool
    thresholds: GestureThresholds
    hand_model_path: Optional[Path] = None


class GesturePreviewWindow(QtWidgets.QMainWindow):
    """实时显示捏合距离、手指张开度、手势标签以及状态机的模式。"""

    def __init__(self, cfg: PreviewConfig) -> None:
        super().__init__()
        self.setWindowTitle("GestureTree 手势预览")

        self.cfg = cfg
        self.cap = cv2.VideoCapture(cfg.camera_index)
        if not self.cap.isOpened():
            raise RuntimeError(f"无法打开摄像头 {cfg.camera_index}")

        self.tracker = HandTracker(HandTrackerConfig(model_path=cfg.hand_model_path))
        self.classifier = GestureClassifier(cfg.thresholds)
        self.channel = ModeStateChannel()

        central = QtWidgets.QWidget(self)
        self.setCentralWidget(central)
        layout = QtWidgets.QVBoxLayout(central)

        self.video_label = QtWidgets.QLabel()
        self.video_label.setMinimumSize(640, 360)
        self.video_label.setSizePolicy(
            QtWidgets.QSizePolicy.Policy.Expanding,
            QtWidgets.QSizePolicy.Policy.Expanding,
        )
        self.video_label.setAlignment(QtCore.Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.video_label)

        self.status_bar = QtWidgets.QStatusBar()
        self.setStatusBar(self.status_bar)

        self.timer = QtCore.QTimer(self)
        self.timer.timeout.connect(self._update_frame)
        self.timer.start(30)

    def _update_frame(self) -> None:
        success, frame = self.cap.read()
        if not success:
            self.status_bar.showMessage("摄像头读取失败，正在重试…")
            return

        if self.cfg.mirror:
            frame = cv2.flip(frame, 1)

        packet = self.tracker.process(frame)
        text_lines = ["未检测到手部"]

        if packet is not None:
            self._draw_landmarks(frame, packet.landmarks)
            reading = self.classifier.classify(packet)
            state = self.channel.publish(reading)
            text_lines = [
                f"pinch={reading.pinch_distance:.3f} (<{self.cfg.thresholds.pinch})  "
                f"spread={reading.finger_spread:.3f} (<{self.cfg.thresholds.fist} / >{self.cfg.thresholds.open})",
                f"gesture={reading.gesture.value}  hand=({reading.hand_x:+.2f}, {reading.hand_y:+.2f})",
            ]
        else:
            state = self.channel.snapshot()
        text_lines.append(f"mode={state.mode.value}  photo_index={state.active_photo_index}")

        for idx, text in enumerate(text_lines):
            cv2.putText(
                frame,
                text,
                (20, 40 + idx * 35),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.8,
                (0, 255, 0),
                2,
                cv2.LINE_AA,
            )

        h, w, ch = frame.shape
        qt_image = QtGui.QImage(frame.data, w, h, ch * w, QtGui.QImage.Format.Format_BGR888)
        pixmap = QtGui.QPixmap.fromImage(qt_image)
        scaled = pixmap.scaled(
            self.video_label.size(),
            QtCore.Qt.AspectRatioMode.KeepAspectRatio,
            QtCore.Qt.TransformationMode.SmoothTransformation,
        )
        self.video_label.setPixmap(scaled)
        self.status_bar.showMessage(" | ".join(text_lines))

    def _draw_landmarks(self, frame_bgr: np.ndarray, landmarks_np: np.ndarray) -> None:
        h, w, _ = frame_bgr.shape
        points: list[tuple[int, int]] = []
        for x, y, _ in landmarks_np:
            points.append((int(np.clip(x, 0.0, 1.0) * w), int(np.clip(y, 0.0, 1.0) * h)))

        for start, end in HAND_CONNECTIONS:
            cv2.line(frame_bgr, points[start], points[end], (255, 255, 0), 2)
        for px, py in points:
            cv2.circle(frame_bgr, (px, py), 4, (0, 255, 0), -1)
        # 捏合判定使用的两点
        cv2.line(frame_bgr, points[4], points[8], (0, 0, 255), 2)

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:
        self.timer.stop()
        self.tracker.close()
        if self.cap.isOpened():
            self.cap.release()
        super().closeEvent(event)


def parse_args() -> PreviewConfig:
    parser = argparse.ArgumentParser(description="实时预览手势分类与模式切换")
    parser.add_argument("--camera-index", type=int, default=0, help="摄像头索引 (默认: 0)")
    parser.add_argument("--mirror", action="store_true", help="启用水平镜像")
    parser.add_argument("--pinch", type=float, default=0.05, help="捏合阈值 (默认: 0.05)")
    parser.add_argument("--fist", type=float, default=0.25, help="握拳阈值 (默认: 0.25)")
    parser.add_argument("--open", type=float, default=0.4, help="张开阈值 (默认: 0.4)")
    parser.add_argument(
        "--hand-model-path",
        type=Path,
        default=None,
        help="MediaPipe Hand Landmarker 模型路径（默认 weights/hand_landmarker.task）",
    )
    args = parser.parse_args()

    project_root = Path(__file__).resolve().parents[3]
    hand_model_path = args.hand_model_path or Path("weights/hand_landmarker.task")
    if not hand_model_path.is_absolute():
        hand_model_path = project_root / hand_model_path

    return PreviewConfig(
        camera_index=args.camera_index,
        mirror=args.mirror,
        thresholds=GestureThresholds(pinch=args.pinch, fist=args.fist, open=args.open),
        hand_model_path=hand_model_path,
    )


def main() -> None:
    cfg = parse_args()
    app = QtWidgets.QApplication([])
    window = GesturePreviewWindow(cfg)
    window.show()
    app.exec()


if __name__ == "__main__":
    main()
