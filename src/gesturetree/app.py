from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import cv2
import yaml

from gesturetree.core.frame_driver import EngineConfig, ParticleEngine
from gesturetree.core.hand_tracker import HandTracker, HandTrackerConfig
from gesturetree.core.particles import Particle
from gesturetree.core.preview_renderer import PreviewRenderer, PreviewRendererConfig
from gesturetree.errors import InvalidStateError
from gesturetree.utils.photo_library import PhotoLibrary, load_photo, make_greeting_card

HUD_COLOR = (55, 175, 212)
MODE_HINTS = (
    ("TREE", "Tree Mode (Fist)"),
    ("SCATTER", "Scatter Mode (Open)"),
    ("FOCUS", "Focus Mode (Pinch)"),
)


def load_config(project_root: Path) -> dict:
    """从项目根目录加载配置文件

    Args:
        project_root: 项目根目录路径

    Returns:
        配置字典

    Raises:
        FileNotFoundError: 如果配置文件不存在
    """
    config_path = project_root / "config.yaml"
    if not config_path.exists():
        raise FileNotFoundError(
            f"未找到配置文件：{config_path}\n"
            "请确保项目根目录存在 config.yaml 文件。\n"
            "你可以从 config.yaml.example 复制一份并修改。"
        )
    with config_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@dataclass
class CameraConfig:
    index: int = 0
    width: int = 960
    height: int = 540
    mirror: bool = True


class Clock:
    """引擎启动以来经过的秒数。"""

    def __init__(self) -> None:
        self._start = time.perf_counter()

    def elapsed(self) -> float:
        return time.perf_counter() - self._start


class TreeApp:
    """宿主程序：摄像头 -> 手部关键点 -> 粒子引擎 -> OpenCV 预览。"""

    def __init__(self, config: Dict[str, Any], project_root: Path) -> None:
        self.config = config
        self.project_root = project_root
        self.engine: Optional[ParticleEngine] = None
        self.renderer: Optional[PreviewRenderer] = None
        self.hud_hidden = False

        photo_cfg = config.get("photos", {}) or {}
        self.library = PhotoLibrary(
            self.resolve_path(photo_cfg.get("directory")),
            extra=[self.resolve_path(p) for p in photo_cfg.get("files", []) or []],
        )
        self.greeting = bool(photo_cfg.get("greeting_card", True))

    def resolve_path(self, raw: Optional[str], default: Optional[str] = None) -> Optional[Path]:
        target = raw or default
        if not target:
            return None
        candidate = Path(target)
        if not candidate.is_absolute():
            candidate = (self.project_root / candidate).resolve()
        return candidate

    def start(self) -> ParticleEngine:
        engine_cfg = EngineConfig.from_dict(self.config.get("engine"))
        initial = [make_greeting_card()] if self.greeting else []
        self.engine = ParticleEngine(engine_cfg, initial_photos=initial)

        render_cfg = self.config.get("render", {}) or {}
        self.renderer = PreviewRenderer(
            PreviewRendererConfig(
                width=int(render_cfg.get("width", 1280)),
                height=int(render_cfg.get("height", 720)),
            ),
            self.engine.registry,
        )
        return self.engine

    def add_photo(self, payload) -> Particle:
        if self.engine is None:
            raise InvalidStateError("粒子引擎尚未启动，无法添加照片")
        return self.engine.add_photo(payload)

    def load_next_photo(self) -> bool:
        path = self.library.next_path()
        if path is None:
            print("照片目录中没有更多图片。")
            return False
        try:
            self.add_photo(load_photo(path))
        except ValueError as exc:
            print(f"⚠ {exc}")
            return False
        print(f"✓ 已添加照片：{path.name}")
        return True

    def draw_hud(self, canvas) -> None:
        if self.hud_hidden or self.engine is None:
            return
        state = self.engine.state
        for row, (mode, label) in enumerate(MODE_HINTS):
            active = state.mode.value == mode
            cv2.putText(
                canvas,
                ("> " if active else "  ") + label,
                (30, canvas.shape[0] - 90 + row * 25),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.55,
                HUD_COLOR if active else (60, 80, 90),
                1,
                cv2.LINE_AA,
            )
        reading = self.engine.last_reading
        if reading is not None:
            cv2.putText(
                canvas,
                f"pinch {reading.pinch_distance:.3f}  spread {reading.finger_spread:.3f}  {reading.gesture.value}",
                (30, 40),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.55,
                HUD_COLOR,
                1,
                cv2.LINE_AA,
            )
        cv2.putText(
            canvas,
            "u: add photo  h: hide  q: quit",
            (30, canvas.shape[0] - 15),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.45,
            (60, 80, 90),
            1,
            cv2.LINE_AA,
        )

    def run(self, tracker: Optional[HandTracker], capture: Optional[cv2.VideoCapture], mirror: bool) -> None:
        engine = self.start()
        preload = int((self.config.get("photos", {}) or {}).get("preload", 0))
        for _ in range(min(preload, len(self.library))):
            self.load_next_photo()

        clock = Clock()
        while True:
            landmarks = None
            if capture is not None and tracker is not None:
                success, frame = capture.read()
                if not success:
                    print("无法从摄像头读取数据。")
                    break
                if mirror:
                    frame = cv2.flip(frame, 1)
                landmarks = tracker.detect(frame)

            snapshot = engine.tick(clock.elapsed(), landmarks)
            canvas = self.renderer.render(snapshot)
            self.draw_hud(canvas)
            cv2.imshow("GestureTree", canvas)

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("h"):
                self.hud_hidden = not self.hud_hidden
            elif key == ord("u"):
                self.load_next_photo()


def main() -> None:
    package_dir = Path(__file__).resolve().parent
    project_root = package_dir.parent.parent  # src/gesturetree/ -> src/ -> project_root/
    config = load_config(project_root)

    log_cfg = config.get("logging", {}) or {}
    logging.basicConfig(
        level=getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cam_raw = config.get("camera", {}) or {}
    cam_cfg = CameraConfig(
        index=int(cam_raw.get("index", 0)),
        width=int(cam_raw.get("width", 960)),
        height=int(cam_raw.get("height", 540)),
        mirror=bool(cam_raw.get("mirror", True)),
    )
    tracker_cfg = config.get("tracker", {}) or {}
    app = TreeApp(config, project_root)

    capture: Optional[cv2.VideoCapture] = None
    tracker: Optional[HandTracker] = None
    try:
        tracker = HandTracker(
            HandTrackerConfig(
                model_path=app.resolve_path(tracker_cfg.get("hand_landmarker_path"), "weights/hand_landmarker.task"),
                max_num_hands=int(tracker_cfg.get("max_num_hands", 1)),
                min_detection_confidence=float(tracker_cfg.get("min_detection_confidence", 0.5)),
                min_presence_confidence=float(tracker_cfg.get("min_presence_confidence", 0.5)),
                min_tracking_confidence=float(tracker_cfg.get("min_tracking_confidence", 0.5)),
            )
        )
        capture = cv2.VideoCapture(cam_cfg.index)
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, cam_cfg.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, cam_cfg.height)
        if not capture.isOpened():
            print(f"⚠ 无法打开摄像头 {cam_cfg.index}，将在无手势输入的情况下运行。")
            capture.release()
            capture = None
    except FileNotFoundError as exc:
        print(f"⚠ 手部跟踪不可用：{exc}")
        tracker = None

    print("GestureTree 已启动，按 'q' 退出。")

    try:
        app.run(tracker, capture, cam_cfg.mirror)
    finally:
        if capture is not None:
            capture.release()
        if tracker is not None:
            tracker.close()
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
