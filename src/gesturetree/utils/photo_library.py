from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import cv2
import numpy as np

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".bmp", ".webp"}
GOLD_BGR = (55, 175, 212)


def make_greeting_card(text: str = "JOYEUX NOEL", size: int = 512) -> np.ndarray:
    """生成启动时默认展示的贺卡图片（BGR）。"""

    card = np.full((size, size, 3), 17, dtype=np.uint8)
    font = cv2.FONT_HERSHEY_TRIPLEX
    scale = size / 320.0
    (tw, th), _ = cv2.getTextSize(text, font, scale, 2)
    origin = ((size - tw) // 2, (size + th) // 2)
    cv2.putText(card, text, origin, font, scale, GOLD_BGR, 2, cv2.LINE_AA)
    return card


def load_photo(path: Path, max_side: int = 512) -> np.ndarray:
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError(f"无法读取图片：{path}")
    h, w = image.shape[:2]
    ratio = max_side / float(max(h, w))
    if ratio < 1.0:
        image = cv2.resize(image, (int(w * ratio), int(h * ratio)), interpolation=cv2.INTER_AREA)
    return image


class PhotoLibrary:
    """按文件名顺序逐张提供照片目录中的图片。"""

    def __init__(self, directory: Optional[Path], extra: Sequence[Path] = ()) -> None:
        files: List[Path] = [Path(p) for p in extra]
        if directory is not None and directory.is_dir():
            files.extend(
                sorted(p for p in directory.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)
            )
        self.files = files
        self._cursor = 0

    def __len__(self) -> int:
        return len(self.files)

    def next_path(self) -> Optional[Path]:
        if self._cursor >= len(self.files):
            return None
        path = self.files[self._cursor]
        self._cursor += 1
        return path
