from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import cv2
import numpy as np

from gesturetree.core.frame_driver import FrameSnapshot
from gesturetree.core.particles import KIND_CODES, ParticleKind, ParticleRegistry
from gesturetree.utils.projection import PerspectiveCamera, focal_length, project_points, rotate_rig

ORNAMENT_COLORS = np.array(
    [
        (55, 175, 212),  # 金
        (32, 50, 1),  # 深绿
        (0, 0, 139),  # 红
    ],
    dtype=np.uint8,
)
DUST_COLOR = (167, 238, 252)
FRAME_COLOR = (55, 175, 212)

KIND_ORNAMENT = KIND_CODES[ParticleKind.ORNAMENT]
KIND_DUST = KIND_CODES[ParticleKind.DUST]


@dataclass
class PreviewRendererConfig:
    width: int = 1280
    height: int = 720
    camera: PerspectiveCamera = field(default_factory=PerspectiveCamera)
    ornament_size: float = 0.4
    photo_size: float = 4.5
    background: Tuple[int, int, int] = (0, 0, 0)


class PreviewRenderer:
    """用 OpenCV 把快照画成二维预览：由远及近绘制，照片贴上缩略图。"""

    def __init__(self, cfg: PreviewRendererConfig, registry: ParticleRegistry) -> None:
        self.cfg = cfg
        self.registry = registry
        self.focal = focal_length(cfg.camera, cfg.height)

    def render(self, snapshot: FrameSnapshot) -> np.ndarray:
        cfg = self.cfg
        canvas = np.empty((cfg.height, cfg.width, 3), dtype=np.uint8)
        canvas[:] = cfg.background

        world = rotate_rig(snapshot.positions, snapshot.rig_yaw, snapshot.rig_pitch)
        pixels, depth, visible = project_points(world, cfg.camera, cfg.width, cfg.height)
        scale = snapshot.scales.mean(axis=1)

        order = np.argsort(-depth)
        for idx in order:
            if not visible[idx]:
                continue
            kind = snapshot.kinds[idx]
            center = (int(pixels[idx, 0]), int(pixels[idx, 1]))
            if kind == KIND_DUST:
                cv2.circle(canvas, center, 1, DUST_COLOR, -1)
            elif kind == KIND_ORNAMENT:
                radius = max(1, int(cfg.ornament_size * scale[idx] * self.focal / depth[idx]))
                color = tuple(int(c) for c in ORNAMENT_COLORS[idx % 3])
                cv2.circle(canvas, center, radius, color, -1, cv2.LINE_AA)
            else:
                half = max(2, int(cfg.photo_size * 0.5 * scale[idx] * self.focal / depth[idx]))
                self._draw_photo(canvas, center, half, self.registry.payloads.get(int(idx)))
        return canvas

    def _draw_photo(self, canvas: np.ndarray, center, half: int, payload) -> None:
        x0, y0 = center[0] - half, center[1] - half
        x1, y1 = center[0] + half, center[1] + half
        cv2.rectangle(canvas, (x0, y0), (x1, y1), FRAME_COLOR, -1)
        if payload is None:
            return
        inner = int(half * 0.88)
        if inner < 2:
            return
        thumb = cv2.resize(payload, (inner * 2, inner * 2), interpolation=cv2.INTER_AREA)
        h, w = canvas.shape[:2]
        ix0, iy0 = center[0] - inner, center[1] - inner
        cx0, cy0 = max(ix0, 0), max(iy0, 0)
        cx1, cy1 = min(ix0 + inner * 2, w), min(iy0 + inner * 2, h)
        if cx1 <= cx0 or cy1 <= cy0:
            return
        canvas[cy0:cy1, cx0:cx1] = thumb[cy0 - iy0 : cy1 - iy0, cx0 - ix0 : cx1 - ix0]
