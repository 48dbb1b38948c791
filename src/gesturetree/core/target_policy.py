from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from gesturetree.core.mode_state import Mode, ModeState
from gesturetree.core.particles import ParticleKind, ParticleRegistry
from gesturetree.errors import ConfigurationError, InvalidStateError
from gesturetree.utils.quaternion import IDENTITY, yaw_quaternion

logger = logging.getLogger(__name__)


@dataclass
class PolicyConfig:
    tree_max_radius: float = 12.0
    tree_height: float = 25.0
    tree_turns: float = 50.0
    tree_spin_speed: float = 0.2
    tree_photo_radius: float = 15.0
    tree_photo_height: float = 5.0
    tree_photo_speed: float = 0.1

    scatter_base_radius: float = 15.0
    scatter_radius_amplitude: float = 5.0
    scatter_height_amplitude: float = 10.0
    scatter_speed: float = 0.1
    scatter_photo_radius: float = 20.0
    scatter_photo_height: float = 10.0
    scatter_photo_speed: float = 0.05

    focus_position: Tuple[float, float, float] = (0.0, 2.0, 35.0)
    focus_scale: float = 4.5
    background_radius: float = 40.0
    background_height: float = 60.0
    background_scale: float = 0.5

    def validate(self) -> None:
        if len(self.focus_position) != 3:
            raise ConfigurationError(f"focus_position 必须是三维坐标，当前为 {self.focus_position}")
        for name in (
            "focus_scale",
            "background_scale",
            "background_radius",
            "tree_max_radius",
            "tree_height",
        ):
            value = getattr(self, name)
            if not value > 0.0:
                raise ConfigurationError(f"{name} 必须为正数，当前为 {value}")


@dataclass
class PolicyContext:
    """一组同类粒子的输入；index/t/ordinal 为等长一维数组。"""

    index: np.ndarray
    t: np.ndarray
    time: float
    state: ModeState
    photo_ordinal: Optional[np.ndarray] = None
    photo_count: int = 0
    is_active: Optional[np.ndarray] = None


@dataclass
class TargetBatch:
    """
    一组粒子的目标变换。quaternion 为 None 表示保持原有目标朝向；
    quaternion_mask 给出时只写入掩码为 True 的行。
    """

    position: np.ndarray
    scale: np.ndarray
    quaternion: Optional[np.ndarray] = None
    quaternion_mask: Optional[np.ndarray] = field(default=None)


def _uniform_scale(count: int, value: float) -> np.ndarray:
    return np.full((count, 3), value, dtype=np.float64)


def _ring(angle: np.ndarray, radius, height) -> np.ndarray:
    return np.stack(
        [np.cos(angle) * radius, np.broadcast_to(height, angle.shape), np.sin(angle) * radius],
        axis=-1,
    )


def tree_ornament(ctx: PolicyContext, cfg: PolicyConfig) -> TargetBatch:
    """圆锥螺旋：半径随 t 收缩，整体缓慢自转。"""

    t = ctx.t
    radius = cfg.tree_max_radius * (1.0 - t)
    angle = t * cfg.tree_turns * math.pi + ctx.time * cfg.tree_spin_speed
    height = t * cfg.tree_height - cfg.tree_height / 2.0
    return TargetBatch(
        position=_ring(angle, radius, height),
        scale=_uniform_scale(t.size, 1.0),
        quaternion=yaw_quaternion(angle),
    )


def tree_photo(ctx: PolicyContext, cfg: PolicyConfig) -> TargetBatch:
    angle = ctx.photo_ordinal / ctx.photo_count * 2.0 * math.pi + ctx.time * cfg.tree_photo_speed
    return TargetBatch(
        position=_ring(angle, cfg.tree_photo_radius, cfg.tree_photo_height),
        scale=_uniform_scale(angle.size, 1.0),
        quaternion=yaw_quaternion(-angle),
    )


def scatter_ornament(ctx: PolicyContext, cfg: PolicyConfig) -> TargetBatch:
    # 朝向由平滑器按 spin_rate 自转，这里不写目标朝向
    t = ctx.t
    angle = t * 2.0 * math.pi + ctx.time * cfg.scatter_speed
    radius = cfg.scatter_base_radius + np.sin(ctx.time + t * 10.0) * cfg.scatter_radius_amplitude
    height = np.sin(ctx.time * 0.5 + t * 5.0) * cfg.scatter_height_amplitude
    return TargetBatch(position=_ring(angle, radius, height), scale=_uniform_scale(t.size, 1.0))


def scatter_photo(ctx: PolicyContext, cfg: PolicyConfig) -> TargetBatch:
    ordinal = ctx.photo_ordinal
    angle = ordinal / ctx.photo_count * 2.0 * math.pi - ctx.time * cfg.scatter_photo_speed
    height = np.sin(ordinal) * cfg.scatter_photo_height
    return TargetBatch(
        position=_ring(angle, cfg.scatter_photo_radius, height),
        scale=_uniform_scale(angle.size, 1.0),
        quaternion=yaw_quaternion(np.full(angle.shape, ctx.time)),
    )


def focus_background(ctx: PolicyContext, cfg: PolicyConfig) -> TargetBatch:
    """向外散开让出视野，朝向目标保持不变。"""

    t = ctx.t
    angle = t * 2.0 * math.pi
    position = np.stack(
        [
            np.cos(angle) * cfg.background_radius,
            (t - 0.5) * cfg.background_height,
            np.sin(angle) * cfg.background_radius,
        ],
        axis=-1,
    )
    return TargetBatch(position=position, scale=_uniform_scale(t.size, cfg.background_scale))


def focus_photo(ctx: PolicyContext, cfg: PolicyConfig) -> TargetBatch:
    batch = focus_background(ctx, cfg)
    active = ctx.is_active
    if active is None or not active.any():
        return batch

    batch.position[active] = cfg.focus_position
    batch.scale[active] = cfg.focus_scale
    batch.quaternion = np.tile(IDENTITY, (active.size, 1))
    batch.quaternion_mask = active
    return batch


PolicyCell = Callable[[PolicyContext, PolicyConfig], TargetBatch]

POLICY_TABLE: Dict[Tuple[Mode, ParticleKind], PolicyCell] = {
    (Mode.TREE, ParticleKind.ORNAMENT): tree_ornament,
    (Mode.TREE, ParticleKind.PHOTO): tree_photo,
    (Mode.SCATTER, ParticleKind.ORNAMENT): scatter_ornament,
    (Mode.SCATTER, ParticleKind.PHOTO): scatter_photo,
    (Mode.FOCUS, ParticleKind.ORNAMENT): focus_background,
    (Mode.FOCUS, ParticleKind.PHOTO): focus_photo,
}


class TargetPolicy:
    """按当前模式为每个非飘雪粒子重新计算目标变换。"""

    def __init__(self, cfg: Optional[PolicyConfig] = None) -> None:
        self.cfg = cfg or PolicyConfig()

    def build_context(
        self, registry: ParticleRegistry, kind: ParticleKind, state: ModeState, time: float
    ) -> PolicyContext:
        index = registry.indices_of(kind)
        ctx = PolicyContext(
            index=index,
            t=index / registry.ornament_count,
            time=time,
            state=state,
        )
        if kind is ParticleKind.PHOTO:
            ctx.photo_ordinal = np.arange(index.size, dtype=np.float64)
            ctx.photo_count = index.size
            ctx.is_active = np.zeros(index.size, dtype=bool)
            if state.mode is Mode.FOCUS:
                try:
                    active = registry.active_photo(state.active_photo_index)
                except InvalidStateError as exc:
                    logger.debug("聚焦模式无可用照片，全部使用散开目标：%s", exc)
                else:
                    ctx.is_active = index == active.index
        return ctx

    def compute(self, registry: ParticleRegistry, state: ModeState, time: float) -> None:
        for kind in (ParticleKind.ORNAMENT, ParticleKind.PHOTO):
            ctx = self.build_context(registry, kind, state, time)
            if ctx.index.size == 0:
                continue
            batch = POLICY_TABLE[(state.mode, kind)](ctx, self.cfg)
            self._apply(registry, ctx.index, batch)

    @staticmethod
    def _apply(registry: ParticleRegistry, index: np.ndarray, batch: TargetBatch) -> None:
        registry.target_positions[index] = batch.position
        registry.target_scales[index] = batch.scale
        if batch.quaternion is None:
            return
        if batch.quaternion_mask is None:
            registry.target_quaternions[index] = batch.quaternion
        else:
            mask = batch.quaternion_mask
            registry.target_quaternions[index[mask]] = batch.quaternion[mask]
