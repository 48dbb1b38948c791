from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from gesturetree.core.mode_state import Mode
from gesturetree.core.particles import ParticleKind, ParticleRegistry
from gesturetree.errors import ConfigurationError
from gesturetree.utils.quaternion import euler_to_quaternion, quaternion_to_euler, slerp


@dataclass
class SmootherConfig:
    alpha: float = 0.05  # 每帧缩小剩余距离的比例，不按帧间隔修正
    dust_floor: float = -30.0
    dust_ceiling: float = 30.0

    def validate(self) -> None:
        if not 0.0 < self.alpha < 1.0:
            raise ConfigurationError(f"平滑系数必须位于 (0, 1)，当前为 {self.alpha}")
        if self.dust_floor >= self.dust_ceiling:
            raise ConfigurationError(
                f"飘雪下界 ({self.dust_floor}) 必须小于上界 ({self.dust_ceiling})"
            )


def lerp(current: np.ndarray, target: np.ndarray, alpha: float) -> np.ndarray:
    return current + (target - current) * alpha


class MotionSmoother:
    def __init__(self, cfg: Optional[SmootherConfig] = None) -> None:
        self.cfg = cfg or SmootherConfig()
        self.cfg.validate()

    def advance(self, registry: ParticleRegistry, mode: Mode) -> None:
        self.advance_dust(registry)
        self.advance_tracked(registry, mode)

    def advance_dust(self, registry: ParticleRegistry) -> None:
        """飘雪：只做匀速下落，越过下界的同一帧回到上界。"""

        dust = registry.indices_of(ParticleKind.DUST)
        positions = registry.positions[dust] + registry.velocities[dust]
        wrapped = positions[:, 1] < self.cfg.dust_floor
        positions[wrapped, 1] = self.cfg.dust_ceiling
        registry.positions[dust] = positions

    def advance_tracked(self, registry: ParticleRegistry, mode: Mode) -> None:
        alpha = self.cfg.alpha
        ornaments = registry.indices_of(ParticleKind.ORNAMENT)
        photos = registry.indices_of(ParticleKind.PHOTO)
        tracked = np.concatenate([ornaments, photos])

        registry.positions[tracked] = lerp(registry.positions[tracked], registry.target_positions[tracked], alpha)
        registry.scales[tracked] = lerp(registry.scales[tracked], registry.target_scales[tracked], alpha)

        if mode is Mode.SCATTER:
            # 散开模式下装饰物自转，不向目标朝向插值
            self.spin(registry, ornaments)
            slerped = photos
        else:
            slerped = tracked

        if slerped.size:
            registry.quaternions[slerped] = slerp(
                registry.quaternions[slerped], registry.target_quaternions[slerped], alpha
            )
            registry.eulers[slerped] = quaternion_to_euler(registry.quaternions[slerped])

    @staticmethod
    def spin(registry: ParticleRegistry, index: np.ndarray) -> None:
        if index.size == 0:
            return
        registry.eulers[index, 0] += registry.spin_rates[index, 0]
        registry.eulers[index, 1] += registry.spin_rates[index, 1]
        registry.quaternions[index] = euler_to_quaternion(registry.eulers[index])
