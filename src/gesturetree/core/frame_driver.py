from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

import numpy as np

from gesturetree.core.gesture_classifier import GestureClassifier, GestureReading, GestureThresholds
from gesturetree.core.mode_state import Mode, ModeState, ModeStateChannel
from gesturetree.core.motion_smoother import MotionSmoother, SmootherConfig, lerp
from gesturetree.core.particles import Particle, ParticleRegistry
from gesturetree.core.target_policy import PolicyConfig, TargetPolicy
from gesturetree.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _pick(section: Dict[str, Any], cls) -> Dict[str, Any]:
    return {k: v for k, v in section.items() if k in cls.__dataclass_fields__}


@dataclass
class EngineConfig:
    ornament_count: int = 1500
    dust_count: int = 2500
    seed: Optional[int] = None
    thresholds: GestureThresholds = field(default_factory=GestureThresholds)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    smoother: SmootherConfig = field(default_factory=SmootherConfig)
    rig_follow: float = 0.1

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "EngineConfig":
        """从 config.yaml 的 engine 段构建配置，忽略未知键。"""

        raw = raw or {}
        try:
            policy_raw = {
                k: tuple(float(x) for x in v) if k == "focus_position" else float(v)
                for k, v in _pick(raw.get("policy", {}) or {}, PolicyConfig).items()
            }
            seed = raw.get("seed")
            return cls(
                ornament_count=int(raw.get("ornament_count", 1500)),
                dust_count=int(raw.get("dust_count", 2500)),
                seed=None if seed is None else int(seed),
                thresholds=GestureThresholds(
                    **{k: float(v) for k, v in _pick(raw.get("thresholds", {}) or {}, GestureThresholds).items()}
                ),
                policy=PolicyConfig(**policy_raw),
                smoother=SmootherConfig(
                    **{k: float(v) for k, v in _pick(raw.get("smoother", {}) or {}, SmootherConfig).items()}
                ),
                rig_follow=float(raw.get("rig_follow", 0.1)),
            )
        except (TypeError, ValueError) as exc:
            # YAML 中的 null 或非数字字符串
            raise ConfigurationError(f"engine 配置格式错误：{exc}") from exc

    def validate(self) -> None:
        if self.ornament_count <= 0:
            raise ConfigurationError(f"ornament_count 必须为正数，当前为 {self.ornament_count}")
        if self.dust_count <= 0:
            raise ConfigurationError(f"dust_count 必须为正数，当前为 {self.dust_count}")
        if not 0.0 < self.rig_follow <= 1.0:
            raise ConfigurationError(f"rig_follow 必须位于 (0, 1]，当前为 {self.rig_follow}")
        self.thresholds.validate()
        self.policy.validate()
        self.smoother.validate()


@dataclass
class SceneRig:
    """整个粒子组的根节点旋转，跟随手部指向缓慢转动。"""

    yaw: float = 0.0
    pitch: float = 0.0

    def follow(self, state: ModeState, factor: float) -> None:
        self.yaw = float(lerp(self.yaw, state.hand_x * math.pi, factor))
        self.pitch = float(lerp(self.pitch, state.hand_y * math.pi * 0.5, factor))


@dataclass
class FrameSnapshot:
    """交给外部渲染器的一帧数据，数组均为拷贝。"""

    time: float
    state: ModeState
    rig_yaw: float
    rig_pitch: float
    kinds: np.ndarray
    positions: np.ndarray
    quaternions: np.ndarray
    scales: np.ndarray


class ParticleEngine:
    """
    每个动画帧调用一次 tick：
    分类手势 -> 更新模式 -> 重新计算目标 -> 平滑推进 -> 输出快照。
    没有新的关键点时沿用上一次的模式，动画不会停止。
    """

    def __init__(
        self,
        cfg: Optional[EngineConfig] = None,
        initial_photos: Sequence[object] = (),
    ) -> None:
        self.cfg = cfg or EngineConfig()
        self.cfg.validate()

        self.classifier = GestureClassifier(self.cfg.thresholds)
        self.channel = ModeStateChannel()
        self.policy = TargetPolicy(self.cfg.policy)
        self.smoother = MotionSmoother(self.cfg.smoother)
        self.rig = SceneRig()
        self.registry = ParticleRegistry(
            self.cfg.ornament_count,
            self.cfg.dust_count,
            rng=np.random.default_rng(self.cfg.seed),
            initial_photos=initial_photos,
            dust_floor=self.cfg.smoother.dust_floor,
            dust_ceiling=self.cfg.smoother.dust_ceiling,
        )
        self.last_reading: Optional[GestureReading] = None
        self.elapsed = 0.0

    @property
    def state(self) -> ModeState:
        return self.channel.snapshot()

    @property
    def mode(self) -> Mode:
        return self.channel.snapshot().mode

    def submit_landmarks(self, landmarks) -> ModeState:
        """检测节奏的入口：landmarks 为 None 时不改变模式。"""

        try:
            reading = self.classifier.classify(landmarks)
        except ValueError as exc:
            logger.warning("关键点数据无效，本帧不更新模式：%s", exc)
            reading = None
        if reading is not None:
            self.last_reading = reading
        return self.channel.publish(reading)

    def add_photo(self, payload) -> Particle:
        return self.registry.append_photo(payload)

    def tick(self, elapsed: float, landmarks=None) -> FrameSnapshot:
        self.elapsed = float(elapsed)
        if landmarks is not None:
            self.submit_landmarks(landmarks)
        state = self.channel.snapshot()

        self.rig.follow(state, self.cfg.rig_follow)
        self.policy.compute(self.registry, state, self.elapsed)
        self.smoother.advance(self.registry, state.mode)
        return self.snapshot(state)

    def snapshot(self, state: Optional[ModeState] = None) -> FrameSnapshot:
        registry = self.registry
        return FrameSnapshot(
            time=self.elapsed,
            state=state or self.channel.snapshot(),
            rig_yaw=self.rig.yaw,
            rig_pitch=self.rig.pitch,
            kinds=registry.kind_codes.copy(),
            positions=registry.positions.copy(),
            quaternions=registry.quaternions.copy(),
            scales=registry.scales.copy(),
        )
