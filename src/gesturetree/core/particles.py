from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence

import numpy as np

from gesturetree.errors import ConfigurationError, InvalidStateError
from gesturetree.utils.quaternion import IDENTITY

logger = logging.getLogger(__name__)


class ParticleKind(str, Enum):
    ORNAMENT = "ORNAMENT"
    DUST = "DUST"
    PHOTO = "PHOTO"


KIND_CODES = {ParticleKind.ORNAMENT: 0, ParticleKind.DUST: 1, ParticleKind.PHOTO: 2}
_CODE_KINDS = {code: kind for kind, code in KIND_CODES.items()}


class Particle:
    """注册表中某一行的轻量视图；变换数据存放在注册表的数组里。"""

    __slots__ = ("_registry", "index")

    def __init__(self, registry: "ParticleRegistry", index: int) -> None:
        self._registry = registry
        self.index = index

    @property
    def kind(self) -> ParticleKind:
        return _CODE_KINDS[int(self._registry.kind_codes[self.index])]

    @property
    def payload(self):
        return self._registry.payloads.get(self.index)

    @property
    def position(self) -> np.ndarray:
        return self._registry.positions[self.index]

    @property
    def quaternion(self) -> np.ndarray:
        return self._registry.quaternions[self.index]

    @property
    def scale(self) -> np.ndarray:
        return self._registry.scales[self.index]

    @property
    def target_position(self) -> np.ndarray:
        return self._registry.target_positions[self.index]

    @property
    def target_quaternion(self) -> np.ndarray:
        return self._registry.target_quaternions[self.index]

    @property
    def target_scale(self) -> np.ndarray:
        return self._registry.target_scales[self.index]

    @property
    def velocity(self) -> np.ndarray:
        return self._registry.velocities[self.index]

    @property
    def spin_rate(self) -> np.ndarray:
        return self._registry.spin_rates[self.index]

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, Particle)
            and other._registry is self._registry
            and other.index == self.index
        )

    def __hash__(self) -> int:
        return hash((id(self._registry), self.index))

    def __repr__(self) -> str:
        return f"Particle(index={self.index}, kind={self.kind.value})"


class ParticleRegistry:
    """
    持有所有粒子及其当前/目标变换。

    变换按结构数组存储（每个字段一个 (N, k) 数组），索引即粒子身份，
    创建顺序为：装饰物、初始照片、飘雪，之后追加的照片依次排在末尾。
    """

    def __init__(
        self,
        ornament_count: int,
        dust_count: int,
        rng: Optional[np.random.Generator] = None,
        initial_photos: Sequence[object] = (),
        dust_floor: float = -30.0,
        dust_ceiling: float = 30.0,
        dust_spread: float = 30.0,
        dust_fall_speed: float = 0.05,
        max_spin_rate: float = 0.05,
    ) -> None:
        if ornament_count <= 0 or dust_count <= 0:
            raise ConfigurationError(
                f"粒子数必须为正数：ornament={ornament_count}, dust={dust_count}"
            )
        rng = rng or np.random.default_rng()
        self.ornament_count = ornament_count
        self.dust_count = dust_count
        self.payloads: Dict[int, object] = {}

        self.kind_codes = np.empty(0, dtype=np.int8)
        self.positions = np.empty((0, 3))
        self.quaternions = np.empty((0, 4))
        self.eulers = np.empty((0, 3))  # 与 quaternions 同步，自转在其上累加
        self.scales = np.empty((0, 3))
        self.target_positions = np.empty((0, 3))
        self.target_quaternions = np.empty((0, 4))
        self.target_scales = np.empty((0, 3))
        self.velocities = np.empty((0, 3))
        self.spin_rates = np.empty((0, 3))

        self._append(
            ParticleKind.ORNAMENT,
            positions=np.zeros((ornament_count, 3)),
            spin_rates=rng.random((ornament_count, 3)) * max_spin_rate,
        )
        for payload in initial_photos:
            self.append_photo(payload)

        # 水平方向在 [-spread, spread]，竖直方向均匀铺满 [floor, ceiling]
        dust_positions = (rng.random((dust_count, 3)) - 0.5) * (2.0 * dust_spread)
        dust_positions[:, 1] = dust_floor + rng.random(dust_count) * (dust_ceiling - dust_floor)
        dust_velocities = np.zeros((dust_count, 3))
        dust_velocities[:, 1] = -dust_fall_speed
        self._append(ParticleKind.DUST, positions=dust_positions, velocities=dust_velocities)

    def _append(
        self,
        kind: ParticleKind,
        positions: np.ndarray,
        velocities: Optional[np.ndarray] = None,
        spin_rates: Optional[np.ndarray] = None,
    ) -> int:
        count = positions.shape[0]
        start = len(self.kind_codes)
        ones = np.ones((count, 3))
        identity = np.tile(IDENTITY, (count, 1))
        zeros = np.zeros((count, 3))

        self.kind_codes = np.concatenate([self.kind_codes, np.full(count, KIND_CODES[kind], dtype=np.int8)])
        self.positions = np.vstack([self.positions, positions])
        self.quaternions = np.vstack([self.quaternions, identity])
        self.eulers = np.vstack([self.eulers, zeros])
        self.scales = np.vstack([self.scales, ones])
        self.target_positions = np.vstack([self.target_positions, positions])
        self.target_quaternions = np.vstack([self.target_quaternions, identity])
        self.target_scales = np.vstack([self.target_scales, ones])
        self.velocities = np.vstack([self.velocities, zeros if velocities is None else velocities])
        self.spin_rates = np.vstack([self.spin_rates, zeros if spin_rates is None else spin_rates])
        return start

    def __len__(self) -> int:
        return len(self.kind_codes)

    def __getitem__(self, index: int) -> Particle:
        if not 0 <= index < len(self):
            raise IndexError(index)
        return Particle(self, index)

    def enumerate_all(self) -> Iterator[Particle]:
        for index in range(len(self)):
            yield Particle(self, index)

    def indices_of(self, kind: ParticleKind) -> np.ndarray:
        return np.flatnonzero(self.kind_codes == KIND_CODES[kind])

    def enumerate_by_kind(self, kind: ParticleKind) -> List[Particle]:
        return [Particle(self, int(i)) for i in self.indices_of(kind)]

    @property
    def photo_count(self) -> int:
        return int(np.count_nonzero(self.kind_codes == KIND_CODES[ParticleKind.PHOTO]))

    def append_photo(self, payload) -> Particle:
        """追加一张照片粒子，已有粒子的索引保持不变。"""

        index = self._append(ParticleKind.PHOTO, positions=np.zeros((1, 3)))
        self.payloads[index] = payload
        logger.info("已添加照片粒子 #%d（共 %d 张）", index, self.photo_count)
        return Particle(self, index)

    def active_photo(self, active_photo_index: int) -> Particle:
        photo_indices = self.indices_of(ParticleKind.PHOTO)
        if photo_indices.size == 0:
            raise InvalidStateError("没有任何照片粒子，无法解析当前照片")
        return Particle(self, int(photo_indices[active_photo_index % photo_indices.size]))
