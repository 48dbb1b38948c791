import math

import numpy as np
import pytest

from gesturetree.core.mode_state import Mode, ModeState
from gesturetree.core.particles import ParticleKind, ParticleRegistry
from gesturetree.core.target_policy import (
    POLICY_TABLE,
    PolicyConfig,
    PolicyContext,
    TargetPolicy,
    tree_ornament,
)
from gesturetree.utils.quaternion import IDENTITY, yaw_quaternion


@pytest.fixture
def registry():
    return ParticleRegistry(4, 3, rng=np.random.default_rng(1), initial_photos=["a"])


def test_table_covers_every_mode_and_tracked_kind():
    for mode in Mode:
        for kind in (ParticleKind.ORNAMENT, ParticleKind.PHOTO):
            assert (mode, kind) in POLICY_TABLE
    assert not any(kind is ParticleKind.DUST for _, kind in POLICY_TABLE)


def test_tree_ornament_cell_is_conical_helix():
    t = np.array([0.0, 0.25, 0.5])
    ctx = PolicyContext(index=np.arange(3), t=t, time=2.0, state=ModeState())
    batch = tree_ornament(ctx, PolicyConfig())

    angle = t * 50 * math.pi + 0.4
    radius = 12 * (1 - t)
    np.testing.assert_allclose(batch.position[:, 0], radius * np.cos(angle))
    np.testing.assert_allclose(batch.position[:, 1], t * 25 - 12.5)
    np.testing.assert_allclose(batch.position[:, 2], radius * np.sin(angle))
    np.testing.assert_allclose(batch.quaternion, yaw_quaternion(angle))
    np.testing.assert_array_equal(batch.scale, 1.0)


def test_tree_photo_ring(registry):
    second = registry.append_photo("b")
    TargetPolicy().compute(registry, ModeState(mode=Mode.TREE), time=0.0)
    np.testing.assert_allclose(registry.target_positions[4], [15.0, 5.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(registry.target_positions[second.index], [-15.0, 5.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(registry.target_quaternions[second.index], yaw_quaternion(-math.pi))


def test_scatter_ornaments_keep_target_orientation(registry):
    ornaments = registry.indices_of(ParticleKind.ORNAMENT)
    registry.target_quaternions[ornaments] = yaw_quaternion(0.3)
    TargetPolicy().compute(registry, ModeState(mode=Mode.SCATTER), time=1.5)

    np.testing.assert_allclose(registry.target_quaternions[ornaments], np.tile(yaw_quaternion(0.3), (4, 1)))
    t = ornaments / 4
    radius = np.hypot(registry.target_positions[ornaments, 0], registry.target_positions[ornaments, 2])
    np.testing.assert_allclose(radius, 15 + 5 * np.sin(1.5 + 10 * t))
    np.testing.assert_allclose(registry.target_positions[ornaments, 1], 10 * np.sin(0.75 + 5 * t))


def test_scatter_photo_spins_with_time(registry):
    TargetPolicy().compute(registry, ModeState(mode=Mode.SCATTER), time=0.7)
    np.testing.assert_allclose(registry.target_quaternions[4], yaw_quaternion(0.7))
    assert np.hypot(registry.target_positions[4, 0], registry.target_positions[4, 2]) == pytest.approx(20.0)


def test_focus_enlarges_active_photo(registry):
    second = registry.append_photo("b")
    state = ModeState(mode=Mode.FOCUS, active_photo_index=3)
    TargetPolicy().compute(registry, state, time=4.0)

    np.testing.assert_allclose(registry.target_positions[second.index], [0.0, 2.0, 35.0])
    np.testing.assert_allclose(registry.target_scales[second.index], 4.5)
    np.testing.assert_allclose(registry.target_quaternions[second.index], IDENTITY)

    background = [0, 1, 2, 3, 4]
    np.testing.assert_allclose(registry.target_scales[background], 0.5)
    t = np.array(background) / 4
    np.testing.assert_allclose(registry.target_positions[background, 1], (t - 0.5) * 60)


def test_focus_without_photos_falls_back_to_scatter_target():
    registry = ParticleRegistry(4, 2)
    TargetPolicy().compute(registry, ModeState(mode=Mode.FOCUS, active_photo_index=1), time=0.0)
    np.testing.assert_allclose(registry.target_scales[:4], 0.5)


def test_dust_targets_untouched(registry):
    dust = registry.indices_of(ParticleKind.DUST)
    before = registry.target_positions[dust].copy()
    for mode in Mode:
        TargetPolicy().compute(registry, ModeState(mode=mode), time=3.0)
    np.testing.assert_array_equal(registry.target_positions[dust], before)


@pytest.mark.parametrize("mode", list(Mode))
def test_target_scales_bounded(registry, mode):
    TargetPolicy().compute(registry, ModeState(mode=mode, active_photo_index=1), time=10.0)
    tracked = np.concatenate(
        [registry.indices_of(ParticleKind.ORNAMENT), registry.indices_of(ParticleKind.PHOTO)]
    )
    scales = registry.target_scales[tracked]
    assert np.all(scales >= 0.5)
    assert np.all(scales <= 4.5)
