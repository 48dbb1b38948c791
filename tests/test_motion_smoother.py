import numpy as np
import pytest

from gesturetree.core.mode_state import Mode
from gesturetree.core.motion_smoother import MotionSmoother, SmootherConfig
from gesturetree.core.particles import ParticleKind, ParticleRegistry
from gesturetree.errors import ConfigurationError
from gesturetree.utils.quaternion import euler_to_quaternion, yaw_quaternion


@pytest.fixture
def registry():
    return ParticleRegistry(3, 2, rng=np.random.default_rng(7), initial_photos=["p"])


def test_converges_monotonically_without_overshoot(registry):
    smoother = MotionSmoother()
    registry.target_positions[0] = (10.0, -4.0, 2.0)
    registry.target_scales[0] = (4.5, 4.5, 4.5)

    last_pos = last_scale = np.inf
    for _ in range(200):
        smoother.advance(registry, Mode.TREE)
        pos_gap = np.linalg.norm(registry.positions[0] - registry.target_positions[0])
        scale_gap = np.linalg.norm(registry.scales[0] - registry.target_scales[0])
        assert 0.0 < pos_gap < last_pos
        assert 0.0 < scale_gap < last_scale
        assert np.all(registry.positions[0] * registry.target_positions[0] >= 0.0)
        last_pos, last_scale = pos_gap, scale_gap

    assert last_pos < 1e-3


def test_single_step_closes_alpha_fraction(registry):
    registry.target_positions[1] = (20.0, 0.0, 0.0)
    MotionSmoother(SmootherConfig(alpha=0.05)).advance(registry, Mode.TREE)
    np.testing.assert_allclose(registry.positions[1], [1.0, 0.0, 0.0])


def test_dust_falls_and_wraps_on_same_tick(registry):
    dust = registry.indices_of(ParticleKind.DUST)
    registry.positions[dust[0]] = (1.0, -29.97, 2.0)
    registry.positions[dust[1]] = (0.0, 5.0, 0.0)

    MotionSmoother().advance(registry, Mode.TREE)

    np.testing.assert_allclose(registry.positions[dust[0]], [1.0, 30.0, 2.0])
    np.testing.assert_allclose(registry.positions[dust[1]], [0.0, 4.95, 0.0])


def test_dust_never_below_floor(registry):
    smoother = MotionSmoother()
    dust = registry.indices_of(ParticleKind.DUST)
    for _ in range(2000):
        smoother.advance(registry, Mode.SCATTER)
        assert np.all(registry.positions[dust, 1] >= -30.0)


def test_dust_ignores_targets(registry):
    dust = registry.indices_of(ParticleKind.DUST)
    registry.target_positions[dust] = 100.0
    before = registry.positions[dust].copy()
    MotionSmoother().advance(registry, Mode.TREE)
    np.testing.assert_allclose(registry.positions[dust][:, [0, 2]], before[:, [0, 2]])


def test_orientation_slerps_toward_target(registry):
    registry.target_quaternions[0] = yaw_quaternion(1.0)
    MotionSmoother().advance(registry, Mode.TREE)
    np.testing.assert_allclose(registry.quaternions[0], yaw_quaternion(0.05), atol=1e-12)


def test_scatter_ornaments_free_spin(registry):
    ornaments = registry.indices_of(ParticleKind.ORNAMENT)
    photo = registry.indices_of(ParticleKind.PHOTO)[0]
    registry.target_quaternions[:] = yaw_quaternion(2.0)
    smoother = MotionSmoother()

    for _ in range(3):
        smoother.advance(registry, Mode.SCATTER)

    expected = np.zeros((ornaments.size, 3))
    expected[:, :2] = registry.spin_rates[ornaments, :2] * 3
    np.testing.assert_allclose(registry.eulers[ornaments], expected)
    np.testing.assert_allclose(registry.quaternions[ornaments], euler_to_quaternion(expected))
    # 照片仍然向目标朝向插值
    assert registry.quaternions[photo, 1] > 0.0


@pytest.mark.parametrize("alpha", [0.0, 1.0, -0.2, 1.5])
def test_alpha_must_be_open_unit_interval(alpha):
    with pytest.raises(ConfigurationError):
        MotionSmoother(SmootherConfig(alpha=alpha))
