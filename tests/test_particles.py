import numpy as np
import pytest

from gesturetree.core.particles import ParticleKind, ParticleRegistry
from gesturetree.errors import ConfigurationError, InvalidStateError


@pytest.fixture
def registry():
    return ParticleRegistry(6, 4, rng=np.random.default_rng(0), initial_photos=["greeting"])


def test_creation_order(registry):
    kinds = [p.kind for p in registry.enumerate_all()]
    assert kinds == [ParticleKind.ORNAMENT] * 6 + [ParticleKind.PHOTO] + [ParticleKind.DUST] * 4
    assert [p.index for p in registry.enumerate_all()] == list(range(11))


def test_enumerate_by_kind(registry):
    assert len(registry.enumerate_by_kind(ParticleKind.ORNAMENT)) == 6
    assert len(registry.enumerate_by_kind(ParticleKind.DUST)) == 4
    photos = registry.enumerate_by_kind(ParticleKind.PHOTO)
    assert [p.payload for p in photos] == ["greeting"]


def test_initial_layout(registry):
    ornaments = registry.indices_of(ParticleKind.ORNAMENT)
    assert np.all(registry.positions[ornaments] == 0.0)
    assert np.all(registry.scales == 1.0)
    assert np.all((registry.spin_rates[ornaments] >= 0.0) & (registry.spin_rates[ornaments] < 0.05))
    dust = registry.indices_of(ParticleKind.DUST)
    assert np.all(np.abs(registry.positions[dust]) <= 30.0)
    assert np.all(registry.velocities[dust, 1] < 0.0)


def test_append_photo_keeps_existing_indices(registry):
    before_kinds = registry.kind_codes.copy()
    before_positions = registry.positions.copy()
    count = len(registry.enumerate_by_kind(ParticleKind.PHOTO))

    photo = registry.append_photo("holiday.jpg")

    assert len(registry.enumerate_by_kind(ParticleKind.PHOTO)) == count + 1
    assert photo.index == 11
    assert photo.kind is ParticleKind.PHOTO
    assert photo.payload == "holiday.jpg"
    np.testing.assert_array_equal(registry.kind_codes[:11], before_kinds)
    np.testing.assert_array_equal(registry.positions[:11], before_positions)


def test_active_photo_wraps_by_photo_count(registry):
    second = registry.append_photo("second")
    assert registry.active_photo(1) == second
    assert registry.active_photo(2).payload == "greeting"


def test_active_photo_without_photos():
    registry = ParticleRegistry(3, 2)
    with pytest.raises(InvalidStateError):
        registry.active_photo(1)


def test_particle_view_is_live(registry):
    particle = registry[0]
    registry.positions[0] = (1.0, 2.0, 3.0)
    np.testing.assert_array_equal(particle.position, [1.0, 2.0, 3.0])


@pytest.mark.parametrize("ornaments, dust", [(0, 5), (5, 0), (-1, 5)])
def test_non_positive_counts(ornaments, dust):
    with pytest.raises(ConfigurationError):
        ParticleRegistry(ornaments, dust)


def test_dust_starts_inside_asymmetric_fall_range():
    registry = ParticleRegistry(2, 500, rng=np.random.default_rng(4), dust_floor=-10.0, dust_ceiling=30.0)
    dust = registry.indices_of(ParticleKind.DUST)
    heights = registry.positions[dust, 1]
    assert np.all((heights >= -10.0) & (heights <= 30.0))
    # 均匀铺开，而不是集中在某一段
    assert np.count_nonzero(heights < 10.0) > 150
    assert np.count_nonzero(heights >= 10.0) > 150
    assert np.all(np.abs(registry.positions[dust][:, [0, 2]]) <= 30.0)
