"""Tests for tomoray.raypath: clipping by radial shells and turning points."""

from collections import Counter
from types import SimpleNamespace

import numpy as np
import pytest

from tomoray.constants import RADIUS_EPSILON
from tomoray.coordinates import FullPosition, HorizontalPosition, equals_within
from tomoray.raypath import Raypath, segment_raypaths

LOWER = 3480.0
UPPER = 3880.0


def make_raypath(radii, step=1.0, phase_name="P"):
    """Raypath along the equator with one sample every ``step`` degrees."""
    positions = [
        FullPosition(0.0, i * step, radius) for i, radius in enumerate(radii)
    ]
    distances = [i * step for i in range(len(radii))]
    return Raypath(positions, distances, phase_name)


def indices_of(raypath, segments):
    """Indices into ``raypath`` of every point of every segment."""
    index = {position: i for i, position in enumerate(raypath.positions)}
    return [index[position] for segment in segments for position in segment.positions]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def dipping_path():
    """Path entering and leaving the shell with samples on both boundaries."""
    return make_raypath(
        [6371.0, 3880.0, 3700.0, 3480.0, 3000.0, 3480.0, 3700.0, 3880.0, 6371.0]
    )


@pytest.fixture(scope="module")
def pierced_path():
    return make_raypath([6371.0, 3000.0, 6371.0], step=10.0).with_pierce_points(
        [LOWER, UPPER]
    )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestConstruction:
    def test_properties(self):
        raypath = make_raypath([6371.0, 5000.0, 6371.0], step=5.0, phase_name="S")
        assert len(raypath) == 3
        assert raypath.phase_name == "S"
        assert raypath.source == FullPosition(0.0, 0.0, 6371.0)
        assert raypath.receiver == FullPosition(0.0, 10.0, 6371.0)
        np.testing.assert_allclose(raypath.radii, [6371.0, 5000.0, 6371.0])
        assert raypath.epicentral_distance_deg == pytest.approx(10.0)
        assert raypath.azimuth_deg == pytest.approx(90.0, abs=1e-6)
        assert raypath.back_azimuth_deg == pytest.approx(270.0, abs=1e-6)

    def test_mismatched_lengths_raise(self):
        positions = [FullPosition(0.0, 0.0, 6371.0), FullPosition(0.0, 1.0, 6371.0)]
        with pytest.raises(ValueError, match="differ"):
            Raypath(positions, [0.0, 1.0, 2.0])

    def test_single_point_raises(self):
        with pytest.raises(ValueError, match="at least two"):
            Raypath([FullPosition(0.0, 0.0, 6371.0)], [0.0])

    def test_distances_must_start_at_zero(self):
        positions = [FullPosition(0.0, 0.0, 6371.0), FullPosition(0.0, 1.0, 6371.0)]
        with pytest.raises(ValueError, match="start at 0"):
            Raypath(positions, [0.5, 1.0])

    def test_decreasing_distances_raise(self):
        positions = [FullPosition(0.0, lon, 6371.0) for lon in (0.0, 1.0, 2.0)]
        with pytest.raises(ValueError, match="non-decreasing"):
            Raypath(positions, [0.0, 2.0, 1.0])

    def test_horizontal_positions_rejected(self):
        with pytest.raises(TypeError):
            Raypath([HorizontalPosition(0.0, 0.0), HorizontalPosition(0.0, 1.0)],
                    [0.0, 1.0])

    def test_from_source_receiver(self):
        source = FullPosition.from_depth(0.0, 0.0, 10.0)
        receiver = FullPosition(0.0, 30.0, 6371.0)
        raypath = Raypath.from_source_receiver(source, receiver, "P")
        assert len(raypath) == 2
        np.testing.assert_allclose(raypath.distances, [0.0, 30.0])


class TestFromTaupArrival:
    dtype = [('p', float), ('time', float), ('dist', float),
             ('depth', float), ('lat', float), ('lon', float)]

    def test_builds_rebased_path(self):
        path = np.array([
            (0.0, 0.0, 0.0, 10.0, 0.0, 0.0),
            (0.0, 5.0, np.radians(5.0), 500.0, 0.0, 5.0),
            (0.0, 9.0, np.radians(10.0), 0.0, 0.0, 10.0),
        ], dtype=self.dtype)
        arrival = SimpleNamespace(name="P", path=path)
        raypath = Raypath.from_taup_arrival(arrival)
        assert raypath.phase_name == "P"
        np.testing.assert_allclose(raypath.distances, [0.0, 5.0, 10.0])
        np.testing.assert_allclose(raypath.radii, [6361.0, 5871.0, 6371.0])
        assert raypath.receiver == FullPosition(0.0, 10.0, 6371.0)

    def test_missing_geography_raises(self):
        path = np.array([(0.0, 0.0, 0.0, 10.0), (0.0, 1.0, 0.1, 0.0)],
                        dtype=self.dtype[:4])
        with pytest.raises(ValueError, match="latitude/longitude"):
            Raypath.from_taup_arrival(SimpleNamespace(name="P", path=path))


# ---------------------------------------------------------------------------
# Clipping
# ---------------------------------------------------------------------------

class TestClip:
    def test_rebases_distances(self, dipping_path):
        sub = dipping_path.clip(2, 5)
        assert len(sub) == 4
        np.testing.assert_allclose(sub.distances, [0.0, 1.0, 2.0, 3.0])
        assert sub.source == dipping_path.positions[2]
        assert sub.phase_name == dipping_path.phase_name

    def test_single_point_raises(self, dipping_path):
        with pytest.raises(ValueError, match="fewer than two"):
            dipping_path.clip(3, 3)

    def test_out_of_bounds_raises(self, dipping_path):
        with pytest.raises(ValueError, match="out of bounds"):
            dipping_path.clip(7, 9)

    def test_original_unchanged(self, dipping_path):
        dipping_path.clip(1, 3)
        assert len(dipping_path) == 9
        assert dipping_path.distances[0] == 0.0


class TestClipInsideLayer:
    def test_coarse_dip_through_shell_yields_nothing(self):
        raypath = make_raypath([6371.0, 4000.0, 3000.0, 4000.0, 6371.0])
        assert raypath.clip_inside_layer(LOWER, UPPER) == []

    def test_single_boundary_touch_is_discarded(self):
        raypath = make_raypath([6371.0, 5000.0, 3480.0, 5000.0, 6371.0])
        assert raypath.clip_inside_layer(LOWER, UPPER) == []

    def test_segments_between_boundary_points(self, dipping_path):
        segments = dipping_path.clip_inside_layer(LOWER, UPPER)
        assert len(segments) == 2
        assert indices_of(dipping_path, segments) == [1, 2, 3, 5, 6, 7]
        for segment in segments:
            np.testing.assert_allclose(segment.distances, [0.0, 1.0, 2.0])

    def test_start_inside_opens_run(self):
        raypath = make_raypath([3700.0, 3600.0, 4000.0])
        segments = raypath.clip_inside_layer(LOWER, UPPER)
        assert indices_of(raypath, segments) == [0, 1]

    def test_start_on_boundary_opens_run(self):
        raypath = make_raypath([3880.0, 3700.0, 4000.0])
        segments = raypath.clip_inside_layer(LOWER, UPPER)
        assert indices_of(raypath, segments) == [0, 1]

    def test_run_reopens_after_closing(self):
        raypath = make_raypath([3480.0, 3700.0, 3000.0, 3480.0, 3700.0, 3880.0])
        segments = raypath.clip_inside_layer(LOWER, UPPER)
        assert len(segments) == 2
        assert indices_of(raypath, segments) == [0, 1, 3, 4, 5]

    def test_run_open_at_end_is_closed(self):
        raypath = make_raypath([6371.0, 3880.0, 3800.0, 3700.0])
        segments = raypath.clip_inside_layer(LOWER, UPPER)
        assert indices_of(raypath, segments) == [1, 2, 3]

    def test_whole_path_inside(self):
        raypath = make_raypath([3800.0, 3600.0, 3700.0])
        segments = raypath.clip_inside_layer(LOWER, UPPER)
        assert len(segments) == 1
        assert len(segments[0]) == 3

    def test_boundary_within_epsilon(self):
        raypath = make_raypath(
            [6371.0, UPPER + RADIUS_EPSILON / 2, 3700.0, 6371.0]
        )
        segments = raypath.clip_inside_layer(LOWER, UPPER)
        assert indices_of(raypath, segments) == [1, 2]

    def test_all_radii_within_shell(self, dipping_path, pierced_path):
        for raypath in (dipping_path, pierced_path):
            for segment in raypath.clip_inside_layer(LOWER, UPPER):
                assert np.all(segment.radii >= LOWER - RADIUS_EPSILON)
                assert np.all(segment.radii <= UPPER + RADIUS_EPSILON)

    def test_reclipping_is_idempotent(self, dipping_path, pierced_path):
        for raypath in (dipping_path, pierced_path):
            for segment in raypath.clip_inside_layer(LOWER, UPPER):
                reclipped = segment.clip_inside_layer(LOWER, UPPER)
                assert len(reclipped) == 1
                assert reclipped[0].positions == segment.positions
                np.testing.assert_allclose(reclipped[0].distances, segment.distances)

    def test_invalid_shell_raises(self, dipping_path):
        with pytest.raises(ValueError, match="smaller than"):
            dipping_path.clip_inside_layer(UPPER, LOWER)
        with pytest.raises(ValueError):
            dipping_path.clip_inside_layer(LOWER, LOWER)


class TestClipOutsideLayer:
    def test_segments_below_and_above(self, dipping_path):
        segments = dipping_path.clip_outside_layer(LOWER, UPPER)
        assert len(segments) == 3
        assert indices_of(dipping_path, segments) == [0, 1, 3, 4, 5, 7, 8]

    def test_all_radii_outside_shell(self, dipping_path, pierced_path):
        for raypath in (dipping_path, pierced_path):
            for segment in raypath.clip_outside_layer(LOWER, UPPER):
                radii = segment.radii
                outside = (radii <= LOWER + RADIUS_EPSILON) | (radii >= UPPER - RADIUS_EPSILON)
                assert np.all(outside)

    def test_part_below_without_boundary_sample_is_lost(self):
        raypath = make_raypath([6371.0, 5000.0, 3000.0, 2000.0])
        segments = raypath.clip_outside_layer(LOWER, UPPER)
        assert indices_of(raypath, segments) == [0, 1]

    def test_inside_point_closes_run(self):
        raypath = make_raypath([6371.0, 5000.0, 3700.0, 5000.0, 6371.0])
        segments = raypath.clip_outside_layer(LOWER, UPPER)
        assert indices_of(raypath, segments) == [0, 1]

    def test_start_below_opens_run(self):
        raypath = make_raypath([3000.0, 3200.0, 3480.0, 3700.0])
        segments = raypath.clip_outside_layer(LOWER, UPPER)
        assert indices_of(raypath, segments) == [0, 1, 2]

    def test_part_reopens_after_closing(self):
        raypath = make_raypath([3000.0, 3480.0, 3700.0, 3480.0, 3000.0])
        segments = raypath.clip_outside_layer(LOWER, UPPER)
        assert len(segments) == 2
        assert indices_of(raypath, segments) == [0, 1, 3, 4]

    def test_complementary_coverage(self, dipping_path, pierced_path):
        for raypath in (dipping_path, pierced_path):
            inside = raypath.clip_inside_layer(LOWER, UPPER)
            outside = raypath.clip_outside_layer(LOWER, UPPER)
            counts = Counter(indices_of(raypath, inside + outside))
            assert set(counts) == set(range(len(raypath)))
            for i, radius in enumerate(raypath.radii):
                on_boundary = (equals_within(radius, LOWER, RADIUS_EPSILON)
                               or equals_within(radius, UPPER, RADIUS_EPSILON))
                # boundary points belong to both clips
                assert counts[i] == (2 if on_boundary else 1)


# ---------------------------------------------------------------------------
# Pierce points
# ---------------------------------------------------------------------------

class TestPiercePoints:
    def test_points_inserted_at_each_crossing(self, pierced_path):
        np.testing.assert_allclose(
            pierced_path.radii,
            [6371.0, UPPER, LOWER, 3000.0, LOWER, UPPER, 6371.0],
        )

    def test_distance_interpolated_linearly(self, pierced_path):
        f = (UPPER - 6371.0) / (3000.0 - 6371.0)
        assert pierced_path.distances[1] == pytest.approx(10.0 * f)
        assert pierced_path.positions[1].longitude == pytest.approx(10.0 * f, abs=1e-3)
        assert pierced_path.positions[1].latitude == pytest.approx(0.0, abs=1e-3)

    def test_pierced_path_clips_to_boundaries(self, pierced_path):
        segments = pierced_path.clip_inside_layer(LOWER, UPPER)
        assert len(segments) == 2
        for segment in segments:
            assert {segment.source.radius, segment.receiver.radius} == {LOWER, UPPER}

    def test_existing_boundary_sample_not_duplicated(self):
        raypath = make_raypath([6371.0, 3880.0, 3000.0])
        assert len(raypath.with_pierce_points([UPPER, 6371.0])) == 3


# ---------------------------------------------------------------------------
# Turning and bouncing points
# ---------------------------------------------------------------------------

class TestTurningPoints:
    def test_boundary_touch_is_turning_point(self):
        raypath = make_raypath([6371.0, 5000.0, 3480.0, 5000.0, 6371.0])
        turning_points = raypath.find_turning_points()
        assert turning_points == [raypath.positions[2]]
        assert raypath.find_turning_point(0).radius == pytest.approx(3480.0)

    def test_plateau_reported_per_index(self):
        raypath = make_raypath([6371.0, 4000.0, 3500.0, 3500.0, 4000.0, 6371.0])
        assert raypath.find_turning_points() == [
            raypath.positions[2], raypath.positions[3]
        ]

    def test_end_points_never_qualify(self):
        raypath = make_raypath([3000.0, 4000.0, 5000.0])
        assert raypath.find_turning_points() == []
        assert raypath.find_ceil_bouncing_points() == []

    def test_ceil_bouncing_points(self):
        raypath = make_raypath([3000.0, 5000.0, 5000.0, 3000.0, 4000.0, 3500.0])
        assert raypath.find_ceil_bouncing_points() == [
            raypath.positions[1], raypath.positions[2], raypath.positions[4]
        ]
        assert raypath.find_ceil_bouncing_point(2) == raypath.positions[4]

    def test_index_out_of_range(self):
        raypath = make_raypath([6371.0, 3000.0, 6371.0])
        with pytest.raises(IndexError):
            raypath.find_turning_point(1)
        with pytest.raises(IndexError):
            raypath.find_turning_point(-1)
        with pytest.raises(IndexError):
            raypath.find_ceil_bouncing_point(0)

    def test_turning_azimuth(self):
        raypath = make_raypath([6371.0, 5000.0, 3000.0, 5000.0, 6371.0])
        assert raypath.compute_turning_azimuth_deg(0) == pytest.approx(90.0, abs=1e-6)
        with pytest.raises(IndexError):
            raypath.compute_turning_azimuth_deg(1)


# ---------------------------------------------------------------------------
# Segmentation of raypath sets
# ---------------------------------------------------------------------------

class TestSegmentRaypaths:
    def test_collects_segments_and_turning_points(self, dipping_path):
        grazing = make_raypath([6371.0, 3880.0, 3600.0, 3700.0, 3880.0, 6371.0])
        result = segment_raypaths([dipping_path, grazing], LOWER, UPPER)
        assert len(result['inside']) == 3
        assert len(result['outside']) == 5
        assert result['turning_points'] == [grazing.positions[2]]

    def test_logs_summary(self, dipping_path, caplog):
        with caplog.at_level("INFO", logger="tomoray.raypath"):
            segment_raypaths([dipping_path], LOWER, UPPER)
        assert "Segmented 1 raypaths" in caplog.text

    def test_empty_input(self):
        result = segment_raypaths([], LOWER, UPPER)
        assert result == {'inside': [], 'outside': [], 'turning_points': []}
