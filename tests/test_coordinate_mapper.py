"""Tests for the pixel -> angle mapping and TrackerConfig."""

import pytest

from spottrack.core.motor.coordinate_mapper import AxisCalibration, CoordinateMapper
from spottrack.core.motor.tracker_config import TrackerConfig


@pytest.fixture
def mapper():
    return CoordinateMapper(image_width=320, image_height=240)


class TestCoordinateMapper:

    def test_center_is_neutral(self, mapper):
        assert mapper.to_angles(160, 120) == (90.0, 90.0)

    def test_image_edges_hit_half_span(self, mapper):
        assert mapper.to_angles(0, 0) == (0.0, 20.0)
        assert mapper.to_angles(320, 240) == (180.0, 160.0)

    def test_pan_is_linear(self, mapper):
        pan, _ = mapper.to_angles(240, 120)
        assert pan == pytest.approx(135.0)

    def test_pan_inversion_mirrors_about_neutral(self):
        plain = CoordinateMapper(image_width=320, image_height=240)
        inverted = CoordinateMapper(
            image_width=320, image_height=240, pan=AxisCalibration(half_span=90.0, invert=True)
        )
        for x in (0, 37, 160, 250, 319):
            assert inverted.to_angles(x, 50)[0] == pytest.approx(180.0 - plain.to_angles(x, 50)[0])
            assert inverted.to_angles(x, 50)[1] == pytest.approx(plain.to_angles(x, 50)[1])

    def test_distance_from_center(self, mapper):
        assert mapper.distance_from_center(160, 120) == 0.0
        assert mapper.distance_from_center(163, 124) == pytest.approx(5.0)


class TestTrackerConfig:

    def test_defaults(self):
        config = TrackerConfig()
        assert (config.pan_channel, config.tilt_channel) == (0, 1)
        assert config.smooth_factor == 0.3
        assert config.dead_zone == 10.0
        assert config.min_angle_change == 1.0
        assert config.lost_frame_threshold == 30

    @pytest.mark.parametrize("value,expected", [(-0.5, 0.0), (0.5, 0.5), (1.5, 1.0)])
    def test_smooth_factor_clamps(self, value, expected):
        assert TrackerConfig(smooth_factor=value).smooth_factor == expected

    def test_assignment_clamps(self):
        config = TrackerConfig()
        config.dead_zone = -3
        config.pan_half_span = 120
        config.recenter_rate = 2.0
        assert config.dead_zone == 0.0
        assert config.pan_half_span == 90.0
        assert config.recenter_rate == 1.0

    def test_lost_frame_threshold_at_least_one(self):
        assert TrackerConfig(lost_frame_threshold=0).lost_frame_threshold == 1

    def test_mapper_follows_config(self):
        config = TrackerConfig(pan_half_span=45, tilt_invert=True)
        pan, tilt = config.mapper.to_angles(0, 0)
        assert pan == pytest.approx(45.0)
        assert tilt == pytest.approx(180.0 - 20.0)

    def test_rescale_same_geometry_is_identity(self):
        assert TrackerConfig().rescale_to_image(x=10, y=20, frame_width=320, frame_height=240) == (10.0, 20.0)

    def test_rescale_from_larger_frame(self):
        x, y = TrackerConfig().rescale_to_image(x=640, y=240, frame_width=1280, frame_height=480)
        assert (x, y) == (160.0, 120.0)

    def test_rescale_unknown_geometry_passes_through(self):
        assert TrackerConfig().rescale_to_image(x=7, y=9, frame_width=0, frame_height=0) == (7.0, 9.0)
