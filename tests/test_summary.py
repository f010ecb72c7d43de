"""Tests for the first-order optics summary."""

import math

import pytest

from aperture_sim.metrics.summary import interference_rating, open_area_mm2, optics_summary
from obscura.core.config import (
    Annular,
    CameraDescriptor,
    Freeform,
    Pinhole,
    SlitArray,
    Star,
    ZonePlate,
)

CAMERA = CameraDescriptor()
LAMBDA_MM = 550e-6


def test_pinhole_summary():
    summary = optics_summary(CAMERA, Pinhole(diameter=0.3))
    assert summary.f_number == pytest.approx(50.0 / 0.3)
    assert summary.optimal_diameter_mm == pytest.approx(1.9 * math.sqrt(50.0 * LAMBDA_MM))
    assert summary.geometric_blur_mm == pytest.approx(0.3)
    assert summary.diffraction_blur_mm == pytest.approx(2.44 * LAMBDA_MM * 50.0 / 0.3)
    assert summary.total_blur_mm == pytest.approx(math.hypot(0.3, summary.diffraction_blur_mm))
    assert not summary.diffraction_limited
    assert summary.fov_h_deg == pytest.approx(math.degrees(2 * math.atan(35.9 / 100.0)))
    assert summary.focal_length_35mm == pytest.approx(50.0 * 43.266 / math.hypot(35.9, 23.9))
    assert summary.fringe_spacing_mm == 0.0
    assert summary.interference_rating == ""


def test_small_pinhole_is_diffraction_limited():
    assert optics_summary(CAMERA, Pinhole(diameter=0.05)).diffraction_limited


def test_zone_plate_optimal_diameter():
    summary = optics_summary(CAMERA, ZonePlate(zones=10))
    assert summary.optimal_diameter_mm == pytest.approx(2.0 * math.sqrt(10 * 50.0 * LAMBDA_MM))


def test_slit_array_fringes():
    summary = optics_summary(CAMERA, SlitArray(spread=0.5, slit_width=0.1))
    assert summary.fringe_spacing_mm == pytest.approx(LAMBDA_MM * 50.0 / 0.5)
    assert summary.interference_rating == "Visible (Fine)"
    assert summary.f_number == pytest.approx(500.0)


def test_interference_ratings():
    assert interference_rating(0.001) == "Microscopic (Invisible)"
    assert interference_rating(0.01) == "Very Weak"
    assert interference_rating(0.5) == "Strong / Clear"
    assert interference_rating(2.0) == "Very Wide"


def test_open_areas():
    assert open_area_mm2(Pinhole(diameter=2.0)) == pytest.approx(math.pi)
    assert open_area_mm2(Annular(diameter=1.0)) == pytest.approx(math.pi * (0.25 - 0.0625))
    star = open_area_mm2(Star(diameter=1.0))
    assert 0.0 < star < math.pi * 0.25
    stroke = Freeform(diameter=2.0, brush_size=0.1, path=((-1.0, 0.0), (1.0, 0.0)))
    assert open_area_mm2(stroke) == pytest.approx(0.2)


def test_summary_dict():
    data = optics_summary(CAMERA, Pinhole()).to_dict()
    assert set(data) >= {"f_number", "fov_h_deg", "total_blur_mm", "footprint_mm"}
