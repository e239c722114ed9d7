import math

import numpy as np
import pytest

from sfm_kit.features.config import MSURFConfig
from sfm_kit.features.keypoints import Keypoint
from sfm_kit.features.msurf import (
    compute_msurf_descriptor,
    compute_msurf_descriptor_uint8,
    compute_msurf_descriptors,
    dequantize_descriptor,
    gaussian,
    quantize_descriptor,
)

CENTER = Keypoint(x=64.0, y=64.0, scale=3.0, orientation=0.3)


def test_gaussian_peak_and_falloff():
    assert gaussian(0.0, 0.0, 1.5) == pytest.approx(1.0)
    assert gaussian(1.5, 0.0, 1.5) == pytest.approx(math.exp(-0.5))
    assert gaussian(1.0, 1.0, 2.0) == pytest.approx(gaussian(-1.0, 1.0, 2.0))


def test_descriptor_is_unit_norm(textured_fields):
    Lx, Ly = textured_fields
    desc = compute_msurf_descriptor(Lx, Ly, 0, CENTER)
    assert desc.shape == (64,)
    assert desc.dtype == np.float32
    assert np.linalg.norm(desc) == pytest.approx(1.0, abs=1e-5)


def test_absolute_channels_are_non_negative(textured_fields):
    Lx, Ly = textured_fields
    desc = compute_msurf_descriptor(Lx, Ly, 0, CENTER).reshape(4, 4, 4)
    assert np.all(desc[..., 2] >= 0)
    assert np.all(desc[..., 3] >= 0)
    assert np.all(np.abs(desc[..., 0]) <= desc[..., 2] + 1e-6)
    assert np.all(np.abs(desc[..., 1]) <= desc[..., 3] + 1e-6)


def test_full_turn_gives_same_descriptor(textured_fields):
    Lx, Ly = textured_fields
    kp_turned = Keypoint(CENTER.x, CENTER.y, CENTER.scale, CENTER.orientation + 2.0 * math.pi)
    np.testing.assert_allclose(
        compute_msurf_descriptor(Lx, Ly, 0, CENTER),
        compute_msurf_descriptor(Lx, Ly, 0, kp_turned),
        atol=1e-5,
    )


def test_raw_arrays_are_accepted(textured_fields):
    Lx, Ly = textured_fields
    np.testing.assert_array_equal(
        compute_msurf_descriptor(Lx, Ly, 0, CENTER),
        compute_msurf_descriptor(Lx.data, Ly.data, 0, CENTER),
    )


def test_octave_rescales_keypoint(textured_fields):
    Lx, Ly = textured_fields
    base = compute_msurf_descriptor(Lx, Ly, 0, CENTER)
    kp_o1 = Keypoint(CENTER.x * 2, CENTER.y * 2, CENTER.scale * 2, CENTER.orientation)
    np.testing.assert_allclose(compute_msurf_descriptor(Lx, Ly, 1, kp_o1), base, atol=1e-6)


def test_constant_gradient_layout(constant_fields):
    # Gradient along +x, keypoint not rotated: everything lands in the dy channels
    Lx, Ly = constant_fields(1.0, 0.0)
    desc = compute_msurf_descriptor(Lx, Ly, 0, Keypoint(64.0, 64.0, 2.0, 0.0)).reshape(4, 4, 4)
    np.testing.assert_allclose(desc[..., 0], 0.0, atol=1e-7)
    np.testing.assert_allclose(desc[..., 2], 0.0, atol=1e-7)
    np.testing.assert_allclose(desc[..., 1], desc[..., 3], rtol=1e-6)
    assert np.all(desc[..., 1] > 0)

    # Subregions only differ by the grid weight
    ratio = desc[0, 0, 1] / desc[1, 1, 1]
    assert ratio == pytest.approx(math.exp(-(1.5**2 * 2 - 0.5**2 * 2) / (2 * 1.5**2)), rel=1e-5)
    np.testing.assert_allclose(desc[..., 1], desc[..., 1].T, rtol=1e-6)


def test_rotated_gradient_and_keypoint_match(constant_fields):
    Lx0, Ly0 = constant_fields(1.0, 0.0)
    Lx1, Ly1 = constant_fields(0.0, 1.0)
    d0 = compute_msurf_descriptor(Lx0, Ly0, 0, Keypoint(64.0, 64.0, 2.0, 0.0))
    d1 = compute_msurf_descriptor(Lx1, Ly1, 0, Keypoint(64.0, 64.0, 2.0, math.pi / 2))
    np.testing.assert_allclose(d0, d1, atol=1e-6)


def test_textureless_patch_gives_zero_vector(constant_fields):
    Lx, Ly = constant_fields(0.0, 0.0)
    desc = compute_msurf_descriptor(Lx, Ly, 0, CENTER)
    assert np.all(np.isfinite(desc))
    assert not np.any(desc)


def test_pattern_outside_field_gives_zero_vector(textured_fields):
    Lx, Ly = textured_fields
    desc = compute_msurf_descriptor(Lx, Ly, 0, Keypoint(5000.0, 5000.0, 3.0, 0.0))
    assert not np.any(desc)


def test_uint8_variant_is_quantized_float(textured_fields):
    Lx, Ly = textured_fields
    desc = compute_msurf_descriptor(Lx, Ly, 0, CENTER)
    desc_u8 = compute_msurf_descriptor_uint8(Lx, Ly, 0, CENTER)
    assert desc_u8.dtype == np.uint8
    np.testing.assert_array_equal(desc_u8, quantize_descriptor(desc))
    # Not the all-zero buffer
    assert len(np.unique(desc_u8)) > 1
    np.testing.assert_allclose(dequantize_descriptor(desc_u8), desc, atol=0.5 / 127.5 + 1e-6)


def test_quantize_endpoints():
    np.testing.assert_array_equal(
        quantize_descriptor(np.array([-1.0, 0.0, 1.0, 2.0])),
        np.array([0, 128, 255, 255], dtype=np.uint8),
    )


def test_batch_matches_single(textured_fields):
    Lx, Ly = textured_fields
    kps = [CENTER, Keypoint(60.0, 70.0, 2.4, -1.0), Keypoint(70.0, 58.0, 3.6, 2.0)]
    batch = compute_msurf_descriptors(Lx, Ly, 0, kps)
    assert batch.shape == (3, 64)
    for row, kp in zip(batch, kps):
        np.testing.assert_array_equal(row, compute_msurf_descriptor(Lx, Ly, 0, kp))

    batch_u8 = compute_msurf_descriptors(Lx, Ly, 0, kps, quantize=True)
    assert batch_u8.dtype == np.uint8
    np.testing.assert_array_equal(batch_u8, quantize_descriptor(batch))


def test_batch_without_keypoints(textured_fields):
    Lx, Ly = textured_fields
    assert compute_msurf_descriptors(Lx, Ly, 0, []).shape == (0, 64)
    assert compute_msurf_descriptors(Lx, Ly, 0, [], quantize=True).dtype == np.uint8


@pytest.mark.parametrize(
    "octave, keypoint",
    [
        (-1, CENTER),
        (0, Keypoint(64.0, 64.0, 0.4, 0.0)),
        (2, Keypoint(64.0, 64.0, 1.9, 0.0)),
        (0, Keypoint(float("nan"), 64.0, 3.0, 0.0)),
    ],
)
def test_invalid_inputs_raise(textured_fields, octave, keypoint):
    Lx, Ly = textured_fields
    with pytest.raises(ValueError):
        compute_msurf_descriptor(Lx, Ly, octave, keypoint)


def test_mismatched_fields_raise():
    with pytest.raises(ValueError):
        compute_msurf_descriptor(np.zeros((32, 32)), np.zeros((32, 16)), 0, CENTER)


def test_config_validation_and_length():
    assert MSURFConfig().descriptor_length == 64
    with pytest.raises(ValueError):
        MSURFConfig(sample_step=0)
    with pytest.raises(ValueError):
        MSURFConfig(grid_sigma=-1.0)


def _reference_msurf(Lx, Ly, octave, kp):
    """Scalar walk over the 24s x 24s pattern with the stepping loops of the C++ descriptor."""
    desc = []
    ratio = float(1 << octave)
    scale = int(math.floor(kp.scale / ratio + 0.5))
    yf, xf = kp.y / ratio, kp.x / ratio
    co, si = math.cos(kp.orientation), math.sin(kp.orientation)

    cx = -0.5
    i = -8
    while i < 12:
        j = -8
        i -= 4
        cx += 1.0
        cy = -0.5
        while j < 12:
            dx = dy = mdx = mdy = 0.0
            cy += 1.0
            j -= 4
            ky = i + 5
            kx = j + 5
            xs = xf + (-kx * scale * si + ky * scale * co)
            ys = yf + (kx * scale * co + ky * scale * si)
            for k in range(i, i + 9):
                for l in range(j, j + 9):
                    sample_y = yf + (l * scale * co + k * scale * si)
                    sample_x = xf + (-l * scale * si + k * scale * co)
                    g1 = math.exp(
                        -((xs - sample_x) ** 2 + (ys - sample_y) ** 2) / (2.0 * (2.5 * scale) ** 2)
                    )
                    rx = Lx.sample(sample_y, sample_x)
                    ry = Ly.sample(sample_y, sample_x)
                    rry = g1 * (rx * co + ry * si)
                    rrx = g1 * (-rx * si + ry * co)
                    dx += rrx
                    dy += rry
                    mdx += abs(rrx)
                    mdy += abs(rry)
            g2 = math.exp(-((cx - 2.0) ** 2 + (cy - 2.0) ** 2) / (2.0 * 1.5**2))
            desc.extend([dx * g2, dy * g2, mdx * g2, mdy * g2])
            j += 9
        i += 9

    desc = np.array(desc)
    norm = np.linalg.norm(desc)
    return desc / norm if norm > 0 else desc


@pytest.mark.parametrize(
    "octave, keypoint",
    [
        (0, Keypoint(64.0, 64.0, 3.0, 0.3)),      # interior
        (0, Keypoint(20.0, 100.0, 3.0, 2.2)),     # pattern crosses the border
        (1, Keypoint(130.0, 118.0, 5.0, -1.1)),   # octave 1, scale rounds to 3
        (0, Keypoint(-30.0, 60.0, 3.0, 0.7)),     # mostly outside the field
    ],
)
def test_matches_stepping_loop_reference(textured_fields, octave, keypoint):
    Lx, Ly = textured_fields
    expected = _reference_msurf(Lx, Ly, octave, keypoint)
    assert len(expected) == 64
    assert np.linalg.norm(expected) > 0
    np.testing.assert_allclose(
        compute_msurf_descriptor(Lx, Ly, octave, keypoint), expected, atol=1e-6
    )
