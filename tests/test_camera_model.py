"""Tests for camera calibration descriptors."""

from pathlib import Path

import numpy as np
import pytest

from vio_fusion.sensors import SE3, CameraModel, StereoCameraModel, load_euroc_camera

EUROC_CAM0 = """\
sensor_type: camera
T_BS:
  cols: 4
  rows: 4
  data: [0.0148655429818, -0.999880929698, 0.00414029679422, -0.0216401454975,
         0.999557249008, 0.0149672133247, 0.025715529948, -0.064676986768,
         -0.0257744366974, 0.00375618835797, 0.999660727178, 0.00981073058949,
         0.0, 0.0, 0.0, 1.0]
rate_hz: 20
resolution: [752, 480]
camera_model: pinhole
intrinsics: [458.654, 457.296, 367.215, 248.375]
distortion_model: radial-tangential
distortion_coefficients: [-0.28340811, 0.07395907, 0.00019359, 1.76187114e-05]
"""

EUROC_CAM1 = """\
sensor_type: camera
T_BS:
  cols: 4
  rows: 4
  data: [0.0125552670891, -0.999755099723, 0.0182237714554, -0.0198435579556,
         0.999598781151, 0.0130119051815, 0.0251588363115, 0.0453689425024,
         -0.0253898008918, 0.0179005838253, 0.999517347078, 0.00786212447038,
         0.0, 0.0, 0.0, 1.0]
rate_hz: 20
resolution: [752, 480]
camera_model: pinhole
intrinsics: [457.587, 456.134, 379.999, 255.238]
distortion_model: radial-tangential
distortion_coefficients: [-0.28368365, 0.07451284, -0.00010473, -3.55590700e-05]
"""


@pytest.fixture
def euroc_yaml(tmp_path: Path) -> tuple[Path, Path]:
    paths = []
    for name, text in (("cam0", EUROC_CAM0), ("cam1", EUROC_CAM1)):
        directory = tmp_path / name
        directory.mkdir()
        (directory / "sensor.yaml").write_text(text)
        paths.append(directory / "sensor.yaml")
    return paths[0], paths[1]


class TestCameraModel:
    """Test suite for CameraModel."""

    def test_from_intrinsics(self):
        """Test intrinsic accessors and default rectified K."""
        model = CameraModel.from_intrinsics("cam", (640, 480), 400.0, 410.0, 320.0, 240.0)

        assert (model.fx, model.fy, model.cx, model.cy) == (400.0, 410.0, 320.0, 240.0)
        assert (model.image_width, model.image_height) == (640, 480)
        np.testing.assert_array_equal(model.K, model.K_raw)
        assert model.D_raw.size == 0
        assert model.is_valid_for_projection()

    def test_invalid_intrinsics(self):
        """Test that a zero focal length is not usable."""
        model = CameraModel.from_intrinsics("cam", (640, 480), 0.0, 400.0, 320.0, 240.0)

        assert not model.is_valid_for_projection()

    def test_null_extrinsic_not_usable(self):
        """Test that the null extrinsic invalidates the model."""
        model = CameraModel.from_intrinsics(
            "cam", (640, 480), 400.0, 400.0, 320.0, 240.0, local_transform=SE3.null()
        )

        assert not model.is_valid_for_projection()

    def test_bad_matrix_shape(self):
        """Test K validation."""
        with pytest.raises(ValueError, match="3x3"):
            CameraModel(name="cam", image_size=(640, 480), K_raw=np.eye(4))

    def test_with_local_transform(self):
        """Test that copies do not share arrays with the original."""
        model = CameraModel.from_intrinsics("cam", (640, 480), 400.0, 400.0, 320.0, 240.0)

        moved = model.with_local_transform(SE3.from_translation(1.0, 0.0, 0.0))
        moved.K[0, 0] = 1.0

        assert model.fx == 400.0
        assert model.local_transform.is_identity()
        assert moved.local_transform.is_close(SE3.from_translation(1.0, 0.0, 0.0))


class TestEurocCalibration:
    """EuRoC sensor.yaml parsing."""

    def test_load_euroc_camera(self, euroc_yaml):
        """Test intrinsics, distortion and extrinsic parsing."""
        model = load_euroc_camera(euroc_yaml[0])

        assert model.name == "cam0"
        assert model.image_size == (752, 480)
        assert model.fx == pytest.approx(458.654)
        assert model.cy == pytest.approx(248.375)
        assert len(model.D_raw) == 4
        assert model.local_transform.translation[1] == pytest.approx(-0.064676986768)

    def test_missing_file(self, tmp_path: Path):
        """Test that a missing file is reported."""
        with pytest.raises(FileNotFoundError):
            load_euroc_camera(tmp_path / "sensor.yaml")

    def test_invalid_distortion(self, tmp_path: Path):
        """Test that unsupported coefficient counts are rejected."""
        path = tmp_path / "sensor.yaml"
        path.write_text(EUROC_CAM0.replace("1.76187114e-05]", "1.76187114e-05, 0.1, 0.2, 0.3]"))

        with pytest.raises(ValueError, match="distortion"):
            load_euroc_camera(path)

    def test_stereo_from_euroc(self, euroc_yaml):
        """Test stereo extrinsics derived from both body extrinsics."""
        stereo = StereoCameraModel.from_euroc_yaml(*euroc_yaml)

        # EuRoC baseline is about 11 cm
        assert stereo.baseline == pytest.approx(0.11, abs=0.005)
        assert stereo.is_valid_for_projection()

        # [R|T] maps cam0 points into cam1: composing with cam1's extrinsic gives cam0's
        T_cam1_cam0 = stereo.stereo_transform()
        assert (stereo.right.local_transform @ T_cam1_cam0).is_close(
            stereo.left.local_transform, atol=1e-9
        )

    def test_stereo_without_extrinsics(self):
        """Test that a baseline-only stereo model has no [R|T]."""
        model = CameraModel.from_intrinsics("cam", (640, 480), 400.0, 400.0, 320.0, 240.0)
        stereo = StereoCameraModel(left=model, right=model, baseline=0.1)

        assert stereo.is_valid_for_projection()
        with pytest.raises(ValueError):
            stereo.stereo_transform()

    def test_zero_baseline_invalid(self):
        """Test that a zero baseline is not usable for projection."""
        model = CameraModel.from_intrinsics("cam", (640, 480), 400.0, 400.0, 320.0, 240.0)

        assert not StereoCameraModel(left=model, right=model).is_valid_for_projection()
