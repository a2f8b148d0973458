"""Tests for EurocReader."""

from pathlib import Path

import cv2
import numpy as np
import pytest

from vio_fusion.dataset_reader import EurocReader

T0 = 1403636579763555584
IMAGE_STEP = 50_000_000
IMU_STEP = 25_000_000

CAM_YAML = """\
# General sensor definitions.
sensor_type: camera
comment: VI-Sensor {name} (MT9M034)

# Sensor extrinsics wrt. the body-frame.
T_BS:
  cols: 4
  rows: 4
  data: [1.0, 0.0, 0.0, {tx},
         0.0, 1.0, 0.0, 0.0,
         0.0, 0.0, 1.0, 0.0,
         0.0, 0.0, 0.0, 1.0]

# Camera specific definitions.
rate_hz: 20
resolution: [100, 80]
camera_model: pinhole
intrinsics: [90.0, 90.0, 50.0, 40.0] #fu, fv, cu, cv
distortion_model: radial-tangential
distortion_coefficients: [-0.28, 0.07, 0.0002, 1.8e-05]
"""

IMU_YAML = """\
sensor_type: imu
comment: VI-Sensor IMU (ADIS16448)
T_BS:
  cols: 4
  rows: 4
  data: [1.0, 0.0, 0.0, 0.0,
         0.0, 1.0, 0.0, 0.0,
         0.0, 0.0, 1.0, 0.2,
         0.0, 0.0, 0.0, 1.0]
rate_hz: 200
gyroscope_noise_density: 1.0e-3
gyroscope_random_walk: 1.9393e-05
accelerometer_noise_density: 2.0e-2
accelerometer_random_walk: 3.0000e-3
"""


@pytest.fixture
def mock_dataset(tmp_path: Path) -> Path:
    """Create a mock EuRoC dataset with stereo images and IMU data.

    Images at T0, T0+50ms, T0+100ms; IMU every 25 ms from T0-25ms to T0+100ms.

    Returns:
        Path to mock mav0 directory
    """
    mav0 = tmp_path / "mav0"
    cam0_data = mav0 / "cam0" / "data"
    cam1_data = mav0 / "cam1" / "data"
    imu0 = mav0 / "imu0"

    cam0_data.mkdir(parents=True)
    cam1_data.mkdir(parents=True)
    imu0.mkdir(parents=True)

    timestamps = [T0 + i * IMAGE_STEP for i in range(3)]
    for i, timestamp in enumerate(timestamps):
        filename = f"{timestamp}.png"
        cv2.imwrite(str(cam0_data / filename), np.full((80, 100), i * 50, dtype=np.uint8))
        cv2.imwrite(str(cam1_data / filename), np.full((80, 100), i * 50 + 25, dtype=np.uint8))

    csv_content = "#timestamp [ns],filename\n"
    for timestamp in timestamps:
        csv_content += f"{timestamp},{timestamp}.png\n"
    (mav0 / "cam0" / "data.csv").write_text(csv_content)
    (mav0 / "cam1" / "data.csv").write_text(csv_content)

    (mav0 / "cam0" / "sensor.yaml").write_text(CAM_YAML.format(name="cam0", tx=0.0))
    (mav0 / "cam1" / "sensor.yaml").write_text(CAM_YAML.format(name="cam1", tx=0.11))

    imu_content = (
        "#timestamp [ns],w_RS_S_x [rad s^-1],w_RS_S_y [rad s^-1],w_RS_S_z [rad s^-1],"
        "a_RS_S_x [m s^-2],a_RS_S_y [m s^-2],a_RS_S_z [m s^-2]\n"
    )
    for k in range(-1, 5):
        imu_content += f"{T0 + k * IMU_STEP},0.01,0.02,0.03,0.1,0.2,9.81\n"
    (imu0 / "data.csv").write_text(imu_content)
    (imu0 / "sensor.yaml").write_text(IMU_YAML)

    return mav0


class TestEurocReader:
    """Test suite for EurocReader."""

    def test_initialization(self, mock_dataset: Path):
        """Test that EurocReader initializes correctly."""
        reader = EurocReader(str(mock_dataset))

        assert reader.dataset_path == mock_dataset
        assert reader.num_images == 3
        assert reader.num_imu == 6
        assert len(reader) == 9

    def test_initialization_missing_dataset_path(self, tmp_path: Path):
        """Test that initialization fails with missing dataset path."""
        with pytest.raises(FileNotFoundError, match="Dataset path does not exist"):
            EurocReader(str(tmp_path / "nonexistent"))

    def test_initialization_missing_cam1(self, tmp_path: Path):
        """Test that initialization fails when cam1 directory is missing."""
        mav0 = tmp_path / "mav0"
        (mav0 / "cam0").mkdir(parents=True)

        with pytest.raises(FileNotFoundError, match="cam1 directory not found"):
            EurocReader(str(mav0))

    def test_initialization_missing_imu(self, mock_dataset: Path):
        """Test that initialization fails when imu0/data.csv is missing."""
        (mock_dataset / "imu0" / "data.csv").unlink()

        with pytest.raises(FileNotFoundError, match="imu0/data.csv not found"):
            EurocReader(str(mock_dataset))

    def test_initialization_empty_csv(self, mock_dataset: Path):
        """Test that initialization fails with empty data.csv."""
        (mock_dataset / "cam0" / "data.csv").write_text("#timestamp [ns],filename\n")

        with pytest.raises(ValueError, match="No images found"):
            EurocReader(str(mock_dataset))

    def test_invalid_imu_line(self, mock_dataset: Path):
        """Test that malformed IMU rows are reported."""
        with open(mock_dataset / "imu0" / "data.csv", "a") as f:
            f.write("1403636579863555584,0.1,0.2\n")

        with pytest.raises(ValueError, match="Invalid line"):
            EurocReader(str(mock_dataset))

    def test_time_ordering(self, mock_dataset: Path):
        """Test that samples are yielded in timestamp order, IMU before image on ties."""
        reader = EurocReader(str(mock_dataset))

        samples = list(reader)
        kinds = ["image" if s.has_image else "imu" for s in samples]

        assert kinds == ["imu", "imu", "image", "imu", "imu", "image", "imu", "imu", "image"]
        stamps = [s.stamp for s in samples]
        assert stamps == sorted(stamps)

    def test_image_samples(self, mock_dataset: Path):
        """Test stereo image content and calibration."""
        reader = EurocReader(str(mock_dataset))

        images = [s for s in reader if s.has_image]

        assert images[0].image.shape == (80, 100)
        assert np.all(images[0].image == 0)
        assert np.all(images[0].right_image == 25)
        assert np.all(images[2].image == 100)
        assert images[0].stamp_ns == pytest.approx(T0, abs=1000)
        stereo = images[0].stereo_model
        assert stereo is not None
        assert stereo.baseline == pytest.approx(0.11)
        assert stereo.is_valid_for_projection()
        assert not images[0].has_imu

    def test_imu_samples(self, mock_dataset: Path):
        """Test IMU readings, extrinsic and covariances."""
        reader = EurocReader(str(mock_dataset))

        imu = next(s for s in reader if s.has_imu).imu

        np.testing.assert_allclose(imu.angular_velocity, [0.01, 0.02, 0.03])
        np.testing.assert_allclose(imu.linear_acceleration, [0.1, 0.2, 9.81])
        np.testing.assert_allclose(imu.local_transform.translation, [0.0, 0.0, 0.2])
        np.testing.assert_allclose(imu.angular_velocity_covariance, np.eye(3) * 1.0e-6 * 200)
        np.testing.assert_allclose(imu.linear_acceleration_covariance, np.eye(3) * 4.0e-4 * 200)

    def test_missing_calibration(self, mock_dataset: Path):
        """Test that images without calibration carry no camera model."""
        (mock_dataset / "cam1" / "sensor.yaml").unlink()
        (mock_dataset / "imu0" / "sensor.yaml").unlink()

        reader = EurocReader(str(mock_dataset))
        samples = list(reader)

        assert reader.stereo_model is None
        assert all(s.stereo_model is None for s in samples)
        assert reader.imu_transform.is_identity()

    def test_iterates_twice(self, mock_dataset: Path):
        """Test that every iteration starts from the beginning."""
        reader = EurocReader(str(mock_dataset))

        assert len(list(reader)) == len(list(reader)) == 9

    def test_missing_image_file(self, mock_dataset: Path):
        """Test that a listed but missing image raises on load."""
        (mock_dataset / "cam1" / "data" / f"{T0}.png").unlink()
        reader = EurocReader(str(mock_dataset))

        with pytest.raises(FileNotFoundError, match="Right camera image not found"):
            list(reader)
