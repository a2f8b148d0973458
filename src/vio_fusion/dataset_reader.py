"""EuRoC MAV dataset reader producing time-ordered sensor samples."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import cv2
import numpy as np
import yaml

from .sensors.camera_model import StereoCameraModel
from .sensors.imu import ImuSample
from .sensors.pose import SE3
from .sensors.sensor_data import SensorData

logger = logging.getLogger(__name__)

# EuRoC ADIS16448 datasheet values, used when imu0/sensor.yaml is absent
DEFAULT_GYRO_NOISE_DENSITY = 1.6968e-04
DEFAULT_ACCEL_NOISE_DENSITY = 2.0000e-3
DEFAULT_IMU_RATE = 200.0


class EurocReader:
    """Reader for EuRoC MAV stereo + IMU sequences.

    Iterating yields :class:`SensorData` in timestamp order: IMU-only samples
    interleaved with stereo image samples. When an image and an IMU sample
    share a timestamp, the IMU sample comes first.

    Example:
        >>> reader = EurocReader("data/euroc/MH_01_easy/mav0")
        >>> for data in reader:
        ...     result = driver.process(data)
    """

    def __init__(self, dataset_path: str | Path = "data/euroc/MH_01_easy/mav0") -> None:
        """Initialize reader with path to dataset.

        Args:
            dataset_path: Path to mav0 directory

        Raises:
            FileNotFoundError: If dataset path or required files don't exist
            ValueError: If a data.csv is empty or invalid
        """
        self.dataset_path = Path(dataset_path)

        self.cam0_path = self.dataset_path / "cam0"
        self.cam1_path = self.dataset_path / "cam1"
        self.imu_path = self.dataset_path / "imu0"

        self._validate_paths()

        self._image_list = self._load_image_list()
        if not self._image_list:
            raise ValueError(f"No images found in {self.cam0_path / 'data.csv'}")

        self._imu_list = self._load_imu_list()
        self.stereo_model = self._load_stereo_model()
        self.imu_transform, gyro_variance, accel_variance = self._load_imu_calibration()
        self._gyro_variance = gyro_variance
        self._accel_variance = accel_variance

        logger.info(
            "EuRoC sequence %s: %d stereo pairs, %d IMU samples",
            self.dataset_path,
            len(self._image_list),
            len(self._imu_list),
        )

    def _validate_paths(self) -> None:
        """Validate that all required paths exist."""
        if not self.dataset_path.exists():
            raise FileNotFoundError(f"Dataset path does not exist: {self.dataset_path}")

        for name, path in (("cam0", self.cam0_path), ("cam1", self.cam1_path), ("imu0", self.imu_path)):
            if not path.exists():
                raise FileNotFoundError(
                    f"{name} directory not found: {path}\n"
                    f"Expected structure: {self.dataset_path}/{name}/"
                )

        for name, path in (("cam0", self.cam0_path), ("cam1", self.cam1_path)):
            if not (path / "data").exists():
                raise FileNotFoundError(f"{name}/data directory not found: {path / 'data'}")

        csv_path = self.cam0_path / "data.csv"
        if not csv_path.exists():
            raise FileNotFoundError(
                f"cam0/data.csv not found: {csv_path}\n"
                f"This file is required to list image timestamps and filenames."
            )

        imu_csv = self.imu_path / "data.csv"
        if not imu_csv.exists():
            raise FileNotFoundError(f"imu0/data.csv not found: {imu_csv}")

    def _load_image_list(self) -> list[tuple[int, str]]:
        """Parse cam0/data.csv.

        CSV format:
            #timestamp [ns],filename
            1403636579763555584,1403636579763555584.png

        Returns:
            List of (timestamp_ns, filename) tuples in chronological order
        """
        csv_path = self.cam0_path / "data.csv"
        image_list = []

        with open(csv_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                try:
                    timestamp_str, filename = line.split(",")
                    image_list.append((int(timestamp_str.strip()), filename.strip()))
                except ValueError as e:
                    raise ValueError(
                        f"Invalid line in {csv_path}: '{line}'\n"
                        f"Expected format: timestamp,filename"
                    ) from e

        image_list.sort(key=lambda item: item[0])
        return image_list

    def _load_imu_list(self) -> list[tuple[int, np.ndarray, np.ndarray]]:
        """Parse imu0/data.csv.

        CSV format:
            #timestamp [ns],w_x,w_y,w_z,a_x,a_y,a_z

        Returns:
            List of (timestamp_ns, gyroscope, accelerometer) in chronological order
        """
        csv_path = self.imu_path / "data.csv"
        imu_list = []

        with open(csv_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                parts = line.split(",")
                if len(parts) < 7:
                    raise ValueError(
                        f"Invalid line in {csv_path}: '{line}'\n"
                        f"Expected format: timestamp,w_x,w_y,w_z,a_x,a_y,a_z"
                    )
                try:
                    values = [float(p) for p in parts[1:7]]
                    imu_list.append(
                        (int(parts[0]), np.array(values[:3]), np.array(values[3:]))
                    )
                except ValueError as e:
                    raise ValueError(f"Invalid line in {csv_path}: '{line}'") from e

        imu_list.sort(key=lambda item: item[0])
        return imu_list

    def _load_stereo_model(self) -> StereoCameraModel | None:
        """Load the stereo calibration when both sensor.yaml files exist."""
        cam0_yaml = self.cam0_path / "sensor.yaml"
        cam1_yaml = self.cam1_path / "sensor.yaml"
        if not (cam0_yaml.exists() and cam1_yaml.exists()):
            logger.warning("Camera calibration not found in %s, images carry no model", self.dataset_path)
            return None
        return StereoCameraModel.from_euroc_yaml(cam0_yaml, cam1_yaml)

    def _load_imu_calibration(self) -> tuple[SE3, float, float]:
        """Load IMU extrinsic and measurement variances from imu0/sensor.yaml.

        Returns:
            (T_BS, gyro_variance, accel_variance); variances are the discrete
            noise densities squared times the sampling rate
        """
        sensor_path = self.imu_path / "sensor.yaml"
        data: dict = {}
        if sensor_path.exists():
            with open(sensor_path, "r") as f:
                data = yaml.safe_load(f) or {}

        T_BS = SE3.identity()
        T_BS_data = (data.get("T_BS") or {}).get("data")
        if T_BS_data is not None:
            if len(T_BS_data) != 16:
                raise ValueError(f"Invalid T_BS transform in {sensor_path}")
            T_BS = SE3.from_matrix(np.array(T_BS_data, dtype=np.float64).reshape(4, 4))

        rate = float(data.get("rate_hz", DEFAULT_IMU_RATE))
        gyro_noise = float(data.get("gyroscope_noise_density", DEFAULT_GYRO_NOISE_DENSITY))
        accel_noise = float(data.get("accelerometer_noise_density", DEFAULT_ACCEL_NOISE_DENSITY))
        return T_BS, gyro_noise**2 * rate, accel_noise**2 * rate

    def _load_image_pair(self, filename: str) -> tuple[np.ndarray, np.ndarray]:
        """Load synchronized stereo pair by filename.

        Raises:
            FileNotFoundError: If either image file doesn't exist
            ValueError: If image loading fails
        """
        left_path = self.cam0_path / "data" / filename
        right_path = self.cam1_path / "data" / filename

        if not left_path.exists():
            raise FileNotFoundError(f"Left camera image not found: {left_path}")
        if not right_path.exists():
            raise FileNotFoundError(f"Right camera image not found: {right_path}")

        left_img = cv2.imread(str(left_path), cv2.IMREAD_GRAYSCALE)
        right_img = cv2.imread(str(right_path), cv2.IMREAD_GRAYSCALE)

        if left_img is None:
            raise ValueError(f"Failed to load left image: {left_path}")
        if right_img is None:
            raise ValueError(f"Failed to load right image: {right_path}")

        return left_img, right_img

    def _imu_sample(self, timestamp_ns: int, gyro: np.ndarray, accel: np.ndarray) -> SensorData:
        imu = ImuSample.from_readings(
            angular_velocity=gyro,
            linear_acceleration=accel,
            gyro_variance=self._gyro_variance,
            accel_variance=self._accel_variance,
            local_transform=self.imu_transform,
        )
        return SensorData.from_imu(timestamp_ns / 1e9, imu)

    def _image_sample(self, timestamp_ns: int, filename: str) -> SensorData:
        left, right = self._load_image_pair(filename)
        if self.stereo_model is None:
            return SensorData(stamp=timestamp_ns / 1e9, image=left, right_image=right)
        return SensorData(
            stamp=timestamp_ns / 1e9,
            image=left,
            right_image=right,
            stereo_model=self.stereo_model,
        )

    def __len__(self) -> int:
        """Return total number of samples (stereo pairs plus IMU readings)."""
        return len(self._image_list) + len(self._imu_list)

    @property
    def num_images(self) -> int:
        return len(self._image_list)

    @property
    def num_imu(self) -> int:
        return len(self._imu_list)

    def __iter__(self) -> Iterator[SensorData]:
        """Yield samples in timestamp order (images loaded lazily)."""
        i_img = 0
        i_imu = 0
        while i_img < len(self._image_list) or i_imu < len(self._imu_list):
            take_imu = i_imu < len(self._imu_list) and (
                i_img >= len(self._image_list)
                or self._imu_list[i_imu][0] <= self._image_list[i_img][0]
            )
            if take_imu:
                yield self._imu_sample(*self._imu_list[i_imu])
                i_imu += 1
            else:
                yield self._image_sample(*self._image_list[i_img])
                i_img += 1
