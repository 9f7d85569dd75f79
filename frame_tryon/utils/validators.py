"""입력 검증 유틸리티 함수"""

import numpy as np
from .exceptions import InvalidImageError


def validate_image(image: np.ndarray) -> None:
    """
    이미지 유효성 검증

    Args:
        image: 검증할 이미지 (numpy array)

    Raises:
        InvalidImageError: 이미지가 유효하지 않은 경우
    """
    if image is None:
        raise InvalidImageError("Image is None")

    if not isinstance(image, np.ndarray):
        raise InvalidImageError(f"Image must be numpy.ndarray, got {type(image)}")

    if image.size == 0:
        raise InvalidImageError("Image is empty")

    if len(image.shape) not in [2, 3]:
        raise InvalidImageError(f"Image must be 2D or 3D, got shape {image.shape}")

    if len(image.shape) == 3 and image.shape[2] not in [1, 3, 4]:
        raise InvalidImageError(f"Image channels must be 1, 3, or 4, got {image.shape[2]}")


def validate_container_size(width: float, height: float) -> None:
    """컨테이너(표시 영역) 크기 검증 (양수)"""
    if width is None or height is None or width <= 0 or height <= 0:
        raise ValueError(f"Container size must be positive, got {width}x{height}")


def validate_normalized(value: float, param_name: str = "coordinate") -> None:
    """정규화 좌표 검증 (0.0 ~ 1.0)"""
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{param_name} must be between 0.0 and 1.0, got {value}")


def validate_positive(value: float, param_name: str) -> None:
    if value is None or value <= 0:
        raise ValueError(f"{param_name} must be > 0, got {value}")
