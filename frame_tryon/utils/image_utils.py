# -*- coding: utf-8 -*-
"""
Image utility functions (decode / encode / channel conversion)
"""

from io import BytesIO
from typing import Tuple

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from .exceptions import AssetLoadError, ExportError, InvalidImageError
from .logging_config import get_logger

logger = get_logger(__name__)

# imencode 확장자 매핑
_ENCODE_EXTENSIONS = {
    'png': '.png',
    'jpg': '.jpg',
    'jpeg': '.jpg',
    'webp': '.webp',
}


def to_bgra(image: np.ndarray) -> np.ndarray:
    """
    임의 채널 수의 이미지를 BGRA로 변환

    Args:
        image: Grayscale, BGR 또는 BGRA 이미지

    Returns:
        BGRA uint8 이미지 (알파가 없으면 불투명 255로 채움)
    """
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 1:
        return cv2.cvtColor(image[..., 0], cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        alpha = np.full(image.shape[:2], 255, np.uint8)
        return np.dstack([image, alpha])
    if image.shape[2] == 4:
        return image
    raise InvalidImageError(f"Unsupported channel count: {image.shape}")


def to_bgr(image: np.ndarray) -> np.ndarray:
    """Grayscale/BGRA 이미지를 BGR로 변환"""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 1:
        return cv2.cvtColor(image[..., 0], cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def decode_image_bytes(data: bytes) -> np.ndarray:
    """
    인코딩된 이미지 바이트(PNG/JPEG/WebP...)를 BGRA 배열로 디코드

    Args:
        data: 인코딩된 이미지 바이트

    Returns:
        BGRA uint8 numpy 배열

    Raises:
        AssetLoadError: 디코드 실패
    """
    if not data:
        raise AssetLoadError("Image data is empty")

    try:
        with Image.open(BytesIO(data)) as im:
            rgba = np.array(im.convert("RGBA"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError) as e:
        raise AssetLoadError(f"Cannot decode image data ({len(data)} bytes): {e}") from e

    return cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA)


def load_image_file(path: str) -> np.ndarray:
    """
    파일에서 이미지를 BGRA로 로드 (알파 채널 보존)

    Raises:
        AssetLoadError: 파일이 없거나 디코드 실패
    """
    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise AssetLoadError(f"Cannot read image file: {path}")
    return to_bgra(img)


def encode_image(image: np.ndarray, image_format: str = 'png', jpeg_quality: int = 95) -> bytes:
    """
    래스터 이미지를 지정 포맷 바이트로 인코딩

    Args:
        image: BGR 또는 BGRA 이미지
        image_format: 'png' (무손실, 기본), 'jpg'/'jpeg', 'webp'
        jpeg_quality: JPEG 품질 (0-100)

    Returns:
        인코딩된 바이트

    Raises:
        ExportError: 지원하지 않는 포맷 또는 인코딩 실패
    """
    ext = _ENCODE_EXTENSIONS.get((image_format or '').lower())
    if ext is None:
        raise ExportError(f"Unsupported export format: {image_format}")

    params = []
    if ext == '.jpg':
        params = [cv2.IMWRITE_JPEG_QUALITY, int(jpeg_quality)]

    ok, buf = cv2.imencode(ext, image, params)
    if not ok:
        raise ExportError(f"Failed to encode image as {image_format}")

    logger.debug(f"Encoded {image.shape} as {image_format}: {len(buf)} bytes")
    return buf.tobytes()


def resize_max_dimension(image: np.ndarray, max_dim: int) -> Tuple[np.ndarray, float]:
    """
    긴 변이 max_dim을 넘으면 비율을 유지하며 축소

    Returns:
        (축소된 이미지, 적용된 비율) - 축소가 없으면 비율 1.0
    """
    h, w = image.shape[:2]
    if max_dim <= 0 or (w <= max_dim and h <= max_dim):
        return image, 1.0

    ratio = min(max_dim / w, max_dim / h)
    new_size = (max(1, round(w * ratio)), max(1, round(h * ratio)))
    resized = cv2.resize(image, new_size, interpolation=cv2.INTER_AREA)
    return resized, ratio


def has_transparency(image_bgra: np.ndarray, opaque_threshold: int = 250) -> bool:
    """알파 채널에 실제 투명 영역이 있는지 확인"""
    if image_bgra.ndim != 3 or image_bgra.shape[2] != 4:
        return False
    return bool(np.any(image_bgra[..., 3] < opaque_threshold))
