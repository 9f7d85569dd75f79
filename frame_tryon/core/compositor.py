"""
Compositor: 라이브 프리뷰 레이어 설명 + 원본 해상도 평탄화(내보내기)

그리기 대상은 RasterSurface 추상화 뒤에 있으며 기본 구현은 OpenCV/numpy 캔버스.
"""

import base64
import binascii
import math
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Optional

import cv2
import numpy as np
import requests

from ..models.landmark_models import BlendParameters, OverlayAsset, PlacementTransform, PreviewLayer
from ..utils import get_config, get_logger
from ..utils.config_loader import Config
from ..utils.exceptions import AssetLoadError, InvalidImageError
from ..utils.image_utils import decode_image_bytes, encode_image, has_transparency, load_image_file, to_bgr, to_bgra
from ..utils.validators import validate_container_size, validate_image

logger = get_logger(__name__)

BLEND_NORMAL = "normal"
BLEND_MULTIPLY = "multiply"


def apply_blend_filter(bgr: np.ndarray, blend: BlendParameters) -> np.ndarray:
    """
    CSS 필터 `contrast(C%) brightness(B%)` 와 같은 순서로 적용

    Args:
        bgr: uint8 또는 float 이미지 (0-255)
        blend: 밝기/대비 (퍼센트)

    Returns:
        float32 이미지 (0-255 클립)
    """
    out = bgr.astype(np.float32)
    if blend.is_identity():
        return out

    contrast = blend.contrast / 100.0
    brightness = blend.brightness / 100.0

    # CSS 필터 함수는 단계마다 결과를 [0, 1]로 자름
    out = np.clip((out - 127.5) * contrast + 127.5, 0.0, 255.0)
    out = out * brightness
    return np.clip(out, 0.0, 255.0)


def overlay_matrix(asset_width: int, asset_height: int, reference_width_px: float,
                   pivot_x: float, pivot_y: float, rotation_deg: float,
                   scale_x: float, scale_y: float) -> np.ndarray:
    """
    에셋 픽셀 좌표 → 캔버스 좌표 2x3 affine 행렬

    에셋을 원점 중심에 기준 너비로 놓고 (높이는 에셋 비율 유지)
    scale(scale_x, scale_y) → rotate(rotation) → translate(pivot) 순서로 변환.
    """
    k = reference_width_px / float(asset_width)
    ref_h = asset_height * k

    theta = math.radians(rotation_deg)
    c, s = math.cos(theta), math.sin(theta)

    rotation = np.array([[c, -s], [s, c]], np.float64)
    scaling = np.array([[scale_x, 0.0], [0.0, scale_y]], np.float64)
    linear = rotation @ scaling

    m2 = linear * k
    origin = linear @ np.array([-reference_width_px / 2.0, -ref_h / 2.0])
    t = np.array([pivot_x, pivot_y]) + origin

    M = np.zeros((2, 3), np.float64)
    M[:, :2] = m2
    M[:, 2] = t
    return M


class RasterSurface(ABC):
    """2D 그리기 대상 추상화 (기본 이미지 → 변환된 오버레이 → 바이트 내보내기)"""

    @abstractmethod
    def draw_base(self, image: np.ndarray) -> None:
        pass

    @abstractmethod
    def draw_overlay(self, image_bgra: np.ndarray, matrix: np.ndarray,
                     blend: BlendParameters, blend_mode: str) -> None:
        pass

    @abstractmethod
    def to_image(self) -> np.ndarray:
        pass

    def export(self, image_format: str = 'png', jpeg_quality: int = 95) -> bytes:
        return encode_image(self.to_image(), image_format, jpeg_quality)


class OpenCVSurface(RasterSurface):
    """numpy BGR 캔버스 + cv2.warpAffine 기반 구현"""

    def __init__(self, width: int, height: int):
        self.width = int(width)
        self.height = int(height)
        self._canvas = np.zeros((self.height, self.width, 3), np.float32)

    def draw_base(self, image: np.ndarray) -> None:
        base = to_bgr(image)
        h, w = base.shape[:2]
        if (w, h) != (self.width, self.height):
            base = cv2.resize(base, (self.width, self.height), interpolation=cv2.INTER_LINEAR)
        self._canvas = base.astype(np.float32)

    def draw_overlay(self, image_bgra: np.ndarray, matrix: np.ndarray,
                     blend: BlendParameters, blend_mode: str) -> None:
        filtered = apply_blend_filter(image_bgra[..., :3], blend)
        size = (self.width, self.height)

        fg = cv2.warpAffine(filtered, matrix, size,
                            flags=cv2.INTER_LINEAR,
                            borderMode=cv2.BORDER_CONSTANT,
                            borderValue=(0, 0, 0))
        alpha = cv2.warpAffine(image_bgra[..., 3].astype(np.float32) / 255.0, matrix, size,
                               flags=cv2.INTER_LINEAR,
                               borderMode=cv2.BORDER_CONSTANT,
                               borderValue=0)
        alpha = np.clip(alpha, 0.0, 1.0)[..., None]

        if blend_mode == BLEND_MULTIPLY:
            # 흰색 픽셀은 배경을 그대로 통과시킴
            fg = self._canvas * fg / 255.0

        self._canvas = self._canvas * (1.0 - alpha) + fg * alpha

    def to_image(self) -> np.ndarray:
        return np.clip(np.rint(self._canvas), 0, 255).astype(np.uint8)


class Compositor:
    """
    오버레이 합성기

    - preview_layer(): 표시 좌표 그대로 쓰는 레이어 설명 (평탄화 없음)
    - flatten(): 원본 사진 해상도로 평탄화된 래스터
    """

    def __init__(self, config: Optional[Config] = None, surface_factory=OpenCVSurface):
        self.config = config or get_config()
        self.surface_factory = surface_factory

        self.reference_width_px = float(self.config.geometry.reference_width_px)
        self.opaque_threshold = int(self.config.blend.get('opaque_threshold', 250))
        self.http_timeout = float(self.config.assets.get('http_timeout', 10.0))
        self.cache_size = int(self.config.assets.get('cache_size', 16))
        self.default_format = self.config.export.get('default_format', 'png')
        self.jpeg_quality = int(self.config.export.get('jpeg_quality', 95))

        self._asset_cache: "OrderedDict[tuple, np.ndarray]" = OrderedDict()

    # ------------------------------------------------------------------
    # asset loading
    # ------------------------------------------------------------------
    def load_asset(self, asset: OverlayAsset) -> np.ndarray:
        """
        에셋 이미지를 BGRA 배열로 로드

        Raises:
            AssetLoadError: 소스가 없거나 다운로드/디코드 실패
        """
        source = asset.image_source
        if source is None:
            raise AssetLoadError(f"Asset {asset.asset_id} has no image source")

        if isinstance(source, np.ndarray):
            try:
                validate_image(source)
            except InvalidImageError as e:
                raise AssetLoadError(f"Asset {asset.asset_id} image is invalid: {e}") from e
            return to_bgra(source)

        if isinstance(source, (bytes, bytearray)):
            return decode_image_bytes(bytes(source))

        key = (asset.asset_id, source)
        cached = self._asset_cache.get(key)
        if cached is not None:
            self._asset_cache.move_to_end(key)
            return cached

        image = self._load_from_string(source)
        self._asset_cache[key] = image
        while len(self._asset_cache) > self.cache_size:
            self._asset_cache.popitem(last=False)
        logger.debug(f"Loaded asset {asset.asset_id}: {image.shape}")
        return image

    def _load_from_string(self, source: str) -> np.ndarray:
        if source.startswith('data:'):
            try:
                payload = source.split('base64,', 1)[1]
                return decode_image_bytes(base64.b64decode(payload))
            except (IndexError, binascii.Error) as e:
                raise AssetLoadError(f"Invalid data URL: {e}") from e

        if source.startswith(('http://', 'https://')):
            try:
                response = requests.get(source, timeout=self.http_timeout)
                response.raise_for_status()
            except requests.exceptions.RequestException as e:
                raise AssetLoadError(f"Failed to fetch asset {source}: {e}") from e
            return decode_image_bytes(response.content)

        return load_image_file(source)

    def clear_cache(self) -> None:
        self._asset_cache.clear()

    def blend_mode_for(self, image_bgra: np.ndarray) -> str:
        """투명 배경 에셋은 알파 합성, 불투명 배경 에셋은 multiply"""
        if has_transparency(image_bgra, self.opaque_threshold):
            return BLEND_NORMAL
        return BLEND_MULTIPLY

    # ------------------------------------------------------------------
    # live preview
    # ------------------------------------------------------------------
    def preview_layer(self, transform: PlacementTransform, asset: Optional[OverlayAsset],
                      blend: BlendParameters, visible: bool = True) -> PreviewLayer:
        """
        라이브 프리뷰용 레이어 설명 (표시 좌표계 == 컨테이너 좌표계)

        에셋 로드 실패 시 예외 대신 placeholder 레이어를 반환한다.
        """
        if not visible or asset is None:
            return PreviewLayer(visible=False)

        placeholder = False
        blend_mode = BLEND_MULTIPLY
        try:
            blend_mode = self.blend_mode_for(self.load_asset(asset))
        except AssetLoadError as e:
            logger.warning(f"Preview asset unavailable ({asset.asset_id}): {e}")
            placeholder = True

        return PreviewLayer(
            visible=True,
            left=transform.x,
            top=transform.y,
            width=self.reference_width_px,
            scale=transform.scale,
            rotation=transform.rotation,
            css_transform=(
                f"translate(-50%, -50%) scale({transform.scale:g}) "
                f"rotate({transform.rotation:g}deg)"
            ),
            css_filter=blend.css_filter(),
            blend_mode=blend_mode,
            placeholder=placeholder,
        )

    # ------------------------------------------------------------------
    # export flatten
    # ------------------------------------------------------------------
    def flatten(self, base_photo: np.ndarray, display_width: float, display_height: float,
                transform: PlacementTransform, asset: OverlayAsset,
                blend: BlendParameters) -> np.ndarray:
        """
        원본 사진 해상도로 사진 + 오버레이를 평탄화

        Args:
            base_photo: 원본 해상도 사진 (BGR/BGRA/Gray)
            display_width, display_height: 화면에 표시된 사진 크기 (px)
            transform: 컨테이너(표시) 좌표계 배치 변환
            asset: 오버레이 에셋
            blend: 오버레이 필터

        Returns:
            BGR uint8 래스터 (원본 해상도)

        Raises:
            AssetLoadError: 오버레이를 로드할 수 없는 경우 (오버레이를 빼고 내보내지 않음)
        """
        validate_image(base_photo)
        validate_container_size(display_width, display_height)

        overlay = self.load_asset(asset)

        native_h, native_w = base_photo.shape[:2]
        scale_x = native_w / float(display_width)
        scale_y = native_h / float(display_height)

        pivot_x = transform.x * scale_x
        pivot_y = transform.y * scale_y

        matrix = overlay_matrix(
            overlay.shape[1], overlay.shape[0], self.reference_width_px,
            pivot_x, pivot_y, transform.rotation,
            transform.scale * scale_x, transform.scale * scale_y,
        )

        surface = self.surface_factory(native_w, native_h)
        surface.draw_base(base_photo)
        surface.draw_overlay(overlay, matrix, blend, self.blend_mode_for(overlay))

        logger.info(
            f"Flattened {native_w}x{native_h} (display {display_width:g}x{display_height:g}, "
            f"scale_x={scale_x:.3f}, scale_y={scale_y:.3f})"
        )
        return surface.to_image()

    def render_preview_image(self, display_photo: np.ndarray, transform: PlacementTransform,
                             asset: OverlayAsset, blend: BlendParameters) -> np.ndarray:
        """표시 해상도 사진 위에 그린 평탄화 프리뷰 (표시 == 원본 크기)"""
        h, w = display_photo.shape[:2]
        return self.flatten(display_photo, w, h, transform, asset, blend)

    def encode(self, raster: np.ndarray, image_format: Optional[str] = None) -> bytes:
        """래스터를 바이트로 인코딩 (기본 PNG)"""
        return encode_image(raster, image_format or self.default_format, self.jpeg_quality)
