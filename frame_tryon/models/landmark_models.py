"""데이터 모델 정의"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Union

import numpy as np


@dataclass(frozen=True)
class EyePoint:
    """단일 눈 중심 좌표"""

    x: float  # 정규화 x 좌표 (0-1)
    y: float  # 정규화 y 좌표 (0-1)

    def to_pixel(self, width: float, height: float):
        """컨테이너 픽셀 좌표로 변환 (x는 너비, y는 높이 기준)"""
        return self.x * width, self.y * height

    def to_dict(self) -> Dict[str, Any]:
        return {'x': self.x, 'y': self.y}


@dataclass(frozen=True)
class LandmarkPair:
    """
    사진 한 장에서 검출된 두 눈 좌표

    left_eye는 이미지 왼쪽에 보이는 눈 (인물 기준으로는 오른쪽 눈)
    """

    left_eye: EyePoint
    right_eye: EyePoint

    @classmethod
    def from_dict(cls, data: Dict[str, Any], scale: float = 1.0) -> 'LandmarkPair':
        """
        검출기 응답(dict)에서 생성

        Args:
            data: {'left_eye': {'x', 'y'}, 'right_eye': {'x', 'y'}}
                  (camelCase 'leftEye'/'rightEye'도 허용)
            scale: 응답 좌표계 크기 (0~1000 응답이면 1000)

        Raises:
            KeyError/TypeError: 필수 키가 없을 때
        """
        left = data.get('left_eye', data.get('leftEye'))
        right = data.get('right_eye', data.get('rightEye'))
        if left is None or right is None:
            raise KeyError("Landmark data requires 'left_eye' and 'right_eye'")

        return cls(
            left_eye=EyePoint(float(left['x']) / scale, float(left['y']) / scale),
            right_eye=EyePoint(float(right['x']) / scale, float(right['y']) / scale),
        )

    def is_coincident(self) -> bool:
        """두 점이 같은 위치인지 확인 (정규화 좌표 기준)"""
        return self.left_eye.x == self.right_eye.x and self.left_eye.y == self.right_eye.y

    def to_dict(self) -> Dict[str, Any]:
        return {
            'left_eye': self.left_eye.to_dict(),
            'right_eye': self.right_eye.to_dict(),
        }


@dataclass
class PlacementTransform:
    """
    오버레이 배치 변환 (컨테이너 픽셀 좌표계)

    x, y: 오버레이 피벗(중심) 픽셀 좌표
    scale: 기준 너비(reference_width_px)에 곱하는 배율, 항상 > 0
    rotation: 피벗 기준 시계 방향 회전 (도)
    """

    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    rotation: float = 0.0

    def rendered_width(self, reference_width_px: float) -> float:
        return self.scale * reference_width_px

    def copy(self) -> 'PlacementTransform':
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'x': round(self.x, 3),
            'y': round(self.y, 3),
            'scale': round(self.scale, 4),
            'rotation': round(self.rotation, 3),
        }


@dataclass
class OverlayAsset:
    """
    안경 제품 이미지 + 실제 물리 너비

    image_source: 파일 경로, http(s) URL, 인코딩된 bytes 또는 디코드된 배열
    """

    asset_id: str
    image_source: Union[str, bytes, np.ndarray, None] = None
    physical_width_mm: float = 140.0
    name: str = ""
    brand: str = ""
    lens_width_mm: Optional[float] = None
    bridge_mm: Optional[float] = None
    temple_mm: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Dict[str, Any], default_width_mm: float = 140.0) -> 'OverlayAsset':
        """
        저장소 레코드(snake_case)를 에셋으로 변환

        Args:
            record: {'id', 'image_url', 'width_mm', 'name', 'brand', ...}
            default_width_mm: width_mm이 없을 때 사용할 값
        """
        known = {'id', 'image_url', 'width_mm', 'name', 'brand',
                 'lens_width_mm', 'bridge_mm', 'temple_mm'}
        width = record.get('width_mm') or default_width_mm
        return cls(
            asset_id=str(record['id']),
            image_source=record.get('image_url'),
            physical_width_mm=float(width),
            name=record.get('name', ''),
            brand=record.get('brand', ''),
            lens_width_mm=record.get('lens_width_mm'),
            bridge_mm=record.get('bridge_mm'),
            temple_mm=record.get('temple_mm'),
            metadata={k: v for k, v in record.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'asset_id': self.asset_id,
            'name': self.name,
            'brand': self.brand,
            'physical_width_mm': self.physical_width_mm,
            'lens_width_mm': self.lens_width_mm,
            'bridge_mm': self.bridge_mm,
            'temple_mm': self.temple_mm,
        }


@dataclass
class BlendParameters:
    """오버레이 레이어 후처리 필터 (퍼센트, 100 = 변화 없음)"""

    brightness: float = 100.0
    contrast: float = 100.0

    def css_filter(self) -> str:
        # contrast가 brightness보다 먼저 적용됨
        return f"contrast({self.contrast:g}%) brightness({self.brightness:g}%)"

    def is_identity(self) -> bool:
        return self.brightness == 100.0 and self.contrast == 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {'brightness': self.brightness, 'contrast': self.contrast}


@dataclass(frozen=True)
class FusionHints:
    """생성형 합성 서비스에 넘기는 기하 힌트 (정규화 피벗 + 회전)"""

    center_x: float
    center_y: float
    rotation: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'center_x': round(self.center_x, 4),
            'center_y': round(self.center_y, 4),
            'rotation': round(self.rotation, 3),
        }


@dataclass
class PreviewLayer:
    """라이브 프리뷰 오버레이 레이어 설명 (평탄화하지 않음)"""

    visible: bool
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    scale: float = 1.0
    rotation: float = 0.0
    css_transform: str = ""
    css_filter: str = ""
    blend_mode: str = "normal"
    placeholder: bool = False  # 에셋 로드 실패 시 빈 레이어

    def to_dict(self) -> Dict[str, Any]:
        return {
            'visible': self.visible,
            'left': self.left,
            'top': self.top,
            'width': self.width,
            'transform': self.css_transform,
            'filter': self.css_filter,
            'mix_blend_mode': self.blend_mode,
            'placeholder': self.placeholder,
        }


@dataclass
class ExportResult:
    """내보내기(평탄화) 또는 생성형 합성 결과"""

    success: bool
    data: Optional[bytes] = None
    image: Optional[np.ndarray] = None
    image_format: Optional[str] = None
    error: Optional[str] = None
