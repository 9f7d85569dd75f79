"""
눈 랜드마크 → 오버레이 배치 변환 계산

두 눈의 정규화 좌표와 컨테이너 크기, 프레임 실제 너비(mm)로부터
피벗(두 눈 중점), 회전(눈 벡터 각도), 배율(평균 동공간 거리 기반 px/mm)을 구한다.
"""

import math
from typing import Optional

from ..models.landmark_models import EyePoint, FusionHints, LandmarkPair, OverlayAsset, PlacementTransform
from ..utils import get_config, get_logger
from ..utils.config_loader import Config
from ..utils.exceptions import ConfigurationError, DegenerateGeometryError
from ..utils.validators import validate_container_size, validate_positive

logger = get_logger(__name__)

AVERAGE_IPD_MM = 63.0
DEFAULT_FRAME_WIDTH_MM = 140.0
REFERENCE_WIDTH_PX = 300.0


def eye_distance_px(left_eye: EyePoint, right_eye: EyePoint,
                    container_width: float, container_height: float) -> float:
    """
    컨테이너 픽셀 좌표계에서 두 눈 사이 거리

    Args:
        left_eye, right_eye: 정규화 좌표
        container_width, container_height: 컨테이너 크기 (px)

    Returns:
        유클리드 거리 (px)
    """
    lx, ly = left_eye.to_pixel(container_width, container_height)
    rx, ry = right_eye.to_pixel(container_width, container_height)
    return math.hypot(rx - lx, ry - ly)


def resolve_placement(
    left_eye: EyePoint,
    right_eye: EyePoint,
    container_width: float,
    container_height: float,
    physical_width_mm: float = DEFAULT_FRAME_WIDTH_MM,
    reference_width_px: float = REFERENCE_WIDTH_PX,
    average_ipd_mm: float = AVERAGE_IPD_MM,
) -> PlacementTransform:
    """
    두 눈 좌표로부터 오버레이 배치 변환 계산 (순수 함수)

    Args:
        left_eye: 이미지 왼쪽 눈 (정규화 좌표)
        right_eye: 이미지 오른쪽 눈 (정규화 좌표)
        container_width: 컨테이너 너비 (px)
        container_height: 컨테이너 높이 (px)
        physical_width_mm: 프레임 실제 너비 (mm)
        reference_width_px: scale=1 일 때 오버레이 너비 (px)
        average_ipd_mm: 평균 동공간 거리 (mm)

    Returns:
        PlacementTransform. 두 눈이 겹치면 scale=0 (호출 측에서 걸러야 함)
    """
    # 1. 정규화 → 픽셀 (x는 너비, y는 높이 기준으로 각각 변환)
    lx, ly = left_eye.to_pixel(container_width, container_height)
    rx, ry = right_eye.to_pixel(container_width, container_height)

    # 2. 피벗 = 두 눈 중점
    center_x = (lx + rx) / 2
    center_y = (ly + ry) / 2

    # 3. 회전 = 왼쪽→오른쪽 눈 벡터 각도 (화면 좌표계에서 양수 = 시계 방향)
    dx = rx - lx
    dy = ry - ly
    rotation = math.degrees(math.atan2(dy, dx))

    # 4~7. 동공간 거리 → px/mm → 목표 너비 → 배율
    ipd_px = math.hypot(dx, dy)
    pixels_per_mm = ipd_px / average_ipd_mm
    target_width_px = physical_width_mm * pixels_per_mm
    scale = target_width_px / reference_width_px

    return PlacementTransform(x=center_x, y=center_y, scale=scale, rotation=rotation)


def is_degenerate(pair: LandmarkPair, container_width: float, container_height: float,
                  min_eye_distance_px: float = 0.0) -> bool:
    """두 눈 거리가 0이거나 최소 거리 미만인지 확인"""
    if pair.is_coincident():
        return True
    distance = eye_distance_px(pair.left_eye, pair.right_eye, container_width, container_height)
    return distance <= 0.0 or distance < min_eye_distance_px


class GeometryResolver:
    """설정값(평균 IPD, 기준 너비 등)을 들고 있는 배치 계산기"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()
        geometry = self.config.geometry

        self.average_ipd_mm = float(geometry.average_ipd_mm)
        self.reference_width_px = float(geometry.reference_width_px)
        self.default_physical_width_mm = float(geometry.default_physical_width_mm)
        self.min_eye_distance_px = float(geometry.get('min_eye_distance_px', 0.0))

        try:
            validate_positive(self.average_ipd_mm, "geometry.average_ipd_mm")
            validate_positive(self.reference_width_px, "geometry.reference_width_px")
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def physical_width_for(self, asset: Optional[OverlayAsset]) -> float:
        if asset is None or not asset.physical_width_mm or asset.physical_width_mm <= 0:
            return self.default_physical_width_mm
        return float(asset.physical_width_mm)

    def resolve(self, pair: LandmarkPair, container_width: float, container_height: float,
                asset: Optional[OverlayAsset] = None) -> PlacementTransform:
        """
        랜드마크로 배치 변환 계산 (검증 포함)

        Raises:
            ValueError: 컨테이너 크기가 0 이하
            DegenerateGeometryError: 두 눈 좌표가 겹치는 경우
        """
        validate_container_size(container_width, container_height)

        if is_degenerate(pair, container_width, container_height, self.min_eye_distance_px):
            raise DegenerateGeometryError(
                f"Eye points too close to resolve placement: {pair.to_dict()}"
            )

        transform = resolve_placement(
            pair.left_eye,
            pair.right_eye,
            container_width,
            container_height,
            physical_width_mm=self.physical_width_for(asset),
            reference_width_px=self.reference_width_px,
            average_ipd_mm=self.average_ipd_mm,
        )
        logger.debug(f"Resolved placement: {transform.to_dict()}")
        return transform

    def fusion_hints(self, pair: LandmarkPair, container_width: float = 1.0,
                     container_height: float = 1.0) -> FusionHints:
        """
        생성형 합성용 힌트 (정규화 피벗 + 회전 각도)

        회전은 컨테이너 픽셀 좌표계 기준으로 계산한 값과 동일하다.
        """
        validate_container_size(container_width, container_height)
        transform = resolve_placement(
            pair.left_eye, pair.right_eye, container_width, container_height,
            reference_width_px=self.reference_width_px,
            average_ipd_mm=self.average_ipd_mm,
        )
        return FusionHints(
            center_x=transform.x / container_width,
            center_y=transform.y / container_height,
            rotation=transform.rotation,
        )
