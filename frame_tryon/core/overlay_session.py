"""
Overlay Session
랜드마크 검출, 자동 정렬, 수동 조작, 내보내기를 묶는 오케스트레이터
"""

import queue
import threading
from enum import Enum
from typing import Dict, Optional

import numpy as np

from .compositor import Compositor
from .fusion import FusionService
from .geometry_resolver import GeometryResolver, is_degenerate
from .landmark_detector import LandmarkDetector
from .manipulation import ManipulationStateMachine, PointerInput
from ..models.landmark_models import (
    BlendParameters,
    ExportResult,
    FusionHints,
    LandmarkPair,
    OverlayAsset,
    PlacementTransform,
    PreviewLayer,
)
from ..utils import get_config, get_logger
from ..utils.config_loader import Config
from ..utils.exceptions import AssetLoadError, DegenerateGeometryError, ExportError, InvalidImageError
from ..utils.validators import validate_container_size, validate_image

logger = get_logger(__name__)


class AlignTrigger(Enum):
    """변환을 마지막으로 결정한 이벤트"""
    NONE = "none"
    FIRST_LOAD = "first_load"
    ASSET_CHANGED = "asset_changed"
    USER_RESET = "user_reset"
    MANUAL_EDIT = "manual_edit"


def _clamp(value: float, bounds) -> float:
    low, high = bounds
    return max(float(low), min(float(high), float(value)))


class OverlaySession:
    """
    가상 피팅 세션

    자동 정렬은 세 가지 경우에만 변환을 덮어쓴다:
    - 사진의 랜드마크가 처음 도착했을 때 (FIRST_LOAD)
    - 선택된 프레임이 바뀌었을 때 (ASSET_CHANGED)
    - 사용자가 리셋했을 때 (USER_RESET)
    수동 조작(드래그, 슬라이더)은 다음 트리거까지 유지된다.

    검출은 백그라운드 스레드에서 실행되고 결과는 큐에 쌓인다.
    상태 변경은 poll()을 호출한 스레드(UI 루프)에서만 일어난다.
    """

    def __init__(self, detector: LandmarkDetector, container_width: float, container_height: float,
                 compositor: Optional[Compositor] = None, resolver: Optional[GeometryResolver] = None,
                 config: Optional[Config] = None):
        """
        Args:
            detector: 눈 랜드마크 검출기 (외부 협력자)
            container_width, container_height: 사진 표시 영역 크기 (px)
            compositor: 합성기 (None이면 기본 생성)
            resolver: 배치 계산기 (None이면 기본 생성)
            config: 설정 (None이면 전역 설정)
        """
        validate_container_size(container_width, container_height)

        self.config = config or get_config()
        self.detector = detector
        self.compositor = compositor or Compositor(self.config)
        self.resolver = resolver or GeometryResolver(self.config)

        ui = self.config.ui
        self.scale_range = tuple(ui.scale_range)
        self.rotation_range = tuple(ui.rotation_range)
        self.brightness_range = tuple(ui.brightness_range)
        self.contrast_range = tuple(ui.contrast_range)
        self.default_blend = BlendParameters(
            brightness=float(self.config.blend.default_brightness),
            contrast=float(self.config.blend.default_contrast),
        )
        self.join_timeout = float(self.config.detection.get('thread_join_timeout', 10.0))

        self.container_width = float(container_width)
        self.container_height = float(container_height)

        self.machine = ManipulationStateMachine()
        self.machine.reset(self.container_width, self.container_height)
        self.pointer = PointerInput(self.machine, on_change=self._mark_manual_edit)

        self.asset: Optional[OverlayAsset] = None
        self.blend = BlendParameters(self.default_blend.brightness, self.default_blend.contrast)
        self.overlay_visible = True
        self.fused_photo: Optional[np.ndarray] = None

        self.auto_align_enabled = True
        self.last_trigger = AlignTrigger.NONE

        # 랜드마크 캐시 (현재 사진 것만 보관)
        self.photo_id: Optional[str] = None
        self._landmarks: Dict[str, Optional[LandmarkPair]] = {}
        self.detection_requests = 0

        self._results: "queue.Queue" = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._pending_photo_id: Optional[str] = None
        # 검출기(FaceMesh 그래프)는 스레드 안전하지 않음 - 한 번에 하나의 detect만 실행
        self._detect_lock = threading.Lock()

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------
    @property
    def transform(self) -> PlacementTransform:
        return self.machine.transform

    @property
    def pending(self) -> bool:
        """현재 사진의 검출 요청이 진행 중인지 (busy 표시용)"""
        return self._pending_photo_id is not None and self._pending_photo_id == self.photo_id

    @property
    def landmarks(self) -> Optional[LandmarkPair]:
        if self.photo_id is None:
            return None
        return self._landmarks.get(self.photo_id)

    def set_container_size(self, width: float, height: float) -> None:
        """표시 영역 크기 변경 (자동 정렬 트리거가 아님)"""
        validate_container_size(width, height)
        self.container_width = float(width)
        self.container_height = float(height)

    # ------------------------------------------------------------------
    # photo / detection
    # ------------------------------------------------------------------
    def load_photo(self, photo_id: str, image: np.ndarray) -> bool:
        """
        새 사진 로드 - 사진이 바뀌면 캐시를 비우고 검출을 한 번 요청

        Args:
            photo_id: 사진 식별자 (캐시 키)
            image: BGR 사진

        Returns:
            bool: 검출 요청을 새로 보냈는지 여부
        """
        validate_image(image)

        if photo_id == self.photo_id:
            logger.debug(f"Photo {photo_id} already loaded, reusing cached landmarks")
            return False

        self.photo_id = photo_id
        self._landmarks.clear()
        self.fused_photo = None
        self.overlay_visible = True
        self.auto_align_enabled = True
        self.last_trigger = AlignTrigger.NONE
        self.machine.reset(self.container_width, self.container_height)

        self._request_detection(photo_id, image)
        return True

    def _request_detection(self, photo_id: str, image: np.ndarray) -> None:
        self._pending_photo_id = photo_id
        self.detection_requests += 1
        logger.info(f"Requesting landmark detection for photo {photo_id}")

        self._worker = threading.Thread(
            target=self._detect_worker, args=(photo_id, image), daemon=True
        )
        self._worker.start()

    def _detect_worker(self, photo_id: str, image: np.ndarray) -> None:
        with self._detect_lock:
            if photo_id != self.photo_id:
                # 대기 중에 다른 사진으로 바뀐 요청은 검출하지 않음
                logger.debug(f"Skipping detection for superseded photo {photo_id}")
                return
            try:
                pair = self.detector.detect(image)
            except Exception as e:
                # 외부 검출기 실패는 "랜드마크 없음"과 동일하게 처리
                logger.warning(f"Landmark detection failed for photo {photo_id}: {e}", exc_info=True)
                pair = None
        self._results.put((photo_id, pair))

    def poll(self) -> bool:
        """
        완료된 검출 결과를 현재 스레드에서 반영

        Returns:
            bool: 현재 사진의 결과가 반영되었는지 여부
        """
        applied = False
        while True:
            try:
                photo_id, pair = self._results.get_nowait()
            except queue.Empty:
                break
            applied = self._apply_detection(photo_id, pair) or applied
        return applied

    def wait_for_detection(self, timeout: Optional[float] = None) -> bool:
        """진행 중인 검출을 기다린 뒤 poll()"""
        worker = self._worker
        if worker is not None:
            worker.join(self.join_timeout if timeout is None else timeout)
        return self.poll()

    def _apply_detection(self, photo_id: str, pair: Optional[LandmarkPair]) -> bool:
        if photo_id != self.photo_id:
            logger.debug(f"Discarding stale landmarks for photo {photo_id}")
            return False

        self._pending_photo_id = None

        if pair is not None and is_degenerate(pair, self.container_width, self.container_height,
                                              self.resolver.min_eye_distance_px):
            logger.warning(f"Degenerate eye landmarks for photo {photo_id}: {pair.to_dict()}")
            pair = None

        self._landmarks[photo_id] = pair

        if pair is None:
            logger.warning(f"No landmarks for photo {photo_id}, keeping default placement")
            return True

        if self.auto_align_enabled:
            self._auto_align(AlignTrigger.FIRST_LOAD)
        else:
            logger.info("Landmarks arrived after a manual edit, keeping user placement")
        return True

    # ------------------------------------------------------------------
    # auto alignment
    # ------------------------------------------------------------------
    def _auto_align(self, trigger: AlignTrigger) -> bool:
        self.auto_align_enabled = True
        self.last_trigger = trigger

        pair = self.landmarks
        if pair is None:
            return False

        try:
            transform = self.resolver.resolve(pair, self.container_width, self.container_height, self.asset)
        except DegenerateGeometryError as e:
            logger.warning(f"Auto alignment skipped: {e}")
            return False

        self.machine.apply_transform(transform)
        logger.info(f"Auto aligned ({trigger.value}): {transform.to_dict()}")
        return True

    def select_asset(self, asset: OverlayAsset) -> bool:
        """
        프레임 선택 - 캐시된 랜드마크로 배율을 다시 계산 (검출 재요청 없음)

        Returns:
            bool: 자동 정렬이 적용되었는지 여부
        """
        if self.asset is not None and asset.asset_id == self.asset.asset_id and self.overlay_visible:
            return False

        self.asset = asset
        self.overlay_visible = True
        logger.info(f"Selected frame {asset.asset_id} ({asset.physical_width_mm}mm)")
        return self._auto_align(AlignTrigger.ASSET_CHANGED)

    def reset(self) -> bool:
        """사용자 리셋 - 중앙 배치, 필터 기본값, 랜드마크가 있으면 재정렬"""
        self.machine.reset(self.container_width, self.container_height)
        self.blend = BlendParameters(self.default_blend.brightness, self.default_blend.contrast)
        return self._auto_align(AlignTrigger.USER_RESET)

    # ------------------------------------------------------------------
    # manual manipulation
    # ------------------------------------------------------------------
    def _mark_manual_edit(self) -> None:
        self.auto_align_enabled = False
        self.last_trigger = AlignTrigger.MANUAL_EDIT

    def begin_drag(self, pointer_x: float, pointer_y: float) -> None:
        self.machine.begin_drag(pointer_x, pointer_y)

    def update_drag(self, pointer_x: float, pointer_y: float) -> None:
        if self.machine.update_drag(pointer_x, pointer_y):
            self._mark_manual_edit()

    def end_drag(self) -> None:
        self.machine.end_drag()

    def cancel_drag(self) -> None:
        self.machine.cancel_drag()

    def set_scale(self, value: float) -> None:
        self.machine.set_scale(value)
        self._mark_manual_edit()

    def set_rotation(self, value: float) -> None:
        self.machine.set_rotation(value)
        self._mark_manual_edit()

    def adjust_scale(self, value: float) -> float:
        """슬라이더 입력 - UI 범위로 제한 후 적용"""
        value = _clamp(value, self.scale_range)
        self.set_scale(value)
        return value

    def adjust_rotation(self, value: float) -> float:
        value = _clamp(value, self.rotation_range)
        self.set_rotation(value)
        return value

    def set_brightness(self, value: float) -> float:
        self.blend.brightness = _clamp(value, self.brightness_range)
        return self.blend.brightness

    def set_contrast(self, value: float) -> float:
        self.blend.contrast = _clamp(value, self.contrast_range)
        return self.blend.contrast

    # ------------------------------------------------------------------
    # rendering
    # ------------------------------------------------------------------
    def preview(self) -> PreviewLayer:
        """라이브 프리뷰 레이어 설명"""
        return self.compositor.preview_layer(
            self.machine.transform, self.asset, self.blend, visible=self.overlay_visible
        )

    def show_overlay(self) -> None:
        """생성형 합성 후 숨겨진 오버레이를 다시 표시 (변환은 그대로)"""
        self.overlay_visible = True

    def export(self, base_photo: np.ndarray, image_format: Optional[str] = None) -> ExportResult:
        """
        현재 상태를 원본 해상도로 평탄화하여 인코딩

        Args:
            base_photo: 원본 해상도 사진 (생성형 합성 결과가 있으면 그것을 사용)
            image_format: 'png'(기본) / 'jpg' / 'webp'

        Returns:
            ExportResult (실패 시 success=False, 세션 상태는 변하지 않음)
        """
        image_format = image_format or self.compositor.default_format
        photo = self.fused_photo if self.fused_photo is not None else base_photo

        try:
            if not self.overlay_visible:
                validate_image(photo)
                raster = photo
            elif self.asset is None:
                raise ExportError("No frame selected")
            else:
                raster = self.compositor.flatten(
                    photo,
                    self.container_width,
                    self.container_height,
                    self.machine.transform,
                    self.asset,
                    BlendParameters(self.blend.brightness, self.blend.contrast),
                )
            data = self.compositor.encode(raster, image_format)
        except (AssetLoadError, ExportError, InvalidImageError) as e:
            logger.error(f"Export failed: {e}")
            return ExportResult(success=False, image_format=image_format, error=str(e))

        logger.info(f"Exported {image_format} ({len(data)} bytes)")
        return ExportResult(success=True, data=data, image=raster, image_format=image_format)

    # ------------------------------------------------------------------
    # generative fusion
    # ------------------------------------------------------------------
    def fusion_hints(self) -> FusionHints:
        """생성형 합성용 기하 힌트 (랜드마크가 없으면 중앙/0도)"""
        pair = self.landmarks
        if pair is None:
            return FusionHints(center_x=0.5, center_y=0.5, rotation=0.0)
        return self.resolver.fusion_hints(pair, self.container_width, self.container_height)

    def run_fusion(self, service: FusionService, base_photo: np.ndarray) -> ExportResult:
        """
        외부 생성형 합성 서비스 호출

        성공하면 반환된 사진을 보관하고 인터랙티브 오버레이를 숨긴다.
        """
        if self.asset is None:
            return ExportResult(success=False, error="No frame selected")

        try:
            validate_image(base_photo)
            overlay = self.compositor.load_asset(self.asset)
        except (AssetLoadError, InvalidImageError) as e:
            logger.error(f"Fusion aborted: {e}")
            return ExportResult(success=False, error=str(e))

        hints = self.fusion_hints()
        logger.info(f"Requesting generative fusion with hints {hints.to_dict()}")

        try:
            fused = service.fuse(base_photo, overlay, hints)
            validate_image(fused)
        except Exception as e:
            logger.error(f"Generative fusion failed: {e}", exc_info=True)
            return ExportResult(success=False, error=str(e))

        self.fused_photo = fused
        self.overlay_visible = False
        return ExportResult(success=True, image=fused)

    def close(self) -> None:
        self.detector.close()
