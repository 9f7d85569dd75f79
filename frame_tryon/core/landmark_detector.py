"""눈 랜드마크 검출기 (외부 협력자 인터페이스 + MediaPipe FaceMesh 구현)"""

import time
from abc import ABC, abstractmethod
from typing import Optional

import cv2
import numpy as np

from ..models.landmark_models import EyePoint, LandmarkPair
from ..utils import get_config, get_logger
from ..utils.config_loader import Config
from ..utils.image_utils import resize_max_dimension, to_bgr
from ..utils.validators import validate_image

logger = get_logger(__name__)

# FaceMesh 인덱스 (이미지 기준 왼쪽 / 오른쪽 눈)
IRIS_CENTER = {'left': 468, 'right': 473}
EYE_CORNERS = {'left': (33, 133), 'right': (362, 263)}


class LandmarkDetector(ABC):
    """사진 → LandmarkPair (정규화 좌표) 검출기"""

    @abstractmethod
    def detect(self, image: np.ndarray) -> Optional[LandmarkPair]:
        """
        Args:
            image: BGR 사진

        Returns:
            LandmarkPair 또는 None (얼굴 없음)
        """
        pass

    def close(self):
        pass


class FixedLandmarkDetector(LandmarkDetector):
    """미리 알고 있는 눈 좌표를 그대로 반환 (수동 입력, 외부 검출 결과 재사용)"""

    def __init__(self, pair: Optional[LandmarkPair]):
        self.pair = pair

    def detect(self, image: np.ndarray) -> Optional[LandmarkPair]:
        return self.pair


class MediaPipeEyeDetector(LandmarkDetector):
    """MediaPipe FaceMesh 기반 눈 중심 검출기"""

    def __init__(self, config: Optional[Config] = None):
        """초기화"""
        self.config = config or get_config()
        self.max_dimension = int(self.config.detection.get('max_dimension', 600))
        mp_config = self.config.detection.mediapipe

        # mediapipe는 이 검출기를 쓸 때만 필요
        import mediapipe as mp

        try:
            self.face_mesh = mp.solutions.face_mesh.FaceMesh(
                static_image_mode=mp_config.static_image_mode,
                max_num_faces=mp_config.max_num_faces,
                refine_landmarks=mp_config.refine_landmarks,
                min_detection_confidence=mp_config.min_detection_confidence,
            )
            logger.info("MediaPipe FaceMesh initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize MediaPipe FaceMesh: {e}")
            raise

    def detect(self, image: np.ndarray) -> Optional[LandmarkPair]:
        validate_image(image)
        start_time = time.time()

        # 정규화 좌표를 쓰므로 축소해도 결과 좌표계는 동일
        small, _ = resize_max_dimension(to_bgr(image), self.max_dimension)
        image_rgb = cv2.cvtColor(small, cv2.COLOR_BGR2RGB)

        results = self.face_mesh.process(image_rgb)
        processing_time = (time.time() - start_time) * 1000

        if not results.multi_face_landmarks:
            logger.debug(f"No face detected ({processing_time:.1f}ms)")
            return None

        landmarks = results.multi_face_landmarks[0].landmark
        pair = LandmarkPair(
            left_eye=self._eye_center(landmarks, 'left'),
            right_eye=self._eye_center(landmarks, 'right'),
        )
        logger.info(f"Detected eyes {pair.to_dict()} in {processing_time:.1f}ms")
        return pair

    @staticmethod
    def _eye_center(landmarks, side: str) -> EyePoint:
        """홍채 중심 (refine_landmarks) 또는 눈꼬리 두 점의 중점"""
        iris_index = IRIS_CENTER[side]
        if len(landmarks) > iris_index:
            lm = landmarks[iris_index]
            return EyePoint(float(lm.x), float(lm.y))

        inner, outer = (landmarks[i] for i in EYE_CORNERS[side])
        return EyePoint(float((inner.x + outer.x) / 2), float((inner.y + outer.y) / 2))

    def close(self):
        """리소스 정리"""
        if hasattr(self, 'face_mesh'):
            self.face_mesh.close()
            logger.debug("MediaPipe FaceMesh closed")
