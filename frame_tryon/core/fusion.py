"""
생성형 합성 서비스 인터페이스

외부 이미지 합성 서비스는 원본 사진, 오버레이 픽셀, 기하 힌트를 받아 새 합성 사진을 반환한다.
엔진은 힌트만 제공하며, 텍스트 기반 서비스용 프롬프트는 build_fusion_prompt로 만든다.
"""
from abc import ABC, abstractmethod

import numpy as np

from ..models.landmark_models import FusionHints


class FusionService(ABC):
    """생성형 합성 서비스 추상 클래스"""

    @abstractmethod
    def fuse(self, base_photo: np.ndarray, overlay_image: np.ndarray,
             hints: FusionHints) -> np.ndarray:
        """
        Args:
            base_photo: BGR 사진
            overlay_image: BGRA 안경 제품 이미지
            hints: 정규화 브릿지 중심 + 회전 (도)

        Returns:
            BGR 합성 사진 (실패 시 예외 발생)
        """
        pass


def build_fusion_prompt(hints: FusionHints) -> str:
    """기하 힌트를 텍스트 기반 합성 모델용 지시문으로 변환"""
    return (
        "Composite the eyewear from the second image onto the face in the first image.\n"
        "Use the product pixels as given; keep shape, rim thickness and color unchanged.\n"
        f"Center of the bridge at normalized X={hints.center_x:.2f}, Y={hints.center_y:.2f}.\n"
        f"Rotate the eyewear by {hints.rotation:.1f} degrees to align with the eyes.\n"
        "Treat a white (#FFFFFF) product background as fully transparent.\n"
        "Return only the final composited image."
    )
