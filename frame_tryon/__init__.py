"""
Frame Try-On Engine
눈 랜드마크 기반 안경 오버레이 정렬 및 합성 엔진
"""

__version__ = "0.1.0"

from .models import (
    EyePoint,
    LandmarkPair,
    PlacementTransform,
    OverlayAsset,
    BlendParameters,
    FusionHints,
    ExportResult,
    FrameCatalog,
)
from .core import (
    GeometryResolver,
    resolve_placement,
    ManipulationStateMachine,
    PointerInput,
    Compositor,
    LandmarkDetector,
    OverlaySession,
    AlignTrigger,
)

__all__ = [
    'EyePoint', 'LandmarkPair', 'PlacementTransform', 'OverlayAsset',
    'BlendParameters', 'FusionHints', 'ExportResult', 'FrameCatalog',
    'GeometryResolver', 'resolve_placement', 'ManipulationStateMachine',
    'PointerInput', 'Compositor', 'LandmarkDetector', 'OverlaySession', 'AlignTrigger',
]
