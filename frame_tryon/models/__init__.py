"""
Models package for the frame try-on engine.
"""
from .landmark_models import (
    EyePoint,
    LandmarkPair,
    PlacementTransform,
    OverlayAsset,
    BlendParameters,
    FusionHints,
    PreviewLayer,
    ExportResult,
)
from .input_events import MouseEvent, TouchEvent, TouchPoint
from .catalog_model import FrameCatalog

__all__ = [
    'EyePoint', 'LandmarkPair', 'PlacementTransform', 'OverlayAsset',
    'BlendParameters', 'FusionHints', 'PreviewLayer', 'ExportResult',
    'MouseEvent', 'TouchEvent', 'TouchPoint',
    'FrameCatalog',
]
