"""
Core engine package.
"""
# MediaPipeEyeDetector imports mediapipe lazily, only when constructed
from .geometry_resolver import GeometryResolver, resolve_placement, is_degenerate
from .manipulation import DragState, ManipulationStateMachine, PointerInput
from .compositor import Compositor, OpenCVSurface, RasterSurface
from .landmark_detector import LandmarkDetector, MediaPipeEyeDetector
from .fusion import FusionService, build_fusion_prompt
from .overlay_session import AlignTrigger, OverlaySession

__all__ = [
    'GeometryResolver', 'resolve_placement', 'is_degenerate',
    'DragState', 'ManipulationStateMachine', 'PointerInput',
    'Compositor', 'OpenCVSurface', 'RasterSurface',
    'LandmarkDetector', 'MediaPipeEyeDetector',
    'FusionService', 'build_fusion_prompt',
    'AlignTrigger', 'OverlaySession',
]
