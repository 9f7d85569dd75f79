from __future__ import annotations

import threading
import time
from typing import Dict, Optional

import numpy as np
import pytest

from frame_tryon.core.landmark_detector import LandmarkDetector
from frame_tryon.models.landmark_models import EyePoint, LandmarkPair, OverlayAsset
from frame_tryon.utils.config_loader import Config


LEVEL_EYES = LandmarkPair(EyePoint(0.35, 0.5), EyePoint(0.65, 0.5))
TILTED_EYES = LandmarkPair(EyePoint(0.3, 0.45), EyePoint(0.7, 0.55))


class StubDetector(LandmarkDetector):
    """Returns a fixed pair (or raises) and counts calls."""

    def __init__(self, pair: Optional[LandmarkPair] = LEVEL_EYES, error: Exception = None):
        self.pair = pair
        self.error = error
        self.calls = 0
        self.closed = False

    def detect(self, image):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.pair

    def close(self):
        self.closed = True


class KeyedDetector(LandmarkDetector):
    """Picks the result from the first pixel value; blocks on gated keys."""

    def __init__(self, pairs: Dict[int, LandmarkPair], gated_key: Optional[int] = None):
        self.pairs = pairs
        self.gated_key = gated_key
        self.gate = threading.Event()

    def detect(self, image):
        key = int(image[0, 0, 0])
        if key == self.gated_key:
            self.gate.wait(5.0)
        return self.pairs[key]


class SlowDetector(LandmarkDetector):
    """Sleeps inside detect and records how many calls overlap."""

    def __init__(self, pair: Optional[LandmarkPair], delay: float = 0.1):
        self.pair = pair
        self.delay = delay
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def detect(self, image):
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(self.delay)
        with self._lock:
            self.active -= 1
        return self.pair


@pytest.fixture(scope="session")
def config() -> Config:
    return Config()


@pytest.fixture
def photo() -> np.ndarray:
    return np.full((1000, 1000, 3), 180, np.uint8)


@pytest.fixture
def opaque_frame_image() -> np.ndarray:
    """White background product shot with a black bar in the middle."""
    img = np.full((100, 300, 3), 255, np.uint8)
    img[40:60, 20:280] = 0
    return img


@pytest.fixture
def transparent_frame_image() -> np.ndarray:
    """BGRA asset: transparent except an opaque red block in the center."""
    img = np.zeros((100, 300, 4), np.uint8)
    img[30:70, 100:200] = (0, 0, 255, 255)
    return img


@pytest.fixture
def frame_asset(opaque_frame_image) -> OverlayAsset:
    return OverlayAsset(asset_id="classic", image_source=opaque_frame_image, physical_width_mm=140.0)
