"""
Catalog Model - 안경 프레임 목록 및 선택 관리
"""
from typing import Any, Dict, Iterable, List, Optional

from .landmark_models import OverlayAsset
from ..utils import get_logger

logger = get_logger(__name__)


class FrameCatalog:
    """
    프레임 카탈로그 모델
    외부에서 받은 OverlayAsset 목록(읽기 전용)과 현재 선택 상태를 관리합니다.
    """

    def __init__(self, assets: Iterable[OverlayAsset] = ()):
        """
        Args:
            assets: 표시 순서대로 정렬된 에셋 목록
        """
        self._assets: List[OverlayAsset] = list(assets)
        self.selected_id: Optional[str] = self._assets[0].asset_id if self._assets else None

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]],
                     default_width_mm: float = 140.0) -> 'FrameCatalog':
        """
        저장소 레코드 목록으로 카탈로그 생성

        Args:
            records: snake_case 레코드 목록 (image_url, width_mm, ...)
            default_width_mm: width_mm이 없는 레코드에 사용할 값

        Returns:
            FrameCatalog
        """
        assets = []
        for record in records:
            try:
                assets.append(OverlayAsset.from_record(record, default_width_mm))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid frame record {record!r}: {e}")
        return cls(assets)

    @property
    def assets(self) -> List[OverlayAsset]:
        """에셋 목록 (복사본)"""
        return list(self._assets)

    def get(self, asset_id: str) -> Optional[OverlayAsset]:
        """
        ID로 에셋 조회

        Returns:
            Optional[OverlayAsset]: 해당 에셋 (없으면 None)
        """
        for asset in self._assets:
            if asset.asset_id == asset_id:
                return asset
        return None

    def select(self, asset_id: str) -> OverlayAsset:
        """
        에셋 선택

        Raises:
            KeyError: 카탈로그에 없는 ID
        """
        asset = self.get(asset_id)
        if asset is None:
            raise KeyError(f"Unknown frame id: {asset_id}")
        self.selected_id = asset_id
        logger.debug(f"Selected frame: {asset_id}")
        return asset

    @property
    def selected(self) -> Optional[OverlayAsset]:
        if self.selected_id is None:
            return None
        return self.get(self.selected_id)

    def replace_assets(self, assets: Iterable[OverlayAsset]) -> None:
        """카탈로그 목록 교체 (외부 저장소 갱신 시)"""
        self._assets = list(assets)
        self.ensure_valid_selection()

    def ensure_valid_selection(self) -> Optional[OverlayAsset]:
        """
        선택된 에셋이 목록에서 사라졌으면 첫 번째 에셋으로 되돌림

        Returns:
            현재 선택된 에셋 (목록이 비어 있으면 None)
        """
        if self.selected is None:
            self.selected_id = self._assets[0].asset_id if self._assets else None
            if self.selected_id:
                logger.info(f"Selection reset to first frame: {self.selected_id}")
        return self.selected

    def __len__(self) -> int:
        return len(self._assets)

    def __iter__(self):
        return iter(list(self._assets))
