"""
Model, catalog and config tests.
"""
import pytest

from frame_tryon.models.catalog_model import FrameCatalog
from frame_tryon.models.landmark_models import LandmarkPair, OverlayAsset
from frame_tryon.core.geometry_resolver import GeometryResolver
from frame_tryon.utils.config_loader import Config
from frame_tryon.utils.exceptions import ConfigurationError


class TestLandmarkPair:

    def test_from_thousand_scale_response(self):
        pair = LandmarkPair.from_dict(
            {'left_eye': {'x': 350, 'y': 500}, 'right_eye': {'x': 650, 'y': 500}}, scale=1000
        )
        assert (pair.left_eye.x, pair.left_eye.y) == (0.35, 0.5)
        assert pair.right_eye.x == 0.65

    def test_camel_case_keys(self):
        pair = LandmarkPair.from_dict({'leftEye': {'x': 0.3, 'y': 0.4}, 'rightEye': {'x': 0.7, 'y': 0.4}})
        assert pair.to_dict()['right_eye'] == {'x': 0.7, 'y': 0.4}

    def test_missing_eye(self):
        with pytest.raises(KeyError):
            LandmarkPair.from_dict({'left_eye': {'x': 0.3, 'y': 0.4}})


class TestOverlayAsset:

    def test_from_record(self):
        asset = OverlayAsset.from_record({
            'id': 7, 'image_url': 'https://cdn.example.com/7.png', 'width_mm': 138,
            'name': 'Round', 'brand': 'Acme', 'bridge_mm': 20, 'color': 'tortoise',
        })

        assert asset.asset_id == '7'
        assert asset.physical_width_mm == 138.0
        assert asset.bridge_mm == 20
        assert asset.metadata == {'color': 'tortoise'}

    def test_missing_width_uses_default(self):
        assert OverlayAsset.from_record({'id': 'x'}).physical_width_mm == 140.0


class TestFrameCatalog:

    @pytest.fixture
    def catalog(self):
        return FrameCatalog.from_records([
            {'id': 'a', 'image_url': 'a.png'},
            {'image_url': 'no-id.png'},
            {'id': 'b', 'image_url': 'b.png', 'width_mm': 150},
        ])

    def test_invalid_records_skipped(self, catalog):
        assert [a.asset_id for a in catalog] == ['a', 'b']
        assert len(catalog) == 2

    def test_first_asset_selected_by_default(self, catalog):
        assert catalog.selected.asset_id == 'a'

    def test_select(self, catalog):
        assert catalog.select('b').physical_width_mm == 150.0
        assert catalog.selected_id == 'b'
        with pytest.raises(KeyError):
            catalog.select('zzz')

    def test_selection_falls_back_when_asset_removed(self, catalog):
        catalog.select('b')
        catalog.replace_assets([OverlayAsset(asset_id='c'), OverlayAsset(asset_id='d')])
        assert catalog.selected.asset_id == 'c'

    def test_non_dict_records_skipped(self):
        catalog = FrameCatalog.from_records([
            ['not', 'a', 'record'],
            'frame.png',
            None,
            {'id': 'ok', 'width_mm': 'wide'},
            {'id': 'good', 'image_url': 'good.png'},
        ])
        assert [a.asset_id for a in catalog] == ['good']

    def test_empty_catalog(self):
        catalog = FrameCatalog()
        assert catalog.selected is None
        assert catalog.ensure_valid_selection() is None


class TestConfig:

    def test_defaults(self, config):
        assert config.get('geometry.average_ipd_mm') == 63.0
        assert config.geometry.reference_width_px == 300
        assert config.get('geometry.missing', 'fallback') == 'fallback'

    def test_overrides_are_merged(self):
        cfg = Config(overrides={'geometry': {'reference_width_px': 250}})
        assert cfg.geometry.reference_width_px == 250
        assert cfg.geometry.average_ipd_mm == 63.0

    def test_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("geometry:\n  average_ipd_mm: 60.0\n", encoding='utf-8')
        monkeypatch.setenv('FRAME_TRYON_CONFIG_PATH', str(path))

        assert Config().geometry.average_ipd_mm == 60.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config(tmp_path / "absent.yaml")

    def test_unknown_section(self, config):
        with pytest.raises(AttributeError):
            config.nonexistent

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("geometry: [unclosed\n", encoding='utf-8')
        with pytest.raises(ConfigurationError):
            Config(path)

    def test_non_positive_ipd_rejected(self):
        cfg = Config(overrides={'geometry': {'average_ipd_mm': 0}})
        with pytest.raises(ConfigurationError):
            GeometryResolver(cfg)
