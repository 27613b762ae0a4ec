"""
Tests for configuration loading and config-driven processor construction.
"""

import logging

import pytest
import yaml

from realtone.analysis.detectors import PlaceholderSkinToneDetector, RegionAverageDetector
from realtone.config import (
    get_config_value, get_default_config, load_config, save_config, update_config_value
)
from realtone.processing.appliers import XMPSettingsApplier
from realtone.processing.tone import RealToneProcessor


class TestLoadConfig:
    def test_packaged_defaults(self):
        config = load_config()
        assert config['real_tone'] == get_default_config()['real_tone']
        assert config['detector']['name'] == 'placeholder'

    def test_missing_file_uses_defaults(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger='realtone.config'):
            config = load_config(tmp_path / "absent.yaml")
        assert config == get_default_config()
        assert "Config file not found" in caplog.text

    def test_partial_file_is_merged(self, tmp_path):
        path = tmp_path / "realtone.yaml"
        path.write_text("real_tone:\n  shadow_lift: 0.5\n")
        config = load_config(path)
        assert config['real_tone']['shadow_lift'] == 0.5
        assert config['real_tone']['warmth_multiplier'] == 1.15
        assert config['applier']['xmp_sidecar'] is False

    def test_invalid_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("real_tone: [unclosed\n")
        assert load_config(path) == get_default_config()

    def test_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REALTONE_DETECTOR", "region_average")
        path = tmp_path / "env.yaml"
        path.write_text("detector:\n  name: ${REALTONE_DETECTOR}\nlogging:\n  level: ${UNSET_VAR_XYZ}\n")
        config = load_config(path)
        assert config['detector']['name'] == 'region_average'
        assert config['logging']['level'] == '${UNSET_VAR_XYZ}'


class TestConfigValues:
    def test_get_nested(self):
        config = get_default_config()
        assert get_config_value(config, 'real_tone.shadow_lift') == 0.3
        assert get_config_value(config, 'real_tone.missing', 'x') == 'x'
        assert get_config_value(config, 'real_tone.shadow_lift.deeper', 1) == 1

    def test_update_nested(self):
        config = {}
        update_config_value(config, 'applier.xmp_sidecar', True)
        assert config == {'applier': {'xmp_sidecar': True}}

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / "saved.yaml"
        config = get_default_config()
        config['real_tone']['enabled'] = False

        assert save_config(config, path) is True
        assert yaml.safe_load(path.read_text())['real_tone']['enabled'] is False
        assert load_config(path)['real_tone']['enabled'] is False

    def test_save_to_missing_directory(self, tmp_path):
        assert save_config(get_default_config(), tmp_path / "nope" / "c.yaml") is False


class TestProcessorFromConfig:
    def test_defaults(self):
        processor = RealToneProcessor.from_config(get_default_config())
        assert isinstance(processor.detector, PlaceholderSkinToneDetector)
        assert processor.applier is None
        assert processor.get_config().to_dict() == get_default_config()['real_tone']

    def test_region_average_and_sidecar(self):
        config = get_default_config()
        config['detector'] = {'name': 'region_average', 'min_skin_fraction': 0.3}
        config['applier'] = {'xmp_sidecar': True}
        config['real_tone']['shadow_lift'] = 0.4

        processor = RealToneProcessor.from_config(config)

        assert isinstance(processor.detector, RegionAverageDetector)
        assert processor.detector.min_skin_fraction == 0.3
        assert isinstance(processor.applier, XMPSettingsApplier)
        assert processor.get_config().shadow_lift == 0.4

    def test_does_not_mutate_config(self):
        config = get_default_config()
        RealToneProcessor.from_config(config)
        assert config['detector'] == {'name': 'placeholder'}

    def test_placeholder_ignores_region_average_options(self, caplog):
        config = get_default_config()
        config['detector'] = {
            'name': 'placeholder',
            'min_skin_fraction': 0.1,
            'skin_cr': [133, 173],
            'skin_cb': [77, 127],
        }

        with caplog.at_level(logging.WARNING, logger='realtone.analysis.detectors'):
            processor = RealToneProcessor.from_config(config)

        assert isinstance(processor.detector, PlaceholderSkinToneDetector)
        assert processor.detector.category.id == 6
        assert 'min_skin_fraction' in caplog.text

    def test_unknown_detector(self):
        with pytest.raises(ValueError):
            RealToneProcessor.from_config({'detector': {'name': 'neural'}})
