"""
Tests for Real-Tone skin tone classification and settings derivation.
"""

import math
import re

import pytest

from realtone.analysis.detectors import SkinToneDetector
from realtone.exceptions import ApplierError
from realtone.processing.appliers import SettingsApplier
from realtone.processing.tone.models import SkinToneAnalysis
from realtone.processing.tone import (
    MONK_SKIN_TONE_SCALE, RealToneConfig, RealToneProcessor, SampledColor, get_category
)

MST = {c.id: c for c in MONK_SKIN_TONE_SCALE}


class RecordingApplier(SettingsApplier):
    """Applier that records what it was given."""

    def __init__(self, result="test://image-enhanced.jpg"):
        self.result = result
        self.calls = []

    async def apply(self, image_ref, settings):
        self.calls.append((image_ref, settings))
        return self.result


class FailingApplier(SettingsApplier):
    async def apply(self, image_ref, settings):
        raise ApplierError("disk full")


class CountingDetector(SkinToneDetector):
    """Detector that counts calls and delegates to a fixed shade."""

    def __init__(self, mst_id=9):
        self.calls = 0
        self.mst_id = mst_id

    async def detect(self, image_ref, region=None):
        self.calls += 1
        return SkinToneAnalysis(True, get_category(self.mst_id), 0.9, region=region)


class BrokenDetector(SkinToneDetector):
    async def detect(self, image_ref, region=None):
        raise RuntimeError("model not loaded")


@pytest.fixture
def processor():
    return RealToneProcessor()


class TestInitialization:
    """Test processor construction and defaults."""

    def test_default_config(self, processor):
        config = processor.config
        assert config.enabled is True
        assert config.adaptive_exposure is True
        assert config.enhanced_white_balance is True
        assert config.local_tone_mapping is True
        assert config.shadow_lift == 0.3
        assert config.highlight_protection == 0.2
        assert config.warmth_multiplier == 1.15
        assert config.contrast_enhancement == 1.1
        assert config.saturation_adjustment == 1.05

    def test_custom_config_dict(self):
        custom = RealToneProcessor({'enabled': False, 'shadow_lift': 0.5})
        assert custom.config.enabled is False
        assert custom.config.shadow_lift == 0.5
        assert custom.config.highlight_protection == 0.2

    def test_camel_case_config(self):
        custom = RealToneProcessor({'shadowLift': 0.5, 'adaptiveExposure': False})
        assert custom.config.shadow_lift == 0.5
        assert custom.config.adaptive_exposure is False

    def test_zero_override_is_kept(self):
        custom = RealToneProcessor({'shadow_lift': 0})
        assert custom.config.shadow_lift == 0

    def test_config_object_is_copied(self):
        config = RealToneConfig(shadow_lift=0.4)
        custom = RealToneProcessor(config)
        config.shadow_lift = 0.9
        assert custom.config.shadow_lift == 0.4


class TestClassification:
    """Test Monk Skin Tone Scale classification."""

    @pytest.mark.parametrize("rgb,expected_id,expected_name", [
        ((250, 240, 230), 1, "Very Light"),
        ((245, 230, 215), 2, "Light"),
        ((220, 195, 165), 4, "Medium"),
        ((175, 140, 110), 6, "Tan"),
        ((120, 85, 60), 8, "Dark"),
        ((90, 60, 40), 9, "Very Dark"),
        ((60, 40, 30), 10, "Deepest"),
    ])
    def test_reference_samples(self, processor, rgb, expected_id, expected_name):
        r, g, b = rgb
        category = processor.detect_skin_tone_category({'r': r, 'g': g, 'b': b})
        assert category.id == expected_id
        assert category.name == expected_name

    def test_accepts_sampled_color_and_tuple(self, processor):
        assert processor.detect_skin_tone_category(SampledColor(60, 40, 30)).id == 10
        assert processor.detect_skin_tone_category((250, 240, 230)).id == 1
        assert processor.classify({'red': 175, 'green': 140, 'blue': 110}).id == 6

    def test_none_falls_back_to_midpoint(self, processor):
        assert processor.detect_skin_tone_category(None).id == 5

    def test_missing_channels_fall_back_to_midpoint(self, processor):
        assert processor.detect_skin_tone_category({'r': 100}).id == 5

    def test_non_numeric_red_falls_back_to_midpoint(self, processor):
        assert processor.detect_skin_tone_category({'r': '100', 'g': 80, 'b': 60}).id == 5
        assert processor.detect_skin_tone_category({'r': True, 'g': 80, 'b': 60}).id == 5

    def test_nan_falls_back_to_midpoint(self, processor):
        assert processor.detect_skin_tone_category((math.nan, 40, 30)).id == 5

    def test_nearest_shade_for_off_table_sample(self, processor):
        # Slightly lighter than Deep Tan
        assert processor.detect_skin_tone_category((155, 118, 88)).id == 7

    def test_tie_keeps_lighter_shade(self, processor):
        # Exact midpoint between MST-9 and MST-10
        assert processor.detect_skin_tone_category((75, 50, 35)).id == 9

    def test_extreme_values(self, processor):
        assert processor.detect_skin_tone_category((0, 0, 0)).id == 10
        assert processor.detect_skin_tone_category((255, 255, 255)).id == 1
        assert processor.detect_skin_tone_category((-50, 400, 1000)) is not None

    def test_classification_is_idempotent(self, processor):
        sample = {'r': 130, 'g': 95, 'b': 70}
        first = processor.detect_skin_tone_category(sample)
        second = processor.detect_skin_tone_category(sample)
        assert first is second
        assert sample == {'r': 130, 'g': 95, 'b': 70}


class TestExposureCompensation:
    """Test adaptive exposure compensation."""

    @pytest.mark.parametrize("mst_id,expected", [
        (1, -0.1), (2, 0.0), (4, 0.2), (8, 0.4), (9, 0.5), (10, 0.6),
    ])
    def test_per_category(self, processor, mst_id, expected):
        assert processor.calculate_exposure_compensation(mst_id) == expected

    def test_unknown_id_uses_fallback(self, processor):
        assert processor.calculate_exposure_compensation(999) == 0.3
        assert processor.calculate_exposure_compensation(0) == 0.3

    def test_disabled(self, processor):
        processor.update_config({'adaptive_exposure': False})
        assert processor.calculate_exposure_compensation(10) == 0
        assert processor.calculate_exposure_compensation(999) == 0


class TestWhiteBalance:
    """Test enhanced white balance."""

    def test_light_tones_get_minimal_warmth(self, processor):
        assert processor.calculate_white_balance(2).temperature < 0.1

    def test_medium_tones_get_moderate_warmth(self, processor):
        wb = processor.calculate_white_balance(5)
        assert 0.05 < wb.temperature < 0.15
        assert wb.temperature == pytest.approx(0.1 * 1.15)

    def test_dark_tones_get_significant_warmth(self, processor):
        assert processor.calculate_white_balance(8).temperature > 0.15

    def test_temperature_increases_with_depth(self, processor):
        temps = [processor.calculate_white_balance(i).temperature for i in range(1, 11)]
        for lighter, deeper in zip(temps, temps[1:]):
            assert deeper > lighter

    def test_tint_is_constant(self, processor):
        assert all(processor.calculate_white_balance(i).tint == 0.05 for i in range(1, 11))

    def test_warmth_multiplier_scales_temperature(self, processor):
        processor.update_config(warmth_multiplier=2.0)
        assert processor.calculate_white_balance(10).temperature == pytest.approx(0.4)

    def test_disabled(self, processor):
        processor.update_config({'enhanced_white_balance': False})
        wb = processor.calculate_white_balance(10)
        assert wb.temperature == 0
        assert wb.tint == 0


class TestLocalToneMapping:
    """Test local tone mapping."""

    @pytest.mark.parametrize("mst_id", [1, 2, 3, 4, 5])
    def test_lighter_shades_get_base_shadow_lift(self, processor, mst_id):
        mapping = processor.calculate_local_tone_mapping(mst_id)
        assert mapping.shadow_boost == processor.config.shadow_lift

    def test_dark_tones_get_more_shadow_lift(self, processor):
        mapping = processor.calculate_local_tone_mapping(8)
        assert mapping.shadow_boost > processor.config.shadow_lift

    def test_deepest_tones_get_maximum_shadow_lift(self, processor):
        lift = processor.config.shadow_lift
        assert processor.calculate_local_tone_mapping(9).shadow_boost > lift * 1.3
        assert processor.calculate_local_tone_mapping(10).shadow_boost > lift * 1.3
        assert processor.calculate_local_tone_mapping(10).shadow_boost == pytest.approx(lift * 1.5)

    def test_highlight_compression_and_contrast(self, processor):
        mapping = processor.calculate_local_tone_mapping(5)
        assert mapping.highlight_compression == processor.config.highlight_protection
        assert mapping.midtone_contrast == processor.config.contrast_enhancement

    def test_disabled(self, processor):
        processor.update_config({'local_tone_mapping': False})
        mapping = processor.calculate_local_tone_mapping(10)
        assert mapping.shadow_boost == 0
        assert mapping.highlight_compression == 0
        assert mapping.midtone_contrast is None


class TestOptimizedSettings:
    """Test the aggregated settings bundle."""

    def test_light_skin(self, processor):
        settings = processor.get_optimized_settings(MST[2])
        assert settings.exposure == 0
        assert settings.iso == 200
        assert settings.hdr is True
        assert settings.white_balance.mode == 'auto'

    def test_medium_skin(self, processor):
        settings = processor.get_optimized_settings(MST[5])
        assert settings.exposure == 0.25
        assert settings.iso == 200

    def test_dark_skin(self, processor):
        settings = processor.get_optimized_settings(MST[8])
        assert settings.exposure == 0.4
        assert settings.iso == 400
        assert settings.hdr is True

    def test_iso_step(self, processor):
        isos = [processor.get_optimized_settings(MST[i]).iso for i in range(1, 11)]
        assert isos == [200] * 6 + [400] * 4

    def test_bundle_fields(self, processor):
        settings = processor.get_optimized_settings(MST[9])
        wb = processor.calculate_white_balance(9)
        mapping = processor.calculate_local_tone_mapping(9)
        assert settings.white_balance.temperature == wb.temperature
        assert settings.white_balance.tint == 0.05
        assert settings.warmth == wb.temperature
        assert settings.shadows == mapping.shadow_boost
        assert settings.highlights == -0.2
        assert settings.contrast == 1.1
        assert settings.saturation == 1.05

    def test_metadata(self, processor):
        settings = processor.get_optimized_settings(MST[6])
        assert settings.real_tone.enabled is True
        assert settings.real_tone.mst_category == 6
        assert settings.real_tone.category_name == 'Tan'
        assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$",
                        settings.real_tone.timestamp)

    def test_missing_id_defaults_to_midpoint(self, processor):
        settings = processor.get_optimized_settings({'name': 'Unknown'})
        assert settings.real_tone.mst_category == 5
        assert settings.exposure == 0.25
        assert processor.get_optimized_settings(None).real_tone.mst_category == 5

    def test_mapping_input(self, processor):
        settings = processor.get_optimized_settings({'id': 10, 'name': 'Deepest'})
        assert settings.exposure == 0.6
        assert settings.real_tone.category_name == 'Deepest'

    def test_to_dict(self, processor):
        data = processor.get_optimized_settings(MST[8]).to_dict()
        assert data['white_balance']['mode'] == 'auto'
        assert data['iso'] == 400
        assert data['real_tone']['mst_category'] == 8
        assert set(data) == {
            'exposure', 'iso', 'white_balance', 'hdr', 'shadows', 'highlights',
            'contrast', 'saturation', 'warmth', 'real_tone',
        }


class TestConfigurationManagement:
    """Test enable/get/update configuration."""

    def test_enable_disable(self, processor):
        processor.set_enabled(False)
        assert processor.config.enabled is False
        processor.set_enabled(True)
        assert processor.config.enabled is True

    def test_disabled_does_not_change_derived_settings(self, processor):
        """The master switch only gates enhance_image; derivations keep their own flags."""
        category = get_category(10)
        enabled = processor.get_optimized_settings(category).to_dict()

        processor.set_enabled(False)
        assert processor.calculate_exposure_compensation(10) == 0.6
        disabled = processor.get_optimized_settings(category).to_dict()

        assert disabled['real_tone']['enabled'] is False
        assert enabled['real_tone']['enabled'] is True
        for bundle in (enabled, disabled):
            del bundle['real_tone']
        assert disabled == enabled
        assert disabled['exposure'] == 0.6
        assert disabled['shadows'] == pytest.approx(0.45)

    def test_get_config(self, processor):
        config = processor.get_config()
        assert config.enabled is True
        assert config.shadow_lift == 0.3

    def test_get_config_returns_copy(self, processor):
        config = processor.get_config()
        config.shadow_lift = 0.9
        config.enabled = False
        assert processor.config.shadow_lift == 0.3
        assert processor.config.enabled is True

    def test_partial_update(self, processor):
        before = processor.get_config().to_dict()
        processor.update_config({'shadow_lift': 0.5, 'warmth_multiplier': 1.3})
        after = processor.get_config().to_dict()
        assert after['shadow_lift'] == 0.5
        assert after['warmth_multiplier'] == 1.3
        for key in before:
            if key not in ('shadow_lift', 'warmth_multiplier'):
                assert after[key] == before[key]

    def test_unknown_keys_are_ignored(self, processor):
        processor.update_config({'sparkle': 11})
        assert not hasattr(processor.config, 'sparkle')
        assert processor.config.shadow_lift == 0.3


class TestAnalysisAndEnhancement:
    """Test the asynchronous analysis and enhancement pipeline."""

    @pytest.mark.asyncio
    async def test_analyze_skin_tone(self, processor):
        result = await processor.analyze_skin_tone('test://image.jpg')
        assert result.detected is True
        assert result.mst_category.id == 6
        assert 0 < result.confidence <= 1

    @pytest.mark.asyncio
    async def test_analyze_with_region(self, processor):
        region = {'x': 0, 'y': 0, 'width': 100, 'height': 100}
        result = await processor.analyze_skin_tone('test://image.jpg', region)
        assert result.region == region

    @pytest.mark.asyncio
    async def test_detector_failure_is_reported_as_undetected(self):
        processor = RealToneProcessor(detector=BrokenDetector())
        result = await processor.analyze_skin_tone('test://image.jpg', (1, 2, 3, 4))
        assert result.detected is False
        assert result.confidence == 0.0
        assert result.mst_category.id == 5
        assert result.region == (1, 2, 3, 4)

    @pytest.mark.asyncio
    async def test_enhance_without_applier_returns_original(self, processor):
        result = await processor.enhance_image('test://image.jpg')
        assert result == 'test://image.jpg'

    @pytest.mark.asyncio
    async def test_disabled_returns_original_without_analysis(self):
        detector = CountingDetector()
        applier = RecordingApplier()
        processor = RealToneProcessor({'enabled': False}, detector=detector, applier=applier)
        result = await processor.enhance_image('test://image.jpg')
        assert result == 'test://image.jpg'
        assert detector.calls == 0
        assert applier.calls == []

    @pytest.mark.asyncio
    async def test_enhance_analyzes_when_no_tone_given(self):
        detector = CountingDetector(mst_id=9)
        applier = RecordingApplier()
        processor = RealToneProcessor(detector=detector, applier=applier)

        result = await processor.enhance_image('test://image.jpg')

        assert result == 'test://image-enhanced.jpg'
        assert detector.calls == 1
        image_ref, settings = applier.calls[0]
        assert image_ref == 'test://image.jpg'
        assert settings.real_tone.mst_category == 9
        assert settings.exposure == 0.5

    @pytest.mark.asyncio
    async def test_enhance_with_pre_detected_tone(self):
        detector = CountingDetector()
        applier = RecordingApplier()
        processor = RealToneProcessor(detector=detector, applier=applier)

        await processor.enhance_image('test://image.jpg', MST[8])

        assert detector.calls == 0
        assert applier.calls[0][1].iso == 400

    @pytest.mark.asyncio
    async def test_applier_failure_returns_original(self):
        processor = RealToneProcessor(applier=FailingApplier())
        result = await processor.enhance_image('test://image.jpg', MST[3])
        assert result == 'test://image.jpg'

    @pytest.mark.asyncio
    async def test_bad_tone_object_returns_original(self, processor):
        result = await processor.enhance_image('test://image.jpg', {'id': 'eight'})
        assert result == 'test://image.jpg'
