"""Tests for DetectionSettings."""

import pytest

from moddetect import DetectionSettings
from moddetect.exceptions import ConfigurationError


class TestDetectionSettings:

    def test_method_string(self):
        assert DetectionSettings().method_string() == 'Newman+MVM+gMVM'
        settings = DetectionSettings(divider='GA', use_global_moving_vertex=False)
        assert settings.method_string() == 'GA+MVM'
        assert settings.method_string('BF') == 'BF+MVM'
        assert DetectionSettings(use_moving_vertex=False,
                                 use_global_moving_vertex=False).method_string() == 'Newman'

    def test_validate_returns_self(self):
        settings = DetectionSettings()
        assert settings.validate() is settings

    @pytest.mark.parametrize('values', [
        {'divider': 'Louvain'},
        {'num_concurrent_detections': 0},
        {'snapshot_mode': 'partial'},
    ])
    def test_invalid(self, values):
        with pytest.raises(ConfigurationError):
            DetectionSettings(**values).validate()

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            DetectionSettings(divider='Louvain').validate()

    def test_from_dict_unknown_key(self):
        with pytest.raises(ConfigurationError):
            DetectionSettings.from_dict({'divider': 'BF', 'colour': 'red'})

    def test_json_round_trip(self, tmp_path):
        settings = DetectionSettings(divider='SA', divider_options='--seed 3',
                                     use_global_moving_vertex=False, verbose=True)
        path = str(tmp_path / 'config' / 'settings.json')
        settings.save_json(path)
        assert DetectionSettings.from_json(path) == settings

    def test_to_dict(self):
        values = DetectionSettings(divider='BF').to_dict()
        assert values['divider'] == 'BF'
        assert values['use_moving_vertex'] is True
