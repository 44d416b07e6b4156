"""
Unit тесты для FeatureConfig.
"""

import pytest

from synapse.config import DEFAULT_FEATURES_PATH, FeatureConfig


@pytest.mark.unit
class TestFeatureConfig:
    """Загрузка features.yaml."""

    def test_missing_file(self, tmp_path):
        config = FeatureConfig(tmp_path / 'nope.yaml')

        assert config.is_synapse_enabled is True
        assert config.is_component_enabled('history_recording') is True
        assert config.get_matching_config() == {}
        assert config.get_limit('candidate_limit', 100) == 100

    def test_load(self, tmp_path):
        path = tmp_path / 'features.yaml'
        path.write_text(
            "synapse:\n"
            "  enabled: true\n"
            "  components:\n"
            "    history_recording: false\n"
            "matching:\n"
            "  candidate_policy: active_open\n"
            "limits:\n"
            "  max_concurrency: 4\n",
            encoding='utf-8'
        )

        config = FeatureConfig(path)

        assert config.is_component_enabled('history_recording') is False
        assert config.is_component_enabled('concurrent_scoring') is True
        assert config.get_matching_config()['candidate_policy'] == 'active_open'
        assert config.get_limit('max_concurrency') == 4
        assert config.get_limit('scoring_deadline_sec') is None

    def test_disabled_engine_disables_components(self, tmp_path):
        path = tmp_path / 'features.yaml'
        path.write_text("synapse:\n  enabled: false\n", encoding='utf-8')

        config = FeatureConfig(path)

        assert config.is_synapse_enabled is False
        assert config.is_component_enabled('history_recording') is False

    def test_invalid_yaml_falls_back(self, tmp_path):
        path = tmp_path / 'features.yaml'
        path.write_text("synapse: [unclosed\n", encoding='utf-8')

        config = FeatureConfig(path)

        assert config.get_all_config() == {}

    def test_non_mapping_ignored(self, tmp_path):
        path = tmp_path / 'features.yaml'
        path.write_text("- just\n- a list\n", encoding='utf-8')

        assert FeatureConfig(path).get_all_config() == {}

    def test_reload(self, tmp_path):
        path = tmp_path / 'features.yaml'
        path.write_text("limits:\n  candidate_limit: 5\n", encoding='utf-8')
        config = FeatureConfig(path)

        path.write_text("limits:\n  candidate_limit: 7\n", encoding='utf-8')
        config.reload()

        assert config.get_limit('candidate_limit') == 7

    def test_bundled_config(self):
        config = FeatureConfig(DEFAULT_FEATURES_PATH)

        assert set(config.get_all_config()) == {'synapse', 'matching', 'limits'}
        assert config.get_matching_config()['candidate_policy'] == 'active_seeking_team'
        assert config.get_limit('candidate_limit') == 100
