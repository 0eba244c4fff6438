"""
Tests for config file discovery and settings overrides.
"""

import pytest

from semantic_similarity.config import (
    DEFAULT_SETTINGS,
    SimilaritySettings,
    find_config_file,
    load_config,
    settings_from_config,
)


class TestFindConfigFile:
    def test_found_in_parent(self, tmp_path):
        (tmp_path / ".semsimrc").write_text("[semsim]\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config_file(nested) == (tmp_path / ".semsimrc").resolve()

    def test_rc_preferred_over_toml(self, tmp_path):
        (tmp_path / ".semsimrc").write_text("[semsim]\n")
        (tmp_path / ".semsim.toml").write_text("[semsim]\n")

        assert find_config_file(tmp_path).name == ".semsimrc"

    def test_toml_name(self, tmp_path):
        (tmp_path / ".semsim.toml").write_text("[semsim]\n")
        assert find_config_file(tmp_path).name == ".semsim.toml"


class TestLoadConfig:
    def test_reads_section(self, tmp_path):
        (tmp_path / ".semsim.toml").write_text(
            "[semsim]\nthreshold = 0.8\n\n[semsim.function_caps]\nloops = 4\n"
        )
        config = load_config(tmp_path)

        assert config["threshold"] == 0.8
        assert config["function_caps"] == {"loops": 4}

    def test_invalid_toml_gives_empty_config(self, tmp_path):
        (tmp_path / ".semsimrc").write_text("[semsim\nthreshold = ")
        assert load_config(tmp_path) == {}

    def test_missing_section(self, tmp_path):
        (tmp_path / ".semsimrc").write_text("[other]\nx = 1\n")
        assert load_config(tmp_path) == {}


class TestSettingsFromConfig:
    def test_empty_config_keeps_defaults(self):
        assert settings_from_config({}) == DEFAULT_SETTINGS

    def test_sub_tables_override_single_fields(self):
        settings = settings_from_config({
            "function_weights": {"invoked_signatures": 0.5},
            "type_caps": {"lines_of_code": 3000},
        })

        assert settings.function_weights.invoked_signatures == 0.5
        assert settings.function_weights.operation_histogram == DEFAULT_SETTINGS.function_weights.operation_histogram
        assert settings.type_caps.lines_of_code == 3000
        assert settings.type_caps.methods == DEFAULT_SETTINGS.type_caps.methods

    def test_scalars(self):
        settings = settings_from_config({
            "threshold": 0.8,
            "function_min_lines": 12,
            "type_min_lines": 30,
            "max_workers": 4,
            "precompute_scores": True,
            "output": "report.md",
        })

        assert settings.default_threshold == 0.8
        assert (settings.function_min_lines, settings.type_min_lines) == (12, 30)
        assert settings.worker_count == 4
        assert settings.precompute_scores

    def test_unknown_key_in_sub_table(self):
        with pytest.raises(ValueError, match="function_weights"):
            settings_from_config({"function_weights": {"invoked": 0.5}})


class TestWorkerCount:
    def test_at_least_one(self):
        assert SimilaritySettings(max_workers=0).worker_count == 1

    def test_default_is_half_the_cores(self, monkeypatch):
        monkeypatch.setattr("semantic_similarity.config.os.cpu_count", lambda: 8)
        assert SimilaritySettings().worker_count == 4

    def test_unknown_core_count(self, monkeypatch):
        monkeypatch.setattr("semantic_similarity.config.os.cpu_count", lambda: None)
        assert SimilaritySettings().worker_count == 1
