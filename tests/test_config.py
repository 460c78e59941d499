# tests/test_config.py
import pytest
import yaml

from ptyscribe.config import AppConfig, ConfigError, load_config


class TestLoadConfig:
    def test_loads_valid_config(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({
            "replay": {"max_chunks": 5000},
            "narration": {"carry_max_chars": 4000, "max_signatures": 200, "retain_signatures": 50},
            "summary": {"max_buffer_chars": 1000, "min_length": 20},
            "autowork": {"backend": "gemini", "clear_ack_delay_s": 1.5, "submit_delay_s": 0},
            "surface": {"rows": 24, "cols": 80},
            "debug": {"enabled": True},
        }))
        config = load_config(str(config_file))
        assert config.replay.max_chunks == 5000
        assert config.narration.carry_max_chars == 4000
        assert config.narration.retain_signatures == 50
        assert config.summary.min_length == 20
        assert config.autowork.backend == "gemini"
        assert config.autowork.clear_ack_delay_s == 1.5
        assert config.autowork.submit_delay_s == 0.0
        assert config.surface.rows == 24
        assert config.debug.enabled is True

    def test_missing_file_raises(self):
        with pytest.raises(ConfigError, match="not found"):
            load_config("/nonexistent/config.yaml")

    def test_empty_file_gives_defaults(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        config = load_config(str(config_file))
        assert config == AppConfig()

    def test_null_sections_use_defaults(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("replay:\nnarration:\nautowork:\n")
        config = load_config(str(config_file))
        assert config.replay.max_chunks == 1000
        assert config.narration.max_signatures == 1000
        assert config.autowork.clear_ack_delay_s == 2.0

    def test_defaults(self):
        config = AppConfig()
        assert config.replay.max_chunks == 1000
        assert config.narration.carry_max_chars == 2000
        assert config.narration.retain_signatures == 500
        assert config.summary.max_buffer_chars == 200_000
        assert config.summary.min_length == 100
        assert config.autowork.interrupt_sequence == "\x1b"

    def test_non_mapping_root_raises(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(str(config_file))

    def test_zero_max_chunks_raises(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"replay": {"max_chunks": 0}}))
        with pytest.raises(ConfigError, match="replay.max_chunks"):
            load_config(str(config_file))

    def test_negative_delay_raises(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"autowork": {"clear_ack_delay_s": -1}}))
        with pytest.raises(ConfigError, match="clear_ack_delay_s"):
            load_config(str(config_file))

    def test_retain_above_max_raises(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({
            "narration": {"max_signatures": 10, "retain_signatures": 20},
        }))
        with pytest.raises(ConfigError, match="retain_signatures"):
            load_config(str(config_file))

    def test_narration_min_length_must_be_integer(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"narration": {"min_length": "five"}}))
        with pytest.raises(ConfigError, match="narration.min_length"):
            load_config(str(config_file))

    def test_narration_min_length_zero_allowed(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"narration": {"min_length": 0}}))
        assert load_config(str(config_file)).narration.min_length == 0
