"""
Tests for the configuration system.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import pytest

from credproof.config import (
    ConfigError,
    ConfigManager,
    ConfigValidationError,
    ConfigValue,
    get_config,
    get_config_manager,
)


class TestConfigValue:
    """Tests for individual configuration values."""

    def test_default(self):
        assert ConfigValue(default=5).get() == 5

    def test_env_override(self, monkeypatch):
        value = ConfigValue(default=5, env_var="CREDPROOF_TEST_VALUE")
        value.set(7)
        monkeypatch.setenv("CREDPROOF_TEST_VALUE", "9")
        assert value.get() == 9

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("no", False)])
    def test_bool_coercion(self, monkeypatch, raw, expected):
        monkeypatch.setenv("CREDPROOF_TEST_FLAG", raw)
        assert ConfigValue(default=False, env_var="CREDPROOF_TEST_FLAG").get() is expected

    def test_string_input_coerced(self):
        value = ConfigValue(default=64)
        value.set("96")
        assert value.get() == 96

    def test_validator(self):
        value = ConfigValue(default=64, validator=lambda x: 1 <= x <= 252)
        with pytest.raises(ConfigValidationError):
            value.set(300)
        assert value.get() == 64

    def test_on_change(self):
        seen = []
        value = ConfigValue(default=1)
        value.on_change(lambda old, new: seen.append((old, new)))
        value.set(2)
        assert seen == [(None, 2)]

    def test_reset(self):
        value = ConfigValue(default=1)
        value.set(2)
        value.reset()
        assert value.get() == 1


class TestConfigManager:
    """Tests for the configuration manager."""

    def test_singleton(self):
        assert ConfigManager() is get_config_manager()
        assert get_config() is ConfigManager().config

    def test_defaults(self):
        manager = ConfigManager()
        assert manager.get("relation.hardened") is False
        assert manager.get("relation.comparator_bits") == 64
        assert manager.get("policy.min_age") == 18
        assert manager.get("policy.required_citizenship") == "US"
        assert manager.get("prover.proof_system") == "groth16"
        assert manager.get("prover.setup_seed") == "credproof-dev-setup"
        assert manager.validate() == []

    def test_set_and_get(self):
        manager = ConfigManager()
        manager.set("policy.min_age", 21)
        assert get_config().policy.min_age.get() == 21

    def test_invalid_path(self):
        manager = ConfigManager()
        with pytest.raises(ConfigError):
            manager.get("policy.nope")
        with pytest.raises(ConfigError):
            manager.set("policy", 1)

    def test_invalid_value(self):
        with pytest.raises(ConfigValidationError):
            ConfigManager().set("prover.proof_system", "stark")

    @pytest.mark.parametrize("bits", [0, 65, 252])
    def test_comparator_bits_bounded_by_timestamp_width(self, bits):
        with pytest.raises(ConfigValidationError):
            ConfigManager().set("relation.comparator_bits", bits)

    def test_env_precedence(self, monkeypatch):
        manager = ConfigManager()
        manager.set("policy.min_age", 21)
        monkeypatch.setenv("CREDPROOF_POLICY_MIN_AGE", "25")
        assert manager.get("policy.min_age") == 25

    def test_invalid_env_reported(self, monkeypatch):
        monkeypatch.setenv("CREDPROOF_RELATION_COMPARATOR_BITS", "999")
        errors = ConfigManager().validate()
        assert len(errors) == 1
        assert errors[0].startswith("relation.comparator_bits")

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "credproof.yaml"
        path.write_text("relation:\n  hardened: true\npolicy:\n  min_age: 21\n")
        manager = ConfigManager()
        manager.load_from_file(path)
        assert manager.get("relation.hardened") is True
        assert manager.get("policy.min_age") == 21

    def test_load_unknown_key(self, tmp_path):
        path = tmp_path / "credproof.yaml"
        path.write_text("policy:\n  max_age: 99\n")
        with pytest.raises(ConfigError):
            ConfigManager().load_from_file(path)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            ConfigManager().load_from_file(tmp_path / "absent.yaml")

    def test_load_non_mapping(self, tmp_path):
        path = tmp_path / "credproof.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError):
            ConfigManager().load_from_file(path)

    def test_load_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        (tmp_path / "credproof.yaml").write_text("prover:\n  max_workers: 2\n")
        loaded = ConfigManager().load_defaults()
        assert [p.name for p in loaded] == ["credproof.yaml"]
        assert ConfigManager().get("prover.max_workers") == 2

    def test_reload(self, tmp_path):
        path = tmp_path / "credproof.yaml"
        path.write_text("policy:\n  min_age: 21\n")
        manager = ConfigManager()
        manager.load_from_file(path)
        path.write_text("policy:\n  min_age: 19\n")
        manager.reload()
        assert manager.get("policy.min_age") == 19

    def test_reset(self):
        manager = ConfigManager()
        manager.set("policy.min_age", 30)
        manager.reset()
        assert manager.get("policy.min_age") == 18

    def test_export(self):
        manager = ConfigManager()
        data = manager.config.to_dict()
        assert data["policy"]["max_proof_age_seconds"] == 3600
        assert "min_age: 18" in manager.config.to_yaml()
        schema = manager.export_schema()
        entry = schema["properties"]["relation"]["hardened"]
        assert entry["type"] == "bool"
        assert entry["env_var"] == "CREDPROOF_RELATION_HARDENED"
