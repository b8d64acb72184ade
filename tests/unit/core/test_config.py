import json
import logging
from unittest.mock import patch

import pytest
import yaml

from qa_bdd.core.config import ConfigManager, configure_logging
from qa_bdd.core.exceptions import ConfigurationError


class TestConfigManager:
    """Test loading and editing configuration"""

    def test_defaults_when_file_missing(self, tmp_path):
        """A missing file leaves the built-in defaults"""
        config = ConfigManager(tmp_path / "missing.yaml")

        assert config.get('executor.step_timeout') == 30.0
        assert config.get('parser.default_language') == 'en'
        assert config.get('reporter.formats') == ['html', 'json']

    def test_yaml_is_layered_over_defaults(self, tmp_path):
        """File values override defaults key by key"""
        path = tmp_path / "qa-bdd.yaml"
        path.write_text(yaml.dump({'executor': {'step_timeout': 5, 'tag_filter': '@smoke'}}))

        config = ConfigManager(path)
        assert config.get('executor.step_timeout') == 5
        assert config.get('executor.tag_filter') == '@smoke'
        assert config.get('executor.hook_timeout') == 30.0

    def test_json(self, tmp_path):
        """JSON config files are read too"""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'parser': {'strict': True}}))

        assert ConfigManager(path).get('parser.strict') is True

    def test_empty_yaml(self, tmp_path):
        """An empty file means defaults"""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert ConfigManager(path).get('general.log_level') == 'INFO'

    def test_unsupported_format(self, tmp_path):
        """Unknown file extensions are rejected"""
        path = tmp_path / "config.toml"
        path.write_text("x = 1")
        with pytest.raises(ConfigurationError, match="Unsupported config format"):
            ConfigManager(path)

    def test_non_mapping(self, tmp_path):
        """A top-level list is rejected"""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            ConfigManager(path)

    def test_get_and_set(self, tmp_path):
        """Dot paths read and create nested keys"""
        config = ConfigManager(tmp_path / "c.yaml")

        config.set('executor.fail_fast', True)
        config.set('custom.nested.value', 3)

        assert config.get('executor.fail_fast') is True
        assert config.get('custom.nested.value') == 3
        assert config.get('custom.missing', 'fallback') == 'fallback'
        assert config.get_module_config('custom') == {'nested': {'value': 3}}

    def test_save_round_trip(self, tmp_path):
        """Saved settings load back"""
        path = tmp_path / "nested" / "config.yaml"
        config = ConfigManager(path)
        config.set('executor.slow_mo', 0.5)
        config.save()

        assert path.exists()
        assert ConfigManager(path).get('executor.slow_mo') == 0.5

    def test_environment_variable(self, tmp_path, monkeypatch):
        """QA_BDD_CONFIG points at the config file"""
        path = tmp_path / "env.yaml"
        path.write_text(yaml.dump({'general': {'log_level': 'DEBUG'}}))
        monkeypatch.setenv("QA_BDD_CONFIG", str(path))

        config = ConfigManager()
        assert config.config_path == path
        assert config.get('general.log_level') == 'DEBUG'

    def test_project_file_in_cwd(self, tmp_path, monkeypatch):
        """A qa-bdd.yaml in the working directory is found"""
        monkeypatch.delenv("QA_BDD_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        (tmp_path / "qa-bdd.yaml").write_text(yaml.dump({'reporter': {'output_dir': 'out'}}))

        assert ConfigManager().get('reporter.output_dir') == 'out'


class TestConfigureLogging:
    """Test log setup"""

    def test_level_names(self):
        """Level names are case-insensitive"""
        with patch("logging.basicConfig") as basic_config:
            configure_logging("warning")
        assert basic_config.call_args.kwargs['level'] == logging.WARNING

    def test_verbose_wins(self):
        """verbose forces DEBUG"""
        with patch("logging.basicConfig") as basic_config:
            configure_logging("ERROR", verbose=True)
        assert basic_config.call_args.kwargs['level'] == logging.DEBUG

    def test_unknown_level(self):
        """Unknown level names are a configuration error"""
        with pytest.raises(ConfigurationError, match="Unknown log level"):
            configure_logging("chatty")
