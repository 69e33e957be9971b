"""Tests for installer settings."""

import pytest

from meldoc_installer.config.exceptions import ConfigurationError
from meldoc_installer.config.settings import (
    InstallerSettings,
    InstallOptions,
    load_config_file,
    load_settings,
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("MELDOC_INSTALL_DIR", "MELDOC_VERSION_SOURCE", "MELDOC_GITHUB_REPO",
                 "MELDOC_LATEST_URL", "MELDOC_GITHUB_TOKEN", "MELDOC_LOG_FILE",
                 "MELDOC_JSON_LOGS"):
        monkeypatch.delenv(name, raising=False)


class TestInstallerSettings:
    def test_defaults(self):
        settings = InstallerSettings()

        assert settings.tool_name == "meldoc"
        assert settings.version_source == "github"
        assert settings.releases_url == "https://github.com/meldoc-io/meldoc-cli/releases"
        assert settings.latest_release_api_url == (
            "https://api.github.com/repos/meldoc-io/meldoc-cli/releases/latest"
        )
        assert settings.pointer_url == (
            "https://github.com/meldoc-io/meldoc-cli/releases/latest/download/LATEST"
        )

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MELDOC_INSTALL_DIR", "/opt/meldoc/bin")
        monkeypatch.setenv("MELDOC_VERSION_SOURCE", "static")
        monkeypatch.setenv("MELDOC_LATEST_URL", "https://downloads.example.com/LATEST")

        settings = InstallerSettings()

        assert settings.install_dir == "/opt/meldoc/bin"
        assert settings.version_source == "static"
        assert settings.pointer_url == "https://downloads.example.com/LATEST"

    def test_logging_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MELDOC_LOG_FILE", str(tmp_path / "installer.log"))
        monkeypatch.setenv("MELDOC_JSON_LOGS", "true")

        settings = InstallerSettings()

        assert settings.log_file == str(tmp_path / "installer.log")
        assert settings.json_logs is True

    def test_env_prefix_configured_with_model_config(self):
        assert InstallerSettings.model_config["env_prefix"] == "MELDOC_"
        assert "Config" not in vars(InstallerSettings)


class TestLoadSettings:
    def test_without_file(self):
        assert load_settings().github_repo == "meldoc-io/meldoc-cli"

    def test_file_overrides_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MELDOC_GITHUB_REPO", "from-env/meldoc")
        config = tmp_path / "installer.yaml"
        config.write_text("github_repo: from-file/meldoc\nhttp_timeout: 30\n")

        settings = load_settings(str(config))

        assert settings.github_repo == "from-file/meldoc"
        assert settings.http_timeout == 30.0

    def test_empty_file(self, tmp_path):
        config = tmp_path / "installer.yaml"
        config.write_text("")

        assert load_settings(str(config)).tool_name == "meldoc"

    def test_unknown_keys(self, tmp_path):
        config = tmp_path / "installer.yaml"
        config.write_text("github_repo: a/b\nmirror: https://example.com\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(str(config))

        assert exc_info.value.details["keys"] == ["mirror"]
        assert str(exc_info.value) == f"Unknown configuration keys ({config}): keys: ['mirror']"

    def test_invalid_value(self, tmp_path):
        config = tmp_path / "installer.yaml"
        config.write_text("version_source: ftp\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(str(config))

        assert "Invalid configuration values" in str(exc_info.value)

    def test_not_a_mapping(self, tmp_path):
        config = tmp_path / "installer.yaml"
        config.write_text("- one\n- two\n")

        with pytest.raises(ConfigurationError):
            load_config_file(str(config))

    def test_invalid_yaml(self, tmp_path):
        config = tmp_path / "installer.yaml"
        config.write_text("github_repo: [unclosed\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config_file(str(config))

        assert "Invalid configuration file" in exc_info.value.message

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config_file(str(tmp_path / "missing.yaml"))


class TestInstallOptions:
    def test_defaults(self):
        options = InstallOptions()
        assert options.version == "latest"
        assert options.path_setup is None
        assert options.show_path_hint is True

    def test_quiet_implies_no_hint(self):
        assert InstallOptions(quiet=True).show_path_hint is False
        assert InstallOptions(path_hint=False).show_path_hint is False
