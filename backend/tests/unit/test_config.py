import pytest
import yaml

from taskflow.config import ENV_FILE_VAR, DEFAULT_API_BASE_URL, load_settings, settings_from_dict
from taskflow.errors import ConfigError


def write_config(tmp_path, data):
    path = tmp_path / "clickup.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def test_load_from_env_var(tmp_path, monkeypatch, raw_config):
    path = write_config(tmp_path, raw_config)
    monkeypatch.setenv(ENV_FILE_VAR, str(path))
    settings = load_settings()
    assert settings.workspace.custom_field_ids.pre_meeting_tasks == "cf-pre-meeting"
    assert settings.webhooks.channel("wh-1").secret == "s3cret"
    assert settings.webhooks.endpoint_url == "https://hooks.test/clickup/webhook"


def test_explicit_path_wins(tmp_path, monkeypatch, raw_config):
    monkeypatch.setenv(ENV_FILE_VAR, str(tmp_path / "nope.yaml"))
    settings = load_settings(str(write_config(tmp_path, raw_config)))
    assert settings.token == "pk_test"


def test_missing_env_var(monkeypatch):
    monkeypatch.delenv(ENV_FILE_VAR, raising=False)
    monkeypatch.delenv("APP_LOAD_DOTENV", raising=False)
    with pytest.raises(ConfigError, match=ENV_FILE_VAR):
        load_settings()


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_settings(str(tmp_path / "absent.yaml"))


def test_malformed_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("token: [unclosed")
    with pytest.raises(ConfigError, match="Error loading"):
        load_settings(str(path))


def test_missing_required_key(raw_config):
    del raw_config["workspace"]["custom_field_ids"]["timestamp"]
    with pytest.raises(ConfigError, match="Invalid configuration"):
        settings_from_dict(raw_config)


def test_non_mapping_root():
    with pytest.raises(ConfigError):
        settings_from_dict(["token"])


def test_defaults(raw_config):
    del raw_config["api_base_url"]
    raw_config["webhooks"].pop("list")
    settings = settings_from_dict(raw_config)
    assert settings.api_base_url == DEFAULT_API_BASE_URL
    assert settings.webhooks.channels == []
    assert settings.webhooks.verify_on_startup is True


def test_settings_are_frozen(settings):
    with pytest.raises(Exception):
        settings.token = "other"
