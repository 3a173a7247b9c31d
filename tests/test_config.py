"""Tests for YAML configuration loading and updates."""

import pytest
import yaml

from ccremote.lib.config import RemoteConfig, load_config, save_config, update_config
from ccremote.lib.errors import ConfigError
from ccremote.lib.paths import get_config_file


def test_missing_file_gives_defaults():
    config = load_config()
    assert config == RemoteConfig()
    assert config.wait.timeout == 0
    assert config.notification.channel == "ntfy"


def test_partial_file_fills_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("notification:\n  recipient: my-topic\nwait:\n  timeout: 300\n")

    config = load_config(path)

    assert config.notification.recipient == "my-topic"
    assert config.notification.server == "https://ntfy.sh"
    assert config.wait.timeout == 300


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(path) == RemoteConfig()


@pytest.mark.parametrize(
    "content",
    [
        "notification: [unclosed",
        "- just\n- a list\n",
        "wait:\n  timeout: -5\n",
        "notification:\n  priority: 9\n",
    ],
)
def test_invalid_files_raise_config_error(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content)
    with pytest.raises(ConfigError):
        load_config(path)


def test_update_creates_and_merges():
    update_config(recipient="my-topic")
    update_config(timeout=600, poll_interval=1.5)

    config = load_config()
    assert config.notification.recipient == "my-topic"
    assert config.wait.timeout == 600
    assert config.wait.poll_interval == 1.5

    on_disk = yaml.safe_load(get_config_file().read_text())
    assert on_disk["notification"]["recipient"] == "my-topic"


def test_update_rejects_invalid_values_without_writing():
    update_config(recipient="my-topic")
    with pytest.raises(ConfigError):
        update_config(poll_interval=0)
    assert load_config().wait.poll_interval == 3.0


def test_save_round_trip(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    config = RemoteConfig.model_validate({"notification": {"recipient": "r", "reply_topic": "answers"}})
    save_config(config, path)
    assert load_config(path) == config


class TestRecipientAndToken:
    def test_require_recipient_prefers_override(self):
        config = RemoteConfig.model_validate({"notification": {"recipient": "configured"}})
        assert config.require_recipient() == "configured"
        assert config.require_recipient("other") == "other"

    def test_require_recipient_fails_when_unset(self):
        with pytest.raises(ConfigError, match="ccremote config --recipient"):
            RemoteConfig().require_recipient()

    def test_env_token_wins(self, monkeypatch):
        config = RemoteConfig.model_validate({"notification": {"token": "tk_file"}})
        assert config.effective_token() == "tk_file"
        monkeypatch.setenv("NTFY_TOKEN", "tk_env")
        assert config.effective_token() == "tk_env"
