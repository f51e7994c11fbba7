import pytest
import json
import sys
import os

# Add project root to sys.path to allow importing project modules
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

import config_loader
import constants


def _write_config(tmp_path, data, name="config.json"):
    config_file = tmp_path / name
    config_file.write_text(json.dumps(data))
    return str(config_file)


@pytest.fixture(autouse=True)
def clear_github_env(monkeypatch):
    monkeypatch.delenv('GITHUB_TOKEN', raising=False)
    monkeypatch.delenv('GITHUB_REPOSITORY', raising=False)


def test_load_config_valid(tmp_path):
    """Tests loading a configuration file with every optional key set."""
    valid_config_data = {
        "artifacts": [
            {"url": "https://example.com", "description": "Example website"},
            {"url": "r/AskReddit"},
        ],
        "archive_dir": "my_archive",
        "schedule": "Weekly on Sunday",
        "contact_email": "me@example.com",
        "limit_rate": "10m",
        "user_agent": "TestAgent/1.0",
        "request_delay_seconds": 2,
        "max_retries": 5,
        "mirror_max_depth": 2,
        "mirror_max_pages": 20,
        "prevalidate": True,
        "prevalidate_hard_failure": "exclude",
    }
    loaded_config = config_loader.load_config(_write_config(tmp_path, valid_config_data))

    for key, value in valid_config_data.items():
        assert loaded_config[key] == value
    assert loaded_config['metadata_file'] == os.path.join("my_archive", constants.METADATA_FILENAME)
    assert loaded_config['limit_rate_bytes'] == 10 * 1024 * 1024


def test_load_config_defaults(tmp_path):
    """Tests that default values are applied for missing optional keys."""
    loaded_config = config_loader.load_config(_write_config(tmp_path, {"artifacts": [{"url": "https://example.com"}]}))

    assert loaded_config['archive_dir'] == constants.DEFAULT_ARCHIVE_DIR
    assert loaded_config['metadata_file'] == os.path.join(constants.DEFAULT_ARCHIVE_DIR, constants.METADATA_FILENAME)
    assert loaded_config['schedule'] == constants.DEFAULT_SCHEDULE
    assert loaded_config['user_agent'] == constants.DEFAULT_USER_AGENT
    assert loaded_config['request_delay_seconds'] == constants.DEFAULT_REQUEST_DELAY
    assert loaded_config['max_retries'] == constants.DEFAULT_MAX_RETRIES
    assert loaded_config['request_timeout_probe'] == constants.DEFAULT_TIMEOUT_PROBE
    assert loaded_config['request_timeout_content'] == constants.DEFAULT_TIMEOUT_CONTENT
    assert loaded_config['limit_rate_bytes'] is None
    assert loaded_config['prevalidate'] is False
    assert loaded_config['prevalidate_hard_failure'] == constants.PREVALIDATE_ABORT
    assert loaded_config['publish'] is False
    assert loaded_config['log_file'] is None


def test_load_config_missing_artifacts(tmp_path):
    """Tests loading a config file without artifacts raises ValueError."""
    with pytest.raises(ValueError) as e:
        config_loader.load_config(_write_config(tmp_path, {"schedule": "daily"}))
    assert "missing required keys: artifacts" in str(e.value)


@pytest.mark.parametrize("artifacts, message", [
    ([], "non-empty list"),
    ("https://example.com", "non-empty list"),
    (["https://example.com"], "must be an object"),
    ([{"description": "no url"}], "missing a non-empty 'url'"),
    ([{"url": "   "}], "missing a non-empty 'url'"),
    ([{"url": "https://example.com", "description": 42}], "description' must be a string"),
    ([{"url": "https://example.com"}, {"url": "https://example.com "}], "more than once"),
])
def test_load_config_malformed_artifacts(tmp_path, artifacts, message):
    with pytest.raises(ValueError) as e:
        config_loader.load_config(_write_config(tmp_path, {"artifacts": artifacts}))
    assert message in str(e.value)


def test_load_config_invalid_json(tmp_path):
    """Tests loading a file with invalid JSON raises ValueError."""
    config_file = tmp_path / "invalid_json.json"
    config_file.write_text('{"artifacts": [{"url": "https://example.com"}, ...')

    with pytest.raises(ValueError) as e:
        config_loader.load_config(str(config_file))
    assert "Error decoding JSON" in str(e.value)


@pytest.mark.parametrize("key, value, message", [
    ("request_delay_seconds", -1, "Config 'request_delay_seconds' must be a non-negative number."),
    ("max_retries", 1.5, "Config 'max_retries' must be a non-negative integer."),
    ("mirror_max_pages", 0, "Config 'mirror_max_pages' must be a positive integer."),
    ("request_timeout_probe", 0, "Config 'request_timeout_probe' must be a positive number."),
    ("prevalidate_hard_failure", "ignore", "Config 'prevalidate_hard_failure' must be one of"),
    ("limit_rate", "fast", "Invalid limit_rate 'fast'"),
    ("repository", "not-a-repo", "Config 'repository' must look like 'owner/name'."),
])
def test_load_config_invalid_value(tmp_path, key, value, message):
    config_data = {"artifacts": [{"url": "https://example.com"}], key: value}
    with pytest.raises(ValueError) as e:
        config_loader.load_config(_write_config(tmp_path, config_data))
    assert message in str(e.value)


def test_load_config_publish_requires_token(tmp_path):
    config_data = {"artifacts": [{"url": "https://example.com"}], "publish": True, "repository": "owner/site"}
    with pytest.raises(ValueError) as e:
        config_loader.load_config(_write_config(tmp_path, config_data))
    assert "github_token" in str(e.value)


def test_load_config_publish_reads_environment(tmp_path, monkeypatch):
    monkeypatch.setenv('GITHUB_TOKEN', 'env-token')
    monkeypatch.setenv('GITHUB_REPOSITORY', 'owner/site')
    config_data = {"artifacts": [{"url": "https://example.com"}], "publish": True}

    loaded_config = config_loader.load_config(_write_config(tmp_path, config_data))

    assert loaded_config['github_token'] == 'env-token'
    assert loaded_config['repository'] == 'owner/site'


def test_load_config_file_not_found(tmp_path):
    """Tests loading a non-existent config file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        config_loader.load_config(str(tmp_path / "non_existent_config.json"))


@pytest.mark.parametrize("value, expected", [
    (None, None),
    ("", None),
    ("10m", 10 * 1024 * 1024),
    ("500k", 500 * 1024),
    ("1G", 1024 ** 3),
    ("2048", 2048),
    ("1.5m", int(1.5 * 1024 * 1024)),
    (4096, 4096),
])
def test_parse_rate_limit(value, expected):
    assert config_loader.parse_rate_limit(value) == expected


@pytest.mark.parametrize("value", ["10 mb", "-5k", "0", 0, True, "m"])
def test_parse_rate_limit_invalid(value):
    with pytest.raises(ValueError):
        config_loader.parse_rate_limit(value)
