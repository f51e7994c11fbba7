import pytest
import sys
import os
import logging

# Ensure the project root is in the Python path for imports in tests
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)


@pytest.fixture(autouse=True)
def configure_logging(caplog):
    """Ensure logging is configured to capture DEBUG level messages for all tests."""
    caplog.set_level(logging.DEBUG, logger="root")


@pytest.fixture
def base_config(tmp_path):
    """A loaded-config-shaped dict rooted in a temporary directory, with no delays."""
    archive_dir = str(tmp_path / "archive")
    return {
        'archive_dir': archive_dir,
        'metadata_file': os.path.join(archive_dir, "metadata.json"),
        'user_agent': 'TestAgent/1.0',
        'request_delay_seconds': 0,
        'random_wait': False,
        'max_retries': 2,
        'request_timeout_probe': 5,
        'request_timeout_content': 5,
        'mirror_max_depth': 1,
        'mirror_max_pages': 10,
        'limit_rate_bytes': None,
        'prevalidate': False,
        'prevalidate_hard_failure': 'abort',
        'schedule': 'Daily at midnight (UTC)',
        'contact_email': '',
        'repository': '',
    }
