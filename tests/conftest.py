"""Pytest configuration and shared fixtures."""

import json
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add project root to path for all tests
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from mwcc.client import MWCC
from mwcc.config import ClientConfig

API_URL = "https://wiki.example.com/w/api.php"


def build_response(data=None, content=None, status_error=None):
    """Build a fake requests.Response for session.request mocks."""
    response = Mock()
    if content is None:
        content = json.dumps(data).encode("utf-8") if data is not None else b""
    response.content = content
    if data is not None:
        response.json.return_value = data
    else:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    response.raise_for_status = Mock(side_effect=status_error)
    return response


@pytest.fixture
def make_response():
    """Factory for fake HTTP responses."""
    return build_response


@pytest.fixture
def api():
    """Client whose transport is a Mock (set return_value/side_effect per test)."""
    client = MWCC(API_URL, ClientConfig(user_agent="TestBot/1.0"))
    client.session.request = Mock()
    return client


@pytest.fixture
def tokens_response():
    """Sample meta=tokens&type=* response."""
    return {
        "batchcomplete": True,
        "query": {
            "tokens": {
                "createaccounttoken": "ca123+\\",
                "csrftoken": "abc+\\",
                "logintoken": "login123+\\",
                "patroltoken": "patrol123+\\",
                "rollbacktoken": "rollback123+\\",
                "userrightstoken": "rights123+\\",
                "watchtoken": "watch123+\\",
            }
        },
    }


@pytest.fixture
def temp_log_dir(tmp_path):
    """Provide a temporary directory for log files."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return log_dir
