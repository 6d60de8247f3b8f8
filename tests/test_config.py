"""Tests for client configuration."""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mwcc import __version__
from mwcc.config import ClientConfig


class TestClientConfig:
    """Tests for ClientConfig dataclass."""

    def test_defaults(self):
        config = ClientConfig()
        assert config.user_agent is None
        assert config.timeout == 30.0
        assert config.params == {}
        assert config.max_workers == 8
        assert config.auto_max_ceilings == (50, 500)

    def test_effective_user_agent(self):
        assert ClientConfig().effective_user_agent == f"mwcc/{__version__}"
        assert ClientConfig(user_agent="Bot/2.0").effective_user_agent == "Bot/2.0"

    def test_rejects_bad_timeout(self):
        with pytest.raises(ValueError):
            ClientConfig(timeout=0)

    def test_rejects_bad_max_workers(self):
        with pytest.raises(ValueError):
            ClientConfig(max_workers=0)

    def test_ceilings_become_tuple(self):
        assert ClientConfig(auto_max_ceilings=[50]).auto_max_ceilings == (50,)

    def test_from_dict(self):
        config = ClientConfig.from_dict({"timeout": 10, "params": {"maxlag": 5}})
        assert config.timeout == 10
        assert config.params == {"maxlag": 5}

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError) as exc_info:
            ClientConfig.from_dict({"timeout": 10, "delay_seconds": 2})
        assert "delay_seconds" in str(exc_info.value)

    def test_from_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "user_agent": "ExampleBot/1.0 (https://example.org)",
            "max_workers": 2,
            "auto_max_ceilings": [500],
        }), encoding="utf-8")

        config = ClientConfig.from_file(path)

        assert config.user_agent == "ExampleBot/1.0 (https://example.org)"
        assert config.max_workers == 2
        assert config.auto_max_ceilings == (500,)
