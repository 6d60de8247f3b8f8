#!/usr/bin/env python3
"""
Client configuration.

Settings can be built in code or loaded from a JSON file with the same keys:

    {
        "user_agent": "MyBot/1.0 (https://example.org/wiki/User:MyBot)",
        "timeout": 30,
        "params": {"maxlag": 5},
        "headers": {"Accept-Language": "en"},
        "max_workers": 8,
        "auto_max_ceilings": [50, 500]
    }

Usage:
    from mwcc.config import ClientConfig

    config = ClientConfig.from_file("config.json")
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional, Union

from mwcc import __version__

DEFAULT_USER_AGENT = f"mwcc/{__version__}"


@dataclass
class ClientConfig:
    """
    Settings shared by every request an MWCC client issues.

    Attributes:
        user_agent: User-Agent header (None = "mwcc/<version>")
        timeout: Per-request timeout in seconds
        params: Default API parameters, overridden by the fixed defaults
            and by per-call parameters
        headers: Extra HTTP headers for every request
        max_workers: Maximum concurrent requests in mass_query()
        auto_max_ceilings: Batch ceilings for which mass_query() sets
            "*limit" parameters to "max" (empty = never)
    """
    user_agent: Optional[str] = None
    timeout: float = 30.0
    params: dict = field(default_factory=dict)
    headers: dict = field(default_factory=dict)
    max_workers: int = 8
    auto_max_ceilings: tuple = (50, 500)

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        self.auto_max_ceilings = tuple(self.auto_max_ceilings)

    @property
    def effective_user_agent(self) -> str:
        return self.user_agent or DEFAULT_USER_AGENT

    @classmethod
    def from_dict(cls, data: dict) -> "ClientConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ClientConfig":
        """Load a config from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))
