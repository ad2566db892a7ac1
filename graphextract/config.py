"""Runtime configuration read from the environment and a dotenv file."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded."""


@dataclass
class Config:
    """Endpoints to extract from and the gateway auth token."""

    endpoints: list[str] = field(default_factory=list)
    auth_token: str = ""


def load_config(env_file: str | os.PathLike[str] = ".env") -> Config:
    """Load the dotenv file, then read ENDPOINTS_JSON and GRAPHQL_AUTH_TOKEN.

    Variables already in the environment win over the file's values.
    """
    path = Path(env_file)
    if not path.is_file():
        raise ConfigError(f"cannot open env file {str(path)!r}")
    load_dotenv(path, override=False)

    raw = os.environ.get("ENDPOINTS_JSON", "")
    try:
        endpoints = json.loads(raw)
    except ValueError as exc:
        raise ConfigError(f"invalid ENDPOINTS_JSON: {exc}") from exc
    if endpoints is None:
        endpoints = []
    if not isinstance(endpoints, list) or not all(isinstance(e, str) for e in endpoints):
        raise ConfigError("ENDPOINTS_JSON must be a JSON array of strings")

    return Config(endpoints=endpoints, auth_token=os.environ.get("GRAPHQL_AUTH_TOKEN", ""))