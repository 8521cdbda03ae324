"""
Runner configuration, read from a YAML file.

A config file is a flat mapping, e.g.

    source_name: rules.twik
    timeout: 2.5
    prompt: "twik> "
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

CONFIG_ENV_VAR = "TWIK_CONFIG"


class ConfigError(ValueError):
    pass


@dataclass
class RunnerConfig:
    """Settings for a ScriptRunner and the command line front end."""
    # Name reported in error positions for sources registered without one.
    source_name: str = ""
    # Evaluation deadline in seconds; None waits forever.
    timeout: Optional[float] = None
    prompt: str = "> "
    continuation_prompt: str = ". "
    # Install StandardHost (printf, sprintf, list, append) when no host is given.
    standard_host: bool = True

    @classmethod
    def from_mapping(cls, data: Any) -> 'RunnerConfig':
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"config must be a mapping, not {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(map(str, unknown))}")
        cfg = cls(**data)
        cfg.validate()
        return cfg

    def validate(self) -> None:
        for name in ("source_name", "prompt", "continuation_prompt"):
            if not isinstance(getattr(self, name), str):
                raise ConfigError(f"{name} must be a string")
        if not isinstance(self.standard_host, bool):
            raise ConfigError("standard_host must be true or false")
        if self.timeout is not None:
            if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
                raise ConfigError("timeout must be a number of seconds")
            if self.timeout <= 0:
                raise ConfigError("timeout must be positive")
            self.timeout = float(self.timeout)


def load_config(path: Optional[str | Path] = None) -> RunnerConfig:
    """Loads a RunnerConfig from path, or from $TWIK_CONFIG when path is None.

    With neither, the defaults are returned.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        return RunnerConfig()
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"config file not found: {p}") from None
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {p}: {e}") from e
    return RunnerConfig.from_mapping(data)
