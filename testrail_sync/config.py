"""YAML + environment variable configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv


class ConfigError(Exception):
    """Required configuration is missing or invalid."""


@dataclass
class TestRailConfig:
    __test__ = False  # not a pytest test class

    host: str = ""
    username: str = ""
    password: str = ""
    project_id: int | None = None
    request_timeout: int = 30
    page_limit: int = 250


@dataclass
class SyncConfig:
    file_suffix: str = ".test.ts"
    lookup_delay: float = 0.2
    update_delay: float = 0.5
    progress_every: int = 10


@dataclass
class Config:
    testrail: TestRailConfig = field(default_factory=TestRailConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)

    REQUIRED = ("host", "username", "password")

    def missing_credentials(self) -> list[str]:
        """Names of required testrail settings that are empty."""
        return [name for name in self.REQUIRED if not getattr(self.testrail, name)]


# Section name -> env var prefix
ENV_PREFIXES = {
    "testrail": "TESTRAIL",
    "sync": "TITLE_SYNC",
}


def env_var_name(section: str, key: str) -> str:
    return f"{ENV_PREFIXES[section]}_{key.upper()}"


def _coerce(type_name: Any, value: str) -> Any:
    # Annotations are strings under `from __future__ import annotations`
    type_name = type_name if isinstance(type_name, str) else getattr(type_name, "__name__", str(type_name))
    if not value.strip() and "None" in type_name:
        return None
    if type_name.startswith("int"):
        return int(value)
    if type_name == "float":
        return float(value)
    return value


def _apply_env_overrides(cfg: Config, environ: dict[str, str] | None = None) -> None:
    """Override config values with TESTRAIL_<KEY> / TITLE_SYNC_<KEY> env vars."""
    environ = os.environ if environ is None else environ
    section_map = {
        "testrail": cfg.testrail,
        "sync": cfg.sync,
    }
    for section_name, section_obj in section_map.items():
        for f in fields(section_obj):
            env_val = environ.get(env_var_name(section_name, f.name))
            if env_val is not None:
                try:
                    setattr(section_obj, f.name, _coerce(f.type, env_val))
                except ValueError:
                    raise ConfigError(
                        f"Invalid value for {env_var_name(section_name, f.name)}: {env_val!r}"
                    )


def _build_section(dataclass_type: type, data: dict[str, Any] | None) -> Any:
    """Build a dataclass from a dict, ignoring unknown keys. An empty section means defaults."""
    if data is None:
        return dataclass_type()
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config section for {dataclass_type.__name__} must be a mapping, got {type(data).__name__}"
        )
    known = {f.name for f in fields(dataclass_type)}
    return dataclass_type(**{k: v for k, v in data.items() if k in known})


def load_config(
    path: str | Path | None = None,
    *,
    environ: dict[str, str] | None = None,
    dotenv_path: str | Path | None = ".env",
) -> Config:
    """Load config from YAML file (optional) then apply env var overrides.

    A ``.env`` file is read into the process environment first, without
    replacing variables that are already set. Pass ``dotenv_path=None`` to
    skip it.
    """
    if dotenv_path is not None and Path(dotenv_path).exists():
        load_dotenv(dotenv_path, override=False)

    cfg = Config()

    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                raw = yaml.safe_load(f) or {}
            if "testrail" in raw:
                cfg.testrail = _build_section(TestRailConfig, raw["testrail"])
            if "sync" in raw:
                cfg.sync = _build_section(SyncConfig, raw["sync"])

    _apply_env_overrides(cfg, environ)
    cfg.testrail.host = cfg.testrail.host.rstrip("/")
    return cfg

