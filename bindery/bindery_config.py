"""
Runtime settings for bindery, plus the debug tracer.

Settings come from three places, later ones winning:
  - the dataclass defaults,
  - a YAML file named by BINDERY_CONFIG,
  - the BINDERY_DEBUG / BINDERY_MAX_PLACEHOLDER / BINDERY_CHECK_SIGNATURES
    environment variables.
"""
from __future__ import annotations

import os
import sys
import collections.abc
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import yaml

# The predefined tokens _1 .. _9 must always be valid positions.
MIN_PLACEHOLDERS = 9

_TRUE_WORDS = ("1", "true", "yes", "on")
_FALSE_WORDS = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class Settings:
    debug: bool = False
    max_placeholder: int = 32
    check_signatures: bool = True

    def validate(self) -> 'Settings':
        if not isinstance(self.max_placeholder, int) or isinstance(self.max_placeholder, bool):
            raise ValueError(f"max_placeholder must be an int, not {type(self.max_placeholder).__name__}")
        if self.max_placeholder < MIN_PLACEHOLDERS:
            raise ValueError(f"max_placeholder must be at least {MIN_PLACEHOLDERS}, got {self.max_placeholder}")
        return self


def _parse_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(f"{name}: expected a boolean, got {raw!r}")


def _coerce(name: str, raw: Any) -> Any:
    if name in ("debug", "check_signatures"):
        return _parse_bool(name, raw)
    if name == "max_placeholder":
        if isinstance(raw, bool):
            raise ValueError(f"max_placeholder: expected an int, got {raw!r}")
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"max_placeholder: expected an int, got {raw!r}") from e
    raise ValueError(f"Unknown setting: {name!r}")


def read_config_file(path: str) -> Dict[str, Any]:
    """Loads a YAML settings file; the top level must be a mapping."""
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, collections.abc.Mapping):
        raise ValueError(f"{path}: top level of a bindery config must be a mapping")
    known = {f.name for f in fields(Settings)}
    unknown = sorted(k for k in data if k not in known)
    if unknown:
        raise ValueError(f"{path}: unknown settings {', '.join(map(str, unknown))}")
    return {k: _coerce(k, v) for k, v in data.items()}


def load_settings(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    settings = Settings()

    config_path = path or env.get("BINDERY_CONFIG")
    if config_path:
        settings = replace(settings, **read_config_file(config_path))

    overrides: Dict[str, Any] = {}
    if "BINDERY_DEBUG" in env:
        overrides["debug"] = _coerce("debug", env["BINDERY_DEBUG"])
    if "BINDERY_MAX_PLACEHOLDER" in env:
        overrides["max_placeholder"] = _coerce("max_placeholder", env["BINDERY_MAX_PLACEHOLDER"])
    if "BINDERY_CHECK_SIGNATURES" in env:
        overrides["check_signatures"] = _coerce("check_signatures", env["BINDERY_CHECK_SIGNATURES"])
    if overrides:
        settings = replace(settings, **overrides)
    return settings.validate()


_cached: Optional[Settings] = None


def get_settings() -> Settings:
    """Returns the settings, loading them on first use."""
    global _cached
    if _cached is None:
        _cached = load_settings()
    return _cached


def reload_settings(path: Optional[str] = None) -> Settings:
    global _cached
    _cached = load_settings(path)
    return _cached


def dbg(*parts):
    if get_settings().debug:
        print("[DBG]", *parts, file=sys.stderr)
