"""Helpers for loading recorder configuration profiles."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .naming import stamped


class ConfigError(RuntimeError):
    """Raised when the configuration file or requested profile is invalid."""


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

_yaml = YAML(typ="safe")

PROFILE_KEYS = frozenset(
    {
        "base_name",
        "out_dir",
        "chunk_kb",
        "size_logging_interval",
        "disable_on_write_error",
        "timestamped",
    }
)


def load_profiles(path: Path | None = None) -> Dict[str, "RecorderConfig"]:
    """Load and validate every recorder profile of a YAML file.

    An optional top-level ``defaults`` mapping supplies values shared by all
    profiles; keys set in a profile override it. Every profile is validated
    up front, so a bad entry fails the load even if it is never used.

    Parameters
    ----------
    path:
        Optional path to a YAML configuration file. When omitted the built-in
        ``config.yaml`` packaged alongside :mod:`dumprec` is used.
    """

    config_path = path or DEFAULT_CONFIG_PATH
    try:
        data = _yaml.load(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"configuration file not found: {config_path}") from exc
    except YAMLError as exc:
        raise ConfigError(f"cannot parse {config_path}: {exc}") from exc
    if not isinstance(data, Mapping) or not isinstance(data.get("profiles"), Mapping):
        raise ConfigError(f"{config_path} must contain a 'profiles' mapping")
    defaults = data.get("defaults") or {}
    if not isinstance(defaults, Mapping):
        raise ConfigError("'defaults' must be a mapping")
    unknown = set(defaults) - PROFILE_KEYS
    if unknown:
        raise ConfigError(f"'defaults' has unknown keys: {', '.join(sorted(unknown))}")

    configs: Dict[str, RecorderConfig] = {}
    for name, profile in data["profiles"].items():
        if not isinstance(profile, Mapping):
            raise ConfigError(f"profile '{name}' must be a mapping")
        configs[str(name)] = RecorderConfig.from_mapping(str(name), {**defaults, **profile})
    return configs


@dataclass(frozen=True)
class RecorderConfig:
    """Recorder settings resolved from a YAML profile."""

    name: str
    base_name: str
    out_dir: Path = Path(".")
    chunk_kb: int = 0
    size_logging_interval: float = 0.0
    disable_on_write_error: bool = False
    timestamped: bool = False

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, object]) -> "RecorderConfig":
        unknown = set(data) - PROFILE_KEYS
        if unknown:
            raise ConfigError(f"profile '{name}' has unknown keys: {', '.join(sorted(unknown))}")
        if "base_name" not in data:
            raise ConfigError(f"profile '{name}' is missing required keys: base_name")
        base_name = str(data["base_name"])
        if not base_name or "/" in base_name:
            raise ConfigError(f"profile '{name}' base_name must be a plain file name")
        try:
            chunk_kb = int(data.get("chunk_kb", 0))  # type: ignore[arg-type]
            interval = float(data.get("size_logging_interval", 0.0))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"profile '{name}' has a non-numeric value: {exc}") from exc
        if chunk_kb < 0:
            raise ConfigError(f"profile '{name}' chunk_kb must not be negative")
        if interval < 0:
            raise ConfigError(f"profile '{name}' size_logging_interval must not be negative")
        for flag in ("disable_on_write_error", "timestamped"):
            if not isinstance(data.get(flag, False), bool):
                raise ConfigError(f"profile '{name}' {flag} must be true or false")
        return cls(
            name=name,
            base_name=base_name,
            out_dir=Path(str(data.get("out_dir", "."))),
            chunk_kb=chunk_kb,
            size_logging_interval=interval,
            disable_on_write_error=bool(data.get("disable_on_write_error", False)),
            timestamped=bool(data.get("timestamped", False)),
        )

    def base_path(self) -> Path:
        """Path prefix of the dump files (chunk suffixes are added by the recorder)."""

        name = stamped(self.base_name) if self.timestamped else self.base_name
        return self.out_dir / name


def resolve_profile(name: str, profiles: Mapping[str, RecorderConfig] | None = None) -> RecorderConfig:
    """Return profile *name*, loading the built-in profiles when none are given."""

    if profiles is None:
        profiles = load_profiles()
    if name not in profiles:
        available = ", ".join(sorted(profiles)) or "<none>"
        raise ConfigError(f"unknown profile '{name}'. available: {available}")
    return profiles[name]
