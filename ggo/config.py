"""Declarative configuration for ggo.

Parses a TOML config file and provides:

* Frecency tuning (half-life, weight against match quality).
* Resolver behaviour (auto-select threshold, default match mode).
* The database location.

Every value has a documented default; an absent config file is the same
as an empty one.  ``ConfigManager.settings()`` turns the parsed file into
the ``Settings`` value object that is threaded into the resolver and the
frecency model.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ggo.errors import ConfigError

DAY_SECONDS = 86_400

DEFAULT_HALF_LIFE_DAYS = 7.0
DEFAULT_FRECENCY_WEIGHT = 10.0
DEFAULT_AUTO_SELECT_THRESHOLD = 2.0

# ------------------------------------------------------------------
# Data classes
# ------------------------------------------------------------------


@dataclass(frozen=True)
class FrecencyConfig:
    """``[frecency]`` section."""

    half_life_days: float = DEFAULT_HALF_LIFE_DAYS
    weight: float = DEFAULT_FRECENCY_WEIGHT


@dataclass(frozen=True)
class BehaviorConfig:
    """``[behavior]`` section."""

    auto_select_threshold: float = DEFAULT_AUTO_SELECT_THRESHOLD
    default_fuzzy: bool = True
    default_ignore_case: bool = False


@dataclass(frozen=True)
class StorageConfig:
    """``[storage]`` section."""

    path: str | None = None


@dataclass(frozen=True)
class Settings:
    """Scoring knobs consumed by the resolver and the frecency model."""

    half_life_seconds: float = DEFAULT_HALF_LIFE_DAYS * DAY_SECONDS
    frecency_weight: float = DEFAULT_FRECENCY_WEIGHT
    auto_select_threshold: float = DEFAULT_AUTO_SELECT_THRESHOLD
    default_fuzzy: bool = True
    default_ignore_case: bool = False


# ------------------------------------------------------------------
# Locations
# ------------------------------------------------------------------


def config_dir() -> Path:
    """``$XDG_CONFIG_HOME/ggo``, falling back to ``~/.config/ggo``."""
    base = os.environ.get("XDG_CONFIG_HOME", "")
    root = Path(base) if base else Path.home() / ".config"
    return root / "ggo"


def default_config_path() -> Path:
    raw = os.environ.get("GGO_CONFIG", "")
    if raw:
        return Path(raw).expanduser()
    return config_dir() / "config.toml"


def default_db_path() -> Path:
    return config_dir() / "data.db"


# ------------------------------------------------------------------
# Value coercion
# ------------------------------------------------------------------


def _number(section: dict[str, Any], key: str, default: float, where: str) -> float:
    value = section.get(key, default)
    # bool is an int subclass; "true" is never a valid number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{where}.{key} must be a number, got {value!r}")
    return float(value)


def _flag(section: dict[str, Any], key: str, default: bool, where: str) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{where}.{key} must be true or false, got {value!r}")
    return value


def _table(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


# ------------------------------------------------------------------
# ConfigManager
# ------------------------------------------------------------------


class ConfigManager:
    """Holds the parsed configuration file.

    Typical usage::

        cfg = ConfigManager.load()
        resolver = Resolver(store, vcs, cfg.settings())
    """

    def __init__(
        self,
        frecency: FrecencyConfig,
        behavior: BehaviorConfig,
        storage: StorageConfig,
        source: Path | None = None,
    ) -> None:
        self._frecency = frecency
        self._behavior = behavior
        self._storage = storage
        self._source = source

    # -------------------------------------------------------------- factories

    @classmethod
    def from_file(cls, path: Path) -> ConfigManager:
        """Load configuration from a TOML file."""
        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"{path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"cannot read {path}: {e}") from e
        return cls._from_dict(raw, source=path)

    @classmethod
    def from_str(cls, toml_str: str) -> ConfigManager:
        """Load configuration from a TOML string (handy for tests)."""
        try:
            raw = tomllib.loads(toml_str)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(str(e)) from e
        return cls._from_dict(raw)

    @classmethod
    def load(cls, path: Path | None = None) -> ConfigManager:
        """Load *path* (default: ``$GGO_CONFIG`` or the user config dir).

        A missing file yields the defaults.
        """
        path = path or default_config_path()
        if not path.is_file():
            return cls.default()
        return cls.from_file(path)

    @classmethod
    def _from_dict(cls, raw: dict[str, Any], source: Path | None = None) -> ConfigManager:
        """Build a ``ConfigManager`` from a parsed TOML dictionary."""
        f = _table(raw, "frecency")
        half_life = _number(f, "half_life_days", DEFAULT_HALF_LIFE_DAYS, "frecency")
        if half_life <= 0:
            raise ConfigError("frecency.half_life_days must be greater than 0")
        weight = _number(f, "weight", DEFAULT_FRECENCY_WEIGHT, "frecency")
        if weight < 0:
            raise ConfigError("frecency.weight must not be negative")

        b = _table(raw, "behavior")
        threshold = _number(
            b, "auto_select_threshold", DEFAULT_AUTO_SELECT_THRESHOLD, "behavior"
        )
        if threshold < 1:
            raise ConfigError("behavior.auto_select_threshold must be at least 1.0")

        s = _table(raw, "storage")
        db_path = s.get("path")
        if db_path is not None and (not isinstance(db_path, str) or not db_path.strip()):
            raise ConfigError("storage.path must be a non-empty string")

        return cls(
            FrecencyConfig(half_life_days=half_life, weight=weight),
            BehaviorConfig(
                auto_select_threshold=threshold,
                default_fuzzy=_flag(b, "default_fuzzy", True, "behavior"),
                default_ignore_case=_flag(b, "default_ignore_case", False, "behavior"),
            ),
            StorageConfig(path=db_path.strip() if db_path else None),
            source=source,
        )

    @classmethod
    def default(cls) -> ConfigManager:
        """Return the built-in defaults."""
        return cls(FrecencyConfig(), BehaviorConfig(), StorageConfig())

    # -------------------------------------------------------------- accessors

    @property
    def frecency(self) -> FrecencyConfig:
        return self._frecency

    @property
    def behavior(self) -> BehaviorConfig:
        return self._behavior

    @property
    def storage(self) -> StorageConfig:
        return self._storage

    @property
    def source(self) -> Path | None:
        return self._source

    def settings(self) -> Settings:
        return Settings(
            half_life_seconds=self._frecency.half_life_days * DAY_SECONDS,
            frecency_weight=self._frecency.weight,
            auto_select_threshold=self._behavior.auto_select_threshold,
            default_fuzzy=self._behavior.default_fuzzy,
            default_ignore_case=self._behavior.default_ignore_case,
        )

    def db_path(self) -> Path:
        """Database location: ``$GGO_DB``, then ``[storage] path``, then default."""
        env = os.environ.get("GGO_DB", "")
        if env:
            return Path(env).expanduser()
        if self._storage.path:
            return Path(self._storage.path).expanduser()
        return default_db_path()
