"""montage configuration loader.

Priority (high → low):
  1. CLI flags           (handled at the call site, not in this module)
  2. Environment variables  (MONTAGE_HOME, MONTAGE_INTERVAL, MONTAGE_LOG_LEVEL)
  3. Global <MONTAGE_HOME>/config.yaml
  4. Hardcoded defaults

The data directory (MONTAGE_HOME, default ~/.montage) holds the config file,
the change log database and the watcher's liveness marker.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_DEFAULT_HOME: Path = Path.home() / ".montage"
_CONFIG_NAME: str = "config.yaml"
DATABASE_NAME: str = "database.db"
MARKER_NAME: str = "watcher.pid"

# Files larger than this are never diffed.
DEFAULT_MAX_FILE_SIZE: int = 200_000

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["watch", "history", "logging"])

_LOG_LEVELS: frozenset[str] = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class WatchCfg:
    """Watcher configuration (config.yaml: watch:).

    Attributes:
        interval: Seconds between scheduling ticks.
        max_file_size: Files of this size or larger are skipped every tick.
        ignore: Extra gitignore-style patterns applied to every repository.
        ignore_files: Per-directory ignore files honoured while walking.
        skip_hidden: Skip dot-files and dot-directories.
        notifier: Let OS file-change events pick the files to examine
            instead of walking every repository each tick.
        rescan_every: With *notifier*, run a full walk every this many ticks
            (0: only on the first tick).
    """

    interval: float = 5.0
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    ignore: list[str] = field(default_factory=list)
    ignore_files: list[str] = field(default_factory=lambda: [".gitignore", ".ignore"])
    skip_hidden: bool = True
    notifier: bool = False
    rescan_every: int = 60


@dataclass
class HistoryCfg:
    """History viewer configuration (config.yaml: history:)."""

    limit: int = 100


@dataclass
class LoggingCfg:
    """Logging configuration (config.yaml: logging:)."""

    level: str = "INFO"


@dataclass
class MontageConfig:
    """Root configuration object, built by load_config()."""

    home: Path = field(default_factory=lambda: _DEFAULT_HOME)
    watch: WatchCfg = field(default_factory=WatchCfg)
    history: HistoryCfg = field(default_factory=HistoryCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)

    @property
    def db_path(self) -> Path:
        return self.home / DATABASE_NAME

    @property
    def marker_path(self) -> Path:
        return self.home / MARKER_NAME


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}', ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: MontageConfig) -> None:
    if cfg.watch.interval <= 0:
        raise ConfigError(f"watch.interval must be positive, got {cfg.watch.interval}")
    if cfg.watch.max_file_size < 1:
        raise ConfigError(
            f"watch.max_file_size must be >= 1, got {cfg.watch.max_file_size}"
        )
    if cfg.watch.rescan_every < 0:
        raise ConfigError(
            f"watch.rescan_every must be >= 0, got {cfg.watch.rescan_every}"
        )
    if cfg.history.limit < 1:
        raise ConfigError(f"history.limit must be >= 1, got {cfg.history.limit}")
    if cfg.logging.level not in _LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {', '.join(sorted(_LOG_LEVELS))}, "
            f"got '{cfg.logging.level}'"
        )


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, list):
        raise ConfigError(f"{key} must be a list of strings")
    return [str(v) for v in value]


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def _cfg_from_dict(data: dict[str, Any], home: Path) -> MontageConfig:
    """Build a *MontageConfig* from a raw YAML dict."""
    cfg = MontageConfig(home=home)

    try:
        if "watch" in data:
            w = data["watch"] or {}
            cfg.watch = WatchCfg(
                interval=float(w.get("interval", cfg.watch.interval)),
                max_file_size=int(w.get("max_file_size", cfg.watch.max_file_size)),
                ignore=_as_str_list(w.get("ignore"), "watch.ignore"),
                ignore_files=(
                    _as_str_list(w["ignore_files"], "watch.ignore_files")
                    if "ignore_files" in w
                    else cfg.watch.ignore_files
                ),
                skip_hidden=bool(w.get("skip_hidden", cfg.watch.skip_hidden)),
                notifier=bool(w.get("notifier", cfg.watch.notifier)),
                rescan_every=int(w.get("rescan_every", cfg.watch.rescan_every)),
            )

        if "history" in data:
            h = data["history"] or {}
            cfg.history = HistoryCfg(limit=int(h.get("limit", cfg.history.limit)))

        if "logging" in data:
            lg = data["logging"] or {}
            cfg.logging = LoggingCfg(level=str(lg.get("level", cfg.logging.level)).upper())
    except (TypeError, ValueError, AttributeError) as exc:
        if isinstance(exc, ConfigError):
            raise
        raise ConfigError(f"Invalid value in config: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: MontageConfig) -> MontageConfig:
    """Apply MONTAGE_* environment variable overrides (layer 2)."""
    if interval := os.environ.get("MONTAGE_INTERVAL"):
        try:
            cfg.watch.interval = float(interval)
        except ValueError as exc:
            raise ConfigError(f"Invalid MONTAGE_INTERVAL value '{interval}'") from exc
    if level := os.environ.get("MONTAGE_LOG_LEVEL"):
        cfg.logging.level = level.upper()
    return cfg


def resolve_home(home: Path | None = None) -> Path:
    """Return the data directory: explicit *home*, then MONTAGE_HOME, then ~/.montage."""
    if home is not None:
        return home.expanduser()
    if env_home := os.environ.get("MONTAGE_HOME"):
        return Path(env_home).expanduser()
    return _DEFAULT_HOME


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(home: Path | None = None) -> MontageConfig:
    """Load and return the merged *MontageConfig*.

    Args:
        home: Data directory override (CLI ``--home`` or tests). Falls back
            to MONTAGE_HOME, then ``~/.montage``.

    Raises:
        ConfigError: If the config file or an environment override holds an
            invalid value.
    """
    data_dir = resolve_home(home)
    config_path = data_dir / _CONFIG_NAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config file '{config_path}' is not valid YAML: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file '{config_path}' must contain a mapping")
        _warn_unknown_keys(raw, config_path)

    cfg = _cfg_from_dict(raw, data_dir)
    cfg = _apply_env_overrides(cfg)
    _validate(cfg)
    return cfg


def ensure_global_config(home: Path) -> Path:
    """Create ``<home>/config.yaml`` with commented defaults if it does not exist.

    Returns:
        Path to the config file.
    """
    target = home / _CONFIG_NAME
    home.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# montage configuration.\n"
            "# Environment overrides: MONTAGE_HOME, MONTAGE_INTERVAL, MONTAGE_LOG_LEVEL\n"
            "\n"
            "watch:\n"
            "  interval: 5.0          # seconds between ticks\n"
            f"  max_file_size: {DEFAULT_MAX_FILE_SIZE}  # bytes; larger files are skipped\n"
            "  ignore: []             # extra gitignore-style patterns\n"
            "  notifier: false        # use OS file events instead of walking every tick\n"
            "  rescan_every: 60       # with notifier: full walk every N ticks\n"
            "\n"
            "history:\n"
            "  limit: 100\n"
            "\n"
            "logging:\n"
            "  level: INFO\n"
        )
        target.write_text(content, encoding="utf-8")

    return target
