"""Configuration loading and management."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "opencode"


@dataclass
class RetentionConfig:
    retention_days: int = 7
    cleanup_interval_ms: int = 60 * 60 * 1000
    startup_delay_ms: int = 30_000

    @property
    def cleanup_interval_seconds(self) -> float:
        return self.cleanup_interval_ms / 1000

    @property
    def startup_delay_seconds(self) -> float:
        return self.startup_delay_ms / 1000


@dataclass
class Config:
    transcript_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR / "transcripts")
    log_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR / "log")
    opencode_storage: Path = field(default_factory=lambda: DEFAULT_DATA_DIR / "storage")
    retention: RetentionConfig = field(default_factory=RetentionConfig)


def expand_path(path_str: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expandvars(os.path.expanduser(path_str)))


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config in standard locations
        search_paths = [
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "chat-recall" / "config.yaml",
            Path("/etc/chat-recall/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not config_path.exists():
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    defaults = Config()

    # Parse retention config
    retention_data = data.get("retention", {}) or {}
    retention = RetentionConfig(
        retention_days=int(retention_data.get("retention_days", 7)),
        cleanup_interval_ms=int(retention_data.get("cleanup_interval_ms", 60 * 60 * 1000)),
        startup_delay_ms=int(retention_data.get("startup_delay_ms", 30_000)),
    )
    if retention.retention_days < 0:
        raise ValueError(f"retention_days must not be negative: {retention.retention_days}")
    if retention.cleanup_interval_ms <= 0:
        raise ValueError(f"cleanup_interval_ms must be positive: {retention.cleanup_interval_ms}")

    def path_setting(key: str, default: Path) -> Path:
        value = data.get(key)
        return expand_path(value) if value else default

    return Config(
        transcript_dir=path_setting("transcript_dir", defaults.transcript_dir),
        log_dir=path_setting("log_dir", defaults.log_dir),
        opencode_storage=path_setting("opencode_storage", defaults.opencode_storage),
        retention=retention,
    )
