"""Configuration loading and validation for ff-ramdisk."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from ffram.models import ConfigError, LogLevel

__all__ = [
    "Configuration",
    "ConfigurationError",
    "FirefoxConfig",
    "RamDiskConfig",
    "SyncBackConfig",
    "ToolsConfig",
]


def _default_user_prefs() -> dict[str, Any]:
    return {
        "browser.cache.disk.enable": False,
        "browser.cache.disk.capacity": 0,
    }


@dataclass
class FirefoxConfig:
    """Where the browser and its profiles live."""

    app_path: Path = Path("/Applications/Firefox.app")
    profiles_root: Path = field(
        default_factory=lambda: Path.home() / "Library" / "Application Support" / "Firefox"
    )
    # Written to user.js in the staged profile only
    user_prefs: dict[str, Any] = field(default_factory=_default_user_prefs)


@dataclass
class RamDiskConfig:
    """RAM disk naming and sizing."""

    volume_name: str = "Firefox RAM Disk"
    mount_base: Path = Path("/Volumes")
    filesystem: str = "HFS+"
    min_capacity_mb: int = 512
    headroom_percent: int = 20

    @property
    def mount_point(self) -> Path:
        return self.mount_base / self.volume_name


@dataclass
class SyncBackConfig:
    """Paths preserved in the original profile during sync-back."""

    excludes: list[str] = field(default_factory=lambda: ["user.js", "saved-telemetry-pings/"])


@dataclass
class ToolsConfig:
    """Absolute paths of the external tools."""

    hdiutil: str = "/usr/bin/hdiutil"
    diskutil: str = "/usr/sbin/diskutil"
    rsync: str = "/usr/bin/rsync"


@dataclass
class Configuration:
    """Parsed and validated configuration from YAML file."""

    log_file_level: LogLevel = LogLevel.DEBUG
    log_cli_level: LogLevel = LogLevel.WARNING
    firefox: FirefoxConfig = field(default_factory=FirefoxConfig)
    ramdisk: RamDiskConfig = field(default_factory=RamDiskConfig)
    sync_back: SyncBackConfig = field(default_factory=SyncBackConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> Configuration:
        """Load and validate configuration from YAML file.

        Args:
            path: Path to config.yaml

        Returns:
            Validated Configuration instance

        Raises:
            ConfigurationError: If YAML is invalid or schema validation fails
        """
        errors: list[ConfigError] = []

        # Step 1: Load YAML with error handling for syntax
        try:
            with path.open() as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            errors.append(ConfigError(path=str(path), message=f"Configuration file not found: {path}"))
            raise ConfigurationError(errors) from None
        except yaml.YAMLError as e:
            error_msg = str(e)
            mark = getattr(e, "problem_mark", None)
            problem = getattr(e, "problem", None)
            if mark is not None and problem is not None:
                error_msg = f"YAML syntax error at line {mark.line + 1}, column {mark.column + 1}: {problem}"
            errors.append(ConfigError(path=str(path), message=error_msg))
            raise ConfigurationError(errors) from e

        # Handle empty file
        if data is None:
            data = {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Configuration:
        """Validate a raw mapping against the schema and build a Configuration.

        Raises:
            ConfigurationError: If schema validation fails
        """
        errors: list[ConfigError] = []

        validator = jsonschema.Draft7Validator(_load_schema())
        for error in validator.iter_errors(data):
            path_parts = list(error.absolute_path)
            path_str = ".".join(str(p) for p in path_parts) if path_parts else "root"
            errors.append(ConfigError(path=path_str, message=error.message))

        if errors:
            raise ConfigurationError(errors)

        # Schema restricts log levels to known names, so lookup cannot fail here
        log_file_level = LogLevel[data.get("log_file_level", "DEBUG").upper()]
        log_cli_level = LogLevel[data.get("log_cli_level", "WARNING").upper()]

        defaults = FirefoxConfig()
        firefox_data = data.get("firefox", {})
        firefox = FirefoxConfig(
            app_path=_expand(firefox_data.get("app_path"), defaults.app_path),
            profiles_root=_expand(firefox_data.get("profiles_root"), defaults.profiles_root),
            user_prefs=firefox_data.get("user_prefs", defaults.user_prefs),
        )

        ramdisk_defaults = RamDiskConfig()
        ramdisk_data = data.get("ramdisk", {})
        ramdisk = RamDiskConfig(
            volume_name=ramdisk_data.get("volume_name", ramdisk_defaults.volume_name),
            mount_base=_expand(ramdisk_data.get("mount_base"), ramdisk_defaults.mount_base),
            filesystem=ramdisk_data.get("filesystem", ramdisk_defaults.filesystem),
            min_capacity_mb=ramdisk_data.get("min_capacity_mb", ramdisk_defaults.min_capacity_mb),
            headroom_percent=ramdisk_data.get("headroom_percent", ramdisk_defaults.headroom_percent),
        )

        sync_back_data = data.get("sync_back", {})
        sync_back = SyncBackConfig(
            excludes=sync_back_data.get("excludes", SyncBackConfig().excludes),
        )

        tools_defaults = ToolsConfig()
        tools_data = data.get("tools", {})
        tools = ToolsConfig(
            hdiutil=tools_data.get("hdiutil", tools_defaults.hdiutil),
            diskutil=tools_data.get("diskutil", tools_defaults.diskutil),
            rsync=tools_data.get("rsync", tools_defaults.rsync),
        )

        return cls(
            log_file_level=log_file_level,
            log_cli_level=log_cli_level,
            firefox=firefox,
            ramdisk=ramdisk,
            sync_back=sync_back,
            tools=tools,
        )

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get the default config file path."""
        return Path.home() / ".config" / "ff-ramdisk" / "config.yaml"


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    def __init__(self, errors: list[ConfigError]) -> None:
        self.errors = errors
        messages = [f"{e.path}: {e.message}" for e in errors]
        super().__init__("Configuration validation failed:\n" + "\n".join(messages))


def _expand(value: str | None, default: Path) -> Path:
    if value is None:
        return default
    return Path(value).expanduser()


def _load_schema() -> dict[str, Any]:
    """Load the config schema from package resources."""
    schema_path = Path(__file__).parent / "schemas" / "config-schema.yaml"
    with schema_path.open() as f:
        return yaml.safe_load(f)
