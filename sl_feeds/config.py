"""Configuration management for sl-feeds."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .models import SourceLocation

SAMPLE_CONFIG = """\
dest = "$HOME/public_html/feeds/"
quiet = false

[[mirrors]]
url = "http://slackware.osuosl.org/"
releases = [
  "slackware-14.0",
  "slackware-14.1",
  "slackware-14.2",
  "slackware-current",
  "slackware64-14.0",
  "slackware64-14.1",
  "slackware64-14.2",
  "slackware64-current",
]

[[mirrors]]
url = "http://ftp.arm.slackware.com/slackwarearm/"
releases = [
  "slackwarearm-14.2",
  "slackwarearm-current",
]

[[mirrors]]
url = "http://alphageek.noip.me/mirrors/alphageek/"
prefix = "alphageek-"
releases = [
  "slackware64-14.2",
]
"""


@dataclass
class MirrorConfig:
    """A mirror and the releases to fetch from it."""

    url: str
    releases: list[str] = field(default_factory=list)
    prefix: str = ""

    def locations(self) -> list[SourceLocation]:
        return [
            SourceLocation(mirror_url=self.url, release=release, prefix=self.prefix)
            for release in self.releases
        ]


@dataclass
class Config:
    """Main configuration: where feeds go and which mirrors feed them."""

    dest: str = ""
    quiet: bool = False
    timeout: float = 30
    verify: bool | str = True
    mirrors: list[MirrorConfig] = field(default_factory=list)

    @property
    def dest_dir(self) -> Path:
        """Destination directory with $VARS and ~ expanded."""
        return Path(os.path.expanduser(os.path.expandvars(self.dest)))

    def locations(self) -> list[SourceLocation]:
        return [location for mirror in self.mirrors for location in mirror.locations()]

    def apply_env(self) -> None:
        """Override settings from SL_FEEDS_DEST and SL_FEEDS_TIMEOUT."""
        dest = os.getenv("SL_FEEDS_DEST")
        if dest:
            self.dest = dest

        timeout = os.getenv("SL_FEEDS_TIMEOUT")
        if timeout:
            try:
                self.timeout = float(timeout)
            except ValueError as e:
                raise ConfigError(f"Invalid SL_FEEDS_TIMEOUT: {timeout!r}") from e

    def check_dest(self) -> Path:
        """Ensure the destination directory exists and is writable.

        Raises:
            ConfigError: If no destination is set or it cannot be written
        """
        if not self.dest:
            raise ConfigError("No destination directory configured")

        dest_dir = self.dest_dir
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Cannot create destination {dest_dir}: {e}") from e

        if not os.access(dest_dir, os.W_OK):
            raise ConfigError(f"Destination {dest_dir} is not writable")
        return dest_dir


def _lower_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {key.lower(): value for key, value in data.items()}


def _mirror_from_dict(data: Any) -> MirrorConfig:
    if not isinstance(data, dict):
        raise ConfigError(f"Mirror must be a table, got {type(data).__name__}")
    data = _lower_keys(data)

    url = data.get("url")
    if not isinstance(url, str) or not url:
        raise ConfigError("Mirror is missing a url")

    releases = data.get("releases", [])
    if not isinstance(releases, list) or not all(isinstance(r, str) for r in releases):
        raise ConfigError(f"Releases for {url} must be a list of strings")

    prefix = data.get("prefix", "")
    if not isinstance(prefix, str):
        raise ConfigError(f"Prefix for {url} must be a string")

    return MirrorConfig(url=url, releases=releases, prefix=prefix)


def config_from_dict(data: dict[str, Any]) -> Config:
    """Build a Config from decoded TOML.

    Keys are matched case-insensitively, so ``Dest``/``Mirrors``/``URL``
    work as well as their lower-case forms.
    """
    data = _lower_keys(data)
    mirrors = data.get("mirrors", [])
    if not isinstance(mirrors, list):
        raise ConfigError("mirrors must be an array of tables")

    try:
        timeout = float(data.get("timeout", 30))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid timeout: {data.get('timeout')!r}") from e

    quiet = data.get("quiet", False)
    if not isinstance(quiet, bool):
        raise ConfigError(f"quiet must be true or false, got {quiet!r}")

    return Config(
        dest=str(data.get("dest", "")),
        quiet=quiet,
        timeout=timeout,
        mirrors=[_mirror_from_dict(mirror) for mirror in mirrors],
    )


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from a TOML file, then apply env overrides.

    Args:
        path: TOML file to read; when None only defaults and env are used

    Raises:
        ConfigError: If the file is missing or malformed
    """
    if path is None:
        config = Config()
    else:
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Config file not found: {path}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Error reading config file {path}: {e}") from e
        config = config_from_dict(data)

    config.apply_env()
    return config


def sample_config() -> str:
    """Return a sample configuration file as TOML text."""
    return SAMPLE_CONFIG
