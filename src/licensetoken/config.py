from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from .errors import LicenseError


logger = logging.getLogger(__name__)

ENV_PREFIX = "LICENSETOKEN_"
DEFAULT_CONFIG_FILENAME = ".licensetoken.yaml"

_STR_FIELDS = (
    "private_key",
    "public_key",
    "license_type",
    "issuer",
    "subject",
    "expires_at",
    "log_level",
)
_LIST_FIELDS = ("audience", "features", "plans")
_MAP_FIELDS = ("restrictions", "metadata")

# Config-file spellings that differ from the attribute name.
_KEY_ALIASES = {"type": "license_type"}


class ConfigError(LicenseError):
    """Exception raised when CLI configuration cannot be loaded or is invalid."""

    pass


def parse_csv(s: str) -> List[str]:
    """
    Parse a comma-separated string into a list of non-empty trimmed strings.

    Args:
        s: Comma-separated string (e.g., "feature1, feature2, feature3").

    Returns:
        List of trimmed, non-empty strings. Empty string returns empty list.
    """
    if not s:
        return []
    return [p.strip() for p in s.split(",") if p.strip()]


def parse_pairs(items: Union[str, List[str], Tuple[str, ...]]) -> Dict[str, str]:
    """
    Parse ``key=value`` pairs into a dictionary.

    Accepts either a comma-separated string ("region=US,seats=5") or a list
    of individual "key=value" strings. Later keys win.

    Raises:
        ConfigError: If an item has no '=' or an empty key.
    """
    if isinstance(items, str):
        items = parse_csv(items)
    out: Dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"Expected key=value, got {item!r}")
        out[key] = value.strip()
    return out


@dataclass(frozen=True)
class CliConfig:
    """
    Immutable settings for the command-line tools.

    Built once per process by load_config() and passed explicitly to the
    commands; the token codec never reads configuration.

    Attributes:
        private_key: Path to the RSA PRIVATE KEY PEM used by generate.
        public_key: Path to the PUBLIC KEY PEM used by validate.
        license_type, issuer, subject, expires_at: Default license fields.
        audience, features, plans: Default license sequences.
        restrictions, metadata: Default license key/value maps.
        log_level: Logging level name.
        source: Path of the config file that was loaded, if any.
    """

    private_key: str = ""
    public_key: str = ""
    license_type: str = ""
    issuer: str = ""
    subject: str = ""
    expires_at: str = ""
    audience: Tuple[str, ...] = ()
    features: Tuple[str, ...] = ()
    plans: Tuple[str, ...] = ()
    restrictions: Mapping[str, str] = field(default_factory=dict)
    metadata: Mapping[str, str] = field(default_factory=dict)
    log_level: str = "WARNING"
    source: Optional[str] = None

    def merged(self, **overrides: Any) -> "CliConfig":
        """
        Return a copy with command-line overrides applied.

        Overrides whose value is None are treated as "not given".
        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        return _coerce(self, changes, origin="command line")

    def configure_logging(self) -> None:
        """
        Configure root logging at log_level.

        Raises:
            ConfigError: If log_level is not a known logging level name.
        """
        level = logging.getLevelName(self.log_level.strip().upper())
        if not isinstance(level, int):
            raise ConfigError(f"Unknown log level: {self.log_level!r}")
        logging.basicConfig(
            level=level, format="%(levelname)s %(name)s: %(message)s"
        )
        if self.source:
            logger.info("Using config file: %s", self.source)


def _coerce(base: CliConfig, values: Mapping[str, Any], *, origin: str) -> CliConfig:
    changes: Dict[str, Any] = {}
    for raw_key, value in values.items():
        key = _KEY_ALIASES.get(raw_key, raw_key.replace("-", "_"))
        if value is None:
            continue
        if key in _STR_FIELDS:
            if isinstance(value, date):
                # YAML reads unquoted 2099-01-01 as a date.
                value = value.strftime("%Y-%m-%d")
            if not isinstance(value, (str, int, float)) or isinstance(value, bool):
                raise ConfigError(f"{origin}: '{raw_key}' must be a string")
            changes[key] = str(value)
        elif key in _LIST_FIELDS:
            if isinstance(value, str):
                changes[key] = tuple(parse_csv(value))
            elif isinstance(value, (list, tuple)):
                changes[key] = tuple(str(v) for v in value)
            else:
                raise ConfigError(f"{origin}: '{raw_key}' must be a list of strings")
        elif key in _MAP_FIELDS:
            if isinstance(value, Mapping):
                changes[key] = {str(k): str(v) for k, v in value.items()}
            elif isinstance(value, (str, list, tuple)):
                changes[key] = parse_pairs(value)
            else:
                raise ConfigError(f"{origin}: '{raw_key}' must be a mapping")
        else:
            logger.warning("Ignoring unknown setting %r from %s", raw_key, origin)
    return dataclasses.replace(base, **changes)


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {path}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {path}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    return data


def _env_values(environ: Mapping[str, str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for name in _STR_FIELDS + _LIST_FIELDS + _MAP_FIELDS:
        env_name = ENV_PREFIX + name.upper()
        if env_name in environ:
            out[name] = environ[env_name]
    return out


def load_config(
    path: Optional[Union[str, os.PathLike]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> CliConfig:
    """
    Build the CLI configuration.

    Precedence (lowest to highest):
      1) built-in defaults
      2) YAML config file: ``path`` if given, else ``~/.licensetoken.yaml``
         when it exists
      3) ``LICENSETOKEN_<FIELD>`` environment variables (lists are
         comma-separated, maps are ``k=v,k2=v2``)

    Command-line flags are applied afterwards with CliConfig.merged().

    Args:
        path: Explicit config file. Must exist if given.
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        CliConfig instance.

    Raises:
        ConfigError: If the config file cannot be read or parsed, or a value
                     has the wrong type.
    """
    env = os.environ if environ is None else environ
    config = CliConfig()

    if path is not None:
        cfg_path: Optional[Path] = Path(path).expanduser()
    else:
        cfg_path = Path.home() / DEFAULT_CONFIG_FILENAME
        if not cfg_path.is_file():
            cfg_path = None

    if cfg_path is not None:
        values = _read_config_file(cfg_path)
        config = _coerce(config, values, origin=str(cfg_path))
        config = dataclasses.replace(config, source=str(cfg_path))

    return _coerce(config, _env_values(env), origin="environment")
