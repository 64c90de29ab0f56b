# src/wsg_check/core/managers/config_manager.py
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from wsg_check.core.errors import ConfigError
from wsg_check.core.model import CheckSettings

logger = logging.getLogger(__name__)

USER_CONFIG_FILENAME = "wsg-check.config.json"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """
    A singleton class to manage the application's configuration.

    Defaults are read from the packaged settings.json; a 'wsg-check.config.json'
    in the working directory is deep-merged on top of them. Values can be
    modified in memory afterwards.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._config: Dict[str, Any] = {}
        self.reset()
        logger.debug("ConfigManager initialized.")

    @staticmethod
    def get_settings_path() -> Path:
        """Location of the packaged default settings."""
        return Path(__file__).resolve().parent.parent.parent / "settings.json"

    @staticmethod
    def get_user_config_path() -> Path:
        return Path.cwd() / USER_CONFIG_FILENAME

    def get_all(self) -> Dict[str, Any]:
        """Returns the entire current configuration dictionary."""
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Safely retrieves a nested value from the configuration.
        e.g., 'session.max_redirects'.
        """
        keys = key_path.split('.')
        value = self._config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
        return value if value is not None else default

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a nested value in the in-memory configuration.
        e.g., 'debug.level', 'INFO'
        """
        keys = key_path.split('.')
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
            if not isinstance(d, dict):
                logger.error("Cannot set value: '%s' is not a dictionary.", key)
                return False

        # Cast to the type of the value being replaced
        original_value = d.get(keys[-1])
        if original_value is not None and not isinstance(original_value, (dict, list)):
            try:
                if isinstance(original_value, bool) and isinstance(value, str):
                    value = value.strip().lower() in ("1", "true", "yes", "on")
                else:
                    value = type(original_value)(value)
            except (ValueError, TypeError):
                logger.warning(
                    "Could not cast new value for '%s' to type %s. Storing as given.",
                    key_path, type(original_value).__name__
                )

        d[keys[-1]] = value
        logger.debug("Configuration updated: %s = %s", key_path, value)
        return True

    def reset(self):
        """Reloads the configuration from settings.json and the user config file."""
        self._config = self._load_json(self.get_settings_path())

        user_config_path = self.get_user_config_path()
        if user_config_path.exists():
            user_config = self._load_json(user_config_path)
            self._config = _deep_merge(self._config, user_config)
            logger.debug("Merged user configuration from %s", user_config_path)

    @staticmethod
    def _load_json(path: Path) -> Dict[str, Any]:
        if not path.exists():
            logger.warning("Configuration file not found at %s. Using empty config.", path)
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load %s: %s", path, e)
            return {}
        if not isinstance(data, dict):
            logger.error("Configuration in %s is not a JSON object. Ignoring it.", path)
            return {}
        return data


# The global singleton instance that the entire application will use.
config_manager = ConfigManager()


# --- Run settings resolution ---

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got '{raw}'", field=name, value=raw)


def _parse_number(name: str, raw: str, cast):
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be numeric, got '{raw}'", field=name, value=raw) from e


def split_list(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Maps WSG_* environment variables onto CheckSettings fields."""
    values: Dict[str, Any] = {}
    if environ.get("WSG_TIMEOUT"):
        values["timeout"] = _parse_number("WSG_TIMEOUT", environ["WSG_TIMEOUT"], float)
    if environ.get("WSG_USER_AGENT"):
        values["user_agent"] = environ["WSG_USER_AGENT"]
    if environ.get("WSG_CATEGORIES"):
        values["categories"] = split_list(environ["WSG_CATEGORIES"])
    if environ.get("WSG_GUIDELINES"):
        values["guidelines"] = split_list(environ["WSG_GUIDELINES"])
    if environ.get("WSG_EXCLUDE_GUIDELINES"):
        values["exclude_guidelines"] = split_list(environ["WSG_EXCLUDE_GUIDELINES"])
    if environ.get("WSG_FOLLOW_REDIRECTS"):
        values["follow_redirects"] = _parse_bool("WSG_FOLLOW_REDIRECTS", environ["WSG_FOLLOW_REDIRECTS"])
    if environ.get("WSG_IGNORE_ROBOTS"):
        values["ignore_robots"] = _parse_bool("WSG_IGNORE_ROBOTS", environ["WSG_IGNORE_ROBOTS"])
    if environ.get("WSG_FORMAT"):
        values["format"] = environ["WSG_FORMAT"]
    if environ.get("WSG_FAIL_THRESHOLD"):
        values["fail_threshold"] = _parse_number("WSG_FAIL_THRESHOLD", environ["WSG_FAIL_THRESHOLD"], int)
    if environ.get("WSG_LOG_LEVEL"):
        values["log_level"] = environ["WSG_LOG_LEVEL"]
    return values


def _config_values(manager: ConfigManager) -> Dict[str, Any]:
    get = manager.get_nested
    values = {
        "timeout": get("session.time_out"),
        "follow_redirects": get("session.follow_redirects"),
        "max_redirects": get("session.max_redirects"),
        "max_retries": get("session.max_retries"),
        "retry_delay": get("session.retry_delay"),
        "robots_timeout": get("robots_txt.time_out"),
        "categories": get("rules.categories"),
        "guidelines": get("rules.guidelines"),
        "exclude_guidelines": get("rules.exclude_guidelines"),
        "rule_timeout": get("rules.time_out"),
        "green_hosting_timeout": get("green_hosting.time_out"),
        "format": get("report.format"),
        "fail_threshold": get("report.fail_threshold"),
        "log_level": get("debug.level"),
    }
    robots_enabled = get("robots_txt.enabled")
    if robots_enabled is not None:
        values["ignore_robots"] = not robots_enabled
    return {k: v for k, v in values.items() if v is not None}


def resolve_settings(
        overrides: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
        manager: Optional[ConfigManager] = None,
) -> CheckSettings:
    """
    Builds the CheckSettings for a run.

    Precedence, highest first: `overrides` (CLI flags; None values are
    ignored), WSG_* environment variables, the user config file, the packaged
    defaults.

    Raises:
        ConfigError: when a value is malformed or out of range.
    """
    values = _config_values(manager or config_manager)
    values.update(_env_overrides(os.environ if environ is None else environ))
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        return CheckSettings(**values)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigError(f"Invalid setting '{field}': {first.get('msg')}", field=field,
                          value=first.get("input")) from e
