"""Runtime configuration and environment parsing helpers."""

from __future__ import annotations

import json
import logging
import os

import yaml

from .presence import Person

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "whoshome.yaml"
DEFAULT_POLL_INTERVAL = 60
CREDENTIAL_SOURCES = {"auto", "env", "netrc"}


def _normalize_text_value(raw_value) -> str:
    """
    Normalize a free-form text value:
    - trim leading/trailing whitespace
    - strip one pair of matching surrounding quotes ('...' or "...")
    """
    if raw_value is None:
        return ""
    text = str(raw_value).strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {"'", '"'}:
        text = text[1:-1].strip()
    return text


def _parse_env_bool(raw_value: str | None, default: bool = False) -> bool:
    if raw_value is None:
        return default
    value = str(raw_value).strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    logger.warning(f"Invalid boolean value '{raw_value}'. Using default {default}.")
    return default


def _read_env_int(var_name: str, default: int, minimum: int | None = None) -> int:
    raw_value = os.getenv(var_name)
    if raw_value is None or str(raw_value).strip() == "":
        return default
    try:
        value = int(str(raw_value).strip())
    except (TypeError, ValueError):
        logger.warning(
            f"Invalid integer value for {var_name}: {raw_value}. Using default {default}."
        )
        return default
    if minimum is not None and value < minimum:
        logger.warning(
            f"Value for {var_name} must be >= {minimum}. Using default {default}."
        )
        return default
    return value


def _router_verify_ssl() -> bool:
    # UniFi consoles ship a self-signed certificate.
    return _parse_env_bool(os.getenv("ROUTER_VERIFY_SSL"), default=False)


def _router_timeout_seconds() -> int:
    return _read_env_int("ROUTER_TIMEOUT", default=15, minimum=1)


def _poll_interval_seconds() -> int:
    return _read_env_int("POLL_INTERVAL", default=DEFAULT_POLL_INTERVAL, minimum=1)


def _credential_source() -> str:
    source = _normalize_text_value(os.getenv("ROUTER_CREDENTIALS")).lower() or "auto"
    if source not in CREDENTIAL_SOURCES:
        raise ValueError(
            f"ROUTER_CREDENTIALS must be one of {', '.join(sorted(CREDENTIAL_SOURCES))}."
        )
    return source


def parse_persons(raw_persons, source="persons") -> list[Person]:
    """
    Validate a list of ``{name, devices}`` mappings.

    :param raw_persons: Parsed YAML/JSON value.
    :param source: Where the value came from, for error messages.
    :return: List of Person objects.
    """
    if raw_persons is None:
        return []
    if not isinstance(raw_persons, list):
        raise ValueError(f"{source} must be a list of persons.")

    persons = []
    for index, item in enumerate(raw_persons):
        if not isinstance(item, dict):
            raise ValueError(f"{source}[{index}] must be a mapping with 'name' and 'devices'.")
        name = _normalize_text_value(item.get("name"))
        if not name:
            raise ValueError(f"{source}[{index}] is missing 'name'.")
        devices = item.get("devices") or []
        if isinstance(devices, str):
            devices = [devices]
        if not isinstance(devices, list):
            raise ValueError(f"{source}[{index}].devices must be a list.")
        persons.append(
            Person(
                name=name,
                devices=tuple(
                    _normalize_text_value(device) for device in devices if _normalize_text_value(device)
                ),
            )
        )
    return persons


def _parse_env_persons(var_name: str) -> list[Person] | None:
    raw_value = os.getenv(var_name)
    if raw_value is None or not str(raw_value).strip():
        return None
    try:
        parsed = json.loads(str(raw_value).strip())
    except json.JSONDecodeError as err:
        raise ValueError(f"{var_name} must be a JSON array of persons.") from err
    return parse_persons(parsed, source=var_name)


def load_config_file(config_path) -> dict:
    """Read the YAML config file; a missing file yields an empty config."""
    if not config_path or not os.path.exists(config_path):
        logger.debug(f"No config file at {config_path}; using environment only.")
        return {}
    with open(config_path, "r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle)
        except yaml.YAMLError as err:
            raise ValueError(f"Failed to parse {config_path}: {err}") from err
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{config_path} must contain a mapping at the top level.")
    logger.debug(f"Loaded config file {config_path}")
    return data


def load_runtime_config(config_path=None):
    """
    Build runtime config from environment variables, falling back to the YAML file.

    :param config_path: YAML file path; defaults to ``WHOSHOME_CONFIG`` or ``whoshome.yaml``.
    :return: dict with ``ROUTER``, ``PERSONS``, ``POLL_INTERVAL`` and ``LOG_DIR`` keys.
    """
    config_path = config_path or _normalize_text_value(os.getenv("WHOSHOME_CONFIG")) or DEFAULT_CONFIG_PATH
    file_cfg = load_config_file(config_path)

    host = _normalize_text_value(os.getenv("ROUTER_HOST")) or _normalize_text_value(file_cfg.get("router"))

    persons = _parse_env_persons("WHOSHOME_PERSONS")
    if persons is None:
        persons = parse_persons(file_cfg.get("persons"), source=f"{config_path}: persons")

    router_cfg = {
        "HOST": host,
        "SITE": _normalize_text_value(os.getenv("ROUTER_SITE")) or "default",
        "VERIFY_SSL": _router_verify_ssl(),
        "TIMEOUT": _router_timeout_seconds(),
        "CREDENTIALS": _credential_source(),
        "NETRC_FILE": _normalize_text_value(os.getenv("NETRC_FILE")) or None,
        "UNNAMED_CLIENT": _normalize_text_value(os.getenv("UNNAMED_CLIENT")) or None,
    }

    return {
        "ROUTER": router_cfg,
        "PERSONS": persons,
        "POLL_INTERVAL": _poll_interval_seconds(),
        "LOG_DIR": _normalize_text_value(os.getenv("LOG_DIR")) or None,
    }
