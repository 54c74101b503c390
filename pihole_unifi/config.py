import os
import sys
from getpass import getpass
from pathlib import Path

import structlog
from dotenv import load_dotenv

from .exceptions import ConfigError

log = structlog.get_logger()

ENV_PIHOLE_URL = "PIHOLE_URL"
ENV_PIHOLE_API_TOKEN = "PIHOLE_API_TOKEN"
ENV_UNIFI_URL = "UNIFI_URL"
ENV_UNIFI_USERNAME = "UNIFI_USERNAME"
ENV_UNIFI_PASSWORD = "UNIFI_PASSWORD"
ENV_UNIFI_SITE = "UNIFI_SITE"
ENV_EVALUATION_ONLY = "EVALUATION_ONLY"
ENV_TEST_RECORD = "TEST_RECORD"
ENV_REQUEST_TIMEOUT = "REQUEST_TIMEOUT_SECONDS"

DEFAULT_UNIFI_SITE = "default"
DEFAULT_REQUEST_TIMEOUT = 10

TRUE_VALUES = ("1", "true", "yes", "on")

# (env var, description, secret)
MANDATORY_SETTINGS = {
    "pihole_url": (ENV_PIHOLE_URL, "Pi-hole URL", False),
    "pihole_api_token": (ENV_PIHOLE_API_TOKEN, "Pi-hole API token", True),
    "unifi_url": (ENV_UNIFI_URL, "UniFi controller URL", False),
    "unifi_username": (ENV_UNIFI_USERNAME, "UniFi username", False),
    "unifi_password": (ENV_UNIFI_PASSWORD, "UniFi password", True),
}

PLACEHOLDER_URLS = ("YOUR_PIHOLE_URL", "YOUR_UNIFI_URL", "YOUR_PIHOLE_IP_OR_HOSTNAME", "YOUR_UNIFI_IP_OR_HOSTNAME")


def load_env_file(env_file=None):
    """
    Loads a dotenv file into the environment without overriding variables that
    are already set. Falls back to ``.env`` in the working directory.
    """
    if env_file:
        if not Path(env_file).exists():
            raise ConfigError(f"Environment file not found: {env_file}")
        load_dotenv(env_file)
        log.debug("Loaded environment file", env_file=env_file)
    elif Path(".env").exists():
        load_dotenv(".env")
        log.debug("Loaded environment file", env_file=".env")


def env_flag(name):
    return os.getenv(name, "").strip().lower() in TRUE_VALUES


def _prompt(description, secret):
    if secret:
        return getpass(f"{description}: ").strip()
    return input(f"{description}: ").strip()


def _request_timeout():
    raw_value = os.getenv(ENV_REQUEST_TIMEOUT)
    if not raw_value:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        timeout = float(raw_value)
        if timeout <= 0:
            raise ValueError(raw_value)
        return timeout
    except ValueError:
        log.warning(
            "Invalid value for REQUEST_TIMEOUT_SECONDS, using default",
            invalid_value=raw_value,
            default_value=DEFAULT_REQUEST_TIMEOUT,
        )
        return DEFAULT_REQUEST_TIMEOUT


def load_app_config(overrides=None, interactive=None):
    """
    Resolves the sync configuration.

    Values come from ``overrides`` (command-line flags) first, then environment
    variables, then interactive prompts when stdin is a terminal.

    Args:
        overrides (dict): Values supplied on the command line; ``None`` entries
            are ignored.
        interactive (bool): Whether missing values may be prompted for.
            Defaults to ``sys.stdin.isatty()``.

    Returns:
        dict: The resolved configuration.

    Raises:
        ConfigError: If a mandatory value is still missing or is a placeholder.
    """
    overrides = {key: value for key, value in (overrides or {}).items() if value not in (None, "")}
    if interactive is None:
        interactive = sys.stdin.isatty()

    config = {"test_record": bool(overrides.get("test_record")) or env_flag(ENV_TEST_RECORD)}
    missing = []
    for key, (env_var, description, secret) in MANDATORY_SETTINGS.items():
        value = overrides.get(key) or os.getenv(env_var)
        if config["test_record"] and key.startswith("pihole_"):
            # Test records replace the Pi-hole read, so its settings are optional.
            config[key] = value
            continue
        if not value and interactive:
            value = _prompt(description, secret)
        if not value:
            missing.append(f"{description} ({env_var})")
        config[key] = value

    if missing:
        raise ConfigError(f"Missing mandatory configuration: {', '.join(missing)}")

    for key in ("pihole_url", "unifi_url"):
        if config[key] and any(placeholder in config[key].upper() for placeholder in PLACEHOLDER_URLS):
            raise ConfigError(f"Placeholder value detected for {MANDATORY_SETTINGS[key][0]}")

    config["unifi_site"] = overrides.get("unifi_site") or os.getenv(ENV_UNIFI_SITE) or DEFAULT_UNIFI_SITE
    config["evaluation_only"] = bool(overrides.get("evaluation_only")) or env_flag(ENV_EVALUATION_ONLY)
    config["request_timeout_seconds"] = _request_timeout()

    log.debug(
        "Resolved configuration",
        pihole_url=config["pihole_url"],
        unifi_url=config["unifi_url"],
        unifi_site=config["unifi_site"],
        evaluation_only=config["evaluation_only"],
        test_record=config["test_record"],
    )
    return config
