"""Grant Analyzer — Configuration Loader.

Loads and validates application configuration from a YAML file.
Resolves environment variables referenced via ${VAR_NAME} syntax.
Uses Python dataclasses for type-safe configuration access.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)

# ── Path Constants ────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
SETTINGS_PATH = CONFIG_DIR / "settings.yaml"

# ── Environment Variable Pattern ─────────────────────────
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)}")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

DEFAULT_EVALUATION_CONTEXT = (
    "The evaluation is performed for a small technology organization that "
    "builds software products and looks for grants that can fund product "
    "development, research or community technology programs."
)


# ═══════════════════════════════════════════════════════════
# Configuration Dataclasses
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CatalogConfig:
    """Configuration for the catalog HTTP client."""

    base_url: str
    request_delay_seconds: float = 1.0
    max_retries: int = 3
    timeout_seconds: float = 30.0
    user_agents: tuple[str, ...] = (DEFAULT_USER_AGENT,)
    max_pages: int = 0


@dataclass(frozen=True)
class AuthConfig:
    """Configuration for the browser-driven login."""

    login_url: str
    username: str
    password: str
    username_selector: str = 'input[name="email"]'
    password_selector: str = 'input[name="password"]'
    submit_selector: str = "button#btn-login"
    error_selector: str = ".alert-danger"
    headless: bool = True
    timeout_seconds: float = 30.0

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks
        return f"AuthConfig(login_url={self.login_url!r}, headless={self.headless})"


@dataclass(frozen=True)
class EvaluatorConfig:
    """Configuration for the OpenAI-compatible evaluation service."""

    base_url: str
    api_key: str
    model: str
    temperature: float = 0.0
    max_tokens: int = 300
    rpm_limit: int = 60
    request_timeout_seconds: float = 60.0
    context: str = DEFAULT_EVALUATION_CONTEXT

    def __repr__(self) -> str:
        return f"EvaluatorConfig(base_url={self.base_url!r}, model={self.model!r})"


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for the HTTP streaming endpoint."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration container."""

    catalog: CatalogConfig
    auth: AuthConfig
    evaluator: EvaluatorConfig
    server: ServerConfig
    log_level: str = "INFO"


# ═══════════════════════════════════════════════════════════
# YAML Loading & Environment Variable Resolution
# ═══════════════════════════════════════════════════════════


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${VAR_NAME} references in YAML values.

    Args:
        value: A string, dict, list, or primitive from parsed YAML.

    Returns:
        The same structure with all ${VAR_NAME} placeholders replaced
        by their environment variable values.

    Raises:
        ValueError: If a referenced environment variable is not set.
    """
    if isinstance(value, str):
        for var_name in ENV_VAR_PATTERN.findall(value):
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(
                    f"Environment variable '${{{var_name}}}' is required but not set. "
                    f"Add it to your .env file or export it in your shell."
                )
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file with UTF-8 encoding.

    Args:
        path: Absolute or relative path to the YAML file.

    Returns:
        Parsed YAML content as a dictionary.

    Raises:
        FileNotFoundError: If the YAML file does not exist.
        ValueError: If the file is empty or not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        raise ValueError(f"Configuration file is empty: {path}")
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")

    logger.debug("Loaded configuration from %s", path)
    return data


def _validate_keys(data: dict[str, Any], required: list[str], section: str) -> None:
    """Validate that all required keys exist in a config section.

    Args:
        data: The configuration dictionary to validate.
        required: List of required key names.
        section: Human-readable section name for error messages.

    Raises:
        ValueError: If any required key is missing.
    """
    missing = [key for key in required if key not in data]
    if missing:
        raise ValueError(
            f"Missing required configuration keys in '{section}': {', '.join(missing)}"
        )


# ═══════════════════════════════════════════════════════════
# Dataclass Builders
# ═══════════════════════════════════════════════════════════


def _build_catalog_config(data: dict[str, Any]) -> CatalogConfig:
    """Build a CatalogConfig from the 'catalog' section."""
    _validate_keys(data, ["base_url"], "catalog")

    user_agents = data.get("user_agents") or [DEFAULT_USER_AGENT]
    max_pages = int(data.get("max_pages", 0))
    if max_pages < 0:
        raise ValueError(f"catalog.max_pages must be >= 0, got {max_pages}")

    return CatalogConfig(
        base_url=str(data["base_url"]).rstrip("/"),
        request_delay_seconds=float(data.get("request_delay_seconds", 1.0)),
        max_retries=int(data.get("max_retries", 3)),
        timeout_seconds=float(data.get("timeout_seconds", 30.0)),
        user_agents=tuple(user_agents),
        max_pages=max_pages,
    )


def _build_auth_config(data: dict[str, Any]) -> AuthConfig:
    """Build an AuthConfig from the 'auth' section."""
    _validate_keys(data, ["login_url", "username", "password"], "auth")

    optional = {
        key: data[key]
        for key in (
            "username_selector", "password_selector",
            "submit_selector", "error_selector",
        )
        if key in data
    }
    return AuthConfig(
        login_url=data["login_url"],
        username=str(data["username"]),
        password=str(data["password"]),
        headless=bool(data.get("headless", True)),
        timeout_seconds=float(data.get("timeout_seconds", 30.0)),
        **optional,
    )


def _build_evaluator_config(data: dict[str, Any]) -> EvaluatorConfig:
    """Build an EvaluatorConfig from the 'evaluator' section.

    Raises:
        ValueError: If temperature or rpm_limit are out of range.
    """
    _validate_keys(data, ["base_url", "api_key", "model"], "evaluator")

    temperature = float(data.get("temperature", 0.0))
    if not 0.0 <= temperature <= 2.0:
        raise ValueError(f"evaluator.temperature must be within 0-2, got {temperature}")

    rpm_limit = int(data.get("rpm_limit", 60))
    if rpm_limit < 1:
        raise ValueError(f"evaluator.rpm_limit must be >= 1, got {rpm_limit}")

    return EvaluatorConfig(
        base_url=str(data["base_url"]).rstrip("/"),
        api_key=str(data["api_key"]),
        model=str(data["model"]),
        temperature=temperature,
        max_tokens=int(data.get("max_tokens", 300)),
        rpm_limit=rpm_limit,
        request_timeout_seconds=float(data.get("request_timeout_seconds", 60.0)),
        context=str(data.get("context") or DEFAULT_EVALUATION_CONTEXT).strip(),
    )


def _build_server_config(data: dict[str, Any]) -> ServerConfig:
    """Build a ServerConfig from the optional 'server' section."""
    return ServerConfig(
        host=str(data.get("host", "127.0.0.1")),
        port=int(data.get("port", 8080)),
    )


# ═══════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════


def load_config(
    settings_path: Path | None = None,
    env_path: Path | None = None,
) -> AppConfig:
    """Load the complete application configuration.

    Loads settings.yaml, resolves environment variables, validates all
    required fields, and returns a typed AppConfig instance.

    Args:
        settings_path: Override path to settings.yaml. Defaults to config/settings.yaml.
        env_path: Override path to .env file. Defaults to project root .env.

    Returns:
        A fully validated AppConfig instance.

    Raises:
        FileNotFoundError: If the config file is missing.
        ValueError: If required fields are missing or env vars are unset.
    """
    env_file = env_path or (PROJECT_ROOT / ".env")
    load_dotenv(env_file)
    logger.debug("Loaded environment from %s", env_file)

    settings = _resolve_env_vars(_load_yaml(settings_path or SETTINGS_PATH))
    _validate_keys(settings, ["catalog", "auth", "evaluator"], "settings")

    config = AppConfig(
        catalog=_build_catalog_config(settings["catalog"]),
        auth=_build_auth_config(settings["auth"]),
        evaluator=_build_evaluator_config(settings["evaluator"]),
        server=_build_server_config(settings.get("server") or {}),
        log_level=str((settings.get("logging") or {}).get("level", "INFO")),
    )

    logger.info("Configuration loaded successfully")
    logger.debug("Catalog base URL: %s", config.catalog.base_url)
    logger.debug("Evaluator: %s", config.evaluator)

    return config
