"""
Configuration loader for the Assistant Relay service.
Reads optional settings from a YAML file with environment variable
substitution, then applies the enumerated environment variables on top.
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog
import yaml

logger = structlog.get_logger()

WORKSPACE_PLACEHOLDER = "<workspace-id>"
DEFAULT_ASSISTANT_URL = "https://gateway.watsonplatform.net/assistant/api"
DEFAULT_ASSISTANT_VERSION = "2018-02-16"
QUEUE_PRIORITIES = ("Low", "Normal", "High")

# Service names the provider uses for the dialogue service in VCAP_SERVICES
VCAP_SERVICE_NAMES = ("conversation", "assistant")


class ConfigError(ValueError):
    """Raised when the loaded settings cannot be used to start the service."""


@dataclass
class AuthConfig:
    username: str = ""
    password: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.username and self.password)


@dataclass
class AssistantConfig:
    username: str = ""
    password: str = ""
    url: str = DEFAULT_ASSISTANT_URL
    version: str = DEFAULT_ASSISTANT_VERSION
    workspace_id: str = ""
    timeout: Optional[float] = None     # None waits for the service indefinitely

    @property
    def workspace_configured(self) -> bool:
        return bool(self.workspace_id) and self.workspace_id != WORKSPACE_PLACEHOLDER


@dataclass
class OrchestratorConfig:
    auth_endpoint: str = ""
    tenant: str = ""
    username: str = ""
    password: str = ""
    queue_endpoint: str = ""
    priority: str = "Normal"
    reference: str = "demo process"
    timeout: Optional[float] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.auth_endpoint and self.queue_endpoint)


@dataclass
class Settings:
    app_name: str = "AssistantRelay"
    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "console"          # "console" | "json"
    static_dir: str = "./public"
    auth: AuthConfig = field(default_factory=AuthConfig)
    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)

    def validate(self) -> "Settings":
        """Check the settings and raise ConfigError on the first bad value."""
        _check_url("assistant.url", self.assistant.url, required=True)
        _check_url("orchestrator.auth_endpoint", self.orchestrator.auth_endpoint)
        _check_url("orchestrator.queue_endpoint", self.orchestrator.queue_endpoint)

        if self.orchestrator.priority not in QUEUE_PRIORITIES:
            raise ConfigError(
                f"orchestrator.priority must be one of {', '.join(QUEUE_PRIORITIES)}, "
                f"got {self.orchestrator.priority!r}"
            )
        for name, value in (
            ("assistant.timeout", self.assistant.timeout),
            ("orchestrator.timeout", self.orchestrator.timeout),
        ):
            if value is not None and value <= 0:
                raise ConfigError(f"{name} must be positive, got {value!r}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"Unknown log_level {self.log_level!r}")
        if self.log_format not in ("console", "json"):
            raise ConfigError(f"log_format must be 'console' or 'json', got {self.log_format!r}")

        if bool(self.auth.username) != bool(self.auth.password):
            raise ConfigError("AUTH_USERNAME and AUTH_PASSWORD must be set together")
        if not self.auth.enabled:
            logger.warning("basic_auth_disabled",
                           reason="AUTH_USERNAME and AUTH_PASSWORD not set")
        orch = self.orchestrator
        if bool(orch.auth_endpoint) != bool(orch.queue_endpoint):
            logger.warning("orchestrator_partially_configured",
                           auth_endpoint=bool(orch.auth_endpoint),
                           queue_endpoint=bool(orch.queue_endpoint))
        return self


_settings: Optional[Settings] = None


def _check_url(name: str, value: str, required: bool = False) -> None:
    if not value:
        if required:
            raise ConfigError(f"{name} is required")
        return
    if not value.startswith(("http://", "https://")):
        raise ConfigError(f"{name} must be an http(s) URL, got {value!r}")


def _substitute_env_vars(value: str, environ: Mapping[str, str]) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return environ.get(var_name, "")
    return pattern.sub(replacer, value)


def _process_values(obj: Any, environ: Mapping[str, str]) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj, environ)
    elif isinstance(obj, dict):
        return {k: _process_values(v, environ) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v, environ) for v in obj]
    return obj


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Expected a number, got {value!r}")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("", "0", "false", "no", "off"):
            return False
        raise ConfigError(f"Expected a boolean, got {value!r}")
    return bool(value)


def _vcap_credentials(environ: Mapping[str, str]) -> dict[str, Any]:
    """Return dialogue-service credentials bound by the platform, if any."""
    raw = environ.get("VCAP_SERVICES")
    if not raw:
        return {}
    try:
        services = json.loads(raw)
    except ValueError:
        logger.warning("vcap_services_unparseable")
        return {}
    if not isinstance(services, dict):
        logger.warning("vcap_services_not_a_mapping")
        return {}
    for name in VCAP_SERVICE_NAMES:
        bindings = services.get(name) or []
        if bindings:
            return bindings[0].get("credentials", {}) or {}
    return {}


def _apply_yaml(settings: Settings, raw: dict[str, Any]) -> None:
    settings.app_name = raw.get("app_name", settings.app_name)
    settings.debug = _parse_bool(raw.get("debug", settings.debug))
    settings.log_level = raw.get("log_level", settings.log_level) or settings.log_level
    settings.log_format = raw.get("log_format", settings.log_format) or settings.log_format
    settings.static_dir = raw.get("static_dir", settings.static_dir) or settings.static_dir

    if "auth" in raw:
        auth = raw["auth"] or {}
        settings.auth = AuthConfig(
            username=auth.get("username", ""),
            password=auth.get("password", ""),
        )

    if "assistant" in raw:
        a = raw["assistant"] or {}
        settings.assistant = AssistantConfig(
            username=a.get("username", ""),
            password=a.get("password", ""),
            url=a.get("url") or DEFAULT_ASSISTANT_URL,
            version=a.get("version") or DEFAULT_ASSISTANT_VERSION,
            workspace_id=a.get("workspace_id", ""),
            timeout=_optional_float(a.get("timeout")),
        )

    if "orchestrator" in raw:
        o = raw["orchestrator"] or {}
        settings.orchestrator = OrchestratorConfig(
            auth_endpoint=o.get("auth_endpoint", ""),
            tenant=o.get("tenant", ""),
            username=o.get("username", ""),
            password=o.get("password", ""),
            queue_endpoint=o.get("queue_endpoint", ""),
            priority=o.get("priority") or "Normal",
            reference=o.get("reference") or "demo process",
            timeout=_optional_float(o.get("timeout")),
        )


def _apply_env(settings: Settings, environ: Mapping[str, str]) -> None:
    def env(name: str, current: str) -> str:
        return environ.get(name) or current

    settings.log_level = env("LOG_LEVEL", settings.log_level)

    settings.auth.username = env("AUTH_USERNAME", settings.auth.username)
    settings.auth.password = env("AUTH_PASSWORD", settings.auth.password)

    a = settings.assistant
    a.username = env("ASSISTANT_USERNAME", a.username)
    a.password = env("ASSISTANT_PASSWORD", a.password)
    a.url = env("ASSISTANT_URL", a.url)
    a.workspace_id = env("WORKSPACE_ID", a.workspace_id)

    if not (a.username and a.password):
        creds = _vcap_credentials(environ)
        if creds:
            a.username = a.username or creds.get("username", "")
            a.password = a.password or creds.get("password", "")
            if "ASSISTANT_URL" not in environ and creds.get("url"):
                a.url = creds["url"]
            logger.info("assistant_credentials_from_vcap")

    o = settings.orchestrator
    o.auth_endpoint = env("UIPATH_AUTH_ENDPOINT", o.auth_endpoint)
    o.tenant = env("UIPATH_AUTH_TENANT", o.tenant)
    o.username = env("UIPATH_AUTH_USERNAME", o.username)
    o.password = env("UIPATH_AUTH_PASSWORD", o.password)
    o.queue_endpoint = env("UIPATH_QUEUE_ENDPOINT", o.queue_endpoint)
    o.priority = env("UIPATH_QUEUE_PRIORITY", o.priority)


def load_settings(config_path: str = None, environ: Mapping[str, str] = None) -> Settings:
    """Load settings from YAML file and the environment, then validate them."""
    global _settings

    environ = os.environ if environ is None else environ

    if config_path is None:
        config_path = environ.get(
            "RELAY_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        _apply_yaml(settings, _process_values(raw, environ))

    _apply_env(settings, environ)
    settings.validate()

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
