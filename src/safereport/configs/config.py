"""Configuration management using pydantic-settings.

**Not a singleton**: each call to ``get_app_config()`` re-reads config
from disk so that ConfigMap updates are picked up without restarting.

Priority order (highest first):

1. ConfigMap YAML (path from ``SAFEREPORT_CONFIGMAP_FILE`` env var)
2. Environment variables (``SAFEREPORT_`` prefix, ``__`` for nesting)
3. ``.env`` dotenv file
4. Static YAML (``configs/config.yaml``)
5. Prompt YAML (``configs/prompt.yml``)
6. Init defaults / field defaults
7. File secrets

Caveat: the file paths are resolved at import time; adding brand-new
files after startup requires a process restart.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .system import (
    APIConfig,
    EvidenceConfig,
    IdentityConfig,
    IntakeConfig,
    LLMConfig,
    LoggingConfig,
    PromptConfig,
    ThirdPartyConfig,
    TracingConfig,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

CONFIG_PY_PATH = Path(__file__).resolve()
PROJECT_ROOT = CONFIG_PY_PATH.parent.parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "configs"

STATIC_CONFIG_FILE = CONFIG_DIR / "config.yaml"
PROMPT_CONFIG_FILE = CONFIG_DIR / "prompt.yml"

_configmap_env = os.environ.get("SAFEREPORT_CONFIGMAP_FILE")
CONFIGMAP_CONFIG_FILE: Optional[Path] = Path(_configmap_env) if _configmap_env else None

DOTENV_FILE_PATH = PROJECT_ROOT / ".env"
ENV_DELIMITER = "__"
ENV_PREFIX = "SAFEREPORT_"

DEFAULT_ENCODING = "utf-8"

_PROMPT_KEYS = ("assistant_name", "question", "summary")


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=DOTENV_FILE_PATH,
        env_file_encoding=DEFAULT_ENCODING,
        env_nested_delimiter=ENV_DELIMITER,
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
        yaml_file=STATIC_CONFIG_FILE,
        yaml_file_encoding=DEFAULT_ENCODING,
    )

    third_party: ThirdPartyConfig = Field(
        default_factory=ThirdPartyConfig,
        description="Third-party service configurations",
    )

    api: APIConfig = Field(
        default_factory=APIConfig,
        description="API configuration settings",
    )

    llm: LLMConfig = Field(
        default_factory=LLMConfig,
        description="Completion provider settings",
    )

    prompt: PromptConfig = Field(
        default_factory=PromptConfig,
        description="System prompts and temperatures per completion mode",
    )

    intake: IntakeConfig = Field(
        default_factory=IntakeConfig,
        description="Guided intake conversation settings",
    )

    evidence: EvidenceConfig = Field(
        default_factory=EvidenceConfig,
        description="Evidence upload settings",
    )

    identity: IdentityConfig = Field(
        default_factory=IdentityConfig,
        description="Request identity settings",
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings",
    )

    tracing: TracingConfig = Field(
        default_factory=TracingConfig,
        description="OpenTelemetry tracing settings",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = []

        # 1. ConfigMap YAML -- highest priority
        if CONFIGMAP_CONFIG_FILE is not None and CONFIGMAP_CONFIG_FILE.is_file():
            sources.append(
                YamlConfigSettingsSource(
                    settings_cls,
                    yaml_file=CONFIGMAP_CONFIG_FILE,
                )
            )

        # 2-3. Env vars and dotenv
        sources.append(env_settings)
        sources.append(dotenv_settings)

        # 4. Static YAML
        sources.append(YamlConfigSettingsSource(settings_cls))

        # 5. Prompt YAML (separate file)
        sources.append(_PromptYamlSettingsSource(settings_cls))

        # 6-7. Init defaults and file secrets
        sources.append(init_settings)
        sources.append(file_secret_settings)

        return tuple(sources)


class _PromptYamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads the prompt.yml file."""

    def __init__(
        self, settings_cls: type[BaseSettings], path: Path = PROMPT_CONFIG_FILE
    ) -> None:
        super().__init__(settings_cls)
        self._path = path

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        # Values are produced wholesale in __call__.
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Load prompt profiles from prompt.yml."""
        if not self._path.exists():
            return {}

        try:
            with open(self._path, encoding=DEFAULT_ENCODING) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError):
            logger.warning("Ignoring unreadable prompt file %s", self._path, exc_info=True)
            return {}

        if not isinstance(data, dict):
            return {}
        prompt = {key: data[key] for key in _PROMPT_KEYS if key in data}
        return {"prompt": prompt} if prompt else {}


def get_app_config() -> AppConfig:
    """Get the application configuration.

    Re-reads the YAML sources on every call so that hot-reloaded values
    are picked up immediately.
    """
    return AppConfig()


def get_llm_config() -> LLMConfig:
    return get_app_config().llm


def get_prompt_config() -> PromptConfig:
    return get_app_config().prompt


def get_evidence_config() -> EvidenceConfig:
    return get_app_config().evidence


def get_identity_config() -> IdentityConfig:
    return get_app_config().identity
