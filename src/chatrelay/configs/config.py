"""Configuration management using pydantic-settings.

**Not a singleton**: each call to ``get_app_config()`` re-reads config
from disk and the environment.

Priority order (highest first):

1. Init kwargs (tests, embedding applications)
2. Environment variables (``CHATRELAY_`` prefix, ``__`` nested delimiter)
3. ``.env`` dotenv file
4. Static YAML (``configs/config.yaml``)
5. File secrets

Provider credentials additionally default from the conventional
``OPENAI_API_KEY`` / ``GEMINI_API_KEY`` / ``OLLAMA_HOST`` variables.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .persona import PersonaConfig
from .system import (
    APIConfig,
    ChatConfig,
    GeminiConfig,
    KnowledgeConfig,
    LoggingConfig,
    OllamaConfig,
    OpenAIConfig,
    TracingConfig,
)

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

CONFIG_PY_PATH = Path(__file__).resolve()
PROJECT_ROOT = CONFIG_PY_PATH.parent.parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "configs"

STATIC_CONFIG_FILE = CONFIG_DIR / "config.yaml"

DOTENV_FILE_PATH = PROJECT_ROOT / ".env"
ENV_DELIMITER = "__"
ENV_PREFIX = "CHATRELAY_"

DEFAULT_ENCODING = "utf-8"


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

    api: APIConfig = Field(
        default_factory=APIConfig, description="API server settings"
    )
    chat: ChatConfig = Field(
        default_factory=ChatConfig, description="Per-turn augmentation settings"
    )
    ollama: OllamaConfig = Field(
        default_factory=OllamaConfig, description="Local model server"
    )
    openai: OpenAIConfig = Field(
        default_factory=OpenAIConfig, description="OpenAI chat-completions API"
    )
    gemini: GeminiConfig = Field(
        default_factory=GeminiConfig, description="Google Gemini API"
    )
    knowledge: KnowledgeConfig = Field(
        default_factory=KnowledgeConfig,
        description="Reference knowledge-base settings",
    )
    persona: PersonaConfig = Field(
        default_factory=PersonaConfig, description="Assistant persona"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging settings"
    )
    tracing: TracingConfig = Field(
        default_factory=TracingConfig, description="OpenTelemetry settings"
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
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def get_app_config() -> AppConfig:
    """Get the application configuration.

    Re-reads ``configs/config.yaml`` and the environment on every call.
    """
    return AppConfig()
