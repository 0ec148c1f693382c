import os
from datetime import timedelta

from pydantic import BaseModel, Field


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default)


class APIConfig(BaseModel):
    """API server settings."""

    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=3001, description="API server port")
    request_timeout: timedelta = Field(
        default_factory=lambda: timedelta(minutes=5),
        description="Wall-clock budget for one streamed turn. "
        "YAML may use seconds as int.",
    )


class ChatConfig(BaseModel):
    """Per-turn augmentation settings."""

    local_history_limit: int = Field(
        default=6, description="History entries sent to the local model"
    )
    cloud_history_limit: int = Field(
        default=10, description="History entries sent to cloud providers"
    )
    pdf_text_limit: int = Field(
        default=5000, description="Characters of PDF text kept per attachment"
    )


class OllamaConfig(BaseModel):
    """Local model server (Ollama generate API)."""

    host: str = Field(
        default_factory=lambda: _env("OLLAMA_HOST", "http://ollama:11434"),
        description="Base URL of the local model server",
    )
    temperature: float = Field(default=0.7)
    top_p: float = Field(default=0.9)
    max_tokens: int = Field(default=2048)
    timeout: timedelta = Field(
        default_factory=lambda: timedelta(seconds=120),
        description="Maximum wait for the next chunk of the response",
    )


class OpenAIConfig(BaseModel):
    """OpenAI chat-completions API."""

    api_key: str = Field(
        default_factory=lambda: _env("OPENAI_API_KEY"),
        description="Bearer token; empty disables the provider",
    )
    base_url: str = Field(default="https://api.openai.com/v1")
    temperature: float = Field(default=0.7)
    max_tokens: int = Field(default=2048)
    timeout: timedelta = Field(default_factory=lambda: timedelta(seconds=120))
    models: list[str] = Field(
        default_factory=lambda: [
            "gpt-3.5-turbo",
            "gpt-4",
            "gpt-4-turbo",
            "gpt-4o",
            "gpt-4o-mini",
        ],
        description="Models advertised by /api/models",
    )


class GeminiConfig(BaseModel):
    """Google Gemini generateContent API."""

    api_key: str = Field(
        default_factory=lambda: _env("GEMINI_API_KEY"),
        description="API key; empty disables the provider",
    )
    base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta"
    )
    model_aliases: dict[str, str] = Field(
        default_factory=lambda: {
            "gemini-2.0-flash": "gemini-2.0-flash-exp",
            "gemini-1.5-pro": "gemini-1.5-pro",
            "gemini-1.5-flash": "gemini-1.5-flash",
            "gemini-flash": "gemini-2.0-flash-exp",
        },
        description="Requested model id -> concrete API model",
    )
    default_model: str = Field(
        default="gemini-1.5-flash",
        description="API model used for ids missing from model_aliases",
    )
    temperature: float = Field(default=0.7)
    max_output_tokens: int = Field(default=2048)
    top_k: int = Field(default=40)
    top_p: float = Field(default=0.95)
    timeout: timedelta = Field(default_factory=lambda: timedelta(seconds=120))
    models: list[str] = Field(
        default_factory=lambda: ["gemini-1.5-pro", "gemini-1.5-flash"],
        description="Models advertised by /api/models",
    )


class KnowledgeConfig(BaseModel):
    """Reference knowledge-base collaborator."""

    directory: str = Field(
        default="knowledge", description="Directory of .md/.txt documents"
    )
    max_results: int = Field(default=3)
    excerpt_chars: int = Field(default=1200)


class LoggingConfig(BaseModel):
    """Root logger settings."""

    level: str = Field(default="INFO")
    json_output: bool = Field(
        default=True, description="JSON lines (True) or coloured text (False)"
    )


class TracingConfig(BaseModel):
    """OpenTelemetry OTLP export settings."""

    enabled: bool = Field(default=False)
    endpoint: str = Field(default="", description="OTLP HTTP traces endpoint")
    username: str = Field(default="")
    password: str = Field(default="")
    service_name: str = Field(default="chatrelay")
    sample_rate: float = Field(default=1.0)
    excluded_urls: list[str] = Field(
        default_factory=lambda: ["/api/health", "/metrics"]
    )
