"""Test configuration loading from environment, YAML and init kwargs."""

import os
from datetime import timedelta
from unittest.mock import patch

from chatrelay.configs.config import AppConfig
from chatrelay.configs.system import OllamaConfig


class TestConfigSources:
    def test_yaml_defaults_are_loaded(self):
        config = AppConfig()

        assert config.api.port == 3001
        assert config.api.request_timeout == timedelta(minutes=5)
        assert config.chat.pdf_text_limit == 5000
        assert config.gemini.default_model == "gemini-1.5-flash"

    def test_prefixed_env_vars_override_yaml(self):
        env_vars = {
            "CHATRELAY_API__PORT": "8080",
            "CHATRELAY_CHAT__LOCAL_HISTORY_LIMIT": "4",
        }
        with patch.dict(os.environ, env_vars, clear=False):
            config = AppConfig()

        assert config.api.port == 8080
        assert config.chat.local_history_limit == 4

    def test_conventional_credential_variables(self):
        env_vars = {
            "OPENAI_API_KEY": "sk-env",
            "GEMINI_API_KEY": "g-env",
            "OLLAMA_HOST": "http://localhost:11434",
        }
        with patch.dict(os.environ, env_vars, clear=False):
            config = AppConfig()

        assert config.openai.api_key == "sk-env"
        assert config.gemini.api_key == "g-env"
        assert config.ollama.host == "http://localhost:11434"

    def test_init_kwargs_take_priority(self):
        with patch.dict(os.environ, {"CHATRELAY_OLLAMA__HOST": "http://env"}, clear=False):
            config = AppConfig(ollama=OllamaConfig(host="http://init"))

        assert config.ollama.host == "http://init"

    def test_missing_credentials_default_to_empty(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("OPENAI_API_KEY", None)
            os.environ.pop("CHATRELAY_OPENAI__API_KEY", None)
            config = AppConfig()

        assert config.openai.api_key == ""
