from .config import AppConfig, get_app_config
from .persona import PersonaConfig

__all__ = ["AppConfig", "PersonaConfig", "get_app_config"]
