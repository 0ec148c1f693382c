"""Centralized FastAPI dependency type aliases.

Import these ``*Dep`` aliases in route modules instead of manually
writing ``Annotated[T, Depends(get_xxx)]`` everywhere.  Each alias can
be overridden in tests via ``app.dependency_overrides[get_xxx] = ...``.
"""

from typing import Annotated

from fastapi import Depends

from chatrelay.configs.config import AppConfig
from chatrelay.core.deps import get_config, get_pipeline, get_registry
from chatrelay.core.pipeline import ChatPipeline
from chatrelay.core.providers import ProviderRegistry

AppConfigDep = Annotated[AppConfig, Depends(get_config)]
ChatPipelineDep = Annotated[ChatPipeline, Depends(get_pipeline)]
ProviderRegistryDep = Annotated[ProviderRegistry, Depends(get_registry)]
