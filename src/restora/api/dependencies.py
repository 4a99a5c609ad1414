"""Dependency injection providers for FastAPI."""

from functools import lru_cache

from restora.config import Settings, get_settings
from restora.pipeline.manager import PipelineManager
from restora.storage.temp_store import TempFileManager


@lru_cache
def get_pipeline_manager() -> PipelineManager:
    return PipelineManager()


@lru_cache
def get_temp_store() -> TempFileManager:
    return TempFileManager()


def get_app_settings() -> Settings:
    return get_settings()
