"""
Configuration models and loading.

Pydantic models for taskmaster configuration with multi-layer merging:
defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import (
    LoggingConfig,
    StorageConfig,
    TagsConfig,
    TaskMasterConfig,
)

__all__ = [
    # Models
    "LoggingConfig",
    "StorageConfig",
    "TagsConfig",
    "TaskMasterConfig",
    # Loader functions
    "clear_cache",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
]
