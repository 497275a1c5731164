"""
TuneWrangler configuration

Library folder locations, filename processing options, conversion limits and
logging preferences loaded from YAML files, .env files and environment variables.

Sources, highest priority first:
1. Environment variables (TUNEWRANGLER_<NAME>_PATH, TUNEWRANGLER_LOG_LEVEL)
2. YAML configuration files (~/.tunewrangler/config.yaml, config/config.yaml, config.yaml)
3. Dataclass defaults

Usage:

    from tunewrangler.config import get_settings

    settings = get_settings()
    downloaded_dir = settings.get_path('downloaded')

Only processors and the CLI read settings. The song pipeline receives already
resolved directory strings and never touches the environment.
"""

from .settings import (
    get_settings,
    reload_settings,
    env_var_for_path,
    Settings,
    PathsConfig,
    ProcessingConfig,
    ConversionConfig,
    AnalysisConfig,
    LoggingConfig,
)

__all__ = [
    'get_settings',      # Shared Settings instance
    'reload_settings',   # Replace the shared instance (CLI --config)
    'env_var_for_path',  # Environment variable name for a library folder
    'Settings',

    # Configuration sections
    'PathsConfig',
    'ProcessingConfig',
    'ConversionConfig',
    'AnalysisConfig',
    'LoggingConfig',
]
