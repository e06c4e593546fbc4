"""
App factory: create_keeper()

- Loads config (override dict, config file, env)
- Sets up logging
- Builds the LogKeeper for one run
"""

from __future__ import annotations
from typing import Any, Dict

from app.config import Settings, load_settings
from app.logging_setup import configure_logging
from keeper.log_keeper import LogKeeper


def create_keeper(
    config_override: Dict[str, Any] | None = None,
    config_file: str | None = None,
) -> LogKeeper:
    settings: Settings = load_settings(config_override, config_file)
    logger = configure_logging(settings)

    config = settings.keeper_config()
    logger.info(
        f"LogKeeper configured PATH={config.pattern} AGE={config.age_threshold} "
        f"ARCHIVE={config.archive_name} MAX_ENTRIES={config.max_archive_entries}"
    )
    return LogKeeper(config, logger=logger)
