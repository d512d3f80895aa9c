"""
Recollect Platform Paths
------------------------
Data directory resolution for the on-disk stores.

Priority: RECOLLECT_DATA_DIR env var > platformdirs user data dir.
"""

import os
import logging
from pathlib import Path

import platformdirs

logger = logging.getLogger("Recollect.Platform")

_APP_NAME = "recollect"
_APP_AUTHOR = "Recollect"


def get_data_dir() -> Path:
    """
    Get the Recollect data directory.

    Contains: memories.db and the local Qdrant content collection.
    """
    env_val = os.environ.get("RECOLLECT_DATA_DIR")
    if env_val:
        return Path(env_val)
    return Path(platformdirs.user_data_dir(_APP_NAME, _APP_AUTHOR))
