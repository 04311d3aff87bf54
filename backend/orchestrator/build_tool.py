"""
onchanged Build Tool Discovery.

Locates the build executable from configuration or PATH.
Requires Python 3.11+.
"""

import shutil
from pathlib import Path

from utils import console
from utils.config import Settings, get_settings
from utils.errors import BuildToolNotFoundError
from utils.logger import get_logger

logger = get_logger("build_tool")


def locate_build_tool(settings: Settings | None = None) -> Path:
    """
    Find the build tool executable.

    Uses BUILD_TOOL_PATH when it names an existing file, otherwise looks
    BUILD_TOOL_NAME up on PATH.

    Returns:
        Absolute path to the build tool

    Raises:
        BuildToolNotFoundError: If neither yields an existing file
    """
    settings = settings or get_settings()
    configured = settings.build.tool_path
    if configured is not None and configured.is_file():
        return configured.absolute()

    found = shutil.which(settings.build.tool_name)
    if found is None:
        logger.error("build_tool_not_found", name=settings.build.tool_name)
        raise BuildToolNotFoundError(
            f"error: failed to locate {settings.build.tool_name}, "
            "set BUILD_TOOL_PATH to the build tool's path."
        )

    path = Path(found).absolute()
    console.warning(f"{settings.build.tool_name} path: {path}")
    return path
