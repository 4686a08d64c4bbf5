"""
Process environment for headless engine runs.

See http://grasswiki.osgeo.org/wiki/GRASS_and_Shell for the variables the
engine expects when launched outside its own shell.
"""

import logging
import os
from pathlib import Path
from typing import Mapping

from ..constants import (
    GRASS_GUI,
    GRASS_VERSION,
    LIBRARY_PATH_VARS,
    PERMANENT_MAPSET,
    EngineVar,
    ErrorMessages,
    OSFamily,
)
from ..errors import ConfigUnavailableError
from .resolver import ExecutableConfig
from .workspace import Workspace

logger = logging.getLogger(__name__)


def write_gisrc(workspace: Workspace) -> Path:
    """
    Write the resource file pointing the engine at the workspace.

    Raises:
        OSError: If the file cannot be written
    """
    lines = [
        f"GISDBASE: {workspace.geodb}",
        f"LOCATION_NAME: {workspace.name}",
        f"MAPSET: {PERMANENT_MAPSET}",
        f"GRASS_GUI: {GRASS_GUI}",
    ]
    workspace.gisrc.parent.mkdir(parents=True, exist_ok=True)
    workspace.gisrc.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return workspace.gisrc


def build_environment(
    config: ExecutableConfig,
    workspace: Workspace,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Derive the environment for every command of one request.

    The ambient environment is copied, never mutated. The returned map is
    meant to be reused unchanged for every command in the request.

    Args:
        config: Resolved installation (must be available)
        workspace: Workspace the resource file points at
        base_env: Environment to extend, defaults to os.environ

    Raises:
        ConfigUnavailableError: If the engine executable is unset
        OSError: If the resource file cannot be written
    """
    gisbase = config.gisbase
    if gisbase is None:
        raise ConfigUnavailableError(ErrorMessages.NO_EXECUTABLE)

    env = dict(os.environ if base_env is None else base_env)
    env[EngineVar.GISBASE] = str(gisbase)
    env[EngineVar.GRASS_VERSION] = GRASS_VERSION
    env[EngineVar.GISRC] = str(write_gisrc(workspace))

    bin_dir = str(gisbase / "bin")
    scripts = str(gisbase / "scripts")
    lib = str(gisbase / "lib")

    if config.os_family == OSFamily.WINDOWS:
        env[EngineVar.PATH] = _append(env.get(EngineVar.PATH), bin_dir, scripts, lib)
    else:
        env[EngineVar.PATH] = _append(env.get(EngineVar.PATH), bin_dir, scripts)
        library_var = LIBRARY_PATH_VARS.get(config.os_family)
        if library_var is not None:
            env[library_var] = _append(env.get(library_var), lib)

    logger.debug(f"GISBASE={gisbase} GISRC={env[EngineVar.GISRC]}")
    return env


def discard_environment(env: dict[str, str]) -> None:
    """Drop the resource-file entry once a request has finished."""
    env.pop(EngineVar.GISRC, None)


def _append(existing: str | None, *paths: str) -> str:
    parts = [existing] if existing else []
    parts.extend(paths)
    return os.pathsep.join(parts)
