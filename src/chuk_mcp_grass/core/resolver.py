"""
Platform resolution for the GRASS engine.

Detects the host OS family and locates the engine executable and its
module-binary directory. Resolution never raises: an unusable installation
yields an ExecutableConfig whose executable is None, and the server simply
advertises itself as unavailable.
"""

import logging
import ntpath
import os
import platform
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Mapping

from ..constants import (
    DEFAULT_EXECUTABLES,
    DEFAULT_MODULE_DIRS,
    WINDOWS_GRASS_DIRNAME,
    WINDOWS_MODULE_SUFFIXES,
    WINDOWS_PROGRAM_FILES,
    WINDOWS_PROGRAM_FILES_X86,
    EnvVar,
    ErrorMessages,
    OSFamily,
)
from ..errors import ConfigUnavailableError

logger = logging.getLogger(__name__)

# Python reports macOS as "Darwin", which would otherwise match "win"
_FAMILY_TOKENS: list[tuple[OSFamily, tuple[str, ...]]] = [
    (OSFamily.LINUX, ("nix", "nux", "aix")),
    (OSFamily.MAC, ("mac", "darwin")),
    (OSFamily.WINDOWS, ("win",)),
]


@dataclass(frozen=True)
class ExecutableConfig:
    """Resolved engine installation.

    Attributes:
        executable: Engine launcher, or None when unusable
        module_dir: Directory holding module binaries (r.*), or None
        os_family: Detected host OS family
        warnings: Problems recorded during resolution
    """

    executable: Path | None
    module_dir: Path | None
    os_family: OSFamily
    warnings: tuple[str, ...] = ()

    @property
    def available(self) -> bool:
        return self.executable is not None

    @property
    def gisbase(self) -> Path | None:
        """Runtime root: the directory containing the executable."""
        if self.executable is None:
            return None
        return self.executable.parent


def detect_os_family(platform_name: str) -> OSFamily:
    """Map a platform name to an OS family by case-insensitive substring match."""
    name = platform_name.lower()
    for family, tokens in _FAMILY_TOKENS:
        if any(token in name for token in tokens):
            return family
    return OSFamily.UNKNOWN


def resolve(
    environ: Mapping[str, str] | None = None,
    platform_name: str | None = None,
) -> ExecutableConfig:
    """
    Resolve the engine installation.

    Results are cached per distinct (GRASS, GRASS_MODULES, platform) inputs,
    so resolution runs once per process unless an override changes.

    Args:
        environ: Configuration source, defaults to os.environ
        platform_name: Platform name, defaults to platform.system()

    Returns:
        ExecutableConfig, possibly unavailable
    """
    env = os.environ if environ is None else environ
    return _resolve_cached(
        env.get(EnvVar.GRASS),
        env.get(EnvVar.GRASS_MODULES),
        platform_name if platform_name is not None else platform.system(),
    )


def reset_cache() -> None:
    """Forget cached resolutions."""
    _resolve_cached.cache_clear()


def module_binary(config: ExecutableConfig, command: str) -> Path:
    """
    Locate an engine module binary such as r.viewshed.

    Raises:
        ConfigUnavailableError: If the module directory is unset or the module
            is missing or not executable
    """
    if config.module_dir is None:
        raise ConfigUnavailableError(ErrorMessages.NO_MODULE_DIR.format(command))

    if config.os_family == OSFamily.WINDOWS:
        candidates = [config.module_dir / f"{command}{suffix}" for suffix in WINDOWS_MODULE_SUFFIXES]
        exec_path = next((c for c in candidates if c.exists()), candidates[-1])
    else:
        exec_path = config.module_dir / command

    if not exec_path.exists():
        raise ConfigUnavailableError(ErrorMessages.MODULE_NOT_FOUND.format(command, exec_path))
    if not os.access(exec_path, os.X_OK):
        raise ConfigUnavailableError(
            ErrorMessages.MODULE_NOT_EXECUTABLE.format(command, exec_path)
        )
    return exec_path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


@lru_cache(maxsize=None)
def _resolve_cached(
    grass: str | None,
    grass_modules: str | None,
    platform_name: str,
) -> ExecutableConfig:
    family = detect_os_family(platform_name)
    warnings: list[str] = []

    executable = _choose(EnvVar.GRASS, grass, family, DEFAULT_EXECUTABLES, platform_name, warnings)
    module_dir = _choose(
        EnvVar.GRASS_MODULES, grass_modules, family, DEFAULT_MODULE_DIRS, platform_name, warnings
    )

    if executable is not None:
        executable = _validate(executable, warnings, require_executable=True)
    if module_dir is not None:
        module_dir = _validate(module_dir, warnings, require_executable=False)

    return ExecutableConfig(
        executable=executable,
        module_dir=module_dir,
        os_family=family,
        warnings=tuple(warnings),
    )


def _choose(
    var: str,
    override: str | None,
    family: OSFamily,
    defaults: dict[OSFamily, str],
    platform_name: str,
    warnings: list[str],
) -> Path | None:
    if override:
        logger.info(f"defined {var}={override}")
        return Path(override)

    default = _default_path(family, defaults)
    if default is None:
        template = (
            ErrorMessages.NO_DEFAULT_EXECUTABLE
            if var == EnvVar.GRASS
            else ErrorMessages.NO_DEFAULT_MODULES
        )
        message = template.format(platform_name)
        logger.warning(message)
        warnings.append(message)
        return None

    logger.info(f"default {var}={default}")
    return Path(default)


def _default_path(family: OSFamily, defaults: dict[OSFamily, str]) -> str | None:
    entry = defaults.get(family)
    if entry is None:
        return None
    if family == OSFamily.WINDOWS:
        root = (
            WINDOWS_PROGRAM_FILES_X86
            if _exists(Path(WINDOWS_PROGRAM_FILES_X86))
            else WINDOWS_PROGRAM_FILES
        )
        return ntpath.join(root, WINDOWS_GRASS_DIRNAME, entry)
    return entry


def _validate(path: Path, warnings: list[str], require_executable: bool) -> Path | None:
    if not _exists(path):
        message = ErrorMessages.DOES_NOT_EXIST.format(path)
        logger.warning(message)
        warnings.append(message)
        return None
    if require_executable and not os.access(path, os.X_OK):
        message = ErrorMessages.NOT_EXECUTABLE.format(path)
        logger.warning(message)
        warnings.append(message)
        return None
    return path


def _exists(path: Path) -> bool:
    try:
        return path.exists()
    except (OSError, ValueError):
        return False
