"""
Ephemeral GRASS workspaces: geodatabase -> location -> PERMANENT mapset.

Each request gets its own uniquely named location, resource file and staged
raster, so concurrent requests never share mutable paths. The geodatabase
root is shared and only ever gains new children.
"""

import logging
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    CLEANUP_RETRY_ATTEMPTS,
    CLEANUP_RETRY_WAIT_MAX,
    CLEANUP_RETRY_WAIT_MIN,
    DEFAULT_GEODB_DIRNAME,
    GISRC_PREFIX,
    GRASS_VERSION,
    LOCATION_PREFIX,
    LOCATION_SUFFIX,
    PERMANENT_MAPSET,
    RESULT_FILENAME,
    ErrorMessages,
    Step,
)
from ..errors import ConfigUnavailableError, ExecutionError, StepTimeoutError, WorkspaceError
from .resolver import ExecutableConfig
from .runner import CommandLine, ProcessRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Workspace:
    """Paths owned by one request."""

    geodb: Path
    location: Path
    gisrc: Path

    @property
    def name(self) -> str:
        return self.location.name

    @property
    def mapset(self) -> Path:
        return self.location / PERMANENT_MAPSET

    @property
    def staged_raster(self) -> Path:
        """Private staging file, unique to this request from allocation."""
        return self.geodb / f"{self.location.name}.tif"

    @property
    def result_path(self) -> Path:
        return self.location / RESULT_FILENAME


def default_geodb() -> Path:
    return Path.home() / DEFAULT_GEODB_DIRNAME


# Transient failures (files briefly locked on Windows) are retried
_retry_cleanup = retry(
    stop=stop_after_attempt(CLEANUP_RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=CLEANUP_RETRY_WAIT_MIN, max=CLEANUP_RETRY_WAIT_MAX),
    retry=retry_if_exception_type(OSError),
    reraise=True,
)


@_retry_cleanup
def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


class WorkspaceManager:
    """Create and tear down per-request locations."""

    def __init__(
        self,
        config: ExecutableConfig,
        runner: ProcessRunner,
        geodb: Path | None = None,
        rc_dir: Path | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.geodb = geodb if geodb is not None else default_geodb()
        self.rc_dir = rc_dir if rc_dir is not None else Path.home()

    def allocate(self, prefix: str = LOCATION_PREFIX) -> Workspace:
        """
        Reserve a unique location name under the geodatabase root.

        Only the geodatabase root is created; the location itself is created
        by the engine.

        Raises:
            WorkspaceError: If the geodatabase root cannot be created
        """
        try:
            self.geodb.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(ErrorMessages.LOCATION_DIR_FAILED.format(self.geodb, e)) from e

        while True:
            location = self.geodb / f"{prefix}{uuid.uuid4().hex}{LOCATION_SUFFIX}"
            if not location.exists() and not Path(f"{location}.tif").exists():
                break

        gisrc = self.rc_dir / f"{GISRC_PREFIX}.{GRASS_VERSION}.{location.name}"
        return Workspace(geodb=self.geodb, location=location, gisrc=gisrc)

    def create(self, raster_path: Path, workspace: Workspace | None = None) -> Workspace:
        """
        Create a location whose spatial reference is derived from a raster.

        Runs ``<engine> -c <raster> -e <location>`` and checks that the
        PERMANENT mapset now exists.

        Args:
            raster_path: Georeferenced raster the location is modelled on
            workspace: Previously allocated workspace; allocated if omitted

        Raises:
            WorkspaceError: If the command fails or leaves no PERMANENT mapset
        """
        owned = workspace is None
        executable = self._executable()
        if workspace is None:
            workspace = self.allocate()

        command = CommandLine(executable).add_arguments("-c", "${raster}", "-e", "${location}")
        command.substitute(raster=raster_path, location=workspace.location)
        self._initialize(command, workspace, owned=owned)
        return workspace

    def create_from_crs(self, code: str) -> Workspace:
        """
        Create a location from an EPSG code rather than a raster sample.

        Runs ``<engine> -c epsg:<code> -e <location>``.

        Args:
            code: EPSG code, bare ("32610") or prefixed ("EPSG:32610")

        Raises:
            WorkspaceError: If the code is not numeric or location setup fails
        """
        digits = str(code).split(":")[-1].strip()
        if not digits.isascii() or not digits.isdigit():
            raise WorkspaceError(ErrorMessages.INVALID_EPSG.format(code), step=Step.LOCATION)
        executable = self._executable()
        workspace = self.allocate(prefix=f"epsg{digits}_")

        command = CommandLine(executable).add_arguments("-c", "epsg:${code}", "-e", "${location}")
        command.substitute(code=digits, location=workspace.location)
        self._initialize(command, workspace, owned=True)
        return workspace

    def destroy(self, workspace: Workspace) -> None:
        """
        Remove the location, resource file and staged raster.

        Never raises; calling it again on removed paths is a no-op.
        """
        for path in (workspace.location, workspace.gisrc, workspace.staged_raster):
            try:
                _remove(path)
            except OSError as e:
                logger.warning(f"Failed to remove {path}: {e}")
        logger.info(f"Released workspace {workspace.name}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _executable(self) -> Path:
        if self.config.executable is None:
            raise ConfigUnavailableError(ErrorMessages.NO_EXECUTABLE)
        return self.config.executable

    def _initialize(self, command: CommandLine, workspace: Workspace, owned: bool) -> None:
        """Run the location command; on failure, remove what this manager allocated."""
        invocation = self.runner.invocation(command, step=Step.LOCATION, cwd=workspace.geodb)
        try:
            self.runner.run(invocation)
        except (ExecutionError, StepTimeoutError, OSError) as e:
            logger.warning(f"{Path(invocation.executable).name}: {e}")
            if owned:
                self.destroy(workspace)
            raise WorkspaceError(
                ErrorMessages.LOCATION_FAILED.format(workspace.name, e),
                step=Step.LOCATION,
                exit_code=getattr(e, "exit_code", None),
            ) from e

        if not workspace.mapset.is_dir():
            if owned:
                self.destroy(workspace)
            raise WorkspaceError(
                ErrorMessages.MAPSET_MISSING.format(workspace.mapset), step=Step.LOCATION
            )
        logger.info(f"Created location {workspace.location}")
