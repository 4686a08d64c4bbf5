"""
Viewshed pipeline: sequences workspace and engine calls for one request.

    INIT -> STAGED -> LOCATION_READY -> IMPORTED -> COMPUTED -> EXPORTED -> DONE

Any failure moves the run to FAILED and is re-raised with its step. The
workspace is destroyed on every path; no step is retried.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from ..constants import (
    DEM_RASTER_NAME,
    EXPORT_FORMAT,
    OVERWRITE_FLAG,
    VIEWSHED_RASTER_NAME,
    Module,
    Step,
)
from ..errors import ResultMissingError
from . import raster_io
from .environment import build_environment, discard_environment
from .raster_io import Raster
from .resolver import ExecutableConfig, module_binary
from .runner import CommandLine, ProcessRunner
from .workspace import Workspace, WorkspaceManager

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    INIT = "init"
    STAGED = "staged"
    LOCATION_READY = "location_ready"
    IMPORTED = "imported"
    COMPUTED = "computed"
    EXPORTED = "exported"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineRun:
    """Progress record for a single request."""

    state: PipelineState = PipelineState.INIT
    step: str | None = None
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.INIT])
    workspace: Workspace | None = None
    error: Exception | None = None

    @property
    def failed_step(self) -> str | None:
        return self.step if self.state == PipelineState.FAILED else None

    def begin(self, step: str) -> None:
        self.step = step

    def advance(self, state: PipelineState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, error: Exception) -> None:
        self.error = error
        self.advance(PipelineState.FAILED)


class ViewshedPipeline:
    """Compute a viewshed by orchestrating engine commands."""

    def __init__(
        self,
        config: ExecutableConfig,
        workspaces: WorkspaceManager,
        runner: ProcessRunner,
    ) -> None:
        self.config = config
        self.workspaces = workspaces
        self.runner = runner

    def run(
        self,
        dem: Raster,
        x: float,
        y: float,
        observer_elevation: float | None = None,
        max_distance: float | None = None,
        record: PipelineRun | None = None,
    ) -> Raster:
        """
        Compute the viewshed of (x, y) on a DEM.

        Args:
            dem: Elevation raster
            x: Observer x in map units
            y: Observer y in map units
            observer_elevation: Observer height above ground, engine default if None
            max_distance: Analysis radius in map units, unlimited if None
            record: Optional progress record to observe states

        Returns:
            Decoded viewshed raster

        Raises:
            WorkspaceError, ExecutionError, StepTimeoutError, ResultMissingError,
            ConfigUnavailableError, OSError
        """
        run = record if record is not None else PipelineRun()
        workspace: Workspace | None = None
        env: dict[str, str] | None = None

        try:
            run.begin(Step.STAGE)
            workspace = self.workspaces.allocate()
            run.workspace = workspace
            raster_io.write_raster(workspace.staged_raster, dem)
            run.advance(PipelineState.STAGED)

            run.begin(Step.LOCATION)
            self.workspaces.create(workspace.staged_raster, workspace=workspace)
            run.advance(PipelineState.LOCATION_READY)

            run.begin(Step.IMPORT)
            env = build_environment(self.config, workspace)
            self._execute(self._import_command(workspace), Step.IMPORT, env, workspace)
            run.advance(PipelineState.IMPORTED)

            run.begin(Step.ANALYZE)
            command = self._viewshed_command(x, y, observer_elevation, max_distance)
            self._execute(command, Step.ANALYZE, env, workspace)
            run.advance(PipelineState.COMPUTED)

            run.begin(Step.EXPORT)
            self._execute(self._export_command(workspace), Step.EXPORT, env, workspace)
            run.advance(PipelineState.EXPORTED)

            run.begin(Step.READ)
            if not workspace.result_path.exists():
                raise ResultMissingError(workspace.result_path)
            viewshed = raster_io.read_raster(workspace.result_path)
            run.advance(PipelineState.DONE)
            return viewshed

        except Exception as e:
            logger.warning(f"viewshed failed at {run.step}: {e}")
            run.fail(e)
            raise

        finally:
            if env is not None:
                discard_environment(env)
            if workspace is not None:
                self.workspaces.destroy(workspace)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _import_command(self, workspace: Workspace) -> CommandLine:
        # r.in.gdal input=<staged> output=dem --overwrite
        command = CommandLine(module_binary(self.config, Module.IMPORT))
        command.add_arguments("input=${file}", f"output={DEM_RASTER_NAME}", OVERWRITE_FLAG)
        return command.substitute(file=workspace.staged_raster)

    def _viewshed_command(
        self,
        x: float,
        y: float,
        observer_elevation: float | None,
        max_distance: float | None,
    ) -> CommandLine:
        command = CommandLine(module_binary(self.config, Module.VIEWSHED))
        command.add_arguments(
            f"input={DEM_RASTER_NAME}",
            f"output={VIEWSHED_RASTER_NAME}",
            "coordinates=${x},${y}",
        )
        command.substitute(x=float(x), y=float(y))
        if observer_elevation is not None:
            command.add_argument("observer_elevation=${observer_elevation}")
            command.substitute(observer_elevation=float(observer_elevation))
        if max_distance is not None:
            command.add_argument("max_distance=${max_distance}")
            command.substitute(max_distance=float(max_distance))
        return command.add_argument(OVERWRITE_FLAG)

    def _export_command(self, workspace: Workspace) -> CommandLine:
        # r.out.gdal input=viewshed output=<location>/viewshed.tif --overwrite format=GTiff
        command = CommandLine(module_binary(self.config, Module.EXPORT))
        command.add_arguments(
            f"input={VIEWSHED_RASTER_NAME}",
            "output=${viewshed}",
            OVERWRITE_FLAG,
            f"format={EXPORT_FORMAT}",
        )
        return command.substitute(viewshed=workspace.result_path)

    def _execute(
        self,
        command: CommandLine,
        step: str,
        env: dict[str, str],
        workspace: Workspace,
    ) -> None:
        invocation = self.runner.invocation(command, step=step, env=env, cwd=workspace.mapset)
        self.runner.run(invocation)
