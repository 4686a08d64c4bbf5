"""
GRASS Manager: central orchestrator for engine-backed operations.

Owns the resolved installation, the process runner and the workspace
manager, and stores results in the artifact store. Public async methods wrap
the synchronous pipeline via asyncio.to_thread().
"""

import asyncio
import logging
import math
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..constants import (
    DEFAULT_TIMEOUT_S,
    UNAVAILABLE,
    EnvVar,
    ErrorMessages,
    Step,
)
from ..errors import ConfigUnavailableError, ExecutionError, StepTimeoutError
from . import raster_io
from .pipeline import PipelineRun, ViewshedPipeline
from .raster_io import Raster
from .resolver import ExecutableConfig, resolve
from .runner import CommandLine, ProcessRunner
from .workspace import WorkspaceManager

logger = logging.getLogger(__name__)


@dataclass
class ViewshedResult:
    """Result of an engine viewshed run."""

    artifact_ref: str
    preview_ref: str | None
    crs: str
    shape: list[int]
    bounds: list[float]
    visible_percentage: float
    duration_s: float


class GrassManager:
    """Central manager for GRASS operations."""

    def __init__(
        self,
        config: ExecutableConfig | None = None,
        geodb: Path | None = None,
        rc_dir: Path | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self.config = config if config is not None else resolve()
        self.runner = ProcessRunner(timeout_s if timeout_s is not None else _timeout_from_env())
        self.workspaces = WorkspaceManager(
            self.config,
            self.runner,
            geodb=geodb if geodb is not None else _path_from_env(EnvVar.GRASS_DATA),
            rc_dir=rc_dir if rc_dir is not None else _path_from_env(EnvVar.GRASS_RC_DIR),
        )
        self.pipeline = ViewshedPipeline(self.config, self.workspaces, self.runner)

    # ------------------------------------------------------------------
    # Discovery (sync)
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        return self.config.available

    def version(self) -> str:
        """
        Query the engine version with ``<engine> -v``.

        Never raises: failures degrade to a descriptive string.
        """
        if self.config.executable is None:
            return UNAVAILABLE

        command = CommandLine(self.config.executable).add_argument("-v")
        try:
            result = self.runner.run(
                self.runner.invocation(command, step=Step.VERSION, capture=True)
            )
            return result.output
        except ExecutionError as e:
            return f"exit code: {e.exit_code} ({e.message})"
        except (StepTimeoutError, OSError) as e:
            return f"{UNAVAILABLE}: {type(e).__name__}:{e}"

    def status(self) -> dict:
        """Describe the resolved installation."""
        return {
            "os_family": self.config.os_family.value,
            "executable": str(self.config.executable) if self.config.executable else None,
            "module_dir": str(self.config.module_dir) if self.config.module_dir else None,
            "available": self.config.available,
            "geodb": str(self.workspaces.geodb),
            "timeout_s": self.runner.timeout_s,
            "warnings": list(self.config.warnings),
        }

    # ------------------------------------------------------------------
    # Viewshed
    # ------------------------------------------------------------------

    def run_viewshed(
        self,
        dem: Raster,
        x: float,
        y: float,
        observer_elevation: float | None = None,
        max_distance: float | None = None,
        record: PipelineRun | None = None,
    ) -> Raster:
        """Run the viewshed pipeline synchronously."""
        if not self.config.available:
            raise ConfigUnavailableError(ErrorMessages.NO_EXECUTABLE)
        return self.pipeline.run(
            dem,
            x,
            y,
            observer_elevation=observer_elevation,
            max_distance=max_distance,
            record=record,
        )

    async def fetch_viewshed(
        self,
        x: float,
        y: float,
        artifact_ref: str | None = None,
        dem_path: str | None = None,
        observer_elevation: float | None = None,
        max_distance: float | None = None,
        output_format: str = "geotiff",
    ) -> ViewshedResult:
        """Compute a viewshed and store it in the artifact store."""
        for label, value in (("x", x), ("y", y)):
            if not math.isfinite(value):
                raise ValueError(ErrorMessages.INVALID_COORDINATE.format(label, value))
        if max_distance is not None and max_distance <= 0:
            raise ValueError(ErrorMessages.INVALID_MAX_DISTANCE.format(max_distance))

        dem = await self._load_dem(artifact_ref, dem_path)

        loop = asyncio.get_running_loop()
        start = loop.time()
        viewshed = await asyncio.to_thread(
            self.run_viewshed, dem, x, y, observer_elevation, max_distance
        )
        duration = loop.time() - start

        visible_pct = raster_io.visible_percentage(viewshed)

        if output_format == "png":
            data_bytes = await asyncio.to_thread(raster_io.viewshed_to_png, viewshed)
            suffix = ".png"
        else:
            data_bytes = await asyncio.to_thread(raster_io.raster_to_geotiff, viewshed)
            suffix = ".tif"

        preview_ref = None
        if output_format != "png":
            try:
                preview_bytes = await asyncio.to_thread(raster_io.viewshed_to_png, viewshed)
                preview_ref = await self._store_raster(
                    preview_bytes,
                    {"type": "viewshed_preview", "format": "png"},
                    suffix="_viewshed.png",
                )
            except Exception as e:
                logger.warning(f"Failed to generate viewshed preview: {e}")

        artifact_ref_out = await self._store_raster(
            data_bytes,
            {
                "schema_version": "1.0",
                "type": "viewshed",
                "engine": "grass",
                "observer": [x, y],
                "observer_elevation": observer_elevation,
                "max_distance": max_distance,
                "crs": str(viewshed.crs),
                "shape": viewshed.shape,
                "visible_percentage": visible_pct,
            },
            suffix=suffix,
        )

        return ViewshedResult(
            artifact_ref=artifact_ref_out,
            preview_ref=preview_ref,
            crs=str(viewshed.crs),
            shape=viewshed.shape,
            bounds=[float(b) for b in viewshed.bounds],
            visible_percentage=visible_pct,
            duration_s=round(duration, 2),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_dem(self, artifact_ref: str | None, dem_path: str | None) -> Raster:
        if artifact_ref is None and dem_path is None:
            raise ValueError(ErrorMessages.NO_INPUT)
        if artifact_ref is not None and dem_path is not None:
            raise ValueError(ErrorMessages.BOTH_INPUTS)

        if dem_path is not None:
            return await asyncio.to_thread(raster_io.read_raster, dem_path)

        store = self._get_store()
        try:
            data = await store.retrieve(artifact_ref)
        except Exception as e:
            raise ValueError(ErrorMessages.INVALID_ARTIFACT_REF.format(artifact_ref)) from e
        if not data:
            raise ValueError(ErrorMessages.INVALID_ARTIFACT_REF.format(artifact_ref))
        return await asyncio.to_thread(raster_io.raster_from_geotiff, data)

    def _get_store(self) -> Any:
        """Get the artifact store instance."""
        from chuk_mcp_server import get_artifact_store

        store = get_artifact_store()
        if store is None:
            raise RuntimeError(ErrorMessages.NO_ARTIFACT_STORE)
        return store

    async def _store_raster(
        self,
        data: bytes,
        metadata: dict,
        suffix: str = ".tif",
    ) -> str:
        """Store raster data in the artifact store."""
        try:
            store = self._get_store()
            ref = f"grass/{uuid.uuid4().hex[:12]}{suffix}"
            mime = "image/tiff" if suffix.endswith(".tif") else "image/png"

            await store.store(
                ref,
                data,
                mime_type=mime,
                metadata=metadata,
                summary=f"GRASS output ({metadata.get('type', 'unknown')})",
            )
            return ref
        except Exception as e:
            logger.error(f"Failed to store raster: {e}")
            raise


def _timeout_from_env() -> float:
    raw = os.environ.get(EnvVar.GRASS_TIMEOUT_S)
    if not raw:
        return DEFAULT_TIMEOUT_S
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {EnvVar.GRASS_TIMEOUT_S}={raw!r}")
        return DEFAULT_TIMEOUT_S


def _path_from_env(var: str) -> Path | None:
    raw = os.environ.get(var)
    return Path(raw).expanduser() if raw else None
