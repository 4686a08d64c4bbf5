"""
GRASS tools: engine version, server status, and viewshed.

grass_version and grass_status are always advertised. grass_viewshed is
registered only when the engine executable resolved, so an unusable
installation never appears in the tool catalog.
"""

import logging
import os

from ...constants import (
    ANALYSIS_TOOLS,
    OUTPUT_FORMATS,
    UNAVAILABLE,
    EnvVar,
    ErrorMessages,
    ServerConfig,
    StorageProvider,
    SuccessMessages,
)
from ...models.responses import (
    ErrorResponse,
    StatusResponse,
    VersionResponse,
    ViewshedResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def error_response(error: Exception) -> ErrorResponse:
    """Build an ErrorResponse that keeps the failing step and exit code."""
    return ErrorResponse(
        error=str(error),
        error_type=type(error).__name__,
        step=getattr(error, "step", None),
        exit_code=getattr(error, "exit_code", None),
    )


def register_grass_tools(mcp, manager):
    """Register GRASS tools with the MCP server."""

    @mcp.tool()
    async def grass_version(output_mode: str = "json") -> str:
        """Retrieve the version of GRASS used for computation.

        Args:
            output_mode: "json" for structured data, "text" for plain version text

        Returns:
            Engine version, or "unavailable" when GRASS is not installed
        """
        try:
            version = manager.version()
            response = VersionResponse(
                version=version,
                available=manager.is_available(),
                message=SuccessMessages.VERSION,
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"grass_version failed: {e}")
            return format_response(error_response(e), output_mode)

    @mcp.tool()
    async def grass_status(output_mode: str = "json") -> str:
        """Get server status including engine paths, availability, and storage.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Server status information
        """
        try:
            provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)

            store_available = False
            try:
                manager._get_store()
                store_available = True
            except Exception:
                pass

            status = manager.status()
            response = StatusResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                analysis_tools=ANALYSIS_TOOLS if status["available"] else [],
                storage_provider=provider,
                artifact_store_available=store_available,
                **status,
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"grass_status failed: {e}")
            return format_response(error_response(e), output_mode)

    if not manager.is_available():
        logger.warning(f"GRASS {UNAVAILABLE}: grass_viewshed not registered")
        return

    @mcp.tool()
    async def grass_viewshed(
        x: float,
        y: float,
        artifact_ref: str | None = None,
        dem_path: str | None = None,
        observer_elevation: float | None = None,
        max_distance: float | None = None,
        output_format: str = "geotiff",
        output_mode: str = "json",
    ) -> str:
        """Compute the viewshed of a point on an elevation raster with GRASS r.viewshed.

        Provide the DEM either as an artifact reference (GeoTIFF) or as a
        local file path. Coordinates are in the DEM's map units.

        Args:
            x: Observer x location in map units
            y: Observer y location in map units
            artifact_ref: Artifact store reference of a GeoTIFF DEM
            dem_path: Local path of a GeoTIFF DEM
            observer_elevation: Observer height above ground (GRASS default 1.75)
            max_distance: Maximum visibility radius in map units (default unlimited)
            output_format: Output format (geotiff or png)
            output_mode: "json" or "text"

        Returns:
            Viewshed raster artifact with visible percentage
        """
        try:
            if output_format not in OUTPUT_FORMATS:
                raise ValueError(
                    ErrorMessages.INVALID_OUTPUT_FORMAT.format(
                        output_format, ", ".join(OUTPUT_FORMATS)
                    )
                )

            result = await manager.fetch_viewshed(
                x=x,
                y=y,
                artifact_ref=artifact_ref,
                dem_path=dem_path,
                observer_elevation=observer_elevation,
                max_distance=max_distance,
                output_format=output_format,
            )

            response = ViewshedResponse(
                observer=[x, y],
                observer_elevation=observer_elevation,
                max_distance=max_distance,
                artifact_ref=result.artifact_ref,
                preview_ref=result.preview_ref,
                crs=result.crs,
                shape=result.shape,
                bounds=result.bounds,
                visible_percentage=result.visible_percentage,
                output_format=output_format,
                duration_s=result.duration_s,
                message=SuccessMessages.VIEWSHED_COMPLETE.format(
                    result.visible_percentage, f"{result.shape[0]}x{result.shape[1]}"
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"grass_viewshed failed: {e}")
            return format_response(error_response(e), output_mode)
