"""
Response models for chuk-mcp-grass tools.

All tool responses are Pydantic models for type safety and consistent API.
"""

from pydantic import BaseModel, ConfigDict, Field


def format_response(model: BaseModel, output_mode: str = "json") -> str:
    """Format a response model as JSON or human-readable text.

    Args:
        model: Pydantic response model instance
        output_mode: "json" (default) or "text"

    Returns:
        Formatted string
    """
    if output_mode == "text" and hasattr(model, "to_text"):
        return str(model.to_text())
    return str(model.model_dump_json())


class ErrorResponse(BaseModel):
    """Error response model for tool failures."""

    model_config = ConfigDict(extra="forbid")

    error: str = Field(..., description="Error message describing what went wrong")
    error_type: str | None = Field(None, description="Exception class name, e.g. ExecutionError")
    step: str | None = Field(None, description="Pipeline step that failed")
    exit_code: int | None = Field(None, description="Engine exit code for failed commands")

    def to_text(self) -> str:
        if self.step:
            return f"Error ({self.step}): {self.error}"
        return f"Error: {self.error}"


class VersionResponse(BaseModel):
    """Response model for the engine version query."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(..., description="Engine version text or degraded status")
    available: bool = Field(..., description="Whether the engine executable was resolved")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        return self.version.strip()


class StatusResponse(BaseModel):
    """Response model for server status queries."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(default="chuk-mcp-grass", description="Server name")
    version: str = Field(default="0.1.0", description="Server version")
    os_family: str = Field(..., description="Detected OS family")
    executable: str | None = Field(None, description="Resolved engine executable")
    module_dir: str | None = Field(None, description="Resolved module-binary directory")
    available: bool = Field(..., description="Whether engine operations are offered")
    geodb: str = Field(..., description="Geodatabase root for request workspaces")
    timeout_s: float = Field(..., description="Watchdog timeout per engine command")
    warnings: list[str] = Field(default_factory=list, description="Resolution warnings")
    analysis_tools: list[str] = Field(default_factory=list, description="Advertised analyses")
    storage_provider: str = Field(..., description="Active storage provider (memory/filesystem)")
    artifact_store_available: bool = Field(
        default=False, description="Whether artifact store is available"
    )

    def to_text(self) -> str:
        engine = "available" if self.available else "unavailable"
        store_status = "available" if self.artifact_store_available else "not available"
        lines = [
            f"{self.server} v{self.version}",
            f"Engine: {engine} ({self.os_family})",
            f"Executable: {self.executable or '-'}",
            f"Modules: {self.module_dir or '-'}",
            f"Geodatabase: {self.geodb}",
            f"Timeout: {self.timeout_s:.0f}s",
            f"Analyses: {', '.join(self.analysis_tools) or 'none'}",
            f"Storage: {self.storage_provider}",
            f"Artifact store: {store_status}",
        ]
        for warning in self.warnings:
            lines.append(f"WARNING: {warning}")
        return "\n".join(lines)


class ViewshedResponse(BaseModel):
    """Response model for an engine viewshed run."""

    model_config = ConfigDict(extra="forbid")

    observer: list[float] = Field(..., description="Observer point [x, y] in map units")
    observer_elevation: float | None = Field(None, description="Observer height above ground")
    max_distance: float | None = Field(None, description="Analysis radius in map units")
    artifact_ref: str = Field(..., description="Artifact store reference for viewshed raster")
    preview_ref: str | None = Field(None, description="PNG preview artifact reference")
    crs: str = Field(..., description="Coordinate reference system")
    shape: list[int] = Field(..., description="Array shape [height, width]")
    bounds: list[float] = Field(..., description="Extent [west, south, east, north] in CRS units")
    visible_percentage: float = Field(..., description="Percentage of cells visible", ge=0, le=100)
    output_format: str = Field(..., description="Output format (geotiff or png)")
    duration_s: float = Field(..., description="Wall-clock pipeline time in seconds")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        shape_str = f"{self.shape[0]}x{self.shape[1]}"
        lines = [
            f"Viewshed from ({self.observer[0]:.3f}, {self.observer[1]:.3f})",
            f"Artifact: {self.artifact_ref}",
            f"Shape: {shape_str} ({self.crs})",
            f"Visible: {self.visible_percentage:.1f}%",
            f"Format: {self.output_format}",
            f"Time: {self.duration_s:.1f}s",
        ]
        if self.observer_elevation is not None:
            lines.insert(1, f"Observer elevation: {self.observer_elevation:.2f}")
        if self.max_distance is not None:
            lines.insert(1, f"Max distance: {self.max_distance:.0f}")
        if self.preview_ref:
            lines.append(f"Preview: {self.preview_ref}")
        return "\n".join(lines)
