"""
Raster I/O for staging engine inputs and decoding engine outputs.

All functions are synchronous; callers wrap them in asyncio.to_thread().
The orchestration layer never parses raster bytes itself; it reads and
writes GeoTIFFs only through this module.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
from numpy.typing import NDArray
from PIL import Image

from ..constants import ErrorMessages

logger = logging.getLogger(__name__)

# Type aliases
FloatArray = NDArray[np.floating[Any]]
Transform = Any  # rasterio.Affine


@dataclass
class Raster:
    """A single-band georeferenced grid."""

    data: FloatArray
    crs: Any
    transform: Transform
    nodata: float | None = None

    @property
    def shape(self) -> list[int]:
        return list(self.data.shape)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """(west, south, east, north) in CRS units."""
        from rasterio.transform import array_bounds

        height, width = self.data.shape
        west, south, east, north = array_bounds(height, width, self.transform)
        return (west, south, east, north)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def read_raster(path: str | Path) -> Raster:
    """
    Read band 1 of a raster file.

    Nodata cells are replaced with NaN.

    Args:
        path: Raster file path

    Returns:
        Raster with float32 data
    """
    import rasterio

    with rasterio.open(path) as src:
        data = src.read(1).astype(np.float32)
        crs = src.crs
        transform = src.transform
        nodata = src.nodata

    if nodata is not None:
        data[data == nodata] = np.nan

    return Raster(data=data, crs=crs, transform=transform, nodata=nodata)


def open_writer(path: str | Path, raster: Raster, dtype: str = "float32") -> Any:
    """
    Open a GeoTIFF writer shaped like the given raster.

    Parent directories are created if absent.

    Returns:
        rasterio dataset opened for writing; use as a context manager
    """
    import rasterio

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    height, width = raster.data.shape
    return rasterio.open(
        target,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=1,
        dtype=dtype,
        crs=raster.crs,
        transform=raster.transform,
        nodata=raster.nodata,
    )


def write_raster(path: str | Path, raster: Raster, dtype: str = "float32") -> None:
    """Write a raster to a GeoTIFF file."""
    with open_writer(path, raster, dtype) as dst:
        dst.write(raster.data.astype(dtype), 1)
    logger.info(f"Staging file: {path}")


# ---------------------------------------------------------------------------
# Bytes
# ---------------------------------------------------------------------------


def raster_to_geotiff(raster: Raster, dtype: str = "float32") -> bytes:
    """Encode a raster as GeoTIFF bytes."""
    from rasterio.io import MemoryFile

    height, width = raster.data.shape
    memfile = MemoryFile()
    with memfile.open(
        driver="GTiff",
        height=height,
        width=width,
        count=1,
        dtype=dtype,
        crs=raster.crs,
        transform=raster.transform,
        nodata=raster.nodata,
    ) as dst:
        dst.write(raster.data.astype(dtype)[np.newaxis, :])

    return memfile.read()


def raster_from_geotiff(data: bytes) -> Raster:
    """Decode GeoTIFF bytes (e.g. retrieved from the artifact store)."""
    from rasterio.io import MemoryFile

    with MemoryFile(data) as memfile:
        with memfile.open() as src:
            array = src.read(1).astype(np.float32)
            crs = src.crs
            transform = src.transform
            nodata = src.nodata

    if nodata is not None:
        array[array == nodata] = np.nan

    return Raster(data=array, crs=crs, transform=transform, nodata=nodata)


# ---------------------------------------------------------------------------
# CRS labeling
# ---------------------------------------------------------------------------


def to_spatial_reference_code(raster: Raster) -> str:
    """
    Return the EPSG code of the raster's CRS as a bare string (e.g. "32610").

    Raises:
        ValueError: If the raster has no CRS or the CRS has no EPSG code
    """
    if raster.crs is None:
        raise ValueError(ErrorMessages.NO_CRS)
    code = raster.crs.to_epsg()
    if code is None:
        raise ValueError(ErrorMessages.NO_EPSG.format(raster.crs))
    return str(code)


# ---------------------------------------------------------------------------
# Viewshed summaries
# ---------------------------------------------------------------------------


def visible_percentage(viewshed: Raster) -> float:
    """Percentage of cells the engine marked visible (non-null)."""
    total = viewshed.data.size
    if total == 0:
        return 0.0
    visible = int(np.count_nonzero(~np.isnan(viewshed.data)))
    return round(visible / total * 100.0, 1)


def viewshed_to_png(viewshed: Raster) -> bytes:
    """Render visible cells green and hidden cells red."""
    visible = ~np.isnan(viewshed.data)
    rgb = np.zeros((*viewshed.data.shape, 3), dtype=np.uint8)
    rgb[visible] = [0, 200, 0]
    rgb[~visible] = [200, 0, 0]

    img = Image.fromarray(rgb)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
