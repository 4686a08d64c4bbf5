"""Tests for chuk_mcp_grass.core.raster_io."""

import io

import numpy as np
import pytest
from PIL import Image

from chuk_mcp_grass.core.raster_io import (
    Raster,
    open_writer,
    raster_from_geotiff,
    raster_to_geotiff,
    read_raster,
    to_spatial_reference_code,
    viewshed_to_png,
    visible_percentage,
    write_raster,
)


# ---------------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------------


class TestRaster:
    def test_shape(self, sample_raster):
        assert sample_raster.shape == [20, 20]

    def test_bounds(self, sample_raster):
        west, south, east, north = sample_raster.bounds
        assert west == pytest.approx(599000.0)
        assert north == pytest.approx(4924000.0)
        assert east == pytest.approx(599600.0)
        assert south == pytest.approx(4923400.0)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class TestFiles:
    def test_write_then_read(self, tmp_path, sample_raster):
        path = tmp_path / "nested" / "dir" / "dem.tif"
        write_raster(path, sample_raster)

        assert path.exists()
        result = read_raster(path)
        np.testing.assert_allclose(result.data, sample_raster.data)
        assert result.data.dtype == np.float32
        assert result.crs.to_epsg() == 32610
        assert result.transform == sample_raster.transform

    def test_nodata_replaced_with_nan(self, tmp_path, sample_crs, sample_transform):
        data = np.array([[100.0, -9999.0], [300.0, -9999.0]], dtype=np.float32)
        raster = Raster(data=data, crs=sample_crs, transform=sample_transform, nodata=-9999.0)
        path = tmp_path / "voids.tif"
        write_raster(path, raster)

        result = read_raster(path)

        assert result.nodata == -9999.0
        assert np.isnan(result.data[0, 1])
        assert np.isnan(result.data[1, 1])
        assert result.data[0, 0] == 100.0

    def test_open_writer_custom_dtype(self, tmp_path, sample_raster):
        path = tmp_path / "mask.tif"
        with open_writer(path, sample_raster, dtype="uint8") as dst:
            dst.write(np.ones((20, 20), dtype=np.uint8), 1)

        import rasterio

        with rasterio.open(path) as src:
            assert src.dtypes[0] == "uint8"
            assert src.crs.to_epsg() == 32610

    def test_read_missing_file(self, tmp_path):
        import rasterio

        with pytest.raises(rasterio.errors.RasterioIOError):
            read_raster(tmp_path / "missing.tif")


# ---------------------------------------------------------------------------
# Bytes
# ---------------------------------------------------------------------------


class TestGeoTiffBytes:
    def test_encode_is_tiff(self, sample_raster):
        data = raster_to_geotiff(sample_raster)
        assert data[:4] in (b"II*\x00", b"MM\x00*")

    def test_decode_keeps_georeference(self, sample_raster):
        result = raster_from_geotiff(raster_to_geotiff(sample_raster))
        assert result.shape == [20, 20]
        assert result.crs.to_epsg() == 32610
        assert result.transform == sample_raster.transform

    def test_decode_nodata(self, sample_crs, sample_transform):
        data = np.array([[1.0, 0.0]], dtype=np.float32)
        raster = Raster(data=data, crs=sample_crs, transform=sample_transform, nodata=0.0)
        result = raster_from_geotiff(raster_to_geotiff(raster))
        assert np.isnan(result.data[0, 1])


# ---------------------------------------------------------------------------
# CRS labeling
# ---------------------------------------------------------------------------


class TestSpatialReferenceCode:
    def test_epsg(self, sample_raster):
        assert to_spatial_reference_code(sample_raster) == "32610"

    def test_no_crs(self, sample_elevation, sample_transform):
        raster = Raster(data=sample_elevation, crs=None, transform=sample_transform)
        with pytest.raises(ValueError, match="no coordinate reference system"):
            to_spatial_reference_code(raster)

    def test_no_epsg(self, sample_elevation, sample_transform):
        from rasterio.crs import CRS

        crs = CRS.from_proj4("+proj=tmerc +lat_0=1.234 +lon_0=5.678 +k=0.9 +x_0=0 +y_0=0 +ellps=WGS84")
        raster = Raster(data=sample_elevation, crs=crs, transform=sample_transform)
        with pytest.raises(ValueError, match="no EPSG code"):
            to_spatial_reference_code(raster)


# ---------------------------------------------------------------------------
# Viewshed summaries
# ---------------------------------------------------------------------------


def _viewshed(data, sample_crs, sample_transform) -> Raster:
    return Raster(data=np.asarray(data, dtype=np.float32), crs=sample_crs, transform=sample_transform)


class TestVisiblePercentage:
    def test_all_visible(self, sample_raster):
        assert visible_percentage(sample_raster) == 100.0

    def test_partial(self, sample_crs, sample_transform):
        vs = _viewshed([[1.0, np.nan], [np.nan, np.nan]], sample_crs, sample_transform)
        assert visible_percentage(vs) == 25.0

    def test_rounded(self, sample_crs, sample_transform):
        vs = _viewshed([[1.0, np.nan, np.nan]], sample_crs, sample_transform)
        assert visible_percentage(vs) == 33.3

    def test_none_visible(self, sample_crs, sample_transform):
        vs = _viewshed([[np.nan, np.nan]], sample_crs, sample_transform)
        assert visible_percentage(vs) == 0.0

    def test_empty(self, sample_crs, sample_transform):
        vs = _viewshed(np.zeros((0, 0)), sample_crs, sample_transform)
        assert visible_percentage(vs) == 0.0


class TestViewshedToPng:
    def test_colors(self, sample_crs, sample_transform):
        vs = _viewshed([[0.0, np.nan], [45.0, 90.0]], sample_crs, sample_transform)

        img = Image.open(io.BytesIO(viewshed_to_png(vs)))

        assert img.format == "PNG"
        assert img.size == (2, 2)
        assert img.getpixel((0, 0)) == (0, 200, 0)
        assert img.getpixel((1, 0)) == (200, 0, 0)
        assert img.getpixel((1, 1)) == (0, 200, 0)
