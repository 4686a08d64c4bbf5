"""Shared test fixtures for chuk-mcp-grass."""

import stat
import sys
from pathlib import Path

import numpy as np
import pytest
from unittest.mock import AsyncMock, MagicMock


def pytest_collection_modifyitems(config, items):
    """Skip tests marked ``posix`` where the shell stubs cannot run."""
    if sys.platform != "win32":
        return
    skip = pytest.mark.skip(reason="engine stub uses /bin/sh")
    for item in items:
        if "posix" in item.keywords:
            item.add_marker(skip)


# Every stub appends its name and one line per argument to $STUB_LOG
_LOG_ARGS = """
if [ -n "$STUB_LOG" ]; then
  echo "== $(basename "$0")" >> "$STUB_LOG"
  for arg in "$@"; do printf '%s\\n' "$arg" >> "$STUB_LOG"; done
fi
"""

_PARSE_ARGS = """
for arg in "$@"; do
  case "$arg" in
    input=*) src="${arg#input=}" ;;
    output=*) dst="${arg#output=}" ;;
  esac
done
"""

ENGINE_STUB = """
if [ "$1" = "-v" ]; then
  echo "GRASS GIS 7.0.0"
  exit 0
fi
if [ "$1" = "-c" ]; then
  mkdir -p "$4/PERMANENT"
  exit 0
fi
exit 2
"""

# Pass-through modules run with the mapset as cwd: import copies the staged
# file in, viewshed copies the imported raster, export copies it out
IMPORT_STUB = _PARSE_ARGS + 'cp "$src" "$dst.tif"\n'
VIEWSHED_STUB = _PARSE_ARGS + 'cp "$src.tif" "$dst.tif"\n'
EXPORT_STUB = _PARSE_ARGS + 'cp "$src.tif" "$dst"\n'

MODULE_STUBS = {
    "r.in.gdal": IMPORT_STUB,
    "r.viewshed": VIEWSHED_STUB,
    "r.out.gdal": EXPORT_STUB,
}


class GrassInstall:
    """A fake GRASS installation of shell scripts under tmp_path."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.executable = root / "grass70"
        self.module_dir = root / "bin"
        self.module_dir.mkdir(parents=True)
        self.write_engine(ENGINE_STUB)
        for name, body in MODULE_STUBS.items():
            self.write_module(name, body)

    def write_engine(self, body: str) -> Path:
        return _write_script(self.executable, body)

    def write_module(self, name: str, body: str) -> Path:
        return _write_script(self.module_dir / name, body)

    def extend_module(self, name: str, prefix: str) -> Path:
        """Run extra shell lines before the default pass-through body."""
        return self.write_module(name, prefix + MODULE_STUBS[name])

    @property
    def environ(self) -> dict[str, str]:
        return {"GRASS": str(self.executable), "GRASS_MODULES": str(self.module_dir)}

    def config(self):
        from chuk_mcp_grass.core.resolver import resolve

        return resolve(environ=self.environ, platform_name="Linux")


def _write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + _LOG_ARGS + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def grass_install(tmp_path):
    """Fake engine with pass-through modules."""
    return GrassInstall(tmp_path / "grass")


@pytest.fixture
def stub_log(tmp_path, monkeypatch):
    """Path the engine stubs append their arguments to."""
    log = tmp_path / "stub.log"
    monkeypatch.setenv("STUB_LOG", str(log))
    return log


@pytest.fixture
def geodb(tmp_path):
    return tmp_path / "grassdata"


@pytest.fixture
def rc_dir(tmp_path):
    path = tmp_path / "rc"
    path.mkdir()
    return path


@pytest.fixture
def grass_manager(grass_install, geodb, rc_dir):
    """GrassManager wired to the fake installation."""
    from chuk_mcp_grass.core.grass_manager import GrassManager

    return GrassManager(config=grass_install.config(), geodb=geodb, rc_dir=rc_dir, timeout_s=10)


@pytest.fixture
def sample_elevation():
    """20x20 elevation array with values 100-500m."""
    np.random.seed(42)
    return np.random.uniform(100, 500, (20, 20)).astype(np.float32)


@pytest.fixture
def sample_transform():
    """Affine transform for 30m cells near San Francisco (UTM 10N)."""
    from rasterio.transform import from_origin

    return from_origin(599000.0, 4924000.0, 30.0, 30.0)


@pytest.fixture
def sample_crs():
    """EPSG:32610 CRS."""
    from rasterio.crs import CRS

    return CRS.from_epsg(32610)


@pytest.fixture
def sample_raster(sample_elevation, sample_crs, sample_transform):
    from chuk_mcp_grass.core.raster_io import Raster

    return Raster(data=sample_elevation, crs=sample_crs, transform=sample_transform)


@pytest.fixture
def sample_geotiff(tmp_path, sample_raster):
    """The sample raster written to disk."""
    from chuk_mcp_grass.core.raster_io import write_raster

    path = tmp_path / "input" / "sfdem.tif"
    write_raster(path, sample_raster)
    return path


@pytest.fixture
def mock_artifact_store():
    """Mock artifact store."""
    store = AsyncMock()
    store.store = AsyncMock(return_value=None)
    store.retrieve = AsyncMock(return_value=b"fake-geotiff-bytes")
    return store


@pytest.fixture
def mock_manager(mock_artifact_store):
    """Available GrassManager stand-in with mocked store."""
    manager = MagicMock()
    manager.is_available = MagicMock(return_value=True)
    manager._get_store = MagicMock(return_value=mock_artifact_store)
    return manager


@pytest.fixture
def mock_mcp():
    """Mock ChukMCPServer."""
    mcp = MagicMock()
    mcp.tool = MagicMock(return_value=lambda fn: fn)
    return mcp
