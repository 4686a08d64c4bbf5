"""
Constants for chuk-mcp-grass server.

All magic strings, engine defaults, and configuration values live here.
"""

from enum import Enum


class ServerConfig:
    NAME = "chuk-mcp-grass"
    VERSION = "0.1.0"
    DESCRIPTION = "GRASS GIS Viewshed Orchestration MCP Server"


class StorageProvider:
    MEMORY = "memory"
    FILESYSTEM = "filesystem"


class SessionProvider:
    MEMORY = "memory"


class EnvVar:
    GRASS = "GRASS"
    GRASS_MODULES = "GRASS_MODULES"
    GRASS_DATA = "GRASS_DATA"
    GRASS_RC_DIR = "GRASS_RC_DIR"
    GRASS_TIMEOUT_S = "GRASS_TIMEOUT_S"
    ARTIFACTS_PROVIDER = "CHUK_ARTIFACTS_PROVIDER"
    ARTIFACTS_PATH = "CHUK_ARTIFACTS_PATH"
    MCP_STDIO = "MCP_STDIO"


class EngineVar:
    """Variables the engine itself reads from its environment."""

    GISBASE = "GISBASE"
    GISRC = "GISRC"
    GRASS_VERSION = "GRASS_VERSION"
    PATH = "PATH"
    LD_LIBRARY_PATH = "LD_LIBRARY_PATH"
    DYLD_LIBRARY_PATH = "DYLD_LIBRARY_PATH"


class OSFamily(str, Enum):
    LINUX = "linux"
    MAC = "mac"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


# Engine
GRASS_VERSION = "7.0.0"
PERMANENT_MAPSET = "PERMANENT"
DEFAULT_GEODB_DIRNAME = "grassdata"
GISRC_PREFIX = ".grassrc"
GRASS_GUI = "text"

# Process runner
DEFAULT_TIMEOUT_S = 60.0
SUCCESS_EXIT_CODE = 0
ERROR_TAIL_LINES = 20

# Windows checks the 32-bit style Program Files directory first
WINDOWS_PROGRAM_FILES_X86 = "C:\\Program Files (x86)"
WINDOWS_PROGRAM_FILES = "C:\\Program Files"
WINDOWS_GRASS_DIRNAME = "GRASS GIS 7.0.0"

# Per-family defaults (Windows entries are relative to Program Files)
DEFAULT_EXECUTABLES: dict[OSFamily, str] = {
    OSFamily.LINUX: "/usr/local/bin/grass70",
    OSFamily.MAC: "/Applications/GRASS-7.0.app/Contents/MacOS/grass70",
    OSFamily.WINDOWS: "grass70.bat",
}

DEFAULT_MODULE_DIRS: dict[OSFamily, str] = {
    OSFamily.LINUX: "/usr/lib/grass70/bin",
    OSFamily.MAC: "/Applications/GRASS-7.0.app/Contents/MacOS/bin",
    OSFamily.WINDOWS: "bin",
}

LIBRARY_PATH_VARS: dict[OSFamily, str] = {
    OSFamily.LINUX: EngineVar.LD_LIBRARY_PATH,
    OSFamily.MAC: EngineVar.DYLD_LIBRARY_PATH,
}

WINDOWS_MODULE_SUFFIXES = [".bat", ".exe"]


# Engine modules
class Module:
    IMPORT = "r.in.gdal"
    VIEWSHED = "r.viewshed"
    EXPORT = "r.out.gdal"


class Step:
    STAGE = "stage"
    LOCATION = "location"
    IMPORT = "import"
    ANALYZE = "analyze"
    EXPORT = "export"
    READ = "read"
    VERSION = "version"


# Logical raster names inside the engine store
DEM_RASTER_NAME = "dem"
VIEWSHED_RASTER_NAME = "viewshed"
EXPORT_FORMAT = "GTiff"
OVERWRITE_FLAG = "--overwrite"
LOCATION_PREFIX = "viewshed"
LOCATION_SUFFIX = "location"
RESULT_FILENAME = "viewshed.tif"

OUTPUT_FORMATS = ["geotiff", "png"]

UNAVAILABLE = "unavailable"

# Cleanup retry
CLEANUP_RETRY_ATTEMPTS = 3
CLEANUP_RETRY_WAIT_MIN = 0.1
CLEANUP_RETRY_WAIT_MAX = 1.0

ANALYSIS_TOOLS = ["viewshed"]


class ErrorMessages:
    NO_EXECUTABLE = (
        "GRASS executable unavailable. Set the GRASS and GRASS_MODULES "
        "environment variables to a GRASS 7 installation."
    )
    NO_DEFAULT_EXECUTABLE = (
        "GRASS default executable unavailable for '{}'. "
        "Please use the GRASS environment variable"
    )
    NO_DEFAULT_MODULES = (
        "GRASS modules unavailable for '{}'. Please use the GRASS_MODULES environment variable"
    )
    DOES_NOT_EXIST = "{} does not exist"
    NOT_EXECUTABLE = "{} not executable"
    MODULE_NOT_FOUND = "{} not found: {}"
    MODULE_NOT_EXECUTABLE = "{} not executable: {}"
    NO_MODULE_DIR = "GRASS module directory unavailable, cannot locate {}"
    MAPSET_MISSING = "Did not create mapset {}"
    LOCATION_FAILED = "Location creation failed for {}: {}"
    LOCATION_DIR_FAILED = "Could not prepare geodatabase {}: {}"
    INVALID_EPSG = "Invalid EPSG code: {!r}"
    STEP_FAILED = "{} failed with exit code {}: {}"
    STEP_TIMEOUT = "{} timed out after {:.0f}s"
    RESULT_MISSING = "Generated {} not found"
    NO_ARTIFACT_STORE = (
        "No artifact store available. Configure CHUK_ARTIFACTS_PROVIDER "
        "environment variable (memory or filesystem)."
    )
    NO_INPUT = "Provide either artifact_ref or dem_path"
    BOTH_INPUTS = "Provide only one of artifact_ref or dem_path"
    INVALID_OUTPUT_FORMAT = "Invalid output format '{}'. Available: {}"
    INVALID_ARTIFACT_REF = "Artifact '{}' not found or could not be retrieved"
    INVALID_MAX_DISTANCE = "max_distance must be > 0, got {}"
    INVALID_COORDINATE = "Coordinate {} must be a finite number, got {}"
    NO_CRS = "Raster has no coordinate reference system"
    NO_EPSG = "Raster CRS has no EPSG code: {}"


class SuccessMessages:
    VERSION = "GRASS version query complete"
    STATUS = "GRASS MCP Server v{} (engine: {})"
    VIEWSHED_COMPLETE = "Viewshed computed: {:.1f}% visible ({} shape)"
