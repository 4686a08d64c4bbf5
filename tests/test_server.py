"""Tests for server.py and async_server.py."""

import os
import sys
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture
def clean_server_import():
    """Remove cached server modules so they re-import under fresh patches."""
    prefixes = ("chuk_mcp_grass.server", "chuk_mcp_grass.async_server")
    saved = {k: sys.modules.pop(k) for k in list(sys.modules) if k.startswith(prefixes)}
    yield
    for k in list(sys.modules):
        if k.startswith(prefixes):
            sys.modules.pop(k, None)
    sys.modules.update(saved)


def _init_store(env: dict[str, str], store_cls: MagicMock, set_global: MagicMock | None = None):
    with patch.dict(os.environ, env, clear=True):
        with (
            patch("chuk_artifacts.ArtifactStore", store_cls),
            patch("chuk_mcp_server.set_global_artifact_store", set_global or MagicMock()),
        ):
            from chuk_mcp_grass.server import _init_artifact_store

            return _init_artifact_store()


def _run_main(argv: list[str], env: dict[str, str] | None = None, isatty: bool | None = None):
    mock_mcp = MagicMock(name="mcp")
    with patch.dict(os.environ, env or {}, clear=True):
        with (
            patch("chuk_artifacts.ArtifactStore", MagicMock()),
            patch("chuk_mcp_server.set_global_artifact_store", MagicMock()),
        ):
            from chuk_mcp_grass import server

            server.mcp = mock_mcp
            with patch("sys.argv", argv), patch("sys.stdin") as mock_stdin:
                mock_stdin.isatty.return_value = True if isatty is None else isatty
                server.main()
    return mock_mcp


# =====================================================================
# _init_artifact_store tests
# =====================================================================


class TestInitArtifactStore:
    def test_default_memory_provider(self, clean_server_import):
        store_cls = MagicMock(name="ArtifactStore")

        assert _init_store({}, store_cls) is True
        store_cls.assert_called_once_with(storage_provider="memory", session_provider="memory")

    def test_unsupported_provider_falls_back(self, clean_server_import):
        store_cls = MagicMock(name="ArtifactStore")

        assert _init_store({"CHUK_ARTIFACTS_PROVIDER": "s3"}, store_cls) is True
        store_cls.assert_called_once_with(storage_provider="memory", session_provider="memory")

    def test_filesystem_without_path_falls_back(self, clean_server_import):
        store_cls = MagicMock(name="ArtifactStore")

        assert _init_store({"CHUK_ARTIFACTS_PROVIDER": "filesystem"}, store_cls) is True
        store_cls.assert_called_once_with(storage_provider="memory", session_provider="memory")

    def test_filesystem_with_path(self, clean_server_import, tmp_path):
        store_cls = MagicMock(name="ArtifactStore")
        artifacts = tmp_path / "artifacts"
        env = {"CHUK_ARTIFACTS_PROVIDER": "filesystem", "CHUK_ARTIFACTS_PATH": str(artifacts)}

        assert _init_store(env, store_cls) is True
        assert artifacts.is_dir()
        store_cls.assert_called_once_with(
            storage_provider="filesystem", session_provider="memory", bucket=str(artifacts)
        )

    def test_store_failure_returns_false(self, clean_server_import):
        store_cls = MagicMock(side_effect=RuntimeError("backend down"))
        assert _init_store({}, store_cls) is False

    def test_set_global_called_with_store_instance(self, clean_server_import):
        instance = MagicMock(name="store_instance")
        set_global = MagicMock()

        _init_store({}, MagicMock(return_value=instance), set_global)

        set_global.assert_called_once_with(instance)


# =====================================================================
# main() tests
# =====================================================================


class TestMain:
    def test_stdio_mode(self, clean_server_import):
        mcp = _run_main(["server", "stdio"])
        mcp.run.assert_called_once_with(stdio=True)

    def test_http_mode(self, clean_server_import):
        mcp = _run_main(["server", "http", "--host", "0.0.0.0", "--port", "9000"])
        mcp.run.assert_called_once_with(host="0.0.0.0", port=9000, stdio=False)

    def test_http_defaults(self, clean_server_import):
        mcp = _run_main(["server", "http"])
        mcp.run.assert_called_once_with(host="localhost", port=8004, stdio=False)

    def test_auto_detect_stdio_from_env(self, clean_server_import):
        mcp = _run_main(["server"], env={"MCP_STDIO": "1"})
        mcp.run.assert_called_once_with(stdio=True)

    def test_auto_detect_stdio_when_not_tty(self, clean_server_import):
        mcp = _run_main(["server"], isatty=False)
        mcp.run.assert_called_once_with(stdio=True)

    def test_auto_detect_http_when_tty(self, clean_server_import):
        mcp = _run_main(["server", "--port", "7777"], isatty=True)
        mcp.run.assert_called_once_with(host="localhost", port=7777, stdio=False)

    def test_init_artifact_store_called(self, clean_server_import):
        with patch.dict(os.environ, {}, clear=True):
            from chuk_mcp_grass import server

            server.mcp = MagicMock()
            with (
                patch.object(server, "_init_artifact_store") as mock_init,
                patch("sys.argv", ["server", "stdio"]),
            ):
                server.main()

        mock_init.assert_called_once()


# =====================================================================
# async_server.py tests
# =====================================================================


class TestAsyncServer:
    def test_mcp_is_chuk_mcp_server_instance(self):
        from chuk_mcp_server import ChukMCPServer

        from chuk_mcp_grass.async_server import mcp

        assert isinstance(mcp, ChukMCPServer)

    def test_mcp_name(self):
        from chuk_mcp_grass.async_server import mcp

        assert mcp.server_info.name == "chuk-mcp-grass"

    def test_manager_is_grass_manager(self):
        from chuk_mcp_grass.async_server import manager
        from chuk_mcp_grass.core.grass_manager import GrassManager

        assert isinstance(manager, GrassManager)

    def test_mcp_from_server_is_same_as_async_server(self):
        from chuk_mcp_grass.async_server import mcp as async_mcp
        from chuk_mcp_grass.server import mcp as server_mcp

        assert server_mcp is async_mcp
