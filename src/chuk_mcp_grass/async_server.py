#!/usr/bin/env python3
"""
Async GRASS MCP Server using chuk-mcp-server

Computes viewsheds by orchestrating an installed GRASS GIS engine, and
stores results in chuk-artifacts for downstream analysis.

Storage is managed through chuk-mcp-server's built-in artifact store context.
"""

import logging

from chuk_mcp_server import ChukMCPServer

from .core.grass_manager import GrassManager
from .tools.grass import register_grass_tools

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create the MCP server instance
mcp = ChukMCPServer("chuk-mcp-grass")

# Engine resolution happens once, here
manager = GrassManager()

register_grass_tools(mcp, manager)

# Run the server
if __name__ == "__main__":
    logger.info("Starting GRASS MCP Server...")
    logger.info(f"GRASS available: {manager.is_available()}")
    mcp.run(stdio=True)
