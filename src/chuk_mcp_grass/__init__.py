"""
chuk-mcp-grass: GRASS GIS Viewshed Orchestration MCP Server

Computes viewsheds by driving an installed GRASS GIS engine through
per-request ephemeral locations, and stores results in chuk-artifacts
for downstream analysis.
"""
