#!/usr/bin/env python3
"""
Capabilities Demo -- chuk-mcp-grass

Shows how the server resolved the GRASS installation and which tools it
advertises, in both JSON and text output modes. Runs without GRASS
installed; the viewshed tool is simply absent then.

Usage:
    python examples/capabilities_demo.py
"""

import asyncio
import json

from tool_runner import ToolRunner


async def main() -> None:
    runner = ToolRunner()

    print("=" * 60)
    print("chuk-mcp-grass -- Server Capabilities")
    print("=" * 60)

    print(f"\nRegistered tools ({len(runner.tool_names)}):")
    for name in sorted(runner.tool_names):
        print(f"  - {name}")

    print("\nEngine version:")
    print(f"  {await runner.run_text('grass_version')}")

    print("\nServer status (text):")
    for line in (await runner.run_text("grass_status")).splitlines():
        print(f"  {line}")

    print("\nServer status (json):")
    print(json.dumps(await runner.run("grass_status"), indent=2))


if __name__ == "__main__":
    asyncio.run(main())
