#!/usr/bin/env python3
"""
Viewshed Demo -- chuk-mcp-grass

Computes the viewshed of a point on a local GeoTIFF DEM with GRASS
r.viewshed and saves the green/red preview image.

Usage:
    python examples/viewshed_demo.py DEM.tif X Y [MAX_DISTANCE]

    X and Y are in the DEM's map units, e.g. for the GRASS sample
    sfdem.tif: python examples/viewshed_demo.py sfdem.tif 599000 4920000

Output:
    examples/output/viewshed.tif
    examples/output/viewshed_preview.png

Requirements:
    A GRASS 7 installation (set GRASS and GRASS_MODULES if it is not in
    the default location for your platform).
"""

import asyncio
import sys
from pathlib import Path

from tool_runner import ToolRunner

OUTPUT_DIR = Path(__file__).parent / "output"
OBSERVER_ELEVATION_M = 1.75


async def main() -> None:
    if len(sys.argv) < 4:
        print(__doc__)
        sys.exit(2)

    dem_path = Path(sys.argv[1]).resolve()
    x, y = float(sys.argv[2]), float(sys.argv[3])
    max_distance = float(sys.argv[4]) if len(sys.argv) > 4 else None

    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    runner = ToolRunner()

    print("=" * 60)
    print("GRASS Viewshed")
    print("=" * 60)

    print("\nStep 1: Checking engine...")
    print(f"  {await runner.run_text('grass_version')}")
    if not runner.has_tool("grass_viewshed"):
        status = await runner.run("grass_status")
        for warning in status["warnings"]:
            print(f"  WARNING: {warning}")
        print("  GRASS is unavailable; set GRASS and GRASS_MODULES.")
        sys.exit(1)

    print(f"\nStep 2: Computing viewshed from ({x}, {y}) on {dem_path.name}...")
    viewshed = await runner.run(
        "grass_viewshed",
        x=x,
        y=y,
        dem_path=str(dem_path),
        observer_elevation=OBSERVER_ELEVATION_M,
        max_distance=max_distance,
    )
    if "error" in viewshed:
        print(f"  ERROR ({viewshed.get('step')}): {viewshed['error']}")
        sys.exit(1)

    print(f"  Artifact: {viewshed['artifact_ref']}")
    print(f"  Shape: {viewshed['shape']} ({viewshed['crs']})")
    print(f"  Visible: {viewshed['visible_percentage']:.1f}%")
    print(f"  Time: {viewshed['duration_s']:.1f}s")

    print("\nStep 3: Saving outputs...")
    store = runner.manager._get_store()
    outputs = {"viewshed.tif": viewshed["artifact_ref"]}
    if viewshed.get("preview_ref"):
        outputs["viewshed_preview.png"] = viewshed["preview_ref"]
    for filename, ref in outputs.items():
        path = OUTPUT_DIR / filename
        path.write_bytes(await store.retrieve(ref))
        print(f"  Saved: {path}")

    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
