#!/usr/bin/env python3
"""
Demo script: place a ring of irregular regions onto a square grid.
"""

import numpy as np
from shapely.geometry import Polygon, box

from py_tessellate.config import configure_logging, settings
from py_tessellate.core import Region, assign_regions, cells_from_candidate_grid


def irregular_regions(count, seed=42):
    """Random quadrilaterals scattered around a circle."""
    rng = np.random.default_rng(seed)
    regions = []
    for i in range(count):
        angle = 2 * np.pi * i / count
        cx, cy = 10 + 7 * np.cos(angle), 10 + 7 * np.sin(angle)
        corners = [(cx + dx, cy + dy) for dx, dy in
                   [(-1, -1), (1, -1), (1, 1), (-1, 1)] + rng.uniform(-0.4, 0.4, size=(4, 2))]
        regions.append(Region.from_geometry(f"region-{i:02d}", Polygon(corners),
                                            {"ring_position": i}))
    return regions


def main():
    """Run the assignment and print the pairing."""
    configure_logging(settings.log_level, "console")

    side = 4
    spacing = 20 / side
    centres = [((i + 0.5) * spacing, (j + 0.5) * spacing) for j in range(side) for i in range(side)]
    polygons = [box(x - spacing / 2, y - spacing / 2, x + spacing / 2, y + spacing / 2)
                for x, y in centres]
    cells = cells_from_candidate_grid(centres, polygons)

    regions = irregular_regions(len(cells))
    result = assign_regions(regions, cells, settings.assignment_options())

    print("Py-Tessellate Assignment Demo")
    print("=" * 40)
    for record in result:
        print(f"  {record.region_id} -> cell {record.cell_id:2d} "
              f"(distance {record.distance:.2f})")
    print(f"\nTotal distance: {result.total_cost:.3f}")


if __name__ == "__main__":
    main()
