#!/usr/bin/env python3
"""
Inspect the cell covering a spatial query would use.

Prints the cells of a circle or bounding-box covering in visiting order, with
their centroids and distance to the query center, and optionally writes them
to CSV.

Usage:
    python inspect_covering.py --grid h3 --precision 7 --center 37.7749,-122.4194 --radius-km 5
    python inspect_covering.py --grid s2 --precision 12 --bbox 37.70,-122.52,37.82,-122.35
    python inspect_covering.py --grid h3 --precision 5 --center 0,179 --radius-km 200 --output cells.csv
"""

import sys
import argparse
from pathlib import Path
from typing import List

import pandas as pd

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from geoquery.common import config, get_logger, TimedLogger
from geoquery.geo import BoxRegion, CircleRegion, GeoBoundingBox, GeoPoint
from geoquery.grid import GridType, get_grid_system
from geoquery.query import CoveringParams, compute_covering

logger = get_logger("inspect_covering")


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Inspect the grid covering of a spatial query region",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--grid",
        type=str,
        choices=[grid_type.value for grid_type in GridType],
        default=GridType.H3.value,
        help="Grid system",
    )

    parser.add_argument(
        "--precision", type=int, default=7, help="H3 resolution or S2 level"
    )

    parser.add_argument("--center", type=str, help='Circle center as "lat,lng"')

    parser.add_argument("--radius-km", type=float, help="Circle radius in kilometers")

    parser.add_argument(
        "--bbox",
        type=str,
        help='Bounding box as "min_lat,min_lng,max_lat,max_lng"; min_lng > max_lng wraps the antimeridian',
    )

    parser.add_argument(
        "--max-cells",
        type=int,
        default=config.query.default_max_cells,
        help="Cell budget",
    )

    parser.add_argument("--output", type=str, help="Save covering to CSV file")

    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    return parser.parse_args()


def parse_floats(value: str, count: int, name: str) -> List[float]:
    try:
        values = [float(x.strip()) for x in value.split(",")]
    except ValueError as e:
        raise ValueError(f"Invalid {name}: {e}")
    if len(values) != count:
        raise ValueError(f"{name} must have {count} values")
    return values


def build_region(args):
    """Build the query region from arguments."""
    if args.bbox:
        min_lat, min_lng, max_lat, max_lng = parse_floats(args.bbox, 4, "bounding box")
        return BoxRegion(
            GeoBoundingBox(GeoPoint(min_lat, min_lng), GeoPoint(max_lat, max_lng))
        )

    if not args.center or args.radius_km is None:
        raise ValueError("Provide --bbox, or --center with --radius-km")

    lat, lng = parse_floats(args.center, 2, "center")
    return CircleRegion(GeoPoint(lat, lng), args.radius_km * 1000.0)


def covering_to_dataframe(grid_type: GridType, region, cells) -> pd.DataFrame:
    """One row per cell in visiting order."""
    grid = get_grid_system(grid_type)
    rows = []
    for order, cell in enumerate(cells):
        centroid = grid.cell_to_point(cell)
        rows.append(
            {
                "order": order,
                "cell": cell,
                "latitude": centroid.latitude,
                "longitude": centroid.longitude,
                "distance_km": region.center.distance_to_kilometers(centroid),
            }
        )
    return pd.DataFrame(
        rows, columns=["order", "cell", "latitude", "longitude", "distance_km"]
    )


def main():
    """Main execution function."""

    try:
        args = parse_arguments()

        if args.verbose:
            import logging

            logging.getLogger("geoquery").setLevel(logging.DEBUG)

        region = build_region(args)
        params = CoveringParams(
            grid_type=GridType(args.grid),
            precision=args.precision,
            region=region,
            max_cells=args.max_cells,
        )

        with TimedLogger(logger, f"compute_covering {args.grid}@{args.precision}"):
            covering = compute_covering(params)

        cells_df = covering_to_dataframe(params.grid_type, region, covering.cells)

        if args.output:
            output_path = Path(args.output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            cells_df.to_csv(output_path, index=False)
            logger.info(f"Covering saved to {output_path}")

        print(cells_df.to_string(index=False))
        print(f"\nGrid: {args.grid}  Precision: {args.precision}")
        print(f"Cells: {len(covering)}  Complete: {covering.is_complete}")
        print(f"Fingerprint: {params.fingerprint()}")

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Covering inspection failed: {e}")
        print(f"\nERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
