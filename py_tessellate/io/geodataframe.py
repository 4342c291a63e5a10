"""
GeoPandas adapters for the assignment engine.

Converts in-memory GeoDataFrames into Region/GridCell records and flattens
merged results back into a GeoDataFrame ready for export. Reading and
writing files stays with the caller.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

import geopandas as gpd
import pandas as pd
import structlog

from ..core.centroids import extract_centroids
from ..core.models import GridCell, MergedResult, Region

logger = structlog.get_logger()


def _identifiers(gdf: gpd.GeoDataFrame, id_column: Optional[str]) -> List[Any]:
    if id_column is None:
        return list(gdf.index)
    if id_column not in gdf.columns:
        raise KeyError(f"Identifier column {id_column!r} not found")
    return gdf[id_column].tolist()


def regions_from_geodataframe(gdf: gpd.GeoDataFrame, id_column: Optional[str] = None,
                              max_workers: int = 1) -> List[Region]:
    """
    Convert a GeoDataFrame of polygons into Region records.

    Args:
        gdf: Source polygons with attribute columns
        id_column: Column holding identifiers; the index is used when None
        max_workers: Threads for centroid extraction

    Returns:
        List of Region with centroid and area filled in, in row order
    """
    ids = _identifiers(gdf, id_column)
    geometries = list(gdf.geometry)
    centroids = extract_centroids(geometries, max_workers)

    attribute_columns = [
        c for c in gdf.columns if c != gdf.geometry.name and c != id_column
    ]
    attributes = gdf[attribute_columns].to_dict(orient="records")

    regions = [
        Region(
            id=identifier,
            geometry=geometry,
            attributes=attrs,
            centroid=result.point,
            area=result.area,
            centroid_fallback=result.fallback,
        )
        for identifier, geometry, attrs, result in zip(ids, geometries, attributes, centroids)
    ]
    logger.info("Loaded regions from GeoDataFrame", count=len(regions))
    return regions


def cells_from_geodataframe(gdf: gpd.GeoDataFrame, id_column: Optional[str] = None,
                            max_workers: int = 1) -> List[GridCell]:
    """Convert a GeoDataFrame of grid polygons into GridCell records."""
    ids = _identifiers(gdf, id_column)
    geometries = list(gdf.geometry)
    centroids = extract_centroids(geometries, max_workers)
    return [
        GridCell(id=identifier, geometry=geometry, centroid=result.point)
        for identifier, geometry, result in zip(ids, geometries, centroids)
    ]


def merged_to_geodataframe(records: Iterable[MergedResult], geometry: str = "cell",
                           crs: Any = None) -> gpd.GeoDataFrame:
    """
    Flatten merged results into a GeoDataFrame.

    Args:
        records: MergedResult records (or a TessellationResult)
        geometry: "cell" to use the assigned cell polygon, "region" for the
                  original region polygon
        crs: Coordinate reference system for the output

    Returns:
        GeoDataFrame with one row per region
    """
    if geometry not in ("cell", "region"):
        raise ValueError(f"geometry must be 'cell' or 'region', got {geometry!r}")

    records = list(records)
    rows = pd.DataFrame([record.as_record() for record in records])
    shapes = [
        record.cell_geometry if geometry == "cell" else record.region_geometry
        for record in records
    ]
    return gpd.GeoDataFrame(rows, geometry=gpd.GeoSeries(shapes, index=rows.index), crs=crs)
