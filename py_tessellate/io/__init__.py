"""
GeoDataFrame adapters for regions, grid cells and merged results.
"""

from .geodataframe import cells_from_geodataframe, merged_to_geodataframe, regions_from_geodataframe

__all__ = ['cells_from_geodataframe', 'merged_to_geodataframe', 'regions_from_geodataframe']
