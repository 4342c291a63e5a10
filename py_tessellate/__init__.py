"""
py-tessellate: optimal assignment of regions to regular grid cells.
"""

__version__ = "0.1.0"
