"""
Geographic helpers for road graphs.

Coordinates are (lng, lat) pairs in degrees, the order used by GeoJSON.
"""

from typing import Tuple

import numpy as np

# Mean earth radius in kilometers (IUGG)
EARTH_RADIUS_KM = 6371.0088

Coordinate = Tuple[float, float]


def great_circle_km(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle (haversine) distance between two coordinates.

    Args:
        a: (lng, lat) of the first point
        b: (lng, lat) of the second point

    Returns:
        Distance in kilometers
    """
    lon1, lat1 = np.radians(a[0]), np.radians(a[1])
    lon2, lat2 = np.radians(b[0]), np.radians(b[1])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    s = np.sin(dlat / 2.0) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2.0) ** 2
    # Rounding can push s a hair above 1 for antipodal points
    s = min(float(s), 1.0)
    return float(2.0 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(s)))


def coordinate_id(coord: Coordinate, precision: int) -> str:
    """
    Derive a stable node id from a coordinate.

    Nearly identical coordinates from different segments collapse into the
    same id, which is how separate road polylines get joined at junctions.

    Args:
        coord: (lng, lat) pair
        precision: Number of decimals to keep

    Returns:
        Id of the form "lng,lat", e.g. "-0.12780,51.50740"
    """
    lng, lat = float(coord[0]), float(coord[1])
    return f"{lng:.{precision}f},{lat:.{precision}f}"


def coordinate_from_id(node_id: str) -> Coordinate:
    """Parse the (lng, lat) pair back out of a node id."""
    lng, lat = node_id.split(",")
    return (float(lng), float(lat))
