# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no imports from other project modules.

import math

import numpy as np


EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance(a, b) -> float:
    """Haversine distance in metres between two Coord-like objects."""
    return haversine_distance(a.lat, a.lon, b.lat, b.lon)


def haversine_to_many(lat: float, lon: float, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """
    Vectorised haversine from one point to every point of an array.

    Args:
        lat, lon:   Reference point in decimal degrees.
        lats, lons: Arrays of equal length in decimal degrees.

    Returns:
        Array of distances in metres, same length as the inputs.
    """
    d_lat = np.radians(lats - lat)
    d_lon = np.radians(lons - lon)
    a = (
        np.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat))
        * np.cos(np.radians(lats))
        * np.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def segment_lengths(lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Haversine length of every consecutive pair; one element shorter than the input."""
    if len(lats) < 2:
        return np.zeros(0, dtype=float)
    lat1, lat2 = lats[:-1], lats[1:]
    d_lat = np.radians(lat2 - lat1)
    d_lon = np.radians(lons[1:] - lons[:-1])
    a = (
        np.sin(d_lat / 2) ** 2
        + np.cos(np.radians(lat1))
        * np.cos(np.radians(lat2))
        * np.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
