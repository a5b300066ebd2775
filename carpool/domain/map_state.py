"""
Map State Synchronizer
======================

Pure derivation of the renderable map from the two resolved places and the
current route.  Holds no state; the session calls ``derive`` after every
change and replaces its ``MapViewState`` wholesale.

Region policy
-------------
1. Route present      -- bounding box of the polyline, each side padded by
                         ``padding_ratio`` of the box span.
2. Exactly one place  -- a ``single_place_span_meters`` box centred on it.
3. Otherwise          -- ``None`` (the presentation keeps its default).
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from .distance import meters_to_lat_deg, meters_to_lng_deg
from .entities import (
    Annotation,
    Coordinate,
    MapRegion,
    MapViewState,
    ResolvedPlace,
    RouteResult,
)
from .enums import FieldId

# Smallest pad applied to a route box, in degrees (~100 m).
MIN_PADDING_DEG = 0.001


def derive(
    places: Mapping[FieldId, Optional[ResolvedPlace]],
    route: Optional[RouteResult],
    *,
    padding_ratio: float = 0.15,
    single_place_span_meters: float = 5_000.0,
) -> MapViewState:
    present = [
        (field_id, places[field_id])
        for field_id in FieldId
        if places.get(field_id) is not None
    ]
    annotations = tuple(
        Annotation(field=field_id, coordinate=place.coordinate, label=place.display_name)
        for field_id, place in present
    )

    region: Optional[MapRegion] = None
    overlay: Optional[tuple[Coordinate, ...]] = None
    if route is not None and route.polyline:
        overlay = route.polyline
        region = bounding_region(route.polyline, padding_ratio)
    elif len(present) == 1:
        region = region_around(present[0][1].coordinate, single_place_span_meters)

    return MapViewState(region=region, overlay=overlay, annotations=annotations)


def bounding_region(points: Sequence[Coordinate], padding_ratio: float) -> MapRegion:
    """Minimal box around *points*, expanded on every side."""
    lats = [p.latitude for p in points]
    lngs = [p.longitude for p in points]
    south, north = min(lats), max(lats)
    west, east = min(lngs), max(lngs)

    pad_lat = max((north - south) * padding_ratio, MIN_PADDING_DEG)
    pad_lng = max((east - west) * padding_ratio, MIN_PADDING_DEG)
    return MapRegion(
        south=max(-90.0, south - pad_lat),
        west=west - pad_lng,
        north=min(90.0, north + pad_lat),
        east=east + pad_lng,
    )


def region_around(center: Coordinate, span_meters: float) -> MapRegion:
    half_lat = meters_to_lat_deg(span_meters / 2)
    half_lng = meters_to_lng_deg(span_meters / 2, center.latitude)
    return MapRegion(
        south=center.latitude - half_lat,
        west=center.longitude - half_lng,
        north=center.latitude + half_lat,
        east=center.longitude + half_lng,
    )
