"""
Display policy for route metrics.

Durations
---------
* ``>= 3600 s`` -> whole hours + remaining minutes, e.g. ``"2 h 5 min"``
* ``<  3600 s`` -> whole minutes, e.g. ``"42 min"``

Seconds are truncated, never rounded up.

Distances
---------
Kilometres with two decimals, e.g. ``12345 m -> "12.35 km"``.
"""

SECONDS_PER_HOUR = 3600


def format_duration(seconds: float) -> str:
    total_minutes = int(max(0.0, seconds)) // 60
    if seconds >= SECONDS_PER_HOUR:
        hours, minutes = divmod(total_minutes, 60)
        return f"{hours} h {minutes} min"
    return f"{total_minutes} min"


def format_distance(meters: float) -> str:
    return f"{meters / 1000:.2f} km"
