"""Wind speed unit conversion."""

KPH_PER_MS = 3.6


def kph_to_ms(kph: float) -> float:
    """Convert km/h to m/s, rounded to two decimals for display."""
    return round(kph / KPH_PER_MS, 2)
