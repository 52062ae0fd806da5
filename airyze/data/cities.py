"""Major Pakistani cities tracked on the city board and used to resolve user cities."""

from __future__ import annotations

from typing import NamedTuple


class City(NamedTuple):
    name: str
    lat: float
    lon: float


CITIES: tuple[City, ...] = (
    City("Karachi", 24.8607, 67.0011),
    City("Lahore", 31.5204, 74.3587),
    City("Islamabad", 33.6844, 73.0479),
    City("Rawalpindi", 33.5651, 73.0169),
    City("Peshawar", 34.0151, 71.5249),
    City("Quetta", 30.1798, 66.9750),
    City("Faisalabad", 31.4504, 73.1350),
    City("Multan", 30.1575, 71.5249),
)


def find_city(name: str | None) -> City | None:
    """Case-insensitive lookup by city name."""
    if not name:
        return None
    wanted = name.strip().lower()
    for city in CITIES:
        if city.name.lower() == wanted:
            return city
    return None
