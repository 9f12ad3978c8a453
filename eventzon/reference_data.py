"""Static Cameroon geography used by event forms and analytics filters."""

from typing import List, Optional

REGIONS = [
    {"name": "Adamaoua", "capital": "Ngaoundéré"},
    {"name": "Centre", "capital": "Yaoundé"},
    {"name": "Est", "capital": "Bertoua"},
    {"name": "Extrême-Nord", "capital": "Maroua"},
    {"name": "Littoral", "capital": "Douala"},
    {"name": "Nord", "capital": "Garoua"},
    {"name": "Nord-Ouest", "capital": "Bamenda"},
    {"name": "Ouest", "capital": "Bafoussam"},
    {"name": "Sud", "capital": "Ebolowa"},
    {"name": "Sud-Ouest", "capital": "Buea"},
]

# Major cities by region
CITIES = [
    {"name": "Yaoundé", "region": "Centre"},
    {"name": "Douala", "region": "Littoral"},
    {"name": "Garoua", "region": "Nord"},
    {"name": "Maroua", "region": "Extrême-Nord"},
    {"name": "Bamenda", "region": "Nord-Ouest"},
    {"name": "Bafoussam", "region": "Ouest"},
    {"name": "Ngaoundéré", "region": "Adamaoua"},
    {"name": "Bertoua", "region": "Est"},
    {"name": "Ebolowa", "region": "Sud"},
    {"name": "Buea", "region": "Sud-Ouest"},
    {"name": "Limbé", "region": "Sud-Ouest"},
    {"name": "Kumba", "region": "Sud-Ouest"},
    {"name": "Edéa", "region": "Littoral"},
    {"name": "Kribi", "region": "Sud"},
    {"name": "Dschang", "region": "Ouest"},
    {"name": "Mbouda", "region": "Ouest"},
    {"name": "Foumban", "region": "Ouest"},
    {"name": "Bafang", "region": "Ouest"},
    {"name": "Mbalmayo", "region": "Centre"},
    {"name": "Sangmélima", "region": "Sud"},
]


def get_regions() -> List[dict]:
    return [dict(region) for region in REGIONS]


def get_cities(region: Optional[str] = None) -> List[dict]:
    """Cities, optionally restricted to one region (case-insensitive)."""
    if region is None:
        return [dict(city) for city in CITIES]
    wanted = region.casefold()
    return [dict(city) for city in CITIES if city["region"].casefold() == wanted]
