"""
Enumerations shared by listings, requests and matches.
"""

from typing import Dict, Literal


Category = Literal["books", "cycles", "electronics", "hostel-items"]
CampusLocation = Literal["library", "canteen", "department", "hostel", "main-gate"]

CATEGORY_LABELS: Dict[str, str] = {
    "books": "Books",
    "cycles": "Cycles",
    "electronics": "Electronics",
    "hostel-items": "Hostel Items",
}

LOCATION_LABELS: Dict[str, str] = {
    "library": "Library",
    "canteen": "Canteen",
    "department": "Department",
    "hostel": "Hostel",
    "main-gate": "Main Gate",
}


def location_label(location: str | None) -> str:
    if not location:
        return ""
    return LOCATION_LABELS.get(location, location)
