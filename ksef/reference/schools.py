"""
School -> zone -> sub-county -> county -> region mapping.

Introduces the zone level below sub-counties for the ranking report.
"""
from typing import List, NamedTuple, Optional


class SchoolMapping(NamedTuple):
    school: str
    zone: str
    sub_county: str
    county: str
    region: str


SCHOOL_MAPPINGS: List[SchoolMapping] = [
    # Coast
    SchoolMapping("Mombasa High", "Mvita Zone", "Mvita", "Mombasa", "Coast"),
    SchoolMapping("Kisauni Secondary School", "Kisauni North Zone", "Kisauni", "Mombasa", "Coast"),
    SchoolMapping("Frere Town Secondary", "Kisauni North Zone", "Kisauni", "Mombasa", "Coast"),
    SchoolMapping("Watamu Secondary", "Malindi East Zone", "Malindi", "Kilifi", "Coast"),

    # Central
    SchoolMapping("Alliance High School", "Kikuyu Central Zone", "Kikuyu", "Kiambu", "Central"),

    # Nyanza
    SchoolMapping("Maseno School", "Kisumu West Central", "Kisumu West", "Kisumu", "Nyanza"),

    # Rift Valley
    SchoolMapping("Kapsabet High School", "Emgwen Central Zone", "Emgwen", "Nandi", "Rift Valley"),

    # Nairobi
    SchoolMapping("Pangani Girls High School", "Starehe Central Zone", "Starehe", "Nairobi City", "Nairobi"),
    SchoolMapping("Kenya High School", "Langata South Zone", "Langata", "Nairobi City", "Nairobi"),
]

_BY_SCHOOL = {m.school: m for m in SCHOOL_MAPPINGS}


def get_school_mapping(school: str) -> Optional[SchoolMapping]:
    return _BY_SCHOOL.get(school)


def all_zones() -> List[str]:
    return list(dict.fromkeys(m.zone for m in SCHOOL_MAPPINGS))
