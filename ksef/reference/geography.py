"""
Static region -> county -> sub-county hierarchy.

Read-only reference data consumed by eligibility checks, registration
validation and the ranking roll-up.
"""
from typing import Dict, List, Optional, Tuple


KENYA_GEOGRAPHY: Dict[str, Dict[str, List[str]]] = {
    "Central": {
        "Kiambu": ["Gatundu North", "Gatundu South", "Githunguri", "Juja", "Kabete", "Kiambaa", "Kiambu Town", "Kikuyu", "Limuru", "Lari", "Ruiru", "Thika Town"],
        "Kirinyaga": ["Gichugu", "Mwea East", "Mwea West", "Kirinyaga Central", "Ndia"],
        "Murang'a": ["Kangema", "Mathioya", "Kiharu", "Kigumo", "Maragua", "Kandara", "Gatanga"],
        "Nyandarua": ["Kinangop", "Kipipiri", "Ndaragwa", "Ol Kalou", "Ol Jorok"],
        "Nyeri": ["Kieni East", "Kieni West", "Mathira East", "Mathira West", "Mukureini", "Nyeri Central", "Tetu", "Othaya"],
    },
    "Coast": {
        "Mombasa": ["Changamwe", "Jomvu", "Kisauni", "Nyali", "Likoni", "Mvita"],
        "Kwale": ["Kinango", "Lungalunga", "Matuga", "Msambweni"],
        "Kilifi": ["Kilifi North", "Kilifi South", "Kaloleni", "Rabai", "Malindi", "Magarini"],
        "Tana River": ["Bura", "Galole", "Garsen"],
        "Lamu": ["Lamu East", "Lamu West"],
        "Taita-Taveta": ["Taveta", "Voi", "Mwatate", "Wundanyi"],
    },
    "Eastern": {
        "Embu": ["Manyatta", "Runyenjes", "Mbeere North", "Mbeere South"],
        "Kitui": ["Kitui Central", "Kitui East", "Kitui Rural", "Kitui South", "Kitui West", "Mwingi Central", "Mwingi North", "Mwingi West"],
        "Machakos": ["Kangundo", "Kathiani", "Machakos Town", "Masinga", "Matungulu", "Mavoko", "Mwala", "Yatta"],
        "Makueni": ["Kaiti", "Kibwezi East", "Kibwezi West", "Kilome", "Makueni", "Mbooni"],
        "Meru": ["Buuri East", "Buuri West", "Igembe Central", "Igembe North", "Igembe South", "Imenti Central", "Imenti North", "Imenti South", "Tigania East", "Tigania West"],
        "Tharaka-Nithi": ["Maara", "Meru South (Chuka)", "Tharaka"],
        "Isiolo": ["Isiolo"],
        "Marsabit": ["Laisamis", "Moyale", "North Horr", "Saku"],
    },
    "Nairobi": {
        "Nairobi City": ["Dagoretti North", "Dagoretti South", "Embakasi Central", "Embakasi East", "Embakasi North", "Embakasi South", "Embakasi West", "Kamukunji", "Kasarani", "Kibra", "Lang'ata", "Makadara", "Mathare", "Roysambu", "Ruaraka", "Starehe", "Westlands"],
    },
    "North Eastern": {
        "Garissa": ["Balambala", "Dadaab", "Fafi", "Garissa Township", "Ijara", "Lagdera"],
        "Wajir": ["Eldas", "Tarbaj", "Wajir East", "Wajir North", "Wajir South", "Wajir West"],
        "Mandera": ["Banissa", "Lafey", "Mandera East", "Mandera North", "Mandera South", "Mandera West"],
    },
    "Nyanza": {
        "Kisumu": ["Kisumu Central", "Kisumu East", "Kisumu West", "Muhoroni", "Nyakach", "Nyando", "Seme"],
        "Siaya": ["Alego Usonga", "Bondo", "Gem", "Rarieda", "Ugenya", "Ugunja"],
        "Homa Bay": ["Homa Bay Town", "Kabondo Kasipul", "Karachuonyo", "Kasipul", "Mbita", "Ndhiwa", "Rangwe", "Suba"],
        "Migori": ["Awendo", "Kuria East", "Kuria West", "Rongo", "Suna East", "Suna West", "Uriri"],
        "Kisii": ["Bobasi", "Bomachoge Borabu", "Bomachoge Chache", "Bonchari", "Kitutu Chache North", "Kitutu Chache South", "Nyaribari Chache", "Nyaribari Masaba", "South Mugirango"],
        "Nyamira": ["Borabu", "Kitutu Masaba", "North Mugirango", "West Mugirango"],
    },
    "Rift Valley": {
        "Turkana": ["Turkana Central", "Turkana East", "Turkana North", "Turkana South", "Turkana West", "Loima"],
        "West Pokot": ["Kapenguria", "Kacheliba", "Pokot South", "Sigor"],
        "Samburu": ["Samburu East", "Samburu North", "Samburu West"],
        "Trans-Nzoia": ["Cherangany", "Endebess", "Kiminini", "Kwanza", "Saboti"],
        "Uasin Gishu": ["Ainabkoi", "Kapseret", "Kesses", "Moiben", "Soy", "Turbo"],
        "Elgeyo-Marakwet": ["Keiyo North", "Keiyo South", "Marakwet East", "Marakwet West"],
        "Nandi": ["Aldai", "Chesumei", "Emgwen", "Mosop", "Nandi Hills", "Tinderet"],
        "Baringo": ["Baringo Central", "Baringo North", "Baringo South", "Eldama Ravine", "Mogotio", "Tiaty"],
        "Laikipia": ["Laikipia East", "Laikipia North", "Laikipia West"],
        "Nakuru": ["Bahati", "Gilgil", "Kuresoi North", "Kuresoi South", "Molo", "Naivasha", "Nakuru Town East", "Nakuru Town West", "Njoro", "Rongai", "Subukia"],
        "Narok": ["Narok East", "Narok North", "Narok South", "Narok West", "Emurua Dikirr", "Kilgoris"],
        "Kajiado": ["Kajiado Central", "Kajiado East", "Kajiado North", "Kajiado South", "Kajiado West"],
        "Kericho": ["Ainamoi", "Belgut", "Bureti", "Kipkelion East", "Kipkelion West", "Sigowet-Soin"],
        "Bomet": ["Bomet Central", "Bomet East", "Chepalungu", "Konoin", "Sotik"],
    },
    "Western": {
        "Kakamega": ["Butere", "Ikolomani", "Khwisero", "Lugari", "Lurambi", "Malava", "Matungu", "Mumias East", "Mumias West", "Navakholo", "Shinyalu"],
        "Vihiga": ["Emuhaya", "Hamisi", "Luanda", "Sabatia", "Vihiga"],
        "Bungoma": ["Bumula", "Kabuchai", "Kanduyi", "Kimilili", "Mt. Elgon", "Sirisia", "Tongaren", "Webuye East", "Webuye West"],
        "Busia": ["Budalangi", "Butula", "Funyula", "Matayos", "Nambale", "Teso North", "Teso South"],
    },
}


def all_regions() -> List[str]:
    return list(KENYA_GEOGRAPHY.keys())


def counties_in_region(region: str) -> List[str]:
    return list(KENYA_GEOGRAPHY.get(region, {}).keys())


def all_counties() -> List[str]:
    return [county for counties in KENYA_GEOGRAPHY.values() for county in counties]


def sub_counties_in_county(county: str) -> List[str]:
    for counties in KENYA_GEOGRAPHY.values():
        if county in counties:
            return list(counties[county])
    return []


def sub_counties_in_region(region: str) -> List[str]:
    return [
        sub_county
        for sub_counties in KENYA_GEOGRAPHY.get(region, {}).values()
        for sub_county in sub_counties
    ]


def all_sub_counties() -> List[str]:
    # Sub-county names repeat across counties in a few places; keep first-seen order.
    seen = {}
    for counties in KENYA_GEOGRAPHY.values():
        for sub_counties in counties.values():
            for sub_county in sub_counties:
                seen.setdefault(sub_county, None)
    return list(seen)


def region_of_county(county: str) -> Optional[str]:
    for region, counties in KENYA_GEOGRAPHY.items():
        if county in counties:
            return region
    return None


def locate_sub_county(sub_county: str) -> Optional[Tuple[str, str]]:
    """Return (county, region) for the first county listing this sub-county."""
    for region, counties in KENYA_GEOGRAPHY.items():
        for county, sub_counties in counties.items():
            if sub_county in sub_counties:
                return county, region
    return None


def is_valid_location(region: str, county: str, sub_county: str) -> bool:
    return sub_county in KENYA_GEOGRAPHY.get(region, {}).get(county, [])
