"""Offline address → city key heuristic.

No network geocoding is performed. Accuracy is best effort: callers must
tolerate keys that are not in :data:`KNOWN_CITIES`.
"""

from __future__ import annotations

import re

# Road distances in km from the hub cities. Expanded into a symmetric
# table by :mod:`fastapi_reservations.distance`.
HUB_DISTANCES: dict[str, dict[str, int]] = {
    "paris": {
        "lyon": 465,
        "marseille": 775,
        "toulouse": 680,
        "nice": 930,
        "nantes": 380,
        "strasbourg": 490,
        "montpellier": 750,
        "bordeaux": 580,
        "lille": 225,
        "rennes": 350,
        "reims": 145,
        "toulon": 835,
        "grenoble": 570,
        "dijon": 315,
        "angers": 295,
        "nîmes": 715,
        "villeurbanne": 465,
        "clermont-ferrand": 420,
        "aix-en-provence": 775,
        "brest": 590,
    },
    "lyon": {
        "paris": 465,
        "marseille": 315,
        "toulouse": 540,
        "nice": 470,
        "nantes": 660,
        "strasbourg": 490,
        "montpellier": 300,
        "bordeaux": 560,
        "lille": 690,
        "rennes": 680,
        "reims": 490,
        "toulon": 390,
        "grenoble": 105,
        "dijon": 190,
        "angers": 580,
        "nîmes": 250,
        "villeurbanne": 10,
        "clermont-ferrand": 165,
        "aix-en-provence": 315,
        "brest": 850,
    },
    "marseille": {
        "paris": 775,
        "lyon": 315,
        "toulouse": 405,
        "nice": 200,
        "nantes": 900,
        "strasbourg": 800,
        "montpellier": 170,
        "bordeaux": 650,
        "lille": 1000,
        "rennes": 950,
        "reims": 800,
        "toulon": 65,
        "grenoble": 280,
        "dijon": 530,
        "angers": 820,
        "nîmes": 120,
        "villeurbanne": 315,
        "clermont-ferrand": 430,
        "aix-en-provence": 30,
        "brest": 1150,
    },
}

KNOWN_CITIES: frozenset[str] = frozenset(HUB_DISTANCES).union(
    *(destinations for destinations in HUB_DISTANCES.values())
)

CITY_ALIASES: dict[str, str] = {
    "aix": "aix-en-provence",
    "clermont": "clermont-ferrand",
    "saint-etienne": "saint-étienne",
}

_DIGITS = re.compile(r"[0-9]+")
_STREET_TYPES = re.compile(
    r"rue|avenue|boulevard|place|chemin|impasse|allée|bis|ter"
)
_PUNCTUATION = re.compile(r"[,.-]")


def _tokens(address: str) -> list[str]:
    cleaned = address.lower()
    cleaned = _DIGITS.sub("", cleaned)
    cleaned = _STREET_TYPES.sub("", cleaned)
    cleaned = _PUNCTUATION.sub(" ", cleaned)
    cleaned = cleaned.replace("france", "")
    return [word for word in cleaned.split() if len(word) > 2]


def extract_city_key(address: str | None) -> str:
    """Return a lowercase city key for a free-text address.

    Resolution order: exact token match, substring match in either
    direction, alias table, then the longest remaining token. Matching
    runs against every city of the table, destinations included.
    Returns an empty string for blank input.
    """
    if not address:
        return ""

    words = _tokens(address)

    for word in words:
        if word in KNOWN_CITIES:
            return word

    # Table order keeps the partial match deterministic.
    cities = sorted(KNOWN_CITIES)
    for word in words:
        for city in cities:
            if word in city or city in word:
                return city

    for word in words:
        if word in CITY_ALIASES:
            return CITY_ALIASES[word]

    longest = ""
    for word in words:
        if len(word) > len(longest):
            longest = word
    return longest
