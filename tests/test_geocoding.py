"""Address to city key tests."""

import pytest

from fastapi_reservations.geocoding import KNOWN_CITIES, extract_city_key


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        ("12 rue de la République, 69002 Lyon", "lyon"),
        ("Paris", "paris"),
        ("5 avenue Jean Médecin, Nice, France", "nice"),
        ("Quai du Port, 13002 MARSEILLE", "marseille"),
    ],
)
def test_exact_city_token(address: str, expected: str) -> None:
    assert extract_city_key(address) == expected


def test_destination_cities_match_like_hubs() -> None:
    # The first token naming any table city wins, hub or not.
    assert extract_city_key("12 rue de Nice, Paris") == "nice"
    assert extract_city_key("Paris, 12 rue de Nice") == "paris"
    assert extract_city_key("Avenue de Dijon, Lyon") == "dijon"


def test_partial_match_returns_table_city() -> None:
    assert extract_city_key("3 cours Mirabeau, Aix") == "aix-en-provence"


def test_hyphenated_city_is_recovered() -> None:
    assert extract_city_key("Clermont-Ferrand") == "clermont-ferrand"


def test_unknown_address_falls_back_to_longest_word() -> None:
    assert extract_city_key("Tokyo Shibuya") == "shibuya"


@pytest.mark.parametrize("address", [None, ""])
def test_blank_address_returns_empty_key(address) -> None:
    assert extract_city_key(address) == ""


def test_only_short_words_returns_empty_key() -> None:
    assert extract_city_key("12 de la") == ""


def test_known_cities_include_hubs_and_destinations() -> None:
    assert {"paris", "lyon", "marseille", "brest", "dijon"} <= KNOWN_CITIES
