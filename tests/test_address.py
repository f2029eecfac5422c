import pytest

from immomatch.services.address import (
    address_house_numbers,
    is_generic_address,
    normalize_address,
    normalize_agency_name,
)


@pytest.mark.parametrize("raw,expected", [
    ("Via Roma, 10", "via roma 10"),
    ("V. Roma 10", "via roma 10"),
    ("v.le Monza 25, 20127 Milano (MI)", "viale monza 25"),
    ("C.so Buenos Aires 3", "corso buenos aires 3"),
    ("P.zza Duomo 1", "piazza duomo 1"),
    ("Piazzale Loreto 4", "piazzale loreto 4"),
    ("Vle Piave 12", "viale piave 12"),
    ("Città Studi 7", "citta studi 7"),
])
def test_normalize_address(raw, expected):
    assert normalize_address(raw, city_names=["milano"]) == expected


def test_city_only_address_is_kept():
    assert normalize_address("Milano", city_names=["milano"]) == "milano"


def test_normalize_empty():
    assert normalize_address(None) == ""
    assert normalize_address("") == ""


def test_house_numbers():
    assert address_house_numbers("via roma 10") == ["10"]
    assert address_house_numbers("via roma 10 a") == ["10a"]
    assert address_house_numbers("via roma") == []


@pytest.mark.parametrize("address,expected", [
    (None, True),
    ("   ", True),
    ("Milano", True),
    ("Via Roma", True),
    ("Via Roma 10", False),
])
def test_is_generic_address(address, expected):
    assert is_generic_address(address) is expected


@pytest.mark.parametrize("raw,expected", [
    ("Tecnocasa S.r.l.", "tecnocasa"),
    ("tecnocasa srl", "tecnocasa"),
    ("TECNOCASA", "tecnocasa"),
    ("Gabetti S.p.A.", "gabetti"),
    ("Immobiliare.it", "immobiliareit"),
    (None, ""),
])
def test_normalize_agency_name(raw, expected):
    assert normalize_agency_name(raw) == expected


def test_street_named_after_city_is_kept():
    assert normalize_address("Via Roma 10, Roma", city_names=["roma"]) == "via roma 10"
    assert normalize_address("Milano, Via Torino 3", city_names=["milano", "torino"]) == "via torino 3"
