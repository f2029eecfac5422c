"""
Нормализация адресов и названий агентств для дедупликации.
Правила заточены под итальянские адреса; алгоритм кластеризации от них не зависит.
"""
import re
import unicodedata
from typing import Iterable, List, Optional

from immomatch.config import get_settings

# Сокращения с точками раскрываются до удаления пунктуации
DOTTED_ABBREVIATIONS = [
    (r"\bc\.\s*so\b", "corso"),
    (r"\bv\.\s*le\b", "viale"),
    (r"\bp\.\s*zz?a\b", "piazza"),
    (r"\bp\.\s*le\b", "piazzale"),
    (r"\bl\.\s*go\b", "largo"),
    (r"\bv\.\s*lo\b", "vicolo"),
    (r"\bstr\.\s*", "strada "),
    (r"\bv\.\s*", "via "),
]

TOKEN_ABBREVIATIONS = {
    "v": "via",
    "vle": "viale",
    "cso": "corso",
    "pza": "piazza",
    "pzza": "piazza",
    "ple": "piazzale",
    "lgo": "largo",
    "vlo": "vicolo",
    "str": "strada",
}

LEGAL_SUFFIXES = {"srl", "srls", "spa", "sas", "snc", "sa", "ltd"}

_PUNCTUATION = re.compile(r"[^\w\s]")
_POSTAL_CODE = re.compile(r"\b\d{5}\b")
_PROVINCE_TAG = re.compile(r"\(\s*[a-z]{2}\s*\)")
_HOUSE_NUMBER = re.compile(r"\b\d+\s*[a-z]?\b")


def strip_accents(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def normalize_address(address: Optional[str], city_names: Optional[Iterable[str]] = None) -> str:
    """
    Приводит адрес к каноническому виду:
    нижний регистр, без диакритики и пунктуации, сокращения раскрыты
    ("v." -> "via", "vle" -> "viale", "c.so" -> "corso"), без CAP, провинции
    и названия города в начале или в конце.
    """
    if not address:
        return ""
    if city_names is None:
        city_names = get_settings().dedup_city_names

    value = strip_accents(address.lower())
    value = _PROVINCE_TAG.sub(" ", value)
    for pattern, replacement in DOTTED_ABBREVIATIONS:
        value = re.sub(pattern, replacement, value)
    value = _PUNCTUATION.sub(" ", value)
    value = _POSTAL_CODE.sub(" ", value)

    cities = {strip_accents(c.lower()) for c in city_names}
    tokens = [TOKEN_ABBREVIATIONS.get(token, token) for token in value.split()]
    # Город убирается только с краев: "via roma 10" остается как есть
    start, end = 0, len(tokens)
    while start < end and tokens[start] in cities:
        start += 1
    while end > start and tokens[end - 1] in cities:
        end -= 1
    return " ".join(tokens[start:end] or tokens)


def address_house_numbers(normalized_address: str) -> List[str]:
    """Номера домов из нормализованного адреса ("via roma 10 a" -> ["10a"])"""
    return [m.group(0).replace(" ", "") for m in _HOUSE_NUMBER.finditer(normalized_address)]


def is_generic_address(address: Optional[str]) -> bool:
    """Адрес без номера дома или состоящий только из названия города непригоден для склейки"""
    if not address or not address.strip():
        return True
    normalized = normalize_address(address)
    if len(normalized) < 5:
        return True
    return not address_house_numbers(normalized)


def normalize_agency_name(name: Optional[str]) -> str:
    """
    Нормализует название агентства: "Tecnocasa S.r.l." и "tecnocasa srl" -> "tecnocasa".
    """
    if not name:
        return ""
    value = strip_accents(name.lower())
    # Точки внутри аббревиатур склеиваются: s.r.l. -> srl
    value = value.replace(".", "")
    value = _PUNCTUATION.sub(" ", value)
    tokens = [token for token in value.split() if token not in LEGAL_SUFFIXES]
    return " ".join(tokens)
