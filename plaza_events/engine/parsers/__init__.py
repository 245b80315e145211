"""Feed parsers turning raw payloads into canonical events plus per-record errors."""

from .city import CITY_TAG, parse_esmadrid
from .cultural import CSV_TAG, JSON_TAG, XML_TAG, parse_csv, parse_json, parse_xml

__all__ = [
    "CITY_TAG",
    "CSV_TAG",
    "JSON_TAG",
    "XML_TAG",
    "parse_csv",
    "parse_esmadrid",
    "parse_json",
    "parse_xml",
]
