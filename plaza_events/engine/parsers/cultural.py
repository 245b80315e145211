"""Parsers for the council cultural agenda in its JSON-LD, XML and CSV renditions."""

from __future__ import annotations

import csv
import io
import json
import re
from datetime import tzinfo
from typing import Any

from lxml import etree

from ..models import ParseResult
from .base import CulturalRecord, clean

JSON_TAG = "JSON"
XML_TAG = "XML"
CSV_TAG = "CSV"

CSV_PRIMARY_DELIMITER = ";"
CSV_FALLBACK_DELIMITER = ","
CSV_ENCODING = "cp1252"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")


# ----------------------------------------------------------------------
# JSON-LD
# ----------------------------------------------------------------------
def fix_json_newlines(data: bytes) -> bytes:
    """Escape raw CR/LF characters that appear inside JSON string literals.

    The upstream JSON occasionally embeds literal line breaks in
    descriptions, which strict decoders reject.
    """

    out = bytearray()
    in_string = False
    escaped = False
    for byte in data:
        if in_string:
            if escaped:
                escaped = False
            elif byte == 0x5C:  # backslash
                escaped = True
            elif byte == 0x22:  # quote
                in_string = False
            elif byte == 0x0A:
                out.extend(b"\\n")
                continue
            elif byte == 0x0D:
                out.extend(b"\\r")
                continue
        elif byte == 0x22:
            in_string = True
        out.append(byte)
    return bytes(out)


def distrito_from_uri(uri: object) -> str:
    """``.../Distrito/MoncloaAravaca`` -> ``MONCLOA-ARAVACA``."""

    segment = clean(uri).rstrip("/").rsplit("/", 1)[-1].strip()
    if not segment:
        return ""
    return _CAMEL_BOUNDARY.sub("-", segment).upper()


def _nested(item: dict, *keys: str) -> Any:
    current: Any = item
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _record_from_json(item: dict) -> CulturalRecord:
    return CulturalRecord(
        id_evento=item.get("id") or "",
        titulo=item.get("title") or "",
        descripcion=item.get("description") or "",
        fecha=item.get("dtstart") or "",
        fecha_fin=item.get("dtend") or "",
        hora=item.get("time") or "",
        nombre_instalacion=item.get("event-location") or "",
        direccion=_nested(item, "address", "area", "street-address") or "",
        distrito=distrito_from_uri(_nested(item, "address", "district", "@id") or ""),
        content_url=item.get("link") or "",
        latitud=_nested(item, "location", "latitude"),
        longitud=_nested(item, "location", "longitude"),
    )


def parse_json(payload: bytes, tz: tzinfo) -> ParseResult:
    result = ParseResult(source=JSON_TAG)
    try:
        document = json.loads(fix_json_newlines(payload).decode("utf-8", errors="replace"))
    except ValueError as exc:
        result.add_error(f"decoding JSON: {exc}")
        return result
    graph = document.get("@graph", []) if isinstance(document, dict) else []
    if not isinstance(graph, list):
        result.add_error("decoding JSON: @graph is not a list")
        return result

    for index, item in enumerate(graph):
        if not isinstance(item, dict):
            result.add_error("unexpected @graph entry", index=index)
            continue
        record = _record_from_json(item)
        try:
            result.events.append(record.to_event(tz, JSON_TAG))
        except ValueError as exc:
            result.add_error(str(exc), index=index, raw_data=record.raw_context)
    return result


# ----------------------------------------------------------------------
# XML
# ----------------------------------------------------------------------
_XML_FIELDS = {
    "ID-EVENTO": "id_evento",
    "TITULO": "titulo",
    "DESCRIPCION": "descripcion",
    "FECHA-EVENTO": "fecha",
    "FECHA": "fecha",
    "FECHA-FIN-EVENTO": "fecha_fin",
    "FECHA-FIN": "fecha_fin",
    "HORA-EVENTO": "hora",
    "HORA": "hora",
    "NOMBRE-INSTALACION": "nombre_instalacion",
    "DIRECCION": "direccion",
    "DISTRITO": "distrito",
    "DISTRITO-INSTALACION": "distrito",
    "CONTENT-URL": "content_url",
    "LATITUD": "latitud",
    "LONGITUD": "longitud",
}


def _flatten_atributos(node: etree._Element, into: dict[str, str]) -> None:
    for child in node.iterchildren("atributo"):
        name = child.get("nombre", "")
        if len(child):
            _flatten_atributos(child, into)
            continue
        if name and name not in into:
            into[name] = (child.text or "").strip()


def parse_xml(payload: bytes, tz: tzinfo) -> ParseResult:
    result = ParseResult(source=XML_TAG)
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(payload, parser=parser)
    except etree.XMLSyntaxError as exc:
        result.add_error(f"decoding XML: {exc}")
        return result

    for index, contenido in enumerate(root.iter("contenido")):
        values: dict[str, str] = {}
        atributos = contenido.find("atributos")
        if atributos is not None:
            _flatten_atributos(atributos, values)
        record = CulturalRecord()
        for wire_name, attr in _XML_FIELDS.items():
            if wire_name in values and not getattr(record, attr):
                setattr(record, attr, values[wire_name])
        try:
            result.events.append(record.to_event(tz, XML_TAG))
        except ValueError as exc:
            result.add_error(str(exc), index=index, raw_data=record.raw_context)
    return result


# ----------------------------------------------------------------------
# CSV
# ----------------------------------------------------------------------
_CSV_FIELDS = {
    "ID-EVENTO": "id_evento",
    "TITULO": "titulo",
    "DESCRIPCION": "descripcion",
    "FECHA": "fecha",
    "FECHA-FIN": "fecha_fin",
    "HORA": "hora",
    "NOMBRE-INSTALACION": "nombre_instalacion",
    "DIRECCION": "direccion",
    "DISTRITO-INSTALACION": "distrito",
    "CONTENT-URL": "content_url",
    "LATITUD": "latitud",
    "LONGITUD": "longitud",
}


def decode_csv(payload: bytes) -> str:
    text = payload.decode(CSV_ENCODING, errors="replace")
    # A UTF-8 BOM read as Windows-1252.
    for bom in ("\ufeff", "\u00ef\u00bb\u00bf"):
        if text.startswith(bom):
            text = text[len(bom):]
    return text


def _parse_csv_text(text: str, delimiter: str, tz: tzinfo) -> ParseResult:
    result = ParseResult(source=CSV_TAG)
    try:
        rows = list(csv.reader(io.StringIO(text), delimiter=delimiter))
    except csv.Error as exc:
        result.add_error(f"reading CSV: {exc}")
        return result
    if len(rows) < 2:
        result.add_error("CSV has no data rows")
        return result

    header = {name.strip(): position for position, name in enumerate(rows[0])}
    if "ID-EVENTO" not in header:
        result.add_error("missing ID-EVENTO column (wrong delimiter?)")
        return result

    for index, row in enumerate(rows[1:]):
        if not any(cell.strip() for cell in row):
            continue
        record = CulturalRecord()
        for column, attr in _CSV_FIELDS.items():
            position = header.get(column)
            if position is not None and position < len(row):
                setattr(record, attr, row[position])
        try:
            result.events.append(record.to_event(tz, CSV_TAG))
        except ValueError as exc:
            result.add_error(str(exc), index=index, raw_data=record.raw_context)
    return result


def parse_csv(payload: bytes, tz: tzinfo) -> ParseResult:
    """Parse with ``;`` and retry once with ``,`` if nothing but errors came out."""

    text = decode_csv(payload)
    result = _parse_csv_text(text, CSV_PRIMARY_DELIMITER, tz)
    if not result.events and result.errors:
        result = _parse_csv_text(text, CSV_FALLBACK_DELIMITER, tz)
    return result


__all__ = [
    "CSV_TAG",
    "JSON_TAG",
    "XML_TAG",
    "decode_csv",
    "distrito_from_uri",
    "fix_json_newlines",
    "parse_csv",
    "parse_json",
    "parse_xml",
]
