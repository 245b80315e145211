"""Parser for the esmadrid.com tourism agenda (``serviceList`` XML)."""

from __future__ import annotations

from datetime import datetime, tzinfo
from html import unescape

from lxml import etree

from ..models import Event, ParseResult
from .base import end_of_day, parse_coordinate, validate_event

CITY_TAG = "ESMADRID"


def _text(node: etree._Element | None, path: str) -> str:
    if node is None:
        return ""
    found = node.find(path)
    if found is None:
        return ""
    return unescape("".join(found.itertext())).strip()


def _named_item(node: etree._Element | None, path: str, name: str) -> str:
    if node is None:
        return ""
    value = ""
    for item in node.findall(path):
        if item.get("name") == name:
            value = unescape("".join(item.itertext())).strip()
    return value


def parse_esmadrid_date(value: str, tz: tzinfo) -> datetime:
    """``DD/MM/YYYY`` at local midnight."""

    text = (value or "").strip()
    if not text:
        raise ValueError("empty date string")
    try:
        parsed = datetime.strptime(text, "%d/%m/%Y")
    except ValueError as exc:
        raise ValueError(f"invalid date format {text!r}, expected DD/MM/YYYY") from exc
    return parsed.replace(tzinfo=tz)


def service_to_event(service: etree._Element, tz: tzinfo) -> Event:
    basic = service.find("basicData")
    geo = service.find("geoData")
    extra = service.find("extradata")

    inicio = _text(extra, "fechas/rango/inicio")
    try:
        start = parse_esmadrid_date(inicio, tz)
    except ValueError as exc:
        raise ValueError(f"parsing start date {inicio!r}: {exc}") from exc
    try:
        end = end_of_day(parse_esmadrid_date(_text(extra, "fechas/rango/fin"), tz))
    except ValueError:
        end = end_of_day(start)

    event = Event(
        id=(service.get("id") or "").strip(),
        title=_text(basic, "title") or _text(basic, "name"),
        description=_text(basic, "body"),
        start_time=start,
        end_time=end,
        latitude=parse_coordinate(_text(geo, "latitude")),
        longitude=parse_coordinate(_text(geo, "longitude")),
        venue_name=_text(basic, "nombrert"),
        address=_text(geo, "address"),
        details_url=_text(basic, "web"),
        kind="city",
        category=_named_item(extra, "categorias/categoria/item", "Categoria"),
        subcategory=_named_item(
            extra, "categorias/categoria/subcategorias/subcategoria/item", "SubCategoria"
        ),
        price=_named_item(extra, "item", "Servicios de pago"),
        image_url=_text(service, "multimedia/media/url"),
        sources=[CITY_TAG],
    )
    validate_event(event)
    return event


def parse_esmadrid(payload: bytes, tz: tzinfo) -> ParseResult:
    result = ParseResult(source=CITY_TAG)
    parser = etree.XMLParser(resolve_entities=False, no_network=True, strip_cdata=True)
    try:
        root = etree.fromstring(payload, parser=parser)
    except etree.XMLSyntaxError as exc:
        result.add_error(f"decoding XML: {exc}")
        return result

    for index, service in enumerate(root.iter("service")):
        try:
            result.events.append(service_to_event(service, tz))
        except ValueError as exc:
            result.add_error(str(exc), index=index, raw_data=f"ID={service.get('id', '')}")
    return result


__all__ = ["CITY_TAG", "parse_esmadrid", "parse_esmadrid_date", "service_to_event"]
