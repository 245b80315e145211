from __future__ import annotations

from datetime import datetime

import pytest

from plaza_events.engine.parsers.city import parse_esmadrid, parse_esmadrid_date

ESMADRID_PAYLOAD = """<?xml version="1.0" encoding="UTF-8"?>
<serviceList>
  <service id="svc-1" fechaActualizacion="2025-10-01">
    <basicData>
      <name><![CDATA[Mercado navide&ntilde;o]]></name>
      <title><![CDATA[Mercado de Navidad en Plaza de Espa&ntilde;a]]></title>
      <body><![CDATA[<p>Puestos y actividades</p>]]></body>
      <web>https://www.esmadrid.com/agenda/mercado</web>
      <idrt>77</idrt>
      <nombrert><![CDATA[Plaza de Espa&ntilde;a]]></nombrert>
    </basicData>
    <geoData>
      <address>Plaza de España, s/n</address>
      <latitude>40.4233</latitude>
      <longitude>-3.7122</longitude>
    </geoData>
    <multimedia>
      <media><url>https://img.esmadrid.com/mercado.jpg</url></media>
    </multimedia>
    <extradata>
      <categorias>
        <categoria>
          <item name="Categoria">Ferias</item>
          <subcategorias>
            <subcategoria><item name="SubCategoria">Mercadillos</item></subcategoria>
          </subcategorias>
        </categoria>
      </categorias>
      <item name="Servicios de pago">Gratuito</item>
      <fechas>
        <rango><inicio>28/11/2025</inicio><fin>05/01/2026</fin></rango>
      </fechas>
    </extradata>
  </service>
  <service id="svc-2">
    <basicData><name>Sin titulo</name></basicData>
    <geoData><latitude>n/a</latitude><longitude></longitude></geoData>
    <extradata><fechas><rango><inicio>01/12/2025</inicio></rango></fechas></extradata>
  </service>
  <service id="svc-3">
    <basicData><title>Fecha rota</title></basicData>
    <extradata><fechas><rango><inicio>2025-12-01</inicio></rango></fechas></extradata>
  </service>
</serviceList>
""".encode("utf-8")


def test_service_fields_are_unescaped_and_mapped(madrid) -> None:
    result = parse_esmadrid(ESMADRID_PAYLOAD, madrid)

    event = next(e for e in result.events if e.id == "svc-1")
    assert event.kind == "city"
    assert event.title == "Mercado de Navidad en Plaza de España"
    assert event.venue_name == "Plaza de España"
    assert event.category == "Ferias"
    assert event.subcategory == "Mercadillos"
    assert event.price == "Gratuito"
    assert event.image_url == "https://img.esmadrid.com/mercado.jpg"
    assert event.details_url == "https://www.esmadrid.com/agenda/mercado"
    assert event.start_time == datetime(2025, 11, 28, tzinfo=madrid)
    assert event.end_time == datetime(2026, 1, 5, 23, 59, tzinfo=madrid)
    assert event.sources == ["ESMADRID"]


def test_title_falls_back_to_name_and_bad_coordinates_are_zero(madrid) -> None:
    result = parse_esmadrid(ESMADRID_PAYLOAD, madrid)

    event = next(e for e in result.events if e.id == "svc-2")
    assert event.title == "Sin titulo"
    assert (event.latitude, event.longitude) == (0.0, 0.0)
    assert event.end_time == datetime(2025, 12, 1, 23, 59, tzinfo=madrid)


def test_unparseable_start_date_is_a_parse_error(madrid) -> None:
    result = parse_esmadrid(ESMADRID_PAYLOAD, madrid)

    (error,) = result.errors
    assert error.source == "ESMADRID"
    assert error.index == 2
    assert error.raw_data == "ID=svc-3"
    assert "DD/MM/YYYY" in error.error


def test_parse_esmadrid_date_rejects_empty(madrid) -> None:
    with pytest.raises(ValueError):
        parse_esmadrid_date("", madrid)
