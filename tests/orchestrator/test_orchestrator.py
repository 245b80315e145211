from __future__ import annotations

import json

import httpx
import pytest

from plaza_events.config import CityEventsConfig, CulturalEventsConfig, FetchConfig
from plaza_events.engine.fetcher import Fetcher
from plaza_events.engine.grouping import THIS_WEEK, THIS_WEEKEND
from plaza_events.orchestrator import Orchestrator, SourceEndpoint

JSON_URL = "http://localhost:8001/agenda.json"
XML_URL = "http://localhost:8002/agenda.xml"
CSV_URL = "http://localhost:8003/agenda.csv"
CITY_URL = "http://localhost:8004/agenda_eventos.xml"

JSON_BODY = json.dumps(
    {
        "@graph": [
            {
                "id": "E1",
                "title": "Concierto",
                "dtstart": "2025-10-23 00:00:00.0",
                "time": "19:00",
                "location": {"latitude": 40.4234, "longitude": -3.7122},
            }
        ]
    }
).encode("utf-8")

XML_BODY = b"""<?xml version="1.0" encoding="UTF-8"?>
<Contenidos>
  <contenido>
    <atributos idioma="es">
      <atributo nombre="ID-EVENTO">E1</atributo>
      <atributo nombre="TITULO">Concierto</atributo>
      <atributo nombre="FECHA-EVENTO">2025-10-23 00:00:00.0</atributo>
      <atributo nombre="HORA-EVENTO">19:00</atributo>
      <atributo nombre="LOCALIZACION">
        <atributo nombre="DISTRITO">MONCLOA-ARAVACA</atributo>
      </atributo>
    </atributos>
  </contenido>
</Contenidos>
"""

CSV_BODY = "ID-EVENTO;TITULO;FECHA;HORA\r\nE1;Concierto;2025-10-23 00:00:00.0;19:00\r\n".encode("cp1252")

CITY_BODY = """<?xml version="1.0" encoding="UTF-8"?>
<serviceList>
  <service id="c1">
    <basicData><title><![CDATA[Cine de verano en Plaza de Espa&ntilde;a]]></title></basicData>
    <extradata><fechas><rango><inicio>24/10/2025</inicio><fin>24/10/2025</fin></rango></fechas></extradata>
  </service>
</serviceList>
""".encode("utf-8")

BODIES = {JSON_URL: JSON_BODY, XML_URL: XML_BODY, CSV_URL: CSV_BODY, CITY_URL: CITY_BODY}


@pytest.fixture(autouse=True)
def _network_allowed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PLAZAESPANA_NO_API", raising=False)


@pytest.fixture
def feed_config(sample_build_config):
    def _builder(**overrides):
        return sample_build_config(
            cultural=CulturalEventsConfig(json_url=JSON_URL, xml_url=XML_URL, csv_url=CSV_URL),
            city=CityEventsConfig(xml_url=CITY_URL),
            **overrides,
        )

    return _builder


def make_orchestrator(config, handler, sleeps=None) -> Orchestrator:
    fetcher = Fetcher.from_config(config.fetch, transport=httpx.MockTransport(handler))
    recorder = sleeps.append if sleeps is not None else (lambda _seconds: None)
    return Orchestrator(config, fetcher, sleep=recorder)


def serve(overrides=None):
    status = overrides or {}

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url in status:
            return httpx.Response(status[url])
        return httpx.Response(200, content=BODIES[url])

    return handler


def test_run_merges_sources_classifies_and_groups(feed_config, wednesday_noon) -> None:
    orchestrator = make_orchestrator(feed_config(), serve())
    result = orchestrator.run(now=wednesday_noon)
    orchestrator.close()

    (merged,) = result.cultural
    assert merged.sources == ["JSON", "XML", "CSV"]
    assert merged.district == "MONCLOA-ARAVACA"
    assert (merged.latitude, merged.longitude) == (40.4234, -3.7122)
    assert merged.decision.kept

    (city,) = result.city
    assert city.decision.multi_venue_kept
    assert {e.id for e in result.kept} == {"E1", "c1"}
    assert result.grouping.names_for("E1") == [THIS_WEEK]
    assert result.grouping.names_for("c1") == [THIS_WEEKEND]
    assert result.merge_stats.in_three_sources == 1
    assert result.parse_errors == []


def test_failed_source_becomes_parse_error_and_siblings_survive(feed_config, wednesday_noon) -> None:
    orchestrator = make_orchestrator(feed_config(), serve({XML_URL: 500}))
    result = orchestrator.run(now=wednesday_noon)
    orchestrator.close()

    (merged,) = result.cultural
    assert merged.sources == ["JSON", "CSV"]
    (error,) = result.parse_errors
    assert error.source == "XML"
    assert error.error == "HTTP 500"
    assert error.raw_data == XML_URL


def test_unexpected_parser_fault_is_contained(feed_config) -> None:
    orchestrator = make_orchestrator(feed_config(), serve())

    def explode(payload: bytes, tz) -> None:
        raise RuntimeError("boom")

    result = orchestrator.fetch_source(SourceEndpoint("XML", XML_URL, explode))
    orchestrator.close()

    assert result.events == []
    (error,) = result.errors
    assert error.error == "XML fetch fault: boom"


def test_inter_source_delay_between_cultural_fetches(feed_config, tmp_path) -> None:
    sleeps: list[float] = []
    config = feed_config(fetch=FetchConfig(cache_dir=tmp_path / "cache", min_delay_seconds=0.25))
    orchestrator = make_orchestrator(config, serve(), sleeps)
    ingestion = orchestrator.fetch_all()
    orchestrator.close()

    assert sleeps == [0.25, 0.25]
    assert list(ingestion.results) == ["JSON", "XML", "CSV"]
    assert len(ingestion.events) == 3


def test_no_delay_when_mode_delay_is_zero(feed_config) -> None:
    sleeps: list[float] = []
    orchestrator = make_orchestrator(feed_config(), serve(), sleeps)
    orchestrator.fetch_all()
    orchestrator.close()
    assert sleeps == []


def test_export_writes_both_audit_files(feed_config, wednesday_noon) -> None:
    config = feed_config()
    orchestrator = make_orchestrator(config, serve({CSV_URL: 429}))
    result = orchestrator.run(now=wednesday_noon)
    orchestrator.export(result)
    orchestrator.close()

    build_audit = json.loads(config.output.build_audit_path.read_text(encoding="utf-8"))
    assert build_audit["total_events"] == 2
    assert build_audit["build_time"] == wednesday_noon.isoformat()
    assert build_audit["parse_errors"][0]["error"] == "HTTP 429 (rate limited)"

    requests = json.loads(config.output.request_audit_path.read_text(encoding="utf-8"))
    assert [entry["url"] for entry in requests] == [JSON_URL, XML_URL, CSV_URL, CITY_URL]
    assert [entry["rate_limited"] for entry in requests] == [False, False, True, False]
