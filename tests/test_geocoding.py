import httpx
import pytest

from immomatch.services.geocoding import GeocodingError, GeocodingService


def _service(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url="https://geo.test")
    return GeocodingService(client=client, request_delay=0)


def test_geocode_parses_first_result():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"lat": "45.4642", "lon": "9.1900", "display_name": "Via Roma 10"}])

    service = _service(handler)
    location = service.geocode("Via Roma 10", "Milano")

    assert location == {"lat": 45.4642, "lng": 9.19}
    assert seen[0].url.path == "/search"
    assert seen[0].url.params["q"] == "Via Roma 10, Milano"
    assert seen[0].url.params["countrycodes"] == "it"
    assert seen[0].headers["user-agent"].startswith("immomatch")


def test_geocode_caches_by_normalized_address():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=[{"lat": "45.0", "lon": "9.0"}])

    service = _service(handler)
    service.geocode("Via Roma 10", "Milano")
    service.geocode("via roma, 10", "milano")
    assert len(calls) == 1


def test_geocode_not_found():
    service = _service(lambda request: httpx.Response(200, json=[]))
    assert service.geocode("Via Inesistente 1") is None


def test_geocode_blank_address_skips_request():
    def handler(request):
        raise AssertionError("no request expected")

    assert _service(handler).geocode("   ") is None


def test_geocode_http_error():
    service = _service(lambda request: httpx.Response(503))
    with pytest.raises(GeocodingError):
        service.geocode("Via Roma 10")


def test_geocode_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GeocodingError):
        _service(handler).geocode("Via Roma 10")


def test_geocode_missing_locations(db, make_property):
    found = make_property(address="Via Roma 10", city="Milano")
    missing = make_property(address="Via Inesistente 1", city="Milano")
    located = make_property(address="Via Po 1", location={"lat": 45.0, "lng": 9.0})

    def handler(request):
        if "Inesistente" in request.url.params["q"]:
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=[{"lat": "45.4642", "lon": "9.19"}])

    results = _service(handler).geocode_missing_locations(db)

    assert results == {"processed": 2, "geocoded": 1, "failed": 1}
    db.refresh(found)
    db.refresh(missing)
    db.refresh(located)
    assert found.location == {"lat": 45.4642, "lng": 9.19}
    assert found.geocode_status == "success"
    assert missing.geocode_status == "failed"
    assert located.location == {"lat": 45.0, "lng": 9.0}


def test_geocode_missing_locations_counts_errors_and_continues(db, make_property):
    first = make_property(address="Via Roma 10")
    second = make_property(address="Via Po 2")

    def handler(request):
        if "Roma" in request.url.params["q"]:
            return httpx.Response(500)
        return httpx.Response(200, json=[{"lat": "45.1", "lon": "9.1"}])

    results = _service(handler).geocode_missing_locations(db)

    assert results == {"processed": 2, "geocoded": 1, "failed": 1}
    db.refresh(first)
    db.refresh(second)
    assert first.geocode_status == "pending"
    assert second.geocode_status == "success"
