from immomatch.models import SharedProperty
from tests.conftest import MILAN_CENTER, MILAN_SQUARE


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_evaluate_endpoint(client):
    payload = {
        "property": {"price": 330000, "size": 100, "type": "appartamento", "rooms": 3, "location": MILAN_CENTER},
        "buyer": {"min_size": 100, "max_price": 300000, "property_type": "apartment", "rooms": 3,
                  "search_area": {"type": "Polygon", "coordinates": [MILAN_SQUARE]}},
    }
    response = client.post("/api/matching/evaluate", json=payload)
    assert response.status_code == 200
    data = response.json()
    assert data["is_match"] is True
    assert data["score"] == 90


def test_evaluate_endpoint_rejection(client):
    payload = {"property": {"price": 400000}, "buyer": {"max_price": 300000}}
    data = client.post("/api/matching/evaluate", json=payload).json()
    assert data == {"is_match": False, "score": 0, "reasons": data["reasons"]}


def test_evaluate_endpoint_validation(client):
    response = client.post("/api/matching/evaluate", json={"property": {"price": -1}, "buyer": {}})
    assert response.status_code == 422


def test_client_matches_and_cache(client, make_buyer, make_property, make_shared_property):
    buyer = make_buyer(max_price=400000)
    shared = make_shared_property(price=380000, agencies=[
        {"name": "Immobiliare.it", "link": "", "sourcePropertyId": 1},
        {"name": "Idealista", "link": "", "sourcePropertyId": 2},
    ], is_multiagency=True)
    private = make_property(address="Via Dante 3", price=300000, owner_type="private")

    response = client.get(f"/api/clients/{buyer.client_id}/matches")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    kinds = {item["kind"]: item for item in data["items"]}
    assert kinds["shared"]["shared_property"]["id"] == shared.id
    assert kinds["shared"]["shared_property"]["agencies"][1]["sourcePropertyId"] == 2
    assert kinds["private"]["property"]["id"] == private.id

    cache = client.get(f"/api/clients/{buyer.client_id}/matches/cache").json()
    assert len(cache["matches"]) == 2
    assert cache["last_updated"] is not None

    forced = client.get(f"/api/clients/{buyer.client_id}/matches", params={"force": True})
    assert forced.json()["total"] == 2

    cleared = client.delete(f"/api/clients/{buyer.client_id}/matches/cache").json()
    assert cleared["deleted"] == 2


def test_unknown_client_is_404(client):
    assert client.get("/api/clients/999/matches").status_code == 404
    assert client.get("/api/clients/999/matches/cache").status_code == 404


def test_buyer_and_property_directions(client, make_buyer, make_property):
    buyer = make_buyer(max_price=300000)
    prop = make_property(address="Via Roma 10", price=250000)

    properties = client.get(f"/api/buyers/{buyer.id}/properties").json()
    assert [p["id"] for p in properties] == [prop.id]

    buyers = client.get(f"/api/properties/{prop.id}/buyers").json()
    assert [c["id"] for c in buyers] == [buyer.client_id]

    assert client.get("/api/buyers/999/properties").status_code == 404
    assert client.get("/api/properties/999/buyers").status_code == 404


def test_deduplication_scan_and_shared_properties(client, db, make_property):
    make_property(address="Via Roma 10", price=500000, size=80, rooms=3, portal="Immobiliare.it")
    make_property(address="V. Roma 10", price=505000, size=81, rooms=3, portal="Idealista")

    response = client.post("/api/deduplication/scan")
    assert response.status_code == 200
    assert response.json()["shared_properties_created"] == 1

    status = client.get("/api/deduplication/status").json()
    assert status["is_running"] is False
    assert status["last_result"]["clusters_found"] == 1

    listing = client.get("/api/shared-properties").json()
    assert listing["total"] == 1
    shared_id = listing["items"][0]["id"]
    assert len(listing["items"][0]["agencies"]) == 2

    patched = client.patch(f"/api/shared-properties/{shared_id}", json={"is_ignored": True}).json()
    assert patched["is_ignored"] is True
    assert client.get("/api/shared-properties").json()["total"] == 0
    assert client.get("/api/shared-properties", params={"include_ignored": True}).json()["total"] == 1

    assert client.delete(f"/api/shared-properties/{shared_id}").status_code == 200
    assert client.get(f"/api/shared-properties/{shared_id}").status_code == 404
    assert db.query(SharedProperty).count() == 0


def test_deduplication_scan_conflict(client):
    from immomatch.services import deduplication

    assert deduplication._scan_lock.acquire(blocking=False)
    try:
        response = client.post("/api/deduplication/scan")
        assert response.status_code == 409
        background = client.post("/api/deduplication/scan/background").json()
        assert background["status"] == "already_running"
    finally:
        deduplication._scan_lock.release()
