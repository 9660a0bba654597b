import json

import pytest
from fastapi.testclient import TestClient

from services.nav.fetcher import QuoteFetcher
from services.nav.main import create_app
from services.nav.service import QuoteService
from services.nav.tests.fakes import FakeFinnhub

PRICES = {"AAPL": 190.0, "MSFT": 420.0, "AMZN": 180.0, "GOOGL": 170.0, "NVDA": 900.0, "SPY": 520.25}


def _client(settings, fake):
    fetcher = QuoteFetcher(
        token=settings.finnhub_api_key,
        base_url=settings.finnhub_base_url,
        timeout=settings.fetch_timeout,
        retries=settings.fetch_retries,
        retry_delay=settings.fetch_retry_delay,
        client=fake.client(),
    )
    service = QuoteService(settings, fetcher=fetcher)
    return TestClient(create_app(settings, service))


def _expected_nav(settings):
    return round(10 * sum(PRICES[s] * w for s, w in settings.weights), 2)


def test_health_ok(settings):
    resp = _client(settings, FakeFinnhub(PRICES)).get("/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "OK"}


def test_nav_computed_and_persisted(settings):
    client = _client(settings, FakeFinnhub(PRICES))
    resp = client.get("/api/spy-nav")
    assert resp.status_code == 200
    assert resp.json() == {"nav": _expected_nav(settings)}

    history = client.get("/api/spy-history").json()
    assert len(history) == 1
    assert history[0]["nav"] == _expected_nav(settings)
    assert history[0]["time"].endswith("Z")


def test_nav_trailing_slash(settings):
    resp = _client(settings, FakeFinnhub(PRICES)).get("/api/spy-nav/")
    assert resp.status_code == 200
    assert resp.json()["nav"] == _expected_nav(settings)


def test_nav_failure_leaves_history_unchanged(settings):
    fake = FakeFinnhub(PRICES, fail_first={"MSFT": 99})
    client = _client(settings, fake)
    resp = client.get("/api/spy-nav")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Failed to compute NAV"
    assert "503" in body["details"]
    assert fake.calls["MSFT"] == settings.fetch_retries
    assert client.get("/api/spy-history").json() == []


def test_nav_still_returned_when_history_cannot_be_written(settings, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    settings = settings.model_copy(update={"history_file": str(blocker / "history.json")})
    resp = _client(settings, FakeFinnhub(PRICES)).get("/api/spy-nav")
    assert resp.status_code == 200
    assert resp.json() == {"nav": _expected_nav(settings)}


def test_missing_api_key_fails_fast(settings):
    settings = settings.model_copy(update={"finnhub_api_key": ""})
    fake = FakeFinnhub(PRICES)
    client = _client(settings, fake)
    for path in ("/api/spy-nav", "/api/spy-price"):
        resp = client.get(path)
        assert resp.status_code == 500
        assert resp.json()["error"] == "API key missing"
    assert fake.requests == []


def test_price(settings):
    resp = _client(settings, FakeFinnhub(PRICES)).get("/api/spy-price")
    assert resp.status_code == 200
    assert resp.json() == {"price": 520.25}


def test_price_does_not_touch_history(settings):
    client = _client(settings, FakeFinnhub(PRICES))
    client.get("/api/spy-price/")
    assert client.get("/api/spy-history").json() == []


def test_price_failure(settings):
    resp = _client(settings, FakeFinnhub({})).get("/api/spy-price")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to fetch SPY price", "details": "Invalid price data for SPY"}


def test_reset_history(settings):
    client = _client(settings, FakeFinnhub(PRICES))
    client.get("/api/spy-nav")
    client.get("/api/spy-nav")
    assert len(client.get("/api/spy-history").json()) == 2

    resp = client.delete("/api/spy-history")
    assert resp.status_code == 200
    assert resp.json() == {"message": "History reset"}
    assert client.get("/api/spy-history").json() == []


def test_corrupt_history_reported(settings):
    with open(settings.history_file, "w", encoding="utf-8") as f:
        f.write("[{broken")
    resp = _client(settings, FakeFinnhub(PRICES)).get("/api/spy-history")
    assert resp.status_code == 500
    assert resp.json()["error"] == "Failed to read history"


def test_history_served_in_stored_order(settings):
    rows = [{"time": f"2024-01-01T00:00:0{i}.000Z", "nav": 1000.0 + i} for i in range(3)]
    with open(settings.history_file, "w", encoding="utf-8") as f:
        json.dump(rows, f)
    resp = _client(settings, FakeFinnhub(PRICES)).get("/api/spy-history")
    assert resp.status_code == 200
    assert resp.json() == rows


def test_unknown_route_is_json_404(settings):
    resp = _client(settings, FakeFinnhub(PRICES)).get("/api/nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found"}


@pytest.mark.parametrize("origin,allowed", [("http://localhost:3000", True), ("https://evil.example", False)])
def test_cors_allow_list(settings, origin, allowed):
    resp = _client(settings, FakeFinnhub(PRICES)).get("/", headers={"Origin": origin})
    assert resp.status_code == 200
    assert (resp.headers.get("access-control-allow-origin") == origin) is allowed


def test_unexpected_error_keeps_json_shape(settings):
    class BrokenService(QuoteService):
        async def get_nav(self):
            raise RuntimeError("boom")

        async def get_price(self, symbol=None):
            raise RuntimeError("boom")

    client = TestClient(create_app(settings, BrokenService(settings)))
    nav = client.get("/api/spy-nav")
    assert nav.status_code == 500
    assert nav.json() == {"error": "Failed to compute NAV", "details": "boom"}
    price = client.get("/api/spy-price")
    assert price.status_code == 500
    assert price.json() == {"error": "Failed to fetch SPY price", "details": "boom"}


def test_bad_base_url_reported_as_json(settings):
    settings = settings.model_copy(update={"finnhub_base_url": "http://[not-a-host"})
    resp = TestClient(create_app(settings)).get("/api/spy-price")
    assert resp.status_code == 500
    assert resp.json()["error"] == "Failed to fetch SPY price"


def test_shutdown_closes_http_client(settings):
    service = QuoteService(settings)
    http_client = service.fetcher._get_client()
    with TestClient(create_app(settings, service)) as client:
        assert client.get("/").status_code == 200
    assert http_client.is_closed
    assert service.fetcher._client is None
