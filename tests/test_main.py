"""Tests for the HTTP request surface."""

import pytest

from affiliate_scout.main import create_app

from .fakes import FakeMarketplace, FakeProduct, FakeSessionFactory, FakeSessions, make_settings
from affiliate_scout.service import AffiliateSearchService


@pytest.fixture
def service():
    market = FakeMarketplace([
        FakeProduct(marker="k1", title="Kaos Polos Hitam", shop="Toko A", price=45000, sold=300),
        FakeProduct(marker="k2", title="Kaos Polos Putih", shop="Toko B", price=55000, sold=900),
    ])
    return AffiliateSearchService(make_settings(), FakeSessions(), FakeSessionFactory(market))


@pytest.fixture
def client(service):
    return create_app(service, rate_limit=0).test_client()


class TestScrapeEndpoint:
    """Tests for /scrape."""

    def test_get_query(self, client):
        resp = client.get("/scrape?product_name=kaos+polos")
        body = resp.get_json()

        assert resp.status_code == 200
        assert [r["product_name"] for r in body["results"]] == ["Kaos Polos Putih", "Kaos Polos Hitam"]
        assert body["results"][0]["affiliate_url"] == "https://aff.example.test/go/k2"

    def test_alias_q(self, client):
        body = client.get("/scrape?q=kaos&max_price=50000").get_json()
        assert [r["product_name"] for r in body["results"]] == ["Kaos Polos Hitam"]

    def test_missing_query(self, client):
        resp = client.get("/scrape")
        assert resp.status_code == 200
        assert resp.get_json()["results"] == []
        assert "product_name" in resp.get_json()["error"]

    def test_inverted_bounds(self, client):
        resp = client.get("/scrape?product_name=kaos&min_price=50000&max_price=10000")
        assert resp.status_code == 200
        assert resp.get_json() == {"error": "min_price must not be greater than max_price.", "results": []}

    def test_post_json(self, client):
        resp = client.post("/scrape", json={"query": "kaos polos", "min_price": "50000"})
        assert [r["product_name"] for r in resp.get_json()["results"]] == ["Kaos Polos Putih"]

    def test_post_form(self, client):
        resp = client.post("/scrape", data={"product_name": "kaos polos"})
        assert len(resp.get_json()["results"]) == 2

    def test_post_raw_text(self, client):
        resp = client.post("/scrape", data="kaos polos", content_type="text/plain")
        assert len(resp.get_json()["results"]) == 2

    def test_post_garbage_never_fails_transport(self, client):
        resp = client.post("/scrape", data=b"\x00\x01", content_type="application/octet-stream")
        assert resp.status_code == 200
        assert resp.get_json()["results"] == []

    def test_non_numeric_bounds_become_unbounded(self, client):
        body = client.get("/scrape?product_name=kaos&min_price=abc").get_json()
        assert len(body["results"]) == 2

    def test_rate_limit_embedded(self, service):
        client = create_app(service, rate_limit=1).test_client()
        headers = {"X-Forwarded-For": "203.0.113.77"}
        client.get("/scrape?product_name=kaos", headers=headers)
        resp = client.get("/scrape?product_name=kaos", headers=headers)

        assert resp.status_code == 200
        assert resp.get_json()["results"] == []
        assert "Rate limit" in resp.get_json()["error"]


class TestMetaEndpoints:
    """Tests for service info endpoints."""

    def test_index(self, client):
        assert client.get("/").get_json() == {"ok": True, "service": "accesstrade-scraper", "version": 2}

    def test_health(self, client):
        body = client.get("/health").get_json()
        assert body["status"] == "ok"
        assert body["uptime_sec"] >= 0

    def test_security_headers(self, client):
        resp = client.get("/version")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.get_json()["version"] == 2
