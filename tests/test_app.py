"""Tests for Flask HTTP server.

Integration tests to verify Flask routes work correctly.
"""

from unittest.mock import Mock

import pytest

from src.app import create_app
from src.capacity import CapacityComputationError
from src.config import Config
from src.id_generator import ExhaustedAttempts, IDGenerator
from src.link_handler import LinkHandler, LinkHandlerError


class TestFlaskApp:
    """Integration tests for Flask application."""

    @pytest.fixture
    def config(self):
        """Create test configuration."""
        return Config(
            storage_path="/tmp/test_links",
            custom_domain="lytn.test.com",
            listen_port=8080,
        )

    @pytest.fixture
    def link_handler(self, temp_storage, counter_store, config):
        """Create link handler with temp storage."""
        return LinkHandler(
            storage=temp_storage,
            id_generator=IDGenerator(counter_store, seed="lytnit"),
            config=config,
        )

    @pytest.fixture
    def client(self, config, link_handler):
        """Create Flask test client."""
        flask_app = create_app(config, link_handler)
        flask_app.config["TESTING"] = True
        return flask_app.test_client()

    def test_health_check(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.data == b"OK\n"

    def test_warm_up(self, client):
        response = client.get("/api/v2/utility/warm-up")
        assert response.status_code == 200
        assert response.get_json() == {"status": "warm"}

    def test_create_link(self, client):
        response = client.post("/api/v2/links", json={"url": "https://example.com"})

        assert response.status_code == 200
        assert response.get_json() == {"id": "j", "url": "https://lytn.test.com/j"}

    def test_create_link_records_forwarded_ip(self, client, temp_storage):
        client.post(
            "/api/v2/links",
            json={"url": "https://example.com"},
            headers={"X-Forwarded-For": "203.0.113.9"},
        )

        assert temp_storage.get("j").ip == "203.0.113.9"

    def test_create_link_missing_url(self, client):
        response = client.post("/api/v2/links", json={})
        assert response.status_code == 400
        assert "required" in response.get_json()["error"]

    def test_create_link_non_json_body(self, client):
        response = client.post("/api/v2/links", data="https://example.com")
        assert response.status_code == 400

    def test_create_link_invalid_url(self, client):
        response = client.post("/api/v2/links", json={"url": "nonsense"})
        assert response.status_code == 400
        assert "requirements" in response.get_json()["error"]

    def test_create_link_exhausted_is_retryable(self, config):
        handler = Mock(spec=LinkHandler)
        handler.create_link.side_effect = ExhaustedAttempts(10)
        client = create_app(config, handler).test_client()

        response = client.post("/api/v2/links", json={"url": "https://example.com"})

        assert response.status_code == 503
        assert response.get_json()["retryable"] is True

    def test_create_link_fatal_allocation_error(self, config):
        handler = Mock(spec=LinkHandler)
        handler.create_link.side_effect = CapacityComputationError("bad iteration")
        client = create_app(config, handler).test_client()

        response = client.post("/api/v2/links", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert response.get_json()["retryable"] is False

    def test_create_link_save_failure(self, config):
        handler = Mock(spec=LinkHandler)
        handler.create_link.side_effect = LinkHandlerError("Failed to save link: x")
        client = create_app(config, handler).test_client()

        response = client.post("/api/v2/links", json={"url": "https://example.com"})

        assert response.status_code == 500

    def test_redirect(self, client):
        created = client.post("/api/v2/links", json={"url": "https://example.com/a"})
        link_id = created.get_json()["id"]

        response = client.get(f"/{link_id}")

        assert response.status_code == 302
        assert response.headers["Location"] == "https://example.com/a"

    def test_redirect_unknown_id(self, client):
        response = client.get("/zz")
        assert response.status_code == 404

    def test_redirect_malformed_id(self, client):
        response = client.get("/bad-id")
        assert response.status_code == 404

    def test_get_link_json(self, client):
        client.post("/api/v2/links", json={"url": "https://example.com/b"})

        response = client.get("/api/v2/links/j")

        assert response.status_code == 200
        assert response.get_json() == {"destination": "https://example.com/b"}

    def test_get_link_json_unknown(self, client):
        response = client.get("/api/v2/links/zz")
        assert response.status_code == 404

    def test_lookup_failure_returns_500(self, config):
        handler = Mock(spec=LinkHandler)
        handler.get_destination.side_effect = LinkHandlerError("locked")
        client = create_app(config, handler).test_client()

        assert client.get("/j").status_code == 500
        assert client.get("/api/v2/links/j").status_code == 500

    def test_report_link(self, client, temp_storage):
        client.post("/api/v2/links", json={"url": "https://example.com/scam"})

        response = client.post(
            "/api/v2/report",
            json={
                "shortId": "j",
                "reason": "fraud",
                "reporterEmail": "reporter@example.com",
                "url": "https://lytn.test.com/j",
            },
            headers={"X-Forwarded-For": "203.0.113.20"},
        )

        assert response.status_code == 200
        report = temp_storage.get_report(response.get_json()["id"])
        assert report.short_id == "j"
        assert report.reason == "fraud"
        assert report.destination_url == "https://example.com/scam"
        assert report.reporter_email == "reporter@example.com"
        assert report.reporter_ip == "203.0.113.20"
        assert report.status == "pending"

    def test_report_unknown_link(self, client):
        response = client.post(
            "/api/v2/report", json={"shortId": "zz", "reason": "spam"}
        )
        assert response.status_code == 404

    @pytest.mark.parametrize("body", [{}, {"reason": "spam"}, {"shortId": ""}])
    def test_report_missing_short_id(self, client, body):
        response = client.post("/api/v2/report", json=body)
        assert response.status_code == 400

    def test_report_non_json_body(self, client):
        response = client.post("/api/v2/report", data="shortId=j")
        assert response.status_code == 400

    def test_report_invalid_reason(self, client):
        client.post("/api/v2/links", json={"url": "https://example.com"})

        response = client.post(
            "/api/v2/report", json={"shortId": "j", "reason": "dislike"}
        )

        assert response.status_code == 400
        assert "reason" in response.get_json()["error"]

    def test_report_save_failure(self, config):
        handler = Mock(spec=LinkHandler)
        handler.report_link.side_effect = LinkHandlerError("Failed to save report: x")
        client = create_app(config, handler).test_client()

        response = client.post(
            "/api/v2/report", json={"shortId": "j", "reason": "spam"}
        )

        assert response.status_code == 500
