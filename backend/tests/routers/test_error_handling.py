# tests/routers/test_error_handling.py
"""
Integration tests for error handling across all API endpoints.

These tests verify:
- Consistent error response format (ErrorDetail schema)
- Correct HTTP status codes for each domain exception
- Correlation ID headers in error responses
- Validation error details
- Health check behavior when storage is not configured
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from price_history.dependencies import get_coverage_analyzer, get_position_service, get_sync_service
from price_history.main import app
from price_history.services.coverage import CoverageAnalyzer
from price_history.services.exceptions import (
    ConfigError,
    FetchError,
    MarketDataError,
    ParseError,
    ProviderUnavailableError,
    ServiceError,
    UnsupportedExchangeError,
)
from price_history.services.market_data.sync_service import PriceSyncService
from price_history.services.positions import PositionService


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def mock_sync_service():
    return MagicMock(spec=PriceSyncService)


@pytest.fixture(scope="function")
def client(mock_sync_service, storage) -> TestClient:
    """Create TestClient with a mocked sync service."""
    app.dependency_overrides[get_sync_service] = lambda: mock_sync_service

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


def assert_error_format(data: dict) -> None:
    """Every error response carries error, message and details."""
    assert set(data) == {"error", "message", "details"}
    assert isinstance(data["error"], str)
    assert isinstance(data["message"], str)


# =============================================================================
# DOMAIN EXCEPTION MAPPING
# =============================================================================

class TestDomainErrors:
    """Each service exception maps to one status code."""

    @pytest.mark.parametrize("error,status_code,error_type", [
        (FetchError("yahoo", "AAPL", "HTTP 500: boom", status_code=500), 502, "FetchError"),
        (ProviderUnavailableError("yahoo", "AAPL", "timeout"), 503, "ProviderUnavailableError"),
        (UnsupportedExchangeError("0700:HKEX", "HKEX"), 422, "UnsupportedExchangeError"),
        (MarketDataError("unexpected", provider="yahoo"), 500, "MarketDataError"),
        (ParseError("Invalid JSON in transactions.json", source="transactions.json"), 400, "ParseError"),
        (ConfigError("STORAGE_ROOT is not writable", setting="storage_root"), 500, "ConfigError"),
        (ServiceError("something broke"), 500, "ServiceError"),
    ])
    def test_mapping(self, client, mock_sync_service, error, status_code, error_type):
        mock_sync_service.sync_all.side_effect = error

        response = client.post("/sync")

        assert response.status_code == status_code
        data = response.json()
        assert_error_format(data)
        assert data["error"] == error_type
        assert data["message"] == str(error)

    def test_fetch_error_details(self, client, mock_sync_service):
        mock_sync_service.sync_symbol.side_effect = FetchError(
            "yahoo", "AAPL", "HTTP 404: No data found", status_code=404
        )

        response = client.post("/sync/symbols/NASDAQ:AAPL")

        assert response.json()["details"] == {
            "provider": "yahoo",
            "symbol": "AAPL",
            "status_code": 404,
        }

    def test_parse_error_from_timeline(self, client):
        service = MagicMock(spec=PositionService)
        service.timeline_for_symbol.side_effect = ParseError(
            "Unrecognized date 'bad'", value="bad", source="AAPL"
        )
        app.dependency_overrides[get_position_service] = lambda: service

        response = client.get("/positions/AAPL/timeline")

        assert response.status_code == 400
        assert response.json()["details"] == {"value": "bad", "source": "AAPL"}

    def test_unconfigured_storage(self, client):
        analyzer = MagicMock(spec=CoverageAnalyzer)
        analyzer.compute.side_effect = ConfigError("STORAGE_ROOT is not configured", setting="storage_root")
        app.dependency_overrides[get_coverage_analyzer] = lambda: analyzer

        response = client.get("/coverage")

        assert response.status_code == 500
        assert response.json()["details"] == {"setting": "storage_root"}


# =============================================================================
# HTTP AND VALIDATION ERRORS
# =============================================================================

class TestHttpErrors:
    """Framework errors use the same format."""

    def test_unknown_route(self, client):
        response = client.get("/does-not-exist")

        assert response.status_code == 404
        assert_error_format(response.json())
        assert response.json()["error"] == "NotFoundError"

    def test_method_not_allowed(self, client):
        response = client.delete("/sync")

        assert response.status_code == 405
        assert response.json()["error"] == "MethodNotAllowedError"

    def test_validation_error_details(self, client):
        response = client.post("/sync", json={"refresh_recent": "not-a-bool"})

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "ValidationError"
        assert data["details"]["errors"][0]["field"] == "body.refresh_recent"


class TestCorrelationIdOnErrors:
    """Error responses still carry the correlation ID."""

    def test_header_on_error(self, client, mock_sync_service):
        mock_sync_service.sync_all.side_effect = ProviderUnavailableError("yahoo", "AAPL", "timeout")

        response = client.post("/sync", headers={"X-Correlation-ID": "trace-503"})

        assert response.status_code == 503
        assert response.headers["X-Correlation-ID"] == "trace-503"


# =============================================================================
# HEALTH CHECK
# =============================================================================

class TestHealthCheck:
    """Tests for GET /health."""

    def test_healthy(self, client, storage):
        with patch("price_history.main.get_file_storage", return_value=storage):
            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["storage"]["root"] == str(storage.root)

    def test_unconfigured_storage_is_unhealthy(self, client):
        error = ConfigError("STORAGE_ROOT is not configured", setting="storage_root")
        with patch("price_history.main.get_file_storage", side_effect=error):
            response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert "STORAGE_ROOT" in data["checks"]["storage"]["error"]
