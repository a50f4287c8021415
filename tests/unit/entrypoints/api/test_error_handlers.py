"""Tests for the API error envelope."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from dojo.core.exceptions import JoinRejected


def _failing_client(api_client: TestClient) -> TestClient:
    async def broken() -> None:
        raise RuntimeError("connection pool exhausted")

    async def rejected() -> None:
        raise JoinRejected("domain mismatch")

    api_client.app.add_api_route("/extra/broken", broken)
    api_client.app.add_api_route("/extra/rejected", rejected)
    return TestClient(api_client.app, raise_server_exceptions=False)


class TestUnhandledErrors:
    """Tests for faults that are not DojoErrors."""

    def test_generic_internal_error(self, api_client: TestClient) -> None:
        """Unexpected exceptions answer with the generic 500 envelope."""
        client = _failing_client(api_client)

        with patch("dojo.entrypoints.api.app.logger") as logger:
            response = client.get("/extra/broken")

        assert response.status_code == 500
        assert response.json() == {
            "status": "error",
            "code": "internal_error",
            "message": "Something went wrong",
        }
        assert "connection pool" not in response.text
        logger.exception.assert_called_once_with(
            "unhandled_error", path="/extra/broken", error_type="RuntimeError"
        )


class TestErrorDetails:
    """Tests for extra fields on the envelope."""

    def test_join_rejected_reason(self, api_client: TestClient) -> None:
        """The failing eligibility check travels as ``reason``."""
        client = _failing_client(api_client)

        response = client.get("/extra/rejected")

        assert response.status_code == 403
        assert response.json() == {
            "status": "fail",
            "code": "join_rejected",
            "message": "Cannot join workspace: domain mismatch",
            "reason": "domain mismatch",
        }
