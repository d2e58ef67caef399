# tests/test_rest_client.py

from unittest.mock import MagicMock, patch

import pytest
import requests

from ekiden_client.auth import Auth
from ekiden_client.config import EkidenConfig
from ekiden_client.connection.rest_client import EkidenRESTClient
from ekiden_client.exceptions import (
    APIError,
    AuthError,
    RateLimitError,
    SerializationError,
    ServiceUnavailableError,
)
from ekiden_client.types import RequestConfig


def _response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def config():
    return EkidenConfig.new("https://api.example.com/api/v1").with_retry_delay(0).with_timeout(3.5)


@pytest.fixture
def client(config):
    return EkidenRESTClient(config)


def test_get_request_success(client):
    with patch.object(client.session, "request") as mock_request:
        mock_request.return_value = _response(payload=[{"symbol": "BTC-USDC"}])

        result = client.request("market_info", RequestConfig.get().with_query({"symbol": "BTC-USDC"}))

        assert result == [{"symbol": "BTC-USDC"}]
        args, kwargs = mock_request.call_args
        assert args == ("GET", "https://api.example.com/api/v1/market_info")
        assert kwargs["params"] == {"symbol": "BTC-USDC"}
        assert kwargs["timeout"] == pytest.approx(3.5)
        assert kwargs["json"] is None


def test_user_agent_from_config(config):
    client = EkidenRESTClient(config.with_user_agent("tests/2.0"))
    assert client.session.headers["User-Agent"] == "tests/2.0"


def test_post_sends_json_body(client):
    with patch.object(client.session, "request") as mock_request:
        mock_request.return_value = _response(payload={"token": "abc"})

        client.request("authorize", RequestConfig.post({"signature": "0x1", "public_key": "0x2"}))

        args, kwargs = mock_request.call_args
        assert args[0] == "POST"
        assert kwargs["json"] == {"signature": "0x1", "public_key": "0x2"}


def test_auth_required_attaches_bearer_token(config):
    client = EkidenRESTClient(config, auth=Auth(token="tok"))
    with patch.object(client.session, "request") as mock_request:
        mock_request.return_value = _response(payload=[])

        client.request("user/vaults", RequestConfig.get().with_auth().with_header("X-Trace", "1"))

        _, kwargs = mock_request.call_args
        assert kwargs["headers"] == {"X-Trace": "1", "Authorization": "Bearer tok"}


def test_auth_required_without_token_fails_before_sending(client):
    with patch.object(client.session, "request") as mock_request:
        with pytest.raises(AuthError, match="Not authenticated"):
            client.request("user/portfolio", RequestConfig.get().with_auth())
        mock_request.assert_not_called()


def test_rate_limit_error_is_not_retried(client):
    with patch.object(client.session, "request") as mock_request:
        mock_request.return_value = _response(status_code=429)

        with pytest.raises(RateLimitError):
            client.request("orders")
        assert mock_request.call_count == 1


@pytest.mark.parametrize("status", [401, 403])
def test_auth_status_maps_to_auth_error(client, status):
    with patch.object(client.session, "request") as mock_request:
        mock_request.return_value = _response(status_code=status, text="denied")
        with pytest.raises(AuthError):
            client.request("user/vaults")


def test_client_error_maps_to_api_error(client):
    with patch.object(client.session, "request") as mock_request:
        mock_request.return_value = _response(status_code=400, text="bad market")

        with pytest.raises(APIError) as excinfo:
            client.request("orders")

        assert excinfo.value.status == 400
        assert excinfo.value.message == "bad market"


def test_server_errors_are_retried_then_raised(client):
    with patch.object(client.session, "request") as mock_request, patch(
        "ekiden_client.connection.rest_client.time.sleep"
    ) as mock_sleep:
        mock_request.return_value = _response(status_code=503)

        with pytest.raises(ServiceUnavailableError):
            client.request("orders")

        assert mock_request.call_count == client.config.max_retries + 1
        assert mock_sleep.call_count == client.config.max_retries


def test_transient_failure_recovers(client):
    with patch.object(client.session, "request") as mock_request, patch(
        "ekiden_client.connection.rest_client.time.sleep"
    ):
        mock_request.side_effect = [
            requests.exceptions.Timeout("slow"),
            requests.exceptions.ConnectionError("reset"),
            _response(payload={"ok": True}),
        ]

        assert client.request("orders") == {"ok": True}
        assert mock_request.call_count == 3


def test_zero_retries_fails_fast(config):
    client = EkidenRESTClient(config.with_max_retries(0))
    with patch.object(client.session, "request") as mock_request:
        mock_request.side_effect = requests.exceptions.ConnectionError("down")
        with pytest.raises(ServiceUnavailableError, match="Network Error"):
            client.request("orders")
        assert mock_request.call_count == 1


def test_invalid_json_raises_serialization_error(client):
    with patch.object(client.session, "request") as mock_request:
        mock_request.return_value = _response(payload=ValueError("Expecting value"))
        with pytest.raises(SerializationError):
            client.request("orders")
