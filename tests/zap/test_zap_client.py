import pytest
import requests
from unittest.mock import Mock, patch

from af_roundtrip.exceptions import ContextNotFoundError, ZapApiError, ZapConnectionError
from af_roundtrip.zap.client import ZapApiClient, parse_list, unwrap


class TestParseList:
    def test_json_array(self):
        assert parse_list(["a", "b"]) == ["a", "b"]

    def test_bracketed_string(self):
        assert parse_list("[Default Context, basic-auth]") == ["Default Context", "basic-auth"]

    def test_empty_values(self):
        assert parse_list(None) == []
        assert parse_list("[]") == []
        assert parse_list("") == []

    def test_regexes_keep_commas_without_space(self):
        assert parse_list("[https://a.com/x{1,3}.*]") == ["https://a.com/x{1,3}.*"]


def test_unwrap_nested_and_flat():
    assert unwrap({"method": {"methodName": "x"}}, "method") == {"methodName": "x"}
    assert unwrap({"methodName": "x"}, "method") == {"methodName": "x"}


class TestZapApiClient:
    def test_api_key_header_set(self, zap_client, http_session):
        assert http_session.headers["X-ZAP-API-Key"] == "secret"

    def test_no_api_key_header_without_key(self, http_session):
        ZapApiClient("http://zap:8080", session=http_session)

        assert "X-ZAP-API-Key" not in http_session.headers

    def test_view_builds_url_and_params(self, zap_client, http_session, make_response):
        http_session.get.return_value = make_response({"version": "2.14.0"})

        result = zap_client.view("core", "version")

        assert result == {"version": "2.14.0"}
        http_session.get.assert_called_once_with(
            "http://zap:8080/JSON/core/view/version/", params={}, timeout=30.0
        )

    def test_action_drops_none_params(self, zap_client, http_session, make_response):
        http_session.get.return_value = make_response({"Result": "OK"})

        zap_client.action("context", "removeContext", contextName="ctx", other=None)

        args, kwargs = http_session.get.call_args
        assert args[0] == "http://zap:8080/JSON/context/action/removeContext/"
        assert kwargs["params"] == {"contextName": "ctx"}

    def test_context_not_found_error(self, zap_client, http_session, make_response):
        http_session.get.return_value = make_response(
            {"code": "context_not_found", "message": "Context Not Found"}, status_code=400
        )

        with pytest.raises(ContextNotFoundError) as exc_info:
            zap_client.view("context", "context", contextName="missing")

        assert exc_info.value.code == "context_not_found"
        assert "Context Not Found" in str(exc_info.value)

    def test_other_api_error(self, zap_client, http_session, make_response):
        http_session.get.return_value = make_response(
            {"code": "illegal_parameter", "message": "Illegal Parameter"}, status_code=400
        )

        with pytest.raises(ZapApiError) as exc_info:
            zap_client.action("context", "importContext", contextFile="/x")

        assert not isinstance(exc_info.value, ContextNotFoundError)
        assert exc_info.value.code == "illegal_parameter"

    def test_non_json_body(self, zap_client, http_session, make_response):
        http_session.get.return_value = make_response(status_code=502, text="Bad Gateway")

        with pytest.raises(ZapApiError, match="non-JSON"):
            zap_client.view("core", "version")

    @patch("af_roundtrip.retry.time.sleep")
    def test_connection_error_retried_then_raised(self, mock_sleep, zap_client, http_session):
        http_session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ZapConnectionError, match="Could not reach ZAP"):
            zap_client.view("core", "version")

        assert http_session.get.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("af_roundtrip.retry.time.sleep")
    def test_connection_error_recovers(self, mock_sleep, zap_client, http_session, make_response):
        http_session.get.side_effect = [
            requests.Timeout("slow"),
            make_response({"version": "2.14.0"}),
        ]

        assert zap_client.version() == "2.14.0"
        assert http_session.get.call_count == 2

    @patch("af_roundtrip.retry.time.sleep")
    def test_action_read_timeout_not_retried(self, mock_sleep, zap_client, http_session,
                                             make_response):
        http_session.get.side_effect = [
            requests.ReadTimeout("read timed out"),
            make_response({"contextId": "1"}),
        ]

        with pytest.raises(ZapConnectionError):
            zap_client.action("context", "importContext", contextFile="/zap/wrk/a.context")

        assert http_session.get.call_count == 1
        mock_sleep.assert_not_called()

    @patch("af_roundtrip.retry.time.sleep")
    def test_action_connect_timeout_retried(self, mock_sleep, zap_client, http_session,
                                            make_response):
        http_session.get.side_effect = [
            requests.ConnectTimeout("connect timed out"),
            make_response({"contextId": "1"}),
        ]

        result = zap_client.action("context", "importContext", contextFile="/zap/wrk/a.context")

        assert result == {"contextId": "1"}
        assert http_session.get.call_count == 2

    @patch("af_roundtrip.retry.time.sleep")
    def test_view_read_timeout_retried(self, mock_sleep, zap_client, http_session,
                                       make_response):
        http_session.get.side_effect = [
            requests.ReadTimeout("read timed out"),
            make_response({"contextList": "[]"}),
        ]

        assert zap_client.view("context", "contextList") == {"contextList": "[]"}
        assert http_session.get.call_count == 2

    @patch("af_roundtrip.zap.client.time")
    def test_wait_until_ready(self, mock_time, zap_client):
        mock_time.monotonic.return_value = 0
        zap_client.version = Mock(side_effect=[ZapConnectionError("down"), "2.14.0"])

        assert zap_client.wait_until_ready(timeout=10) == "2.14.0"
        mock_time.sleep.assert_called_once_with(2.0)

    @patch("af_roundtrip.zap.client.time")
    def test_wait_until_ready_times_out(self, mock_time, zap_client):
        mock_time.monotonic.side_effect = [0, 5, 11]
        zap_client.version = Mock(side_effect=ZapConnectionError("down"))

        with pytest.raises(ZapConnectionError, match="not ready after 10s"):
            zap_client.wait_until_ready(timeout=10)

    def test_context_manager_closes_session(self, http_session):
        with ZapApiClient("http://zap:8080", session=http_session):
            pass

        http_session.close.assert_called_once()
