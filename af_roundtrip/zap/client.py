"""Thin client for the ZAP JSON API."""

import time
from typing import Any, Dict, List, Optional

import requests

from af_roundtrip.config import DEFAULT_REQUEST_TIMEOUT
from af_roundtrip.exceptions import (
    ContextNotFoundError,
    ZapApiError,
    ZapConnectionError,
)
from af_roundtrip.logging_config import get_logger
from af_roundtrip.retry import action_retry, api_retry

logger = get_logger("zap.client")

API_KEY_HEADER = "X-ZAP-API-Key"

NOT_FOUND_CODES = {"context_not_found"}


def parse_list(value: Any) -> List[str]:
    """Parse list values, which the API returns either as JSON arrays or as
    ``"[a, b]"`` strings."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    text = str(value).strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    if not text.strip():
        return []
    return [item.strip() for item in text.split(", ")]


def unwrap(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Return ``payload[key]`` when the API nested the set under a key."""
    inner = payload.get(key)
    if isinstance(inner, dict):
        return inner
    return payload


class ZapApiClient:
    """Calls ``/JSON/<component>/<view|action>/<name>/`` endpoints of a ZAP instance."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers.update({API_KEY_HEADER: api_key})

    def view(self, component: str, name: str, **params) -> Dict[str, Any]:
        return self._call("view", component, name, params, self._get)

    def action(self, component: str, name: str, **params) -> Dict[str, Any]:
        return self._call("action", component, name, params, self._get_action)

    def _call(self, kind: str, component: str, name: str, params: Dict[str, Any], get) -> Dict[str, Any]:
        url = f"{self.base_url}/JSON/{component}/{kind}/{name}/"
        params = {k: v for k, v in params.items() if v is not None}
        logger.debug(
            f"ZAP {component}/{kind}/{name}",
            extra={"component": component, "operation": name, "params": params},
        )
        try:
            response = get(url, params)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise ZapConnectionError(f"Could not reach ZAP at {self.base_url}: {e}") from e
        return self._parse(response, f"{component}/{kind}/{name}")

    @api_retry
    def _get(self, url: str, params: Dict[str, Any]) -> requests.Response:
        return self.session.get(url, params=params, timeout=self.timeout)

    @action_retry
    def _get_action(self, url: str, params: Dict[str, Any]) -> requests.Response:
        return self.session.get(url, params=params, timeout=self.timeout)

    @staticmethod
    def _parse(response: requests.Response, operation: str) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            raise ZapApiError(
                f"{operation} returned HTTP {response.status_code} "
                f"with a non-JSON body: {response.text[:200]}"
            )

        if not isinstance(payload, dict):
            raise ZapApiError(f"{operation} returned unexpected payload: {payload!r}")

        if response.status_code >= 400 or ("code" in payload and "message" in payload):
            code = payload.get("code")
            message = payload.get("message") or f"HTTP {response.status_code}"
            error_cls = ContextNotFoundError if code in NOT_FOUND_CODES else ZapApiError
            raise error_cls(f"{operation} failed: {message}", code=code)
        return payload

    def version(self) -> str:
        return self.view("core", "version")["version"]

    def wait_until_ready(self, timeout: float, interval: float = 2.0) -> str:
        """Block until the API answers, returning the ZAP version."""
        deadline = time.monotonic() + timeout
        while True:
            try:
                version = self.version()
                logger.info(f"ZAP {version} is ready at {self.base_url}")
                return version
            except ZapConnectionError as e:
                if time.monotonic() >= deadline:
                    raise ZapConnectionError(
                        f"ZAP at {self.base_url} not ready after {timeout:.0f}s: {e}"
                    ) from e
                logger.info(f"Waiting for ZAP at {self.base_url}...")
                time.sleep(interval)

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
