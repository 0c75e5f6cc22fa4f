"""HTTP client for the Transkribus processing API."""

import base64
import threading
import time
import xml.etree.ElementTree as ET
from collections.abc import Callable
from typing import Any

import httpx

from htr_worker.config.settings import Settings
from htr_worker.logging.logger import Log
from htr_worker.transkribus.exceptions import (
    AuthenticationError,
    ProcessExpiredError,
    RemoteServiceError,
    TranskribusNetworkError,
)
from htr_worker.transkribus.tokens import TokenState

FINISHED = "FINISHED"


class TranskribusClient:
    """Submits page images to Transkribus and retrieves recognition results.

    Authentication is handled transparently: every call first makes sure a
    usable access token is held, doing a password grant when there is no token
    or the refresh token is about to lapse, and a refresh grant when only the
    access token is about to lapse. The decision and the token swap happen under
    one lock, so threads sharing a client never authenticate twice for the same
    expiry or read a half-replaced token.
    """

    def __init__(
        self,
        *,
        username: str,
        password: str,
        api_url: str,
        token_url: str,
        client_id: str,
        timeout_seconds: int = 30,
        http_client: httpx.Client | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._username = username
        self._password = password
        self._api_url = api_url.rstrip("/")
        self._token_url = token_url
        self._client_id = client_id
        self._http = http_client if http_client is not None else httpx.Client(
            timeout=timeout_seconds
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens: TokenState | None = None

    def submit(self, htr_id: int, image_bytes: bytes) -> int:
        """Start a recognition process for one image and return its process id."""
        payload = {
            "config": {"textRecognition": {"htrId": htr_id}},
            "image": {"base64": base64.b64encode(image_bytes).decode("ascii")},
        }
        response = self._call("POST", self._api_url, json=payload)
        try:
            return int(response.json()["processId"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteServiceError(
                f"Transkribus returned no process id: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    def get_status(self, process_id: int) -> str:
        """Return the raw status string; only FINISHED means the result is ready.

        Raises:
            ProcessExpiredError: if Transkribus no longer knows the process.
        """
        response = self._call(
            "GET", f"{self._api_url}/{process_id}", expiring_process=process_id
        )
        try:
            return str(response.json()["status"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteServiceError(
                f"Transkribus returned no status for process {process_id}: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    def get_alto_xml(self, process_id: int) -> ET.Element:
        """Fetch the finished result as a parsed ALTO document.

        Raises:
            ProcessExpiredError: if Transkribus no longer knows the process.
        """
        response = self._call(
            "GET", f"{self._api_url}/{process_id}/alto", expiring_process=process_id
        )
        try:
            return ET.fromstring(response.content)
        except ET.ParseError as exc:
            raise RemoteServiceError(
                f"Transkribus returned invalid ALTO XML for process {process_id}: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    def close(self) -> None:
        self._http.close()

    def _call(
        self,
        method: str,
        url: str,
        *,
        expiring_process: int | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        token = self._access_token()
        headers = {"Authorization": f"Bearer {token}"}
        response = self._send(method, url, headers=headers, **kwargs)
        if response.status_code == 404 and expiring_process is not None:
            raise ProcessExpiredError(expiring_process)
        if not response.is_success:
            raise RemoteServiceError(
                f"Transkribus {method} {url} failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise TranskribusNetworkError(f"Transkribus network error: {exc}") from exc

    def _access_token(self) -> str:
        with self._lock:
            now = self._clock()
            if self._tokens is None or self._tokens.needs_reauthentication(now):
                Log.debug("Authenticating with Transkribus using password grant")
                self._tokens = self._request_tokens(
                    {
                        "grant_type": "password",
                        "username": self._username,
                        "password": self._password,
                        "client_id": self._client_id,
                    },
                    now,
                )
            elif self._tokens.needs_refresh(now):
                Log.debug("Refreshing Transkribus access token")
                self._tokens = self._request_tokens(
                    {
                        "grant_type": "refresh_token",
                        "refresh_token": self._tokens.refresh_token,
                        "client_id": self._client_id,
                    },
                    now,
                )
            return self._tokens.access_token

    def _request_tokens(self, form: dict[str, str], now: float) -> TokenState:
        response = self._send("POST", self._token_url, data=form)
        if not response.is_success:
            raise AuthenticationError(
                f"Transkribus {form['grant_type']} grant failed with status "
                f"{response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthenticationError(
                f"Token endpoint returned invalid JSON: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc
        return TokenState.from_response(payload, retrieved_at=now)


def build_transkribus_client(settings: Settings) -> TranskribusClient:
    """Build a client from application settings."""
    return TranskribusClient(
        username=settings.transkribus_username,
        password=settings.transkribus_password,
        api_url=settings.transkribus_api_url,
        token_url=settings.transkribus_token_url,
        client_id=settings.transkribus_client_id,
        timeout_seconds=settings.transkribus_timeout_seconds,
    )
