"""UniFi Network Application REST transport."""

from __future__ import annotations

import threading
from typing import Any

import requests
from loguru import logger
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from netpath.controller.base import BaseInventorySource
from netpath.controller.exceptions import APIError, AuthenticationError
from netpath.controller.factory import register_source
from netpath.controller.models import ClientRecord, DeviceRecord, NetworkRecord, parse_records

_UNIFI_OS_LOGIN = "api/auth/login"
_LEGACY_LOGIN = "api/login"


@register_source("unifi")
class UniFiRESTTransport(BaseInventorySource):
    """Cookie-session REST client for a UniFi controller.

    UniFi OS consoles (UDM, UCG, UX) proxy the Network Application under
    ``/proxy/network/api/s/<site>/``; standalone controllers serve it under
    ``/api/s/<site>/``. The flavour is detected at login time.
    """

    def __init__(
        self,
        host: str,
        username: str = "admin",
        password: str = "",
        site: str = "default",
        port: int = 443,
        verify_ssl: bool = False,
        timeout: float = 30.0,
        retries: int = 3,
    ):
        self.host = host
        self.username = username
        self.password = password
        self.site = site
        self.port = port
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.retries = retries
        self.base_url = host.rstrip("/") if host.startswith("https://") else f"https://{host}:{port}"
        self.is_unifi_os = False
        self._session: requests.Session | None = None
        self._connect_lock = threading.Lock()

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        session.verify = self.verify_ssl
        session.headers["Accept"] = "application/json"
        retry = Retry(
            total=self.retries,
            backoff_factor=1.0,
            status_forcelist=(502, 503, 504),
            allowed_methods=frozenset({"GET", "POST"}),
        )
        session.mount("https://", HTTPAdapter(max_retries=retry))
        return session

    def connect(self) -> None:
        """Log in and keep the session cookie (and CSRF token, if any)."""
        self._session = self._new_session()
        credentials = {"username": self.username, "password": self.password, "remember": False}

        try:
            resp = self._session.post(f"{self.base_url}/{_UNIFI_OS_LOGIN}", json=credentials, timeout=self.timeout)
            if resp.status_code == 404:
                resp = self._session.post(f"{self.base_url}/{_LEGACY_LOGIN}", json=credentials, timeout=self.timeout)
                self.is_unifi_os = False
            else:
                self.is_unifi_os = True
            resp.raise_for_status()
        except requests.RequestException as e:
            self._session.close()
            self._session = None
            raise AuthenticationError(f"UniFi login failed: {e}") from e

        csrf = resp.headers.get("X-Csrf-Token")
        if csrf:
            self._session.headers["X-Csrf-Token"] = csrf
        logger.info(f"UniFi controller session established to {self.host} (UniFi OS: {self.is_unifi_os})")

    def disconnect(self) -> None:
        """Close the REST session."""
        if self._session:
            self._session.close()
            self._session = None

    def is_connected(self) -> bool:
        return self._session is not None

    def _api_url(self, endpoint: str) -> str:
        prefix = "proxy/network/api" if self.is_unifi_os else "api"
        return f"{self.base_url}/{prefix}/s/{self.site}/{endpoint}"

    def get(self, endpoint: str) -> list[dict[str, Any]]:
        """GET a site endpoint and return the ``data`` array.

        Re-authenticates once when the session has expired (401/403).
        """
        with self._connect_lock:
            if not self.is_connected():
                self.connect()
        assert self._session is not None

        url = self._api_url(endpoint)
        try:
            resp = self._session.get(url, timeout=self.timeout)
            if resp.status_code in (401, 403):
                logger.debug(f"Session rejected on {endpoint} ({resp.status_code}), re-authenticating")
                self.connect()
                resp = self._session.get(url, timeout=self.timeout)
            resp.raise_for_status()
            payload = resp.json()
            meta = payload.get("meta") or {}
            rc = meta.get("rc")
            data = payload.get("data") or []
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise APIError(f"GET {endpoint} failed: {e}", status_code=status) from e
        except requests.RequestException as e:
            raise APIError(f"GET {endpoint} failed: {e}") from e
        except (ValueError, AttributeError) as e:
            raise APIError(f"GET {endpoint} returned a malformed payload: {e}", status_code=resp.status_code) from e

        if rc not in (None, "ok"):
            raise APIError(f"GET {endpoint} returned rc={rc}: {meta.get('msg', '')}")
        if not isinstance(data, list):
            raise APIError(f"GET {endpoint} returned {type(data).__name__} instead of a data array")
        return data

    def list_devices(self) -> list[DeviceRecord]:
        return parse_records(DeviceRecord, self.get("stat/device"), "device")

    def list_clients(self) -> list[ClientRecord]:
        return parse_records(ClientRecord, self.get("stat/sta"), "client")

    def list_networks(self) -> list[NetworkRecord]:
        return parse_records(NetworkRecord, self.get("rest/networkconf"), "network", require_mac=False)
