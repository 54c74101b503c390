from urllib.parse import urlsplit

import requests
import structlog
import urllib3

from ..exceptions import AuthError, AuthFailed

log = structlog.get_logger()

# UniFi consoles ship self-signed certificates; the controller is trusted as configured.
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

DEFAULT_LOGIN_PORT = 443
BODY_LENGTH_HEADERS = ("Content-Length", "Transfer-Encoding")


class UnifiSession:
    """
    An authenticated handle to one site on a UniFi controller.

    Wraps the logged-in ``requests.Session`` (cookies and CSRF header) together
    with the controller URL and site name. Created by ``UnifiClient.login``.
    """

    def __init__(self, session: requests.Session, base_url: str, site: str = "default", timeout=10):
        self.session = session
        self.base_url = base_url
        self.site = site
        self.timeout = timeout

    @property
    def static_dns_url(self):
        return f"{self.base_url}/proxy/network/v2/api/site/{self.site}/static-dns"

    def _api_request(self, method, url, data=None, parse_json=True):
        log.debug("UniFi API Request", url=url, method=method, data=data)
        response = self.session.request(method, url, json=data, timeout=self.timeout)
        log.debug("UniFi API Response", url=url, status_code=response.status_code)
        if response.status_code in (401, 403):
            raise AuthError(f"UniFi session rejected with HTTP {response.status_code} for {method} {url}")
        response.raise_for_status()
        if not parse_json or not response.content:
            return None
        return response.json()

    def _get_list(self, url):
        items = self._api_request("GET", url)
        if not isinstance(items, list):
            raise ValueError(f"Unexpected response from {url}: expected a list, got {type(items).__name__}")
        return items

    def get_static_dns_entries(self):
        """Returns the raw static DNS entries configured on the site."""
        return self._get_list(self.static_dns_url)

    def get_static_dns_hostnames(self):
        return {
            entry["key"]
            for entry in self.get_static_dns_entries()
            if isinstance(entry, dict) and isinstance(entry.get("key"), str) and entry["key"]
        }

    def get_device_hostnames(self):
        """Returns hostnames the controller already resolves for its known devices."""
        return {
            device["hostname"]
            for device in self._get_list(f"{self.static_dns_url}/devices")
            if isinstance(device, dict) and isinstance(device.get("hostname"), str) and device["hostname"]
        }

    def create_static_dns_record(self, hostname, ip_address):
        """
        Posts a new enabled A record.

        Only the status is checked; the body is not a reliable signal that the
        record was stored, so callers re-read the entries to confirm.
        """
        payload = {"record_type": "A", "value": ip_address, "key": hostname, "enabled": True}
        self._api_request("POST", self.static_dns_url, data=payload, parse_json=False)


class UnifiClient:
    def __init__(self, unifi_url, site="default", timeout=10):
        self.unifi_url = unifi_url.rstrip("/")
        self.site = site
        self.timeout = timeout

    def _login_url(self):
        parts = urlsplit(self.unifi_url)
        if parts.port is None:
            return f"{self.unifi_url}:{DEFAULT_LOGIN_PORT}/api/auth/login"
        return f"{self.unifi_url}/api/auth/login"

    def login(self, username, password):
        """
        Logs in to the controller and returns a ``UnifiSession``.

        Raises:
            AuthFailed: On any non-200 status or transport error.
        """
        session = requests.Session()
        session.verify = False
        login_url = self._login_url()

        log.info("Authenticating to UniFi controller", login_url=login_url, username=username)
        try:
            response = session.post(
                login_url,
                json={"username": username, "password": password},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AuthFailed(f"Could not reach UniFi controller at {login_url}: {e}") from e

        if response.status_code != 200:
            raise AuthFailed(f"UniFi login failed with HTTP {response.status_code}")

        csrf_token = response.headers.get("X-Csrf-Token")
        if csrf_token:
            session.headers.update({"X-Csrf-Token": csrf_token})
        for header in BODY_LENGTH_HEADERS:
            session.headers.pop(header, None)

        log.info("Successfully authenticated to UniFi controller", site=self.site)
        return UnifiSession(session, self.unifi_url, site=self.site, timeout=self.timeout)
