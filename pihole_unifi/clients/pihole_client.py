from urllib.parse import quote

import requests
import structlog

from ..exceptions import SourceUnavailable

log = structlog.get_logger()


class PiholeClient:
    """Read-only client for the Pi-hole ``api.php`` custom DNS list."""

    def __init__(self, pihole_url, api_token, timeout=10):
        self.pihole_url = pihole_url.rstrip("/")
        if self.pihole_url.endswith("/api.php"):
            self.pihole_url = self.pihole_url.rsplit("/", 1)[0]
        if self.pihole_url.endswith("/admin"):
            self.pihole_url = self.pihole_url.rsplit("/", 1)[0]
        self.api_token = api_token
        self.timeout = timeout
        self.session = requests.Session()

    def _custom_dns_url(self):
        return f"{self.pihole_url}/admin/api.php?customdns&action=get&auth={quote(self.api_token, safe='')}"

    def get_custom_dns_records(self):
        """
        Fetches every custom A record from the Pi-hole.

        Returns:
            dict: hostname -> IP address, in the order the Pi-hole listed them.

        Raises:
            SourceUnavailable: If the request fails, or the response holds no
                usable records.
        """
        log.info("Fetching custom DNS records from Pi-hole", pihole_url=self.pihole_url)
        try:
            response = self.session.get(self._custom_dns_url(), timeout=self.timeout)
            response.raise_for_status()
            response_data = response.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise SourceUnavailable(f"Pi-hole returned HTTP {status} for the custom DNS list") from e
        except requests.exceptions.RequestException as e:
            raise SourceUnavailable(f"Could not reach Pi-hole at {self.pihole_url} ({type(e).__name__})") from e
        except ValueError as e:
            raise SourceUnavailable("Pi-hole returned a response that is not valid JSON") from e

        return self._parse_records(response_data)

    def _parse_records(self, response_data):
        if not isinstance(response_data, dict) or not isinstance(response_data.get("data"), list):
            raise SourceUnavailable("Pi-hole response has no 'data' list; check the API token")
        if not response_data["data"]:
            raise SourceUnavailable("Pi-hole returned no custom DNS records")

        records = {}
        for item in response_data["data"]:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                log.warning("Skipping malformed custom DNS entry", entry=item)
                continue
            hostname, ip_address = item
            if not isinstance(hostname, str) or not isinstance(ip_address, str):
                log.warning("Skipping malformed custom DNS entry", entry=item)
                continue
            hostname, ip_address = hostname.strip(), ip_address.strip()
            if not hostname or not ip_address:
                log.warning("Skipping malformed custom DNS entry", entry=item)
                continue
            if hostname in records:
                log.warning(
                    "Duplicate hostname in Pi-hole custom DNS; keeping first entry",
                    hostname=hostname,
                    kept_ip=records[hostname],
                    ignored_ip=ip_address,
                )
                continue
            records[hostname] = ip_address

        if not records:
            raise SourceUnavailable("Pi-hole custom DNS list contained no valid records")

        log.info("Found custom DNS records in Pi-hole", count=len(records))
        return records
