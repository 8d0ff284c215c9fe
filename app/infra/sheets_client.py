"""
Spreadsheet webhook transport.

The day-end export is received by a spreadsheet script endpoint that answers a
POST with a 301/302 redirect to a result page. The result has to be fetched
with a GET. That quirk is kept here so the export logic stays transport-agnostic.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests

logger = logging.getLogger(__name__)

REDIRECT_CODES = (301, 302)


class ExportError(Exception):
    """The spreadsheet endpoint could not be reached or rejected the request"""


class TooManyRedirectsError(ExportError):
    """The redirect chain exceeded the hop limit"""


class SheetsWebhookClient:
    """
    Posts day-end payloads to a spreadsheet webhook.

    Redirects are followed manually: every 301/302 is reissued as a GET to
    its Location, up to max_redirects hops.
    """

    def __init__(self, url: str, timeout: float = 30.0, max_redirects: int = 5,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.max_redirects = max_redirects
        self._owns_session = session is None
        self.session = session or requests.Session()

    def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send the payload and return the endpoint's JSON answer.

        A session created by the client is closed afterwards; an injected one
        is left open for its owner.

        Raises:
            TooManyRedirectsError: more than max_redirects redirects
            ExportError: missing Location header or HTTP error status
            requests.RequestException: network failure
        """
        try:
            return self._send(payload)
        finally:
            if self._owns_session:
                self.session.close()

    def _send(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = self.url
        logger.info(f"Posting day-end export to {url}")
        response = self.session.post(url, json=payload, timeout=self.timeout, allow_redirects=False)

        hops = 0
        while response.status_code in REDIRECT_CODES:
            hops += 1
            if hops > self.max_redirects:
                raise TooManyRedirectsError("Too many redirects")

            location = response.headers.get("Location")
            if not location:
                raise ExportError(f"Redirect ({response.status_code}) without Location header")

            url = urljoin(url, location)
            logger.debug(f"Following redirect {hops} to {url}")
            response = self.session.get(url, timeout=self.timeout, allow_redirects=False)

        if response.status_code >= 400:
            raise ExportError(f"Export endpoint returned HTTP {response.status_code}")

        return self._parse(response)

    @staticmethod
    def _parse(response: requests.Response) -> Dict[str, Any]:
        """JSON answers are returned as-is; anything else still counts as delivered"""
        try:
            data = response.json()
        except ValueError:
            return {"success": True, "message": "Request completed", "raw": response.text}
        if not isinstance(data, dict):
            return {"success": True, "message": "Request completed", "data": data}
        return data
