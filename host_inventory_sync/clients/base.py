"""
Shared HTTP plumbing for the inventory API clients.

Every outbound call goes through InventoryApiClient.request so that:
- the tenant identity header is always attached
- connect/read timeouts are always bounded
- transport errors and non-2xx responses surface as InventoryApiError
- undecodable bodies surface as ResponseParseError
"""

import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests
import urllib3

from host_inventory_sync.errors import InventoryApiError, ResponseParseError
from host_inventory_sync.identity import identity_headers

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = (15, 30)  # (connect, read) seconds


class InventoryApiClient:
    """Base class owning one requests.Session per API."""

    def __init__(
        self,
        timeout: Tuple[int, int] = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            timeout: Tuple of (connect_timeout, read_timeout)
            verify_ssl: Whether to verify TLS certificates
            session: Optional pre-built session (tests inject a mock)
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.session = session or requests.Session()
        self.session.verify = verify_ssl

        if not verify_ssl:
            urllib3.disable_warnings()

    def request(
        self,
        method: str,
        url: str,
        identity: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Any = None,
        operation_name: Optional[str] = None,
    ) -> Any:
        """
        Issue one API call and return its decoded JSON body.

        Args:
            method: HTTP method
            url: Full request URL
            identity: Encoded x-rh-identity token
            params: Optional query parameters
            payload: Optional JSON body
            operation_name: Human-readable operation name for logs and errors

        Returns:
            Decoded JSON body, or None for an empty body

        Raises:
            InventoryApiError: On transport errors, timeouts and non-2xx status
            ResponseParseError: When the body is not valid JSON
        """
        operation_name = operation_name or f"{method} {url}"
        headers = {"Accept": "application/json", **identity_headers(identity)}
        request_kwargs = {
            "headers": headers,
            "timeout": self.timeout,
            "verify": self.verify_ssl,
        }
        if params:
            request_kwargs["params"] = params
        if payload is not None:
            headers["Content-Type"] = "application/json"
            request_kwargs["json"] = payload

        start_time = time.time()
        try:
            response = self.session.request(method, url, **request_kwargs)
        except requests.exceptions.RequestException as e:
            raise InventoryApiError(f"{operation_name} failed: {e}", url=url) from e

        response_time_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"{operation_name}: HTTP {response.status_code} in {response_time_ms}ms")

        if response.status_code >= 400:
            raise InventoryApiError(
                f"{operation_name} returned HTTP {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
                url=url,
            )

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ResponseParseError(
                f"{operation_name} returned a non-JSON body: {response.text[:200]}",
                status_code=response.status_code,
                url=url,
            ) from e

    def close(self):
        """Release pooled connections."""
        self.session.close()
