"""
REST API client for the NextCap license server.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

ADMIN_HEADER = "X-Admin-Password"
DEFAULT_SERVER_URL = "http://localhost:8000"


class LicenseServerError(Exception):
    """The license server could not be reached or sent an unusable reply."""
    pass


def _denial_body(response: requests.Response) -> Optional[Dict[str, Any]]:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and "valid" in data:
        return data
    return None


class LicenseClient:
    """Client for the public validation endpoint."""

    def __init__(self, base_url: str = DEFAULT_SERVER_URL, timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def is_api_available(self) -> bool:
        """Check if the API is available."""
        try:
            response = requests.get(f"{self.base_url}/health", timeout=5)
            return response.status_code == 200
        except requests.RequestException:
            return False

    def validate_license(self, key: str) -> Dict[str, Any]:
        """
        Ask the server whether a key grants access.

        Args:
            key: License key as typed by the user

        Returns:
            ``{"valid": True, "holder_name": ...}`` or
            ``{"valid": False, "reason": ...}``. Denials sent with an error
            status (400/500) are returned as-is.

        Raises:
            LicenseServerError: On transport failure or a reply that is not
                a validation result.
        """
        try:
            response = requests.post(
                f"{self.base_url}/api/license/validate",
                json={"key": key},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise LicenseServerError(f"Cannot reach {self.base_url}: {e}") from e

        body = _denial_body(response)
        if body is None:
            raise LicenseServerError(
                f"Unexpected response from license server (HTTP {response.status_code})"
            )
        return body


class AdminClient:
    """Client for the license administration endpoints."""

    def __init__(self, base_url: str = DEFAULT_SERVER_URL, password: str = "", timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.password = password
        self.timeout = timeout

    @property
    def _headers(self) -> Dict[str, str]:
        return {ADMIN_HEADER: self.password}

    def _url(self, suffix: str = "") -> str:
        return f"{self.base_url}/api/admin/licenses{suffix}"

    def list_licenses(self) -> List[Dict[str, Any]]:
        """
        List all licenses, newest first.

        Raises:
            requests.RequestException: If the request fails
        """
        response = requests.get(self._url(), headers=self._headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def create_license(
        self,
        holder_name: str,
        email: str,
        expires_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Issue a new license.

        Args:
            holder_name: Name of the license holder
            email: Contact email
            expires_at: Optional ISO 8601 expiry instant

        Returns:
            The created record, including its generated key

        Raises:
            requests.RequestException: If the request fails
        """
        payload = {"holder_name": holder_name, "email": email}
        if expires_at:
            payload["expires_at"] = expires_at

        logger.info(f"Creating license for {holder_name}")
        response = requests.post(
            self._url(), json=payload, headers=self._headers, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def set_active(self, license_id: int, is_active: bool) -> Dict[str, Any]:
        logger.info(f"Setting license {license_id} active={is_active}")
        response = requests.patch(
            self._url(f"/{license_id}"),
            json={"is_active": is_active},
            headers=self._headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def delete_license(self, license_id: int) -> Dict[str, Any]:
        logger.info(f"Deleting license {license_id}")
        response = requests.delete(
            self._url(f"/{license_id}"), headers=self._headers, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()


def describe_http_error(error: Exception) -> str:
    """Turn a requests error into a short message for a dialog."""
    if isinstance(error, requests.HTTPError) and error.response is not None:
        try:
            detail = error.response.json().get("detail")
        except ValueError:
            detail = None
        if isinstance(detail, dict):
            return detail.get("message") or str(error)
        if isinstance(detail, str):
            return detail
        return f"HTTP {error.response.status_code}"
    return str(error)
