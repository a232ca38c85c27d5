"""
HTTP client for the remote conversion, protection and comparison services.

Every call is a multipart POST of ``(bytes, params)`` answered by a file or
a JSON document.
"""
import json
import logging
from typing import Any, Dict, Optional

import requests

from ..errors import RemoteServiceError
from ..security import ProtectionPermissions

logger = logging.getLogger(__name__)

CONVERT_FORMATS = ("docx", "xlsx", "pptx")


class RemoteServiceClient:
    """Calls the remote PDF services."""

    def __init__(self, base_url: str, timeout: float = 60.0,
                 api_key: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers.update({
                "Authorization": f"Bearer {api_key}",
                "apikey": api_key,
            })

    def convert(self, data: bytes, target_format: str,
                filename: str = "document.pdf") -> bytes:
        """
        Convert a PDF to an Office document.

        Args:
            data: PDF bytes
            target_format: "docx", "xlsx" or "pptx"
            filename: Name sent with the upload

        Returns:
            Bytes of the converted file
        """
        if target_format not in CONVERT_FORMATS:
            raise ValueError(f"Unsupported format {target_format!r}, expected one of {CONVERT_FORMATS}")
        response = self._post("convert-pdf",
                              files={"file": (filename, data, "application/pdf")},
                              data={"format": target_format})
        return response.content

    def protect(self, data: bytes, password: str,
                permissions: Optional[ProtectionPermissions] = None,
                filename: str = "document.pdf") -> bytes:
        """
        Send a PDF to the remote protect service.

        The service marks the file and records a password hash; the result
        is not encrypted with the password.
        """
        permissions = permissions or ProtectionPermissions()
        response = self._post("protect-pdf",
                              files={"file": (filename, data, "application/pdf")},
                              data={"password": password,
                                    "permissions": json.dumps(permissions.to_dict())})
        return response.content

    def unlock(self, data: bytes, password: str, filename: str = "document.pdf") -> bytes:
        response = self._post("unlock-pdf",
                              files={"file": (filename, data, "application/pdf")},
                              data={"password": password})
        return response.content

    def compare(self, data1: bytes, data2: bytes) -> Dict[str, Any]:
        """Run the remote comparison and return its JSON report."""
        response = self._post("compare-pdf", files={
            "file1": ("document1.pdf", data1, "application/pdf"),
            "file2": ("document2.pdf", data2, "application/pdf"),
        })
        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError("compare-pdf returned an invalid response",
                                     status_code=response.status_code) from e

    def _post(self, endpoint: str, files: Dict[str, Any],
              data: Optional[Dict[str, str]] = None) -> requests.Response:
        url = f"{self.base_url}/{endpoint}"
        try:
            response = self.session.post(url, files=files, data=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error("Request to %s failed: %s", url, e)
            raise RemoteServiceError(f"{endpoint} is unreachable: {e}") from e

        if not response.ok:
            message = _error_message(response)
            logger.error("%s returned HTTP %d: %s", endpoint, response.status_code, message)
            raise RemoteServiceError(f"{endpoint} failed: {message}",
                                     status_code=response.status_code)
        logger.debug("%s answered %d bytes", endpoint, len(response.content))
        return response


def _error_message(response: requests.Response) -> str:
    """Prefer the service's own ``{"error": ...}`` message."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return f"HTTP {response.status_code} {response.reason or ''}".strip()
