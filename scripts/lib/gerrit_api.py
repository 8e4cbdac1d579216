# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""
Gerrit REST API client for provisioning a test server.

This module wraps the handful of authenticated endpoints needed to set
up a fresh Gerrit instance:

- HTTP digest authentication with the server's administrative credentials
- JSON response parsing (stripping Gerrit's magic prefix)
- SSH key upload, account creation and project creation
- Change queries for verifying the seeded review

Provisioning is failure-blind, so write operations never raise on an
HTTP error status.  Each call returns an :class:`ApiResult` carrying
the status code and parsed body; the caller logs it and moves on.

Usage:
    from gerrit_api import GerritAdminClient

    client = GerritAdminClient("http://localhost:8080", "admin", "secret")
    client.add_ssh_key("admin", Path("~/.ssh/id_rsa.pub").read_bytes())
    client.create_account("jdoe", name="John Doe", email="jdoe@example.com")
    client.create_project("gerritbot-rs")
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urljoin

import requests
from errors import ProvisionError
from requests.auth import HTTPDigestAuth

logger = logging.getLogger(__name__)

# Gerrit API constants
GERRIT_MAGIC_JSON_PREFIX = ")]}'\n"
DEFAULT_TIMEOUT = 30


class GerritAPIError(ProvisionError):
    """A Gerrit API request did not succeed."""

    def __init__(
        self, message: str, status_code: int | None = None, response_text: str = ""
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


@dataclass(frozen=True)
class ApiResult:
    """Outcome of a single REST call.

    ``status_code`` is *None* when no HTTP response was received
    (connection refused, DNS failure, …); ``error`` then holds the
    transport error message.
    """

    method: str
    url: str
    status_code: int | None
    body: Any = None
    text: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300

    def describe(self) -> str:
        """One-line summary suitable for logging."""
        if self.status_code is None:
            return f"{self.method} {self.url} → no response ({self.error})"
        detail = self.text.strip().splitlines()[0] if self.text.strip() else ""
        suffix = f": {detail[:200]}" if detail and not self.ok else ""
        return f"{self.method} {self.url} → HTTP {self.status_code}{suffix}"

    def raise_for_status(self) -> None:
        """Raise :class:`GerritAPIError` unless the call succeeded."""
        if not self.ok:
            raise GerritAPIError(
                self.describe(),
                status_code=self.status_code,
                response_text=self.text,
            )


def _strip_gerrit_prefix(content: str) -> str:
    """Strip Gerrit's magic JSON prefix from response content."""
    if content.startswith(GERRIT_MAGIC_JSON_PREFIX):
        return content[len(GERRIT_MAGIC_JSON_PREFIX) :]
    # Also handle without newline
    elif content.startswith(")]}'"):
        return content[4:]
    return content


def _parse_body(response: requests.Response) -> Any:
    """Decode a response body, returning ``None`` when it is empty.

    JSON responses are decoded after stripping the magic prefix; any
    other content, or JSON that fails to decode, is returned as text.
    """
    content = response.text.strip() if response.content else ""
    if not content:
        return None

    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        content = _strip_gerrit_prefix(content)
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            logger.debug("Response declared JSON but did not decode")
    return content


class GerritAdminClient:
    """
    Gerrit REST API client authenticating with HTTP digest auth.

    Args:
        base_url: Base URL of the Gerrit server (e.g., "http://localhost:8080")
        username: Administrative HTTP user
        password: HTTP password of that user
        timeout: Request timeout in seconds (default: 30)

    Example:
        >>> client = GerritAdminClient("http://localhost:8080", "admin", "secret")
        >>> client.create_project("gerritbot-rs").status_code
        201
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.auth = HTTPDigestAuth(username, password)

    def _make_url(self, endpoint: str) -> str:
        """Construct the full ``/a/`` (authenticated) URL for an endpoint."""
        endpoint = endpoint.lstrip("/")
        if not endpoint.startswith("a/"):
            endpoint = f"a/{endpoint}"
        return urljoin(self.base_url + "/", endpoint)

    def request(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | str | bytes | None = None,
        content_type: str | None = None,
        params: dict[str, str] | None = None,
    ) -> ApiResult:
        """
        Make an authenticated request and capture its outcome.

        Args:
            method: HTTP method
            endpoint: API endpoint (e.g., "accounts/jdoe")
            data: Request body (dict for JSON, str/bytes sent as-is)
            content_type: Content-Type header value
            params: Query string parameters

        Returns:
            ApiResult, whatever the HTTP status; transport errors are
            recorded in ``ApiResult.error``.
        """
        url = self._make_url(endpoint)
        headers = {"Accept": "application/json"}
        if content_type:
            headers["Content-Type"] = content_type

        body: str | bytes | None = json.dumps(data) if isinstance(data, dict) else data

        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                data=body,
                headers=headers,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return ApiResult(method=method, url=url, status_code=None, error=str(e))

        return ApiResult(
            method=method,
            url=url,
            status_code=response.status_code,
            body=_parse_body(response),
            text=response.text,
        )

    # =========================================================================
    # Provisioning operations
    # =========================================================================

    def add_ssh_key(self, account: str, public_key: bytes | str) -> ApiResult:
        """
        Add an SSH public key to an account.

        Args:
            account: Account username
            public_key: Public key in OpenSSH format, sent verbatim

        Returns:
            ApiResult of ``POST /a/accounts/{account}/sshkeys``
        """
        return self.request(
            "POST",
            f"accounts/{quote(account, safe='')}/sshkeys",
            data=public_key,
            content_type="text/plain",
        )

    def create_account(self, username: str, name: str, email: str) -> ApiResult:
        """Create an account; the body carries exactly ``name`` and ``email``."""
        return self.request(
            "PUT",
            f"accounts/{quote(username, safe='')}",
            data={"name": name, "email": email},
            content_type="application/json",
        )

    def create_project(self, name: str) -> ApiResult:
        """Create a project with the server's default settings (no body)."""
        return self.request("PUT", f"projects/{quote(name, safe='')}")

    def list_changes(self, query: str) -> list[dict[str, Any]]:
        """
        Return the changes matching a Gerrit search query.

        Args:
            query: Search expression, e.g. "project:gerritbot-rs status:open"

        Raises:
            GerritAPIError: If the query did not return HTTP 200 with a
                JSON list
        """
        result = self.request("GET", "changes/", params={"q": query})
        result.raise_for_status()
        if not isinstance(result.body, list):
            raise GerritAPIError(
                f"Unexpected change query response: {result.text[:200]}",
                status_code=result.status_code,
                response_text=result.text,
            )
        return result.body


def validate_ssh_key(key: str) -> bool:
    """
    Validate SSH public key format.

    Args:
        key: SSH public key string

    Returns:
        True if the key has a known type prefix and a key body
    """
    valid_types = (
        "ssh-rsa",
        "ssh-ed25519",
        "ssh-dss",
        "ecdsa-sha2-nistp256",
        "ecdsa-sha2-nistp384",
        "ecdsa-sha2-nistp521",
        "sk-ssh-ed25519@openssh.com",
        "sk-ecdsa-sha2-nistp256@openssh.com",
    )

    parts = key.strip().split()
    if len(parts) < 2:
        return False

    return parts[0] in valid_types
