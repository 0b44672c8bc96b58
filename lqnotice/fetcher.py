"""Fetch and decode JSON documents over HTTP."""

from __future__ import annotations

import json
from typing import Any

import requests

USER_AGENT = "JsonFetcher/1.0"
CONNECT_TIMEOUT = 10
TOTAL_TIMEOUT = 15


class FetchError(Exception):
    """Raised when a JSON document cannot be fetched or decoded."""


def fetch_json(url: str) -> Any:
    """Fetch ``url`` and return its body decoded as JSON.

    Redirects are followed and TLS certificates are verified. Any transport
    failure, a final status other than 200, or a body that is not valid JSON
    raises :class:`FetchError`.
    """
    try:
        response = requests.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=(CONNECT_TIMEOUT, TOTAL_TIMEOUT),
            allow_redirects=True,
            verify=True,
        )
    except requests.RequestException as exc:
        raise FetchError(f"Request error: {exc}") from exc

    if response.status_code != 200:
        raise FetchError(f"HTTP error: {response.status_code}")

    try:
        return json.loads(response.content)
    except ValueError as exc:
        raise FetchError(f"JSON parse error: {exc}") from exc