"""Small helpers shared by the components that talk to the backend."""

from __future__ import annotations

from typing import Any

import httpx


def json_object(resp: httpx.Response) -> dict[str, Any] | None:
    """Decode a JSON object body, or None if the body is not a JSON object."""
    try:
        data = resp.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def is_relative(url: str) -> bool:
    return httpx.URL(url).is_relative_url
