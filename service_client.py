import os
from typing import Any, Dict, Optional

import httpx

API_BASE_URL = os.environ.get("FUSION_API_BASE_URL", "http://127.0.0.1:8000")
HTTP_TIMEOUT_S = float(os.environ.get("FUSION_HTTP_TIMEOUT_S", "10"))


class ServiceError(Exception):
    """A leaderboard/save service call that produced no usable answer."""


def build_http_client(base_url: str = API_BASE_URL, timeout_s: float = HTTP_TIMEOUT_S) -> httpx.Client:
    return httpx.Client(base_url=base_url, timeout=timeout_s)


def request_json(
    http: httpx.Client,
    method: str,
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    json_body: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Send a request and return the decoded body of a ``success: true`` answer.

    Transport errors, non-2xx statuses, non-JSON bodies and ``success: false``
    bodies all raise ServiceError carrying a short reason.
    """
    try:
        resp = http.request(method, url, params=params, json=json_body, headers=headers)
    except httpx.HTTPError as exc:
        raise ServiceError(f"network error: {exc}") from exc

    try:
        body = resp.json()
    except ValueError:
        body = None

    if resp.status_code >= 400:
        detail = body.get("error") if isinstance(body, dict) else None
        raise ServiceError(str(detail or f"HTTP {resp.status_code}"))
    if not isinstance(body, dict):
        raise ServiceError("invalid response body")
    if body.get("success") is False:
        raise ServiceError(str(body.get("error") or "request failed"))
    return body
