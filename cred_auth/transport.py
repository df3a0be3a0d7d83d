"""
Cred Auth Transport

The single "send a JSON request, get back the parsed body" primitive used by
both the refresher and the request dispatcher.
"""

from typing import Any, Dict, Optional

import httpx

from .errors import ApiError, NetworkError


async def send_json(
    client: httpx.AsyncClient,
    url: str,
    method: str,
    headers: Dict[str, str],
    body: Any = None,
) -> Any:
    """
    Execute one request and return the parsed JSON body.

    Raises:
        ApiError: On a non-2xx status, or a 2xx status whose body is not JSON
        NetworkError: If the server could not be reached
    """
    try:
        response = await client.request(
            method=method,
            url=url,
            headers=headers,
            json=body,
        )
    except httpx.TimeoutException:
        raise NetworkError("Request timeout", {"url": url, "timeout": _timeout_of(client)})
    except httpx.RequestError as e:
        raise NetworkError(str(e) or e.__class__.__name__, {"url": url})
    except httpx.InvalidURL as e:
        raise NetworkError(f"Invalid URL: {e}", {"url": url})

    return handle_response(response)


def handle_response(response: httpx.Response) -> Any:
    """Convert a response to its parsed body, or raise ApiError."""
    data: Any = None
    parsed = False
    try:
        data = response.json()
        parsed = True
    except ValueError:
        pass

    if response.is_success:
        if not response.content:
            return {}
        if not parsed:
            raise ApiError("Invalid JSON in response body", response.status_code)
        return data

    message = _error_message(data) if parsed else None
    raise ApiError(
        message or f"HTTP {response.status_code}",
        response.status_code,
        {"body": data} if parsed else None,
    )


def _error_message(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message:
            return message
    return None


def _timeout_of(client: httpx.AsyncClient) -> Optional[float]:
    return client.timeout.read
