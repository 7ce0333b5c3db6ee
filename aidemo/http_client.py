"""Outbound HTTP client construction with proxy routing and traffic logging."""
import time
from typing import Dict, Optional

import httpx
import structlog

from aidemo import config

logger = structlog.get_logger()

_BODY_PREVIEW_CHARS = 2000


def mask_header_value(name: str, value: str) -> str:
    """Hide credentials in header values before logging them."""
    if name.lower() != "authorization":
        return value
    if value.lower().startswith("bearer ") and len(value) > 20:
        return f"Bearer {value[7:20]}****"
    return "****"


def _preview(raw: bytes) -> str:
    text = raw.decode("utf-8", errors="replace")
    if len(text) > _BODY_PREVIEW_CHARS:
        return text[:_BODY_PREVIEW_CHARS] + "...(truncated)"
    return text


async def log_request(request: httpx.Request) -> None:
    """httpx request hook: record method, URL and masked headers."""
    request.extensions["aidemo_started_at"] = time.perf_counter()

    headers = {name: mask_header_value(name, value) for name, value in request.headers.items()}
    event = {
        "method": request.method,
        "url": str(request.url),
        "headers": headers,
    }
    if config.HTTP_LOG_BODIES and request.content:
        event["body"] = _preview(request.content)

    logger.info("http_request", **event)


async def log_response(response: httpx.Response) -> None:
    """httpx response hook: record status, duration and optionally the body."""
    started_at = response.request.extensions.get("aidemo_started_at")
    duration_ms = None
    if started_at is not None:
        duration_ms = int((time.perf_counter() - started_at) * 1000)

    event = {
        "method": response.request.method,
        "url": str(response.request.url),
        "status_code": response.status_code,
        "duration_ms": duration_ms,
    }
    if config.HTTP_LOG_BODIES:
        await response.aread()
        event["body"] = _preview(response.content)

    if response.is_error:
        logger.warning("http_response", **event)
    else:
        logger.info("http_response", **event)


def build_mounts(proxy_url: Optional[str]) -> Optional[Dict[str, httpx.AsyncBaseTransport]]:
    """Route all traffic through ``proxy_url`` except local hosts.

    Returns None when no proxy is configured.
    """
    if not proxy_url:
        return None

    mounts: Dict[str, httpx.AsyncBaseTransport] = {
        "all://": httpx.AsyncHTTPTransport(proxy=proxy_url),
    }
    for host in config.HTTP_NO_PROXY_HOSTS:
        mounts[f"all://{host}"] = httpx.AsyncHTTPTransport()
    return mounts


def create_async_client(
    base_url: str = "",
    proxy_url: Optional[str] = None,
    connect_timeout: float = None,
    read_timeout: float = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient with explicit proxy settings and logging hooks.

    The environment's proxy variables are ignored (``trust_env=False``); the
    only proxy used is the one passed in.

    Args:
        base_url: Base URL for relative requests
        proxy_url: Proxy URL, or None for direct connections
        connect_timeout: Connect timeout in seconds (default from config)
        read_timeout: Read timeout in seconds (default from config)
        transport: Custom transport (used by tests); disables proxy routing

    Returns:
        Configured httpx.AsyncClient (caller owns closing it)
    """
    connect_timeout = connect_timeout or config.HTTP_CONNECT_TIMEOUT
    read_timeout = read_timeout or config.HTTP_READ_TIMEOUT

    timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
    mounts = None if transport is not None else build_mounts(proxy_url)

    logger.info(
        "http_client_created",
        base_url=base_url,
        proxy=proxy_url,
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
    )

    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        mounts=mounts,
        transport=transport,
        trust_env=False,
        event_hooks={"request": [log_request], "response": [log_response]},
    )
