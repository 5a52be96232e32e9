import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from urllib.parse import urlsplit

import requests
from urllib3.exceptions import ReadTimeoutError

from errors import BadGateway, RequestTimeout

ALLOWED_DOMAINS = frozenset([
    "fe-online-gateway.ghn.vn",
    "dev-online-gateway.ghn.vn",
    "httpbin.org",  # testing only
])

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "User-Agent": "Vercel-Proxy/1.0",
}

TIMEOUT_SECONDS = 30
CHUNK_SIZE = 1024
PROXY_NAME = "vercel"


def hostname_of(url):
    if not isinstance(url, str):
        raise ValueError(f"Invalid URL: {url!r}")
    parts = urlsplit(url)  # ValueError on a broken IPv6 literal
    if not parts.scheme or not parts.hostname:
        raise ValueError(f"Invalid URL: {url}")
    return parts.hostname


def is_allowed(hostname):
    # Containment, not suffix match: "httpbin.org.example.com" passes.
    return any(domain in hostname for domain in ALLOWED_DOMAINS)


def merge_headers(headers):
    merged = dict(DEFAULT_HEADERS)
    merged.update(headers)
    return merged


def decode_body(content_type, content, encoding):
    if "application/json" in (content_type or ""):
        return json.loads(content)
    return content.decode(encoding or "utf-8", errors="replace")


def _post(url, data, headers, cancelled):
    with requests.post(
        url,
        data=json.dumps(data),
        headers=merge_headers(headers),
        timeout=TIMEOUT_SECONDS,
        stream=True,
    ) as response:
        chunks = []
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if cancelled.is_set():
                return None
            chunks.append(chunk)
        return response.status_code, response.headers.get("Content-Type"), response.encoding, b"".join(chunks)


def forward(url, data, headers):
    """POST ``data`` as JSON to ``url`` once.

    The whole exchange, body included, must finish within
    TIMEOUT_SECONDS. Returns ``(status_code, body, elapsed_ms)``.
    Transport failures are raised as RequestTimeout or BadGateway;
    anything else propagates.
    """
    start = time.perf_counter()
    cancelled = threading.Event()
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(_post, url, data, headers, cancelled)
    # On deadline the worker is abandoned; its result is dropped.
    executor.shutdown(wait=False)

    try:
        status, content_type, encoding, content = future.result(timeout=TIMEOUT_SECONDS)
    except FuturesTimeoutError as e:
        cancelled.set()
        raise RequestTimeout() from e
    except requests.exceptions.Timeout as e:
        # ConnectTimeout is also a ConnectionError, so this must come first
        raise RequestTimeout() from e
    except requests.exceptions.ConnectionError as e:
        # A stalled body read surfaces as ConnectionError(ReadTimeoutError)
        if e.args and isinstance(e.args[0], ReadTimeoutError):
            raise RequestTimeout() from e
        raise BadGateway() from e
    except requests.exceptions.InvalidSchema as e:
        # Allowlisted host behind a scheme requests cannot speak, e.g. ftp://
        raise BadGateway() from e
    elapsed_ms = int((time.perf_counter() - start) * 1000)

    return status, decode_body(content_type, content, encoding), elapsed_ms
