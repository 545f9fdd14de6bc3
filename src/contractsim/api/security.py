from __future__ import annotations

import ipaddress
import os
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)

USER_ADDRESS_HEADER = "x-user-address"


def _truthy(v: str | None) -> bool:
    return (v or "").strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return int(default)
    try:
        return int(str(raw).strip())
    except ValueError:
        return int(default)


def sanitize_text(v: Any) -> Any:
    """Strip inline <script> blocks from free-text input."""
    if not isinstance(v, str):
        return v
    return _SCRIPT_RE.sub("", v)


def acting_address(request: Request, body_value: Optional[str]) -> Optional[str]:
    """Address from the request body, else from the X-User-Address header.

    The header is an unauthenticated hint; format checks happen in the executor.
    """
    if body_value:
        return body_value.strip()
    hdr = (request.headers.get(USER_ADDRESS_HEADER) or "").strip()
    return hdr or None


def _is_valid_ip(raw: str) -> bool:
    try:
        ipaddress.ip_address(raw)
        return True
    except ValueError:
        return False


def _client_ip(request: Request) -> str:
    """Best-effort client IP resolver for rate limiting.

    X-Forwarded-For is honored only with CSIM_TRUST_PROXY_HEADERS=1. Used
    only for rate limiting, never for auth decisions.
    """
    if _truthy(os.environ.get("CSIM_TRUST_PROXY_HEADERS")):
        v = (request.headers.get("x-real-ip") or "").strip()
        if v and _is_valid_ip(v):
            return v

        # Left-most entry is the original client.
        xff = request.headers.get("x-forwarded-for")
        if xff:
            ip = xff.split(",")[0].strip()
            if ip and _is_valid_ip(ip):
                return ip

    client = request.client
    if client and client.host:
        host = str(client.host)
        return host if _is_valid_ip(host) else "unknown"

    return "unknown"


def _reject(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, "code": code})


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach a fixed set of browser hardening headers to every response."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for k, v in self.HEADERS.items():
            response.headers.setdefault(k, v)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Fail-fast request size limiter.

    - Enforces Content-Length when present.
    - Also caps the buffered body of mutating requests.

    Configure:
      CSIM_MAX_REQUEST_BYTES (default: 1_048_576)
      CSIM_SIZE_LIMIT_DISABLE=1 to disable
    """

    def __init__(
        self,
        app,
        *,
        max_bytes: Optional[int] = None,
        exempt_prefixes: Tuple[str, ...] = ("/docs", "/openapi.json", "/api/health"),
    ):
        super().__init__(app)
        self._enabled = not _truthy(os.environ.get("CSIM_SIZE_LIMIT_DISABLE"))
        if max_bytes is not None:
            self._max_bytes = int(max_bytes)
        else:
            self._max_bytes = _env_int("CSIM_MAX_REQUEST_BYTES", 1024 * 1024)
        self._exempt_prefixes = exempt_prefixes

    def _too_large(self) -> JSONResponse:
        return _reject(413, "request_too_large", "Request entity too large")

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        path = request.url.path or ""
        for ex in self._exempt_prefixes:
            if path.startswith(ex):
                return await call_next(request)

        cl = request.headers.get("content-length")
        if cl:
            try:
                if int(cl) > self._max_bytes:
                    return self._too_large()
            except ValueError:
                # Malformed header; fall back to the buffered body cap.
                pass

        method = (request.method or "").upper()
        if method in {"POST", "PUT", "PATCH"}:
            body = await request.body()
            if body and len(body) > self._max_bytes:
                return self._too_large()

        return await call_next(request)


@dataclass(frozen=True)
class TokenBucket:
    rate_per_sec: float
    burst: float


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory token bucket rate limiter, separate read/write buckets per client.

    Buckets are evicted by TTL and by a size cap so scanning traffic cannot
    grow memory without bound.
    """

    def __init__(
        self,
        app,
        *,
        write_bucket: TokenBucket | None = None,
        read_bucket: TokenBucket | None = None,
        ttl_s: int | None = None,
        max_keys: int | None = None,
        prune_every: int | None = None,
        exempt_prefixes: Tuple[str, ...] = ("/docs", "/openapi.json", "/api/health", "/api/events"),
    ):
        super().__init__(app)

        # Keyed by "<ip>:<rate>:<burst>".
        # Value: (tokens_remaining, last_refill_ts, last_seen_ts)
        self._buckets: Dict[str, Tuple[float, float, float]] = {}

        self._write = write_bucket or TokenBucket(rate_per_sec=4.0, burst=20.0)
        self._read = read_bucket or TokenBucket(rate_per_sec=12.0, burst=40.0)
        self._exempt_prefixes = exempt_prefixes

        # Configure via env:
        #   CSIM_RL_TTL_S         (default 900 seconds)
        #   CSIM_RL_MAX_KEYS      (default 20000)
        #   CSIM_RL_PRUNE_EVERY   (default 256 requests)
        self._ttl_s = int(ttl_s) if ttl_s is not None else _env_int("CSIM_RL_TTL_S", 900)
        self._max_keys = int(max_keys) if max_keys is not None else _env_int("CSIM_RL_MAX_KEYS", 20_000)
        pe = int(prune_every) if prune_every is not None else _env_int("CSIM_RL_PRUNE_EVERY", 256)
        self._prune_every = max(1, pe)
        self._req_count = 0
        self._enabled = not _truthy(os.environ.get("CSIM_RATE_LIMIT_DISABLE"))

    def _pick_bucket(self, request: Request) -> TokenBucket:
        if (request.method or "").upper() in {"POST", "PUT", "PATCH", "DELETE"}:
            return self._write
        return self._read

    def _prune(self, now: float) -> None:
        if self._ttl_s > 0:
            cutoff = now - float(self._ttl_s)
            stale = [k for k, (_, __, last_seen) in self._buckets.items() if last_seen < cutoff]
            for k in stale:
                self._buckets.pop(k, None)

        # Size cap: drop oldest by last_seen.
        if self._max_keys > 0 and len(self._buckets) > self._max_keys:
            items = sorted(self._buckets.items(), key=lambda kv: kv[1][2])
            for k, _ in items[: len(items) - self._max_keys]:
                self._buckets.pop(k, None)

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        path = request.url.path or ""
        for ex in self._exempt_prefixes:
            if path.startswith(ex):
                return await call_next(request)

        ip = _client_ip(request)
        bucket = self._pick_bucket(request)
        now = time.time()

        self._req_count += 1
        if (self._req_count % self._prune_every) == 0:
            self._prune(now)

        key = f"{ip}:{bucket.rate_per_sec}:{bucket.burst}"
        tokens, last, _last_seen = self._buckets.get(key, (bucket.burst, now, now))

        tokens = min(bucket.burst, tokens + (now - last) * bucket.rate_per_sec)
        if tokens < 1.0:
            self._buckets[key] = (tokens, now, now)
            return _reject(429, "rate_limited", "Too many requests, please try again later.")

        self._buckets[key] = (tokens - 1.0, now, now)

        if self._max_keys > 0 and len(self._buckets) > self._max_keys:
            self._prune(now)

        return await call_next(request)
