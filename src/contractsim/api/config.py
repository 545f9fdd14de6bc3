import os
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class ApiConfig:
    mode: str  # "dev" | "test" | "prod"
    cors_origins: List[str]
    log_requests: bool


def _is_truthy(v: str | None) -> bool:
    if v is None:
        return False
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_cors_origins(raw: str | None, mode: str) -> List[str]:
    """Parse a comma-separated CORS allowlist.

    Policy:
      - unset/empty -> CORS disabled
      - wildcard "*" is rejected in prod mode
    """
    raw = (raw or "").strip()
    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]

    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in CSIM_CORS_ORIGINS."
            )
        return ["*"]

    return origins


def load_api_config() -> ApiConfig:
    mode = os.getenv("CSIM_MODE", "dev").strip().lower()
    raw_log = os.getenv("CSIM_LOG_REQUESTS")
    return ApiConfig(
        mode=mode,
        cors_origins=parse_cors_origins(os.getenv("CSIM_CORS_ORIGINS"), mode),
        log_requests=True if raw_log is None else _is_truthy(raw_log),
    )
