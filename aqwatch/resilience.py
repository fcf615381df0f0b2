"""Fetching the live AQI feed with bounded exponential backoff.

Implements the fetch contract:
- GET the CNEMC publish endpoint with a per-request timeout
- Transport failures and non-2xx statuses are retried, at most MAX_FETCH_ATTEMPTS total
- Sleep base * 2^attempt between attempts (500ms, 1s, ...), never after the last
- Decode failures are not retried
"""

import random
import time
from dataclasses import dataclass
from typing import List, Optional

import requests

from .errors import HTTPStatusError, TransportError
from .settings import CITY_NAME
from .stations import StationRecord, decode_stations

AQI_URL = "https://air.cnemc.cn:18007/CityData/GetAQIDataPublishLive"

# Bytes of an error body kept for diagnostics
ERROR_BODY_LIMIT = 2048

# Hard cap on outbound fetch attempts per run
MAX_FETCH_ATTEMPTS = 3


# ------------- Configuration -------------
@dataclass
class RetryConfig:
    """Configuration for the fetch retry loop."""

    base_delay_ms: int = 500
    max_delay_ms: int = 60000
    max_attempts: int = 3
    jitter_factor: float = 0.0  # ±fraction of delay; 0 keeps delays exact


# ------------- Exponential Backoff -------------
class ExponentialBackoff:
    """Calculates exponential backoff delays with optional jitter."""

    def __init__(self, config: RetryConfig):
        self.config = config

    def delay_ms(self, attempt: int) -> int:
        """Calculates delay for given attempt (0-indexed).

        base * 2^attempt, capped at max_delay, then ±jitter_factor.
        """
        delay = self.config.base_delay_ms * (2**attempt)
        delay = min(delay, self.config.max_delay_ms)
        if self.config.jitter_factor:
            jitter_range = delay * self.config.jitter_factor
            delay += random.uniform(-jitter_range, jitter_range)
        return max(0, int(delay))


# ------------- Fetch -------------
def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


def fetch_raw(session: requests.Session, timeout: float, url: str = AQI_URL, city: str = CITY_NAME) -> bytes:
    """Single GET against the feed.

    The timeout is handed to requests, which applies it to connecting and to
    each socket read rather than to the whole request/response cycle; a server
    trickling bytes can keep one attempt alive longer than `timeout`.

    Raises:
        TransportError: request failed or timed out
        HTTPStatusError: non-2xx status, with a bounded body excerpt
    """
    try:
        resp = session.get(url, params={"cityName": city}, timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(f"aqi request failed: {e}") from e
    if not is_success_status(resp.status_code):
        excerpt = resp.text[:ERROR_BODY_LIMIT]
        raise HTTPStatusError(
            resp.status_code,
            excerpt,
            f"api returned http status {resp.status_code}: {excerpt}",
        )
    return resp.content


def fetch_stations(
    session: requests.Session,
    timeout: float,
    config: Optional[RetryConfig] = None,
    url: str = AQI_URL,
    city: str = CITY_NAME,
) -> List[StationRecord]:
    """Fetches and decodes the live feed, retrying transport/status failures.

    Returns:
        Station records in upstream order

    Raises:
        TransportError / HTTPStatusError: last failure once attempts are exhausted
        DecodeError: body could not be interpreted (raised on first occurrence)
    """
    if config is None:
        config = RetryConfig()
    attempts = min(MAX_FETCH_ATTEMPTS, max(1, config.max_attempts))
    backoff = ExponentialBackoff(config)
    last_exc: Optional[Exception] = None
    for attempt in range(attempts):
        try:
            body = fetch_raw(session, timeout, url, city)
        except (TransportError, HTTPStatusError) as e:
            last_exc = e
            if attempt < attempts - 1:
                delay = backoff.delay_ms(attempt)
                print(f"[fetch] attempt {attempt + 1}/{attempts} failed: {e}; retrying in {delay}ms")
                time.sleep(delay / 1000.0)
            continue
        return decode_stations(body)
    raise last_exc
