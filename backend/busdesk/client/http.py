import logging
import random
import time
from typing import Any, Optional

import httpx

from busdesk.core.config import AppConfig

logger = logging.getLogger(__name__)

RETRY_STATUSES = {429, 502, 503, 504, 520, 522, 524}


def mask_bearer(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    parts = value.split(" ", 1)
    if len(parts) != 2:
        return "****"
    scheme, token = parts
    if len(token) <= 6:
        return f"{scheme} ****"
    return f"{scheme} ****{token[-4:]}"


def configure_logging_if_needed(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def log_request(request: httpx.Request) -> None:
    logger.debug("HTTP %s %s", request.method, request.url)
    logger.debug("HTTP Authorization: %s", mask_bearer(request.headers.get("authorization")))


def make_client(cfg: AppConfig, *, transport: Optional[httpx.BaseTransport] = None) -> httpx.Client:
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    if cfg.api_token:
        headers["Authorization"] = f"Bearer {cfg.api_token}"

    timeout = httpx.Timeout(
        connect=cfg.connect_timeout,
        read=cfg.read_timeout,
        write=cfg.write_timeout,
        pool=cfg.pool_timeout,
    )
    return httpx.Client(
        base_url=cfg.base_url,
        timeout=timeout,
        headers=headers,
        event_hooks={"request": [log_request]},
        transport=transport,
    )


def sleep_backoff(cfg: AppConfig, *, attempt: int, path: str) -> None:
    sleep_s = cfg.backoff_base * (2 ** (attempt - 1))
    sleep_s += random.uniform(0, 0.25)
    logger.info("Sleeping %.2fs before retrying %s", sleep_s, path)
    time.sleep(sleep_s)


def request_with_retry(
    cfg: AppConfig,
    client: httpx.Client,
    method: str,
    path: str,
    *,
    params: Optional[dict] = None,
    json: Optional[Any] = None,
    attempts: Optional[int] = None,
) -> Any:
    """
    Send a request, retrying timeouts and RETRY_STATUSES with exponential backoff.
    Returns the decoded JSON body (None for empty bodies).
    """
    max_attempts = max(1, attempts if attempts is not None else cfg.retries)
    last_err: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        t0 = time.perf_counter()
        try:
            r = client.request(method, path, params=params, json=json)
            elapsed = time.perf_counter() - t0

            if r.status_code in RETRY_STATUSES:
                logger.warning(
                    "Retryable HTTP %d (attempt %d/%d) %s %s after %.2fs body_snippet=%r",
                    r.status_code,
                    attempt,
                    max_attempts,
                    method,
                    path,
                    elapsed,
                    (r.text or "")[:300],
                )
                raise httpx.HTTPStatusError("Retryable status", request=r.request, response=r)

            logger.debug("%s %s completed in %.2fs status=%d", method, path, elapsed, r.status_code)

            r.raise_for_status()
            if not r.content:
                return None
            return r.json()

        except (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.ConnectError) as e:
            last_err = e
            logger.warning(
                "%s (attempt %d/%d) %s %s after %.2fs",
                e.__class__.__name__,
                attempt,
                max_attempts,
                method,
                path,
                time.perf_counter() - t0,
            )

        except httpx.HTTPStatusError as e:
            last_err = e
            status = e.response.status_code if e.response is not None else None
            if status not in RETRY_STATUSES:
                logger.error(
                    "Non-retryable HTTP %s %s %s body_snippet=%r",
                    status,
                    method,
                    path,
                    (e.response.text or "")[:300] if e.response is not None else None,
                )
                raise

        if attempt < max_attempts:
            sleep_backoff(cfg, attempt=attempt, path=path)

    raise last_err  # type: ignore


def describe_error(err: Exception) -> str:
    """
    Human-readable message for a failed call; prefers the backend's JSON
    "message"/"error" field.
    """
    if isinstance(err, httpx.HTTPStatusError) and err.response is not None:
        try:
            body = err.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("message", "error"):
                msg = body.get(key)
                if isinstance(msg, str) and msg.strip():
                    return msg.strip()
        return f"HTTP {err.response.status_code}"
    return str(err) or err.__class__.__name__
