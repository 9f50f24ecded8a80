#!/usr/bin/env python3
"""
Smoke test for burn-after-reading deployments.

Deploy guardrail: fast, no third-party dependencies, actionable failures
(step name, HTTP status/body preview).

Flow (default):
1. Health check
2. Create a secret with a short TTL
3. Retrieve it (content must match byte for byte)
4. Retrieve it again (must be 404)
5. Retrieve a malformed id (must be the same 404)

Usage:
    ./scripts/smoke-test.py https://staging.example.com
    ./scripts/smoke-test.py https://staging.example.com --health-only
"""

import argparse
import json
import random
import secrets
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

DEFAULT_TTL_MINUTES = 5
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRIES = 2
DEFAULT_RETRY_BACKOFF_SECONDS = 0.5
MAX_BACKOFF_SECONDS = 4.0
BODY_PREVIEW_CHARS = 200
NOT_FOUND_MESSAGE = "Secret not found or has expired"


def log(msg: str) -> None:
    """Print timestamped log message."""
    print(f"[{datetime.now().strftime('%H:%M:%S')}] {msg}", flush=True)


def _preview(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace")
    return text if len(text) <= BODY_PREVIEW_CHARS else text[:BODY_PREVIEW_CHARS] + "…"


def _is_retryable_status(status_code: int) -> bool:
    return status_code in {408, 425, 429, 502, 503, 504}


@dataclass
class HttpClient:
    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES

    def request(
        self, method: str, path: str, *, data: dict[str, Any] | None = None
    ) -> tuple[int, bytes]:
        """
        Send a request and return (status, body).

        Retries transient statuses and network errors.
        """
        url = f"{self.base_url}{path}"
        body = json.dumps(data).encode() if data is not None else None
        headers = {"Content-Type": "application/json"} if body is not None else {}

        max_attempts = max(1, self.retries + 1)
        for attempt in range(1, max_attempts + 1):
            try:
                request = Request(url, data=body, headers=headers, method=method)
                try:
                    with urlopen(request, timeout=self.timeout_seconds) as response:
                        return response.getcode(), response.read()
                except HTTPError as e:
                    error_body = e.read() if e.fp else b""
                    if attempt < max_attempts and _is_retryable_status(e.code):
                        self._sleep_backoff(attempt)
                        continue
                    return e.code, error_body
            except (URLError, TimeoutError) as e:
                if attempt < max_attempts:
                    self._sleep_backoff(attempt)
                    continue
                raise RuntimeError(f"Network error after {attempt} attempts: {e}") from e

        raise RuntimeError(f"{method} {path}: retries exhausted")

    def json(self, method: str, path: str, expected_status: int, **kwargs) -> dict[str, Any]:
        status, body = self.request(method, path, **kwargs)
        if status != expected_status:
            raise RuntimeError(
                f"{method} {path}: expected {expected_status}, got {status} ({_preview(body)})"
            )
        try:
            return json.loads(body.decode())
        except json.JSONDecodeError as e:
            raise RuntimeError(f"{method} {path}: invalid JSON ({_preview(body)})") from e

    def _sleep_backoff(self, attempt: int) -> None:
        base = DEFAULT_RETRY_BACKOFF_SECONDS * (2 ** (attempt - 1))
        jitter = random.random() * DEFAULT_RETRY_BACKOFF_SECONDS
        time.sleep(min(MAX_BACKOFF_SECONDS, base + jitter))


@dataclass
class SmokeContext:
    client: HttpClient
    max_health_attempts: int

    secret_id: str | None = None
    content: str | None = None

    def require_secret(self) -> tuple[str, str]:
        if not self.secret_id or self.content is None:
            raise RuntimeError("Missing secret (step ordering bug)")
        return self.secret_id, self.content


@dataclass(frozen=True)
class Step:
    name: str
    run: Callable[[SmokeContext], None]


def run_steps(ctx: SmokeContext, steps: list[Step]) -> bool:
    overall_start = time.time()
    for step in steps:
        log(f"STEP: {step.name}")
        start = time.time()
        try:
            step.run(ctx)
        except Exception as e:
            log(f"FAILED: {step.name} ({time.time() - start:.2f}s) - {e}")
            log(f"Total: {time.time() - overall_start:.2f}s")
            return False
        log(f"OK: {step.name} ({time.time() - start:.2f}s)")

    log(f"Total: {time.time() - overall_start:.2f}s")
    return True


def step_health(ctx: SmokeContext) -> None:
    for attempt in range(1, ctx.max_health_attempts + 1):
        try:
            status, body = ctx.client.request("GET", "/health")
            if status == 200 and json.loads(body.decode()).get("status") == "healthy":
                log(f"Health check passed (attempt {attempt})")
                return
        except (json.JSONDecodeError, RuntimeError):
            pass
        if attempt < ctx.max_health_attempts:
            time.sleep(2.0)
    raise RuntimeError("Health check failed")


def step_create(ctx: SmokeContext) -> None:
    ctx.content = f"smoke test {secrets.token_hex(8)} ✓ ünïcødé"
    created = ctx.client.json(
        "POST",
        "/api/v1/secrets",
        201,
        data={"content": ctx.content, "ttl": DEFAULT_TTL_MINUTES},
    )["data"]
    ctx.secret_id = created["id"]

    created_at = datetime.fromisoformat(created["created_at"])
    expires_at = datetime.fromisoformat(created["expires_at"])
    drift = abs((expires_at - created_at) - timedelta(minutes=DEFAULT_TTL_MINUTES))
    if drift > timedelta(seconds=5):
        raise RuntimeError(f"expires_at off by {drift} (created={created_at}, expires={expires_at})")
    if created_at.tzinfo is None or created_at.utcoffset() != timezone.utc.utcoffset(None):
        raise RuntimeError(f"created_at is not UTC: {created['created_at']!r}")
    log(f"Created secret, url={created['url']}")


def step_first_read(ctx: SmokeContext) -> None:
    secret_id, content = ctx.require_secret()
    data = ctx.client.json("GET", f"/api/v1/secrets/{secret_id}", 200)["data"]
    if data["content"] != content:
        raise RuntimeError("Retrieved content does not match what was stored")


def step_second_read(ctx: SmokeContext) -> None:
    secret_id, _ = ctx.require_secret()
    body = ctx.client.json("GET", f"/api/v1/secrets/{secret_id}", 404)
    if body.get("message") != NOT_FOUND_MESSAGE:
        raise RuntimeError(f"Unexpected 404 body: {body!r}")


def step_malformed_id(ctx: SmokeContext) -> None:
    body = ctx.client.json("GET", "/api/v1/secrets/not-a-uuid", 404)
    if body.get("message") != NOT_FOUND_MESSAGE:
        raise RuntimeError(f"Malformed id distinguishable from missing id: {body!r}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Burn-after-reading smoke test")
    parser.add_argument("base_url", help="Base URL (e.g., https://staging.example.com)")
    parser.add_argument(
        "--health-only",
        action="store_true",
        help="Only run health check, skip full flow",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_SECONDS,
        help=f"HTTP timeout seconds (default: {DEFAULT_TIMEOUT_SECONDS:g})",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=DEFAULT_RETRIES,
        help=f"Retries for transient failures (default: {DEFAULT_RETRIES})",
    )
    parser.add_argument(
        "--max-health-attempts",
        type=int,
        default=30,
        help="Max health check attempts (default: 30)",
    )
    args = parser.parse_args()

    try:
        client = HttpClient(
            base_url=args.base_url.rstrip("/"), timeout_seconds=args.timeout, retries=args.retries
        )
        ctx = SmokeContext(client=client, max_health_attempts=args.max_health_attempts)

        steps = [Step("health", step_health)]
        if args.health_only:
            log("Health-only mode: skipping full flow")
        else:
            steps.extend(
                [
                    Step("create secret", step_create),
                    Step("first read", step_first_read),
                    Step("second read is gone", step_second_read),
                    Step("malformed id", step_malformed_id),
                ]
            )

        return 0 if run_steps(ctx, steps) else 1
    except Exception as e:
        log(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
