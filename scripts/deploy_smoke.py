from __future__ import annotations

import argparse
import json
import time
from dataclasses import dataclass
from typing import Any, Callable
from urllib import error, request


CONTACT_PATH = "/api/send-email"


@dataclass(frozen=True)
class HttpResponse:
    status: int
    json_body: Any | None
    text: str


@dataclass(frozen=True)
class CheckResult:
    name: str
    ok: bool
    status: int
    detail: str


FetchFn = Callable[[str, str, dict[str, Any] | None, dict[str, str], float], HttpResponse]


def _fetch_http(method: str, url: str, payload: dict[str, Any] | None, headers: dict[str, str], timeout_s: float) -> HttpResponse:
    body: bytes | None = None
    req_headers = dict(headers)
    if payload is not None:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        req_headers.setdefault("Content-Type", "application/json")

    req = request.Request(url=url, method=method.upper(), data=body, headers=req_headers)

    raw = ""
    status = 0
    try:
        with request.urlopen(req, timeout=timeout_s) as resp:
            status = int(resp.status)
            raw = resp.read().decode("utf-8", errors="replace")
    except error.HTTPError as e:
        status = int(e.code)
        raw = e.read().decode("utf-8", errors="replace")
    except Exception as e:  # pragma: no cover - network failures are environment-specific
        return HttpResponse(status=0, json_body=None, text=f"{type(e).__name__}: {e}")

    parsed: Any | None = None
    if raw.strip():
        try:
            parsed = json.loads(raw)
        except Exception:
            parsed = None

    return HttpResponse(status=status, json_body=parsed, text=raw)


def _short_text(value: str, *, max_len: int = 180) -> str:
    text = " ".join((value or "").split())
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _result(name: str, ok: bool, status: int, detail: str) -> CheckResult:
    return CheckResult(name=name, ok=ok, status=int(status), detail=detail)


def run_smoke(
    *,
    base_url: str,
    timeout_s: float,
    fetch: FetchFn | None = None,
) -> tuple[list[CheckResult], bool]:
    """Probe a deployed relay without ever sending real mail.

    The only POST carries a filled honeypot field, which the service accepts
    silently and never forwards.
    """

    do_fetch = fetch or _fetch_http
    url_base = base_url.rstrip("/")
    checks: list[CheckResult] = []

    def call(method: str, path: str, payload: dict[str, Any] | None = None) -> HttpResponse:
        return do_fetch(method, f"{url_base}{path}", payload, {}, timeout_s)

    health = call("GET", "/health")
    if health.status == 200 and isinstance(health.json_body, dict) and health.json_body.get("status") == "ok":
        checks.append(_result("GET /health", True, health.status, "status=ok"))
    else:
        checks.append(
            _result("GET /health", False, health.status, f"expected 200 + {{status:ok}}, got body={_short_text(health.text)}")
        )

    ready = call("GET", "/ready")
    ready_body = ready.json_body if isinstance(ready.json_body, dict) else {}
    if ready.status != 200 or ready_body.get("ready") is not True:
        checks.append(
            _result("GET /ready", False, ready.status, f"expected 200 + {{ready:true}}, got body={_short_text(ready.text)}")
        )
    elif not ready_body.get("relay_configured"):
        checks.append(_result("GET /ready", False, ready.status, "relay_configured=false (RESEND_API_KEY unset?)"))
    else:
        checks.append(_result("GET /ready", True, ready.status, f"version={ready_body.get('version')}"))

    wrong_method = call("GET", CONTACT_PATH)
    wm_body = wrong_method.json_body if isinstance(wrong_method.json_body, dict) else {}
    if wrong_method.status == 405 and "error" in wm_body:
        checks.append(_result(f"GET {CONTACT_PATH}", True, 405, "method rejected"))
    else:
        checks.append(
            _result(
                f"GET {CONTACT_PATH}",
                False,
                wrong_method.status,
                f"expected 405 + {{error}}, got body={_short_text(wrong_method.text)}",
            )
        )

    decoy = call(
        "POST",
        CONTACT_PATH,
        payload={
            "name": "Smoke Check",
            "email": "smoke@example.com",
            "message": "deploy smoke (honeypot, not delivered)",
            "website": "smoke",
        },
    )
    decoy_body = decoy.json_body if isinstance(decoy.json_body, dict) else {}
    if decoy.status == 200 and decoy_body.get("success") is True and "id" not in decoy_body:
        checks.append(_result(f"POST {CONTACT_PATH} (honeypot)", True, 200, "silently accepted, not relayed"))
    else:
        checks.append(
            _result(
                f"POST {CONTACT_PATH} (honeypot)",
                False,
                decoy.status,
                f"expected 200 + {{success:true}} without id, got body={_short_text(decoy.text)}",
            )
        )

    ok = all(c.ok for c in checks)
    return checks, ok


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run post-deploy smoke checks.")
    parser.add_argument("--base-url", required=True, help="Base service URL (for example https://contact.example.com)")
    parser.add_argument("--timeout-s", type=float, default=8.0, help="Per-request timeout in seconds.")
    parser.add_argument("--retries", type=int, default=1, help="Retry full smoke suite up to N times on failure.")
    parser.add_argument("--retry-delay-s", type=float, default=2.0, help="Delay between retry attempts.")
    args = parser.parse_args(argv)

    print(f"Smoke target URL: {args.base_url.rstrip('/')}")

    attempts = max(1, int(args.retries))
    last_checks: list[CheckResult] = []
    for idx in range(1, attempts + 1):
        checks, ok = run_smoke(base_url=args.base_url, timeout_s=float(args.timeout_s))
        last_checks = checks
        if ok:
            break
        if idx < attempts:
            time.sleep(max(0.0, float(args.retry_delay_s)))

    passed = sum(1 for c in last_checks if c.ok)
    total = len(last_checks)
    for check in last_checks:
        label = "PASS" if check.ok else "FAIL"
        print(f"[{label}] {check.name}: status={check.status} {check.detail}")

    print(f"Smoke summary: {passed}/{total} checks passed")
    return 0 if passed == total else 1


if __name__ == "__main__":
    raise SystemExit(main())
