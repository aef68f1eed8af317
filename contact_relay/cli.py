from __future__ import annotations

import argparse
import json
from dataclasses import asdict

from .config import load_settings
from .submission import is_valid_email


def cmd_serve(host: str, port: int, reload: bool) -> None:
    import uvicorn

    uvicorn.run("contact_relay.main:app", host=host, port=port, reload=reload)


def cmd_show_config() -> None:
    s = load_settings()
    data = asdict(s)
    data["relay_api_key"] = "***" if s.relay_api_key else None
    data["mail_to"] = list(s.mail_to)
    print(json.dumps(data, indent=2, sort_keys=True))


def cmd_check_email(address: str) -> int:
    ok = is_valid_email(address)
    print(f"{address!r}: {'valid' if ok else 'invalid'}")
    return 0 if ok else 2


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(prog="contact-relay")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_serve = sub.add_parser("serve", help="Run the HTTP service with uvicorn.")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=8080)
    p_serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes (dev only).")

    sub.add_parser("show-config", help="Print effective settings as JSON (API key redacted).")

    p_email = sub.add_parser("check-email", help="Check an address against the submission email rule.")
    p_email.add_argument("address")

    args = ap.parse_args(argv)

    if args.cmd == "serve":
        cmd_serve(host=args.host, port=int(args.port), reload=bool(args.reload))
    elif args.cmd == "show-config":
        cmd_show_config()
    elif args.cmd == "check-email":
        raise SystemExit(cmd_check_email(args.address))


if __name__ == "__main__":
    main()
