#!/usr/bin/env python3
"""Dump the persisted state of an azanything storage directory.

Loads the directory, the request ledger and the persisted session from a
:class:`JsonFileStorage` root and prints them, parsed, so stored data can
be inspected without starting an application.

Usage
-----
::

    python scripts/dump_state.py --storage ./data

Options::

    --storage PATH      Storage directory (default: $AZ_STORAGE_PATH)
    --json              Output as machine-readable JSON
    --output FILE       Write output to FILE instead of stdout
    --show-personal     Do not redact phone numbers, emails and addresses
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from azanything import AzApp, AzConfig, AzError  # noqa: E402
from azanything._redact import redact_for_log  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _format_record(record: dict[str, Any], indent: int = 2) -> list[str]:
    prefix = " " * indent
    return [f"{prefix}{key}: {value}" for key, value in record.items()]


def collect(app: AzApp, *, redact: bool) -> dict[str, Any]:
    def _clean(data: Any) -> Any:
        return redact_for_log(data) if redact else data

    session = app.sessions.current_session() if app.sessions.is_authenticated else None
    return {
        "session": _clean(session.user.to_storage()) if session is not None else None,
        "users": [_clean(user.to_storage()) for user in app.directory.users()],
        "requests": [_clean(request.to_storage()) for request in app.ledger.snapshot()],
        "stats": {
            "requests": app.ledger.stats().model_dump(),
            "directory": app.directory.stats().model_dump(),
        },
    }


def render_text(result: dict[str, Any]) -> str:
    out: list[str] = []
    out.append(_section("Session"))
    if result["session"] is None:
        out.append("  (none)")
    else:
        out.extend(_format_record(result["session"]))

    out.append(_section(f"Users ({len(result['users'])})"))
    for user in result["users"]:
        out.append(f"  [{user.get('id')}] {user.get('role')}")
        out.extend(_format_record(user, indent=4))

    out.append(_section(f"Requests ({len(result['requests'])})"))
    for request in result["requests"]:
        out.append(f"  [{request.get('id')}] {request.get('status')}")
        out.extend(_format_record(request, indent=4))

    out.append(_section("Stats"))
    for group, counters in result["stats"].items():
        out.append(f"  {group}:")
        out.extend(_format_record(counters, indent=4))
    return "\n".join(out)


# ── main ─────────────────────────────────────────────────────


def main() -> int:
    parser = argparse.ArgumentParser(description="Dump persisted azanything state")
    parser.add_argument("--storage", help="Storage directory (default: $AZ_STORAGE_PATH)")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--show-personal", action="store_true", help="Do not redact personal fields")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {"seed_demo_data": False}
    if args.storage:
        overrides["storage_path"] = args.storage
    try:
        config = AzConfig.from_env(**overrides)
    except AzError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    if not config.storage_path:
        print("No storage directory given (use --storage or AZ_STORAGE_PATH)", file=sys.stderr)
        return 2

    try:
        with AzApp(config) as app:
            result = collect(app, redact=not args.show_personal)
    except AzError as exc:
        print(f"Cannot load state: {exc}", file=sys.stderr)
        return 1

    if args.json_mode:
        payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
    else:
        payload = render_text(result)

    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
        print(f"Wrote {args.output}", file=sys.stderr)
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
