#!/usr/bin/env python3
"""Run a monitoring session headlessly and print the derived rows.

Drives the same LiveDataSource/MapReconciler pipeline a dashboard would,
against a recording map surface, and prints one table per update.

Usage
-----
Demo mode (no network)::

    python scripts/live_monitor.py --demo --cycles 3

Live mode::

    export SOUCARE_API_BASE_URL="https://tracking.example.com"
    python scripts/live_monitor.py --email you@example.com --password secret

Options::

    --demo               Use the offline demo world
    --email / --password Login credentials (or SOUCARE_EMAIL / SOUCARE_PASSWORD)
    --token TOKEN        Reuse a stored token ("demo", "session" or a bearer token)
    --cycles N           Stop after N updates (default: run until interrupted)
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from soucare import (  # noqa: E402
    Credential,
    LiveSnapshot,
    Monitor,
    RecordingSurface,
    SoucareClient,
    SoucareConfig,
    SoucareError,
)


def _print_rows(monitor: Monitor, snapshot: LiveSnapshot) -> None:
    counts = monitor.counts
    status = "loading" if snapshot.loading else (f"error: {snapshot.error}" if snapshot.error else "ok")
    print(
        f"[{snapshot.mode}] {status} • devices: {len(snapshot.devices)} • positions: {len(snapshot.positions)} "
        f"• ok={counts.green} attention={counts.yellow} critical={counts.red} offline={counts.gray}"
    )
    for row in monitor.rows:
        coords = f"{row.lat:.5f}, {row.lng:.5f}" if row.has_fix else "--"
        print(f"  {row.status.value:<6} {row.label:<28} {row.last_seen_text:>7} {row.battery_text:>5}  {coords}")
    message = monitor.reconciler.route_message
    if message:
        print(f"  ({message})")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Headless soucare monitoring session")
    parser.add_argument("--demo", action="store_true", help="Use the offline demo world")
    parser.add_argument("--email", default=os.environ.get("SOUCARE_EMAIL"), help="Login e-mail")
    parser.add_argument("--password", default=os.environ.get("SOUCARE_PASSWORD"), help="Login password")
    parser.add_argument("--token", help="Stored token: 'demo', 'session' or a bearer token")
    parser.add_argument("--cycles", type=int, default=0, help="Stop after N updates (0 = forever)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = SoucareConfig.from_env()
    updates: asyncio.Queue[LiveSnapshot] = asyncio.Queue()

    async with SoucareClient(config) as client:
        if args.demo:
            credential = client.enter_demo()
        elif args.token:
            credential = Credential.from_token(args.token)
        elif args.email and args.password:
            try:
                credential = await client.login(args.email, args.password)
            except SoucareError as exc:
                print(f"Login failed: {exc}", file=sys.stderr)
                sys.exit(1)
        else:
            parser.error("use --demo, --token, or --email/--password")

        async with Monitor(client) as monitor:
            monitor.source.add_listener(lambda snapshot: updates.put_nowait(snapshot))
            await monitor.start(credential, RecordingSurface())
            seen = 0
            while not args.cycles or seen < args.cycles:
                snapshot = await updates.get()
                if snapshot.loading:
                    continue
                await monitor.wait_for_route()
                _print_rows(monitor, snapshot)
                seen += 1


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
