#!/usr/bin/env python3
"""
Probe the configured cache backend from the command line.

Reports which remote commands are permitted and runs a set/get/delete round
trip through CacheStore, so the fallback path actually taken is visible.

Usage:
  python check_cache.py
  python check_cache.py --key test:connection --ttl 60
  python check_cache.py --permissions-only --json
"""
import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone

from core.cache import CacheStore
from core.cache_backends import create_remote_store
from core.config import Settings
from core.logging import configure_logging


async def run_checks(settings, key, ttl, permissions_only):
    """Run the probes and return a result dict."""
    cache = CacheStore(remote=create_remote_store(settings))
    await cache.startup()
    try:
        results = {"info": cache.get_info().to_dict()}
        if not cache.is_remote_available():
            results["note"] = "No remote cache configured; running on local memory"

        profile = cache.permissions or await cache.test_permissions()
        results["permissions"] = profile.to_dict()
        if permissions_only:
            return results

        payload = {
            "message": "cache check",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        write = await cache.set(key, payload, ttl)
        read = await cache.lookup(key)
        delete = await cache.delete(key)
        after = await cache.lookup(key)

        results["round_trip"] = {
            "set": write.value,
            "get": read.outcome.value,
            "matches": read.value == payload,
            "delete": delete.value,
            "gone": not after.found,
        }
        return results
    finally:
        await cache.shutdown()


def main():
    parser = argparse.ArgumentParser(description="Cache backend probe")
    parser.add_argument("--key", default="test:connection",
                        help="Key used for the round trip")
    parser.add_argument("--ttl", type=int, default=60,
                        help="TTL in seconds for the test write")
    parser.add_argument("--permissions-only", action="store_true",
                        help="Only report remote command permissions")
    parser.add_argument("--json", action="store_true",
                        help="Print raw JSON output")
    args = parser.parse_args()

    settings = Settings()
    configure_logging(settings)

    results = asyncio.run(run_checks(settings, args.key, args.ttl, args.permissions_only))

    if args.json:
        print(json.dumps(results, indent=2))
    else:
        info = results["info"]
        print(f"Backend: {info['backend_kind']} ({info['remote_type'] or 'none'})")
        if "note" in results:
            print(results["note"])
        for command, allowed in results["permissions"].items():
            print(f"  {command:<16} {'ok' if allowed else 'denied'}")
        trip = results.get("round_trip")
        if trip:
            print(f"set -> {trip['set']}, get -> {trip['get']}, delete -> {trip['delete']}")
            print(f"value matches: {trip['matches']}, gone after delete: {trip['gone']}")

    trip = results.get("round_trip")
    if trip and not (trip["matches"] and trip["gone"]):
        sys.exit(1)


if __name__ == "__main__":
    main()
