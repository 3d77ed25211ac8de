#!/usr/bin/env python3
from __future__ import annotations

import os
import sys

import httpx


def main() -> int:
    base_url = os.getenv("CAORAG_API_URL", "http://localhost:8080").rstrip("/")
    try:
        with httpx.Client(base_url=base_url, timeout=5.0) as client:
            health = client.get("/healthz")
            health.raise_for_status()
            print("/healthz:", health.text)
            stores = client.get("/stores")
            stores.raise_for_status()
            names = [item.get("displayName") for item in stores.json()]
            print("/stores:", ", ".join(name for name in names if name) or "(none)")
    except httpx.HTTPError as exc:
        print(f"Smoke check failed: {exc}", file=sys.stderr)
        return 1
    print("Smoke check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
