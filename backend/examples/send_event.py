"""Example client that tracks a purchase event and reads back stats."""
from __future__ import annotations

import argparse
import os

import requests


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send a sample event to Applytics")
    parser.add_argument(
        "--api-url",
        default=os.environ.get("APPLYTICS_API_URL", "http://127.0.0.1:8000"),
        help="Applytics API base URL (default: %(default)s or APPLYTICS_API_URL)",
    )
    parser.add_argument(
        "--app-id",
        default=os.environ.get("APPLYTICS_APP_ID", "demo-app"),
        help="Application id sent in the X-App-ID header (APPLYTICS_APP_ID)",
    )
    parser.add_argument(
        "--api-key",
        default=os.environ.get("APPLYTICS_API_KEY"),
        help="Shared secret sent in the X-API-Key header (APPLYTICS_API_KEY)",
    )
    args = parser.parse_args()
    if not args.api_key:
        parser.error("An API key must be supplied via --api-key or APPLYTICS_API_KEY")
    return args


def main() -> None:
    args = parse_args()
    headers = {"X-App-ID": args.app_id, "X-API-Key": args.api_key}
    payload = {"event_type": "purchase", "qualifier": "premium_upgrade", "value": 999, "country": "US"}
    response = requests.post(f"{args.api_url}/track", headers=headers, json=payload, timeout=10)
    response.raise_for_status()
    print("Event tracked:", response.json())

    stats = requests.get(
        f"{args.api_url}/stats",
        headers=headers,
        params={"format": "detailed", "prefix": "purchase"},
        timeout=10,
    )
    stats.raise_for_status()
    print("Stats:", stats.json())

    series = requests.get(
        f"{args.api_url}/timeseries",
        headers=headers,
        params={"metric": "purchase.premium_upgrade", "period": "day", "limit": 7},
        timeout=10,
    )
    series.raise_for_status()
    print("Timeseries:", series.json())


if __name__ == "__main__":
    main()
