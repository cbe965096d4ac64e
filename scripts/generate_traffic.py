#!/usr/bin/env python3
"""Traffic generator — gives the dashboards something to draw.

RUN:  python scripts/generate_traffic.py [BASE_URL] [TOTAL_REQUESTS]

Sends a mix of list and detail requests to the product API, prints the
status-code breakdown, then fetches /metrics and prints the error counter
and request-count lines so you can see what the collector will scrape.

Prerequisites:
  - The API must be running, ideally with faults enabled so there is
    latency spread and some failures to look at:

      FAULT_MAX_DELAY_SECONDS=0.3 FAULT_ERROR_RATE=0.05 python -m product_metrics

This script is a demo aid, not a load testing tool.  For real load
testing, use locust, k6, or wrk.
"""

from __future__ import annotations

import random
import sys
import time

import httpx

BASE_URL = "http://localhost:8000"
TOTAL_REQUESTS = 200

# Detail ids include one that doesn't exist, so 404s show up too.
_DETAIL_IDS = [1, 2, 3, 4, 99]


def main() -> None:
    base_url = sys.argv[1] if len(sys.argv) > 1 else BASE_URL
    total = int(sys.argv[2]) if len(sys.argv) > 2 else TOTAL_REQUESTS
    rng = random.Random(42)

    print("Product API traffic generator")
    print("=" * 50)
    print(f"Target: {base_url}")
    print(f"Total requests: {total}")
    print()

    results: dict[int, int] = {}
    start = time.monotonic()

    with httpx.Client(base_url=base_url, timeout=10) as client:
        for i in range(total):
            if rng.random() < 0.6:
                path = "/products"
            else:
                path = f"/products/{rng.choice(_DETAIL_IDS)}"
            try:
                resp = client.get(path)
            except httpx.HTTPError as exc:
                print(f"  Request failed: {exc}")
                sys.exit(1)
            results[resp.status_code] = results.get(resp.status_code, 0) + 1

            if (i + 1) % 50 == 0:
                print(f"  Sent {i + 1}/{total} requests...")

        elapsed = time.monotonic() - start

        print()
        print(f"Results after {total} requests ({elapsed:.2f}s):")
        print("─" * 40)
        for code in sorted(results):
            print(f"  {code}: {results[code]:>5}")

        print()
        print("Scrape excerpt:")
        print("─" * 40)
        scrape = client.get("/metrics")
        for line in scrape.text.splitlines():
            if line.startswith("get_products_error_count_total") or (
                line.startswith("http_server_request_duration_seconds_count")
            ):
                print(f"  {line}")


if __name__ == "__main__":
    main()
