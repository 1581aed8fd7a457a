"""Poll a deposit through the payments service until it leaves PENDING."""

import argparse
import json
import time

import httpx


def main() -> None:
    """CLI entrypoint for deposit polling."""

    parser = argparse.ArgumentParser(description="Poll deposit status via the payments service.")
    parser.add_argument("deposit_id")
    parser.add_argument("--payments-url", default="http://localhost:8001")
    parser.add_argument("--interval", type=float, default=5.0)
    parser.add_argument("--max-polls", type=int, default=24)
    args = parser.parse_args()

    body = {}
    for _ in range(args.max_polls):
        resp = httpx.get(f"{args.payments_url}/deposits/{args.deposit_id}", timeout=30.0)
        resp.raise_for_status()
        body = resp.json()
        if body.get("status") != "PENDING":
            break
        time.sleep(args.interval)
    print(json.dumps(body, indent=2))


if __name__ == "__main__":
    main()
