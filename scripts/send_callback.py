"""Post a raw pawaPay callback JSON to the callbacks service.

Useful for replaying a provider callback by hand and for duplicate-delivery
checks against the reconciler.
"""

import argparse
import json
from pathlib import Path

import httpx

KINDS = {"deposit": "deposit-callback", "payout": "payout-callback", "refund": "refund-callback"}


def main() -> None:
    """Parse CLI args and post one callback payload."""

    parser = argparse.ArgumentParser(description="Post a pawaPay callback payload.")
    parser.add_argument("--callbacks-url", default="http://localhost:8002")
    parser.add_argument("--kind", choices=sorted(KINDS), default="deposit")
    parser.add_argument("--json", dest="json_inline", default=None, help="Inline JSON payload")
    parser.add_argument("--file", dest="json_file", default=None, help="Path to JSON file")
    parser.add_argument("--repeat", type=int, default=1, help="Deliver the same payload N times")
    args = parser.parse_args()

    if bool(args.json_inline) == bool(args.json_file):
        raise SystemExit("Provide exactly one of --json or --file")

    if args.json_inline:
        payload = json.loads(args.json_inline)
    else:
        payload = json.loads(Path(args.json_file).read_text())

    url = f"{args.callbacks_url}/pawapay/{KINDS[args.kind]}"
    for attempt in range(1, args.repeat + 1):
        resp = httpx.post(url, json=payload, timeout=10.0)
        print(f"attempt={attempt} status={resp.status_code} body={resp.text}")


if __name__ == "__main__":
    main()
