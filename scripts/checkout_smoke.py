"""Open one order against a running instance and print the approval URL.

Finish the flow by opening the URL in a browser with a sandbox buyer account.
"""

import argparse
import json

import httpx


def main() -> None:
    """Parse CLI args, call /create-order, print the response."""

    parser = argparse.ArgumentParser(description="Create one checkout order and print the approval URL.")
    parser.add_argument("--base-url", default="http://localhost:5000")
    parser.add_argument("--amount", default=None)
    parser.add_argument("--currency", default=None)
    parser.add_argument("--description", default=None)
    parser.add_argument("--idempotency-key", default=None)
    args = parser.parse_args()

    payload = {
        key: value
        for key, value in {
            "amount": args.amount,
            "currency": args.currency,
            "description": args.description,
        }.items()
        if value is not None
    }
    headers = {"Idempotency-Key": args.idempotency_key} if args.idempotency_key else {}

    resp = httpx.post(f"{args.base_url}/create-order", json=payload, headers=headers, timeout=30.0)
    body = resp.json()
    if resp.status_code >= 400:
        raise SystemExit(f"create-order failed status={resp.status_code} body={json.dumps(body)}")
    print(f"order_id={body['id']} status={body['status']}")
    print(f"approve={body['approve']}")


if __name__ == "__main__":
    main()
