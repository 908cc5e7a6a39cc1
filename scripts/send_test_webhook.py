#!/usr/bin/env python3
"""
Send a signed Paystack charge.success webhook to a running backend.

DO NOT ADD BUSINESS LOGIC HERE.
This script only signs and posts the event.
All rules live in the backend.

Usage:
    PAYSTACK_SECRET_KEY=sk_test_xxx python scripts/send_test_webhook.py --reference ref_123
    python scripts/send_test_webhook.py --reference ref_123 --secret sk_test_xxx --replay 2

Flow:
    1. Build a charge.success payload for the reference
    2. Sign the exact body with HMAC-SHA512
    3. POST it (optionally several times, to exercise replay handling)
"""

import argparse
import hashlib
import hmac
import json
import os
import sys

import httpx

BASE_URL = "http://localhost:8000"
WEBHOOK_PATH = "/api/paystack/webhook"


def sign(body: bytes, secret: str) -> str:
    """Paystack signature for ``body``."""
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


def build_event(reference: str, amount: int, email: str) -> dict:
    """Minimal charge.success event."""
    return {
        "event": "charge.success",
        "data": {
            "reference": reference,
            "status": "success",
            "amount": amount,
            "currency": "NGN",
            "customer": {"email": email},
        },
    }


def main():
    parser = argparse.ArgumentParser(description="Send a signed Paystack webhook")
    parser.add_argument("--reference", required=True, help="Paystack transaction reference")
    parser.add_argument("--secret", default=os.environ.get("PAYSTACK_SECRET_KEY"), help="Paystack secret key")
    parser.add_argument("--amount", type=int, default=500000, help="Amount in kobo")
    parser.add_argument("--email", default="client@daiyet.co", help="Customer email")
    parser.add_argument("--base-url", default=BASE_URL, help="Backend base URL")
    parser.add_argument("--replay", type=int, default=1, help="Number of times to send the event")
    parser.add_argument("--bad-signature", action="store_true", help="Send an invalid signature")
    args = parser.parse_args()

    if not args.secret:
        print("ERROR: pass --secret or set PAYSTACK_SECRET_KEY")
        sys.exit(1)

    body = json.dumps(build_event(args.reference, args.amount, args.email)).encode()
    signature = "0" * 128 if args.bad_signature else sign(body, args.secret)

    for attempt in range(1, args.replay + 1):
        response = httpx.post(
            f"{args.base_url}{WEBHOOK_PATH}",
            content=body,
            headers={"Content-Type": "application/json", "x-paystack-signature": signature},
            timeout=30.0,
        )
        print(f"Attempt {attempt}: {response.status_code} {response.text}")
        if response.status_code >= 400:
            sys.exit(1)


if __name__ == "__main__":
    main()
