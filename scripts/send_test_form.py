#!/usr/bin/env python3
"""
Dev helper: post a sample contact or quote submission to the local backend.

Builds a realistic form body, POSTs it to /api/contact or /api/quote and
prints the JSON response. With no GMAIL_USER / GMAIL_APP_PASSWORD configured
the backend only logs the email it would have sent, so this is safe to run
against a development server.

Usage
-----
# Contact form against localhost:5001
python scripts/send_test_form.py

# Quote request
python scripts/send_test_form.py --form quote

# Send an invalid body to see the 400 response
python scripts/send_test_form.py --invalid

# Target a different backend URL
python scripts/send_test_form.py --url http://staging.example.com

# Just print the body
python scripts/send_test_form.py --form quote --dry-run
"""

import argparse
import json
import sys
import textwrap

import httpx


# ---------------------------------------------------------------------------
# Sample bodies
# ---------------------------------------------------------------------------

def _build_contact_body(email: str) -> dict:
    return {
        "firstName": "Jo",
        "lastName": "Lee",
        "email": email,
        "phone": "555-0100",
        "subject": "Delivery area",
        "message": "Hello, do you deliver sheds to the north side of town?",
    }


def _build_quote_body(email: str) -> dict:
    return {
        "firstName": "Sam",
        "lastName": "Rivera",
        "email": email,
        "phone": "555-0199",
        "preferredContact": ["Email", "Phone"],
        "serviceType": "Custom build",
        "length": "144",
        "width": "120",
        "height": "96",
        "intendedUse": ["Storage", "Workshop"],
        "sidingMaterial": ["Cedar"],
        "windowType": "Double hung",
        "numberOfWindows": "2",
        "windowSize": "24x36",
        "doorType": "Double barn door",
        "shelving": ["Upper shelves"],
        "workbench": ["8 ft bench"],
        "preferredInstallationDate": "2025-06-01",
        "budget": "$8,000 - $10,000",
        "howDidYouHear": "Google",
        "workshopUse": "Woodworking",
    }


def _build_invalid_body(email: str) -> dict:
    return {"firstName": "", "lastName": "Lee", "email": "bad", "message": "hi"}


_BODY_BUILDERS = {
    "contact": _build_contact_body,
    "quote": _build_quote_body,
}


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def _print_response(response: httpx.Response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    parser = argparse.ArgumentParser(
        prog="send_test_form.py",
        description="Post a sample form submission to the Form Mail backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_form.py
              python scripts/send_test_form.py --form quote
              python scripts/send_test_form.py --invalid
              python scripts/send_test_form.py --url http://localhost:5001
        """),
    )
    parser.add_argument(
        "--url",
        default="http://localhost:5001",
        help="Backend base URL (default: http://localhost:5001)",
    )
    parser.add_argument(
        "--form",
        default="contact",
        choices=list(_BODY_BUILDERS),
        help="Which form to submit (default: contact)",
    )
    parser.add_argument(
        "--email",
        default="jo@shedbuyer.com",
        help="Submitter email address (default: jo@shedbuyer.com)",
    )
    parser.add_argument(
        "--invalid",
        action="store_true",
        help="Send a body that fails validation.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the body JSON without sending it.",
    )

    args = parser.parse_args()

    builder = _build_invalid_body if args.invalid else _BODY_BUILDERS[args.form]
    body = builder(args.email)
    endpoint = f"{args.url.rstrip('/')}/api/{args.form}"

    print(f"Form     : {args.form}{' (invalid)' if args.invalid else ''}")
    print(f"Endpoint : {endpoint}")

    if args.dry_run:
        print("\n[DRY RUN] Body:")
        print(json.dumps(body, indent=2))
        return 0

    try:
        response = httpx.post(endpoint, json=body, timeout=30)
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the backend running? Start it with:\n"
            "  cd backend && uvicorn formmail.main:app --reload --port 5001",
            file=sys.stderr,
        )
        return 1
    except httpx.HTTPError as exc:
        print(f"\nERROR: {exc}", file=sys.stderr)
        return 1

    _print_response(response)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
