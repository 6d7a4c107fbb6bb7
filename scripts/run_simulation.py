#!/usr/bin/env python3
"""Drive a simulation on a running DriveLedger API and print its summary."""

import argparse
import json
import sys
import time
from urllib.parse import urljoin

import requests


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Run a drive simulation against the DriveLedger API")
    parser.add_argument("--route", default="URBAN", choices=["URBAN", "HIGHWAY", "MOUNTAIN", "RURAL"],
                       help="Route type (default: URBAN)")
    parser.add_argument("--minutes", type=float, default=1.0,
                       help="Simulated duration in minutes (default: 1)")
    parser.add_argument("--poll", type=float, default=5.0,
                       help="Seconds between status polls (default: 5)")
    parser.add_argument("--out", help="Write the summary JSON to this file")
    parser.add_argument("--base-url", default="http://localhost:8000",
                       help="Base URL for DriveLedger API (default: http://localhost:8000)")

    args = parser.parse_args()
    base = args.base_url.rstrip("/") + "/"

    try:
        response = requests.post(
            urljoin(base, "simulations"),
            json={"route_type": args.route, "duration_minutes": args.minutes},
        )
        response.raise_for_status()
        started = response.json()
        if not started.get("success"):
            print(f"Error: {started.get('message')}", file=sys.stderr)
            sys.exit(1)
        print(started["message"])

        while True:
            time.sleep(args.poll)
            status = requests.get(urljoin(base, "simulations/status")).json()
            if not status.get("is_active"):
                break
            print(f"{status['data_points']} points, {status['progress']}% "
                  f"avg {status['average_speed']} km/h")

        # auto-stopped: fetch the newest sealed summary
        listing = requests.get(urljoin(base, "simulations")).json()
        simulations = listing.get("simulations") or []
        if not simulations:
            print("Error: simulation ended without a summary", file=sys.stderr)
            sys.exit(1)
        detail = requests.get(urljoin(base, f"simulations/{simulations[0]['simulation_id']}"))
        detail.raise_for_status()
        summary = detail.json()["summary"]

    except requests.exceptions.RequestException as e:
        print(f"Error making API request: {e}", file=sys.stderr)
        sys.exit(1)

    text = json.dumps(summary, indent=2)
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Summary saved to: {args.out}")
    else:
        print(text)


if __name__ == "__main__":
    main()
