"""CLI to drive a running stock tracker over its HTTP API.

Usage:
  poetry run stock-tracker-cli health
  poetry run stock-tracker-cli track AAPL
  poetry run stock-tracker-cli get AAPL --history 3
  poetry run stock-tracker-cli untrack AAPL
"""
import argparse
import json
import sys

import httpx

DEFAULT_BASE_URL = "http://localhost:8000/api/v1"


def print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_health(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.get("/health")
    r.raise_for_status()
    data = r.json()
    print_json(data)
    return 0 if data.get("status") == "ok" else 1


def cmd_track(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.put(f"/stock/{args.symbol}")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_get(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(f"/stock/{args.symbol}")
    r.raise_for_status()
    data = r.json()
    if args.history:
        data["priceHistory"] = data.get("priceHistory", [])[: args.history]
    print_json(data)
    return 0


def cmd_detailed(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(f"/stock/{args.symbol}/detailed")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_untrack(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.delete(f"/stock/{args.symbol}")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_list(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.get("/stock")
    r.raise_for_status()
    data = r.json()
    print(f"Tracking {len(data)} symbols")
    print_json(data)
    return 0


def cmd_stats(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.get("/stock/system/stats")
    r.raise_for_status()
    print_json(r.json())
    return 0


HANDLERS = {
    "health": cmd_health,
    "track": cmd_track,
    "get": cmd_get,
    "detailed": cmd_detailed,
    "untrack": cmd_untrack,
    "list": cmd_list,
    "stats": cmd_stats,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Drive the stock tracker API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"API base URL including prefix (default: {DEFAULT_BASE_URL})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Request timeout in seconds (default: 30)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command")

    subparsers.add_parser("health", help="GET /health")
    subparsers.add_parser("list", help="GET /stock")
    subparsers.add_parser("stats", help="GET /stock/system/stats")

    p = subparsers.add_parser("track", help="PUT /stock/{symbol}")
    p.add_argument("symbol", type=str.upper, help="Ticker (e.g. AAPL, MSFT)")
    p = subparsers.add_parser("get", help="GET /stock/{symbol}")
    p.add_argument("symbol", type=str.upper, help="Ticker")
    p.add_argument("--history", type=int, default=0, help="Show only first N history points (0 = all)")
    p = subparsers.add_parser("detailed", help="GET /stock/{symbol}/detailed")
    p.add_argument("symbol", type=str.upper, help="Ticker")
    p = subparsers.add_parser("untrack", help="DELETE /stock/{symbol}")
    p.add_argument("symbol", type=str.upper, help="Ticker")
    return parser


def main(argv: list[str] | None = None, client: httpx.Client | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = HANDLERS[args.command]

    try:
        if client is not None:
            return handler(client, args)
        with httpx.Client(base_url=args.base_url.rstrip("/"), timeout=args.timeout) as http:
            return handler(http, args)
    except httpx.HTTPStatusError as e:
        print(f"HTTP error: {e.response.status_code}", file=sys.stderr)
        if e.response.content:
            try:
                print(e.response.json(), file=sys.stderr)
            except ValueError:
                print(e.response.text, file=sys.stderr)
        return 1
    except httpx.RequestError as e:
        print(f"Request error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
