"""Lightweight REST client for the teamroster API."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import httpx


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the teamroster REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("--list", action="store_true", help="List the roster and exit")
    parser.add_argument("--sort-by", default=None, help="Sort column for --list/--export-path")
    parser.add_argument("--desc", action="store_true", help="Sort descending")
    parser.add_argument("--add", metavar="JSON", help="Register a player from a JSON object")
    parser.add_argument("--update", nargs=2, metavar=("PLAYER_ID", "JSON"), help="Patch a player with a JSON object")
    parser.add_argument("--delete", metavar="PLAYER_ID", help="Delete a player")
    parser.add_argument("--export-path", type=Path, help="Download the roster CSV to this path")
    args = parser.parse_args()

    params: dict[str, str] = {}
    if args.sort_by:
        params = {"sort_by": args.sort_by, "sort_direction": "desc" if args.desc else "asc"}

    with httpx.Client(base_url=args.base_url) as client:
        if args.add:
            try:
                payload = json.loads(args.add)
            except json.JSONDecodeError as exc:
                raise SystemExit(f"Invalid player JSON: {exc}") from exc
            resp = client.post("/players", json=payload)
            if resp.status_code in (409, 422):
                raise SystemExit(f"Rejected: {json.dumps(resp.json()['detail'])}")
            resp.raise_for_status()
            _print_json(resp.json())
        if args.update:
            player_id, raw = args.update
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise SystemExit(f"Invalid player JSON: {exc}") from exc
            resp = client.patch(f"/players/{player_id}", json=payload)
            if resp.status_code == 404:
                raise SystemExit(f"player {player_id} not found")
            if resp.status_code in (409, 422):
                raise SystemExit(f"Rejected: {json.dumps(resp.json()['detail'])}")
            resp.raise_for_status()
            _print_json(resp.json())
        if args.delete:
            resp = client.delete(f"/players/{args.delete}")
            if resp.status_code == 404:
                raise SystemExit(f"player {args.delete} not found")
            resp.raise_for_status()
            print(f"Deleted {args.delete}")
        if args.export_path:
            resp = client.get("/players/export.csv", params=params)
            resp.raise_for_status()
            args.export_path.write_text(resp.text)
            print(f"CSV export saved to {args.export_path}")
        if args.list:
            resp = client.get("/players", params=params)
            resp.raise_for_status()
            _print_json(resp.json())


if __name__ == "__main__":
    main()
