"""Lightweight REST client for the ffusion API."""

from __future__ import annotations

import argparse
import json

import httpx


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the ffusion REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("name", nargs="?", help="Player name to aggregate or resolve")
    parser.add_argument("--week", type=int, default=None, help="Week to aggregate")
    parser.add_argument("--team", default=None, help="Team hint")
    parser.add_argument("--position", default=None, help="Position hint")
    parser.add_argument("--external-id", default=None, help="Provider player id")
    parser.add_argument("--resolve-only", action="store_true", help="Resolve the identity without aggregating")
    parser.add_argument("--sources", action="store_true", help="Show feed status and exit")
    parser.add_argument(
        "--score",
        nargs=4,
        metavar=("POSITION", "STAT", "VALUE", "GAMES"),
        help="Score one value and exit",
    )
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url) as client:
        if args.sources:
            resp = client.get("/sources")
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return

        if args.score:
            position, stat, value, games = args.score
            resp = client.get(
                "/score",
                params={"position": position, "stat": stat, "value": value, "games_played": games},
            )
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return

        if not args.name:
            raise SystemExit("a player name is required unless using --sources/--score")
        hint = {
            "name": args.name,
            "team": args.team,
            "position": args.position,
            "external_id": args.external_id,
        }

        if args.resolve_only:
            resp = client.post("/identity/resolve", json=hint)
            if resp.status_code == 404:
                raise SystemExit(f"no identity for {args.name}: {resp.json()['detail']}")
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return

        if args.week is None:
            raise SystemExit("--week is required to aggregate")
        resp = client.post("/players/aggregate", json={**hint, "week": args.week})
        if resp.status_code in (404, 500, 502):
            detail = resp.json()["detail"]
            raise SystemExit(f"aggregation failed at {detail['stage']}: {detail['reason']}")
        resp.raise_for_status()
        record = resp.json()
        print(json.dumps(record, indent=2))
        if record["discrepancies"]:
            print(f"{len(record['discrepancies'])} discrepancies between sources", flush=True)


if __name__ == "__main__":
    main()
