"""Command-line interface for the roster store and server."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from teamroster.config.positions import DEFAULT_SIZE, SIZE_CHOICES, get_position_short_name
from teamroster.controller import RegistrationController, RegistrationState
from teamroster.persistence import PersistenceError, PlayerStore
from teamroster.roster.export import roster_to_csv
from teamroster.roster.sorting import SORT_FIELDS, parse_sort_state
from teamroster.settings import load_settings


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage the team jersey roster")
    parser.add_argument("--db", type=Path, default=None, help="SQLite database path")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the web app with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    sort_help = f"Column to sort by ({', '.join(SORT_FIELDS)})"

    list_cmd = subparsers.add_parser("list", help="Print the roster")
    list_cmd.add_argument("--sort-by", default=None, help=sort_help)
    list_cmd.add_argument("--desc", action="store_true", help="Sort descending")

    add = subparsers.add_parser("add", help="Register a player")
    add.add_argument("name", help="Full name (first and last)")
    add.add_argument("number", help="Jersey number (1-2 digits)")
    add.add_argument("--position", required=True, help="Position name, e.g. 'Shortstop'")
    add.add_argument("--size", default=DEFAULT_SIZE, choices=SIZE_CHOICES)
    add.add_argument("--jersey-name", default="", help="Defaults to the uppercased last name")
    add.add_argument("--notes", default="")

    delete = subparsers.add_parser("delete", help="Delete a player by id")
    delete.add_argument("player_id")
    delete.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    export = subparsers.add_parser("export", help="Write the roster as CSV")
    export.add_argument("--output", type=Path, default=None, help="Output CSV path (stdout if omitted)")
    export.add_argument("--sort-by", default=None, help=sort_help)
    export.add_argument("--desc", action="store_true", help="Sort descending")

    return parser.parse_args(argv)


def _sorted_controller(store: PlayerStore, sort_by: str | None, desc: bool) -> RegistrationController:
    try:
        sort_state = parse_sort_state(sort_by, "desc" if desc else "asc")
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    return RegistrationController(store, RegistrationState(sort=sort_state))


def _print_table(controller: RegistrationController) -> None:
    players = controller.visible_roster()
    print(f"{controller.registered_count} players registered")
    if not players:
        return
    print(f"{'#':>3}  {'JERSEY':<15}  {'SIZE':<4}  {'POS':<5}  NAME")
    for player in players:
        print(
            f"{player.number:>3}  {player.jersey_name:<15}  {player.size:<4}  "
            f"{get_position_short_name(player.position):<5}  {player.name}  [{player.id}]"
        )


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = load_settings()

    if args.command == "serve":
        import uvicorn

        uvicorn.run("teamroster.api:create_app", factory=True, host=args.host, port=args.port, reload=args.reload)
        return

    store = PlayerStore(args.db or settings.db_path)

    if args.command == "list":
        with _sorted_controller(store, args.sort_by, args.desc) as controller:
            _print_table(controller)
        return

    if args.command == "export":
        with _sorted_controller(store, args.sort_by, args.desc) as controller:
            csv_text = roster_to_csv(controller.visible_roster())
        if args.output:
            args.output.write_text(csv_text, encoding="utf-8")
            print(f"Wrote {controller.registered_count} players to {args.output}")
        else:
            sys.stdout.write(csv_text)
        return

    if args.command == "add":
        with RegistrationController(store, autofill_mode=settings.jersey_autofill) as controller:
            controller.open_create()
            controller.load_form(
                {
                    "name": args.name,
                    "jersey_name": args.jersey_name,
                    "number": args.number,
                    "size": args.size,
                    "position": args.position,
                    "notes": args.notes,
                }
            )
            controller.fill_missing_jersey_name()
            try:
                outcome = controller.submit()
            except PersistenceError as exc:
                raise SystemExit(f"Could not save player: {exc}") from exc
            if outcome.status == "invalid":
                details = "\n".join(f"  {field}: {message}" for field, message in controller.state.field_errors.items())
                raise SystemExit(f"Invalid player:\n{details}")
            if outcome.status == "conflict":
                raise SystemExit(controller.state.duplicate_error)
        print(f"Registered player {outcome.player_id}")
        return

    if args.command == "delete":
        with RegistrationController(store) as controller:
            try:
                player = controller.find_player(args.player_id)
            except PersistenceError as exc:
                raise SystemExit(str(exc)) from exc
            controller.request_delete(player.id)
            if not args.yes:
                answer = input(f"Delete {player.name} (#{player.number})? This cannot be undone. [y/N] ")
                if answer.strip().lower() not in {"y", "yes"}:
                    controller.dismiss_delete()
                    print("Cancelled")
                    return
            try:
                controller.confirm_delete()
            except PersistenceError as exc:
                raise SystemExit(str(exc)) from exc
        print(f"Deleted player {player.id}")
        return


if __name__ == "__main__":
    main()
