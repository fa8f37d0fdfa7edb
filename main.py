"""Command-line interface for the owner dashboard."""

from __future__ import annotations
import argparse
import logging
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence

from dashboard.config import ConfigurationError, Settings, load_settings
from dashboard.database import Database, RecordError
from dashboard.security import hash_password

logger = logging.getLogger("ownerdash.main")

PASSWORD_MIN_LENGTH = 12


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Owner dashboard utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Create the dashboard database tables")
    subparsers.add_parser(
        "hash-password",
        help="Generate a password hash for DASHBOARD_OWNER_PASSWORD",
    )
    subparsers.add_parser("admin", help="Launch the interactive administration console")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP dashboard service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the service")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP service (default: 8000)",
    )
    serve_parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: DASHBOARD_CONFIG or config/dashboard.yaml)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "hash-password", "admin"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _load_settings(config: str | None = None) -> Settings:
    config_path = Path(config).expanduser() if config else None
    try:
        return load_settings(config_path=config_path)
    except ConfigurationError as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_url)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_url)
    return database


def _serve(*, settings: Settings, database: Database, host: str, port: int) -> None:
    from dashboard.application import create_application
    import uvicorn

    logger.info("Starting owner dashboard on http://%s:%s", host, port)

    app = create_application(settings=settings, database=database)
    uvicorn.run(app, host=host, port=port, log_level="info", proxy_headers=True)


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass(f"Password (min {PASSWORD_MIN_LENGTH} characters): ")
        if len(password) < PASSWORD_MIN_LENGTH:
            print("Password is too short. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def _hash_password_command() -> int:
    password = _prompt_for_password()
    if password is None:
        print("Failed to read a password after three attempts.", file=sys.stderr)
        return 1
    print(hash_password(password))
    return 0


def _run_admin_cli(database: Database) -> None:
    """Provide an interactive console for inspecting and seeding records."""

    print("Owner Dashboard Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List all users")
            print("  2) Add a new user")
            print("  3) List all projects")
            print("  4) Exit")

            choice = input("Enter choice [1-4]: ").strip()

            if choice == "1":
                _list_users(database)
            elif choice == "2":
                _add_user(database)
            elif choice == "3":
                _list_projects(database)
            elif choice == "4":
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")


def _list_users(database: Database) -> None:
    users = database.list_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':<32}  {'Name':<24}  {'Email':<32}  Created")
    print("-" * 110)
    for user in users:
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S")
        name = user.name or "<no name>"
        print(f"{user.id:<32}  {name:<24}  {user.email:<32}  {created}")


def _add_user(database: Database) -> None:
    print("\nCreate a new user (leave the email blank to cancel).")
    email = input("Email address: ").strip()
    if not email:
        print("User creation cancelled.")
        return

    name = input("Name (optional): ").strip() or None

    try:
        user = database.create_user(email, name)
    except (ValueError, RecordError) as exc:
        print(f"Failed to create user: {exc}")
        return

    print(f"Created user {user.id}: {user.name or 'no name'} <{user.email}>")


def _list_projects(database: Database) -> None:
    projects = database.list_projects()
    if not projects:
        print("No projects have been created.")
        return

    print(f"{len(projects)} project(s) found:")
    for project in projects:
        created = project.created_at.strftime("%Y-%m-%d %H:%M:%S")
        print(f"- {project.id}  {project.title}  (created {created})")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)

    if args.command == "hash-password":
        return _hash_password_command()

    settings = _load_settings(getattr(args, "config", None))
    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(settings=settings, database=database, host=args.host, port=args.port)
    elif args.command == "admin":
        _run_admin_cli(database)
    elif args.command == "init-db":
        print("Database initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
