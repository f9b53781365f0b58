"""CLI for gtcli - Google Tasks for multiple accounts.

Usage:
    gtcli accounts credentials <file.json>      # Set OAuth client credentials (once)
    gtcli accounts list                         # List configured accounts
    gtcli accounts add <email> [--manual]       # Authorize an account
    gtcli accounts remove <email>               # Remove an account
    gtcli status                                # Show configuration status
    gtcli <email> lists [command] [options]     # Task list operations
    gtcli <email> tasks <listId> [command]      # Task operations

Global options:
    --config-dir DIR   Configuration directory (default: $GTCLI_HOME or ~/.gtcli)
    -v, --verbose      Debug logging
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from gtcli.accounts import AccountError, AccountStorage
from gtcli.google.exceptions import GoogleAuthError

logger = logging.getLogger(__name__)

EPILOG = """\
task list commands:
  gtcli <email> lists                         List all task lists
  gtcli <email> lists get <listId>            Get task list details
  gtcli <email> lists create <title>          Create new task list
  gtcli <email> lists update <listId> --title <title>
  gtcli <email> lists delete <listId>         Delete task list
  gtcli <email> lists url <listIds...>        Generate web URLs

task commands:
  gtcli <email> tasks <listId> [--completed] [--hidden] [--deleted]
  gtcli <email> tasks <listId> get <taskId>
  gtcli <email> tasks <listId> create <title> [--notes N] [--due DATE] [--parent ID]
  gtcli <email> tasks <listId> update <taskId> [--title T] [--notes N] [--due DATE] [--status S]
  gtcli <email> tasks <listId> complete|uncomplete|delete <taskId>
  gtcli <email> tasks <listId> move <taskId> [--parent ID] [--previous ID]
  gtcli <email> tasks <listId> clear          Clear completed tasks
  gtcli <email> tasks <listId> url <taskIds...>

data storage:
  <config-dir>/credentials.json               OAuth client credentials
  <config-dir>/accounts.json                  Account tokens
"""


# =============================================================================
# Accounts
# =============================================================================


def accounts_credentials(storage: AccountStorage, source_path: str) -> int:
    """Import OAuth client credentials from a Google Cloud Console file."""
    source = Path(source_path).expanduser()

    if not source.exists():
        print(f"Error: File not found: {source}", file=sys.stderr)
        return 1

    try:
        with open(source) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return 1

    app_creds = None
    if isinstance(data, dict):
        app_creds = data.get("installed") or data.get("web")
    if not isinstance(app_creds, dict) or not (
        app_creds.get("client_id") and app_creds.get("client_secret")
    ):
        print("Error: Invalid credentials file", file=sys.stderr)
        print("Expected 'installed' or 'web' key with client_id and client_secret", file=sys.stderr)
        return 1

    storage.set_credentials(app_creds["client_id"], app_creds["client_secret"])

    print("Credentials saved")
    print(f"  From: {source}")
    print(f"  To:   {storage.credentials_file}")
    print()
    print("Next: Run 'gtcli accounts add <email>' to authorize an account")
    return 0


def accounts_list(storage: AccountStorage) -> int:
    accounts = storage.get_all_accounts()
    if not accounts:
        print("No accounts configured")
        return 0

    for account in accounts:
        print(account.email)
    return 0


def accounts_add(
    storage: AccountStorage,
    email: str,
    manual: bool = False,
    no_browser: bool = False,
) -> int:
    """Authorize an account and store its tokens."""
    from gtcli.accounts import Account, AccountExistsError, OAuth2Credentials
    from gtcli.google import CredentialsNotFoundError, OAuthFlow

    # Reject before any network call so a working token is never clobbered
    if storage.has_account(email):
        raise AccountExistsError(email)

    creds = storage.get_credentials()
    if creds is None:
        raise CredentialsNotFoundError(str(storage.credentials_file))

    flow = OAuthFlow(client_id=creds.client_id, client_secret=creds.client_secret)
    result = flow.authorize(manual=manual, open_browser=not no_browser)

    storage.add_account(
        Account(
            email=email,
            oauth2=OAuth2Credentials(
                client_id=creds.client_id,
                client_secret=creds.client_secret,
                refresh_token=result.refresh_token,
                access_token=result.access_token,
            ),
        )
    )
    print(f"Account '{email}' added")
    return 0


def accounts_remove(storage: AccountStorage, email: str) -> int:
    if storage.delete_account(email):
        print(f"Removed '{email}'")
    else:
        print(f"Not found: {email}")
    return 0


def cmd_status(storage: AccountStorage) -> int:
    """Show configuration status."""
    from gtcli.config import get_config_status

    status = get_config_status(storage.config_dir)

    print(f"Config directory: {status['config_dir']}")
    print(f"  credentials.json: {'[x]' if status['credentials'] else '[ ]'}")
    print(f"  accounts.json:    {'[x]' if status['accounts'] else '[ ]'}")
    if status["credentials"] and storage.get_credentials() is None:
        print("  credentials.json is invalid - run 'gtcli accounts credentials <file>'")
    print()
    print(f"Accounts: {len(storage.get_all_accounts())}")
    return 0


# =============================================================================
# Task lists
# =============================================================================


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2))


def _print_next_page(token: str | None) -> None:
    if token:
        print(f"\n# Next page: --page {token}")


def cmd_lists(storage: AccountStorage, email: str, args: argparse.Namespace) -> int:
    """Run a task list command."""
    from gtcli.google import ServiceCache
    from gtcli.tasks import TaskListService

    lists = TaskListService(ServiceCache(storage))
    command = args.lists_command

    if command is None:
        page = lists.list(email, max_results=args.max, page_token=args.page)
        print("ID\tTITLE\tUPDATED")
        for task_list in page.items:
            updated = task_list.updated[:16].replace("T", " ") if task_list.updated else "-"
            print(f"{task_list.id}\t{task_list.title}\t{updated}")
        _print_next_page(page.next_page_token)
    elif command == "get":
        _print_json(lists.get(email, args.list_id).to_dict())
    elif command == "create":
        task_list = lists.create(email, " ".join(args.title))
        print(f"Created: {task_list.id}\t{task_list.title}")
    elif command == "update":
        task_list = lists.update(email, args.list_id, args.title)
        print(f"Updated: {task_list.id}\t{task_list.title}")
    elif command == "delete":
        lists.delete(email, args.list_id)
        print("Deleted")
    elif command == "url":
        for list_id in args.list_ids:
            print(f"{list_id}\t{lists.web_url(list_id)}")
    return 0


# =============================================================================
# Tasks
# =============================================================================


def cmd_tasks(storage: AccountStorage, email: str, args: argparse.Namespace) -> int:
    """Run a task command."""
    from gtcli.google import ServiceCache
    from gtcli.tasks import TaskService

    tasks = TaskService(ServiceCache(storage))
    list_id = args.list_id
    command = args.task_command

    if command is None:
        page = tasks.list(
            email,
            list_id,
            max_results=args.max,
            page_token=args.page,
            show_completed=args.completed,
            show_deleted=args.deleted,
            show_hidden=args.hidden,
        )
        print("ID\tSTATUS\tTITLE\tDUE")
        for task in page.items:
            status = "✓" if task.is_completed else "○"
            due = task.due[:10] if task.due else "-"
            print(f"{task.id}\t{status}\t{task.title}\t{due}")
        _print_next_page(page.next_page_token)
    elif command == "get":
        _print_json(tasks.get(email, list_id, args.task_id).to_dict())
    elif command == "create":
        task = tasks.create(
            email,
            list_id,
            title=" ".join(args.title),
            notes=args.notes,
            due=args.due,
            parent=args.parent,
            previous=args.previous,
        )
        print(f"Created: {task.id}\t{task.title}")
    elif command == "update":
        task = tasks.update(
            email,
            list_id,
            args.task_id,
            title=args.title,
            notes=args.notes,
            due=args.due,
            status=args.status,
        )
        print(f"Updated: {task.id}\t{task.title}")
    elif command == "complete":
        task = tasks.complete(email, list_id, args.task_id)
        print(f"Completed: {task.id}\t{task.title}")
    elif command == "uncomplete":
        task = tasks.uncomplete(email, list_id, args.task_id)
        print(f"Uncompleted: {task.id}\t{task.title}")
    elif command == "delete":
        tasks.delete(email, list_id, args.task_id)
        print("Deleted")
    elif command == "move":
        task = tasks.move(email, list_id, args.task_id, parent=args.parent, previous=args.previous)
        print(f"Moved: {task.id}\t{task.title}")
    elif command == "clear":
        tasks.clear(email, list_id)
        print("Cleared completed tasks")
    elif command == "url":
        for task_id in args.task_ids:
            print(f"{task_id}\t{tasks.web_url(list_id, task_id)}")
    return 0


# =============================================================================
# Parsers
# =============================================================================


def _global_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--config-dir", type=str, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def build_parser() -> argparse.ArgumentParser:
    """Parser for `gtcli accounts ...` and `gtcli status`."""
    parser = argparse.ArgumentParser(
        prog="gtcli",
        description="Google Tasks CLI for multiple accounts",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config-dir",
        type=str,
        default=None,
        help="Configuration directory (default: $GTCLI_HOME or ~/.gtcli)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("status", help="Show configuration status")

    accounts_parser = subparsers.add_parser("accounts", help="Account management")
    accounts_subparsers = accounts_parser.add_subparsers(dest="accounts_command", help="Command")

    credentials_parser = accounts_subparsers.add_parser(
        "credentials", help="Set OAuth client credentials"
    )
    credentials_parser.add_argument("path", help="Path to credentials.json file")

    accounts_subparsers.add_parser("list", help="List configured accounts")

    add_parser = accounts_subparsers.add_parser("add", help="Authorize an account")
    add_parser.add_argument("email", help="Account email")
    add_parser.add_argument(
        "--manual",
        action="store_true",
        help="Paste the redirect URL instead of running a local server",
    )
    add_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )

    remove_parser = accounts_subparsers.add_parser("remove", help="Remove an account")
    remove_parser.add_argument("email", help="Account email")

    return parser


def build_account_parser() -> argparse.ArgumentParser:
    """Parser for `gtcli <email> lists|tasks ...`."""
    parser = argparse.ArgumentParser(prog="gtcli <email>", description="Task operations")
    subparsers = parser.add_subparsers(dest="service", help="Service")

    # lists
    lists_parser = subparsers.add_parser("lists", help="Task list operations")
    lists_parser.add_argument("-m", "--max", type=int, default=100, help="Page size")
    lists_parser.add_argument("-p", "--page", type=str, default=None, help="Page token")
    lists_subparsers = lists_parser.add_subparsers(dest="lists_command", help="Command")

    get_parser = lists_subparsers.add_parser("get", help="Get task list details")
    get_parser.add_argument("list_id")

    create_parser = lists_subparsers.add_parser("create", help="Create new task list")
    create_parser.add_argument("title", nargs="+")

    update_parser = lists_subparsers.add_parser("update", help="Rename a task list")
    update_parser.add_argument("list_id")
    update_parser.add_argument("-t", "--title", required=True)

    delete_parser = lists_subparsers.add_parser("delete", help="Delete task list")
    delete_parser.add_argument("list_id")

    url_parser = lists_subparsers.add_parser("url", help="Generate web URLs")
    url_parser.add_argument("list_ids", nargs="+")

    # tasks
    tasks_parser = subparsers.add_parser("tasks", help="Task operations")
    tasks_parser.add_argument("list_id", help="Task list ID")
    tasks_parser.add_argument("-c", "--completed", action="store_true", help="Include completed")
    tasks_parser.add_argument("--hidden", action="store_true", help="Include hidden")
    tasks_parser.add_argument("--deleted", action="store_true", help="Include deleted")
    tasks_parser.add_argument("-m", "--max", type=int, default=100, help="Page size")
    tasks_parser.add_argument("-p", "--page", type=str, default=None, help="Page token")
    tasks_subparsers = tasks_parser.add_subparsers(dest="task_command", help="Command")

    task_get = tasks_subparsers.add_parser("get", help="Get task details")
    task_get.add_argument("task_id")

    task_create = tasks_subparsers.add_parser("create", help="Create task")
    task_create.add_argument("title", nargs="+")
    task_create.add_argument("-n", "--notes")
    task_create.add_argument("-d", "--due", help="Due date (YYYY-MM-DD)")
    task_create.add_argument("--parent", help="Parent task ID")
    task_create.add_argument("--previous", help="Previous sibling task ID")

    task_update = tasks_subparsers.add_parser("update", help="Update task")
    task_update.add_argument("task_id")
    task_update.add_argument("-t", "--title")
    task_update.add_argument("-n", "--notes")
    task_update.add_argument("-d", "--due", help="Due date (YYYY-MM-DD)")
    task_update.add_argument("-s", "--status", choices=["needsAction", "completed"])

    for name, help_text in (
        ("complete", "Mark task as completed"),
        ("uncomplete", "Mark task as needs action"),
        ("delete", "Delete task"),
    ):
        task_parser = tasks_subparsers.add_parser(name, help=help_text)
        task_parser.add_argument("task_id")

    task_move = tasks_subparsers.add_parser("move", help="Move/reorder task")
    task_move.add_argument("task_id")
    task_move.add_argument("--parent", help="New parent task ID")
    task_move.add_argument("--previous", help="Previous sibling task ID")

    tasks_subparsers.add_parser("clear", help="Clear completed tasks")

    task_url = tasks_subparsers.add_parser("url", help="Generate web URLs")
    task_url.add_argument("task_ids", nargs="+")

    return parser


def _describe_error(e: Exception) -> str:
    if isinstance(e, HttpError):
        return f"Google API error {e.resp.status}: {e.reason}"
    if isinstance(e, RefreshError):
        return f"Token refresh failed ({e}). Remove and re-add the account."
    return str(e)


def _dispatch(argv: list[str], storage_dir: Path) -> int:
    head = argv[0]

    if head in ("accounts", "status"):
        parser = build_parser()
        args = parser.parse_args(argv)
        storage = AccountStorage(storage_dir)

        if args.command == "status":
            return cmd_status(storage)

        if args.accounts_command == "credentials":
            return accounts_credentials(storage, args.path)
        elif args.accounts_command == "list":
            return accounts_list(storage)
        elif args.accounts_command == "add":
            return accounts_add(storage, args.email, args.manual, args.no_browser)
        elif args.accounts_command == "remove":
            return accounts_remove(storage, args.email)
        else:
            print("Error: Missing action: list|add|remove|credentials", file=sys.stderr)
            return 1

    account_parser = build_account_parser()
    args = account_parser.parse_args(argv[1:])
    if args.service is None:
        print("Error: Missing service. Use: lists, tasks", file=sys.stderr)
        return 1

    storage = AccountStorage(storage_dir)
    if args.service == "lists":
        return cmd_lists(storage, head, args)
    return cmd_tasks(storage, head, args)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    from gtcli.config import resolve_config_dir

    argv = list(sys.argv[1:] if argv is None else argv)
    options, rest = _global_parser().parse_known_args(argv)

    if not rest or rest[0] in ("-h", "--help"):
        build_parser().print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return _dispatch(rest, resolve_config_dir(options.config_dir))
    except (GoogleAuthError, AccountError, HttpError, RefreshError, ValueError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {_describe_error(e)}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
