"""CLI entrypoint for labelsweep."""

import json
import os
import sqlite3
import sys

import click
from dotenv import load_dotenv
from googleapiclient.errors import HttpError

from labelsweep import __version__
from labelsweep.fetcher import (
    CategoryDirectory,
    create_label,
    fetch_labels,
    filter_rule_targets,
)
from labelsweep.rules import RuleStore, find_stale_categories
from labelsweep.sorter import run_cleanup
from labelsweep.ui.cli import (
    confirm_action,
    create_progress,
    print_categories,
    print_cleanup_report,
    print_error,
    print_header,
    print_info,
    print_rule_table,
    print_success,
    print_warning,
    setup_logging,
)

# Load environment variables
load_dotenv()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """labelsweep - move inbox mail into Gmail labels by sender rules."""
    setup_logging("DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING"))


@cli.command()
@click.option("--dry-run", is_flag=True, help="Show what would move without moving it")
@click.option("--query", default=None, help="Gmail query for the inbox (default: label:INBOX)")
@click.option(
    "--limit", default=None, type=click.IntRange(min=1), help="Maximum inbox messages to check"
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def run(dry_run: bool, query: str | None, limit: int | None, as_json: bool):
    """Clean up the inbox using the stored sender rules."""
    if as_json:
        result = run_cleanup(query=query, max_messages=limit, dry_run=dry_run)
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.success else 1)

    print_header("Inbox Cleanup")
    print_info("Starting to clean up your inbox...")

    with create_progress() as progress:
        task = progress.add_task("Sorting...", total=100)

        def update_progress(current: int, total: int):
            pct = (current / total * 100) if total > 0 else 0
            progress.update(task, completed=pct)

        result = run_cleanup(
            query=query,
            max_messages=limit,
            dry_run=dry_run,
            progress_callback=update_progress,
        )
        progress.update(task, completed=100)

    print_cleanup_report(result, dry_run=dry_run)

    if not result.success:
        sys.exit(1)


def _fetch_labels_or_report() -> list[dict] | None:
    try:
        return fetch_labels()
    except FileNotFoundError as e:
        print_error(str(e))
    except HttpError as e:
        print_error(f"Failed to fetch labels: {e}")
    return None


@cli.command()
@click.option("--all", "show_all", is_flag=True, help="Include system labels rules cannot target")
def categories(show_all: bool):
    """List Gmail labels and their rule counts."""
    print_header("Gmail Labels")

    labels = _fetch_labels_or_report()
    if labels is None:
        return

    if not show_all:
        labels = filter_rule_targets(labels)

    if not labels:
        print_warning("No Gmail labels found.")
        return

    print_categories(labels, RuleStore().rule_counts())


@cli.group()
def rules():
    """Manage sender rules."""
    pass


def _resolve_category(category: str, by_id: bool) -> str | None:
    """Turn a label name (or raw id with --id) into a label id."""
    if by_id:
        return category

    labels = _fetch_labels_or_report()
    if labels is None:
        return None

    category_id = CategoryDirectory.from_labels(labels).get_id(category)
    if category_id is None:
        print_error(f"No Gmail label named '{category}'")
        return None

    if category_id not in CategoryDirectory.from_labels(filter_rule_targets(labels)):
        print_warning(f"'{category}' is a system label; rules for it are unusual")
    return category_id


@rules.command("list")
@click.option("--offline", is_flag=True, help="Don't look up label names in Gmail")
def rules_list(offline: bool):
    """Show sender rules in match order."""
    print_header("Sender Rules")

    rule_table = RuleStore().load()

    if offline:
        id_to_name = {category_id: category_id for category_id in rule_table}
    else:
        labels = _fetch_labels_or_report() if rule_table else []
        if labels is None:
            sys.exit(1)
        id_to_name = CategoryDirectory.from_labels(labels).id_to_name

    print_rule_table(rule_table, id_to_name)


@rules.command("add")
@click.argument("category")
@click.argument("sender_email")
@click.option("--name", "sender_name", default="", help="Sender display name")
@click.option("--id", "by_id", is_flag=True, help="CATEGORY is a label id, not a name")
def rules_add(category: str, sender_email: str, sender_name: str, by_id: bool):
    """Move mail from SENDER_EMAIL into CATEGORY."""
    category_id = _resolve_category(category, by_id)
    if category_id is None:
        sys.exit(1)

    try:
        added = RuleStore().add_rule(category_id, sender_email, sender_name)
    except ValueError as e:
        print_error(str(e))
        sys.exit(1)

    if added:
        print_success(f"Added rule {sender_email.strip().lower()} -> {category}")
    else:
        print_warning(f"Sender email {sender_email} is already mapped to this label.")


@rules.command("remove")
@click.argument("category")
@click.argument("sender_email")
@click.option("--id", "by_id", is_flag=True, help="CATEGORY is a label id, not a name")
def rules_remove(category: str, sender_email: str, by_id: bool):
    """Delete the rule sending SENDER_EMAIL to CATEGORY."""
    category_id = _resolve_category(category, by_id)
    if category_id is None:
        sys.exit(1)

    if RuleStore().remove_rule(category_id, sender_email):
        print_success(f"Removed rule {sender_email} -> {category}")
    else:
        print_warning(f"No rule for {sender_email} under {category}")


@rules.command("export")
@click.argument("path", type=click.Path(dir_okay=False))
def rules_export(path: str):
    """Export sender rules to a JSON file."""
    try:
        count = RuleStore().export_json(path)
    except (OSError, sqlite3.Error) as e:
        print_error(f"Could not export rules: {e}")
        sys.exit(1)

    print_success(f"Exported {count} rules to {path}")


@rules.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--confirm", is_flag=True, help="Skip confirmation prompt")
def rules_import(path: str, confirm: bool):
    """Replace all sender rules with the contents of a JSON file."""
    if not confirm and not confirm_action("Replace all existing rules?"):
        print_info("Cancelled")
        return

    try:
        count = RuleStore().import_json(path)
    except (ValueError, json.JSONDecodeError) as e:
        print_error(f"Invalid rule file: {e}")
        sys.exit(1)
    except (OSError, sqlite3.Error) as e:
        print_error(f"Could not import rules: {e}")
        sys.exit(1)

    print_success(f"Imported {count} rules from {path}")


@rules.command("stale")
def rules_stale():
    """List rule categories whose Gmail label no longer exists."""
    rule_table = RuleStore().load()
    if not rule_table:
        print_info("No sender rules configured.")
        return

    labels = _fetch_labels_or_report()
    if labels is None:
        sys.exit(1)

    stale = find_stale_categories(rule_table, CategoryDirectory.from_labels(labels).id_to_name)
    if not stale:
        print_success("Every rule points at an existing label")
        return

    for category_id in stale:
        count = len(rule_table[category_id])
        print_warning(f"{category_id}: {count} rule(s), label not found in Gmail")
    print_info("These rules are skipped during cleanup. Remove them with 'rules remove --id'.")


@cli.command("create-label")
@click.argument("name")
def create_label_cmd(name: str):
    """Create a Gmail label."""
    try:
        result = create_label(name)
    except FileNotFoundError as e:
        print_error(str(e))
        sys.exit(1)

    if result["success"]:
        print_success(f"Created label '{result['label_name']}' ({result['label_id']})")
    else:
        print_error(result["error"])
        sys.exit(1)


@cli.command()
def auth():
    """Authenticate with Gmail (or re-authenticate)."""
    print_header("Gmail Authentication")

    from labelsweep.auth import get_gmail_service, load_credentials, revoke_credentials

    existing = load_credentials()
    if existing and existing.valid:
        if confirm_action("Already authenticated. Re-authenticate?"):
            revoke_credentials()
        else:
            print_info("Keeping existing authentication")
            return

    print_info("Opening browser for Google authentication...")

    try:
        service = get_gmail_service()
        profile = service.users().getProfile(userId="me").execute()
        print_success(f"Authenticated as {profile.get('emailAddress')}")
    except FileNotFoundError as e:
        print_error(str(e))
    except Exception as e:
        print_error(f"Authentication failed: {e}")


@cli.command()
def clear():
    """Delete all sender rules."""
    print_header("Clear Rules")

    if not confirm_action("Delete all sender rules?"):
        print_info("Cancelled")
        return

    RuleStore().clear()
    print_success("Rules cleared")


if __name__ == "__main__":
    cli()
