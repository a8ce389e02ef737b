"""Administrative commands.

Usage:
  academy-billing reallocate [--student-id N] [--dry-run]
  academy-billing fix-durations [--dry-run]
  academy-billing finished-packages [--student-id N] [--notify] [--force]
  academy-billing package-statement PACKAGE_ID
  academy-billing class-status CLASS_ID STATUS
  academy-billing new-round STUDENT_ID --hours H [--price P] [--currency C] [--start-date D]
  academy-billing reactivate-package PACKAGE_ID [--hours H] [--price P] [--currency C]
  academy-billing init-db [--schema PATH]
"""

from __future__ import annotations

import importlib
import logging
import sys

import click
import mysql.connector
from dotenv import load_dotenv

from config import get_settings_module

from .container import build_container
from .core.constants import DEFAULT_CURRENCY, DEFAULT_LEGACY_CLASS_HOURS
from .core.enums import ClassStatus
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema, list_tables


def _load_settings():
    load_dotenv(override=False)
    return importlib.import_module(get_settings_module())


def _fmt_package(package_id) -> str:
    return str(package_id) if package_id is not None else "NULL"


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Academy package billing maintenance."""

    settings = _load_settings()
    ctx.meta["settings"] = settings
    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # Tests inject a ready container through CliRunner(obj=...).
    if ctx.obj is None:
        ctx.obj = build_container(
            db_config=dict(settings.DB_CONFIG),
            legacy_class_hours=float(getattr(settings, "LEGACY_CLASS_HOURS", DEFAULT_LEGACY_CLASS_HOURS)),
        )


@cli.command("reallocate")
@click.option("--student-id", type=int, default=None, help="Fix only this student.")
@click.option("--dry-run", is_flag=True, default=False, help="Show what would change without saving.")
@click.pass_obj
def cmd_reallocate(container, student_id, dry_run) -> None:
    """Redistribute classes over packages chronologically (paid packages first)."""

    if dry_run:
        click.echo("DRY RUN MODE - no changes will be made\n")

    try:
        report = container.allocation_service.reallocate(student_id, dry_run=dry_run)
    except DomainError as exc:
        raise click.ClickException(str(exc))

    if not report.students:
        click.echo("No students found with packages.", err=True)
        sys.exit(1)

    click.echo(f"Found {len(report.students)} student(s) to process\n")

    for student in report.students:
        if not student.ok:
            click.echo(f"x Error for student #{student.student_id}: {student.error}", err=True)
            continue

        for usage in student.usages:
            click.echo(
                f"  Round {usage.round_number} [{usage.status.value}] package #{usage.package_id}: "
                f"used {usage.used_hours:g}h of {usage.total_hours:g}h"
                + (" (over capacity)" if usage.over_capacity else "")
            )
        for change in student.changes:
            click.echo(
                f"    - Class #{change.class_id} ({change.class_date.isoformat()}): "
                f"{_fmt_package(change.previous_package_id)} -> {_fmt_package(change.package_id)} [{change.reason}]"
            )
        if student.changed:
            verb = "Would fix" if dry_run else "Fixed"
            click.echo(f"v {verb} {student.changed} class assignment(s) for student #{student.student_id}")
        for package_id in student.finished_package_ids:
            click.echo(f"  Package #{package_id} is now finished")

    click.echo("")
    if dry_run:
        click.echo(
            f"Dry Run Summary: would fix {report.total_changed} class assignment(s) "
            f"across {len(report.students)} student(s)"
        )
    else:
        click.echo(f"Fixed {report.total_changed} class assignment(s) across {len(report.students)} student(s)")
    if report.total_errors:
        click.echo(f"{report.total_errors} error(s) encountered", err=True)


@cli.command("fix-durations")
@click.option("--dry-run", is_flag=True, default=False, help="Show what would change without saving.")
@click.pass_obj
def cmd_fix_durations(container, dry_run) -> None:
    """Recompute class durations, including slots that span midnight."""

    try:
        report = container.duration_service.repair(dry_run=dry_run)
    except DomainError as exc:
        raise click.ClickException(str(exc))

    for fix in report.fixes:
        click.echo(f"Class #{fix.class_id}: {fix.old_minutes} min -> {fix.new_minutes} min")
    for class_id in report.invalid:
        click.echo(f"Class #{class_id}: invalid start/end time, left unchanged", err=True)

    verb = "Would fix" if dry_run else "Fixed"
    click.echo(f"{verb} {report.fixed} classes, skipped {report.skipped} classes, {len(report.invalid)} invalid.")


@cli.command("finished-packages")
@click.option("--student-id", type=int, default=None)
@click.option("--notify", is_flag=True, default=False, help="Send the finished-package notification.")
@click.option("--force", is_flag=True, default=False, help="Notify even if already notified.")
@click.pass_obj
def cmd_finished_packages(container, student_id, notify, force) -> None:
    """List finished packages waiting for a payment reminder."""

    service = container.notification_service
    try:
        packages = service.pending_packages(student_id)
    except DomainError as exc:
        raise click.ClickException(str(exc))

    if not packages:
        click.echo("No finished packages awaiting notification.")
        return

    for package in packages:
        line = (
            f"Package #{package.package_id} (student #{package.student_id}, round {package.round_number}), "
            f"notified {package.notification_count} time(s)"
        )
        if notify:
            try:
                sent = service.notify(package.package_id, force=force)
            except DomainError as exc:
                click.echo(f"{line}: {exc}", err=True)
                continue
            line += ": notified" if sent else ": skipped"
        click.echo(line)


@cli.command("package-statement")
@click.argument("package_id", type=int)
@click.pass_obj
def cmd_package_statement(container, package_id) -> None:
    """Print the classes and bills of one package."""

    billing = container.billing_service
    try:
        rows, used = billing.package_statement(package_id)
        summary = billing.package_summary(package_id)
    except DomainError as exc:
        raise click.ClickException(str(exc))

    for row in rows:
        counter = f"{row.cumulative_hours:g}h" if row.counts_toward_limit else "-"
        click.echo(f"{row.class_date.isoformat()}  #{row.class_id:<6} {row.status:<22} {row.duration_hours:g}h  {counter}")
    click.echo(f"Total used: {used:g}h")
    click.echo(
        f"Bills: {summary.bill_count}, total {summary.total_amount} {summary.currency}, "
        f"unpaid {summary.unpaid_amount} {summary.currency}"
    )


@cli.command("class-status")
@click.argument("class_id", type=int)
@click.argument("status", type=click.Choice([s.value for s in ClassStatus]))
@click.pass_obj
def cmd_class_status(container, class_id, status) -> None:
    """Change a class status and charge its package when the class now counts."""

    try:
        change = container.package_service.change_class_status(class_id, ClassStatus(status))
    except DomainError as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Class #{change.class_id}: {change.previous_status.value} -> {change.status.value}")
    if change.deducted:
        click.echo("  Package hours deducted")
    for package_id in change.finished_package_ids:
        click.echo(f"  Package #{package_id} is now finished")


@cli.command("new-round")
@click.argument("student_id", type=int)
@click.option("--hours", "total_hours", type=float, required=True)
@click.option("--price", "hour_price", type=float, default=None)
@click.option("--currency", default=DEFAULT_CURRENCY, show_default=True)
@click.option("--start-date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.pass_obj
def cmd_new_round(container, student_id, total_hours, hour_price, currency, start_date) -> None:
    """Open the next package round; the active package is closed as finished."""

    try:
        package = container.package_service.activate_new_round(
            student_id,
            total_hours=total_hours,
            hour_price=hour_price,
            currency=currency,
            start_date=start_date.date() if start_date else None,
        )
    except DomainError as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Package #{package.package_id} (round {package.round_number}) opened for student "
        f"#{package.student_id} with {package.total_hours:g}h"
    )


@cli.command("reactivate-package")
@click.argument("package_id", type=int)
@click.option("--hours", "total_hours", type=float, default=None)
@click.option("--price", "hour_price", type=float, default=None)
@click.option("--currency", default=None)
@click.pass_obj
def cmd_reactivate_package(container, package_id, total_hours, hour_price, currency) -> None:
    """Refill a finished package and book its waiting-list classes."""

    try:
        package = container.package_service.reactivate_package(
            package_id, total_hours=total_hours, hour_price=hour_price, currency=currency
        )
    except DomainError as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Package #{package.package_id} is {package.status.value}, "
        f"{package.remaining_hours:g}h of {package.total_hours:g}h left"
    )


@cli.command("init-db")
@click.option(
    "--schema",
    "schema_path",
    type=click.Path(exists=True, dir_okay=False),
    default="database/schema.sql",
    show_default=True,
)
@click.pass_context
def cmd_init_db(ctx: click.Context, schema_path) -> None:
    """Create the database if needed and apply the schema."""

    db_config = dict(ctx.meta["settings"].DB_CONFIG)
    try:
        apply_schema(db_config, schema_path=schema_path)
        tables = list_tables(db_config)
    except mysql.connector.Error as exc:
        raise click.ClickException(f"Cannot apply schema: {exc}")

    click.echo(
        f"OK: Applied {schema_path} -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(tables={len(tables)})"
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
