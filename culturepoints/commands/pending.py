"""
Pending points commands.

Reconciliation normally happens when an email is bound. The sweep below is a
safety net and can be run from cron:

0 * * * * cd /app && flask pending reconcile
"""

import click
from flask.cli import with_appcontext

from ..services.pending_points_service import PendingPointsService


@click.group('pending')
def pending_cli():
    """Pending points commands."""
    pass


@pending_cli.command('summary')
@with_appcontext
def summary():
    """Show unawarded pending points grouped by email."""
    service = PendingPointsService()
    stats = service.get_stats()
    rows = service.summary_by_email()

    click.echo(f"\nPending entries: {stats['pending_entries']} "
               f"({stats['pending_total_points']} pts across {stats['unique_emails']} emails)")
    click.echo(f"Awarded entries: {stats['awarded_entries']}")

    if rows:
        click.echo("")
    for row in rows:
        click.echo(f"  {row['email']}: {row['total_pending_points']} pts in "
                   f"{row['pending_count']} entr{'y' if row['pending_count'] == 1 else 'ies'} "
                   f"(oldest {row['oldest_pending']})")


@pending_cli.command('reconcile')
@with_appcontext
def reconcile():
    """Credit pending points whose email already belongs to a player."""
    result = PendingPointsService().reconcile_bound_emails()

    click.echo(f"Emails checked: {result['emails_checked']}")
    click.echo(f"Players credited: {result['players_credited']}")
    click.echo(f"Points credited: {result['points_credited']}")


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(pending_cli)
