"""
Ledger maintenance commands.

# Nightly balance audit
0 3 * * * cd /app && flask ledger audit
"""

import click
from flask.cli import with_appcontext

from ..services.ledger_service import ledger_service
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


@click.group('ledger')
def ledger_cli():
    """Points ledger commands."""
    pass


@ledger_cli.command('audit')
@click.option('--fix', is_flag=True, help='Rewrite drifted balance caches from the ledger sum')
@with_appcontext
def audit(fix):
    """
    Verify every player's cached balance equals the sum of their ledger entries.

    Exits with status 1 when drift is found and not fixed.
    """
    drifted = ledger_service.audit_balances(fix=fix)

    if not drifted:
        click.echo("All player balances match the ledger.")
        return

    click.echo(f"Found {len(drifted)} player(s) with balance drift:")
    for report in drifted[:50]:
        click.echo(
            f"  Player {report['player_id']}: cached={report['cached']} "
            f"ledger_sum={report['ledger_sum']} drift={report['drift']:+d}"
        )

    if fix:
        logger.info(f"Ledger audit repaired {len(drifted)} balance cache(s)")
        click.echo(f"\nRepaired {len(drifted)} balance cache(s).")
    else:
        click.echo("\nRun with --fix to repair.")
        raise SystemExit(1)


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(ledger_cli)
