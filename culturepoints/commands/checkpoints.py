"""
Checkpoint commands.
"""

import click
from flask.cli import with_appcontext

from ..services.checkpoint_service import CheckpointService


@click.group('checkpoints')
def checkpoints_cli():
    """Checkpoint commands."""
    pass


@checkpoints_cli.command('seed')
@with_appcontext
def seed():
    """Create the default checkpoints (existing names are left alone)."""
    result = CheckpointService().seed_defaults()
    click.echo(f"Checkpoints created: {result['checkpoints_created']}")


@checkpoints_cli.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive checkpoints')
@with_appcontext
def list_checkpoints(include_inactive):
    """List checkpoints."""
    for checkpoint in CheckpointService().get_checkpoints(include_inactive=include_inactive):
        status = '' if checkpoint.is_active else ' [inactive]'
        click.echo(f"  {checkpoint.id}: {checkpoint.name} ({checkpoint.chain_type}, "
                   f"{checkpoint.points_value} pts){status}")


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(checkpoints_cli)
