"""
CLI Commands for CulturePoints.

Usage:
    flask ledger audit            # Check cached balances against the ledger
    flask ledger audit --fix      # ...and repair any drifted cache

    flask pending summary         # Unawarded pending points per email
    flask pending reconcile       # Sweep pending points for bound emails

    flask checkpoints seed        # Create the default checkpoints
"""
from .ledger import init_app as init_ledger_commands
from .pending import init_app as init_pending_commands
from .checkpoints import init_app as init_checkpoint_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_ledger_commands(app)
    init_pending_commands(app)
    init_checkpoint_commands(app)
