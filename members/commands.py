"""
Maintenance commands.

For example::

    flask --app "members.factory:create_web_app()" purge-codes
"""

import click
from flask import current_app
from flask.cli import with_appcontext

from .services import Records, create_all


@click.command('create-db')
@with_appcontext
def create_db() -> None:
    """Create the account tables, if they do not already exist."""
    create_all()
    click.echo('Created tables')


@click.command('purge-codes')
@with_appcontext
def purge_codes() -> None:
    """Remove verification codes that are past their lifetime."""
    ttl = int(current_app.config['VERIFICATION_CODE_TTL'])
    if not ttl:
        click.echo('Verification codes do not expire; nothing to do')
        return
    purged = Records(code_ttl=ttl).codes.purge_expired()
    click.echo(f'Removed {purged} expired verification codes')
