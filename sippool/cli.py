# sippool/cli.py
# -*- coding: utf-8 -*-
"""
Operator commands, registered as `flask pool ...`.

Records enter the pool only through `flask pool import`; the gateway API never
creates them.
"""
import json

import click
from flask import current_app
from flask.cli import with_appcontext
from marshmallow import ValidationError

from sippool.extensions import db
from sippool.database.pool_repository import SipConfigRepository
from sippool.services.assignment_service import AssignmentService
from sippool.services.stats_service import PoolStatsService
from sippool.api.schemas.sip_config_schemas import CreateSipConfigSchema
from sippool.utils.exceptions import ServiceError

create_sip_configs_schema = CreateSipConfigSchema(many=True)


@click.group('pool')
def pool_cli():
    """Manage the SIP configuration pool."""


@pool_cli.command('import')
@click.argument('source', type=click.File('r'))
@with_appcontext
def import_configs(source):
    """Provision SIP configurations from a JSON array in SOURCE."""
    try:
        payload = json.load(source)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{source.name} is not valid JSON: {e}")

    try:
        records = create_sip_configs_schema.load(payload)
    except ValidationError as err:
        raise click.ClickException(f"Invalid SIP configuration data: {err.messages}")

    try:
        for data in records:
            SipConfigRepository.add_record(**data)
        db.session.commit()
    except ServiceError as e:
        db.session.rollback()
        raise click.ClickException(f"Import aborted, nothing was saved: {e}")

    current_app.logger.info(f"Imported {len(records)} SIP configuration(s) from {source.name}")
    click.echo(f"Imported {len(records)} SIP configuration(s).")


@pool_cli.command('stats')
@with_appcontext
def show_stats():
    """Print pool utilization."""
    stats = PoolStatsService.get_stats()
    click.echo(
        f"total={stats['total']} available={stats['available']} "
        f"assigned={stats['assigned']} used={stats['percentage_used']}%"
    )


@pool_cli.command('release-user')
@click.argument('user_id', type=int)
@with_appcontext
def release_user(user_id):
    """Release the SIP configuration held by USER_ID (e.g. after deactivation)."""
    record = AssignmentService.release_for_user(user_id)
    db.session.commit()
    if record is None:
        click.echo(f"User {user_id} holds no SIP configuration.")
    else:
        click.echo(f"Released SIP configuration {record.id} from user {user_id}.")
