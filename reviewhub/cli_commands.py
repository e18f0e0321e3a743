from flask.cli import with_appcontext
import click
from sqlalchemy.exc import IntegrityError

from .extensions import db
from .models.broker import addBroker
from .models.user import User, addUser
from .services import get_pipeline


@click.command('create-admin')
@click.option('--username', default='admin')
@click.option('--email', default='admin@example.com')
@click.password_option()
@with_appcontext
def create_admin(username, email, password):
    """Создать модератора отзывов"""
    if User.query.filter_by(username=username).first():
        click.echo(f"User '{username}' already exists.")
        return
    addUser(username, email, password)
    click.echo(f"Admin user created: username={username}")


@click.command('add-broker')
@click.argument('name')
@click.option('--slug', default=None)
@with_appcontext
def add_broker(name, slug):
    """Register a broker so it can receive reviews."""
    try:
        broker = addBroker(name, slug)
    except IntegrityError:
        db.session.rollback()
        click.echo(f"Broker with slug '{slug or name}' already exists.")
        return
    click.echo(f"Broker {broker.id} created: {broker.slug}")


@click.command('rebuild-aggregates')
@with_appcontext
def rebuild_aggregates():
    """Drop cached review lists and recompute rating aggregates for every broker."""
    count = get_pipeline().rebuild_aggregates()
    click.echo(f'Rebuilt review caches for {count} brokers.')


def register_commands(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(add_broker)
    app.cli.add_command(rebuild_aggregates)
