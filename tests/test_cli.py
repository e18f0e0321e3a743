from reviewhub.models import Broker, User

from conftest import REVIEW_TEXTS


def test_add_broker_slugifies_name(app):
    result = app.test_cli_runner().invoke(args=['add-broker', 'Ĉapital Markets Ltd.'])
    assert result.exit_code == 0
    assert Broker.query.filter_by(slug='capital-markets-ltd').count() == 1


def test_add_broker_twice(app):
    runner = app.test_cli_runner()
    runner.invoke(args=['add-broker', 'Acme', '--slug', 'acme'])
    result = runner.invoke(args=['add-broker', 'Acme again', '--slug', 'acme'])
    assert 'already exists' in result.output
    assert Broker.query.count() == 1


def test_create_admin(app):
    result = app.test_cli_runner().invoke(
        args=['create-admin', '--username', 'mod', '--email', 'mod@example.com', '--password', 'pw123'])
    assert result.exit_code == 0
    user = User.query.filter_by(username='mod').one()
    assert user.check_password('pw123')
    assert not user.check_password('nope')


def test_rebuild_aggregates(app, pipeline, broker, other_broker, submit):
    submit(REVIEW_TEXTS[0], rating=4)
    result = app.test_cli_runner().invoke(args=['rebuild-aggregates'])
    assert 'for 2 brokers' in result.output
    assert pipeline.get_aggregate(broker.id).approved_count == 1
    assert pipeline.get_aggregate(other_broker.id).approved_count == 0
