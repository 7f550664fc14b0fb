from __future__ import annotations

import click
from flask import Blueprint, Flask
from flask.cli import with_appcontext

from .config import Config, _normalise_prefix
from .extensions import db, migrate


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, static_folder=None)
    app.config.from_object(config_class)

    url_prefix = _normalise_prefix(app.config.get("URL_PREFIX", ""))
    app.config["URL_PREFIX"] = url_prefix

    db.init_app(app)
    migrate.init_app(app, db)

    from . import models  # noqa: F401  # Ensure models registered for migrations
    from .api import build_api

    with app.app_context():
        db.create_all()

    blueprint = Blueprint("api", __name__, url_prefix=f"{url_prefix}/api")
    build_api(blueprint, app.config)
    app.register_blueprint(blueprint)

    _register_commands(app)
    app.logger.info("SupChaissac ready (database %s)", app.config["SQLALCHEMY_DATABASE_URI"])
    return app


def _register_commands(app: Flask) -> None:
    @app.cli.command("seed")
    @with_appcontext
    def seed() -> None:
        """Seed demo users and sessions for development."""
        from .seed import seed_data

        created = seed_data()
        click.echo(f"{created} session(s) de démonstration créée(s).")

    @app.cli.command("quotas")
    @click.option("--year", "school_year", default=None, help="Année scolaire, ex. 2024-2025")
    @with_appcontext
    def quotas(school_year: str | None) -> None:
        """Print the quota ledger of a school year."""
        from .services import quota_ledger
        from .store import SqlSessionStore

        for entry in quota_ledger(SqlSessionStore(), school_year):
            click.echo(
                f"{entry.type:<14} {entry.consumed_hours:>6g}h / {entry.budget_hours:>4}h "
                f"({entry.percentage:g} %)"
            )

    @app.cli.command("alerts")
    @with_appcontext
    def alerts() -> None:
        """List sessions waiting too long in the secretariat queues."""
        from .services import SessionService, WorkflowSettings
        from .store import SqlSessionStore
        from .transitions import Actor

        service = SessionService(
            SqlSessionStore(),
            Actor(role="SECRETARY", name="cli"),
            WorkflowSettings.from_config(app.config),
        )
        report = service.alert_report()
        for record in report.pending_too_long:
            click.echo(f"En attente depuis trop longtemps : #{record.id} {record.teacher_name} {record.date}")
        for record in report.validated_not_paid:
            click.echo(f"Validée non mise en paiement : #{record.id} {record.teacher_name} {record.date}")
        click.echo(f"{report.total} alerte(s).")
