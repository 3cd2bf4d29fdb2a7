import os
import click
from flask import current_app
from flask.cli import with_appcontext
from flask_migrate import upgrade as alembic_upgrade, stamp as alembic_stamp, migrate as alembic_migrate


def _assert_safe_for_upgrade():
    # Prevent accidental prod upgrades unless explicitly allowed
    env = (current_app.config.get("ENV") or "").lower()
    app_env = (os.getenv("APP_ENV") or "").lower()
    if app_env == "production" or env == "production":
        if (os.getenv("ALLOW_DB_MIGRATIONS") or "").lower() not in ("1", "true", "yes"):
            raise click.ClickException("Refusing to run DB migration in production without ALLOW_DB_MIGRATIONS=true")


@click.command("db-migrate-safe")
@click.option("-m", "--message", default="auto migration", help="Migration message")
@with_appcontext
def db_migrate_safe(message):
    """Generate a new migration script from current models."""
    alembic_migrate(message=message)
    click.echo("Migration script generated.")


@click.command("db-upgrade-safe")
@with_appcontext
def db_upgrade_safe():
    """Apply migrations to the configured database."""
    _assert_safe_for_upgrade()
    alembic_upgrade()
    click.echo("Database upgraded.")


@click.command("db-stamp-safe")
@click.option("--revision", default="head", help="Revision to stamp, default 'head'")
@with_appcontext
def db_stamp_safe(revision):
    """Mark the database at a given revision without running migrations."""
    _assert_safe_for_upgrade()
    alembic_stamp(revision)
    click.echo(f"Database stamped at {revision}.")




@click.command("create-admin")
@click.option("--username", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_admin(username, password):
    """Create an admin account, or promote and reset an existing one."""
    from models import db
    from models.user import User
    from app.utils import transactional

    if len(password) < 6:
        raise click.ClickException("Password must be at least 6 characters")
    user = User.query.filter_by(username=username).first()
    with transactional("Failed to create admin"):
        if user is None:
            user = User(username=username)
            db.session.add(user)
        user.role = "admin"
        user.is_active = True
        user.set_password(password)
    click.echo(f"Admin {username} ready.")


@click.command("run-low-stock-check")
@with_appcontext
def run_low_stock_check():
    """Send the low stock alert now."""
    from app.services.alerts import check_low_stock_and_notify

    result = check_low_stock_and_notify()
    click.echo(
        f"{result['items']} low stock item(s); sent {result['sent']}, failed {result['failed']}."
    )


@click.command("send-daily-report")
@with_appcontext
def send_daily_report():
    """Mail the inventory PDF now."""
    from app.services.alerts import send_daily_report as send

    result = send()
    click.echo(f"Daily report sent {result['sent']}, failed {result['failed']}.")


@click.command("purge-activity-logs")
@click.option("--days", type=int, default=None, help="Retention in days, default ACTIVITY_LOG_RETENTION_DAYS")
@with_appcontext
def purge_activity_logs(days):
    """Delete activity log entries older than the retention window."""
    from app.services.activity import purge_older_than
    from app.utils import transactional

    days = days or current_app.config["ACTIVITY_LOG_RETENTION_DAYS"]
    if days < 1:
        raise click.ClickException("--days must be at least 1")
    with transactional("Failed to purge activity logs"):
        deleted = purge_older_than(days)
    click.echo(f"Deleted {deleted} entries older than {days} days.")


def register_cli(app):
    app.cli.add_command(db_migrate_safe)
    app.cli.add_command(db_upgrade_safe)
    app.cli.add_command(db_stamp_safe)
    app.cli.add_command(create_admin)
    app.cli.add_command(run_low_stock_check)
    app.cli.add_command(send_daily_report)
    app.cli.add_command(purge_activity_logs)
