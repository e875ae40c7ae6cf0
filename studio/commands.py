# Out-of-band staff management: staff rows never come from the reservation flow
import click
from flask.cli import with_appcontext
from sqlalchemy import select

from .extensions import db
from .models import Base, Staff
from .permissions import PERMISSIONS
from .routes.auth import hash_password


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=db.engine)
    click.echo("Tables created")


@click.command("create-staff")
@click.argument("username")
@click.option("--name", required=True, help="Display name")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--email", default=None)
@click.option("--role", default="staff", show_default=True, help="admin, artist or staff")
@click.option(
    "--permission",
    "permissions",
    multiple=True,
    type=click.Choice(PERMISSIONS),
    help="Repeat for each capability",
)
@with_appcontext
def create_staff_command(username, name, password, email, role, permissions):
    """Create a staff member who can log in."""
    existing = db.session.scalar(select(Staff).where(Staff.username == username))
    if existing:
        raise click.ClickException(f"Username '{username}' already exists")

    staff = Staff(
        username=username,
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        permissions=list(permissions),
    )
    db.session.add(staff)
    db.session.commit()
    click.echo(f"Created {role} '{username}' ({staff.id})")


def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(create_staff_command)
