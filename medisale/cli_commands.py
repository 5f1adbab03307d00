"""
Flask CLI commands for database setup and staff management.

Commands:
- flask init-db: Create all tables
- flask create-staff: Create a staff account able to process sales
"""

import click
import re
from medisale.database import Base, get_engine, get_session
from medisale.models import AppUser, UserRole


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table of the schema."""
        Base.metadata.create_all(bind=get_engine())
        click.echo(click.style('✅ Tables créées.', fg='green'))

    @app.cli.command('create-staff')
    @click.option('--email', prompt=True, help='Staff email address')
    @click.option('--first-name', prompt=True, help='First name')
    @click.option('--last-name', prompt=True, help='Last name')
    @click.option('--role', type=click.Choice([r.value for r in UserRole], case_sensitive=False),
                  default=UserRole.EMPLOYEE.value, show_default=True, help='Staff role')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
    def create_staff(email, first_name, last_name, role, password):
        """Create a staff account for the point of sale."""

        # Validate email format
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, email):
            click.echo(click.style('❌ Email invalide. Format attendu: user@example.com', fg='red'))
            return

        if len(password) < 6:
            click.echo(click.style('❌ Le mot de passe doit contenir au moins 6 caractères.', fg='red'))
            return

        db_session = get_session()
        existing = db_session.query(AppUser).filter_by(email=email).first()
        if existing:
            click.echo(click.style(f'❌ Un utilisateur existe déjà avec cet email: {email}', fg='red'))
            return

        try:
            user = AppUser(
                email=email,
                first_name=first_name,
                last_name=last_name,
                role=UserRole(role.upper())
            )
            user.set_password(password)

            db_session.add(user)
            db_session.commit()

            click.echo(click.style('\n✅ Utilisateur créé avec succès!', fg='green', bold=True))
            click.echo(f'   Email: {email}')
            click.echo(f'   ID: {user.id}')

        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'❌ Erreur lors de la création: {str(e)}', fg='red'))
