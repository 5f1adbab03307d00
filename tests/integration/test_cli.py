"""
Integration tests for Flask CLI commands.
"""

from medisale.models import AppUser, UserRole


def test_init_db(app, session):
    result = app.test_cli_runner().invoke(args=['init-db'])

    assert result.exit_code == 0
    assert 'Tables créées' in result.output


def test_create_staff(app, session):
    result = app.test_cli_runner().invoke(args=[
        'create-staff', '--email', 'leila@test.tn', '--first-name', 'Leila', '--last-name', 'Haddad',
        '--role', 'manager', '--password', 'secret123'
    ])

    assert result.exit_code == 0
    user = session.query(AppUser).filter_by(email='leila@test.tn').one()
    assert user.role is UserRole.MANAGER
    assert user.check_password('secret123')


def test_create_staff_rejects_duplicate_email(app, session, staff):
    email = staff.email

    result = app.test_cli_runner().invoke(args=[
        'create-staff', '--email', email, '--first-name', 'X', '--last-name', 'Y', '--password', 'secret123'
    ])

    assert 'existe déjà' in result.output
    assert session.query(AppUser).filter_by(email=email).count() == 1
