"""
Flask CLI commands for setup and administration.

Commands:
- flask init-db: Create the tables (optionally dropping them first)
- flask seed-reference-data: Load the default pricing catalog
- flask create-user: Create a staff user with an approval role
"""

import click
from decimal import Decimal
from rera_quotes.database import get_session, create_all, drop_all
from rera_quotes.models import (
    AppUser, UserRole, DeveloperType, Region, PlotAreaRange, ServiceCategory, Service
)
from rera_quotes.services.quotation_service import EMAIL_PATTERN
from rera_quotes.services.reference_data_service import invalidate_reference_data


# (name, description, multiplier, agent registration)
DEFAULT_DEVELOPER_TYPES = [
    ('Category 1', 'Large developers, more than 10 projects', '1.300', False),
    ('Category 2', 'Mid-size developers, 3 to 10 projects', '1.150', False),
    ('Category 3', 'Small developers, up to 2 projects', '1.000', False),
    ('Agent Registration', 'Real estate agent registration, fixed pricing', '1.000', True),
]

DEFAULT_REGIONS = [
    ('Mumbai', 'Maharashtra', '1.300'),
    ('Pune', 'Maharashtra', '1.150'),
    ('Nagpur', 'Maharashtra', '1.000'),
    ('Rest of Maharashtra', 'Maharashtra', '0.900'),
]

DEFAULT_PLOT_AREA_RANGES = [
    ('Up to 5,000 sq ft', '0', '5000', '1.000'),
    ('5,001 to 20,000 sq ft', '5000.01', '20000', '1.150'),
    ('20,001 to 50,000 sq ft', '20000.01', '50000', '1.300'),
    ('Above 50,000 sq ft', '50000.01', None, '1.500'),
]

# category -> (complexity factor, [(service, base price, mandatory)])
DEFAULT_SERVICES = {
    'Registration': ('1.000', [
        ('Project Registration', '50000', True),
        ('Agent Registration', '15000', False),
    ]),
    'Compliance': ('1.100', [
        ('Quarterly Progress Reports', '20000', False),
        ('Annual Audit Support', '25000', False),
    ]),
    'Legal Documentation': ('1.200', [
        ('Title Report Review', '30000', False),
        ('Agreement for Sale Drafting', '18000', False),
    ]),
    'Amendments': ('1.000', [
        ('Project Extension', '20000', False),
        ('Project Correction / Change', '12000', False),
    ]),
}


def _get_or_create(db_session, model, name, **values):
    """Return (row, created) for a catalog row identified by name."""
    row = db_session.query(model).filter_by(name=name).first()
    if row:
        return row, False
    row = model(name=name, **values)
    db_session.add(row)
    db_session.flush()
    return row, True


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables first')
    def init_db_command(drop):
        """Create database tables."""
        if drop:
            click.confirm('This deletes every quotation. Continue?', abort=True)
            drop_all()
            click.echo('Dropped existing tables.')
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('seed-reference-data')
    def seed_reference_data():
        """Load the default developer types, regions, brackets and services."""
        db_session = get_session()
        created = 0
        try:
            for name, description, multiplier, is_agent in DEFAULT_DEVELOPER_TYPES:
                _, is_new = _get_or_create(
                    db_session, DeveloperType, name,
                    description=description,
                    multiplier=Decimal(multiplier),
                    is_agent_registration=is_agent,
                )
                created += is_new

            for name, state, multiplier in DEFAULT_REGIONS:
                _, is_new = _get_or_create(db_session, Region, name, state=state, multiplier=Decimal(multiplier))
                created += is_new

            for name, min_area, max_area, multiplier in DEFAULT_PLOT_AREA_RANGES:
                _, is_new = _get_or_create(
                    db_session, PlotAreaRange,
                    name,
                    min_area=Decimal(min_area),
                    max_area=Decimal(max_area) if max_area is not None else None,
                    multiplier=Decimal(multiplier),
                )
                created += is_new

            for category_name, (factor, services) in DEFAULT_SERVICES.items():
                category, is_new = _get_or_create(
                    db_session, ServiceCategory, category_name, complexity_factor=Decimal(factor)
                )
                created += is_new
                for service_name, base_price, mandatory in services:
                    _, is_new = _get_or_create(
                        db_session, Service,
                        service_name,
                        category_id=category.id,
                        base_price=Decimal(base_price),
                        is_mandatory=mandatory,
                    )
                    created += is_new

            db_session.commit()
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Error seeding reference data: {e}', fg='red'))
            raise SystemExit(1)

        invalidate_reference_data()
        click.echo(click.style(f'Reference data seeded ({created} new rows).', fg='green'))

    @app.cli.command('create-user')
    @click.option('--email', prompt=True, help='User email address')
    @click.option('--full-name', default='', help='Display name')
    @click.option(
        '--role',
        type=click.Choice([role.value for role in UserRole]),
        default=UserRole.SALES.value,
        show_default=True,
        help='Approval authority',
    )
    def create_user(email, full_name, role):
        """Create a staff user."""
        db_session = get_session()
        email = email.strip().lower()
        if not EMAIL_PATTERN.match(email):
            click.echo(click.style('Invalid email. Use the format user@example.com', fg='red'))
            return

        if db_session.query(AppUser).filter_by(email=email).first():
            click.echo(click.style(f'A user with email {email} already exists.', fg='red'))
            return

        try:
            user = AppUser(email=email, full_name=full_name or None, role=UserRole(role), active=True)
            db_session.add(user)
            db_session.commit()
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Error creating user: {e}', fg='red'))
            return

        click.echo(click.style('User created.', fg='green', bold=True))
        click.echo(f'   Email: {email}')
        click.echo(f'   Role: {role}')
        click.echo(f'   ID: {user.id}')
