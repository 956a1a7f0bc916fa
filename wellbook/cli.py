from datetime import time

import click

from wellbook import db
from wellbook.models.centre import Centre, CentreHours, MONDAY, FRIDAY, SATURDAY, SUNDAY
from wellbook.models.service import Service, CATEGORY_CONSULTATION, CATEGORY_TREATMENT
from wellbook.models.staff import StaffMember
from wellbook.models.user import User, ROLE_CLIENT, ROLE_STAFF, ROLE_CENTRE_ADMIN, ROLE_SUPER_ADMIN
from wellbook.scheduling.directory import match_centre

DEMO_CENTRE_NAME = 'Demo Centre'

DEMO_USERS = [
    ('client@test.com', 'Demo', 'Client', ROLE_CLIENT),
    ('staff@test.com', 'Demo', 'Staff', ROLE_STAFF),
    ('admin@test.com', 'Demo', 'Admin', ROLE_CENTRE_ADMIN),
    ('superadmin@test.com', 'Demo', 'Superadmin', ROLE_SUPER_ADMIN),
]


def get_or_create_demo_centre():
    centre = Centre.query.filter_by(name=DEMO_CENTRE_NAME).first()
    if centre is not None:
        click.echo('Found existing Demo Centre.')
        return centre

    click.echo('No Demo Centre found, creating one...')
    centre = Centre(name=DEMO_CENTRE_NAME, address='123 Demo Street')
    for day in range(MONDAY, FRIDAY + 1):
        centre.hours.append(CentreHours(day, time(9, 0), time(17, 0)))
    centre.hours.append(CentreHours(SATURDAY, time(9, 0), time(13, 0)))
    centre.hours.append(CentreHours(SUNDAY, time(0, 0), time(0, 0), is_closed=True))
    db.session.add(centre)

    centre.services.append(Service(
        name='Initial Consultation',
        price=45,
        duration_minutes=30,
        category=CATEGORY_CONSULTATION
    ))
    centre.services.append(Service(
        name='Deep Tissue Massage',
        price=80,
        duration_minutes=60,
        category=CATEGORY_TREATMENT,
        required_qualifications='massage'
    ))
    return centre


def seed_demo_data():
    """Create the demo centre, services and one user per role; safe to run twice"""
    centre = get_or_create_demo_centre()

    created = 0
    for email, first_name, last_name, role in DEMO_USERS:
        user = User.query.filter_by(email=email).first()
        if user is not None:
            click.echo(f'User {email} already exists, skipping.')
            continue

        user = User(email=email, first_name=first_name, last_name=last_name, role=role)
        db.session.add(user)
        if role == ROLE_CENTRE_ADMIN:
            user.centres.append(centre)
        elif role == ROLE_STAFF:
            profile = StaffMember(
                first_name=first_name,
                last_name=last_name,
                email=email,
                specializations='massage',
                qualifications='massage'
            )
            profile.user = user
            profile.centres.append(centre)
            db.session.add(profile)
        created += 1
        click.echo(f'Created {role} {email}')

    db.session.commit()
    return created


def link_legacy_staff():
    """Turn legacy free-text centre names into centre memberships"""
    centres = Centre.query.all()
    linked = 0
    for staff in StaffMember.query.filter(StaffMember.legacy_centre_name.isnot(None)).all():
        for centre in centres:
            if centre.id in staff.centre_ids:
                continue
            strategy = match_centre(staff, centre)
            if strategy is None:
                continue
            staff.centres.append(centre)
            linked += 1
            click.echo(f'- {staff.get_full_name()} -> {centre.name} ({strategy})')
    db.session.commit()
    return linked


def register_commands(app):
    @app.cli.command('seed-demo')
    def seed_demo():
        """Seed a demo centre, services and users."""
        created = seed_demo_data()
        click.echo(f'Demo data ready ({created} users created).')

    @app.cli.command('link-legacy-staff')
    def link_legacy_staff_command():
        """Link staff to centres named in their legacy centre field."""
        linked = link_legacy_staff()
        click.echo(f'Linked {linked} staff/centre pair(s).')
