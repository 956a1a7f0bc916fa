"""Role-scoped visibility and mutation rights over appointments.

Every blueprint and every lifecycle operation asks this module instead of
checking roles itself. Rules, in priority order:

1. super-admin: everything
2. centre-admin: appointments at the centres assigned to them
3. staff: appointments assigned to them (read and operational changes) and
   read-only access to appointments at the centres they work at
4. client: their own appointments; only cancel and reschedule
"""
from flask_login import current_user
from sqlalchemy import false, or_, true

from wellbook import db
from wellbook.errors import PermissionDenied
from wellbook.models.appointment import Appointment
from wellbook.models.user import (
    User, ROLE_CLIENT, ROLE_STAFF, ROLE_CENTRE_ADMIN, ROLE_SUPER_ADMIN
)
from wellbook.scheduling.directory import staff_centre_ids

# Mutation actions
ACTION_BOOK = 'book'
ACTION_CONFIRM = 'confirm'
ACTION_START = 'start'
ACTION_COMPLETE = 'complete'
ACTION_NO_SHOW = 'no_show'
ACTION_CANCEL = 'cancel'
ACTION_RESCHEDULE = 'reschedule'
ACTION_UPDATE_NOTES = 'update_notes'

ALL_ACTIONS = frozenset([
    ACTION_CONFIRM, ACTION_START, ACTION_COMPLETE, ACTION_NO_SHOW,
    ACTION_CANCEL, ACTION_RESCHEDULE, ACTION_UPDATE_NOTES
])
STAFF_ACTIONS = frozenset([
    ACTION_CONFIRM, ACTION_START, ACTION_COMPLETE, ACTION_NO_SHOW,
    ACTION_CANCEL, ACTION_UPDATE_NOTES
])
CLIENT_ACTIONS = frozenset([ACTION_CANCEL, ACTION_RESCHEDULE])


class Actor:
    """Already-authenticated identity the scheduling core acts on behalf of."""

    def __init__(self, user_id, role, centre_ids=(), staff_id=None):
        self.user_id = user_id
        self.role = role
        self.centre_ids = frozenset(centre_ids)
        self.staff_id = staff_id

    @classmethod
    def from_user(cls, user):
        if user.role == ROLE_STAFF and user.staff_profile is not None:
            profile = user.staff_profile
            return cls(user.id, user.role, staff_centre_ids(profile), staff_id=profile.id)
        if user.role == ROLE_CENTRE_ADMIN:
            return cls(user.id, user.role, user.centre_ids)
        return cls(user.id, user.role)

    @property
    def is_super_admin(self):
        return self.role == ROLE_SUPER_ADMIN

    @property
    def is_centre_admin(self):
        return self.role == ROLE_CENTRE_ADMIN

    @property
    def is_staff(self):
        return self.role == ROLE_STAFF

    @property
    def is_client(self):
        return self.role == ROLE_CLIENT

    def __repr__(self):
        return f'<Actor {self.role} {self.user_id}>'


def current_actor():
    """Actor for the logged-in user, or None when anonymous or deactivated"""
    if not current_user.is_authenticated or not current_user.is_active:
        return None
    return Actor.from_user(current_user)


def visible_appointments(actor):
    """Return a predicate telling whether the actor may read an appointment"""
    if actor.is_super_admin:
        return lambda appointment: True
    if actor.is_centre_admin:
        return lambda appointment: appointment.centre_id in actor.centre_ids
    if actor.is_staff:
        return lambda appointment: (
            (actor.staff_id is not None and appointment.staff_id == actor.staff_id)
            or appointment.centre_id in actor.centre_ids
        )
    if actor.is_client:
        return lambda appointment: appointment.client_id == actor.user_id
    return lambda appointment: False


def appointment_scope(actor):
    """SQL criterion equivalent to visible_appointments(actor)"""
    if actor.is_super_admin:
        return true()
    if actor.is_centre_admin:
        if not actor.centre_ids:
            return false()
        return Appointment.centre_id.in_(actor.centre_ids)
    if actor.is_staff:
        clauses = []
        if actor.staff_id is not None:
            clauses.append(Appointment.staff_id == actor.staff_id)
        if actor.centre_ids:
            clauses.append(Appointment.centre_id.in_(actor.centre_ids))
        return or_(*clauses) if clauses else false()
    if actor.is_client:
        return Appointment.client_id == actor.user_id
    return false()


def can_view(actor, appointment):
    return visible_appointments(actor)(appointment)


def can_mutate(actor, appointment, action):
    if action not in ALL_ACTIONS:
        return False
    if actor.is_super_admin:
        return True
    if actor.is_centre_admin:
        return appointment.centre_id in actor.centre_ids
    if actor.is_staff:
        return (
            actor.staff_id is not None
            and appointment.staff_id == actor.staff_id
            and action in STAFF_ACTIONS
        )
    if actor.is_client:
        return appointment.client_id == actor.user_id and action in CLIENT_ACTIONS
    return False


def require_mutation(actor, appointment, action):
    if not can_mutate(actor, appointment, action):
        raise PermissionDenied(
            f"You are not allowed to {action.replace('_', ' ')} this appointment.",
            appointment_id=appointment.id,
            action=action
        )


def can_book_at(actor, centre_id):
    """Whether the actor may create appointments at a centre"""
    if actor.is_super_admin or actor.is_client:
        return True
    if actor.is_centre_admin or actor.is_staff:
        return centre_id in actor.centre_ids
    return False


def require_booking(actor, centre_id):
    if not can_book_at(actor, centre_id):
        raise PermissionDenied(
            "You are not allowed to book appointments at this centre.",
            centre_id=centre_id,
            action=ACTION_BOOK
        )


def visible_clients(actor):
    """Clients the actor may pick from when booking or browsing"""
    query = User.query.filter_by(role=ROLE_CLIENT, is_active=True)
    if actor.is_super_admin:
        return query.order_by(User.last_name, User.first_name).all()
    if actor.is_client:
        return query.filter(User.id == actor.user_id).all()
    if not (actor.is_centre_admin or actor.is_staff):
        return []

    # Clients seen at an appointment the actor can read
    client_ids = db.session.query(Appointment.client_id).filter(
        appointment_scope(actor)
    ).distinct()
    return query.filter(User.id.in_(client_ids)).order_by(User.last_name, User.first_name).all()
