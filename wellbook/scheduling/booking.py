"""Atomic appointment creation.

A booking inserts the appointment together with one SlotClaim per grid block
it covers. The unique (staff_id, block_start) index makes the availability
check and the write a single conditional operation: whoever commits second
gets an integrity error and a SlotUnavailable.
"""
import time
from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError

from wellbook import db
from wellbook.errors import (
    BookingError, BookingValidationError, InvalidClient, PermissionDenied,
    ServiceUnavailable, SlotUnavailable
)
from wellbook.models.appointment import Appointment, SlotClaim, STATUS_SCHEDULED
from wellbook.models.centre import Centre
from wellbook.models.service import Service
from wellbook.models.staff import StaffMember
from wellbook.models.user import User
from wellbook.scheduling.access import require_booking
from wellbook.scheduling.directory import is_eligible
from wellbook.scheduling.notifications import notify_booked
from wellbook.scheduling.slots import REASON_BOOKED, find_slot
from wellbook.utils.audit import audit_appointment
from wellbook.utils.common import grid_blocks, local_now
from wellbook.utils.optimistic import with_optimistic_update


class BookingView:
    """
    Local view of slots and appointments shown to a user

    The view is updated before the database write so the user sees the
    booking at once; if the write fails, the snapshot is restored.
    """

    def __init__(self, slots=None, appointments=None):
        self.slots = list(slots or [])
        self.appointments = list(appointments or [])

    def snapshot(self):
        return (
            [(slot.is_available, slot.reason) for slot in self.slots],
            list(self.appointments)
        )

    def restore(self, snapshot):
        slot_states, appointments = snapshot
        for slot, (is_available, reason) in zip(self.slots, slot_states):
            slot.is_available = is_available
            slot.reason = reason
        self.appointments = appointments

    def apply_booking(self, staff_id, start_time, end_time, pending):
        """Mark overlapping slots taken and prepend the pending entry; return the prior state"""
        snapshot = self.snapshot()
        for slot in self.slots:
            if slot.staff_id == staff_id and slot.overlaps(start_time, end_time):
                slot.is_available = False
                slot.reason = REASON_BOOKED
        self.appointments.insert(0, pending)
        return snapshot

    def confirm(self, pending, appointment):
        """Replace the pending entry with the persisted appointment"""
        for index, entry in enumerate(self.appointments):
            if entry is pending:
                self.appointments[index] = appointment.to_dict()
                return
        self.appointments.insert(0, appointment.to_dict())

    def is_pending(self):
        return any(entry.get('pending') for entry in self.appointments)


def resolve_client(actor, client_id):
    """The client user an actor is booking for"""
    if actor.is_client:
        if client_id is not None and client_id != actor.user_id:
            raise PermissionDenied("Clients can only book appointments for themselves.", client_id=client_id)
        client_id = actor.user_id
    else:
        if client_id is None:
            raise InvalidClient("Please select the client this appointment is for.")
        if client_id == actor.user_id:
            raise InvalidClient("You cannot book an appointment for yourself.", client_id=client_id)

    client = db.session.get(User, client_id)
    if client is None or not client.is_active or not client.is_client():
        raise InvalidClient("The selected client does not exist or is inactive.", client_id=client_id)
    return client


def load_booking_targets(centre_id, service_id, staff_id):
    """Load and cross-check centre, service and staff member"""
    centre = db.session.get(Centre, centre_id)
    if centre is None or not centre.is_active:
        raise BookingValidationError("Centre not found.", centre_id=centre_id)
    service = db.session.get(Service, service_id)
    if service is None or not service.is_active:
        raise BookingValidationError("Service not found.", service_id=service_id)
    if not centre.offers_service(service.id):
        raise BookingValidationError(
            f"{service.name} is not offered at {centre.name}.",
            centre_id=centre_id, service_id=service_id
        )
    staff = db.session.get(StaffMember, staff_id)
    if staff is None or not staff.is_active:
        raise BookingValidationError("Staff member not found.", staff_id=staff_id)
    if not is_eligible(staff.id, centre.id, service.id):
        raise BookingValidationError(
            f"{staff.get_full_name()} cannot provide {service.name} at {centre.name}.",
            staff_id=staff_id, centre_id=centre_id, service_id=service_id
        )
    return centre, service, staff


def claim_blocks(appointment):
    """Add one SlotClaim per grid block the appointment covers"""
    interval = current_app.config['SLOT_INTERVAL_MINUTES']
    for block_start in grid_blocks(appointment.start_time, appointment.end_time, interval):
        appointment.claims.append(SlotClaim(appointment.staff_id, block_start))


def release_claims(appointment):
    appointment.claims = []


def check_deadline(deadline, operation):
    if time.monotonic() > deadline:
        raise ServiceUnavailable(f"Timed out while trying to {operation}. Please try again.")


def commit_or_translate(work, operation, conflict_message):
    """
    Run work() and commit, mapping database failures onto booking errors

    The session is rolled back on every failure: integrity errors become
    SlotUnavailable, lock and pool timeouts become ServiceUnavailable.
    """
    deadline = time.monotonic() + current_app.config['BOOKING_TIMEOUT_SECONDS']
    try:
        result = work()
        db.session.flush()
        check_deadline(deadline, operation)
        db.session.commit()
        return result
    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.warning(f"Conflicting write while trying to {operation}: {e.orig}")
        raise SlotUnavailable(conflict_message)
    except (OperationalError, PoolTimeoutError) as e:
        db.session.rollback()
        current_app.logger.error(f"Storage unavailable while trying to {operation}: {e}", exc_info=True)
        raise ServiceUnavailable(f"Could not {operation} right now. Please try again shortly.")
    except BookingError:
        db.session.rollback()
        raise


def book_appointment(actor, centre_id, service_id, staff_id, start_time, client_id=None,
                     notes=None, view=None, now=None):
    """
    Create an appointment for a generated, available slot

    Raises PermissionDenied, InvalidClient, BookingValidationError,
    SlotUnavailable or ServiceUnavailable. Nothing is written, and the
    optional view is left untouched, when any of them is raised.
    """
    if now is None:
        now = local_now()

    require_booking(actor, centre_id)
    client = resolve_client(actor, client_id)
    centre, service, staff = load_booking_targets(centre_id, service_id, staff_id)
    end_time = start_time + timedelta(minutes=service.duration_minutes)

    def create():
        slot = find_slot(staff.id, service.id, start_time, centre_id=centre.id, now=now)
        if slot is None or not slot.is_available:
            reason = slot.reason if slot is not None else 'not_offered'
            current_app.logger.warning(
                f"Rejected booking for staff {staff.id} at {start_time.isoformat()}: {reason}"
            )
            raise SlotUnavailable(
                "Sorry, this time slot is not available. Please select another time.",
                staff_id=staff.id, start_time=start_time.isoformat(), reason=reason
            )

        appointment = Appointment(
            client_id=client.id,
            centre_id=centre.id,
            service_id=service.id,
            staff_id=staff.id,
            start_time=start_time,
            end_time=end_time,
            price=service.price,
            client_name=client.get_full_name(),
            client_email=client.email,
            client_phone=client.phone,
            service_name=service.name,
            staff_name=staff.get_full_name(),
            centre_name=centre.name,
            created_by=actor.user_id,
            notes=notes,
            status=STATUS_SCHEDULED
        )
        db.session.add(appointment)
        claim_blocks(appointment)
        return appointment

    def operation():
        return commit_or_translate(
            create,
            'book this appointment',
            "Sorry, this time slot was just booked by someone else. Please select another time."
        )

    if view is None:
        appointment = operation()
    else:
        pending = {
            'id': None,
            'pending': True,
            'staff_id': staff.id,
            'centre_id': centre.id,
            'service_id': service.id,
            'start_time': start_time.isoformat(),
            'end_time': end_time.isoformat(),
            'status': STATUS_SCHEDULED
        }
        appointment = with_optimistic_update(
            lambda: view.apply_booking(staff.id, start_time, end_time, pending),
            view.restore,
            operation
        )
        view.confirm(pending, appointment)

    current_app.logger.info(
        f"Appointment {appointment.id} booked: {service.name} with {staff.get_full_name()} "
        f"at {centre.name} on {start_time.isoformat()} by user {actor.user_id}"
    )
    audit_appointment('create', appointment, actor, {
        'client_id': client.id,
        'service_id': service.id,
        'staff_id': staff.id,
        'start_time': start_time,
        'end_time': end_time,
        'price': service.price
    })
    notify_booked(appointment)
    return appointment
