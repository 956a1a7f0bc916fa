"""Appointment state machine and the operations that move along it.

Every operation checks, in this order: the appointment exists, the actor may
perform the action, the appointment is not finalized, the transition is in
the graph, and the time-window rule holds.
"""
from datetime import datetime, timedelta

from flask import current_app

from wellbook import db
from wellbook.errors import (
    AppointmentFinalized, AppointmentNotFound, BookingValidationError,
    CancellationWindowExpired, InvalidTransition, SlotUnavailable
)
from wellbook.models.appointment import (
    Appointment, RescheduleEntry, FINAL_STATUSES, STATUS_SCHEDULED, STATUS_CONFIRMED,
    STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_CANCELLED, STATUS_NO_SHOW, STATUS_RESCHEDULED
)
from wellbook.models.service import Service
from wellbook.models.staff import StaffMember
from wellbook.scheduling.access import (
    require_mutation, ACTION_CANCEL, ACTION_COMPLETE, ACTION_CONFIRM, ACTION_NO_SHOW,
    ACTION_RESCHEDULE, ACTION_START, ACTION_UPDATE_NOTES
)
from wellbook.scheduling.booking import claim_blocks, commit_or_translate, release_claims
from wellbook.scheduling.directory import is_eligible
from wellbook.scheduling.notifications import notify_cancelled, notify_rescheduled
from wellbook.scheduling.slots import find_slot
from wellbook.utils.audit import audit_appointment
from wellbook.utils.common import local_now

# Allowed transitions; a reschedule is the only way back to scheduled
TRANSITIONS = {
    STATUS_SCHEDULED: frozenset([
        STATUS_CONFIRMED, STATUS_IN_PROGRESS, STATUS_COMPLETED,
        STATUS_NO_SHOW, STATUS_CANCELLED, STATUS_SCHEDULED
    ]),
    STATUS_CONFIRMED: frozenset([
        STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_NO_SHOW,
        STATUS_CANCELLED, STATUS_SCHEDULED
    ]),
    STATUS_IN_PROGRESS: frozenset([STATUS_COMPLETED]),
    STATUS_COMPLETED: frozenset(),
    STATUS_CANCELLED: frozenset(),
    STATUS_NO_SHOW: frozenset(),
}

# Status changes reachable through change_status, with the action they need
STATUS_ACTIONS = {
    STATUS_CONFIRMED: ACTION_CONFIRM,
    STATUS_IN_PROGRESS: ACTION_START,
    STATUS_COMPLETED: ACTION_COMPLETE,
    STATUS_NO_SHOW: ACTION_NO_SHOW,
    STATUS_CANCELLED: ACTION_CANCEL,
}


def normalize_status(status):
    """Map the legacy 'rescheduled' marker back onto 'scheduled'"""
    if status == STATUS_RESCHEDULED:
        return STATUS_SCHEDULED
    return status


def can_transition(current, target):
    return normalize_status(target) in TRANSITIONS.get(normalize_status(current), frozenset())


def load_appointment(appointment_id):
    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        raise AppointmentNotFound("Appointment not found.", appointment_id=appointment_id)
    return appointment


def _prepare(actor, appointment_id, action, target=None):
    appointment = load_appointment(appointment_id)
    require_mutation(actor, appointment, action)

    current = normalize_status(appointment.status)
    if current in FINAL_STATUSES:
        raise AppointmentFinalized(
            f"This appointment is already {current.replace('_', ' ')} and can no longer be changed.",
            appointment_id=appointment.id, status=current
        )
    if target is not None and not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot move an appointment from {current} to {target}.",
            appointment_id=appointment.id, status=current, target=target
        )
    return appointment


def notice_hours(appointment):
    service = appointment.service
    if service is not None and service.cancellation_notice_hours is not None:
        return service.cancellation_notice_hours
    return current_app.config['DEFAULT_CANCELLATION_NOTICE_HOURS']


def _require_notice(appointment, now, action):
    hours = notice_hours(appointment)
    if appointment.start_time - now <= timedelta(hours=hours):
        raise CancellationWindowExpired(
            f"Appointments can only be {action} more than {hours} hours in advance.",
            appointment_id=appointment.id, notice_hours=hours
        )


def _touch(appointment, actor):
    appointment.last_modified_by = actor.user_id
    appointment.updated_at = datetime.utcnow()


def cancel_appointment(actor, appointment_id, reason, now=None):
    """Cancel an appointment and release its slot"""
    if now is None:
        now = local_now()
    appointment = _prepare(actor, appointment_id, ACTION_CANCEL, STATUS_CANCELLED)
    _require_notice(appointment, now, 'cancelled')
    if not reason or not reason.strip():
        raise BookingValidationError("Please give a reason for the cancellation.", appointment_id=appointment.id)

    previous_status = appointment.status

    def work():
        appointment.status = STATUS_CANCELLED
        appointment.cancellation_reason = reason.strip()
        appointment.cancelled_at = datetime.utcnow()
        release_claims(appointment)
        _touch(appointment, actor)
        return appointment

    commit_or_translate(work, 'cancel this appointment', "The appointment changed while cancelling it.")

    current_app.logger.info(f"Appointment {appointment.id} cancelled by user {actor.user_id}")
    audit_appointment('cancel', appointment, actor, {'previous_status': previous_status, 'reason': appointment.cancellation_reason})
    notify_cancelled(appointment)
    return appointment


def reschedule_appointment(actor, appointment_id, start_time, staff_id=None, service_id=None,
                           reason=None, now=None):
    """
    Move an appointment to a new time, and optionally a new staff member or service

    The new slot is checked against the staff member's other bookings, the
    slot claims are swapped in one transaction and one history entry is
    appended. The appointment returns to scheduled.
    """
    if now is None:
        now = local_now()
    appointment = _prepare(actor, appointment_id, ACTION_RESCHEDULE, STATUS_SCHEDULED)
    _require_notice(appointment, now, 'rescheduled')

    new_staff_id = staff_id if staff_id is not None else appointment.staff_id
    new_service_id = service_id if service_id is not None else appointment.service_id

    service = db.session.get(Service, new_service_id)
    if service is None or not service.is_active or not appointment.centre.offers_service(service.id):
        raise BookingValidationError(
            "That service is not offered at this centre.",
            appointment_id=appointment.id, service_id=new_service_id
        )
    staff = db.session.get(StaffMember, new_staff_id)
    if staff is None or not is_eligible(new_staff_id, appointment.centre_id, service.id):
        raise BookingValidationError(
            "That staff member cannot take this appointment.",
            appointment_id=appointment.id, staff_id=new_staff_id
        )

    slot = find_slot(
        staff.id, service.id, start_time,
        centre_id=appointment.centre_id, now=now, exclude_appointment_id=appointment.id
    )
    if slot is None or not slot.is_available:
        raise SlotUnavailable(
            "Sorry, this time slot is not available. Please select another time.",
            appointment_id=appointment.id, staff_id=staff.id, start_time=start_time.isoformat(),
            reason=slot.reason if slot is not None else 'not_offered'
        )

    new_end = start_time + timedelta(minutes=service.duration_minutes)

    def work():
        entry = RescheduleEntry(
            appointment_id=appointment.id,
            previous_start=appointment.start_time,
            previous_end=appointment.end_time,
            previous_staff_id=appointment.staff_id,
            previous_staff_name=appointment.staff_name,
            new_start=start_time,
            new_end=new_end,
            new_staff_id=staff.id,
            new_staff_name=staff.get_full_name(),
            reason=reason,
            actor_id=actor.user_id
        )
        db.session.add(entry)

        # Old claims must be gone before the new ones are inserted
        release_claims(appointment)
        db.session.flush()

        appointment.staff_id = staff.id
        appointment.staff_name = staff.get_full_name()
        if service.id != appointment.service_id:
            appointment.service_id = service.id
            appointment.service_name = service.name
            appointment.price = service.price
        appointment.start_time = start_time
        appointment.end_time = new_end
        appointment.status = STATUS_SCHEDULED
        _touch(appointment, actor)
        claim_blocks(appointment)
        return entry

    entry = commit_or_translate(
        work,
        'reschedule this appointment',
        "Sorry, this time slot was just booked by someone else. Please select another time."
    )

    current_app.logger.info(
        f"Appointment {appointment.id} rescheduled from {entry.previous_start.isoformat()} "
        f"to {start_time.isoformat()} by user {actor.user_id}"
    )
    audit_appointment('reschedule', appointment, actor, entry.to_dict())
    notify_rescheduled(appointment, entry)
    return appointment


def _move(actor, appointment_id, target):
    action = STATUS_ACTIONS[target]
    appointment = _prepare(actor, appointment_id, action, target)
    previous_status = appointment.status

    def work():
        appointment.status = target
        _touch(appointment, actor)
        return appointment

    commit_or_translate(work, f'mark this appointment {target}', "The appointment changed while updating it.")

    current_app.logger.info(
        f"Appointment {appointment.id} moved from {previous_status} to {target} by user {actor.user_id}"
    )
    audit_appointment('status_change', appointment, actor, {'previous_status': previous_status, 'status': target})
    return appointment


def confirm_appointment(actor, appointment_id, now=None):
    return _move(actor, appointment_id, STATUS_CONFIRMED)


def start_appointment(actor, appointment_id, now=None):
    return _move(actor, appointment_id, STATUS_IN_PROGRESS)


def complete_appointment(actor, appointment_id, now=None):
    return _move(actor, appointment_id, STATUS_COMPLETED)


def mark_no_show(actor, appointment_id, now=None):
    return _move(actor, appointment_id, STATUS_NO_SHOW)


def change_status(actor, appointment_id, status, reason=None, now=None):
    """Dispatch a requested status onto the matching lifecycle operation"""
    status = normalize_status(status)
    if status == STATUS_CANCELLED:
        return cancel_appointment(actor, appointment_id, reason, now=now)
    if status == STATUS_SCHEDULED:
        raise InvalidTransition(
            "Appointments only return to scheduled by being rescheduled.",
            appointment_id=appointment_id, target=status
        )
    if status not in STATUS_ACTIONS:
        raise BookingValidationError(f"Unknown status: {status}", appointment_id=appointment_id)
    return _move(actor, appointment_id, status)


def update_notes(actor, appointment_id, notes, now=None):
    appointment = _prepare(actor, appointment_id, ACTION_UPDATE_NOTES)

    def work():
        appointment.notes = notes
        _touch(appointment, actor)
        return appointment

    commit_or_translate(work, 'update the notes', "The appointment changed while updating it.")
    audit_appointment('update_notes', appointment, actor, {'notes': notes})
    return appointment
