from datetime import datetime

from flask import Blueprint, jsonify, request, g
from flask_login import login_required

from wellbook.appointments.forms import (
    CancelAppointmentForm, RescheduleForm, AppointmentStatusForm, AppointmentNotesForm
)
from wellbook.errors import AppointmentNotFound
from wellbook.models.appointment import Appointment, STATUSES
from wellbook.scheduling.access import appointment_scope, can_view
from wellbook.scheduling import lifecycle
from wellbook.utils.retry import call_with_backoff
from wellbook.utils.web import actor_required, form_errors

appointments_bp = Blueprint('appointments', __name__, url_prefix='/appointments')


@appointments_bp.route('/')
@login_required
@actor_required
def index():
    """Appointments visible to the current user, with filtering options"""
    status_filter = request.args.get('status', 'all')
    date_from = request.args.get('date_from')

    # Start with the actor's scope
    query = Appointment.query.filter(appointment_scope(g.actor))

    # Apply filters
    if status_filter != 'all' and status_filter in STATUSES:
        query = query.filter(Appointment.status == status_filter)
    if date_from:
        try:
            date_from = datetime.strptime(date_from, '%Y-%m-%d')
        except ValueError:
            return jsonify({'error': 'invalid_request', 'message': 'date_from must be YYYY-MM-DD'}), 400
        query = query.filter(Appointment.start_time >= date_from)

    appointments = query.order_by(Appointment.start_time).all()
    return jsonify({
        'status': status_filter,
        'appointments': [appointment.to_dict() for appointment in appointments]
    })


@appointments_bp.route('/<int:appointment_id>')
@login_required
@actor_required
def detail(appointment_id):
    appointment = lifecycle.load_appointment(appointment_id)
    if not can_view(g.actor, appointment):
        # Out-of-scope ids answer exactly like missing ones
        raise AppointmentNotFound("Appointment not found.", appointment_id=appointment_id)
    return jsonify(appointment.to_dict())


@appointments_bp.route('/<int:appointment_id>/cancel', methods=['POST'])
@login_required
@actor_required
def cancel(appointment_id):
    """Cancel an appointment"""
    form = CancelAppointmentForm()
    if not form.validate_on_submit():
        return form_errors(form)

    appointment = call_with_backoff(lifecycle.cancel_appointment, g.actor, appointment_id, form.reason.data)
    return jsonify(appointment.to_dict())


@appointments_bp.route('/<int:appointment_id>/reschedule', methods=['POST'])
@login_required
@actor_required
def reschedule(appointment_id):
    """Move an appointment to a new slot"""
    form = RescheduleForm()
    if not form.validate_on_submit():
        return form_errors(form)

    appointment = call_with_backoff(
        lifecycle.reschedule_appointment,
        g.actor,
        appointment_id,
        form.start_time.data,
        staff_id=form.staff_id.data,
        service_id=form.service_id.data,
        reason=form.reason.data or None
    )
    return jsonify(appointment.to_dict())


@appointments_bp.route('/<int:appointment_id>/status', methods=['POST'])
@login_required
@actor_required
def update_status(appointment_id):
    """Update the status of an appointment"""
    form = AppointmentStatusForm()
    if not form.validate_on_submit():
        return form_errors(form)

    appointment = call_with_backoff(
        lifecycle.change_status, g.actor, appointment_id, form.status.data, reason=form.reason.data
    )
    return jsonify(appointment.to_dict())


@appointments_bp.route('/<int:appointment_id>/notes', methods=['POST'])
@login_required
@actor_required
def update_notes(appointment_id):
    form = AppointmentNotesForm()
    if not form.validate_on_submit():
        return form_errors(form)

    appointment = call_with_backoff(lifecycle.update_notes, g.actor, appointment_id, form.notes.data or None)
    return jsonify(appointment.to_dict())
