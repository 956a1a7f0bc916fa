from flask import Blueprint, jsonify, request, current_app, g
from flask_login import login_required

from wellbook.booking.forms import SlotQueryForm, BookingForm
from wellbook.scheduling.booking import book_appointment
from wellbook.scheduling.directory import eligible_staff, match_centre
from wellbook.scheduling.slots import generate_slots
from wellbook.models.centre import Centre
from wellbook.utils.retry import call_with_backoff
from wellbook.utils.web import actor_required, form_errors
from wellbook import db

booking_bp = Blueprint('booking', __name__, url_prefix='/booking')


@booking_bp.route('/centres/<int:centre_id>/services/<int:service_id>/staff')
@login_required
@actor_required
def staff_for_service(centre_id, service_id):
    """Staff who can deliver a service at a centre"""
    centre = db.session.get(Centre, centre_id)
    staff_members = eligible_staff(centre_id, service_id)
    return jsonify({
        'centre_id': centre_id,
        'service_id': service_id,
        'staff': [
            {
                'id': staff.id,
                'name': staff.get_full_name(),
                'specializations': staff.specializations,
                'matched_by': match_centre(staff, centre)
            }
            for staff in staff_members
        ]
    })


@booking_bp.route('/slots')
@login_required
@actor_required
def slots():
    """Slots for a staff member, service and day"""
    form = SlotQueryForm(formdata=request.args)
    if not form.validate():
        return form_errors(form)

    schedule = generate_slots(
        form.staff_id.data,
        form.service_id.data,
        form.date.data,
        centre_id=form.centre_id.data
    )
    only_available = request.args.get('available') in ('1', 'true', 'yes')
    slot_list = schedule.available() if only_available else list(schedule)

    return jsonify({
        'staff_id': form.staff_id.data,
        'service_id': form.service_id.data,
        'date': form.date.data.isoformat(),
        'slots': [slot.to_dict() for slot in slot_list]
    })


@booking_bp.route('/appointments', methods=['POST'])
@login_required
@actor_required
def create_appointment():
    """Book an appointment"""
    form = BookingForm()
    if not form.validate_on_submit():
        return form_errors(form)

    appointment = call_with_backoff(
        book_appointment,
        g.actor,
        form.centre_id.data,
        form.service_id.data,
        form.staff_id.data,
        form.start_time.data,
        client_id=form.client_id.data,
        notes=form.notes.data or None
    )
    current_app.logger.debug(f"Booking request by user {g.actor.user_id} created appointment {appointment.id}")
    return jsonify(appointment.to_dict()), 201
