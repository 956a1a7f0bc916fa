from datetime import datetime, timedelta
from functools import wraps

from flask import Blueprint, jsonify, request, current_app, g
from flask_login import login_required

from wellbook import db
from wellbook.errors import BookingValidationError, PermissionDenied, RecordNotFound
from wellbook.models.appointment import Appointment, STATUS_CANCELLED
from wellbook.models.availability import BlockedTime
from wellbook.staff.forms import BlockTimeForm
from wellbook.utils.audit import log_audit
from wellbook.utils.common import local_now
from wellbook.utils.web import actor_required, form_errors

staff_bp = Blueprint('staff', __name__, url_prefix='/staff')


# Ensure only staff with a staff profile can access these routes
def staff_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.actor.is_staff or g.actor.staff_id is None:
            raise PermissionDenied("This area is for staff members only.")
        return f(*args, **kwargs)
    return decorated_function


@staff_bp.route('/schedule')
@login_required
@actor_required
@staff_required
def schedule():
    """Staff member's appointments and blocked times for a range of days"""
    date_from = request.args.get('date', local_now().strftime('%Y-%m-%d'))
    days = request.args.get('days', 1, type=int)
    try:
        day_start = datetime.strptime(date_from, '%Y-%m-%d')
    except ValueError:
        raise BookingValidationError("date must be YYYY-MM-DD", date=date_from)
    if days < 1 or days > 31:
        raise BookingValidationError("days must be between 1 and 31", days=days)
    day_end = day_start + timedelta(days=days)

    # Get non-cancelled appointments in the range
    appointments = Appointment.query.filter(
        Appointment.staff_id == g.actor.staff_id,
        Appointment.status != STATUS_CANCELLED,
        Appointment.start_time >= day_start,
        Appointment.start_time < day_end
    ).order_by(Appointment.start_time).all()

    # Get blocked times overlapping the range
    blocked_times = BlockedTime.query.filter(
        BlockedTime.staff_id == g.actor.staff_id,
        BlockedTime.start_time < day_end,
        BlockedTime.end_time > day_start
    ).order_by(BlockedTime.start_time).all()

    return jsonify({
        'staff_id': g.actor.staff_id,
        'date': day_start.date().isoformat(),
        'days': days,
        'appointments': [appointment.to_dict() for appointment in appointments],
        'blocked_times': [blocked.to_dict() for blocked in blocked_times]
    })


@staff_bp.route('/blocked-times', methods=['POST'])
@login_required
@actor_required
@staff_required
def add_blocked_time():
    """Block out time the staff member is unavailable"""
    form = BlockTimeForm()
    if not form.validate_on_submit():
        return form_errors(form)

    blocked_time = BlockedTime(
        staff_id=g.actor.staff_id,
        start_time=form.start_time.data,
        end_time=form.end_time.data,
        reason=form.reason.data or None,
        created_by=g.actor.user_id
    )
    db.session.add(blocked_time)
    db.session.commit()

    current_app.logger.info(f"Staff member {g.actor.staff_id} blocked {blocked_time.start_time} - {blocked_time.end_time}")
    log_audit('create', 'blocked_time', blocked_time.id, blocked_time.to_dict(), user_id=g.actor.user_id)
    return jsonify(blocked_time.to_dict()), 201


@staff_bp.route('/blocked-times/<int:blocked_time_id>/delete', methods=['POST'])
@login_required
@actor_required
@staff_required
def remove_blocked_time(blocked_time_id):
    """Remove a blocked time period"""
    blocked_time = db.session.get(BlockedTime, blocked_time_id)
    if blocked_time is None:
        raise RecordNotFound("Blocked time not found.", blocked_time_id=blocked_time_id)

    # Ensure the blocked time belongs to this staff member; holidays are managed by admins
    if blocked_time.staff_id != g.actor.staff_id or blocked_time.is_holiday:
        raise PermissionDenied("You can only remove your own blocked times.", blocked_time_id=blocked_time_id)

    # Gather details for audit log before deletion
    audit_details = blocked_time.to_dict()

    db.session.delete(blocked_time)
    db.session.commit()

    log_audit('delete', 'blocked_time', blocked_time_id, audit_details, user_id=g.actor.user_id)
    return jsonify({'deleted': blocked_time_id})
