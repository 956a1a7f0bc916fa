from datetime import datetime, timedelta
from functools import wraps

from flask import Blueprint, jsonify, request, current_app, g
from flask_login import login_required
from sqlalchemy import func

from wellbook import db
from wellbook.admin.forms import HolidayForm
from wellbook.errors import BookingValidationError, PermissionDenied
from wellbook.models.appointment import Appointment, STATUSES, STATUS_SCHEDULED, STATUS_CONFIRMED
from wellbook.models.audit import AuditLog
from wellbook.models.availability import BlockedTime
from wellbook.models.centre import Centre
from wellbook.models.staff import StaffMember
from wellbook.scheduling.access import appointment_scope, visible_clients
from wellbook.scheduling.directory import match_centre
from wellbook.utils.audit import log_audit
from wellbook.utils.common import local_now
from wellbook.utils.web import actor_required, form_errors

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


# Ensure only administrators can access these routes
def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not (g.actor.is_super_admin or g.actor.is_centre_admin):
            raise PermissionDenied("This area is for administrators only.")
        return f(*args, **kwargs)
    return decorated_function


def _managed_centres():
    query = Centre.query.filter_by(is_active=True)
    if not g.actor.is_super_admin:
        query = query.filter(Centre.id.in_(g.actor.centre_ids))
    return query.order_by(Centre.name).all()


@admin_bp.route('/dashboard')
@login_required
@actor_required
@admin_required
def dashboard():
    """Admin dashboard with overview of the centres the admin manages"""
    scope = appointment_scope(g.actor)

    # Count appointments
    total_appointments = Appointment.query.filter(scope).count()
    upcoming_appointments = Appointment.query.filter(
        scope,
        Appointment.start_time > local_now(),
        Appointment.status.in_([STATUS_SCHEDULED, STATUS_CONFIRMED])
    ).count()

    # Count by status
    status_counts = dict.fromkeys(STATUSES, 0)
    rows = db.session.query(Appointment.status, func.count(Appointment.id)).filter(scope).group_by(
        Appointment.status
    ).all()
    for status, count in rows:
        status_counts[status] = count

    centres = _managed_centres()

    return jsonify({
        'centres': [{'id': centre.id, 'name': centre.name} for centre in centres],
        'total_appointments': total_appointments,
        'upcoming_appointments': upcoming_appointments,
        'status_counts': status_counts,
        'total_clients': len(visible_clients(g.actor))
    })


@admin_bp.route('/appointments')
@login_required
@actor_required
@admin_required
def appointments():
    """View appointments at the centres the admin manages"""
    status_filter = request.args.get('status', 'all')
    date_from = request.args.get('date_from', local_now().strftime('%Y-%m-%d'))
    centre_id = request.args.get('centre_id', type=int)

    # Convert date string to datetime
    try:
        date_from = datetime.strptime(date_from, '%Y-%m-%d')
    except ValueError:
        raise BookingValidationError("date_from must be YYYY-MM-DD", date_from=date_from)

    # Start with the admin's scope
    query = Appointment.query.filter(appointment_scope(g.actor))

    # Apply filters
    if status_filter != 'all':
        query = query.filter_by(status=status_filter)
    if centre_id is not None:
        query = query.filter_by(centre_id=centre_id)

    query = query.filter(Appointment.start_time >= date_from)

    # Get final results ordered by date
    appointments_list = query.order_by(Appointment.start_time).all()

    return jsonify({
        'status': status_filter,
        'date_from': date_from.strftime('%Y-%m-%d'),
        'appointments': [appointment.to_dict() for appointment in appointments_list]
    })


@admin_bp.route('/clients')
@login_required
@actor_required
@admin_required
def clients():
    """Clients the admin may see"""
    return jsonify({
        'clients': [
            {
                'id': client.id,
                'name': client.get_full_name(),
                'email': client.email,
                'phone': client.phone
            }
            for client in visible_clients(g.actor)
        ]
    })


@admin_bp.route('/holidays', methods=['POST'])
@login_required
@actor_required
@admin_required
def holidays():
    """Block a whole day for every staff member of a centre"""
    form = HolidayForm()
    if not form.validate_on_submit():
        return form_errors(form)

    centres = _managed_centres()
    if form.centre_id.data is not None:
        centres = [centre for centre in centres if centre.id == form.centre_id.data]
        if not centres:
            raise PermissionDenied(
                "You are not allowed to manage holidays at this centre.",
                centre_id=form.centre_id.data
            )
    elif not g.actor.is_super_admin and len(centres) != 1:
        raise BookingValidationError("Please select the centre the holiday applies to.")

    start_time = datetime.combine(form.date.data, datetime.min.time())
    end_time = start_time + timedelta(days=1)

    audit_details = {
        'date': form.date.data.isoformat(),
        'description': form.description.data,
        'centre_ids': [centre.id for centre in centres],
        'affected_staff': []
    }
    staff_by_centre = {centre.id: [] for centre in centres}

    # Create a blocked time entry for every staff member working at the centres
    staff_members = StaffMember.query.filter_by(is_active=True).all()
    for staff in staff_members:
        matched = [centre for centre in centres if match_centre(staff, centre) is not None]
        if not matched:
            continue
        holiday = BlockedTime(
            staff_id=staff.id,
            start_time=start_time,
            end_time=end_time,
            reason=form.description.data,
            is_holiday=True,
            created_by=g.actor.user_id
        )
        db.session.add(holiday)

        affected = {'id': staff.id, 'name': staff.get_full_name()}
        audit_details['affected_staff'].append(affected)
        for centre in matched:
            staff_by_centre[centre.id].append(affected)

    db.session.commit()

    current_app.logger.info(
        f"Holiday on {form.date.data} added for {len(audit_details['affected_staff'])} staff members"
    )
    # One entry per centre so each centre admin sees the holidays at their centres
    for centre in centres:
        log_audit(
            'create', 'holiday',
            details={
                'date': audit_details['date'],
                'description': audit_details['description'],
                'affected_staff': staff_by_centre[centre.id]
            },
            user_id=g.actor.user_id,
            centre_id=centre.id
        )
    return jsonify(audit_details), 201


@admin_bp.route('/audit-logs')
@login_required
@actor_required
@admin_required
def audit_logs():
    """Audit trail, newest first; centre admins only see entries for their centres"""
    query = AuditLog.query
    if not g.actor.is_super_admin:
        query = query.filter(AuditLog.centre_id.in_(g.actor.centre_ids))

    action_filter = request.args.get('action', '')
    entity_type_filter = request.args.get('entity_type', '')
    entity_id_filter = request.args.get('entity_id', type=int)
    if action_filter:
        query = query.filter(AuditLog.action == action_filter)
    if entity_type_filter:
        query = query.filter(AuditLog.entity_type == entity_type_filter)
    if entity_id_filter is not None:
        query = query.filter(AuditLog.entity_id == entity_id_filter)

    query = query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
    page = request.args.get('page', 1, type=int)
    pagination = query.paginate(page=page, per_page=50, error_out=False)

    return jsonify({
        'page': pagination.page,
        'pages': pagination.pages,
        'total': pagination.total,
        'logs': [log.to_dict() for log in pagination.items]
    })
