from flask import request, current_app, has_request_context
from wellbook.models.audit import AuditLog
from wellbook import db

def log_audit(action, entity_type, entity_id=None, details=None, user_id=None, centre_id=None):
    """
    Write an audit entry in its own commit

    Parameters:
    - action: what happened ('create', 'cancel', 'reschedule', 'status_change', ...)
    - entity_type: 'appointment', 'blocked_time' or 'holiday'
    - entity_id: id of the affected record, if there is a single one
    - details: dict or list, stored as JSON
    - user_id: the acting user
    - centre_id: centre the record belongs to, used to scope the log for centre admins

    The booking or transition being audited is already committed, so a
    failure here is logged and reported as False, never raised.
    """
    try:
        ip_address = request.remote_addr if has_request_context() else None

        db.session.add(AuditLog(
            action,
            entity_type,
            user_id=user_id,
            entity_id=entity_id,
            details=details,
            ip_address=ip_address,
            centre_id=centre_id
        ))
        db.session.commit()
        return True
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to write audit entry {action} {entity_type} {entity_id}: {e}")
        return False

def audit_appointment(action, appointment, actor, details=None):
    """Audit entry for an appointment, attributed to the actor and the appointment's centre"""
    return log_audit(
        action,
        'appointment',
        appointment.id,
        details,
        user_id=actor.user_id,
        centre_id=appointment.centre_id
    )
