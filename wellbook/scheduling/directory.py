"""Which staff members can take a booking for a centre and service."""
from flask import current_app

from wellbook import db
from wellbook.models.centre import Centre
from wellbook.models.service import Service
from wellbook.models.staff import StaffMember


def _member_by_centre_id(staff, centre):
    return centre.id in staff.centre_ids


def _legacy_name_exact(staff, centre):
    legacy = (staff.legacy_centre_name or '').strip()
    return bool(legacy) and legacy == centre.name.strip()


def _legacy_name_ignoring_case(staff, centre):
    legacy = (staff.legacy_centre_name or '').strip()
    return bool(legacy) and legacy.casefold() == centre.name.strip().casefold()


# Evaluated in order; the first match wins
MATCH_STRATEGIES = [
    ('centre_id', _member_by_centre_id),
    ('legacy_name', _legacy_name_exact),
    ('legacy_name_ci', _legacy_name_ignoring_case),
]


def match_centre(staff, centre):
    """Name of the first strategy placing the staff member at the centre, or None"""
    for name, strategy in MATCH_STRATEGIES:
        if strategy(staff, centre):
            return name
    return None


def is_qualified(staff, service):
    required = {item.lower() for item in service.qualification_list}
    return required <= staff.qualification_set


def eligible_staff(centre_id, service_id):
    """
    Active staff who can deliver a service at a centre

    Returns an empty list when the centre or service does not exist, is
    inactive, or when the service is not offered at the centre.
    """
    centre = db.session.get(Centre, centre_id) if centre_id is not None else None
    service = db.session.get(Service, service_id) if service_id is not None else None
    if centre is None or service is None or not centre.is_active or not service.is_active:
        return []
    if not centre.offers_service(service.id):
        current_app.logger.debug(f"Service {service.id} is not offered at centre {centre.id}")
        return []

    candidates = StaffMember.query.filter_by(is_active=True).order_by(
        StaffMember.last_name, StaffMember.first_name, StaffMember.id
    ).all()

    eligible = []
    for staff in candidates:
        if match_centre(staff, centre) is None:
            continue
        if not is_qualified(staff, service):
            continue
        eligible.append(staff)
    return eligible


def is_eligible(staff_id, centre_id, service_id):
    return any(staff.id == staff_id for staff in eligible_staff(centre_id, service_id))


def staff_centre_ids(staff):
    """Ids of the active centres a staff member is placed at by any match strategy"""
    centres = Centre.query.filter_by(is_active=True).all()
    return {centre.id for centre in centres if match_centre(staff, centre) is not None}
