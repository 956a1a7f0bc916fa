"""Bookable time slots for one staff member, service and day.

Slots sit on a grid of SLOT_INTERVAL_MINUTES anchored at midnight, inside the
centre's opening hours (09:00-17:00 unless the centre says otherwise).
Slots that would run past closing time or into the midday break are never
produced. The remaining slots carry an availability flag and, when
unavailable, a reason.
"""
from datetime import date, datetime, timedelta

from flask import current_app

from wellbook import db
from wellbook.models.appointment import Appointment, STATUS_CANCELLED
from wellbook.models.availability import BlockedTime
from wellbook.models.centre import Centre
from wellbook.models.service import Service
from wellbook.models.staff import StaffMember
from wellbook.scheduling.directory import is_eligible
from wellbook.utils.common import floor_to_grid, local_now

REASON_BOOKED = 'booked'
REASON_BLOCKED = 'blocked'
REASON_TOO_SOON = 'too_soon'
REASON_OUTSIDE_WINDOW = 'outside_booking_window'


class TimeSlot:
    def __init__(self, staff_id, service_id, start_time, end_time, is_available=True,
                 reason=None, centre_id=None):
        self.staff_id = staff_id
        self.service_id = service_id
        self.centre_id = centre_id
        self.start_time = start_time
        self.end_time = end_time
        self.is_available = is_available
        self.reason = reason

    @property
    def key(self):
        return (self.staff_id, self.start_time)

    def overlaps(self, start_time, end_time):
        return self.start_time < end_time and self.end_time > start_time

    def to_dict(self):
        return {
            'staff_id': self.staff_id,
            'service_id': self.service_id,
            'centre_id': self.centre_id,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'is_available': self.is_available,
            'reason': self.reason
        }

    def __repr__(self):
        state = 'free' if self.is_available else self.reason
        return f'<TimeSlot staff={self.staff_id} {self.start_time:%Y-%m-%d %H:%M} {state}>'


class SlotSchedule:
    """
    Lazy, restartable sequence of TimeSlot objects

    Bookings and blocked times are read once, when the schedule is built;
    every iteration replays the same snapshot and yields the same slots.
    """

    def __init__(self, staff_id, service_id, day, opening=None, duration_minutes=0,
                 busy=(), blocked=(), now=None, advance_booking_days=None, centre_id=None):
        self.staff_id = staff_id
        self.service_id = service_id
        self.centre_id = centre_id
        self.day = day
        self.opening = opening
        self.duration = timedelta(minutes=duration_minutes)
        self.busy = list(busy)
        self.blocked = list(blocked)
        self.now = now
        self.advance_booking_days = advance_booking_days

        config = current_app.config
        self.interval = timedelta(minutes=config['SLOT_INTERVAL_MINUTES'])
        self.interval_minutes = config['SLOT_INTERVAL_MINUTES']
        self.break_start = datetime.combine(day, config['BREAK_START'])
        self.break_end = datetime.combine(day, config['BREAK_END'])
        self.lead = timedelta(minutes=config['BOOKING_LEAD_MINUTES'])

    @classmethod
    def empty(cls, staff_id, service_id, day, centre_id=None):
        return cls(staff_id, service_id, day, centre_id=centre_id)

    def __iter__(self):
        if self.opening is None or not self.duration:
            return
        open_at, close_at = self.opening

        current = floor_to_grid(open_at, self.interval_minutes)
        if current < open_at:
            current += self.interval

        while current + self.duration <= close_at:
            end = current + self.duration
            if current < self.break_end and end > self.break_start:
                current += self.interval
                continue
            reason = self._unavailable_reason(current, end)
            yield TimeSlot(
                self.staff_id,
                self.service_id,
                current,
                end,
                is_available=reason is None,
                reason=reason,
                centre_id=self.centre_id
            )
            current += self.interval

    def _unavailable_reason(self, start, end):
        for busy_start, busy_end in self.busy:
            if start < busy_end and end > busy_start:
                return REASON_BOOKED
        for blocked_start, blocked_end in self.blocked:
            if start < blocked_end and end > blocked_start:
                return REASON_BLOCKED
        if self.now is not None:
            if start < self.now + self.lead:
                return REASON_TOO_SOON
            if self.advance_booking_days is not None:
                last_day = self.now.date() + timedelta(days=self.advance_booking_days)
                if start.date() > last_day:
                    return REASON_OUTSIDE_WINDOW
        return None

    def available(self):
        return [slot for slot in self if slot.is_available]

    def find(self, start_time):
        for slot in self:
            if slot.start_time == start_time:
                return slot
        return None


def working_window(day, centre=None):
    """(open, close) datetimes for a day, or None if the centre is closed"""
    config = current_app.config
    open_time, close_time = config['WORKDAY_START'], config['WORKDAY_END']
    if centre is not None:
        hours = centre.hours_for(day.weekday())
        if hours is not None:
            if hours.is_closed:
                return None
            open_time, close_time = hours.open_time, hours.close_time
    return datetime.combine(day, open_time), datetime.combine(day, close_time)


def staff_busy_intervals(staff_id, day, exclude_appointment_id=None):
    """Intervals taken by the staff member's non-cancelled appointments on a day"""
    day_start = datetime.combine(day, datetime.min.time())
    day_end = day_start + timedelta(days=1)
    query = Appointment.query.filter(
        Appointment.staff_id == staff_id,
        Appointment.status != STATUS_CANCELLED,
        Appointment.start_time < day_end,
        Appointment.end_time > day_start
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return [(appointment.start_time, appointment.end_time)
            for appointment in query.order_by(Appointment.start_time).all()]


def staff_blocked_intervals(staff_id, day):
    day_start = datetime.combine(day, datetime.min.time())
    day_end = day_start + timedelta(days=1)
    blocked = BlockedTime.query.filter(
        BlockedTime.staff_id == staff_id,
        BlockedTime.start_time < day_end,
        BlockedTime.end_time > day_start
    ).all()
    return [(entry.start_time, entry.end_time) for entry in blocked]


def generate_slots(staff_id, service_id, day, centre_id=None, now=None, exclude_appointment_id=None):
    """
    Build the slot schedule for a staff member, service and day

    When centre_id is given the centre's opening hours apply and the staff
    member must be eligible for the centre and service; otherwise the
    schedule is empty. exclude_appointment_id leaves one booking out of the
    collision check (used when rescheduling it).
    """
    if isinstance(day, datetime):
        day = day.date()
    if not isinstance(day, date):
        raise TypeError(f"day must be a date, got {type(day).__name__}")
    if now is None:
        now = local_now()

    staff = db.session.get(StaffMember, staff_id)
    service = db.session.get(Service, service_id)
    if staff is None or service is None or not staff.is_active or not service.is_active:
        return SlotSchedule.empty(staff_id, service_id, day, centre_id)

    centre = None
    if centre_id is not None:
        centre = db.session.get(Centre, centre_id)
        if centre is None or not is_eligible(staff_id, centre_id, service_id):
            return SlotSchedule.empty(staff_id, service_id, day, centre_id)

    opening = working_window(day, centre)
    if opening is None:
        return SlotSchedule.empty(staff_id, service_id, day, centre_id)

    return SlotSchedule(
        staff_id,
        service_id,
        day,
        opening=opening,
        duration_minutes=service.duration_minutes,
        busy=staff_busy_intervals(staff_id, day, exclude_appointment_id),
        blocked=staff_blocked_intervals(staff_id, day),
        now=now,
        advance_booking_days=service.advance_booking_days,
        centre_id=centre_id
    )


def find_slot(staff_id, service_id, start_time, centre_id=None, now=None, exclude_appointment_id=None):
    """The generated slot starting exactly at start_time, or None"""
    schedule = generate_slots(
        staff_id, service_id, start_time.date(),
        centre_id=centre_id, now=now, exclude_appointment_id=exclude_appointment_id
    )
    return schedule.find(start_time)
