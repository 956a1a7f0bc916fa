from wellbook import db
from datetime import datetime, timedelta
from sqlalchemy import event

# Appointment status constants
STATUS_SCHEDULED = 'scheduled'
STATUS_CONFIRMED = 'confirmed'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'
STATUS_NO_SHOW = 'no_show'
# Legacy marker; always stored as STATUS_SCHEDULED
STATUS_RESCHEDULED = 'rescheduled'

STATUSES = (
    STATUS_SCHEDULED,
    STATUS_CONFIRMED,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
    STATUS_NO_SHOW
)
FINAL_STATUSES = frozenset([STATUS_COMPLETED, STATUS_CANCELLED, STATUS_NO_SHOW])

class Appointment(db.Model):
    __tablename__ = 'appointments'
    __table_args__ = (
        db.Index('ix_appointments_staff_start', 'staff_id', 'start_time'),
        db.Index('ix_appointments_centre_start', 'centre_id', 'start_time'),
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    centre_id = db.Column(db.Integer, db.ForeignKey('centres.id'), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey('services.id'), nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey('staff_members.id'), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), default=STATUS_SCHEDULED, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)

    # Denormalized for display
    client_name = db.Column(db.String(120), nullable=False)
    client_email = db.Column(db.String(120), nullable=True)
    client_phone = db.Column(db.String(20), nullable=True)
    service_name = db.Column(db.String(100), nullable=False)
    staff_name = db.Column(db.String(120), nullable=False)
    centre_name = db.Column(db.String(100), nullable=False)

    cancellation_reason = db.Column(db.Text, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    last_modified_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    client = db.relationship('User', foreign_keys=[client_id])
    centre = db.relationship('Centre')
    service = db.relationship('Service')
    staff = db.relationship('StaffMember')
    reschedule_history = db.relationship(
        'RescheduleEntry',
        backref='appointment',
        order_by='RescheduleEntry.id',
        lazy='select'
    )
    claims = db.relationship('SlotClaim', backref='appointment', lazy='select', cascade='all, delete-orphan')

    def __init__(self, client_id, centre_id, service_id, staff_id, start_time, end_time, price,
                 client_name, service_name, staff_name, centre_name, created_by,
                 client_email=None, client_phone=None, notes=None, status=STATUS_SCHEDULED):
        self.client_id = client_id
        self.centre_id = centre_id
        self.service_id = service_id
        self.staff_id = staff_id
        self.start_time = start_time
        self.end_time = end_time
        self.price = price
        self.client_name = client_name
        self.client_email = client_email
        self.client_phone = client_phone
        self.service_name = service_name
        self.staff_name = staff_name
        self.centre_name = centre_name
        self.created_by = created_by
        self.last_modified_by = created_by
        self.notes = notes
        self.status = status

    @property
    def duration_minutes(self):
        return int((self.end_time - self.start_time) / timedelta(minutes=1))

    def is_finalized(self):
        return self.status in FINAL_STATUSES

    def is_active(self):
        return self.status != STATUS_CANCELLED

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'centre_id': self.centre_id,
            'service_id': self.service_id,
            'staff_id': self.staff_id,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'duration_minutes': self.duration_minutes,
            'status': self.status,
            'notes': self.notes,
            'price': float(self.price),
            'client_name': self.client_name,
            'client_email': self.client_email,
            'client_phone': self.client_phone,
            'service_name': self.service_name,
            'staff_name': self.staff_name,
            'centre_name': self.centre_name,
            'cancellation_reason': self.cancellation_reason,
            'created_by': self.created_by,
            'last_modified_by': self.last_modified_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'reschedule_history': [entry.to_dict() for entry in self.reschedule_history]
        }

    def __repr__(self):
        return f'<Appointment {self.id}: {self.start_time} - {self.end_time}>'


class RescheduleEntry(db.Model):
    """One reschedule of an appointment. Rows are append-only."""
    __tablename__ = 'reschedule_entries'

    id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'), nullable=False)
    previous_start = db.Column(db.DateTime, nullable=False)
    previous_end = db.Column(db.DateTime, nullable=False)
    previous_staff_id = db.Column(db.Integer, nullable=False)
    previous_staff_name = db.Column(db.String(120), nullable=True)
    new_start = db.Column(db.DateTime, nullable=False)
    new_end = db.Column(db.DateTime, nullable=False)
    new_staff_id = db.Column(db.Integer, nullable=False)
    new_staff_name = db.Column(db.String(120), nullable=True)
    reason = db.Column(db.Text, nullable=True)
    actor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'previous_start': self.previous_start.isoformat(),
            'previous_end': self.previous_end.isoformat(),
            'previous_staff_id': self.previous_staff_id,
            'previous_staff_name': self.previous_staff_name,
            'new_start': self.new_start.isoformat(),
            'new_end': self.new_end.isoformat(),
            'new_staff_id': self.new_staff_id,
            'new_staff_name': self.new_staff_name,
            'reason': self.reason,
            'actor_id': self.actor_id,
            'timestamp': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<RescheduleEntry {self.appointment_id}: {self.previous_start} -> {self.new_start}>'


class SlotClaim(db.Model):
    """Occupies one slot-grid block of a staff member's day.

    The unique index turns "is the slot free?" plus "book it" into a single
    conditional write: a second insert for the same block fails on flush.
    """
    __tablename__ = 'slot_claims'
    __table_args__ = (
        db.UniqueConstraint('staff_id', 'block_start', name='uq_slot_claims_staff_block'),
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey('staff_members.id'), nullable=False)
    block_start = db.Column(db.DateTime, nullable=False)
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'), nullable=False)

    def __init__(self, staff_id, block_start, appointment=None):
        self.staff_id = staff_id
        self.block_start = block_start
        if appointment is not None:
            self.appointment = appointment

    def __repr__(self):
        return f'<SlotClaim staff={self.staff_id} {self.block_start}>'


@event.listens_for(Appointment, 'before_delete')
def _refuse_appointment_delete(mapper, connection, target):
    raise ValueError('Appointments are never deleted; cancel them instead')


@event.listens_for(RescheduleEntry, 'before_update')
def _refuse_history_update(mapper, connection, target):
    raise ValueError('Reschedule history entries are immutable')


@event.listens_for(RescheduleEntry, 'before_delete')
def _refuse_history_delete(mapper, connection, target):
    raise ValueError('Reschedule history entries are immutable')
