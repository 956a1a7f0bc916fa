from wellbook import db
from wellbook.models.centre import centre_services
from datetime import datetime

# Service categories
CATEGORY_SCAN = 'scan'
CATEGORY_CONSULTATION = 'consultation'
CATEGORY_TREATMENT = 'treatment'
CATEGORY_WELLNESS = 'wellness'

class Service(db.Model):
    __tablename__ = 'services'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(20), default=CATEGORY_TREATMENT)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)  # Duration in minutes
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Booking policy
    advance_booking_days = db.Column(db.Integer, default=90)
    cancellation_notice_hours = db.Column(db.Integer, default=24)
    requires_approval = db.Column(db.Boolean, default=False)
    required_qualifications = db.Column(db.String(255), nullable=True)  # comma-separated

    # Relationships
    centres = db.relationship('Centre', secondary=centre_services, back_populates='services', lazy='select')

    def __init__(self, name, price, duration_minutes, description=None, category=CATEGORY_TREATMENT,
                 is_active=True, advance_booking_days=90, cancellation_notice_hours=24,
                 requires_approval=False, required_qualifications=None):
        self.name = name
        self.price = price
        self.duration_minutes = duration_minutes
        self.description = description
        self.category = category
        self.is_active = is_active
        self.advance_booking_days = advance_booking_days
        self.cancellation_notice_hours = cancellation_notice_hours
        self.requires_approval = requires_approval
        self.required_qualifications = required_qualifications

    @property
    def centre_ids(self):
        return {centre.id for centre in self.centres}

    @property
    def qualification_list(self):
        if not self.required_qualifications:
            return []
        return [item.strip() for item in self.required_qualifications.split(',') if item.strip()]

    def __repr__(self):
        return f'<Service {self.name}>'
