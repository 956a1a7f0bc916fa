from wellbook import db
from datetime import datetime

# Centres a staff member works at
staff_centres = db.Table(
    'staff_centres',
    db.Column('staff_id', db.Integer, db.ForeignKey('staff_members.id'), primary_key=True),
    db.Column('centre_id', db.Integer, db.ForeignKey('centres.id'), primary_key=True)
)

class StaffMember(db.Model):
    __tablename__ = 'staff_members'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, unique=True)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    specializations = db.Column(db.String(255), nullable=True)  # comma-separated
    qualifications = db.Column(db.String(255), nullable=True)  # comma-separated
    # Free-text centre name kept from records created before centre ids existed
    legacy_centre_name = db.Column(db.String(100), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = db.relationship('User', back_populates='staff_profile')
    centres = db.relationship('Centre', secondary=staff_centres, back_populates='staff', lazy='select')
    blocked_times = db.relationship('BlockedTime', backref='staff_member', lazy='dynamic')

    def __init__(self, first_name, last_name, email=None, phone=None, specializations=None,
                 qualifications=None, legacy_centre_name=None, user_id=None, is_active=True):
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.phone = phone
        self.specializations = specializations
        self.qualifications = qualifications
        self.legacy_centre_name = legacy_centre_name
        self.user_id = user_id
        self.is_active = is_active

    @property
    def centre_ids(self):
        return {centre.id for centre in self.centres}

    @property
    def qualification_set(self):
        """Qualifications and specializations, lower-cased"""
        values = set()
        for field in (self.qualifications, self.specializations):
            if field:
                values.update(item.strip().lower() for item in field.split(',') if item.strip())
        return values

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f'<StaffMember {self.get_full_name()}>'
