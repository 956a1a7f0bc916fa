from flask_login import UserMixin
from datetime import datetime
from wellbook import db, login_manager

# User roles
ROLE_CLIENT = 'client'
ROLE_STAFF = 'staff'
ROLE_CENTRE_ADMIN = 'centre_admin'
ROLE_SUPER_ADMIN = 'super_admin'

ROLES = (ROLE_CLIENT, ROLE_STAFF, ROLE_CENTRE_ADMIN, ROLE_SUPER_ADMIN)

# Centres a centre-admin is responsible for
admin_centres = db.Table(
    'admin_centres',
    db.Column('user_id', db.Integer, db.ForeignKey('users.id'), primary_key=True),
    db.Column('centre_id', db.Integer, db.ForeignKey('centres.id'), primary_key=True)
)

class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    role = db.Column(db.String(20), default=ROLE_CLIENT)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    centres = db.relationship('Centre', secondary=admin_centres, lazy='select')
    staff_profile = db.relationship('StaffMember', back_populates='user', uselist=False)

    def __init__(self, email, first_name, last_name, role=ROLE_CLIENT, phone=None, is_active=True):
        self.email = email
        self.first_name = first_name
        self.last_name = last_name
        self.role = role
        self.phone = phone
        self.is_active = is_active

    @property
    def is_authenticated(self):
        # A deactivated account still owns its session; actor_required refuses it with 403
        return True

    def is_super_admin(self):
        return self.role == ROLE_SUPER_ADMIN

    def is_centre_admin(self):
        return self.role == ROLE_CENTRE_ADMIN

    def is_admin(self):
        return self.role in (ROLE_CENTRE_ADMIN, ROLE_SUPER_ADMIN)

    def is_staff(self):
        return self.role == ROLE_STAFF

    def is_client(self):
        return self.role == ROLE_CLIENT

    @property
    def centre_ids(self):
        return {centre.id for centre in self.centres}

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f'<User {self.email}>'

@login_manager.user_loader
def load_user(id):
    return db.session.get(User, int(id))
