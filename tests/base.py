import datetime as dt
import unittest

from wellbook import create_app, db
from wellbook.config import TestingConfig
from wellbook.models.centre import Centre
from wellbook.models.service import Service, CATEGORY_CONSULTATION, CATEGORY_SCAN, CATEGORY_TREATMENT
from wellbook.models.staff import StaffMember
from wellbook.models.user import User, ROLE_CLIENT, ROLE_STAFF, ROLE_CENTRE_ADMIN, ROLE_SUPER_ADMIN
from wellbook.scheduling.access import Actor


class WellbookTestCase(unittest.TestCase):
    """
    Two centres, three services and a handful of users and staff

    Harbour Centre offers everything; Hills Centre only the massage and the
    consultation. Alice works at Harbour by centre id, Dave and Carol only
    through their legacy centre name; Bob works at Hills.
    """

    # Thursday; the day after is Friday 2025-01-10
    NOW = dt.datetime(2025, 1, 9, 8, 0)
    DAY = dt.date(2025, 1, 10)
    config_class = TestingConfig

    def setUp(self) -> None:
        self.app = create_app(self.config_class)
        self.ctx = self.app.app_context()
        self.ctx.push()
        self.seed()

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def seed(self) -> None:
        self.harbour = Centre(name="Harbour Centre", address="1 Wharf Rd")
        self.hills = Centre(name="Hills Centre", address="9 Ridge St")

        self.massage = Service(
            name="Deep Tissue Massage",
            price=80,
            duration_minutes=60,
            category=CATEGORY_TREATMENT,
            required_qualifications="massage",
        )
        self.consultation = Service(
            name="Initial Consultation",
            price=45,
            duration_minutes=30,
            category=CATEGORY_CONSULTATION,
        )
        self.scan = Service(name="Body Scan", price=120, duration_minutes=30, category=CATEGORY_SCAN)

        self.harbour.services.extend([self.massage, self.consultation, self.scan])
        self.hills.services.extend([self.massage, self.consultation])

        self.client_user = User("client@example.com", "Jordan", "River", role=ROLE_CLIENT, phone="0400000000")
        self.other_client = User("sam@example.com", "Sam", "Stone", role=ROLE_CLIENT)
        self.admin_a = User("harbour.admin@example.com", "Hana", "Admin", role=ROLE_CENTRE_ADMIN)
        self.admin_b = User("hills.admin@example.com", "Hugo", "Admin", role=ROLE_CENTRE_ADMIN)
        self.super_admin = User("root@example.com", "Sue", "Super", role=ROLE_SUPER_ADMIN)
        self.staff_user = User("alice@example.com", "Alice", "Anders", role=ROLE_STAFF)
        self.admin_a.centres.append(self.harbour)
        self.admin_b.centres.append(self.hills)

        self.alice = StaffMember("Alice", "Anders", email="alice@example.com", qualifications="Massage, Reiki")
        self.alice.user = self.staff_user
        self.alice.centres.append(self.harbour)
        self.bob = StaffMember("Bob", "Brown", specializations="massage")
        self.bob.centres.append(self.hills)
        self.carol = StaffMember("Carol", "Cole", legacy_centre_name="  harbour centre ")
        self.dave = StaffMember("Dave", "Dunn", legacy_centre_name="Harbour Centre")

        db.session.add_all([
            self.harbour, self.hills, self.massage, self.consultation, self.scan,
            self.client_user, self.other_client, self.admin_a, self.admin_b,
            self.super_admin, self.staff_user, self.alice, self.bob, self.carol, self.dave,
        ])
        db.session.commit()

    def actor(self, user) -> Actor:
        return Actor.from_user(user)

    def at(self, hour, minute=0, day=None) -> dt.datetime:
        return dt.datetime.combine(day or self.DAY, dt.time(hour, minute))
