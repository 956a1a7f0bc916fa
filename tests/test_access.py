import datetime as dt

from base import WellbookTestCase

from wellbook import db
from wellbook.errors import PermissionDenied
from wellbook.models.appointment import Appointment
from wellbook.models.user import User, ROLE_CLIENT, ROLE_STAFF
from wellbook.scheduling import lifecycle
from wellbook.scheduling.access import (
    Actor, ACTION_CANCEL, ACTION_COMPLETE, ACTION_RESCHEDULE, ACTION_UPDATE_NOTES,
    appointment_scope, can_book_at, can_mutate, can_view, current_actor, visible_appointments,
    visible_clients
)
from wellbook.scheduling.booking import book_appointment


class AccessScopeTestCase(WellbookTestCase):
    EARLY = dt.datetime(2025, 1, 8, 8, 0)

    def setUp(self) -> None:
        super().setUp()
        self.at_harbour = book_appointment(
            self.actor(self.client_user), self.harbour.id, self.massage.id, self.alice.id,
            self.at(10), now=self.EARLY
        )
        self.at_hills = book_appointment(
            self.actor(self.other_client), self.hills.id, self.massage.id, self.bob.id,
            self.at(10), now=self.EARLY
        )

    def _scoped_ids(self, actor):
        return sorted(a.id for a in Appointment.query.filter(appointment_scope(actor)).all())

    def test_centre_admin_sees_and_mutates_only_own_centre(self) -> None:
        admin = self.actor(self.admin_a)
        self.assertTrue(can_view(admin, self.at_harbour))
        self.assertFalse(can_view(admin, self.at_hills))
        self.assertEqual(self._scoped_ids(admin), [self.at_harbour.id])
        self.assertTrue(can_mutate(admin, self.at_harbour, ACTION_RESCHEDULE))
        self.assertFalse(can_mutate(admin, self.at_hills, ACTION_CANCEL))

        with self.assertRaises(PermissionDenied):
            lifecycle.cancel_appointment(admin, self.at_hills.id, "Closed", now=self.EARLY)
        self.assertEqual(db.session.get(Appointment, self.at_hills.id).status, "scheduled")

    def test_staff_matched_by_legacy_centre_name_is_scoped_to_that_centre(self) -> None:
        carol_user = User("carol@example.com", "Carol", "Cole", role=ROLE_STAFF)
        db.session.add(carol_user)
        self.carol.user = carol_user
        db.session.commit()

        carol = self.actor(carol_user)
        self.assertEqual(carol.centre_ids, {self.harbour.id})
        self.assertTrue(can_book_at(carol, self.harbour.id))
        self.assertFalse(can_book_at(carol, self.hills.id))
        self.assertTrue(can_view(carol, self.at_harbour))
        self.assertFalse(can_view(carol, self.at_hills))
        self.assertEqual(self._scoped_ids(carol), [self.at_harbour.id])
        self.assertFalse(can_mutate(carol, self.at_harbour, ACTION_COMPLETE))

    def test_super_admin_is_unrestricted(self) -> None:
        root = self.actor(self.super_admin)
        self.assertEqual(self._scoped_ids(root), sorted([self.at_harbour.id, self.at_hills.id]))
        self.assertTrue(can_mutate(root, self.at_hills, ACTION_CANCEL))
        cancelled = lifecycle.cancel_appointment(root, self.at_hills.id, "Closed", now=self.EARLY)
        self.assertEqual(cancelled.last_modified_by, self.super_admin.id)

    def test_client_sees_only_own_and_only_cancels_or_reschedules(self) -> None:
        client = self.actor(self.client_user)
        predicate = visible_appointments(client)
        self.assertTrue(predicate(self.at_harbour))
        self.assertFalse(predicate(self.at_hills))
        self.assertEqual(self._scoped_ids(client), [self.at_harbour.id])
        self.assertTrue(can_mutate(client, self.at_harbour, ACTION_CANCEL))
        self.assertTrue(can_mutate(client, self.at_harbour, ACTION_RESCHEDULE))
        self.assertFalse(can_mutate(client, self.at_harbour, ACTION_COMPLETE))
        self.assertFalse(can_mutate(client, self.at_hills, ACTION_CANCEL))

    def test_staff_read_centre_but_mutate_only_own_appointments(self) -> None:
        staff = self.actor(self.staff_user)
        self.assertEqual(staff.staff_id, self.alice.id)
        self.assertEqual(self._scoped_ids(staff), [self.at_harbour.id])
        self.assertTrue(can_mutate(staff, self.at_harbour, ACTION_UPDATE_NOTES))
        self.assertFalse(can_mutate(staff, self.at_harbour, ACTION_RESCHEDULE))

        dave_booking = book_appointment(
            self.actor(self.other_client), self.harbour.id, self.consultation.id, self.dave.id,
            self.at(9), now=self.EARLY
        )
        self.assertTrue(can_view(staff, dave_booking))
        self.assertFalse(can_mutate(staff, dave_booking, ACTION_COMPLETE))

    def test_booking_rights_per_centre(self) -> None:
        self.assertTrue(can_book_at(self.actor(self.admin_a), self.harbour.id))
        self.assertFalse(can_book_at(self.actor(self.admin_a), self.hills.id))
        self.assertTrue(can_book_at(self.actor(self.client_user), self.hills.id))
        self.assertTrue(can_book_at(self.actor(self.super_admin), self.hills.id))
        self.assertFalse(can_book_at(self.actor(self.staff_user), self.hills.id))

    def test_visible_clients_follow_appointment_scope(self) -> None:
        loner = User("loner@example.com", "Lee", "Loner", role=ROLE_CLIENT)
        db.session.add(loner)
        db.session.commit()

        self.assertEqual([c.id for c in visible_clients(self.actor(self.admin_a))], [self.client_user.id])
        self.assertEqual([c.id for c in visible_clients(self.actor(self.admin_b))], [self.other_client.id])
        self.assertEqual([c.id for c in visible_clients(self.actor(self.client_user))], [self.client_user.id])
        self.assertEqual(len(visible_clients(self.actor(self.super_admin))), 3)

    def test_admin_without_centres_sees_nothing(self) -> None:
        orphan = Actor(12345, "centre_admin")
        self.assertEqual(self._scoped_ids(orphan), [])
        self.assertFalse(can_view(orphan, self.at_harbour))

    def test_anonymous_request_has_no_actor(self) -> None:
        with self.app.test_request_context("/"):
            self.assertIsNone(current_actor())
