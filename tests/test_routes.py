import datetime as dt
from unittest import mock

from base import WellbookTestCase

from wellbook import db
from wellbook.errors import ServiceUnavailable
from wellbook.models.appointment import Appointment, STATUS_CANCELLED
from wellbook.models.availability import BlockedTime
from wellbook.models.user import User
from wellbook.utils.common import local_now


class RouteTestCase(WellbookTestCase):
    """Requests run without an outer app context so each one resolves its own user"""

    def setUp(self) -> None:
        super().setUp()
        self.ids = {
            "harbour": self.harbour.id,
            "hills": self.hills.id,
            "massage": self.massage.id,
            "consultation": self.consultation.id,
            "alice": self.alice.id,
            "bob": self.bob.id,
            "client": self.client_user.id,
            "other_client": self.other_client.id,
            "admin_a": self.admin_a.id,
            "admin_b": self.admin_b.id,
            "super": self.super_admin.id,
            "staff_user": self.staff_user.id,
        }
        db.session.remove()
        self.ctx.pop()

        self.http = self.app.test_client()
        self.day = (local_now() + dt.timedelta(days=7)).date()

    def tearDown(self) -> None:
        with self.app.app_context():
            db.session.remove()
            db.drop_all()

    def login(self, key) -> None:
        with self.http.session_transaction() as sess:
            sess["_user_id"] = str(self.ids[key])
            sess["_fresh"] = True

    def start(self, hour, minute=0) -> str:
        return dt.datetime.combine(self.day, dt.time(hour, minute)).strftime("%Y-%m-%dT%H:%M")

    def book(self, hour=10, **extra):
        data = {
            "centre_id": self.ids["harbour"],
            "service_id": self.ids["massage"],
            "staff_id": self.ids["alice"],
            "start_time": self.start(hour),
        }
        data.update(extra)
        return self.http.post("/booking/appointments", data=data)

    def test_anonymous_requests_are_rejected(self) -> None:
        response = self.http.get("/appointments/")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["error"], "unauthenticated")

    def test_inactive_account_is_refused(self) -> None:
        with self.app.app_context():
            db.session.get(User, self.ids["client"]).is_active = False
            db.session.commit()
        self.login("client")
        response = self.http.get("/appointments/")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.get_json()["error"], "account_inactive")

        response = self.http.post("/booking/appointments", data={})
        self.assertEqual(response.status_code, 403)

    def test_staff_listing_and_slots(self) -> None:
        self.login("client")
        response = self.http.get(f"/booking/centres/{self.ids['harbour']}/services/{self.ids['consultation']}/staff")
        self.assertEqual(response.status_code, 200)
        staff = response.get_json()["staff"]
        self.assertEqual([member["name"] for member in staff], ["Alice Anders", "Carol Cole", "Dave Dunn"])
        self.assertEqual(staff[1]["matched_by"], "legacy_name_ci")

        response = self.http.get("/booking/slots", query_string={
            "staff_id": self.ids["alice"],
            "service_id": self.ids["massage"],
            "date": self.day.isoformat(),
            "centre_id": self.ids["harbour"],
            "available": "1",
        })
        self.assertEqual(response.status_code, 200)
        slots = response.get_json()["slots"]
        self.assertEqual(len(slots), 12)
        self.assertEqual(slots[0]["start_time"], self.start(9) + ":00")

    def test_slot_query_validation(self) -> None:
        self.login("client")
        response = self.http.get("/booking/slots", query_string={"staff_id": self.ids["alice"]})
        self.assertEqual(response.status_code, 400)
        self.assertIn("date", response.get_json()["fields"])

    def test_booking_then_conflict(self) -> None:
        self.login("client")
        response = self.book(notes="First visit")
        self.assertEqual(response.status_code, 201)
        body = response.get_json()
        self.assertEqual(body["status"], "scheduled")
        self.assertEqual(body["client_id"], self.ids["client"])

        self.login("other_client")
        response = self.book()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()["error"], "slot_unavailable")

    def test_booking_form_errors(self) -> None:
        self.login("client")
        response = self.book(start_time="tomorrow morning")
        self.assertEqual(response.status_code, 400)
        self.assertIn("start_time", response.get_json()["fields"])

    def test_admin_booking_requires_client(self) -> None:
        self.login("admin_a")
        response = self.book()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "invalid_client")

        response = self.book(client_id=self.ids["client"])
        self.assertEqual(response.status_code, 201)

    def test_service_unavailable_is_retried_then_reported(self) -> None:
        self.login("client")
        with mock.patch(
            "wellbook.booking.routes.book_appointment",
            autospec=True,
            side_effect=ServiceUnavailable("Database is busy", retry_after=2)
        ) as booker:
            response = self.book()

        self.assertEqual(booker.call_count, 3)
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.headers["Retry-After"], "2")
        self.assertEqual(response.get_json()["error"], "service_unavailable")

    def test_listing_and_detail_are_scoped(self) -> None:
        self.login("client")
        appointment_id = self.book().get_json()["id"]

        self.assertEqual(len(self.http.get("/appointments/").get_json()["appointments"]), 1)
        self.assertEqual(self.http.get(f"/appointments/{appointment_id}").status_code, 200)

        self.login("admin_b")
        self.assertEqual(self.http.get("/appointments/").get_json()["appointments"], [])
        hidden = self.http.get(f"/appointments/{appointment_id}")
        missing = self.http.get("/appointments/9999")
        self.assertEqual(hidden.status_code, 404)
        self.assertEqual(hidden.get_json()["error"], missing.get_json()["error"])
        self.assertEqual(hidden.get_json()["message"], missing.get_json()["message"])

        self.login("admin_a")
        self.assertEqual(self.http.get(f"/appointments/{appointment_id}").status_code, 200)

    def test_cancel_reschedule_status_and_notes(self) -> None:
        self.login("client")
        appointment_id = self.book().get_json()["id"]

        response = self.http.post(f"/appointments/{appointment_id}/reschedule", data={
            "start_time": self.start(14),
            "reason": "Later suits better",
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.get_json()["reschedule_history"]), 1)

        response = self.http.post(f"/appointments/{appointment_id}/status", data={"status": "confirmed"})
        self.assertEqual(response.status_code, 403)

        self.login("staff_user")
        response = self.http.post(f"/appointments/{appointment_id}/status", data={"status": "confirmed"})
        self.assertEqual(response.get_json()["status"], "confirmed")
        response = self.http.post(f"/appointments/{appointment_id}/notes", data={"notes": "Likes it quiet"})
        self.assertEqual(response.get_json()["notes"], "Likes it quiet")

        self.login("client")
        response = self.http.post(f"/appointments/{appointment_id}/cancel", data={})
        self.assertEqual(response.status_code, 400)
        response = self.http.post(f"/appointments/{appointment_id}/cancel", data={"reason": "Away"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], STATUS_CANCELLED)

        response = self.http.post(f"/appointments/{appointment_id}/cancel", data={"reason": "Again"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()["error"], "appointment_finalized")

    def test_staff_schedule_and_blocked_times(self) -> None:
        self.login("client")
        self.book()

        self.login("staff_user")
        response = self.http.post("/staff/blocked-times", data={
            "start_time": self.start(15),
            "end_time": self.start(16),
            "reason": "Training",
        })
        self.assertEqual(response.status_code, 201)
        blocked_id = response.get_json()["id"]

        schedule = self.http.get("/staff/schedule", query_string={"date": self.day.isoformat()}).get_json()
        self.assertEqual(len(schedule["appointments"]), 1)
        self.assertEqual([entry["id"] for entry in schedule["blocked_times"]], [blocked_id])

        response = self.http.post(f"/staff/blocked-times/{blocked_id}/delete")
        self.assertEqual(response.status_code, 200)
        with self.app.app_context():
            self.assertIsNone(db.session.get(BlockedTime, blocked_id))

        self.login("client")
        self.assertEqual(self.http.get("/staff/schedule").status_code, 403)

    def test_blocked_time_form_validation(self) -> None:
        self.login("staff_user")
        response = self.http.post("/staff/blocked-times", data={
            "start_time": self.start(16),
            "end_time": self.start(15),
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn("end_time", response.get_json()["fields"])

    def test_admin_dashboard_appointments_and_clients(self) -> None:
        self.login("client")
        self.book()

        self.login("admin_a")
        dashboard = self.http.get("/admin/dashboard").get_json()
        self.assertEqual(dashboard["total_appointments"], 1)
        self.assertEqual(dashboard["status_counts"]["scheduled"], 1)
        self.assertEqual([centre["name"] for centre in dashboard["centres"]], ["Harbour Centre"])

        listing = self.http.get("/admin/appointments", query_string={"status": "scheduled"}).get_json()
        self.assertEqual(len(listing["appointments"]), 1)
        clients = self.http.get("/admin/clients").get_json()["clients"]
        self.assertEqual([client["id"] for client in clients], [self.ids["client"]])

        self.login("admin_b")
        self.assertEqual(self.http.get("/admin/dashboard").get_json()["total_appointments"], 0)
        self.assertEqual(self.http.get("/admin/clients").get_json()["clients"], [])

        self.login("client")
        self.assertEqual(self.http.get("/admin/dashboard").status_code, 403)

    def test_holiday_blocks_every_staff_member_of_the_centre(self) -> None:
        self.login("admin_a")
        response = self.http.post("/admin/holidays", data={
            "date": self.day.isoformat(),
            "description": "Public holiday",
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(response.get_json()["affected_staff"]), 3)

        response = self.http.post("/admin/holidays", data={
            "date": self.day.isoformat(),
            "description": "Public holiday",
            "centre_id": self.ids["hills"],
        })
        self.assertEqual(response.status_code, 403)

        self.login("client")
        response = self.http.get("/booking/slots", query_string={
            "staff_id": self.ids["alice"],
            "service_id": self.ids["massage"],
            "date": self.day.isoformat(),
            "available": "1",
        })
        self.assertEqual(response.get_json()["slots"], [])

    def test_holiday_across_centres_is_audited_per_centre(self) -> None:
        self.login("super")
        response = self.http.post("/admin/holidays", data={
            "date": self.day.isoformat(),
            "description": "Public holiday",
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(response.get_json()["affected_staff"]), 4)

        self.login("admin_a")
        logs = self.http.get("/admin/audit-logs", query_string={"entity_type": "holiday"}).get_json()
        self.assertEqual(logs["total"], 1)
        self.assertEqual(logs["logs"][0]["centre_id"], self.ids["harbour"])
        self.assertEqual(len(logs["logs"][0]["details"]["affected_staff"]), 3)

        self.login("admin_b")
        logs = self.http.get("/admin/audit-logs", query_string={"entity_type": "holiday"}).get_json()
        self.assertEqual(logs["total"], 1)
        self.assertEqual(logs["logs"][0]["details"]["affected_staff"], [{"id": self.ids["bob"], "name": "Bob Brown"}])

    def test_audit_logs_are_scoped_to_managed_centres(self) -> None:
        self.login("client")
        appointment_id = self.book().get_json()["id"]

        self.login("admin_a")
        logs = self.http.get("/admin/audit-logs").get_json()
        self.assertEqual(logs["total"], 1)
        self.assertEqual(logs["logs"][0]["centre_id"], self.ids["harbour"])

        self.login("admin_b")
        self.assertEqual(self.http.get("/admin/audit-logs").get_json()["total"], 0)

        self.login("client")
        self.assertEqual(self.http.get("/admin/audit-logs").status_code, 403)

        self.login("super")
        logs = self.http.get("/admin/audit-logs", query_string={"entity_type": "appointment"}).get_json()
        self.assertEqual(logs["total"], 1)
        self.assertEqual(logs["logs"][0]["entity_id"], appointment_id)
        self.assertEqual(logs["logs"][0]["action"], "create")

    def test_appointments_are_never_deleted_through_cancel(self) -> None:
        self.login("client")
        appointment_id = self.book().get_json()["id"]
        self.http.post(f"/appointments/{appointment_id}/cancel", data={"reason": "Away"})
        with self.app.app_context():
            self.assertIsNotNone(db.session.get(Appointment, appointment_id))
