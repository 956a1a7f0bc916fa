from base import WellbookTestCase

from wellbook import db
from wellbook.scheduling.directory import eligible_staff, is_eligible, is_qualified, match_centre


class DirectoryTestCase(WellbookTestCase):
    def test_service_not_offered_at_centre_has_no_staff(self) -> None:
        self.assertEqual(eligible_staff(self.hills.id, self.scan.id), [])

    def test_missing_or_inactive_entities_yield_empty_list(self) -> None:
        self.assertEqual(eligible_staff(9999, self.consultation.id), [])
        self.assertEqual(eligible_staff(self.harbour.id, 9999), [])
        self.assertEqual(eligible_staff(None, self.consultation.id), [])

        self.consultation.is_active = False
        db.session.commit()
        self.assertEqual(eligible_staff(self.harbour.id, self.consultation.id), [])

    def test_staff_matched_by_id_and_legacy_name_sorted_by_name(self) -> None:
        staff = eligible_staff(self.harbour.id, self.consultation.id)
        self.assertEqual([member.last_name for member in staff], ["Anders", "Cole", "Dunn"])

    def test_staff_listed_once_even_when_several_strategies_match(self) -> None:
        self.alice.legacy_centre_name = "Harbour Centre"
        db.session.commit()
        staff = eligible_staff(self.harbour.id, self.consultation.id)
        self.assertEqual([member.id for member in staff].count(self.alice.id), 1)
        self.assertEqual(match_centre(self.alice, self.harbour), "centre_id")

    def test_exact_legacy_match_reported_before_case_insensitive(self) -> None:
        self.assertEqual(match_centre(self.dave, self.harbour), "legacy_name")
        self.assertEqual(match_centre(self.carol, self.harbour), "legacy_name_ci")
        self.assertIsNone(match_centre(self.carol, self.hills))
        self.assertIsNone(match_centre(self.bob, self.harbour))

    def test_required_qualifications_filter_staff(self) -> None:
        staff = eligible_staff(self.harbour.id, self.massage.id)
        self.assertEqual([member.id for member in staff], [self.alice.id])
        # Specializations count too, case-insensitively
        self.assertTrue(is_qualified(self.bob, self.massage))
        self.assertEqual([member.id for member in eligible_staff(self.hills.id, self.massage.id)], [self.bob.id])

    def test_inactive_staff_excluded(self) -> None:
        self.dave.is_active = False
        db.session.commit()
        self.assertFalse(is_eligible(self.dave.id, self.harbour.id, self.consultation.id))
        self.assertTrue(is_eligible(self.carol.id, self.harbour.id, self.consultation.id))
