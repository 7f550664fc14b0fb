import unittest
from dataclasses import replace
from datetime import datetime

from supchaissac.errors import (
    ConversionRequiredError,
    ForbiddenError,
    IllegalTransitionError,
    ValidationError,
)
from supchaissac.records import SESSION_STATUSES, SessionRecord
from supchaissac.transitions import (
    ACTIONS,
    TRANSITIONS,
    Actor,
    NoConversion,
    StatusTransitionEngine,
    ToHSE,
    ToType,
    check_hours,
    conversion_from_payload,
)


NOW = datetime(2025, 3, 12, 10, 0)

TEACHER = Actor("TEACHER", user_id=7, name="Sophie MARTIN")
SECRETARY = Actor("SECRETARY", user_id=2, name="Laure MARTIN")
PRINCIPAL = Actor("PRINCIPAL", user_id=3, name="Jean DUPONT")
ADMIN = Actor("ADMIN", user_id=4)


def make_record(session_type="RCD", status="PENDING_REVIEW", **changes):
    payload = {
        "RCD": {"replaced_teacher": "Mme Dupont", "class_name": "5A"},
        "DEVOIRS_FAITS": {"student_count": 4, "grade_level": "5e"},
        "AUTRE": {"description": "Sortie au musée"},
        "HSE": {},
    }[session_type]
    record = SessionRecord.declare(
        teacher_id=7,
        date="2025-03-10",
        time_slot="M2",
        type=session_type,
        created_at=datetime(2025, 3, 10, 9, 0),
        **payload,
    )
    return replace(record, id=1, status=status, **changes)


class StatusTransitionEngineTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = StatusTransitionEngine(clock=lambda: NOW)

    def test_rcd_lifecycle(self) -> None:
        record = make_record()

        record = self.engine.apply(record, "transmit", SECRETARY)
        self.assertEqual(record.status, "PENDING_VALIDATION")
        record = self.engine.apply(record, "validate", PRINCIPAL)
        self.assertEqual(record.status, "VALIDATED")
        self.assertEqual(record.type, "RCD")
        self.assertIsNone(record.original_type)
        record = self.engine.apply(record, "mark-paid", SECRETARY)
        self.assertEqual(record.status, "PAID")
        record = self.engine.apply(record, "unpay", PRINCIPAL)
        self.assertEqual(record.status, "VALIDATED")

        self.assertEqual(record.updated_at, NOW)
        self.assertEqual(record.updated_by, "Jean DUPONT")

    def test_illegal_transitions_leave_record_unchanged(self) -> None:
        for status in SESSION_STATUSES:
            for action in ACTIONS:
                if status in TRANSITIONS[action].sources:
                    continue
                record = make_record(status=status)
                snapshot = replace(record)
                with self.subTest(status=status, action=action):
                    with self.assertRaises(IllegalTransitionError):
                        self.engine.apply(record, action, ADMIN, comment="motif")
                    self.assertEqual(record, snapshot)

    def test_roles_are_enforced(self) -> None:
        pending_review = make_record()
        pending_validation = make_record(status="PENDING_VALIDATION")

        with self.assertRaises(ForbiddenError):
            self.engine.apply(pending_review, "transmit", TEACHER)
        with self.assertRaises(ForbiddenError):
            self.engine.apply(pending_validation, "validate", SECRETARY)
        with self.assertRaises(ForbiddenError):
            self.engine.apply(make_record(status="VALIDATED"), "mark-paid", TEACHER)

    def test_admin_may_act_for_both_roles(self) -> None:
        record = self.engine.apply(make_record(), "transmit", ADMIN)
        record = self.engine.apply(record, "validate", ADMIN)

        self.assertEqual(record.status, "VALIDATED")
        self.assertEqual(record.updated_by, "ADMIN#4")

    def test_unknown_action(self) -> None:
        with self.assertRaises(ValidationError):
            self.engine.apply(make_record(), "archive", ADMIN)

    def test_request_info_requires_comment(self) -> None:
        record = make_record()
        with self.assertRaises(ValidationError):
            self.engine.apply(record, "request-info", SECRETARY, comment="  ")
        with self.assertRaises(ValidationError):
            self.engine.apply(record, "request-info", SECRETARY, comment=5)

        updated = self.engine.apply(
            record, "request-info", SECRETARY, comment="Merci de joindre la feuille d'appel"
        )
        self.assertEqual(updated.status, "PENDING_DOCUMENTS")
        self.assertEqual(updated.review_comments, "Merci de joindre la feuille d'appel")

        transmitted = self.engine.apply(updated, "transmit", SECRETARY)
        self.assertEqual(transmitted.status, "PENDING_VALIDATION")

    def test_reject_records_reason_and_cancel_clears_it(self) -> None:
        record = make_record(status="PENDING_VALIDATION")

        rejected = self.engine.apply(record, "reject", PRINCIPAL, comment="Doublon")
        self.assertEqual(rejected.status, "REJECTED")
        self.assertEqual(rejected.rejection_reason, "Doublon")

        cancelled = self.engine.apply(rejected, "cancel", PRINCIPAL)
        self.assertEqual(cancelled.status, "PENDING_VALIDATION")
        self.assertIsNone(cancelled.rejection_reason)
        self.assertIsNone(cancelled.validation_comments)

    def test_validate_stores_comment(self) -> None:
        record = make_record(status="PENDING_VALIDATION")
        validated = self.engine.apply(record, "validate", PRINCIPAL, comment="OK")

        self.assertEqual(validated.validation_comments, "OK")

    def test_autre_requires_conversion(self) -> None:
        record = make_record("AUTRE", status="PENDING_VALIDATION")

        with self.assertRaises(ConversionRequiredError):
            self.engine.apply(record, "validate", PRINCIPAL)
        with self.assertRaises(ConversionRequiredError):
            self.engine.apply(record, "validate", PRINCIPAL, conversion=NoConversion())
        self.assertEqual(record.status, "PENDING_VALIDATION")

    def test_autre_converted_to_hse_with_hours(self) -> None:
        record = make_record("AUTRE", status="PENDING_VALIDATION")

        validated = self.engine.apply(
            record, "validate", PRINCIPAL, conversion=ToType("HSE", 2)
        )

        self.assertEqual(validated.status, "VALIDATED")
        self.assertEqual(validated.type, "HSE")
        self.assertEqual(validated.original_type, "AUTRE")
        self.assertEqual(validated.hours, 2.0)

    def test_autre_conversion_checks(self) -> None:
        record = make_record("AUTRE", status="PENDING_VALIDATION")

        with self.assertRaises(ValidationError):
            self.engine.apply(record, "validate", PRINCIPAL, conversion=ToType("AUTRE"))
        with self.assertRaises(ValidationError):
            self.engine.apply(record, "validate", PRINCIPAL, conversion=ToType("RCD", 0.25))
        with self.assertRaises(ValidationError):
            self.engine.apply(record, "validate", PRINCIPAL, conversion=ToHSE())

    def test_original_type_is_set_once(self) -> None:
        record = make_record("AUTRE", status="PENDING_VALIDATION")

        first = self.engine.apply(record, "validate", PRINCIPAL, conversion=ToType("RCD"))
        reopened = self.engine.apply(first, "cancel", PRINCIPAL)
        second = self.engine.apply(reopened, "validate", PRINCIPAL, conversion=ToHSE())

        self.assertEqual(first.original_type, "AUTRE")
        self.assertEqual(second.type, "HSE")
        self.assertEqual(second.original_type, "AUTRE")

    def test_devoirs_faits_converted_to_hse(self) -> None:
        record = make_record("DEVOIRS_FAITS", status="PENDING_VALIDATION")

        validated = self.engine.apply(record, "validate", PRINCIPAL, conversion=ToHSE())

        self.assertEqual(validated.type, "HSE")
        self.assertEqual(validated.original_type, "DEVOIRS_FAITS")
        self.assertEqual(validated.hours, 1.0)

    def test_invalid_conversions_for_declared_types(self) -> None:
        with self.assertRaises(ValidationError):
            self.engine.apply(
                make_record(status="PENDING_VALIDATION"),
                "validate",
                PRINCIPAL,
                conversion=ToType("HSE"),
            )
        with self.assertRaises(ValidationError):
            self.engine.apply(
                make_record("HSE", status="PENDING_VALIDATION"),
                "validate",
                PRINCIPAL,
                conversion=ToHSE(),
            )
        with self.assertRaises(ValidationError):
            self.engine.apply(
                make_record(status="PENDING_VALIDATION"),
                "reject",
                PRINCIPAL,
                conversion=ToHSE(),
            )

    def test_available_actions(self) -> None:
        record = make_record()

        self.assertEqual(
            self.engine.available_actions(record, SECRETARY), ["transmit", "request-info"]
        )
        self.assertEqual(self.engine.available_actions(record, TEACHER), [])
        self.assertEqual(
            self.engine.available_actions(make_record(status="VALIDATED"), PRINCIPAL),
            ["cancel"],
        )
        self.assertTrue(self.engine.can_apply(make_record(status="PAID"), "unpay"))
        self.assertFalse(self.engine.can_apply(make_record(status="PAID"), "unknown"))


class ConversionHelpersTestCase(unittest.TestCase):
    def test_check_hours(self) -> None:
        self.assertEqual(check_hours(1.5), 1.5)
        self.assertEqual(check_hours("2"), 2.0)
        for invalid in (0, 0.25, -1, 1.2, "deux"):
            with self.subTest(hours=invalid):
                with self.assertRaises(ValidationError):
                    check_hours(invalid)

    def test_conversion_from_payload(self) -> None:
        self.assertEqual(conversion_from_payload({}), NoConversion())
        self.assertEqual(
            conversion_from_payload({"conversion": {"kind": "none"}}), NoConversion()
        )
        self.assertEqual(
            conversion_from_payload({"conversion": {"kind": "to_hse"}}), ToHSE()
        )
        self.assertEqual(
            conversion_from_payload(
                {"conversion": {"kind": "to_type", "target": "HSE", "hours": 2}}
            ),
            ToType("HSE", 2),
        )

    def test_conversion_from_payload_rejects_malformed(self) -> None:
        for payload in (
            {"conversion": "HSE"},
            {"conversion": {"kind": "to_type"}},
            {"conversion": {"kind": "upgrade"}},
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(ValidationError):
                    conversion_from_payload(payload)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
