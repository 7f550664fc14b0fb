import unittest
from datetime import datetime

from supchaissac.batch import APPLIED, FAILED, SKIPPED, BatchTransitionCoordinator
from supchaissac.errors import NotFoundError, ValidationError
from supchaissac.records import SessionRecord
from supchaissac.store import InMemorySessionStore
from supchaissac.transitions import Actor, StatusTransitionEngine


SECRETARY = Actor("SECRETARY", user_id=2, name="Laure MARTIN")
PRINCIPAL = Actor("PRINCIPAL", user_id=3, name="Jean DUPONT")


def declared(session_type, status, teacher_id=7):
    payload = {
        "RCD": {"replaced_teacher": "M. Durand"},
        "DEVOIRS_FAITS": {"student_count": 2},
        "AUTRE": {"description": "Réunion de projet"},
    }[session_type]
    record = SessionRecord.declare(
        teacher_id=teacher_id,
        date="2025-03-11",
        time_slot="S1",
        type=session_type,
        created_at=datetime(2025, 3, 11, 12, 0),
        **payload,
    )
    return record.with_changes(status=status)


class BatchTransitionCoordinatorTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemorySessionStore()
        engine = StatusTransitionEngine(clock=lambda: datetime(2025, 3, 12, 9, 0))
        self.coordinator = BatchTransitionCoordinator(engine, self.store)

    def add(self, session_type, status):
        return self.store.add(declared(session_type, status)).id

    def test_autre_sessions_are_skipped_on_validate(self) -> None:
        rcd_a = self.add("RCD", "PENDING_VALIDATION")
        rcd_b = self.add("RCD", "PENDING_VALIDATION")
        autre = self.add("AUTRE", "PENDING_VALIDATION")

        result = self.coordinator.run([rcd_a, rcd_b, autre], "validate", PRINCIPAL)

        self.assertEqual(result.applied, [rcd_a, rcd_b])
        self.assertEqual(result.skipped, [autre])
        self.assertFalse(result.has_failures)
        self.assertIn("AUTRE", result.outcomes[autre].reason)
        self.assertEqual(self.store.get(rcd_a).status, "VALIDATED")
        self.assertEqual(self.store.get(autre).status, "PENDING_VALIDATION")

    def test_autre_sessions_are_skipped_on_reject(self) -> None:
        autre = self.add("AUTRE", "PENDING_VALIDATION")

        result = self.coordinator.run([autre], "reject", PRINCIPAL, comment="Hors cadre")

        self.assertEqual(result.outcomes[autre].outcome, SKIPPED)
        self.assertEqual(self.store.get(autre).status, "PENDING_VALIDATION")

    def test_failures_are_isolated(self) -> None:
        pending = self.add("RCD", "PENDING_REVIEW")
        validated = self.add("DEVOIRS_FAITS", "VALIDATED")

        result = self.coordinator.run([pending, validated, 99], "transmit", SECRETARY)

        self.assertEqual(result.applied, [pending])
        self.assertEqual(result.failed, [validated, 99])
        self.assertEqual(
            result.outcomes[validated].as_dict()["error"], "IllegalTransitionError"
        )
        self.assertIsInstance(result.outcomes[99].error, NotFoundError)
        self.assertEqual(self.store.get(pending).status, "PENDING_VALIDATION")
        self.assertEqual(self.store.get(validated).status, "VALIDATED")

    def test_forbidden_actor_fails_every_item(self) -> None:
        session_id = self.add("RCD", "PENDING_VALIDATION")

        result = self.coordinator.run([session_id], "validate", SECRETARY)

        self.assertEqual(result.outcomes[session_id].outcome, FAILED)
        self.assertEqual(result.outcomes[session_id].as_dict()["error"], "ForbiddenError")

    def test_authorization_is_checked_before_skipping(self) -> None:
        rcd = self.add("RCD", "PENDING_VALIDATION")
        autre = self.add("AUTRE", "PENDING_VALIDATION")

        result = self.coordinator.run([rcd, autre], "validate", SECRETARY)

        self.assertEqual(result.failed, [rcd, autre])
        self.assertEqual(result.skipped, [])
        self.assertEqual(result.outcomes[autre].as_dict()["error"], "ForbiddenError")

    def test_mark_paid(self) -> None:
        first = self.add("RCD", "VALIDATED")
        second = self.add("DEVOIRS_FAITS", "VALIDATED")

        result = self.coordinator.run([first, second], "mark-paid", SECRETARY)

        self.assertEqual(result.applied, [first, second])
        self.assertEqual(
            [record.status for record in self.store.all()], ["PAID", "PAID"]
        )

    def test_duplicate_ids_are_collapsed(self) -> None:
        session_id = self.add("RCD", "PENDING_REVIEW")

        result = self.coordinator.run([session_id, session_id], "transmit", SECRETARY)

        self.assertEqual(list(result.outcomes), [session_id])
        self.assertEqual(result.outcomes[session_id].outcome, APPLIED)

    def test_delete_is_reserved_to_principal(self) -> None:
        session_id = self.add("AUTRE", "REJECTED")

        refused = self.coordinator.run([session_id], "delete", SECRETARY)
        self.assertEqual(refused.failed, [session_id])

        deleted = self.coordinator.run([session_id], "delete", PRINCIPAL)
        self.assertEqual(deleted.applied, [session_id])
        self.assertEqual(self.store.all(), [])

    def test_malformed_requests_raise(self) -> None:
        with self.assertRaises(ValidationError):
            self.coordinator.run([], "validate", PRINCIPAL)
        with self.assertRaises(ValidationError):
            self.coordinator.run([1], "unpay", PRINCIPAL)
        with self.assertRaises(ValidationError):
            self.coordinator.run([1], "transmit", SECRETARY, comment=["x"])

    def test_result_summary(self) -> None:
        session_id = self.add("RCD", "PENDING_REVIEW")

        summary = self.coordinator.run([session_id, 42], "transmit", SECRETARY).as_dict()

        self.assertEqual(summary["action"], "transmit")
        self.assertEqual((summary["applied"], summary["skipped"], summary["failed"]), (1, 0, 1))
        self.assertEqual(summary["outcomes"][0]["status"], "PENDING_VALIDATION")
        self.assertEqual(summary["outcomes"][1]["error"], "NotFoundError")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
