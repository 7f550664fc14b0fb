import unittest
from datetime import date, datetime

from supchaissac.errors import ValidationError
from supchaissac.records import SessionRecord, split_teacher_name


def declare(**overrides):
    values = dict(
        teacher_id=7,
        date="2025-03-10",
        time_slot="M2",
        type="RCD",
        class_name="5A",
        replaced_teacher="Mme Dupont",
    )
    values.update(overrides)
    return SessionRecord.declare(**values)


class DeclareRecordTestCase(unittest.TestCase):
    def test_rcd_session_starts_pending_review(self) -> None:
        record = declare()

        self.assertEqual(record.status, "PENDING_REVIEW")
        self.assertEqual(record.date, date(2025, 3, 10))
        self.assertEqual(record.replaced_teacher_prefix, "Mme")
        self.assertEqual(record.replaced_teacher_last_name, "Dupont")
        self.assertIsNone(record.original_type)
        self.assertEqual(record.hours, 1.0)
        self.assertEqual(record.time_slot_label, "9h-10h")

    def test_rcd_requires_replaced_teacher(self) -> None:
        with self.assertRaises(ValidationError):
            declare(replaced_teacher=None)

    def test_rcd_rejects_unknown_civilite(self) -> None:
        with self.assertRaises(ValidationError):
            declare(
                replaced_teacher=None,
                replaced_teacher_prefix="Dr",
                replaced_teacher_last_name="Durand",
            )

    def test_devoirs_faits_requires_students(self) -> None:
        with self.assertRaises(ValidationError):
            declare(type="DEVOIRS_FAITS", replaced_teacher=None, student_count=0)
        with self.assertRaises(ValidationError):
            declare(type="DEVOIRS_FAITS", replaced_teacher=None)

    def test_devoirs_faits_accepts_student_list(self) -> None:
        record = declare(
            type="DEVOIRS_FAITS",
            replaced_teacher=None,
            grade_level="6e",
            student_count="2",
            students_list=[
                {"lastName": "Roux", "firstName": "Emma", "className": "6B"},
                {"last_name": "Faure", "first_name": "Nathan"},
            ],
        )

        self.assertEqual(record.student_count, 2)
        self.assertEqual(record.students_list[0].class_name, "6B")
        self.assertEqual(record.as_dict()["students_list"][1]["last_name"], "Faure")

    def test_wrong_typed_fields_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            declare(replaced_teacher=5)
        with self.assertRaises(ValidationError):
            declare(class_name=["5A"])
        with self.assertRaises(ValidationError):
            declare(
                type="DEVOIRS_FAITS",
                replaced_teacher=None,
                student_count=1,
                students_list=["Dupont Jean"],
            )
        with self.assertRaises(ValidationError):
            declare(
                type="DEVOIRS_FAITS",
                replaced_teacher=None,
                student_count=1,
                students_list="Dupont Jean",
            )
        with self.assertRaises(ValidationError):
            declare(
                type="DEVOIRS_FAITS",
                replaced_teacher=None,
                student_count=1,
                students_list=[{"last_name": 12, "first_name": "Jean"}],
            )

    def test_devoirs_faits_rejects_unknown_grade(self) -> None:
        with self.assertRaises(ValidationError):
            declare(
                type="DEVOIRS_FAITS",
                replaced_teacher=None,
                grade_level="2nde",
                student_count=3,
            )

    def test_autre_requires_description(self) -> None:
        with self.assertRaises(ValidationError):
            declare(type="AUTRE", replaced_teacher=None, description="   ")
        record = declare(type="AUTRE", replaced_teacher=None, description="Sortie")
        self.assertEqual(record.description, "Sortie")

    def test_status_cannot_be_declared(self) -> None:
        with self.assertRaises(ValidationError):
            declare(status="VALIDATED")

    def test_unknown_type_and_slot(self) -> None:
        with self.assertRaises(ValidationError):
            declare(type="COURS")
        with self.assertRaises(ValidationError):
            declare(time_slot="M9")

    def test_invalid_date(self) -> None:
        with self.assertRaises(ValidationError):
            declare(date="10/03/2025")
        with self.assertRaises(ValidationError):
            declare(date=None)


class SessionRecordTestCase(unittest.TestCase):
    def test_with_changes_returns_copy(self) -> None:
        record = declare()
        updated = record.with_changes(status="PENDING_VALIDATION")

        self.assertEqual(record.status, "PENDING_REVIEW")
        self.assertEqual(updated.status, "PENDING_VALIDATION")

    def test_identity_fields_are_immutable(self) -> None:
        record = declare()
        for name, value in (("teacher_id", 8), ("id", 3), ("created_at", datetime(2025, 1, 1))):
            with self.subTest(field=name):
                with self.assertRaises(ValidationError):
                    record.with_changes(**{name: value})

    def test_as_dict_serializes_dates(self) -> None:
        record = declare(created_at=datetime(2025, 3, 10, 8, 30))
        data = record.as_dict()

        self.assertEqual(data["date"], "2025-03-10")
        self.assertEqual(data["created_at"], "2025-03-10T08:30:00")
        self.assertIsNone(data["updated_at"])
        self.assertEqual(data["replaced_teacher"], "Mme Dupont")

    def test_split_teacher_name(self) -> None:
        self.assertEqual(split_teacher_name("Mme Dupont Jeanne"), ("Mme", "Dupont", "Jeanne"))
        self.assertEqual(split_teacher_name("Martin"), (None, "Martin", None))
        self.assertEqual(split_teacher_name("  "), (None, None, None))
        with self.assertRaises(ValidationError):
            split_teacher_name(42)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
