"""Session records declared by teachers and their construction rules."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date, datetime, timezone
from typing import Any, Mapping

from .errors import ValidationError


SESSION_TYPES = ("RCD", "DEVOIRS_FAITS", "AUTRE", "HSE")
QUOTA_TYPES = ("HSE", "DEVOIRS_FAITS", "RCD")
CONVERSION_TARGETS = ("RCD", "DEVOIRS_FAITS", "HSE")
HSE_CONVERTIBLE_TYPES = ("RCD", "DEVOIRS_FAITS")

SESSION_STATUSES = (
    "PENDING_REVIEW",
    "PENDING_DOCUMENTS",
    "PENDING_VALIDATION",
    "VALIDATED",
    "REJECTED",
    "PAID",
)
INITIAL_STATUS = "PENDING_REVIEW"
CONSUMED_STATUSES = frozenset({"VALIDATED", "PAID"})

TIME_SLOTS = ("M1", "M2", "M3", "M4", "S1", "S2", "S3", "S4")
TIME_SLOT_LABELS = {
    "M1": "8h-9h",
    "M2": "9h-10h",
    "M3": "10h-11h",
    "M4": "11h-12h",
    "S1": "13h-14h",
    "S2": "14h-15h",
    "S3": "15h-16h",
    "S4": "16h-17h",
}

GRADE_LEVELS = ("6e", "5e", "4e", "3e", "mixte")
CIVILITES = ("M.", "Mme")

DATE_FORMAT = "%Y-%m-%d"

# Champs qu'aucune transition ne peut réécrire
IMMUTABLE_FIELDS = frozenset({"id", "teacher_id", "created_at"})

PAYLOAD_FIELDS = (
    "class_name",
    "replaced_teacher_prefix",
    "replaced_teacher_last_name",
    "replaced_teacher_first_name",
    "subject",
    "grade_level",
    "student_count",
    "students_list",
    "description",
    "comment",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_session_date(value: date | str | None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError("La date est obligatoire.")
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError as exc:
        raise ValidationError(f"Date invalide : {value!r} (format attendu AAAA-MM-JJ).") from exc


def split_teacher_name(raw: str | None) -> tuple[str | None, str | None, str | None]:
    """Split ``"Mme Dupont Jeanne"`` into civilité, last name and first name."""

    if raw is None:
        return None, None, None
    if not isinstance(raw, str):
        raise ValidationError("L'enseignant remplacé doit être un texte.")
    parts = raw.split()
    if not parts:
        return None, None, None
    prefix = None
    if parts[0] in CIVILITES:
        prefix = parts.pop(0)
    if not parts:
        return prefix, None, None
    last_name = parts[0]
    first_name = " ".join(parts[1:]) or None
    return prefix, last_name, first_name


@dataclass(frozen=True)
class StudentEntry:
    last_name: str
    first_name: str
    class_name: str | None = None

    @classmethod
    def from_payload(cls, item: Mapping[str, Any] | "StudentEntry") -> "StudentEntry":
        if isinstance(item, StudentEntry):
            return item
        if not isinstance(item, Mapping):
            raise ValidationError("Chaque élève doit être décrit par son nom et son prénom.")
        last_name = _clean_text("last_name", item.get("last_name") or item.get("lastName"))
        first_name = _clean_text("first_name", item.get("first_name") or item.get("firstName"))
        if not last_name or not first_name:
            raise ValidationError("Chaque élève doit avoir un nom et un prénom.")
        class_name = _clean_text("class_name", item.get("class_name") or item.get("className"))
        return cls(last_name=last_name, first_name=first_name, class_name=class_name)


@dataclass(frozen=True)
class SessionRecord:
    """A declared session. Instances are never mutated; changes build a copy."""

    teacher_id: int
    date: date
    time_slot: str
    type: str
    status: str = INITIAL_STATUS
    id: int | None = None
    teacher_name: str = ""
    original_type: str | None = None
    hours: float = 1.0

    class_name: str | None = None
    replaced_teacher_prefix: str | None = None
    replaced_teacher_last_name: str | None = None
    replaced_teacher_first_name: str | None = None
    subject: str | None = None

    grade_level: str | None = None
    student_count: int | None = None
    students_list: tuple[StudentEntry, ...] = ()

    description: str | None = None

    comment: str | None = None
    review_comments: str | None = None
    validation_comments: str | None = None
    rejection_reason: str | None = None

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    updated_by: str | None = None

    has_attachment: bool = False
    attachment_verified: bool = False

    @classmethod
    def declare(
        cls,
        *,
        teacher_id: int,
        date: date | str,
        time_slot: str,
        type: str,
        teacher_name: str = "",
        created_at: datetime | None = None,
        **payload: Any,
    ) -> "SessionRecord":
        """Build a new ``PENDING_REVIEW`` record, enforcing the per-type payload."""

        if teacher_id is None:
            raise ValidationError("L'enseignant est obligatoire.")
        values = validate_payload(type, payload)
        return cls(
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            date=parse_session_date(date),
            time_slot=validate_time_slot(time_slot),
            type=type,
            created_at=created_at or utcnow(),
            **values,
        )

    @property
    def replaced_teacher(self) -> str | None:
        parts = [
            self.replaced_teacher_prefix,
            self.replaced_teacher_last_name,
            self.replaced_teacher_first_name,
        ]
        label = " ".join(part for part in parts if part)
        return label or None

    @property
    def time_slot_label(self) -> str:
        return TIME_SLOT_LABELS[self.time_slot]

    @property
    def is_converted(self) -> bool:
        return self.original_type is not None

    def with_changes(self, **changes: Any) -> "SessionRecord":
        forbidden = IMMUTABLE_FIELDS.intersection(changes)
        if forbidden:
            raise ValidationError(
                "Champs non modifiables : " + ", ".join(sorted(forbidden))
            )
        return replace(self, **changes)

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        data["students_list"] = [asdict(student) for student in self.students_list]
        data["replaced_teacher"] = self.replaced_teacher
        return data


SESSION_RECORD_FIELDS = tuple(item.name for item in fields(SessionRecord))


def validate_time_slot(time_slot: str) -> str:
    if time_slot not in TIME_SLOTS:
        raise ValidationError(f"Créneau inconnu : {time_slot!r}.")
    return time_slot


def validate_payload(session_type: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Check the type-specific fields and return the normalised payload.

    Unknown keys are rejected so that status, conversion or review fields can
    never be smuggled in through a teacher declaration.
    """

    if session_type not in SESSION_TYPES:
        raise ValidationError(f"Type de session inconnu : {session_type!r}.")

    payload = dict(payload)
    replaced_teacher = payload.pop("replaced_teacher", None)
    if replaced_teacher and not payload.get("replaced_teacher_last_name"):
        prefix, last_name, first_name = split_teacher_name(replaced_teacher)
        payload.setdefault("replaced_teacher_prefix", prefix)
        payload["replaced_teacher_last_name"] = last_name
        payload.setdefault("replaced_teacher_first_name", first_name)

    unknown = set(payload) - set(PAYLOAD_FIELDS)
    if unknown:
        raise ValidationError("Champs inattendus : " + ", ".join(sorted(unknown)))

    values: dict[str, Any] = {
        key: _clean_text(key, payload.get(key))
        for key in PAYLOAD_FIELDS
        if key not in {"student_count", "students_list"}
    }

    if session_type == "RCD":
        if not values["replaced_teacher_last_name"]:
            raise ValidationError("Un RCD doit préciser l'enseignant remplacé.")
        prefix = values["replaced_teacher_prefix"]
        if prefix is not None and prefix not in CIVILITES:
            raise ValidationError(f"Civilité inconnue : {prefix!r}.")
    elif session_type == "DEVOIRS_FAITS":
        values["student_count"] = _parse_student_count(payload.get("student_count"))
        students = payload.get("students_list") or ()
        if not isinstance(students, (list, tuple)):
            raise ValidationError("La liste des élèves doit être une liste.")
        values["students_list"] = tuple(StudentEntry.from_payload(item) for item in students)
        grade_level = values["grade_level"]
        if grade_level is not None and grade_level not in GRADE_LEVELS:
            raise ValidationError(f"Niveau inconnu : {grade_level!r}.")
    elif session_type == "AUTRE":
        if not values["description"]:
            raise ValidationError("Une session AUTRE doit avoir une description.")

    return values


def _parse_student_count(raw: Any) -> int:
    try:
        count = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Le nombre d'élèves est obligatoire.") from exc
    if count < 1:
        raise ValidationError("Une séance Devoirs Faits doit compter au moins un élève.")
    return count


def _clean_text(name: str, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} doit être un texte.", field=name)
    return value.strip() or None
