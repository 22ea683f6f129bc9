"""
Human-readable record numbers (registration, application, admission)
"""

from datetime import date
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from schoolerp.models import (
    db, AdmissionLead, AdmissionApplication, Student, Branch, AcademicSession
)
from schoolerp.utils.exceptions import ConflictError
from schoolerp.utils.helpers import log_warning


def registration_prefix(branch: Branch, academic_session: Optional[AcademicSession] = None) -> str:
    """TSH<code>-<session or year>-"""
    label = academic_session.name if academic_session else str(date.today().year)
    return f"{current_app.config.get('REGISTRATION_PREFIX', 'TSH')}{branch.code}-{label}-"


def highest_sequence(column, prefix: str, *criteria) -> int:
    """Largest numeric suffix among numbers starting with `prefix`, 0 when none"""
    highest = 0
    rows = db.session.query(column).filter(column.like(f"{prefix}%"), *criteria).all()
    for (number,) in rows:
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest


def next_registration_sequence(prefix: str) -> int:
    # Archived leads carry a suffixed number, so only live numbers are seen.
    return highest_sequence(AdmissionLead.registration_number, prefix) + 1


def application_prefix(branch: Branch, year: int) -> str:
    return f"APP-{branch.code}-{year}-"


def next_application_sequence(prefix: str) -> int:
    return highest_sequence(AdmissionApplication.application_number, prefix) + 1


def admission_prefix(branch: Branch, year: int) -> str:
    return f"{branch.code}{year}"


def next_admission_sequence(branch_id: int, prefix: str) -> int:
    return highest_sequence(Student.admission_number, prefix, Student.branch_id == branch_id) + 1


def format_number(prefix: str, sequence: int) -> str:
    return f"{prefix}{sequence:04d}"


def insert_numbered(record, field: str, prefix: str, start: int, label: str):
    """
    Commit a new record whose `field` holds a unique sequential number

    The number is built from `prefix` and a sequence starting at `start`.
    A unique-constraint violation rolls the session back and the next
    sequence is tried, up to NUMBERING_MAX_ATTEMPTS times. Only the record
    (and what cascades from it) survives a rollback, so callers apply other
    changes after this returns.

    Args:
        record: New model instance, not yet added to the session
        field: Attribute receiving the number
        prefix: Number prefix
        start: First sequence to try
        label: Name used in errors and logs

    Returns:
        The committed record

    Raises:
        ConflictError: When every attempt collided
    """
    max_attempts = current_app.config.get('NUMBERING_MAX_ATTEMPTS', 5)
    model = type(record)
    column = getattr(model, field)
    sequence = start

    for attempt in range(1, max_attempts + 1):
        number = format_number(prefix, sequence)
        setattr(record, field, number)
        db.session.add(record)
        try:
            db.session.commit()
            return record
        except IntegrityError as e:
            db.session.rollback()
            if model.query.filter(column == number).first() is None:
                # The violation came from another constraint.
                raise ConflictError(f"Could not save {label}: {e.orig}")
            log_warning(f"{label} number {number} already taken (attempt {attempt}/{max_attempts})")
            sequence += 1

    raise ConflictError(f"Could not generate a unique {label} number after {max_attempts} attempts")
