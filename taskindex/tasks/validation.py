"""Validation of task drafts and patches.

Everything here runs before the store touches its indexes, so a rejected
input never leaves partial state behind.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from taskindex.tasks.errors import FieldError, ValidationFailedError
from taskindex.tasks.models import Section, Task, TaskDraft, TaskPatch

MIN_TEXT_LENGTH = 3
MAX_TEXT_LENGTH = 500
MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 480
MAX_SUB_TASK_LENGTH = 200


def _field_errors(exc: ValidationError) -> list[FieldError]:
    return [
        FieldError(
            field=".".join(str(part) for part in err["loc"]) or "__root__",
            message=err["msg"],
        )
        for err in exc.errors()
    ]


def check_fields(
    text: str | None,
    estimated_duration: int | None,
    sub_tasks: tuple[str, ...] | None,
) -> list[FieldError]:
    """Business rules shared by drafts and patched records."""
    errors: list[FieldError] = []

    stripped = (text or "").strip()
    if not stripped:
        errors.append(FieldError(field="text", message="Task description is required"))
    elif len(stripped) < MIN_TEXT_LENGTH:
        errors.append(
            FieldError(
                field="text",
                message=f"Task description must be at least {MIN_TEXT_LENGTH} characters",
            )
        )
    elif len(text or "") > MAX_TEXT_LENGTH:
        errors.append(
            FieldError(
                field="text",
                message=f"Task description cannot exceed {MAX_TEXT_LENGTH} characters",
            )
        )

    if estimated_duration is not None and not (
        MIN_DURATION_MINUTES <= estimated_duration <= MAX_DURATION_MINUTES
    ):
        errors.append(
            FieldError(
                field="estimated_duration",
                message=(
                    f"Duration must be between {MIN_DURATION_MINUTES} "
                    f"and {MAX_DURATION_MINUTES} minutes"
                ),
            )
        )

    for position, sub_task in enumerate(sub_tasks or ()):
        if not sub_task.strip():
            errors.append(
                FieldError(field=f"sub_tasks[{position}]", message="Sub-task cannot be empty")
            )
        elif len(sub_task) > MAX_SUB_TASK_LENGTH:
            errors.append(
                FieldError(
                    field=f"sub_tasks[{position}]",
                    message=f"Sub-task cannot exceed {MAX_SUB_TASK_LENGTH} characters",
                )
            )

    return errors


def parse_draft(draft: TaskDraft | Mapping[str, Any], now: datetime | None = None) -> TaskDraft:
    """Coerce and validate a new-task draft.

    Raises:
        ValidationFailedError: If the draft is malformed or breaks a rule
    """
    if not isinstance(draft, TaskDraft):
        try:
            draft = TaskDraft.model_validate(dict(draft))
        except ValidationError as e:
            raise ValidationFailedError(_field_errors(e)) from e

    errors = check_fields(draft.text, draft.estimated_duration, draft.sub_tasks)

    if draft.section == Section.UPCOMING and draft.date is not None:
        reference = now or datetime.now(UTC)
        due = draft.date if draft.date.tzinfo else draft.date.replace(tzinfo=UTC)
        if due < reference:
            errors.append(
                FieldError(field="date", message="Upcoming tasks must have a future date")
            )

    if errors:
        raise ValidationFailedError(errors)
    return draft


def parse_patch(patch: TaskPatch | Mapping[str, Any]) -> TaskPatch:
    """Coerce a partial update.

    Raises:
        ValidationFailedError: If a field has the wrong type or an unknown value
    """
    if isinstance(patch, TaskPatch):
        return patch
    try:
        return TaskPatch.model_validate(dict(patch))
    except ValidationError as e:
        raise ValidationFailedError(_field_errors(e)) from e


def apply_patch(task: Task, patch: TaskPatch, now: datetime | None = None) -> Task:
    """Apply a patch and validate the resulting record.

    Raises:
        ValidationFailedError: If the patched record is invalid
    """
    try:
        updated = task.apply(patch, now)
    except ValidationError as e:
        raise ValidationFailedError(_field_errors(e)) from e

    # Only rules on touched fields apply; paged-in records may predate them
    touched = patch.model_fields_set
    errors = [
        error
        for error in check_fields(updated.text, updated.estimated_duration, updated.sub_tasks)
        if error.field.split("[")[0] in touched
    ]
    if errors:
        raise ValidationFailedError(errors)
    return updated
