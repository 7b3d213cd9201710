from __future__ import annotations

"""
Validate clinical note template structures.

Design intent:
- Treat the template as a read-only contract shared by codec and merge engine.
- Report every structural violation at once so template authors can fix them in one pass.
- Keep canned SOAP/progress templates as plain factories, not engine requirements.
"""

from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from clinote.internal_core.contracts import NoteTemplate, TemplateStructure, section_title_problems


class SchemaValidationError(ValueError):
    """Raised when a template (or template record) fails structural validation."""

    def __init__(self, issues: Sequence[str], *, subject: str = "template structure") -> None:
        self.issues = list(issues)
        self.subject = subject
        super().__init__(f"Invalid {subject}: " + "; ".join(self.issues))


def validate_template_structure(structure: Any) -> TemplateStructure:
    try:
        return TemplateStructure.model_validate(structure)
    except ValidationError as exc:
        issues = _format_issues(exc)
        # Field errors stop the structure-level title checks; run them on the raw input instead.
        if all(error.get("loc") for error in exc.errors()):
            issues.extend(f"structure: {problem}" for problem in _raw_title_problems(structure))
        raise SchemaValidationError(issues) from exc


def is_valid_template_structure(structure: Any) -> bool:
    try:
        validate_template_structure(structure)
    except SchemaValidationError:
        return False
    return True


def validate_note_template(template: Any) -> NoteTemplate:
    try:
        return NoteTemplate.model_validate(template)
    except ValidationError as exc:
        raise SchemaValidationError(_format_issues(exc), subject="note template") from exc


def get_required_sections(structure: TemplateStructure) -> set[str]:
    return {section.title for section in structure.sections if section.required}


def create_soap_template() -> TemplateStructure:
    return validate_template_structure(
        {
            "headers": [{"level": 1, "text": "Session Note", "locked": True}],
            "sections": [
                {
                    "title": "Subjective",
                    "placeholder": "Client's reported feelings, concerns, and experiences during the session",
                    "required": True,
                },
                {
                    "title": "Objective",
                    "placeholder": "Observable behaviors, mood, appearance, and clinical observations",
                    "required": True,
                },
                {
                    "title": "Assessment",
                    "placeholder": "Clinical impression, diagnosis considerations, and evaluation of progress",
                    "required": True,
                },
                {
                    "title": "Plan",
                    "placeholder": "Treatment plan, interventions, homework assignments, and next steps",
                    "required": True,
                },
            ],
            "metadata": {"version": "1.0", "category": "Clinical"},
        }
    )


def create_progress_note_template() -> TemplateStructure:
    return validate_template_structure(
        {
            "headers": [{"level": 1, "text": "Progress Note", "locked": True}],
            "sections": [
                {
                    "title": "Session Summary",
                    "placeholder": "Brief overview of today's session",
                    "required": True,
                },
                {
                    "title": "Progress Towards Goals",
                    "placeholder": "Evaluation of progress on treatment goals",
                    "required": True,
                },
                {
                    "title": "Interventions Used",
                    "placeholder": "Therapeutic techniques and interventions applied",
                    "required": False,
                },
                {
                    "title": "Client Response",
                    "placeholder": "How the client responded to interventions",
                    "required": True,
                },
                {
                    "title": "Plan for Next Session",
                    "placeholder": "Topics and goals for the next session",
                    "required": True,
                },
            ],
            "metadata": {"version": "1.0", "category": "Progress"},
        }
    )


def _format_issues(exc: ValidationError) -> list[str]:
    issues: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "structure"
        message = str(error.get("msg", "invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        issues.append(f"{location}: {message}")
    return issues


def _raw_title_problems(structure: Any) -> list[str]:
    if isinstance(structure, TemplateStructure) or not isinstance(structure, Mapping):
        return []
    sections = structure.get("sections")
    headers = structure.get("headers")
    titles = [
        item.get("title")
        for item in (sections if isinstance(sections, list) else [])
        if isinstance(item, Mapping) and isinstance(item.get("title"), str)
    ]
    level_two_headers = [
        item.get("text")
        for item in (headers if isinstance(headers, list) else [])
        if isinstance(item, Mapping) and item.get("level") == 2 and isinstance(item.get("text"), str)
    ]
    return section_title_problems(titles, level_two_headers)
