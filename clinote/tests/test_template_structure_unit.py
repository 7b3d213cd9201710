import pytest

from clinote.internal_core.contracts import TemplateStructure
from clinote.template.structure import (
    SchemaValidationError,
    create_progress_note_template,
    create_soap_template,
    get_required_sections,
    is_valid_template_structure,
    validate_note_template,
    validate_template_structure,
)


def test_validate_template_structure_applies_defaults() -> None:
    structure = validate_template_structure(
        {
            "headers": [{"level": 1, "text": "Session Note"}],
            "sections": [{"title": "Subjective"}, {"title": "Plan", "required": True}],
        }
    )
    assert isinstance(structure, TemplateStructure)
    assert structure.headers[0].locked is True
    assert structure.sections[0].required is False
    assert structure.sections[0].locked is False
    assert structure.section_titles() == ["Subjective", "Plan"]


def test_validate_template_structure_accepts_camel_case_rules() -> None:
    structure = validate_template_structure(
        {
            "sections": [
                {
                    "title": "Risk",
                    "minLength": 5,
                    "maxLength": 200,
                    "validationRules": {"pattern": "^Risk", "errorMessage": "Start with Risk"},
                }
            ]
        }
    )
    section = structure.sections[0]
    assert section.min_length == 5
    assert section.max_length == 200
    assert section.validation_rules is not None
    assert section.validation_rules.error_message == "Start with Risk"
    assert structure.headers == []


def test_validate_template_structure_missing_sections_raises() -> None:
    with pytest.raises(SchemaValidationError) as excinfo:
        validate_template_structure({"headers": []})
    assert any(issue.startswith("sections:") for issue in excinfo.value.issues)


def test_validate_template_structure_enumerates_every_violation() -> None:
    with pytest.raises(SchemaValidationError) as excinfo:
        validate_template_structure(
            {
                "headers": [{"level": 7, "text": "Too deep"}],
                "sections": [],
            }
        )
    issues = excinfo.value.issues
    assert len(issues) == 2
    assert any(issue.startswith("headers.0.level:") for issue in issues)
    assert any(issue.startswith("sections:") for issue in issues)
    assert "headers.0.level" in str(excinfo.value)


def test_validate_template_structure_rejects_duplicate_and_reserved_titles() -> None:
    with pytest.raises(SchemaValidationError, match="duplicate section title 'Plan'") as excinfo:
        validate_template_structure(
            {
                "sections": [
                    {"title": "Plan"},
                    {"title": "Plan"},
                    {"title": "missingFields"},
                ]
            }
        )
    assert "reserved" in str(excinfo.value)


def test_validate_template_structure_rejects_inverted_length_window() -> None:
    with pytest.raises(SchemaValidationError, match="minLength must be <= maxLength"):
        validate_template_structure({"sections": [{"title": "Plan", "minLength": 10, "maxLength": 5}]})


def test_validate_template_structure_rejects_non_mapping() -> None:
    with pytest.raises(SchemaValidationError):
        validate_template_structure(["Subjective", "Plan"])


def test_is_valid_template_structure_never_raises() -> None:
    assert is_valid_template_structure({"sections": [{"title": "Plan"}]}) is True
    assert is_valid_template_structure({"sections": []}) is False
    assert is_valid_template_structure(None) is False
    assert is_valid_template_structure({"sections": [{"title": ""}]}) is False


def test_get_required_sections_returns_required_titles() -> None:
    structure = validate_template_structure(
        {
            "sections": [
                {"title": "A", "required": True},
                {"title": "B", "required": True},
                {"title": "C"},
            ]
        }
    )
    assert get_required_sections(structure) == {"A", "B"}


def test_canned_templates_are_valid() -> None:
    soap = create_soap_template()
    assert soap.section_titles() == ["Subjective", "Objective", "Assessment", "Plan"]
    assert get_required_sections(soap) == set(soap.section_titles())
    assert soap.headers[0].text == "Session Note"

    progress = create_progress_note_template()
    assert len(progress.sections) == 5
    assert "Interventions Used" not in get_required_sections(progress)
    assert progress.metadata is not None
    assert progress.metadata.category == "Progress"


def test_validate_note_template_checks_record_fields() -> None:
    record = validate_note_template(
        {
            "id": "0b6f5c3e-5a8e-4a55-9a53-1f8f3c1b2a10",
            "name": "SOAP",
            "structure": {"sections": [{"title": "Plan"}]},
        }
    )
    assert record.is_active is True
    assert record.structure.section_titles() == ["Plan"]

    with pytest.raises(SchemaValidationError) as excinfo:
        validate_note_template({"id": "not-a-uuid", "name": "", "structure": {"sections": []}})
    assert excinfo.value.subject == "note template"
    assert len(excinfo.value.issues) == 3


def test_validate_template_structure_rejects_titles_that_cannot_round_trip() -> None:
    cases = {
        "Risk *": "required marker",
        " Plan": "whitespace",
        "Plan ": "whitespace",
        "Goals\nNext": "single line",
        "Goals\rNext": "single line",
    }
    for title, reason in cases.items():
        with pytest.raises(SchemaValidationError, match=reason) as excinfo:
            validate_template_structure({"sections": [{"title": title}, {"title": "Summary"}]})
        assert any(issue.startswith("sections.0.title:") for issue in excinfo.value.issues)
        assert is_valid_template_structure({"sections": [{"title": title}]}) is False


def test_validate_template_structure_accepts_marker_like_titles_without_whitespace() -> None:
    structure = validate_template_structure({"sections": [{"title": "Risk*"}, {"title": "# Notes"}]})
    assert structure.section_titles() == ["Risk*", "# Notes"]


def test_validate_template_structure_reports_title_conflicts_alongside_field_errors() -> None:
    with pytest.raises(SchemaValidationError) as excinfo:
        validate_template_structure(
            {
                "headers": [{"level": 9, "text": "Too deep"}],
                "sections": [{"title": "A"}, {"title": "A"}, {"title": "clarifyingQuestions"}],
            }
        )
    issues = excinfo.value.issues
    assert any(issue.startswith("headers.0.level:") for issue in issues)
    assert "structure: duplicate section title 'A'" in issues
    assert "structure: section title 'clarifyingQuestions' is reserved" in issues
