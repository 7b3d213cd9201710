import json

import pytest

from clinote.template.registry import get_template, list_templates, load_template_file
from clinote.template.structure import SchemaValidationError


def test_builtin_templates_available_without_config(monkeypatch) -> None:
    monkeypatch.delenv("CLINOTE_TEMPLATE_DIR", raising=False)
    ids = [spec.template_id for spec in list_templates()]
    assert ids == ["soap", "progress_note"]
    soap = get_template("soap")
    assert soap.template_name == "SOAP Note"
    assert soap.path is None
    assert "Plan" in soap.structure.section_titles()


def test_get_template_unknown_id_raises(monkeypatch) -> None:
    monkeypatch.delenv("CLINOTE_TEMPLATE_DIR", raising=False)
    with pytest.raises(ValueError, match="Unknown template_id 'dap'"):
        get_template("dap")


def test_template_dir_from_env_adds_json_templates(tmp_path, monkeypatch) -> None:
    (tmp_path / "dap_note.json").write_text(
        json.dumps(
            {
                "name": "DAP Note",
                "structure": {
                    "sections": [
                        {"title": "Data", "required": True},
                        {"title": "Assessment", "required": True},
                        {"title": "Plan"},
                    ]
                },
            }
        ),
        encoding="utf-8",
    )
    (tmp_path / "intake_summary.json").write_text(
        json.dumps({"sections": [{"title": "Presenting Problem"}]}),
        encoding="utf-8",
    )
    monkeypatch.setenv("CLINOTE_TEMPLATE_DIR", str(tmp_path))

    dap = get_template("dap_note")
    assert dap.template_name == "DAP Note"
    assert dap.structure.section_titles() == ["Data", "Assessment", "Plan"]

    intake = get_template("intake_summary")
    assert intake.template_name == "Intake Summary"
    assert len(list_templates()) == 4


def test_invalid_template_file_names_the_file(tmp_path) -> None:
    target = tmp_path / "broken.json"
    target.write_text(json.dumps({"sections": []}), encoding="utf-8")
    with pytest.raises(SchemaValidationError) as excinfo:
        load_template_file(target)
    assert excinfo.value.issues[0].startswith("broken.json: sections:")


def test_template_file_with_bad_json_raises_schema_error(tmp_path) -> None:
    target = tmp_path / "garbled.json"
    target.write_text("{not json", encoding="utf-8")
    with pytest.raises(SchemaValidationError, match="invalid JSON"):
        load_template_file(target)


def test_template_dir_cannot_shadow_builtin_id(tmp_path) -> None:
    (tmp_path / "soap.json").write_text(json.dumps({"sections": [{"title": "Plan"}]}), encoding="utf-8")
    with pytest.raises(ValueError, match="Duplicate template_id 'soap'"):
        list_templates(tmp_path)


def test_missing_template_dir_raises(tmp_path) -> None:
    with pytest.raises(ValueError, match="Template directory not found"):
        list_templates(tmp_path / "nope")
