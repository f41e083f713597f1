"""
Tests for the command line interface.
"""

import json

import pytest
import yaml

from surveytext.cli import build_arg_parser, load_answers, main
from surveytext.examples import BUDGET_SAMPLE_TEXT

SOURCE = """# Welcome
Q: Do you like surveys?
- Yes
- No
VARIABLE: likes

Q: Why?
ESSAY
SHOW_IF: likes IS Yes
"""


@pytest.fixture
def survey_file(tmp_path):
    path = tmp_path / "likes.txt"
    path.write_text(SOURCE, encoding="utf-8")
    return path


def test_compile_yaml(survey_file, capsys):
    assert main(["compile", str(survey_file)]) == 0
    data = yaml.safe_load(capsys.readouterr().out)
    assert data["name"] == "likes"
    assert data["blocks"][0]["pages"][0]["title"] == "Welcome"


def test_compile_json(survey_file, capsys):
    assert main(["compile", str(survey_file), "--format", "json"]) == 0
    data = json.loads(capsys.readouterr().out)
    items = data["blocks"][0]["pages"][0]["sections"][0]["items"]
    assert [item["id"] for item in items] == ["Q1", "Q2"]


def test_check(survey_file, capsys):
    assert main(["check", str(survey_file)]) == 0
    out = capsys.readouterr().out
    assert "Survey: likes" in out
    assert "likes (question): 1 reference(s)" in out


def test_render_with_answers(survey_file, tmp_path, capsys):
    answers = tmp_path / "answers.yaml"
    answers.write_text("Q1: 'Yes'\n", encoding="utf-8")
    assert main(["render", str(survey_file), "--answers", str(answers)]) == 0
    out = capsys.readouterr().out
    assert "=== Welcome ===" in out
    assert "[Q2] Why?" in out


def test_render_hides_questions(survey_file, capsys):
    assert main(["render", str(survey_file)]) == 0
    out = capsys.readouterr().out
    assert "[Q1] Do you like surveys?" in out
    assert "    - Yes" in out
    assert "[Q2]" not in out


def test_render_budget(tmp_path, capsys):
    path = tmp_path / "budget.txt"
    path.write_text(BUDGET_SAMPLE_TEXT, encoding="utf-8")
    answers = tmp_path / "answers.yaml"
    answers.write_text("Q1: [Sports]\nQ2:\n  Rent: '900'\n  Food: '200'\n", encoding="utf-8")
    assert main(["render", str(path), "--answers", str(answers)]) == 0
    out = capsys.readouterr().out
    assert "You spend on sports." in out
    assert "€1100" in out
    assert "    ----" in out


def test_parse_error_exit_code(tmp_path, capsys):
    path = tmp_path / "broken.txt"
    path.write_text("Q: Rate\nRANGE: 5-1\n", encoding="utf-8")
    assert main(["check", str(path)]) == 1
    assert "Line 2: Invalid RANGE" in capsys.readouterr().err


def test_validation_error_exit_code(tmp_path, capsys):
    path = tmp_path / "ghost.txt"
    path.write_text("Q: A\n- x\nSHOW_IF: ghost\n", encoding="utf-8")
    assert main(["check", str(path)]) == 1
    assert "ghost" in capsys.readouterr().err
    assert main(["compile", str(path), "--no-validate"]) == 0


def test_missing_file(tmp_path, capsys):
    assert main(["check", str(tmp_path / "nope.txt")]) == 1
    assert "Survey file not found" in capsys.readouterr().err


def test_command_required():
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args([])


def test_load_answers(tmp_path):
    assert load_answers(None) == {}
    path = tmp_path / "answers.yaml"
    path.write_text("- not a mapping\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_answers(str(path))
