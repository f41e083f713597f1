"""
Command line interface.

    surveytext compile FILE [--format yaml|json] [--no-validate]
    surveytext check FILE
    surveytext render FILE [--answers ANSWERS.yaml]

The answers file maps question ids to answers, e.g.::

    Q1: Several weeks or more
    Q2: "5"
    Q3: [Creating basic surveys, Adding computed variables]
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from surveytext.analyzer import analyze_survey, format_report
from surveytext.computed import resolve_survey
from surveytext.model import Question, Survey, TextItem
from surveytext.parser import SurveyParseError, parse_survey_file
from surveytext.placeholders import replace_placeholders
from surveytext.responses import derive_variables
from surveytext.serialization import survey_to_json, survey_to_yaml
from surveytext.validation import SurveyValidationError
from surveytext.visibility import (
    visible_items,
    visible_options,
    visible_pages,
    visible_sections,
    visible_subquestions,
)


def load_answers(path: Optional[str]) -> Dict[str, Any]:
    if path is None:
        return {}
    with open(path, "r", encoding="utf-8") as f:
        answers = yaml.safe_load(f) or {}
    if not isinstance(answers, dict):
        raise ValueError(f"Answers file must contain a mapping of question ids: {path}")
    return {str(key): value for key, value in answers.items()}


def render_survey(survey: Survey, responses: Dict[str, Any]) -> str:
    """Plain-text rendering of every page visible for the given responses."""
    variables = derive_variables(survey, responses)
    computed = resolve_survey(survey, variables)

    def fill(text: Optional[str]) -> str:
        return replace_placeholders(text, variables, computed)

    out: List[str] = []
    for _, page in visible_pages(survey, variables, computed):
        out.append(f"=== {fill(page.title) or '(untitled page)'} ===")
        for section in visible_sections(page, variables, computed):
            if section.title:
                out.append(f"## {fill(section.title)}")
            for item in visible_items(section, variables, computed):
                if isinstance(item, TextItem):
                    out.append(fill(item.value))
                elif isinstance(item, Question):
                    out.append(f"[{item.id}] {fill(item.text)}")
                    if item.hint:
                        out.append(f"    ({fill(item.hint)})")
                    for row in visible_subquestions(item, variables, computed):
                        out.append(f"    > {fill(row.text)}")
                    for option in visible_options(item, variables, computed):
                        if option.separator:
                            out.append("    ----")
                        else:
                            out.append(f"    - {fill(option.label)}")
        out.append("")
    return "\n".join(out)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="surveytext", description="Compile and inspect questionnaire files")
    parser.add_argument("--verbose", action="store_true", help="Log evaluation details")
    commands = parser.add_subparsers(dest="command", required=True)

    compile_cmd = commands.add_parser("compile", help="Print the compiled document tree")
    compile_cmd.add_argument("file", help="Questionnaire source file")
    compile_cmd.add_argument("--format", choices=["yaml", "json"], default="yaml")
    compile_cmd.add_argument("--no-validate", action="store_true", help="Skip variable validation")

    check_cmd = commands.add_parser("check", help="Validate and print an inventory report")
    check_cmd.add_argument("file", help="Questionnaire source file")

    render_cmd = commands.add_parser("render", help="Print the pages visible for a set of answers")
    render_cmd.add_argument("file", help="Questionnaire source file")
    render_cmd.add_argument("--answers", help="YAML file mapping question ids to answers")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        survey = parse_survey_file(args.file, validate=not getattr(args, "no_validate", False))
    except (SurveyParseError, SurveyValidationError, FileNotFoundError) as e:
        print(str(e), file=sys.stderr)
        return 1

    if args.command == "compile":
        print(survey_to_json(survey) if args.format == "json" else survey_to_yaml(survey))
    elif args.command == "check":
        print(format_report(analyze_survey(survey)))
    elif args.command == "render":
        print(render_survey(survey, load_answers(args.answers)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
