#!/usr/bin/env python3
"""
Complete Pipeline Demo: Source Text → Survey → Analysis → Rendering

Shows the full workflow on the bundled budget questionnaire:
1. Compile the source text
2. Analyze the survey
3. Derive variables and computed values from sample answers
4. Render the visible pages
5. Export the compiled tree as YAML
"""

from surveytext.analyzer import analyze_survey
from surveytext.cli import render_survey
from surveytext.computed import resolve_survey
from surveytext.examples import build_example_survey
from surveytext.responses import breakdown_subtotals, breakdown_total, derive_variables
from surveytext.serialization import survey_to_yaml

ANSWERS = {
    "Q1": ["Sports", "Technology"],
    "Q2": {"Rent": "1450", "Insurance": "180", "Food": "420", "Transport": "95", "Discounts received": "30"},
}


def main():
    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: Source → Survey → Analysis → Rendering")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Compile
    # =========================================================================
    print("\n1. COMPILING...")
    survey = build_example_survey("budget")
    print(f"   ✓ Loaded survey: {survey.name}")
    print(f"   ✓ Blocks: {len(survey.blocks)}")
    print(f"   ✓ Questions: {len(list(survey.iter_questions()))}")
    print(f"   ✓ Navigation entries: {len(survey.nav_items)}")

    # =========================================================================
    # STEP 2: Analyze Survey
    # =========================================================================
    print("\n2. ANALYZING SURVEY...")
    report = analyze_survey(survey)
    print(f"   ✓ Question types: {report.question_types}")
    print(f"   ✓ Declared variables: {sorted(report.declared_variables)}")
    print(f"   ✓ Cycles detected: {report.has_cycles}")
    for warning in report.warnings:
        print(f"      - {warning}")

    # =========================================================================
    # STEP 3: Variables
    # =========================================================================
    print("\n3. DERIVING VARIABLES...")
    variables = derive_variables(survey, ANSWERS)
    computed = resolve_survey(survey, variables)
    print(f"   ✓ Variables: {variables}")
    print(f"   ✓ Computed: {computed}")

    breakdown = survey.get_question("Q2")
    print(f"   ✓ Breakdown total: {breakdown_total(breakdown, ANSWERS['Q2'])}")
    for option, figure in breakdown_subtotals(breakdown, ANSWERS["Q2"]):
        print(f"   ✓ {option.subtotal_label}: {figure}")

    # =========================================================================
    # STEP 4: Rendering
    # =========================================================================
    print("\n4. VISIBLE PAGES:")
    print("-" * 80)
    print(render_survey(survey, ANSWERS))

    # =========================================================================
    # STEP 5: Export
    # =========================================================================
    print("\n5. YAML EXPORT (first 20 lines):")
    print("-" * 80)
    lines = survey_to_yaml(survey).split("\n")
    for line in lines[:20]:
        print(f"   {line}")
    if len(lines) > 20:
        print(f"   ... ({len(lines) - 20} more lines)")

    print("\n" + "=" * 80)
    print("PIPELINE COMPLETE!")
    print("=" * 80)


if __name__ == "__main__":
    main()
