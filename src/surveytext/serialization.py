"""
Serialization helpers for compiled surveys.

Provides JSON/YAML export and import via an intermediate dict form.
Unset optional attributes are left out of the dict. Navigation entries
refer to pages by their position in document order.
"""
from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any, Dict, List

import yaml

from surveytext.model import (
    Block,
    ComputedVariable,
    Item,
    NavItem,
    Option,
    Page,
    Question,
    QuestionType,
    Section,
    Subquestion,
    Survey,
    TextItem,
    create_question,
)


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def option_to_dict(o: Option) -> Dict[str, Any]:
    return _compact(asdict(o))


def option_from_dict(d: Dict[str, Any]) -> Option:
    return Option(**d)


def subquestion_to_dict(s: Subquestion) -> Dict[str, Any]:
    return _compact(asdict(s))


def subquestion_from_dict(d: Dict[str, Any]) -> Subquestion:
    return Subquestion(**d)


def computed_to_dict(c: ComputedVariable) -> Dict[str, Any]:
    return {"name": c.name, "expression": c.expression}


def computed_from_dict(d: Dict[str, Any]) -> ComputedVariable:
    return ComputedVariable(name=d["name"], expression=d["expression"])


_QUESTION_EXTRAS = ("prefix", "suffix", "total_label", "total_column", "input_type")


def question_to_dict(q: Question) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "kind": "question",
        "id": q.id,
        "type": q.type.value,
        "text": q.text,
        "variable": q.variable,
        "show_if": q.show_if,
        "hint": q.hint,
        "tooltip": q.tooltip,
    }
    for attr in _QUESTION_EXTRAS:
        d[attr] = getattr(q, attr, None)
    if q.has_options:
        d["options"] = [option_to_dict(o) for o in q.options]
    if hasattr(q, "subquestions"):
        d["subquestions"] = [subquestion_to_dict(s) for s in q.subquestions]
    return _compact(d)


def question_from_dict(d: Dict[str, Any]) -> Question:
    q = create_question(d["id"], d.get("text", ""), QuestionType(d["type"]))
    q.variable = d.get("variable")
    q.show_if = d.get("show_if")
    q.hint = d.get("hint")
    q.tooltip = d.get("tooltip")
    for attr in _QUESTION_EXTRAS:
        if attr in d and hasattr(q, attr):
            setattr(q, attr, d[attr])
    if q.has_options:
        q.options.extend(option_from_dict(o) for o in d.get("options", []))
    if hasattr(q, "subquestions"):
        q.subquestions = [subquestion_from_dict(s) for s in d.get("subquestions", [])]
    return q


def item_to_dict(item: Item) -> Dict[str, Any]:
    if isinstance(item, TextItem):
        return {"kind": "text", "value": item.value}
    if isinstance(item, Question):
        return question_to_dict(item)
    raise TypeError(f"Unsupported item type: {type(item)}")


def item_from_dict(d: Dict[str, Any]) -> Item:
    kind = d.get("kind")
    if kind == "text":
        return TextItem(d["value"])
    if kind == "question":
        return question_from_dict(d)
    raise TypeError(f"Unsupported item dict kind: {kind}")


def section_to_dict(s: Section) -> Dict[str, Any]:
    return _compact({
        "title": s.title,
        "tooltip": s.tooltip,
        "show_if": s.show_if,
        "items": [item_to_dict(i) for i in s.items],
    })


def section_from_dict(d: Dict[str, Any]) -> Section:
    return Section(
        title=d.get("title"),
        tooltip=d.get("tooltip"),
        show_if=d.get("show_if"),
        items=[item_from_dict(i) for i in d.get("items", [])],
    )


def page_to_dict(p: Page) -> Dict[str, Any]:
    return _compact({
        "title": p.title,
        "show_if": p.show_if,
        "tooltip": p.tooltip,
        "computed_variables": [computed_to_dict(c) for c in p.computed_variables],
        "sections": [section_to_dict(s) for s in p.sections],
    })


def page_from_dict(d: Dict[str, Any]) -> Page:
    return Page(
        title=d.get("title", ""),
        show_if=d.get("show_if"),
        tooltip=d.get("tooltip"),
        computed_variables=[computed_from_dict(c) for c in d.get("computed_variables", [])],
        sections=[section_from_dict(s) for s in d.get("sections", [])],
    )


def block_to_dict(b: Block) -> Dict[str, Any]:
    return _compact({
        "name": b.name,
        "show_if": b.show_if,
        "computed_variables": [computed_to_dict(c) for c in b.computed_variables],
        "pages": [page_to_dict(p) for p in b.pages],
    })


def block_from_dict(d: Dict[str, Any]) -> Block:
    return Block(
        name=d.get("name", ""),
        show_if=d.get("show_if"),
        computed_variables=[computed_from_dict(c) for c in d.get("computed_variables", [])],
        pages=[page_from_dict(p) for p in d.get("pages", [])],
    )


def survey_to_dict(s: Survey) -> Dict[str, Any]:
    page_index = {id(page): i for i, (_, page) in enumerate(s.iter_pages())}
    return {
        "name": s.name,
        "blocks": [block_to_dict(b) for b in s.blocks],
        "navigation": [
            {"name": n.name, "level": n.level, "pages": [page_index[id(p)] for p in n.pages]}
            for n in s.nav_items
        ],
    }


def survey_from_dict(d: Dict[str, Any]) -> Survey:
    s = Survey(name=d.get("name", "Survey"))
    s.blocks = [block_from_dict(b) for b in d.get("blocks", [])]
    pages: List[Page] = [page for _, page in s.iter_pages()]
    s.nav_items = [
        NavItem(name=n["name"], level=n.get("level", 1), pages=[pages[i] for i in n.get("pages", [])])
        for n in d.get("navigation", [])
    ]
    return s


def survey_to_json(s: Survey) -> str:
    return json.dumps(survey_to_dict(s), indent=2)


def survey_from_json(s: str) -> Survey:
    d = json.loads(s)
    return survey_from_dict(d)


def survey_to_yaml(s: Survey) -> str:
    return yaml.safe_dump(survey_to_dict(s), sort_keys=False, allow_unicode=True)


def survey_from_yaml(s: str) -> Survey:
    d = yaml.safe_load(s)
    return survey_from_dict(d)
