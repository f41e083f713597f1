"""
Survey Text Compiler Package

Compiles the plain-text questionnaire format into a document model and
evaluates the small condition/expression language used inside it.

Layers:
    - lines / parser      Source text -> Survey tree
    - validation          Duplicate and undefined variable checks
    - expressions         Arithmetic (AST based, no dynamic evaluation)
    - conditions          SHOW_IF evaluation (fail-open)
    - computed            COMPUTE resolution with dependency ordering
    - placeholders        {name}, {expr} and {{IF ... THEN ... ELSE ...}}

The tree is built once per parse and never changed afterwards.
Respondent answers live outside it (see responses and visibility).
"""

__version__ = "0.1.0"
