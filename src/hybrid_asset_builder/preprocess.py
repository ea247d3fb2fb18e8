"""Evaluate preprocessing directives embedded in comments.

Supported forms::

    <!-- @if NODE_ENV='production' --> ... <!-- @endif -->
    /* @ifdef DEBUG */ ... /* @endif */
    // @ifndef ANGULAR_DEBUG
    // @endif
    <!-- @exclude --> ... <!-- @endexclude -->
    <!-- @echo NODE_ENV -->

A context value of ``None`` means the symbol is undefined.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from .exceptions import PreprocessError

DIRECTIVE = re.compile(
    r"<!--[ \t]*@(?P<h_name>\w+)(?:[ \t]+(?P<h_arg>.*?))?[ \t]*-->"
    r"|/\*[ \t]*@(?P<b_name>\w+)(?:[ \t]+(?P<b_arg>.*?))?[ \t]*\*/"
    r"|//[ \t]*@(?P<l_name>\w+)(?:[ \t]+(?P<l_arg>[^\n]*?))?[ \t]*(?:\r?\n|$)"
)

OPENERS = frozenset({"if", "ifdef", "ifndef", "exclude"})
CLOSERS = {"endif": "if", "endexclude": "exclude"}

_COMPARISON = re.compile(r"^(?P<left>.+?)\s*(?P<op>==|!=|=)\s*(?P<right>.+)$")


def _value(token: str, context: Mapping[str, Any]) -> Any:
    token = token.strip()
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "'\"":
        return token[1:-1]
    if token == "true":
        return True
    if token == "false":
        return False
    return context.get(token)


def _compare(expression: str, context: Mapping[str, Any]) -> bool:
    expression = expression.strip()
    if expression.startswith("!") and not expression.startswith("!="):
        return not _compare(expression[1:], context)
    match = _COMPARISON.match(expression)
    if match is None:
        return bool(_value(expression, context))
    left = _value(match["left"], context)
    right = _value(match["right"], context)
    if match["op"] == "!=":
        return str(left) != str(right) if left is not None else right is not None
    return left is not None and str(left) == str(right)


def evaluate(expression: str, context: Mapping[str, Any]) -> bool:
    """Evaluate an ``@if`` expression (``||`` binds looser than ``&&``)."""
    return any(
        all(_compare(term, context) for term in alternative.split("&&"))
        for alternative in expression.split("||")
    )


def preprocess(source: str, context: Mapping[str, Any]) -> str:
    """Resolve every directive in ``source`` against ``context``."""
    output: list[str] = []
    # (block kind, active) for each open block
    stack: list[tuple[str, bool]] = []
    active = True
    pos = 0

    for match in DIRECTIVE.finditer(source):
        name = match["h_name"] or match["b_name"] or match["l_name"]
        arg = (match["h_arg"] or match["b_arg"] or match["l_arg"] or "").strip()

        if name not in OPENERS and name not in CLOSERS and name != "echo":
            continue

        if active:
            output.append(source[pos : match.start()])
        pos = match.end()

        if name in OPENERS:
            if name == "if":
                condition = evaluate(arg, context)
            elif name == "ifdef":
                condition = context.get(arg) is not None
            elif name == "ifndef":
                condition = context.get(arg) is None
            else:
                condition = False
            stack.append(("exclude" if name == "exclude" else "if", active))
            active = active and condition
        elif name in CLOSERS:
            if not stack or stack[-1][0] != CLOSERS[name]:
                line = source.count("\n", 0, match.start()) + 1
                raise PreprocessError(f"Unexpected @{name} at line {line}")
            _, active = stack.pop()
        elif active:
            value = context.get(arg)
            output.append("" if value is None else str(value))
            if match["l_name"] and match.group(0).endswith("\n"):
                output.append("\n")

    if stack:
        raise PreprocessError(f"Unterminated @{stack[-1][0]} block")

    if active:
        output.append(source[pos:])
    return "".join(output)
