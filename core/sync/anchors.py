"""
Textual anchors inside registry documents.

Registry documents are located and edited without parsing Python: a
manifest list is found by its `'key': [` opener and index entries by
their `from . import <name>` lines. Everything that knows the textual
shape of the documents lives here.
"""

import re
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class ListAnchor:
    """Position of a `'key': [` opener in a document"""
    start: int          # Offset of the opening quote of the key
    insert_at: int      # Offset just past the opening bracket
    line_indent: str    # Leading whitespace of the line holding the key


def list_anchor_pattern(key: str) -> "re.Pattern[str]":
    # Quoted key, optional whitespace (newlines included), colon, bracket
    return re.compile(r"""(['"])""" + re.escape(key) + r"""\1\s*:\s*\[""")


def find_list_anchor(text: str, key: str) -> Optional[ListAnchor]:
    """Locate the first list literal bound to `key`, or None"""
    match = list_anchor_pattern(key).search(text)
    if not match:
        return None

    line_start = text.rfind('\n', 0, match.start()) + 1
    indent_match = re.match(r'[ \t]*', text[line_start:match.start()])
    return ListAnchor(
        start=match.start(),
        insert_at=match.end(),
        line_indent=indent_match.group(0) if indent_match else ''
    )


def rest_of_line(text: str, offset: int) -> str:
    """Text from `offset` up to (not including) the next line break"""
    end = text.find('\n', offset)
    line = text[offset:] if end == -1 else text[offset:end]
    return line.rstrip('\r')


def line_ending(text: str, offset: int) -> str:
    """Line break style of the line holding `offset`"""
    end = text.find('\n', offset)
    if end == -1:
        # Last line: fall back to the document's first line break
        end = text.find('\n')
    return '\r\n' if end > 0 and text[end - 1] == '\r' else '\n'


def quoted_forms(value: str) -> List[str]:
    return [f"'{value}'", f'"{value}"']


def import_statement(module_name: str) -> str:
    return f"from . import {module_name}"


def is_import_line(line: str, module_name: str) -> bool:
    """
    True if `line` imports `module_name` from the current package.

    The statement may be followed by whitespace, a comment or further
    comma separated names, but `foo` never matches `foobar`.
    """
    statement = import_statement(module_name)
    stripped = line.strip()
    if not stripped.startswith(statement):
        return False
    tail = stripped[len(statement):]
    return tail == '' or tail[0] in ' \t,#'


def has_exact_import(text: str, module_name: str) -> bool:
    statement = import_statement(module_name)
    return any(line.strip() == statement for line in text.splitlines())


def find_import_lines(text: str, module_name: str) -> List[int]:
    """Zero-based line numbers that import `module_name`"""
    return [
        number
        for number, line in enumerate(text.splitlines())
        if is_import_line(line, module_name)
    ]
