"""Corruption guard — last-resort checks on emitted source text.

A lexical scan tracks strings, template literals, comments and regex
literals so delimiter balance can be judged without a parser. A small
set of pattern repairs fixes damage seen in generated artifacts; a
repair that tidies string quoting is only kept when the repaired line
scans clean and the original did not.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from frameshift.constants import EXCERPT_CHARS, CorruptionSignature
from frameshift.quality.schemas import CorruptionFinding, GuardReport

logger = logging.getLogger(__name__)

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}
_REGEX_PRECEDERS = frozenset("(,=:[!&|?;{")


@dataclass(frozen=True)
class _Repair:
    signature: CorruptionSignature
    pattern: re.Pattern[str]
    replacement: str
    message: str
    quoting: bool  # only kept when it turns a dirty line clean


_REPAIRS: tuple[_Repair, ...] = (
    _Repair(
        CorruptionSignature.NESTED_STRING_BOUNDARY,
        re.compile(r"(:\s*)'([^'\"\n]*)'\"([^'\"\n]*)'"),
        r"\1'\2\3'",
        "string boundary nested inside a single-quoted value",
        quoting=True,
    ),
    _Repair(
        CorruptionSignature.NESTED_STRING_BOUNDARY,
        re.compile(r"(:\s*)\"([^'\"\n]*)\"'([^'\"\n]*)\""),
        r'\1"\2\3"',
        "string boundary nested inside a double-quoted value",
        quoting=True,
    ),
    _Repair(
        CorruptionSignature.DOUBLED_QUOTE_PREFIX,
        re.compile(r"(:\s*)''([^'\s,}+][^'\n,}]*)'"),
        r"\1'\2'",
        "value opens with a doubled quote",
        quoting=True,
    ),
    _Repair(
        CorruptionSignature.DOUBLED_QUOTE_PREFIX,
        re.compile(r"(:\s*)\"\"([^\"\s,}+][^\"\n,}]*)\""),
        r'\1"\2"',
        "value opens with a doubled quote",
        quoting=True,
    ),
    _Repair(
        CorruptionSignature.DUPLICATED_CSS_UNIT,
        re.compile(r"(['\"])(-?\d+(?:\.\d+)?)(px|rem|em|vh|vw|%)\3+\1"),
        r"\1\2\3\1",
        "CSS unit repeated",
        quoting=False,
    ),
    _Repair(
        CorruptionSignature.LEADING_OBJECT_COMMA,
        re.compile(r"\{\{\s*,\s*"),
        "{{ ",
        "object literal opens with a comma",
        quoting=False,
    ),
)


def _position(text: str, offset: int) -> tuple[int, int]:
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def _excerpt(text: str, offset: int) -> str:
    start = text.rfind("\n", 0, offset) + 1
    end = text.find("\n", offset)
    return text[start:end if end >= 0 else len(text)].strip()[:EXCERPT_CHARS]


def _finding(
    text: str,
    signature: CorruptionSignature,
    message: str,
    offset: int,
    *,
    repaired: bool = False,
    replacement: str | None = None,
) -> CorruptionFinding:
    line, column = _position(text, offset)
    return CorruptionFinding(
        signature=signature,
        message=message,
        offset=offset,
        line=line,
        column=column,
        excerpt=_excerpt(text, offset),
        repaired=repaired,
        replacement=replacement,
    )


# ── Lexical scan ─────────────────────────────────────────


def _string_end(text: str, start: int, multiline: bool) -> int | None:
    """Index of the closing quote for the string opened at ``start``."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i
        if ch == "\n" and not multiline:
            return None
        i += 1
    return None


def _regex_end(text: str, start: int) -> int | None:
    in_class = False
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "\n":
            return None
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            return i
        i += 1
    return None


def _is_jsx_attribute_string(text: str, start: int) -> bool:
    """``name="..."`` with no space around ``=`` may span lines."""
    return start >= 2 and text[start - 1] == "=" and (
        text[start - 2].isalnum() or text[start - 2] == "-"
    )


def lex(text: str, *, prose_apostrophes: bool = True) -> list[CorruptionFinding]:
    """Delimiter and string findings; no repairs.

    With ``prose_apostrophes`` a quote directly after a letter or digit
    is read as an apostrophe in JSX text rather than a string opener.
    """
    findings: list[CorruptionFinding] = []
    stack: list[tuple[str, int]] = []
    prev = ""
    i, n = 0, len(text)
    while i < n:
        if stack and stack[-1][0] == "`":
            ch = text[i]
            if ch == "\\":
                i += 2
            elif ch == "`":
                stack.pop()
                prev = "`"
                i += 1
            elif text.startswith("${", i):
                stack.append(("${", i))
                prev = "{"
                i += 2
            else:
                i += 1
            continue

        ch = text[i]
        if ch.isspace():
            i += 1
            continue
        if text.startswith("//", i) and not (i > 0 and text[i - 1] == ":"):
            newline = text.find("\n", i)
            i = n if newline < 0 else newline
            continue
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end < 0:
                findings.append(
                    _finding(text, CorruptionSignature.UNTERMINATED_COMMENT, "unterminated block comment", i)
                )
                break
            i = end + 2
            continue
        if ch in "'\"":
            # an apostrophe inside a word is prose, not a string
            if prose_apostrophes and ch == "'" and i > 0 and text[i - 1].isalnum():
                i += 1
                continue
            end = _string_end(text, i, ch == '"' and _is_jsx_attribute_string(text, i))
            if end is None:
                findings.append(
                    _finding(text, CorruptionSignature.UNTERMINATED_STRING, f"unterminated {ch} string", i)
                )
                newline = text.find("\n", i)
                i = n if newline < 0 else newline
            else:
                i = end + 1
            prev = ch
            continue
        if ch == "`":
            stack.append(("`", i))
            i += 1
            continue
        if ch == "/" and (prev == "" or prev in _REGEX_PRECEDERS) and text[i + 1:i + 2] not in ("/", "*"):
            end = _regex_end(text, i)
            if end is not None:
                i = end + 1
                prev = "/"
                continue
        if ch in _OPENERS:
            stack.append((ch, i))
        elif ch in _CLOSERS:
            if stack and ch == "}" and stack[-1][0] == "${":
                stack.pop()
            elif stack and stack[-1][0] == _CLOSERS[ch]:
                stack.pop()
            else:
                findings.append(
                    _finding(text, CorruptionSignature.UNBALANCED_DELIMITER, f"unexpected {ch!r}", i)
                )
        prev = ch
        i += 1

    for opener, offset in stack:
        if opener == "`":
            findings.append(
                _finding(text, CorruptionSignature.UNTERMINATED_STRING, "unterminated template literal", offset)
            )
        else:
            closer = "}" if opener == "${" else _OPENERS[opener]
            findings.append(
                _finding(text, CorruptionSignature.UNBALANCED_DELIMITER, f"{opener!r} never closed by {closer!r}", offset)
            )
    findings.sort(key=lambda f: f.offset)
    return findings


def _quoting_clean(line: str) -> bool:
    return not any(
        f.signature == CorruptionSignature.UNTERMINATED_STRING
        for f in lex(line, prose_apostrophes=False)
    )


def is_balanced(text: str) -> bool:
    """True when every delimiter, string and comment is closed."""
    return not lex(text)


# ── Repairs ──────────────────────────────────────────────


def _lines(text: str) -> list[tuple[int, str]]:
    offsets: list[tuple[int, str]] = []
    pos = 0
    for line in text.splitlines(keepends=True):
        offsets.append((pos, line))
        pos += len(line)
    return offsets


def _candidates(text: str) -> list[tuple[int, int, str, _Repair, str]]:
    """(line start, match start, original line, repair, repaired line)."""
    found: list[tuple[int, int, str, _Repair, str]] = []
    for start, line in _lines(text):
        for repair in _REPAIRS:
            match = repair.pattern.search(line)
            if match is None:
                continue
            repaired = repair.pattern.sub(repair.replacement, line, count=1)
            if repair.quoting and (_quoting_clean(line) or not _quoting_clean(repaired)):
                continue
            found.append((start, match.start(), line, repair, repaired))
            break
    return found


def scan(text: str) -> list[CorruptionFinding]:
    """Every finding in ``text``, without altering it."""
    findings = lex(text)
    for start, column, _, repair, _ in _candidates(text):
        findings.append(_finding(text, repair.signature, repair.message, start + column))
    findings.sort(key=lambda f: f.offset)
    return findings


def _repair_round(text: str) -> tuple[str, list[CorruptionFinding]]:
    candidates = {start: (column, line, repair, repaired) for start, column, line, repair, repaired in _candidates(text)}
    if not candidates:
        return text, []
    applied: list[CorruptionFinding] = []
    pieces: list[str] = []
    for start, line in _lines(text):
        if start not in candidates:
            pieces.append(line)
            continue
        column, _, repair, repaired = candidates[start]
        applied.append(
            _finding(
                text,
                repair.signature,
                repair.message,
                start + column,
                repaired=True,
                replacement=repaired.strip()[:EXCERPT_CHARS],
            )
        )
        pieces.append(repaired)
    return "".join(pieces), applied


def guard(text: str, max_attempts: int = 3) -> GuardReport:
    """Repair known signatures, then report whatever is left.

    Each round applies at most one repair per line; rounds stop early
    once nothing matches.
    """
    current = text
    repaired: list[CorruptionFinding] = []
    for attempt in range(max_attempts):
        current, applied = _repair_round(current)
        if not applied:
            break
        logger.debug("event=repair_round attempt=%d repairs=%d", attempt + 1, len(applied))
        repaired.extend(applied)
    remaining = scan(current)
    if repaired or remaining:
        logger.info(
            "event=guard_complete repaired=%d unresolved=%d",
            len(repaired),
            len(remaining),
        )
    return GuardReport(text=current, findings=tuple(repaired) + tuple(remaining))


def new_findings(before: str, after: str) -> list[CorruptionFinding]:
    """Findings in ``after`` beyond what ``before`` already had, by signature."""
    counts: dict[CorruptionSignature, int] = {}
    for finding in scan(before):
        counts[finding.signature] = counts.get(finding.signature, 0) + 1
    introduced: list[CorruptionFinding] = []
    for finding in scan(after):
        if counts.get(finding.signature, 0) > 0:
            counts[finding.signature] -= 1
        else:
            introduced.append(finding)
    return introduced
