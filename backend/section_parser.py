"""Parser for the labeled sections of a generated recommendation.

Generated text is untrusted. Every extractor distinguishes "section absent"
(None) from "section present but empty" ("" or []), and callers fall back
to the template path on None.
"""

import re

SECTION_NAMES = ("TITLE", "FINDING", "IMPACT", "APPLY INSTRUCTIONS", "CODE", "QUICK WINS", "END")
MIN_STEP_CHARS = 10

_NAMES_PATTERN = "|".join(re.escape(n) for n in SECTION_NAMES)
_NEXT_BRACKETED = rf"(?=\n\s*\[(?:{_NAMES_PATTERN})\]|$)"
_HEADING = r"(?:#+[ \t]*{label}[ \t]*:?|\*\*{label}:?\*\*:?|{label}:)"
_NEXT_HEADING = rf"(?=\n\s*(?:#+[ \t]*(?:{_NAMES_PATTERN})|\*\*(?:{_NAMES_PATTERN}):?\*\*|(?:{_NAMES_PATTERN}):)|\n\s*\[(?:{_NAMES_PATTERN})\]|$)"

NUMBERED_LINE = re.compile(r"^(\d+)[.)]\s+(.*)$")
BULLET_LINE = re.compile(r"^\s*(?:[-*•+]|[a-z][.)]|\d+[.)])\s+")
FENCE = re.compile(r"^\s*```[\w+-]*\s*\n([\s\S]*?)\n?\s*```\s*$")


def extract_section(text: str, name: str) -> str | None:
    """Body of the section called ``name`` or None when it is not there.

    Tries the bracketed form ``[NAME]`` first, then a heading form such as
    ``## NAME`` or ``**NAME:**``.
    """
    if not text:
        return None
    label = re.escape(name)
    strict = re.search(rf"\[{label}\]\s*([\s\S]*?){_NEXT_BRACKETED}", text, re.IGNORECASE)
    if strict:
        return strict.group(1).strip()

    tolerant = re.search(
        rf"(?:^|\n)\s*" + _HEADING.format(label=label) + rf"[ \t]*\n?([\s\S]*?){_NEXT_HEADING}",
        text,
        re.IGNORECASE,
    )
    if tolerant:
        return tolerant.group(1).strip()
    return None


def extract_action_steps(text: str | None) -> list[str] | None:
    """Flat numbered steps, or None when the list is absent or nested.

    Plain lines following a step are folded into it. A bulleted or
    indented numbered line under a step counts as nesting and rejects the
    whole list.
    """
    if text is None:
        return None
    steps: list[str] = []
    for raw_line in text.splitlines():
        if not raw_line.strip():
            continue
        numbered = NUMBERED_LINE.match(raw_line)
        if numbered:
            steps.append(numbered.group(2).strip())
            continue
        if BULLET_LINE.match(raw_line):
            return None
        if steps:
            steps[-1] = f"{steps[-1]} {raw_line.strip()}"

    steps = [s for s in steps if len(s) >= MIN_STEP_CHARS]
    return steps or None


def strip_code_fences(text: str | None) -> str:
    if not text:
        return ""
    match = FENCE.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_quick_wins(text: str | None) -> list[str]:
    if not text:
        return []
    wins = []
    for line in text.splitlines():
        item = BULLET_LINE.sub("", line).strip()
        if item:
            wins.append(item)
    return wins
