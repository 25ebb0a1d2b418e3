"""PR description rendering and parsing.

Each PR body carries a metadata header, the user's own text, and a
numbered view of the whole stack. Re-running the tool regenerates the
header and the stack view but keeps the user's text.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Optional

from jjstack.models import ChainEntry

SEPARATOR = "---"
CHAIN_HEADING = "PR Stack (review in order)"
LEGACY_CHAIN_HEADING = "Full chain of PRs"
FOOTER = "Created with jj (Jujutsu) stack-prs"

METADATA_PREFIXES = ("Stack position:", "Base:", "Depends on:")
END_MARKERS = (CHAIN_HEADING, LEGACY_CHAIN_HEADING)


def format_status(is_draft: bool) -> str:
    return "draft" if is_draft else "ready for review"


def format_chain_item(entry: ChainEntry, index: int, is_current: bool) -> str:
    """Render one numbered line of the stack view, e.g. '1. PR #101: a → main (draft)'."""
    text = f"{entry.bookmark} → {entry.base} ({format_status(entry.is_draft)})"
    if entry.pr_number:
        text = f"PR #{entry.pr_number}: {text}"

    if is_current:
        return f"{index}. **{text}** ← You are here"
    return f"{index}. {text}"


def compose_description(
    current: ChainEntry,
    full_chain: Sequence[ChainEntry],
    position: int,
    original_body: Optional[str] = None,
    commit_message: Optional[str] = None,
    today: Optional[date] = None,
) -> str:
    """Compose the body of a PR in the stack.

    Args:
        current: The entry whose PR body is being rendered.
        full_chain: Every entry of the chain, base first.
        position: 1-based position of current in full_chain.
        original_body: User text to keep; takes precedence over commit_message.
        commit_message: Fallback text for PRs without a user body.
        today: Date shown in the stack heading. Defaults to today.

    Returns:
        The full PR body.
    """
    lines = [
        f"Stack position: {position} of {len(full_chain)}",
        f"Base: `{current.base}`",
    ]

    if position > 1:
        depends_on = full_chain[position - 2]
        if depends_on.pr_number:
            lines.append(f"Depends on: #{depends_on.pr_number}")

    body = original_body or commit_message
    if body:
        lines.append("")
        lines.append(body)

    day = (today or date.today()).isoformat()
    lines.append("")
    lines.append(SEPARATOR)
    lines.append(f"{CHAIN_HEADING} as of {day}:")

    for index, entry in enumerate(full_chain, start=1):
        lines.append(format_chain_item(entry, index, is_current=index == position))

    lines.append("")
    lines.append(FOOTER)

    return "\n".join(lines)


def _is_end_marker(line: str) -> bool:
    return line.strip() == SEPARATOR or line.startswith(END_MARKERS)


def extract_original_body(text: str) -> str:
    """Recover the user-authored text from a composed PR body.

    Text without the metadata header (e.g. a body written by hand before
    the first run) is returned unchanged.
    """
    if not text:
        return ""

    lines = text.split("\n")

    start = None
    for i, line in enumerate(lines):
        if line.strip() and not line.startswith(METADATA_PREFIXES):
            start = i
            break

    if start is None or not any(line.startswith(METADATA_PREFIXES) for line in lines[:start]):
        return text

    end = len(lines)
    for i in range(start, len(lines)):
        if _is_end_marker(lines[i]):
            end = i
            break

    body = lines[start:end]
    while body and not body[-1].strip():
        body.pop()

    return "\n".join(body)
