"""Markdown-artifact cleanup for extracted page text.

Pages rendered from markdown (docs sites, chat transcripts, READMEs) often
leak syntax into their visible text.  :func:`clean` turns that into plain
prose: code fences disappear, links and images collapse to their labels,
line-leading markers and emphasis are unwrapped, and all whitespace is
collapsed to single spaces.

:func:`clean` is total (any internal failure degrades to a plain whitespace
collapse) and idempotent.  Fenced code blocks are removed once, from the
multi-line input, and may sit behind blockquote or list markers.  The rest of
the pipeline is re-applied until its output stops changing, so markers exposed
by one transform (``- > quote``) are removed too.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_FENCE = re.compile(r"^[ \t]*(`{3,}|~{3,})[ \t]*[^\s`]*[ \t]*$")
_CONTAINER_PREFIX = re.compile(r"^[ \t]*(?:>[ \t]*|(?:[-*+]|\d{1,9}[.)])[ \t]+)+")
_INLINE_CODE = re.compile(r"(`+)([^`\n]+?)\1")
_IMAGE = re.compile(r"!\[([^\]\n]*)\]\([^)\n]*\)")
_LINK = re.compile(r"\[([^\]\n]+)\]\([^)\n]*\)")

_HEADING_PREFIX = re.compile(r"^[ \t]*#{1,6}(?:[ \t]+|$)")
_INLINE_HEADING = re.compile(r"(?<=\s)#{1,6}[ \t]+(?=[A-Z\u00c0-\u00de])")
_QUOTE_PREFIX = re.compile(r"^[ \t]*(?:>[ \t]*)+")
_LIST_PREFIX = re.compile(r"^[ \t]*(?:[-*+]|\d{1,9}[.)])[ \t]+")

_BOLD_STAR = re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*")
_BOLD_UNDERSCORE = re.compile(r"__(?=\S)(.+?)(?<=\S)__")
_ITALIC_STAR = re.compile(r"\*(?=[^\s*])([^*\n]+?)(?<=[^\s*])\*")
_ITALIC_UNDERSCORE = re.compile(r"(?<!\w)_(?=[^\s_])([^_\n]+?)(?<=[^\s_])_(?!\w)")

_HORIZONTAL_RULE = re.compile(r"^[ \t]*([-*_])(?:[ \t]*\1){2,}[ \t]*$")
_WHITESPACE = re.compile(r"[\s\u00a0]+")


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def _collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def _strip_line_prefixes(line: str) -> str:
    """Remove heading, blockquote and list markers from the start of *line*.

    Markers can nest (``> - # title``) so stripping repeats until none is
    left.  Horizontal rules are blanked first so ``- - -`` is not read as a
    list item.
    """
    if _HORIZONTAL_RULE.match(line):
        return ""
    while True:
        stripped = _HEADING_PREFIX.sub("", line, count=1)
        stripped = _QUOTE_PREFIX.sub("", stripped, count=1)
        stripped = _LIST_PREFIX.sub("", stripped, count=1)
        if stripped == line:
            return line
        line = stripped


def _fence_marker(line: str) -> str | None:
    """Return the fence run (```` ``` ````, ``~~~``) opening *line*, if it is a fence line.

    Blockquote and list markers in front of the fence are ignored, so
    ``> ```python`` and ``- ~~~`` count.  The info string must be a single
    token; ``~~~ marks strikethrough`` is prose, not a fence.
    """
    match = _FENCE.match(_CONTAINER_PREFIX.sub("", line, count=1))
    return match.group(1) if match else None


def _strip_code_blocks(text: str) -> str:
    """Drop fenced code blocks from multi-line *text*.

    A block runs from an opening fence to the next fence of the same
    character that is at least as long.  An unterminated opening fence only
    loses its own line.
    """
    lines = text.split("\n")
    kept: list[str] = []
    index = 0
    while index < len(lines):
        opener = _fence_marker(lines[index])
        if opener is None:
            kept.append(lines[index])
            index += 1
            continue
        closing = None
        for candidate in range(index + 1, len(lines)):
            marker = _fence_marker(lines[candidate])
            if marker and marker[0] == opener[0] and len(marker) >= len(opener):
                closing = candidate
                break
        index = index + 1 if closing is None else closing + 1
    return "\n".join(kept)


def _unwrap_emphasis(text: str) -> str:
    text = _BOLD_STAR.sub(r"\1", text)
    text = _BOLD_UNDERSCORE.sub(r"\1", text)
    text = _ITALIC_STAR.sub(r"\1", text)
    return _ITALIC_UNDERSCORE.sub(r"\1", text)


def _single_pass(text: str) -> str:
    text = _INLINE_CODE.sub(r"\2", text)
    text = _IMAGE.sub(r"\1", text)
    text = _LINK.sub(r"\1", text)
    text = "\n".join(_strip_line_prefixes(line) for line in text.split("\n"))
    text = _INLINE_HEADING.sub("", text)
    text = _unwrap_emphasis(text)
    text = "\n".join(
        "" if _HORIZONTAL_RULE.match(line) else line for line in text.split("\n")
    )
    return _collapse_whitespace(text)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def clean(raw: str) -> str:
    """Return *raw* with markdown-like syntax removed and whitespace collapsed.

    Never raises.  ``None`` is treated as the empty string.

    Example::

        >>> clean("**bold** and `code` and # Heading")
        'bold and code and Heading'
    """
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raw = str(raw)
    try:
        text = raw.replace("\r\n", "\n").replace("\r", "\n")
        # Code blocks go first: their bodies are full of * and _.  Only
        # multi-line text can hold a block; later passes see a single line.
        if "\n" in text:
            text = _strip_code_blocks(text)
        text = _single_pass(text)
        # Every pass after the first only deletes characters, so this ends.
        while True:
            again = _single_pass(text)
            if again == text:
                return text
            text = again
    except Exception as exc:  # noqa: BLE001
        logger.debug("scraper: markdown cleanup failed, collapsing whitespace: %s", exc)
        return _collapse_whitespace(raw)
