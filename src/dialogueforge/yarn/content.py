"""Dialogue content formatting for Yarn scripts."""

from __future__ import annotations

from dialogueforge.yarn.syntax import ESCAPED_SPEAKER_RE, SPEAKER_RE


def format_content(content: str, speaker: str | None = None) -> str:
    """Prefix every line of ``content`` with ``Speaker: ``.

    Without a speaker the content passes through unchanged.

    >>> format_content("Line 1\\nLine 2", "NPC")
    'NPC: Line 1\\nNPC: Line 2'
    """
    if not content or not speaker:
        return content
    return "\n".join(f"{speaker}: {line}" for line in content.split("\n"))


def escape_narration(content: str) -> str:
    """Escape a leading ``Name: `` in unspeakered content as ``Name\\: ``.

    Only the first line is read as a possible speaker prefix, so only it
    is touched.
    """
    first, sep, rest = content.partition("\n")
    if SPEAKER_RE.match(first):
        first = first.replace(":", "\\:", 1)
    return first + sep + rest


def split_speaker(line: str) -> tuple[str | None, str]:
    """Split ``"Speaker: text"`` into its parts.

    Lines that do not look like speaker-prefixed dialogue return
    ``(None, line)``; an escaped prefix is unescaped.
    """
    match = SPEAKER_RE.match(line)
    if match:
        return match.group(1).strip(), match.group(2)
    escaped = ESCAPED_SPEAKER_RE.match(line)
    if escaped:
        return None, f"{escaped.group(1)}:{escaped.group(2)}"
    return None, line


def join_dialogue(lines: list[str]) -> tuple[str | None, str]:
    """Merge dialogue lines into ``(speaker, content)``.

    The first speaker-prefixed line names the speaker. Later lines with the
    same prefix lose it; lines naming someone else keep their text whole.
    """
    speaker: str | None = None
    texts: list[str] = []
    for line in lines:
        line_speaker, text = split_speaker(line)
        if line_speaker is not None and speaker is None and not texts:
            speaker = line_speaker
            texts.append(text)
        elif line_speaker is not None and line_speaker == speaker:
            texts.append(text)
        elif line_speaker is None:
            texts.append(text)
        else:
            texts.append(line)
    return speaker, "\n".join(texts)
