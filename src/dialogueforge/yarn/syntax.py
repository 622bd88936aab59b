"""Yarn syntax elements shared by the parser and the formatter."""

from __future__ import annotations

import re

TITLE_PREFIX = "title:"
NODE_TYPE_PREFIX = "nodeType:"
TAGS_PREFIX = "tags:"
START_TAG = "start"
NODE_SEPARATOR = "---"
NODE_END = "==="
OPTION_PREFIX = "-> "
CHOICE_TAG = "#choice:"
INDENT = "    "

STOP_COMMAND = "<<stop>>"
ELSE_COMMAND = "<<else>>"
ENDIF_COMMAND = "<<endif>>"

HEADER_RE = re.compile(r"^([A-Za-z][\w-]*):\s*(.*)$")
JUMP_RE = re.compile(r"^<<jump\s+(\S+?)\s*>>$")
IF_RE = re.compile(r"^<<if\s+(.+?)\s*>>$")
ELSEIF_RE = re.compile(r"^<<elseif\s+(.+?)\s*>>$")
ELSE_RE = re.compile(r"^<<else\s*>>$")
ENDIF_RE = re.compile(r"^<<endif\s*>>$")
STOP_RE = re.compile(r"^<<stop\s*>>$")
STORYLET_RE = re.compile(r"^<<(storylet|detour)\s+(-?\d+)((?:\s+[A-Za-z]+=\S+)*)\s*>>$")
OPTION_RE = re.compile(r"^->\s*(.*?)\s*(?:#choice:(\S+))?\s*$")
SPEAKER_RE = re.compile(r"^([^:<>\\\n]{1,40}):\s+(.*)$")
# Narration whose leading "Name:" is written as "Name\:".
ESCAPED_SPEAKER_RE = re.compile(r"^([^:<>\\\n]{1,40})\\:(\s+.*)$")


def jump(target: str) -> str:
    return f"<<jump {target}>>"


def if_command(condition: str) -> str:
    return f"<<if {condition}>>"


def elseif_command(condition: str) -> str:
    return f"<<elseif {condition}>>"
