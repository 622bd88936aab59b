"""Tests for Yarn dialogue content helpers."""

from __future__ import annotations

from dialogueforge.yarn.content import escape_narration, format_content, join_dialogue, split_speaker


class TestFormatContent:
    def test_prefixes_each_line(self) -> None:
        assert format_content("Line 1\nLine 2", "NPC") == "NPC: Line 1\nNPC: Line 2"

    def test_no_speaker(self) -> None:
        assert format_content("Hello", None) == "Hello"
        assert format_content("", "NPC") == ""


class TestSplitSpeaker:
    def test_speaker_line(self) -> None:
        assert split_speaker("Guide: Welcome.") == ("Guide", "Welcome.")

    def test_plain_line(self) -> None:
        assert split_speaker("Just narration.") == (None, "Just narration.")

    def test_commands_are_not_speakers(self) -> None:
        assert split_speaker("<<set $a = 1>>: x") == (None, "<<set $a = 1>>: x")

    def test_colon_needs_trailing_space(self) -> None:
        assert split_speaker("Time:12") == (None, "Time:12")


class TestJoinDialogue:
    def test_single_speaker(self) -> None:
        assert join_dialogue(["Guide: Hello.", "Guide: Welcome."]) == ("Guide", "Hello.\nWelcome.")

    def test_other_speakers_keep_prefix(self) -> None:
        assert join_dialogue(["Guide: Hello.", "Ann: Hi!"]) == ("Guide", "Hello.\nAnn: Hi!")

    def test_narration_first_means_no_speaker(self) -> None:
        assert join_dialogue(["It rains.", "Guide: Hello."]) == (None, "It rains.\nGuide: Hello.")

    def test_empty(self) -> None:
        assert join_dialogue([]) == (None, "")


class TestEscapeNarration:
    def test_leading_name_is_escaped(self) -> None:
        assert escape_narration("Note: the door is locked.") == "Note\\: the door is locked."

    def test_only_first_line_touched(self) -> None:
        assert escape_narration("It rains.\nGuide: Hello.") == "It rains.\nGuide: Hello."
        assert escape_narration("A: b\nC: d") == "A\\: b\nC: d"

    def test_plain_text_unchanged(self) -> None:
        assert escape_narration("Time:12") == "Time:12"
        assert escape_narration("") == ""

    def test_escaped_line_reads_as_narration(self) -> None:
        assert split_speaker("Note\\: hi") == (None, "Note: hi")
        assert join_dialogue(["Note\\: hi", "More."]) == (None, "Note: hi\nMore.")
