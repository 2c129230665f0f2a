"""
Unit tests for prompt builders.

Tests cover embedded fields, the attachment note, and instruction
branching for the draft-reply prompt.
"""

from smolchat.services.prompts import (
    CLASSIFICATION_CATEGORIES,
    PERSONA_ECHO_MARKER,
    build_classification_prompt,
    build_cv_extraction_prompt,
    build_draft_reply_prompt,
    build_persona_prompt,
)

ATTACHMENT_NOTE = "The email contains attachments"


class TestPersonaPrompt:
    """Test the persona prompt."""

    def test_embeds_profile_and_samples(self) -> None:
        prompt = build_persona_prompt("Ana Li", "Engineer", "R&D", "English", ["First sample.", "Second one."])

        assert "Name: Ana Li" in prompt
        assert "Position: Engineer" in prompt
        assert "Department: R&D" in prompt
        assert "Language: English" in prompt
        assert "First sample. Second one." in prompt
        assert "Ana Li (Engineer, R&D). Preferred language: English." in prompt

    def test_ends_with_echo_marker(self) -> None:
        prompt = build_persona_prompt("Ana Li", "Engineer", "R&D", "English", [])

        assert prompt.endswith(PERSONA_ECHO_MARKER)


class TestCVPrompt:
    """Test the CV extraction prompt."""

    def test_requests_json_fields(self) -> None:
        prompt = build_cv_extraction_prompt()

        for key in ("name", "position", "skills", "experience", "education"):
            assert f'"{key}"' in prompt
        assert "Return ONLY valid JSON" in prompt


class TestDraftReplyPrompt:
    """Test the draft reply prompt branches."""

    def test_without_instruction(self) -> None:
        prompt = build_draft_reply_prompt("Persona text", "Budget", "Please review.")

        assert "Instruction:" not in prompt
        assert "Provides an appropriate response to the original email" in prompt
        assert "Follows the given instruction" not in prompt

    def test_with_instruction(self) -> None:
        prompt = build_draft_reply_prompt("Persona text", "Budget", "Please review.", instruction="Decline politely")

        assert "Instruction: Decline politely" in prompt
        assert "Follows the given instruction" in prompt
        assert "Provides an appropriate response" not in prompt

    def test_embeds_persona_and_email(self) -> None:
        prompt = build_draft_reply_prompt("Calm and concise", "Budget Q3", "Numbers attached.")

        assert "Persona: Calm and concise" in prompt
        assert "Original Email Subject: Budget Q3" in prompt
        assert "Original Email Body: Numbers attached." in prompt
        assert '"draft_reply"' in prompt

    def test_attachment_note_only_when_flagged(self) -> None:
        without = build_draft_reply_prompt("p", "s", "b")
        with_attachments = build_draft_reply_prompt("p", "s", "b", has_attachments=True)

        assert ATTACHMENT_NOTE not in without
        assert ATTACHMENT_NOTE in with_attachments


class TestClassificationPrompt:
    """Test the classification prompt."""

    def test_lists_all_categories(self) -> None:
        prompt = build_classification_prompt("Server down", "Production is down!")

        for category in CLASSIFICATION_CATEGORIES:
            assert f'"{category}"' in prompt
        assert "Email Subject: Server down" in prompt
        assert '"confidence"' in prompt

    def test_attachment_note_only_when_flagged(self) -> None:
        assert ATTACHMENT_NOTE not in build_classification_prompt("s", "b")
        assert ATTACHMENT_NOTE in build_classification_prompt("s", "b", has_attachments=True)

    def test_is_deterministic(self) -> None:
        assert build_classification_prompt("s", "b") == build_classification_prompt("s", "b")
