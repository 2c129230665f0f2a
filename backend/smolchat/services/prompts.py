"""Prompt templates for each task.

Every builder is a pure function of its inputs: no I/O, no generation.
"""

from __future__ import annotations

from typing import Iterable

PERSONA_ECHO_MARKER = "Persona:"

CLASSIFICATION_CATEGORIES = (
    "Urgent & Action Required",
    "Normal Follow-up",
    "FYI / Low Priority",
    "Spam",
)

_ATTACHMENT_NOTE = "Note: The email contains attachments (images shown above represent PDF content).\n\n"


def build_persona_prompt(
    name: str,
    position: str,
    department: str,
    language: str,
    samples: Iterable[str],
) -> str:
    samples_text = "".join(f"{sample} " for sample in samples)
    return (
        "Generate a one-sentence professional persona summary.\n\n"
        "Input:\n"
        f"Name: {name}\n"
        f"Position: {position}\n"
        f"Department: {department}\n"
        f"Language: {language}\n"
        f"Writing samples: {samples_text}\n\n"
        "Output format: it should include these fields specifically\n"
        f"{name} ({position}, {department}). Preferred language: {language}. "
        "[tone] tone. [style] communication style.\n\n"
        f"{PERSONA_ECHO_MARKER}"
    )


def build_cv_extraction_prompt() -> str:
    return (
        "You are an AI assistant that extracts information from CV/resume images.\n\n"
        "Please analyze the CV image and extract the following information:\n"
        "1. Name (full name of the candidate)\n"
        "2. Position (job title or desired position)\n"
        "3. Skills (list up to 10 key technical skills)\n"
        "4. Experience (total years of professional experience)\n"
        "5. Education (highest degree)\n\n"
        "Return ONLY valid JSON in this exact format with no additional text:\n"
        "{\n"
        '  "name": "Full Name",\n'
        '  "position": "Job Title",\n'
        '  "skills": ["skill1", "skill2", "skill3"],\n'
        '  "experience": "X years",\n'
        '  "education": "Degree Name"\n'
        "}\n\n"
        "Output:"
    )


def build_draft_reply_prompt(
    persona_string: str,
    subject: str,
    body: str,
    instruction: str = "",
    has_attachments: bool = False,
) -> str:
    parts = [
        "You are an AI assistant that drafts email replies based on user persona and instructions.\n\n",
        f"Persona: {persona_string}\n\n",
        f"Original Email Subject: {subject}\n",
        f"Original Email Body: {body}\n\n",
    ]
    if has_attachments:
        parts.append(_ATTACHMENT_NOTE)
    if instruction:
        parts.append(f"Instruction: {instruction}\n\n")

    objective = (
        "Follows the given instruction"
        if instruction
        else "Provides an appropriate response to the original email"
    )
    parts.append(
        "Draft a reply email that:\n"
        "1. Matches the persona's tone and language preference\n"
        f"2. {objective}\n"
        "3. References attachment content if relevant\n"
        "4. Is professional and appropriate\n\n"
        "Return ONLY valid JSON in this exact format with no additional text:\n"
        "{\n"
        '  "subject": "Re: [original subject]",\n'
        '  "draft_reply": "Your drafted email reply here"\n'
        "}\n\n"
        "Output:"
    )
    return "".join(parts)


def build_classification_prompt(subject: str, body: str, has_attachments: bool = False) -> str:
    parts = [
        "You are an AI assistant that classifies emails based on urgency and priority.\n\n",
        f"Email Subject: {subject}\n",
        f"Email Body: {body}\n\n",
    ]
    if has_attachments:
        parts.append(_ATTACHMENT_NOTE)

    urgent, normal, fyi, spam = CLASSIFICATION_CATEGORIES
    parts.append(
        "Classify this email into ONE of the following categories:\n"
        f'1. "{urgent}" - Requires immediate attention and action\n'
        f'2. "{normal}" - Regular business communication requiring response\n'
        f'3. "{fyi}" - Informational only, no immediate action needed\n'
        f'4. "{spam}" - Unsolicited, irrelevant, or suspicious content\n\n'
        "Consider:\n"
        "- Time-sensitive keywords (deadline, urgent, ASAP, today, tomorrow)\n"
        "- Action verbs (submit, complete, respond, approve)\n"
        "- Sender context and attachment relevance\n\n"
        "Return ONLY valid JSON in this exact format with no additional text:\n"
        "{\n"
        '  "category": "One of the four categories above",\n'
        '  "confidence": 0.85\n'
        "}\n\n"
        "Output:"
    )
    return "".join(parts)
