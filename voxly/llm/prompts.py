"""
LLM prompts for summary generation, summary editing and chat.

All builders are pure: the same input always gives the same prompt.
"""

import json
from textwrap import dedent
from types import MappingProxyType

from voxly.errors import InvalidInputError
from voxly.llm.schema import normalize_chat_messages, normalize_summary

DEFAULT_TEMPLATE = "default"

TEMPLATES = MappingProxyType(
    {
        "default": dedent(
            """
            TEMPLATE CONTEXT: MEETING (DEFAULT)
            This is a formal meeting with potential decisions and follow-up actions.
            """
        ).strip(),
        "brainstorm": dedent(
            """
            TEMPLATE CONTEXT: BRAINSTORM SESSION
            - Decisions are rare; include ONLY if explicitly finalized.
            - Emphasize ideas, themes, and opportunities in keyPoints.
            - Action items should focus on exploration or validation.
            - Do NOT force executive decision structure.
            """
        ).strip(),
        "interview": dedent(
            """
            TEMPLATE CONTEXT: INTERVIEW NOTES
            - Decisions are generally NOT applicable.
            - Focus keyPoints on insights, opinions, and factual statements.
            - Action items only if follow-up or deliverables are explicitly stated.
            - Do NOT infer organizational actions.
            """
        ).strip(),
        "lecture": dedent(
            """
            TEMPLATE CONTEXT: LECTURE NOTES
            - This is informational and educational content.
            - Omit decisions unless explicitly assigned.
            - KeyPoints should summarize concepts, frameworks, or explanations.
            - Action items only reflect assignments or required work.
            """
        ).strip(),
        "voice-memo": dedent(
            """
            TEMPLATE CONTEXT: VOICE MEMO
            - This is an informal personal recording.
            - Decisions may be personal commitments.
            - KeyPoints may include thoughts, reminders, or ideas.
            - Action items may be inferred conservatively and kept practical.
            """
        ).strip(),
    }
)

TEMPLATE_ALIASES = MappingProxyType(
    {
        "interview_notes": "interview",
        "lecture_notes": "lecture",
        "voice_memo": "voice-memo",
    }
)

SUMMARY_SYSTEM_PROMPT = (
    "You are an expert meeting summarizer. "
    "Produce crisp, bullet-ready text. Output strict JSON only."
)

EDIT_SYSTEM_PROMPT = (
    "You edit structured meeting notes. Output strict JSON only, never prose."
)

CHAT_SYSTEM_PROMPT = (
    "You are a helpful meeting copilot. Be concise. "
    "You can reference the structured summary JSON if needed. "
    "Do not invent names. If you don't know, say so."
)

ROLE_PROMPT = dedent(
    """
    You are an expert Meeting Secretary.
    Your task is to convert a raw transcript into a concise, executive-level structured summary.
    The output must be suitable for official records.
    """
).strip()

CORE_RULES_PROMPT = dedent(
    """
    OBJECTIVE
    Capture:
    - Substantive decisions
    - Key discussion points without decisions
    - Concrete actions occurring AFTER the transcript

    Avoid procedural noise, speculation, and restating the transcript.

    ---

    DECISIONS (CRITICAL)
    - Include ONLY substantive decisions:
      - Policy, strategy, financial, governance, operational
    - EXCLUDE procedural motions:
      - Agenda approval, minutes, reports, adjournment
    - Use ONE sentence starting with a verb:
      Approved, Authorized, Adopted, Amended, Rejected
    - Voting outcomes normalized:
      Unanimous, Carried, Rejected, Deferred
    - Include mover and seconder ONLY if explicitly stated
    - Never invent names or roles

    FORMAT:
    "Approved [subject] (Moved by [Name], Seconded by [Name], [Outcome])"
    Omit seconder if not mentioned.

    ---

    ACTION ITEMS
    - Only future work explicitly requested, assigned, or committed in the transcript
    - Do NOT create action items from role mentions alone
    - Do NOT add items that were already completed (e.g., "already shared")
    - One assignee only
    - Infer assignees conservatively by role ONLY when the task itself is explicit:
      Finance -> Finance / CFO
      Operations -> Operations / Engineering / Facilities
      Policy -> Legal / Compliance / Executive
      Communications -> Communications / Marketing
    - Priorities:
      HIGH -> urgent, risky, blocking
      MEDIUM -> standard follow-up
      LOW -> informational
    - Merge overlapping tasks when appropriate

    ---

    KEY POINTS
    - Discussion items with NO decision
    - Each bullet under 140 characters
    - Exclude unnecessary technical detail
    """
).strip()

JSON_SCHEMA_PROMPT = dedent(
    """
    REQUIRED JSON OUTPUT
    {
      "decisions": [
        "Approved vendor selection for Q3 infrastructure upgrade (Moved by [Name], Unanimous)"
      ],
      "keyPoints": [
        "Team discussed rising cloud infrastructure costs."
      ],
      "nextSteps": [
        "Executive team to review updated budget at next meeting."
      ],
      "actionItems": [
        {
          "text": "Finalize contract with selected infrastructure vendor",
          "priority": "HIGH",
          "assignee": "Operations"
        }
      ]
    }
    """
).strip()

VALIDATION_PROMPT = dedent(
    """
    POST-VALIDATION CHECKLIST (MANDATORY)

    A. Decisions
    - Substantive and non-procedural
    - Single verb-led sentence
    - No invented names
    - One mover max
    - Seconder only if explicitly stated

    B. Action Items
    - Future-oriented only and explicitly stated
    - One assignee
    - No inferred tasks from role mentions
    - Exclude already-completed actions
    - Correct priority
    - Overlaps merged

    C. Key Points
    - No decision content
    - Under 140 characters
    - Relevant only

    D. Output Integrity
    - Valid JSON only
    - No commentary or markdown
    - No empty arrays unless truly applicable
    """
).strip()

TWO_PASS_PROMPT = dedent(
    """
    TWO-PASS GENERATION PROCESS (MANDATORY)

    PASS 1: DRAFT
    - Generate a complete draft JSON internally.
    - Do NOT output this draft.

    PASS 2: VALIDATE & REGENERATE
    - Apply the validation checklist.
    - Regenerate a fully corrected JSON.

    OUTPUT RULE
    - Output ONLY the final corrected JSON.
    """
).strip()

EDIT_PROMPT_TEMPLATE = dedent(
    """
    You are an expert meeting notes editor. You will receive the current structured summary JSON and a user request. Update ONLY the fields needed to satisfy the request. Keep all other content as-is. Maintain the JSON shape exactly:
    {{
      "decisions": ["..."],
      "keyPoints": ["..."],
      "nextSteps": ["..."],
      "actionItems": [
        {{ "text": "...", "priority": "HIGH|MEDIUM|LOW", "assignee": "..." }}
      ]
    }}

    Rules:
    - Return valid JSON only.
    - Do not invent participants; if unsure, keep existing assignee or omit.
    - Priorities must be HIGH, MEDIUM, or LOW (uppercase).
    - Keep arrays; use empty arrays when nothing applies.
    - If the request conflicts with structure, prefer keeping structure valid.

    Current summary JSON:
    {summary_json}

    User request:
    {instruction}

    Respond with ONLY the updated JSON.
    """
).strip()

CHAT_PROMPT_TEMPLATE = dedent(
    """
    You are a concise, helpful meeting copilot. You can reference the current structured summary JSON. Do not invent names. If unsure, say you don't know.

    Current summary JSON:
    {summary_json}

    Chat history:
    {history}

    Reply as the assistant.
    """
).strip()


def normalize_template(template: str | None) -> str:
    """Exact match against the known templates; anything else is `default`."""
    if isinstance(template, str) and template in TEMPLATES:
        return template
    return DEFAULT_TEMPLATE


def parse_template_param(value: str | None) -> str:
    """
    Lenient parsing for user-facing inputs (API, CLI): trims, lowercases and
    resolves the legacy `*_notes` / `voice_memo` spellings before matching.
    """
    if not isinstance(value, str):
        return DEFAULT_TEMPLATE
    name = value.strip().lower()
    return normalize_template(TEMPLATE_ALIASES.get(name, name))


def summary_to_json(summary) -> str:
    return json.dumps(normalize_summary(summary), indent=2, ensure_ascii=False)


def compile_summary_prompt(transcript: str, template: str | None = None) -> str:
    if not isinstance(transcript, str) or not transcript.strip():
        raise InvalidInputError("Summary generation requires transcript text")

    sections = [
        ROLE_PROMPT,
        TEMPLATES[normalize_template(template)],
        CORE_RULES_PROMPT,
        JSON_SCHEMA_PROMPT,
        VALIDATION_PROMPT,
        TWO_PASS_PROMPT,
        f"Transcript:\n{transcript}",
    ]
    return "\n\n".join(sections).strip()


def compile_edit_prompt(summary, instruction: str) -> str:
    if not isinstance(instruction, str) or not instruction.strip():
        raise InvalidInputError("Summary edit requires an instruction")

    return EDIT_PROMPT_TEMPLATE.format(
        summary_json=summary_to_json(summary),
        instruction=instruction.strip(),
    )


def render_chat_history(history) -> str:
    return "\n".join(
        f"{message['role'].upper()}: {message['content']}"
        for message in normalize_chat_messages(history)
    )


def compile_chat_prompt(history, summary) -> str:
    return CHAT_PROMPT_TEMPLATE.format(
        summary_json=summary_to_json(summary),
        history=render_chat_history(history),
    )
