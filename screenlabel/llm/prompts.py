"""System prompts for the classification and addiction-verification passes."""

import re
from typing import Final

from screenlabel.consts import SELF_APP_BUNDLE_ID, SELF_APP_NAME
from screenlabel.models.model_memory import AddictionOption, Memory, MemoryType
from screenlabel.models.model_provider import ScreenContext

SELECTED_PROJECT_MAX_CHARS: Final[int] = 200
USER_CAPTION_MAX_CHARS: Final[int] = 500

_WHITESPACE = re.compile(r"\s+")

_STAGE1_SCHEMA: Final[str] = """Return ONLY valid JSON matching this schema:
{
  "category": "Study" | "Work" | "Leisure" | "Chores" | "Social" | "Unknown",
  "subcategories": string[],
  "project": string | null,
  "project_progress": {
    "shown": boolean,
    "confidence": number
  },
  "potential_progress": boolean,
  "tags": string[],
  "confidence": number,
  "caption": string,
  "addiction_triage": {
    "tracking_enabled": boolean,
    "potentially_addictive": boolean,
    "candidates": Array<{
      "addiction_id": string,
      "likelihood": number,
      "evidence": string[],
      "rationale": string
    }>
  }
}"""

_CATEGORIES: Final[str] = """Categories:
- Study: Learning, courses, reading educational content, research
- Work: Professional tasks, coding, emails, documents, meetings
- Leisure: Entertainment, games, social media scrolling, videos
- Chores: Personal admin, bills, shopping, scheduling
- Social: Communication, messaging, calls
- Unknown: Cannot determine"""

_PROGRESS_TAIL_RULES: Final[str] = """- If "project_progress.shown" is false, "project_progress.confidence" MUST be 0.
- "potential_progress" is true if the user is actively working on the selected project (coding, writing docs, terminal commands, issue tracking, research, design work) but not showing a visual artifact. This is work that may lead to progress but is not yet visible to stakeholders.
- If "project_progress.shown" is true, "potential_progress" MUST be false (already confirmed progress)."""

_VISION_RULES: Final[str] = f"""Rules:
- "caption" must be a concise, descriptive title (3-8 words) describing the specific activity. Be precise: instead of "Watching a video", write "Watching 'How to Build Apps' tutorial". Instead of "Browsing website", write "Reading HN discussion on Rust". Use the provided context (app name, window title, content title) to be specific. If context provides a content title, incorporate it naturally.
- "potentially_addictive" is true if the screenshot appears to contain commonly addictive content (games, social media feeds, short-form video, gambling, porn, doomscrolling, etc).
- "tracking_enabled" must be true when TRACKED ADDICTIONS is not "none" and the screenshot is not a meta/review screen. It must be false otherwise. Meta/review screens include addiction lists, addiction definitions, trackers/analytics, settings, or reviewing prior addiction signals, even if addiction names are visible as text.
- If the screenshot is from {SELF_APP_NAME} ({SELF_APP_BUNDLE_ID}), it is a meta/review screen and "tracking_enabled" MUST be false.
- If "tracking_enabled" is false, "candidates" MUST be [].
- If "tracking_enabled" is true, "candidates" MUST be a subset of the provided addiction list (by addiction_id) and only include plausible matches.
- Be strict: if you cannot point to concrete visual signals, lower likelihood and/or omit the candidate.
- "project" must be exactly one of the provided project names, or null.
- If a "Selected project" is provided in CURRENT CONTEXT, you MUST set "project" to that exact value.
- "project_progress" describes whether this screenshot shows a visual artifact of progress for the selected "project" (something a stakeholder could see: the project's UI, design mockups, prototypes, a running app, a website/staging page).
- Do NOT require novelty. You cannot know what is "new" from a single screenshot. If it is the project's UI/prototype/design, it counts as progress evidence.
- If "project" is null, "project_progress" MUST be {{"shown": false, "confidence": 0}} and "potential_progress" MUST be false.
- Do NOT count implementation work as progress: code editors, terminals, logs, issue trackers, or Git diffs are NOT progress evidence.
- Plain text docs (Notion/Docs/Markdown) are NOT progress evidence, but text-heavy screens inside the project's UI (dashboards, analytics, journal, settings) ARE progress evidence.
{_PROGRESS_TAIL_RULES}"""

_TEXT_ONLY_RULES: Final[str] = f"""Rules:
- "caption" must be a concise, descriptive title (3-8 words) describing the specific activity. Use context and OCR text to be specific.
- Be conservative when metadata is ambiguous. If unsure, use category "Unknown" and confidence <= 0.4.
- "potentially_addictive" is true if context or OCR indicates commonly addictive content (games, social feeds, short-form video, gambling, porn, doomscrolling).
- "tracking_enabled" must be true when TRACKED ADDICTIONS is not "none" and the activity is not a meta/review screen. It must be false otherwise.
- If the activity is from {SELF_APP_NAME} ({SELF_APP_BUNDLE_ID}), it is a meta/review screen and "tracking_enabled" MUST be false.
- If "tracking_enabled" is false, "candidates" MUST be [].
- If "tracking_enabled" is true, "candidates" MUST be a subset of the provided addiction list (by addiction_id) and only include plausible matches.
- "evidence" must cite concrete phrases from OCR text and/or specific context fields.
- "project" must be exactly one of the provided project names, or null.
- If a "Selected project" is provided in CURRENT CONTEXT, you MUST set "project" to that exact value.
- "project_progress" describes whether this activity shows a stakeholder-visible artifact for the selected "project". In text-only mode, infer from app/site and titles (e.g., Figma designs, a running app page, staging site) and be conservative.
- If "project" is null, "project_progress" MUST be {{"shown": false, "confidence": 0}} and "potential_progress" MUST be false.
{_PROGRESS_TAIL_RULES}"""

_STAGE2_HEADER: Final[str] = f"""You are an addiction verifier. You must be strict and only confirm an addiction if the screenshot shows the user actually engaging in the addictive activity described by the user's definition.
Meta/review screens (addiction lists, addiction definitions, trackers/analytics, settings, or reviewing prior addiction signals) are NOT the addiction itself.

Return ONLY valid JSON matching this schema:
{{
  "decision": "none" | "confirmed" | "candidate",
  "addiction_id": string | null,
  "confidence": number,
  "evidence": string[],
  "manual_prompt": string | null
}}

Rules:
- You will be given candidate addictions as (id -> definition). You may only choose addiction_id from that list.
- Do NOT confirm based only on the addiction name appearing as text; require UI/visual evidence of the addictive activity itself.
- If you cannot confidently verify the constraints from the screenshot, do NOT confirm. Use "candidate" with a helpful "manual_prompt" explaining what the user should add to their addiction definition to make detection reliable.
- If the screenshot is from {SELF_APP_NAME} ({SELF_APP_BUNDLE_ID}), decision MUST be "none".
- "manual_prompt" must be null when decision is "none" or "confirmed".
- Keep "evidence" to short, concrete, screenshot-grounded statements.
"""


def compact_text(value: str | None, max_chars: int) -> str | None:
    """Collapse whitespace and cap length, appending an ellipsis when cut."""
    normalized = _WHITESPACE.sub(" ", value or "").strip()
    if not normalized:
        return None
    if len(normalized) <= max_chars:
        return normalized
    return f"{normalized[: max(0, max_chars - 1)]}…"


def format_screen_context(context: ScreenContext | None) -> str | None:
    """Render the known context fields as "Label: value" lines."""
    if context is None:
        return None

    parts: list[str] = []
    if context.app_name:
        parts.append(f"App: {context.app_name}")
    if context.app_bundle_id:
        parts.append(f"App bundle: {context.app_bundle_id}")
    if context.window_title:
        parts.append(f"Window: {context.window_title}")
    if context.url_host:
        parts.append(f"Site: {context.url_host}")
    if context.content_kind:
        parts.append(f"Content type: {context.content_kind.replace('_', ' ')}")
    if context.content_title:
        parts.append(f"Content title: {context.content_title}")
    selected_project = compact_text(context.selected_project, SELECTED_PROJECT_MAX_CHARS)
    if selected_project:
        parts.append(f"Selected project: {selected_project}")
    user_caption = compact_text(context.user_caption, USER_CAPTION_MAX_CHARS)
    if user_caption:
        parts.append(f"User caption: {user_caption}")

    return "\n".join(parts) if parts else None


def is_self_app(context: ScreenContext | None) -> bool:
    """Check whether a capture shows this application's own windows."""
    if context is None:
        return False
    if context.app_bundle_id and context.app_bundle_id == SELF_APP_BUNDLE_ID:
        return True
    name = SELF_APP_NAME.lower()
    if context.app_name and context.app_name.strip().lower() == name:
        return True
    return bool(context.window_title and context.window_title.strip().lower() == name)


def build_addiction_options(memories: list[Memory]) -> list[AddictionOption]:
    """Turn addiction memories into options shown to the model."""
    options: list[AddictionOption] = []
    for memory in memories:
        if memory.type != MemoryType.ADDICTION:
            continue
        about = (memory.description or "").strip()
        definition = f"{memory.content}\nAbout: {about}" if about else memory.content
        options.append(AddictionOption(id=memory.id, name=memory.content, definition=definition))
    return options


def _format_addiction_item(option: AddictionOption) -> str:
    lines = [line.strip() for line in option.definition.split("\n") if line.strip()]
    first = lines[0] if lines else option.name
    rest = lines[1:]
    if not rest:
        return f"- {option.id}: {first}"
    joined = "\n  ".join(rest)
    return f"- {option.id}: {first}\n  {joined}"


def _memory_contents(memories: list[Memory], memory_type: MemoryType) -> list[str]:
    return [m.content for m in memories if m.type == memory_type]


def build_stage1_system_prompt(
    memories: list[Memory],
    addictions: list[AddictionOption],
    context: ScreenContext | None,
    text_only: bool = False,
) -> str:
    """Build the system prompt for the first classification pass.

    Args:
        memories: All user memories (projects and preferences are listed).
        addictions: Tracked addiction options.
        context: Screen context of the capture, if any.
        text_only: Whether the model sees only metadata and OCR text, not pixels.

    Returns:
        The assembled system prompt.
    """
    if text_only:
        header = (
            "You are an intelligent screen activity classifier.\n"
            "You do NOT see screenshot pixels. You only see structured context "
            "metadata and optional OCR text."
        )
        rules = _TEXT_ONLY_RULES
    else:
        header = "You are an intelligent screen activity classifier."
        rules = _VISION_RULES

    prompt = f"{header}\n\n{_STAGE1_SCHEMA}\n\n{rules}\n\n{_CATEGORIES}"

    formatted = format_screen_context(context)
    if formatted:
        prompt += f"\n\nCURRENT CONTEXT:\n{formatted}"

    if addictions:
        items = "\n".join(_format_addiction_item(a) for a in addictions)
        prompt += f"\n\nTRACKED ADDICTIONS (id -> definition):\n{items}"
    else:
        prompt += "\n\nTRACKED ADDICTIONS: none"

    projects = _memory_contents(memories, MemoryType.PROJECT)
    if projects:
        prompt += "\n\nUSER'S ACTIVE PROJECTS:\n" + "\n".join(f"- {p}" for p in projects)

    preferences = _memory_contents(memories, MemoryType.PREFERENCE)
    if preferences:
        prompt += "\n\nUSER PREFERENCES:\n" + "\n".join(f"- {p}" for p in preferences)

    return prompt


def build_stage2_system_prompt(
    candidates: list[AddictionOption], context: ScreenContext | None
) -> str:
    """Build the system prompt for the addiction verifier."""
    if candidates:
        listing = "\n" + "\n".join(_format_addiction_item(c) for c in candidates)
    else:
        listing = "none"

    prompt = _STAGE2_HEADER
    formatted = format_screen_context(context)
    if formatted:
        prompt += f"\n\nCURRENT CONTEXT:\n{formatted}\n"

    prompt += f"\nCANDIDATE ADDICTIONS (id -> definition): {listing}"
    return prompt
