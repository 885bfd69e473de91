"""Prompts of the scope phase (clarification and research brief).

The supervisor and researcher prompts live next to their nodes; these two are
shared by the scope nodes and the scope tests, so they sit here.
"""

from datetime import datetime, timezone
from typing import Sequence

from langchain_core.messages import BaseMessage, get_buffer_string


def get_today_str() -> str:
    return datetime.now(timezone.utc).strftime("%a %b %d, %Y")


CLARIFY_WITH_USER_PROMPT = """These are the messages exchanged so far with the user asking for a research report:
<Messages>
{messages}
</Messages>

Today's date is {date}.

Assess whether you need to ask a clarifying question, or if the user has already provided
enough information to start the research.
IMPORTANT: If the message history shows you already asked a clarifying question, almost always
proceed without asking another one. Only ask again if ABSOLUTELY NECESSARY.

If there are acronyms, abbreviations, or unknown terms, ask the user to clarify them.
If you ask a question:
- Be concise while gathering all necessary information
- Use bullet points or numbered lists where they help
- Do not ask for information the user already provided

Respond with:
- need_clarification: true if a question is needed, false otherwise
- question: the question to ask the user (empty when no clarification is needed)
- verification: a short message confirming that research will start, restating the key
  points you understood (empty when a question is asked)
"""


RESEARCH_BRIEF_PROMPT = """You will be given the messages exchanged so far with the user.
Translate them into a detailed, concrete research question that will guide the research.

<Messages>
{messages}
</Messages>

Today's date is {date}.

Guidelines:
1. Include every detail and preference the user gave (scope, sources, time frame, format).
2. If a dimension matters but the user left it open, say it is open-ended; do not invent
   constraints the user never stated.
3. Phrase the request in the first person, from the user's perspective.
4. Prefer primary and official sources where the topic has them.

Respond with research_brief: the research question.
"""


def render_clarify_prompt(messages: Sequence[BaseMessage]) -> str:
    return CLARIFY_WITH_USER_PROMPT.format(messages=get_buffer_string(list(messages)), date=get_today_str())


def render_brief_prompt(messages: Sequence[BaseMessage]) -> str:
    return RESEARCH_BRIEF_PROMPT.format(messages=get_buffer_string(list(messages)), date=get_today_str())


__all__ = [
    "CLARIFY_WITH_USER_PROMPT",
    "RESEARCH_BRIEF_PROMPT",
    "get_today_str",
    "render_brief_prompt",
    "render_clarify_prompt",
]
