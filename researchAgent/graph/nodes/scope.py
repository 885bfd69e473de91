"""Scope phase - clarify the request, then turn it into a research brief.

clarify_with_user either asks the user one question (and the run ends until
the user answers on the same thread) or confirms what it understood.
write_research_brief condenses the conversation into the brief that seeds
the supervisor's conversation.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from langchain_core.messages import AIMessage, HumanMessage
from pydantic import BaseModel, Field

from researchAgent.events.emitter import EventEmitter
from researchAgent.graph.prompts import render_brief_prompt, render_clarify_prompt
from researchAgent.graph.state import ResearchState
from researchAgent.utils.error_handler import ModelInvocationError, handle_model_error
from shared.events import BRIEF_WRITER_TEXT, CLARIFIER_QA, HUMAN_TEXT

LOGGER = logging.getLogger(__name__)


class ClarifyWithUser(BaseModel):
    need_clarification: bool = Field(description="Whether the user must be asked a clarifying question")
    question: str = Field(default="", description="Question to ask the user")
    verification: str = Field(default="", description="Confirmation that research will start")


class ResearchQuestion(BaseModel):
    research_brief: str = Field(description="Research question guiding the research")


def _latest_human_text(state: ResearchState) -> Optional[str]:
    for message in reversed(state.get("messages", [])):
        if isinstance(message, HumanMessage):
            return str(message.content)
    return None


def build_clarify_node(
    *,
    model: Any,
    emitter: EventEmitter,
    allow_clarification: bool = True,
) -> Callable:
    """Build the clarify_with_user node.

    Args:
        model: LangChain chat model supporting ``with_structured_output``
        emitter: Event emitter shared by all nodes of the graph
        allow_clarification: When False, never ask and go straight to the brief

    Returns:
        Async function that processes ResearchState
    """
    clarifier = model.with_structured_output(ClarifyWithUser) if allow_clarification else None

    async def clarify_node(state: ResearchState) -> dict:
        request = _latest_human_text(state)
        if request is not None:
            emitter.open(HUMAN_TEXT, request, parent_id=None).finish(request)

        if clarifier is None:
            LOGGER.info("[Clarify] Clarification disabled, writing brief")
            return {"need_clarification": False}

        handle = emitter.open(CLARIFIER_QA, parent_id=None)
        handle.update({"need_clarification": False, "question": "", "verification": ""})
        try:
            result: ClarifyWithUser = await clarifier.ainvoke(
                [HumanMessage(content=render_clarify_prompt(state.get("messages", [])))]
            )
        except Exception as e:
            LOGGER.error(f"[Clarify] Model failed: {e}")
            handle.fail(f"Clarification failed: {handle_model_error(e)}")
            raise ModelInvocationError(str(e), user_message=handle_model_error(e)) from e

        handle.finish(result.model_dump())
        if result.need_clarification:
            LOGGER.info("[Clarify] Asking the user a clarifying question")
            return {"need_clarification": True, "messages": [AIMessage(content=result.question)]}

        LOGGER.info("[Clarify] Request is clear")
        return {"need_clarification": False, "messages": [AIMessage(content=result.verification)]}

    return clarify_node


def build_brief_node(*, model: Any, emitter: EventEmitter) -> Callable:
    """Build the write_research_brief node."""
    writer = model.with_structured_output(ResearchQuestion)

    async def brief_node(state: ResearchState) -> dict:
        handle = emitter.open(BRIEF_WRITER_TEXT, "", parent_id=None)
        try:
            result: ResearchQuestion = await writer.ainvoke(
                [HumanMessage(content=render_brief_prompt(state.get("messages", [])))]
            )
        except Exception as e:
            LOGGER.error(f"[Brief] Model failed: {e}")
            handle.fail(f"Brief generation failed: {handle_model_error(e)}")
            raise ModelInvocationError(str(e), user_message=handle_model_error(e)) from e

        brief = result.research_brief.strip()
        handle.finish(brief)
        LOGGER.info(f"[Brief] Research brief written ({len(brief)} chars)")
        return {
            "research_brief": brief,
            "supervisor_messages": [HumanMessage(content=brief)],
        }

    return brief_node


__all__ = ["ClarifyWithUser", "ResearchQuestion", "build_brief_node", "build_clarify_node"]
