"""Model wiring using environment-derived settings.

Turns the two model slots of ModelRoutingSettings (supervisor, researcher)
into ChatOpenAI clients. Any OpenAI-compatible endpoint works through the
``*_URL`` settings.
"""

from __future__ import annotations

from typing import Dict, Optional, TypedDict

from langchain_openai import ChatOpenAI

from researchAgent.config.settings import Settings


class ModelConfig(TypedDict):
    id: str
    api_key: Optional[str]
    base_url: Optional[str]


def resolve_model_configs(settings: Settings) -> Dict[str, ModelConfig]:
    """Normalized model configs (id + credentials) for the supervisor and researcher slots."""
    models = settings.models
    return {
        "supervisor": {
            "id": models.supervisor,
            "api_key": models.supervisor_api_key,
            "base_url": models.supervisor_base_url,
        },
        "researcher": {
            "id": models.researcher,
            "api_key": models.researcher_api_key or models.supervisor_api_key,
            "base_url": models.researcher_base_url or models.supervisor_base_url,
        },
    }


def _chat_kwargs(config: ModelConfig) -> Dict[str, object]:
    if not config["api_key"]:
        raise RuntimeError(f"Missing API key for model {config['id']}, please configure it in .env")
    kwargs: Dict[str, object] = {"model": config["id"], "api_key": config["api_key"], "temperature": 0.2}
    if config["base_url"]:
        kwargs["base_url"] = config["base_url"]
    return kwargs


def build_chat_model(settings: Settings, slot: str) -> ChatOpenAI:
    """Construct the ChatOpenAI client of a model slot.

    Raises:
        KeyError: unknown slot
        RuntimeError: the slot has no API key
    """
    configs = resolve_model_configs(settings)
    if slot not in configs:
        raise KeyError(f"Model slot {slot} is not configured")
    return ChatOpenAI(**_chat_kwargs(configs[slot]))


__all__ = ["ModelConfig", "build_chat_model", "resolve_model_configs"]
