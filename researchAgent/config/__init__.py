"""Configuration for the research supervisor."""

from .settings import (
    GovernanceSettings,
    ModelRoutingSettings,
    ObservabilitySettings,
    ScopeSettings,
    Settings,
    ViewerSettings,
    get_settings,
)

__all__ = [
    "GovernanceSettings",
    "ModelRoutingSettings",
    "ObservabilitySettings",
    "ScopeSettings",
    "Settings",
    "ViewerSettings",
    "get_settings",
]
