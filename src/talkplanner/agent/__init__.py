"""Agent loop, prompts and intent detection."""

from .intent import Intent, IntentKind, classify, detect_injection, extract_handle
from .loop import AgentConfig, AgentLoop, AgentResult, StopReason
from .prompt import build_profile_block, build_system_prompt

__all__ = [
    "AgentConfig",
    "AgentLoop",
    "AgentResult",
    "Intent",
    "IntentKind",
    "StopReason",
    "build_profile_block",
    "build_system_prompt",
    "classify",
    "detect_injection",
    "extract_handle",
]
