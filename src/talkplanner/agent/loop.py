"""Agent loop implementation."""

from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from groq import AsyncGroq

from ..conversation_logger import ConversationLogger, get_conversation_logger
from ..session.models import (
    reasoning_part,
    text_part,
    tool_invocation_part,
    tool_result_part,
)
from ..tools import ToolRegistry
from .prompt import build_system_prompt, format_tool_result


class StopReason(Enum):
    """Reasons for stopping the agent loop."""

    COMPLETE = "complete"
    MAX_TURNS = "max_turns"
    REPEATED_CALL = "repeated_call"
    CONSECUTIVE_ERRORS = "consecutive_errors"


@dataclass
class AgentConfig:
    """Configuration for the agent loop."""

    model: str = "llama-3.3-70b-versatile"
    max_turns: int = 5
    max_consecutive_errors: int = 3
    max_repeated_calls: int = 2
    max_tokens: int = 2048


@dataclass
class AgentResult:
    """Result from running the agent loop.

    ``parts`` holds the assistant message parts in order: reasoning,
    tool-invocation and tool-result parts, then the final text.
    """

    response: str
    stop_reason: StopReason
    turns: int
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    parts: list[dict[str, Any]] = field(default_factory=list)


class AgentLoop:
    """Main agent loop: think → act → observe, for a bounded number of rounds."""

    def __init__(
        self,
        registry: ToolRegistry,
        config: AgentConfig | None = None,
        groq_client: AsyncGroq | None = None,
        conversation_logger: ConversationLogger | None = None,
    ) -> None:
        self.registry = registry
        self.config = config or AgentConfig()
        self.client = groq_client or AsyncGroq(api_key=os.getenv("GROQ_API_KEY"))
        self.conv_logger = conversation_logger or get_conversation_logger()
        self._last_tool_call: str | None = None
        self._repeated_count: int = 0
        self._consecutive_errors: int = 0

    def _reset_state(self) -> None:
        """Reset loop state for a new run."""
        self._last_tool_call = None
        self._repeated_count = 0
        self._consecutive_errors = 0

    def _check_repeated_call(self, tool_call: dict[str, Any]) -> bool:
        """Check if this is a repeated tool call."""
        call_sig = json.dumps(tool_call, sort_keys=True)
        if call_sig == self._last_tool_call:
            self._repeated_count += 1
            return self._repeated_count >= self.config.max_repeated_calls
        self._last_tool_call = call_sig
        self._repeated_count = 1
        return False

    async def run(
        self,
        message: str,
        session_key: str | None = None,
        history: list[dict[str, Any]] | None = None,
        profile_block: str = "",
    ) -> AgentResult:
        """Run the agent loop for a user message.

        Args:
            message: The current user message.
            session_key: Optional session identifier, used for logging.
            history: Optional conversation history to inject between
                     system prompt and current message.
            profile_block: Optional profile context for the system prompt.

        Returns:
            AgentResult with response and metadata.
        """
        self._reset_state()
        tools_schema = self.registry.get_tools_schema()

        messages: list[dict[str, Any]] = [
            {
                "role": "system",
                "content": build_system_prompt(tools_schema, profile_block),
            },
        ]

        if history:
            messages.extend(history)

        messages.append({"role": "user", "content": message})

        if session_key:
            self.conv_logger.log_user_message(session_key, message)

        tool_calls_log: list[dict[str, Any]] = []
        parts: list[dict[str, Any]] = []
        final_response = ""

        def stop(response: str, reason: StopReason, turns: int) -> AgentResult:
            if response:
                parts.append(text_part(response))
            if session_key:
                if reason is StopReason.COMPLETE:
                    self.conv_logger.log_assistant_message(session_key, response)
                self.conv_logger.log_agent_stop(
                    session_key,
                    stop_reason=reason.value,
                    turns=turns,
                    tool_calls_total=len(tool_calls_log),
                )
            return AgentResult(
                response=response,
                stop_reason=reason,
                turns=turns,
                tool_calls=tool_calls_log,
                parts=parts,
            )

        for turn in range(self.config.max_turns):
            if session_key:
                self.conv_logger.log_llm_request(
                    session_key,
                    model=self.config.model,
                    messages_count=len(messages),
                    has_tools=bool(tools_schema),
                )

            # Think: Call LLM
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                tools=tools_schema or None,
                tool_choice="auto" if tools_schema else None,
                max_tokens=self.config.max_tokens,
            )

            assistant_message = response.choices[0].message

            if session_key:
                self.conv_logger.log_llm_response(
                    session_key,
                    has_content=bool(assistant_message.content),
                    tool_calls_count=len(assistant_message.tool_calls or []),
                    finish_reason=response.choices[0].finish_reason,
                )

            reasoning = getattr(assistant_message, "reasoning", None)
            if isinstance(reasoning, str) and reasoning.strip():
                parts.append(reasoning_part(reasoning))

            if not assistant_message.tool_calls:
                # No tool calls - LLM is done
                final_response = assistant_message.content or ""
                return stop(final_response, StopReason.COMPLETE, turn + 1)

            # Only include fields accepted by Groq API
            messages.append({
                "role": assistant_message.role,
                "content": assistant_message.content,
                "tool_calls": [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.function.name,
                            "arguments": tc.function.arguments,
                        },
                    }
                    for tc in assistant_message.tool_calls
                ],
            })
            if assistant_message.content:
                final_response = assistant_message.content

            for tool_call in assistant_message.tool_calls:
                tool_name = tool_call.function.name
                try:
                    tool_args = json.loads(tool_call.function.arguments or "{}")
                except json.JSONDecodeError:
                    tool_args = {}
                if not isinstance(tool_args, dict):
                    tool_args = {}

                call_record = {"name": tool_name, "args": tool_args}
                tool_calls_log.append(call_record)
                parts.append(tool_invocation_part(tool_call.id, tool_name, tool_args))

                if session_key:
                    self.conv_logger.log_tool_call(
                        session_key,
                        tool_name=tool_name,
                        tool_args=tool_args,
                        tool_call_id=tool_call.id,
                    )

                # Circuit breaker: repeated calls
                if self._check_repeated_call(call_record):
                    return stop(
                        final_response or "Stopped: repeated tool call detected",
                        StopReason.REPEATED_CALL,
                        turn + 1,
                    )

                # Act: Execute tool
                start_time = time.time()
                result = await self.registry.dispatch(tool_name, tool_args)
                duration_ms = (time.time() - start_time) * 1000

                if session_key:
                    self.conv_logger.log_tool_result(
                        session_key,
                        tool_name=tool_name,
                        success=result.success,
                        output=result.output,
                        error=result.error,
                        tool_call_id=tool_call.id,
                        duration_ms=duration_ms,
                    )

                # Observe: Add result to conversation
                tool_response = format_tool_result(
                    tool_name, result.success, result.output, result.error
                )
                call_record["success"] = result.success
                call_record["metadata"] = result.metadata
                parts.append(
                    tool_result_part(tool_call.id, tool_name, result.success, tool_response)
                )
                messages.append({
                    "role": "tool",
                    "tool_call_id": tool_call.id,
                    "content": tool_response,
                })

                # Track errors
                if not result.success:
                    self._consecutive_errors += 1
                    if self._consecutive_errors >= self.config.max_consecutive_errors:
                        return stop(
                            f"Stopped: {self.config.max_consecutive_errors} consecutive errors",
                            StopReason.CONSECUTIVE_ERRORS,
                            turn + 1,
                        )
                else:
                    self._consecutive_errors = 0

        return stop(
            final_response or "Max turns reached",
            StopReason.MAX_TURNS,
            self.config.max_turns,
        )
