"""
AI helpers: category suggestion, priority suggestions and the student assistant.

Each helper is one request/response call to Claude. Replies are parsed as JSON
and validated with pydantic. Failures are not retried; they are raised as
AIServiceConfigurationError when the account or key is the problem, and as
AIServiceError otherwise.
"""
import json
import logging
from datetime import datetime
from typing import Iterable, Optional

import anthropic
from pydantic import BaseModel, ValidationError

import config
from errors import AIServiceConfigurationError, AIServiceError
from models import (
    AssistantReply,
    AssistantRequest,
    AssistantTaskType,
    CategorySuggestion,
    PrioritySuggestions,
    Task,
)
from prompts import (
    ASSISTANT_CONTEXT_TEMPLATE,
    ASSISTANT_HISTORY_TEMPLATE,
    ASSISTANT_INQUIRY_TEMPLATE,
    ASSISTANT_PROMPT,
    CATEGORY_PROMPT,
    PRIORITY_PROMPT,
)

logger = logging.getLogger(__name__)

MAX_PRIORITY_SUGGESTIONS = 5

# Substrings (lowercased) that point at account or key setup rather than a transient failure.
CONFIGURATION_ERROR_MARKERS = (
    "api_key_service_blocked",
    "service_disabled",
    "permission_denied",
    "permission",
    "quota",
    "billing",
    "credit balance",
    "invalid x-api-key",
)

CONFIGURATION_ERROR_MESSAGE = (
    "AI service error for {feature}: your API key may be invalid or blocked, usage limits "
    "may be exhausted, or billing is not set up for your account. Please check your AI "
    "provider console settings."
)

_client: Optional[anthropic.AsyncAnthropic] = None


def get_client() -> anthropic.AsyncAnthropic:
    global _client
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=config.ANTHROPIC_API_KEY)
    return _client


def is_configuration_error(error: Exception) -> bool:
    if isinstance(error, (
        anthropic.AuthenticationError,
        anthropic.PermissionDeniedError,
        anthropic.RateLimitError,
    )):
        return True
    text = str(error).lower()
    return any(marker in text for marker in CONFIGURATION_ERROR_MARKERS)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code block if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]  # Remove last line (```)
        text = "\n".join(lines)
    return text


async def _complete(prompt: str, feature: str) -> str:
    api_key = config.ANTHROPIC_API_KEY
    if not api_key or api_key == "your-api-key-here":
        raise AIServiceConfigurationError(f"AI service error for {feature}: API key not configured.")

    try:
        response = await get_client().messages.create(
            model=config.AI_MODEL,
            max_tokens=config.AI_MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.APIError as e:
        if is_configuration_error(e):
            logger.error("AI %s failed (service configuration likely): %s", feature, e)
            raise AIServiceConfigurationError(CONFIGURATION_ERROR_MESSAGE.format(feature=feature)) from e
        logger.error("AI %s failed: %s", feature, e)
        raise AIServiceError(f"An unexpected error occurred while trying to get {feature}.") from e

    text = "".join(block.text for block in response.content if getattr(block, "type", "text") == "text")
    logger.debug("AI %s response: %s", feature, text)
    return text


def _parse(text: str, model: type[BaseModel], feature: str):
    try:
        return model.model_validate(json.loads(strip_code_fence(text)))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error("AI %s returned an unusable response: %s", feature, e)
        raise AIServiceError(f"The AI returned an invalid response for {feature}.") from e


async def suggest_category(description: str) -> CategorySuggestion:
    feature = "category suggestion"
    text = await _complete(CATEGORY_PROMPT.format(description=description.strip()), feature)
    return _parse(text, CategorySuggestion, feature)


def format_task_list(tasks: Iterable[Task]) -> str:
    lines = []
    for task in tasks:
        due = task.due_date.isoformat() if task.due_date else "none"
        lines.append(
            f'- Task ID: {task.id}, Description: "{task.display_text}", Due: {due}, Category: {task.category.value}'
        )
    return "\n".join(lines)


async def suggest_priorities(tasks: Iterable[Task], today: Optional[datetime] = None) -> PrioritySuggestions:
    """
    Ask which pending tasks to tackle first.
    Completed and trashed tasks are not sent. With nothing pending the model is
    not called. Suggestions carry the task's text, "Unknown Task" when the
    model names an id that is not in the list, and are capped at five.
    """
    pending = [task for task in tasks if not task.is_completed and not task.is_trashed]
    if not pending:
        return PrioritySuggestions(suggestions=[])

    feature = "priority suggestions"
    today = today or datetime.now()
    prompt = PRIORITY_PROMPT.format(today=today.strftime("%Y-%m-%d"), task_list=format_task_list(pending))
    result = _parse(await _complete(prompt, feature), PrioritySuggestions, feature)

    by_id = {task.id: task for task in pending}
    suggestions = []
    for suggestion in result.suggestions[:MAX_PRIORITY_SUGGESTIONS]:
        task = by_id.get(suggestion.task_id)
        suggestions.append(suggestion.model_copy(
            update={"description": task.display_text if task else "Unknown Task"}
        ))
    return PrioritySuggestions(suggestions=suggestions)


def build_assistant_prompt(request: AssistantRequest) -> str:
    parts = [ASSISTANT_PROMPT.format(), "\n\n"]
    if request.original_task_context:
        parts.append(ASSISTANT_CONTEXT_TEMPLATE.format(task_context=request.original_task_context.strip()))
    if request.conversation_history:
        history = "\n".join(
            f"{'Student' if message.role == 'user' else 'Assistant'}: {message.content}"
            for message in request.conversation_history
        )
        parts.append(ASSISTANT_HISTORY_TEMPLATE.format(history=history))
    parts.append(ASSISTANT_INQUIRY_TEMPLATE.format(inquiry=request.current_inquiry.strip()))
    return "".join(parts)


async def get_assistance(request: AssistantRequest) -> AssistantReply:
    if not request.current_inquiry.strip():
        return AssistantReply(
            assistant_response="Please provide a task or question.",
            identified_task_type=AssistantTaskType.UNKNOWN,
        )
    feature = "assistant response"
    text = await _complete(build_assistant_prompt(request), feature)
    return _parse(text, AssistantReply, feature)
