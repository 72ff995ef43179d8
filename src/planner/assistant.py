"""Remote chat assistant client with a local intent-parser fallback."""
from __future__ import annotations

import json
import logging
import random
import re
from functools import lru_cache
from typing import List, Optional, Sequence

import httpx
from pydantic import ValidationError

from .actions import action_from_wire
from .intents import IntentParser, ParseOutcome
from .schemas import ActionOut, HistoryItem
from .settings import get_settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an AI assistant that helps manage a calendar and todo list.
Extract relevant information from the user's message to perform actions like:
1. Adding a task to the todo list: look for phrases like "add task", "add todo", "create task", followed by the task description.
2. Adding an event to the calendar: look for phrases like "add event", "schedule", "create event", followed by the event title and date/time.

If you detect such an action, include it in a structured format in your response like this:
{"action": {"type": "ADD_TODO", "data": {"title": "Task title"}}}
or
{"action": {"type": "ADD_EVENT", "data": {"title": "Event title", "date": "ISO date string"}}}

Always be helpful, concise, and friendly in your responses."""

_ACTION_BLOCK = re.compile(r"\{[\s\S]*\"action\"[\s\S]*\}")


class AssistantUnavailable(Exception):
    """The remote assistant could not produce a usable reply."""


def _to_messages(message: str, history: Sequence[HistoryItem]) -> List[dict]:
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    for item in history:
        role = "user" if item.sender == "user" else "assistant"
        messages.append({"role": role, "content": item.text})
    messages.append({"role": "user", "content": message})
    return messages


def split_action(content: str) -> ParseOutcome:
    """
    Separate an embedded ``{"action": ...}`` JSON block from assistant text.

    A block that does not describe a valid action is dropped and logged; the
    remaining text is still returned as the reply.
    """
    match = _ACTION_BLOCK.search(content)
    if not match:
        return ParseOutcome(reply=content.strip())

    reply = (content[: match.start()] + content[match.end():]).strip()
    try:
        payload = json.loads(match.group(0))
        action = action_from_wire(ActionOut.model_validate(payload["action"]))
    except (ValueError, KeyError, TypeError, ValidationError) as e:
        logger.warning("Discarding malformed action from assistant: %s", e)
        return ParseOutcome(reply=reply)
    return ParseOutcome(reply=reply, action=action)


# PUBLIC_INTERFACE
class RemoteAssistant:
    """
    Client for an OpenAI-compatible chat completion API.

    Args:
        base_url: API root, e.g. 'https://api.deepseek.com/v1'
        api_key: bearer token
        model: model name
        timeout: request timeout in seconds
        client: optional pre-built AsyncClient (tests pass one with a mock transport)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str = "deepseek-chat",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ask(self, message: str, history: Sequence[HistoryItem] = ()) -> ParseOutcome:
        """
        Send a message and return the reply with any embedded action.

        Raises:
            AssistantUnavailable: on transport errors, timeouts, non-2xx
                responses or a response without a message.
        """
        payload = {
            "model": self.model,
            "messages": _to_messages(message, history),
            "max_tokens": 1000,
            "temperature": 0.7,
        }
        client = await self.get_client()
        try:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=self.headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except httpx.HTTPError as e:
            raise AssistantUnavailable(f"assistant request failed: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AssistantUnavailable(f"unexpected assistant response: {e}") from e

        if not isinstance(content, str):
            raise AssistantUnavailable("assistant response has no text content")
        return split_action(content)


# PUBLIC_INTERFACE
class ChatService:
    """
    Answers chat messages through the remote assistant when one is configured,
    falling back to the local intent parser whenever the remote call fails.
    """

    def __init__(self, parser: IntentParser, remote: Optional[RemoteAssistant] = None) -> None:
        self.parser = parser
        self.remote = remote

    async def respond(self, message: str, history: Sequence[HistoryItem] = ()) -> ParseOutcome:
        if self.remote is not None:
            try:
                return await self.remote.ask(message, history)
            except AssistantUnavailable as e:
                logger.warning("Remote assistant unavailable, using local parser: %s", e)
        return self.parser.parse(message, history)

    async def close(self) -> None:
        if self.remote is not None:
            await self.remote.close()


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_chat_service() -> ChatService:
    """Return the process-wide chat service built from settings."""
    settings = get_settings()
    rng = random.Random(settings.random_seed)
    remote = None
    if settings.assistant_enabled:
        remote = RemoteAssistant(
            base_url=settings.assistant_api_url,
            api_key=settings.assistant_api_key or "",
            model=settings.assistant_model,
            timeout=settings.assistant_timeout,
        )
    return ChatService(parser=IntentParser(rng=rng), remote=remote)
