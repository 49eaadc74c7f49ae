import json
import logging
from typing import List, Optional, Tuple

import httpx
from pydantic import ValidationError

from core.config import settings
from models.task import TaskPattern

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a goal achievement assistant. Generate 5 specific, actionable DAILY tasks "
    "(3 positive, 2 negative) for the given goal. These tasks should be things someone can do "
    "every day to work towards their goal. Return only a JSON array with objects containing: "
    "description, type (positive/negative), and points (10-50 for positive, -10 to -30 for negative). "
    "Make tasks daily habits, not one-time actions."
)


class SuggestionError(Exception):
    pass


def fallback_suggestions(goal_title: str) -> List[TaskPattern]:
    """Canned daily tasks used whenever the AI service cannot be used."""
    positive = [
        TaskPattern(type="positive", description=f"Work on {goal_title} for 30 minutes", points=25),
        TaskPattern(type="positive", description=f"Research strategies for {goal_title}", points=15),
        TaskPattern(type="positive", description=f"Plan next steps for {goal_title}", points=20),
        TaskPattern(type="positive", description=f"Practice skills related to {goal_title}", points=30),
        TaskPattern(type="positive", description=f"Track progress on {goal_title}", points=10),
    ]
    negative = [
        TaskPattern(type="negative", description=f"Procrastinate on {goal_title}", points=15),
        TaskPattern(type="negative", description=f"Skip planned work on {goal_title}", points=20),
        TaskPattern(type="negative", description=f"Get distracted from {goal_title}", points=10),
        TaskPattern(type="negative", description=f"Make excuses about {goal_title}", points=25),
    ]
    return positive[:3] + negative[:2]


def _strip_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        if content.rstrip().endswith("```"):
            content = content.rstrip()[:-3]
    return content.strip()


def parse_suggestions(content: str) -> List[TaskPattern]:
    try:
        items = json.loads(_strip_fences(content))
    except ValueError as e:
        raise SuggestionError(f"Response is not JSON: {e}") from e
    if not isinstance(items, list) or not items:
        raise SuggestionError("Response is not a non-empty JSON array")
    try:
        return [TaskPattern.model_validate(item) for item in items]
    except ValidationError as e:
        raise SuggestionError(f"Invalid task in response: {e}") from e


class TaskSuggester:
    """Chat-completion client that turns a goal into daily task suggestions."""

    def __init__(self, api_url: Optional[str] = None, model: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = api_url or settings.AI_API_URL
        self.model = model or settings.AI_MODEL
        self.transport = transport

    async def suggest(self, api_key: str, goal_title: str, goal_description: str) -> List[TaskPattern]:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Goal: {goal_title}\nDescription: {goal_description}\n\n"
                    "Generate daily recurring tasks that will help achieve this goal. "
                    "These should be daily habits or actions.",
                },
            ],
            "max_tokens": settings.AI_MAX_TOKENS,
        }
        async with httpx.AsyncClient(timeout=settings.AI_TIMEOUT_SECONDS, transport=self.transport) as client:
            r = await client.post(self.api_url, headers=headers, json=payload)
            r.raise_for_status()
            data = r.json()
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise SuggestionError("Unexpected completion payload") from e
        return parse_suggestions(content)


async def suggest_or_fallback(
    suggester: TaskSuggester, api_key: Optional[str], goal_title: str, goal_description: str
) -> Tuple[List[TaskPattern], str]:
    """
    Returns (suggestions, source) where source is 'ai' or 'fallback'.
    Never raises: any failure of the AI call falls back to the canned list.
    """
    if api_key:
        try:
            return await suggester.suggest(api_key, goal_title, goal_description), "ai"
        except Exception as e:
            logger.warning("Task suggestion service failed, using fallback tasks: %s", e)
    return fallback_suggestions(goal_title), "fallback"
