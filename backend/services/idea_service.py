"""
Idea Service - example prompts suggested by the model, with a static fallback
"""

from __future__ import annotations

import asyncio
import json
import logging

import aiohttp

from models.ideas import IdeaChip, IdeaFetchResult

from .llm_service import UTILITY_MODEL, LLMService, LLMServiceError
from .prompt_builder import IDEAS_PROMPT

logger = logging.getLogger(__name__)

MAX_IDEAS = 5

FALLBACK_IDEAS: list[IdeaChip] = [
    IdeaChip(
        short="Email Automation",
        long="Create a script that automatically sends personalized emails to a list of recipients from a "
        "spreadsheet. The email should include their name, company, and a custom message based on their role.",
    ),
    IdeaChip(
        short="Data Cleaner",
        long="Build a script that cleans data in a spreadsheet by removing duplicates, fixing formatting issues, "
        "and standardizing text entries like names, addresses, and phone numbers.",
    ),
    IdeaChip(
        short="Calendar Scheduler",
        long="Create a script that automatically schedules events in Google Calendar based on data in a "
        "spreadsheet. Include functionality to avoid scheduling conflicts and send notifications.",
    ),
    IdeaChip(
        short="Invoice Generator",
        long="Develop a script that generates PDF invoices based on order data in a spreadsheet. The invoice "
        "should include company logo, line items, taxes, and payment information.",
    ),
    IdeaChip(
        short="Form Response Handler",
        long="Create a script that processes Google Form responses, categorizes them based on specific criteria, "
        "and sends automated follow-up emails to respondents based on their answers.",
    ),
    IdeaChip(
        short="Inventory Tracker",
        long="Build an inventory management script that tracks stock levels, sends alerts when items are low, "
        "and generates purchase orders automatically based on predefined thresholds.",
    ),
    IdeaChip(
        short="Project Dashboard",
        long="Create a script that generates a visual dashboard from project data in a spreadsheet. Include "
        "progress bars, status indicators, and deadline trackers that update automatically.",
    ),
    IdeaChip(
        short="Expense Approver",
        long="Develop a script that routes expense reports for approval, sends reminder emails to approvers, "
        "and updates status in the spreadsheet when approved or rejected.",
    ),
]


def _is_complete(entry) -> bool:
    return (
        isinstance(entry, dict)
        and isinstance(entry.get("short"), str)
        and isinstance(entry.get("long"), str)
        and bool(entry["short"].strip())
        and bool(entry["long"].strip())
    )


def parse_ideas(content: str) -> IdeaFetchResult:
    """Validate the model's JSON answer and turn it into at most five chips"""
    try:
        ideas = json.loads(content)
    except json.JSONDecodeError:
        logger.warning("Error parsing idea JSON: %.200s", content)
        return IdeaFetchResult(success=False, error="Failed to parse generated ideas")

    if not isinstance(ideas, list) or len(ideas) == 0 or not _is_complete(ideas[0]):
        logger.warning("Invalid idea format returned: %.200s", content)
        return IdeaFetchResult(success=False, error="Generated ideas have invalid format")

    chips = [
        IdeaChip(short=entry["short"].strip(), long=entry["long"].strip())
        for entry in ideas
        if _is_complete(entry)
    ]
    return IdeaFetchResult(success=True, ideas=chips[:MAX_IDEAS])


class IdeaService:
    """Asks Gemini for a handful of example prompts"""

    def __init__(self, llm_service: LLMService):
        self.llm_service = llm_service

    async def fetch_ideas(self, api_key: str | None) -> IdeaFetchResult:
        try:
            content = await self.llm_service.generate_text(
                api_key or "",
                UTILITY_MODEL,
                [IDEAS_PROMPT],
                temperature=0.8,
                maxOutputTokens=1024,
                response_mime_type="application/json",
            )
        except LLMServiceError as e:
            return IdeaFetchResult(success=False, error=str(e))
        except asyncio.TimeoutError:
            return IdeaFetchResult(success=False, error="Request timed out")
        except (aiohttp.ClientError, ValueError) as e:
            return IdeaFetchResult(success=False, error=str(e) or e.__class__.__name__)

        return parse_ideas(content)

    async def ideas_or_fallback(self, api_key: str | None) -> tuple[list[IdeaChip], bool]:
        """(ideas, from_model); failures only show up as the fallback set"""
        result = await self.fetch_ideas(api_key)
        if result.success and result.ideas:
            return result.ideas, True
        logger.info("Using fallback ideas: %s", result.error)
        return list(FALLBACK_IDEAS), False
