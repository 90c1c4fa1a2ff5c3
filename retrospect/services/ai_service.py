# retrospect/services/ai_service.py

import logging
from typing import Any, Dict, List, Optional

from retrospect.core.config import settings
from retrospect.services import prompts
from retrospect.services.aggregation import PortfolioSummary
from retrospect.services.completion import CompletionGateway, ModelParams, StructuredCompletion
from retrospect.services.metrics import MetricsConfig
from retrospect.services.prompt_context import (
    build_historical_data,
    build_profile_stats,
    build_projects_context,
)

logger = logging.getLogger(__name__)

MAX_TASK_OFFER_CHARS = 3000


async def chat(
    gateway: CompletionGateway,
    messages: List[Dict[str, str]],
    summary: PortfolioSummary,
    config: MetricsConfig,
) -> str:
    context = build_projects_context(summary, config)
    system_message = {
        "role": "system",
        "content": f"{prompts.chat_system_prompt(config)}\n\n--- CURRENT PROJECTS DATA ---\n{context}",
    }
    params = ModelParams(model=settings.CHAT_MODEL, temperature=0.7, max_tokens=2000)
    reply = await gateway.complete_messages([system_message, *messages], params)
    return reply or "No response"


async def estimate(
    gateway: CompletionGateway,
    brief_text: str,
    project_type: str,
    cms: str,
    integrations: str,
    summary: PortfolioSummary,
    config: MetricsConfig,
) -> StructuredCompletion:
    user_prompt = prompts.estimate_user_prompt(
        brief_text,
        project_type,
        cms,
        integrations,
        historical_data=build_historical_data(summary) if summary.projects else "",
        profile_stats=build_profile_stats(summary) if summary.role_stats else "",
    )
    params = ModelParams(model=settings.ESTIMATE_MODEL, temperature=0.3, max_tokens=4000)
    return await gateway.complete_json(prompts.estimate_system_prompt(config), user_prompt, params)


async def parse_offer(gateway: CompletionGateway, offer_text: str) -> StructuredCompletion:
    params = ModelParams(model=settings.PARSE_OFFER_MODEL, temperature=0.2, max_tokens=3000)
    return await gateway.complete_json(
        prompts.PARSE_OFFER_SYSTEM_PROMPT,
        prompts.parse_offer_user_prompt(offer_text),
        params,
    )


async def generate_tasks(
    gateway: CompletionGateway,
    offer_text: str,
    additional_notes: Optional[str] = None,
    language: str = "en",
) -> StructuredCompletion:
    system_prompt = prompts.TASKS_SYSTEM_PROMPTS.get(language, prompts.TASKS_SYSTEM_PROMPTS["en"])
    # long offers slow the model down past what the caller will wait for
    user_prompt = prompts.tasks_user_prompt(offer_text[:MAX_TASK_OFFER_CHARS], additional_notes or "")
    params = ModelParams(model=settings.TASKS_MODEL, temperature=0.2, max_tokens=3000)
    return await gateway.complete_json(system_prompt, user_prompt, params)


def task_generation_handler(gateway: CompletionGateway):
    """Job handler for the ``tasks`` job kind."""

    async def handle(payload: Dict[str, Any]) -> StructuredCompletion:
        return await generate_tasks(
            gateway,
            payload["offer_text"],
            payload.get("additional_notes"),
            payload.get("language", "en"),
        )

    return handle
