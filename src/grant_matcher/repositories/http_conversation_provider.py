"""HTTP conversation provider.

The entity-matching API hosts the conversational intake: each message is
answered by a language model that also returns "insights" (category plus
free text). This provider folds those insights into the extracted-attribute
payload understood by ``apply_extracted_attributes``.
"""

import re
from typing import Any

import httpx
import structlog

from grant_matcher.config import settings
from grant_matcher.errors import CollaboratorUnavailableError
from grant_matcher.protocols import ConversationReply

from .http_errors import raise_for_collaborator_status, transport_error

logger = structlog.get_logger(__name__)

COLLABORATOR = "conversation"

# Number of insights after which the intake is considered complete
PROFILE_COMPLETE_INSIGHTS = 5

_EIN_RE = re.compile(r"\bEIN\b", re.IGNORECASE)

SYSTEM_PROMPT = (
    "You are helping a nonprofit organization build its grant-seeking profile. "
    "Ask friendly questions to learn its mission, organization type and EIN, "
    "the areas it serves, its funding focus and its annual budget. "
    "Extract each fact you learn as a categorized insight."
)


def insights_to_attributes(insights: list[dict[str, Any]] | None) -> dict[str, Any]:
    """Map ``newInsights`` items onto profile attribute names."""
    extracted: dict[str, Any] = {}
    for insight in insights or []:
        if not isinstance(insight, dict):
            continue
        category = str(insight.get("category") or "").lower()
        text = str(insight.get("insight") or "").strip()
        if not text:
            continue

        if category in ("organization", "nonprofit"):
            lowered = text.lower()
            if "mission" in lowered:
                extracted["mission_statement"] = text
            if _EIN_RE.search(text):
                extracted["ein"] = text
            if "type" in lowered:
                extracted["organization_type"] = text
        elif category in ("service", "area"):
            extracted.setdefault("service_areas", []).append(text)
        elif category in ("funding", "category"):
            extracted.setdefault("funding_categories", []).append(text)
        elif category in ("budget", "financial"):
            extracted["annual_budget"] = text
    return extracted


class HttpConversationProvider:
    """Conversation collaborator over HTTP.

    Satisfies the ConversationProvider protocol through structural typing.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    @classmethod
    def create(cls) -> "HttpConversationProvider | None":
        """Build a provider from settings, or None when no URL is configured."""
        if not settings.conversation_url:
            return None
        return cls(base_url=settings.conversation_url, api_key=settings.vector_search_api_key)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Ocp-Apim-Subscription-Key": self._api_key} if self._api_key else {}
            self._client = httpx.AsyncClient(base_url=self._base_url, headers=headers, timeout=self._timeout)
        return self._client

    async def send_message(self, entity_id: str, message: str) -> ConversationReply:
        body = {"message": message, "systemPrompt": SYSTEM_PROMPT}
        try:
            response = await self.client.post(f"/entities/{entity_id}/conversation", json=body)
        except httpx.HTTPError as e:
            raise transport_error(COLLABORATOR, e) from e
        raise_for_collaborator_status(COLLABORATOR, response)

        try:
            data = response.json()
        except ValueError as e:
            raise CollaboratorUnavailableError(COLLABORATOR, "response was not valid JSON") from e
        if not isinstance(data, dict):
            data = {}

        insights = data.get("newInsights") or []
        logger.info("conversation_turn_completed", entity_id=entity_id, insights=len(insights))
        return ConversationReply(
            reply=str(data.get("aiResponse") or ""),
            extracted_attributes=insights_to_attributes(insights),
            profile_complete=len(insights) >= PROFILE_COMPLETE_INSIGHTS,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
