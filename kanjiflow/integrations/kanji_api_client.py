"""
Kanji study API client.

Handles HTTP communication with the remote spaced-repetition service:
fetching the ordered card list for a deck, posting grades, deck and kanji
management, and statistics. Everything except grade posting and the study
fetch reports failure as ApiError.
"""

from __future__ import annotations

import asyncio
from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from kanjiflow.study.errors import ApiError, GradeSubmissionError, SessionLoadError
from kanjiflow.study.models import (
    DeckDetail,
    DeckSummary,
    DeckTemplate,
    Grade,
    Kanji,
    Outcome,
    StudySession,
    StudyStats,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

MAX_DECK_TITLE_LENGTH = 100


class KanjiApiClient:
    """Async HTTP client for the kanji study API."""

    def __init__(
        self,
        api_url: str,
        token: str | None = None,
        timeout_ms: int = 10000,
        retry_attempts: int = 3,
        backoff_seconds: float = 1.0,
    ):
        """
        Initialize the API client.

        Args:
            api_url: Base URL of the API (without the /api/v1 prefix)
            token: Bearer token for the Authorization header
            timeout_ms: Request timeout in milliseconds
            retry_attempts: Attempts for timeouts, transport errors and 5xx
            backoff_seconds: First retry delay; doubles on every attempt
        """
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_ms / 1000.0
        self.retry_attempts = max(1, retry_attempts)
        self.backoff_seconds = backoff_seconds
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            headers=headers,
            follow_redirects=True,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> KanjiApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Issue a request with retry logic.

        Timeouts, transport errors and 5xx responses are retried with
        exponential backoff. 4xx responses are raised immediately.

        Raises:
            httpx.HTTPError: When the request ultimately fails
        """
        url = f"{self.api_url}{path}"
        send = getattr(self.client, method)
        last_error: httpx.HTTPError | None = None

        for attempt in range(self.retry_attempts):
            wait_time = self.backoff_seconds * 2 ** attempt  # 1s, 2s, 4s
            try:
                response = await send(url, **kwargs)
                response.raise_for_status()
                return response

            except httpx.TimeoutException as e:
                last_error = e
                logger.warning(
                    "{} {} timed out on attempt {}/{}",
                    method.upper(), path, attempt + 1, self.retry_attempts,
                )

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code < 500:
                    # Don't retry on 4xx client errors
                    logger.error("{} {} rejected: {}", method.upper(), path, e.response.status_code)
                    raise
                logger.warning(
                    "{} {} server error {} on attempt {}/{}",
                    method.upper(), path, e.response.status_code, attempt + 1, self.retry_attempts,
                )

            except httpx.RequestError as e:
                last_error = e
                logger.warning(
                    "{} {} request error on attempt {}/{}: {}",
                    method.upper(), path, attempt + 1, self.retry_attempts, e,
                )

            if attempt < self.retry_attempts - 1:
                await asyncio.sleep(wait_time)

        logger.error("{} {} failed after {} attempts: {}", method.upper(), path, self.retry_attempts, last_error)
        raise last_error

    async def fetch_study_session(self, deck_id: int | str) -> StudySession:
        """
        Fetch the ordered study cards for a deck.

        The response may wrap the session in a ``session`` key or return it
        bare. An empty ``studyCards`` list is valid; a missing one is not.

        Raises:
            SessionLoadError: On API failure or a malformed payload
        """
        path = f"/api/v1/decks/{deck_id}/study"
        try:
            response = await self._request("get", path)
            data = response.json()
        except httpx.HTTPError as e:
            raise SessionLoadError(f"Failed to fetch study session for deck {deck_id}: {e}") from e
        except ValueError as e:
            raise SessionLoadError(f"Study session for deck {deck_id} is not valid JSON") from e

        if isinstance(data, dict) and isinstance(data.get("session"), dict):
            data = data["session"]
        if not isinstance(data, dict):
            raise SessionLoadError(f"Unexpected study session payload for deck {deck_id}")

        try:
            return StudySession.model_validate(data)
        except ValidationError as e:
            raise SessionLoadError(
                f"Malformed study session for deck {deck_id}: {e.error_count()} invalid field(s)"
            ) from e

    async def submit_grade(self, card_id: int, grade: Grade | str) -> dict[str, Any]:
        """
        Post one grade to the scheduler.

        Returns:
            The acknowledgement body (empty dict when the API sends none)

        Raises:
            GradeSubmissionError: If the API does not acknowledge the grade
        """
        payload = Outcome(card_id=card_id, grade=Grade.parse(grade)).to_payload()
        try:
            response = await self._request("post", "/api/v1/study/progress", json=payload)
        except httpx.HTTPError as e:
            raise GradeSubmissionError(card_id, str(e) or type(e).__name__) from e

        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    async def _call(self, method: str, path: str, action: str, **kwargs: Any) -> Any:
        """
        Issue a request and decode its JSON body (None when the body is empty).

        Raises:
            ApiError: On API failure or a body that is not JSON
        """
        try:
            response = await self._request(method, path, **kwargs)
        except httpx.HTTPStatusError as e:
            raise ApiError(
                f"Failed to {action}: {_server_message(e.response)}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ApiError(f"Failed to {action}: {str(e) or type(e).__name__}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Failed to {action}: response is not valid JSON") from e

    # ========================================
    # Decks
    # ========================================

    async def list_decks(self) -> list[DeckSummary]:
        """
        List the learner's decks.

        Raises:
            ApiError: On API failure or a malformed payload
        """
        data = await self._call("get", "/api/v1/decks", "load decks")
        return _parse_list(DeckSummary, _unwrap(data, "decks"), "deck list")

    async def get_deck(self, deck_id: int | str) -> DeckDetail:
        """
        Fetch one deck together with its kanji.

        Raises:
            ApiError: On API failure or a malformed payload
        """
        data = await self._call("get", f"/api/v1/decks/{deck_id}", f"load deck {deck_id}")
        return _parse(DeckDetail, _unwrap(data, "deck"), f"deck {deck_id}")

    async def create_deck(self, title: str, description: str | None = None) -> DeckSummary | None:
        """
        Create an empty deck.

        Returns:
            The created deck, or None when the API does not echo it back

        Raises:
            ValueError: If the title is empty or longer than 100 characters
            ApiError: On API failure
        """
        title = validate_deck_title(title)
        body: dict[str, Any] = {"title": title}
        if description and description.strip():
            body["description"] = description.strip()

        data = await self._call("post", "/api/v1/decks", "create deck", json=body)
        logger.info("Created deck {!r}", title)
        return _parse_optional(DeckSummary, _unwrap(data, "deck"), "created deck")

    async def list_templates(self) -> list[DeckTemplate]:
        """
        List the ready-made decks a learner can copy.

        Raises:
            ApiError: On API failure or a malformed payload
        """
        data = await self._call("get", "/api/v1/decks/templates", "load deck templates")
        return _parse_list(DeckTemplate, _unwrap(data, "templateDecks"), "template list")

    async def create_deck_from_template(self, template_id: int) -> DeckSummary | None:
        """
        Copy a template into a new deck owned by the learner.

        Raises:
            ApiError: On API failure
        """
        data = await self._call(
            "post",
            "/api/v1/decks/from-template",
            f"create deck from template {template_id}",
            json={"templateId": template_id},
        )
        logger.info("Created deck from template {}", template_id)
        return _parse_optional(DeckSummary, _unwrap(data, "deck"), "created deck")

    # ========================================
    # Kanji
    # ========================================

    async def search_kanji(self, query: str) -> list[Kanji]:
        """
        Search the kanji catalogue by character, meaning or reading.

        A blank query returns an empty list without calling the API.

        Raises:
            ApiError: On API failure or a malformed payload
        """
        query = query.strip()
        if not query:
            return []
        data = await self._call(
            "get", "/api/v1/kanji/search", f"search kanji for {query!r}", params={"q": query}
        )
        return _parse_list(Kanji, _unwrap(data, "kanji", "kanjis"), "kanji search results")

    async def add_kanji_to_deck(self, deck_id: int | str, kanji_id: int) -> None:
        """
        Add a kanji to a deck.

        Raises:
            ApiError: On API failure (status 409 when it is already in the deck)
        """
        await self._call(
            "post",
            f"/api/v1/decks/{deck_id}/kanji",
            f"add kanji {kanji_id} to deck {deck_id}",
            json={"kanjiId": kanji_id},
        )
        logger.info("Added kanji {} to deck {}", kanji_id, deck_id)

    async def remove_kanji_from_deck(self, deck_id: int | str, kanji_id: int) -> None:
        """
        Remove a kanji from a deck.

        Raises:
            ApiError: On API failure
        """
        await self._call(
            "delete",
            f"/api/v1/decks/{deck_id}/kanji/{kanji_id}",
            f"remove kanji {kanji_id} from deck {deck_id}",
        )
        logger.info("Removed kanji {} from deck {}", kanji_id, deck_id)

    # ========================================
    # Statistics
    # ========================================

    async def get_study_stats(self) -> StudyStats:
        """
        Fetch lifetime study statistics.

        Raises:
            ApiError: On API failure or a malformed payload
        """
        data = await self._call("get", "/api/v1/study/stats", "load statistics")
        data = _unwrap(data, "stats")
        return _parse(StudyStats, {} if data is None else data, "statistics")

    async def health_check(self) -> bool:
        """
        Check if the API is reachable.

        Returns:
            True if API is healthy, False otherwise
        """
        try:
            response = await self.client.get(
                f"{self.api_url}/health",
                timeout=5.0,
            )
            return response.status_code == 200

        except httpx.HTTPError:
            return False


def validate_deck_title(title: str) -> str:
    """Strip a deck title and check it is 1-100 characters long."""
    title = (title or "").strip()
    if not title:
        raise ValueError("Deck title is required")
    if len(title) > MAX_DECK_TITLE_LENGTH:
        raise ValueError(f"Deck title must be less than {MAX_DECK_TITLE_LENGTH} characters")
    return title


def _server_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return f"{body['message']} (HTTP {response.status_code})"
    return f"HTTP {response.status_code}"


def _unwrap(data: Any, *keys: str) -> Any:
    """Value under the first of ``keys`` present in a dict payload, else the payload."""
    if isinstance(data, dict):
        for key in keys:
            if key in data:
                return data[key]
    return data


def _parse(model: type[ModelT], data: Any, what: str) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ApiError(f"Malformed {what}: {e.error_count()} invalid field(s)") from e


def _parse_optional(model: type[ModelT], data: Any, what: str) -> ModelT | None:
    # Some endpoints acknowledge without echoing the record
    if not isinstance(data, dict) or "id" not in data:
        return None
    return _parse(model, data, what)


def _parse_list(model: type[ModelT], data: Any, what: str) -> list[ModelT]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ApiError(f"Malformed {what}: expected a list, got {type(data).__name__}")
    return [_parse(model, item, what) for item in data]
