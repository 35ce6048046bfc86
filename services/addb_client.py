import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import requests

from services.errors import ApiError, FatalError, TransientError
from services.models import CatalogIngredient, Drink, DrinkIngredient, SearchPage

logger = logging.getLogger(__name__)

DEFAULT_API_ROOT = "https://addb.absolutdrinks.com"
MAX_DRINKS_PER_SEARCH = 100


def _youtube_url(videos: Any) -> Optional[str]:
    for video in videos or []:
        if isinstance(video, dict) and video.get("type") == "youtube" and video.get("video"):
            return f"http://www.youtube.com/watch?v={video['video']}"
    return None


def parse_drink(data: Dict[str, Any]) -> Drink:
    return Drink(
        id=str(data.get("id") or ""),
        name=str(data.get("name") or ""),
        rating=int(data.get("rating") or 0),
        story=str(data.get("descriptionPlain") or data.get("story") or ""),
        ingredients=[
            DrinkIngredient(
                id=str(item.get("id") or ""),
                category=str(item.get("type") or ""),
                text=str(item.get("textPlain") or item.get("text") or ""),
            )
            for item in data.get("ingredients") or []
            if isinstance(item, dict)
        ],
        video_url=_youtube_url(data.get("videos")),
    )


def parse_ingredient(data: Dict[str, Any]) -> CatalogIngredient:
    return CatalogIngredient(
        id=str(data.get("id") or ""),
        name=str(data.get("name") or ""),
        category=str(data.get("type") or ""),
        description=str(data.get("description") or ""),
    )


class AddbClient:
    """Synchronous client for the drinks catalog API.

    Library failures are translated into ``services.errors`` at this boundary:
    4xx responses become ``ApiError`` (fatal), network trouble and 5xx become
    retryable failures.
    """

    def __init__(self, api_key: str, *, api_root: str = DEFAULT_API_ROOT, timeout_seconds: float = 10.0):
        if not api_key:
            raise ValueError("ADDB API key is not provided")
        self.api_key = api_key
        self.api_root = api_root.rstrip("/")
        self.timeout_seconds = float(timeout_seconds)
        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        query = {"apiKey": self.api_key}
        query.update(params or {})
        url = f"{self.api_root}{path}"
        logger.debug("ADDB GET %s %s", path, {k: v for k, v in query.items() if k != "apiKey"})
        try:
            response = self._session.get(url, params=query, timeout=self.timeout_seconds)
        except requests.Timeout as exc:
            raise TransientError(f"ADDB request timed out: {path}") from exc
        except requests.ConnectionError as exc:
            raise TransientError(f"ADDB unreachable: {exc}") from exc

        if response.status_code >= 400:
            raise ApiError(response.status_code, response.reason or "", response.text[:200] or None)
        try:
            body = response.json()
        except ValueError as exc:
            raise TransientError(f"ADDB returned a non-JSON body for {path}") from exc
        if not isinstance(body, dict):
            raise TransientError(f"ADDB returned an unexpected body for {path}")
        return body

    @staticmethod
    def _page(body: Dict[str, Any]) -> tuple:
        items = body.get("result") or []
        try:
            total = int(body.get("totalResult") or 0)
        except (TypeError, ValueError):
            total = 0
        return [item for item in items if isinstance(item, dict)], max(total, len(items))

    def get_ingredient(self, code: str) -> CatalogIngredient:
        body = self._get(f"/ingredients/{quote(str(code), safe='')}")
        if "result" in body:
            items, _ = self._page(body)
            if not items:
                raise FatalError(f"Ingredient {code!r} not found in catalog")
            body = items[0]
        ingredient = parse_ingredient(body)
        if not ingredient.id:
            raise FatalError(f"Ingredient {code!r} not found in catalog")
        return ingredient

    def find_drinks_with_any(self, codes: Iterable[str]) -> List[Drink]:
        wanted = [quote(str(code), safe="") for code in codes if code]
        if not wanted:
            return []
        body = self._get(
            "/drinks/with/" + "/or/".join(wanted),
            {"pageSize": MAX_DRINKS_PER_SEARCH},
        )
        items, _ = self._page(body)
        return [parse_drink(item) for item in items]

    def search_ingredients(self, text: str, offset: int, page_size: int) -> SearchPage:
        body = self._get(
            f"/quickSearch/ingredients/{quote(text, safe='')}",
            {"start": int(offset), "pageSize": int(page_size)},
        )
        items, total = self._page(body)
        return SearchPage(items=[parse_ingredient(item) for item in items], total=total)

    def search_drinks(self, text: str, offset: int, page_size: int) -> SearchPage:
        body = self._get(
            f"/quickSearch/drinks/{quote(text, safe='')}",
            {"start": int(offset), "pageSize": int(page_size)},
        )
        items, total = self._page(body)
        return SearchPage(items=[parse_drink(item) for item in items], total=total)
