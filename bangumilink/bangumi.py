"""
Bangumi API Client
"""

import logging
from typing import List

import requests

from .base_client import DEFAULT_TIMEOUT, BaseClient
from .models import Episode, Season
from .scorer import SeasonScorer

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://api.bgm.tv"
DEFAULT_USER_AGENT = "bangumilink/0.1 (https://github.com/bangumilink/bangumilink)"

SUBJECT_TYPE_ANIME = 2
EPISODE_TYPE_MAIN = 0
EPISODE_TYPE_SPECIAL = 1

PAGE_LIMIT = 100
MAX_PAGES = 50


def _as_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_float(value) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


class BangumiClient(BaseClient):
    """Client to interact with the Bangumi v0 API"""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        use_cn: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        scorer: SeasonScorer | None = None,
    ):
        super().__init__(url, headers={"User-Agent": user_agent}, timeout=timeout)
        self.use_cn = use_cn
        self.scorer = scorer or SeasonScorer()

    def _display_name(self, item: dict) -> str | None:
        name = item.get("name")
        if not isinstance(name, str):
            return None
        name_cn = item.get("name_cn")
        if self.use_cn and isinstance(name_cn, str) and name_cn:
            return name_cn
        return name

    def search_season(self, term: str) -> Season | None:
        """
        Search an anime subject and pick the best matching season

        Args:
            term: Search keyword (may carry "Season 2"/"S2")

        Returns:
            Season, or None if the search returned nothing usable

        Raises:
            requests.exceptions.RequestException on transport or HTTP errors
        """
        logger.debug(f"Searching Bangumi for: {term}")
        data = self._post(
            "v0/search/subjects",
            {
                "keyword": term,
                "sort": "rank",
                "filter": {"type": [SUBJECT_TYPE_ANIME]},
            },
        )

        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            logger.warning("Unexpected search response from Bangumi")
            return None
        if not data["data"]:
            logger.info(f"No Bangumi result for: {term}")
            return None

        logger.debug(f"Found {len(data['data'])} search results")
        selected = self.scorer.score_and_select(data["data"], term)
        if selected is None:
            return None

        subject_id = _as_int(selected.get("id"))
        name = self._display_name(selected)
        if subject_id is None or name is None:
            return None

        platform = selected.get("platform")
        rating = selected.get("rating")
        score = 0.0
        if isinstance(rating, dict):
            score = _as_float(rating.get("score")) or 0.0

        return Season(
            id=subject_id,
            name=name,
            platform=platform if isinstance(platform, str) else "Unknown",
            eps=_as_int(selected.get("eps")) or 0,
            score=score,
        )

    def parse_episodes_page(
        self, data: dict, episode_type: int = EPISODE_TYPE_MAIN
    ) -> tuple[List[Episode], int | None, int]:
        """
        Parse one page of /v0/episodes

        Specials share sort numbers with main episodes, so items are kept only
        when their type matches; main episodes additionally need ep >= 1.

        Returns:
            Tuple of (kept episodes, total reported by the API, raw item count)
        """
        if not isinstance(data, dict):
            return [], None, 0
        total = _as_int(data.get("total"))
        items = data.get("data")
        if not isinstance(items, list):
            return [], total, 0

        min_ep = 1 if episode_type == EPISODE_TYPE_MAIN else 0
        episodes = []
        for item in items:
            if not isinstance(item, dict):
                continue
            item_type = _as_int(item.get("type"))
            ep = _as_float(item.get("ep"))
            sort = _as_float(item.get("sort"))
            name = self._display_name(item)
            if item_type is None or ep is None or sort is None or name is None:
                continue
            if item_type != episode_type or ep < min_ep:
                continue
            episodes.append(Episode(sort=sort, name=name))

        return episodes, total, len(items)

    def get_episodes(
        self, subject_id: int, episode_type: int = EPISODE_TYPE_MAIN
    ) -> List[Episode]:
        """
        Fetch every episode of a subject, following pagination

        A transport error after the first page returns what was collected so
        far; an error on the first page is raised.

        Raises:
            requests.exceptions.RequestException if the first page fails
        """
        episodes: List[Episode] = []
        offset = 0
        fetched_any = False

        for _ in range(MAX_PAGES):
            params = {"subject_id": subject_id, "limit": PAGE_LIMIT, "offset": offset}
            try:
                data = self._get("v0/episodes", params=params)
            except (requests.exceptions.RequestException, ValueError) as e:
                if fetched_any:
                    logger.warning(
                        f"Episode page at offset {offset} failed for {subject_id}, "
                        f"keeping {len(episodes)} episodes: {e}"
                    )
                    break
                raise

            page, total, raw_count = self.parse_episodes_page(data, episode_type)
            fetched_any = True
            episodes.extend(page)
            if raw_count == 0:
                break
            offset += raw_count
            if total is not None and offset >= total:
                break

        logger.debug(
            f"Fetched {len(episodes)} episodes (type {episode_type}) for subject {subject_id}"
        )
        return episodes

    def get_special_episodes(self, subject_id: int) -> List[Episode]:
        """Fetch the special episodes (type 1) of a subject"""
        return self.get_episodes(subject_id, EPISODE_TYPE_SPECIAL)

    def test_connection(self) -> bool:
        """Test the connection to the Bangumi API"""
        try:
            self._get("calendar")
            return True
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False
