"""
Season scoring system for Bangumi search results
Separates selection logic from the HTTP client for better testability
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_CHINESE_SEASON_MARKERS = [
    (("第二季", "第2季"), 2),
    (("第三季", "第3季"), 3),
    (("第四季", "第4季"), 4),
    (("第五季", "第5季"), 5),
]
_SEASON_WORD_RE = re.compile(r"season[ \-_]*(\d+)", re.IGNORECASE)
_S_MARKER_RE = re.compile(r"[Ss](\d+)")


def season_from_text(text: str) -> int:
    """
    Infer the season a title refers to

    Recognizes 第二季/第2季, "Season 2" and S2; defaults to 1.
    """
    if not text:
        return 1

    for markers, season in _CHINESE_SEASON_MARKERS:
        if any(marker in text for marker in markers):
            return season

    match = _SEASON_WORD_RE.search(text)
    if match and int(match.group(1)) > 0:
        return int(match.group(1))

    for match in _S_MARKER_RE.finditer(text):
        if int(match.group(1)) > 0:
            return int(match.group(1))

    return 1


@dataclass
class ScoringWeights:
    """Configurable weights for season scoring"""

    season_match: int = 15
    season_mismatch: int = 10  # subtracted
    tv_platform: int = 20
    has_episodes: int = 10
    has_rating: int = 5
    unlocked: int = 3


class SeasonScorer:
    """
    Scores Bangumi search results against a search term

    Prefers TV entries with a known episode count whose title agrees with
    the season number requested in the term, so that a sequel is not picked
    for a first season (and the other way round).
    """

    def __init__(self, weights: ScoringWeights | None = None, verbose: bool = False):
        self.weights = weights or ScoringWeights()
        self.verbose = verbose

    def score_candidate(self, candidate: dict, desired_season: int) -> int:
        """Calculate score for a single search result"""
        w = self.weights
        score = 0

        title = candidate.get("name_cn") or candidate.get("name") or ""
        if not isinstance(title, str):
            title = ""
        if season_from_text(title) == desired_season:
            score += w.season_match
        else:
            score -= w.season_mismatch

        if candidate.get("platform") == "TV":
            score += w.tv_platform

        eps = candidate.get("eps")
        if isinstance(eps, int) and not isinstance(eps, bool) and eps > 0:
            score += w.has_episodes

        if isinstance(candidate.get("rating"), dict):
            score += w.has_rating

        if candidate.get("locked") is False:
            score += w.unlocked

        return score

    def score_and_select(self, candidates: list, term: str) -> dict | None:
        """
        Score search results and select the best one

        Args:
            candidates: "data" items of a /v0/search/subjects response
            term: Search term the candidates were returned for

        Returns:
            Best candidate dict, or the first candidate if none scored above -1
        """
        candidates = [c for c in candidates if isinstance(c, dict)]
        if not candidates:
            return None

        desired = season_from_text(term)
        best = None
        best_score = -1

        for candidate in candidates:
            score = self.score_candidate(candidate, desired)
            if self.verbose:
                logger.info(
                    f"[VERBOSE] Candidate: {candidate.get('name_cn') or candidate.get('name')} (score: {score})"
                )
            if score > best_score:
                best_score = score
                best = candidate

        if best is None:
            best = candidates[0]

        logger.debug(f"Selected best match (score: {best_score})")
        return best
