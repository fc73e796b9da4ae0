"""
Text heuristics for folder names: season numbers, search terms, custom rules
"""

import logging
import re

logger = logging.getLogger(__name__)

CHINESE_SEASONS = {
    "第一": 1,
    "第二": 2,
    "第三": 3,
    "第四": 4,
    "第五": 5,
    "第六": 6,
    "第七": 7,
    "第八": 8,
    "第九": 9,
    "第十": 10,
}

# Removed once each, in order, from extracted search terms
QUALITY_PATTERNS = [
    " 1080p", " 1080P", " 720p", " 720P", " 480p", " 480P", " 2160p", " 4K",
    " HEVC", " H.265", " H265", " AVC", " H.264", " H264", " x264", " x265",
    " 10-bit", " 10bit", " 8-bit", " 8bit", "--10bit", " -10bit", " BDRip", " BDrip",
    " WEB-DL", " WEBDL", " BluRay", " Blu-ray", " AAC", " FLAC", " DTS", " AC3",
    " CHT", " CHS", " GB", " BIG5", "[Baha]", "[Bdrip]", "[WEB-DL]", "[BDRip]",
    " Baha", "[Fin]", " [Fin]", " -",
]

MAX_SEASON = 255

_S_MARKER_RE = re.compile(r"[Ss](\d+)")
_SEASON_WORD_RE = re.compile(r"season[ _\-]*(\d+)", re.IGNORECASE)
_DIR_SEASON_WORD_RE = re.compile(r"season *(\d+)", re.IGNORECASE)
_CHINESE_DIGIT_SEASON_RE = re.compile(r"第(\d+)")
_SPECIAL_MARKER_RE = re.compile(r"[Ss][Pp]\d")


def _valid_season(value: str) -> int | None:
    number = int(value)
    if 0 < number <= MAX_SEASON:
        return number
    return None


def _chinese_season(text: str) -> int | None:
    if "季" not in text:
        return None
    for marker, number in CHINESE_SEASONS.items():
        if marker in text:
            return number
    match = _CHINESE_DIGIT_SEASON_RE.search(text)
    if match:
        return _valid_season(match.group(1))
    return None


def detect_season_number(text: str) -> int | None:
    """
    Detect a season number in a file or folder name

    Supports S02 / s2 / S02E03, "Season 2" / "season_2" and 第二季 / 第2季.
    """
    if not text:
        return None

    for match in _S_MARKER_RE.finditer(text):
        season = _valid_season(match.group(1))
        if season:
            return season

    match = _SEASON_WORD_RE.search(text)
    if match:
        season = _valid_season(match.group(1))
        if season:
            return season

    return _chinese_season(text)


def parse_season_from_dir_name(name: str) -> int | None:
    """Season number of a directory named like "S2", "Season 02" or "第二季" """
    if not name:
        return None

    match = re.match(r"[Ss](\d+)", name)
    if match:
        return _valid_season(match.group(1))

    match = _DIR_SEASON_WORD_RE.search(name)
    if match:
        return _valid_season(match.group(1))

    return _chinese_season(name)


def need_verify_season(folder_key: str, api_name: str) -> bool:
    """True when a folder looks like season 1 but the catalog name looks like a sequel"""
    folder_lower = folder_key.lower()
    if "s1" not in folder_lower and "season 1" not in folder_lower:
        return False
    api_lower = api_name.lower()
    return "w" in api_lower or "2" in api_lower or "ii" in api_lower


def names_roughly_match(a: str, b: str) -> bool:
    if not a or not b:
        return False
    a, b = a.lower(), b.lower()
    return a in b or b in a


def clean_video_quality_info(text: str) -> str:
    """Drop resolution/codec/fansub tags and a 【...】 block from a title"""
    result = text
    for pattern in QUALITY_PATTERNS:
        idx = result.find(pattern)
        if idx != -1:
            result = result[:idx] + result[idx + len(pattern):]

    start = result.find("【")
    if start != -1:
        end = result.find("】", start)
        if end != -1:
            result = result[:start] + result[end + 1:]

    return result.strip()


def _is_episode_token(token: str) -> bool:
    if not token or len(token) > 4:
        return False
    check = token
    if token[0] in "Ee":
        if len(token) == 1:
            return False
        check = token[1:]
    return all(c.isdigit() or c == "." for c in check)


def extract_anime_name(folder: str) -> str:
    """
    Extract a Bangumi search term from a release folder name

    "[Group] Show S2 - 05 [1080p]" becomes "Show Season 2": the fansub group
    and quality tags are removed, an "S2" marker is expanded to
    "Season 2" and a trailing episode number is dropped.
    """
    if not folder:
        return ""

    target_index = 2 if "rev" in folder.lower() else 1
    result = folder

    if folder.startswith("["):
        parts = [p for p in re.split(r"[\[\]]", folder) if p]
        if len(parts) > target_index:
            result = parts[target_index].strip()
    elif "_" in folder:
        result = folder[: folder.index("_")].strip()

    # "Show S2 - 05" -> "Show Season 2 - 05"
    has_season = False
    idx = result.rfind(" S")
    if idx != -1:
        after = result[idx + 2:]
        season_part = re.match(r"[^ \-]*", after).group(0)
        if 0 < len(season_part) <= 3 and season_part.isdigit() and int(season_part) > 0:
            result = (
                f"{result[:idx]} Season {int(season_part)}{after[len(season_part):]}"
            )
            has_season = True

    # "Show - 05" / "Show - E05" -> "Show"
    dash = result.rfind("-")
    if dash != -1:
        after_dash = result[dash + 1:].strip()
        if after_dash:
            check = after_dash
            if len(after_dash) > 1 and after_dash[0] in "Ee":
                check = after_dash[1:]
            is_episode = 0 < len(check) <= 6 and all(
                c.isdigit() or c == "." for c in check
            )
            if not is_episode and " " in after_dash:
                first = after_dash.split(" ", 1)[0]
                is_episode = 0 < len(first) <= 4 and first.isdigit()
            if is_episode:
                result = result[:dash].rstrip()

    tokens = result.split()
    if len(tokens) > 1 and _is_episode_token(tokens[-1]):
        # Keep the number of an expanded "Season N"
        if not (has_season and tokens[-2] == "Season"):
            result = " ".join(tokens[:-1])

    return clean_video_quality_info(result)


def apply_custom_rules(name: str, rules: list[str]) -> str:
    """
    Remove every match of the user rules from a search term

    Each rule is a regular expression; a rule that does not compile is
    removed as a case-insensitive literal instead.
    """
    result = name
    for raw_rule in rules:
        rule = raw_rule.strip()
        if not rule:
            continue
        try:
            pattern = re.compile(rule)
        except re.error as e:
            logger.debug(f"Rule {rule!r} is not a valid regex ({e}), removing literally")
            pattern = re.compile(re.escape(rule), re.IGNORECASE)
        result = pattern.sub("", result)
    return result.strip()


def is_likely_special_episode_name(name_only: str) -> bool:
    """True for names like "特别篇2" or "SP01", false for OP/ED/PV/menu extras"""
    if not name_only:
        return False
    if "特别篇" in name_only or "特別篇" in name_only:
        return True
    return _SPECIAL_MARKER_RE.search(name_only) is not None
