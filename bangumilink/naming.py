"""
Filename heuristics for release-group style media names

All functions here are pure: they only look at strings, never at the disk.
"""

import re
from functools import cmp_to_key

from .models import LocalFileInfo

# Resolution, codec, audio and source tags stripped from base names
QUALITY_TOKENS = [
    "1080p",
    "720p",
    "2160p",
    "4k",
    "x265",
    "h265",
    "x264",
    "h264",
    "avc",
    "hevc",
    "flac",
    "aac",
    "ac3",
    "dts",
    "opus",
    "bdrip",
    "bluray",
    "web-dl",
    "webrip",
    "hdtv",
]

# Numbers that look like episodes but are resolutions or codec numerals
NOISE_NUMBERS = frozenset({1920, 1080, 720, 2160, 480, 1440, 1280, 265, 264, 420})

MAX_EPISODE_NUMBER = 500
SUBTITLE_MATCH_THRESHOLD = 0.7

_SEASON_EPISODE_RE = re.compile(r"[Ss](\d+)[Ee](\d+)")
_CHINESE_ORDINAL_RE = re.compile(r"第(\d+)[话話集回]")
_EPISODE_MARKER_RE = re.compile(r"[Ee][Pp]?(\d+)")
_TOKEN_SPLIT_RE = re.compile(r"[ \[\]()\{\}._\-]+")
_NUMERIC_TOKEN_RE = re.compile(r"\d+(\.\d+)?")
_SEPARATOR_RUN_RE = re.compile(r"[ ._\-]+")
_DIGIT_RUN_RE = re.compile(r"\d+|\D+")

_QUALITY_RE = re.compile(
    "|".join(re.escape(token) for token in QUALITY_TOKENS), re.IGNORECASE
)


def _plausible_episode(value: int) -> bool:
    return 0 < value <= MAX_EPISODE_NUMBER and value not in NOISE_NUMBERS


def _strip_release_tag(name: str, separator: str) -> str:
    # "Show.01-GROUP-v2" -> "Show.01"
    while name:
        pos = name.rfind(separator)
        if pos == -1 or pos + 1 >= len(name):
            break
        follower = name[pos + 1]
        if not (follower.isascii() and follower.isalnum()):
            break
        name = name[:pos]
    return name


def cleaned_base_name(name: str) -> str:
    """
    Remove quality/codec tags and release-group suffixes from a name

    Separator runs (space, dot, underscore, dash) are collapsed into a
    single "." and leading/trailing dots are trimmed.
    """
    result = _QUALITY_RE.sub("", name)
    result = _strip_release_tag(result, "-")
    result = _strip_release_tag(result, "_")
    result = _SEPARATOR_RUN_RE.sub(".", result)
    return result.strip(".")


def _drop_bracket_groups(name: str) -> str:
    kept = []
    depth = 0
    for char in name:
        if char in "[({":
            depth += 1
            continue
        if char in "])}" and depth > 0:
            depth -= 1
            continue
        if depth == 0:
            kept.append(char)
    return "".join(kept)


def base_name_without_episode(name: str) -> str:
    """
    Reduce a filename to its series identity

    Bracketed groups, quality tags, SxxEyy/Eyy markers and bare numbers are
    removed so that a video and its subtitle compare equal even when they
    come from different release groups.
    """
    result = cleaned_base_name(_drop_bracket_groups(name))
    result = re.sub(r"[Ss]\d+[Ee]\d+", "", result)
    result = re.sub(r"[Ee]\d+", "", result)
    result = re.sub(r"\d+", "", result)
    return cleaned_base_name(result)


def extract_episode_number(name: str) -> float | None:
    """
    Guess the episode number contained in a filename

    Tries, in order: SxxEyy, 第N话/話/集/回, Eyy/EPyy and finally any
    standalone numeric token (optionally prefixed by E or SP). Resolution
    and codec numerals are never returned.

    Args:
        name: Filename without extension

    Returns:
        Episode number, or None if nothing plausible was found
    """
    if not name:
        return None

    for match in _SEASON_EPISODE_RE.finditer(name):
        value = int(match.group(2))
        if _plausible_episode(value):
            return float(value)

    match = _CHINESE_ORDINAL_RE.search(name)
    if match:
        value = int(match.group(1))
        if _plausible_episode(value):
            return float(value)

    for match in _EPISODE_MARKER_RE.finditer(name):
        value = int(match.group(1))
        if _plausible_episode(value):
            return float(value)

    for token in _TOKEN_SPLIT_RE.split(name):
        if not token:
            continue
        if len(token) > 2 and token[0] in "Ee" and token[1].isdigit():
            token = token[1:]
        elif len(token) > 3 and token[:2].lower() == "sp" and token[2].isdigit():
            token = token[2:]
        if not _NUMERIC_TOKEN_RE.fullmatch(token):
            continue
        value = float(token)
        if value == 0 or not _plausible_episode(int(value)):
            continue
        return value

    return None


def format_episode_key(sort: float, total: int, prefix: str = "E") -> str:
    """
    Format a catalog sort value as an episode key

    The width of the integer part is derived from the episode count, with
    a minimum of two digits: format_episode_key(1, 2) == "E01",
    format_episode_key(7, 240) == "E007", format_episode_key(2.5, 24) == "E02.5".
    """
    if total >= 10000:
        digits = 5
    elif total >= 1000:
        digits = 4
    elif total >= 100:
        digits = 3
    else:
        digits = 2

    # Six decimal places: 2.9999996 is E03
    sort = round(sort, 6)
    whole = int(sort)
    key = f"{prefix}{str(whole).rjust(digits, '0')}"

    fraction = abs(sort - whole)
    if fraction >= 0.0001:
        decimals = f"{fraction:.6f}".split(".")[1].rstrip("0")
        if decimals:
            key += "." + decimals
    return key


def _split_runs(name: str) -> list[str]:
    return _DIGIT_RUN_RE.findall(name.lower())


def natural_compare(a: LocalFileInfo, b: LocalFileInfo) -> int:
    """Compare two files by name so that "ep2" sorts before "ep10" """
    runs_a = _split_runs(a.name_only)
    runs_b = _split_runs(b.name_only)

    for part_a, part_b in zip(runs_a, runs_b):
        if part_a.isdecimal() and part_b.isdecimal():
            num_a, num_b = int(part_a), int(part_b)
            if num_a != num_b:
                return -1 if num_a < num_b else 1
        elif part_a != part_b:
            return -1 if part_a < part_b else 1

    if len(runs_a) != len(runs_b):
        return -1 if len(runs_a) < len(runs_b) else 1

    ext_a, ext_b = a.ext.lower(), b.ext.lower()
    if ext_a == ext_b:
        return 0
    return -1 if ext_a < ext_b else 1


natural_sort_key = cmp_to_key(natural_compare)


def subtitle_suffix(sub_basename: str, video_stem: str) -> str:
    """
    Return the part of a subtitle filename that follows the video stem

    "Show - 01.scjp.ass" with stem "Show - 01" gives ".scjp.ass". When the
    subtitle does not start with the stem, only its final extension is kept.
    """
    if sub_basename.startswith(video_stem):
        rest = sub_basename[len(video_stem):]
        if not rest or rest.startswith("."):
            return rest

    pos = sub_basename.rfind(".")
    if pos == -1:
        return ""
    return sub_basename[pos:]


def similarity_score(a: str, b: str) -> float:
    """Rough similarity of two strings in [0, 1] (greedy, not a true LCS)"""
    if not a or not b:
        return 0.0

    a, b = a.lower(), b.lower()
    i = j = matched = 0
    while i < len(a) and j < len(b):
        if a[i] == b[j]:
            matched += 1
            i += 1
            j += 1
        elif len(a) - i > len(b) - j:
            i += 1
        else:
            j += 1

    return matched / max(len(a), len(b))


def match_subtitle_to_video(video: str, sub: str) -> bool:
    return similarity_score(video, sub) > SUBTITLE_MATCH_THRESHOLD


def has_extension(ext: str, extensions: list[str]) -> bool:
    """Case-insensitive extension check that accepts compound extensions"""
    ext = ext.lower()
    for candidate in extensions:
        candidate = candidate.lower()
        if ext == candidate or ext.endswith(candidate):
            return True
    return False
