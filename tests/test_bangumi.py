"""Tests for the Bangumi API client."""

from unittest.mock import MagicMock

import pytest
import requests

from bangumilink.bangumi import EPISODE_TYPE_SPECIAL, PAGE_LIMIT, BangumiClient
from bangumilink.models import Episode, Season


def _response(payload=None, error: Exception | None = None) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    if error is not None:
        response.raise_for_status.side_effect = error
    return response


def _episode(sort, name, ep=None, ep_type=0, name_cn=""):
    return {
        "sort": sort,
        "ep": sort if ep is None else ep,
        "type": ep_type,
        "name": name,
        "name_cn": name_cn,
    }


@pytest.fixture
def client() -> BangumiClient:
    client = BangumiClient()
    client.session = MagicMock()
    return client


class TestSearchSeason:
    """Tests for search_season method."""

    def test_returns_best_candidate(self, client):
        client.session.post.return_value = _response(
            {
                "data": [
                    {"id": 10, "name": "Show", "name_cn": "番剧", "platform": "TV", "eps": 12},
                    {
                        "id": 11,
                        "name": "Show 2",
                        "name_cn": "番剧 第二季",
                        "platform": "TV",
                        "eps": 12,
                        "rating": {"score": 8.1},
                    },
                ]
            }
        )

        season = client.search_season("Show Season 2")

        assert season == Season(id=11, name="番剧 第二季", platform="TV", eps=12, score=8.1)
        args, kwargs = client.session.post.call_args
        assert args[0] == "https://api.bgm.tv/v0/search/subjects"
        assert kwargs["json"]["keyword"] == "Show Season 2"
        assert kwargs["json"]["filter"] == {"type": [2]}

    def test_original_name_when_cn_disabled(self, client):
        client.use_cn = False
        client.session.post.return_value = _response(
            {"data": [{"id": 10, "name": "Show", "name_cn": "番剧"}]}
        )

        assert client.search_season("Show").name == "Show"

    def test_empty_cn_name_falls_back(self, client):
        client.session.post.return_value = _response(
            {"data": [{"id": 10, "name": "Show", "name_cn": ""}]}
        )

        assert client.search_season("Show").name == "Show"

    def test_no_results(self, client):
        client.session.post.return_value = _response({"data": []})
        assert client.search_season("Nothing") is None

    def test_malformed_response(self, client):
        client.session.post.return_value = _response({"unexpected": True})
        assert client.search_season("Show") is None

    def test_http_error_is_raised(self, client):
        client.session.post.return_value = _response(
            error=requests.exceptions.HTTPError("500 Server Error")
        )
        with pytest.raises(requests.exceptions.HTTPError):
            client.search_season("Show")


class TestGetEpisodes:
    """Tests for episode retrieval."""

    def test_parse_page_filters_type_and_ep(self, client):
        data = {
            "total": 4,
            "data": [
                _episode(1, "One", name_cn="第一话"),
                _episode(1, "Special", ep_type=EPISODE_TYPE_SPECIAL),
                _episode(0, "Zero", ep=0),
                {"sort": "bad"},
            ],
        }

        episodes, total, raw_count = client.parse_episodes_page(data)

        assert episodes == [Episode(1.0, "第一话")]
        assert total == 4
        assert raw_count == 4

    def test_pagination_uses_raw_count(self, client):
        first_page = {
            "total": 3,
            "data": [_episode(1, "A"), _episode(1, "SP", ep_type=EPISODE_TYPE_SPECIAL)],
        }
        second_page = {"total": 3, "data": [_episode(2, "B")]}
        client.session.get.side_effect = [_response(first_page), _response(second_page)]

        episodes = client.get_episodes(42)

        assert episodes == [Episode(1.0, "A"), Episode(2.0, "B")]
        offsets = [c.kwargs["params"]["offset"] for c in client.session.get.call_args_list]
        assert offsets == [0, 2]
        first_params = client.session.get.call_args_list[0].kwargs["params"]
        assert first_params == {"subject_id": 42, "limit": PAGE_LIMIT, "offset": 0}

    def test_first_page_error_is_raised(self, client):
        client.session.get.side_effect = requests.exceptions.ConnectionError("down")
        with pytest.raises(requests.exceptions.ConnectionError):
            client.get_episodes(42)

    def test_later_page_error_keeps_collected(self, client):
        first_page = {"total": 3, "data": [_episode(1, "A"), _episode(2, "B")]}
        client.session.get.side_effect = [
            _response(first_page),
            requests.exceptions.Timeout("slow"),
        ]

        assert client.get_episodes(42) == [Episode(1.0, "A"), Episode(2.0, "B")]

    def test_special_episodes(self, client):
        page = {
            "total": 2,
            "data": [
                _episode(1, "Main"),
                _episode(1, "Bonus", ep=0, ep_type=EPISODE_TYPE_SPECIAL),
            ],
        }
        client.session.get.return_value = _response(page)

        assert client.get_special_episodes(42) == [Episode(1.0, "Bonus")]


class TestConnection:
    """Tests for test_connection method."""

    def test_success(self, client):
        client.session.get.return_value = _response([])
        assert client.test_connection() is True
        assert client.session.get.call_args.args[0] == "https://api.bgm.tv/calendar"

    def test_failure(self, client):
        client.session.get.side_effect = requests.exceptions.ConnectionError("down")
        assert client.test_connection() is False

    def test_user_agent_header(self):
        client = BangumiClient(user_agent="tester/1.0")
        assert client.session.headers["User-Agent"] == "tester/1.0"
