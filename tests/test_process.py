"""Tests for the library processing pipeline."""

import pytest
import requests

from bangumilink.cache_store import CacheStore
from bangumilink.commands.process_handler import (
    load_episode_list,
    process_library,
    resolve_season_for_work_item,
)
from bangumilink.commands.rename_command import rename_command
from bangumilink.config import Config
from bangumilink.episode_cache import build_season_info
from bangumilink.models import CacheRoot, Episode, Season, WorkItem, WorkItemCacheEntry


class FakeBangumi:
    """Stands in for BangumiClient with canned answers."""

    def __init__(self, seasons=None, episodes=None, specials=None, fail_episodes=False):
        self.seasons = seasons or {}
        self.episodes = episodes or {}
        self.specials = specials or {}
        self.fail_episodes = fail_episodes
        self.searches = []

    def search_season(self, term):
        self.searches.append(term)
        return self.seasons.get(term)

    def get_episodes(self, subject_id, episode_type=0):
        if self.fail_episodes:
            raise requests.exceptions.ConnectionError("offline")
        return list(self.episodes.get(subject_id, []))

    def get_special_episodes(self, subject_id):
        return list(self.specials.get(subject_id, []))


class FakeLLM:
    """Stands in for LLMClient and records batch requests."""

    def __init__(self, names=None, configured=True):
        self.names = names or {}
        self.configured = configured
        self.requests = []

    def extract_names(self, folders):
        self.requests.append(list(folders))
        return {f: self.names[f] for f in folders if f in self.names}


@pytest.fixture
def library(tmp_path, touch):
    source = tmp_path / "downloads"
    touch(source / "Show" / "Show - 01.mkv", "video 1")
    touch(source / "Show" / "Show - 01.ass", "sub 1")
    touch(source / "Show" / "Show - 02.mkv", "video 2")
    touch(source / "Show" / "readme.txt", "ignored")
    return tmp_path


@pytest.fixture
def config(library) -> Config:
    return Config(
        source_directory=str(library / "downloads"),
        target_directory=str(library / "anime"),
        cache_file=str(library / "cache" / "cache.yaml"),
    )


@pytest.fixture
def bangumi() -> FakeBangumi:
    return FakeBangumi(
        seasons={"Show": Season(id=100, name="番剧")},
        episodes={100: [Episode(1, "A"), Episode(2, "B")]},
    )


class TestProcessLibrary:
    """Tests for process_library function."""

    def test_full_run(self, library, config, bangumi):
        store = CacheStore(config.cache_file)

        total, success, failed = process_library(config, bangumi, FakeLLM(), store)

        assert (total, success, failed) == (1, 1, 0)
        output = library / "anime" / "番剧"
        assert (output / "E01 - A.mkv").read_text(encoding="utf-8") == "video 1"
        assert (output / "E01 - A.ass").exists()
        assert (output / "E02 - B.mkv").exists()
        assert not (output / "readme.txt").exists()
        assert not (library / "anime" / "Show").exists()
        # Sources are left alone
        assert (library / "downloads" / "Show" / "Show - 01.mkv").exists()

        cache = store.load()
        assert cache.work_items["Show"].bangumi_season_id == 100
        assert cache.seasons["100"].episodes["E01"].video_dst == "E01 - A.mkv"
        assert cache.source_root == config.source_directory

    def test_rerun_uses_cache(self, config, bangumi):
        store = CacheStore(config.cache_file)
        llm = FakeLLM()
        process_library(config, bangumi, llm, store)
        bangumi.searches.clear()
        llm.requests.clear()

        total, success, failed = process_library(config, bangumi, llm, store)

        assert (total, success, failed) == (1, 1, 0)
        assert bangumi.searches == []
        assert llm.requests == []

    def test_dry_run_touches_nothing(self, library, config, bangumi):
        store = CacheStore(config.cache_file)

        total, success, failed = process_library(
            config, bangumi, FakeLLM(), store, dry_run=True
        )

        assert (total, success, failed) == (1, 1, 0)
        assert not store.path.exists()
        assert not (library / "anime").exists()

    def test_unresolved_folder_is_skipped(self, library, config):
        store = CacheStore(config.cache_file)

        total, success, failed = process_library(
            config, FakeBangumi(), FakeLLM(), store
        )

        assert (total, success, failed) == (1, 0, 1)
        assert store.load().work_items == {}

    def test_limit(self, library, config, bangumi, touch):
        touch(library / "downloads" / "Other" / "Other - 01.mkv")
        store = CacheStore(config.cache_file)

        total, _, _ = process_library(config, bangumi, FakeLLM(), store, limit="show")

        assert total == 1
        assert bangumi.searches == ["Show"]

    def test_llm_fallback(self, library, config):
        bangumi = FakeBangumi(
            seasons={"番剧名": Season(id=7, name="番剧名")},
            episodes={7: [Episode(1, "A")]},
        )
        llm = FakeLLM(names={"Show": "番剧名"})
        store = CacheStore(config.cache_file)

        total, success, failed = process_library(config, bangumi, llm, store)

        assert (total, success, failed) == (1, 1, 0)
        assert llm.requests == [["Show"]]
        assert bangumi.searches == ["Show", "番剧名"]
        assert (library / "anime" / "番剧名" / "E01 - A.mkv").exists()

    def test_no_llm(self, config):
        llm = FakeLLM(names={"Show": "番剧名"})

        process_library(config, FakeBangumi(), llm, CacheStore(config.cache_file), use_llm=False)

        assert llm.requests == []

    def test_keep_folder_names(self, library, config, bangumi):
        config.rename_folders = False

        process_library(config, bangumi, FakeLLM(), CacheStore(config.cache_file))

        assert (library / "anime" / "Show" / "E01 - A.mkv").exists()

    def test_split_seasons_share_parent(self, library, config, touch):
        source = library / "downloads" / "Beta"
        touch(source / "Beta S01E01.mkv")
        touch(source / "Beta S02E01.mkv")
        bangumi = FakeBangumi(
            seasons={
                "Show": Season(id=100, name="番剧"),
                "Beta": Season(id=1, name="Beta 第一季"),
                "Beta Season 2": Season(id=2, name="Beta 第二季"),
            },
            episodes={100: [Episode(1, "A")], 1: [Episode(1, "One")], 2: [Episode(1, "Two")]},
        )

        total, success, failed = process_library(
            config, bangumi, FakeLLM(), CacheStore(config.cache_file)
        )

        assert (total, success, failed) == (3, 3, 0)
        anime = library / "anime"
        assert (anime / "Beta 第一季" / "E01 - One.mkv").exists()
        assert (anime / "Beta 第二季" / "E01 - Two.mkv").exists()
        # The emptied "Beta" parent is removed
        assert not (anime / "Beta").exists()

    def test_special_folders(self, library, config, touch):
        special = library / "downloads" / "Show" / "SPs"
        touch(special / "Show SP01.mkv", "special")
        touch(special / "Show NCOP.mkv", "opening")
        config.special_folders = ["SPs"]
        bangumi = FakeBangumi(
            seasons={"Show": Season(id=100, name="番剧")},
            episodes={100: [Episode(1, "A"), Episode(2, "B")]},
            specials={100: [Episode(1, "特典")]},
        )
        store = CacheStore(config.cache_file)

        process_library(config, bangumi, FakeLLM(), store)

        output = library / "anime" / "番剧"
        assert (output / "SPs" / "SP01 - 特典.mkv").read_text(encoding="utf-8") == "special"
        assert (output / "SPs" / "Show NCOP.mkv").exists()
        # Specials never take part in the main season plan
        assert (output / "E01 - A.mkv").read_text(encoding="utf-8") == "video 1"
        assert list(store.load().seasons) == ["100"]


class TestResolveSeason:
    """Tests for resolve_season_for_work_item function."""

    def _work_item(self, key="Show S1", term="Show"):
        return WorkItem(key=key, input_rel=key, output_rel=key, search_term=term)

    def test_cache_entry_wins(self):
        cache = CacheRoot()
        cache.work_items["Show S1"] = WorkItemCacheEntry("Show S1", "Show S1", "Show", 5, "Cached")
        bangumi = FakeBangumi()

        season = resolve_season_for_work_item(bangumi, self._work_item(), cache, {})

        assert season == Season(id=5, name="Cached")
        assert bangumi.searches == []

    def test_suspicious_result_is_checked(self):
        bangumi = FakeBangumi(
            seasons={"Show": Season(2, "Show 2"), "别的番": Season(1, "别的番")}
        )
        cache = CacheRoot()

        season = resolve_season_for_work_item(
            bangumi, self._work_item(), cache, {"Show S1": "别的番"}
        )

        assert season.id == 1
        assert cache.work_items["Show S1"].bangumi_season_id == 1
        assert cache.work_items["Show S1"].search_term == "Show"

    def test_agreeing_names_keep_result(self):
        bangumi = FakeBangumi(seasons={"Show": Season(2, "Show 2")})

        season = resolve_season_for_work_item(
            bangumi, self._work_item(), CacheRoot(), {"Show S1": "Show"}
        )

        assert season.id == 2
        assert bangumi.searches == ["Show"]

    def test_empty_search_term(self):
        bangumi = FakeBangumi()

        season = resolve_season_for_work_item(
            bangumi, self._work_item(term=""), CacheRoot(), {"Show S1": "番剧"}
        )

        assert season is None
        assert bangumi.searches == []

    def test_search_error_falls_back_to_extracted_name(self):
        class FailingBangumi(FakeBangumi):
            def search_season(self, term):
                self.searches.append(term)
                if term == "Show":
                    raise requests.exceptions.Timeout("slow")
                return Season(3, term)

        bangumi = FailingBangumi()

        season = resolve_season_for_work_item(
            bangumi, self._work_item(), CacheRoot(), {"Show S1": "番剧"}
        )

        assert season == Season(3, "番剧")


class TestLoadEpisodeList:
    """Tests for load_episode_list function."""

    def test_catalog_first(self, bangumi):
        assert load_episode_list(bangumi, CacheRoot(), 100) == [Episode(1, "A"), Episode(2, "B")]

    def test_cached_fallback(self, video_exts, subtitle_exts):
        cache = CacheRoot()
        cache.seasons["9"] = build_season_info(
            9, "Show", [Episode(2, "B"), Episode(1, "A")], [], video_exts, subtitle_exts
        )

        episodes = load_episode_list(FakeBangumi(fail_episodes=True), cache, 9)

        assert episodes == [Episode(1.0, "A"), Episode(2.0, "B")]

    def test_nothing_available(self):
        assert load_episode_list(FakeBangumi(fail_episodes=True), CacheRoot(), 9) is None


class TestRenameCommand:
    """Tests for rename_command function."""

    def test_reapplies_plan_offline(self, library, config, bangumi):
        store = CacheStore(config.cache_file)
        process_library(config, bangumi, FakeLLM(), store)
        output = library / "anime" / "番剧"
        (output / "E01 - A.mkv").rename(output / "Show - 01.mkv")

        total, success, failed = rename_command(config, store.load())

        assert (total, success, failed) == (1, 1, 0)
        assert (output / "E01 - A.mkv").exists()
        assert not (output / "Show - 01.mkv").exists()

    def test_missing_output(self, config):
        cache = CacheRoot()
        cache.work_items["Show"] = WorkItemCacheEntry("Show", "Show", "Show", 100, "番剧")
        cache.seasons["100"] = build_season_info(100, "番剧", [Episode(1, "A")], [], [".mkv"], [".ass"])

        assert rename_command(config, cache) == (1, 0, 1)

    def test_empty_cache(self, config):
        assert rename_command(config, CacheRoot()) == (0, 0, 0)
