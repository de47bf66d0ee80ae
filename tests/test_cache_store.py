"""Tests for the append-only fingerprint cache."""

import os
import uuid

import pytest
from hypothesis import given, settings as hypothesis_settings, strategies as st, HealthCheck

from pixprint.cache.store import (
    CacheEntry,
    CacheFormatError,
    FingerprintCache,
    UncacheablePathError,
    cache_file_name,
    cache_path_for,
    parse_record,
)
from pixprint.config import CacheMode, Settings

hex_fingerprints = st.text(alphabet="0123456789abcdef", min_size=1, max_size=48)
paths = st.text(
    alphabet=st.characters(blacklist_characters="\n\r", blacklist_categories=("Cs",)),
    min_size=1,
    max_size=40,
).map(lambda s: "/" + s)


class TestRecordFormat:
    def test_line_layout(self):
        entry = CacheEntry(path="/img/a.png", fsize=1234, mtime=1700000000, fingerprint="00ff")
        assert entry.to_line() == "1700000000 1234 00ff /img/a.png\n"

    def test_path_with_spaces(self):
        entry = parse_record("1 2 abc /holiday photos/beach 01.jpg\n")
        assert entry == CacheEntry(path="/holiday photos/beach 01.jpg", fsize=2, mtime=1, fingerprint="abc")

    @pytest.mark.parametrize("line", [
        "",
        "1700000000 1234 00ff",
        "1700000000 1234 00FF /upper.png",
        "17.5 1234 00ff /float.png",
        "abc 1234 00ff /a.png",
        "1700000000 -1 00ff /a.png",
    ])
    def test_malformed_lines(self, line):
        with pytest.raises(CacheFormatError):
            parse_record(line, 3)


class TestLoad:
    def test_missing_file_is_empty(self, tmp_path):
        cache = FingerprintCache.load(tmp_path / "none.cache")
        assert len(cache) == 0
        assert cache.lookup("/a.png", 1, 1) is None

    def test_loads_all_entries_in_order(self, tmp_path):
        cache_file = tmp_path / "fp.cache"
        cache_file.write_text(
            "100 10 aaaa /x.png\n"
            "200 10 bbbb /x.png\n"
            "100 20 cccc /y z.png\n"
        )
        cache = FingerprintCache.load(cache_file)

        assert len(cache) == 3
        assert [e.fingerprint for e in cache.entries("/x.png")] == ["aaaa", "bbbb"]
        assert "/y z.png" in cache

    def test_one_bad_line_fails_whole_load(self, tmp_path):
        cache_file = tmp_path / "fp.cache"
        cache_file.write_text("100 10 aaaa /x.png\ngarbage\n200 10 bbbb /y.png\n")
        with pytest.raises(CacheFormatError, match="line 2"):
            FingerprintCache.load(cache_file)

    def test_unreadable_cache_is_format_error(self, tmp_path):
        cache_file = tmp_path / "fp.cache"
        cache_file.mkdir()
        with pytest.raises(CacheFormatError):
            FingerprintCache.load(cache_file)


class TestLookupAndStore:
    def test_round_trip(self, tmp_path):
        cache = FingerprintCache.load(tmp_path / "fp.cache")
        cache.store("/a.png", 10, 100, "abcd")

        assert cache.lookup("/a.png", 10, 100) == "abcd"
        assert cache.lookup("/a.png", 11, 100) is None
        assert cache.lookup("/a.png", 10, 101) is None
        assert cache.lookup("/b.png", 10, 100) is None

    def test_store_persists_across_loads(self, tmp_path):
        cache_file = tmp_path / "fp.cache"
        FingerprintCache.load(cache_file).store("/a b.png", 10, 100, "abcd")

        reloaded = FingerprintCache.load(cache_file)
        assert reloaded.lookup("/a b.png", 10, 100) == "abcd"

    def test_store_only_appends(self, tmp_path):
        cache_file = tmp_path / "fp.cache"
        cache_file.write_text("100 10 aaaa /x.png\n")
        cache = FingerprintCache.load(cache_file)

        cache.store("/x.png", 12, 300, "bbbb")
        cache.store("/x.png", 12, 300, "bbbb")

        assert cache_file.read_text() == (
            "100 10 aaaa /x.png\n"
            "300 12 bbbb /x.png\n"
            "300 12 bbbb /x.png\n"
        )
        # Stale entry stays but no longer matches the new stat values
        assert cache.lookup("/x.png", 12, 300) == "bbbb"
        assert cache.lookup("/x.png", 10, 100) == "aaaa"

    def test_first_matching_entry_wins(self, tmp_path):
        cache_file = tmp_path / "fp.cache"
        cache_file.write_text("100 10 aaaa /x.png\n100 10 bbbb /x.png\n")
        assert FingerprintCache.load(cache_file).lookup("/x.png", 10, 100) == "aaaa"

    def test_store_creates_parent_directory(self, tmp_path):
        cache_file = tmp_path / "nested" / "dir" / "fp.cache"
        FingerprintCache.load(cache_file).store("/a.png", 1, 2, "0f")
        assert cache_file.exists()

    def test_read_only_cache_refuses_store(self, tmp_path):
        cache_file = tmp_path / "fp.cache"
        cache = FingerprintCache.load(cache_file, writable=False)
        with pytest.raises(CacheFormatError):
            cache.store("/a.png", 1, 2, "0f")
        assert not cache_file.exists()

    def test_rejects_path_with_newline(self, tmp_path):
        cache_file = tmp_path / "fp.cache"
        cache = FingerprintCache.load(cache_file)
        with pytest.raises(UncacheablePathError):
            cache.store("/a\nb.png", 1, 2, "0f")
        assert not cache_file.exists()
        assert len(cache) == 0

    def test_undecodable_file_name_round_trips(self, tmp_path):
        cache_file = tmp_path / "fp.cache"
        path = os.fsdecode(b"/photos/\xff\xfe.png")
        FingerprintCache.load(cache_file).store(path, 10, 100, "abcd")

        assert cache_file.read_bytes() == b"100 10 abcd /photos/\xff\xfe.png\n"
        assert FingerprintCache.load(cache_file).lookup(path, 10, 100) == "abcd"

    def test_pre_epoch_mtime_round_trips(self, tmp_path):
        cache_file = tmp_path / "fp.cache"
        FingerprintCache.load(cache_file).store("/old.png", 86, -100000, "ffff")

        assert cache_file.read_text() == "-100000 86 ffff /old.png\n"
        assert FingerprintCache.load(cache_file).lookup("/old.png", 86, -100000) == "ffff"

    @hypothesis_settings(suppress_health_check=[HealthCheck.function_scoped_fixture], max_examples=50)
    @given(path=paths, fsize=st.integers(min_value=0, max_value=2**40),
           mtime=st.integers(min_value=-(2**34), max_value=2**34), fingerprint=hex_fingerprints)
    def test_round_trip_property(self, tmp_path, path, fsize, mtime, fingerprint):
        cache_file = tmp_path / f"prop-{uuid.uuid4().hex}.cache"
        cache = FingerprintCache.load(cache_file)
        cache.store(path, fsize, mtime, fingerprint)

        assert cache.lookup(path, fsize, mtime) == fingerprint
        assert cache.lookup(path, fsize + 1, mtime) is None
        assert FingerprintCache.load(cache_file).lookup(path, fsize, mtime) == fingerprint


class TestCacheIdentity:
    def test_file_name_encodes_settings(self):
        settings = Settings(colorspace="gray4", size=12, square_mode="stretch", quick_resize=256)
        assert cache_file_name(settings) == "pixprint-gray4-12-stretch-q256.cache"

    def test_distinct_settings_never_share_a_file(self):
        variants = [
            Settings(),
            Settings(colorspace="rgb12"),
            Settings(size=8),
            Settings(square_mode="stretch"),
            Settings(quick_resize=128),
        ]
        assert len({cache_file_name(s) for s in variants}) == len(variants)

    def test_threshold_does_not_change_identity(self):
        assert cache_file_name(Settings(threshold=50)) == cache_file_name(Settings(threshold=99))

    def test_override_disables_keying(self, tmp_path):
        override = tmp_path / "shared.cache"
        settings = Settings(cache_file=override, cache_dir=tmp_path / "auto")
        assert cache_path_for(settings) == override
        assert cache_path_for(Settings(cache_dir=tmp_path)) == tmp_path / "pixprint-mono1-16-pad-q0.cache"


class TestCacheModes:
    def test_disabled(self, tmp_path):
        assert FingerprintCache.for_settings(Settings(cache_mode=CacheMode.DISABLED, cache_dir=tmp_path)) is None

    def test_read_only(self, tmp_path):
        cache = FingerprintCache.for_settings(Settings(cache_mode=CacheMode.READ_ONLY, cache_dir=tmp_path))
        assert cache is not None and not cache.writable

    def test_read_write(self, tmp_path):
        cache = FingerprintCache.for_settings(Settings(cache_mode=CacheMode.READ_WRITE, cache_dir=tmp_path))
        assert cache is not None and cache.writable
        assert cache.path.parent == tmp_path

    def test_malformed_cache_fails_on_open(self, tmp_path):
        settings = Settings(cache_mode=CacheMode.READ_ONLY, cache_file=tmp_path / "bad.cache")
        (tmp_path / "bad.cache").write_text("not a record\n")
        with pytest.raises(CacheFormatError):
            FingerprintCache.for_settings(settings)
