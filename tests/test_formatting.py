import re

import pytest

from transmission_telegram.models import SortField, SortOrder, TorrentItem, TorrentStatus
from transmission_telegram.services.sort_state import SortState
from transmission_telegram.utils.formatting import (
    RATE_PLACEHOLDER,
    compile_query,
    escape_markdown,
    format_count,
    format_info,
    format_rich,
    format_simple,
    format_speed,
    format_trackers,
    human_bytes,
    is_active,
    name_matches,
    snapshot,
    status_in,
    tracker_matches,
)
from transmission_telegram.models import ManagerStats


def _torrent(torrent_id: int, name: str = "", **kwargs) -> TorrentItem:
    return TorrentItem(id=torrent_id, name=name or f"torrent-{torrent_id}", **kwargs)


def test_escape_markdown_replaces_reserved_characters() -> None:
    assert escape_markdown("a*b_[c]`d") == "a•b-(c)'d"
    assert escape_markdown("plain name") == "plain name"


def test_rich_template_escapes_name_but_simple_does_not() -> None:
    torrent = _torrent(1, "some_file*[x]")
    assert "some-file•(x)" in format_rich(torrent)
    assert format_simple(torrent) == "<1> some_file*[x]\n"


def test_rich_frozen_replaces_only_rates() -> None:
    torrent = _torrent(
        3, "ubuntu", status=TorrentStatus.DOWNLOADING, size_when_done=1000,
        left_until_done=500, percent_done=0.5, rate_download=4000, rate_upload=2000,
    )
    live = format_rich(torrent)
    frozen = format_rich(torrent, frozen=True)
    assert human_bytes(4000) in live
    assert human_bytes(4000) not in frozen
    assert f"↓ *{RATE_PLACEHOLDER}*  ↑ *{RATE_PLACEHOLDER}*" in frozen
    assert "(*50.0%*)" in frozen
    assert "Downloading" in frozen


def test_info_frozen_hides_rates_and_eta() -> None:
    torrent = _torrent(
        7, "debian", rate_download=1500, eta=60,
        trackers=("udp://tracker.example.org:1337/announce",),
    )
    frozen = format_info(torrent, frozen=True)
    assert "ETA: *-*" in frozen
    assert "tracker.example.org" in frozen
    assert human_bytes(1500) in format_info(torrent)


def test_speed_frozen() -> None:
    stats = ManagerStats(download_speed=3000, upload_speed=1000)
    assert format_speed(stats) == "↓ 3.0 kB/s  ↑ 1.0 kB/s"
    assert format_speed(stats, frozen=True) == "↓ -  ↑ -"


def test_snapshot_empty_uses_fixed_text() -> None:
    snap = snapshot([_torrent(1)], format_simple, "nothing", predicate=lambda t: False)
    assert snap.empty
    assert snap.text == "nothing"


def test_snapshot_is_idempotent() -> None:
    torrents = [_torrent(i, size_when_done=i * 10) for i in (3, 1, 2)]
    order = SortOrder(SortField.SIZE, reverse=True)
    first = snapshot(torrents, format_rich, "none", order=order)
    second = snapshot(torrents, format_rich, "none", order=order)
    assert first.text == second.text
    assert [t.id for t in first.torrents] == [3, 2, 1]


def test_sort_is_stable_in_both_directions() -> None:
    torrents = [
        _torrent(1, size_when_done=10),
        _torrent(2, size_when_done=50),
        _torrent(3, size_when_done=10),
        _torrent(4, size_when_done=50),
    ]
    assert [t.id for t in SortOrder(SortField.SIZE).apply(torrents)] == [1, 3, 2, 4]
    assert [t.id for t in SortOrder(SortField.SIZE, reverse=True).apply(torrents)] == [2, 4, 1, 3]


def test_sort_state_set_and_current() -> None:
    state = SortState()
    assert state.current() == SortOrder(SortField.ID, False)
    order = state.set(SortField.SIZE, reverse=True)
    assert state.current() is order
    assert order.describe() == "reversed size"
    state.set(SortField.SIZE)
    assert state.current().describe() == "size"


def test_sort_field_parse() -> None:
    assert SortField.parse("DownSpeed") is SortField.DOWNSPEED
    assert SortField.parse("bogus") is None


def test_predicates() -> None:
    seeding = _torrent(1, status=TorrentStatus.SEEDING, rate_upload=5)
    queued = _torrent(2, status=TorrentStatus.SEED_PENDING)
    stopped = _torrent(3, "Big.Buck.Bunny", trackers=("https://Tracker.Example.com/announce",))
    predicate = status_in(TorrentStatus.SEEDING, TorrentStatus.SEED_PENDING)
    assert [t.id for t in (seeding, queued, stopped) if predicate(t)] == [1, 2]
    assert is_active(seeding) and not is_active(stopped)
    assert tracker_matches(compile_query("example"))(stopped)
    assert name_matches(compile_query("buck"))(stopped)
    assert not name_matches(compile_query("buck"))(seeding)


def test_compile_query_rejects_invalid_pattern() -> None:
    with pytest.raises(re.error):
        compile_query("([")


def test_count_and_trackers() -> None:
    torrents = [
        _torrent(1, status=TorrentStatus.DOWNLOADING, trackers=("http://a.org/ann", "udp://b.org:80")),
        _torrent(2, status=TorrentStatus.SEEDING, trackers=("http://a.org:8080/ann",)),
        _torrent(3, status=TorrentStatus.DOWNLOAD_PENDING),
    ]
    text = format_count(torrents)
    assert "Downloading: 1\n" in text
    assert "Seeding: 1\n" in text
    assert "Download: 1\n" in text
    assert text.endswith("Total: 3")
    assert format_trackers(torrents) == "2 - a.org\n1 - b.org\n"


def test_ratio_text() -> None:
    assert _torrent(1, upload_ratio=1.5).ratio == "1.500"
    assert _torrent(1, upload_ratio=-2).ratio == "∞"
