"""
Formatting Utilities
Turn torrent snapshots into message text.
"""

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, List, Optional

import humanize

from transmission_telegram.models import ManagerStats, SortOrder, TorrentItem, TorrentStatus

# Shown in place of transfer rates once a live message stops updating
RATE_PLACEHOLDER = "-"

# Telegram's legacy markdown can't be escaped, so reserved chars are swapped
MARKDOWN_REPLACEMENTS = str.maketrans({
    "*": "•",
    "[": "(",
    "]": ")",
    "_": "-",
    "`": "'",
})

Predicate = Callable[[TorrentItem], bool]
Template = Callable[[TorrentItem], str]


def escape_markdown(text: str) -> str:
    """Neutralize markdown characters inside a decorated message."""
    return text.translate(MARKDOWN_REPLACEMENTS)


def human_bytes(value: int) -> str:
    return humanize.naturalsize(max(value, 0))


def human_rate(value: int) -> str:
    return f"{human_bytes(value)}/s"


def human_duration(seconds: int) -> str:
    return humanize.naturaldelta(timedelta(seconds=max(seconds, 0)))


def eta_text(eta: int) -> str:
    if eta == -1:
        return "Not available"
    if eta < 0:
        return "Unknown"
    return human_duration(eta)


def compile_query(query: str) -> "re.Pattern[str]":
    """Compile a user supplied pattern, case-insensitive. Raises re.error."""
    return re.compile(query, re.IGNORECASE)


# ==================== Predicates ====================

def status_in(*statuses: TorrentStatus) -> Predicate:
    wanted = frozenset(statuses)
    return lambda t: t.status in wanted


def is_active(torrent: TorrentItem) -> bool:
    return torrent.rate_download > 0 or torrent.rate_upload > 0


def has_error(torrent: TorrentItem) -> bool:
    return torrent.error != 0


def tracker_matches(pattern: "re.Pattern[str]") -> Predicate:
    return lambda t: pattern.search(t.tracker_text) is not None


def name_matches(pattern: "re.Pattern[str]") -> Predicate:
    return lambda t: pattern.search(t.name) is not None


# ==================== Templates ====================

def format_simple(torrent: TorrentItem) -> str:
    return f"<{torrent.id}> {torrent.name}\n"


def format_rich(torrent: TorrentItem, frozen: bool = False) -> str:
    down = RATE_PLACEHOLDER if frozen else human_rate(torrent.rate_download)
    up = RATE_PLACEHOLDER if frozen else human_rate(torrent.rate_upload)
    return (
        f"`<{torrent.id}>` *{escape_markdown(torrent.name)}*\n"
        f"{torrent.status.label} *{human_bytes(torrent.have)}* of *{human_bytes(torrent.size_when_done)}* "
        f"(*{torrent.percent_done * 100:.1f}%*) ↓ *{down}*  ↑ *{up}* R: *{torrent.ratio}*\n\n"
    )


def format_frozen(torrent: TorrentItem) -> str:
    return format_rich(torrent, frozen=True)


def format_paused(torrent: TorrentItem) -> str:
    return (
        f"<{torrent.id}> {torrent.name}\n"
        f"{torrent.status.label} ({torrent.percent_done * 100:.1f}%) "
        f"DL: {human_bytes(torrent.downloaded_ever)} UL: {human_bytes(torrent.uploaded_ever)}  R: {torrent.ratio}\n\n"
    )


def format_checking(torrent: TorrentItem) -> str:
    return (
        f"<{torrent.id}> {torrent.name}\n"
        f"{torrent.status.label} ({torrent.percent_done * 100:.1f}%)\n\n"
    )


def format_error(torrent: TorrentItem) -> str:
    return f"<{torrent.id}> {torrent.name}\n{torrent.error_string}\n"


def format_info(torrent: TorrentItem, frozen: bool = False) -> str:
    """Detailed, decorated view of a single torrent."""
    down = RATE_PLACEHOLDER if frozen else human_rate(torrent.rate_download)
    up = RATE_PLACEHOLDER if frozen else human_rate(torrent.rate_upload)
    eta = RATE_PLACEHOLDER if frozen else eta_text(torrent.eta)
    trackers = " ".join(torrent.tracker_hosts)
    return (
        f"`<{torrent.id}>` *{escape_markdown(torrent.name)}*\n"
        f"{torrent.status.label} *{human_bytes(torrent.have)}* of *{human_bytes(torrent.size_when_done)}* "
        f"(*{torrent.percent_done * 100:.1f}%*) ↓ *{down}*  ↑ *{up}* R: *{torrent.ratio}*\n"
        f"DL: *{human_bytes(torrent.downloaded_ever)}* UP: *{human_bytes(torrent.uploaded_ever)}*\n"
        f"Added: *{torrent.added.strftime('%b %d %H:%M:%S')}*, ETA: *{eta}*\n"
        f"Trackers: `{escape_markdown(trackers)}`"
    )


def format_speed(stats: ManagerStats, frozen: bool = False) -> str:
    if frozen:
        return f"↓ {RATE_PLACEHOLDER}  ↑ {RATE_PLACEHOLDER}"
    return f"↓ {human_rate(stats.download_speed)}  ↑ {human_rate(stats.upload_speed)}"


def format_stats(stats: ManagerStats) -> str:
    return (
        f"Total: *{stats.torrent_count}*\n"
        f"Active: *{stats.active_torrent_count}*\n"
        f"Paused: *{stats.paused_torrent_count}*\n\n"
        f"_Current Stats_\n"
        f"Downloaded: *{human_bytes(stats.current.downloaded_bytes)}*\n"
        f"Uploaded: *{human_bytes(stats.current.uploaded_bytes)}*\n"
        f"Running time: *{human_duration(stats.current.seconds_active)}*\n\n"
        f"_Accumulative Stats_\n"
        f"Sessions: *{stats.cumulative.session_count}*\n"
        f"Downloaded: *{human_bytes(stats.cumulative.downloaded_bytes)}*\n"
        f"Uploaded: *{human_bytes(stats.cumulative.uploaded_bytes)}*\n"
        f"Total Running time: *{human_duration(stats.cumulative.seconds_active)}*\n"
    )


def format_count(torrents: Iterable[TorrentItem]) -> str:
    counts = {status: 0 for status in TorrentStatus}
    total = 0
    for torrent in torrents:
        counts[torrent.status] += 1
        total += 1
    return (
        f"Downloading: {counts[TorrentStatus.DOWNLOADING]}\n"
        f"Seeding: {counts[TorrentStatus.SEEDING]}\n"
        f"Paused: {counts[TorrentStatus.STOPPED]}\n"
        f"Verifying: {counts[TorrentStatus.CHECKING]}\n\n"
        f"- Waiting to -\n"
        f"Download: {counts[TorrentStatus.DOWNLOAD_PENDING]}\n"
        f"Seed: {counts[TorrentStatus.SEED_PENDING]}\n"
        f"Verify: {counts[TorrentStatus.CHECK_PENDING]}\n\n"
        f"Total: {total}"
    )


def format_trackers(torrents: Iterable[TorrentItem]) -> str:
    """One line per tracker host with the number of torrents using it."""
    counts = {}
    for torrent in torrents:
        for host in torrent.tracker_hosts:
            counts[host] = counts.get(host, 0) + 1
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return "".join(f"{count} - {host}\n" for host, count in ordered)


# ==================== Snapshots ====================

@dataclass(frozen=True)
class Snapshot:
    """The torrents a command selected and the text rendered from them."""
    torrents: List[TorrentItem]
    text: str

    @property
    def empty(self) -> bool:
        return not self.torrents


def select(
    torrents: Iterable[TorrentItem],
    predicate: Optional[Predicate] = None,
    order: Optional[SortOrder] = None,
) -> List[TorrentItem]:
    """Filter, then sort with the given order."""
    selected = [t for t in torrents if predicate is None or predicate(t)]
    if order is not None:
        selected = order.apply(selected)
    return selected


def render(torrents: Iterable[TorrentItem], template: Template, empty_text: str) -> str:
    text = "".join(template(t) for t in torrents)
    return text or empty_text


def snapshot(
    torrents: Iterable[TorrentItem],
    template: Template,
    empty_text: str,
    predicate: Optional[Predicate] = None,
    order: Optional[SortOrder] = None,
) -> Snapshot:
    selected = select(torrents, predicate, order)
    return Snapshot(selected, render(selected, template, empty_text))
