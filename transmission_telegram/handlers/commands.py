"""
Command Handlers
One coroutine per bot command. Each gets the bot context, the inbound
message and the command's arguments.
"""

import re
from functools import partial
from typing import Awaitable, Callable, List, Sequence

from transmission_telegram import __version__
from transmission_telegram.config import logger
from transmission_telegram.context import BotContext
from transmission_telegram.models import InboundMessage, SortField, SortOrder, TorrentItem, TorrentStatus
from transmission_telegram.services import LiveRefresher, ManagerError, TorrentNotFound
from transmission_telegram.utils.formatting import (
    Predicate,
    Template,
    compile_query,
    escape_markdown,
    format_checking,
    format_count,
    format_error,
    format_frozen,
    format_info,
    format_paused,
    format_rich,
    format_simple,
    format_speed,
    format_stats,
    format_trackers,
    has_error,
    is_active,
    name_matches,
    render,
    snapshot,
    status_in,
    tracker_matches,
)

DEFAULT_COUNT = 5

HELP = """
*list* or *li*
Lists all the torrents, takes an optional argument which is a query to list only torrents that has a tracker matches the query, or some of it.

*head* or *he*
Lists the first n number of torrents, n defaults to 5 if no argument is provided.

*tail* or *ta*
Lists the last n number of torrents, n defaults to 5 if no argument is provided.

*downs* or *dl*
Lists torrents with the status of _Downloading_ or in the queue to download.

*seeding* or *sd*
Lists torrents with the status of _Seeding_ or in the queue to seed.

*paused* or *pa*
Lists _Paused_ torrents.

*checking* or *ch*
Lists torrents with the status of _Verifying_ or in the queue to verify.

*active* or *ac*
Lists torrents that are actively uploading or downloading.

*errors* or *er*
Lists torrents with with errors along with the error message.

*sort* or *so*
Manipulate the sorting of the aforementioned commands. Call it without arguments for more.

*trackers* or *tr*
Lists all the trackers along with the number of torrents.

*add* or *ad*
Takes one or many URLs or magnets to add them. You can send a ".torrent" file via Telegram to add it.

*search* or *se*
Takes a query and lists torrents with matching names.

*latest* or *la*
Lists the newest n torrents, n defaults to 5 if no argument is provided.

*info* or *in*
Takes one or more torrent's IDs to list more info about them.

*stop* or *sp*
Takes one or more torrent's IDs to stop them, or _all_ to stop all torrents.

*start* or *st*
Takes one or more torrent's IDs to start them, or _all_ to start all torrents.

*check* or *ck*
Takes one or more torrent's IDs to verify them, or _all_ to verify all torrents.

*del*
Takes one or more torrent's IDs to delete them.

*deldata*
Takes one or more torrent's IDs to delete them and their data.

*stats* or *sa*
Shows Transmission's stats.

*speed* or *ss*
Shows the upload and download speeds.

*count* or *co*
Shows the torrents counts per status.

*help*
Shows this help message.

*version*
Shows version numbers.

- Prefix commands with '/' if you want to talk to your bot in a group.
"""

SORT_USAGE = (
    "*sort* takes one of:\n"
    "(*id, name, age, size, progress, downspeed, upspeed, download, upload, ratio*)\n"
    "optionally start with (*rev*) for reversed order\n"
    'e.g. "*sort rev size*" to get biggest torrents first.'
)

Handler = Callable[[BotContext, InboundMessage, List[str]], Awaitable[None]]


async def reply(bot: BotContext, message: InboundMessage, text: str, markdown: bool = False):
    return await bot.dispatcher.send(message.chat_id, text, markdown)


async def start_live(bot: BotContext, message: InboundMessage, text: str, fetch, render_fn, initial, markdown: bool) -> None:
    """Send the first render and, unless live mode is off, keep it updated."""
    message_id = await reply(bot, message, text, markdown)
    if message_id is None or not bot.live_enabled:
        return
    bot.live.start(LiveRefresher(
        bot.dispatcher,
        message.chat_id,
        message_id,
        fetch,
        render_fn,
        initial,
        ticks=bot.config.live_ticks,
        interval=bot.config.live_interval,
        markdown=markdown,
    ))


def parse_count(args: Sequence[str]) -> int:
    """First argument as a number of torrents, DEFAULT_COUNT if absent. Raises ValueError."""
    if not args:
        return DEFAULT_COUNT
    return int(args[0])


def bounded(n: int, total: int) -> int:
    # Make sure that we stay in the boundaries
    if n <= 0 or n > total:
        return total
    return n


# ==================== Listings ====================

async def list_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """List all torrents, or those with a tracker matching the query."""
    predicate = None
    if args:
        try:
            predicate = tracker_matches(compile_query(args[0]))
        except re.error as e:
            await reply(bot, message, f"*list:* {e}")
            return

    try:
        torrents = await bot.manager.get_torrents()
    except ManagerError as e:
        await reply(bot, message, f"*list:* {e}")
        return

    snap = snapshot(torrents, format_simple, "", predicate, bot.sort.current())
    if snap.empty:
        if args:
            await reply(bot, message, f"*list:* No tracker matches: *{escape_markdown(args[0])}*", markdown=True)
        else:
            await reply(bot, message, "*list:* no torrents")
        return
    await reply(bot, message, snap.text)


async def _edge_command(bot: BotContext, message: InboundMessage, args: List[str], name: str, from_end: bool) -> None:
    try:
        n = parse_count(args)
    except ValueError:
        await reply(bot, message, f"*{name}:* argument must be a number")
        return

    fetch = bot.manager.get_torrents
    try:
        torrents = await fetch()
    except ManagerError as e:
        await reply(bot, message, f"*{name}:* {e}")
        return

    order = bot.sort.current()

    def pick(current: List[TorrentItem]) -> List[TorrentItem]:
        ordered = order.apply(current)
        count = bounded(n, len(ordered))
        return ordered[len(ordered) - count:] if from_end else ordered[:count]

    def render_edge(current: List[TorrentItem], frozen: bool) -> str:
        return render(pick(current), format_frozen if frozen else format_rich, f"*{name}:* no torrents")

    if not pick(torrents):
        await reply(bot, message, f"*{name}:* no torrents")
        return
    await start_live(bot, message, render_edge(torrents, False), fetch, render_edge, torrents, markdown=True)


async def head_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """First n torrents, kept live."""
    await _edge_command(bot, message, args, "head", from_end=False)


async def tail_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """Last n torrents, kept live."""
    await _edge_command(bot, message, args, "tail", from_end=True)


async def _filtered_command(
    bot: BotContext,
    message: InboundMessage,
    name: str,
    predicate: Predicate,
    template: Template,
    empty_text: str,
) -> None:
    try:
        torrents = await bot.manager.get_torrents()
    except ManagerError as e:
        await reply(bot, message, f"*{name}:* {e}")
        return
    snap = snapshot(torrents, template, empty_text, predicate, bot.sort.current())
    await reply(bot, message, snap.text)


async def downs_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await _filtered_command(
        bot, message, "downs",
        status_in(TorrentStatus.DOWNLOADING, TorrentStatus.DOWNLOAD_PENDING),
        format_simple, "No downloads",
    )


async def seeding_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await _filtered_command(
        bot, message, "seeding",
        status_in(TorrentStatus.SEEDING, TorrentStatus.SEED_PENDING),
        format_simple, "No torrents seeding",
    )


async def paused_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await _filtered_command(
        bot, message, "paused",
        status_in(TorrentStatus.STOPPED),
        format_paused, "No paused torrents",
    )


async def checking_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await _filtered_command(
        bot, message, "checking",
        status_in(TorrentStatus.CHECKING, TorrentStatus.CHECK_PENDING),
        format_checking, "No torrents verifying",
    )


async def errors_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await _filtered_command(bot, message, "errors", has_error, format_error, "No errors")


async def active_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """Torrents that are uploading or downloading right now, kept live."""
    fetch = bot.manager.get_torrents
    try:
        torrents = await fetch()
    except ManagerError as e:
        await reply(bot, message, f"*active:* {e}")
        return

    order = bot.sort.current()

    def render_active(current: List[TorrentItem], frozen: bool) -> str:
        return snapshot(current, format_frozen if frozen else format_rich, "No active torrents", is_active, order).text

    snap = snapshot(torrents, format_rich, "No active torrents", is_active, order)
    if snap.empty:
        await reply(bot, message, snap.text)
        return
    await start_live(bot, message, snap.text, fetch, render_active, torrents, markdown=True)


async def search_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """Torrents whose name matches the query."""
    if not args:
        await reply(bot, message, "*search:* needs an argument")
        return

    query = " ".join(args)
    try:
        pattern = compile_query(query)
    except re.error as e:
        await reply(bot, message, f"*search:* {e}")
        return

    try:
        torrents = await bot.manager.get_torrents()
    except ManagerError as e:
        await reply(bot, message, f"*search:* {e}")
        return

    snap = snapshot(torrents, format_simple, "No matches!", name_matches(pattern), bot.sort.current())
    await reply(bot, message, snap.text)


async def latest_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """The n most recently added torrents, newest first."""
    try:
        n = parse_count(args)
    except ValueError:
        await reply(bot, message, "*latest:* argument must be a number")
        return

    try:
        torrents = await bot.manager.get_torrents()
    except ManagerError as e:
        await reply(bot, message, f"*latest:* {e}")
        return

    newest = SortOrder(SortField.AGE, reverse=True).apply(torrents)
    newest = newest[:bounded(n, len(newest))]
    await reply(bot, message, render(newest, format_simple, "*latest:* No torrents"))


async def trackers_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    try:
        torrents = await bot.manager.get_torrents()
    except ManagerError as e:
        await reply(bot, message, f"*trackers:* {e}")
        return
    await reply(bot, message, format_trackers(torrents) or "No trackers!")


async def count_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    try:
        torrents = await bot.manager.get_torrents()
    except ManagerError as e:
        await reply(bot, message, f"*count:* {e}")
        return
    await reply(bot, message, format_count(torrents))


# ==================== Details ====================

async def info_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """Detailed view of each given torrent, each one kept live on its own."""
    if not args:
        await reply(bot, message, "*info:* needs a torrent ID number")
        return

    for token in args:
        try:
            torrent_id = int(token)
        except ValueError:
            await reply(bot, message, f"*info:* {token} is not a number")
            continue

        try:
            torrent = await bot.manager.get_torrent(torrent_id)
        except TorrentNotFound:
            await reply(bot, message, f"*info:* Can't find a torrent with an ID of {torrent_id}")
            continue
        except ManagerError as e:
            await reply(bot, message, f"*info:* {e}")
            continue

        fetch = partial(bot.manager.get_torrent, torrent_id)
        await start_live(bot, message, format_info(torrent), fetch, format_info, torrent, markdown=True)


async def stats_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    try:
        stats = await bot.manager.session_stats()
    except ManagerError as e:
        await reply(bot, message, f"*stats:* {e}")
        return
    await reply(bot, message, format_stats(stats), markdown=True)


async def speed_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """Current download and upload speeds, kept live."""
    fetch = bot.manager.session_stats
    try:
        stats = await fetch()
    except ManagerError as e:
        await reply(bot, message, f"*speed:* {e}")
        return
    await start_live(bot, message, format_speed(stats), fetch, format_speed, stats, markdown=False)


# ==================== Sorting ====================

async def sort_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """Change the order every listing uses, for all chats."""
    if not args:
        await reply(bot, message, SORT_USAGE, markdown=True)
        return

    reverse = False
    if args[0].lower() == "rev":
        reverse = True
        args = args[1:]
        if not args:
            await reply(bot, message, SORT_USAGE, markdown=True)
            return

    field = SortField.parse(args[0])
    if field is None:
        await reply(bot, message, "unknown sorting method")
        return

    order = bot.sort.set(field, reverse)
    logger.info(f"Sort order set to {order.describe()} from chat ID {message.chat_id}")
    await reply(bot, message, f"*sort:* {order.describe()}")


# ==================== Mutations ====================

async def add_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """Add torrents by URL or magnet link, one reply per link."""
    if not args:
        await reply(bot, message, "*add:* needs at least one URL")
        return

    for url in args:
        try:
            torrent = await bot.manager.add_torrent(url)
        except ManagerError as e:
            await reply(bot, message, f"*add:* {e}")
            continue

        # An empty name means transmission didn't accept it
        if not torrent.name:
            await reply(bot, message, f"*add:* error adding {url}")
            continue
        logger.info(f"Torrent added: {torrent.name} (chat ID: {message.chat_id})")
        await reply(bot, message, f"*Added:* <{torrent.id}> {torrent.name}")


async def receive_file(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    """A file was sent instead of text; add it through its download URL."""
    if not message.attachment_id:
        return
    try:
        url = await bot.dispatcher.chat.get_file_url(message.attachment_id)
    except Exception as e:
        logger.error(f"Error getting file {message.attachment_id}: {e}")
        await reply(bot, message, f"*receiver:* {e}")
        return
    await add_command(bot, message, [url])


async def _state_command(
    bot: BotContext,
    message: InboundMessage,
    args: List[str],
    name: str,
    one: Callable[[int], Awaitable[TorrentItem]],
    every: Callable[[], Awaitable[None]],
    verb: str,
    all_done: str,
) -> None:
    if not args:
        await reply(bot, message, f"*{name}:* needs an argument")
        return

    if args[0].lower() == "all":
        try:
            await every()
        except ManagerError as e:
            logger.error(f"Error {verb} all torrents: {e}")
            await reply(bot, message, f"*{name}:* error occurred while {verb} some torrents")
            return
        await reply(bot, message, all_done)
        return

    for token in args:
        try:
            torrent_id = int(token)
        except ValueError:
            await reply(bot, message, f"*{name}:* {token} is not a number")
            continue
        try:
            torrent = await one(torrent_id)
        except TorrentNotFound:
            await reply(bot, message, f"[fail] *{name}:* No torrent with an ID of {torrent_id}")
            continue
        except ManagerError as e:
            await reply(bot, message, f"*{name}:* {e}")
            continue
        await reply(bot, message, f"[success] *{name}:* {torrent.name}")


async def stop_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await _state_command(
        bot, message, args, "stop",
        bot.manager.stop_torrent, bot.manager.stop_all, "stopping", "Stopped all torrents",
    )


async def start_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await _state_command(
        bot, message, args, "start",
        bot.manager.start_torrent, bot.manager.start_all, "starting", "Started all torrents",
    )


async def check_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await _state_command(
        bot, message, args, "check",
        bot.manager.verify_torrent, bot.manager.verify_all, "verifying", "Verifying all torrents",
    )


async def _remove_command(
    bot: BotContext, message: InboundMessage, args: List[str], name: str, delete_data: bool, done: str
) -> None:
    if not args:
        await reply(bot, message, f"*{name}:* needs an ID")
        return

    for token in args:
        try:
            torrent_id = int(token)
        except ValueError:
            await reply(bot, message, f"*{name}:* {token} is not an ID")
            continue
        try:
            torrent_name = await bot.manager.remove_torrent(torrent_id, delete_data=delete_data)
        except ManagerError as e:
            await reply(bot, message, f"*{name}:* {e}")
            continue
        logger.info(f"Torrent removed: {torrent_name} (data: {delete_data}, chat ID: {message.chat_id})")
        await reply(bot, message, f"{done} {torrent_name}")


async def del_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await _remove_command(bot, message, args, "del", False, "*Deleted:*")


async def deldata_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await _remove_command(bot, message, args, "deldata", True, "Deleted with data:")


# ==================== Static ====================

async def help_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await reply(bot, message, HELP, markdown=True)


async def version_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    try:
        version = await bot.manager.version()
    except ManagerError as e:
        await reply(bot, message, f"*version:* {e}")
        return
    await reply(
        bot, message,
        f"Transmission *{escape_markdown(version)}*\nTransmission-telegram *{__version__}*",
        markdown=True,
    )


async def unknown_command(bot: BotContext, message: InboundMessage, args: List[str]) -> None:
    await reply(bot, message, "No such command, try /help")
