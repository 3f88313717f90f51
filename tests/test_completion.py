import pytest

from transmission_telegram.services import CompletionWatcher, MessageDispatcher
from transmission_telegram.services.completion import parse_completed

COMPLETE_LINE = '[2017-02-22 21:00:00.898] Some.Show.S01E01 State changed from "Incomplete" to "Complete" (torrent.c:2218)\n'


def test_parse_completed() -> None:
    assert parse_completed(COMPLETE_LINE) == "Some.Show.S01E01"
    assert parse_completed('[2017-02-22 21:00:00.898] Other State changed from "Complete" to "Incomplete"') is None
    assert parse_completed("random noise") is None


@pytest.mark.anyio
async def test_notifies_last_chat(chat) -> None:
    watcher = CompletionWatcher("/unused", MessageDispatcher(chat))
    await watcher.handle_line(COMPLETE_LINE)
    assert chat.sent == []

    watcher.note_chat(42)
    await watcher.handle_line(COMPLETE_LINE)
    assert chat.sent == [(42, "Completed: Some.Show.S01E01", False)]


def test_reads_only_lines_appended_after_start(tmp_path, chat) -> None:
    log = tmp_path / "transmission.log"
    log.write_text("old line\n")
    watcher = CompletionWatcher(str(log), MessageDispatcher(chat))
    watcher.mark_end()
    assert watcher.read_new_lines() == []

    with log.open("a") as f:
        f.write(COMPLETE_LINE)
        f.write("half a li")
    assert watcher.read_new_lines() == [COMPLETE_LINE.rstrip("\n")]

    with log.open("a") as f:
        f.write("ne\n")
    assert watcher.read_new_lines() == ["half a line"]


def test_truncated_log_is_read_from_the_top(tmp_path, chat) -> None:
    log = tmp_path / "transmission.log"
    log.write_text("a fairly long line that was there before\n")
    watcher = CompletionWatcher(str(log), MessageDispatcher(chat))
    watcher.mark_end()

    log.write_text("fresh\n")
    assert watcher.read_new_lines() == ["fresh"]


def test_replaced_log_is_read_from_the_top(tmp_path, chat) -> None:
    log = tmp_path / "transmission.log"
    log.write_text("short\n")
    watcher = CompletionWatcher(str(log), MessageDispatcher(chat))
    watcher.mark_end()

    rotated = tmp_path / "new.log"
    rotated.write_text("first line of the new log\nsecond\n")
    log.unlink()
    rotated.rename(log)
    assert watcher.read_new_lines() == ["first line of the new log", "second"]


def test_missing_log_reads_nothing(tmp_path, chat) -> None:
    watcher = CompletionWatcher(str(tmp_path / "absent.log"), MessageDispatcher(chat))
    watcher.mark_end()
    assert watcher.read_new_lines() == []


@pytest.mark.anyio
async def test_poll_sends_completed_torrents(tmp_path, chat) -> None:
    log = tmp_path / "transmission.log"
    log.write_text("")
    watcher = CompletionWatcher(str(log), MessageDispatcher(chat))
    watcher.mark_end()
    watcher.note_chat(7)

    log.write_text("noise\n" + COMPLETE_LINE)
    await watcher.poll()
    assert chat.texts == ["Completed: Some.Show.S01E01"]
