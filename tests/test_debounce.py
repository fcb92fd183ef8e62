import asyncio

from nexus.debounce import Debouncer
from nexus.models import StorageKey
from nexus.widgets.notes import NotesEditor


async def test_burst_produces_one_write_with_last_value():
    writes = []

    async def write(value):
        writes.append(value)

    debouncer = Debouncer(write, delay=0.5)
    for text in ["h", "he", "hel", "hell", "hello"]:
        debouncer.push(text)
        await asyncio.sleep(0.05)

    assert writes == []
    await asyncio.sleep(0.6)
    assert writes == ["hello"]


async def test_each_push_restarts_the_timer():
    writes = []

    async def write(value):
        writes.append(value)

    debouncer = Debouncer(write, delay=0.2)
    debouncer.push("a")
    await asyncio.sleep(0.12)
    debouncer.push("b")
    await asyncio.sleep(0.12)
    assert writes == []
    await asyncio.sleep(0.2)
    assert writes == ["b"]


async def test_separate_quiet_windows_write_separately():
    writes = []

    async def write(value):
        writes.append(value)

    debouncer = Debouncer(write, delay=0.05)
    debouncer.push("one")
    await asyncio.sleep(0.1)
    debouncer.push("two")
    await asyncio.sleep(0.1)
    assert writes == ["one", "two"]


async def test_cancel_discards_pending():
    writes = []

    async def write(value):
        writes.append(value)

    debouncer = Debouncer(write, delay=0.05)
    debouncer.push("lost")
    debouncer.cancel()
    await asyncio.sleep(0.1)
    assert writes == []
    assert debouncer.pending is False


async def test_flush_writes_immediately_once():
    writes = []

    async def write(value):
        writes.append(value)

    debouncer = Debouncer(write, delay=0.05)
    debouncer.push("now")
    await debouncer.flush()
    await asyncio.sleep(0.1)
    assert writes == ["now"]


async def test_notes_editor_five_rapid_edits_one_durable_write(store, backend):
    writes = []
    original_set = backend.set

    async def recording_set(items):
        writes.append(items)
        await original_set(items)

    backend.set = recording_set

    editor = NotesEditor(store, delay=0.5)
    await editor.load()
    for text in ["T", "To", "Tod", "Toda", "Today"]:
        editor.edit(text)
        await asyncio.sleep(0.02)

    assert editor.text == "Today"
    assert editor.dirty is True
    await asyncio.sleep(0.6)

    assert writes == [{"notes": "Today"}]
    assert await store.get(StorageKey.NOTES) == "Today"
    assert editor.dirty is False


async def test_notes_editor_close_drops_unsaved_edit(store):
    editor = NotesEditor(store, delay=0.05)
    editor.edit("draft")
    editor.close()
    await asyncio.sleep(0.1)
    assert await store.get(StorageKey.NOTES) == ""
