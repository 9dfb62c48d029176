import asyncio
import threading

import pytest

from practice_engine.errors import TranscriptionUnavailable
from practice_engine.transcript import QueueTranscriptionSource


async def _collect(source: QueueTranscriptionSource) -> list:
    return [event async for event in source.events()]


@pytest.mark.asyncio
async def test_callbacks_become_ordered_events():
    source = QueueTranscriptionSource()
    await source.start()

    source.on_result("I under", False, 0.4)
    source.on_result("I understand", True, 0.9)
    await source.stop()

    events = await _collect(source)
    assert [(event.text, event.is_final) for event in events] == [("I under", False), ("I understand", True)]
    assert source.running is False


@pytest.mark.asyncio
async def test_results_from_other_threads_are_delivered():
    source = QueueTranscriptionSource()
    await source.start()

    def recognizer():
        for index in range(5):
            source.on_result(f"part {index}", True, 0.8)
        source.on_end()

    worker = threading.Thread(target=recognizer)
    worker.start()
    events = await asyncio.wait_for(_collect(source), timeout=2.0)
    worker.join()

    assert [event.text for event in events] == [f"part {index}" for index in range(5)]


@pytest.mark.asyncio
async def test_error_ends_stream_and_keeps_reason():
    source = QueueTranscriptionSource()
    await source.start()

    source.on_result("hello", True, 0.9)
    source.on_error("network")
    source.on_result("ignored", True, 0.9)

    events = await _collect(source)
    assert [event.text for event in events] == ["hello"]
    assert source.last_error == "network"


@pytest.mark.asyncio
async def test_start_failure_raises_transcription_unavailable():
    async def _denied():
        raise PermissionError("microphone permission denied")

    source = QueueTranscriptionSource(start_fn=_denied)

    with pytest.raises(TranscriptionUnavailable, match="microphone permission denied"):
        await source.start()
    assert source.running is False
