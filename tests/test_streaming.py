from __future__ import annotations

import io
import json

import pytest

from grant_analyzer.errors import SinkClosedError
from grant_analyzer.models import EnrichedGrant, SummaryRecord, Verdict
from grant_analyzer.streaming import FileSink, encode_message
from tests.conftest import ListSink

GRANT = EnrichedGrant(
    SummaryRecord("Fonds für Kultur", "https://x.test/g/1", "Kunst", "01/01/2027"),
    Verdict("NO", "Out of scope", 3),
)


def test_message_is_newline_terminated_single_record_array() -> None:
    message = encode_message(GRANT)

    assert message.endswith(b"\n")
    assert message.count(b"\n") == 1
    assert json.loads(message) == [GRANT.to_dict()]
    assert "Fonds für Kultur".encode("utf-8") in message


@pytest.mark.asyncio
async def test_close_runs_once() -> None:
    sink = ListSink()

    await sink.emit(GRANT)
    await sink.close()
    await sink.close()

    assert sink.closed
    assert sink.close_calls == 1
    assert sink.emitted == 1


@pytest.mark.asyncio
async def test_emit_after_close_raises() -> None:
    sink = ListSink()
    await sink.close()

    with pytest.raises(SinkClosedError):
        await sink.emit(GRANT)
    assert sink.messages == []


@pytest.mark.asyncio
async def test_transport_failure_becomes_sink_closed_error() -> None:
    sink = ListSink(fail_after=0)

    with pytest.raises(SinkClosedError):
        await sink.emit(GRANT)
    assert sink.emitted == 0


@pytest.mark.asyncio
async def test_file_sink_writes_one_line_per_record() -> None:
    stream = io.StringIO()
    sink = FileSink(stream)

    await sink.emit(GRANT)
    await sink.emit(GRANT)
    await sink.close()

    lines = stream.getvalue().splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])[0]["title"] == "Fonds für Kultur"
