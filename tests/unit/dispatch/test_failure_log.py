"""
Unit tests for the NDJSON FailureLog.
"""

import asyncio
import json

import pytest

from megaverse.dispatch import Failed, FailureLog, Operation, PermanentFailure, RateLimited


def _failed(i: int, exhausted: bool = False) -> Failed:
    op = Operation(
        destination="comeths",
        payload={"candidateId": "c", "row": i, "column": 0, "direction": "up"},
        key=f"comeths@({i},0)",
    )
    cause = RateLimited(429, "slow down") if exhausted else PermanentFailure(400, "bad")
    return Failed(op, cause, attempts=6 if exhausted else 1, exhausted=exhausted)


@pytest.mark.asyncio
async def test_save_and_replay(tmp_path):
    log = FailureLog(tmp_path / "failures.ndjson")

    assert await log.save([_failed(1), _failed(2, exhausted=True)]) == 2
    await log.save([_failed(3)])

    recs = await log.records()
    assert [r.key for r in recs] == ["comeths@(1,0)", "comeths@(2,0)", "comeths@(3,0)"]
    assert recs[1].reason == "retries_exhausted"
    assert recs[1].attempts == 6
    assert "429" in recs[1].detail

    ops = await log.replay()
    assert ops[0].destination == "comeths"
    assert ops[0].body() == {"candidateId": "c", "row": 1, "column": 0, "direction": "up"}


@pytest.mark.asyncio
async def test_replay_limit(tmp_path):
    log = FailureLog(tmp_path / "failures.ndjson")
    await log.save([_failed(i) for i in range(10)])

    assert len(await log.replay(4)) == 4


@pytest.mark.asyncio
async def test_replay_missing_file(tmp_path):
    log = FailureLog(tmp_path / "nope.ndjson", mkdirs=False)

    assert await log.replay() == []


@pytest.mark.asyncio
async def test_save_nothing_creates_nothing(tmp_path):
    log = FailureLog(tmp_path / "failures.ndjson")

    assert await log.save([]) == 0
    assert not log.path.exists()


@pytest.mark.asyncio
async def test_malformed_lines_skipped(tmp_path):
    p = tmp_path / "failures.ndjson"
    log = FailureLog(p)
    await log.save([_failed(1)])
    with p.open("a", encoding="utf-8") as fh:
        fh.write("{not json}\n\n")
    await log.save([_failed(2)])

    assert [r.key for r in await log.records()] == ["comeths@(1,0)", "comeths@(2,0)"]


@pytest.mark.asyncio
async def test_concurrent_saves(tmp_path):
    log = FailureLog(tmp_path / "nested" / "failures.ndjson")

    await asyncio.gather(*[log.save([_failed(i)]) for i in range(20)])

    assert len(await log.records()) == 20


@pytest.mark.asyncio
async def test_records_with_wrong_field_types_skipped(tmp_path):
    p = tmp_path / "failures.ndjson"
    log = FailureLog(p)
    await log.save([_failed(1)])
    base = {"destination": "comeths", "key": "k", "reason": "permanent_failure",
            "detail": "x", "attempts": 1, "ts": "2024-01-01T00:00:00+00:00"}
    with p.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps({**base, "payload": None}) + "\n")
        fh.write(json.dumps({**base, "payload": [1, 2]}) + "\n")
        fh.write(json.dumps({**base, "payload": {}, "destination": 7}) + "\n")
        fh.write(json.dumps([1, 2, 3]) + "\n")
    await log.save([_failed(2)])

    assert [r.key for r in await log.records()] == ["comeths@(1,0)", "comeths@(2,0)"]
    ops = await log.replay()
    assert [o.key for o in ops] == ["comeths@(1,0)", "comeths@(2,0)"]
