"""Greedy chunk packing: order, size limit, unit integrity."""
from __future__ import annotations

import random

import pytest

from careerpilot.errors import ValidationError
from careerpilot.notify.chunking import CONTINUED_MARKER, pack_chunks
from careerpilot.notify.telegram import TelegramChannel


def _bodies(chunks: list[str], header: str) -> list[str]:
    """Chunk contents with the header and continuation markers removed."""
    bodies = []
    for i, chunk in enumerate(chunks):
        prefix = header if i == 0 else CONTINUED_MARKER
        assert chunk.startswith(prefix)
        bodies.append(chunk[len(prefix):])
    return bodies


def _assert_whole_units(bodies: list[str], units: list[str]) -> None:
    """Every body is a run of consecutive, unsplit units."""
    j = 0
    for body in bodies:
        assert body, "empty chunk"
        rest = body
        while rest:
            assert rest.startswith(units[j])
            rest = rest[len(units[j]):]
            j += 1
    assert j == len(units)


def test_worked_example():
    units = [f"item{i}\n" for i in range(1, 6)]
    chunks = pack_chunks(units, 20, header="H\n")
    assert chunks == [
        "H\nitem1\nitem2\nitem3\n",
        "(continued)\nitem4\n",
        "(continued)\nitem5\n",
    ]


@pytest.mark.parametrize("max_size", [40, 64, 150, 1000])
@pytest.mark.parametrize("seed", [1, 2, 3])
def test_chunks_reproduce_units_within_limit(max_size, seed):
    rng = random.Random(seed)
    header = "Header line\n"
    units = [
        f"Vacancy {i}: " + "x" * rng.randint(0, max_size - len(CONTINUED_MARKER) - 20) + "\n"
        for i in range(25)
    ]
    chunks = pack_chunks(units, max_size, header=header)

    assert all(len(c) <= max_size for c in chunks)
    bodies = _bodies(chunks, header)
    assert "".join(bodies) == "".join(units)
    _assert_whole_units(bodies, units)


def test_unit_filling_chunk_exactly_fits():
    chunks = pack_chunks(["abcde", "fghij"], 10, header="")
    assert chunks == ["abcdefghij"]


def test_marker_longer_than_limit_only_matters_when_continuing():
    # the 12-char marker never fits in 10, but one chunk is enough here
    assert pack_chunks(["abc", "def"], 10) == ["abcdef"]
    with pytest.raises(ValidationError, match="Unit 2"):
        pack_chunks(["abcde", "fghij", "k"], 10)


def test_oversized_unit_raises():
    with pytest.raises(ValidationError, match="Unit 1"):
        pack_chunks(["ok\n", "y" * 50], 30)


def test_header_without_room_raises():
    with pytest.raises(ValidationError):
        pack_chunks(["a"], 5, header="long header")


def test_empty_units_give_no_chunks():
    assert pack_chunks([], 100, header="H") == []


def test_no_limit_gives_single_chunk():
    assert pack_chunks(["a", "b", "c"], None, header="H:") == ["H:abc"]


def test_telegram_entries_never_split(engine, make_vacancy):
    ranked = engine.rank_vacancies([
        make_vacancy(title=f"Python Engineer {i}", company=f"Company {i}", salary_min=100_000 + i)
        for i in range(40)
    ])
    channel = TelegramChannel("token", "chat", max_message_size=1000)
    header, units = channel.match_units(ranked)
    chunks = pack_chunks(units, channel.max_message_size, header=header)

    assert len(chunks) > 1
    assert all(len(c) <= 1000 for c in chunks)
    _assert_whole_units(_bodies(chunks, header), units)
    # ranked order survives chunking
    titles = [line for c in chunks for line in c.splitlines() if line.startswith("<b>Python Engineer")]
    assert titles == [f"<b>{v.title}</b>" for v in ranked]
