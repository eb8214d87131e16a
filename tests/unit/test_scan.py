"""Unit tests for chunk partitioning and the parallel scan coordinator."""

from __future__ import annotations

import pytest

from pkghist.config import ScanConfig
from pkghist.events.schemas import PackageAction
from pkghist.scan import complete_lines_end
from pkghist.scan import partition_chunks
from pkghist.scan import ScanCoordinator


def _log(lines: list[str]) -> bytes:
    return "".join(f"{line}\n" for line in lines).encode("utf-8")


def _synthetic_lines(count: int) -> list[str]:
    lines = []
    for i in range(count):
        minute, second = divmod(i, 60)
        stamp = f"2024-03-01T10:{minute % 60:02d}:{second:02d}+0000"
        if i % 7 == 3:
            lines.append(f"[{stamp}] [ALPM-SCRIPTLET] output line {i}")
        elif i % 5 == 4:
            lines.append(f"[{stamp}] [ALPM] upgraded pkg{i % 13} (1.{i} -> 1.{i + 1})")
        elif i % 11 == 10:
            lines.append(f"[{stamp}] [ALPM] removed pkg{i % 13} (1.{i})")
        else:
            lines.append(f"[{stamp}] [ALPM] installed pkg{i % 13} (1.{i})")
    return lines


def _coordinator(chunks: int | None = None, workers: int = 8) -> ScanCoordinator:
    return ScanCoordinator(ScanConfig(workers=workers, min_chunk_bytes=1, chunks=chunks))


# ---------------------------------------------------------------------------
# Partitioning
# ---------------------------------------------------------------------------


class TestPartitionChunks:
    def test_chunks_are_contiguous_and_line_aligned(self):
        data = _log(_synthetic_lines(50))
        chunks = partition_chunks(data, 0, len(data), 6)

        assert chunks[0][0] == 0
        assert chunks[-1][1] == len(data)
        for (_, end), (start, _) in zip(chunks, chunks[1:]):
            assert end == start
            assert data[start - 1 : start] == b"\n"

    def test_never_more_chunks_than_lines(self):
        data = _log(_synthetic_lines(3))
        chunks = partition_chunks(data, 0, len(data), 16)
        assert 1 <= len(chunks) <= 3
        assert all(end > start for start, end in chunks)

    def test_single_long_line_is_one_chunk(self):
        data = b"x" * 1000 + b"\n"
        assert partition_chunks(data, 0, len(data), 4) == [(0, len(data))]

    def test_respects_start_offset(self):
        data = _log(_synthetic_lines(20))
        start = data.index(b"\n") + 1
        chunks = partition_chunks(data, start, len(data), 3)
        assert chunks[0][0] == start

    def test_empty_region(self):
        assert partition_chunks(b"abc\n", 4, 4, 3) == []

    def test_invalid_count(self):
        with pytest.raises(ValueError):
            partition_chunks(b"abc\n", 0, 4, 0)


class TestCompleteLinesEnd:
    def test_trailing_partial_line_is_excluded(self):
        data = b"one\ntwo\nthr"
        assert complete_lines_end(data, 0, len(data)) == 8

    def test_no_newline(self):
        assert complete_lines_end(b"partial", 0, 7) == 0


# ---------------------------------------------------------------------------
# ScanCoordinator
# ---------------------------------------------------------------------------


class TestScanCoordinator:
    @pytest.mark.parametrize("chunks", [2, 8])
    def test_output_identical_for_any_chunk_count(self, chunks: int):
        data = _log(_synthetic_lines(400))
        serial = _coordinator(chunks=1).scan(data, range(0, len(data)))
        parallel = _coordinator(chunks=chunks).scan(data, range(0, len(data)))

        assert parallel.events == serial.events
        assert parallel.lines_seen == serial.lines_seen == 400
        assert parallel.lines_skipped == serial.lines_skipped
        assert parallel.chunk_count == chunks

    def test_counts_skipped_lines(self):
        data = _log(
            [
                "[2024-01-15T14:30:45+0100] [ALPM] installed firefox (120.0)",
                "[2024-01-15T14:30:46+0100] [ALPM-SCRIPTLET] >>> done",
                "garbage",
            ]
        )
        result = _coordinator(chunks=1).scan(data, range(0, len(data)))
        assert len(result.events) == 1
        assert result.lines_seen == 3
        assert result.lines_skipped == 2

    def test_partial_trailing_line_is_left_unconsumed(self):
        complete = _log(["[2024-01-15T14:30:45+0100] [ALPM] installed firefox (120.0)"])
        data = complete + b"[2024-01-15T14:31:00+0100] [ALPM] installed vi"
        result = _coordinator().scan(data, range(0, len(data)))
        assert [e.package_name for e in result.events] == ["firefox"]
        assert result.end_offset == len(complete)
        assert result.pending_events == []

    def test_unterminated_last_line_is_pending(self):
        complete = _log(["[2024-01-15T14:30:45+0100] [ALPM] installed firefox (120.0)"])
        data = complete + b"[2024-01-17T16:45:33+0100] [ALPM] removed old-package (1.0)"
        result = _coordinator(chunks=2).scan(data, range(0, len(data)))
        assert [e.package_name for e in result.events] == ["firefox"]
        assert [e.package_name for e in result.pending_events] == ["old-package"]
        assert result.end_offset == len(complete)

    def test_single_unterminated_line(self):
        data = b"[2024-01-15T14:30:45+0100] installed firefox (120.0)"
        result = _coordinator().scan(data, range(0, len(data)))
        assert result.events == []
        assert result.chunk_count == 0
        assert result.end_offset == 0
        assert [e.package_name for e in result.pending_events] == ["firefox"]

    def test_scans_only_the_given_range(self):
        first = _log(["[2024-01-15T14:30:45+0100] [ALPM] installed firefox (120.0)"])
        second = _log(["[2024-01-16T09:15:22+0100] [ALPM] removed firefox (120.0)"])
        data = first + second
        result = _coordinator().scan(data, range(len(first), len(data)))
        assert [e.action for e in result.events] == [PackageAction.REMOVED]
        assert result.bytes_scanned == len(second)

    def test_empty_range_does_no_work(self):
        data = _log(_synthetic_lines(5))
        result = _coordinator().scan(data, range(len(data), len(data)))
        assert result.events == []
        assert result.lines_seen == 0
        assert result.chunk_count == 0
        assert result.bytes_scanned == 0

    def test_undecodable_chunk_yields_nothing_but_scan_continues(self):
        good = _log(["[2024-01-15T14:30:45+0100] [ALPM] installed firefox (120.0)"])
        bad = b"\xff\xfe\xfa broken bytes \xc3\x28\n" * 20
        tail = _log(["[2024-01-16T09:15:22+0100] [ALPM] installed vim (9.0)"])
        data = good + bad + tail

        result = _coordinator(chunks=3).scan(data, range(0, len(data)))
        assert [e.package_name for e in result.events] == ["firefox", "vim"]
        assert result.lines_skipped == 20


class TestChunkCount:
    def test_small_input_uses_one_chunk(self):
        coordinator = ScanCoordinator(ScanConfig(workers=8, min_chunk_bytes=1024))
        assert coordinator.chunk_count(100) == 1

    def test_capped_by_workers(self):
        coordinator = ScanCoordinator(ScanConfig(workers=4, min_chunk_bytes=10))
        assert coordinator.chunk_count(10_000) == 4

    def test_forced_chunks(self):
        coordinator = ScanCoordinator(ScanConfig(workers=2, chunks=5))
        assert coordinator.chunk_count(10) == 5

    def test_zero_bytes(self):
        assert ScanCoordinator().chunk_count(0) == 0
