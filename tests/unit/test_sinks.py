"""Tests for the write-side stream adapters."""

import io
import random

import pytest

from cipherkit.exceptions import ArgumentContractError, CipherContextError
from cipherkit.streams.sinks import (
    ChunkSink,
    CipherTransformSink,
    RangeWindowSink,
    sink_for,
    transform_pipeline,
)
from cipherkit.streams.sources import copy_stream


class FakeCipher:
    """Appends a marker to every update, fails on empty input like some providers do."""

    def __init__(self, marker=b"c", trailer=b""):
        self.marker = marker
        self.trailer = trailer
        self.finalized = 0

    def update(self, data):
        if len(data) == 0:
            raise ValueError("data must not be empty")
        return data + self.marker

    def finalize(self):
        self.finalized += 1
        return self.trailer


class TestCipherTransformSink:
    """Writes go through the cipher context before reaching the downstream."""

    def test_writes_through_the_cipher_and_returns_input_length(self):
        out = io.BytesIO()
        sink = CipherTransformSink(out, FakeCipher())

        assert sink.write(b"ab") == 2
        assert out.getvalue() == b"abc"

    def test_does_not_update_cipher_with_empty_input(self):
        fake = FakeCipher()
        with pytest.raises(ValueError):
            fake.update(b"")

        out = io.BytesIO()
        sink = CipherTransformSink(out, fake)
        assert sink.write(b"") == 0
        assert out.getvalue() == b""

    def test_finalize_flushes_trailer_once(self):
        out = io.BytesIO()
        fake = FakeCipher(trailer=b"!")
        sink = CipherTransformSink(out, fake)
        sink.write(b"x")
        sink.finalize()

        assert out.getvalue() == b"xc!"
        with pytest.raises(CipherContextError):
            sink.finalize()
        with pytest.raises(CipherContextError):
            sink.write(b"y")
        assert fake.finalized == 1

    def test_context_manager_finalizes_on_success(self):
        out = io.BytesIO()
        fake = FakeCipher(trailer=b"T")
        with CipherTransformSink(out, fake) as sink:
            sink.write(b"a")

        assert fake.finalized == 1
        assert out.getvalue() == b"acT"

    def test_context_manager_discards_on_error(self):
        """A half-used context is never finalized nor reused."""
        out = io.BytesIO()
        fake = FakeCipher(trailer=b"T")
        with pytest.raises(RuntimeError):
            with CipherTransformSink(out, fake) as sink:
                sink.write(b"a")
                raise RuntimeError("boom")

        assert fake.finalized == 0
        assert out.getvalue() == b"ac"
        with pytest.raises(CipherContextError):
            sink.write(b"b")

    def test_pipeline_finalizes_in_data_flow_order(self):
        out = io.BytesIO()
        first = FakeCipher(marker=b"1", trailer=b"<1>")
        second = FakeCipher(marker=b"2", trailer=b"<2>")
        with transform_pipeline(out, first, second) as sink:
            sink.write(b"a")

        # first's trailer passes through second before second finalizes
        assert out.getvalue() == b"a12<1>2<2>"


class TestChunkSink:
    """Callbacks and real destinations are interchangeable."""

    def test_calls_back_with_chunks(self):
        chunks = []
        sink = ChunkSink(chunks.append)

        assert sink.write(b"abc") == 3
        assert sink.write(bytearray(b"de")) == 2
        assert chunks == [b"abc", b"de"]

    def test_works_with_copy_stream(self):
        chunks = []
        copy_stream(io.BytesIO(b"x" * 10), sink_for(on_chunk=chunks.append), chunk_size=4)
        assert chunks == [b"xxxx", b"xxxx", b"xx"]

    def test_sink_for_passes_destination_through(self):
        out = io.BytesIO()
        assert sink_for(out) is out

    def test_sink_for_requires_exactly_one(self):
        with pytest.raises(ArgumentContractError):
            sink_for()
        with pytest.raises(ArgumentContractError):
            sink_for(io.BytesIO(), on_chunk=lambda chunk: None)


class TestRangeWindowSink:
    """Only the windowed part of the logical stream is forwarded."""

    RANGES = [
        slice(0, 1),
        (0, 0),
        (1, 1),
        slice(1, 2),
        (43, 120),
        slice(14, None),
        slice(None, 15),
    ]

    def test_output_does_not_depend_on_chunking(self):
        data = random.Random(7).randbytes(48)
        for write_size in range(1, len(data) + 1):
            for test_range in self.RANGES:
                if isinstance(test_range, tuple):
                    expected = data[test_range[0]:test_range[1] + 1]
                else:
                    expected = data[test_range]

                out = io.BytesIO()
                lens = RangeWindowSink(out, test_range)
                for at in range(0, len(data), write_size):
                    chunk = data[at:at + write_size]
                    assert lens.write(chunk) == len(chunk)

                assert out.getvalue() == expected, (write_size, test_range)

    def test_for_window(self):
        out = io.BytesIO()
        lens = RangeWindowSink.for_window(out, 3, 4)
        lens.write(b"0123456789")
        assert out.getvalue() == b"3456"

    def test_empty_writes_are_accepted(self):
        out = io.BytesIO()
        lens = RangeWindowSink(out, (0, 3))
        assert lens.write(b"") == 0
        lens.write(b"abcdef")
        assert out.getvalue() == b"abcd"
