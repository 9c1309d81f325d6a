"""Tests for primitive binary encoding."""

import io

import pytest

from janus.errors import FormatError
from janus.storage.binary import BinaryReader, BinaryWriter


def written(*calls):
    buffer = io.BytesIO()
    writer = BinaryWriter(buffer)
    for method, value in calls:
        getattr(writer, method)(value)
    return buffer.getvalue()


def reader(data: bytes) -> BinaryReader:
    return BinaryReader(io.BytesIO(data))


class TestBinaryWriter:
    def test_7bit_length_prefix(self):
        assert written(("write_string", "abc")) == b"\x03abc"
        assert written(("write_7bit_int", 300)) == b"\xac\x02"

    def test_utf8_length_is_in_bytes(self):
        assert written(("write_string", "é")) == b"\x02\xc3\xa9"

    def test_little_endian_integers(self):
        assert written(("write_int32", -2)) == b"\xfe\xff\xff\xff"
        assert written(("write_uint32", 1)) == b"\x01\x00\x00\x00"
        assert written(("write_uint64", 2 ** 64 - 1)) == b"\xff" * 8

    def test_bool_and_char(self):
        assert written(("write_bool", True), ("write_bool", False)) == b"\x01\x00"
        assert written(("write_char", "[")) == b"["

    def test_char_rejects_strings(self):
        with pytest.raises(ValueError):
            written(("write_char", "EF"))

    def test_string_not_encodable_as_utf8(self):
        with pytest.raises(FormatError):
            written(("write_string", "/w/\udcff"))


class TestBinaryReader:
    def test_reads_what_writer_wrote(self):
        data = written(
            ("write_string", "naïve"),
            ("write_int32", -7),
            ("write_uint64", 12345678901234),
            ("write_double", 2.5),
            ("write_bool", True),
            ("write_char", "€"),
        )
        r = reader(data)
        assert r.read_string() == "naïve"
        assert r.read_int32() == -7
        assert r.read_uint64() == 12345678901234
        assert r.read_double() == 2.5
        assert r.read_bool() is True
        assert r.read_char() == "€"

    def test_long_string(self):
        text = "x" * 1000
        assert reader(written(("write_string", text))).read_string() == text

    def test_truncated_stream(self):
        with pytest.raises(FormatError):
            reader(b"\x01\x00").read_int32()

    def test_truncated_string(self):
        with pytest.raises(FormatError):
            reader(b"\x05ab").read_string()

    def test_invalid_7bit_int(self):
        with pytest.raises(FormatError):
            reader(b"\xff" * 6).read_7bit_int()

    def test_7bit_int_fifth_byte_holds_four_bits(self):
        assert reader(b"\xff\xff\xff\xff\x0f").read_7bit_int() == 2 ** 32 - 1
        with pytest.raises(FormatError):
            reader(b"\xff\xff\xff\xff\x7f").read_7bit_int()

    def test_negative_string_length(self):
        with pytest.raises(FormatError):
            reader(b"\xff\xff\xff\xff\x0fabc").read_string()

    def test_string_length_beyond_stream(self):
        """A corrupt length is rejected before any buffer is allocated."""
        data = io.BytesIO(b"\xff\xff\xff\xff\x07abc")
        with pytest.raises(FormatError, match="exceeds"):
            BinaryReader(data).read_string()
        assert data.tell() == 5

    def test_invalid_utf8(self):
        with pytest.raises(FormatError):
            reader(b"\x02\xc3\x28").read_string()
        with pytest.raises(FormatError):
            reader(b"\xff").read_char()
