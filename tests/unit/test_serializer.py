"""
Unit tests for message serialization (composing/serializer.py).

Tests cover:
- Exact output of simple leaf and multipart messages
- Boundary delimiters in nested trees
- Idempotent output and streaming/in-memory equality
- Path and FH sources (including large files and unreadable paths)
- CRLF output
- Header encoding, folding and field order
"""

import io

import pytest
from structlog.testing import capture_logs

from eml_composer.composing.encoding import decode_base64, decode_quoted_printable
from eml_composer.composing.serializer import PREAMBLE, CRLFSink, serialize
from eml_composer.errors import ConfigError, UnreadablePathError
from eml_composer.models.entity import build
from tests.fixtures.payloads import GIF_BYTES, PLAIN_TEXT, SAMPLE_BODIES


def split_message(data: bytes):
    """Split serialized bytes into (header text, body bytes)."""
    header, _, body = data.partition(b"\n\n")
    return header.decode("ascii"), body


class NonSeekableReader:
    """Read-only stream that cannot seek, like a pipe."""

    def __init__(self, data: bytes):
        self._stream = io.BytesIO(data)

    def read(self, size=-1):
        return self._stream.read(size)

    def seekable(self):
        return False


class TestLeafOutput:
    """Tests for single-part messages."""

    @pytest.mark.unit
    def test_minimal_text_message(self, test_settings):
        msg = build({"Type": "TEXT", "Data": "hello"}, settings=test_settings)
        assert msg.as_bytes() == (
            b"MIME-Version: 1.0\n"
            b"Content-Transfer-Encoding: 7bit\n"
            b"Content-Type: text/plain\n"
            b"\n"
            b"hello"
        )

    @pytest.mark.unit
    def test_explicit_headers_first(self, test_settings):
        msg = build(
            {
                "From": "me@example.com",
                "To": "you@example.com",
                "Subject": "Hi",
                "Type": "TEXT",
                "Data": PLAIN_TEXT,
            },
            settings=test_settings,
        )
        header, body = split_message(msg.as_bytes())
        assert header.split("\n") == [
            "From: me@example.com",
            "To: you@example.com",
            "Subject: Hi",
            "MIME-Version: 1.0",
            "Content-Transfer-Encoding: 7bit",
            "Content-Type: text/plain",
        ]
        assert body == PLAIN_TEXT.encode("ascii")

    @pytest.mark.unit
    def test_attachment_headers(self, test_settings, gif_file):
        msg = build(
            {"Type": "image/gif", "Path": gif_file, "Disposition": "attachment", "Id": "logo"},
            settings=test_settings,
        )
        header, body = split_message(msg.as_bytes())
        assert header.split("\n") == [
            "MIME-Version: 1.0",
            "Content-Transfer-Encoding: base64",
            "Content-Disposition: attachment; filename=logo.gif",
            "Content-ID: <logo>",
            "Content-Type: image/gif; name=logo.gif",
        ]
        assert decode_base64(body) == GIF_BYTES

    @pytest.mark.unit
    def test_non_ascii_text(self, test_settings):
        msg = build({"Subject": "Café", "Data": "Café olé\n"}, settings=test_settings)
        header, body = split_message(msg.as_bytes())
        assert "Subject: =?UTF-8?B?Q2Fmw6k=?=" in header
        assert "Content-Transfer-Encoding: quoted-printable" in header
        assert "Content-Type: text/plain; charset=UTF-8" in header
        assert decode_quoted_printable(body) == "Café olé\n".encode("utf-8")

    @pytest.mark.unit
    def test_non_ascii_filename_quoted(self, test_settings):
        msg = build(
            {"Type": "application/pdf", "Data": b"%PDF", "Filename": "résumé.pdf"},
            settings=test_settings,
        )
        header, _ = split_message(msg.as_bytes())
        assert 'name="=?UTF-8?B?' in header

    @pytest.mark.unit
    def test_header_injection_collapsed(self, test_settings):
        msg = build({"Subject": "Hi\nBcc: evil@example.com", "Data": "x"}, settings=test_settings)
        header, _ = split_message(msg.as_bytes())
        assert "Subject: Hi Bcc: evil@example.com" in header
        assert "\nBcc:" not in header

    @pytest.mark.unit
    def test_attribute_injection_collapsed(self, test_settings):
        msg = build(
            {
                "Type": "application/octet-stream",
                "Data": b"x",
                "Filename": "a\nBcc: evil@example.com",
                "Id": "part\r\nX-Injected: 1",
                "Description": "desc\nX-Injected: 2",
            },
            settings=test_settings,
        )
        header, _ = split_message(msg.as_bytes())
        assert "\nBcc:" not in header
        assert "\nX-Injected:" not in header
        assert "\r" not in header
        unfolded = header.replace("\n ", " ")
        assert 'filename="a Bcc: evil@example.com"' in unfolded
        assert "Content-Description: desc X-Injected: 2" in unfolded

    @pytest.mark.unit
    def test_long_subject_folded(self, test_settings):
        subject = " ".join(["status"] * 30)
        msg = build({"Subject": subject, "Data": "x"}, settings=test_settings)
        header, _ = split_message(msg.as_bytes())
        assert all(len(line) <= 78 for line in header.split("\n"))
        assert f"Subject: {subject}" in header.replace("\n ", " ")

    @pytest.mark.unit
    def test_field_order_setting(self, test_settings):
        config = test_settings.model_copy(update={"field_order": ["subject", "content-type"]})
        msg = build({"From": "a@example.com", "Subject": "Hi", "Data": "x"}, settings=config)
        header, _ = split_message(msg.as_bytes())
        assert header.split("\n")[:3] == ["Subject: Hi", "Content-Type: text/plain", "From: a@example.com"]

    @pytest.mark.unit
    def test_field_order_per_entity(self, test_settings):
        msg = build({"From": "a@example.com", "Subject": "Hi", "Data": "x"}, settings=test_settings)
        msg.field_order("Subject")
        header, _ = split_message(msg.as_bytes())
        assert header.split("\n")[0] == "Subject: Hi"

    @pytest.mark.unit
    def test_unknown_content_field_before_content_type(self, test_settings):
        msg = build({"Data": "x", "Content-Language": "en"}, settings=test_settings)
        header, _ = split_message(msg.as_bytes())
        lines = header.split("\n")
        assert lines[-2:] == ["Content-Language: en", "Content-Type: text/plain"]

    @pytest.mark.unit
    def test_eight_bit_under_7bit_advisory(self, test_settings):
        msg = build({"Data": b"caf\xe9", "Encoding": "7bit", "Charset": "ISO-8859-1"}, settings=test_settings)
        with capture_logs() as logs:
            data = msg.as_bytes()
        assert data.endswith(b"caf\xe9")
        assert [entry["event"] for entry in logs] == ["eight_bit_data_in_7bit_part"]


class TestMultipartOutput:
    """Tests for multipart messages."""

    @pytest.mark.unit
    def test_exact_multipart(self, test_settings):
        msg = build({"Type": "multipart/mixed", "Boundary": "XYZ"}, settings=test_settings)
        msg.attach(Type="TEXT", Data="a")
        assert msg.as_bytes() == (
            b"MIME-Version: 1.0\n"
            b"Content-Type: multipart/mixed; boundary=XYZ\n"
            b"\n"
            + PREAMBLE
            + b"\n--XYZ\n"
            b"Content-Transfer-Encoding: 7bit\n"
            b"Content-Type: text/plain\n"
            b"\n"
            b"a"
            b"\n--XYZ--\n"
        )

    @pytest.mark.unit
    def test_nested_delimiters(self, test_settings, gif_file):
        root = build({"Type": "multipart/mixed", "Subject": "Nested"}, settings=test_settings)
        alt = root.attach(Type="multipart/alternative")
        alt.attach(Type="TEXT", Data="plain")
        alt.attach(Type="text/html", Data="<p>html</p>")
        root.attach(Type="image/gif", Path=gif_file, Disposition="attachment")

        data = root.as_bytes()
        outer = root.boundary.encode("ascii")
        inner = alt.boundary.encode("ascii")
        assert outer != inner
        assert data.count(b"\n--" + outer + b"\n") == 2
        assert data.count(b"\n--" + outer + b"--\n") == 1
        assert data.count(b"\n--" + inner + b"\n") == 2
        assert data.count(b"\n--" + inner + b"--\n") == 1
        assert data.index(inner + b"--") < data.index(outer + b"--")

    @pytest.mark.unit
    def test_promoted_leaf_output(self, test_settings):
        msg = build({"Subject": "Logo", "Data": "See attached."}, settings=test_settings)
        msg.attach(Type="image/gif", Data=GIF_BYTES, Filename="logo.gif")
        header, body = split_message(msg.as_bytes())
        assert "Subject: Logo" in header
        assert f'Content-Type: multipart/mixed; boundary="{msg.boundary}"' in header
        assert body.startswith(PREAMBLE)
        assert b"See attached." in body
        assert b"Content-Type: image/gif; name=logo.gif" in body

    @pytest.mark.unit
    def test_empty_container_fails(self, test_settings):
        msg = build({"Type": "multipart/mixed"}, settings=test_settings)
        with pytest.raises(ConfigError):
            msg.as_bytes()


class TestOutputStability:
    """Tests for repeated and streamed output."""

    @pytest.mark.unit
    def test_output_is_idempotent(self, test_settings, gif_file):
        msg = build({"Subject": "Twice", "Data": "Body"}, settings=test_settings)
        msg.attach(Type="AUTO", Path=gif_file)
        assert msg.as_bytes() == msg.as_bytes()

    @pytest.mark.unit
    def test_stream_matches_in_memory(self, test_settings, gif_file):
        msg = build({"Data": "Body"}, settings=test_settings)
        msg.attach(Type="AUTO", Path=gif_file)
        sink = io.BytesIO()
        msg.print_to(sink)
        assert sink.getvalue() == msg.as_bytes()

    @pytest.mark.unit
    def test_header_and_body_strings(self, test_settings):
        msg = build({"Subject": "Parts", "Data": "Body"}, settings=test_settings)
        assert msg.as_string() == msg.header_as_string() + msg.body_as_string()
        assert msg.header_as_string().endswith("\n\n")

    @pytest.mark.unit
    def test_print_header_and_body(self, test_settings):
        msg = build({"Data": "Body"}, settings=test_settings)
        header_sink, body_sink = io.BytesIO(), io.BytesIO()
        msg.print_header(header_sink)
        msg.print_body(body_sink)
        assert header_sink.getvalue() + body_sink.getvalue() == msg.as_bytes()

    @pytest.mark.unit
    def test_handle_source_repeatable(self, test_settings):
        handle = io.BytesIO(b"prefix|payload")
        handle.seek(7)
        msg = build({"Type": "application/octet-stream", "FH": handle}, settings=test_settings)
        first = msg.as_bytes()
        second = msg.as_bytes()
        assert first == second
        assert first.endswith(b"payload")
        assert not handle.closed

    @pytest.mark.unit
    def test_non_seekable_handle_keeps_body(self, test_settings):
        msg = build(
            {"Type": "application/octet-stream", "FH": NonSeekableReader(b"PAYLOAD-BYTES")},
            settings=test_settings,
        )
        first = msg.as_bytes()
        header, body = split_message(first)
        assert "Content-Transfer-Encoding: 7bit" in header
        assert body == b"PAYLOAD-BYTES"
        assert msg.as_bytes() == first

    @pytest.mark.unit
    def test_non_seekable_binary_handle_suggests_base64(self, test_settings):
        msg = build({"Type": "image/gif", "FH": NonSeekableReader(GIF_BYTES)}, settings=test_settings)
        header, body = split_message(msg.as_bytes())
        assert "Content-Transfer-Encoding: base64" in header
        assert decode_base64(body) == GIF_BYTES

    @pytest.mark.unit
    def test_paranoid_output_decodes_the_same(self, test_settings, paranoid_settings):
        body = SAMPLE_BODIES["all_bytes"]
        normal = build({"Type": "application/octet-stream", "Data": body}, settings=test_settings)
        paranoid = build({"Type": "application/octet-stream", "Data": body}, settings=paranoid_settings)
        assert normal.as_bytes() == paranoid.as_bytes()


class TestPathSources:
    """Tests for file-backed bodies."""

    @pytest.mark.unit
    @pytest.mark.slow
    def test_large_file_streamed(self, test_settings, large_binary_file):
        msg = build({"Type": "AUTO", "Path": large_binary_file}, settings=test_settings)
        header, body = split_message(msg.as_bytes())
        assert "Content-Transfer-Encoding: base64" in header
        assert all(len(line) <= 76 for line in body.split(b"\n"))
        assert decode_base64(body) == large_binary_file.read_bytes()

    @pytest.mark.unit
    def test_missing_file(self, test_settings, tmp_path):
        msg = build({"Path": tmp_path / "missing.txt"}, settings=test_settings)
        with pytest.raises(UnreadablePathError) as exc_info:
            msg.as_bytes()
        assert exc_info.value.path.endswith("missing.txt")

    @pytest.mark.unit
    def test_missing_file_without_verify(self, test_settings, tmp_path):
        config = test_settings.model_copy(update={"auto_verify": False})
        msg = build({"Path": tmp_path / "missing.txt", "Encoding": "base64"}, settings=config)
        with pytest.raises(UnreadablePathError):
            msg.as_bytes()

    @pytest.mark.unit
    def test_file_read_at_output_time(self, test_settings, text_file):
        msg = build({"Path": text_file}, settings=test_settings)
        text_file.write_bytes(b"changed\n")
        assert msg.as_bytes().endswith(b"changed\n")


class TestCRLF:
    """Tests for CRLF output."""

    @pytest.mark.unit
    def test_no_bare_line_feeds(self, test_settings, gif_file):
        msg = build({"Subject": "CRLF", "Data": "line one\nline two\n"}, settings=test_settings)
        msg.attach(Type="AUTO", Path=gif_file)
        data = msg.as_bytes(crlf=True)
        assert b"\r\n" in data
        assert b"\n" not in data.replace(b"\r\n", b"")
        assert data.replace(b"\r\n", b"\n") == msg.as_bytes()

    @pytest.mark.unit
    def test_crlf_split_across_writes(self):
        target = io.BytesIO()
        sink = CRLFSink(target)
        sink.write(b"a\r")
        sink.write(b"\nb\n")
        assert target.getvalue() == b"a\r\nb\r\n"

    @pytest.mark.unit
    def test_binary_body_left_unchanged(self, test_settings):
        body = b"a\nb\r\nc\rd"
        msg = build(
            {"Type": "application/octet-stream", "Data": body, "Encoding": "binary"},
            settings=test_settings,
        )
        data = msg.as_bytes(crlf=True)
        header, _, rest = data.partition(b"\r\n\r\n")
        assert rest == body
        assert b"Content-Transfer-Encoding: binary\r\n" in header + b"\r\n"
        assert b"\n" not in header.replace(b"\r\n", b"")

    @pytest.mark.unit
    def test_binary_part_in_multipart(self, test_settings):
        msg = build({"Type": "multipart/mixed"}, settings=test_settings)
        msg.attach(Data="text\n")
        msg.attach(Type="application/octet-stream", Data=b"x\ny", Encoding="binary")
        data = msg.as_bytes(crlf=True)
        assert b"\r\n\r\nx\ny\r\n--" in data
        assert b"\r\n\r\ntext\r\n\r\n--" in data

    @pytest.mark.unit
    def test_serialize_into_sink_returns_none(self, test_settings):
        msg = build({"Data": "x"}, settings=test_settings)
        sink = io.BytesIO()
        assert serialize(msg, sink, crlf=True) is None
        assert sink.getvalue().endswith(b"\r\n\r\nx")


class TestFieldOrderScenario:
    """Tests for a configured field order with custom headers."""

    @pytest.mark.unit
    def test_subject_to_from_order(self, test_settings):
        config = test_settings.model_copy(update={"field_order": ["subject", "to", "from"]})
        msg = build(
            {
                "From": "me@example.com",
                "Subject": "Order",
                "To": "you@example.com",
                "X-Custom": "yes",
                "Data": "x",
            },
            settings=config,
        )
        header, _ = split_message(msg.as_bytes())
        names = [line.split(":", 1)[0] for line in header.split("\n")]
        assert names[:4] == ["Subject", "To", "From", "X-Custom"]
