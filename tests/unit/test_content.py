"""
Unit tests for body streaming and image re-encoding.
"""

import io
import socket
from pathlib import Path

import pytest
from PIL import Image

from webserver.errors import ImageDecodeFailure, TargetNotFound
from webserver.handlers.content import ContentStreamer, decode_image, encode_image
from webserver.http.target import resolve_target


def body_of(conn, client: socket.socket) -> bytes:
    """Close the server side and collect everything the client got."""
    conn.close()
    chunks = []
    while True:
        chunk = client.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


class TestHtml:
    """Tests for html line copying."""

    def test_line_terminators_stripped(self, make_connection, content_root: Path):
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target("page.html", content_root))

        assert body_of(conn, client) == b"<html><p>hi</p></html>"

    def test_line_terminators_preserved(self, make_connection, content_root: Path):
        conn, client = make_connection()
        streamer = ContentStreamer(preserve_line_endings=True)

        streamer.stream(conn, resolve_target("page.html", content_root))

        assert body_of(conn, client) == (content_root / "page.html").read_bytes()

    def test_file_without_final_newline(self, make_connection, content_root: Path):
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target("index.html", content_root))

        assert body_of(conn, client) == b"hello"

    def test_empty_file(self, make_connection, content_root: Path):
        (content_root / "empty.html").write_bytes(b"")
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target("empty.html", content_root))

        assert body_of(conn, client) == b""

    def test_uppercase_extension_is_html(self, make_connection, content_root: Path):
        (content_root / "LOUD.HTML").write_bytes(b"a\nb\n")
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target("LOUD.HTML", content_root))

        assert body_of(conn, client) == b"ab"


class TestImages:
    """Tests for image bodies."""

    @pytest.mark.parametrize("name,fmt,size", [
        ("logo.png", "PNG", (12, 8)),
        ("photo.jpeg", "JPEG", (20, 10)),
        ("anim.gif", "GIF", (16, 16)),
    ])
    def test_image_is_reencoded(self, make_connection, content_root: Path, name, fmt, size):
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target(name, content_root))

        with Image.open(io.BytesIO(body_of(conn, client))) as img:
            assert img.format == fmt
            assert img.size == size

    def test_png_keeps_alpha(self, make_connection, content_root: Path):
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target("logo.png", content_root))

        with Image.open(io.BytesIO(body_of(conn, client))) as img:
            assert img.mode == "RGBA"
            assert img.getpixel((0, 0)) == (255, 0, 0, 128)

    def test_corrupt_image_sends_nothing(self, make_connection, content_root: Path):
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target("bad.png", content_root))

        assert body_of(conn, client) == b""

    def test_image_with_wrong_extension(self, make_connection, content_root: Path):
        """A PNG named .gif is decoded and sent as a GIF."""
        Image.new("RGB", (5, 5), (1, 2, 3)).save(content_root / "fake.gif", "PNG")
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target("fake.gif", content_root))

        with Image.open(io.BytesIO(body_of(conn, client))) as img:
            assert img.format == "GIF"
            assert img.size == (5, 5)


class TestNoBody:
    """Targets that get an empty body."""

    def test_no_target(self, make_connection):
        conn, client = make_connection()

        ContentStreamer().stream(conn, None)

        assert body_of(conn, client) == b""

    def test_missing_target(self, make_connection, content_root: Path):
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target("missing.html", content_root))

        assert body_of(conn, client) == b""

    def test_outside_root(self, make_connection, content_root: Path):
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target("../secret.html", content_root))

        assert body_of(conn, client) == b""

    @pytest.mark.parametrize("name", ["notes.txt", "README"])
    def test_other_extensions(self, make_connection, content_root: Path, name):
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target(name, content_root))

        assert body_of(conn, client) == b""

    @pytest.mark.parametrize("name", ["dir.html", "dir.png", "plain"])
    def test_directory(self, make_connection, content_root: Path, name):
        (content_root / name).mkdir()
        conn, client = make_connection()

        ContentStreamer().stream(conn, resolve_target(name, content_root))

        assert body_of(conn, client) == b""

    def test_file_removed_after_resolve(self, make_connection, content_root: Path):
        target = resolve_target("index.html", content_root)
        assert target.exists
        (content_root / "index.html").unlink()
        conn, client = make_connection()

        ContentStreamer().stream(conn, target)

        assert body_of(conn, client) == b""


class TestVanishingFile:
    """The file disappears between the existence check and the open."""

    def test_raises_target_not_found(self, make_connection, content_root: Path, monkeypatch):
        target = resolve_target("index.html", content_root)
        streamer = ContentStreamer()
        conn, _ = make_connection()

        def gone(conn, path):
            raise FileNotFoundError(str(path))

        monkeypatch.setattr(streamer, "copy_lines", gone)

        with pytest.raises(TargetNotFound) as exc_info:
            streamer.stream(conn, target)

        assert exc_info.value.path == str(target.filesystem_path)


class TestImageCodec:
    """Tests for decode_image() and encode_image()."""

    def test_decode(self, content_root: Path):
        img = decode_image(content_root / "photo.jpeg")

        assert img.size == (20, 10)

    def test_decode_garbage(self, content_root: Path):
        with pytest.raises(ImageDecodeFailure) as exc_info:
            decode_image(content_root / "bad.png")

        assert exc_info.value.path == str(content_root / "bad.png")

    def test_decode_truncated(self, content_root: Path):
        data = (content_root / "photo.jpeg").read_bytes()
        (content_root / "cut.jpeg").write_bytes(data[: len(data) // 2])

        with pytest.raises(ImageDecodeFailure):
            decode_image(content_root / "cut.jpeg")

    def test_decode_missing(self, content_root: Path):
        with pytest.raises(FileNotFoundError):
            decode_image(content_root / "nope.png")

    def test_rgba_to_jpeg(self, content_root: Path):
        data = encode_image(content_root / "logo.png", "JPEG")

        with Image.open(io.BytesIO(data)) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"
            assert img.size == (12, 8)
