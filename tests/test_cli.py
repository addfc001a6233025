"""Tests for CLI rendering, confirmation and command dispatch."""
import argparse
import asyncio
import json

import httpx
import pytest

import bookstore_cli
from bookstore.categories import group_by_category
from bookstore.config import Config
from bookstore.errors import NetworkError, ValidationError
from bookstore.models import Book
from bookstore_cli import confirm, display_categories, load_upload, save_download
from conftest import API_URL, DOWNLOAD_TEMPLATE, VIEW_TEMPLATE

GROUPS = group_by_category((Book("a1", "Dune", "Scifi"), Book("b2", "Emma")))


def make_config(strategy="direct"):
    config = Config()
    config.API_URL = API_URL
    config.CDN_VIEW_TEMPLATE = VIEW_TEMPLATE
    config.CDN_DOWNLOAD_TEMPLATE = DOWNLOAD_TEMPLATE
    config.RESOLVER_STRATEGY = strategy
    return config


def dispatch(transport, strategy="direct", **kwargs):
    args = argparse.Namespace(**kwargs)
    asyncio.run(bookstore_cli.run(args, make_config(strategy), transport=transport))


def test_display_table(capsys):
    display_categories(GROUPS, "table")
    out = capsys.readouterr().out

    assert "Scifi" in out
    assert "Uncategorized" in out
    assert "Dune" in out


def test_display_json(capsys):
    display_categories(GROUPS, "json")
    data = json.loads(capsys.readouterr().out)

    assert list(data) == ["Scifi", "Uncategorized"]
    assert data["Scifi"][0]["id"] == "a1"


def test_display_empty(capsys):
    display_categories({}, "table")
    assert "No books available" in capsys.readouterr().out


def test_confirm(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "y")
    assert confirm("Delete?") is True

    monkeypatch.setattr("builtins.input", lambda prompt: "")
    assert confirm("Delete?") is False


def test_list_command(service, transport, capsys):
    dispatch(transport, command="list", format="compact")

    assert "[Scifi] Dune (a1)" in capsys.readouterr().out
    assert [r.method for r in service.requests] == ["GET"]


def test_delete_command_declined(service, transport, monkeypatch, capsys):
    """Test that answering no at the prompt sends no delete."""
    monkeypatch.setattr("builtins.input", lambda prompt: "n")

    dispatch(transport, command="delete", id="a1", yes=False)

    assert service.calls("DELETE") == []
    assert "Cancelled" in capsys.readouterr().out


def test_delete_command_confirmed(service, transport, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "yes")

    dispatch(transport, command="delete", id="a1", yes=False)

    assert [r.method for r in service.requests] == ["GET", "DELETE", "GET"]
    assert service.books == []


def test_upload_command(service, transport, tmp_path, capsys):
    path = tmp_path / "foo.pdf"
    path.write_bytes(b"%PDF-1.4")

    dispatch(transport, command="upload", file=str(path), title="Foo", category="")

    assert "Uploaded Foo (b1) to Uncategorized" in capsys.readouterr().out
    assert [r.method for r in service.requests] == ["GET", "POST", "GET"]


def test_upload_command_missing_file(service, transport, tmp_path):
    """Test that an unreadable path is a validation error, not a crash."""
    with pytest.raises(ValidationError, match="Please select a file"):
        dispatch(transport, command="upload", file=str(tmp_path / "nope.pdf"), title="Foo", category="")

    assert service.calls("POST") == []


def test_load_upload_missing_file(tmp_path):
    with pytest.raises(ValidationError):
        load_upload(tmp_path / "missing.pdf")


def test_view_command_brokered(service, transport, capsys):
    dispatch(transport, strategy="brokered", command="view", id="a1")

    assert capsys.readouterr().out.strip() == "https://files.test/a1?sig=abc"


def test_download_command_writes_file(service, transport, tmp_path):
    output = tmp_path / "dune.pdf"

    dispatch(transport, command="download", id="a1", output=str(output))

    assert output.read_bytes() == b"%PDF-1.4 a1"
    assert [r.method for r in service.requests] == ["GET", "HEAD", "GET"]
    assert not (tmp_path / "dune.pdf.part").exists()


def test_save_download_writes_file(transport, tmp_path):
    output = tmp_path / "book.pdf"

    asyncio.run(save_download("https://cdn.test/raw/upload/fl_attachment/a1", output, 10, transport=transport))

    assert output.read_bytes() == b"%PDF-1.4 a1"


class BrokenStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        yield b"%PDF-1.4 trunc"
        raise httpx.ReadError("connection reset")


def test_save_download_failure_leaves_no_file(tmp_path):
    """Test that a transfer cut off midway leaves no partial output."""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, stream=BrokenStream()))
    output = tmp_path / "book.pdf"

    with pytest.raises(NetworkError):
        asyncio.run(save_download("https://cdn.test/x", output, 10, transport=transport))

    assert list(tmp_path.iterdir()) == []


def test_save_download_keeps_existing_file_on_error(tmp_path):
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    output = tmp_path / "book.pdf"
    output.write_bytes(b"old")

    with pytest.raises(NetworkError):
        asyncio.run(save_download("https://cdn.test/x", output, 10, transport=transport))

    assert output.read_bytes() == b"old"
