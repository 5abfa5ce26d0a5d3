import io
import threading
import time

import pytest

from checkoutdb.backend import RecordStore, serve
from checkoutdb.common import IndexEntry, write_record
from checkoutdb.frontend import (
    HEADER,
    INVALID_ID,
    INVALID_OPTION,
    INVALID_YEAR,
    NO_RESPONSE_MESSAGE,
    NOT_FOUND_MESSAGE,
    SEND_ERROR,
    ask_all_years,
    ask_by_id_and_year,
    format_response,
    run_menu,
    send_request,
)

RECORDS = [
    (5, 2005, "Book,5,Item"),
    (5, 2007, "Other,5,DVD"),
]


@pytest.fixture
def store(tmp_path):
    data_path = tmp_path / "data.bin"
    index_path = tmp_path / "index.bin"
    with open(data_path, "wb") as data, open(index_path, "wb") as index:
        for record_id, year, line in RECORDS:
            offset = write_record(data, line)
            index.write(IndexEntry(record_id, year, offset).pack())
    with RecordStore(index_path, data_path) as opened:
        yield opened


@pytest.fixture
def server(store, tmp_path):
    request_pipe = tmp_path / "req"
    response_pipe = tmp_path / "res"
    results = []
    thread = threading.Thread(
        target=lambda: results.append(serve(store, str(request_pipe), str(response_pipe))),
        daemon=True,
    )
    thread.start()
    deadline = time.monotonic() + 5
    while not response_pipe.exists():
        if time.monotonic() > deadline:
            raise RuntimeError("server did not start")
        time.sleep(0.01)
    return thread, results, str(request_pipe), str(response_pipe)


def test_format_not_found():
    text = format_response(b"NOT_FOUND\0")
    assert text.endswith(HEADER + "\n" + NOT_FOUND_MESSAGE + "\n")


def test_format_empty_reply():
    assert format_response(b"").endswith(NO_RESPONSE_MESSAGE + "\n")


def test_format_single_record_drops_nul():
    record = "Book,5,Item"
    text = format_response(record.encode() + b"\0")
    assert text.endswith(HEADER + "\n" + record)
    assert "\0" not in text


def test_format_multiple_lines():
    body = "2005:Book,5,Item\n2007:Other,5,DVD\n"
    text = format_response(body.encode())
    assert text.endswith(HEADER + "\n" + body)
    assert NOT_FOUND_MESSAGE not in text


@pytest.mark.parametrize("year", [2005, 2017])
def test_ask_by_id_and_year_accepts_range_ends(year):
    out = io.StringIO()
    assert ask_by_id_and_year(io.StringIO(f"{year}\n42\n"), out) == f"GET 42 {year}"


@pytest.mark.parametrize("year", ["2004", "2018", "abc", ""])
def test_ask_by_id_and_year_rejects_bad_year(year):
    out = io.StringIO()
    assert ask_by_id_and_year(io.StringIO(f"{year}\n42\n"), out) is None
    assert INVALID_YEAR in out.getvalue()


def test_ask_by_id_and_year_rejects_bad_id():
    out = io.StringIO()
    assert ask_by_id_and_year(io.StringIO("2010\nxyz\n"), out) is None
    assert INVALID_ID in out.getvalue()


def test_ask_all_years_skips_blank_lines():
    out = io.StringIO()
    assert ask_all_years(io.StringIO("\n\n 77\n"), out) == "GET_ALL 77"


def test_ask_all_years_rejects_bad_id():
    out = io.StringIO()
    assert ask_all_years(io.StringIO("seven\n"), out) is None
    assert INVALID_ID in out.getvalue()


def test_send_request_without_backend(tmp_path):
    with pytest.raises(FileNotFoundError):
        send_request("GET 1 2005", str(tmp_path / "req"), str(tmp_path / "res"))


def test_run_menu_invalid_option_then_eof(tmp_path):
    out = io.StringIO()
    run_menu(io.StringIO("9\n"), out, str(tmp_path / "req"), str(tmp_path / "res"))
    assert out.getvalue().count(INVALID_OPTION) == 1


def test_run_menu_reports_missing_backend(tmp_path):
    out = io.StringIO()
    run_menu(io.StringIO("2\n5\n"), out, str(tmp_path / "req"), str(tmp_path / "res"))
    assert SEND_ERROR in out.getvalue()


def test_send_request_round_trip(server):
    thread, results, request_pipe, response_pipe = server
    assert send_request("GET 5 2007", request_pipe, response_pipe) == b"Other,5,DVD\0"
    assert send_request("QUIT", request_pipe, response_pipe) == b""
    thread.join(timeout=5)
    assert results == [1]


def test_run_menu_against_backend(server):
    thread, results, request_pipe, response_pipe = server
    out = io.StringIO()
    run_menu(io.StringIO("1\n2005\n5\n2\n5\n1\n2010\n5\n3\n"), out, request_pipe, response_pipe)
    thread.join(timeout=5)

    text = out.getvalue()
    assert not thread.is_alive()
    assert results == [3]
    assert HEADER + "\nBook,5,Item" in text
    assert "2005:Book,5,Item\n2007:Other,5,DVD\n" in text
    assert NOT_FOUND_MESSAGE in text
    assert SEND_ERROR not in text