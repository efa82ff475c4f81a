"""
Tests for check-in sources.

Tests the source implementations:
- UntappdSource: Paginated feed over httpx.MockTransport
- StaticSource: In-memory batches
- FileSource: CSV export import
- Protocol compliance
"""

from __future__ import annotations

import csv
from pathlib import Path

import httpx
import pytest

from untappd_mirror.sources import (
    CheckinPage,
    CheckinSource,
    FeedError,
    FileSource,
    StaticSource,
    StopReason,
    UntappdSource,
)
from untappd_mirror.sources.untappd import RATE_LIMIT_HEADER, extract_items, parse_min_id
from untappd_mirror.utils.cancel import CancellationToken, RunCancelledError

from tests.fixtures.factories import CheckinFactory, feed_payload

API_URL = "https://api.example.com/v4"
SINCE_URL = f"{API_URL}/user/checkins?min_id=500"


def make_source(handler, **kwargs) -> UntappdSource:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    source = UntappdSource("token-123", api_url=API_URL, client=client, **kwargs)
    source.connect()
    return source


def write_export(path: Path, rows: list[dict[str, str]], extra_lines: list[str] = ()) -> Path:
    fieldnames = list(CheckinFactory.export_row(1).keys())
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
        for line in extra_lines:
            f.write(line + "\n")
    return path


class TestParseMinId:
    """Tests for pagination cursor parsing."""

    def test_parse(self):
        assert parse_min_id(SINCE_URL) == 500

    def test_missing(self):
        with pytest.raises(FeedError):
            parse_min_id(f"{API_URL}/user/checkins?limit=25")

    def test_not_integer(self):
        with pytest.raises(FeedError):
            parse_min_id(f"{API_URL}/user/checkins?min_id=abc")


class TestExtractItems:
    """Tests for response shape decoding."""

    def test_nested_checkins(self):
        payload = feed_payload([{"checkin_id": 1}])
        assert extract_items(payload) == [{"checkin_id": 1}]

    def test_flat_items(self):
        payload = feed_payload([{"checkin_id": 2}], nested=False)
        assert extract_items(payload) == [{"checkin_id": 2}]

    def test_nested_takes_priority(self):
        payload = feed_payload([{"checkin_id": 1}])
        payload["response"]["items"] = [{"checkin_id": 2}]
        assert extract_items(payload) == [{"checkin_id": 1}]

    @pytest.mark.parametrize("payload", [{}, {"response": []}, {"response": {"x": 1}}, []])
    def test_unknown_shape(self, payload):
        with pytest.raises(FeedError):
            extract_items(payload)


class TestUntappdSource:
    """Tests for UntappdSource."""

    def test_first_run_requests_latest_only(self):
        """Test that no cursor means a single-item request."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=feed_payload([CheckinFactory.api_item(900)]))

        source = make_source(handler)
        page = source.fetch_page(None)

        params = seen[0].url.params
        assert seen[0].url.path == "/v4/user/checkins"
        assert params["access_token"] == "token-123"
        assert params["limit"] == "1"
        assert "min_id" not in params
        assert [r.checkin_id for r in page.items] == [900]
        assert page.stop == StopReason.EXHAUSTED
        assert page.is_last

    def test_cursor_request(self):
        """Test that a cursor becomes min_id and since_url the next cursor."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            items = [CheckinFactory.api_item(i) for i in (12, 11, 10)]
            return httpx.Response(200, json=feed_payload(items, since_url=SINCE_URL))

        source = make_source(handler)
        page = source.fetch_page(9)

        assert seen[0].url.params["min_id"] == "9"
        assert "limit" not in seen[0].url.params
        assert [r.checkin_id for r in page.items] == [12, 11, 10]
        assert page.next_cursor == 500
        assert page.stop is None
        assert not page.is_last

    def test_since_id_starts_first_page(self):
        """Test that the persisted id bounds the first page and the token the rest."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            items = [CheckinFactory.api_item(i) for i in (12, 11, 10)]
            return httpx.Response(200, json=feed_payload(items, since_url=SINCE_URL))

        source = make_source(handler)
        first = source.fetch_page(None, since_id=9)
        source.fetch_page(first.next_cursor, since_id=9)

        assert seen[0].url.params["min_id"] == "9"
        assert seen[1].url.params["min_id"] == "500"

    def test_rate_limited(self):
        """Test that an exhausted rate limit stops without error."""

        def handler(request: httpx.Request) -> httpx.Response:
            items = [CheckinFactory.api_item(1)]
            return httpx.Response(
                200,
                json=feed_payload(items, since_url=SINCE_URL),
                headers={RATE_LIMIT_HEADER: "0"},
            )

        page = make_source(handler).fetch_page(5)

        assert page.stop == StopReason.RATE_LIMITED
        assert len(page) == 0

    def test_remaining_rate_limit_continues(self):
        """Test that a non-zero remaining count is not a stop."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=feed_payload([CheckinFactory.api_item(1)], since_url=SINCE_URL),
                headers={RATE_LIMIT_HEADER: "42"},
            )

        page = make_source(handler).fetch_page(5)

        assert page.stop is None

    def test_empty_page(self):
        """Test that an empty item list stops the run."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=feed_payload([], since_url=SINCE_URL))

        page = make_source(handler).fetch_page(5)

        assert page.stop == StopReason.EMPTY
        assert page.items == ()

    def test_non_200_is_fatal(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="oops")

        with pytest.raises(FeedError):
            make_source(handler).fetch_page(5)

    def test_invalid_json_is_fatal(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>")

        with pytest.raises(FeedError):
            make_source(handler).fetch_page(5)

    def test_transport_error_is_fatal(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(FeedError):
            make_source(handler).fetch_page(5)

    def test_invalid_item_is_fatal(self):
        def handler(request: httpx.Request) -> httpx.Response:
            item = CheckinFactory.api_item(1, created_at="garbage")
            return httpx.Response(200, json=feed_payload([item]))

        with pytest.raises(FeedError):
            make_source(handler).fetch_page(5)

    def test_unparseable_since_url_is_fatal(self):
        def handler(request: httpx.Request) -> httpx.Response:
            items = [CheckinFactory.api_item(1)]
            return httpx.Response(200, json=feed_payload(items, since_url=f"{API_URL}?x=1"))

        with pytest.raises(FeedError):
            make_source(handler).fetch_page(5)

    def test_cancelled_before_request(self):
        """Test that a cancelled token prevents the request."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=feed_payload([]))

        token = CancellationToken()
        token.cancel()
        source = make_source(handler, cancel=token)

        with pytest.raises(RunCancelledError):
            source.fetch_page(5)
        assert calls == []

    def test_connect_requires_token(self):
        with pytest.raises(ValueError):
            UntappdSource("").connect()

    def test_fetch_requires_connect(self):
        with pytest.raises(RuntimeError):
            UntappdSource("token").fetch_page(None)

    def test_close_keeps_injected_client(self):
        """Test that an injected client is left open."""
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        source = UntappdSource("token", client=client)
        source.connect()
        source.close()

        assert not client.is_closed
        client.close()


class TestStaticSource:
    """Tests for StaticSource."""

    def test_pages(self, checkin_factory):
        """Test offset pagination."""
        records = checkin_factory.create_batch(5)
        source = StaticSource(records, page_size=2)
        source.connect()

        first = source.fetch_page(None)
        second = source.fetch_page(first.next_cursor)
        third = source.fetch_page(second.next_cursor)

        assert len(first) == 2 and first.next_cursor == 2
        assert len(second) == 2 and second.next_cursor == 4
        assert len(third) == 1 and third.stop == StopReason.EXHAUSTED
        assert [r.checkin_id for r in first.items + second.items + third.items] == [
            r.checkin_id for r in records
        ]

    def test_empty(self):
        source = StaticSource()
        source.connect()

        assert source.fetch_page(None).stop == StopReason.EMPTY

    def test_since_id_filters_older_records(self, checkin_factory):
        """Test that only records newer than the persisted id are served."""
        records = checkin_factory.create_batch(4)
        source = StaticSource(records, page_size=2)
        source.connect()

        first = source.fetch_page(None, since_id=1002)

        assert [r.checkin_id for r in first.items] == [1004, 1003]
        assert first.stop == StopReason.EXHAUSTED

    def test_since_id_is_not_an_offset(self, checkin_factory):
        """Test that a small persisted id does not skip records."""
        records = checkin_factory.create_batch(4)
        source = StaticSource(records, page_size=10)
        source.connect()

        page = source.fetch_page(None, since_id=5)

        assert [r.checkin_id for r in page.items] == [r.checkin_id for r in records]

    def test_since_id_newest_already_seen(self, checkin_factory):
        source = StaticSource(checkin_factory.create_batch(3))
        source.connect()

        assert source.fetch_page(None, since_id=1003).stop == StopReason.EMPTY

    def test_offsets_count_filtered_records(self, checkin_factory):
        records = checkin_factory.create_batch(5)
        source = StaticSource(records, page_size=2)
        source.connect()

        first = source.fetch_page(None, since_id=1001)
        second = source.fetch_page(first.next_cursor, since_id=1001)

        assert [r.checkin_id for r in first.items + second.items] == [1005, 1004, 1003, 1002]
        assert second.stop == StopReason.EXHAUSTED

    def test_fetch_requires_connect(self, checkin_factory):
        with pytest.raises(RuntimeError):
            StaticSource([checkin_factory.create()]).fetch_page(None)

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            StaticSource(page_size=0)


class TestFileSource:
    """Tests for FileSource."""

    def test_load_rows(self, tmp_path, checkin_factory):
        """Test reading a well-formed export."""
        path = write_export(
            tmp_path / "export.csv",
            [checkin_factory.export_row(i) for i in (3, 2, 1)],
        )

        source = FileSource(path, page_size=2)
        source.connect()
        first = source.fetch_page(None)
        second = source.fetch_page(first.next_cursor)

        assert len(source) == 3
        assert source.skipped_rows == 0
        assert [r.checkin_id for r in first.items + second.items] == [3, 2, 1]
        assert second.stop == StopReason.EXHAUSTED

    def test_malformed_rows_skipped(self, tmp_path, checkin_factory):
        """Test that bad rows are skipped and counted, not fatal."""
        path = write_export(
            tmp_path / "export.csv",
            [
                checkin_factory.export_row(3),
                checkin_factory.export_row("not-a-number"),
                checkin_factory.export_row(2, created_at="whenever"),
                checkin_factory.export_row(1),
            ],
            extra_lines=["garbage"],
        )

        source = FileSource(path)
        source.connect()
        page = source.fetch_page(None)

        assert [r.checkin_id for r in page.items] == [3, 1]
        assert source.skipped_rows == 3

    def test_since_id_filters_rows(self, tmp_path, checkin_factory):
        path = write_export(
            tmp_path / "export.csv",
            [checkin_factory.export_row(i) for i in (30, 20, 10)],
        )

        source = FileSource(path)
        source.connect()
        page = source.fetch_page(None, since_id=15)

        assert [r.checkin_id for r in page.items] == [30, 20]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FileSource(tmp_path / "missing.csv").connect()

    def test_missing_required_columns(self, tmp_path):
        path = tmp_path / "export.csv"
        path.write_text("beer_name,comment\nPils,nice\n", encoding="utf-8")

        with pytest.raises(ValueError):
            FileSource(path).connect()

    def test_fetch_requires_connect(self, tmp_path):
        with pytest.raises(RuntimeError):
            FileSource(tmp_path / "export.csv").fetch_page(None)


class TestSourceProtocol:
    """Tests for protocol compliance."""

    @pytest.mark.parametrize(
        "source",
        [UntappdSource("token"), StaticSource(), FileSource("export.csv")],
    )
    def test_implementations_are_sources(self, source):
        assert isinstance(source, CheckinSource)

    def test_page_is_last(self):
        assert CheckinPage().is_last
        assert not CheckinPage(next_cursor=3).is_last
        assert CheckinPage(next_cursor=3, stop=StopReason.RATE_LIMITED).is_last
