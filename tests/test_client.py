from __future__ import annotations

import asyncio

import httpx
import pytest

from feed_ingest import client as client_module
from feed_ingest.client import FeedClient, ProgressTracker
from feed_ingest.errors import InvalidURL, NetworkError, ParsingFailed, UnsupportedFormat
from feed_ingest.models import NormalizedFeed

from .conftest import ATOM_FEED, JSON_FEED, PNG_BYTES, RSS_FEED

FEED_URL = "https://example.com/feed.xml"


@pytest.mark.asyncio
async def test_fetch_feed_returns_normalized_feed(router, http, config):
    # Served as text/html on purpose: detection ignores the header.
    router.add("GET", FEED_URL, httpx.Response(200, content=RSS_FEED, headers={"content-type": "text/html"}))
    client = FeedClient(config, http=http)
    feed, articles = await client.fetch_feed(FEED_URL, category_id="news")
    assert feed.title == "Example Blog"
    assert feed.url == FEED_URL
    assert feed.category_id == "news"
    assert len(articles) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(("payload", "stage"), [
    (RSS_FEED, "Processing rss feed"),
    (ATOM_FEED, "Processing atom feed"),
    (JSON_FEED, "Processing json feed"),
])
async def test_progress_milestones(router, http, config, payload, stage):
    router.add("GET", FEED_URL, httpx.Response(200, content=payload))
    tracker = ProgressTracker()
    await FeedClient(config, http=http).fetch_feed(FEED_URL, progress=tracker)
    assert tracker.history == [
        (0.0, "Fetching feed"),
        (0.3, "Parsing feed"),
        (0.5, stage),
        (0.8, "Post-processing"),
        (1.0, "Done"),
    ]
    assert tracker.value == 1.0


@pytest.mark.asyncio
async def test_invalid_url_fails_before_any_request(router, http, config):
    with pytest.raises(InvalidURL):
        await FeedClient(config, http=http).fetch_feed("ftp://example.com/feed")
    with pytest.raises(InvalidURL):
        await FeedClient(config, http=http).fetch_feed("not a url")
    with pytest.raises(InvalidURL):
        await FeedClient(config, http=http).fetch_feed("http://[::1")
    assert router.requests == []


@pytest.mark.asyncio
async def test_http_error_status_is_a_network_error(router, http, config):
    router.add("GET", FEED_URL, httpx.Response(503))
    with pytest.raises(NetworkError) as excinfo:
        await FeedClient(config, http=http).fetch_feed(FEED_URL)
    assert isinstance(excinfo.value.cause, httpx.HTTPStatusError)
    assert len(router.requests) == 1


@pytest.mark.asyncio
async def test_transport_failure_is_a_network_error_and_not_retried(router, http, config):
    def timeout(request):
        raise httpx.ReadTimeout("slow", request=request)

    router.add("GET", FEED_URL, timeout)
    with pytest.raises(NetworkError):
        await FeedClient(config, http=http).fetch_feed(FEED_URL)
    assert len(router.requests) == 1


@pytest.mark.asyncio
async def test_unparseable_payload_is_a_parsing_failure(router, http, config):
    router.add("GET", FEED_URL, httpx.Response(200, content=b'{"not": "a feed"}'))
    with pytest.raises(UnsupportedFormat):
        await FeedClient(config, http=http).fetch_feed(FEED_URL)
    router.add("GET", FEED_URL, httpx.Response(200, content=b"<html><body>Home</body></html>"))
    with pytest.raises(ParsingFailed):
        await FeedClient(config, http=http).fetch_feed(FEED_URL)


@pytest.mark.asyncio
async def test_cancellation_never_reaches_the_normalizer(config, monkeypatch):
    started = asyncio.Event()
    calls = []

    async def slow(request):
        started.set()
        await asyncio.sleep(30)
        return httpx.Response(200, content=RSS_FEED)

    monkeypatch.setattr(client_module, "normalize", lambda *args, **kwargs: calls.append(args))
    http = httpx.AsyncClient(transport=httpx.MockTransport(slow))
    client = FeedClient(config, http=http)
    task = asyncio.create_task(client.fetch_feed(FEED_URL))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert calls == []
    await http.aclose()


@pytest.mark.asyncio
async def test_discover_feeds_delegates(router, http, config):
    page = b'<link type="application/atom+xml" href="/atom.xml">'
    router.add("GET", "https://example.com/", httpx.Response(200, content=page))
    found = await FeedClient(config, http=http).discover_feeds("https://example.com/blog")
    assert found == ["https://example.com/atom.xml"]


@pytest.mark.asyncio
async def test_schedule_icon_sets_icon_in_background(router, http, config):
    router.add("GET", "https://example.com/favicon.ico", httpx.Response(200, content=PNG_BYTES))
    feed = NormalizedFeed(title="f", url=FEED_URL)
    client = FeedClient(config, http=http)
    task = client.schedule_icon(feed)
    assert feed.icon is None
    await task
    assert feed.icon == PNG_BYTES


@pytest.mark.asyncio
async def test_resolve_icon_swallows_failures(router, http, config):
    feed = NormalizedFeed(title="f", url=FEED_URL)
    await FeedClient(config, http=http).resolve_icon(FEED_URL, lambda data: setattr(feed, "icon", data))
    assert feed.icon is None


@pytest.mark.asyncio
async def test_aclose_closes_owned_http_client(config):
    client = FeedClient(config)
    async with client:
        pass
    assert client._http.is_closed


@pytest.mark.asyncio
async def test_aclose_leaves_injected_http_client_open(http, config):
    async with FeedClient(config, http=http):
        pass
    assert not http.is_closed
    await http.aclose()


@pytest.mark.asyncio
async def test_resolve_icon_with_malformed_host_does_not_raise(router, http, config):
    icons = []
    await FeedClient(config, http=http).resolve_icon("http://[::1", icons.append)
    assert icons == []
    assert router.requests == []


@pytest.mark.asyncio
async def test_resolve_icon_survives_a_failing_setter(router, http, config):
    router.add("GET", "https://example.com/favicon.ico", httpx.Response(200, content=PNG_BYTES))

    def broken_setter(data):
        raise RuntimeError("storage unavailable")

    await FeedClient(config, http=http).resolve_icon(FEED_URL, broken_setter)
