from __future__ import annotations

import json
from typing import Callable, Dict, Optional, Tuple, Union

import httpx
import pytest

from feed_ingest import IngestConfig

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
ICO_BYTES = b"\x00\x00\x01\x00\x01\x00\x10\x10" + b"\x00" * 32

RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Example Blog</title>
    <link>https://example.com/</link>
    <description>Posts about things</description>
    <item>
      <title>First post</title>
      <link>https://example.com/first</link>
      <guid isPermaLink="false">post-1</guid>
      <description>B</description>
      <content:encoded><![CDATA[<p>A</p>]]></content:encoded>
      <category>News</category>
      <pubDate>Mon, 01 Jan 2024 12:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Second post</title>
      <link>https://example.com/second</link>
      <guid isPermaLink="false">post-2</guid>
      <description>Only a description</description>
      <media:content url="https://example.com/media.jpg" medium="image" />
    </item>
    <item>
      <description>An item without a title</description>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Example</title>
  <subtitle>Notes from the field</subtitle>
  <id>urn:uuid:feed</id>
  <updated>2024-01-03T08:00:00Z</updated>
  <entry>
    <title>Entry one</title>
    <id>urn:uuid:entry-1</id>
    <link href="https://example.org/entry-1"/>
    <updated>2024-01-02T10:00:00Z</updated>
    <author><name>Bob</name></author>
    <summary>Short version</summary>
    <content type="html">&lt;p&gt;Long version &lt;img src="https://example.org/pic.png"&gt;&lt;/p&gt;</content>
  </entry>
  <entry>
    <title>Entry two</title>
    <id>urn:uuid:entry-2</id>
    <link href="https://example.org/entry-2"/>
    <published>2024-01-01T08:00:00Z</published>
    <updated>2024-01-03T08:00:00Z</updated>
    <summary>Only a summary</summary>
  </entry>
</feed>
"""

JSON_FEED = json.dumps(
    {
        "version": "https://jsonfeed.org/version/1.1",
        "title": "JSON Example",
        "description": "A JSON feed",
        "icon": "https://example.net/icon.png",
        "items": [
            {
                "id": "1",
                "title": "T",
                "url": "https://example.net/t",
                "content_html": "",
                "content_text": "hello world",
                "summary": "S",
                "date_published": "2024-01-05T09:30:00Z",
                "tags": ["python", "feeds"],
                "authors": [{"name": "Carol"}],
            },
            {
                "id": 2,
                "title": "Rich",
                "url": "https://example.net/rich",
                "content_html": '<p><img src="https://example.net/inline.png"></p>',
                "image": "https://example.net/explicit.png",
            },
            {"id": "3", "content_text": "untitled item"},
        ],
    }
).encode("utf-8")

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class Router:
    """``httpx.MockTransport`` handler keyed by (method, url); everything else is a 404."""

    def __init__(self, routes: Optional[Dict[Tuple[str, str], Route]] = None) -> None:
        self.routes: Dict[Tuple[str, str], Route] = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, route: Route) -> None:
        self.routes[(method, url)] = route

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, str(request.url)))
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        return route

    @property
    def requested_urls(self) -> list[str]:
        return [str(request.url) for request in self.requests]


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def http(router: Router) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(router), follow_redirects=True)


@pytest.fixture
def config() -> IngestConfig:
    return IngestConfig(timeout=5.0)
