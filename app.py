from __future__ import annotations

import asyncio
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict

from flask import Flask, jsonify, request

from feed_ingest import FeedClient, IngestConfig, InvalidURL, NetworkError, ParsingFailed, ProgressTracker

app = Flask(__name__)
_config = IngestConfig.from_env()


@app.get("/health")
def healthcheck():
    return {"status": "ok"}


@app.post("/feeds/fetch")
def fetch_feed():
    payload = request.get_json(silent=True) or {}
    url = payload.get("url")
    if not url:
        return jsonify({"error": "`url` is required"}), 400
    tracker = ProgressTracker()
    try:
        feed, articles = asyncio.run(_fetch(url, payload.get("category_id"), tracker))
    except InvalidURL as exc:
        return jsonify({"error": str(exc)}), 400
    except ParsingFailed as exc:
        return jsonify({"error": str(exc)}), 422
    except NetworkError as exc:
        return jsonify({"error": str(exc)}), 502
    except Exception as exc:  # pragma: no cover - runtime guard
        app.logger.exception("Uncaught exception when handling /feeds/fetch")
        return jsonify({"error": "Unexpected server error", "detail": str(exc)}), 500
    return jsonify(
        {
            "feed": _serialize(asdict(feed)),
            "articles": [_serialize(asdict(article)) for article in articles],
            "stage": tracker.stage,
        }
    )


@app.post("/feeds/discover")
def discover_feeds():
    payload = request.get_json(silent=True) or {}
    url = payload.get("url")
    if not url:
        return jsonify({"error": "`url` is required"}), 400
    try:
        feeds = asyncio.run(_discover(url))
    except InvalidURL as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception as exc:  # pragma: no cover - runtime guard
        app.logger.exception("Uncaught exception when handling /feeds/discover")
        return jsonify({"error": "Unexpected server error", "detail": str(exc)}), 500
    return jsonify({"feeds": feeds})


async def _fetch(url: str, category_id: Any, tracker: ProgressTracker):
    async with FeedClient(_config) as client:
        return await client.fetch_feed(url, category_id, progress=tracker)


async def _discover(url: str):
    async with FeedClient(_config) as client:
        return await client.discover_feeds(url)


def _serialize(data: Dict[str, Any]) -> Dict[str, Any]:
    data.pop("articles", None)
    data.pop("icon", None)
    for key, value in data.items():
        if isinstance(value, datetime):
            data[key] = value.isoformat()
    return data
