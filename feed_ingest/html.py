"""Regex-based helpers for the small amount of HTML the pipeline has to read.

None of this is a real HTML parser: it scans for ``<img>`` and ``<link>`` tags
with patterns, which is enough for ``<head>`` sections and feed bodies.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional
from urllib.parse import urlparse

_IMG_SRC_RE = re.compile(r'<img[^>]+src="([^"]+)"', re.IGNORECASE)
_LINK_TAG_RE = re.compile(r"<link\b([^>]*)>", re.IGNORECASE)
_ATTR_RE = re.compile(r"""([a-zA-Z_:][-a-zA-Z0-9_:.]*)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""")
_HTML_TAG_RE = re.compile(r"<[^>]+>")

_ENTITIES = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    ("&#39;", "'"),
    ("&nbsp;", " "),
)


def extract_first_image(html: Optional[str]) -> Optional[str]:
    """Return the ``src`` of the first double-quoted ``<img>`` tag in ``html``."""
    if not html:
        return None
    match = _IMG_SRC_RE.search(html)
    if match is None:
        return None
    return match.group(1)


def find_link_tags(html: str) -> List[Dict[str, str]]:
    """Return the attributes of every ``<link>`` tag, keys lower-cased."""
    tags: List[Dict[str, str]] = []
    for match in _LINK_TAG_RE.finditer(html or ""):
        attrs: Dict[str, str] = {}
        for name, double, single, bare in _ATTR_RE.findall(match.group(1)):
            attrs[name.lower()] = double or single or bare
        tags.append(attrs)
    return tags


def resolve_href(href: str, base_url: str) -> str:
    """Make ``href`` absolute against the host of ``base_url``."""
    href = href.strip()
    if href.startswith(("http://", "https://")):
        return href
    parsed = urlparse(base_url)
    scheme = parsed.scheme or "https"
    if href.startswith("//"):
        return f"{scheme}:{href}"
    root = f"{scheme}://{parsed.netloc}"
    if href.startswith("/"):
        return f"{root}{href}"
    return f"{root}/{href}"


def clean_html_tags(text: str) -> str:
    """Strip tags and decode the handful of entities feeds commonly use."""
    cleaned = _HTML_TAG_RE.sub("", text)
    for entity, replacement in _ENTITIES:
        cleaned = cleaned.replace(entity, replacement)
    return cleaned


_DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
        body {{ font-family: -apple-system, "Segoe UI", Roboto, Helvetica, Arial, sans-serif; line-height: 1.6; padding: 12px; margin: 0; }}
        img {{ max-width: 100%; height: auto; }}
        pre, code {{ background-color: rgba(0, 0, 0, 0.05); border-radius: 4px; padding: 0.2em 0.4em; overflow-x: auto; }}
        @media (prefers-color-scheme: dark) {{
            body {{ color: #FFFFFF; background-color: #000000; }}
        }}
    </style>
</head>
<body>
{body}
</body>
</html>
"""


def wrap_in_html_document(html: str) -> str:
    """Wrap an article body in a standalone document unless it already is one."""
    lowered = html.lower()
    if "<!doctype html" in lowered or ("<html" in lowered and "</html>" in lowered):
        return html
    return _DOCUMENT_TEMPLATE.format(body=html)
