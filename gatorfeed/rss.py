"""Fetching and parsing RSS documents."""

from __future__ import annotations

import html
import urllib.error
import urllib.parse
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

USER_AGENT = "gator"
DEFAULT_TIMEOUT = 10.0


class FeedFetchError(Exception):
    """A feed could not be downloaded or parsed."""


@dataclass
class RSSItem:
    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSFeed:
    title: str = ""
    link: str = ""
    description: str = ""
    items: list[RSSItem] = field(default_factory=list)


_ITEM_FIELDS = {"title": "title", "link": "link", "description": "description", "pubDate": "pub_date"}
_CHANNEL_FIELDS = {"title": "title", "link": "link", "description": "description"}


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _direct_text(element: ET.Element) -> str:
    """Character data of ``element`` itself, leaving out nested elements."""
    return (element.text or "") + "".join(child.tail or "" for child in element)


def _parse_item(element: ET.Element) -> RSSItem:
    item = RSSItem()
    for child in element:
        attribute = _ITEM_FIELDS.get(_local_name(child.tag))
        if attribute is not None:
            setattr(item, attribute, _direct_text(child))
    item.title = html.unescape(item.title)
    item.description = html.unescape(item.description)
    return item


def parse_feed(data: bytes | str) -> RSSFeed:
    """Parse an RSS document, unescaping HTML entities in titles and descriptions."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise FeedFetchError(f"error unmarshalling data: {exc}") from exc

    feed = RSSFeed()
    for channel in (child for child in root if _local_name(child.tag) == "channel"):
        for child in channel:
            name = _local_name(child.tag)
            if name == "item":
                feed.items.append(_parse_item(child))
            elif name in _CHANNEL_FIELDS:
                setattr(feed, _CHANNEL_FIELDS[name], _direct_text(child))
    feed.title = html.unescape(feed.title)
    feed.description = html.unescape(feed.description)
    return feed


def fetch_feed(url: str, timeout: float = DEFAULT_TIMEOUT) -> RSSFeed:
    """Download the feed at ``url`` and parse it.

    The body is parsed whatever the HTTP status; every failure is raised as
    :class:`FeedFetchError`.
    """
    try:
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    except ValueError as exc:
        raise FeedFetchError(f"error creating request: {exc}") from exc

    scheme = urllib.parse.urlsplit(request.full_url).scheme.lower()
    if scheme not in ("http", "https"):
        raise FeedFetchError(f"error making request: unsupported protocol scheme {scheme!r}")

    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            data = response.read()
    except urllib.error.HTTPError as exc:
        try:
            data = exc.read()
        except OSError as read_exc:
            raise FeedFetchError(f"error reading response body: {read_exc}") from read_exc
        finally:
            exc.close()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise FeedFetchError(f"error making request: {exc}") from exc

    return parse_feed(data)