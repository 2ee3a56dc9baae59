# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
YouTube videos are indexed by their captions instead of the watch page.

The first caption track the video offers is used, its lines joined with
spaces. Title and channel come from the public oEmbed endpoint; when that
fails the URL stands in as the title.
"""
from typing import Optional
from urllib.parse import parse_qs, urlparse

import httpx
from youtube_transcript_api import YouTubeTranscriptApi

from .errors import FetchError
from .models import Document

OEMBED_URL = "https://www.youtube.com/oembed"
YOUTUBE_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com"}


def extract_video_id(url: str) -> str:
    """Video id from a watch or youtu.be URL, "" when the URL is neither."""
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if host in YOUTUBE_HOSTS and parsed.path == "/watch":
        return parse_qs(parsed.query).get("v", [""])[0]
    if host == "youtu.be":
        return parsed.path.lstrip("/").split("/", 1)[0]
    return ""


def is_youtube_url(url: str) -> bool:
    return bool(extract_video_id(url))


def fetch_captions(url: str) -> str:
    video_id = extract_video_id(url)
    if not video_id:
        raise FetchError(f"invalid YouTube URL: {url}")
    try:
        tracks = YouTubeTranscriptApi().list(video_id)
        track = next(iter(tracks), None)
        if track is None:
            raise FetchError(f"no captions found for video {video_id}")
        snippets = track.fetch()
    except FetchError:
        raise
    except Exception as e:
        raise FetchError(f"fetch captions for {url}: {e}") from e
    return " ".join(s.text.strip() for s in snippets if s.text.strip())


def fetch_video_title(url: str, client: httpx.Client) -> str:
    try:
        resp = client.get(OEMBED_URL, params={"url": url, "format": "json"})
        resp.raise_for_status()
        meta = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        print(f"Warning: no metadata for {url}: {e}")
        return ""
    title = meta.get("title", "")
    channel = meta.get("author_name", "")
    if title and channel:
        return f"{title} ({channel})"
    return title


def fetch_youtube(
    url: str, client: Optional[httpx.Client] = None, timeout: float = 30.0,
) -> Document:
    if client is None:
        with httpx.Client(timeout=timeout, follow_redirects=True) as own_client:
            return fetch_youtube(url, client=own_client, timeout=timeout)

    content = fetch_captions(url)
    return Document(
        path=url,
        content=content,
        title=fetch_video_title(url, client) or url,
        is_remote=True,
    )
