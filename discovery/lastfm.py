# lastfm.py
"""
Last.fm client used when the local catalog has nothing to offer.
- chart.getTopTracks -> global popularity fallback
- track.getSimilar   -> content fallback when liked tracks lack audio features
- tag.getTopTracks   -> genre / mood discovery
- HTTP caching with requests-cache (24h TTL by default)

Items are mapped into unsaved Track instances; they carry no primary key
and are never written to the database.
"""

from __future__ import annotations
import logging
import re
from typing import Any, Dict, List

import requests
import requests_cache
from django.conf import settings

from .exceptions import SimilaritySourceError
from .models import Track

logger = logging.getLogger(__name__)

API_URL = "https://ws.audioscrobbler.com/2.0/"
USER_AGENT = "tunefeed/1.0"

# Index of the "extralarge" size in Last.fm image arrays
_ART_SIZE = 3


def _get_session(enable_cache: bool, ttl: int, cache_name: str = "lfm_cache") -> requests.Session:
    if enable_cache:
        s = requests_cache.CachedSession(cache_name, backend="sqlite", expire_after=ttl)
    else:
        s = requests.Session()
    s.headers.update({"User-Agent": USER_AGENT})
    return s


class LastFmClient:
    def __init__(
        self,
        api_key: str,
        timeout: float = 25.0,
        enable_cache: bool = True,
        cache_ttl: int = 60 * 60 * 24,
        cache_name: str = "lfm_cache",
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.session = _get_session(enable_cache, cache_ttl, cache_name)

    @classmethod
    def from_settings(cls) -> "LastFmClient":
        return cls(
            api_key=settings.LASTFM_API_KEY,
            timeout=settings.LASTFM_TIMEOUT,
            enable_cache=settings.LASTFM_ENABLE_HTTP_CACHE,
            cache_ttl=settings.LASTFM_CACHE_TTL,
            cache_name=settings.LASTFM_CACHE_NAME,
        )

    def close(self) -> None:
        self.session.close()

    def _request(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        q = {"method": method, "api_key": self.api_key, "format": "json"}
        q.update({k: str(v) for k, v in params.items()})
        logger.debug("Last.fm %s %s", method, params)
        try:
            r = self.session.get(API_URL, params=q, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as exc:
            raise SimilaritySourceError(f"Last.fm {method} failed: {exc}") from exc
        # Last.fm reports API errors inside a 200 body as well
        if isinstance(data, dict) and "error" in data:
            raise SimilaritySourceError(
                f"Last.fm {method} error {data.get('error')}: {data.get('message', '')}"
            )
        return data

    def global_top_tracks(self, limit: int) -> List[Dict[str, Any]]:
        data = self._request("chart.getTopTracks", {"limit": limit, "page": 1})
        return (data.get("tracks", {}) or {}).get("track", []) or []

    def similar_tracks(self, title: str, artist: str, limit: int) -> List[Dict[str, Any]]:
        data = self._request(
            "track.getSimilar",
            {"track": title, "artist": artist, "limit": limit, "autocorrect": 1},
        )
        return (data.get("similartracks", {}) or {}).get("track", []) or []

    def top_tracks_by_tag(self, tag: str, limit: int) -> List[Dict[str, Any]]:
        data = self._request("tag.getTopTracks", {"tag": tag, "limit": limit, "page": 1})
        return (data.get("tracks", {}) or {}).get("track", []) or []


# -------------------------------
# Payload mapping
# -------------------------------
def _clean(s) -> str:
    s = s or ""
    return re.sub(r"\s+", " ", str(s)).strip()


def _image_url(images) -> str:
    if isinstance(images, list) and len(images) > _ART_SIZE:
        return (images[_ART_SIZE] or {}).get("#text") or ""
    return ""


def _positive_int(value) -> int | None:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def _popularity(playcount) -> float | None:
    try:
        score = float(playcount) / 1000
    except (TypeError, ValueError):
        return None
    return score if score > 0 else None


def to_track(item: Dict[str, Any]) -> Track:
    """Map a Last.fm track item to an unsaved Track. Missing values stay empty, never 0."""
    artist = item.get("artist")
    if isinstance(artist, dict):
        artist = artist.get("name") or artist.get("#text")
    album = item.get("album") if isinstance(item.get("album"), dict) else {}

    return Track(
        title=_clean(item.get("name")),
        artist=_clean(artist),
        album=_clean(album.get("title")),
        album_art=_image_url(album.get("image")) or _image_url(item.get("image")),
        duration=_positive_int(item.get("duration")),
        popularity=_popularity(item.get("playcount")),
        external_id=item.get("mbid") or "",
        external_url=item.get("url") or "",
    )


def to_tracks(items: List[Dict[str, Any]]) -> List[Track]:
    return [to_track(it) for it in items]
