# engine.py
"""
Personalized music recommendations (collaborative + audio-feature content + popularity)
- Cold start (no interactions at all) -> popularity feed, no blending
- Otherwise the three generators run concurrently and are blended
  collaborative -> content -> popular (weights 0.6 / 0.3 / 0.1, pool capped to 50)
- Tracks the user already interacted with are filtered out
- Last.fm fills in when the local catalog has no answer
- Best-effort: only an unknown track (get_similar_tracks) or a malformed id raises

Settings (all optional, see tunefeed_api/settings.py):
    RECS_* knobs map onto DEFAULTS below; call-site overrides win.
"""

from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional, Sequence

from django.conf import settings
from django.db import connections

# Import modules so tests can monkeypatch generators / blending
from . import blending, generators, lastfm
from .exceptions import InvalidIdentifier, SimilaritySourceError, TrackNotFound
from .features import average_features, feature_window
from .models import Track
from .stores import Stores, recommendation_session

logger = logging.getLogger(__name__)


# -------------------------------
# Config (override via settings or per-call kwargs)
# -------------------------------
DEFAULTS = dict(
    DEFAULT_LIMIT=10,
    WEIGHTS=dict(collaborative=0.6, content=0.3, popular=0.1),
    MAX_BLEND=50,                # hard cap on the blended pool
    FEATURE_TOLERANCE=0.2,       # +/- 20% window around averaged features
    WINDOW_FEATURES=("energy", "danceability", "valence"),
    SIMILAR_USERS=10,
    RECENT_LIKES=5,
    PARALLEL_GENERATORS=True,
    GENERATOR_TIMEOUT=None,      # seconds; None waits for every generator
)

_SETTINGS_MAP = dict(
    DEFAULT_LIMIT="RECS_DEFAULT_LIMIT",
    MAX_BLEND="RECS_MAX_BLEND",
    FEATURE_TOLERANCE="RECS_FEATURE_TOLERANCE",
    WINDOW_FEATURES="RECS_WINDOW_FEATURES",
    SIMILAR_USERS="RECS_SIMILAR_USERS",
    RECENT_LIKES="RECS_RECENT_LIKES",
    PARALLEL_GENERATORS="RECS_PARALLEL_GENERATORS",
    GENERATOR_TIMEOUT="RECS_GENERATOR_TIMEOUT",
)

MOOD_TAGS = {
    "happy": "feel good",
    "sad": "melancholy",
    "energetic": "energetic",
    "calm": "chill",
    "focus": "concentration",
}


def _config(**overrides) -> Dict[str, Any]:
    cfg = dict(DEFAULTS)
    for key, name in _SETTINGS_MAP.items():
        if hasattr(settings, name):
            cfg[key] = getattr(settings, name)
    cfg["WEIGHTS"] = dict(
        collaborative=getattr(settings, "RECS_WEIGHT_COLLABORATIVE", DEFAULTS["WEIGHTS"]["collaborative"]),
        content=getattr(settings, "RECS_WEIGHT_CONTENT", DEFAULTS["WEIGHTS"]["content"]),
        popular=getattr(settings, "RECS_WEIGHT_POPULAR", DEFAULTS["WEIGHTS"]["popular"]),
    )
    cfg.update(overrides)
    return cfg


# -------------------------------
# Input normalization
# -------------------------------
def _normalize_limit(limit, default: int) -> int:
    if isinstance(limit, bool):
        return default
    try:
        n = int(limit)
    except (TypeError, ValueError, OverflowError):
        return default
    return n if n > 0 else default


def _coerce_id(kind: str, value) -> int:
    if isinstance(value, bool):
        raise InvalidIdentifier(kind, value)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    raise InvalidIdentifier(kind, value)


# -------------------------------
# Fan-out
# -------------------------------
def _in_worker(fn, *args):
    # Worker threads get their own DB connections; release them before exit
    try:
        return fn(*args)
    finally:
        connections.close_all()


def _fan_out(tasks: Dict[str, tuple], parallel: bool, timeout: Optional[float]) -> Dict[str, List[Track]]:
    """Run {name: (fn, *args)} and collect results; a failed or late task yields []."""
    results: Dict[str, List[Track]] = {}
    if not parallel:
        for name, (fn, *args) in tasks.items():
            try:
                results[name] = fn(*args)
            except Exception:
                logger.exception("Generator %s failed", name)
                results[name] = []
        return results

    pool = ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="recs")
    try:
        futures = {name: pool.submit(_in_worker, fn, *args) for name, (fn, *args) in tasks.items()}
        done, _ = wait(futures.values(), timeout=timeout)
        for name, fut in futures.items():
            if fut not in done:
                logger.warning("Generator %s timed out after %ss", name, timeout)
                results[name] = []
                continue
            try:
                results[name] = fut.result()
            except Exception:
                logger.exception("Generator %s failed", name)
                results[name] = []
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
    return results


# -------------------------------
# Public entrypoints
# -------------------------------
def get_personalized_recommendations(stores: Stores, user_id, limit=None, **overrides) -> List[Track]:
    """
    Returns at most `limit` tracks for the user, never raising for missing data.
    A malformed user id raises InvalidIdentifier.
    """
    cfg = _config(**overrides)
    limit = _normalize_limit(limit, cfg["DEFAULT_LIMIT"])
    user_id = _coerce_id("user", user_id)

    try:
        history = stores.interactions.history(user_id)
    except Exception:
        logger.exception("Failed to load history for user %s", user_id)
        return []
    if not history:
        logger.info("Cold start for user %s, serving popular tracks", user_id)
        return generators.get_popular_recommendations(stores, limit)[:limit]

    results = _fan_out(
        {
            "collaborative": (
                generators.get_collaborative_filtering_recommendations,
                stores, user_id, limit * 2, cfg["SIMILAR_USERS"],
            ),
            "content": (
                generators.get_content_based_recommendations,
                stores, user_id, limit * 2, cfg["RECENT_LIKES"],
                tuple(cfg["WINDOW_FEATURES"]), cfg["FEATURE_TOLERANCE"],
            ),
            "popular": (generators.get_popular_recommendations, stores, limit),
        },
        parallel=cfg["PARALLEL_GENERATORS"],
        timeout=cfg["GENERATOR_TIMEOUT"],
    )

    blended = blending.combine(
        results["collaborative"],
        results["content"],
        results["popular"],
        cfg["WEIGHTS"],
        max_tracks=cfg["MAX_BLEND"],
    )
    try:
        filtered = blending.filter_out_user_history(stores, blended, user_id)
    except Exception:
        logger.exception("Failed to filter history for user %s", user_id)
        return []
    logger.debug(
        "User %s: collaborative=%d content=%d popular=%d blended=%d filtered=%d",
        user_id, len(results["collaborative"]), len(results["content"]),
        len(results["popular"]), len(blended), len(filtered),
    )
    return filtered[:limit]


def get_similar_tracks(stores: Stores, track_id, limit=None, **overrides) -> List[Track]:
    """
    Local tracks inside the source track's audio-feature window, else Last.fm
    similar tracks. Raises TrackNotFound for an unknown track; any other
    failure yields [].
    """
    cfg = _config(**overrides)
    limit = _normalize_limit(limit, cfg["DEFAULT_LIMIT"])
    track_id = _coerce_id("track", track_id)

    try:
        track = stores.tracks.get(track_id)
    except Exception:
        logger.exception("Failed to load track %s", track_id)
        return []
    if track is None:
        raise TrackNotFound(track_id)

    try:
        features = stores.tracks.features_for([track_id]).get(track_id)
        if features is not None:
            bounds = feature_window(
                average_features([features]),
                fields=tuple(cfg["WINDOW_FEATURES"]),
                tolerance=cfg["FEATURE_TOLERANCE"],
            )
            matches = stores.tracks.in_feature_window(bounds, exclude_ids={track_id}, limit=limit)
            if matches:
                return matches

        items = stores.source.similar_tracks(track.title, track.artist, limit)
        return lastfm.to_tracks(items)[:limit]
    except Exception:
        logger.exception("Failed to get similar tracks for track %s", track_id)
        return []


def get_preference_recommendations(
    stores: Stores, genres: Sequence[str] = (), mood: Optional[str] = None, limit=None
) -> List[Track]:
    """Discovery by stated taste: first genre, else mood tag, else the global chart."""
    limit = _normalize_limit(limit, _config()["DEFAULT_LIMIT"])
    genres = [g.strip() for g in genres or [] if g and g.strip()]
    try:
        if genres:
            items = stores.source.top_tracks_by_tag(genres[0], limit)
        elif mood:
            mood = str(mood).strip()
            tag = MOOD_TAGS.get(mood.lower(), mood)
            items = stores.source.top_tracks_by_tag(tag, limit)
        else:
            items = stores.source.global_top_tracks(limit)
        return lastfm.to_tracks(items)[:limit]
    except SimilaritySourceError as exc:
        logger.warning("Failed to get preference recommendations: %s", exc)
    except Exception:
        logger.exception("Failed to get preference recommendations")
    return []


def recommend_for_user(user_id, limit=None, **overrides) -> List[Track]:
    """Request-scoped wrapper: acquires the stores, recommends, releases."""
    with recommendation_session() as stores:
        return get_personalized_recommendations(stores, user_id, limit, **overrides)


def similar_to_track(track_id, limit=None, **overrides) -> List[Track]:
    with recommendation_session() as stores:
        return get_similar_tracks(stores, track_id, limit, **overrides)
