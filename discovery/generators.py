# generators.py
"""
Candidate producers for the blended feed.

Each generator takes the request's `Stores` explicitly and is best-effort:
store or Last.fm failures are logged and turned into an empty list so one
broken signal never takes the whole feed down.
"""

from __future__ import annotations
import logging
from typing import List, Sequence

from . import lastfm
from .exceptions import SimilaritySourceError
from .features import WINDOW_FIELDS, average_features, feature_window
from .models import Interaction, Track
from .stores import Stores

logger = logging.getLogger(__name__)


# -------------------------------
# Popularity
# -------------------------------
def get_popular_recommendations(stores: Stores, limit: int) -> List[Track]:
    """Local catalog by popularity; Last.fm global chart when the catalog is empty."""
    try:
        tracks = stores.tracks.most_popular(limit)
        if tracks:
            return tracks
        logger.info("No local tracks, falling back to Last.fm top tracks")
        return lastfm.to_tracks(stores.source.global_top_tracks(limit))[:limit]
    except Exception:
        logger.exception("Failed to get popular recommendations")
        return []


# -------------------------------
# Collaborative filtering
# -------------------------------
def find_similar_users(stores: Stores, user_id, limit: int = 10) -> List[int]:
    """Users (other than user_id) who liked at least one track user_id liked."""
    likes = stores.interactions.history(user_id, type=Interaction.Type.LIKE)
    if not likes:
        return []
    liked_ids = {like.track_id for like in likes}
    return stores.users.sharing_likes(liked_ids, exclude_user_id=user_id, limit=limit)


def get_collaborative_filtering_recommendations(
    stores: Stores, user_id, limit: int, similar_users: int = 10
) -> List[Track]:
    try:
        neighbours = find_similar_users(stores, user_id, limit=similar_users)
        if not neighbours:
            return []
        return stores.tracks.liked_by_any(neighbours, untouched_by=user_id, limit=limit)
    except Exception:
        logger.exception("Failed to get collaborative recommendations for user %s", user_id)
        return []


# -------------------------------
# Content-based (audio feature window)
# -------------------------------
def _similar_from_lastfm(stores: Stores, track: Track, limit: int) -> List[Track]:
    try:
        items = stores.source.similar_tracks(track.title, track.artist, limit)
    except SimilaritySourceError as exc:
        logger.warning("Failed to get similar tracks from Last.fm for %s: %s", track, exc)
        return []
    return lastfm.to_tracks(items)[:limit]


def get_content_based_recommendations(
    stores: Stores,
    user_id,
    limit: int,
    recent_likes: int = 5,
    window_fields: Sequence[str] = WINDOW_FIELDS,
    tolerance: float = 0.2,
) -> List[Track]:
    try:
        recent = stores.interactions.history(user_id, type=Interaction.Type.LIKE, limit=recent_likes)
        if not recent:
            return []

        recent_ids = [like.track_id for like in recent]
        features = stores.tracks.features_for(recent_ids)
        liked_features = [features[tid] for tid in recent_ids if tid in features]

        if not liked_features:
            # No audio features on any recent like: ask Last.fm about the latest one
            return _similar_from_lastfm(stores, recent[0].track, limit)

        averages = average_features(liked_features)
        bounds = feature_window(averages, fields=window_fields, tolerance=tolerance)
        logger.debug("Feature window for user %s: %s", user_id, bounds)
        return stores.tracks.in_feature_window(bounds, exclude_ids=set(recent_ids), limit=limit)
    except Exception:
        logger.exception("Failed to get content-based recommendations for user %s", user_id)
        return []
