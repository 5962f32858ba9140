"""
Store access for the recommendation engine.

The engine only talks to the Protocols below; the Orm* classes back them with
the Django ORM. A `Stores` bundle is acquired per request through
`recommendation_session()`, which also owns the Last.fm client.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Protocol, Set, Tuple

from django.contrib.auth import get_user_model
from django.db.models import F

from .lastfm import LastFmClient
from .models import AudioFeatures, Interaction, Track

logger = logging.getLogger(__name__)


class TrackStore(Protocol):
    def get(self, track_id) -> Optional[Track]: ...

    def most_popular(self, limit: int) -> List[Track]: ...

    def in_feature_window(
        self, bounds: Mapping[str, Tuple[float, float]], exclude_ids: Iterable, limit: int
    ) -> List[Track]: ...

    def liked_by_any(self, user_ids: Iterable, untouched_by, limit: int) -> List[Track]: ...

    def features_for(self, track_ids: Iterable) -> Dict[int, AudioFeatures]: ...


class InteractionStore(Protocol):
    def history(self, user_id, type: Optional[str] = None, limit: Optional[int] = None) -> List[Interaction]: ...

    def interacted_track_ids(self, user_id, track_ids: Iterable) -> Set[int]: ...


class UserStore(Protocol):
    def sharing_likes(self, track_ids: Iterable, exclude_user_id, limit: int = 10) -> List[int]: ...


class SimilaritySource(Protocol):
    def global_top_tracks(self, limit: int) -> List[dict]: ...

    def similar_tracks(self, title: str, artist: str, limit: int) -> List[dict]: ...

    def top_tracks_by_tag(self, tag: str, limit: int) -> List[dict]: ...


@dataclass
class Stores:
    tracks: TrackStore
    interactions: InteractionStore
    users: UserStore
    source: SimilaritySource


# -------------------------------
# Django ORM implementations
# -------------------------------
class OrmTrackStore:
    def get(self, track_id) -> Optional[Track]:
        return Track.objects.filter(pk=track_id).first()

    def most_popular(self, limit: int) -> List[Track]:
        qs = Track.objects.order_by(F("popularity").desc(nulls_last=True), "id")
        return list(qs[:limit])

    def in_feature_window(self, bounds, exclude_ids, limit: int) -> List[Track]:
        lookups = {f"audio_features__{name}__range": (lo, hi) for name, (lo, hi) in bounds.items()}
        qs = (
            Track.objects.filter(**lookups)
            .exclude(pk__in=list(exclude_ids))
            .select_related("audio_features")
            .order_by("id")
        )
        return list(qs[:limit])

    def liked_by_any(self, user_ids, untouched_by, limit: int) -> List[Track]:
        qs = (
            Track.objects.filter(
                interactions__user_id__in=list(user_ids),
                interactions__type=Interaction.Type.LIKE,
            )
            # exclude() across a multi-valued relation means "no interaction at all"
            .exclude(interactions__user_id=untouched_by)
            .distinct()
        )
        return list(qs[:limit])

    def features_for(self, track_ids) -> Dict[int, AudioFeatures]:
        rows = AudioFeatures.objects.filter(track_id__in=list(track_ids))
        return {f.track_id: f for f in rows}


class OrmInteractionStore:
    def history(self, user_id, type=None, limit=None) -> List[Interaction]:
        qs = Interaction.objects.filter(user_id=user_id).select_related("track")
        if type is not None:
            qs = qs.filter(type=type)
        qs = qs.order_by("-created_at", "-id")
        if limit is not None:
            qs = qs[:limit]
        return list(qs)

    def interacted_track_ids(self, user_id, track_ids) -> Set[int]:
        ids = [t for t in track_ids if t is not None]
        if not ids:
            return set()
        return set(
            Interaction.objects.filter(user_id=user_id, track_id__in=ids)
            .values_list("track_id", flat=True)
            .distinct()
        )


class OrmUserStore:
    def sharing_likes(self, track_ids, exclude_user_id, limit: int = 10) -> List[int]:
        User = get_user_model()
        qs = (
            User.objects.exclude(pk=exclude_user_id)
            .filter(
                track_interactions__track_id__in=list(track_ids),
                track_interactions__type=Interaction.Type.LIKE,
            )
            .values_list("pk", flat=True)
            .distinct()
        )
        return list(qs[:limit])


def orm_stores(source: SimilaritySource) -> Stores:
    return Stores(
        tracks=OrmTrackStore(),
        interactions=OrmInteractionStore(),
        users=OrmUserStore(),
        source=source,
    )


@contextlib.contextmanager
def recommendation_session(source: Optional[SimilaritySource] = None) -> Iterator[Stores]:
    """
    Acquire the stores for one recommendation request.

    A Last.fm client is created unless one is passed in; a client created here
    is closed on exit, even when the request fails.
    """
    owned = source is None
    if owned:
        source = LastFmClient.from_settings()
    try:
        yield orm_stores(source)
    finally:
        if owned:
            source.close()
            logger.debug("Closed Last.fm session")
