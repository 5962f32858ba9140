from __future__ import annotations

import math
from typing import Dict, List, Mapping, Sequence

from .models import Track
from .stores import Stores

SOURCES = ("collaborative", "content", "popular")

# Hard ceiling on the blended pool, whatever the requested limit
MAX_BLEND = 50


def normalize_weights(weights: Mapping[str, float]) -> Dict[str, float]:
    w = {k: float(weights.get(k, 0.0) or 0.0) for k in SOURCES}
    total = max(1e-6, sum(w.values()))
    return {k: v / total for k, v in w.items()}


def combine(
    collaborative: Sequence[Track],
    content_based: Sequence[Track],
    popular: Sequence[Track],
    weights: Mapping[str, float],
    max_tracks: int = MAX_BLEND,
) -> List[Track]:
    """
    Weighted priority merge: collaborative -> content -> popular.

    Each source contributes floor(pool * weight) items from its head, where
    pool = min(total candidates, max_tracks). The first occurrence of a track
    id wins; tracks without an id (Last.fm) are never merged.
    """
    norm = normalize_weights(weights)
    pool = min(len(collaborative) + len(content_based) + len(popular), max_tracks)

    buckets = {
        "collaborative": collaborative,
        "content": content_based,
        "popular": popular,
    }

    seen_ids = set()
    merged: List[Track] = []
    for source in SOURCES:
        take = math.floor(pool * norm[source])
        for track in list(buckets[source])[:take]:
            if not track.is_external:
                if track.pk in seen_ids:
                    continue
                seen_ids.add(track.pk)
            merged.append(track)
    return merged


def filter_out_user_history(stores: Stores, candidates: Sequence[Track], user_id) -> List[Track]:
    """Drop candidates the user has any interaction with; input order is kept."""
    touched = stores.interactions.interacted_track_ids(user_id, [t.pk for t in candidates])
    return [t for t in candidates if t.is_external or t.pk not in touched]
