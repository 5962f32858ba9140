from __future__ import annotations

from typing import Dict, Iterable, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from .models import FEATURE_FIELDS, AudioFeatures

# Neutral midpoint used when no liked track reports a feature
NEUTRAL = 0.5

WINDOW_FIELDS = ("energy", "danceability", "valence")


def _as_row(features) -> Dict[str, float]:
    if isinstance(features, AudioFeatures):
        features = features.as_dict()
    return {
        name: np.nan if features.get(name) is None else features.get(name)
        for name in FEATURE_FIELDS
    }


def average_features(features: Iterable[AudioFeatures | Mapping[str, float | None]]) -> Dict[str, float]:
    """
    Per-field mean over the present values only.
    A field that no row reports averages to NEUTRAL.
    """
    rows = [_as_row(f) for f in features]
    if not rows:
        return {name: NEUTRAL for name in FEATURE_FIELDS}

    df = pd.DataFrame(rows, columns=list(FEATURE_FIELDS))
    df = df.apply(pd.to_numeric, errors="coerce")
    means = df.mean(axis=0, skipna=True).fillna(NEUTRAL)
    return {name: float(means[name]) for name in FEATURE_FIELDS}


def feature_window(
    averages: Mapping[str, float],
    fields: Sequence[str] = WINDOW_FIELDS,
    tolerance: float = 0.2,
) -> Dict[str, Tuple[float, float]]:
    """Inclusive (low, high) bounds at +/- tolerance around each averaged value."""
    window = {}
    for name in fields:
        v = float(averages.get(name, NEUTRAL))
        lo, hi = v * (1 - tolerance), v * (1 + tolerance)
        window[name] = (min(lo, hi), max(lo, hi))
    return window
