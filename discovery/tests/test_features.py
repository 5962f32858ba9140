import pytest

from discovery.features import NEUTRAL, average_features, feature_window
from discovery.models import FEATURE_FIELDS, AudioFeatures


def _full(**values):
    base = {name: 0.3 for name in FEATURE_FIELDS}
    base.update(values)
    return base


def test_single_complete_feature_set_averages_to_itself():
    row = dict(energy=0.8, danceability=0.7, acousticness=0.1, instrumentalness=0.0,
               liveness=0.25, valence=0.6, speechiness=0.05)
    avg = average_features([row])
    for name, value in row.items():
        assert avg[name] == pytest.approx(value)


def test_empty_input_is_neutral_for_every_field():
    assert average_features([]) == {name: NEUTRAL for name in FEATURE_FIELDS}


def test_missing_values_are_skipped_not_zeroed():
    rows = [
        _full(energy=0.2, liveness=None),
        _full(energy=None, liveness=None),
        _full(energy=0.6, liveness=None),
    ]
    avg = average_features(rows)
    # only the two present energies count
    assert avg["energy"] == pytest.approx(0.4)
    # nobody reports liveness
    assert avg["liveness"] == NEUTRAL
    assert avg["valence"] == pytest.approx(0.3)


def test_accepts_model_instances():
    # unsaved instances never touch the database
    rows = [AudioFeatures(energy=0.5, valence=0.1), AudioFeatures(energy=0.7)]
    avg = average_features(rows)
    assert avg["energy"] == pytest.approx(0.6)
    assert avg["valence"] == pytest.approx(0.1)
    assert avg["speechiness"] == NEUTRAL


def test_window_is_twenty_percent_either_side():
    bounds = feature_window({"energy": 0.5, "danceability": 0.5, "valence": 0.5})
    lo, hi = bounds["energy"]
    assert lo == pytest.approx(0.4)
    assert hi == pytest.approx(0.6)
    assert lo <= 0.59 <= hi
    assert not (lo <= 0.61 <= hi)


def test_window_defaults_to_three_gating_fields():
    avg = average_features([_full()])
    assert set(feature_window(avg)) == {"energy", "danceability", "valence"}


def test_window_can_be_widened():
    avg = average_features([_full()])
    bounds = feature_window(avg, fields=FEATURE_FIELDS, tolerance=0.1)
    assert set(bounds) == set(FEATURE_FIELDS)
    assert bounds["liveness"] == pytest.approx((0.27, 0.33))
