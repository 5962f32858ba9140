import pytest

from discovery import generators
from discovery.exceptions import SimilaritySourceError
from discovery.models import Interaction
from discovery.stores import orm_stores
from discovery.tests.conftest import _lfm_key, lfm_item

FEATS = dict(energy=0.5, danceability=0.5, valence=0.5)


# -------------------------------
# Popularity
# -------------------------------
@pytest.mark.django_db
def test_popular_uses_local_catalog_first(make_track, lastfm_client):
    calls = []
    stores = orm_stores(lastfm_client({}, calls))
    a = make_track(popularity=5)
    b = make_track(popularity=50)
    assert generators.get_popular_recommendations(stores, 5) == [b, a]
    assert calls == []


@pytest.mark.django_db
def test_popular_falls_back_to_lastfm_chart(lastfm_client):
    stores = orm_stores(lastfm_client({
        _lfm_key("chart.getTopTracks", limit=2, page=1): {
            "tracks": {"track": [lfm_item("Hit", "Star", playcount=9000), lfm_item("B-side", "Star")]}
        },
    }))
    out = generators.get_popular_recommendations(stores, 2)
    assert [t.title for t in out] == ["Hit", "B-side"]
    assert all(t.pk is None for t in out)
    assert out[0].popularity == pytest.approx(9.0)
    assert out[1].popularity is None


@pytest.mark.django_db
def test_popular_swallows_upstream_errors(lastfm_client):
    stores = orm_stores(lastfm_client({
        _lfm_key("chart.getTopTracks", limit=3, page=1): SimilaritySourceError("503"),
    }))
    assert generators.get_popular_recommendations(stores, 3) == []


def test_popular_swallows_store_errors(stores, monkeypatch):
    def _boom(limit):
        raise RuntimeError("db down")
    monkeypatch.setattr(stores.tracks, "most_popular", _boom)
    assert generators.get_popular_recommendations(stores, 3) == []


# -------------------------------
# Collaborative
# -------------------------------
@pytest.mark.django_db
def test_collaborative_neighbour_likes(stores, make_user, make_track, interact):
    a, b = make_user("a"), make_user("b")
    t1, t2, t3 = make_track(), make_track(), make_track()
    interact(a, t1)
    interact(b, t1)
    interact(b, t2)
    interact(b, t3)

    out = generators.get_collaborative_filtering_recommendations(stores, a.pk, 10)
    assert set(out) == {t2, t3}
    assert t1 not in out


@pytest.mark.django_db
def test_collaborative_needs_likes_to_find_neighbours(stores, make_user, make_track, interact):
    a, b = make_user(), make_user()
    t1, t2 = make_track(), make_track()
    interact(a, t1, Interaction.Type.PLAY)
    interact(b, t1)
    interact(b, t2)
    assert generators.find_similar_users(stores, a.pk) == []
    assert generators.get_collaborative_filtering_recommendations(stores, a.pk, 10) == []


@pytest.mark.django_db
def test_collaborative_without_neighbours_is_empty(stores, make_user, make_track, interact):
    a = make_user()
    interact(a, make_track())
    assert generators.get_collaborative_filtering_recommendations(stores, a.pk, 10) == []


@pytest.mark.django_db
def test_collaborative_is_bounded(stores, make_user, make_track, interact):
    a, b = make_user(), make_user()
    seed = make_track()
    interact(a, seed)
    interact(b, seed)
    for _ in range(8):
        interact(b, make_track())
    assert len(generators.get_collaborative_filtering_recommendations(stores, a.pk, 5)) == 5


@pytest.mark.django_db
def test_similar_users_are_capped(stores, make_user, make_track, interact):
    me = make_user()
    seed = make_track()
    interact(me, seed)
    for _ in range(4):
        interact(make_user(), seed)
    found = generators.find_similar_users(stores, me.pk, limit=3)
    assert len(found) == 3 and me.pk not in found


# -------------------------------
# Content-based
# -------------------------------
@pytest.mark.django_db
def test_content_matches_averaged_window(stores, make_user, make_track, interact):
    user = make_user()
    liked1 = make_track(features=dict(energy=0.4, danceability=0.5, valence=0.5))
    liked2 = make_track(features=dict(energy=0.6, danceability=0.5, valence=None))
    interact(user, liked1, minutes_ago=5)
    interact(user, liked2, minutes_ago=1)

    # averages: energy 0.5, danceability 0.5, valence 0.5 (from liked1 only)
    near = make_track(features=dict(energy=0.59, danceability=0.45, valence=0.55))
    far = make_track(features=dict(energy=0.61, danceability=0.5, valence=0.5))

    out = generators.get_content_based_recommendations(stores, user.pk, 10)
    assert out == [near]
    assert far not in out and liked1 not in out and liked2 not in out


@pytest.mark.django_db
def test_content_only_uses_recent_likes(stores, make_user, make_track, interact):
    user = make_user()
    old_loud = make_track(features=dict(energy=0.9, danceability=0.9, valence=0.9))
    interact(user, old_loud, minutes_ago=100)
    for i in range(5):
        interact(user, make_track(features=FEATS), minutes_ago=i)
    # a skip is not a like and never shifts the average
    interact(user, make_track(features=dict(energy=0.1, danceability=0.1, valence=0.1)),
             Interaction.Type.SKIP)

    candidate = make_track(features=FEATS)
    out = generators.get_content_based_recommendations(stores, user.pk, 10, recent_likes=5)
    # the old like is outside the recent five, so it is neither averaged nor excluded
    assert candidate in out
    assert old_loud not in out


@pytest.mark.django_db
def test_content_without_likes_is_empty(stores, make_user, make_track, interact):
    user = make_user()
    interact(user, make_track(features=FEATS), Interaction.Type.PLAY)
    assert generators.get_content_based_recommendations(stores, user.pk, 10) == []


@pytest.mark.django_db
def test_content_falls_back_to_lastfm_for_latest_like(make_user, make_track, interact, lastfm_client):
    user = make_user()
    older = make_track(title="Old", artist="Someone")
    latest = make_track(title="Latest", artist="Band")
    interact(user, older, minutes_ago=10)
    interact(user, latest, minutes_ago=1)

    stores = orm_stores(lastfm_client({
        _lfm_key("track.getSimilar", track="Latest", artist="Band", limit=4, autocorrect=1): {
            "similartracks": {"track": [lfm_item("Cousin", "Band2"), lfm_item("Sibling", "Band3")]}
        },
    }))
    out = generators.get_content_based_recommendations(stores, user.pk, 4)
    assert [(t.artist, t.title) for t in out] == [("Band2", "Cousin"), ("Band3", "Sibling")]


@pytest.mark.django_db
def test_content_lastfm_failure_is_empty(make_user, make_track, interact, lastfm_client):
    user = make_user()
    interact(user, make_track(title="Latest", artist="Band"))
    stores = orm_stores(lastfm_client({
        _lfm_key("track.getSimilar", track="Latest", artist="Band", limit=4, autocorrect=1):
            SimilaritySourceError("timeout"),
    }))
    assert generators.get_content_based_recommendations(stores, user.pk, 4) == []


@pytest.mark.django_db
def test_content_window_fields_are_configurable(stores, make_user, make_track, interact):
    user = make_user()
    interact(user, make_track(features=dict(FEATS, acousticness=0.5)))
    acoustic = make_track(features=dict(FEATS, acousticness=0.9))

    default = generators.get_content_based_recommendations(stores, user.pk, 10)
    widened = generators.get_content_based_recommendations(
        stores, user.pk, 10, window_fields=("energy", "danceability", "valence", "acousticness"),
    )
    assert acoustic in default
    assert acoustic not in widened
