# tests/conftest.py
import itertools
from datetime import timedelta

import pytest
from django.utils import timezone

from discovery.lastfm import LastFmClient
from discovery.models import AudioFeatures, Interaction, Track
from discovery.stores import orm_stores


# Helper to build the same key shape the stub uses
def _lfm_key(method: str, **params):
    """Key helper for Last.fm stub mapping.
    Returns (method, tuple(sorted(params.items()))) matching stub_lastfm_factory.
    """
    return (method, tuple(sorted(params.items())))


def lfm_item(name, artist, playcount=None, **extra):
    """A Last.fm track item shaped like chart / similar / tag responses."""
    item = {"name": name, "artist": {"name": artist}, "url": f"https://www.last.fm/music/{artist}/_/{name}"}
    if playcount is not None:
        item["playcount"] = str(playcount)
    item.update(extra)
    return item


@pytest.fixture
def stub_lastfm_factory():
    """
    Returns a function that produces a LastFmClient._request stub using an
    in-memory map keyed by (method, sorted params) -> response.
    A response that is an exception instance is raised instead.
    """
    def factory(responses_map, calls=None):
        def _stub(method, params):
            key = (method, tuple(sorted(params.items())))
            if calls is not None:
                calls.append(key)
            if key not in responses_map:
                raise AssertionError(f"No stub for lastfm call: {method} {params}")
            resp = responses_map[key]
            if isinstance(resp, Exception):
                raise resp
            return resp
        return _stub
    return factory


@pytest.fixture
def lastfm_client(monkeypatch, stub_lastfm_factory):
    """
    Usage:
      client = lastfm_client({_lfm_key(...): {...}})
    """
    def _make(responses_map=None, calls=None):
        client = LastFmClient(api_key="test-key", enable_cache=False)
        monkeypatch.setattr(client, "_request", stub_lastfm_factory(responses_map or {}, calls))
        return client
    return _make


@pytest.fixture
def stores(lastfm_client):
    """ORM-backed stores whose Last.fm client answers nothing unless re-stubbed."""
    return orm_stores(lastfm_client())


@pytest.fixture
def make_user(django_user_model):
    counter = itertools.count()

    def _make(username=None):
        return django_user_model.objects.create(username=username or f"listener{next(counter)}")
    return _make


@pytest.fixture
def make_track():
    counter = itertools.count()

    def _make(title=None, artist="Artist", popularity=None, features=None, **kw):
        n = next(counter)
        track = Track.objects.create(
            title=title or f"Track {n}", artist=artist, popularity=popularity, **kw
        )
        if features is not None:
            AudioFeatures.objects.create(track=track, **features)
        return track
    return _make


@pytest.fixture
def interact():
    """interact(user, track, type="LIKE", minutes_ago=0) -> Interaction"""
    now = timezone.now()

    def _make(user, track, type=Interaction.Type.LIKE, minutes_ago=0):
        return Interaction.objects.create(
            user=user, track=track, type=type, created_at=now - timedelta(minutes=minutes_ago)
        )
    return _make
