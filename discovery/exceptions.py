class DiscoveryError(Exception):
    """Base class for errors raised by the discovery app."""


class TrackNotFound(DiscoveryError):
    def __init__(self, track_id):
        super().__init__(f"Track not found: {track_id}")
        self.track_id = track_id


class InvalidIdentifier(DiscoveryError, ValueError):
    def __init__(self, kind: str, value):
        super().__init__(f"Malformed {kind} identifier: {value!r}")
        self.kind = kind
        self.value = value


class SimilaritySourceError(DiscoveryError):
    """Last.fm could not be reached or answered with an error payload."""
