from django.conf import settings
from django.db import models
from django.utils import timezone

# discovery/models.py

FEATURE_FIELDS = (
    "energy",
    "danceability",
    "acousticness",
    "instrumentalness",
    "liveness",
    "valence",
    "speechiness",
)


class Track(models.Model):
    # Tracks built from Last.fm payloads are left unsaved (pk is None)
    title = models.CharField(max_length=255)
    artist = models.CharField(max_length=255)
    album = models.CharField(max_length=255, blank=True)
    album_art = models.URLField(max_length=500, blank=True)
    duration = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds")
    popularity = models.FloatField(null=True, blank=True, db_index=True)
    external_id = models.CharField(max_length=100, blank=True)
    external_url = models.URLField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.title} by {self.artist}"

    @property
    def is_external(self) -> bool:
        return self.pk is None


class AudioFeatures(models.Model):
    track = models.OneToOneField(Track, on_delete=models.CASCADE, related_name="audio_features")
    energy = models.FloatField(null=True, blank=True, db_index=True)
    danceability = models.FloatField(null=True, blank=True, db_index=True)
    acousticness = models.FloatField(null=True, blank=True)
    instrumentalness = models.FloatField(null=True, blank=True)
    liveness = models.FloatField(null=True, blank=True)
    valence = models.FloatField(null=True, blank=True, db_index=True)
    speechiness = models.FloatField(null=True, blank=True)

    class Meta:
        verbose_name_plural = "audio features"

    def __str__(self):
        return f"Audio features for track {self.track_id}"

    def as_dict(self) -> dict[str, float | None]:
        return {name: getattr(self, name) for name in FEATURE_FIELDS}


class Interaction(models.Model):
    class Type(models.TextChoices):
        LIKE = "LIKE", "Like"
        PLAY = "PLAY", "Play"
        SKIP = "SKIP", "Skip"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="track_interactions"
    )
    track = models.ForeignKey(Track, on_delete=models.CASCADE, related_name="interactions")
    type = models.CharField(max_length=10, choices=Type.choices)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=["user", "type", "created_at"], name="interaction_user_type_idx"),
            models.Index(fields=["track", "type"], name="interaction_track_type_idx"),
        ]

    def __str__(self):
        return f"{self.user_id} {self.type} {self.track_id}"
