import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Track",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("artist", models.CharField(max_length=255)),
                ("album", models.CharField(blank=True, max_length=255)),
                ("album_art", models.URLField(blank=True, max_length=500)),
                ("duration", models.PositiveIntegerField(blank=True, help_text="Seconds", null=True)),
                ("popularity", models.FloatField(blank=True, db_index=True, null=True)),
                ("external_id", models.CharField(blank=True, max_length=100)),
                ("external_url", models.URLField(blank=True, max_length=500)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="AudioFeatures",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("energy", models.FloatField(blank=True, db_index=True, null=True)),
                ("danceability", models.FloatField(blank=True, db_index=True, null=True)),
                ("acousticness", models.FloatField(blank=True, null=True)),
                ("instrumentalness", models.FloatField(blank=True, null=True)),
                ("liveness", models.FloatField(blank=True, null=True)),
                ("valence", models.FloatField(blank=True, db_index=True, null=True)),
                ("speechiness", models.FloatField(blank=True, null=True)),
                (
                    "track",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="audio_features",
                        to="discovery.track",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "audio features",
            },
        ),
        migrations.CreateModel(
            name="Interaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[("LIKE", "Like"), ("PLAY", "Play"), ("SKIP", "Skip")], max_length=10
                    ),
                ),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "track",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="interactions",
                        to="discovery.track",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="track_interactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["user", "type", "created_at"], name="interaction_user_type_idx"),
                    models.Index(fields=["track", "type"], name="interaction_track_type_idx"),
                ],
            },
        ),
    ]
