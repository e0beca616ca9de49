import uuid

import django.utils.timezone
import pgvector.django
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        pgvector.django.VectorExtension(),
        migrations.CreateModel(
            name="Candidate",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, max_length=254, null=True, unique=True)),
                ("phone", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "role",
                    models.CharField(blank=True, default="General Application", max_length=255),
                ),
                ("experience", models.PositiveIntegerField(default=0)),
                ("skills", models.JSONField(blank=True, default=list)),
                ("summary", models.TextField(blank=True)),
                ("resume_text", models.TextField(blank=True)),
                (
                    "embedding",
                    pgvector.django.VectorField(
                        blank=True, dimensions=settings.EMBEDDING_DIM, null=True
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("New", "New"),
                            ("Screening", "Screening"),
                            ("Interview", "Interview"),
                            ("Final Round", "Final Round"),
                            ("Selected", "Selected"),
                            ("Rejected", "Rejected"),
                            ("Talent Pool", "Talent Pool"),
                        ],
                        db_index=True,
                        default="New",
                        max_length=32,
                    ),
                ),
                ("source", models.CharField(blank=True, max_length=64)),
                ("resume_url", models.URLField(blank=True, max_length=1024, null=True)),
                ("source_url", models.URLField(blank=True, max_length=1024, null=True)),
                ("applied_date", models.DateField(default=django.utils.timezone.localdate)),
                ("match_score", models.FloatField(blank=True, null=True)),
                ("ai_justification", models.TextField(blank=True, null=True)),
                ("location", models.CharField(blank=True, max_length=255, null=True)),
                ("willing_to_relocate", models.BooleanField(blank=True, null=True)),
                (
                    "position",
                    models.CharField(blank=True, db_index=True, max_length=255, null=True),
                ),
                (
                    "job_opening",
                    models.CharField(blank=True, db_index=True, max_length=255, null=True),
                ),
                ("domain", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("match_score__isnull", True))
                        | models.Q(("match_score__gte", 0), ("match_score__lte", 100)),
                        name="candidate_match_score_range",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="RankingJob",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("job_description", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("queued", "Queued"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="queued",
                        max_length=16,
                    ),
                ),
                ("total_candidates", models.PositiveIntegerField(default=0)),
                ("processed_candidates", models.PositiveIntegerField(default=0)),
                ("error_message", models.TextField(blank=True)),
                ("filters", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
