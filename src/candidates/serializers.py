from django.conf import settings
from rest_framework import serializers

from src.candidates.models import Candidate, RankingJob
from src.candidates.services.ingestion import IngestionMetadata


class ClassificationSerializer(serializers.Serializer):
    """Position / job opening / domain tags shared by every import endpoint."""

    position = serializers.CharField(required=False, allow_blank=True, max_length=255)
    job_opening = serializers.CharField(required=False, allow_blank=True, max_length=255)
    domain = serializers.CharField(required=False, allow_blank=True, max_length=255)

    def to_metadata(self, **extra) -> IngestionMetadata:
        data = self.validated_data
        return IngestionMetadata(
            position=data.get("position") or None,
            job_opening=data.get("job_opening") or None,
            domain=data.get("domain") or None,
            **extra,
        )


class BatchRequestSerializer(ClassificationSerializer):
    # Client-chosen id, so the same client can cancel the run while it streams.
    batch_id = serializers.UUIDField(required=False)


class ResumeUploadSerializer(ClassificationSerializer):
    file = serializers.FileField()
    source_url = serializers.URLField(required=False, allow_blank=True)
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=64)
    location = serializers.CharField(required=False, allow_blank=True, max_length=255)
    experience = serializers.IntegerField(required=False, min_value=0)
    role = serializers.CharField(required=False, allow_blank=True, max_length=255)
    skills = serializers.ListField(child=serializers.CharField(), required=False)

    def to_metadata(self, **extra) -> IngestionMetadata:
        data = self.validated_data
        overrides = {
            key: data.get(key) or None
            for key in ("source_url", "name", "email", "phone", "location", "role")
        }
        overrides["experience"] = data.get("experience")
        overrides["skills"] = data.get("skills") or None
        return super().to_metadata(**overrides, **extra)


class BulkUploadSerializer(BatchRequestSerializer):
    files = serializers.ListField(child=serializers.FileField(), allow_empty=False)

    def validate_files(self, value):
        if len(value) > settings.BATCH_MAX_ITEMS:
            raise serializers.ValidationError(
                f"Maximum {settings.BATCH_MAX_ITEMS} files allowed per batch"
            )
        return value


class SpreadsheetImportSerializer(BatchRequestSerializer):
    file = serializers.FileField()

    def validate_file(self, value):
        if not value.name.lower().endswith((".xlsx", ".xls", ".csv")):
            raise serializers.ValidationError("Only .xlsx, .xls and .csv files are supported")
        return value


class DriveFileSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    mime_type = serializers.CharField(required=False, allow_blank=True)
    url = serializers.URLField(required=False, allow_blank=True)


class DriveImportSerializer(BatchRequestSerializer):
    files = DriveFileSerializer(many=True, allow_empty=False)
    access_token = serializers.CharField(trim_whitespace=True)

    def validate_files(self, value):
        if len(value) > settings.BATCH_MAX_ITEMS:
            raise serializers.ValidationError(
                f"Maximum {settings.BATCH_MAX_ITEMS} files allowed per batch"
            )
        return value


class JobDescriptionSerializer(serializers.Serializer):
    job_description = serializers.CharField(
        trim_whitespace=True,
        error_messages={
            "required": "job_description is required",
            "blank": "job_description is required",
        },
    )

    def validate_job_description(self, value):
        if len(value) < settings.JOB_DESCRIPTION_MIN_CHARS:
            raise serializers.ValidationError(
                "Job description is too short. Please provide at least "
                f"{settings.JOB_DESCRIPTION_MIN_CHARS} characters."
            )
        return value


class MatchRequestSerializer(JobDescriptionSerializer):
    rank = serializers.BooleanField(required=False, default=False)


class RankRequestSerializer(JobDescriptionSerializer):
    candidate_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)


class RankingJobCreateSerializer(JobDescriptionSerializer, ClassificationSerializer):
    def filters(self) -> dict:
        return {
            key: self.validated_data[key]
            for key in ("position", "job_opening", "domain")
            if self.validated_data.get(key)
        }


class JobDescriptionFileSerializer(serializers.Serializer):
    file = serializers.FileField()


class CandidateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Candidate
        exclude = ("embedding", "resume_text")


class RankingJobSerializer(serializers.ModelSerializer):
    progress = serializers.SerializerMethodField()

    class Meta:
        model = RankingJob
        fields = (
            "id",
            "job_description",
            "status",
            "total_candidates",
            "processed_candidates",
            "progress",
            "error_message",
            "filters",
            "created_at",
            "started_at",
            "completed_at",
        )
        read_only_fields = fields

    def get_progress(self, obj) -> int:
        if not obj.total_candidates:
            return 100 if obj.is_terminal else 0
        return round(obj.processed_candidates * 100 / obj.total_candidates)
