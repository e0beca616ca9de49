from django.contrib import admin

from src.candidates.models import Candidate, RankingJob


@admin.register(Candidate)
class CandidateAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "role", "status", "match_score", "source", "applied_date")
    list_filter = ("status", "source", "position", "job_opening", "created_at")
    search_fields = ("name", "email", "role", "position", "job_opening", "domain")
    readonly_fields = ("id", "created_at", "updated_at", "embedding_preview")
    exclude = ("embedding",)

    @admin.display(description="Embedding")
    def embedding_preview(self, obj):
        value = getattr(obj, "embedding", None)
        if value is None:
            return "-"
        return f"vector[{len(value)}]"


@admin.register(RankingJob)
class RankingJobAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "status",
        "total_candidates",
        "processed_candidates",
        "created_at",
        "completed_at",
    )
    list_filter = ("status", "created_at")
    readonly_fields = ("id", "created_at", "started_at", "completed_at")
