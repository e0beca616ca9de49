"""Candidate API URL declarations."""

from django.urls import path

from src.candidates.views import (
    BatchCancelView,
    BulkUploadView,
    CandidateMatchView,
    DriveImportView,
    JobDescriptionParseView,
    RankingJobCreateView,
    RankingJobDetailView,
    RankingView,
    ResumeIngestView,
    SpreadsheetImportView,
)

urlpatterns = [
    path("candidates/ingest/", ResumeIngestView.as_view(), name="candidate-ingest"),
    path("candidates/bulk/", BulkUploadView.as_view(), name="candidate-bulk-upload"),
    path(
        "candidates/bulk/<uuid:batch_id>/cancel/",
        BatchCancelView.as_view(),
        name="candidate-bulk-cancel",
    ),
    path(
        "candidates/spreadsheet/",
        SpreadsheetImportView.as_view(),
        name="candidate-spreadsheet-import",
    ),
    path("candidates/drive/", DriveImportView.as_view(), name="candidate-drive-import"),
    path("candidates/match/", CandidateMatchView.as_view(), name="candidate-match"),
    path("ranking/", RankingView.as_view(), name="ranking"),
    path("ranking-jobs/", RankingJobCreateView.as_view(), name="ranking-job-create"),
    path("ranking-jobs/<uuid:job_id>/", RankingJobDetailView.as_view(), name="ranking-job-detail"),
    path(
        "job-descriptions/parse/",
        JobDescriptionParseView.as_view(),
        name="job-description-parse",
    ),
]
