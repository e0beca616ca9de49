"""API views for candidate ingestion, matching and ranking."""

import json
import logging
import uuid

from django.conf import settings
from django.core.cache import cache
from django.http import StreamingHttpResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from src.candidates.errors import (
    BatchTooLarge,
    ExtractionError,
    InsufficientText,
    InvalidFileType,
    InvalidJobDescription,
    InvalidSpreadsheet,
)
from src.candidates.extraction.text_extract import (
    extract_text,
    require_min_text,
    resolve_file_kind,
)
from src.candidates.models import Candidate, RankingJob
from src.candidates.retrieve.matcher import CandidateMatcher, CandidateMatchPipeline
from src.candidates.retrieve.ranking import RankingScheduler
from src.candidates.serializers import (
    BulkUploadSerializer,
    CandidateSerializer,
    DriveImportSerializer,
    JobDescriptionFileSerializer,
    MatchRequestSerializer,
    RankingJobCreateSerializer,
    RankingJobSerializer,
    RankRequestSerializer,
    ResumeUploadSerializer,
    SpreadsheetImportSerializer,
)
from src.candidates.services.batch import (
    UploadedResume,
    ingest_drive_files,
    ingest_files,
    ingest_spreadsheet_rows,
)
from src.candidates.services.drive import DriveFile
from src.candidates.services.ingestion import ResumeIngestionService
from src.candidates.services.spreadsheet import parse_spreadsheet
from src.candidates.tasks import create_ranking_job

logger = logging.getLogger(__name__)

ABORT_FLAG_TIMEOUT = 60 * 60


def abort_key(batch_id: str) -> str:
    return f"ingest-abort:{batch_id}"


def _batch_id(serializer) -> str:
    return str(serializer.validated_data.get("batch_id") or uuid.uuid4())


def _stream_batch(batch_id: str, events) -> StreamingHttpResponse:
    """Serialize batch progress events as newline-delimited JSON."""

    def lines():
        try:
            for event in events:
                yield json.dumps({"batch_id": batch_id, **event.as_dict()}) + "\n"
        finally:
            cache.delete(abort_key(batch_id))

    response = StreamingHttpResponse(lines(), content_type="application/x-ndjson")
    response["X-Batch-Id"] = batch_id
    return response


def _should_abort(batch_id: str):
    return lambda: bool(cache.get(abort_key(batch_id)))


class ResumeIngestView(APIView):
    """Ingest one resume synchronously."""

    def post(self, request):
        serializer = ResumeUploadSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning("Resume upload validation failed: %s", serializer.errors)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        upload = serializer.validated_data["file"]
        result = ResumeIngestionService().ingest(
            upload.read(),
            upload.name,
            upload.content_type,
            metadata=serializer.to_metadata(source="Direct Upload"),
        )
        if not result.success:
            return Response(result.as_dict(), status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        return Response(result.as_dict(), status=status.HTTP_201_CREATED)


class BulkUploadView(APIView):
    """Ingest up to BATCH_MAX_ITEMS files in order, streaming progress as NDJSON."""

    def post(self, request):
        serializer = BulkUploadSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning("Bulk upload validation failed: %s", serializer.errors)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        batch_id = _batch_id(serializer)
        files = [
            UploadedResume(name=upload.name, data=upload.read(), content_type=upload.content_type)
            for upload in serializer.validated_data["files"]
        ]
        try:
            events = ingest_files(
                files, serializer.to_metadata(), should_abort=_should_abort(batch_id)
            )
        except BatchTooLarge as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return _stream_batch(batch_id, events)


class BatchCancelView(APIView):
    """Ask a running batch to stop before its next item."""

    def post(self, request, batch_id):
        cache.set(abort_key(str(batch_id)), True, timeout=ABORT_FLAG_TIMEOUT)
        logger.info("Abort requested for batch %s", batch_id)
        return Response(
            {"batch_id": str(batch_id), "status": "cancelling"}, status=status.HTTP_202_ACCEPTED
        )


class SpreadsheetImportView(APIView):
    def post(self, request):
        serializer = SpreadsheetImportSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        upload = serializer.validated_data["file"]
        batch_id = _batch_id(serializer)
        try:
            rows = parse_spreadsheet(upload.read(), upload.name)
            events = ingest_spreadsheet_rows(
                rows, serializer.to_metadata(), should_abort=_should_abort(batch_id)
            )
        except (InvalidSpreadsheet, BatchTooLarge) as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return _stream_batch(batch_id, events)


class DriveImportView(APIView):
    def post(self, request):
        serializer = DriveImportSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        batch_id = _batch_id(serializer)
        files = [DriveFile.from_dict(item) for item in serializer.validated_data["files"]]
        try:
            events = ingest_drive_files(
                files,
                serializer.validated_data["access_token"],
                serializer.to_metadata(),
                should_abort=_should_abort(batch_id),
            )
        except BatchTooLarge as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return _stream_batch(batch_id, events)


class CandidateMatchView(APIView):
    """Vector shortlist for a job description, optionally scored by the ranking model."""

    def post(self, request):
        serializer = MatchRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        job_description = serializer.validated_data["job_description"]
        try:
            if serializer.validated_data["rank"]:
                summary = CandidateMatchPipeline().run(job_description)
                return Response(summary.as_dict(), status=status.HTTP_200_OK)

            hits = CandidateMatcher().match(job_description)
        except Exception as e:
            logger.exception("Candidate matching failed")
            return Response({"error": str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(
            [
                {**CandidateSerializer(hit.candidate).data, "similarity": hit.similarity}
                for hit in hits
            ],
            status=status.HTTP_200_OK,
        )


class RankingView(APIView):
    """Score explicit candidates synchronously, one model call at a time."""

    def post(self, request):
        serializer = RankRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        ids = serializer.validated_data["candidate_ids"]
        by_id = {candidate.id: candidate for candidate in Candidate.objects.filter(id__in=ids)}
        candidates = [by_id[candidate_id] for candidate_id in ids if candidate_id in by_id]
        if not candidates:
            return Response(
                {"error": "No candidates found to rank"}, status=status.HTTP_404_NOT_FOUND
            )

        job_description = serializer.validated_data["job_description"]
        summary = RankingScheduler().rank(job_description, candidates)
        return Response(summary.as_dict(), status=status.HTTP_200_OK)


class RankingJobCreateView(APIView):
    def post(self, request):
        serializer = RankingJobCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            job = create_ranking_job(
                serializer.validated_data["job_description"], serializer.filters()
            )
        except InvalidJobDescription as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(RankingJobSerializer(job).data, status=status.HTTP_202_ACCEPTED)


class RankingJobDetailView(APIView):
    def get(self, request, job_id):
        try:
            job = RankingJob.objects.get(id=job_id)
        except RankingJob.DoesNotExist:
            return Response({"error": "ranking job not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(RankingJobSerializer(job).data, status=status.HTTP_200_OK)


class JobDescriptionParseView(APIView):
    """Return the plain text of an uploaded job description document."""

    def post(self, request):
        serializer = JobDescriptionFileSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        upload = serializer.validated_data["file"]
        try:
            kind = resolve_file_kind(upload.name, upload.content_type)
            text = require_min_text(
                extract_text(upload.read(), kind), settings.JOB_DESCRIPTION_MIN_CHARS
            )
        except InvalidFileType as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except ExtractionError as exc:
            return Response(
                {"error": f"Text extraction failed ({exc.code})"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except InsufficientText:
            return Response(
                {"error": "Could not extract enough text from the job description"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response({"text": text, "file_name": upload.name}, status=status.HTTP_200_OK)
