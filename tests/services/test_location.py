from __future__ import annotations

import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from django.db import DatabaseError

from src.candidates.services.location import backfill_candidate_locations


def _row(name, resume_text):
    return SimpleNamespace(id=uuid.uuid4(), name=name, resume_text=resume_text)


@patch("src.candidates.services.location.Candidate")
def test_backfill_updates_rows_with_a_detectable_location(mock_candidate):
    rows = [
        _row("Jane Doe", "Jane Doe\nBangalore, Karnataka, India\nPython"),
        _row("Sam Roe", "Sam Roe\nRemote worker"),
        _row("Ana Lee", None),
    ]
    null_query = MagicMock()
    null_query.only.return_value = rows
    update_query = MagicMock()

    def filter_side_effect(**lookup):
        return null_query if "location__isnull" in lookup else update_query

    mock_candidate.objects.filter.side_effect = filter_side_effect

    result = backfill_candidate_locations()

    assert (result.total, result.updated, result.skipped) == (3, 1, 2)
    update_query.update.assert_called_once_with(location="Bangalore, India")
    assert result.details[0] == {
        "id": str(rows[0].id),
        "name": "Jane Doe",
        "location": "Bangalore, India",
    }
    assert result.as_dict()["updated"] == 1


@patch("src.candidates.services.location.Candidate")
def test_backfill_counts_failed_update_as_skipped(mock_candidate):
    rows = [_row("Jane Doe", "Jane Doe\nPune")]
    null_query = MagicMock()
    null_query.only.return_value = rows
    update_query = MagicMock()
    update_query.update.side_effect = DatabaseError("read only")
    mock_candidate.objects.filter.side_effect = lambda **lookup: (
        null_query if "location__isnull" in lookup else update_query
    )

    result = backfill_candidate_locations()

    assert (result.updated, result.skipped) == (0, 1)
    assert result.details[0]["location"] is None
