"""Tests for SummaryService terminal transitions."""

import pytest

from app.constants.session import SessionStatus, SummaryStatus
from app.core.errors import SummaryStateError
from app.services.summary_service import SummaryService
from tests.fixtures.identity_fixtures import add_session


@pytest.fixture
def processing_summary(db, setup_room):
    session = add_session(db, setup_room, status=SessionStatus.SUMMARIZING, entries=1)
    return SummaryService(db).create_processing(session)


def test_terminal_status_is_final(db, processing_summary):
    service = SummaryService(db)
    service.mark_failed(processing_summary.id, "timeout")

    with pytest.raises(SummaryStateError):
        service.mark_failed(processing_summary.id, "timeout again")


def test_reset_for_retry(db, processing_summary):
    service = SummaryService(db)
    service.mark_failed(processing_summary.id, "provider unavailable")

    summary = service.reset_for_retry(processing_summary.id)

    assert summary.status == SummaryStatus.PROCESSING
    assert summary.error_message is None
    assert summary.completed_at is None


def test_reset_for_retry_rejects_processing(db, processing_summary):
    with pytest.raises(SummaryStateError):
        SummaryService(db).reset_for_retry(processing_summary.id)
