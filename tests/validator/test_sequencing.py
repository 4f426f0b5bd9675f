# tests/validator/test_sequencing.py
from alchemist.schemas.models import ValidationSummary
from alchemist.validator import ValidationSequencer


def test_latest_request_wins():
    # --- Arrange ---
    seq = ValidationSequencer()
    first = seq.next_request()
    second = seq.next_request()
    old, new = ValidationSummary(total_errors=3), ValidationSummary()

    # --- Act ---
    kept_new = seq.submit(second, new)
    kept_old = seq.submit(first, old)

    # --- Assert ---
    assert kept_new is True
    assert kept_old is False
    assert seq.latest is new
    assert seq.latest_seq == second
    assert seq.dropped == 1


def test_result_superseded_before_completion_is_dropped():
    seq = ValidationSequencer()
    first = seq.next_request()
    seq.next_request()  # user edited again while the first run was in flight

    assert seq.submit(first, ValidationSummary()) is False
    assert seq.latest is None


def test_same_request_cannot_be_submitted_twice():
    seq = ValidationSequencer()
    n = seq.next_request()

    assert seq.submit(n, ValidationSummary()) is True
    assert seq.submit(n, ValidationSummary(total_errors=1)) is False
    assert seq.latest.total_errors == 0
