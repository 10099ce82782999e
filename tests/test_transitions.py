"""Tests for the booking status transition table."""

import pytest

from core.errors import InvalidTransition, ValidationError
from core.transitions import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    coerce_status,
    is_terminal,
    validate_transition,
)
from models import BookingStatus as S


class TestTable:
    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(S)

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {S.COMPLETED, S.CANCELLED, S.NO_SHOW}

    @pytest.mark.parametrize("status", [S.COMPLETED, S.CANCELLED, S.NO_SHOW])
    def test_terminal_has_no_exits(self, status):
        assert is_terminal(status)
        for target in S:
            assert not can_transition(status, target)


class TestAllowedMoves:
    @pytest.mark.parametrize(
        "current,target",
        [
            (S.PENDING, S.CONFIRMED),
            (S.PENDING, S.CANCELLED),
            (S.CONFIRMED, S.IN_PROGRESS),
            (S.CONFIRMED, S.CANCELLED),
            (S.IN_PROGRESS, S.COMPLETED),
            (S.IN_PROGRESS, S.NO_SHOW),
            (S.IN_PROGRESS, S.CANCELLED),
        ],
    )
    def test_allowed(self, current, target):
        validate_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (S.PENDING, S.COMPLETED),
            (S.PENDING, S.IN_PROGRESS),
            (S.CONFIRMED, S.PENDING),
            (S.CONFIRMED, S.NO_SHOW),
            (S.CANCELLED, S.CONFIRMED),
            (S.COMPLETED, S.CANCELLED),
        ],
    )
    def test_rejected(self, current, target):
        with pytest.raises(InvalidTransition) as info:
            validate_transition(current, target)
        assert info.value.from_status == current.value
        assert info.value.to_status == target.value
        assert info.value.status_code == 409


class TestCoerceStatus:
    def test_accepts_lowercase_strings(self):
        assert coerce_status(" confirmed ") is S.CONFIRMED

    def test_passes_enum_through(self):
        assert coerce_status(S.NO_SHOW) is S.NO_SHOW

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            coerce_status("DONE")
