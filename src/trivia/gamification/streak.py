"""Daily streak state machine: pure functions, no store access.

States for a completion event evaluated on ``today``:

    fresh               no record yet
    active_streak       last completion was yesterday
    broken_streak       last completion was two or more days ago (or never)
    already_done_today  last completion is today

fresh / broken_streak   -> current_streak = 1
active_streak           -> current_streak + 1
already_done_today      -> streak fields untouched

Every advancing transition sets last_completed_date = today, completed_at = now,
bumps total_completed and records the quiz attempt. On an already-done day a
quiz id not yet attempted today is still recorded in quiz_attempts; a repeat of
an attempted quiz id changes nothing.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime

from trivia.dates import parse_date_string, previous_day, to_date_string
from trivia.gamification.records import CompletionResult, DailyCompletionRecord, DailyQuizStatus, QuizAttempt


class StreakState(str, enum.Enum):
    FRESH = "fresh"
    ACTIVE_STREAK = "active_streak"
    BROKEN_STREAK = "broken_streak"
    ALREADY_DONE_TODAY = "already_done_today"


@dataclass(frozen=True)
class CompletionDecision:
    state: StreakState
    record: DailyCompletionRecord
    changed: bool
    advanced: bool
    attempt: QuizAttempt

    @property
    def result(self) -> CompletionResult:
        return completion_result(self.record)


def classify(record: DailyCompletionRecord | None, today: date) -> StreakState:
    """Which state a completion on ``today`` starts from."""
    if record is None:
        return StreakState.FRESH
    if not record.last_completed_date:
        return StreakState.BROKEN_STREAK

    last = parse_date_string(record.last_completed_date)
    # A date after today only happens with clock skew; never regress the streak for it.
    if last >= today:
        return StreakState.ALREADY_DONE_TODAY
    if last == previous_day(today):
        return StreakState.ACTIVE_STREAK
    return StreakState.BROKEN_STREAK


def decide_completion(
    record: DailyCompletionRecord | None,
    quiz_id: str,
    score: float,
    today: date,
    now: datetime,
) -> CompletionDecision:
    """Apply one completion event to ``record``."""
    state = classify(record, today)
    today_str = to_date_string(today)

    if state is StreakState.ALREADY_DONE_TODAY and record is not None:
        existing = record.attempted_on(quiz_id, today_str)
        if existing is not None:
            return CompletionDecision(state, record, changed=False, advanced=False, attempt=existing)

        attempt = QuizAttempt(last_completed=today_str, score=score, completed_at=now)
        updated = record.model_copy(update={"quiz_attempts": {**record.quiz_attempts, quiz_id: attempt}})
        return CompletionDecision(state, updated, changed=True, advanced=False, attempt=attempt)

    previous = record or DailyCompletionRecord()
    if state is StreakState.ACTIVE_STREAK:
        current_streak = previous.current_streak + 1
    else:
        current_streak = 1
    best_streak = max(current_streak, previous.best_streak)

    attempt = QuizAttempt(last_completed=today_str, score=score, completed_at=now)
    updated = DailyCompletionRecord(
        last_completed_date=today_str,
        current_streak=current_streak,
        best_streak=best_streak,
        completed_at=now,
        total_completed=previous.total_completed + 1,
        quiz_attempts={**previous.quiz_attempts, quiz_id: attempt},
    )
    return CompletionDecision(state, updated, changed=True, advanced=True, attempt=attempt)


def completion_result(record: DailyCompletionRecord) -> CompletionResult:
    """Caller-facing view of a record that has at least one completion."""
    if record.last_completed_date is None or record.completed_at is None:
        msg = "Record has no completion"
        raise ValueError(msg)
    return CompletionResult(
        has_completed=True,
        current_streak=record.current_streak,
        best_streak=record.best_streak,
        last_completed_date=record.last_completed_date,
        completed_at=record.completed_at,
    )


def status_for(record: DailyCompletionRecord | None, today: date) -> DailyQuizStatus:
    """Status shown before/after taking today's quiz."""
    if record is None:
        return DailyQuizStatus(has_completed=False, current_streak=0, best_streak=0)

    # Same comparison as classify(), so a skewed future date still counts as done.
    has_completed = (
        record.last_completed_date is not None
        and parse_date_string(record.last_completed_date) >= today
    )
    return DailyQuizStatus(
        has_completed=has_completed,
        current_streak=record.current_streak,
        best_streak=record.best_streak,
        last_completed_date=record.last_completed_date,
        completed_at=record.completed_at if has_completed else None,
    )
