"""Tests for the profile updater."""

import random
from datetime import datetime

from neurotutor.engine.models import Difficulty, UserProfile
from neurotutor.engine.reinforcement import RLState
from neurotutor.engine.updater import update_user_profile, update_user_profile_with_rl
from neurotutor.engine.wrong_submissions import WrongSubmissionTracker

from conftest import DAY, NOW, make_profile, make_question

QUESTION = make_question("add", tags=("operators",), estimated_time=120)


class TestUpdateUserProfile:
    def test_input_not_mutated(self):
        profile = UserProfile()
        updated = update_user_profile(profile, QUESTION, True, 60, "code", now=NOW)
        assert profile.total_questions_attempted == 0
        assert profile.progress_history == []
        assert updated.total_questions_attempted == 1

    def test_new_record(self):
        updated = update_user_profile(UserProfile(), QUESTION, True, 45, "code", now=NOW)
        record = updated.find_progress("add")
        assert record.attempts == 1
        assert record.time_to_first_attempt == 45
        assert record.concepts == ["operators"]
        assert record.review_count == 1
        assert record.next_review_date > NOW

    def test_total_increments_on_reattempt(self):
        profile = UserProfile()
        for _ in range(3):
            profile = update_user_profile(profile, QUESTION, False, 30, "x", now=NOW)
        assert profile.total_questions_attempted == 3
        assert len(profile.progress_history) == 1
        record = profile.progress_history[0]
        assert record.attempts == 3
        assert len(record.attempt_history) == 3
        assert record.time_spent == 30

    def test_incorrect_leaves_review_untouched(self):
        profile = update_user_profile(UserProfile(), QUESTION, True, 30, "x", now=NOW)
        scheduled = profile.find_progress("add").next_review_date
        updated = update_user_profile(profile, QUESTION, False, 30, "x", now=NOW + 60)
        record = updated.find_progress("add")
        assert record.next_review_date == scheduled
        assert record.review_count == 1

    def test_first_incorrect_gets_initial_review(self):
        updated = update_user_profile(UserProfile(), QUESTION, False, 30, "x", now=NOW)
        record = updated.find_progress("add")
        assert record.next_review_date > NOW
        assert record.review_count == 0

    def test_incorrect_keeps_difficulty(self):
        profile = UserProfile(current_difficulty=Difficulty.MEDIUM)
        updated = update_user_profile(profile, QUESTION, False, 30, "x", now=NOW)
        assert updated.current_difficulty == Difficulty.MEDIUM

    def test_correct_with_short_history_resets_to_easy(self):
        profile = UserProfile(current_difficulty=Difficulty.MEDIUM)
        updated = update_user_profile(profile, QUESTION, True, 30, "x", now=NOW)
        assert updated.current_difficulty == Difficulty.EASY

    def test_topic_stats(self):
        profile = UserProfile()
        profile = update_user_profile(profile, QUESTION, True, 60, "x", now=NOW)
        profile = update_user_profile(profile, QUESTION, False, 120, "x", now=NOW)
        stats = profile.topic_stats["Basics"]
        assert stats.questions_attempted == 2
        assert stats.questions_correct == 1
        assert stats.average_time == 90
        assert stats.mastery_level == 60
        assert stats.concepts["operators"].attempted == 2
        assert stats.difficulty_attempts == {"easy": 2}

    def test_topic_completed_after_mastery(self):
        profile = UserProfile()
        for i in range(5):
            question = make_question(f"q{i}", tags=("operators",))
            profile = update_user_profile(profile, question, True, 60, "x", now=NOW)
        assert profile.topics_completed == ["Basics"]

    def test_metrics_and_error_type(self):
        updated = update_user_profile(
            UserProfile(), QUESTION, False, 30, "x", error_type="syntax", now=NOW,
        )
        assert updated.performance_metrics.error_patterns == {"syntax": 1}
        assert updated.performance_metrics.accuracy == 0

    def test_solution_view_recorded(self):
        updated = update_user_profile(
            UserProfile(), QUESTION, True, 30, "x", solution_viewed=True, hints_used=2, now=NOW,
        )
        record = updated.find_progress("add")
        assert record.solution_viewed
        assert record.solution_viewed_at == NOW
        assert record.hints_used == 2


class TestDailyStreak:
    def test_first_activity(self):
        updated = update_user_profile(UserProfile(), QUESTION, True, 30, "x", now=NOW)
        assert updated.streak_count == 1
        assert updated.last_activity_date == NOW

    def test_same_day_unchanged(self):
        profile = UserProfile(streak_count=4, last_activity_date=NOW - 1)
        assert update_user_profile(profile, QUESTION, True, 30, "x", now=NOW).streak_count == 4

    def test_next_calendar_day_within_24h_increments(self):
        last = datetime(2026, 1, 14, 23, 30).timestamp()
        now = datetime(2026, 1, 15, 0, 30).timestamp()
        profile = UserProfile(streak_count=4, last_activity_date=last)
        updated = update_user_profile(profile, QUESTION, True, 30, "x", now=now)
        assert updated.streak_count == 5
        assert updated.last_activity_date == now

    def test_same_calendar_day_across_hours(self):
        last = datetime(2026, 1, 15, 0, 30).timestamp()
        now = datetime(2026, 1, 15, 23, 30).timestamp()
        profile = UserProfile(streak_count=0, last_activity_date=last)
        assert update_user_profile(profile, QUESTION, True, 30, "x", now=now).streak_count == 1

    def test_gap_resets(self):
        profile = UserProfile(streak_count=4, last_activity_date=NOW - 3 * DAY)
        assert update_user_profile(profile, QUESTION, True, 30, "x", now=NOW).streak_count == 1


class TestWrongTrackerIntegration:
    def test_wrong_then_right(self, store):
        tracker = WrongSubmissionTracker(store)
        profile = UserProfile()
        for _ in range(2):
            profile = update_user_profile(
                profile, QUESTION, False, 30, "x", wrong_tracker=tracker, now=NOW,
            )
        assert tracker.get("add").consecutive_wrongs == 2
        update_user_profile(profile, QUESTION, True, 30, "x", wrong_tracker=tracker, now=NOW)
        assert tracker.get("add").consecutive_wrongs == 0


class TestWithRL:
    def test_returns_copies(self):
        profile = make_profile([True] * 3)
        rl = RLState()
        updated, new_rl, outcome = update_user_profile_with_rl(
            profile, rl, QUESTION, True, 60, "x", rng=random.Random(3), now=NOW,
        )
        assert rl.episode_count == 0
        assert new_rl.episode_count == 1
        assert outcome.state_key in new_rl.q_table
        assert updated.total_questions_attempted == profile.total_questions_attempted + 1
