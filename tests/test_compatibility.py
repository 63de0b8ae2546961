import pytest

from smartroommate.core.dto import UserDTO
from smartroommate.services.compatibility import (
    age_similarity,
    compatibility_score,
    habit_similarity,
    rating_similarity,
)


def make_profile(user_id=1, **fields):
    defaults = {
        "id": user_id,
        "name": f"User {user_id}",
        "email": f"user{user_id}@example.com",
        "age": 25,
        "habits": "cooking, reading, yoga",
        "tidiness": 3,
        "social_energy": 3,
        "noise_tolerance": 3,
    }
    defaults.update(fields)
    return UserDTO(**defaults)


class TestSimilarities:
    def test_identical_ratings(self):
        assert rating_similarity((4, 2, 5), (4, 2, 5)) == 1.0

    def test_opposite_ratings(self):
        assert rating_similarity((1, 1, 1), (5, 5, 5)) == 0.0

    def test_unset_rating_counts_as_zero(self):
        assert rating_similarity((None, 3, 3), (4, 3, 3)) == pytest.approx(1 - 4 / 12)

    def test_habits_are_jaccard(self):
        assert habit_similarity("cooking, reading", "reading, gaming") == pytest.approx(1 / 3)

    def test_habit_parsing_ignores_blanks_and_spaces(self):
        assert habit_similarity(" cooking ,, reading", "reading,cooking") == 1.0

    def test_empty_habit_union_is_zero(self):
        assert habit_similarity(None, "") == 0.0

    def test_age_gap_is_capped(self):
        assert age_similarity(20, 25) == 0.5
        assert age_similarity(20, 45) == 0.0
        assert age_similarity(30, 30) == 1.0


class TestCompatibilityScore:
    def test_identical_profiles_score_100(self):
        viewer = make_profile(1)
        candidate = make_profile(2)
        assert compatibility_score(viewer, candidate) == 100

    def test_worst_match_scores_50(self):
        viewer = make_profile(1, tidiness=1, social_energy=1, noise_tolerance=1, age=20, habits="cooking")
        candidate = make_profile(2, tidiness=5, social_energy=5, noise_tolerance=5, age=40, habits="gaming")
        assert compatibility_score(viewer, candidate) == 50

    def test_anonymous_viewer_gets_neutral_score(self):
        assert compatibility_score(None, make_profile(2)) == 50

    def test_identical_profiles_without_habits(self):
        # 0.60 + 0.15 = 0.75 -> 50 + 37.5 rounds up to 88
        viewer = make_profile(1, habits=None)
        candidate = make_profile(2, habits=None)
        assert compatibility_score(viewer, candidate) == 88

    def test_missing_fields_do_not_raise(self):
        viewer = make_profile(1, tidiness=None, social_energy=None, noise_tolerance=None, age=None, habits=None)
        score = compatibility_score(viewer, make_profile(2))
        assert 50 <= score <= 100

    @pytest.mark.parametrize("tidiness", [1, 2, 3, 4, 5])
    @pytest.mark.parametrize("age", [18, 25, 40, 70])
    def test_score_stays_in_range(self, tidiness, age):
        viewer = make_profile(1)
        candidate = make_profile(2, tidiness=tidiness, age=age, habits="gaming, hiking")
        score = compatibility_score(viewer, candidate)
        assert isinstance(score, int)
        assert 50 <= score <= 100

    def test_score_is_symmetric_for_symmetric_inputs(self):
        first = make_profile(1, tidiness=2, age=22, habits="cooking, hiking")
        second = make_profile(2, tidiness=5, age=27, habits="hiking, gaming")
        assert compatibility_score(first, second) == compatibility_score(second, first)
