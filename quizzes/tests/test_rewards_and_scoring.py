from __future__ import annotations

import pytest

from courses.models import Course, Lesson
from quizzes import services
from quizzes.models import QuizAttempt, QuizReward, UserBadge


@pytest.fixture
def course(instructor):
    return Course.objects.create(instructor=instructor, title="Quizzed", slug="quizzed", status="published")


@pytest.fixture
def quiz(course):
    quiz = services.create_quiz(course, {"title": "Checkpoint"})
    services.add_question(quiz, {"question_text": "2+2?", "question_type": "short_answer", "correct_answer": "Four"})
    services.add_question(
        quiz,
        {
            "question_text": "Capital of France?",
            "question_type": "multiple_choice",
            "options": ["Paris", "Rome"],
            "correct_answer": "Paris",
            "points": 3,
        },
    )
    return quiz


@pytest.mark.django_db
def test_new_quiz_gets_default_reward_table(quiz):
    table = dict(quiz.rewards.values_list("attempt_number", "points_awarded"))
    assert table == {1: 15, 2: 10, 3: 5, 4: 2}
    assert quiz.passing_score == 70


@pytest.mark.django_db
def test_questions_are_ordered_from_zero(quiz):
    assert list(quiz.questions.values_list("order_index", flat=True)) == [0, 1]


@pytest.mark.django_db
def test_quizzes_for_course_includes_lesson_quizzes(course):
    lesson = Lesson.objects.create(course=course, title="L", slug="l", lesson_type="quiz")
    direct = services.create_quiz(course, {"title": "Direct"})
    attached = services.create_quiz(course, {"title": "Attached"}, lesson=lesson)
    assert set(services.quizzes_for_course(course)) == {direct, attached}


@pytest.mark.django_db
def test_reward_uses_highest_defined_attempt_past_the_table(quiz):
    assert services.reward_for_attempt(quiz, 1) == 15
    assert services.reward_for_attempt(quiz, 4) == 2
    assert services.reward_for_attempt(quiz, 9) == 2


@pytest.mark.django_db
def test_replace_rewards_swaps_whole_table(quiz):
    services.replace_rewards(quiz, [(1, 50)])
    assert list(quiz.rewards.values_list("attempt_number", "points_awarded")) == [(1, 50)]
    assert services.reward_for_attempt(quiz, 3) == 50

    services.replace_rewards(quiz, [])
    assert QuizReward.objects.filter(quiz=quiz).count() == 0
    assert services.reward_for_attempt(quiz, 1) == 0


class _Question:
    def __init__(self, pk, answer, points=1):
        self.pk, self.correct_answer, self.points = pk, answer, points


def test_scoring_counts_correct_questions_regardless_of_points():
    questions = [_Question(1, "Four", points=1), _Question(2, "Paris", points=3)]
    graded = services.score_answers(questions, {"1": " four ", 2: "PARIS"})
    assert (graded["score"], graded["correct"], graded["total"]) == (100, 2, 2)

    graded = services.score_answers(questions, {"1": "four"})
    assert (graded["score"], graded["correct"], graded["total"]) == (50, 1, 2)
    assert graded["per_question"] == {
        "1": {"correct": True, "correct_answer": "Four"},
        "2": {"correct": False, "correct_answer": "Paris"},
    }
    assert services.score_answers([], {})["score"] == 0


def test_boolean_answers_match_true_false_keys():
    questions = [_Question(1, "True"), _Question(2, "false")]
    graded = services.score_answers(questions, {"1": True, "2": False})
    assert graded["correct"] == 2
    assert services.score_answers(questions, {"1": False})["correct"] == 0


@pytest.mark.django_db
def test_passing_attempt_credits_reward_and_badges(quiz, learner):
    q1, q2 = quiz.questions.order_by("order_index")

    failed, badges, _ = services.submit_attempt(quiz, learner, {str(q1.pk): "four"})
    assert failed.attempt_number == 1
    assert failed.passed is False
    assert failed.points_earned == 0
    assert badges == []

    passed, badges, grading = services.submit_attempt(quiz, learner, {str(q1.pk): "four", str(q2.pk): "paris"})
    assert passed.attempt_number == 2
    assert passed.score == 100
    assert passed.points_earned == 10
    assert (grading["correct"], grading["total"]) == (2, 2)
    assert [b.name for b in badges] == ["Newbie"]

    learner.learner_profile.refresh_from_db()
    assert learner.learner_profile.points == 10
    assert learner.learner_profile.badges_count == 1
    assert learner.learner_profile.level == 2
    assert UserBadge.objects.filter(user=learner).count() == 1


@pytest.mark.django_db
def test_quiz_without_questions_cannot_be_attempted(course, learner):
    empty = services.create_quiz(course, {"title": "Empty", "passing_score": 0})
    with pytest.raises(services.QuizNotReady):
        services.submit_attempt(empty, learner, {})
    assert not QuizAttempt.objects.filter(quiz=empty).exists()
    learner.learner_profile.refresh_from_db()
    assert learner.learner_profile.points == 0


@pytest.mark.django_db
def test_award_badges_skips_owned_tiers(learner):
    first = services.award_badges(learner, 60)
    assert {b.name for b in first} == {"Newbie", "Explorer"}
    assert services.award_badges(learner, 60) == []
    later = services.award_badges(learner, 120)
    assert [b.name for b in later] == ["Achiever"]


@pytest.mark.django_db
def test_badge_progress_reports_current_and_next():
    current, upcoming = services.badge_progress(0)
    assert current is None
    assert upcoming.name == "Newbie"
    current, upcoming = services.badge_progress(260)
    assert (current.name, upcoming.name) == ("Specialist", "Expert")
    current, upcoming = services.badge_progress(5000)
    assert current.name == "Master"
    assert upcoming is None
