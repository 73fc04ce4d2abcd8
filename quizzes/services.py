"""Quiz rewards, attempt scoring and badge awarding.

Rewards are a per-quiz table of `attempt_number -> points_awarded`. Passing
on attempt N earns the reward for N, or the reward for the highest defined
attempt once N goes past the table. Badges are static points tiers.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import F, Max, Q
from django.utils import timezone

from accounts.models import LearnerProfile
from courses.models import Course
from courses.services import apply_updates, next_order_index

from .models import Badge, BadgeRarity, Quiz, QuizAttempt, QuizQuestion, QuizReward, UserBadge

logger = logging.getLogger(__name__)

DEFAULT_REWARDS = {1: 15, 2: 10, 3: 5, 4: 2}

# (name, points threshold, rarity, description)
BADGE_TIERS = (
    ("Newbie", 10, BadgeRarity.COMMON, "Earned your first points"),
    ("Explorer", 50, BadgeRarity.COMMON, "Reached 50 points"),
    ("Achiever", 100, BadgeRarity.UNCOMMON, "Reached 100 points"),
    ("Specialist", 250, BadgeRarity.RARE, "Reached 250 points"),
    ("Expert", 500, BadgeRarity.EPIC, "Reached 500 points"),
    ("Master", 1000, BadgeRarity.LEGENDARY, "Reached 1000 points"),
)

QUIZ_UPDATABLE_FIELDS = ("title", "description", "passing_score", "time_limit_minutes")
QUESTION_UPDATABLE_FIELDS = (
    "question_text",
    "question_type",
    "options",
    "correct_answer",
    "points",
    "explanation",
    "order_index",
)


def quizzes_for_course(course: Course):
    """Quizzes attached to the course directly or through one of its lessons."""
    return Quiz.objects.filter(Q(course=course) | Q(lesson__course=course))


@transaction.atomic
def create_quiz(course: Course, data: dict, lesson=None) -> Quiz:
    quiz = Quiz.objects.create(
        course=course,
        lesson=lesson,
        title=data["title"],
        description=data.get("description") or "",
        passing_score=data.get("passing_score", 70),
        time_limit_minutes=data.get("time_limit_minutes"),
    )
    QuizReward.objects.bulk_create(
        [QuizReward(quiz=quiz, attempt_number=n, points_awarded=p) for n, p in DEFAULT_REWARDS.items()]
    )
    logger.info("Created quiz %s in course %s", quiz.pk, course.pk)
    return quiz


@transaction.atomic
def update_quiz(quiz_qs, quiz_id, data: dict) -> Quiz:
    quiz = quiz_qs.select_for_update(of=("self",)).get(pk=quiz_id)
    apply_updates(quiz, data, QUIZ_UPDATABLE_FIELDS)
    quiz.save()
    return quiz


@transaction.atomic
def add_question(quiz: Quiz, data: dict) -> QuizQuestion:
    Quiz.objects.select_for_update().filter(pk=quiz.pk).first()
    fields = {k: v for k, v in data.items() if k in QUESTION_UPDATABLE_FIELDS}
    if fields.get("order_index") is None:
        fields["order_index"] = next_order_index(quiz.questions.all())
    fields.setdefault("points", 1)
    return QuizQuestion.objects.create(quiz=quiz, **fields)


@transaction.atomic
def update_question(question_qs, question_id, data: dict) -> QuizQuestion:
    question = question_qs.select_for_update(of=("self",)).get(pk=question_id)
    apply_updates(question, data, QUESTION_UPDATABLE_FIELDS)
    question.save()
    return question


@transaction.atomic
def replace_rewards(quiz: Quiz, rewards) -> list[QuizReward]:
    """Replace the quiz's reward table with `rewards` in one transaction.

    `rewards` is an iterable of `(attempt_number, points_awarded)` pairs.
    A failure part way leaves the previous table in place.
    """
    Quiz.objects.select_for_update().filter(pk=quiz.pk).first()
    QuizReward.objects.filter(quiz=quiz).delete()
    created = QuizReward.objects.bulk_create(
        [QuizReward(quiz=quiz, attempt_number=n, points_awarded=p) for n, p in rewards]
    )
    return sorted(created, key=lambda r: r.attempt_number)


def reward_for_attempt(quiz: Quiz, attempt_number: int) -> int:
    highest = quiz.rewards.aggregate(m=Max("attempt_number"))["m"]
    if highest is None:
        return 0
    reward = quiz.rewards.filter(attempt_number__lte=min(attempt_number, highest)).order_by("-attempt_number").first()
    return reward.points_awarded if reward else 0


def _normalise_answer(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value if value is not None else "").strip().lower()


def score_answers(questions, answers: dict) -> dict:
    """Grade submitted answers against the answer key.

    - answers: mapping of question id (int or str) to the submitted answer;
      booleans count as "true"/"false" and comparison ignores case
    Returns: { 'total': int, 'correct': int, 'score': int, 'per_question': {qid: {...}} }
    """
    questions = list(questions)
    correct = 0
    per_question = {}
    for question in questions:
        given = answers.get(str(question.pk), answers.get(question.pk))
        ok = given is not None and _normalise_answer(given) == _normalise_answer(question.correct_answer)
        if ok:
            correct += 1
        per_question[str(question.pk)] = {"correct": ok, "correct_answer": question.correct_answer}
    total = len(questions)
    score = round(100 * correct / total) if total else 0
    return {"total": total, "correct": correct, "score": score, "per_question": per_question}


class QuizNotReady(Exception):
    """The quiz cannot be attempted (it has no questions)."""


def ensure_badges() -> None:
    """Create any missing badge tiers."""
    for name, threshold, rarity, description in BADGE_TIERS:
        Badge.objects.get_or_create(
            name=name,
            defaults={"points_value": threshold, "rarity": rarity, "description": description},
        )


def award_badges(user, points: int) -> list[Badge]:
    """Award every badge whose threshold `points` has reached; return the new ones."""
    ensure_badges()
    owned = set(UserBadge.objects.filter(user=user).values_list("badge_id", flat=True))
    new = [b for b in Badge.objects.filter(points_value__lte=points) if b.pk not in owned]
    UserBadge.objects.bulk_create([UserBadge(user=user, badge=b) for b in new], ignore_conflicts=True)
    if new:
        count = UserBadge.objects.filter(user=user).count()
        LearnerProfile.objects.filter(user=user).update(badges_count=count, level=1 + count)
        logger.info("User %s earned %s", user.pk, ", ".join(b.name for b in new))
    return new


def badge_progress(points: int) -> tuple[Badge | None, Badge | None]:
    """Return `(current_badge, next_badge)` for a points total."""
    ensure_badges()
    current = Badge.objects.filter(points_value__lte=points).order_by("-points_value").first()
    upcoming = Badge.objects.filter(points_value__gt=points).order_by("points_value").first()
    return current, upcoming


@transaction.atomic
def submit_attempt(quiz: Quiz, learner, answers: dict, started_at=None) -> tuple[QuizAttempt, list[Badge], dict]:
    """Score and store an attempt, then credit points and badges when passed.

    Returns `(attempt, new_badges, grading)` where `grading` is the
    `score_answers` result. Raises `QuizNotReady` for a quiz without questions.
    """
    questions = list(quiz.questions.all())
    if not questions:
        raise QuizNotReady("Quiz has no questions")
    profile, _ = LearnerProfile.objects.select_for_update().get_or_create(user=learner)
    previous = QuizAttempt.objects.filter(quiz=quiz, learner=learner).aggregate(m=Max("attempt_number"))["m"]
    attempt_number = (previous or 0) + 1

    grading = score_answers(questions, answers or {})
    score = grading["score"]
    passed = score >= quiz.passing_score
    points = reward_for_attempt(quiz, attempt_number) if passed else 0
    attempt = QuizAttempt.objects.create(
        quiz=quiz,
        learner=learner,
        attempt_number=attempt_number,
        score=score,
        passed=passed,
        points_earned=points,
        answers=answers or {},
        started_at=started_at,
    )

    new_badges = []
    if points:
        LearnerProfile.objects.filter(pk=profile.pk).update(
            points=F("points") + points, last_activity_date=timezone.localdate()
        )
        profile.refresh_from_db(fields=["points"])
        new_badges = award_badges(learner, profile.points)
    logger.info(
        "Quiz %s attempt %s by %s: score=%s passed=%s points=%s",
        quiz.pk, attempt_number, learner.pk, score, passed, points,
    )
    return attempt, new_badges, grading
