"""Domain operations on courses, lessons, enrollments, reviews and invitations.

Views validate input shape; everything that writes more than one row or
needs a lock happens here, inside a transaction.
"""
from __future__ import annotations

import logging
import time
import uuid

from django.db import IntegrityError, transaction
from django.db.models import F, Max
from django.utils import timezone
from django.utils.http import int_to_base36
from django.utils.text import slugify

from accounts.models import LearnerProfile

from .models import AccessType, Course, CourseStatus, Enrollment, EnrollmentStatus, Lesson, LessonProgress
from .models_feedback import Review
from .models_invitations import INVITATION_TTL, CourseInvitation, InvitationStatus

logger = logging.getLogger(__name__)

SLUG_BASE_MAX = 80


def slugify_title(title: str) -> str:
    return slugify(title or "")[:SLUG_BASE_MAX]


def make_slug(title: str, now_ms: int | None = None) -> str:
    """`slugify(title)` plus a base36 millisecond suffix."""
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    return f"{slugify_title(title)}-{int_to_base36(now_ms)}"


def create_with_slug(model, slug_source: str, **fields):
    """Create a row with a fresh slug, retrying once with a random tail on a clash."""
    try:
        with transaction.atomic():
            return model.objects.create(slug=make_slug(slug_source), **fields)
    except IntegrityError:
        # Same title within the same millisecond
        slug = f"{make_slug(slug_source)}-{uuid.uuid4().hex[:6]}"
        logger.info("Slug clash for %s %r, retrying as %s", model.__name__, slug_source, slug)
        with transaction.atomic():
            return model.objects.create(slug=slug, **fields)


def next_order_index(queryset) -> int:
    """One past the current maximum `order_index`; 0 for the first row."""
    current = queryset.aggregate(m=Max("order_index"))["m"]
    return 0 if current is None else current + 1


def apply_updates(instance, data: dict, allowed) -> list[str]:
    """Copy allow-listed keys from `data` onto `instance`; return what changed."""
    changed = []
    for name in allowed:
        if name in data:
            setattr(instance, name, data[name])
            changed.append(name)
    return changed


COURSE_UPDATABLE_FIELDS = (
    "title",
    "description",
    "thumbnail_url",
    "status",
    "visibility",
    "access_type",
    "category",
    "tags",
    "difficulty_level",
    "estimated_duration_hours",
    "price",
    "is_free",
)

LESSON_UPDATABLE_FIELDS = (
    "title",
    "description",
    "lesson_type",
    "content",
    "video_url",
    "duration_minutes",
    "order_index",
    "is_free_preview",
)


def create_course(instructor, data: dict) -> Course:
    """New courses always start as drafts regardless of the submitted status."""
    fields = {k: v for k, v in data.items() if k != "status"}
    return create_with_slug(Course, data["title"], instructor=instructor, status=CourseStatus.DRAFT, **fields)


@transaction.atomic
def update_course(course_qs, course_id, data: dict) -> Course:
    """Lock the owned course, apply the partial update and stamp timestamps.

    `course_qs` already carries the ownership predicate; a miss raises
    `Course.DoesNotExist`.
    """
    course = course_qs.select_for_update(of=("self",)).get(pk=course_id)
    was_published = course.published_at is not None
    apply_updates(course, data, COURSE_UPDATABLE_FIELDS)
    if course.status == CourseStatus.PUBLISHED and not was_published:
        course.published_at = timezone.now()
    course.save()
    return course


def create_lesson(course: Course, data: dict) -> Lesson:
    with transaction.atomic():
        # Serialise order_index assignment per course
        Course.objects.select_for_update().filter(pk=course.pk).first()
        order_index = data.get("order_index")
        if order_index is None:
            order_index = next_order_index(course.lessons.all())
        fields = {k: v for k, v in data.items() if k in LESSON_UPDATABLE_FIELDS}
        fields["order_index"] = order_index
        return create_with_slug(Lesson, data["title"], course=course, **fields)


@transaction.atomic
def update_lesson(lesson_qs, lesson_id, data: dict) -> Lesson:
    lesson = lesson_qs.select_for_update(of=("self",)).get(pk=lesson_id)
    apply_updates(lesson, data, LESSON_UPDATABLE_FIELDS)
    lesson.save()
    return lesson


def recompute_enrollment_progress(enrollment: Enrollment) -> tuple[int, int, int]:
    """Refresh `progress_percentage` and completion state from lesson progress.

    Returns `(percentage, completed_count, total_lessons)`.
    """
    total = Lesson.objects.filter(course_id=enrollment.course_id).count()
    completed = LessonProgress.objects.filter(enrollment=enrollment, is_completed=True).count()
    percentage = round(100 * completed / total) if total else 0
    enrollment.progress_percentage = percentage
    enrollment.last_accessed_at = timezone.now()
    fields = ["progress_percentage", "last_accessed_at", "updated_at"]
    # Completion is never revoked once reached
    if percentage == 100 and enrollment.status != EnrollmentStatus.COMPLETED:
        enrollment.status = EnrollmentStatus.COMPLETED
        enrollment.completed_at = timezone.now()
        fields += ["status", "completed_at"]
        LearnerProfile.objects.filter(user_id=enrollment.learner_id).update(courses_completed=F("courses_completed") + 1)
    enrollment.save(update_fields=fields)
    return percentage, completed, total


@transaction.atomic
def record_lesson_progress(
    enrollment: Enrollment, lesson: Lesson, is_completed: bool, time_spent_minutes: int = 0
) -> tuple[LessonProgress, int, int, int]:
    """Upsert progress for (enrollment, lesson) and refresh the enrollment."""
    enrollment = Enrollment.objects.select_for_update().get(pk=enrollment.pk)
    progress, _ = LessonProgress.objects.select_for_update().get_or_create(enrollment=enrollment, lesson=lesson)
    minutes = max(int(time_spent_minutes or 0), 0)
    progress.time_spent_minutes += minutes
    if is_completed and not progress.is_completed:
        progress.completed_at = timezone.now()
    elif not is_completed:
        progress.completed_at = None
    progress.is_completed = bool(is_completed)
    progress.save()

    if minutes:
        enrollment.time_spent_minutes += minutes
        enrollment.save(update_fields=["time_spent_minutes", "updated_at"])
        LearnerProfile.objects.filter(user_id=enrollment.learner_id).update(
            total_learning_time_minutes=F("total_learning_time_minutes") + minutes,
            last_activity_date=timezone.localdate(),
        )
    percentage, completed, total = recompute_enrollment_progress(enrollment)
    return progress, percentage, completed, total


@transaction.atomic
def upsert_review(course: Course, learner, rating: int, review_text: str = "") -> tuple[Review, bool]:
    """Insert the learner's review or update the existing one.

    Returns `(review, created)`.
    """
    review = Review.objects.select_for_update().filter(course=course, learner=learner).first()
    if review is not None:
        review.rating = rating
        review.review_text = review_text
        review.save(update_fields=["rating", "review_text", "updated_at"])
        return review, False
    try:
        with transaction.atomic():
            review = Review.objects.create(course=course, learner=learner, rating=rating, review_text=review_text)
        return review, True
    except IntegrityError:
        # Lost a race with a concurrent first submission
        review = Review.objects.select_for_update().get(course=course, learner=learner)
        review.rating = rating
        review.review_text = review_text
        review.save(update_fields=["rating", "review_text", "updated_at"])
        return review, False


def normalise_email(value: str) -> str:
    return (value or "").strip().lower()


@transaction.atomic
def issue_invitations(course: Course, emails, invited_by=None) -> list[CourseInvitation]:
    """Create one pending invitation per address with a fresh token."""
    now = timezone.now()
    issued = []
    for email in emails:
        token = uuid.uuid4().hex
        invitation, _ = CourseInvitation.objects.update_or_create(
            token=token,
            defaults={
                "course": course,
                "email": normalise_email(email),
                "invited_by": invited_by,
                "status": InvitationStatus.PENDING,
                "expires_at": now + INVITATION_TTL,
                "created_at": now,
            },
        )
        issued.append(invitation)
    logger.info("Issued %d invitation(s) for course %s", len(issued), course.pk)
    return issued


class EnrollmentRefused(Exception):
    """Enrollment is not possible; `reason` is one of the class constants."""

    PAYMENT_REQUIRED = "payment_required"
    INVITATION_REQUIRED = "invitation_required"
    ALREADY_ENROLLED = "already_enrolled"

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


@transaction.atomic
def enroll(course: Course, learner) -> Enrollment:
    """Enroll `learner` in a published `course`, honouring its access type."""
    if Enrollment.objects.filter(course=course, learner=learner).exists():
        raise EnrollmentRefused(EnrollmentRefused.ALREADY_ENROLLED, "Already enrolled")
    if course.access_type == AccessType.PAYMENT and not course.is_free:
        raise EnrollmentRefused(EnrollmentRefused.PAYMENT_REQUIRED, "Payment required")
    if course.access_type == AccessType.INVITATION:
        invitation = (
            CourseInvitation.objects.select_for_update()
            .filter(
                course=course,
                email=normalise_email(learner.email),
                status=InvitationStatus.PENDING,
                expires_at__gt=timezone.now(),
            )
            .order_by("-created_at")
            .first()
        )
        if invitation is None:
            raise EnrollmentRefused(EnrollmentRefused.INVITATION_REQUIRED, "Invitation required")
        invitation.status = InvitationStatus.ACCEPTED
        invitation.accepted_at = timezone.now()
        invitation.save(update_fields=["status", "accepted_at", "updated_at"])
    try:
        with transaction.atomic():
            enrollment = Enrollment.objects.create(course=course, learner=learner, last_accessed_at=timezone.now())
    except IntegrityError as exc:
        raise EnrollmentRefused(EnrollmentRefused.ALREADY_ENROLLED, "Already enrolled") from exc
    logger.info("Learner %s enrolled in course %s", learner.pk, course.pk)
    return enrollment
