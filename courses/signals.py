"""Keep the denormalised course and instructor counters current."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Avg, Count
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from accounts.models import InstructorProfile

from .models import Course, Enrollment
from .models_feedback import Review


def _refresh_instructor_totals(instructor_id) -> None:
    total_courses = Course.objects.filter(instructor_id=instructor_id).count()
    total_students = (
        Enrollment.objects.filter(course__instructor_id=instructor_id).values("learner_id").distinct().count()
    )
    InstructorProfile.objects.filter(user_id=instructor_id).update(
        total_courses=total_courses, total_students=total_students
    )


def _refresh_review_stats(course_id) -> None:
    stats = Review.objects.filter(course_id=course_id, is_published=True).aggregate(avg=Avg("rating"), n=Count("id"))
    average = Decimal(str(stats["avg"] or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    Course.objects.filter(pk=course_id).update(average_rating=average, total_reviews=stats["n"])


@receiver(post_save, sender=Enrollment)
def enrollment_saved(sender, instance: Enrollment, created: bool, **kwargs):
    if not created:
        return
    course = instance.course
    Course.objects.filter(pk=course.pk).update(enrollment_count=course.enrollments.count())
    _refresh_instructor_totals(course.instructor_id)


@receiver(post_delete, sender=Enrollment)
def enrollment_deleted(sender, instance: Enrollment, **kwargs):
    course = Course.objects.filter(pk=instance.course_id).first()
    if course is None:
        return
    Course.objects.filter(pk=course.pk).update(enrollment_count=course.enrollments.count())
    _refresh_instructor_totals(course.instructor_id)


@receiver(post_save, sender=Review)
def review_saved(sender, instance: Review, **kwargs):
    _refresh_review_stats(instance.course_id)


@receiver(post_delete, sender=Review)
def review_deleted(sender, instance: Review, **kwargs):
    _refresh_review_stats(instance.course_id)


@receiver(post_save, sender=Course)
def course_saved(sender, instance: Course, created: bool, **kwargs):
    if created:
        _refresh_instructor_totals(instance.instructor_id)


@receiver(post_delete, sender=Course)
def course_deleted(sender, instance: Course, **kwargs):
    _refresh_instructor_totals(instance.instructor_id)
