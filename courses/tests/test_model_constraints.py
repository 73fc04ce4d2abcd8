from __future__ import annotations

import pytest
from django.db import IntegrityError

from courses.models import Course, Enrollment, Lesson, LessonProgress
from courses.models_feedback import Review


@pytest.fixture
def course(instructor):
    return Course.objects.create(instructor=instructor, title="UQ", slug="uq")


@pytest.mark.django_db
def test_enrollment_unique_constraint_raises_integrity_error(course, learner):
    Enrollment.objects.create(course=course, learner=learner)
    with pytest.raises(IntegrityError):
        Enrollment.objects.create(course=course, learner=learner)


@pytest.mark.django_db
def test_review_unique_per_course_learner(course, learner):
    Review.objects.create(course=course, learner=learner, rating=4, review_text="ok")
    with pytest.raises(IntegrityError):
        Review.objects.create(course=course, learner=learner, rating=5, review_text="dup")


@pytest.mark.django_db
def test_lesson_progress_unique_per_enrollment_lesson(course, learner):
    lesson = Lesson.objects.create(course=course, title="L", slug="l", lesson_type="text")
    enrollment = Enrollment.objects.create(course=course, learner=learner)
    LessonProgress.objects.create(enrollment=enrollment, lesson=lesson)
    with pytest.raises(IntegrityError):
        LessonProgress.objects.create(enrollment=enrollment, lesson=lesson)


@pytest.mark.django_db
def test_course_slug_is_unique(instructor, course):
    with pytest.raises(IntegrityError):
        Course.objects.create(instructor=instructor, title="Other", slug="uq")
