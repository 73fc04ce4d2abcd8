"""Learner surface: catalogue, course detail, enrollment, progress,
reviews, quiz attempts and the learner profile.
"""
from __future__ import annotations

from django.db.models import Avg, Count, Q, Sum
from django.shortcuts import get_object_or_404
from rest_framework import exceptions, generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import LearnerProfile
from courses import services as course_services
from courses.models import Course, CourseStatus, CourseVisibility, Enrollment, EnrollmentStatus, LessonProgress
from courses.models_feedback import Review
from quizzes import services as quiz_services
from quizzes.models import Quiz, QuizAttempt, UserBadge

from .exceptions import Conflict, PaymentRequired
from .permissions import PUBLIC, SIGNED_IN, require_enrollment
from .serializers import (
    AttemptInputSerializer,
    BadgeSerializer,
    CourseSerializer,
    EnrollmentSerializer,
    LearnerEnrollmentSerializer,
    LearnerProfileSerializer,
    LearnerQuestionSerializer,
    LessonOutlineSerializer,
    LessonProgressSerializer,
    LessonSerializer,
    ProgressInputSerializer,
    QuizAttemptSerializer,
    QuizSerializer,
    ReviewInputSerializer,
    ReviewSerializer,
    UserBadgeSerializer,
    UserSummarySerializer,
)
from .views_courses import annotate_course_counts

RECENT_REVIEWS = 20


def published_courses():
    return Course.objects.filter(status=CourseStatus.PUBLISHED)


def _wants_enrolled(request) -> bool:
    return request.query_params.get("enrolled", "").lower() in ("1", "true", "yes")


class LearnerCourseListView(generics.ListAPIView):
    """Browse published courses, or the caller's enrollments with `?enrolled=true`."""

    policy = PUBLIC
    filterset_fields = ["category", "difficulty_level"]
    search_fields = ["title", "description", "category"]
    ordering_fields = ["published_at", "enrollment_count", "average_rating", "title"]

    @property
    def envelope_key(self) -> str:
        return "enrollments" if _wants_enrolled(self.request) else "courses"

    def get_serializer_class(self):
        if getattr(self, "swagger_fake_view", False) or not _wants_enrolled(self.request):
            return CourseSerializer
        return LearnerEnrollmentSerializer

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Course.objects.none()
        principal = self.request.user
        if _wants_enrolled(self.request):
            if not principal.is_authenticated:
                raise exceptions.NotAuthenticated()
            return (
                Enrollment.objects.filter(learner=principal.require_user())
                .select_related("course")
                .order_by("-enrolled_at")
            )
        courses = published_courses()
        if not principal.is_authenticated:
            courses = courses.filter(visibility=CourseVisibility.EVERYONE)
        return annotate_course_counts(courses).order_by("-published_at", "-id")

    def filter_queryset(self, queryset):
        if _wants_enrolled(self.request):
            return queryset
        return super().filter_queryset(queryset)


class LearnerCourseDetailView(APIView):
    policy = SIGNED_IN

    def get(self, request, course_id: int):
        course = get_object_or_404(annotate_course_counts(published_courses()), pk=course_id)
        user = request.user.user
        enrollment = Enrollment.objects.filter(course=course, learner=user).first() if user else None
        lessons = course.lessons.all()
        progress = {}
        if enrollment is not None:
            lesson_serializer = LessonSerializer(lessons, many=True)
            for row in LessonProgress.objects.filter(enrollment=enrollment):
                progress[str(row.lesson_id)] = LessonProgressSerializer(row).data
        else:
            lesson_serializer = LessonOutlineSerializer(lessons, many=True)
        reviews = Review.objects.filter(course=course, is_published=True).select_related("learner")[:RECENT_REVIEWS]
        return Response({
            "course": CourseSerializer(course).data,
            "instructor": UserSummarySerializer(course.instructor).data,
            "lessons": lesson_serializer.data,
            "isEnrolled": enrollment is not None,
            "enrollment": EnrollmentSerializer(enrollment).data if enrollment else None,
            "progress": progress,
            "reviews": ReviewSerializer(reviews, many=True).data,
        })

    def post(self, request, course_id: int):
        user = request.user.require_user()
        course = published_courses().filter(pk=course_id).first()
        if course is None:
            raise exceptions.NotFound("Course not found")
        try:
            enrollment = course_services.enroll(course, user)
        except course_services.EnrollmentRefused as exc:
            if exc.reason == exc.PAYMENT_REQUIRED:
                raise PaymentRequired("Payment required for this course") from exc
            if exc.reason == exc.INVITATION_REQUIRED:
                raise exceptions.PermissionDenied("This course requires an invitation") from exc
            raise Conflict("Already enrolled in this course") from exc
        LearnerProfile.objects.get_or_create(user=user)
        return Response({"enrollment": EnrollmentSerializer(enrollment).data}, status=status.HTTP_201_CREATED)


class LessonProgressView(APIView):
    policy = SIGNED_IN

    def post(self, request, course_id: int):
        enrollment = require_enrollment(request.user, course_id)
        serializer = ProgressInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        lesson = enrollment.course.lessons.filter(pk=data["lesson_id"]).first()
        if lesson is None:
            raise exceptions.NotFound("Lesson not found")
        progress, percentage, completed, total = course_services.record_lesson_progress(
            enrollment, lesson, data["is_completed"], data["time_spent_minutes"]
        )
        return Response({
            "progress": LessonProgressSerializer(progress).data,
            "completionPercentage": percentage,
            "completedCount": completed,
            "totalLessons": total,
        })


class CourseReviewsView(generics.ListAPIView):
    serializer_class = ReviewSerializer
    envelope_key = "reviews"
    policy_by_method = {"GET": PUBLIC, "POST": SIGNED_IN}

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Review.objects.none()
        course = get_object_or_404(published_courses(), pk=self.kwargs["course_id"])
        return Review.objects.filter(course=course, is_published=True).select_related("learner").order_by("-created_at")

    def post(self, request, course_id: int):
        enrollment = require_enrollment(request.user, course_id)
        serializer = ReviewInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review, created = course_services.upsert_review(
            enrollment.course,
            enrollment.learner,
            serializer.validated_data["rating"],
            serializer.validated_data["review_text"],
        )
        return Response(
            {"review": ReviewSerializer(review).data},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class LearnerQuizMixin:
    policy = SIGNED_IN

    def get_quiz_for_learner(self, quiz_id):
        quiz = get_object_or_404(Quiz.objects.select_related("lesson"), pk=quiz_id)
        course_id = quiz.owning_course_id
        if course_id is None:
            raise exceptions.NotFound("Quiz not found")
        enrollment = require_enrollment(self.request.user, course_id)
        return quiz, enrollment


class LearnerQuizView(LearnerQuizMixin, APIView):
    def get(self, request, quiz_id: int):
        quiz, enrollment = self.get_quiz_for_learner(quiz_id)
        attempts = QuizAttempt.objects.filter(quiz=quiz, learner=enrollment.learner).order_by("attempt_number")
        return Response({
            "quiz": QuizSerializer(quiz).data,
            "questions": LearnerQuestionSerializer(quiz.questions.all(), many=True).data,
            "attempts": QuizAttemptSerializer(attempts, many=True).data,
        })


class QuizAttemptView(LearnerQuizMixin, APIView):
    def post(self, request, quiz_id: int):
        quiz, enrollment = self.get_quiz_for_learner(quiz_id)
        serializer = AttemptInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            attempt, new_badges, grading = quiz_services.submit_attempt(
                quiz,
                enrollment.learner,
                serializer.validated_data["answers"],
                started_at=serializer.validated_data.get("started_at"),
            )
        except quiz_services.QuizNotReady as exc:
            raise exceptions.ValidationError(str(exc)) from exc
        return Response(
            {
                "attempt": QuizAttemptSerializer(attempt).data,
                "score": attempt.score,
                "passed": attempt.passed,
                "pointsEarned": attempt.points_earned,
                "correctCount": grading["correct"],
                "totalQuestions": grading["total"],
                "questionResults": grading["per_question"],
                "newBadges": BadgeSerializer(new_badges, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )


class LearnerProfileView(APIView):
    policy = SIGNED_IN

    def get(self, request):
        user = request.user.require_user()
        profile, _ = LearnerProfile.objects.get_or_create(user=user)
        enrollments = Enrollment.objects.filter(learner=user)
        stats = enrollments.aggregate(
            total_enrollments=Count("id"),
            completed=Count("id", filter=Q(status=EnrollmentStatus.COMPLETED)),
            in_progress=Count("id", filter=Q(status=EnrollmentStatus.ACTIVE)),
            time_spent_minutes=Sum("time_spent_minutes"),
            average_progress=Avg("progress_percentage"),
        )
        stats["time_spent_minutes"] = stats["time_spent_minutes"] or 0
        stats["average_progress"] = round(float(stats["average_progress"] or 0))

        attempts = QuizAttempt.objects.filter(learner=user)
        quiz_stats = attempts.aggregate(
            total_attempts=Count("id"),
            passed=Count("id", filter=Q(passed=True)),
            average_score=Avg("score"),
            points_earned=Sum("points_earned"),
        )
        quiz_stats["average_score"] = round(float(quiz_stats["average_score"] or 0))
        quiz_stats["points_earned"] = quiz_stats["points_earned"] or 0

        current, upcoming = quiz_services.badge_progress(profile.points)
        badges = UserBadge.objects.filter(user=user).select_related("badge")
        return Response({
            "user": UserSummarySerializer(user).data,
            "profile": LearnerProfileSerializer(profile).data,
            "badges": UserBadgeSerializer(badges, many=True).data,
            "stats": stats,
            "quizStats": quiz_stats,
            "currentBadge": BadgeSerializer(current).data if current else None,
            "nextBadge": BadgeSerializer(upcoming).data if upcoming else None,
            "recentEnrollments": LearnerEnrollmentSerializer(
                enrollments.select_related("course").order_by("-enrolled_at")[:5], many=True
            ).data,
        })
