"""Instructor course management: courses, lessons, quizzes, questions,
rewards, invitations, attendees, reports and the instructor profile.

Ownership is part of every query (`owner_filter`), so a course that exists
but belongs to someone else answers 404 exactly like a missing one.
"""
from __future__ import annotations

import logging

from django.db.models import Avg, Count, Q, Sum
from django.db.models.functions import TruncDate
from django.shortcuts import get_object_or_404
from rest_framework import exceptions, generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import InstructorProfile
from courses import services as course_services
from courses.models import Course, CourseStatus, Enrollment, EnrollmentStatus, Lesson, LessonType
from courses.models_invitations import CourseInvitation
from quizzes import services as quiz_services
from quizzes.models import Quiz, QuizAttempt, QuizQuestion

from .permissions import INSTRUCTORS, SIGNED_IN, is_admin_principal, owner_filter
from .serializers import (
    AttendeeSerializer,
    CourseSerializer,
    CourseWriteSerializer,
    InstructorProfileSerializer,
    InvitationCreateSerializer,
    InvitationSerializer,
    LessonSerializer,
    LessonWriteSerializer,
    QuestionWriteSerializer,
    QuizQuestionSerializer,
    QuizRewardSerializer,
    QuizSerializer,
    QuizWriteSerializer,
    RewardsReplaceSerializer,
)

logger = logging.getLogger(__name__)


def annotate_course_counts(queryset):
    return queryset.annotate(
        lessons_count=Count("lessons", distinct=True),
        views_count=Count("lessons__progress", distinct=True),
    )


class OwnedCourseMixin:
    """Resolve courses through the caller's ownership predicate."""

    policy = INSTRUCTORS

    def owned_courses(self):
        return Course.objects.filter(**owner_filter(self.request.user))

    def get_owned_course(self, course_id) -> Course:
        return get_object_or_404(self.owned_courses(), pk=course_id)

    def owned_quizzes(self, course_id):
        principal = self.request.user
        return Quiz.objects.filter(Q(course_id=course_id) | Q(lesson__course_id=course_id)).filter(
            Q(**owner_filter(principal, "course__")) | Q(**owner_filter(principal, "lesson__course__"))
        )


class CourseListCreateView(OwnedCourseMixin, generics.ListAPIView):
    serializer_class = CourseSerializer
    envelope_key = "courses"
    filterset_fields = ["status"]
    search_fields = ["title", "description", "category"]
    ordering_fields = ["created_at", "updated_at", "title"]
    ordering = ["-updated_at"]

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Course.objects.none()
        return annotate_course_counts(self.owned_courses())

    def post(self, request):
        user = request.user.require_user()
        serializer = CourseWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course = course_services.create_course(user, dict(serializer.validated_data))
        logger.info("Course %s created by %s", course.pk, user.pk)
        return Response({"course": CourseSerializer(course).data}, status=status.HTTP_201_CREATED)


class CourseDetailView(OwnedCourseMixin, APIView):
    def get(self, request, course_id: int):
        course = get_object_or_404(annotate_course_counts(self.owned_courses()), pk=course_id)
        lessons = course.lessons.all()
        return Response({
            "course": CourseSerializer(course).data,
            "lessons": LessonSerializer(lessons, many=True).data,
        })

    def patch(self, request, course_id: int):
        serializer = CourseWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        course = course_services.update_course(self.owned_courses(), course_id, serializer.validated_data)
        return Response({"course": CourseSerializer(course).data})

    def delete(self, request, course_id: int):
        deleted, _ = self.owned_courses().filter(pk=course_id).delete()
        if not deleted:
            raise exceptions.NotFound("Course not found")
        logger.info("Course %s deleted by %s", course_id, request.user.external_id)
        return Response({"success": True})


class LessonListCreateView(OwnedCourseMixin, APIView):
    policy_by_method = {"GET": SIGNED_IN}

    def get(self, request, course_id: int):
        principal = request.user
        courses = Course.objects.all()
        if not is_admin_principal(principal):
            visible = Q(status=CourseStatus.PUBLISHED)
            if principal.user is not None:
                visible |= Q(instructor=principal.user)
            courses = courses.filter(visible)
        course = get_object_or_404(courses, pk=course_id)
        return Response({"lessons": LessonSerializer(course.lessons.all(), many=True).data})

    def post(self, request, course_id: int):
        course = self.get_owned_course(course_id)
        serializer = LessonWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lesson = course_services.create_lesson(course, serializer.validated_data)
        return Response({"lesson": LessonSerializer(lesson).data}, status=status.HTTP_201_CREATED)


class LessonDetailView(OwnedCourseMixin, APIView):
    def owned_lessons(self, course_id):
        return Lesson.objects.filter(course_id=course_id, **owner_filter(self.request.user, "course__"))

    def get(self, request, course_id: int, lesson_id: int):
        lesson = get_object_or_404(self.owned_lessons(course_id), pk=lesson_id)
        return Response({"lesson": LessonSerializer(lesson).data})

    def patch(self, request, course_id: int, lesson_id: int):
        serializer = LessonWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        lesson = course_services.update_lesson(self.owned_lessons(course_id), lesson_id, serializer.validated_data)
        return Response({"lesson": LessonSerializer(lesson).data})

    def delete(self, request, course_id: int, lesson_id: int):
        deleted, _ = self.owned_lessons(course_id).filter(pk=lesson_id).delete()
        if not deleted:
            raise exceptions.NotFound("Lesson not found")
        return Response({"success": True})


class QuizListCreateView(OwnedCourseMixin, APIView):
    def get(self, request, course_id: int):
        course = self.get_owned_course(course_id)
        quizzes = quiz_services.quizzes_for_course(course).annotate(questions_count=Count("questions", distinct=True))
        return Response({"quizzes": QuizSerializer(quizzes, many=True).data})

    def post(self, request, course_id: int):
        course = self.get_owned_course(course_id)
        serializer = QuizWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        lesson = None
        if data.get("lesson_id") is not None:
            lesson = course.lessons.filter(pk=data["lesson_id"]).first()
            if lesson is None:
                raise exceptions.ValidationError({"lesson_id": ["Lesson not found in this course"]})
        quiz = quiz_services.create_quiz(course, data, lesson=lesson)
        return Response({"quiz": QuizSerializer(quiz).data}, status=status.HTTP_201_CREATED)


class QuizDetailView(OwnedCourseMixin, APIView):
    def get(self, request, course_id: int, quiz_id: int):
        quiz = get_object_or_404(self.owned_quizzes(course_id), pk=quiz_id)
        return Response({
            "quiz": QuizSerializer(quiz).data,
            "questions": QuizQuestionSerializer(quiz.questions.all(), many=True).data,
            "rewards": QuizRewardSerializer(quiz.rewards.all(), many=True).data,
        })

    def patch(self, request, course_id: int, quiz_id: int):
        serializer = QuizWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        quiz = quiz_services.update_quiz(self.owned_quizzes(course_id), quiz_id, serializer.validated_data)
        return Response({"quiz": QuizSerializer(quiz).data})

    def delete(self, request, course_id: int, quiz_id: int):
        deleted, _ = self.owned_quizzes(course_id).filter(pk=quiz_id).delete()
        if not deleted:
            raise exceptions.NotFound("Quiz not found")
        return Response({"success": True})


class QuestionCreateView(OwnedCourseMixin, APIView):
    def post(self, request, course_id: int, quiz_id: int):
        quiz = get_object_or_404(self.owned_quizzes(course_id), pk=quiz_id)
        serializer = QuestionWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        question = quiz_services.add_question(quiz, serializer.validated_data)
        return Response({"question": QuizQuestionSerializer(question).data}, status=status.HTTP_201_CREATED)


class QuestionDetailView(OwnedCourseMixin, APIView):
    def owned_questions(self, course_id, quiz_id):
        return QuizQuestion.objects.filter(quiz__in=self.owned_quizzes(course_id).filter(pk=quiz_id))

    def patch(self, request, course_id: int, quiz_id: int, question_id: int):
        serializer = QuestionWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        question = quiz_services.update_question(
            self.owned_questions(course_id, quiz_id), question_id, serializer.validated_data
        )
        return Response({"question": QuizQuestionSerializer(question).data})

    def delete(self, request, course_id: int, quiz_id: int, question_id: int):
        deleted, _ = self.owned_questions(course_id, quiz_id).filter(pk=question_id).delete()
        if not deleted:
            raise exceptions.NotFound("Question not found")
        return Response({"success": True})


class QuizRewardsView(OwnedCourseMixin, APIView):
    def get(self, request, course_id: int, quiz_id: int):
        quiz = get_object_or_404(self.owned_quizzes(course_id), pk=quiz_id)
        return Response({"rewards": QuizRewardSerializer(quiz.rewards.all(), many=True).data})

    def put(self, request, course_id: int, quiz_id: int):
        quiz = get_object_or_404(self.owned_quizzes(course_id), pk=quiz_id)
        serializer = RewardsReplaceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        pairs = [(r["attempt_number"], r["points_awarded"]) for r in serializer.validated_data["rewards"]]
        rewards = quiz_services.replace_rewards(quiz, pairs)
        return Response({"rewards": QuizRewardSerializer(rewards, many=True).data})


class InvitationListCreateView(OwnedCourseMixin, APIView):
    def get(self, request, course_id: int):
        course = self.get_owned_course(course_id)
        invitations = CourseInvitation.objects.filter(course=course)
        return Response({"invitations": InvitationSerializer(invitations, many=True).data})

    def post(self, request, course_id: int):
        course = self.get_owned_course(course_id)
        serializer = InvitationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invitations = course_services.issue_invitations(
            course, serializer.validated_data["emails"], invited_by=request.user.user
        )
        return Response(
            {"invitations": InvitationSerializer(invitations, many=True).data},
            status=status.HTTP_201_CREATED,
        )


class CourseEnrollmentListView(OwnedCourseMixin, APIView):
    def get(self, request, course_id: int):
        course = self.get_owned_course(course_id)
        enrollments = (
            Enrollment.objects.filter(course=course)
            .select_related("learner", "learner__profile")
            .order_by("-enrolled_at")
        )
        return Response({"enrollments": AttendeeSerializer(enrollments, many=True).data})


class InstructorProfileView(APIView):
    policy = INSTRUCTORS

    def _payload(self, user, profile):
        courses = Course.objects.filter(instructor=user)
        stats = courses.aggregate(
            total_courses=Count("id"),
            published_courses=Count("id", filter=Q(status=CourseStatus.PUBLISHED)),
            total_enrollments=Sum("enrollment_count"),
            average_rating=Avg("average_rating", filter=Q(total_reviews__gt=0)),
        )
        stats["total_students"] = (
            Enrollment.objects.filter(course__instructor=user).values("learner_id").distinct().count()
        )
        stats["total_enrollments"] = stats["total_enrollments"] or 0
        stats["average_rating"] = round(float(stats["average_rating"] or 0), 2)
        return {"profile": InstructorProfileSerializer(profile).data, "stats": stats}

    def get(self, request):
        user = request.user.require_user()
        profile, _ = InstructorProfile.objects.get_or_create(user=user)
        return Response(self._payload(user, profile))

    def patch(self, request):
        user = request.user.require_user()
        profile, _ = InstructorProfile.objects.get_or_create(user=user)
        serializer = InstructorProfileSerializer(profile, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(self._payload(user, profile))


class InstructorReportsView(OwnedCourseMixin, APIView):
    """Enrollment, completion and quiz figures across the caller's courses."""

    RECENT_LIMIT = 10

    def _empty(self):
        return {
            "courses": [],
            "overview": {"totalStudents": 0, "totalCourses": 0, "averageCompletion": 0, "averageRating": 0},
            "enrollmentsByDate": [],
            "coursePerformance": [],
            "quizPerformance": {"totalAttempts": 0, "passRate": 0, "averageScore": 0},
            "recentEnrollments": [],
        }

    def get(self, request):
        courses = self.owned_courses()
        course_id = request.query_params.get("courseId")
        if course_id:
            if not course_id.isdigit():
                raise exceptions.ValidationError("courseId must be an integer")
            courses = courses.filter(pk=int(course_id))
        courses = list(annotate_course_counts(courses).order_by("-created_at", "-id"))
        if not courses:
            return Response(self._empty())

        enrollments = Enrollment.objects.filter(course__in=courses)
        overall = enrollments.aggregate(
            students=Count("learner_id", distinct=True),
            progress=Avg("progress_percentage"),
        )
        per_day = (
            enrollments.annotate(day=TruncDate("enrolled_at"))
            .values("day")
            .annotate(n=Count("id"))
            .order_by("day")
        )
        per_course = {
            row["course_id"]: row
            for row in enrollments.order_by()
            .values("course_id")
            .annotate(
                n=Count("id"),
                done=Count("id", filter=Q(status=EnrollmentStatus.COMPLETED)),
                progress=Avg("progress_percentage"),
            )
        }
        performance = []
        for course in courses:
            row = per_course.get(course.pk, {"n": 0, "done": 0, "progress": None})
            performance.append({
                "courseId": course.pk,
                "title": course.title,
                "enrollments": row["n"],
                "completions": row["done"],
                "completionRate": round(100 * row["done"] / row["n"]) if row["n"] else 0,
                "averageProgress": round(row["progress"] or 0),
                "rating": float(course.average_rating),
            })

        attempts = QuizAttempt.objects.filter(Q(quiz__course__in=courses) | Q(quiz__lesson__course__in=courses))
        quiz = attempts.aggregate(
            total=Count("id", distinct=True),
            passed=Count("id", filter=Q(passed=True), distinct=True),
            score=Avg("score"),
        )
        ratings = [float(course.average_rating) for course in courses]
        recent = enrollments.select_related("learner", "learner__profile").order_by("-enrolled_at", "-id")
        return Response({
            "courses": CourseSerializer(courses, many=True).data,
            "overview": {
                "totalStudents": overall["students"],
                "totalCourses": len(courses),
                "averageCompletion": round(overall["progress"] or 0),
                "averageRating": round(sum(ratings) / len(ratings), 1),
            },
            "enrollmentsByDate": [{"date": row["day"].isoformat(), "count": row["n"]} for row in per_day],
            "coursePerformance": performance,
            "quizPerformance": {
                "totalAttempts": quiz["total"],
                "passRate": round(100 * quiz["passed"] / quiz["total"]) if quiz["total"] else 0,
                "averageScore": round(quiz["score"] or 0),
            },
            "recentEnrollments": AttendeeSerializer(recent[: self.RECENT_LIMIT], many=True).data,
        })


class InstructorLessonListView(OwnedCourseMixin, APIView):
    """Every lesson across the caller's courses, each tagged with its course."""

    def get(self, request):
        courses = list(self.owned_courses().order_by("-created_at", "-id").values("id", "title", "status"))
        by_id = {course["id"]: course for course in courses}
        lessons = Lesson.objects.filter(course_id__in=by_id).order_by("order_index", "id")
        stats = lessons.aggregate(
            totalLessons=Count("id"),
            videoLessons=Count("id", filter=Q(lesson_type=LessonType.VIDEO)),
            textLessons=Count("id", filter=Q(lesson_type=LessonType.TEXT)),
            quizLessons=Count("id", filter=Q(lesson_type=LessonType.QUIZ)),
            assignmentLessons=Count("id", filter=Q(lesson_type=LessonType.ASSIGNMENT)),
            publishedLessons=Count("id", filter=Q(course__status=CourseStatus.PUBLISHED)),
        )
        payload = []
        for lesson, data in zip(lessons, LessonSerializer(lessons, many=True).data):
            payload.append({**data, "course": by_id[lesson.course_id]})
        return Response({"lessons": payload, "courses": courses, "stats": stats})
