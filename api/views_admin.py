"""Admin dashboard endpoints."""
from __future__ import annotations

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db.models import Count
from django.db.models.functions import TruncDate
from django.utils import timezone
from rest_framework import generics
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import UserProfile
from accounts.roles import Role
from courses.models import Course, CourseStatus, Enrollment, EnrollmentStatus
from courses.models_feedback import Review
from quizzes.models import Quiz, QuizAttempt

from .permissions import ADMINS
from .serializers import CourseSerializer, MirroredUserSerializer
from .views_courses import annotate_course_counts

User = get_user_model()

TREND_DAYS = 7
RECENT_LIMIT = 5


class AdminStatsView(APIView):
    policy = ADMINS

    def get(self, request):
        now = timezone.now()
        since = (now - timedelta(days=TREND_DAYS - 1)).replace(hour=0, minute=0, second=0, microsecond=0)

        distribution = {role.value: 0 for role in Role}
        for row in UserProfile.objects.values("role").annotate(n=Count("id")):
            distribution[row["role"]] = row["n"]

        per_day = {
            row["day"]: row["n"]
            for row in Enrollment.objects.filter(enrolled_at__gte=since)
            .annotate(day=TruncDate("enrolled_at"))
            .values("day")
            .annotate(n=Count("id"))
        }
        trend = []
        for offset in range(TREND_DAYS):
            day = (since + timedelta(days=offset)).date()
            trend.append({"date": day.isoformat(), "count": per_day.get(day, 0)})

        totals = {
            "users": UserProfile.objects.count(),
            "courses": Course.objects.count(),
            "published_courses": Course.objects.filter(status=CourseStatus.PUBLISHED).count(),
            "enrollments": Enrollment.objects.count(),
            "completed_enrollments": Enrollment.objects.filter(status=EnrollmentStatus.COMPLETED).count(),
            "reviews": Review.objects.count(),
            "quizzes": Quiz.objects.count(),
            "quiz_attempts": QuizAttempt.objects.count(),
        }
        recent_users = User.objects.select_related("profile").order_by("-date_joined", "-id")[:RECENT_LIMIT]
        recent_courses = annotate_course_counts(Course.objects.all()).order_by("-created_at", "-id")[:RECENT_LIMIT]
        return Response({
            "totals": totals,
            "enrollmentTrend": trend,
            "userDistribution": distribution,
            "recentUsers": MirroredUserSerializer(recent_users, many=True).data,
            "recentCourses": CourseSerializer(recent_courses, many=True).data,
        })


class AdminCourseListView(generics.ListAPIView):
    policy = ADMINS
    serializer_class = CourseSerializer
    envelope_key = "courses"
    filterset_fields = ["status", "visibility"]
    search_fields = ["title", "description", "instructor__email"]
    ordering_fields = ["created_at", "updated_at", "title", "enrollment_count"]
    ordering = ["-created_at"]

    def get_queryset(self):
        return annotate_course_counts(Course.objects.select_related("instructor"))
