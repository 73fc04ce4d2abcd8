"""API routes for CourseHub.

OpenAPI schema and interactive documentation, plus the versioned REST
endpoints under /api/v1/.
"""
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)

from . import views_admin, views_courses, views_learner, views_users, views_webhooks

v1 = [
    # Instructor course management
    path("courses/", views_courses.CourseListCreateView.as_view(), name="courses"),
    path("courses/<int:course_id>/", views_courses.CourseDetailView.as_view(), name="course-detail"),
    path("courses/<int:course_id>/lessons/", views_courses.LessonListCreateView.as_view(), name="lessons"),
    path(
        "courses/<int:course_id>/lessons/<int:lesson_id>/",
        views_courses.LessonDetailView.as_view(),
        name="lesson-detail",
    ),
    path("courses/<int:course_id>/quizzes/", views_courses.QuizListCreateView.as_view(), name="quizzes"),
    path(
        "courses/<int:course_id>/quizzes/<int:quiz_id>/",
        views_courses.QuizDetailView.as_view(),
        name="quiz-detail",
    ),
    path(
        "courses/<int:course_id>/quizzes/<int:quiz_id>/questions/",
        views_courses.QuestionCreateView.as_view(),
        name="questions",
    ),
    path(
        "courses/<int:course_id>/quizzes/<int:quiz_id>/questions/<int:question_id>/",
        views_courses.QuestionDetailView.as_view(),
        name="question-detail",
    ),
    path(
        "courses/<int:course_id>/quizzes/<int:quiz_id>/rewards/",
        views_courses.QuizRewardsView.as_view(),
        name="quiz-rewards",
    ),
    path(
        "courses/<int:course_id>/invitations/",
        views_courses.InvitationListCreateView.as_view(),
        name="invitations",
    ),
    path(
        "courses/<int:course_id>/enrollments/",
        views_courses.CourseEnrollmentListView.as_view(),
        name="course-enrollments",
    ),
    path("instructor/profile/", views_courses.InstructorProfileView.as_view(), name="instructor-profile"),
    path("instructor/reports/", views_courses.InstructorReportsView.as_view(), name="instructor-reports"),
    path("instructor/lessons/", views_courses.InstructorLessonListView.as_view(), name="instructor-lessons"),
    # Learner surface
    path("learner/courses/", views_learner.LearnerCourseListView.as_view(), name="learner-courses"),
    path(
        "learner/courses/<int:course_id>/",
        views_learner.LearnerCourseDetailView.as_view(),
        name="learner-course-detail",
    ),
    path(
        "learner/courses/<int:course_id>/progress/",
        views_learner.LessonProgressView.as_view(),
        name="learner-progress",
    ),
    path(
        "learner/courses/<int:course_id>/reviews/",
        views_learner.CourseReviewsView.as_view(),
        name="learner-reviews",
    ),
    path("learner/quizzes/<int:quiz_id>/", views_learner.LearnerQuizView.as_view(), name="learner-quiz"),
    path(
        "learner/quizzes/<int:quiz_id>/attempt/",
        views_learner.QuizAttemptView.as_view(),
        name="learner-quiz-attempt",
    ),
    path("learner/profile/", views_learner.LearnerProfileView.as_view(), name="learner-profile"),
    # Users and roles
    path("users/", views_users.UserListCreateView.as_view(), name="users"),
    path("users/<str:external_id>/", views_users.UserDetailView.as_view(), name="user-detail"),
    path("users/<str:external_id>/role/", views_users.UserRoleView.as_view(), name="user-role"),
    path("user/role/", views_users.SelfRoleView.as_view(), name="self-role"),
    # Admin dashboard
    path("admin/stats/", views_admin.AdminStatsView.as_view(), name="admin-stats"),
    path("admin/courses/", views_admin.AdminCourseListView.as_view(), name="admin-courses"),
    # Identity provider sync
    path(
        "webhooks/identity-provider/",
        views_webhooks.IdentityWebhookView.as_view(),
        name="identity-webhook",
    ),
]

urlpatterns = [
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("api/v1/", include((v1, "api"), namespace="v1")),
]
