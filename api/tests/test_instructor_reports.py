from __future__ import annotations

import pytest
from freezegun import freeze_time

from accounts.roles import Role
from courses.models import Course, Enrollment, Lesson
from quizzes.models import Quiz, QuizAttempt

pytestmark = pytest.mark.django_db


@pytest.fixture
def catalogue(instructor, other_instructor, learner, make_user):
    second = make_user(Role.LEARNER)
    python = Course.objects.create(
        instructor=instructor, title="Python", slug="python", status="published", average_rating=4,
    )
    rust = Course.objects.create(instructor=instructor, title="Rust", slug="rust", average_rating=3)
    foreign = Course.objects.create(instructor=other_instructor, title="Go", slug="go", status="published")
    with freeze_time("2026-04-01 10:00:00"):
        Enrollment.objects.create(course=python, learner=learner, status="completed", progress_percentage=100)
        Enrollment.objects.create(course=rust, learner=learner, progress_percentage=20)
    with freeze_time("2026-04-03 10:00:00"):
        Enrollment.objects.create(course=python, learner=second, progress_percentage=50)
        Enrollment.objects.create(course=foreign, learner=second, progress_percentage=90)
    quiz = Quiz.objects.create(course=python, title="Check")
    QuizAttempt.objects.create(quiz=quiz, learner=learner, attempt_number=1, score=80, passed=True)
    QuizAttempt.objects.create(quiz=quiz, learner=second, attempt_number=1, score=40, passed=False)
    foreign_quiz = Quiz.objects.create(course=foreign, title="Other")
    QuizAttempt.objects.create(quiz=foreign_quiz, learner=second, attempt_number=1, score=0, passed=False)
    return {"python": python, "rust": rust, "foreign": foreign}


def test_reports_cover_only_own_courses(api_client_for, instructor, catalogue):
    r = api_client_for(instructor).get("/api/v1/instructor/reports/")
    assert r.status_code == 200
    body = r.json()
    assert body["overview"] == {
        "totalStudents": 2,
        "totalCourses": 2,
        "averageCompletion": 57,
        "averageRating": 3.5,
    }
    assert body["enrollmentsByDate"] == [
        {"date": "2026-04-01", "count": 2},
        {"date": "2026-04-03", "count": 1},
    ]
    performance = {row["title"]: row for row in body["coursePerformance"]}
    assert set(performance) == {"Python", "Rust"}
    assert performance["Python"] == {
        "courseId": catalogue["python"].pk,
        "title": "Python",
        "enrollments": 2,
        "completions": 1,
        "completionRate": 50,
        "averageProgress": 75,
        "rating": 4.0,
    }
    assert performance["Rust"]["completionRate"] == 0
    assert body["quizPerformance"] == {"totalAttempts": 2, "passRate": 50, "averageScore": 60}
    assert len(body["recentEnrollments"]) == 3
    assert {c["id"] for c in body["courses"]} == {catalogue["python"].pk, catalogue["rust"].pk}


def test_reports_narrow_to_one_course(api_client_for, instructor, catalogue):
    client = api_client_for(instructor)
    r = client.get(f"/api/v1/instructor/reports/?courseId={catalogue['rust'].pk}")
    body = r.json()
    assert body["overview"]["totalCourses"] == 1
    assert body["overview"]["averageCompletion"] == 20
    assert [row["title"] for row in body["coursePerformance"]] == ["Rust"]
    assert body["quizPerformance"]["totalAttempts"] == 0

    r = client.get(f"/api/v1/instructor/reports/?courseId={catalogue['foreign'].pk}")
    assert r.status_code == 200
    assert r.json()["courses"] == []
    assert r.json()["overview"]["totalStudents"] == 0

    assert client.get("/api/v1/instructor/reports/?courseId=abc").status_code == 400


def test_reports_without_courses_are_empty(api_client_for, instructor):
    body = api_client_for(instructor).get("/api/v1/instructor/reports/").json()
    assert body["courses"] == []
    assert body["coursePerformance"] == []
    assert body["overview"] == {"totalStudents": 0, "totalCourses": 0, "averageCompletion": 0, "averageRating": 0}


def test_instructor_lessons_across_courses(api_client_for, instructor, other_instructor):
    published = Course.objects.create(instructor=instructor, title="Pub", slug="pub", status="published")
    draft = Course.objects.create(instructor=instructor, title="Draft", slug="draft")
    foreign = Course.objects.create(instructor=other_instructor, title="Theirs", slug="theirs")
    Lesson.objects.create(course=published, title="Watch", slug="watch", lesson_type="video", order_index=0)
    Lesson.objects.create(course=published, title="Read", slug="read", lesson_type="text", order_index=1)
    Lesson.objects.create(course=draft, title="Check", slug="check", lesson_type="quiz", order_index=0)
    Lesson.objects.create(course=draft, title="Build", slug="build", lesson_type="assignment", order_index=2)
    Lesson.objects.create(course=foreign, title="Hidden", slug="hidden", lesson_type="text", order_index=0)

    r = api_client_for(instructor).get("/api/v1/instructor/lessons/")
    assert r.status_code == 200
    body = r.json()
    assert [lesson["title"] for lesson in body["lessons"]] == ["Watch", "Check", "Read", "Build"]
    assert body["lessons"][0]["course"] == {"id": published.pk, "title": "Pub", "status": "published"}
    assert {c["id"] for c in body["courses"]} == {published.pk, draft.pk}
    assert body["stats"] == {
        "totalLessons": 4,
        "videoLessons": 1,
        "textLessons": 1,
        "quizLessons": 1,
        "assignmentLessons": 1,
        "publishedLessons": 2,
    }


def test_instructor_lessons_without_courses(api_client_for, instructor):
    body = api_client_for(instructor).get("/api/v1/instructor/lessons/").json()
    assert body["lessons"] == []
    assert body["courses"] == []
    assert body["stats"]["totalLessons"] == 0


def test_learners_cannot_read_instructor_reports(api_client_for, learner):
    client = api_client_for(learner)
    assert client.get("/api/v1/instructor/reports/").status_code == 403
    assert client.get("/api/v1/instructor/lessons/").status_code == 403
