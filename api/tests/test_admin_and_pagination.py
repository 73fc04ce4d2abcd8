from __future__ import annotations

import pytest
from freezegun import freeze_time
from rest_framework.test import APIClient

from courses.models import Course, Enrollment

pytestmark = pytest.mark.django_db


def test_admin_stats_shape(api_client_for, admin_account, instructor, learner):
    course = Course.objects.create(instructor=instructor, title="Stats", slug="stats", status="published")
    with freeze_time("2026-06-10 12:00:00"):
        Enrollment.objects.create(course=course, learner=learner)
        r = api_client_for(admin_account).get("/api/v1/admin/stats/")
    assert r.status_code == 200
    body = r.json()
    assert body["totals"]["users"] == 3
    assert body["totals"]["courses"] == 1
    assert body["totals"]["published_courses"] == 1
    assert body["totals"]["enrollments"] == 1
    assert body["userDistribution"] == {"admin": 1, "instructor": 1, "learner": 1}
    assert len(body["enrollmentTrend"]) == 7
    assert body["enrollmentTrend"][-1] == {"date": "2026-06-10", "count": 1}
    assert body["enrollmentTrend"][0]["date"] == "2026-06-04"
    assert len(body["recentUsers"]) == 3
    assert body["recentCourses"][0]["id"] == course.pk


def test_admin_routes_refuse_instructors(api_client_for, instructor):
    client = api_client_for(instructor)
    assert client.get("/api/v1/admin/stats/").status_code == 403
    assert client.get("/api/v1/admin/courses/").status_code == 403


def test_admin_course_search_and_filters(api_client_for, admin_account, instructor):
    Course.objects.create(instructor=instructor, title="Python basics", slug="py", status="published")
    Course.objects.create(instructor=instructor, title="Rust basics", slug="rs")
    client = api_client_for(admin_account)
    r = client.get("/api/v1/admin/courses/?search=python")
    assert [c["title"] for c in r.json()["courses"]] == ["Python basics"]
    r = client.get("/api/v1/admin/courses/?status=draft")
    assert [c["title"] for c in r.json()["courses"]] == ["Rust basics"]
    r = client.get(f"/api/v1/admin/courses/?search={instructor.email}")
    assert r.json()["total"] == 2


def test_envelope_pagination_limit_and_cap(instructor):
    for i in range(105):
        Course.objects.create(
            instructor=instructor, title=f"C{i}", slug=f"c-{i}", status="published", visibility="everyone"
        )
    client = APIClient()
    r = client.get("/api/v1/learner/courses/")
    body = r.json()
    assert set(body) == {"courses", "total", "limit", "offset"}
    assert body["total"] == 105
    assert body["limit"] == 50
    assert len(body["courses"]) == 50

    r = client.get("/api/v1/learner/courses/?limit=500")
    assert r.json()["limit"] == 100
    assert len(r.json()["courses"]) == 100

    r = client.get("/api/v1/learner/courses/?limit=5&offset=100")
    body = r.json()
    assert (body["limit"], body["offset"], len(body["courses"])) == (5, 100, 5)


def test_schema_lists_v1_routes():
    r = APIClient().get("/api/schema/?format=json")
    assert r.status_code == 200
    paths = r.json()["paths"]
    assert "/api/v1/courses/" in paths
    assert "/api/v1/learner/quizzes/{quiz_id}/attempt/" in paths
    assert "/api/v1/webhooks/identity-provider/" in paths
