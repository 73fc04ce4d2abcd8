from __future__ import annotations

import pytest
from freezegun import freeze_time

from courses.models import Course, Lesson

pytestmark = pytest.mark.django_db


def _create_course(client, **extra):
    r = client.post("/api/v1/courses/", {"title": "Intro to Testing", **extra}, format="json")
    assert r.status_code == 201, r.content
    return r.json()["course"]


def test_create_course_starts_as_draft_with_slug(api_client_for, instructor):
    course = _create_course(api_client_for(instructor), status="published", description="Basics")
    assert course["status"] == "draft"
    assert course["published_at"] is None
    assert course["slug"].startswith("intro-to-testing-")
    assert course["instructor"] == instructor.pk


def test_learner_cannot_use_instructor_routes(api_client_for, learner):
    r = api_client_for(learner).post("/api/v1/courses/", {"title": "Nope"}, format="json")
    assert r.status_code == 403
    assert r.json() == {"error": "Forbidden"}


def test_missing_title_is_validation_error(api_client_for, instructor):
    r = api_client_for(instructor).post("/api/v1/courses/", {"description": "x"}, format="json")
    assert r.status_code == 400
    body = r.json()
    assert body["error"].startswith("title")
    assert "title" in body["fields"]


def test_list_shows_only_own_courses(api_client_for, instructor, other_instructor):
    mine = _create_course(api_client_for(instructor))
    _create_course(api_client_for(other_instructor), title="Theirs")
    r = api_client_for(instructor).get("/api/v1/courses/")
    assert r.status_code == 200
    body = r.json()
    assert [c["id"] for c in body["courses"]] == [mine["id"]]
    assert body["total"] == 1
    assert body["offset"] == 0


def test_admin_sees_every_course(api_client_for, admin_account, instructor, other_instructor):
    _create_course(api_client_for(instructor))
    _create_course(api_client_for(other_instructor), title="Theirs")
    r = api_client_for(admin_account).get("/api/v1/courses/")
    assert r.json()["total"] == 2


def test_non_owner_gets_404_on_every_course_route(api_client_for, instructor, other_instructor):
    course = _create_course(api_client_for(instructor))
    other = api_client_for(other_instructor)
    base = f"/api/v1/courses/{course['id']}/"
    assert other.get(base).status_code == 404
    assert other.patch(base, {"title": "Hijacked"}, format="json").status_code == 404
    assert other.delete(base).status_code == 404
    r = other.post(base + "lessons/", {"title": "L", "lesson_type": "text"}, format="json")
    assert r.status_code == 404
    assert other.post(base + "quizzes/", {"title": "Q"}, format="json").status_code == 404
    assert Course.objects.get(pk=course["id"]).title == "Intro to Testing"


def test_patch_ignores_unknown_fields_and_stamps_published_once(api_client_for, instructor):
    client = api_client_for(instructor)
    course = _create_course(client)
    url = f"/api/v1/courses/{course['id']}/"
    with freeze_time("2026-05-01 09:00:00"):
        # Token must be minted under the frozen clock
        frozen_client = api_client_for(instructor)
        r = frozen_client.patch(url, {"status": "published", "slug": "mine", "enrollment_count": 50}, format="json")
    assert r.status_code == 200
    body = r.json()["course"]
    assert body["status"] == "published"
    assert body["slug"] == course["slug"]
    assert body["enrollment_count"] == 0
    stamped = body["published_at"]
    assert stamped.startswith("2026-05-01T09:00:00")

    client.patch(url, {"status": "archived"}, format="json")
    r = client.patch(url, {"status": "published"}, format="json")
    assert r.json()["course"]["published_at"] == stamped


def test_delete_course_then_404(api_client_for, instructor):
    client = api_client_for(instructor)
    course = _create_course(client)
    url = f"/api/v1/courses/{course['id']}/"
    r = client.delete(url)
    assert r.status_code == 200
    assert r.json() == {"success": True}
    r = client.delete(url)
    assert r.status_code == 404
    assert r.json() == {"error": "Course not found"}


def test_lessons_are_appended_in_order(api_client_for, instructor):
    client = api_client_for(instructor)
    course = _create_course(client)
    url = f"/api/v1/courses/{course['id']}/lessons/"
    first = client.post(url, {"title": "Welcome", "lesson_type": "text", "content": "Hi"}, format="json")
    assert first.status_code == 201
    assert first.json()["lesson"]["order_index"] == 0
    second = client.post(url, {"title": "Next", "lesson_type": "video"}, format="json")
    assert second.json()["lesson"]["order_index"] == 1

    r = client.get(f"/api/v1/courses/{course['id']}/")
    assert [lesson["title"] for lesson in r.json()["lessons"]] == ["Welcome", "Next"]


def test_lesson_patch_and_delete(api_client_for, instructor, other_instructor):
    client = api_client_for(instructor)
    course = _create_course(client)
    lesson = client.post(
        f"/api/v1/courses/{course['id']}/lessons/", {"title": "Draft", "lesson_type": "text"}, format="json"
    ).json()["lesson"]
    url = f"/api/v1/courses/{course['id']}/lessons/{lesson['id']}/"

    r = client.patch(url, {"title": "Final", "course": 999}, format="json")
    assert r.status_code == 200
    assert r.json()["lesson"]["title"] == "Final"
    assert r.json()["lesson"]["course"] == course["id"]

    assert api_client_for(other_instructor).delete(url).status_code == 404
    assert client.delete(url).status_code == 200
    assert not Lesson.objects.filter(pk=lesson["id"]).exists()


def test_lesson_listing_visibility(api_client_for, instructor, learner):
    client = api_client_for(instructor)
    course = _create_course(client)
    client.post(f"/api/v1/courses/{course['id']}/lessons/", {"title": "A", "lesson_type": "text"}, format="json")
    url = f"/api/v1/courses/{course['id']}/lessons/"

    assert api_client_for(learner).get(url).status_code == 404
    assert client.get(url).status_code == 200
    Course.objects.filter(pk=course["id"]).update(status="published")
    r = api_client_for(learner).get(url)
    assert r.status_code == 200
    assert len(r.json()["lessons"]) == 1


def test_instructor_profile_reports_stats(api_client_for, instructor):
    client = api_client_for(instructor)
    _create_course(client)
    r = client.patch("/api/v1/instructor/profile/", {"bio": "Teaches", "expertise": ["python"]}, format="json")
    assert r.status_code == 200
    body = r.json()
    assert body["profile"]["bio"] == "Teaches"
    assert body["profile"]["expertise"] == ["python"]
    assert body["stats"]["total_courses"] == 1
    assert body["stats"]["published_courses"] == 0
    assert body["stats"]["total_students"] == 0
