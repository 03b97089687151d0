"""
User upsert/plan routes and the admin moderation surface.
"""
from sqlalchemy import select, update, func

from lifelessons.core.database import lessons, users


def _upsert(client, uid="u1", **fields):
    body = {"uid": uid, "email": f"{uid}@example.com", "name": uid.upper(), "photoURL": ""}
    body.update(fields)
    return client.post("/users/upsert", json=body)


def _create_lesson(client, title, creator_uid, **fields):
    body = {"title": title, "description": f"{title} body", "creator": {"uid": creator_uid}}
    body.update(fields)
    return client.post("/lessons", json=body).json()["insertedId"]


# Users

def test_upsert_creates_user(client):
    resp = _upsert(client, "u1", photoURL="https://img.example.com/u1.png")

    assert resp.status_code == 200
    body = resp.json()
    assert body["uid"] == "u1"
    assert body["role"] == "user"
    assert body["isPremium"] is False
    assert body["photoURL"] == "https://img.example.com/u1.png"


def test_upsert_refreshes_profile_but_keeps_role_and_premium(client, store, make_user):
    make_user("u1", role="admin", is_premium=True)

    resp = _upsert(client, "u1", name="New Name", email="new@example.com")

    body = resp.json()
    assert body["name"] == "New Name"
    assert body["email"] == "new@example.com"
    assert body["role"] == "admin"
    assert body["isPremium"] is True
    with store.session() as session:
        assert session.execute(select(func.count()).select_from(users)).scalar() == 1


def test_upsert_requires_uid_and_email(client):
    resp = client.post("/users/upsert", json={"name": "Nobody"})
    assert resp.status_code == 400
    assert "uid" in resp.json()["message"]
    assert "email" in resp.json()["message"]


def test_plan_for_known_user(client, make_user):
    make_user("u1", is_premium=True)

    body = client.get("/users/plan/u1").json()

    assert body["isPremium"] is True
    assert body["role"] == "user"
    assert body["user"]["uid"] == "u1"
    assert body["user"]["premiumSince"] is not None


def test_plan_for_unknown_user(client):
    resp = client.get("/users/plan/ghost")
    assert resp.status_code == 200
    assert resp.json() == {"isPremium": False, "role": "user", "user": None}


def test_payments_empty_for_new_user(client, make_user):
    make_user("u1")
    assert client.get("/users/u1/payments").json() == []


# Admin authorization

def test_admin_requires_header(client):
    resp = client.get("/admin/users")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_admin_rejects_regular_user(client, make_user):
    make_user("u1")
    resp = client.get("/admin/users", headers={"X-User-Id": "u1"})
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "forbidden"


def test_admin_rejects_unknown_caller(client):
    assert client.get("/admin/users", headers={"X-User-Id": "ghost"}).status_code == 403


# Admin: users

def test_admin_lists_users_with_lesson_counts(client, make_user, admin_headers):
    make_user("u1")
    make_user("u2")
    _create_lesson(client, "One", "u1")
    _create_lesson(client, "Two", "u1")

    resp = client.get("/admin/users", headers=admin_headers)

    assert resp.status_code == 200
    counts = {u["uid"]: u["lessonsCreated"] for u in resp.json()}
    assert counts == {"admin1": 0, "u1": 2, "u2": 0}


def test_admin_sets_role(client, store, make_user, admin_headers):
    make_user("u1")

    resp = client.patch("/admin/users/role", json={"uid": "u1", "role": "admin"}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"
    assert client.get("/admin/users", headers={"X-User-Id": "u1"}).status_code == 200


def test_admin_role_validation(client, make_user, admin_headers):
    make_user("u1")
    resp = client.patch("/admin/users/role", json={"uid": "u1", "role": "owner"}, headers=admin_headers)
    assert resp.status_code == 400


def test_admin_set_role_unknown_user(client, admin_headers):
    resp = client.patch("/admin/users/role", json={"uid": "ghost", "role": "admin"}, headers=admin_headers)
    assert resp.status_code == 404


def test_admin_deletes_user_but_keeps_lessons(client, store, make_user, admin_headers):
    make_user("u1")
    lesson_id = _create_lesson(client, "Kept", "u1")

    resp = client.delete("/admin/users/u1", headers=admin_headers)

    assert resp.json() == {"success": True}
    assert client.get("/users/plan/u1").json()["user"] is None
    assert client.get(f"/lessons/{lesson_id}").status_code == 200
    assert client.delete("/admin/users/u1", headers=admin_headers).status_code == 404


# Admin: lessons

def test_admin_lesson_filters(client, admin_headers):
    public_free = _create_lesson(client, "Public free", "a1")
    private_premium = _create_lesson(client, "Private premium", "a1", visibility="private", accessLevel="premium")
    client.patch(f"/admin/lessons/{private_premium}/featured", json={"isFeatured": True}, headers=admin_headers)

    def ids(**params):
        resp = client.get("/admin/lessons", params=params, headers=admin_headers)
        assert resp.status_code == 200
        return sorted(l["_id"] for l in resp.json())

    assert ids() == sorted([public_free, private_premium])
    assert ids(visibility="private") == [private_premium]
    assert ids(accessLevel="free") == [public_free]
    assert ids(featured="true") == [private_premium]
    assert ids(featured="false") == [public_free]
    assert ids(featured="maybe") == sorted([public_free, private_premium])
    assert ids(search="public") == [public_free]


def test_admin_featured_and_reviewed(client, admin_headers):
    lesson_id = _create_lesson(client, "Moderated", "a1")

    featured = client.patch(f"/admin/lessons/{lesson_id}/featured", json={"isFeatured": True}, headers=admin_headers)
    reviewed = client.patch(f"/admin/lessons/{lesson_id}/reviewed", json={"isReviewed": True}, headers=admin_headers)

    assert featured.json()["isFeatured"] is True
    assert reviewed.json()["isReviewed"] is True
    assert reviewed.json()["isFeatured"] is True


def test_admin_flags_missing_lesson(client, admin_headers):
    resp = client.patch("/admin/lessons/nope/featured", json={"isFeatured": True}, headers=admin_headers)
    assert resp.status_code == 404


def test_admin_deletes_lesson(client, admin_headers):
    lesson_id = _create_lesson(client, "Doomed", "a1")
    assert client.delete(f"/admin/lessons/{lesson_id}", headers=admin_headers).json() == {"success": True}
    assert client.get(f"/lessons/{lesson_id}").status_code == 404


# Admin: reported lessons

def _report(client, lesson_id, reason, reporter):
    client.post("/lessonReports", json={"lessonId": lesson_id, "reason": reason, "reporterUid": reporter})


def test_reported_lessons_grouped_most_reported_first(client, store, admin_headers):
    once = _create_lesson(client, "Reported once", "a1")
    thrice = _create_lesson(client, "Reported thrice", "a1")
    _report(client, once, "Spam", "r1")
    for i in range(3):
        _report(client, thrice, f"Reason {i}", f"r{i}")
    _report(client, "deleted-lesson", "Gone", "r9")

    resp = client.get("/admin/reported-lessons", headers=admin_headers)

    body = resp.json()
    assert [item["lessonId"] for item in body] == [thrice, once, "deleted-lesson"]
    assert [item["reportCount"] for item in body] == [3, 1, 1]
    assert [r["reason"] for r in body[0]["reasons"]] == ["Reason 0", "Reason 1", "Reason 2"]
    assert body[0]["lesson"]["title"] == "Reported thrice"
    assert body[0]["lesson"]["_id"] == thrice
    assert body[2]["lesson"] is None


def test_dismiss_reports(client, admin_headers):
    lesson_id = _create_lesson(client, "Reported", "a1")
    _report(client, lesson_id, "Spam", "r1")
    _report(client, lesson_id, "Rude", "r2")

    resp = client.delete(f"/admin/reported-lessons/{lesson_id}", headers=admin_headers)

    assert resp.json() == {"success": True, "removed": 2}
    assert client.get("/admin/reported-lessons", headers=admin_headers).json() == []
    assert client.get(f"/lessons/{lesson_id}").status_code == 200


def test_reported_lessons_require_admin(client, make_user):
    make_user("u1")
    assert client.get("/admin/reported-lessons", headers={"X-User-Id": "u1"}).status_code == 403


def test_admin_promoted_directly_in_store(client, store, make_user):
    make_user("u1")
    with store.session() as session:
        session.execute(update(users).where(users.c.uid == "u1").values(role="admin"))
    assert client.get("/admin/lessons", headers={"X-User-Id": "u1"}).status_code == 200
    with store.session() as session:
        assert session.execute(select(lessons)).fetchall() == []
