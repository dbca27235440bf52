from wilaiety.auth.security import verify_password
from wilaiety.models.models import ActivityLog, User

from conftest import PASSWORD, make_user


def _new_user(**overrides):
    data = {
        "email": "Clerk@Wilaiety.mr",
        "password": "clerkpass",
        "full_name": "أمين السجل",
        "job_title": "Clerk",
        "department": "Registry",
    }
    data.update(overrides)
    return data


def test_list_users_with_counts(client, admin, member, admin_headers):
    body = client.get("/api/users?lang=fr", headers=admin_headers).json()
    assert body["counts"] == {"total": 2, "admins": 1, "users": 1}
    by_email = {u["email"]: u for u in body["items"]}
    assert by_email["admin@wilaiety.mr"]["role_label"] == "Administrateur"
    assert by_email["agent@wilaiety.mr"]["role"] == "user"


def test_missing_role_row_listed_as_user(client, db, admin_headers):
    make_user(db, "legacy@wilaiety.mr", role=None)
    items = client.get("/api/users?q=legacy", headers=admin_headers).json()["items"]
    assert [u["role"] for u in items] == ["user"]


def test_search_on_profile_fields(client, db, admin_headers):
    make_user(db, "a@wilaiety.mr", full_name="Sidi Mohamed")
    make_user(db, "b@wilaiety.mr", full_name="Aminetou")
    items = client.get("/api/users?q=sidi", headers=admin_headers).json()["items"]
    assert [u["email"] for u in items] == ["a@wilaiety.mr"]


def test_create_user_then_login(client, db, admin, admin_headers):
    resp = client.post("/api/users", json=_new_user(), headers=admin_headers)
    assert resp.status_code == 201
    created = resp.json()
    assert created["email"] == "clerk@wilaiety.mr"
    assert created["role"] == "user"
    assert created["full_name"] == "أمين السجل"

    log = db.query(ActivityLog).filter(ActivityLog.action == "user_created").one()
    assert log.user_id == admin.id
    assert log.details["target_user_id"] == created["id"]

    login = client.post("/auth/login", json={"email": "CLERK@wilaiety.mr", "password": "clerkpass"})
    assert login.status_code == 200
    assert login.json()["token_type"] == "bearer"


def test_create_user_validation(client, admin_headers):
    resp = client.post("/api/users", json=_new_user(password="12345"), headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "كلمة المرور يجب أن تكون 6 أحرف على الأقل"

    assert client.post("/api/users", json=_new_user(full_name=""), headers=admin_headers).status_code == 422
    assert client.post("/api/users", json=_new_user(), headers=admin_headers).status_code == 201
    assert client.post("/api/users", json=_new_user(), headers=admin_headers).status_code == 409


def test_role_change_is_logged(client, db, member, admin_headers):
    resp = client.patch(f"/api/users/{member.id}", json={"role": "admin", "job_title": "Chef"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"
    assert resp.json()["job_title"] == "Chef"
    log = db.query(ActivityLog).filter(ActivityLog.action == "role_changed").one()
    assert log.details == {"target_user_id": str(member.id), "from": "user", "to": "admin"}

    # Same role again is not a change
    client.patch(f"/api/users/{member.id}", json={"role": "admin"}, headers=admin_headers)
    assert db.query(ActivityLog).filter(ActivityLog.action == "role_changed").count() == 1


def test_delete_user_but_not_self(client, db, admin, member, admin_headers):
    resp = client.delete(f"/api/users/{admin.id}", headers=admin_headers)
    assert resp.status_code == 400
    assert client.delete(f"/api/users/{member.id}", headers=admin_headers).status_code == 204
    db.expire_all()
    assert db.get(User, member.id) is None


def test_me_reports_role_and_allowed_actions(client, member_headers):
    body = client.get("/auth/me?lang=fr", headers=member_headers).json()
    assert body["role"] == "user"
    assert body["role_label"] == "Utilisateur"
    assert body["is_admin"] is False
    assert body["allowed_actions"] == ["edit_registry", "view_registry"]


def test_login_failures(client, db):
    make_user(db, "off@wilaiety.mr", is_active=False)
    assert client.post("/auth/login", json={"email": "nobody@wilaiety.mr", "password": PASSWORD}).status_code == 401
    assert client.post("/auth/login", json={"email": "off@wilaiety.mr", "password": PASSWORD}).status_code == 403


def test_login_logs_activity_and_refresh_works(client, db, member):
    tokens = client.post("/auth/login", json={"email": member.email, "password": PASSWORD}).json()
    assert db.query(ActivityLog).filter(ActivityLog.action == "login").count() == 1

    refreshed = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    # A refresh token is not accepted as an access token
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"}).status_code == 401


def test_change_own_password(client, db, member, member_headers):
    resp = client.post("/auth/password", json={"new_password": "abc", "confirm_password": "abc"}, headers=member_headers)
    assert resp.status_code == 400
    resp = client.post("/auth/password", json={"new_password": "brandnew", "confirm_password": "other"}, headers=member_headers)
    assert resp.status_code == 400
    resp = client.post("/auth/password", json={"new_password": "brandnew", "confirm_password": "brandnew"}, headers=member_headers)
    assert resp.status_code == 204
    db.expire_all()
    assert verify_password("brandnew", db.get(User, member.id).password_hash)


def test_profile_settings_cannot_change_role(client, db, member, member_headers):
    resp = client.put("/api/settings/profile", json={"phone": "+222 22 00 00 00", "role": "admin"}, headers=member_headers)
    assert resp.status_code == 200
    assert resp.json()["phone"] == "+222 22 00 00 00"
    assert resp.json()["role"] == "user"


def test_avatar_upload(client, member, member_headers, storage):
    resp = client.post(
        "/api/settings/avatar",
        files={"file": ("me.jpg", b"\xff\xd8\xff\xe0fakejpeg", "image/jpeg")},
        headers=member_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["avatar_url"].endswith(f"/avatars/{member.id}/avatar.jpg")
    assert storage.exists("avatars", f"{member.id}/avatar.jpg")
