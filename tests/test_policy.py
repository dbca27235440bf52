import pytest

from wilaiety.services.policy import Action, allowed_actions, is_allowed, role_of

from conftest import auth_headers, make_facility, make_license, make_user

ADMIN_ONLY = [
    Action.DELETE_LICENSE,
    Action.MANAGE_DIVISIONS,
    Action.VIEW_USERS,
    Action.MANAGE_USERS,
    Action.RESET_PASSWORD,
    Action.VIEW_ALL_ACTIVITY,
    Action.REFRESH_LICENSE_STATUS,
]


@pytest.mark.parametrize("action", list(Action))
def test_admin_may_do_everything(action):
    assert is_allowed("admin", action)


@pytest.mark.parametrize("action", ADMIN_ONLY)
def test_plain_user_refused_admin_actions(action):
    assert not is_allowed("user", action)


def test_plain_user_can_work_the_registry():
    assert allowed_actions("user") == ["edit_registry", "view_registry"]
    assert not is_allowed("superuser", Action.VIEW_REGISTRY)


def test_missing_role_row_is_plain_user(db):
    user = make_user(db, "norole@wilaiety.mr", role=None)
    assert role_of(db, user.id) == "user"


def test_unauthenticated_requests_are_401(client):
    assert client.get("/api/facilities").status_code == 401
    assert client.get("/api/licenses", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_license_delete_is_admin_only(client, db, member_headers, admin_headers):
    lic = make_license(db, make_facility(db))
    resp = client.delete(f"/api/licenses/{lic.id}", headers=member_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "هذا الإجراء متاح للمدراء فقط"

    resp = client.delete(f"/api/licenses/{lic.id}", headers=admin_headers)
    assert resp.status_code == 204
    assert client.get(f"/api/licenses/{lic.id}", headers=admin_headers).status_code == 404


def test_user_management_is_admin_only(client, member_headers, admin_headers):
    assert client.get("/api/users", headers=member_headers).status_code == 403
    assert client.get("/api/users", headers=admin_headers).status_code == 200


def test_role_is_reread_for_every_request(client, db, member, member_headers):
    """Promoting a user takes effect on their next request with the same token."""
    assert client.get("/api/users", headers=member_headers).status_code == 403
    member.role_row.role = "admin"
    db.commit()
    assert client.get("/api/users", headers=member_headers).status_code == 200


def test_inactive_user_token_rejected(client, db):
    user = make_user(db, "gone@wilaiety.mr", is_active=False)
    assert client.get("/api/facilities", headers=auth_headers(user)).status_code == 401
