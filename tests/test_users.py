"""Admin-only user management."""
from app.core.security import verify_password
from app.models import User


def _new_user(**overrides):
    body = {
        "email": "packer@crm.io",
        "password": "packer1",
        "first_name": "Pat",
        "last_name": "Packer",
        "role": "MANAGER",
    }
    body.update(overrides)
    return body


class TestUserAdmin:
    def test_created_user_can_log_in(self, client, admin_headers):
        r = client.post("/api/users", json=_new_user(email="Packer@CRM.io"), headers=admin_headers)
        assert r.status_code == 201, r.text
        u = r.json()["data"]
        assert u["email"] == "packer@crm.io"
        assert u["is_active"] is True
        assert "password_hash" not in u

        r = client.post("/api/auth/login", json={"email": "packer@crm.io", "password": "packer1"})
        assert r.status_code == 200, r.text
        assert r.json()["data"]["user"]["role"] == "MANAGER"

    def test_list_is_newest_first(self, client, admin_headers):
        client.post("/api/users", json=_new_user(), headers=admin_headers)
        r = client.get("/api/users", headers=admin_headers)
        emails = [u["email"] for u in r.json()["data"]]
        assert emails[0] == "packer@crm.io"
        assert len(emails) == 4

        r = client.get("/api/users", params={"role": "analyst"}, headers=admin_headers)
        assert [u["email"] for u in r.json()["data"]] == ["analyst@crm.io"]

    def test_duplicate_email_conflicts(self, client, admin_headers):
        r = client.post("/api/users", json=_new_user(email="MANAGER@crm.io"), headers=admin_headers)
        assert r.status_code == 409
        assert r.json() == {"success": False, "error": "Email already exists"}

    def test_validation(self, client, admin_headers):
        assert client.post("/api/users", json=_new_user(password="123"), headers=admin_headers).status_code == 422
        assert client.post("/api/users", json=_new_user(role="OWNER"), headers=admin_headers).status_code == 422
        assert client.post("/api/users", json=_new_user(first_name=""), headers=admin_headers).status_code == 422
        assert client.post("/api/users", json=_new_user(email="not-an-email"), headers=admin_headers).status_code == 422

    def test_only_admin(self, client, manager_headers, analyst_headers, users):
        for headers in (manager_headers, analyst_headers):
            assert client.get("/api/users", headers=headers).status_code == 403
            assert client.post("/api/users", json=_new_user(), headers=headers).status_code == 403
            r = client.delete(f"/api/users/{users['ANALYST'].id}", headers=headers)
            assert r.status_code == 403


class TestUserUpdate:
    def test_password_and_role_change(self, client, db, admin_headers, users):
        target = users["ANALYST"]
        r = client.put(f"/api/users/{target.id}",
                       json={"password": "newpass1", "role": "MANAGER", "phone": "+7 900"},
                       headers=admin_headers)
        assert r.status_code == 200, r.text
        assert r.json()["data"]["role"] == "MANAGER"
        assert r.json()["data"]["phone"] == "+7 900"

        db.expire_all()
        assert verify_password("newpass1", db.get(User, target.id).password_hash)
        r = client.post("/api/auth/login", json={"email": "analyst@crm.io", "password": "secret123"})
        assert r.status_code == 401

    def test_update_without_password_keeps_hash(self, client, db, admin_headers, users):
        target = users["MANAGER"]
        old_hash = target.password_hash
        client.put(f"/api/users/{target.id}", json={"first_name": "Maria"}, headers=admin_headers)
        db.expire_all()
        row = db.get(User, target.id)
        assert row.first_name == "Maria"
        assert row.password_hash == old_hash

    def test_email_taken_by_other_user(self, client, admin_headers, users):
        r = client.put(f"/api/users/{users['MANAGER'].id}", json={"email": "analyst@crm.io"},
                       headers=admin_headers)
        assert r.status_code == 409

    def test_deactivated_user_is_locked_out(self, client, admin_headers, manager_headers, users):
        r = client.put(f"/api/users/{users['MANAGER'].id}", json={"is_active": False}, headers=admin_headers)
        assert r.json()["data"]["is_active"] is False

        r = client.post("/api/auth/login", json={"email": "manager@crm.io", "password": "secret123"})
        assert r.status_code == 403
        assert client.get("/api/auth/me", headers=manager_headers).status_code == 403

    def test_admin_cannot_demote_or_disable_self(self, client, admin_headers, users):
        me = users["ADMIN"].id
        assert client.put(f"/api/users/{me}", json={"is_active": False}, headers=admin_headers).status_code == 400
        assert client.put(f"/api/users/{me}", json={"role": "ANALYST"}, headers=admin_headers).status_code == 400
        assert client.put(f"/api/users/{me}", json={"role": "ADMIN", "phone": "1"},
                          headers=admin_headers).status_code == 200


class TestUserDelete:
    def test_delete(self, client, db, admin_headers, users):
        target = users["ANALYST"].id
        r = client.delete(f"/api/users/{target}", headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["data"] == {"id": target, "deleted": True}
        db.expire_all()
        assert db.get(User, target) is None

    def test_cannot_delete_self(self, client, admin_headers, users):
        r = client.delete(f"/api/users/{users['ADMIN'].id}", headers=admin_headers)
        assert r.status_code == 400
        assert r.json() == {"success": False, "error": "Cannot delete your own account"}

    def test_missing_user_is_404(self, client, admin_headers):
        assert client.delete("/api/users/999", headers=admin_headers).status_code == 404
        assert client.get("/api/users/999", headers=admin_headers).status_code == 404
