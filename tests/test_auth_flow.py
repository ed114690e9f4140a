from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from sqlalchemy import inspect

from listit import create_app
from listit.extensions import db
from listit.models import User


class AuthFlowTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_db_uri = os.getenv("SQLALCHEMY_DATABASE_URI")
        cls._prev_db_url = os.getenv("DATABASE_URL")
        db_uri = "sqlite:///:memory:"
        os.environ["SQLALCHEMY_DATABASE_URI"] = db_uri
        os.environ["DATABASE_URL"] = db_uri
        cls.app = create_app()
        cls.app.config.update(TESTING=True)

    @classmethod
    def tearDownClass(cls):
        if cls._prev_db_uri is None:
            os.environ.pop("SQLALCHEMY_DATABASE_URI", None)
        else:
            os.environ["SQLALCHEMY_DATABASE_URI"] = cls._prev_db_uri
        if cls._prev_db_url is None:
            os.environ.pop("DATABASE_URL", None)
        else:
            os.environ["DATABASE_URL"] = cls._prev_db_url

    def setUp(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.create_all()
        self.client = self.app.test_client()

    def _register(self, **overrides):
        payload = {"username": "alice", "email": "Alice@Example.com", "password": "secret1"}
        payload.update(overrides)
        return self.client.post("/api/register", json=payload)

    def test_register_returns_user_token_and_cookie(self):
        res = self._register()
        self.assertEqual(res.status_code, 201, res.get_data(as_text=True))
        body = res.get_json()
        self.assertEqual(body["email"], "alice@example.com")
        self.assertEqual(body["username"], "alice")
        self.assertFalse(body["is_admin"])
        self.assertTrue(body["token"])
        cookie = res.headers.get("Set-Cookie") or ""
        self.assertIn("token=", cookie)
        self.assertIn("HttpOnly", cookie)

    def test_register_accepts_name_alias(self):
        res = self._register(username=None, name="bob_the_seller", email="bob@example.com")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.get_json()["username"], "bob_the_seller")

    def test_register_validation(self):
        self.assertEqual(self._register(password="").status_code, 400)
        self.assertEqual(self._register(username="ab").status_code, 400)
        self.assertEqual(self._register(username="x" * 33).status_code, 400)
        self.assertEqual(self._register(password="12345").status_code, 400)

    def test_duplicate_email_and_username_conflict(self):
        self.assertEqual(self._register().status_code, 201)
        res = self._register(username="alice2")
        self.assertEqual(res.status_code, 409)
        self.assertIn("Email", res.get_json()["message"])
        res = self._register(email="other@example.com", username="ALICE")
        self.assertEqual(res.status_code, 409)
        self.assertIn("Username", res.get_json()["message"])

    def test_login_with_bearer_token(self):
        self._register()
        res = self.client.post("/api/login", json={"email": "alice@example.com", "password": "secret1"})
        self.assertEqual(res.status_code, 200)
        token = res.get_json()["token"]

        fresh = self.app.test_client()
        me = fresh.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.get_json()["email"], "alice@example.com")

    def test_login_rejects_bad_password(self):
        self._register()
        res = self.client.post("/api/login", json={"email": "alice@example.com", "password": "nope123"})
        self.assertEqual(res.status_code, 401)
        res = self.client.post("/api/login", json={"email": "", "password": ""})
        self.assertEqual(res.status_code, 400)

    def test_cookie_session_and_logout(self):
        self._register()
        me = self.client.get("/api/me")
        self.assertEqual(me.get_json()["username"], "alice")

        out = self.client.post("/api/logout")
        self.assertEqual(out.status_code, 200)
        self.assertTrue(out.get_json()["ok"])
        me = self.client.get("/api/me")
        self.assertEqual(me.status_code, 200)
        self.assertIsNone(me.get_json())

    def test_me_with_garbage_token_is_null(self):
        res = self.app.test_client().get("/api/me", headers={"Authorization": "Bearer not-a-jwt"})
        self.assertEqual(res.status_code, 200)
        self.assertIsNone(res.get_json())

    def test_admin_bootstrap_is_idempotent(self):
        env = {
            "ADMIN_EMAIL": "root@listit.test",
            "ADMIN_USERNAME": "root",
            "ADMIN_PASSWORD": "rootpass",
        }
        runner = self.app.test_cli_runner()
        with patch.dict(os.environ, env, clear=False):
            first = runner.invoke(args=["bootstrap-admin"])
            second = runner.invoke(args=["bootstrap-admin"])
        self.assertEqual(first.exit_code, 0, first.output)
        self.assertEqual(second.exit_code, 0, second.output)
        self.assertIn("admin_bootstrap_ok root@listit.test", second.output)
        with self.app.app_context():
            admins = User.query.filter_by(email="root@listit.test").all()
            self.assertEqual(len(admins), 1)
            self.assertTrue(admins[0].is_admin)

    def test_bootstrap_admin_requires_credentials(self):
        runner = self.app.test_cli_runner()
        with patch.dict(os.environ, {"ADMIN_EMAIL": "", "ADMIN_PASSWORD": ""}, clear=False):
            res = runner.invoke(args=["bootstrap-admin"])
        self.assertNotEqual(res.exit_code, 0)

    def test_startup_bootstrap_leaves_schema_to_migrations(self):
        env = {"ADMIN_EMAIL": "root@listit.test", "ADMIN_PASSWORD": "rootpass"}
        with patch.dict(os.environ, env, clear=False):
            fresh = create_app()
        with fresh.app_context():
            self.assertEqual(inspect(db.engine).get_table_names(), [])

    def test_admin_password_is_kept_verbatim(self):
        env = {"ADMIN_EMAIL": "root@listit.test", "ADMIN_USERNAME": "root", "ADMIN_PASSWORD": "  spaced pass  "}
        with patch.dict(os.environ, env, clear=False):
            res = self.app.test_cli_runner().invoke(args=["bootstrap-admin"])
        self.assertEqual(res.exit_code, 0, res.output)
        with self.app.app_context():
            admin = User.query.filter_by(email="root@listit.test").one()
            self.assertTrue(admin.check_password("  spaced pass  "))
            self.assertFalse(admin.check_password("spaced pass"))

    def test_existing_account_is_promoted_without_renaming(self):
        self.assertEqual(self._register(email="root@listit.test", username="rooty").status_code, 201)
        env = {"ADMIN_EMAIL": "Root@listit.test", "ADMIN_USERNAME": "root", "ADMIN_PASSWORD": "other-pass"}
        with patch.dict(os.environ, env, clear=False):
            res = self.app.test_cli_runner().invoke(args=["bootstrap-admin"])
        self.assertEqual(res.exit_code, 0, res.output)
        with self.app.app_context():
            admin = User.query.filter_by(email="root@listit.test").one()
            self.assertTrue(admin.is_admin)
            self.assertEqual(admin.username, "rooty")
            self.assertTrue(admin.check_password("secret1"))


if __name__ == "__main__":
    unittest.main()
