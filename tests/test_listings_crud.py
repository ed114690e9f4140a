from __future__ import annotations

import base64
import io
import os
import time
import unittest

from PIL import Image

from listit import create_app
from listit.extensions import db
from listit.models import Listing, ListingImage, User
from listit.utils.jwt_utils import create_token


def _png_data_url(color: str = "red") -> str:
    buf = io.BytesIO()
    Image.new("RGB", (2, 2), color).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


class ListingsCrudTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_db_uri = os.getenv("SQLALCHEMY_DATABASE_URI")
        cls._prev_db_url = os.getenv("DATABASE_URL")
        db_uri = "sqlite:///:memory:"
        os.environ["SQLALCHEMY_DATABASE_URI"] = db_uri
        os.environ["DATABASE_URL"] = db_uri
        cls.app = create_app()
        cls.app.config.update(TESTING=True)
        cls.client = cls.app.test_client()
        cls.red = _png_data_url("red")
        cls.blue = _png_data_url("blue")

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
            self.owner_id = self._seed_user("owner")
            self.stranger_id = self._seed_user("stranger")
            self.admin_id = self._seed_user("admin", is_admin=True)

    def _seed_user(self, prefix: str, *, is_admin: bool = False) -> int:
        stamp = str(time.time_ns())
        u = User(email=f"{prefix}-{stamp}@listit.test", username=f"{prefix}{stamp[-6:]}", is_admin=is_admin)
        u.set_password("Passw0rd!")
        db.session.add(u)
        db.session.commit()
        return int(u.id)

    def _auth(self, user_id: int) -> dict:
        return {"Authorization": f"Bearer {create_token(user_id)}"}

    def _create(self, **overrides):
        payload = {
            "images": [self.red, self.blue],
            "title": "  vintage   road bike ",
            "description": "Steel frame, new tyres",
            "location": "Brooklyn, NY",
            "price": 180,
            "tags": ["Bike", "bike", "Road!", "x" * 40, ""],
        }
        payload.update(overrides)
        return self.client.post("/api/listings", json=payload, headers=self._auth(self.owner_id))

    def test_create_normalises_fields(self):
        res = self._create()
        self.assertEqual(res.status_code, 201, res.get_data(as_text=True))
        body = res.get_json()
        self.assertEqual(body["title"], "Vintage road bike")
        self.assertEqual(body["tags"], ["bike", "road"])
        self.assertEqual(body["image_data"], self.red)
        self.assertEqual(body["price"], 180.0)

        images = self.client.get(f"/api/listings/{body['id']}/images")
        self.assertEqual(images.get_json(), [self.red, self.blue])

    def test_title_defaults_to_description(self):
        res = self._create(title="")
        self.assertEqual(res.get_json()["title"], "Steel frame, new tyres")

    def test_long_fields_are_truncated(self):
        res = self._create(description="d" * 500, location="L" * 120, title="t" * 120)
        body = res.get_json()
        self.assertEqual(len(body["description"]), 400)
        self.assertEqual(len(body["location"]), 80)
        self.assertEqual(len(body["title"]), 80)

    def test_create_requires_auth(self):
        res = self.client.post("/api/listings", json={"images": [self.red]})
        self.assertEqual(res.status_code, 401)

    def test_create_rejects_bad_images(self):
        self.assertEqual(self._create(images=[]).status_code, 400)
        self.assertEqual(self._create(images=["http://example.com/a.png"]).status_code, 400)
        self.assertEqual(self._create(images=["data:image/png;base64,bm90IGFuIGltYWdl"]).status_code, 400)
        self.assertEqual(self._create(images=[self.red] * 11).status_code, 400)

    def test_legacy_single_image_field(self):
        res = self._create(images=None, image_data=self.blue)
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.get_json()["image_data"], self.blue)

    def test_create_rejects_missing_fields(self):
        self.assertEqual(self._create(description="").status_code, 400)
        self.assertEqual(self._create(location="  ").status_code, 400)
        self.assertEqual(self._create(price="12").status_code, 400)
        self.assertEqual(self._create(price=True).status_code, 400)

    def test_owner_partial_update(self):
        listing_id = self._create().get_json()["id"]
        res = self.client.put(
            f"/api/listings/{listing_id}",
            json={"price": 150.5, "location": "Queens, NY", "tags": "Commuter, Steel"},
            headers=self._auth(self.owner_id),
        )
        self.assertEqual(res.status_code, 200)
        body = res.get_json()
        self.assertEqual(body["price"], 150.5)
        self.assertEqual(body["location"], "Queens, NY")
        self.assertEqual(body["tags"], ["commuter", "steel"])
        self.assertEqual(body["title"], "Vintage road bike")
        self.assertEqual(body["description"], "Steel frame, new tyres")

    def test_update_replaces_images(self):
        listing_id = self._create().get_json()["id"]
        res = self.client.put(
            f"/api/listings/{listing_id}",
            json={"images": [self.blue]},
            headers=self._auth(self.owner_id),
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["image_data"], self.blue)
        self.assertEqual(self.client.get(f"/api/listings/{listing_id}/images").get_json(), [self.blue])
        with self.app.app_context():
            self.assertEqual(ListingImage.query.filter_by(listing_id=listing_id).count(), 1)

    def test_stranger_cannot_edit_or_delete(self):
        listing_id = self._create().get_json()["id"]
        res = self.client.put(f"/api/listings/{listing_id}", json={"price": 1}, headers=self._auth(self.stranger_id))
        self.assertEqual(res.status_code, 403)
        res = self.client.delete(f"/api/listings/{listing_id}", headers=self._auth(self.stranger_id))
        self.assertEqual(res.status_code, 403)

    def test_admin_can_edit_and_owner_can_delete(self):
        listing_id = self._create().get_json()["id"]
        res = self.client.put(f"/api/listings/{listing_id}", json={"price": 99}, headers=self._auth(self.admin_id))
        self.assertEqual(res.status_code, 200)
        res = self.client.delete(f"/api/listings/{listing_id}", headers=self._auth(self.owner_id))
        self.assertEqual(res.status_code, 200)
        with self.app.app_context():
            self.assertIsNone(db.session.get(Listing, listing_id))
            self.assertEqual(ListingImage.query.filter_by(listing_id=listing_id).count(), 0)

    def test_missing_listing_is_404(self):
        res = self.client.put("/api/listings/999", json={"price": 1}, headers=self._auth(self.owner_id))
        self.assertEqual(res.status_code, 404)
        res = self.client.delete("/api/listings/999", headers=self._auth(self.owner_id))
        self.assertEqual(res.status_code, 404)
        self.assertEqual(self.client.get("/api/listings/999/images").get_json(), [])


if __name__ == "__main__":
    unittest.main()
