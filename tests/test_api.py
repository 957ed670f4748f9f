import io
import unittest
from pathlib import Path

from fastapi import UploadFile
from fastapi.testclient import TestClient
from starlette.datastructures import Headers

from blog_platform.api.server import _read_upload, create_app

from support import JPEG_BYTES, PNG_BYTES, TempWorkspace


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.ws = TempWorkspace()
        self.addCleanup(self.ws.cleanup)
        self.app = create_app(self.ws.cfg)
        # Entering the client runs startup (schema + upload dir).
        client = TestClient(self.app)
        self.client = client.__enter__()
        self.addCleanup(client.__exit__, None, None, None)

    def register(self, name="A", email="a@x.com", password="secret123"):
        return self.client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )

    def login(self, email="a@x.com", password="secret123"):
        return self.client.post("/api/auth/login", json={"email": email, "password": password})

    def signup_and_token(self, name="A", email="a@x.com", password="secret123") -> str:
        self.assertEqual(self.register(name, email, password).status_code, 200)
        resp = self.login(email, password)
        self.assertEqual(resp.status_code, 200)
        # Use explicit Bearer headers; drop the cookie the login just set.
        self.client.cookies.clear()
        return resp.json()["access_token"]

    @staticmethod
    def bearer(token: str):
        return {"Authorization": f"Bearer {token}"}


class StartupTests(ApiTestCase):
    def test_startup_creates_upload_dir_and_health(self):
        self.assertTrue(Path(self.ws.cfg.UPLOAD_DIR).is_dir())
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})


class AuthApiTests(ApiTestCase):
    def test_register(self):
        resp = self.register()
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Register success")
        self.assertIsInstance(body["data"]["id"], int)
        self.assertNotIn("password", body["data"])

    def test_register_duplicate_email(self):
        self.register()
        resp = self.register(name="B")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"success": False, "message": "Email already registered"})
        self.assertEqual(self.ws.count_rows("users"), 1)

    def test_register_validation(self):
        resp = self.register(email="not-an-email")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Email must be a valid email address")

        resp = self.register(password="123")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Password must be at least 6 characters")

    def test_login_sets_http_only_cookie_and_returns_token(self):
        self.register()
        resp = self.login()
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["message"], "Login success")
        self.assertEqual(body["token_type"], "bearer")
        self.assertTrue(body["access_token"])
        self.assertEqual(body["data"]["email"], "a@x.com")

        set_cookie = resp.headers["set-cookie"]
        self.assertIn(f"auth={body['access_token']}", set_cookie)
        self.assertIn("HttpOnly", set_cookie)
        self.assertIn("Max-Age=604800", set_cookie)

    def test_bad_credentials_are_indistinguishable(self):
        self.register()
        wrong_pw = self.login(password="wrong-password")
        unknown = self.login(email="ghost@x.com")
        self.assertEqual(wrong_pw.status_code, 400)
        self.assertEqual(unknown.status_code, 400)
        self.assertEqual(wrong_pw.json(), unknown.json())
        self.assertEqual(wrong_pw.json()["message"], "Email or Password is incorrect")
        self.assertNotIn("set-cookie", wrong_pw.headers)

    def test_me_and_logout_with_cookie(self):
        self.register()
        self.login()
        me = self.client.get("/api/auth/me")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["data"]["email"], "a@x.com")

        self.assertEqual(self.client.post("/api/auth/logout").status_code, 200)
        self.assertEqual(self.client.get("/api/auth/me").status_code, 401)


class PostApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.token = self.signup_and_token()

    def create(self, token=None, files=None, **data):
        data.setdefault("title", "Hello World")
        data.setdefault("content", "My first post")
        return self.client.post(
            "/api/posts",
            data=data,
            files=files,
            headers=self.bearer(token or self.token),
        )

    def test_requires_session(self):
        for method, url in (
            ("get", "/api/posts"),
            ("get", "/api/posts/1"),
            ("post", "/api/posts"),
            ("patch", "/api/posts/1"),
            ("delete", "/api/posts/1"),
        ):
            resp = self.client.request(method.upper(), url)
            self.assertEqual(resp.status_code, 401, url)
            self.assertEqual(resp.json(), {"success": False, "message": "Unauthorized"})

    def test_invalid_token_rejected(self):
        resp = self.client.get("/api/posts", headers=self.bearer(self.token + "x"))
        self.assertEqual(resp.status_code, 401)

        self.client.cookies.set("auth", "garbage")
        self.assertEqual(self.client.get("/api/posts").status_code, 401)

    def test_cookie_session(self):
        self.login()
        self.assertIn("auth", self.client.cookies)
        resp = self.client.post("/api/posts", data={"title": "Cookie", "content": "via cookie"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get("/api/posts").json()["data"][0]["title"], "Cookie")

    def test_title_length_bounds(self):
        too_short = self.create(title="ab")
        self.assertEqual(too_short.status_code, 400)
        self.assertEqual(too_short.json()["message"], "Title must be between 3 and 100 characters")

        self.assertEqual(self.create(title="abc").status_code, 200)
        self.assertEqual(self.create(title="a" * 100).status_code, 200)
        self.assertEqual(self.create(title="a" * 101).status_code, 400)
        self.assertEqual(self.ws.count_rows("posts"), 2)

    def test_content_length_bounds(self):
        resp = self.create(content="hi")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Content must be between 3 and 1000 characters")
        self.assertEqual(self.create(content="x" * 1000).status_code, 200)
        self.assertEqual(self.create(content="x" * 1001).status_code, 400)

    def test_create_with_image_and_serve_it(self):
        resp = self.create(files={"image": ("cat.png", PNG_BYTES, "image/png")})
        self.assertEqual(resp.status_code, 200)
        image = resp.json()["data"]["image"]
        self.assertTrue(image.startswith("/uploads/"))

        served = self.client.get(image)
        self.assertEqual(served.status_code, 200)
        self.assertEqual(served.content, PNG_BYTES)
        self.assertEqual(served.headers["content-type"], "image/png")

    def test_served_jpeg_keeps_its_type(self):
        image = self.create(files={"image": ("cat.jpg", JPEG_BYTES, "image/jpeg")}).json()["data"]["image"]
        self.assertEqual(self.client.get(image).headers["content-type"], "image/jpeg")

    def test_awkward_filenames_are_stored_and_fetchable(self):
        for name in ("a" * 250 + ".png", "a#b?.png", "my photo.png"):
            resp = self.create(files={"image": (name, PNG_BYTES, "image/png")})
            self.assertEqual(resp.status_code, 200, name)
            served = self.client.get(resp.json()["data"]["image"])
            self.assertEqual(served.status_code, 200, name)
            self.assertEqual(served.content, PNG_BYTES)

    def test_missing_upload_is_404(self):
        resp = self.client.get("/uploads/nope.png")
        self.assertEqual(resp.status_code, 404)
        self.assertFalse(resp.json()["success"])

    def test_rejected_images_write_nothing(self):
        upload_dir = Path(self.ws.cfg.UPLOAD_DIR)

        bad_type = self.create(files={"image": ("doc.pdf", b"%PDF-1.4", "application/pdf")})
        self.assertEqual(bad_type.status_code, 400)
        self.assertEqual(bad_type.json()["message"], "Image must be a jpeg, png or gif file")

        too_big = self.create(files={"image": ("big.png", b"\x00" * (6 * 1024 * 1024), "image/png")})
        self.assertEqual(too_big.status_code, 400)
        self.assertEqual(too_big.json()["message"], "Image must be at most 5MB")

        self.assertEqual(list(upload_dir.iterdir()), [])
        self.assertEqual(self.ws.count_rows("posts"), 0)

    def test_category_linkage(self):
        cat_id = self.ws.add_category("Tech")
        resp = self.create(category_id=str(cat_id))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["categoryId"], cat_id)

        missing = self.create(category_id="999")
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.json()["message"], "Category not found")

        cats = self.client.get("/api/categories").json()["data"]
        self.assertEqual(cats, [{"id": cat_id, "name": "Tech"}])

    def test_partial_update(self):
        post = self.create(published="true").json()["data"]
        resp = self.client.patch(
            f"/api/posts/{post['id']}",
            data={"title": "new"},
            headers=self.bearer(self.token),
        )
        self.assertEqual(resp.status_code, 200)
        updated = resp.json()["data"]
        self.assertEqual(resp.json()["message"], "Update Data Post!")
        self.assertEqual(updated["title"], "new")
        self.assertEqual(updated["content"], post["content"])
        self.assertEqual(updated["image"], post["image"])
        self.assertEqual(updated["categoryId"], post["categoryId"])
        self.assertTrue(updated["published"])

    def test_update_validation(self):
        post = self.create().json()["data"]
        resp = self.client.patch(
            f"/api/posts/{post['id']}",
            data={"title": "no"},
            headers=self.bearer(self.token),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Title must be between 3 and 100 characters")

    def test_cross_user_access_is_not_found(self):
        post = self.create().json()["data"]
        other = self.signup_and_token("B", "b@x.com")
        url = f"/api/posts/{post['id']}"

        for resp in (
            self.client.get(url, headers=self.bearer(other)),
            self.client.patch(url, data={"title": "mine now"}, headers=self.bearer(other)),
            self.client.delete(url, headers=self.bearer(other)),
        ):
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json(), {"success": False, "message": "Data not found!"})

        self.assertEqual(self.client.get("/api/posts", headers=self.bearer(other)).json()["data"], [])
        still = self.client.get(url, headers=self.bearer(self.token)).json()["data"]
        self.assertEqual(still["title"], "Hello World")

    def test_non_numeric_id_is_not_found(self):
        resp = self.client.get("/api/posts/abc", headers=self.bearer(self.token))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Data not found!")


class ReadUploadTests(unittest.TestCase):
    def upload(self, data: bytes, filename="big.png"):
        return UploadFile(
            file=io.BytesIO(data),
            filename=filename,
            headers=Headers({"content-type": "image/png"}),
        )

    def test_reads_at_most_one_byte_past_the_limit(self):
        image = _read_upload(self.upload(b"\x00" * 1000), 10)
        self.assertEqual(len(image.data), 11)
        self.assertEqual(image.content_type, "image/png")

    def test_small_file_read_whole(self):
        image = _read_upload(self.upload(PNG_BYTES), 1024)
        self.assertEqual(image.data, PNG_BYTES)

    def test_empty_part_is_no_image(self):
        self.assertIsNone(_read_upload(None, 10))
        self.assertIsNone(_read_upload(self.upload(b"", filename=""), 10))


class EndToEndTests(ApiTestCase):
    def test_register_login_create_list_delete(self):
        reg = self.register(name="A", email="a@x.com", password="secret123")
        self.assertEqual(reg.status_code, 200)
        user_id = reg.json()["data"]["id"]

        login = self.login(email="a@x.com", password="secret123")
        self.assertEqual(login.status_code, 200)
        token = login.json()["access_token"]
        headers = self.bearer(token)

        created = self.client.post(
            "/api/posts",
            data={"title": "Hello World", "content": "My first post", "published": "true"},
            headers=headers,
        )
        self.assertEqual(created.status_code, 200)
        post = created.json()["data"]
        self.assertEqual(post["userId"], user_id)
        self.assertTrue(post["published"])

        listed = self.client.get("/api/posts", headers=headers)
        self.assertEqual(listed.status_code, 200)
        self.assertEqual([p["id"] for p in listed.json()["data"]], [post["id"]])

        deleted = self.client.delete(f"/api/posts/{post['id']}", headers=headers)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(deleted.json()["data"]["id"], post["id"])

        gone = self.client.get(f"/api/posts/{post['id']}", headers=headers)
        self.assertEqual(gone.status_code, 400)
        self.assertEqual(gone.json()["message"], "Data not found!")


if __name__ == "__main__":
    unittest.main()
