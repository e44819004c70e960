import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from legacy_portal.app import create_app
from legacy_portal.config import Settings
from legacy_portal.dependencies import get_gateway
from legacy_portal.gateway import (
    AUTH_TABLE,
    BLOGS_TABLE,
    CONTRIBUTIONS_TABLE,
    FORUM_POSTS_TABLE,
    PROFILES_TABLE,
    InMemoryGateway,
)

PROTECTED_PATHS = ["/legacy", "/legacy/p1", "/forum", "/blog", "/blog/b1"]


def _profile(profile_id, name, tenure_start, tenure_end=None):
    return {
        "id": profile_id,
        "name": name,
        "image_url": f"https://img.test/{profile_id}.png",
        "description": f"About {name}",
        "one_liner": f"{name} says hi",
        "tenure_start": tenure_start,
        "tenure_end": tenure_end,
    }


class LegacyPortalAppTests(unittest.TestCase):
    def setUp(self):
        settings = Settings(
            _env_file=None,
            use_in_memory_backends=True,
            session_secret="test-secret",
        )
        self.app = create_app(settings)
        self.gateway = InMemoryGateway()
        self.app.dependency_overrides[get_gateway] = lambda: self.gateway
        self.client = TestClient(self.app)

        self.gateway.seed(
            PROFILES_TABLE,
            [
                _profile("p2", "Zed Later", "2020-01-01"),
                _profile("p1", "Amy Earlier", "2010-01-01", "2014-12-31"),
                _profile("p3", "Max Middle", "2015-06-01", "2019-12-31"),
            ],
        )
        self.gateway.seed(
            AUTH_TABLE,
            [
                {"username": "amy", "password": "pw1", "legacy_profile_id": "p1"},
                {"username": "zed", "password": "pw2", "legacy_profile_id": "p2"},
            ],
        )
        self.gateway.seed(
            BLOGS_TABLE,
            [
                {
                    "id": "b1",
                    "title": "Old Blog",
                    "content": "Line one\nLine two",
                    "created_at": "2012-03-04T10:00:00+00:00",
                    "legacy_profile_id": "p1",
                },
                {
                    "id": "b2",
                    "title": "New Blog",
                    "content": "Fresh",
                    "created_at": "2021-05-06T10:00:00+00:00",
                    "legacy_profile_id": "p2",
                },
            ],
        )
        self.gateway.seed(
            FORUM_POSTS_TABLE,
            [
                {
                    "id": "f1",
                    "title": "Older Thread",
                    "content": "first",
                    "created_at": "2019-01-01T00:00:00+00:00",
                    "legacy_profile_id": "p2",
                },
                {
                    "id": "f2",
                    "title": "Newer Thread",
                    "content": "second",
                    "created_at": "2020-01-01T00:00:00+00:00",
                    "legacy_profile_id": "p1",
                },
            ],
        )

    def tearDown(self):
        self.app.dependency_overrides.clear()

    def _login(self, username="amy", password="pw1"):
        return self.client.post(
            "/",
            data={"username": username, "password": password},
            follow_redirects=False,
        )

    def test_protected_routes_redirect_to_login_without_session(self):
        for path in PROTECTED_PATHS:
            response = self.client.get(path, follow_redirects=False)
            self.assertEqual(response.status_code, 303, path)
            self.assertEqual(response.headers["location"], "/", path)

    def test_login_page_renders_without_navigation(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("<h1>Login</h1>", response.text)
        self.assertNotIn('action="/logout"', response.text)

    def test_login_success_redirects_to_directory(self):
        response = self._login()
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/legacy")

        directory = self.client.get("/legacy")
        self.assertEqual(directory.status_code, 200)
        self.assertIn('action="/logout"', directory.text)

    def test_login_failure_shows_generic_message_and_no_session(self):
        response = self._login(password="wrong")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Invalid username or password", response.text)

        guarded = self.client.get("/legacy", follow_redirects=False)
        self.assertEqual(guarded.status_code, 303)

    def test_ambiguous_credentials_are_rejected(self):
        self.gateway.seed(
            AUTH_TABLE,
            [{"username": "amy", "password": "pw1", "legacy_profile_id": "p3"}],
        )
        response = self._login()
        self.assertEqual(response.status_code, 200)
        self.assertIn("Invalid username or password", response.text)

    def test_directory_sorted_by_tenure_start(self):
        self._login()
        html = self.client.get("/legacy").text
        positions = [html.index(name) for name in ("Amy Earlier", "Max Middle", "Zed Later")]
        self.assertEqual(positions, sorted(positions))
        self.assertIn('href="/legacy/p3"', html)
        self.assertIn("2020-01-01 - Present", html)
        self.assertIn("2010-01-01 - 2014-12-31", html)

    def test_profile_page_shows_contribution_form_only_to_owner(self):
        self._login()
        own = self.client.get("/legacy/p1")
        self.assertEqual(own.status_code, 200)
        self.assertIn("Amy Earlier", own.text)
        self.assertIn('id="contribution-form"', own.text)

        other = self.client.get("/legacy/p2")
        self.assertEqual(other.status_code, 200)
        self.assertIn("Zed Later", other.text)
        self.assertNotIn('id="contribution-form"', other.text)

    def test_profile_page_lists_owned_posts(self):
        self._login()
        html = self.client.get("/legacy/p1").text
        self.assertIn("Old Blog", html)
        self.assertIn("Posted on 2012-03-04", html)
        self.assertIn("Newer Thread", html)
        self.assertNotIn("New Blog", html)
        self.assertNotIn("Older Thread", html)

    def test_unknown_profile_stays_loading(self):
        self._login()
        response = self.client.get("/legacy/does-not-exist")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Loading...", response.text)
        self.assertNotIn('id="contribution-form"', response.text)

    def test_owner_can_add_contribution(self):
        self._login()
        response = self.client.post(
            "/legacy/p1/contributions",
            data={
                "title": "Slides",
                "resource_url": "https://example.com/slides",
                "description": "Talk slides",
            },
            follow_redirects=False,
        )
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/legacy/p1")

        rows = self.gateway.tables[CONTRIBUTIONS_TABLE]
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["legacy_profile_id"], "p1")
        self.assertEqual(rows[0]["resource_url"], "https://example.com/slides")

        html = self.client.get("/legacy/p1").text
        self.assertIn('href="https://example.com/slides"', html)
        self.assertIn("Talk slides", html)

    def test_non_owner_contribution_is_ignored(self):
        self._login()
        response = self.client.post(
            "/legacy/p2/contributions",
            data={
                "title": "Sneaky",
                "resource_url": "https://example.com/x",
                "description": "Not mine",
            },
            follow_redirects=False,
        )
        self.assertEqual(response.status_code, 303)
        self.assertNotIn(CONTRIBUTIONS_TABLE, self.gateway.tables)

    def test_forum_sorted_newest_first_with_owner_names(self):
        self._login()
        html = self.client.get("/forum").text
        self.assertLess(html.index("Newer Thread"), html.index("Older Thread"))
        self.assertIn("Posted by Amy Earlier on 2020-01-01", html)
        self.assertIn("Posted by Zed Later on 2019-01-01", html)

    def test_forum_submit_creates_post_for_session_profile(self):
        self._login()
        response = self.client.post(
            "/forum", data={"title": "T", "content": "B"}, follow_redirects=False
        )
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/forum")

        created = [
            row for row in self.gateway.tables[FORUM_POSTS_TABLE] if row["title"] == "T"
        ]
        self.assertEqual(len(created), 1)
        self.assertEqual(created[0]["content"], "B")
        self.assertEqual(created[0]["legacy_profile_id"], "p1")

        html = self.client.get("/forum").text
        self.assertIn("<h2>T</h2>", html)
        # The new post is the most recent one.
        self.assertLess(html.index("<h2>T</h2>"), html.index("Newer Thread"))

    def test_forum_submit_with_blank_fields_is_not_stored(self):
        self._login()
        self.client.post("/forum", data={"title": "", "content": "B"})
        self.assertEqual(len(self.gateway.tables[FORUM_POSTS_TABLE]), 2)

    def test_blog_index_sorted_newest_first(self):
        self._login()
        html = self.client.get("/blog").text
        self.assertLess(html.index("New Blog"), html.index("Old Blog"))
        self.assertIn('href="/blog/b1"', html)
        self.assertIn("Posted by Zed Later on 2021-05-06", html)

    def test_blog_detail_and_unknown_blog(self):
        self._login()
        detail = self.client.get("/blog/b1")
        self.assertEqual(detail.status_code, 200)
        self.assertIn("<h1>Old Blog</h1>", detail.text)
        self.assertIn("Posted by Amy Earlier", detail.text)
        self.assertIn("Line one\nLine two", detail.text)

        missing = self.client.get("/blog/nope")
        self.assertIn("Loading...", missing.text)

    def test_logout_clears_session(self):
        self._login()
        self.assertEqual(self.client.get("/forum").status_code, 200)

        response = self.client.post("/logout", follow_redirects=False)
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/")

        for path in PROTECTED_PATHS:
            guarded = self.client.get(path, follow_redirects=False)
            self.assertEqual(guarded.status_code, 303, path)
            self.assertEqual(guarded.headers["location"], "/", path)

    def test_healthz(self):
        response = self.client.get("/healthz")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})


class SettingsDrivenAppTests(unittest.TestCase):
    def setUp(self):
        settings = Settings(
            _env_file=None,
            supabase_url=None,
            supabase_anon_key=None,
            database_url=None,
            use_in_memory_backends=True,
            session_secret="test-secret",
        )
        with patch.dict("os.environ", {}, clear=True):
            self.app = create_app(settings)
        self.client = TestClient(self.app)

    def test_login_without_overrides_uses_configured_gateway(self):
        response = self.client.post("/", data={"username": "a", "password": "b"})
        self.assertEqual(response.status_code, 200)
        self.assertIn("Invalid username or password", response.text)

    def test_gateway_persists_across_requests(self):
        self.app.state.gateway.seed(
            PROFILES_TABLE, [_profile("p1", "Amy Earlier", "2010-01-01")]
        )
        self.app.state.gateway.seed(
            AUTH_TABLE,
            [{"username": "amy", "password": "pw1", "legacy_profile_id": "p1"}],
        )
        self.client.post("/", data={"username": "amy", "password": "pw1"})
        self.client.post("/forum", data={"title": "T", "content": "B"})

        html = self.client.get("/forum").text
        self.assertIn("<h2>T</h2>", html)
        self.assertIn("Posted by Amy Earlier", html)


if __name__ == "__main__":
    unittest.main()
