"""
HTTP-level tests: routing, cookie sessions, scoping and error mapping.

Usage:
    python -m pytest tests/test_api.py -v
"""
from support import ApiTestCase


# ─────────────────────────────────────────────
#  Users and sessions
# ─────────────────────────────────────────────

class TestUserEndpoints(ApiTestCase):

    def test_register_sets_http_only_cookie(self):
        client = self.client()
        response = client.post("/api/user/create", json={"login": "alice", "secret": "secret123"})
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["login"], "alice")
        self.assertNotIn("password_hash", body)
        cookie_header = response.headers["set-cookie"].lower()
        self.assertIn("session=", cookie_header)
        self.assertIn("httponly", cookie_header)

    def test_register_duplicate(self):
        self.register("alice")
        response = self.client().post("/api/user/create", json={"login": "alice", "secret": "other-secret"})
        self.assertError(response, 409, "DuplicateLogin")

    def test_register_weak_secret(self):
        response = self.client().post("/api/user/create", json={"login": "alice", "secret": "abc"})
        self.assertError(response, 422, "WeakCredential")

    def test_register_bad_login(self):
        response = self.client().post("/api/user/create", json={"login": "a/b", "secret": "secret123"})
        self.assertError(response, 422, "ValidationError")

    def test_register_missing_field(self):
        response = self.client().post("/api/user/create", json={"login": "alice"})
        self.assertError(response, 422, "ValidationError")

    def test_login_and_get(self):
        self.register("alice")
        client = self.client()
        response = client.post("/api/user/login", json={"login": "alice", "secret": "secret123"})
        self.assertEqual(response.status_code, 200, response.text)
        me = client.get("/api/user/get")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["login"], "alice")

    def test_login_failures_look_alike(self):
        self.register("alice")
        wrong = self.client().post("/api/user/login", json={"login": "alice", "secret": "secret124"})
        unknown = self.client().post("/api/user/login", json={"login": "nobody", "secret": "secret123"})
        self.assertError(wrong, 401, "InvalidCredentials")
        self.assertError(unknown, 401, "InvalidCredentials")
        self.assertEqual(wrong.json(), unknown.json())

    def test_requests_without_cookie(self):
        client = self.client()
        for method, path in (
            ("GET", "/api/user/get"),
            ("GET", "/api/todo/get"),
            ("GET", "/api/group/get"),
            ("POST", "/api/todo/markdone/1"),
            ("DELETE", "/api/todo/delete/1"),
        ):
            self.assertError(client.request(method, path), 401, "Unauthenticated")

    def test_auth_is_checked_before_body(self):
        response = self.client().post("/api/todo/create", json={})
        self.assertError(response, 401, "Unauthenticated")

    def test_logout_revokes_session(self):
        client = self.register("alice")
        token = client.cookies.get("session")
        response = client.post("/api/user/logout")
        self.assertEqual(response.status_code, 200)
        self.assertError(client.get("/api/user/get"), 401, "Unauthenticated")

        replay = self.client()
        replay.cookies.set("session", token)
        self.assertError(replay.get("/api/user/get"), 401, "Unauthenticated")

    def test_logout_without_session(self):
        self.assertEqual(self.client().post("/api/user/logout").status_code, 200)

    def test_update_user(self):
        client = self.register("alice")
        response = client.post("/api/user/update", json={"display_name": "Alice", "login": "alice"})
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["display_name"], "Alice")

    def test_update_user_login_rejected(self):
        client = self.register("alice")
        response = client.post("/api/user/update", json={"login": "alicia"})
        self.assertError(response, 422, "ValidationError")

    def test_update_secret_then_login(self):
        client = self.register("alice")
        client.post("/api/user/update", json={"secret": "brand-new"})
        fresh = self.client()
        self.assertEqual(
            fresh.post("/api/user/login", json={"login": "alice", "secret": "brand-new"}).status_code, 200
        )


# ─────────────────────────────────────────────
#  Todos and groups
# ─────────────────────────────────────────────

class TestTodoEndpoints(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.register("alice")
        self.bob = self.register("bob")

    def create_todo(self, client, **body):
        response = client.post("/api/todo/create", json=body)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_create_list_get(self):
        todo = self.create_todo(self.alice, text="Buy milk", due_at="2030-01-01T10:00:00Z")
        self.assertEqual(todo["due_at"], "2030-01-01T10:00:00")
        listed = self.alice.get("/api/todo/get").json()
        self.assertEqual([t["id"] for t in listed], [todo["id"]])
        self.assertEqual(self.alice.get(f"/api/todo/get/{todo['id']}").json()["text"], "Buy milk")

    def test_other_user_sees_nothing(self):
        todo = self.create_todo(self.alice, text="Buy milk")
        self.assertEqual(self.bob.get("/api/todo/get").json(), [])
        self.assertError(self.bob.get(f"/api/todo/get/{todo['id']}"), 404, "NotFound")
        self.assertError(self.bob.post(f"/api/todo/update/{todo['id']}", json={"text": "x"}), 404, "NotFound")
        self.assertError(self.bob.post(f"/api/todo/markdone/{todo['id']}"), 404, "NotFound")
        self.assertError(self.bob.delete(f"/api/todo/delete/{todo['id']}"), 404, "NotFound")

    def test_foreign_group_on_create(self):
        bobs = self.bob.post("/api/group/create", json={"name": "Bob's"}).json()
        response = self.alice.post("/api/todo/create", json={"text": "Sneaky", "group_id": bobs["id"]})
        self.assertError(response, 404, "NotFound")
        self.assertEqual(self.alice.get("/api/todo/get").json(), [])

    def test_empty_text(self):
        self.assertError(self.alice.post("/api/todo/create", json={"text": ""}), 422, "ValidationError")
        self.assertError(self.alice.post("/api/todo/create", json={"text": "   "}), 422, "ValidationError")

    def test_non_json_body(self):
        response = self.alice.post(
            "/api/todo/create", content="text=hi", headers={"Content-Type": "text/plain"}
        )
        self.assertError(response, 422, "ValidationError")

    def test_partial_update(self):
        todo = self.create_todo(self.alice, text="Buy milk")
        response = self.alice.post(f"/api/todo/update/{todo['id']}", json={"completed": True})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["text"], "Buy milk")
        self.assertTrue(body["completed"])
        self.assertIsNotNone(body["completed_at"])

    def test_mark_done_twice(self):
        todo = self.create_todo(self.alice, text="Buy milk")
        first = self.alice.post(f"/api/todo/markdone/{todo['id']}").json()
        second = self.alice.post(f"/api/todo/markdone/{todo['id']}").json()
        self.assertEqual(first, second)
        self.assertTrue(second["completed"])

    def test_delete_with_post_and_delete(self):
        first = self.create_todo(self.alice, text="One")
        second = self.create_todo(self.alice, text="Two")
        self.assertEqual(
            self.alice.post(f"/api/todo/delete/{first['id']}").json(), {"id": first["id"], "deleted": True}
        )
        self.assertEqual(self.alice.delete(f"/api/todo/delete/{second['id']}").status_code, 200)
        self.assertError(self.alice.delete(f"/api/todo/delete/{second['id']}"), 404, "NotFound")
        self.assertEqual(self.alice.get("/api/todo/get").json(), [])

    def test_bad_path_id(self):
        self.assertError(self.alice.post("/api/todo/markdone/abc"), 422, "ValidationError")

    def test_status_filter(self):
        todo = self.create_todo(self.alice, text="Buy milk")
        self.create_todo(self.alice, text="Call mum")
        self.alice.post(f"/api/todo/markdone/{todo['id']}")
        done = self.alice.get("/api/todo/get", params={"filter_status": "completed"}).json()
        self.assertEqual([t["id"] for t in done], [todo["id"]])
        self.assertError(
            self.alice.get("/api/todo/get", params={"filter_status": "later"}), 422, "ValidationError"
        )


class TestGroupEndpoints(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.register("alice")
        self.bob = self.register("bob")

    def test_default_group_listed(self):
        groups = self.alice.get("/api/group/get").json()
        self.assertEqual([(g["name"], g["removable"]) for g in groups], [("Notes", False)])

    def test_default_group_cannot_be_deleted(self):
        notes = self.alice.get("/api/group/get").json()[0]
        self.assertError(self.alice.post(f"/api/group/delete/{notes['id']}"), 422, "ValidationError")

    def test_update_with_arbitrary_patch(self):
        work = self.alice.post("/api/group/create", json={"name": "Work"}).json()
        renamed = self.alice.post(f"/api/group/update/{work['id']}", json={"name": "Office"})
        self.assertEqual(renamed.json()["name"], "Office")
        untouched = self.alice.post(f"/api/group/update/{work['id']}", json={"colour": "red"})
        self.assertEqual(untouched.status_code, 200)
        self.assertEqual(untouched.json()["name"], "Office")

    def test_foreign_group(self):
        work = self.alice.post("/api/group/create", json={"name": "Work"}).json()
        self.assertError(self.bob.get(f"/api/group/get/{work['id']}"), 404, "NotFound")
        self.assertError(
            self.bob.post(f"/api/group/update/{work['id']}", json={"name": "Mine"}), 404, "NotFound"
        )
        self.assertError(self.bob.delete(f"/api/group/delete/{work['id']}"), 404, "NotFound")
        self.assertEqual(self.alice.get(f"/api/group/get/{work['id']}").json()["name"], "Work")

    def test_empty_name(self):
        self.assertError(self.alice.post("/api/group/create", json={"name": " "}), 422, "ValidationError")


class TestCascadePolicyEndpoint(ApiTestCase):

    settings_overrides = {"group_delete_policy": "cascade"}

    def test_delete_group_removes_todos(self):
        alice = self.register("alice")
        work = alice.post("/api/group/create", json={"name": "Work"}).json()
        alice.post("/api/todo/create", json={"text": "Report", "group_id": work["id"]})
        self.assertEqual(alice.delete(f"/api/group/delete/{work['id']}").status_code, 200)
        self.assertEqual(alice.get("/api/todo/get").json(), [])


class TestMisc(ApiTestCase):

    def test_health(self):
        self.assertEqual(self.client().get("/health").json(), {"status": "healthy"})

    def test_unknown_route(self):
        self.assertError(self.client().get("/api/nothing"), 404, "NotFound")


# ─────────────────────────────────────────────
#  End-to-end scenario
# ─────────────────────────────────────────────

class TestScenario(ApiTestCase):

    def test_alice_work_buy_milk(self):
        self.register("alice", "secret123")

        client = self.client()
        login = client.post("/api/user/login", json={"login": "alice", "secret": "secret123"})
        self.assertEqual(login.status_code, 200)

        work = client.post("/api/group/create", json={"name": "Work"})
        self.assertEqual(work.status_code, 201)
        work_id = work.json()["id"]

        todo = client.post("/api/todo/create", json={"text": "Buy milk", "group_id": work_id})
        self.assertEqual(todo.status_code, 201)
        todo_id = todo.json()["id"]

        self.assertEqual(client.post(f"/api/todo/markdone/{todo_id}").status_code, 200)

        todos = client.get("/api/todo/get").json()
        self.assertEqual(len(todos), 1)
        self.assertEqual(todos[0]["id"], todo_id)
        self.assertTrue(todos[0]["completed"])
        self.assertEqual(todos[0]["group_id"], work_id)

        self.assertEqual(client.delete(f"/api/group/delete/{work_id}").status_code, 200)

        todos = client.get("/api/todo/get").json()
        self.assertEqual(len(todos), 1)
        self.assertEqual(todos[0]["text"], "Buy milk")
        self.assertTrue(todos[0]["completed"])
        self.assertIsNone(todos[0]["group_id"])
