from datetime import datetime

from sqlalchemy import text


def create_todo_payload(title="Test Task", description="Do something", completed=False):
    return {
        "title": title,
        "description": description,
        "completed": completed,
    }


def assert_todo_shape(todo: dict):
    # Basic structure validation
    for key in ["id", "title", "description", "completed", "created_at", "updated_at"]:
        assert key in todo
    assert isinstance(todo["id"], int)
    assert isinstance(todo["title"], str)
    assert isinstance(todo["completed"], bool)
    # Timestamps are ISO8601 strings parseable by datetime.fromisoformat
    datetime.fromisoformat(todo["created_at"])
    datetime.fromisoformat(todo["updated_at"])


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["database"] == "sqlite"


class TestTodosCRUD:
    def test_create_todo_minimal(self, client):
        res = client.post("/api/todos", json={"title": "Buy milk"})
        assert res.status_code == 201
        todo = res.json()
        assert_todo_shape(todo)
        assert todo["title"] == "Buy milk"
        assert todo["description"] is None
        assert todo["completed"] is False

    def test_create_assigns_increasing_ids(self, client):
        first = client.post("/api/todos", json=create_todo_payload(title="One")).json()
        second = client.post("/api/todos", json=create_todo_payload(title="Two")).json()
        assert second["id"] > first["id"]

    def test_create_ignores_client_supplied_id(self, client):
        res = client.post("/api/todos", json={"id": 999, "title": "Mine"})
        assert res.status_code == 201
        assert res.json()["id"] != 999

    def test_create_strips_title(self, client):
        res = client.post("/api/todos", json={"title": "  Trim me  "})
        assert res.status_code == 201
        assert res.json()["title"] == "Trim me"

    def test_get_todo_and_not_found(self, client):
        res_create = client.post("/api/todos", json=create_todo_payload(title="Read book"))
        assert res_create.status_code == 201
        tid = res_create.json()["id"]

        res_get = client.get(f"/api/todos/{tid}")
        assert res_get.status_code == 200
        fetched = res_get.json()
        assert fetched["id"] == tid
        assert fetched["title"] == "Read book"

        res_404 = client.get("/api/todos/999999")
        assert res_404.status_code == 404
        assert res_404.json()["detail"] == "Todo not found"

    def test_patch_completed_round_trip(self, client):
        tid = client.post("/api/todos", json=create_todo_payload(title="Partial", description="X")).json()["id"]

        res_patch = client.patch(f"/api/todos/{tid}", json={"completed": True})
        assert res_patch.status_code == 200
        patched = res_patch.json()
        assert patched["completed"] is True
        # untouched fields keep their values
        assert patched["title"] == "Partial"
        assert patched["description"] == "X"

        fetched = client.get(f"/api/todos/{tid}").json()
        assert fetched["completed"] is True
        assert datetime.fromisoformat(fetched["updated_at"]) >= datetime.fromisoformat(fetched["created_at"])

    def test_patch_can_clear_description(self, client):
        tid = client.post("/api/todos", json=create_todo_payload(description="to clear")).json()["id"]
        res = client.patch(f"/api/todos/{tid}", json={"description": None})
        assert res.status_code == 200
        assert res.json()["description"] is None

    def test_patch_not_found(self, client):
        res = client.patch("/api/todos/123456", json={"title": "Nope"})
        assert res.status_code == 404
        assert res.json()["detail"] == "Todo not found"

    def test_put_replace_todo(self, client):
        tid = client.post(
            "/api/todos", json=create_todo_payload(title="Initial", description="A", completed=False)
        ).json()["id"]

        res_put = client.put(f"/api/todos/{tid}", json={"title": "Replaced", "completed": True})
        assert res_put.status_code == 200
        updated = res_put.json()
        assert updated["id"] == tid
        assert updated["title"] == "Replaced"
        # omitted description is reset
        assert updated["description"] is None
        assert updated["completed"] is True

        res_put_nf = client.put("/api/todos/424242", json={"title": "Replaced"})
        assert res_put_nf.status_code == 404
        assert res_put_nf.json()["detail"] == "Todo not found"

    def test_delete_todo(self, client):
        tid = client.post("/api/todos", json=create_todo_payload(title="ToDelete")).json()["id"]

        res_del = client.delete(f"/api/todos/{tid}")
        assert res_del.status_code == 204
        assert res_del.text == ""

        res_get = client.get(f"/api/todos/{tid}")
        assert res_get.status_code == 404
        res_del_again = client.delete(f"/api/todos/{tid}")
        assert res_del_again.status_code == 404
        assert res_del_again.json()["detail"] == "Todo not found"

    def test_id_beyond_integer_range_rejected(self, client):
        huge = "9" * 25
        for res in (
            client.get(f"/api/todos/{huge}"),
            client.put(f"/api/todos/{huge}", json={"title": "x"}),
            client.patch(f"/api/todos/{huge}", json={"title": "x"}),
            client.delete(f"/api/todos/{huge}"),
            client.get("/api/todos/0"),
        ):
            assert res.status_code == 400
            assert res.json()["error"] == "ValidationError"

    def test_largest_id_is_looked_up(self, client):
        res = client.get(f"/api/todos/{2**63 - 1}")
        assert res.status_code == 404
        assert res.json()["detail"] == "Todo not found"


class TestList:
    def seed_todos(self, client, count=5):
        created_ids = []
        for i in range(count):
            payload = create_todo_payload(
                title=f"Task {i}",
                description=f"Desc {i}",
                completed=(i % 2 == 0),
            )
            res = client.post("/api/todos", json=payload)
            assert res.status_code == 201
            created_ids.append(res.json()["id"])
        return created_ids

    def test_list_empty(self, client):
        res = client.get("/api/todos")
        assert res.status_code == 200
        assert res.json() == []

    def test_list_returns_all_with_last_written_state(self, client):
        ids = self.seed_todos(client, 4)
        client.patch(f"/api/todos/{ids[1]}", json={"title": "Renamed", "completed": True})
        client.delete(f"/api/todos/{ids[3]}")

        res = client.get("/api/todos")
        assert res.status_code == 200
        items = res.json()
        assert [t["id"] for t in items] == ids[:3]
        by_id = {t["id"]: t for t in items}
        assert by_id[ids[1]]["title"] == "Renamed"
        assert by_id[ids[1]]["completed"] is True
        assert by_id[ids[0]]["title"] == "Task 0"
        for t in items:
            assert_todo_shape(t)

    def test_list_filter_completed(self, client):
        self.seed_todos(client, 6)  # completed for even indices
        data_true = client.get("/api/todos?completed=true").json()
        assert len(data_true) == 3
        assert all(item["completed"] is True for item in data_true)
        data_false = client.get("/api/todos?completed=false").json()
        assert len(data_false) == 3
        assert all(item["completed"] is False for item in data_false)

    def test_list_search_title_and_description(self, client):
        self.seed_todos(client, 5)
        titles = [t["title"] for t in client.get("/api/todos", params={"q": "task 1"}).json()]
        assert titles == ["Task 1"]
        descs = [t["description"] for t in client.get("/api/todos", params={"q": "DESC 2"}).json()]
        assert descs == ["Desc 2"]

    def test_list_search_treats_wildcards_literally(self, client):
        for title in ["Discount 50% off", "Plain task", "snake_case"]:
            assert client.post("/api/todos", json={"title": title}).status_code == 201

        percent = [t["title"] for t in client.get("/api/todos", params={"q": "%"}).json()]
        assert percent == ["Discount 50% off"]
        underscore = [t["title"] for t in client.get("/api/todos", params={"q": "_"}).json()]
        assert underscore == ["snake_case"]
        backslash = client.get("/api/todos", params={"q": "\\"}).json()
        assert backslash == []

    def test_list_sort_by_title_descending(self, client):
        self.seed_todos(client, 3)
        titles = [t["title"] for t in client.get("/api/todos?sort=-title").json()]
        assert titles == ["Task 2", "Task 1", "Task 0"]

    def test_list_sort_limit_offset(self, client):
        ids = self.seed_todos(client, 5)
        desc_ids = [t["id"] for t in client.get("/api/todos?sort=-id").json()]
        assert desc_ids == list(reversed(ids))

        page = [t["id"] for t in client.get("/api/todos?limit=2&offset=1").json()]
        assert page == ids[1:3]

    def test_list_invalid_sort(self, client):
        res = client.get("/api/todos?sort=priority")
        assert res.status_code == 400
        assert "sort must be one of" in res.json()["detail"]


class TestValidationErrors:
    def assert_validation_error(self, res):
        assert res.status_code == 400
        body = res.json()
        assert body.get("error") == "ValidationError"
        assert body.get("message") == "Request validation failed"
        assert isinstance(body.get("detail"), list)

    def test_create_without_title(self, client):
        self.assert_validation_error(client.post("/api/todos", json={"description": "x"}))

    def test_create_blank_title(self, client):
        self.assert_validation_error(client.post("/api/todos", json={"title": "  "}))

    def test_create_title_too_long(self, client):
        self.assert_validation_error(client.post("/api/todos", json={"title": "x" * 256}))

    def test_create_non_boolean_completed(self, client):
        self.assert_validation_error(client.post("/api/todos", json={"title": "t", "completed": "yes"}))

    def test_patch_null_title_rejected(self, client):
        tid = client.post("/api/todos", json={"title": "Keep"}).json()["id"]
        self.assert_validation_error(client.patch(f"/api/todos/{tid}", json={"title": None}))
        assert client.get(f"/api/todos/{tid}").json()["title"] == "Keep"

    def test_patch_null_completed_rejected(self, client):
        tid = client.post("/api/todos", json={"title": "Keep"}).json()["id"]
        self.assert_validation_error(client.patch(f"/api/todos/{tid}", json={"completed": None}))

    def test_put_requires_title(self, client):
        tid = client.post("/api/todos", json={"title": "Keep"}).json()["id"]
        self.assert_validation_error(client.put(f"/api/todos/{tid}", json={"completed": True}))

    def test_non_integer_id(self, client):
        self.assert_validation_error(client.get("/api/todos/abc"))


class TestAccessPolicy:
    def test_read_only_denies_writes(self, make_client):
        client = make_client(todos_access="R")
        assert client.get("/api/todos").status_code == 200
        # path still serves GET, so other methods are not allowed
        assert client.post("/api/todos", json={"title": "x"}).status_code == 405
        assert client.patch("/api/todos/1", json={"title": "x"}).status_code == 405
        assert client.delete("/api/todos/1").status_code == 405

    def test_create_and_read_only(self, make_client):
        client = make_client(todos_access="CR")
        tid = client.post("/api/todos", json={"title": "x"}).json()["id"]
        assert client.get(f"/api/todos/{tid}").status_code == 200
        assert client.put(f"/api/todos/{tid}", json={"title": "y"}).status_code == 405
        assert client.delete(f"/api/todos/{tid}").status_code == 405

    def test_no_access_mounts_nothing(self, make_client):
        client = make_client(todos_access="")
        assert client.get("/api/todos").status_code == 404
        assert client.get("/api/todos/1").status_code == 404


class TestConfiguration:
    def test_custom_prefix(self, make_client):
        client = make_client(api_prefix="/v2")
        assert client.post("/v2/todos", json={"title": "x"}).status_code == 201
        assert client.get("/api/todos").status_code == 404

    def test_data_survives_new_app_on_same_database(self, make_client):
        tid = make_client().post("/api/todos", json={"title": "Persisted"}).json()["id"]
        fetched = make_client().get(f"/api/todos/{tid}")
        assert fetched.status_code == 200
        assert fetched.json()["title"] == "Persisted"


class TestDatabaseErrors:
    def test_store_error_returns_500_and_server_keeps_serving(self, client):
        engine = client.app.state.database.engine
        with engine.begin() as conn:
            conn.execute(text("DROP TABLE todos"))

        res = client.get("/api/todos")
        assert res.status_code == 500
        assert res.json()["error"] == "DatabaseError"

        assert client.get("/").status_code == 200
