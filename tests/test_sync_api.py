"""
End-to-end tests of the sync endpoints through FastAPI's TestClient.
"""

from sqlalchemy import create_engine

from app.models import Product


PULL_URL = "/api/v1/sync/pull"
PUSH_URL = "/api/v1/sync/push"


def push_body(created=(), updated=(), deleted=(), last_pulled_at=0, table="products"):
    return {
        "changes": {
            table: {"created": list(created), "updated": list(updated), "deleted": list(deleted)}
        },
        "last_pulled_at": last_pulled_at,
    }


def fetch(session_factory, model, record_id):
    with session_factory() as session:
        return session.get(model, record_id)


def test_health_check(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestPullEndpoint:

    def test_initial_sync_returns_all_data(self, client, seed, clock):
        seed(Product, "prod_1", last_modified=1000, name="Initial Product")

        response = client.get(PULL_URL, params={"last_pulled_at": 0})

        assert response.status_code == 200
        body = response.json()
        assert body["timestamp"] == clock.now
        assert [r["id"] for r in body["changes"]["products"]["created"]] == ["prod_1"]
        assert body["changes"]["product_batches"] == {"created": [], "updated": [], "deleted": []}

    def test_categorizes_existing_records_as_updated(self, client, seed):
        seed(Product, "upd_1", last_modified=1500, server_created_at=500)

        body = client.get(PULL_URL, params={"last_pulled_at": 1000}).json()

        products = body["changes"]["products"]
        assert products["created"] == []
        assert [r["id"] for r in products["updated"]] == ["upd_1"]

    def test_includes_deleted_records_modified_after_last_sync(self, client, seed):
        seed(Product, "prod_1", last_modified=1000)
        seed(Product, "del_1", last_modified=3000, is_deleted=True)

        products = client.get(PULL_URL, params={"last_pulled_at": 2000}).json()["changes"]["products"]

        assert products["deleted"] == ["del_1"]
        assert products["created"] == []

    def test_wire_keys_are_snake_case(self, client, seed):
        seed(Product, "p1", last_modified=100, item_id="ITEM-1")

        record = client.get(PULL_URL).json()["changes"]["products"]["created"][0]

        assert {"item_id", "bar_code", "is_required_batch_id", "last_modified", "server_created_at"} <= set(record)
        assert all(key == key.lower() for key in record)

    def test_turbo_returns_same_content_pre_rendered(self, client, seed):
        seed(Product, "p1", last_modified=100)

        normal = client.get(PULL_URL, params={"last_pulled_at": 0})
        turbo = client.get(PULL_URL, params={"last_pulled_at": 0, "turbo": "true"})

        assert turbo.status_code == 200
        assert turbo.headers["content-type"].startswith("application/json")
        assert turbo.json() == normal.json()

    def test_negative_checkpoint_is_a_bad_request(self, client):
        response = client.get(PULL_URL, params={"last_pulled_at": -1})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"


class TestPushEndpoint:

    def test_push_returns_ok(self, client, session_factory):
        response = client.post(PUSH_URL, json=push_body(created=[{"id": "n1", "name": "New"}]))

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert fetch(session_factory, Product, "n1").name == "New"

    def test_existing_id_in_created_array_updates_instead_of_failing(self, client, seed, session_factory):
        seed(Product, "prod_1", last_modified=1000, name="Initial Product")

        response = client.post(
            PUSH_URL,
            json=push_body(created=[{"id": "prod_1", "name": "Retried Name", "sku": "SKU-updated"}], last_pulled_at=1000),
        )

        assert response.status_code == 200
        assert fetch(session_factory, Product, "prod_1").name == "Retried Name"

    def test_conflict_returns_409_with_reason(self, client, seed, session_factory):
        seed(Product, "prod_1", last_modified=2000, name="Server")

        response = client.post(
            PUSH_URL, json=push_body(updated=[{"id": "prod_1", "name": "Client"}], last_pulled_at=500)
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "CONFLICT"
        assert detail["table"] == "products"
        assert detail["id"] == "prod_1"
        assert fetch(session_factory, Product, "prod_1").name == "Server"

    def test_partial_failure_rolls_back_entire_batch(self, client, session_factory):
        body = push_body(
            created=[{"id": "valid_1", "name": "I am valid"}, {"id": "invalid_1", "name": None}],
            last_pulled_at=1000,
        )

        response = client.post(PUSH_URL, json=body)

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"
        assert fetch(session_factory, Product, "valid_1") is None

    def test_unknown_table_is_a_bad_request(self, client):
        response = client.post(PUSH_URL, json=push_body(created=[{"id": "c1"}], table="customers"))

        assert response.status_code == 400

    def test_missing_checkpoint_is_a_bad_request(self, client):
        response = client.post(PUSH_URL, json={"changes": {}})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_push_then_pull_round_trip(self, client, clock):
        client.post(PUSH_URL, json=push_body(created=[{"id": "X", "name": "Round"}]))
        pushed_at = clock.now
        clock.advance(50)

        seen = client.get(PULL_URL, params={"last_pulled_at": pushed_at - 1}).json()
        unseen = client.get(PULL_URL, params={"last_pulled_at": pushed_at}).json()

        assert [r["id"] for r in seen["changes"]["products"]["created"]] == ["X"]
        assert unseen["changes"]["products"]["created"] == []

    def test_storage_failure_returns_400_and_nothing_is_committed(self, client, engine, session_factory):
        with engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE product_batches")
        body = {
            "changes": {
                "products": {"created": [{"id": "kept_out", "name": "Never stored"}]},
                "product_batches": {"created": [{"id": "b1", "item_number": "I", "batch_number": "L"}]},
            },
            "last_pulled_at": 0,
        }

        response = client.post(PUSH_URL, json=body)

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "STORAGE_FAILURE"
        assert fetch(session_factory, Product, "kept_out") is None


class TestSeedDbEndpoint:

    def test_returns_valid_sqlite_file_with_correct_data(self, client, seed, tmp_path):
        seed(Product, "prod_1", last_modified=1000, name="Initial Product")
        seed(Product, "gone", last_modified=1000, is_deleted=True)

        response = client.get("/api/v1/sync/seed-db")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/x-sqlite3"
        assert len(response.content) > 0

        path = tmp_path / "initial.db"
        path.write_bytes(response.content)
        engine = create_engine(f"sqlite:///{path}")
        try:
            with engine.connect() as conn:
                assert conn.exec_driver_sql("PRAGMA user_version").scalar() == 1
                rows = conn.exec_driver_sql("SELECT id, _status FROM products").all()
                assert [tuple(r) for r in rows] == [("prod_1", "synced")]
        finally:
            engine.dispose()

    def test_storage_failure_returns_400(self, client, engine):
        with engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE products")

        response = client.get("/api/v1/sync/seed-db")

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "STORAGE_FAILURE"
