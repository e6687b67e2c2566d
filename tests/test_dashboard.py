import asyncio

import pytest
from bson import Decimal128, ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from conftest import FakeClientFactory
from learnboard.core.config import Config
from learnboard.db.connection import ConnectionManager
from learnboard.main import create_app
from learnboard.users.user_store import IdentityStore

EXPECTED_SERIES = [{"quizNumber": 1, "marks": 70}, {"quizNumber": 2, "marks": 85}]


def _token(test_client, email="ada@example.com", password="correct-horse"):
    r = test_client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


def test_dashboard_shape(test_client, seed_user):
    seed_user()

    r = test_client.post("/api/dashboard", json={"email": "ada@example.com"})
    assert r.status_code == 200, r.text
    assert r.json() == {
        "user": {"name": "Ada"},
        "performanceData": EXPECTED_SERIES,
        "result": [70, 85],
        "weakTopics": ["Algebra", "Geometry"],
    }


def test_mapping_history_matches_sequence_history(test_client, seed_user):
    seed_user(email="seq@example.com", result=[70, 85])
    seed_user(email="map@example.com", result={"0": 70, "1": 85})

    seq = test_client.post("/api/dashboard", json={"email": "seq@example.com"}).json()
    mapped = test_client.post("/api/dashboard", json={"email": "map@example.com"}).json()

    assert seq["performanceData"] == mapped["performanceData"] == EXPECTED_SERIES
    assert mapped["result"] == {"0": 70, "1": 85}


def test_quiz_records_with_bson_values_are_echoed_as_json(test_client, seed_user):
    first, second = ObjectId(), ObjectId()
    seed_user(result=[{"score": 70, "quizId": first}, {"score": Decimal128("85"), "quizId": second}])

    r = test_client.post("/api/dashboard", json={"email": "ada@example.com"})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["performanceData"] == EXPECTED_SERIES
    assert data["result"] == [
        {"score": 70, "quizId": str(first)},
        {"score": 85.0, "quizId": str(second)},
    ]


def test_dashboard_is_idempotent(test_client, seed_user):
    seed_user(result=[{"score": 40}, {"score": 55}, 90])

    first = test_client.post("/api/dashboard", json={"email": "ada@example.com"}).json()
    second = test_client.post("/api/dashboard", json={"email": "ada@example.com"}).json()
    assert first["performanceData"] == second["performanceData"]


@pytest.mark.parametrize("body", [{}, {"email": ""}, {"email": None}])
def test_missing_email_is_400_before_store_access(test_client, connections, fake_db, body):
    r = test_client.post("/api/dashboard", json=body)
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_input"
    assert connections.connect_attempts == 0
    assert fake_db.users.calls == 0


def test_unknown_user_is_404(test_client):
    r = test_client.post("/api/dashboard", json={"email": "ghost@example.com"})
    assert r.status_code == 404
    assert r.json() == {"error": "not_found", "detail": "User not found"}


def test_query_failure_is_500_with_detail(test_client, fake_db):
    fake_db.users.fail_with = OperationFailure("operation exceeded time limit")

    r = test_client.post("/api/dashboard", json={"email": "ada@example.com"})
    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "query_error"
    assert "operation exceeded time limit" in body["detail"]


def test_connection_failure_is_500(config):
    factory = FakeClientFactory(fail_with=ServerSelectionTimeoutError("localhost:27017: Connection refused"))
    app = create_app(config=config, connection_manager=ConnectionManager(config, client_factory=factory))

    r = TestClient(app).post("/api/dashboard", json={"email": "ada@example.com"})
    assert r.status_code == 500
    assert r.json()["error"] == "connection_error"

# ==================== OWNERSHIP CHECK ====================

@pytest.fixture
def strict_client(env, connections):
    env.setenv("DASHBOARD_REQUIRE_SESSION", "true")
    return TestClient(create_app(config=Config(), connection_manager=connections))


def test_strict_mode_requires_a_session(strict_client, seed_user):
    seed_user()
    r = strict_client.post("/api/dashboard", json={"email": "ada@example.com"})
    assert r.status_code == 401


def test_strict_mode_rejects_other_users_email(strict_client, seed_user):
    seed_user()
    seed_user(email="victim@example.com")
    token = _token(strict_client)

    r = strict_client.post(
        "/api/dashboard",
        json={"email": "victim@example.com"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 403
    assert r.json()["error"] == "forbidden"


def test_strict_mode_allows_own_email(strict_client, seed_user):
    seed_user()
    token = _token(strict_client)

    r = strict_client.post(
        "/api/dashboard",
        json={"email": "ada@example.com"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 200
    assert "X-Session-Token" in r.headers

# ==================== UPDATES ====================

def test_record_result_appends_to_sequence(test_client, seed_user):
    seed_user()
    token = _token(test_client)

    r = test_client.post(
        "/api/dashboard/results",
        json={"score": 92},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["performanceData"][-1] == {"quizNumber": 3, "marks": 92}


def test_record_result_extends_mapping(test_client, seed_user, fake_db):
    seed_user(result={"0": 70, "1": 85})
    token = _token(test_client)

    r = test_client.post(
        "/api/dashboard/results",
        json={"score": 60},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 200, r.text
    assert fake_db.users.docs[0]["result"]["2"] == 60
    assert r.json()["performanceData"][-1] == {"quizNumber": 3, "marks": 60}


def test_record_result_requires_session(test_client):
    r = test_client.post("/api/dashboard/results", json={"score": 50})
    assert r.status_code == 401


def test_record_result_rejects_out_of_range_score(test_client, seed_user):
    seed_user()
    token = _token(test_client)
    r = test_client.post(
        "/api/dashboard/results",
        json={"score": 140},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 400


def test_update_weak_topics(test_client, seed_user):
    seed_user()
    token = _token(test_client)

    r = test_client.put(
        "/api/dashboard/weak-topics",
        json={"weakTopics": [" Fractions ", "Algebra", "Fractions", ""]},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["weakTopics"] == ["Fractions", "Algebra"]


def test_record_result_does_not_overwrite_a_concurrent_mapping_write(connections, seed_user, fake_db):
    seed_user(result={"0": 70, "1": 85})
    users = fake_db.users
    real_find_one = users.find_one
    lookups = []

    async def find_one_then_race(query):
        doc = await real_find_one(query)
        lookups.append(query)
        if len(lookups) == 1:
            # Another request records quiz 3 right after our first read
            users.docs[0]["result"]["2"] = 99
        return doc

    users.find_one = find_one_then_race
    user = asyncio.run(IdentityStore(connections).record_result("ada@example.com", 60))

    assert users.docs[0]["result"] == {"0": 70, "1": 85, "2": 99, "3": 60}
    assert user.results.performance_series()[-2:] == [
        {"quizNumber": 3, "marks": 99},
        {"quizNumber": 4, "marks": 60},
    ]
