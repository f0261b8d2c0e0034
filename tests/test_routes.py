import asyncio

import pytest
from fastapi.testclient import TestClient

from main import create_app
from services.annotation.base_annotator import AnnotatorOutput
from utils.database_init import AsyncDatabaseInitializer

from conftest import DEFAULT_FINDINGS, FailingAnnotator, FixedAnnotator


def _payload(name, **overrides):
    payload = {
        "filename": name,
        "storage_path": f"/data/{name}",
        "file_size": 1024,
        "width": 800,
        "height": 600,
        "metadata": {"source": "test"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_DIR", str(tmp_path))
    monkeypatch.setenv("ANNOTATOR_BACKEND", "simulated")
    monkeypatch.delenv("REPROCESS_POLICY", raising=False)
    return tmp_path


@pytest.fixture
def annotator():
    return FixedAnnotator(
        by_id={
            1: AnnotatorOutput(0.9, DEFAULT_FINDINGS),
            2: AnnotatorOutput(0.3, DEFAULT_FINDINGS),
            3: AnnotatorOutput(0.1, DEFAULT_FINDINGS),
        }
    )


@pytest.fixture
def client(env, annotator):
    with TestClient(create_app(annotator=annotator)) as test_client:
        yield test_client


def _seed(client, count=4):
    return [client.post("/images", json=_payload(f"img_{i}.jpg")).json() for i in range(1, count + 1)]


def test_health(client):
    body = client.get("/health").json()
    assert body["ok"] is True
    assert body["db_initialized"] is True
    assert body["annotator"] == "fixed"
    assert body["openai_available"] is False


def test_create_and_fetch_image(client):
    response = client.post("/images", json=_payload("a.jpg"))
    assert response.status_code == 201
    created = response.json()
    assert created["id"] == 1
    assert created["metadata"] == {"source": "test"}

    fetched = client.get("/images/1").json()
    assert fetched["filename"] == "a.jpg"
    assert fetched["annotation_result"] is None
    assert [i["id"] for i in client.get("/images").json()] == [1]


def test_list_images_paging(client):
    _seed(client, 5)
    page = client.get("/images", params={"limit": 2, "offset": 1}).json()
    assert [i["id"] for i in page] == [2, 3]
    assert [i["id"] for i in client.get("/images", params={"offset": 3}).json()] == [4, 5]
    assert client.get("/images", params={"limit": 0}).status_code == 422


@pytest.mark.parametrize(
    "overrides",
    [{"file_size": 0}, {"width": -1}, {"height": 0}, {"filename": ""}],
)
def test_create_image_validation(client, overrides):
    response = client.post("/images", json=_payload("bad.jpg", **overrides))
    assert response.status_code == 422


def test_get_missing_image_is_404(client):
    assert client.get("/images/5").status_code == 404


def test_process_image(client):
    _seed(client, 1)
    response = client.post("/images/1/process")
    assert response.status_code == 200
    result = response.json()
    assert result["image_id"] == 1
    assert result["status"] == "annotated"
    assert result["confidence_level"] == "high"
    assert result["annotations"] == DEFAULT_FINDINGS

    detail = client.get("/images/1").json()
    assert detail["annotation_result"]["id"] == result["id"]


def test_process_missing_image_is_404(client):
    response = client.post("/images/99/process")
    assert response.status_code == 404
    assert "99" in response.json()["detail"]


def test_batch_and_overview(client):
    _seed(client, 4)
    results = client.post("/processing/batch", json={"image_ids": [1, 2, 3]}).json()
    assert [r["status"] for r in results] == ["annotated", "annotated", "manual_review"]

    overview = client.get("/overview").json()
    assert overview == {
        "total_images": 4,
        "processed_images": 3,
        "pending_images": 1,
        "annotated_images": 2,
        "skipped_images": 0,
        "manual_review_images": 1,
        "average_confidence": pytest.approx((0.9 + 0.3 + 0.1) / 3),
        "processing_completion_rate": 0.75,
    }

    pending = client.post("/processing/batch", json={"process_all_pending": True}).json()
    assert [r["image_id"] for r in pending] == [4]
    assert len(client.get("/annotation-results").json()) == 4


def test_empty_batch_requests(client):
    _seed(client, 2)
    assert client.post("/processing/batch", json={}).json() == []
    assert client.post("/processing/batch", json={"image_ids": []}).json() == []
    assert client.get("/annotation-results").json() == []


def test_batch_with_unknown_id_is_404(client):
    _seed(client, 2)
    response = client.post("/processing/batch", json={"image_ids": [1, 7]})
    assert response.status_code == 404
    assert client.get("/annotation-results").json() == []


def test_reset(client):
    _seed(client, 3)
    client.post("/processing/batch", json={"process_all_pending": True})

    body = client.post("/processing/reset").json()
    assert body["success"] is True
    assert body["removed"] == 3
    assert "Removed 3 annotation results" in body["message"]

    overview = client.get("/overview").json()
    assert overview["processed_images"] == 0
    assert overview["pending_images"] == 3
    assert client.post("/processing/reset").json()["removed"] == 0


def test_images_with_annotations_and_delete(client):
    _seed(client, 2)
    client.post("/images/1/process")

    views = client.get("/images/with-annotations").json()
    assert views[0]["annotation_result"]["status"] == "annotated"
    assert views[1]["annotation_result"] is None

    assert client.delete("/images/1").json() == {"success": True}
    assert client.delete("/images/1").json() == {"success": False}
    assert client.get("/annotation-results").json() == []
    assert client.get("/overview").json()["total_images"] == 1


def test_reject_policy_returns_409(env, annotator, monkeypatch):
    monkeypatch.setenv("REPROCESS_POLICY", "reject")
    with TestClient(create_app(annotator=annotator)) as client:
        _seed(client, 1)
        assert client.post("/images/1/process").status_code == 200
        assert client.post("/images/1/process").status_code == 409


def test_annotator_failure_returns_502(env):
    with TestClient(create_app(annotator=FailingAnnotator())) as client:
        _seed(client, 1)
        response = client.post("/images/1/process")
        assert response.status_code == 502
        assert client.get("/annotation-results").json() == []


def test_default_simulated_annotator(env, monkeypatch):
    monkeypatch.setenv("ANNOTATOR_SEED", "11")
    with TestClient(create_app()) as client:
        assert client.get("/health").json()["annotator"] == "simulated"
        _seed(client, 5)
        results = client.post("/processing/batch", json={"process_all_pending": True}).json()
        assert len(results) == 5
        for result in results:
            assert (result["status"] == "annotated") == (result["annotations"] is not None)


async def _drop_results_table(db_dir):
    async with AsyncDatabaseInitializer(db_dir).connection() as conn:
        await conn.execute("DROP TABLE ANNOTATION_RESULT")
        await conn.commit()


def test_store_failure_returns_502(client, env):
    _seed(client, 1)
    asyncio.run(_drop_results_table(env))

    overview = client.get("/overview")
    assert overview.status_code == 502
    assert "no such table" in overview.json()["detail"]
    assert client.post("/images/1/process").status_code == 502
    assert client.get("/annotation-results").status_code == 502
    assert client.post("/processing/reset").status_code == 502
