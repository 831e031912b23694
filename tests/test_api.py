"""HTTP tests for the job, article and identification routes."""

import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from conftest import build_engine, build_session_maker, create_tables, seed_catalog
from legaldocs.database import engine as app_engine, get_session
from legaldocs.main import app
from legaldocs.services.jobs.registry import JobRegistry


@pytest.fixture
def api(tmp_path, document_source, matcher):
    """App with an isolated database and job registry."""
    engine = build_engine(tmp_path / "api.db")
    session_maker = build_session_maker(engine)
    registry = JobRegistry.from_settings(
        session_maker,
        data_dir=tmp_path / "jobs",
        document_source=document_source,
        matcher=matcher,
    )

    async def override_session():
        async with session_maker() as session:
            yield session

    app.state.jobs = registry
    app.dependency_overrides[get_session] = override_session
    try:
        with TestClient(app) as client:
            client.portal.call(create_tables, engine)
            catalog = client.portal.call(seed_catalog, session_maker)
            yield SimpleNamespace(client=client, catalog=catalog, registry=registry)
            client.portal.call(engine.dispose)
            client.portal.call(app_engine.dispose)
    finally:
        app.dependency_overrides.pop(get_session, None)
        del app.state.jobs


def wait_for(api, queue, job_id):
    return api.client.portal.call(queue.wait_until_finished, job_id, 5)


def test_health(api):
    response = api.client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["queues"]["articles"] == {"running": True, "paused": False}
    assert body["queues"]["req-identification"] == {"running": True, "paused": False}


class TestJobs:
    def test_unknown_job(self, api):
        response = api.client.get("/api/v1/jobs/articles/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"message": "Job not found"}

    def test_unknown_job_type(self, api):
        response = api.client.get("/api/v1/jobs/translations/1")
        assert response.status_code == 404
        assert response.json() == {"message": "Job not found"}

    def test_delete_paused_job(self, api):
        api.registry.articles.pause()
        job_id = api.client.post(f"/api/v1/legal-basis/{api.catalog.federal_id}/extract-articles").json()["jobId"]
        assert api.client.get(f"/api/v1/jobs/articles/{job_id}").json()["status"] == "paused"

        response = api.client.delete(f"/api/v1/jobs/articles/{job_id}")
        assert response.status_code == 200
        assert response.json() == {"success": True, "jobId": job_id, "message": "Job removed"}
        assert api.client.get(f"/api/v1/jobs/articles/{job_id}").status_code == 404
        assert api.client.delete(f"/api/v1/jobs/articles/{job_id}").status_code == 404


class TestArticles:
    """Extraction through the HTTP surface."""

    def test_extract_and_list_articles(self, api):
        lb_id = api.catalog.federal_waste_id
        response = api.client.post(f"/api/v1/legal-basis/{lb_id}/extract-articles")
        assert response.status_code == 202
        job_id = response.json()["jobId"]

        wait_for(api, api.registry.articles, job_id)
        status = api.client.get(f"/api/v1/jobs/articles/{job_id}")
        assert status.status_code == 200
        assert status.json() == {
            "status": "completed",
            "message": "Job completed successfully",
            "jobProgress": 100,
        }
        # polling a finished job is stable
        assert api.client.get(f"/api/v1/jobs/articles/{job_id}").json() == status.json()

        listing = api.client.get(f"/api/v1/legal-basis/{lb_id}/articles").json()
        assert listing["legal_basis_id"] == lb_id
        assert [(a["article_name"], a["article_order"]) for a in listing["articles"]] == [
            ("PREFACIO", 1),
            ("TRANSITORIO III", 2),
            ("ANEXO 1", 3),
        ]
        assert listing["articles"][0]["description"] == "PREFACIO\nEsta norma..."

    def test_failed_extraction_reports_error(self, api):
        job_id = api.client.post(f"/api/v1/legal-basis/{api.catalog.air_lb_id}/extract-articles").json()["jobId"]
        wait_for(api, api.registry.articles, job_id)
        response = api.client.get(f"/api/v1/jobs/articles/{job_id}")
        assert response.status_code == 200
        assert response.json() == {"status": "failed", "message": "Job failed", "error": "Article Processing Error"}

    def test_duplicate_extraction_conflicts(self, api):
        api.registry.articles.pause()
        lb_id = api.catalog.federal_id
        first = api.client.post(f"/api/v1/legal-basis/{lb_id}/extract-articles")
        second = api.client.post(f"/api/v1/legal-basis/{lb_id}/extract-articles")
        assert second.status_code == 409
        assert second.json()["errors"]["jobId"] == first.json()["jobId"]

    def test_pending_jobs(self, api):
        lb_id = api.catalog.federal_id
        url = f"/api/v1/jobs/articles/legalBasis/{lb_id}"
        assert api.client.get(url).json() == {"hasPendingJobs": False, "progress": None}

        api.registry.articles.pause()
        api.client.post(f"/api/v1/legal-basis/{lb_id}/extract-articles")
        assert api.client.get(url).json() == {"hasPendingJobs": True, "progress": 0}

    def test_missing_legal_basis(self, api):
        assert api.client.post("/api/v1/legal-basis/9999/extract-articles").status_code == 404
        assert api.client.get("/api/v1/legal-basis/9999/articles").status_code == 404
        assert api.client.get("/api/v1/legal-basis/9999").status_code == 404
        response = api.client.get("/api/v1/jobs/articles/legalBasis/9999")
        assert response.status_code == 404
        assert response.json()["message"] == "LegalBasis not found"

    def test_legal_basis_without_document(self, api):
        response = api.client.post(f"/api/v1/legal-basis/{api.catalog.no_document_id}/extract-articles")
        assert response.status_code == 400

    def test_get_legal_basis(self, api):
        response = api.client.get(f"/api/v1/legal-basis/{api.catalog.federal_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["legal_name"] == "Ley General Ambiental"
        assert body["subject"]["abbreviation"] == "AMB"
        assert [a["abbreviation"] for a in body["aspects"]] == ["ORG", "RES"]


class TestReqIdentification:
    """Identification requests through the HTTP surface."""

    def test_create_and_read_back(self, api):
        lb_id = api.catalog.federal_id
        extract = api.client.post(f"/api/v1/legal-basis/{lb_id}/extract-articles").json()
        wait_for(api, api.registry.articles, extract["jobId"])

        response = api.client.post(
            "/api/v1/req-identification",
            json={
                "reqIdentificationName": "  Identificación planta norte  ",
                "legalBasisIds": json.dumps([lb_id]),
                "intelligenceLevel": "High",
            },
        )
        assert response.status_code == 201
        created = response.json()
        wait_for(api, api.registry.req_identification, created["jobId"])

        status = api.client.get(f"/api/v1/jobs/req-identification/{created['jobId']}").json()
        assert status["status"] == "completed"

        detail = api.client.get(f"/api/v1/req-identification/{created['reqIdentificationId']}")
        assert detail.status_code == 200
        body = detail.json()
        assert body["name"] == "Identificación planta norte"
        assert body["status"] == "Completed"
        assert body["intelligence_level"] == "High"
        assert body["job_id"] == created["jobId"]
        assert body["legal_basis_ids"] == [lb_id]
        assert len(body["requirements"]) == 2
        names = sorted(r["requirement_name"] for r in body["requirements"])
        assert names == ["AMB - ORG, RES - 12", "AMB - ORG, RES - 7"]
        for requirement in body["requirements"]:
            assert len(requirement["articles"]) == 4

    def test_different_subjects(self, api):
        response = api.client.post(
            "/api/v1/req-identification",
            json={
                "reqIdentificationName": "Mezcla",
                "legalBasisIds": [api.catalog.federal_id, api.catalog.other_subject_lb_id],
            },
        )
        assert response.status_code == 400
        assert response.json()["message"] == "All selected legal bases must have the same subject"

    def test_missing_legal_bases(self, api):
        response = api.client.post(
            "/api/v1/req-identification",
            json={"reqIdentificationName": "Faltantes", "legalBasisIds": [api.catalog.federal_id, 9999]},
        )
        assert response.status_code == 404
        assert response.json() == {"message": "LegalBasis not found for IDs", "errors": {"notFoundIds": [9999]}}

    def test_duplicate_name(self, api):
        body = {"reqIdentificationName": "Repetida", "legalBasisIds": [api.catalog.federal_id]}
        assert api.client.post("/api/v1/req-identification", json=body).status_code == 201
        response = api.client.post("/api/v1/req-identification", json=body)
        assert response.status_code == 409

    @pytest.mark.parametrize(
        "body",
        [
            {"legalBasisIds": [1]},
            {"reqIdentificationName": "   ", "legalBasisIds": [1]},
            {"reqIdentificationName": "Sin bases", "legalBasisIds": []},
            {"reqIdentificationName": "Texto", "legalBasisIds": "no es json"},
            {"reqIdentificationName": "Nivel", "legalBasisIds": [1], "intelligenceLevel": "Medium"},
        ],
    )
    def test_invalid_body(self, api, body):
        response = api.client.post("/api/v1/req-identification", json=body)
        assert response.status_code == 400
        payload = response.json()
        assert payload["message"] == "Validation failed"
        assert payload["errors"]

    def test_missing_identification(self, api):
        response = api.client.get("/api/v1/req-identification/9999")
        assert response.status_code == 404
        assert response.json()["message"] == "Requirement Identification not found"
