import unittest

from sparkfeed.config import IngestSettings
from sparkfeed.ingestion.project_types import CanonicalProject
from sparkfeed.storage.reconcile import UpsertResult

from web_app import create_app


class FakePipeline:
    def __init__(self, *, result=None, project=None, error=None):
        self.result = result or UpsertResult(created=2, updated=5)
        self.project = project
        self.error = error
        self.refreshed = []

    def run(self):
        if self.error:
            raise self.error
        return self.result

    def refresh_one(self, identifier):
        self.refreshed.append(identifier)
        if self.error:
            raise self.error
        if self.project is None:
            return None, UpsertResult()
        return self.project, UpsertResult(created=0, updated=1)


SOLO = CanonicalProject(
    title="Solo Agent",
    external_id="solo",
    external_url="https://example.com/projects/solo",
    slug="solo-agent",
    categories=("AI",),
)


class TestRefreshEndpoint(unittest.TestCase):
    def client_for(self, pipeline):
        app = create_app(IngestSettings(), pipeline_factory=lambda: pipeline)
        app.testing = True
        return app.test_client()

    def test_full_refresh(self):
        resp = self.client_for(FakePipeline()).post("/api/admin/refresh-agent-projects")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.get_json(),
            {"success": True, "message": "Refresh complete", "new": 2, "updated": 5},
        )

    def test_single_project(self):
        pipeline = FakePipeline(project=SOLO)
        resp = self.client_for(pipeline).post("/api/admin/refresh-agent-projects?slug=solo")
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertTrue(body["success"])
        self.assertEqual(body["slug"], "solo")
        self.assertEqual((body["new"], body["updated"]), (0, 1))
        self.assertEqual(body["project"]["title"], "Solo Agent")
        self.assertEqual(body["project"]["categories"], ["AI"])
        self.assertEqual(body["project"]["status"], "Published")
        self.assertEqual(pipeline.refreshed, ["solo"])

    def test_single_project_not_found(self):
        resp = self.client_for(FakePipeline()).post("/api/admin/refresh-agent-projects?slug=ghost")
        self.assertEqual(resp.status_code, 404)
        body = resp.get_json()
        self.assertFalse(body["success"])
        self.assertEqual(body["slug"], "ghost")

    def test_blank_slug_means_full_run(self):
        pipeline = FakePipeline()
        resp = self.client_for(pipeline).post("/api/admin/refresh-agent-projects?slug=%20")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(pipeline.refreshed, [])

    def test_failure_is_generic_500(self):
        resp = self.client_for(FakePipeline(error=RuntimeError("db password wrong"))).post(
            "/api/admin/refresh-agent-projects"
        )
        self.assertEqual(resp.status_code, 500)
        body = resp.get_json()
        self.assertEqual(body, {"success": False, "message": "Something went wrong..."})

    def test_get_not_allowed(self):
        resp = self.client_for(FakePipeline()).get("/api/admin/refresh-agent-projects")
        self.assertEqual(resp.status_code, 405)

    def test_cors_preflight(self):
        resp = self.client_for(FakePipeline()).options(
            "/api/admin/refresh-agent-projects",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )
        self.assertEqual(resp.headers.get("Access-Control-Allow-Origin"), "http://localhost:5173")


if __name__ == "__main__":
    unittest.main()
