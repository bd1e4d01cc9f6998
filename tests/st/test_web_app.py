"""部署 API 端点测试"""

from __future__ import annotations

import asyncio
import threading

import pytest

from sitedeploy.core.models import CommandResult
from sitedeploy.web.app import app
from sitedeploy.web.routes import deploy_bp as deploy_routes

from conftest import PUBLIC_ENDPOINT


@pytest.fixture()
def client(fake_container):
    deploy_routes.reset_run()
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c
    deploy_routes.get_run().join(5)
    deploy_routes.reset_run()


class GatedExecutor:
    """阻塞到 gate 打开才返回的执行器"""

    def __init__(self) -> None:
        self.gate = threading.Event()

    async def execute(self, cmd, *, cwd=".", env=None, timeout=None) -> CommandResult:
        await asyncio.to_thread(self.gate.wait, 5)
        return CommandResult(0)


class TestGlobalErrorHandlers:
    def test_404_returns_json(self, client) -> None:
        resp = client.get("/api/nonexistent")
        assert resp.status_code == 404
        assert "error" in resp.get_json()

    def test_405_returns_json(self, client) -> None:
        resp = client.delete("/api/deploy")
        assert resp.status_code == 405
        assert "error" in resp.get_json()

    def test_version(self, client) -> None:
        from sitedeploy import __version__
        assert client.get("/api/version").get_json() == {"version": __version__}


class TestApiDeploy:
    def test_deploy_and_poll(self, client) -> None:
        resp = client.post("/api/deploy", json={})
        assert resp.status_code == 202

        deploy_routes.get_run().join(5)
        data = client.get("/api/deploy/status").get_json()
        assert data["running"] is False
        assert data["outcome"]["success"] is True
        assert data["outcome"]["summary"] == PUBLIC_ENDPOINT
        assert data["events"][-1]["kind"] == "publish_completed"

    def test_failed_deploy_reports_last_failure(self, client, executor) -> None:
        executor.results = [CommandResult(1, stderr="syntax error")]
        client.post("/api/deploy")
        deploy_routes.get_run().join(5)

        data = client.get("/api/deploy/status").get_json()
        assert data["outcome"]["success"] is False
        assert data["outcome"]["error_code"] == "EXTERNAL_PROCESS_FAILURE"
        assert "syntax error" in data["last_failure"]

    def test_second_deploy_conflicts(self, client, fake_container) -> None:
        gated = GatedExecutor()
        fake_container._instances["executor"] = gated
        try:
            assert client.post("/api/deploy").status_code == 202
            resp = client.post("/api/deploy")
            assert resp.status_code == 409
            assert "error" in resp.get_json()
            assert client.get("/api/deploy/status").get_json()["running"] is True
        finally:
            gated.gate.set()
        deploy_routes.get_run().join(5)
        assert client.post("/api/deploy").status_code == 202

    def test_invalid_config_returns_400(self, client, fake_container) -> None:
        fake_container.config.container = ""
        resp = client.post("/api/deploy")
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "CONFIG_ERROR"

    def test_non_object_body(self, client) -> None:
        resp = client.post("/api/deploy", json=["prod"])
        assert resp.status_code == 400

    def test_site_dir_in_body_rejected(self, client, executor, tmp_path) -> None:
        resp = client.post("/api/deploy", json={"site_dir": str(tmp_path)})
        assert resp.status_code == 400
        assert "site_dir" in resp.get_json()["error"]
        assert deploy_routes.get_run().thread is None
        assert executor.calls == []

    def test_build_runs_in_configured_site_dir(self, client, executor, site) -> None:
        assert client.post("/api/deploy", json={"name": "deploy"}).status_code == 202
        deploy_routes.get_run().join(5)
        assert executor.calls
        assert {cwd for _, cwd in executor.calls} == {str(site)}
