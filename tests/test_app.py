import pytest
from fastapi.testclient import TestClient

import app as app_module
from models import RepoInfo


@pytest.fixture
def client(controller, monkeypatch):
    monkeypatch.setattr(app_module, "controller", controller)
    return TestClient(app_module.app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_index_serves_wizard(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "AutoDeploy Agent" in response.text


def test_full_wizard_flow(client, controller, hello_project):
    state = client.get("/api/state").json()
    assert state["stage"] == "config"

    state = client.post("/api/config", json={"github_token": " ghp_secret "}).json()
    assert state["stage"] == "prompt"
    assert state["config"]["github_username"] == "octocat"
    assert "ghp_secret" not in str(state["config"])
    controller.github.verify_credential.assert_called_once_with("ghp_secret")

    controller.generator.generate_project.return_value = hello_project
    state = client.post("/api/generate", json={"prompt": "a hello world page"}).json()
    assert state["stage"] == "review"
    assert state["project"]["name"] == "hello-world"

    controller.github.create_repository.return_value = RepoInfo(
        name="hello-world", html_url="https://github.com/octocat/hello-world"
    )
    state = client.post("/api/deploy").json()
    assert state["stage"] == "success"
    assert state["repo_url"] == "https://github.com/octocat/hello-world"
    assert state["deployment_url"] is None
    assert state["logs"][-1]["message"] == "Skipping Vercel deployment (no token provided)."
    assert state["logs"][-1]["type"] == "warning"

    state = client.post("/api/new-prompt").json()
    assert state["stage"] == "prompt"
    assert state["project"] is None


def test_omitted_config_fields_keep_current_values(client, controller):
    client.post("/api/config", json={"github_token": "ghp_1", "vercel_token": "vc_1"})
    client.post("/api/config", json={"gemini_key": "AIza"})
    assert controller.state.config.github_token == "ghp_1"
    assert controller.state.config.vercel_token == "vc_1"
    assert controller.state.config.gemini_key == "AIza"


def test_empty_string_clears_saved_vercel_token(client, controller, store, hello_project):
    client.post("/api/config", json={"github_token": "ghp_1", "vercel_token": "vc_1"})
    assert controller.state.config.vercel_token == "vc_1"

    state = client.post("/api/config", json={"vercel_token": ""}).json()
    assert state["stage"] == "prompt"
    assert controller.state.config.vercel_token == ""
    assert controller.state.config.github_token == "ghp_1"
    assert store.load().vercel_token == ""

    controller.generator.generate_project.return_value = hello_project
    client.post("/api/generate", json={"prompt": "a hello world page"})
    controller.github.create_repository.return_value = RepoInfo(
        name="hello-world", html_url="https://github.com/octocat/hello-world"
    )
    state = client.post("/api/deploy").json()

    assert state["stage"] == "success"
    assert state["deployment_url"] is None
    assert sum("Skipping Vercel deployment" in e["message"] for e in state["logs"]) == 1
    controller.hosting.create_project.assert_not_called()


def test_wizard_page_can_clear_optional_secrets(client):
    page = client.get("/").text
    assert 'id="clear_vercel_token"' in page
    assert 'id="clear_gemini_key"' in page


def test_generate_before_configuration_is_ignored(client, controller):
    state = client.post("/api/generate", json={"prompt": "a hello world page"}).json()
    assert state["stage"] == "config"
    assert state["project"] is None
    controller.generator.generate_project.assert_not_called()


def test_failed_operation_is_reported_in_log_not_http_error(client, controller):
    controller.github.verify_credential.side_effect = RuntimeError("Invalid GitHub Token")
    response = client.post("/api/config", json={"github_token": "bad"})
    assert response.status_code == 200
    body = response.json()
    assert body["stage"] == "config"
    assert body["logs"][-1] == {**body["logs"][-1], "message": "Invalid GitHub Token", "type": "error"}


def test_unknown_mode_is_rejected(client, controller):
    response = client.post("/api/generate", json={"prompt": "x", "mode": "deploy"})
    assert response.status_code == 422
    controller.generator.generate_project.assert_not_called()


def test_busy_controller_returns_conflict(client, controller):
    controller._lock.acquire()
    try:
        response = client.post("/api/deploy")
    finally:
        controller._lock.release()
    assert response.status_code == 409
    assert response.json()["ok"] is False


def test_open_config_from_any_stage(client):
    state = client.post("/api/open-config").json()
    assert state["stage"] == "config"
