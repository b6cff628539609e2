import json
from unittest.mock import Mock

import pytest
import requests

from config_store import ConfigStore
from models import AppConfig, FileNode, GeneratedProject
from workflow import WorkflowController


def _response(status_code, json_body=None, text=None):
    r = requests.Response()
    r.status_code = status_code
    if json_body is not None:
        r._content = json.dumps(json_body).encode("utf-8")
        r.headers["Content-Type"] = "application/json"
    else:
        r._content = (text or "").encode("utf-8")
    r.encoding = "utf-8"
    return r


@pytest.fixture
def make_response():
    return _response


@pytest.fixture
def store(tmp_path):
    return ConfigStore(str(tmp_path / "state.json"))


@pytest.fixture
def hello_project():
    return GeneratedProject(
        name="hello-world",
        description="A hello world page",
        files=[FileNode(path="index.html", content="<html><body>Hello</body></html>")],
    )


@pytest.fixture
def fakes():
    generator = Mock(name="generator")
    github = Mock(name="github")
    hosting = Mock(name="hosting")
    github.verify_credential.return_value = "octocat"
    return generator, github, hosting


@pytest.fixture
def controller(store, fakes):
    generator, github, hosting = fakes
    return WorkflowController(store, generator=generator, github=github, hosting=hosting)


@pytest.fixture
def configured_controller(store, fakes):
    """Controller that already has a verified, persisted config (no Vercel token)."""
    store.save(AppConfig(github_token="ghp_test", github_username="octocat", gemini_key="AIza-test"))
    generator, github, hosting = fakes
    return WorkflowController(store, generator=generator, github=github, hosting=hosting)
