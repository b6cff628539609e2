import json

from config_store import CONFIG_KEY, ConfigStore
from models import AppConfig


def test_missing_file_means_no_saved_config(tmp_path):
    assert ConfigStore(str(tmp_path / "nope.json")).load() is None


def test_save_overwrites_whole_record(tmp_path):
    path = tmp_path / "nested" / "state.json"
    store = ConfigStore(str(path))
    store.save(AppConfig(github_token="ghp_1", vercel_token="vc_1", github_username="octocat"))
    store.save(AppConfig(github_token="ghp_2", github_username="octocat"))

    doc = json.loads(path.read_text(encoding="utf-8"))
    assert list(doc) == [CONFIG_KEY]
    assert doc[CONFIG_KEY] == {
        "github_token": "ghp_2",
        "vercel_token": "",
        "github_username": "octocat",
        "gemini_key": "",
    }
    assert store.load() == AppConfig(github_token="ghp_2", github_username="octocat")


def test_corrupt_file_is_ignored(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    assert ConfigStore(str(path)).load() is None


def test_unknown_key_is_ignored(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"other": {}}), encoding="utf-8")
    assert ConfigStore(str(path)).load() is None
