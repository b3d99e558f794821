import json

import pytest

from codewatch.errors import ConfigError
from codewatch.utils.config import Config, SUPPORTED_EXTENSIONS, WatchConfig, load_config


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    return tmp_path


def test_defaults_without_config_file(isolated):
    config = load_config()
    assert config.watch.debounce_time == 5.0
    assert config.watch.supported_extensions == SUPPORTED_EXTENSIONS
    assert config.api.base_url == "https://api.devwilson.dev"


def test_yaml_file_is_merged(isolated):
    (isolated / "codewatch.yaml").write_text(
        "log_level: DEBUG\n"
        "watch:\n"
        "  debounce_time: 1.5\n"
        "  skip_binary: true\n"
        "api:\n"
        "  base_url: http://localhost:8000\n"
        "  context_name: demo\n"
    )
    config = load_config()

    assert config.log_level == "DEBUG"
    assert config.watch.debounce_time == 1.5
    assert config.watch.skip_binary is True
    assert config.watch.ignore_file == ".gitignore"
    assert config.api.base_url == "http://localhost:8000"
    assert config.api.context_name == "demo"


def test_json_file_and_unknown_keys(isolated, caplog):
    path = isolated / "settings.json"
    path.write_text(json.dumps({"watch": {"debounce_time": 2, "colour": "red"}, "extra": 1}))

    config = load_config(path)

    assert config.watch.debounce_time == 2
    assert "watch.colour" in caplog.text
    assert "extra" in caplog.text


def test_missing_explicit_path_raises(isolated):
    with pytest.raises(ConfigError):
        load_config(isolated / "nope.yaml")


def test_malformed_yaml_raises(isolated):
    path = isolated / "bad.yaml"
    path.write_text("watch: [unclosed\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_non_mapping_root_raises(isolated):
    path = isolated / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_non_mapping_section_raises(isolated):
    path = isolated / "section.yaml"
    path.write_text("watch: 5\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_save_and_reload(isolated):
    config = Config()
    config.watch.debounce_time = 0.5
    config.api.workspace_id = "space-1"
    path = isolated / "out" / "config.yaml"

    config.save(path)

    assert load_config(path).to_dict() == config.to_dict()


def test_is_supported():
    watch = WatchConfig()
    assert watch.is_supported("main.go")
    assert watch.is_supported("/a/b/component.svelte")
    assert not watch.is_supported("image.png")
    assert not watch.is_supported("Makefile")
