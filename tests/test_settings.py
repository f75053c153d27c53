import json

import pytest

from jlsp.config import MAP_KEY_SCAN_WINDOW
from jlsp.exceptions import ErrorCode, GroovyLspError
from jlsp.settings import SETTINGS_FILE_NAME, ServerSettings, find_settings_file, load_settings, read_settings_file


def test_defaults():
    settings = ServerSettings()
    assert settings.map_key_scan_window == MAP_KEY_SCAN_WINDOW
    assert settings.vars_directory_name == "vars"
    assert settings.enable_arity_diagnostics
    assert settings.enable_missing_return_diagnostics
    assert settings.log_level == "INFO"


def test_camel_case_and_field_names_are_both_accepted():
    assert ServerSettings.model_validate({"mapKeyScanWindow": 10}).map_key_scan_window == 10
    assert ServerSettings.model_validate({"map_key_scan_window": 12}).map_key_scan_window == 12
    assert ServerSettings.model_validate({"unknownOption": True}) == ServerSettings()


def test_merged_applies_overrides():
    base = ServerSettings(map_key_scan_window=50)
    merged = base.merged({"enableArityDiagnostics": False})
    assert merged.map_key_scan_window == 50
    assert not merged.enable_arity_diagnostics

    assert base.merged({"mapKeyScanWindow": 7}).map_key_scan_window == 7
    assert base.merged(None) is base


def test_invalid_override_is_ignored():
    base = ServerSettings()
    assert base.merged({"mapKeyScanWindow": 0}) is base


@pytest.fixture
def project(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / SETTINGS_FILE_NAME).write_text(json.dumps({"mapKeyScanWindow": 30, "varsDirectoryName": "steps"}), encoding="utf-8")
    return tmp_path


def test_settings_file_is_found_in_an_ancestor(project):
    assert find_settings_file(project / "sub") == (project / SETTINGS_FILE_NAME).resolve()
    assert find_settings_file(None) is None


def test_load_settings_from_the_document_directory(project):
    settings = load_settings(project / "sub" / "Jenkinsfile")
    assert settings.map_key_scan_window == 30
    assert settings.vars_directory_name == "steps"


def test_overrides_beat_the_settings_file(project):
    settings = load_settings(project / "sub" / "Jenkinsfile", overrides={"mapKeyScanWindow": 5})
    assert settings.map_key_scan_window == 5
    assert settings.vars_directory_name == "steps"


def test_working_directory_is_searched_without_a_document(project):
    assert load_settings(None, cwd=project / "sub").map_key_scan_window == 30


def test_broken_settings_file_means_defaults(tmp_path):
    path = tmp_path / SETTINGS_FILE_NAME
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(GroovyLspError) as excinfo:
        read_settings_file(path)
    assert excinfo.value.code is ErrorCode.INVALID_SETTINGS_FILE
    assert str(path) in excinfo.value.message

    assert load_settings(tmp_path / "Jenkinsfile") == ServerSettings()


def test_settings_file_must_hold_an_object(tmp_path):
    path = tmp_path / SETTINGS_FILE_NAME
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(GroovyLspError):
        read_settings_file(path)
