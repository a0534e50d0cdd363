from __future__ import annotations

from pathlib import Path

import pytest

from hbckit.api.hermes import config, toolchain
from hbckit.api.hermes.errors import MissingDependencyError, UnsupportedPlatformError
from hbckit.api.hermes.sourcemap import compose_source_maps


def _settings(**overrides) -> config.Settings:
    env = {"HBC_COMPOSER": "metro"}
    env.update(overrides)
    return config.load_settings(env)


def _install(project: Path, rel: str) -> Path:
    path = project / "node_modules" / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")
    return path


@pytest.mark.parametrize(
    "system,expected",
    [
        ("darwin", "osx-bin/hermesc"),
        ("linux", "linux64-bin/hermesc"),
        ("win32", "win64-bin/hermesc.exe"),
    ],
)
def test_platform_executable(system, expected):
    assert toolchain.host_platform_executable(system) == expected


def test_unsupported_platform():
    with pytest.raises(UnsupportedPlatformError, match="freebsd"):
        toolchain.host_platform_executable("freebsd13")


def test_resolves_hermesc_from_parent_node_modules(tmp_path, monkeypatch):
    monkeypatch.setattr(toolchain.sys, "platform", "linux")
    hermesc = _install(tmp_path, "hermes-engine/linux64-bin/hermesc")
    app = tmp_path / "apps" / "mobile"
    app.mkdir(parents=True)
    resolved = toolchain.ProjectToolchain(_settings()).resolve_executable(app)
    assert resolved == hermesc.resolve()


def test_missing_hermesc_names_module(tmp_path, monkeypatch):
    monkeypatch.setattr(toolchain.sys, "platform", "darwin")
    with pytest.raises(MissingDependencyError) as excinfo:
        toolchain.ProjectToolchain(_settings()).resolve_executable(tmp_path)
    assert excinfo.value.module == "hermes-engine/osx-bin/hermesc"
    assert "npm install" in str(excinfo.value)


def test_hermesc_override(tmp_path):
    stub = tmp_path / "hermesc"
    stub.write_text("")
    tc = toolchain.ProjectToolchain(_settings(HBC_HERMESC=str(stub)))
    assert tc.resolve_executable(tmp_path) == stub
    with pytest.raises(MissingDependencyError):
        toolchain.ProjectToolchain(_settings(HBC_HERMESC=str(tmp_path / "nope"))).resolve_executable(tmp_path)


def test_builtin_composer_selected_by_settings(tmp_path):
    tc = toolchain.ProjectToolchain(_settings(HBC_COMPOSER="builtin"))
    assert tc.resolve_composer(tmp_path) is compose_source_maps


def test_missing_metro_is_missing_dependency(tmp_path):
    with pytest.raises(MissingDependencyError) as excinfo:
        toolchain.ProjectToolchain(_settings()).resolve_composer(tmp_path)
    assert excinfo.value.module == "metro-source-map/src/composeSourceMaps"
    assert "React Native" in str(excinfo.value)


def test_metro_composer_resolved_with_node(tmp_path):
    module = _install(tmp_path, "metro-source-map/src/composeSourceMaps.js")
    composer = toolchain.ProjectToolchain(_settings(HBC_NODE="/opt/node/bin/node")).resolve_composer(tmp_path)
    assert isinstance(composer, toolchain.MetroComposer)
    assert composer.module_path == module.resolve()
    assert composer.node == "/opt/node/bin/node"


def test_metro_without_node_is_missing_dependency(tmp_path, monkeypatch):
    _install(tmp_path, "metro-source-map/src/composeSourceMaps.js")
    monkeypatch.setattr(toolchain.shutil, "which", lambda name: None)
    with pytest.raises(MissingDependencyError, match="node not found"):
        toolchain.ProjectToolchain(_settings()).resolve_composer(tmp_path)


def test_invalid_composer_setting():
    with pytest.raises(ValueError):
        config.load_settings({"HBC_COMPOSER": "webpack"})
