from __future__ import annotations

from hbckit.api import path_utils


def test_find_project_root_prefers_package_json(tmp_path):
    (tmp_path / ".git").mkdir()
    app = tmp_path / "packages" / "app"
    (app / "src").mkdir(parents=True)
    (app / "package.json").write_text("{}")
    assert path_utils.find_project_root(app / "src") == app.resolve()


def test_find_project_root_falls_back_to_git(tmp_path):
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert path_utils.find_project_root(nested) == tmp_path.resolve()


def test_resolve_from_walks_up_and_accepts_js_suffix(tmp_path):
    target = tmp_path / "node_modules" / "metro-source-map" / "src" / "composeSourceMaps.js"
    target.parent.mkdir(parents=True)
    target.write_text("module.exports = () => ({});\n")
    app = tmp_path / "apps" / "mobile"
    app.mkdir(parents=True)
    assert path_utils.resolve_from(app, "metro-source-map/src/composeSourceMaps") == target.resolve()
    assert path_utils.resolve_from(app, "metro-source-map/src/missing") is None


def test_project_relative_rendering(tmp_path):
    inside = tmp_path / "android" / "gradle.properties"
    assert path_utils.to_project_relative(inside, tmp_path) == "android/gradle.properties"
    outside = tmp_path.parent / "elsewhere.hbc"
    assert path_utils.to_project_relative(outside, tmp_path) == str(outside.resolve())


def test_find_project_root_follows_current_directory(tmp_path, monkeypatch):
    first = tmp_path / "first"
    second = tmp_path / "second"
    for root in (first, second):
        root.mkdir()
        (root / "package.json").write_text("{}")

    monkeypatch.chdir(first)
    assert path_utils.find_project_root() == first.resolve()
    monkeypatch.chdir(second)
    assert path_utils.find_project_root() == second.resolve()
