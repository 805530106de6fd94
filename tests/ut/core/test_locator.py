"""五阶段定位测试 - 阶段优先级、结果对象、失败诊断"""

from __future__ import annotations

from pathlib import Path

import pytest

from artpkg.core.exceptions import (
    DependencyError,
    EntryPointError,
    NotFoundError,
    SpecError,
)
from artpkg.core.pkg.locator import PackageLocator
from artpkg.core.version import ANY_VERSION, VersionConstraint


class TestStagePrecedence:
    def test_local_file_beats_cache(self, pm, registry, local, tmp_path: Path, monkeypatch) -> None:
        local("grafito", "1.0.0")
        monkeypatch.chdir(tmp_path)
        (tmp_path / "grafito.art").write_text("print 1")

        res = pm.locate("grafito")
        assert res
        assert res.path == Path("grafito.art")
        assert res.stage == "local-file"
        assert registry.text_requests == []

    def test_exact_file_path(self, pm, tmp_path: Path) -> None:
        script = tmp_path / "script.art"
        script.write_text("x")
        res = pm.locate(str(script))
        assert res.path == script
        assert res.stage == "local-file"

    def test_local_folder(self, pm, tmp_path: Path) -> None:
        folder = tmp_path / "proj"
        folder.mkdir()
        (folder / "app.art").write_text("x")
        (folder / "info.art").write_text("entry: app\n")
        res = pm.locate(str(folder))
        assert res.path == folder / "app.art"
        assert res.stage == "local-folder"

    def test_repository_url(self, pm, registry, make_zip, home: Path) -> None:
        url = "https://github.com/arturo-lang/grafito"
        registry.blobs[url + "/archive/main.zip"] = make_zip(
            "r.zip", {"main.art": "x"}, root="grafito-main",
        ).read_bytes()
        res = pm.locate(url)
        assert res.stage == "repository"
        assert res.path == home / "tmp" / "grafito@arturo-lang" / "main.art"

    def test_local_cache(self, pm, registry, local, home: Path) -> None:
        local("grafito", "1.3.2")
        local("grafito", "1.4.0", {"start.art": "x"}, entry="start")
        res = pm.locate("grafito", VersionConstraint.minimum("1.2.0"))
        assert res.stage == "local-cache"
        assert res.path == home / "cache" / "grafito" / "1.4.0" / "start.art"
        assert registry.text_requests == []

    def test_want_latest_skips_cache(self, pm, registry, local, home: Path) -> None:
        local("grafito", "1.0.0")
        registry.publish("grafito", "2.0.0")
        res = pm.locate("grafito", want_latest=True)
        assert res.stage == "remote-registry"
        assert res.path == home / "cache" / "grafito" / "2.0.0" / "main.art"
        assert [str(p) for p in res.installed] == ["grafito 2.0.0"]

    def test_remote_exact_version(self, pm, registry, home: Path) -> None:
        registry.publish("grafito", "1.0.0", latest=False)
        registry.publish("grafito", "2.0.0")
        res = pm.locate("grafito", VersionConstraint.exact("1.0.0"))
        assert res.path == home / "cache" / "grafito" / "1.0.0" / "main.art"
        assert registry.text_requests == ["https://grafito.pkgr.art/1.0.0/spec"]

    def test_second_locate_uses_cache(self, pm, registry) -> None:
        registry.publish("grafito", "1.0.0")
        assert pm.locate("grafito").stage == "remote-registry"
        res = pm.locate("grafito")
        assert res.stage == "local-cache"
        assert res.installed == []
        assert len(registry.downloads) == 1


class TestFailures:
    def test_nothing_matches(self, pm, registry) -> None:
        res = pm.locate("./no/such/thing")
        assert not res
        assert isinstance(res.error, NotFoundError)
        assert "找不到包" in res.describe()

    def test_unknown_package(self, pm, registry) -> None:
        res = pm.locate("ghost", VersionConstraint.minimum("1.0.0"))
        assert isinstance(res.error, NotFoundError)
        assert res.stage == "remote-registry"
        msg = res.describe()
        assert "ghost" in msg and ">=1.0.0" in msg and "remote-registry" in msg and "NOT_FOUND" in msg

    def test_remote_version_cannot_escape_cache(self, pm, registry, home: Path) -> None:
        registry.publish("evil", "1.0.0/../../../escaped")
        res = pm.locate("evil")
        assert isinstance(res.error, SpecError)
        assert res.stage == "remote-registry"
        assert not (home / "escaped").exists()
        assert not (home.parent / "escaped").exists()
        assert registry.downloads == []

    def test_folder_missing_entry(self, pm, tmp_path: Path) -> None:
        folder = tmp_path / "proj"
        folder.mkdir()
        res = pm.locate(str(folder))
        assert isinstance(res.error, EntryPointError)
        assert res.stage == "local-folder"

    def test_malformed_cache_entry_reported(self, pm, registry, local, home: Path) -> None:
        local("grafito", "1.0.0")
        (home / "specs" / "grafito" / "1.0.0.art").write_text("version: [\n")
        res = pm.locate("grafito")
        assert isinstance(res.error, SpecError)
        assert res.stage == "local-cache"

    def test_malformed_cache_entry_repaired_from_registry(self, pm, registry, local, home: Path) -> None:
        local("grafito", "1.0.0")
        (home / "specs" / "grafito" / "1.0.0.art").write_text("version: [\n")
        registry.publish("grafito", "1.0.0")
        res = pm.locate("grafito")
        assert res
        assert res.stage == "remote-registry"

    def test_cache_entry_missing_entry_file(self, pm, registry, local) -> None:
        local("grafito", "1.0.0", {"main.art": "x"}, entry="start")
        res = pm.locate("grafito")
        assert isinstance(res.error, EntryPointError)
        assert res.stage == "local-cache"

    def test_partial_install_reported(self, pm, registry, home: Path) -> None:
        """依赖部分失败: 已安装的依赖保留并出现在结果中"""
        registry.publish("good", "1.0.0")
        registry.publish("app", "1.0.0", depends=["good", "ghost"])
        res = pm.locate("app")
        assert not res
        assert isinstance(res.error, DependencyError)
        assert [str(p) for p in res.installed] == ["good 1.0.0"]
        assert (home / "cache" / "good" / "1.0.0").is_dir()
        assert not (home / "cache" / "app").exists()


class TestCustomStrategies:
    def test_first_success_wins(self, tmp_path: Path) -> None:
        calls: list[str] = []

        class Stage:
            def __init__(self, name: str, result):
                self.name = name
                self.result = result

            def resolve(self, reference, constraint, want_latest, ctx):
                calls.append(self.name)
                if isinstance(self.result, Exception):
                    raise self.result
                return self.result

        locator = PackageLocator([
            Stage("a", None),
            Stage("b", SpecError("broken")),
            Stage("c", tmp_path / "main.art"),
            Stage("d", tmp_path / "other.art"),
        ])
        res = locator.locate("pkg", ANY_VERSION)
        assert res.path == tmp_path / "main.art"
        assert res.stage == "c"
        assert res.error is None
        assert calls == ["a", "b", "c"]

    def test_first_error_kept(self) -> None:
        class Failing:
            def __init__(self, name: str, error: Exception):
                self.name = name
                self.error = error

            def resolve(self, reference, constraint, want_latest, ctx):
                raise self.error

        locator = PackageLocator([Failing("x", SpecError("first")), Failing("y", NotFoundError("second"))])
        res = locator.locate("pkg")
        assert str(res.error) == "first"
        assert res.stage == "x"

    @pytest.mark.parametrize("latest", [True, False])
    def test_want_latest_forwarded(self, latest: bool) -> None:
        seen = []

        class Probe:
            name = "probe"

            def resolve(self, reference, constraint, want_latest, ctx):
                seen.append(want_latest)
                return None

        PackageLocator([Probe()]).locate("pkg", ANY_VERSION, latest)
        assert seen == [latest]
