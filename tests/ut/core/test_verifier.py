"""依赖校验测试 - 不短路、远程回退、环检测、副作用保留"""

from __future__ import annotations

from pathlib import Path

from artpkg.core.exceptions import DependencyCycleError, DependencyError, NotFoundError
from artpkg.core.pkg.models import BareDependency, ExactDependency, MinimumDependency, ResolutionContext
from artpkg.core.version import Version


class TestLocalDependencies:
    def test_all_local_no_network(self, pm, registry, local) -> None:
        local("bar", "1.0.0")
        local("baz", "2.0.0")
        report = pm.verify([BareDependency("bar"), ExactDependency("baz", Version(2, 0, 0))])
        assert report
        assert report.resolved["bar"].name == "main.art"
        assert registry.text_requests == []

    def test_transitive_local(self, pm, registry, local) -> None:
        local("bar", "1.0.0", depends=["qux"])
        local("qux", "1.0.0", {"start.art": "x"}, entry="start")
        report = pm.verify([BareDependency("bar")])
        assert report
        assert registry.text_requests == []

    def test_diamond_is_not_a_cycle(self, pm, registry, local) -> None:
        local("a", "1.0.0", depends=["b", "c"])
        local("b", "1.0.0", depends=["d"])
        local("c", "1.0.0", depends=["d"])
        local("d", "1.0.0")
        assert pm.verify([BareDependency("a")])


class TestRemoteFallback:
    def test_missing_locally_installed_remotely(self, pm, registry, home: Path) -> None:
        registry.publish("bar", "1.2.0")
        report = pm.verify([MinimumDependency("bar", Version(1, 0, 0))])
        assert report
        assert report.resolved["bar"] == home / "cache" / "bar" / "1.2.0" / "main.art"

    def test_local_too_old_falls_back(self, pm, registry, local, home: Path) -> None:
        local("bar", "1.0.0")
        registry.publish("bar", "2.0.0")
        report = pm.verify([MinimumDependency("bar", Version(2, 0, 0))])
        assert report.resolved["bar"].parent == home / "cache" / "bar" / "2.0.0"

    def test_malformed_local_spec_falls_back(self, pm, registry, local, home: Path) -> None:
        local("bar", "1.0.0")
        (home / "specs" / "bar" / "1.0.0.art").write_text("depends: 3.5\n")
        registry.publish("bar", "1.0.0")
        report = pm.verify([BareDependency("bar")])
        assert report
        assert "version: 1.0.0" in (home / "specs" / "bar" / "1.0.0.art").read_text()
        assert registry.downloads == []

    def test_remote_dependency_failure_blocks_install(self, pm, registry, home: Path) -> None:
        registry.publish("bar", "1.0.0", depends=["ghost"])
        report = pm.verify([BareDependency("bar")])
        assert not report
        assert isinstance(report.failures[0].error, DependencyError)
        assert not (home / "cache" / "bar").exists()


class TestExhaustive:
    def test_no_short_circuit(self, pm, registry, home: Path) -> None:
        """第一个依赖失败后仍处理其余依赖，已安装的保留"""
        registry.publish("good", "1.0.0")
        ctx = ResolutionContext()
        report = pm.loader.verifier.verify(
            [BareDependency("ghost1"), BareDependency("good"), BareDependency("ghost2")], ctx,
        )
        assert not report
        assert [f.name for f in report.failures] == ["ghost1", "ghost2"]
        assert all(isinstance(f.error, NotFoundError) for f in report.failures)
        assert "good" in report.resolved
        assert (home / "cache" / "good" / "1.0.0").is_dir()
        assert [str(p) for p in ctx.installed] == ["good 1.0.0"]
        assert "ghost1" in report.summary() and "ghost2" in report.summary()

    def test_resolvable_after_failure(self, pm, registry, local, home: Path) -> None:
        local("a", "1.0.0")
        registry.publish("c", "1.0.0")
        report = pm.verify([BareDependency("a"), BareDependency("b"), BareDependency("c")])
        assert not report
        assert set(report.resolved) == {"a", "c"}
        assert [f.name for f in report.failures] == ["b"]
        assert (home / "cache" / "c" / "1.0.0" / "main.art").is_file()


class TestCycles:
    def test_local_cycle(self, pm, registry, local) -> None:
        local("a", "1.0.0", depends=["b"])
        local("b", "1.0.0", depends=["a"])
        report = pm.verify([BareDependency("a")])
        assert not report
        err = report.failures[0].error
        assert isinstance(err, DependencyCycleError)
        assert err.chain == ["a@1.0.0", "b@1.0.0", "a@1.0.0"]
        assert registry.text_requests == []

    def test_remote_cycle_installs_nothing(self, pm, registry, home: Path) -> None:
        registry.publish("a", "1.0.0", depends=["b"])
        registry.publish("b", "1.0.0", depends=["a"])
        report = pm.verify([BareDependency("a")])
        assert not report
        assert isinstance(report.failures[0].error, DependencyCycleError)
        assert not (home / "cache").exists()

    def test_self_dependency(self, pm, registry, local) -> None:
        local("a", "1.0.0", depends=["a"])
        report = pm.verify([BareDependency("a")])
        assert isinstance(report.failures[0].error, DependencyCycleError)
