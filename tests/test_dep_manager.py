"""依赖管理器集成测试 - 本地来源的完整解析 / 锁定 / 安装流程"""

from __future__ import annotations

from pathlib import Path

import pytest

from vendlock.core.config import Config
from vendlock.core.dep.library import Library
from vendlock.core.dep.lockfile import LOCKFILE_HEADER, UNVERSIONED_COMMENT
from vendlock.core.dep.models import LOCKFILE_NAME, MANIFEST_NAME, DependencySpec, SourceType, Version
from vendlock.core.dep_manager import DepManager
from vendlock.core.exceptions import ConfigError, FetchError, InstallError


def _local(import_path: str, url: str, tag: str = "") -> str:
    record = f'\n[[dependencies]]\ntype = "local"\nimport = "{import_path}"\nurl = "{url}"\n'
    return record + (f'tag = "{tag}"\n' if tag else "")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """项目根: widgets 通过自带清单依赖 colors"""
    root = tmp_path / "project"
    widgets = root / "libs" / "widgets"
    colors = root / "libs" / "colors"
    widgets.mkdir(parents=True)
    colors.mkdir(parents=True)
    (widgets / "widgets.go").write_text('package widgets\nimport "acme/colors"\n')
    (widgets / MANIFEST_NAME).write_text(_local("acme/colors", "libs/colors"))
    (colors / "colors.go").write_text('package colors\nimport "fmt"\n')
    (root / MANIFEST_NAME).write_text(_local("acme/widgets", "libs/widgets", tag="v1.2.0"))
    return root


def _manager(project: Path, **overrides) -> DepManager:  # type: ignore[no-untyped-def]
    stage = project.parent / "stage"
    return DepManager(project, Config(staging_dir=str(stage), **overrides))


class TestInstall:
    def test_install_resolves_transitive_dependencies(self, project: Path) -> None:
        report = _manager(project).install()

        assert list(report.installed) == ["acme/widgets", "acme/colors"]
        assert (project / "src/acme/widgets/widgets.go").exists()
        assert (project / "src/acme/colors/colors.go").read_text().startswith("package colors")
        assert list((project.parent / "stage").iterdir()) == []

    def test_lockfile_records(self, project: Path) -> None:
        _manager(project).install()
        text = (project / LOCKFILE_NAME).read_text()
        assert text.startswith(LOCKFILE_HEADER)
        widgets, colors = text.split("[[dependencies]]")[1:]
        assert 'version = "1.2.0"' in widgets
        assert 'tag = "v1.2.0"' in widgets
        assert UNVERSIONED_COMMENT in colors
        assert 'import = "acme/colors"' in colors

    def test_list_locked(self, project: Path) -> None:
        dm = _manager(project)
        assert dm.list_locked() == []
        dm.install()
        specs = dm.list_locked()
        assert [s.import_path for s in specs] == ["acme/widgets", "acme/colors"]
        assert specs[0].version_constraint == "1.2.0"
        assert specs[1].source_type is SourceType.LOCAL

    def test_failure_writes_nothing(self, project: Path) -> None:
        manifest = project / MANIFEST_NAME
        manifest.write_text(manifest.read_text() + _local("acme/missing", "libs/missing"))

        with pytest.raises(FetchError, match="本地依赖目录不存在"):
            _manager(project).install()

        assert not (project / LOCKFILE_NAME).exists()
        assert not (project / "src").exists()
        assert list((project.parent / "stage").iterdir()) == []

    def test_lockfile_write_failure(self, project: Path) -> None:
        (project / LOCKFILE_NAME).mkdir()
        with pytest.raises(InstallError, match="无法写入锁文件"):
            _manager(project).install()
        assert not (project / "src").exists()

    def test_missing_manifest(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="找不到依赖清单"):
            _manager(tmp_path).install()


class TestLockPrecedence:
    def test_lockfile_preferred_over_manifest(self, project: Path) -> None:
        (project / LOCKFILE_NAME).write_text(_local("acme/colors", "libs/colors"))
        report = _manager(project).install()
        assert list(report.installed) == ["acme/colors"]

    def test_update_ignores_lockfile(self, project: Path) -> None:
        (project / LOCKFILE_NAME).write_text(_local("acme/colors", "libs/colors"))
        report = _manager(project).install(update=True)
        assert list(report.installed) == ["acme/widgets", "acme/colors"]
        assert "acme/widgets" in (project / LOCKFILE_NAME).read_text()

    def test_lock_only(self, project: Path) -> None:
        graph = _manager(project).lock()
        assert len(graph) == 2
        assert (project / LOCKFILE_NAME).exists()
        assert not (project / "src").exists()
        assert list((project.parent / "stage").iterdir()) == []

    def test_custom_install_root(self, project: Path) -> None:
        _manager(project, install_root="third_party").install()
        assert (project / "third_party/acme/widgets/widgets.go").exists()


class TestMalformedDeclarations:
    def test_unparsable_url_in_dependency_manifest(self, project: Path) -> None:
        """子依赖清单中的 URL 无法解析时报 FetchError，暂存全部清理"""
        colors = project / "libs" / "colors"
        (colors / MANIFEST_NAME).write_text(
            '[[dependencies]]\nimport = "example.com/dep"\nurl = "https://[::1/x"\n'
        )
        with pytest.raises(FetchError, match="无法解析 URL"):
            _manager(project).install()
        assert not (project / LOCKFILE_NAME).exists()
        assert not (project / "src").exists()
        assert list((project.parent / "stage").iterdir()) == []


class StagingFetcher:
    """把任意依赖解析为 1.2.0，暂存内容取自 trees"""

    def __init__(self, root: Path, trees: dict[str, dict[str, str]]) -> None:
        self.root = root
        self.trees = trees

    def fetch(self, spec: DependencySpec) -> Library:
        staging = self.root / spec.import_path.replace("/", "_")
        staging.mkdir(parents=True)
        for rel, content in self.trees.get(spec.import_path, {}).items():
            (staging / rel).write_text(content)
        return Library(spec, Version(1, 2, 0), staging)


class TestRelockStrict:
    def test_reinstall_from_own_lockfile(self, tmp_path: Path) -> None:
        """严格模式下，按自身写出的锁文件重新安装不会与子依赖的版本范围冲突"""
        root = tmp_path / "project"
        root.mkdir()
        (root / MANIFEST_NAME).write_text(
            '[[dependencies]]\nimport = "github.com/a/app"\nversion = "1"\n'
        )
        fetcher = StagingFetcher(tmp_path / "stage", {
            "github.com/a/app": {
                MANIFEST_NAME: '[[dependencies]]\nimport = "github.com/a/lib"\nversion = "1"\n',
            },
            "github.com/a/lib": {"lib.go": "package lib\n"},
        })
        dm = DepManager(root, Config(strict_conflicts=True), fetcher=fetcher)

        dm.install()
        first = (root / LOCKFILE_NAME).read_text()
        assert first.count('version = "1.2.0"') == 2

        report = dm.install()
        assert list(report.installed) == ["github.com/a/app", "github.com/a/lib"]
        assert (root / LOCKFILE_NAME).read_text() == first
