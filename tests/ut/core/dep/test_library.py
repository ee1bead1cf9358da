"""Library 测试 - 依赖发现 / 安装 / 销毁 / 序列化"""

from __future__ import annotations

from pathlib import Path

import pytest

from vendlock.core.dep.library import Library
from vendlock.core.dep.lockfile import UNVERSIONED_COMMENT
from vendlock.core.dep.models import LOCKFILE_NAME, MANIFEST_NAME, DependencySpec, SourceType, Version
from vendlock.core.exceptions import CleanupError, DiscoveryError, InstallError


def _stage(root: Path, files: dict[str, str]) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def _lib(staging: Path | None, import_path: str = "github.com/acme/widgets") -> Library:
    return Library(DependencySpec(import_path, SourceType.GIT), Version(), staging or "")


class TestDiscovery:
    def test_no_staging_is_noop(self) -> None:
        lib = _lib(None)
        lib.discover_dependencies()
        assert lib.dependencies == ()
        assert lib.provides == ()

    def test_lockfile_takes_precedence_over_imports(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, {
            LOCKFILE_NAME: '[[dependencies]]\nimport = "github.com/from/lock"\n',
            MANIFEST_NAME: '[[dependencies]]\nimport = "github.com/from/manifest"\n',
            "main.go": 'package main\nimport "github.com/from/source"\n',
            "sub/x.go": "package sub\n",
        })
        lib = _lib(staging)
        lib.discover_dependencies()
        assert [d.import_path for d in lib.dependencies] == ["github.com/from/lock"]
        assert lib.provides == ()

    def test_manifest_when_no_lockfile(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, {
            MANIFEST_NAME: (
                '[[dependencies]]\nimport = "github.com/a/one"\nversion = "1.2"\n'
                '[[dependencies]]\nimport = "github.com/a/two"\n'
            ),
            "main.go": 'package main\nimport "github.com/from/source"\n',
        })
        lib = _lib(staging)
        lib.discover_dependencies()
        assert lib.dependencies == (
            DependencySpec("github.com/a/one", version_constraint="1.2"),
            DependencySpec("github.com/a/two"),
        )

    def test_malformed_manifest_is_fatal(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, {MANIFEST_NAME: "[[dependencies\n"})
        with pytest.raises(DiscoveryError):
            _lib(staging).discover_dependencies()

    def test_inference_provides_and_imports(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, {
            "widgets.go": (
                'package widgets\n'
                'import (\n'
                '  "fmt"\n'
                '  "github.com/acme/widgets/colors"\n'
                '  "github.com/other/lib"\n'
                '  "gopkg.in/yaml.v3"\n'
                ')\n'
            ),
            "colors/colors.go": 'package colors\nimport "github.com/other/lib"\n',
            "shapes/shapes.go": "package shapes\n",
            ".git/HEAD": "ref: refs/heads/main\n",
        })
        lib = _lib(staging)
        lib.discover_dependencies()
        assert lib.provides == (
            "github.com/acme/widgets/colors",
            "github.com/acme/widgets/shapes",
        )
        assert lib.dependencies == (
            DependencySpec.inferred("github.com/other/lib"),
            DependencySpec.inferred("gopkg.in/yaml.v3"),
        )

    def test_dot_and_underscore_dirs_are_not_packages(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, {
            "w.go": "package widgets\n",
            "colors/c.go": "package colors\n",
            ".github/workflows/ci.yml": "on: push\n",
            "_examples/main.go": 'package main\nimport "github.com/only/examples"\n',
        })
        lib = _lib(staging)
        lib.discover_dependencies()
        assert lib.provides == ("github.com/acme/widgets/colors",)
        assert lib.dependencies == ()

    def test_scan_failure_is_not_fatal(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, {"docs/README.md": "# nothing to scan\n"})
        lib = _lib(staging)
        lib.discover_dependencies()
        assert lib.dependencies == ()
        assert lib.provides == ("github.com/acme/widgets/docs",)
        assert len(lib.scan_warnings) == 1

    def test_discovery_populates_once(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, {MANIFEST_NAME: '[[dependencies]]\nimport = "a/b"\n'})
        lib = _lib(staging)
        lib.discover_dependencies()
        (staging / MANIFEST_NAME).write_text('[[dependencies]]\nimport = "c/d"\n')
        lib.discover_dependencies()
        assert [d.import_path for d in lib.dependencies] == ["a/b"]


class TestInstall:
    def test_install_copies_tree(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path / "staging", {
            "widgets.go": "package widgets\n",
            "colors/red.go": "package colors\n",
            "assets/logo.bin": "\x00\x01binary",
        })
        lib = Library(DependencySpec("acme/widgets", SourceType.LOCAL, url="x"), staging_dir=staging)
        target_root = tmp_path / "src"

        target = lib.install(target_root)

        assert target == target_root / "acme" / "widgets"
        for rel in ("widgets.go", "colors/red.go", "assets/logo.bin"):
            assert (target / rel).read_bytes() == (staging / rel).read_bytes()

    def test_install_overwrites_existing(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path / "staging", {"a.go": "new\n"})
        target_root = tmp_path / "src"
        _stage(target_root / "acme" / "widgets", {"a.go": "old\n", "keep.txt": "kept\n"})
        _lib(staging, "acme/widgets").install(target_root)
        assert (target_root / "acme/widgets/a.go").read_text() == "new\n"
        assert (target_root / "acme/widgets/keep.txt").read_text() == "kept\n"

    def test_install_without_staging(self, tmp_path: Path) -> None:
        with pytest.raises(InstallError, match="尚未拉取"):
            _lib(None).install(tmp_path)

    def test_install_target_not_creatable(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path / "staging", {"a.go": "package a\n"})
        blocker = tmp_path / "src"
        blocker.write_text("not a directory")
        with pytest.raises(InstallError, match="无法创建目标目录"):
            _lib(staging, "acme/widgets").install(blocker)


class TestDestroy:
    def test_destroy_removes_staging(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path / "staging", {"a.go": "package a\n"})
        lib = _lib(staging)
        lib.destroy()
        assert not staging.exists()
        assert lib.staging_dir is None

    def test_destroy_tolerates_missing(self, tmp_path: Path) -> None:
        lib = _lib(tmp_path / "gone")
        lib.destroy()
        lib.destroy()

    def test_destroy_failure_raises_cleanup_error(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        staging = _stage(tmp_path / "staging", {"a.go": "package a\n"})

        def fail(path: Path) -> bool:
            raise PermissionError("denied")

        monkeypatch.setattr("vendlock.core.dep.library.remove_tree", fail)
        with pytest.raises(CleanupError, match="无法删除暂存目录"):
            _lib(staging).destroy()


class TestSerialize:
    def test_unstable_version_not_pinned(self) -> None:
        lib = Library(DependencySpec("acme/w", SourceType.GIT, url="https://x/acme/w"), Version(0, 3, 0))
        text = lib.serialize()
        assert "version =" not in text
        assert UNVERSIONED_COMMENT in text

    def test_stable_version_pinned(self) -> None:
        lib = Library(DependencySpec("acme/w", SourceType.GIT, url="https://x/acme/w"), Version(1, 2, 0))
        assert 'version = "1.2.0"' in lib.serialize()

    def test_field_order(self) -> None:
        lib = Library(
            DependencySpec("acme/w", SourceType.GIT, url="https://x/acme/w",
                           branch="main", tag="v1.2.0"),
            Version(1, 2, 0),
        )
        keys = [line.split(" = ")[0] for line in lib.serialize().splitlines() if " = " in line]
        assert keys == ["version", "type", "import", "url", "branch", "tag"]

    def test_accessors_expose_spec(self) -> None:
        spec = DependencySpec("acme/w", SourceType.GIT, url="https://x", branch="b", tag="t")
        lib = Library(spec)
        assert (lib.import_path, lib.source_type, lib.url, lib.branch, lib.tag) == (
            "acme/w", SourceType.GIT, "https://x", "b", "t",
        )
        assert lib.version == Version(0, 0, 0)
