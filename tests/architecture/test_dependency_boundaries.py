"""依存境界（core/export/interactive）の破りを検出するテスト。"""

from __future__ import annotations

import ast
from pathlib import Path

_WINDOW_LIBS = ("pyglet",)


def _repo_root() -> Path:
    path = Path(__file__).resolve()
    for parent in path.parents:
        if (parent / "src").is_dir() and (parent / "tests").is_dir():
            return parent
    raise RuntimeError("repo root が見つからない")


def _package_root() -> Path:
    return _repo_root() / "src" / "spiromint"


def _imported_modules(path: Path) -> set[str]:
    """ファイル内の import 先モジュール名を返す（相対 import は許可しない）。"""

    tree = ast.parse(path.read_text(encoding="utf-8"))
    modules: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                raise AssertionError(f"{path}: 相対 import は使わない（spiromint.* で書く）")
            if node.module is not None:
                modules.add(node.module)
    return modules


def _assert_no_forbidden_imports(*, root: Path, forbidden_prefixes: tuple[str, ...]) -> None:
    repo_root = _repo_root()
    violations: list[str] = []
    for path in sorted(root.rglob("*.py")):
        bad = sorted(m for m in _imported_modules(path) if m.startswith(forbidden_prefixes))
        if bad:
            violations.append(f"{path.relative_to(repo_root)}: {', '.join(bad)}")

    if violations:
        joined = "\n".join(violations)
        raise AssertionError(f"依存境界違反の import を検出:\n{joined}")


def test_core_does_not_depend_on_export_or_interactive() -> None:
    _assert_no_forbidden_imports(
        root=_package_root() / "core",
        forbidden_prefixes=("spiromint.export", "spiromint.interactive", "spiromint.cli", *_WINDOW_LIBS),
    )


def test_export_does_not_depend_on_interactive() -> None:
    _assert_no_forbidden_imports(
        root=_package_root() / "export",
        forbidden_prefixes=("spiromint.interactive", "spiromint.cli", *_WINDOW_LIBS),
    )


def test_only_preview_window_imports_pyglet() -> None:
    users = sorted(
        path.relative_to(_package_root()).as_posix()
        for path in _package_root().rglob("*.py")
        if any(m.startswith(_WINDOW_LIBS) for m in _imported_modules(path))
    )
    assert users == ["interactive/preview_window.py"]


def test_package_code_raises_instead_of_assert() -> None:
    """実行時の不変条件は assert ではなく例外で表す（-O でも消えない）。"""

    offenders = []
    for path in sorted(_package_root().rglob("*.py")):
        tree = ast.parse(path.read_text(encoding="utf-8"))
        for node in ast.walk(tree):
            if isinstance(node, ast.Assert):
                offenders.append(f"{path.relative_to(_package_root()).as_posix()}:{node.lineno}")
    assert offenders == []
