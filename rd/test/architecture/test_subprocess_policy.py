from __future__ import annotations

import ast
import os
from pathlib import Path

import pytest

_ALLOWLIST = {"platform/process.py"}
_DIRECT_CALLS = {"run", "check_output", "check_call", "call", "Popen"}


def _rd_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _require_arch_checks_enabled() -> None:
    if os.getenv("RD_ARCH_CHECKS") != "1":
        pytest.skip("architecture checks are opt-in; set RD_ARCH_CHECKS=1 to enable")


def _direct_subprocess_calls(path: Path) -> list[int]:
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    lines: list[int] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue
        func = node.func
        if not isinstance(func, ast.Attribute) or func.attr not in _DIRECT_CALLS:
            continue
        if isinstance(func.value, ast.Name) and func.value.id == "subprocess":
            lines.append(node.lineno)
    return lines


def test_direct_subprocess_usage_is_constrained_to_process_module() -> None:
    _require_arch_checks_enabled()

    root = _rd_root()
    offenders: list[str] = []
    for path in sorted(root.rglob("*.py")):
        rel = path.relative_to(root)
        if rel.parts[0] == "test" or "__pycache__" in rel.parts:
            continue
        if rel.as_posix() in _ALLOWLIST:
            continue
        for line in _direct_subprocess_calls(path):
            offenders.append(f"{rel}:{line}: direct subprocess call outside allowlist")

    assert not offenders, "Subprocess policy violations:\n" + "\n".join(offenders)


def test_library_modules_do_not_print() -> None:
    _require_arch_checks_enabled()

    root = _rd_root()
    offenders: list[str] = []
    for sub in ("core", "git", "platform", "services"):
        for path in sorted((root / sub).rglob("*.py")):
            tree = ast.parse(path.read_text(encoding="utf-8"))
            for node in ast.walk(tree):
                if (
                    isinstance(node, ast.Call)
                    and isinstance(node.func, ast.Name)
                    and node.func.id == "print"
                ):
                    offenders.append(f"{path.relative_to(root)}:{node.lineno}")

    assert not offenders, "print() in library code:\n" + "\n".join(offenders)
