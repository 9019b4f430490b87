from __future__ import annotations

import ast

from ._gate import require_arch_checks_enabled
from ._utils import iter_source_files, package_root, read_tree

_SPAWNING_CALLS = {
    "subprocess": {"run", "check_output", "check_call", "call", "Popen"},
    "asyncio": {"create_subprocess_exec", "create_subprocess_shell"},
    "os": {"system", "popen"},
}


def _direct_spawn_lines(tree: ast.AST) -> list[int]:
    lines: list[int] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call) or not isinstance(node.func, ast.Attribute):
            continue
        owner = node.func.value
        if isinstance(owner, ast.Name) and node.func.attr in _SPAWNING_CALLS.get(owner.id, set()):
            lines.append(node.lineno)
    return lines


def test_processes_are_only_spawned_by_the_process_wrapper() -> None:
    require_arch_checks_enabled()

    root = package_root()
    allowlist = {"platform/process.py"}

    offenders: list[str] = []
    for file_path in iter_source_files(root):
        rel = file_path.relative_to(root)
        if rel.as_posix() in allowlist:
            continue
        for line in _direct_spawn_lines(read_tree(file_path)):
            offenders.append(f"{rel}:{line}: direct process spawn outside platform/process.py")

    assert not offenders, "Subprocess policy violations:\n" + "\n".join(offenders)
