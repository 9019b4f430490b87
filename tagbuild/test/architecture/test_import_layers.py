from __future__ import annotations

from ._gate import require_arch_checks_enabled
from ._utils import iter_source_files, matches_prefix, package_root, parse_imports


def _offenders(package: str, forbidden: tuple[str, ...]) -> list[str]:
    root = package_root()
    out: list[str] = []
    for file_path in iter_source_files(root / package):
        rel = file_path.relative_to(root)
        for item in parse_imports(file_path):
            if any(matches_prefix(item.module, prefix) for prefix in forbidden):
                out.append(f"{rel}:{item.line}: forbidden import '{item.module}'")
    return out


def test_core_stays_below_services_and_cli() -> None:
    require_arch_checks_enabled()

    offenders = _offenders("core", ("tagbuild.cli", "tagbuild.services", "tagbuild.output"))
    assert not offenders, "core dependency violations:\n" + "\n".join(offenders)


def test_release_depends_on_service_protocols_only() -> None:
    require_arch_checks_enabled()

    offenders = _offenders(
        "release",
        ("tagbuild.cli", "tagbuild.services.docker", "tagbuild.services.git", "tagbuild.services.publish"),
    )
    assert not offenders, "release -> concrete service violations:\n" + "\n".join(offenders)


def test_services_do_not_import_cli_or_orchestration() -> None:
    require_arch_checks_enabled()

    offenders = _offenders(
        "services",
        ("tagbuild.cli", "tagbuild.release.orchestrator", "tagbuild.release.build_task", "tagbuild.release.matrix"),
    )
    assert not offenders, "services dependency violations:\n" + "\n".join(offenders)
