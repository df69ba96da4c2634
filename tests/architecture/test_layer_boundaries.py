"""
Import-boundary enforcement for the kernel layers.

1. Kernel independence -- rental_kernel/** never imports rental_config.
2. Domain purity       -- rental_kernel/domain/** imports no ORM, db,
                          models, selectors or services.
3. Model isolation     -- rental_kernel/models/** imports only db.base
                          and SQLAlchemy from the project.
4. Read side           -- rental_kernel/selectors/** never imports services.

All scanning is done via AST; nothing is imported.
"""

import ast
import glob
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[str]:
    return sorted(glob.glob(str(ROOT / package / "**" / "*.py"), recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, module) for every import in *filepath*."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for path in _python_files(package):
        for lineno, module in _extract_imports(path):
            if _matches_any(module, forbidden):
                found.append(f"{Path(path).relative_to(ROOT)}:{lineno} imports {module}")
    return found


def test_sources_found():
    assert _python_files("rental_kernel/domain")
    assert _python_files("rental_kernel/models")


def test_kernel_never_imports_config():
    assert _violations("rental_kernel", ("rental_config",)) == []


@pytest.mark.parametrize(
    "forbidden",
    [
        "sqlalchemy",
        "rental_kernel.db",
        "rental_kernel.models",
        "rental_kernel.selectors",
        "rental_kernel.services",
    ],
)
def test_domain_is_pure(forbidden):
    assert _violations("rental_kernel/domain", (forbidden,)) == []


def test_models_import_only_db_base():
    bad = []
    for path in _python_files("rental_kernel/models"):
        for lineno, module in _extract_imports(path):
            if not module.startswith("rental_kernel"):
                continue
            if _matches_any(module, ("rental_kernel.db.base", "rental_kernel.models")):
                continue
            bad.append(f"{Path(path).relative_to(ROOT)}:{lineno} imports {module}")
    assert bad == []


def test_selectors_do_not_import_services():
    assert _violations("rental_kernel/selectors", ("rental_kernel.services",)) == []
