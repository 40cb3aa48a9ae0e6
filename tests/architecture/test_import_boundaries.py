"""
Layer boundaries, checked by reading source via AST.

1. enrollment_kernel/** may NOT import enrollment_ingestion or
   enrollment_config. The kernel never depends upward.

2. enrollment_ingestion.domain and enrollment_ingestion.matching.similarity
   are pure: no sqlalchemy, no database session.

3. Adapters decode bytes only: no sqlalchemy and no kernel models.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _violations(files: list[Path], forbidden: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for filepath in files:
        for lineno, module in _extract_imports(filepath):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


class TestKernelNoUpwardDependencies:

    def test_kernel_does_not_import_outer_packages(self):
        violations = _violations(
            _python_files("enrollment_kernel"),
            ("enrollment_ingestion", "enrollment_config"),
        )
        assert not violations, (
            "Kernel boundary violation:\n" + "\n".join(violations)
        )

    def test_config_does_not_import_ingestion(self):
        violations = _violations(_python_files("enrollment_config"), ("enrollment_ingestion",))
        assert not violations, "\n".join(violations)


class TestPureLayers:

    def test_domain_has_no_database_imports(self):
        files = _python_files("enrollment_ingestion/domain")
        files.append(ROOT / "enrollment_ingestion" / "matching" / "similarity.py")
        violations = _violations(files, ("sqlalchemy", "enrollment_kernel.models", "enrollment_kernel.db"))
        assert not violations, (
            "Pure layer imports persistence:\n" + "\n".join(violations)
        )

    def test_adapters_have_no_database_imports(self):
        violations = _violations(
            _python_files("enrollment_ingestion/adapters"),
            ("sqlalchemy", "enrollment_kernel.models", "enrollment_kernel.db"),
        )
        assert not violations, "\n".join(violations)
