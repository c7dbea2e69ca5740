from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable

from loguru import logger

from rpgle_lint.engine import lint_source
from rpgle_lint.models import FileResult, LintConfig, LintRun
from rpgle_lint.rules import RuleRegistry, default_registry
from rpgle_lint.rules.diagnostics import UNREADABLE_INPUT

DEFAULT_INCLUDE_EXTS = LintConfig.include_exts
DEFAULT_EXCLUDE_DIRS = LintConfig.exclude_dirs


def collect_files(
    paths: Iterable[str | Path],
    *,
    include_exts: Iterable[str] = DEFAULT_INCLUDE_EXTS,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> list[Path]:
    """Expands directories into RPGLE sources; explicit file paths are kept as given."""
    include = {ext.lower() for ext in include_exts}
    exclude = set(exclude_dirs)

    files: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(_iter_candidate_files(path, include, exclude))
        else:
            files.append(path)
    return files


def lint_file(path: str | Path, registry: RuleRegistry | None = None) -> FileResult:
    if registry is None:
        registry = default_registry()
    file_path = Path(path)
    try:
        source = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read {}: {}", file_path, exc)
        rule = registry.get(UNREADABLE_INPUT)
        findings = ()
        if rule is not None:
            findings = (rule.finding(0, str(file_path), message=f"cannot read file: {exc}"),)
        return FileResult(path=str(file_path), findings=findings, error=str(exc))

    logger.debug("Linting {}", file_path)
    findings = lint_source(source, registry)
    logger.debug("{}: {} finding(s)", file_path, len(findings))
    return FileResult(path=str(file_path), findings=tuple(findings))


def lint_paths(
    paths: Iterable[str | Path],
    registry: RuleRegistry | None = None,
    *,
    workers: int = 1,
    include_exts: Iterable[str] = DEFAULT_INCLUDE_EXTS,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> LintRun:
    if registry is None:
        registry = default_registry()
    files = collect_files(paths, include_exts=include_exts, exclude_dirs=exclude_dirs)
    if workers < 1:
        raise ValueError("workers must be at least 1")

    if workers == 1 or len(files) < 2:
        results = [lint_file(path, registry) for path in files]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda path: lint_file(path, registry), files))

    return LintRun(files=tuple(results))


def _iter_candidate_files(root: Path, include_exts: set[str], exclude_dirs: set[str]):
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        if any(part in exclude_dirs for part in path.relative_to(root).parts):
            continue
        if path.suffix.lower() in include_exts:
            yield path
