"""Plan document scanner.

Lists the documents of the active plan folder::

    plans/<plan>/
        plan.md
        phase-01-setup.md | phase-02/phase.md
        research/*.md
        artifacts/*
        reports/*.md
"""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path

from agent_office.shared.models.projection import PlanDocument

logger = logging.getLogger(__name__)

_TYPE_ICONS = {
    "plan": "\U0001f4cb",
    "phase": "\U0001f4d1",
    "research": "\U0001f50d",
    "artifact": "\U0001f4e6",
    "report": "\U0001f4ca",
    "other": "\U0001f4c4",
}

_ARTIFACT_ICONS = {
    "sql": "\U0001f5c4️",
    "json": "\U0001f4e6",
    "png": "\U0001f5bc️",
    "jpg": "\U0001f5bc️",
    "ts": "\U0001f4bb",
    "js": "\U0001f4bb",
    "py": "\U0001f4bb",
}

_PHASE_RE = re.compile(r"^phase-(\d+)")


def _document_icon(doc_type: str, ext: str) -> str:
    if doc_type == "artifact":
        return _ARTIFACT_ICONS.get(ext, _TYPE_ICONS["artifact"])
    return _TYPE_ICONS.get(doc_type, _TYPE_ICONS["other"])


def extract_phase_number(name: str) -> int | None:
    match = _PHASE_RE.match(name)
    return int(match.group(1)) if match else None


def format_document_name(name: str, doc_type: str) -> str:
    if doc_type == "phase":
        num = extract_phase_number(name)
        if num is None:
            return name
        rest = re.sub(r"^phase-\d+-?", "", name).replace("-", " ")
        return f"Phase {num}: {rest}"
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), name.replace("-", " "))


def _create_document(
    path: Path, doc_type: str, plan_path: Path, name: str | None = None,
) -> PlanDocument:
    stat = path.stat()
    name = name or path.stem
    ext = path.suffix[1:]
    created = getattr(stat, "st_birthtime", stat.st_ctime)
    return PlanDocument(
        id=hashlib.md5(str(path).encode("utf-8")).hexdigest()[:8],
        name=name,
        display_name=format_document_name(name, doc_type),
        doc_type=doc_type,
        icon=_document_icon(doc_type, ext),
        path=str(path),
        relative_path=str(path.relative_to(plan_path)),
        modified_at=int(stat.st_mtime * 1000),
        created_at=int(created * 1000),
        size=stat.st_size,
        extension=ext,
        phase_number=extract_phase_number(name),
    )


def _markdown_in(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == ".md")


def scan_plan_documents(plan_path: Path) -> list[PlanDocument]:
    """Return the plan's documents, newest first. A missing folder yields []."""
    if not plan_path.is_dir():
        return []

    found: list[tuple[Path, str, str | None]] = []
    plan_file = plan_path / "plan.md"
    if plan_file.is_file():
        found.append((plan_file, "plan", None))

    for entry in sorted(plan_path.iterdir()):
        if not entry.name.startswith("phase-"):
            continue
        if entry.is_dir():
            phase_file = entry / "phase.md"
            if phase_file.is_file():
                # Named after its directory.
                found.append((phase_file, "phase", entry.name))
        elif entry.suffix == ".md":
            found.append((entry, "phase", None))

    found.extend((p, "research", None) for p in _markdown_in(plan_path / "research"))
    artifacts = plan_path / "artifacts"
    if artifacts.is_dir():
        found.extend((p, "artifact", None) for p in sorted(artifacts.iterdir()) if p.is_file())
    found.extend((p, "report", None) for p in _markdown_in(plan_path / "reports"))

    documents: list[PlanDocument] = []
    for path, doc_type, name in found:
        try:
            documents.append(_create_document(path, doc_type, plan_path, name))
        except OSError:
            logger.debug("Skipping unreadable document %s", path, exc_info=True)

    documents.sort(key=lambda d: d.modified_at, reverse=True)
    return documents


def group_documents_by_type(documents: list[PlanDocument]) -> dict[str, list[PlanDocument]]:
    """Bucket documents for the docs panel; phases sorted highest number first."""
    grouped: dict[str, list[PlanDocument]] = {t: [] for t in _TYPE_ICONS}
    for doc in documents:
        grouped.setdefault(doc.doc_type, []).append(doc)
    grouped["phase"].sort(key=lambda d: d.phase_number or 0, reverse=True)
    return grouped
