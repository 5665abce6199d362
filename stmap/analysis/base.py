# stmap/analysis/base.py
"""
Inspection report models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Finding:
    """Single check result."""

    name: str  # "<group>:<check>", e.g. "tensor_bounds:embed.weight"
    ok: bool
    details: str = ""
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ReasonEntry:
    """Explains why a file could not be opened."""

    target: str  # error class, e.g. "TruncatedFile"
    reason: str


@dataclass
class InspectionReport:
    """Aggregate inspection report.

    ``tensors`` and ``metadata_entries`` hold plain copies of the parsed
    records so the report outlives the mapping.
    """

    file_path: str
    file_size: int
    sha256_hex: str
    format: str
    metadata: Dict[str, Any]
    findings: List[Finding] = field(default_factory=list)
    reason_matrix: List[ReasonEntry] = field(default_factory=list)
    stages_run: List[str] = field(default_factory=list)
    tensors: List[Dict[str, Any]] = field(default_factory=list)
    metadata_entries: List[Dict[str, Any]] = field(default_factory=list)

    def add(self, name: str, ok: bool, details: str = "", **context: Any) -> None:
        self.findings.append(Finding(name=name, ok=ok, details=details, context=context))

    def add_reason(self, target: str, reason: str) -> None:
        self.reason_matrix.append(ReasonEntry(target=target, reason=reason))

    @property
    def ok(self) -> bool:
        return all(f.ok for f in self.findings) if self.findings else True
