# stmap/analysis/inspector.py
"""
SafeTensors inspector: hashes the file and checks the parsed header layout.
"""
from __future__ import annotations

import hashlib
from typing import List

from loguru import logger

from stmap.analysis.base import InspectionReport
from stmap.container import SafeTensorsFile
from stmap.io.file_reader import LocalFileSource
from stmap.model_formats.safetensors.errors import SafeTensorsError
from stmap.observability import Timer, to_dict

AVAILABLE_STAGES: List[str] = ["sha256", "structure"]


class Inspector:
    """Runs inspection stages over one SafeTensors file."""

    def __init__(self, path: str):
        self.path = path
        self.src = LocalFileSource(path)

    def run(self, stages: List[str]) -> InspectionReport:
        """
        Run only the requested stages and return the report.

        Args:
            stages: Stages to run, any of ``AVAILABLE_STAGES``.
        """
        with self.src.open() as mf:
            report = InspectionReport(
                file_path=self.path,
                file_size=mf.size,
                sha256_hex="not_run",
                format="safetensors",
                metadata={},
            )

            if "sha256" in stages:
                with Timer("sha256") as t_hash:
                    h = hashlib.sha256()
                    h.update(mf.view)
                    report.sha256_hex = h.hexdigest()
                report.stages_run.append("sha256")
                logger.debug("SHA256 computed in {ms:.2f}ms", ms=t_hash.duration_ms)

        if "structure" in stages:
            with Timer("structure") as t_core:
                self._inspect_structure(report)
            report.stages_run.append("structure")
            logger.debug("Structure inspection completed in {ms:.2f}ms", ms=t_core.duration_ms)

        return report

    def _inspect_structure(self, report: InspectionReport) -> None:
        try:
            st = SafeTensorsFile.open(self.path)
        except SafeTensorsError as e:
            logger.error("Cannot open {path}: {error}", path=self.path, error=e)
            report.add("parse", False, f"SafeTensors open failed: {e}")
            report.add_reason(type(e).__name__, str(e))
            return

        with st:
            file_size = st.file_size
            report.metadata.update(
                {
                    "header_size": st.header_size,
                    "data_start": st.data_start,
                    "n_tensors": len(st.tensors),
                    "n_metadata": len(st.metadata),
                }
            )
            report.add(
                "structural_integrity:header_bounds",
                True,
                f"Header region: [8, {st.data_start}) within {file_size} bytes",
            )

            last_end = st.data_start
            all_sized = True
            for t in st.iter_tensors():
                begin, end = t.data_offsets
                abs_b = st.data_start + begin
                abs_e = st.data_start + end
                sized = t.nbytes == t.expected_nbytes
                all_sized = all_sized and sized
                report.add(
                    f"tensor_bounds:{t.name}",
                    sized,
                    f"[{abs_b},{abs_e})",
                    **{
                        "start": abs_b,
                        "end": abs_e,
                        "type": t.dtype.name,
                        "dims": str(list(t.shape)),
                        "on_disk": t.nbytes,
                        "expected": t.expected_nbytes,
                    },
                )
                report.tensors.append(to_dict(t))
                last_end = max(last_end, abs_e)

            report.metadata_entries.extend(to_dict(m) for m in st.iter_metadata())

            report.add(
                "structural_integrity:tensor_sizes",
                all_sized,
                "Every tensor's byte length matches shape x dtype size",
            )
            report.metadata["trailing_bytes"] = file_size - last_end
