"""Plain-text report export for a finished session."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from evidence_miner.errors import InvalidInput
from evidence_miner.models import WorkflowState
from evidence_miner.utils import generate_unique_filename

logger = logging.getLogger(__name__)

REPORT_PREFIX = "EvidenceMiner"


def build_report(state: WorkflowState, generated_at: Optional[datetime] = None) -> str:
    """Assemble the report text from the direct analysis or the final review.

    Raises:
        InvalidInput: if the session has produced nothing to report yet.
    """
    if not state.direct_analysis and not state.final_review:
        raise InvalidInput("Nothing to export: run an analysis first.")

    generated_at = generated_at or datetime.now()
    content = "# Evidence Miner Report\n"
    content += f"Date: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}\n"
    content += f"Query Context: {state.input_text}\n\n"

    if state.direct_analysis:
        content += f"### Direct Text Analysis\n{state.direct_analysis}\n"
        return content

    content += state.final_review + "\n\n"
    content += "## Individual Papers Analysis\n\n"
    for analysis in state.analyses:
        doc = analysis.source_document
        content += f"### {doc.title}\n"
        content += f"Source: {doc.source_url}\n"
        if doc.references:
            content += f"References Cited: {len(doc.references)}\n"
        content += f"\n{analysis.analysis_text}\n\n"
    return content


def write_report(state: WorkflowState, output_dir: Path) -> Path:
    """Write the report as UTF-8 with a BOM so Excel/Notepad on Windows read it correctly."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / generate_unique_filename(REPORT_PREFIX)
    path.write_text(build_report(state), encoding="utf-8-sig")
    logger.info(f"Report written to {path}")
    return path
