"""PubMed query construction from selected MeSH terms."""

from datetime import date
from typing import Iterable, Optional

from evidence_miner.config import YEARS_BACK
from evidence_miner.models import Term


def build_term_clause(term: str) -> str:
    """MeSH match OR Title/Abstract match for one term.

    "MeSH Terms" includes minor topics; the Title/Abstract fallback covers
    near-miss headings from the extraction model (e.g. "Lung Cancer" vs
    "Lung Neoplasms") and recent papers that are not indexed yet.
    """
    return f'("{term}"[MeSH Terms] OR "{term}"[Title/Abstract])'


def build_date_clause(today: Optional[date] = None) -> str:
    """Publication-date window from January 1st, YEARS_BACK years ago, open-ended."""
    today = today or date.today()
    start_year = today.year - YEARS_BACK
    return f'"{start_year}/01/01"[Date - Publication] : "3000"[Date - Publication]'


def build_query(terms: Iterable[Term], today: Optional[date] = None) -> str:
    """Build the full PubMed query for the selected terms.

    Returns "" when no term is selected; callers treat that as "not runnable".
    The date window is recomputed on every call.
    """
    selected = [t for t in terms if t.selected]
    if not selected:
        return ""

    mesh_query = " AND ".join(build_term_clause(t.text) for t in selected)
    return f"({mesh_query}) AND ({build_date_clause(today)})"
