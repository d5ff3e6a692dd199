"""Data model for the Evidence Miner pipeline.

Every record here is a frozen dataclass. Stage transitions never mutate a
WorkflowState in place; they build a new one with ``dataclasses.replace`` (see
``evidence_miner.workflow``), so a consumer holding a snapshot never observes a
half-applied transition.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple


class Stage(Enum):
    DRAFTING = "drafting"
    TERMS_EXTRACTED = "terms_extracted"
    SEARCHED = "searched"
    ANALYZED = "analyzed"
    DIRECT_ANALYSIS = "direct_analysis"


@dataclass(frozen=True)
class Term:
    """A MeSH heading proposed by the extraction model."""
    text: str
    selected: bool = True


@dataclass(frozen=True)
class Document:
    """A PubMed article as parsed from an efetch batch."""
    id: str                                   # PMID, the only lookup key
    title: str
    source_url: str
    authors: Tuple[str, ...] = ()
    venue: str = ""                           # journal title
    published_date: str = ""                  # "2021 Mar", "2019", ""
    abstract: Optional[str] = None
    references: Optional[Tuple[str, ...]] = None   # None = no reference list available
    doi: Optional[str] = None
    translated_title: Optional[str] = None

    @property
    def display_title(self) -> str:
        return self.translated_title or self.title


@dataclass(frozen=True)
class AnalysisResult:
    """Deep analysis of one selected document."""
    document_id: str
    source_document: Document
    analysis_text: str


@dataclass(frozen=True)
class WorkflowState:
    """Single source of truth for one Evidence Miner session."""
    stage: Stage = Stage.DRAFTING
    input_text: str = ""

    # MeSH section
    terms: Tuple[Term, ...] = ()
    hit_count: Optional[int] = None           # None = not yet computed
    is_counting: bool = False

    # Search results section
    documents: Tuple[Document, ...] = ()
    total_found: int = 0
    selected_ids: FrozenSet[str] = field(default_factory=frozenset)

    # Analysis section
    analyses: Tuple[AnalysisResult, ...] = ()
    final_review: Optional[str] = None
    direct_analysis: Optional[str] = None

    # Global loading/error
    busy: bool = False
    progress_label: str = ""
    error: Optional[str] = None

    # Bumped on every reset so results of abandoned in-flight calls can be dropped.
    # Not part of equality: two fresh states compare equal whatever their epoch.
    epoch: int = field(default=0, compare=False)

    @property
    def selected_terms(self) -> Tuple[Term, ...]:
        return tuple(t for t in self.terms if t.selected)

    @property
    def selected_documents(self) -> Tuple[Document, ...]:
        """Selected documents in search-result order."""
        return tuple(d for d in self.documents if d.id in self.selected_ids)

    @property
    def can_search(self) -> bool:
        return bool(self.terms) and not self.busy and bool(self.hit_count)
