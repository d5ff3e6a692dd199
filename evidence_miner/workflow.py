"""
Pure stage transitions over WorkflowState.

Each function takes the current state (plus an input) and returns a new state,
or raises InvalidInput when the transition is not allowed. Nothing here does
I/O; the orchestrator in ``evidence_miner.pipeline`` calls the gateways and
commits the returned snapshots.
"""

from dataclasses import replace
from typing import Iterable, Optional, Sequence

from evidence_miner.errors import InvalidInput, PipelineBusy
from evidence_miner.models import AnalysisResult, Document, Stage, Term, WorkflowState

_HAS_TERMS = (Stage.TERMS_EXTRACTED, Stage.SEARCHED, Stage.ANALYZED)
_HAS_DOCUMENTS = (Stage.SEARCHED, Stage.ANALYZED)


def initial_state() -> WorkflowState:
    return WorkflowState()


def reset(state: WorkflowState) -> WorkflowState:
    """Back to DRAFTING with every derived field cleared."""
    return WorkflowState(epoch=state.epoch + 1)


def set_input_text(state: WorkflowState, text: str) -> WorkflowState:
    return replace(state, input_text=text)


def clear_error(state: WorkflowState) -> WorkflowState:
    return replace(state, error=None)


# --- Busy flag ---

def begin(state: WorkflowState, label: str) -> WorkflowState:
    """Assert the busy flag for a new stage operation."""
    if state.busy:
        raise PipelineBusy(f"Another operation is in progress: {state.progress_label}")
    return replace(state, busy=True, progress_label=label, error=None)


def report_progress(state: WorkflowState, label: str) -> WorkflowState:
    return replace(state, progress_label=label)


def fail(state: WorkflowState, message: str) -> WorkflowState:
    """Release the busy flag and record the error; the stage is left untouched."""
    return replace(state, busy=False, progress_label="", error=message)


def _ensure_idle(state: WorkflowState) -> None:
    if state.busy:
        raise PipelineBusy(f"Another operation is in progress: {state.progress_label}")


# --- DRAFTING -> TERMS_EXTRACTED / DIRECT_ANALYSIS ---

def require_input(state: WorkflowState) -> str:
    if not state.input_text.strip():
        raise InvalidInput("Input text is empty.")
    return state.input_text


def apply_terms(state: WorkflowState, terms: Iterable[Term]) -> WorkflowState:
    """Store freshly extracted terms and drop everything downstream of them."""
    return replace(
        state,
        stage=Stage.TERMS_EXTRACTED,
        terms=tuple(terms),
        hit_count=None,
        is_counting=False,
        documents=(),
        total_found=0,
        selected_ids=frozenset(),
        analyses=(),
        final_review=None,
        direct_analysis=None,
        busy=False,
        progress_label="",
    )


def apply_direct_analysis(state: WorkflowState, narrative: str) -> WorkflowState:
    return replace(
        state,
        stage=Stage.DIRECT_ANALYSIS,
        terms=(),
        hit_count=None,
        is_counting=False,
        documents=(),
        total_found=0,
        selected_ids=frozenset(),
        analyses=(),
        final_review=None,
        direct_analysis=narrative,
        busy=False,
        progress_label="",
    )


# --- TERMS_EXTRACTED self-loop and live count ---

def toggle_term(state: WorkflowState, index: int) -> WorkflowState:
    """Flip one term's selection; the live count becomes "not yet computed"."""
    _ensure_idle(state)
    if state.stage not in _HAS_TERMS:
        raise InvalidInput("No MeSH terms to select from.")
    if not 0 <= index < len(state.terms):
        raise InvalidInput(f"No MeSH term at index {index}.")

    terms = list(state.terms)
    terms[index] = replace(terms[index], selected=not terms[index].selected)
    return replace(state, terms=tuple(terms), hit_count=None)


def start_counting(state: WorkflowState) -> WorkflowState:
    return replace(state, is_counting=True)


def stop_counting(state: WorkflowState) -> WorkflowState:
    return replace(state, is_counting=False)


def apply_count(state: WorkflowState, count: Optional[int]) -> WorkflowState:
    return replace(state, hit_count=count, is_counting=False)


# --- TERMS_EXTRACTED -> SEARCHED ---

def require_searchable(state: WorkflowState) -> None:
    if state.stage not in _HAS_TERMS or not state.terms:
        raise InvalidInput("Extract MeSH terms before searching.")
    if not state.selected_terms:
        raise InvalidInput("No MeSH terms selected.")
    if not state.hit_count:
        raise InvalidInput("Search is disabled until the hit count is a positive number.")


def align_translations(documents: Sequence[Document], translated: Sequence[str]) -> tuple:
    """Attach translated titles by position.

    Positions beyond the end of ``translated`` (or empty translations) keep the
    original title.
    """
    aligned = []
    for i, doc in enumerate(documents):
        title = translated[i] if i < len(translated) and translated[i] else doc.title
        aligned.append(replace(doc, translated_title=title))
    return tuple(aligned)


def apply_search(state: WorkflowState, documents: Sequence[Document], total: int) -> WorkflowState:
    """Replace the result list; selection is filtered, analyses are dropped."""
    documents = tuple(documents)
    ids = {d.id for d in documents}
    return replace(
        state,
        stage=Stage.SEARCHED,
        documents=documents,
        total_found=total,
        selected_ids=frozenset(i for i in state.selected_ids if i in ids),
        analyses=(),
        final_review=None,
        busy=False,
        progress_label="",
    )


# --- SEARCHED self-loop ---

def toggle_document(state: WorkflowState, document_id: str) -> WorkflowState:
    _ensure_idle(state)
    if state.stage not in _HAS_DOCUMENTS:
        raise InvalidInput("No search results to select from.")
    if document_id not in {d.id for d in state.documents}:
        raise InvalidInput(f"Unknown document id: {document_id}")

    if document_id in state.selected_ids:
        selected = state.selected_ids - {document_id}
    else:
        selected = state.selected_ids | {document_id}
    return replace(state, selected_ids=selected)


# --- SEARCHED -> ANALYZED ---

def require_selection(state: WorkflowState) -> tuple:
    if state.stage not in _HAS_DOCUMENTS:
        raise InvalidInput("Search PubMed before analyzing.")
    selected = state.selected_documents
    if not selected:
        raise InvalidInput("No documents selected.")
    return selected


def apply_analysis(state: WorkflowState, analyses: Sequence[AnalysisResult],
                   review: str) -> WorkflowState:
    return replace(
        state,
        stage=Stage.ANALYZED,
        analyses=tuple(analyses),
        final_review=review,
        busy=False,
        progress_label="",
    )
