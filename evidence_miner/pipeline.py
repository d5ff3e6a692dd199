"""
Evidence Miner pipeline orchestrator.

Stages (each started by an explicit call):
  DRAFTING -> TERMS_EXTRACTED -> SEARCHED -> ANALYZED
  DRAFTING -> DIRECT_ANALYSIS            (no literature search)

The orchestrator owns the only WorkflowState of a session. Every async stage
operation asserts the busy flag for its whole duration and refuses to start
while another one is running. reset() is always allowed: it bumps the state's
epoch, and any gateway call that settles afterwards is discarded.

Failure policy:
  - extraction, translation and live count degrade inside the gateways
  - search, analysis, synthesis and direct analysis store the error in the
    state, leave the stage unchanged and re-raise to the caller
"""

import logging
from typing import Callable, List, Optional

from evidence_miner import workflow
from evidence_miner.config import LIVE_COUNT_DEBOUNCE
from evidence_miner.live_count import LiveCountController
from evidence_miner.models import AnalysisResult, WorkflowState
from evidence_miner.research.oracle import TermExtractionGateway
from evidence_miner.research.search_gateway import SearchGateway

logger = logging.getLogger(__name__)

StateListener = Callable[[WorkflowState], None]
ProgressCallback = Callable[[str], None]


class PipelineOrchestrator:
    """Drives one Evidence Miner session end to end."""

    def __init__(
        self,
        search_gateway: Optional[SearchGateway] = None,
        oracle: Optional[TermExtractionGateway] = None,
        debounce: float = LIVE_COUNT_DEBOUNCE,
    ):
        self.search_gateway = search_gateway or SearchGateway()
        self.oracle = oracle or TermExtractionGateway()
        self.live_count = LiveCountController(
            self.search_gateway,
            on_count=self._publish_count,
            on_counting=self._mark_counting,
            on_idle=self._clear_counting,
            delay=debounce,
        )
        self._state = workflow.initial_state()
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> WorkflowState:
        return self._state

    def subscribe(self, listener: StateListener) -> None:
        """Register a callback that receives every committed snapshot."""
        self._listeners.append(listener)

    def _commit(self, state: WorkflowState) -> WorkflowState:
        self._state = state
        for listener in self._listeners:
            listener(state)
        return state

    def _is_current(self, epoch: int) -> bool:
        return self._state.epoch == epoch

    def _begin(self, label: str) -> int:
        self._commit(workflow.begin(self._state, label))
        return self._state.epoch

    def _fail(self, epoch: int, error: Exception) -> None:
        if self._is_current(epoch):
            logger.error(f"{type(error).__name__}: {error}")
            self._commit(workflow.fail(self._state, str(error)))
        else:
            logger.info(f"Discarding failure from an abandoned operation: {error}")

    def _progress(self, label: str, on_progress: Optional[ProgressCallback]) -> None:
        self._commit(workflow.report_progress(self._state, label))
        if on_progress:
            on_progress(label)

    # --- Synchronous edits ---

    def set_input_text(self, text: str) -> WorkflowState:
        return self._commit(workflow.set_input_text(self._state, text))

    def clear_error(self) -> WorkflowState:
        return self._commit(workflow.clear_error(self._state))

    def reset(self) -> WorkflowState:
        """Any stage -> DRAFTING. Idempotent; allowed while busy."""
        self.live_count.cancel()
        return self._commit(workflow.reset(self._state))

    def toggle_term(self, index: int) -> WorkflowState:
        """Flip one MeSH term and restart the debounced hit count.

        Must be called from inside a running event loop.
        """
        state = self._commit(workflow.toggle_term(self._state, index))
        self.live_count.schedule(state.terms)
        return state

    def toggle_document(self, document_id: str) -> WorkflowState:
        return self._commit(workflow.toggle_document(self._state, document_id))

    def _publish_count(self, count: Optional[int]) -> None:
        self._commit(workflow.apply_count(self._state, count))

    def _mark_counting(self) -> None:
        self._commit(workflow.start_counting(self._state))

    def _clear_counting(self) -> None:
        self._commit(workflow.stop_counting(self._state))

    # --- Step 1: input -> MeSH terms ---

    async def extract_terms(self) -> WorkflowState:
        text = workflow.require_input(self._state)
        epoch = self._begin("Analyzing text & extracting MeSH terms...")
        try:
            terms = await self.oracle.extract_terms(text)
        except Exception as e:
            self._fail(epoch, e)
            raise

        if not self._is_current(epoch):
            logger.info("Discarding extracted terms: session was reset")
            return self._state

        state = self._commit(workflow.apply_terms(self._state, terms))
        logger.info(f"Extracted {len(terms)} MeSH terms")
        self.live_count.schedule(state.terms)
        return state

    # --- Step 1 alternative: direct analysis, no PubMed ---

    async def run_direct_analysis(self) -> WorkflowState:
        text = workflow.require_input(self._state)
        epoch = self._begin("Analyzing text directly...")
        try:
            narrative = await self.oracle.analyze_text(text)
        except Exception as e:
            self._fail(epoch, e)
            raise

        if not self._is_current(epoch):
            logger.info("Discarding direct analysis: session was reset")
            return self._state

        self.live_count.cancel()
        return self._commit(workflow.apply_direct_analysis(self._state, narrative))

    # --- Step 2 -> 3: search PubMed ---

    async def search(self, on_progress: Optional[ProgressCallback] = None) -> WorkflowState:
        workflow.require_searchable(self._state)
        terms = self._state.terms
        epoch = self._begin("Retrieving articles from PubMed...")
        try:
            documents, count = await self.search_gateway.search_and_fetch(terms)
            if not self._is_current(epoch):
                logger.info("Discarding search results: session was reset")
                return self._state

            self._progress(f"Found {count} articles. Translating titles...", on_progress)
            translated = await self.oracle.translate_titles([d.title for d in documents])
        except Exception as e:
            self._fail(epoch, e)
            raise

        if not self._is_current(epoch):
            logger.info("Discarding search results: session was reset")
            return self._state

        aligned = workflow.align_translations(documents, translated)
        logger.info(f"Retrieved {len(aligned)} of {count} PubMed articles")
        return self._commit(workflow.apply_search(self._state, aligned, count))

    # --- Step 3 -> 4: per-paper analysis + final review ---

    async def analyze_selected(self, on_progress: Optional[ProgressCallback] = None) -> WorkflowState:
        """Analyze every selected document in turn, then synthesize the review.

        All-or-nothing: the first failure aborts the run and nothing from it is
        kept.
        """
        selected = workflow.require_selection(self._state)
        context = self._state.input_text
        epoch = self._begin("Initializing analysis...")

        analyses = []
        try:
            for i, document in enumerate(selected, 1):
                if not self._is_current(epoch):
                    logger.info("Stopping analysis: session was reset")
                    return self._state
                self._progress(
                    f"Analyzing paper {i}/{len(selected)}: {document.id}...", on_progress
                )
                text = await self.oracle.analyze_document(document, context)
                analyses.append(AnalysisResult(
                    document_id=document.id,
                    source_document=document,
                    analysis_text=text,
                ))

            if not self._is_current(epoch):
                logger.info("Stopping analysis: session was reset")
                return self._state
            self._progress("Synthesizing Final Review...", on_progress)
            review = await self.oracle.synthesize([a.analysis_text for a in analyses])
        except Exception as e:
            self._fail(epoch, e)
            raise

        if not self._is_current(epoch):
            logger.info("Discarding final review: session was reset")
            return self._state

        logger.info(f"Analyzed {len(analyses)} papers and synthesized the final review")
        return self._commit(workflow.apply_analysis(self._state, analyses, review))
