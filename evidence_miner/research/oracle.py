"""
LLM gateway for term extraction, title translation, per-paper analysis and synthesis.

Two OpenAI-compatible endpoints are used:
- FAST model: MeSH extraction and title translation (JSON array replies)
- SMART model: deep per-paper analysis, final review, direct text analysis (Markdown)

Extraction and translation are best-effort and never raise: they fall back to
naive terms / untranslated titles. Analysis and synthesis raise
UpstreamUnavailable, since the final review depends on their content.
"""

import json
import logging
from typing import List, Optional, Sequence

from openai import AsyncOpenAI

from evidence_miner.config import (
    FALLBACK_TERM_COUNT,
    FAST_BASE_URL,
    FAST_MODEL,
    LLM_API_KEY,
    LLM_TIMEOUT,
    MAX_CONTEXT_CHARS,
    MAX_INPUT_CHARS,
    MAX_REFERENCES,
    REPORT_LANGUAGE,
    SMART_BASE_URL,
    SMART_MODEL,
)
from evidence_miner.errors import AlignmentFailure, UpstreamUnavailable
from evidence_miner.models import Document, Term
from evidence_miner.utils import parse_json_array, sanitize_input, strip_think_blocks

logger = logging.getLogger(__name__)

ANALYSIS_SEPARATOR = "\n\n---\n\n"

_JSON_ARRAY_SYSTEM = (
    "/no_think You are a biomedical terminology specialist. "
    "Respond ONLY with a JSON array of strings, no markdown, no commentary."
)


def fallback_terms(text: str, limit: int = FALLBACK_TERM_COUNT) -> List[Term]:
    """First whitespace-separated tokens of the input, all selected."""
    return [Term(text=token, selected=True) for token in text.split()[:limit]]


class TermExtractionGateway:
    """Prompts and reply handling for every LLM call the pipeline makes."""

    def __init__(
        self,
        fast_client: Optional[AsyncOpenAI] = None,
        smart_client: Optional[AsyncOpenAI] = None,
        fast_model: str = FAST_MODEL,
        smart_model: str = SMART_MODEL,
        language: str = REPORT_LANGUAGE,
    ):
        self.fast_client = fast_client or AsyncOpenAI(base_url=FAST_BASE_URL, api_key=LLM_API_KEY)
        self.smart_client = smart_client or AsyncOpenAI(base_url=SMART_BASE_URL, api_key=LLM_API_KEY)
        self.fast_model = fast_model
        self.smart_model = smart_model
        self.language = language

    async def _call(self, client: AsyncOpenAI, model: str, system: str, user: str,
                    max_tokens: int = 2048, temperature: float = 0.3) -> str:
        resp = await client.chat.completions.create(
            model=model,
            messages=[{"role": "system", "content": system}, {"role": "user", "content": user}],
            max_tokens=max_tokens, temperature=temperature, timeout=LLM_TIMEOUT
        )
        return strip_think_blocks(resp.choices[0].message.content or "")

    async def _call_smart(self, system: str, user: str, max_tokens: int = 4096,
                          temperature: float = 0.3) -> str:
        """Call the smart model; any failure or empty reply raises UpstreamUnavailable."""
        try:
            text = await self._call(self.smart_client, self.smart_model, system, user,
                                    max_tokens=max_tokens, temperature=temperature)
        except Exception as e:
            raise UpstreamUnavailable(f"LLM request failed: {e}") from e
        if not text:
            raise UpstreamUnavailable("LLM returned an empty response")
        return text

    # ------------------------------------------------------------------ #
    #  Best-effort calls (FAST model, JSON arrays)                        #
    # ------------------------------------------------------------------ #

    async def extract_terms(self, text: str) -> List[Term]:
        """Extract MeSH headings from clinical text (any language).

        Falls back to the first few words of the input if the model fails or
        the reply is not a JSON array of strings.
        """
        user = (
            "Analyze the following medical text.\n"
            "1. Translate to English mentally if needed.\n"
            "2. Extract key medical concepts.\n"
            '3. Convert these into EXACT PubMed "MeSH Headings" (Medical Subject Headings).\n'
            '   Example: Use "Neoplasms" instead of "Cancer", '
            '"Myocardial Infarction" instead of "Heart Attack".\n'
            "4. Return a JSON array of strings.\n\n"
            f'Text: "{sanitize_input(text)[:MAX_INPUT_CHARS]}"'
        )
        try:
            raw = await self._call(self.fast_client, self.fast_model, _JSON_ARRAY_SYSTEM, user,
                                   max_tokens=512, temperature=0.2)
            headings = [h.strip() for h in parse_json_array(raw) if h.strip()]
            if not headings:
                raise ValueError("no MeSH headings in response")
            return [Term(text=h, selected=True) for h in headings]
        except Exception as e:
            logger.warning(f"MeSH extraction failed, falling back to input words: {e}")
            return fallback_terms(text)

    async def translate_titles(self, titles: Sequence[str]) -> List[str]:
        """Translate article titles for display, same length and order as the input.

        Returns the original titles on any failure, including a reply whose
        length does not match the input.
        """
        titles = list(titles)
        if not titles or self.language.lower() == "english":
            return titles

        user = (
            f"Translate the following medical article titles from English to {self.language}.\n"
            "Return a JSON array of strings in the same order.\n\n"
            f"Titles:\n{json.dumps(titles, ensure_ascii=False)}"
        )
        try:
            raw = await self._call(self.fast_client, self.fast_model, _JSON_ARRAY_SYSTEM, user,
                                   max_tokens=4096, temperature=0.2)
            translated = parse_json_array(raw)
            if len(translated) != len(titles):
                raise AlignmentFailure(len(titles), len(translated))
            return translated
        except Exception as e:
            logger.warning(f"Title translation failed, keeping original titles: {e}")
            return titles

    # ------------------------------------------------------------------ #
    #  Fail-loud calls (SMART model, Markdown)                            #
    # ------------------------------------------------------------------ #

    async def analyze_document(self, document: Document, context: str) -> str:
        """Six-section Markdown analysis of one article against the user's context."""
        if document.references:
            reference_context = (
                "\nKey References found in this article:\n- "
                + "\n- ".join(document.references[:MAX_REFERENCES])
            )
        else:
            reference_context = "\n(No direct reference list available from PubMed)"

        system = (
            "You are an expert Medical Research Assistant. "
            "Do not use JSON. Use structured Markdown."
        )
        user = (
            f'Target Context (User\'s interest): "{sanitize_input(context)[:MAX_CONTEXT_CHARS]}"\n\n'
            "Analyze the following article:\n"
            f"Title: {document.title}\n"
            f"Journal: {document.venue} ({document.published_date})\n"
            f"Authors: {', '.join(document.authors)}\n"
            f"Abstract: {document.abstract or 'No abstract'}\n"
            f"{reference_context}\n\n"
            f"Output in Markdown format with the following sections (write the content in {self.language}):\n"
            "1. **Basic Information**: Title, Authors, Journal, Year (keep English for proper nouns)\n"
            "2. **Summary**: Summary of the abstract.\n"
            "3. **Relevance**: How does this article relate to the Target Context?\n"
            "4. **Limitations and Countermeasures**: Limitations or issues mentioned, "
            "and proposed countermeasures.\n"
            "5. **Next Steps**: Recommended next research steps based on this paper.\n"
            "6. **Citation Analysis**: Analyze the provided 'Key References' or infer foundational "
            "theories from the abstract. Which papers does this study build upon?"
        )
        return await self._call_smart(system, user, temperature=0.3)

    async def synthesize(self, analyses: Sequence[str]) -> str:
        """Final literature review over all per-paper analyses."""
        system = (
            "You are generating a final literature review report. "
            "Ensure the tone is academic and professional."
        )
        user = (
            "Base the review on the following analyzed papers.\n\n"
            f"Input Analyses:\n{ANALYSIS_SEPARATOR.join(analyses)}\n\n"
            f"Create a comprehensive review in {self.language} (Markdown) including:\n"
            "# Comprehensive Literature Review\n"
            "## 1. Executive Summary\n"
            "## 2. Key Themes and Evidence Across Papers\n"
            "## 3. Contradictions and Gaps Between Papers\n"
            "## 4. Clinical and Research Recommendations\n"
            "## 5. Conclusion"
        )
        return await self._call_smart(system, user, max_tokens=8192, temperature=0.4)

    async def analyze_text(self, text: str) -> str:
        """Single-shot analysis of the raw input, without any literature search."""
        system = "You are an expert Medical Research Assistant. Answer in structured Markdown."
        user = (
            f"Analyze this medical text (write the content in {self.language}):\n\n"
            f"{sanitize_input(text)[:MAX_INPUT_CHARS]}"
        )
        return await self._call_smart(system, user)
