"""
PubMed gateway via NCBI E-utilities (free, no API key needed for <3 req/sec).

Two operations share the same query and parameters:
- count(): esearch with retmax=0, used by the live hit counter
- search_and_fetch(): esearch for the top relevance-ranked PMIDs, then one
  efetch batch for their full records
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from evidence_miner.config import (
    MAX_SEARCH_RESULTS,
    PUBMED_API_KEY,
    PUBMED_BASE_URL,
    PUBMED_TIMEOUT,
)
from evidence_miner.errors import InvalidQuery, UpstreamUnavailable
from evidence_miner.models import Document, Term
from evidence_miner.research.pubmed_parser import parse_articles
from evidence_miner.research.query_builder import build_query

logger = logging.getLogger(__name__)


class SearchGateway:
    """Count and search+fetch against PubMed for a set of MeSH terms.

    Attributes:
        base_url: E-utilities base URL
        api_key: optional NCBI API key, sent with every request when set
        transport: optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str = PUBMED_BASE_URL,
        api_key: Optional[str] = PUBMED_API_KEY,
        timeout: float = PUBMED_TIMEOUT,
        max_results: int = MAX_SEARCH_RESULTS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_results = max_results
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _search_params(self, query: str, retmax: int) -> Dict[str, Any]:
        params = {
            "db": "pubmed",
            "term": query,
            "retmode": "json",
            "retmax": str(retmax),
            "sort": "relevance",
        }
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    async def count(self, terms: Iterable[Term]) -> int:
        """Number of hits for the current selection without fetching details.

        Returns 0 when nothing is selected (no request is made) and also when
        the request fails; a failed count is not distinguished from a true zero.
        """
        query = build_query(terms)
        if not query:
            return 0

        try:
            async with self._client() as http:
                resp = await http.get(
                    f"{self.base_url}/esearch.fcgi",
                    params=self._search_params(query, retmax=0),
                )
                resp.raise_for_status()
                return int(resp.json().get("esearchresult", {}).get("count", "0"))
        except Exception as e:
            logger.warning(f"PubMed count failed: {e}")
            return 0

    async def search_and_fetch(self, terms: Iterable[Term]) -> Tuple[List[Document], int]:
        """Top relevance-ranked documents for the selection, plus the total hit count.

        Raises:
            InvalidQuery: if no term is selected
            UpstreamUnavailable: if either the esearch or the efetch call fails
        """
        query = build_query(terms)
        if not query:
            raise InvalidQuery("No MeSH terms selected.")

        async with self._client() as http:
            # Step 1: esearch to get PMIDs
            try:
                resp = await http.get(
                    f"{self.base_url}/esearch.fcgi",
                    params=self._search_params(query, retmax=self.max_results),
                )
                resp.raise_for_status()
                search_result = resp.json().get("esearchresult", {})
                id_list = [str(i) for i in search_result.get("idlist", [])]
                count = int(search_result.get("count", "0"))
            except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
                raise UpstreamUnavailable(f"PubMed search failed: {e}") from e

            if not id_list:
                logger.info(f"PubMed esearch returned no IDs for query: {query[:80]}")
                return [], 0

            logger.info(f"PubMed esearch returned {len(id_list)} IDs for query: {query[:80]}")

            # Step 2: efetch full records for exactly those PMIDs
            documents = await self._fetch_details(http, id_list)

        return documents, count

    async def _fetch_details(self, http: httpx.AsyncClient, ids: List[str]) -> List[Document]:
        try:
            params = {
                "db": "pubmed",
                "id": ",".join(ids),
                "retmode": "xml",
            }
            if self.api_key:
                params["api_key"] = self.api_key
            resp = await http.get(f"{self.base_url}/efetch.fcgi", params=params)
            resp.raise_for_status()
            return parse_articles(resp.text)
        except (httpx.HTTPError, ValueError, TypeError) as e:
            raise UpstreamUnavailable(f"PubMed fetch failed: {e}") from e
