"""
Parser for PubMed efetch XML batches.

Each <PubmedArticle> becomes a Document. Missing fields degrade to empty or
None; a record that cannot be parsed at all is skipped and logged so one bad
record never fails the batch.
"""

import logging
import defusedxml.ElementTree as ET
from typing import List, Optional, Tuple

from evidence_miner.config import MAX_AUTHORS, MAX_REFERENCES, PUBMED_ARTICLE_URL
from evidence_miner.models import Document

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"
ET_AL = "et al."


def _text(el) -> str:
    """Full text content of an element (inline markup such as <i> included)."""
    if el is None:
        return ""
    return "".join(el.itertext())


def parse_articles(xml_text: str) -> List[Document]:
    """Parse a PubmedArticleSet payload into Documents, in payload order.

    Raises:
        ValueError: if the payload itself is not well-formed XML.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ValueError(f"PubMed XML parse error: {e}") from e

    documents = []
    for article in root.iter("PubmedArticle"):
        try:
            documents.append(parse_article(article))
        except Exception as e:
            logger.debug(f"Failed to parse article: {e}")
    return documents


def parse_article(article) -> Document:
    """Parse a single <PubmedArticle> element."""
    pmid_el = article.find(".//MedlineCitation/PMID")
    if pmid_el is None:
        pmid_el = article.find(".//PMID")
    pmid = _text(pmid_el).strip()
    title = _text(article.find(".//ArticleTitle")).strip() or UNTITLED

    journal_el = article.find(".//Journal/Title")
    if journal_el is None:
        journal_el = article.find(".//Title")

    return Document(
        id=pmid,
        title=title,
        source_url=PUBMED_ARTICLE_URL.format(pmid=pmid),
        authors=_parse_authors(article),
        venue=_text(journal_el).strip(),
        published_date=_parse_pub_date(article),
        abstract=_parse_abstract(article),
        references=_parse_references(article),
        doi=_parse_doi(article),
    )


def _parse_abstract(article) -> Optional[str]:
    """Structured abstracts carry one AbstractText per labelled section."""
    segments = article.findall(".//AbstractText")
    if not segments:
        return None

    abstract = ""
    for abs_el in segments:
        label = abs_el.get("Label")
        text = _text(abs_el)
        if label:
            abstract += f"**{label}**: {text}\n"
        else:
            abstract += f"{text}\n"
    return abstract.strip()


def _parse_authors(article) -> Tuple[str, ...]:
    author_list = article.find(".//AuthorList")
    if author_list is None:
        return ()

    author_nodes = author_list.findall("Author")
    authors = []
    for author in author_nodes[:MAX_AUTHORS]:
        last_name = author.findtext("LastName", "")
        if last_name:
            name = f"{last_name} {author.findtext('Initials', '')}".strip()
        else:
            name = author.findtext("CollectiveName", "").strip()
        if name:
            authors.append(name)
    if len(author_nodes) > MAX_AUTHORS:
        authors.append(ET_AL)
    return tuple(authors)


def _parse_references(article) -> Optional[Tuple[str, ...]]:
    """First MAX_REFERENCES citations, or None when PubMed has no reference list."""
    reference_list = article.find(".//ReferenceList")
    if reference_list is None:
        return None

    references = []
    for ref in reference_list.findall(".//Reference")[:MAX_REFERENCES]:
        citation = ref.findtext("Citation")
        if citation:
            references.append(citation)
    return tuple(references) if references else None


def _parse_pub_date(article) -> str:
    pub_date = article.find(".//PubDate")
    if pub_date is None:
        return ""
    year = pub_date.findtext("Year", "")
    month = pub_date.findtext("Month", "")
    if not year and not month:
        # Irregular dates ("1998 Dec-1999 Jan") only come as MedlineDate
        return pub_date.findtext("MedlineDate", "").strip()
    return f"{year} {month}".strip()


def _parse_doi(article) -> Optional[str]:
    for id_el in article.findall(".//PubmedData/ArticleIdList/ArticleId"):
        if id_el.get("IdType") == "doi" and id_el.text:
            return id_el.text.strip()
    for eloc in article.findall(".//ELocationID"):
        if eloc.get("EIdType") == "doi" and eloc.text:
            return eloc.text.strip()
    return None
