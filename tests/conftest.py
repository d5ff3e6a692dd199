"""Shared pytest fixtures for the Evidence Miner test suite."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from evidence_miner.models import Document, Term


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Set minimum env vars so modules can be imported without real services."""
    monkeypatch.setenv("MODEL_NAME", "test-model")
    monkeypatch.setenv("LLM_BASE_URL", "http://localhost:9999/v1")
    monkeypatch.setenv("LLM_API_KEY", "NA")
    monkeypatch.setenv("FAST_MODEL_NAME", "test-fast")
    monkeypatch.setenv("FAST_LLM_BASE_URL", "http://localhost:9999/v1")
    monkeypatch.delenv("PUBMED_API_KEY", raising=False)


@pytest.fixture
def mock_llm_response():
    """Factory fixture for mock OpenAI LLM responses."""
    class MockChoice:
        def __init__(self, content):
            self.message = type('obj', (object,), {'content': content})()

    class MockResponse:
        def __init__(self, content):
            self.choices = [MockChoice(content)]

    def _make(content="test response"):
        return MockResponse(content)

    return _make


@pytest.fixture
def mock_llm_client(mock_llm_response):
    """AsyncOpenAI stand-in; set `.chat.completions.create` side effects per test."""
    def _make(*contents):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            side_effect=[mock_llm_response(c) for c in contents]
        )
        return client
    return _make


@pytest.fixture
def make_document():
    def _make(pmid="123", title="Immune checkpoint inhibitors in NSCLC", **kwargs):
        return Document(
            id=pmid,
            title=title,
            source_url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
            authors=kwargs.pop("authors", ("Smith J", "Doe A")),
            venue=kwargs.pop("venue", "Lancet Oncol"),
            published_date=kwargs.pop("published_date", "2021 Mar"),
            abstract=kwargs.pop("abstract", "**BACKGROUND**: Test abstract."),
            **kwargs,
        )
    return _make


@pytest.fixture
def sample_terms():
    return [
        Term(text="Neoplasms", selected=True),
        Term(text="Immunotherapy", selected=True),
        Term(text="Autoimmune Diseases", selected=False),
    ]


@pytest.fixture
def sample_efetch_xml():
    """Two-record efetch payload: one fully populated, one bare."""
    return """<?xml version="1.0" ?>
<!DOCTYPE PubmedArticleSet PUBLIC "-//NLM//DTD PubMedArticle, 1st January 2024//EN" "https://dtd.nlm.nih.gov/ncbi/pubmed/out/pubmed_240101.dtd">
<PubmedArticleSet>
  <PubmedArticle>
    <MedlineCitation Status="MEDLINE" Owner="NLM">
      <PMID Version="1">36512345</PMID>
      <Article PubModel="Print">
        <Journal>
          <JournalIssue CitedMedium="Internet">
            <Volume>22</Volume>
            <PubDate><Year>2021</Year><Month>Mar</Month></PubDate>
          </JournalIssue>
          <Title>The Lancet. Oncology</Title>
        </Journal>
        <ArticleTitle>Immune checkpoint inhibitors in <i>patients</i> with autoimmune disease.</ArticleTitle>
        <ELocationID EIdType="doi" ValidYN="Y">10.1016/S1470-2045(21)00001-0</ELocationID>
        <Abstract>
          <AbstractText Label="BACKGROUND">Patients with autoimmune disease were excluded.</AbstractText>
          <AbstractText Label="METHODS">Retrospective cohort.</AbstractText>
          <AbstractText>Unlabelled closing sentence.</AbstractText>
        </Abstract>
        <AuthorList CompleteYN="Y">
          <Author><LastName>Tison</LastName><Initials>A</Initials></Author>
          <Author><LastName>Quere</LastName><Initials>G</Initials></Author>
          <Author><LastName>Misery</LastName><Initials>L</Initials></Author>
          <Author><LastName>Funck-Brentano</LastName><Initials>E</Initials></Author>
          <Author><LastName>Danlos</LastName><Initials>FX</Initials></Author>
          <Author><LastName>Routier</LastName><Initials>E</Initials></Author>
          <Author><CollectiveName>Groupe de Cancerologie Cutanee</CollectiveName></Author>
        </AuthorList>
      </Article>
    </MedlineCitation>
    <PubmedData>
      <ArticleIdList>
        <ArticleId IdType="pubmed">36512345</ArticleId>
        <ArticleId IdType="doi">10.1016/S1470-2045(21)00001-0</ArticleId>
      </ArticleIdList>
      <ReferenceList>
        <Reference><Citation>Johnson DB, et al. JAMA Oncol. 2016.</Citation></Reference>
        <Reference><ArticleIdList><ArticleId IdType="doi">10.1/no-citation</ArticleId></ArticleIdList></Reference>
        <Reference><Citation>Menzies AM, et al. Ann Oncol. 2017.</Citation></Reference>
      </ReferenceList>
    </PubmedData>
  </PubmedArticle>
  <PubmedArticle>
    <MedlineCitation Status="MEDLINE" Owner="NLM">
      <Article PubModel="Print">
      </Article>
    </MedlineCitation>
  </PubmedArticle>
</PubmedArticleSet>
"""
