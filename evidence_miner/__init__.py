"""Evidence Miner: MeSH extraction, PubMed search and LLM evidence review."""

__version__ = "0.1.0"
