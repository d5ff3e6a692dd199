"""Centralized configuration for the Evidence Miner pipeline."""
import os
from dotenv import load_dotenv

load_dotenv()

# --- Model Configuration ---
# Smart model: per-paper analysis, synthesis, direct text analysis
SMART_MODEL = os.environ.get("MODEL_NAME", "")
SMART_BASE_URL = os.environ.get("LLM_BASE_URL", "http://localhost:8000/v1")
# Fast model: MeSH extraction and title translation
FAST_MODEL = os.environ.get("FAST_MODEL_NAME", "")
FAST_BASE_URL = os.environ.get("FAST_LLM_BASE_URL", "http://localhost:11434/v1")
LLM_API_KEY = os.environ.get("LLM_API_KEY", "NA")

# --- Service URLs ---
PUBMED_BASE_URL = os.environ.get("PUBMED_BASE_URL", "https://eutils.ncbi.nlm.nih.gov/entrez/eutils")
PUBMED_ARTICLE_URL = "https://pubmed.ncbi.nlm.nih.gov/{pmid}/"
PUBMED_API_KEY = os.environ.get("PUBMED_API_KEY", "")

# --- Output ---
REPORT_LANGUAGE = os.environ.get("REPORT_LANGUAGE", "Japanese")

# --- Timeouts (seconds) ---
LLM_TIMEOUT = 300
PUBMED_TIMEOUT = 15.0
LIVE_COUNT_DEBOUNCE = 0.5

# --- Limits ---
MAX_INPUT_CHARS = 5000
MAX_CONTEXT_CHARS = 1000
MAX_SEARCH_RESULTS = 30
MAX_AUTHORS = 5
MAX_REFERENCES = 10
FALLBACK_TERM_COUNT = 5
YEARS_BACK = 10
