"""PubMed and LLM gateways used by the pipeline."""
