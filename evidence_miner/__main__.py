"""Entry point for `python -m evidence_miner`.

Delegates to `python -m evidence_miner.cli`, which runs the full pipeline.
"""
import runpy
runpy.run_module("evidence_miner.cli", run_name="__main__", alter_sys=True)
