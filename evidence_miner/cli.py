"""Command-line runner: takes clinical text through the whole pipeline and writes a report."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from evidence_miner.errors import EvidenceMinerError
from evidence_miner.pipeline import PipelineOrchestrator
from evidence_miner.report import write_report

logger = logging.getLogger(__name__)


def setup_logging(output_dir: Optional[Path] = None, verbose: bool = False) -> None:
    """Log to stdout, and to evidence_miner.log inside output_dir when given."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(output_dir / "evidence_miner.log"))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Mine PubMed evidence for a clinical question and write an analysis report.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m evidence_miner "Immunotherapy efficacy in NSCLC patients with autoimmune disease"
  python -m evidence_miner --input-file notes.txt --max-papers 3 --deselect Humans
  python -m evidence_miner "..." --direct

Environment variables:
  MODEL_NAME, LLM_BASE_URL, FAST_MODEL_NAME, FAST_LLM_BASE_URL, LLM_API_KEY,
  PUBMED_API_KEY, REPORT_LANGUAGE
        """
    )
    parser.add_argument(
        'text',
        nargs='?',
        help='Abstract, clinical question or notes (Japanese or English)'
    )
    parser.add_argument(
        '--input-file',
        type=Path,
        help='Read the input text from a file instead'
    )
    parser.add_argument(
        '--direct',
        action='store_true',
        help='Analyze the text directly, without searching PubMed'
    )
    parser.add_argument(
        '--deselect',
        nargs='*',
        default=[],
        metavar='TERM',
        help='MeSH terms to drop from the query after extraction'
    )
    parser.add_argument(
        '--max-papers',
        type=int,
        default=5,
        help='Number of top-ranked papers to analyze (default: 5)'
    )
    parser.add_argument(
        '--output-dir',
        type=Path,
        default=Path('output'),
        help='Directory for the report and log file (default: ./output)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Debug logging'
    )
    args = parser.parse_args(argv)
    if not args.text and not args.input_file:
        parser.error('provide the input text or --input-file')
    if args.max_papers < 1:
        parser.error('--max-papers must be at least 1')
    return args


async def run(args: argparse.Namespace) -> Path:
    text = args.text or args.input_file.read_text(encoding="utf-8")
    orchestrator = PipelineOrchestrator()
    orchestrator.set_input_text(text)

    if args.direct:
        await orchestrator.run_direct_analysis()
        return write_report(orchestrator.state, args.output_dir)

    state = await orchestrator.extract_terms()
    drop = {t.lower() for t in args.deselect}
    for index, term in enumerate(state.terms):
        if term.text.lower() in drop:
            orchestrator.toggle_term(index)
    logger.info("MeSH terms: " + ", ".join(
        f"{t.text}{'' if t.selected else ' (deselected)'}" for t in orchestrator.state.terms
    ))

    await orchestrator.live_count.drain()
    hit_count = orchestrator.state.hit_count
    logger.info(f"Estimated PubMed results: {hit_count if hit_count is not None else '-'}")
    if not hit_count:
        raise EvidenceMinerError("Too specific (0 hits). Deselect some terms and try again.")

    state = await orchestrator.search(on_progress=logger.info)
    for document in state.documents[:args.max_papers]:
        orchestrator.toggle_document(document.id)

    await orchestrator.analyze_selected(on_progress=logger.info)
    return write_report(orchestrator.state, args.output_dir)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    setup_logging(args.output_dir, verbose=args.verbose)
    try:
        path = asyncio.run(run(args))
    except EvidenceMinerError as e:
        logger.error(str(e))
        return 1
    print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
