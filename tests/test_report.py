"""Tests for report.py"""

from dataclasses import replace
from datetime import datetime

import pytest

from evidence_miner.errors import InvalidInput
from evidence_miner.models import AnalysisResult, Stage, WorkflowState
from evidence_miner.report import REPORT_PREFIX, build_report, write_report

GENERATED_AT = datetime(2024, 5, 1, 9, 30, 0)


@pytest.fixture
def analyzed_state(make_document):
    with_refs = make_document("1", "First paper", references=("Ref A", "Ref B"))
    without_refs = make_document("2", "Second paper")
    return replace(
        WorkflowState(),
        stage=Stage.ANALYZED,
        input_text="NSCLC immunotherapy",
        documents=(with_refs, without_refs),
        selected_ids=frozenset({"1", "2"}),
        analyses=(
            AnalysisResult("1", with_refs, "Analysis one"),
            AnalysisResult("2", without_refs, "Analysis two"),
        ),
        final_review="# Comprehensive Literature Review",
    )


class TestBuildReport:

    def test_header(self, analyzed_state):
        report = build_report(analyzed_state, GENERATED_AT)
        assert report.startswith(
            "# Evidence Miner Report\n"
            "Date: 2024-05-01 09:30:00\n"
            "Query Context: NSCLC immunotherapy\n\n"
        )

    def test_review_and_papers(self, analyzed_state):
        report = build_report(analyzed_state, GENERATED_AT)
        assert "# Comprehensive Literature Review\n\n## Individual Papers Analysis\n\n" in report
        assert (
            "### First paper\n"
            "Source: https://pubmed.ncbi.nlm.nih.gov/1/\n"
            "References Cited: 2\n"
            "\nAnalysis one\n\n"
        ) in report
        assert (
            "### Second paper\n"
            "Source: https://pubmed.ncbi.nlm.nih.gov/2/\n"
            "\nAnalysis two\n\n"
        ) in report
        assert report.index("First paper") < report.index("Second paper")

    def test_direct_analysis(self):
        state = replace(
            WorkflowState(),
            stage=Stage.DIRECT_ANALYSIS,
            input_text="asthma",
            direct_analysis="Narrative",
        )
        report = build_report(state, GENERATED_AT)
        assert report.endswith("### Direct Text Analysis\nNarrative\n")
        assert "Individual Papers Analysis" not in report

    def test_nothing_to_export(self):
        with pytest.raises(InvalidInput):
            build_report(WorkflowState())


class TestWriteReport:

    def test_writes_utf8_with_bom(self, analyzed_state, tmp_path):
        path = write_report(analyzed_state, tmp_path / "out")
        assert path.parent == tmp_path / "out"
        assert path.name.startswith(f"{REPORT_PREFIX}_")
        assert path.suffix == ".txt"
        raw = path.read_bytes()
        assert raw.startswith(b"\xef\xbb\xbf")
        assert "Analysis one" in raw.decode("utf-8-sig")
