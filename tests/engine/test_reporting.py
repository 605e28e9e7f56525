"""Tests for engine.reporting — CSV export and PDF generation."""

from __future__ import annotations

import csv
import io

import pytest

from engine.pipeline import run_model
from engine.reporting.csv_export import statements_to_csv
from engine.reporting.pdf_report import generate_pdf_report


@pytest.fixture
def debt_run(debt_inputs):
    return run_model(debt_inputs)


class TestCSVExport:
    def test_sections(self, debt_run):
        text = statements_to_csv(debt_run.statements.to_dict(), debt_run.metrics)
        rows = list(csv.reader(io.StringIO(text)))
        titles = [r[0] for r in rows if len(r) == 1]
        for title in ("Income Statement", "Balance Sheet", "Debt Schedule", "Free Cash Flow",
                      "Returns", "Summary"):
            assert title in titles

    def test_one_row_per_year(self, debt_run):
        text = statements_to_csv(debt_run.statements.to_dict())
        rows = list(csv.reader(io.StringIO(text)))
        start = rows.index(["Income Statement"])
        header = rows[start + 1]
        assert header[0] == "year"
        assert [r[0] for r in rows[start + 2:start + 7]] == ["2024", "2025", "2026", "2027", "2028"]

    def test_none_rendered_blank(self, debt_run):
        text = statements_to_csv(debt_run.statements.to_dict())
        rows = list(csv.reader(io.StringIO(text)))
        start = rows.index(["Debt Schedule"])
        header = rows[start + 1]
        first = rows[start + 2]
        assert first[header.index("dscr")] == ""


class TestPDFReport:
    def test_generates_pdf(self, debt_run):
        buffer = generate_pdf_report(
            "Mangrove Restoration",
            debt_run.statements.to_dict(),
            debt_run.metrics,
            model_description="Blue carbon pilot",
            diagnostics=[d.to_dict() for d in debt_run.diagnostics],
            scenarios=[{"name": "Base", "probability": 60.0, "metrics": debt_run.metrics}],
        )
        data = buffer.getvalue()
        assert data.startswith(b"%PDF")
        assert len(data) > 2000

    def test_minimal_report(self, simple_inputs):
        run = run_model(simple_inputs)
        buffer = generate_pdf_report("Cookstoves", run.statements.to_dict(), run.metrics)
        assert buffer.getvalue().startswith(b"%PDF")
