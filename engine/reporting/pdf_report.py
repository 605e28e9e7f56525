"""PDF report generation for carbon-credit financial models.

Produces a tabular report: cover, key metrics, the five linked statements,
compliance checks and diagnostics, and optionally a scenario comparison.
Formatting only; numbers are rendered as computed.
"""
from io import BytesIO
from datetime import datetime
from typing import Any

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
    PageBreak,
)
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle

# ══════════════════════════════════════════════════════════════════════
# Constants
# ══════════════════════════════════════════════════════════════════════

PAGE_W, PAGE_H = landscape(A4)
MARGIN = 15 * mm
YEARS_PER_TABLE = 8
LABEL_COL_W = 60 * mm

# Color palette
C_PRIMARY = "#047857"
C_DARK = "#064e3b"
C_RED = "#dc2626"
C_GRAY = "#6b7280"
C_LIGHT_BG = "#f9fafb"
C_GRID = "#e5e7eb"

INCOME_ROWS: list[tuple[str, str]] = [
    ("Credits issued (tCO2e)", "credits_issued"),
    ("Spot revenue", "spot_revenue"),
    ("Pre-purchase revenue", "pre_purchase_revenue"),
    ("Total revenue", "total_revenue"),
    ("COGS", "cogs"),
    ("Gross profit", "gross_profit"),
    ("Total OPEX", "total_opex"),
    ("EBITDA", "ebitda"),
    ("Depreciation", "depreciation"),
    ("Interest expense", "interest_expense"),
    ("Earnings before tax", "earnings_before_tax"),
    ("Income tax", "income_tax"),
    ("Net income", "net_income"),
]

BALANCE_ROWS: list[tuple[str, str]] = [
    ("Cash", "cash"),
    ("Accounts receivable", "accounts_receivable"),
    ("PP&E, net", "ppe_net"),
    ("Total assets", "total_assets"),
    ("Accounts payable", "accounts_payable"),
    ("Unearned revenue", "unearned_revenue"),
    ("Debt", "debt_balance"),
    ("Total liabilities", "total_liabilities"),
    ("Contributed capital", "contributed_capital"),
    ("Retained earnings", "retained_earnings"),
    ("Total equity", "total_equity"),
]

CASH_FLOW_ROWS: list[tuple[str, str]] = [
    ("Net income", "net_income"),
    ("Depreciation add-back", "depreciation_addback"),
    ("Change in AR", "change_ar"),
    ("Change in AP", "change_ap"),
    ("Change in unearned revenue", "change_unearned"),
    ("Operating cash flow", "operating_cash_flow"),
    ("CAPEX", "capex"),
    ("Investing cash flow", "investing_cash_flow"),
    ("Equity injection", "equity_injection"),
    ("Debt draw", "debt_draw"),
    ("Debt repayment", "debt_repayment"),
    ("Financing cash flow", "financing_cash_flow"),
    ("Cash at end of year", "cash_end"),
]

DEBT_ROWS: list[tuple[str, str]] = [
    ("Beginning balance", "beginning_balance"),
    ("Draw", "draw"),
    ("Principal", "principal_payment"),
    ("Ending balance", "ending_balance"),
    ("Interest", "interest_expense"),
    ("Debt service", "debt_service"),
    ("DSCR", "dscr"),
]

CARBON_ROWS: list[tuple[str, str]] = [
    ("Pre-purchase amount", "purchase_amount"),
    ("Credits delivered", "purchased_credits"),
    ("Implied purchase price", "implied_purchase_price"),
    ("Investor cash flow", "investor_cash_flow"),
]


# ══════════════════════════════════════════════════════════════════════
# Canvas Callbacks (header / footer / page numbers)
# ══════════════════════════════════════════════════════════════════════

def _on_first_page(canvas, doc):
    canvas.saveState()
    canvas.setFont("Helvetica", 7)
    canvas.setFillColor(colors.HexColor(C_GRAY))
    canvas.drawCentredString(PAGE_W / 2, 10 * mm, "Generated by CarbonFlow")
    canvas.restoreState()


def _on_later_pages(canvas, doc):
    """Pages 2+: header line + page number."""
    canvas.saveState()
    canvas.setStrokeColor(colors.HexColor(C_PRIMARY))
    canvas.setLineWidth(0.5)
    canvas.line(MARGIN, PAGE_H - 14 * mm, PAGE_W - MARGIN, PAGE_H - 14 * mm)
    canvas.setFont("Helvetica", 7)
    canvas.setFillColor(colors.HexColor(C_GRAY))
    canvas.drawString(MARGIN, PAGE_H - 12 * mm, "CarbonFlow Financial Model Report")
    canvas.drawRightString(PAGE_W - MARGIN, 8 * mm, f"Page {doc.page}")
    canvas.restoreState()


# ══════════════════════════════════════════════════════════════════════
# Styles & Table Helpers
# ══════════════════════════════════════════════════════════════════════

def _get_styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        "ReportTitle", parent=styles["Title"],
        fontSize=26, spaceAfter=6, textColor=colors.HexColor(C_PRIMARY),
    ))
    styles.add(ParagraphStyle(
        "Subtitle", parent=styles["Heading2"],
        fontSize=14, textColor=colors.HexColor(C_DARK), spaceAfter=4,
    ))
    styles.add(ParagraphStyle(
        "SectionHeader", parent=styles["Heading2"],
        fontSize=13, spaceBefore=10, spaceAfter=6,
        textColor=colors.HexColor(C_DARK),
    ))
    styles.add(ParagraphStyle(
        "BodyText2", parent=styles["Normal"],
        fontSize=9, leading=13, spaceAfter=4,
    ))
    styles.add(ParagraphStyle(
        "CoverInfo", parent=styles["Normal"],
        fontSize=11, leading=16, spaceAfter=2,
    ))
    return styles


def _styled_table(
    data: list[list],
    col_widths: list,
    header_color: str = C_DARK,
    row_bg_alt: str = C_LIGHT_BG,
) -> Table:
    """Create a consistently styled table."""
    t = Table(data, colWidths=col_widths, repeatRows=1)
    t.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(header_color)),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 7.5),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.4, colors.HexColor(C_GRID)),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1),
         [colors.white, colors.HexColor(row_bg_alt)]),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]))
    return t


def _fmt(
    v: float | None, fmt_str: str = ",.0f",
    prefix: str = "", suffix: str = "",
) -> str:
    """Safe number formatting."""
    if v is None:
        return "N/A"
    try:
        return f"{prefix}{v:{fmt_str}}{suffix}"
    except (ValueError, TypeError):
        return "N/A"


def _pct(v: float | None) -> str:
    return _fmt(v * 100 if v is not None else None, ".1f", suffix="%")


def _statement_tables(
    title: str,
    rows: list[dict[str, Any]],
    layout: list[tuple[str, str]],
    styles,
    ratio_keys: frozenset[str] = frozenset(),
) -> list:
    """Line items down, years across; wide horizons are split into chunks."""
    elems: list = [Paragraph(title, styles["SectionHeader"])]
    if not rows:
        elems.append(Paragraph("No data.", styles["BodyText2"]))
        return elems

    usable = PAGE_W - 2 * MARGIN - LABEL_COL_W
    for start in range(0, len(rows), YEARS_PER_TABLE):
        chunk = rows[start:start + YEARS_PER_TABLE]
        data = [[""] + [str(r["year"]) for r in chunk]]
        for label, key in layout:
            fmt = ",.2f" if key in ratio_keys else ",.0f"
            data.append([label] + [_fmt(r.get(key), fmt) for r in chunk])
        col_w = usable / len(chunk)
        elems.append(_styled_table(data, [LABEL_COL_W] + [col_w] * len(chunk)))
        elems.append(Spacer(1, 4 * mm))
    return elems


# ══════════════════════════════════════════════════════════════════════
# Sections
# ══════════════════════════════════════════════════════════════════════

def _build_cover(styles, model_name: str, description: str | None, years: list[int],
                 discount_rate: float) -> list:
    elems: list = [Spacer(1, 40 * mm)]
    elems.append(Paragraph("CarbonFlow", styles["ReportTitle"]))
    elems.append(Paragraph("Financial Model Report", styles["Subtitle"]))
    elems.append(Spacer(1, 12 * mm))

    info = [f"<b>Model:</b> {model_name}"]
    if description:
        info.append(f"<b>Description:</b> {str(description)[:200]}")
    if years:
        info.append(f"<b>Horizon:</b> {years[0]}-{years[-1]} ({len(years)} years)")
    info.append(f"<b>Discount rate:</b> {discount_rate * 100:.1f}%")
    info.append(f"<b>Generated:</b> {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    for line in info:
        elems.append(Paragraph(line, styles["CoverInfo"]))
    elems.append(PageBreak())
    return elems


def _build_key_metrics(styles, metrics: dict) -> list:
    elems: list = [Paragraph("Key Metrics", styles["SectionHeader"])]
    summary = metrics.get("summary", {})
    returns = metrics.get("returns", {})
    equity = returns.get("equity", {})
    project = returns.get("project", {})
    investor = returns.get("investor", {})
    cash = metrics.get("cash_health", {})

    data = [
        ["Metric", "Equity", "Project", "Investor"],
        ["NPV", _fmt(equity.get("npv"), prefix="$"), _fmt(project.get("npv"), prefix="$"),
         _fmt(investor.get("npv"), prefix="$")],
        ["IRR", _pct(equity.get("irr")), _pct(project.get("irr")), _pct(investor.get("irr"))],
        ["MIRR", _pct(equity.get("mirr")), _pct(project.get("mirr")), _pct(investor.get("mirr"))],
        ["Payback (years)", _fmt(equity.get("payback"), ".1f"), _fmt(project.get("payback"), ".1f"),
         _fmt(investor.get("payback"), ".1f")],
        ["Discounted payback (years)", _fmt(equity.get("discounted_payback"), ".1f"),
         _fmt(project.get("discounted_payback"), ".1f"),
         _fmt(investor.get("discounted_payback"), ".1f")],
    ]
    usable = PAGE_W - 2 * MARGIN
    elems.append(_styled_table(data, [usable * 0.4] + [usable * 0.2] * 3))
    elems.append(Spacer(1, 5 * mm))

    overview = [
        ["Indicator", "Value"],
        ["Total revenue", _fmt(summary.get("total_revenue"), prefix="$")],
        ["Total net income", _fmt(summary.get("total_net_income"), prefix="$")],
        ["Credits issued (tCO2e)", _fmt(summary.get("total_credits_issued"))],
        ["Weighted-average price", _fmt(summary.get("wa_price"), ",.2f", prefix="$")],
        ["LCOC", _fmt(metrics.get("unit_economics", {}).get("total", {}).get("lcoc"), ",.2f", prefix="$")],
        ["Minimum DSCR", _fmt(summary.get("min_dscr"), ".2f", suffix="x")],
        ["Peak funding", _fmt(cash.get("peak_funding"), prefix="$")],
        ["Ending cash", _fmt(summary.get("ending_cash"), prefix="$")],
    ]
    elems.append(_styled_table(overview, [usable * 0.4, usable * 0.3]))
    elems.append(PageBreak())
    return elems


def _build_compliance(styles, metrics: dict, diagnostics: list[dict]) -> list:
    elems: list = [Paragraph("Accounting Checks", styles["SectionHeader"])]
    compliance = metrics.get("compliance", {})
    checks = ["balance_identity", "cash_tie_out", "equity_identity", "liability_signs", "debt_continuity"]
    data = [["Year"] + [c.replace("_", " ").title() for c in checks]]
    for row in compliance.get("yearly", []):
        data.append([str(row["year"])] + ["Pass" if row.get(c) else "FAIL" for c in checks])
    usable = PAGE_W - 2 * MARGIN
    elems.append(_styled_table(data, [usable / (len(checks) + 1)] * (len(checks) + 1)))
    overall = "PASS" if compliance.get("overall_pass") else "FAIL"
    elems.append(Paragraph(f"<b>Overall:</b> {overall}", styles["BodyText2"]))

    if diagnostics:
        elems.append(Paragraph("Diagnostics", styles["SectionHeader"]))
        diag = [["Severity", "Code", "Year", "Message"]]
        for d in diagnostics:
            diag.append([d.get("severity", ""), d.get("code", ""),
                         str(d.get("year") or ""), Paragraph(d.get("message", ""), styles["BodyText2"])])
        elems.append(_styled_table(diag, [22 * mm, 50 * mm, 18 * mm, usable - 90 * mm]))
    return elems


def _build_scenarios(styles, scenarios: list[dict] | None) -> list:
    if not scenarios:
        return []
    elems: list = [PageBreak(), Paragraph("Scenarios", styles["SectionHeader"])]
    data = [["Scenario", "Probability", "Equity NPV", "Equity IRR", "Min DSCR"]]
    for s in scenarios:
        m = s.get("metrics") or {}
        eq = m.get("returns", {}).get("equity", {})
        prob = s.get("probability")
        data.append([
            s.get("name", ""),
            _fmt(prob, ".1f", suffix="%") if prob is not None else "-",
            _fmt(eq.get("npv"), prefix="$"),
            _pct(eq.get("irr")),
            _fmt(m.get("debt", {}).get("min_dscr"), ".2f", suffix="x"),
        ])
    usable = PAGE_W - 2 * MARGIN
    elems.append(_styled_table(data, [usable * 0.32] + [usable * 0.17] * 4))
    return elems


# ══════════════════════════════════════════════════════════════════════
# Main entry point
# ══════════════════════════════════════════════════════════════════════

def generate_pdf_report(
    model_name: str,
    statements: dict,
    metrics: dict,
    model_description: str | None = None,
    diagnostics: list[dict] | None = None,
    scenarios: list[dict] | None = None,
) -> BytesIO:
    """Generate a PDF report and return it as a BytesIO buffer.

    Parameters
    ----------
    statements : dict
        ``FinancialStatements.to_dict()`` output.
    metrics : dict
        Comprehensive metrics.
    scenarios : list[dict] or None
        Saved scenarios (``name``, ``probability``, ``metrics``) to tabulate.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        topMargin=18 * mm,
        bottomMargin=15 * mm,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        title=f"{model_name} - Financial Model Report",
    )

    styles = _get_styles()
    elements: list = []
    years = list(statements.get("years", []))

    elements.extend(_build_cover(
        styles, model_name, model_description, years, float(metrics.get("discount_rate") or 0.0),
    ))
    elements.extend(_build_key_metrics(styles, metrics))
    elements.extend(_statement_tables(
        "Income Statement", statements.get("incomeStatements", []), INCOME_ROWS, styles,
    ))
    elements.extend(_statement_tables(
        "Balance Sheet", statements.get("balanceSheets", []), BALANCE_ROWS, styles,
    ))
    elements.extend(_statement_tables(
        "Cash Flow Statement", statements.get("cashFlowStatements", []), CASH_FLOW_ROWS, styles,
    ))
    elements.extend(_statement_tables(
        "Debt Schedule", statements.get("debtSchedule", []), DEBT_ROWS, styles,
        ratio_keys=frozenset({"dscr"}),
    ))
    elements.extend(_statement_tables(
        "Carbon Stream", statements.get("carbonStream", []), CARBON_ROWS, styles,
        ratio_keys=frozenset({"implied_purchase_price"}),
    ))
    elements.extend(_build_compliance(styles, metrics, diagnostics or []))
    elements.extend(_build_scenarios(styles, scenarios))

    doc.build(elements, onFirstPage=_on_first_page, onLaterPages=_on_later_pages)
    buffer.seek(0)
    return buffer
