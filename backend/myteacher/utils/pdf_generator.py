"""
Plan and dispute document rendering.

Plan versions are rendered from their frozen snapshot JSON so an export always
matches what was finalized, regardless of later edits to the live plan.
"""

from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib.enums import TA_CENTER
from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from xml.sax.saxutils import escape
from datetime import datetime
from typing import Any, Dict, List, Optional
from io import BytesIO
import html

from myteacher.core.logging_config import logger

PLAN_TITLES = {
    "IEP": "Individualized Education Program",
    "FIVE_OH_FOUR": "Section 504 Plan",
    "BEHAVIOR_PLAN": "Behavior Intervention Plan",
}


def _label(key: str) -> str:
    return key.replace("_", " ").title()


def _format_value(value: Any) -> str:
    """Flatten a stored field value to display text"""
    if value is None or value == "":
        return "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return "; ".join(_format_value(v) for v in value)
    if isinstance(value, dict):
        return "; ".join(f"{_label(str(k))}: {_format_value(v)}" for k, v in value.items())
    return str(value)


def _format_date(value: Optional[str]) -> str:
    if not value:
        return "-"
    try:
        return datetime.fromisoformat(value).strftime("%B %d, %Y")
    except ValueError:
        return value


def _schema_sections(snapshot: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Group field values by schema section; unknown keys land in 'Other'"""
    values = snapshot.get("field_values") or {}
    sections = ((snapshot.get("schema") or {}).get("fields") or {}).get("sections") or []
    grouped = []
    seen = set()
    for section in sections:
        rows = []
        for field in section.get("fields", []):
            key = field.get("key")
            seen.add(key)
            rows.append((field.get("label") or _label(key), values.get(key)))
        grouped.append({"title": section.get("title") or _label(section.get("key", "")), "rows": rows})

    leftover = [(_label(k), v) for k, v in values.items() if k not in seen]
    if leftover:
        grouped.append({"title": "Other", "rows": leftover})
    return grouped


class PlanDocumentRenderer:
    """Render a plan version snapshot to PDF (reportlab) or standalone HTML"""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name='DocTitle',
            parent=self.styles['Title'],
            fontSize=18,
            textColor=HexColor('#1a1a1a'),
            spaceAfter=6,
            alignment=TA_CENTER,
            fontName='Helvetica-Bold'
        ))
        self.styles.add(ParagraphStyle(
            name='DocSubtitle',
            parent=self.styles['Normal'],
            fontSize=11,
            textColor=HexColor('#4a4a4a'),
            spaceAfter=12,
            alignment=TA_CENTER,
        ))
        self.styles.add(ParagraphStyle(
            name='SectionHeading',
            parent=self.styles['Normal'],
            fontSize=13,
            textColor=HexColor('#2c3e50'),
            spaceBefore=12,
            spaceAfter=6,
            fontName='Helvetica-Bold',
            keepWithNext=True
        ))
        self.styles.add(ParagraphStyle(
            name='Cell',
            parent=self.styles['Normal'],
            fontSize=9,
            leading=11,
        ))

    def _p(self, text: Any, style: str = 'Cell') -> Paragraph:
        return Paragraph(escape(str(text)).replace("\n", "<br/>"), self.styles[style])

    def _table(self, rows: List[List[Any]], col_widths: List[float], header: bool = True) -> Table:
        table = Table([[self._p(c) for c in row] for row in rows], colWidths=col_widths, repeatRows=1 if header else 0)
        style = [
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]
        if header:
            style.append(('BACKGROUND', (0, 0), (-1, 0), HexColor('#e8eef4')))
        table.setStyle(TableStyle(style))
        return table

    def _build_story(self, snapshot: Dict[str, Any], signatures: Optional[List[Dict[str, Any]]]) -> List:
        plan = snapshot.get("plan") or {}
        student = snapshot.get("student") or {}
        story = []

        title = PLAN_TITLES.get(plan.get("plan_type_code"), plan.get("plan_type_name") or "Plan")
        story.append(self._p(title, 'DocTitle'))
        story.append(self._p(
            f"Version {snapshot.get('version_number', '-')} | Finalized {_format_date(snapshot.get('finalized_at'))}",
            'DocSubtitle',
        ))

        story.append(self._p("Student Information", 'SectionHeading'))
        story.append(self._table([
            ["Name", f"{student.get('first_name', '')} {student.get('last_name', '')}".strip()],
            ["Record ID", student.get("record_id") or "-"],
            ["Date of Birth", _format_date(student.get("date_of_birth"))],
            ["Grade", student.get("grade") or "-"],
            ["School", student.get("school_name") or "-"],
            ["Plan Start", _format_date(plan.get("start_date"))],
            ["Plan End", _format_date(plan.get("end_date"))],
        ], [1.8 * inch, 4.7 * inch], header=False))

        for section in _schema_sections(snapshot):
            story.append(self._p(section["title"], 'SectionHeading'))
            rows = [[label, _format_value(value)] for label, value in section["rows"]]
            story.append(self._table(rows, [1.8 * inch, 4.7 * inch], header=False))

        goals = snapshot.get("goals") or []
        if goals:
            story.append(self._p("Goals", 'SectionHeading'))
            rows = [["Code", "Area", "Annual Goal", "Target"]]
            for goal in goals:
                rows.append([
                    goal.get("goal_code", ""),
                    _label(goal.get("area") or ""),
                    goal.get("annual_goal_text", ""),
                    _format_date(goal.get("target_date")),
                ])
            story.append(self._table(rows, [0.7 * inch, 1.2 * inch, 3.5 * inch, 1.1 * inch]))

        services = snapshot.get("services") or []
        if services:
            story.append(self._p("Services", 'SectionHeading'))
            rows = [["Date", "Service", "Setting", "Minutes"]]
            for svc in services:
                rows.append([
                    _format_date(svc.get("date")),
                    _label(svc.get("service_type") or ""),
                    _label(svc.get("setting") or ""),
                    svc.get("minutes", 0),
                ])
            story.append(self._table(rows, [1.4 * inch, 2.2 * inch, 2.0 * inch, 0.9 * inch]))

        if signatures:
            story.append(self._p("Signatures", 'SectionHeading'))
            rows = [["Role", "Name", "Status", "Signed"]]
            for sig in signatures:
                rows.append([
                    _label(sig.get("role") or ""),
                    sig.get("signer_name") or "",
                    sig.get("status") or "",
                    _format_date(sig.get("signed_at")),
                ])
            story.append(self._table(rows, [1.8 * inch, 2.0 * inch, 1.2 * inch, 1.5 * inch]))

        return story

    def render_pdf(self, snapshot: Dict[str, Any], signatures: Optional[List[Dict[str, Any]]] = None) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=54,
            leftMargin=54,
            topMargin=54,
            bottomMargin=54,
            title="Plan Document",
        )
        doc.build(self._build_story(snapshot, signatures))
        data = buffer.getvalue()
        logger.debug(f"[PDF] Rendered plan snapshot ({len(data)} bytes)")
        return data

    def render_html(self, snapshot: Dict[str, Any], signatures: Optional[List[Dict[str, Any]]] = None) -> str:
        plan = snapshot.get("plan") or {}
        student = snapshot.get("student") or {}
        e = html.escape
        title = PLAN_TITLES.get(plan.get("plan_type_code"), plan.get("plan_type_name") or "Plan")

        parts = [
            "<!DOCTYPE html>",
            "<html><head><meta charset=\"utf-8\">",
            f"<title>{e(title)}</title>",
            "<style>body{font-family:Helvetica,Arial,sans-serif;margin:2em;color:#222}"
            "table{border-collapse:collapse;width:100%;margin-bottom:1em}"
            "td,th{border:1px solid #999;padding:4px 6px;vertical-align:top;text-align:left}"
            "th{background:#e8eef4}h2{color:#2c3e50;font-size:1.1em}</style>",
            "</head><body>",
            f"<h1>{e(title)}</h1>",
            f"<p>Version {e(str(snapshot.get('version_number', '-')))} | "
            f"Finalized {e(_format_date(snapshot.get('finalized_at')))}</p>",
            "<h2>Student Information</h2><table>",
            f"<tr><th>Name</th><td>{e(student.get('first_name', ''))} {e(student.get('last_name', ''))}</td></tr>",
            f"<tr><th>Record ID</th><td>{e(student.get('record_id') or '-')}</td></tr>",
            f"<tr><th>Grade</th><td>{e(student.get('grade') or '-')}</td></tr>",
            f"<tr><th>School</th><td>{e(student.get('school_name') or '-')}</td></tr>",
            "</table>",
        ]

        for section in _schema_sections(snapshot):
            parts.append(f"<h2>{e(section['title'])}</h2><table>")
            for label, value in section["rows"]:
                parts.append(f"<tr><th>{e(label)}</th><td>{e(_format_value(value))}</td></tr>")
            parts.append("</table>")

        goals = snapshot.get("goals") or []
        if goals:
            parts.append("<h2>Goals</h2><table><tr><th>Code</th><th>Area</th><th>Annual Goal</th></tr>")
            for goal in goals:
                parts.append(
                    f"<tr><td>{e(goal.get('goal_code', ''))}</td><td>{e(_label(goal.get('area') or ''))}</td>"
                    f"<td>{e(goal.get('annual_goal_text', ''))}</td></tr>"
                )
            parts.append("</table>")

        services = snapshot.get("services") or []
        if services:
            parts.append("<h2>Services</h2><table><tr><th>Date</th><th>Service</th><th>Minutes</th></tr>")
            for svc in services:
                parts.append(
                    f"<tr><td>{e(_format_date(svc.get('date')))}</td>"
                    f"<td>{e(_label(svc.get('service_type') or ''))}</td><td>{e(str(svc.get('minutes', 0)))}</td></tr>"
                )
            parts.append("</table>")

        if signatures:
            parts.append("<h2>Signatures</h2><table><tr><th>Role</th><th>Name</th><th>Status</th></tr>")
            for sig in signatures:
                parts.append(
                    f"<tr><td>{e(_label(sig.get('role') or ''))}</td><td>{e(sig.get('signer_name') or '')}</td>"
                    f"<td>{e(sig.get('status') or '')}</td></tr>"
                )
            parts.append("</table>")

        parts.append("</body></html>")
        return "\n".join(parts)


def render_dispute_pdf(case: Dict[str, Any], events: List[Dict[str, Any]]) -> bytes:
    """Case summary followed by the event timeline, oldest first"""
    renderer = PlanDocumentRenderer()
    story = [
        renderer._p(f"Dispute Case {case.get('case_number', '')}", 'DocTitle'),
        renderer._p(f"Generated {datetime.utcnow():%B %d, %Y}", 'DocSubtitle'),
        renderer._p("Case Details", 'SectionHeading'),
        renderer._table([
            ["Student", case.get("student_name") or "-"],
            ["Type", _label(case.get("case_type") or "")],
            ["Status", _label(case.get("status") or "")],
            ["Filed", _format_date(case.get("filed_date"))],
            ["Resolved", _format_date(case.get("resolved_date"))],
            ["Summary", case.get("summary") or "-"],
            ["Resolution", case.get("resolution_notes") or "-"],
        ], [1.5 * inch, 5.0 * inch], header=False),
        Spacer(1, 0.1 * inch),
        renderer._p("Timeline", 'SectionHeading'),
    ]
    rows = [["Date", "Event", "Summary", "Details"]]
    for event in events:
        rows.append([
            _format_date(event.get("event_date")),
            _label(event.get("event_type") or ""),
            event.get("summary") or "",
            event.get("details") or "",
        ])
    story.append(renderer._table(rows, [1.1 * inch, 1.2 * inch, 2.0 * inch, 2.2 * inch]))

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter, rightMargin=54, leftMargin=54, topMargin=54, bottomMargin=54)
    doc.build(story)
    return buffer.getvalue()
