"""Meal plan export renderers: CSV, Excel and PDF.

PDF rendering uses Jinja2 for HTML templating and WeasyPrint for layout.
WeasyPrint runs in a worker thread via asyncio.to_thread() so it never
blocks the event loop.

Branding: exports carry the platform footer unless the trainer has an
active white-label entitlement and has switched it on.
"""

import asyncio
import csv
import io
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader
from openpyxl import Workbook
from openpyxl.styles import Font

TEMPLATE_DIR = Path(__file__).parent / "templates"

HEADERS = ["Day", "Meal", "Recipe", "Servings", "Calories", "Protein (g)"]

DEFAULT_PRIMARY_COLOR = "#2563EB"


@dataclass(frozen=True)
class ExportDocument:
    plan_name: str
    meal_type_label: str
    rows: list[tuple]
    branding: str  # footer text, "" when white-labelled
    primary_color: str | None = None
    logo_url: str | None = None


@dataclass(frozen=True)
class RenderedExport:
    content: bytes
    media_type: str
    extension: str


class MealPlanExporter:
    """Render an ExportDocument in each supported format."""

    def __init__(self) -> None:
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )

    def render_csv(self, document: ExportDocument) -> RenderedExport:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(HEADERS)
        writer.writerows(document.rows)
        if document.branding:
            writer.writerow([])
            writer.writerow([document.branding])
        return RenderedExport(buffer.getvalue().encode("utf-8"), "text/csv", "csv")

    def render_excel(self, document: ExportDocument) -> RenderedExport:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Meal Plan"
        sheet.append([document.plan_name])
        sheet["A1"].font = Font(bold=True, size=14)
        sheet.append([document.meal_type_label])
        sheet.append([])
        sheet.append(HEADERS)
        for cell in sheet[4]:
            cell.font = Font(bold=True)
        for row in document.rows:
            sheet.append(list(row))
        if document.branding:
            sheet.append([])
            sheet.append([document.branding])

        buffer = io.BytesIO()
        workbook.save(buffer)
        return RenderedExport(
            buffer.getvalue(),
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "xlsx",
        )

    def render_html(self, document: ExportDocument, generated_date: str | None = None) -> str:
        template = self.env.get_template("meal_plan.html")
        return template.render(
            plan_name=document.plan_name,
            meal_type_label=document.meal_type_label,
            headers=HEADERS,
            rows=document.rows,
            branding=document.branding,
            primary_color=document.primary_color or DEFAULT_PRIMARY_COLOR,
            logo_url=document.logo_url,
            generated_date=generated_date or datetime.now().strftime("%B %d, %Y"),
        )

    async def render_pdf(self, document: ExportDocument, generated_date: str | None = None) -> RenderedExport:
        html_content = self.render_html(document, generated_date)

        try:
            from weasyprint import HTML
        except ImportError as e:
            raise ImportError(
                "WeasyPrint not installed. Install with: pip install weasyprint>=68.1"
            ) from e

        pdf_bytes = await asyncio.to_thread(
            lambda: HTML(string=html_content, base_url=str(TEMPLATE_DIR)).write_pdf()
        )
        return RenderedExport(pdf_bytes, "application/pdf", "pdf")
