"""
Export service
Text exports (CSV, Excel-compatible CSV, plain-text report) and binary
PDF / Excel downloads of report results
"""
import json
from datetime import datetime
from typing import List, Dict, Any, Optional
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.enums import TA_CENTER
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from .dto import ExecutionResult, ExecutionMetadata
from .exceptions import UnsupportedExportFormatError
from .report_utils import to_text, is_number
from ..utils.logger import get_logger

logger = get_logger(__name__)

EXPORT_FORMATS = ("csv", "excel", "pdf")
REPORT_HEADING = "HVAC CRM Report"

# Helvetica has no glyphs for Polish letters such as ś or ł
UNICODE_FONT_PATHS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
    "C:\\Windows\\Fonts\\arial.ttf",
)


def pdf_font_name() -> str:
    """Registered Unicode TTF font, Helvetica when none is installed"""
    if "ReportUnicode" in pdfmetrics.getRegisteredFontNames():
        return "ReportUnicode"
    for path in UNICODE_FONT_PATHS:
        try:
            pdfmetrics.registerFont(TTFont("ReportUnicode", path))
            return "ReportUnicode"
        except Exception:
            continue
    logger.warning("No Unicode font found, PDF falls back to Helvetica")
    return "Helvetica"


def collect_columns(data: List[Dict[str, Any]]) -> List[str]:
    """Column names in first-occurrence order across all rows"""
    columns: List[str] = []
    seen = set()
    for row in data:
        for key in row:
            if key not in seen:
                seen.add(key)
                columns.append(key)
    return columns


def infer_column_type(data: List[Dict[str, Any]], column: str) -> str:
    """Coarse type name of a column from its first non-null value"""
    for row in data:
        value = row.get(column)
        if value is None:
            continue
        if isinstance(value, bool):
            return "boolean"
        if is_number(value):
            return "number"
        if isinstance(value, datetime):
            return "date"
        return "string"
    return "unknown"


class ReportData:
    """Report payload handed to the binary renderers"""
    def __init__(
        self,
        title: str,
        data: List[Dict[str, Any]],
        metadata: ExecutionMetadata,
        description: Optional[str] = None
    ):
        self.title = title
        self.description = description
        self.data = data
        self.metadata = metadata
        self.columns = collect_columns(data)
        self.generated_at = datetime.now()


class ExportService:
    """Export service"""

    def export_text(self, result: ExecutionResult, export_format: str) -> str:
        """
        Render an execution result as a text payload

        Args:
            result: execution result
            export_format: csv, excel or pdf

        Returns:
            text payload

        Raises:
            UnsupportedExportFormatError: for any other format
        """
        if export_format == "csv":
            return self.generate_csv(result.data)
        elif export_format == "excel":
            return self.generate_excel_csv(result.data)
        elif export_format == "pdf":
            return self.generate_text_report(result.data)

        raise UnsupportedExportFormatError(export_format)

    def generate_csv(self, data: List[Dict[str, Any]]) -> str:
        """
        Comma separated rows under a header taken from the first row

        String values containing a comma are wrapped in double quotes; embedded
        quotes are not escaped. Missing and null values are empty cells.
        """
        if not data:
            return "No data available"

        headers = list(data[0].keys())
        lines = [",".join(headers)]
        for row in data:
            cells = []
            for header in headers:
                value = row.get(header)
                if isinstance(value, str) and "," in value:
                    cells.append(f'"{value}"')
                elif value is None:
                    cells.append("")
                else:
                    cells.append(to_text(value))
            lines.append(",".join(cells))

        return "\n".join(lines)

    def generate_excel_csv(self, data: List[Dict[str, Any]]) -> str:
        """Excel-compatible text export (same layout as CSV)"""
        return self.generate_csv(data)

    def generate_text_report(self, data: List[Dict[str, Any]], generated_at: Optional[datetime] = None) -> str:
        """
        Plain-text report: heading, generation time, record count and the
        rows as indented JSON
        """
        generated_at = generated_at or datetime.now()
        content = [
            REPORT_HEADING,
            "Generated: " + generated_at.strftime('%Y-%m-%d %H:%M:%S'),
            "Total Records: " + str(len(data)),
            "",
            "Data:",
            json.dumps(data, indent=2, ensure_ascii=False, default=str),
        ]
        return "\n".join(content)

    async def export_to_pdf(
        self,
        report_data: ReportData,
        include_data_table: bool = True,
        max_rows: int = 100
    ) -> bytes:
        """
        Render a PDF document

        Contains the title and generation time, the description, a data table
        and execution metadata.

        Args:
            report_data: report payload
            include_data_table: whether to render the data table
            max_rows: maximum table rows

        Returns:
            PDF bytes

        Raises:
            Exception: if rendering fails
        """
        try:
            logger.info(
                f"Rendering PDF: title='{report_data.title}', "
                f"data_rows={len(report_data.data)}, "
                f"include_data_table={include_data_table}"
            )

            font = pdf_font_name()
            buffer = BytesIO()
            doc = SimpleDocTemplate(
                buffer,
                pagesize=A4,
                rightMargin=0.75*inch,
                leftMargin=0.75*inch,
                topMargin=1*inch,
                bottomMargin=0.75*inch
            )

            story = []
            styles = getSampleStyleSheet()

            title_style = ParagraphStyle(
                'ReportTitle',
                parent=styles['Heading1'],
                fontName=font,
                fontSize=18,
                textColor=colors.HexColor('#1f2937'),
                spaceAfter=12,
                alignment=TA_CENTER
            )
            story.append(Paragraph(escape(report_data.title), title_style))
            story.append(Spacer(1, 0.2*inch))

            time_style = ParagraphStyle(
                'TimeStyle',
                parent=styles['Normal'],
                fontName=font,
                fontSize=10,
                textColor=colors.HexColor('#6b7280'),
                alignment=TA_CENTER
            )
            time_text = f"Generated: {report_data.generated_at.strftime('%Y-%m-%d %H:%M:%S')}"
            story.append(Paragraph(time_text, time_style))
            story.append(Spacer(1, 0.3*inch))

            section_style = ParagraphStyle(
                'SectionTitle',
                parent=styles['Heading2'],
                fontName=font,
                fontSize=14,
                textColor=colors.HexColor('#374151'),
                spaceAfter=8
            )
            text_style = ParagraphStyle(
                'BodyText',
                parent=styles['Normal'],
                fontName=font,
                fontSize=10,
                textColor=colors.HexColor('#4b5563')
            )

            if report_data.description:
                story.append(Paragraph("Description", section_style))
                story.append(Paragraph(escape(report_data.description), text_style))
                story.append(Spacer(1, 0.3*inch))

            if include_data_table and report_data.data and report_data.columns:
                story.append(Paragraph("Data", section_style))

                headers = report_data.columns
                table_data = [headers]
                for row in report_data.data[:max_rows]:
                    table_row = []
                    for col in headers:
                        value = row.get(col)
                        str_value = to_text(value) if value is not None else ''
                        if len(str_value) > 50:
                            str_value = str_value[:47] + '...'
                        table_row.append(str_value)
                    table_data.append(table_row)

                col_width = doc.width / len(headers)
                table = Table(table_data, colWidths=[col_width] * len(headers))
                table.setStyle(TableStyle([
                    ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3b82f6')),
                    ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
                    ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
                    ('FONTNAME', (0, 0), (-1, -1), font),
                    ('FONTSIZE', (0, 0), (-1, 0), 10),
                    ('FONTSIZE', (0, 1), (-1, -1), 9),
                    ('TEXTCOLOR', (0, 1), (-1, -1), colors.HexColor('#1f2937')),
                    ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#e5e7eb')),
                    ('ROWBACKGROUNDS', (0, 1), (-1, -1),
                     [colors.white, colors.HexColor('#f9fafb')])
                ]))
                story.append(table)

                if len(report_data.data) > max_rows:
                    note_text = f"Note: Showing {max_rows} of {len(report_data.data)} rows"
                    story.append(Spacer(1, 0.1*inch))
                    story.append(Paragraph(note_text, text_style))

            story.append(Spacer(1, 0.3*inch))
            story.append(Paragraph("Metadata", section_style))
            metadata = report_data.metadata
            meta_info = [
                f"Total Rows: {metadata.total_rows}",
                f"Data Sources: {', '.join(metadata.data_sources_used)}",
                f"Execution Time: {metadata.execution_time} ms",
            ]
            if metadata.warsaw_metrics:
                meta_info.append(
                    f"Districts: {', '.join(metadata.warsaw_metrics.districts_analyzed) or '-'}, "
                    f"affluence {metadata.warsaw_metrics.affluence_score}, "
                    f"seasonal factor {metadata.warsaw_metrics.seasonal_factor}"
                )
            for info in meta_info:
                story.append(Paragraph(escape(info), text_style))
                story.append(Spacer(1, 0.05*inch))

            doc.build(story)
            pdf_bytes = buffer.getvalue()
            buffer.close()

            logger.info(f"PDF rendered: size={len(pdf_bytes)} bytes")
            return pdf_bytes

        except Exception as e:
            logger.error(
                "PDF rendering failed",
                extra={
                    "title": report_data.title,
                    "data_rows": len(report_data.data),
                    "error": str(e)
                },
                exc_info=True
            )
            raise Exception(f"PDF rendering failed: {str(e)}")

    async def export_to_excel(
        self,
        report_data: ReportData,
        include_metadata: bool = True
    ) -> bytes:
        """
        Render an Excel workbook

        Sheets: Data (rows) and, optionally, Metadata (execution info and
        column types).

        Args:
            report_data: report payload
            include_metadata: whether to add the Metadata sheet

        Returns:
            xlsx bytes

        Raises:
            Exception: if rendering fails
        """
        try:
            logger.info(
                f"Rendering Excel: title='{report_data.title}', "
                f"data_rows={len(report_data.data)}"
            )

            wb = Workbook()
            if 'Sheet' in wb.sheetnames:
                wb.remove(wb['Sheet'])

            header_font = Font(name='Arial', size=11, bold=True, color='FFFFFF')
            header_fill = PatternFill(start_color='3B82F6', end_color='3B82F6', fill_type='solid')
            header_alignment = Alignment(horizontal='center', vertical='center')
            data_font = Font(name='Arial', size=10)
            border = Border(
                left=Side(style='thin', color='E5E7EB'),
                right=Side(style='thin', color='E5E7EB'),
                top=Side(style='thin', color='E5E7EB'),
                bottom=Side(style='thin', color='E5E7EB')
            )

            ws_data = wb.create_sheet("Data", 0)
            headers = report_data.columns
            for col_idx, header in enumerate(headers, 1):
                cell = ws_data.cell(row=1, column=col_idx, value=header)
                cell.font = header_font
                cell.fill = header_fill
                cell.alignment = header_alignment
                cell.border = border

            for row_idx, row_data in enumerate(report_data.data, 2):
                for col_idx, col_name in enumerate(headers, 1):
                    value = row_data.get(col_name)
                    # openpyxl only accepts scalars
                    if isinstance(value, (list, dict)):
                        value = json.dumps(value, ensure_ascii=False, default=str)
                    cell = ws_data.cell(row=row_idx, column=col_idx, value=value)
                    cell.font = data_font
                    cell.border = border

            for col_idx, col_name in enumerate(headers, 1):
                max_length = len(str(col_name))
                for row_data in report_data.data[:100]:
                    max_length = max(max_length, len(to_text(row_data.get(col_name))))
                ws_data.column_dimensions[get_column_letter(col_idx)].width = min(max_length + 2, 50)

            ws_data.freeze_panes = 'A2'

            if include_metadata:
                ws_meta = wb.create_sheet("Metadata", 1)
                title_cell = ws_meta.cell(row=1, column=1, value=report_data.title)
                title_cell.font = Font(name='Arial', size=14, bold=True, color='1F2937')

                metadata = report_data.metadata
                info_data = [
                    ("Generated At", report_data.generated_at.strftime('%Y-%m-%d %H:%M:%S')),
                    ("Total Rows", metadata.total_rows),
                    ("Data Sources", ", ".join(metadata.data_sources_used)),
                    ("Execution Time (ms)", metadata.execution_time),
                ]
                for row_idx, (label, value) in enumerate(info_data, 3):
                    ws_meta.cell(row=row_idx, column=1, value=label).font = Font(name='Arial', size=10, bold=True)
                    ws_meta.cell(row=row_idx, column=2, value=value).font = data_font

                type_row = len(info_data) + 4
                for col_idx, header in enumerate(["Column Name", "Data Type"], 1):
                    cell = ws_meta.cell(row=type_row, column=col_idx, value=header)
                    cell.font = header_font
                    cell.fill = header_fill
                    cell.alignment = header_alignment
                for offset, col_name in enumerate(headers, 1):
                    ws_meta.cell(row=type_row + offset, column=1, value=col_name).font = data_font
                    ws_meta.cell(
                        row=type_row + offset,
                        column=2,
                        value=infer_column_type(report_data.data, col_name)
                    ).font = data_font

                ws_meta.column_dimensions['A'].width = 25
                ws_meta.column_dimensions['B'].width = 40

            buffer = BytesIO()
            wb.save(buffer)
            excel_bytes = buffer.getvalue()
            buffer.close()

            logger.info(f"Excel rendered: size={len(excel_bytes)} bytes, sheets={len(wb.sheetnames)}")
            return excel_bytes

        except Exception as e:
            logger.error(
                "Excel rendering failed",
                extra={
                    "title": report_data.title,
                    "data_rows": len(report_data.data),
                    "error": str(e)
                },
                exc_info=True
            )
            raise Exception(f"Excel rendering failed: {str(e)}")


_export_service = None


def get_export_service() -> ExportService:
    """
    Get the global export service

    Returns:
        ExportService instance
    """
    global _export_service

    if _export_service is None:
        _export_service = ExportService()

    return _export_service
