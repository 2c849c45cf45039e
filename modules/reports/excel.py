from io import BytesIO
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter


def _create_styles():
    thin_border = Side(style="thin", color="000000")
    return {
        "title_font": Font(bold=True, size=14),
        "section_font": Font(bold=True, size=11),
        "header_font": Font(bold=True, size=10),
        "header_fill": PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid"),
        "done_fill": PatternFill(start_color="E2EFDA", end_color="E2EFDA", fill_type="solid"),
        "blocked_fill": PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid"),
        "border": Border(left=thin_border, right=thin_border, top=thin_border, bottom=thin_border),
        "center_align": Alignment(horizontal="center", vertical="center"),
        "right_align": Alignment(horizontal="right", vertical="center"),
        "left_align": Alignment(horizontal="left", vertical="center"),
    }


def _write_header_row(ws, row: int, columns: List[str], styles: dict):
    for col_idx, col_name in enumerate(columns, start=1):
        cell = ws.cell(row=row, column=col_idx, value=col_name)
        cell.font = styles["header_font"]
        cell.fill = styles["header_fill"]
        cell.border = styles["border"]
        cell.alignment = styles["center_align"]


def _write_data_row(ws, row: int, values: List[Any], styles: dict, alignments: List[str], fill=None):
    for col_idx, value in enumerate(values, start=1):
        cell = ws.cell(row=row, column=col_idx, value=value)
        cell.border = styles["border"]
        cell.alignment = styles.get(f"{alignments[col_idx - 1]}_align", styles["left_align"])
        if fill is not None:
            cell.fill = fill


def _status_fill(status: str, styles: dict):
    if status == "COMPLETED":
        return styles["done_fill"]
    if status in ("HALTED", "WAITING_FOR_PARTS"):
        return styles["blocked_fill"]
    return None


def _progress_text(progress: Dict[str, Any]) -> str:
    return f"{progress.get('completed', 0)}/{progress.get('total', 0)} ({progress.get('percent', 0):.1f}%)"


def build_production_progress_excel(report: Dict[str, Any]) -> BytesIO:
    """Render the production order progress report as a single-sheet workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Production Progress"
    styles = _create_styles()

    header = report.get("header", {})
    progress = report.get("progress", {})
    control_orders = report.get("control_orders", [])

    current_row = 1
    ws.cell(row=current_row, column=1, value="PRODUCTION ORDER PROGRESS").font = styles["title_font"]
    ws.merge_cells(start_row=current_row, start_column=1, end_row=current_row, end_column=7)
    current_row += 2

    generated_at = header.get("generated_at")
    header_info = [
        ("Order:", header.get("order_number", "-")),
        ("Status:", header.get("status", "-")),
        ("Priority:", header.get("priority", "-")),
        ("Schedule:", header.get("schedule_id") or "-"),
        ("Generated:", generated_at[:19] if generated_at else "-"),
        ("Control orders:", _progress_text(progress)),
    ]
    for label, value in header_info:
        ws.cell(row=current_row, column=1, value=label).font = Font(bold=True)
        ws.cell(row=current_row, column=2, value=value)
        current_row += 1
    current_row += 1

    ws.cell(row=current_row, column=1, value="CONTROL ORDERS").font = styles["section_font"]
    current_row += 1
    control_columns = ["Order", "Category", "Workstation", "Status", "Completed", "Total", "Percent"]
    control_alignments = ["left", "center", "center", "center", "right", "right", "right"]
    _write_header_row(ws, current_row, control_columns, styles)
    current_row += 1
    for control in control_orders:
        control_progress = control.get("progress", {})
        _write_data_row(
            ws,
            current_row,
            [
                control.get("order_number", "-"),
                control.get("category", "-"),
                control.get("workstation_id", "-"),
                control.get("status", "-"),
                control_progress.get("completed", 0),
                control_progress.get("total", 0),
                f"{control_progress.get('percent', 0):.1f}%",
            ],
            styles,
            control_alignments,
            fill=_status_fill(control.get("status"), styles),
        )
        current_row += 1
    current_row += 1

    ws.cell(row=current_row, column=1, value="WORKSTATION ORDERS").font = styles["section_font"]
    current_row += 1
    ws_columns = ["Control order", "Order", "Kind", "Workstation", "Output", "Quantity", "Status"]
    ws_alignments = ["left", "left", "center", "center", "left", "right", "center"]
    _write_header_row(ws, current_row, ws_columns, styles)
    current_row += 1
    for control in control_orders:
        for ws_order in control.get("workstation_orders", []):
            _write_data_row(
                ws,
                current_row,
                [
                    control.get("order_number", "-"),
                    ws_order.get("order_number", "-"),
                    ws_order.get("kind", "-"),
                    ws_order.get("workstation_id", "-"),
                    ws_order.get("output_item_name") or "-",
                    ws_order.get("quantity", 0),
                    ws_order.get("status", "-"),
                ],
                styles,
                ws_alignments,
                fill=_status_fill(ws_order.get("status"), styles),
            )
            current_row += 1

    for col_idx, width in enumerate([18, 16, 20, 12, 24, 10, 18], start=1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    stream = BytesIO()
    wb.save(stream)
    stream.seek(0)
    return stream
