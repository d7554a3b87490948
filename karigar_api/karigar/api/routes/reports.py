from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Optional, Sequence

import pandas as pd
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.deps import get_merchant_session, require_roles
from karigar.db.models.procurement import ProcurementRequest
from karigar.db.models.sales import Order
from karigar.services.inventory import RequirementsService

# PUBLIC_INTERFACE
router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)

RAW_MATERIAL_COLUMNS = [
    "name",
    "type",
    "unit",
    "current_stock",
    "minimum_stock",
    "in_procurement",
    "production_requirements",
    "required_quantity",
    "shortfall",
    "request_status",
    "last_updated",
]
FINISHED_GOOD_COLUMNS = [
    "product_code",
    "category",
    "current_stock",
    "threshold",
    "in_manufacturing",
    "demand",
    "shortfall",
    "is_critical",
    "last_produced",
]
ORDER_COLUMNS = [
    "order_number",
    "customer",
    "status",
    "items",
    "pieces",
    "pieces_fulfilled",
    "total_amount",
    "expected_delivery",
    "created_at",
]
PROCUREMENT_COLUMNS = [
    "request_number",
    "material",
    "material_type",
    "supplier",
    "quantity_requested",
    "unit",
    "status",
    "date_requested",
    "eta",
    "requested_by",
]


# PUBLIC_INTERFACE
def export_dataframe(
    df: pd.DataFrame,
    filename_base: str,
    export_format: str,
) -> StreamingResponse:
    """
    Convert DataFrame to the requested format and return a StreamingResponse.

    Supported formats:
      - csv: text/csv
      - xlsx: application/vnd.openxmlformats-officedocument.spreadsheetml.sheet
      - pdf: application/pdf (simple tabular rendering)
    Unknown formats fall back to csv.
    """
    export_format = (export_format or "csv").lower()

    if export_format in ("xlsx", "excel"):
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Report")
        buffer.seek(0)
        headers = {
            "Content-Disposition": f'attachment; filename="{filename_base}.xlsx"'
        }
        return StreamingResponse(
            buffer,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers=headers,
        )

    if export_format == "pdf":
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import landscape, letter
        from reportlab.lib.styles import getSampleStyleSheet
        from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer, pagesize=landscape(letter), leftMargin=18, rightMargin=18, topMargin=18, bottomMargin=18
        )
        styles = getSampleStyleSheet()
        generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        elements: list = [Paragraph(f"{filename_base.replace('_', ' ').title()} ({generated})", styles["Title"])]

        data = [list(df.columns)] + df.astype(str).values.tolist()
        table = Table(data, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
                    ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 8),
                    ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
                    ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ]
            )
        )
        elements.append(table)
        doc.build(elements)
        buffer.seek(0)
        headers = {
            "Content-Disposition": f'attachment; filename="{filename_base}.pdf"'
        }
        return StreamingResponse(buffer, media_type="application/pdf", headers=headers)

    buffer = io.StringIO()
    df.to_csv(buffer, index=False)
    buffer.seek(0)
    headers = {
        "Content-Disposition": f'attachment; filename="{filename_base}.csv"'
    }
    return StreamingResponse(buffer, media_type="text/csv", headers=headers)


async def _fetch_all(session: AsyncSession, stmt: Select) -> Sequence:
    """Execute a select and return the ORM rows."""
    res = await session.execute(stmt)
    return list(res.scalars().all())


# PUBLIC_INTERFACE
@router.get(
    "/raw-materials",
    summary="Raw material requirements report",
    description="Exports raw materials with in-procurement, requirement and shortfall figures.",
    response_description="File stream (CSV/XLSX/PDF)",
    dependencies=[Depends(require_roles("admin"))],
)
async def raw_material_report(
    session: AsyncSession = Depends(get_merchant_session),
    critical_only: bool = Query(False, description="Only materials with a shortfall"),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    materials = await RequirementsService(session).list_raw_materials(critical_only=critical_only)
    df = pd.DataFrame([m.model_dump() for m in materials], columns=RAW_MATERIAL_COLUMNS)
    return export_dataframe(df, "raw_material_requirements", format)


# PUBLIC_INTERFACE
@router.get(
    "/finished-goods",
    summary="Finished goods report",
    description="Exports finished goods stock with demand, shortfall and the critical flag.",
    response_description="File stream (CSV/XLSX/PDF)",
    dependencies=[Depends(require_roles("admin"))],
)
async def finished_goods_report(
    session: AsyncSession = Depends(get_merchant_session),
    critical_only: bool = Query(False, description="Only goods below threshold"),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    goods = await RequirementsService(session).list_finished_goods(critical_only=critical_only)
    df = pd.DataFrame([g.model_dump() for g in goods], columns=FINISHED_GOOD_COLUMNS)
    return export_dataframe(df, "finished_goods", format)


# PUBLIC_INTERFACE
@router.get(
    "/orders",
    summary="Orders report",
    description="Exports orders with piece counts and fulfilment progress.",
    response_description="File stream (CSV/XLSX/PDF)",
    dependencies=[Depends(require_roles("admin"))],
)
async def orders_report(
    session: AsyncSession = Depends(get_merchant_session),
    status: Optional[str] = Query(None, description="Filter by order status"),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    stmt = select(Order).order_by(Order.created_at.desc())
    if status:
        stmt = stmt.where(Order.status == status)

    data = []
    for order in await _fetch_all(session, stmt):
        data.append(
            {
                "order_number": order.order_number,
                "customer": order.customer_name,
                "status": order.status,
                "items": len(order.items),
                "pieces": sum(i.quantity for i in order.items),
                "pieces_fulfilled": sum(i.fulfilled_quantity for i in order.items),
                "total_amount": float(order.total_amount or 0),
                "expected_delivery": order.expected_delivery,
                "created_at": order.created_at,
            }
        )
    df = pd.DataFrame(data, columns=ORDER_COLUMNS)
    return export_dataframe(df, "orders", format)


# PUBLIC_INTERFACE
@router.get(
    "/procurement",
    summary="Procurement requests report",
    description="Exports procurement requests with material, supplier and status.",
    response_description="File stream (CSV/XLSX/PDF)",
    dependencies=[Depends(require_roles("admin"))],
)
async def procurement_report(
    session: AsyncSession = Depends(get_merchant_session),
    status: Optional[str] = Query(None, description="Pending | Approved | Received"),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    stmt = (
        select(ProcurementRequest)
        .where(ProcurementRequest.status != "None")
        .order_by(ProcurementRequest.created_at.desc())
    )
    if status:
        stmt = stmt.where(ProcurementRequest.status == status)

    data = []
    for req in await _fetch_all(session, stmt):
        requested_by = " ".join(p for p in (req.first_name, req.last_name) if p) or None
        data.append(
            {
                "request_number": req.request_number,
                "material": req.raw_material_name,
                "material_type": req.raw_material_type,
                "supplier": req.supplier_name,
                "quantity_requested": float(req.quantity_requested),
                "unit": req.unit,
                "status": req.status,
                "date_requested": req.date_requested,
                "eta": req.eta,
                "requested_by": requested_by,
            }
        )
    df = pd.DataFrame(data, columns=PROCUREMENT_COLUMNS)
    return export_dataframe(df, "procurement_requests", format)
