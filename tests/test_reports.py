from __future__ import annotations

import asyncio

import pandas as pd

from karigar.api.routes.reports import RAW_MATERIAL_COLUMNS, export_dataframe


async def _body(response) -> bytes:
    chunks = []
    async for chunk in response.body_iterator:
        chunks.append(chunk if isinstance(chunk, bytes) else chunk.encode())
    return b"".join(chunks)


def test_csv_export_has_header_and_rows() -> None:
    df = pd.DataFrame([{"name": "Gold 22K", "shortfall": 12.5}], columns=RAW_MATERIAL_COLUMNS)
    response = export_dataframe(df, "raw_material_requirements", "csv")

    assert response.media_type == "text/csv"
    assert response.headers["content-disposition"] == 'attachment; filename="raw_material_requirements.csv"'
    lines = asyncio.run(_body(response)).decode().splitlines()
    assert lines[0] == ",".join(RAW_MATERIAL_COLUMNS)
    assert lines[1].startswith("Gold 22K,")


def test_unknown_format_falls_back_to_csv() -> None:
    response = export_dataframe(pd.DataFrame({"a": [1]}), "orders", "docx")
    assert response.media_type == "text/csv"


def test_xlsx_export() -> None:
    response = export_dataframe(pd.DataFrame({"a": [1]}), "orders", "excel")
    assert response.headers["content-disposition"].endswith('orders.xlsx"')
    assert asyncio.run(_body(response))[:2] == b"PK"


def test_pdf_export() -> None:
    response = export_dataframe(pd.DataFrame({"a": [1]}), "finished_goods", "pdf")
    assert response.media_type == "application/pdf"
    assert asyncio.run(_body(response)).startswith(b"%PDF")
