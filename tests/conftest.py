from pathlib import Path

import polars as pl
import pytest

from metacore.domain.models import records_to_frame
from metacore.ingestion import EXPORT_HEADERS, normalize_rows


def build_frame(*rows: dict) -> pl.DataFrame:
    """Normalize field-keyed rows and return them as a record frame."""
    records, _ = normalize_rows(list(rows))
    return records_to_frame(records)


@pytest.fixture
def make_frame():
    return build_frame


@pytest.fixture
def mixed_rows():
    return [
        {"date": "2024-03-01", "campaignName": "CBAS | Vendas", "adSetName": "Frio", "adName": "A",
         "spend": 100, "impressions": 1000, "linkClicks": 50, "purchases": 2, "leads": 4},
        {"date": "2024-03-02", "campaignName": "CBAS | Vendas", "adSetName": "Quente", "adName": "B",
         "spend": 40, "impressions": 800, "linkClicks": 16, "purchases": 0, "leads": 1},
        {"date": "2024-03-02", "campaignName": "IBFC Leads", "adSetName": "Frio", "adName": "C",
         "spend": 60, "impressions": 600, "linkClicks": 30, "purchases": 3, "leads": 0},
        {"date": "2024-03-03", "campaignName": "Impulsionar post", "adSetName": "Lookalike", "adName": "A",
         "spend": 20, "impressions": 400, "linkClicks": 4, "purchases": 1, "leads": 2},
    ]


@pytest.fixture
def export_csv(tmp_path: Path) -> Path:
    headers = [
        EXPORT_HEADERS["date"],
        EXPORT_HEADERS["campaign_name"],
        EXPORT_HEADERS["ad_set_name"],
        EXPORT_HEADERS["ad_name"],
        EXPORT_HEADERS["spend"],
        EXPORT_HEADERS["impressions"],
        EXPORT_HEADERS["link_clicks"],
        EXPORT_HEADERS["purchases"],
        "Custom Column",
    ]
    lines = [
        ",".join(f'"{header}"' for header in headers),
        '2024-01-01,CBAS Vendas,Frio,A,100,1000,50,2,x',
        '2024-01-01,CBAS Vendas,Frio,A,50,500,25,1,y',
        ',SSPC Leads,Frio,B,10,100,1,0,z',
        '2024-01-03,SSPC Leads,Quente,B,30,900,9,0,w',
    ]
    path = tmp_path / "export.csv"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
