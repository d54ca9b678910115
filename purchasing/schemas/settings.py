from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class RequestSettings(BaseModel):
    """Business settings for purchase requests, persisted as a flat key/value set."""

    request_prefix: str = Field("SC-", max_length=20)
    next_request_number: int = Field(1, ge=1)
    use_warehouse_reception: bool = False
    show_customer_tax_id: bool = False
    routes: List[str] = Field(default_factory=list)
    shipping_methods: List[str] = Field(default_factory=list)
    pdf_top_legend: Optional[str] = Field(None, max_length=500)
    pdf_export_columns: List[str] = Field(default_factory=list)
    pdf_paper_size: Literal["letter", "legal"] = "letter"
    pdf_orientation: Literal["portrait", "landscape"] = "portrait"
