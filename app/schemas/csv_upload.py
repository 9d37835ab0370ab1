from pydantic import BaseModel, Field
from typing import List


class LowStockAlert(BaseModel):
    item_number: str
    description: str
    current_quantity: int
    minimum_threshold: int


class CsvUploadResult(BaseModel):
    success_count: int = 0
    failure_count: int = 0
    errors: List[str] = Field(default_factory=list)
    low_stock_alerts: List[LowStockAlert] = Field(default_factory=list)
