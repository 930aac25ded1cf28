"""
Product row model for CSV import.
Turns a raw CSV record into a validated, typed row.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import RowValidationError

REQUIRED_COLUMNS = ("sku", "name", "price")
IMAGE_COLUMN = "image"

# Largest value that fits Numeric(10, 2)
MAX_PRICE = Decimal("99999999.99")


class ProductRow(BaseModel):
    """
    Validated product row.
    sku, name and price are required; image is an optional filename hint.
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,  # Auto-strip whitespace
        frozen=True,
    )

    sku: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(ge=0, le=MAX_PRICE, allow_inf_nan=False)
    image: Optional[str] = None


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value != value:  # NaN from a short row
        return None
    return str(value).strip()


def parse_product_row(record: Dict[str, Any], row_number: int) -> ProductRow:
    """
    Validate one CSV record.

    Args:
        record: Column name -> raw value (missing trailing fields are None/NaN)
        row_number: 1-based data row number, used in messages

    Returns:
        ProductRow

    Raises:
        RowValidationError: with a human-readable reason
    """
    values = {column: _as_text(record.get(column)) for column in REQUIRED_COLUMNS}

    if any(value is None for value in values.values()):
        raise RowValidationError(
            row_number,
            "Missing required columns. Expected: " + ", ".join(REQUIRED_COLUMNS),
        )

    if any(value == "" for value in values.values()):
        raise RowValidationError(row_number, "Required fields (sku, name, price) cannot be empty")

    image = _as_text(record.get(IMAGE_COLUMN)) or None

    try:
        return ProductRow(sku=values["sku"], name=values["name"], price=values["price"], image=image)
    except ValidationError as e:
        fields = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}
        if "price" in fields:
            raise RowValidationError(row_number, "Price must be a valid non-negative number")
        raise RowValidationError(row_number, f"Invalid value for {', '.join(sorted(fields))}")
