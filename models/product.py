"""
Product schemas for validation and serialization.

Palettes and Schütten are bundle products: their top-level price is 0
and their value comes from the constituent lines.
"""

from pydantic import Field, field_validator, model_validator
from typing import Optional
from enum import Enum

from models.base import BaseSchema, TimestampMixin
from models.mapping import Column, RowMapper, to_float


class Department(str, Enum):
    """Product verticals."""
    PETS = "pets"
    FOOD = "food"


class ProductType(str, Enum):
    """Product kinds."""
    STANDARD = "standard"
    DISPLAY = "display"
    PALETTE = "palette"
    SCHUETTE = "schuette"


BUNDLE_TYPES = (ProductType.PALETTE, ProductType.SCHUETTE)


class PaletteProduct(BaseSchema):
    """One constituent line of a palette or schuette."""

    name: str = Field(..., min_length=1)
    value: float = Field(..., ge=0, description="Price per VE (Verkaufseinheit)")
    ve: int = Field(..., ge=0, description="Sales units in the bundle")
    ean: Optional[str] = None


def bundle_value(lines: list[PaletteProduct]) -> float:
    """Sum of value x VE over the constituent lines."""
    return round(sum(line.value * line.ve for line in lines), 2)


class ProductBase(BaseSchema):
    """Fields shared by create and response schemas."""

    name: str = Field(..., min_length=1, max_length=255, description="Artikelbezeichnung")
    department: Department
    product_type: ProductType = ProductType.STANDARD
    weight: str = Field(default="", description="Weight or size descriptor, e.g. 150g")
    content: Optional[str] = None
    pallet_size: Optional[int] = Field(None, ge=0, description="Units per pallet")
    price: float = Field(default=0.0, ge=0, description="Unit price in EUR")
    sku: Optional[str] = None
    artikel_nr: Optional[str] = Field(None, description="Supplier article number")
    brand: Optional[str] = None
    palette_products: Optional[list[PaletteProduct]] = None
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def bundle_has_no_price(cls, data):
        """Bundles carry price 0; their value is in palette_products."""
        if isinstance(data, dict):
            kind = data.get("product_type", data.get("productType"))
            if kind in BUNDLE_TYPES or kind in ("palette", "schuette"):
                data = {**data, "price": 0.0}
        return data

    @property
    def value(self) -> float:
        """Unit price, or the bundle value for palettes/schuetten."""
        if self.product_type in BUNDLE_TYPES:
            return bundle_value(self.palette_products or [])
        return self.price


class ProductCreate(ProductBase):
    """
    Create a new product.

    Required: name, department
    Optional: id (generated by the database when missing)
    """

    id: Optional[str] = None

    @field_validator("sku")
    @classmethod
    def sku_uppercase(cls, v: Optional[str]) -> Optional[str]:
        """SKU is stored uppercase."""
        if v is None:
            return v
        return v.upper().strip()


class ProductUpdate(BaseSchema):
    """
    Update existing product.

    All fields optional - only provided fields are updated.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    department: Optional[Department] = None
    product_type: Optional[ProductType] = None
    weight: Optional[str] = None
    content: Optional[str] = None
    pallet_size: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    sku: Optional[str] = None
    artikel_nr: Optional[str] = None
    brand: Optional[str] = None
    palette_products: Optional[list[PaletteProduct]] = None
    is_active: Optional[bool] = None


class ProductResponse(ProductBase, TimestampMixin):
    """Product as returned by the API."""

    id: str = Field(..., description="Product ID")


PRODUCT_MAPPER = RowMapper(
    columns=[
        Column("id"),
        Column("name", default=""),
        Column("department"),
        Column("product_type", default=ProductType.STANDARD.value),
        Column("weight", default=""),
        Column("content"),
        Column("pallet_size"),
        Column("price", default=0.0, parse=to_float),
        Column("sku"),
        Column("artikel_nr"),
        Column("brand"),
        Column("palette_products"),
        Column("is_active", default=True),
    ]
)


def product_from_row(row: dict) -> ProductResponse:
    """Build a response model from a products row."""
    data = PRODUCT_MAPPER.from_row(row)
    data["created_at"] = row.get("created_at")
    data["updated_at"] = row.get("updated_at")
    return ProductResponse.model_validate(data)


def product_to_row(product: BaseSchema, partial: bool = False) -> dict:
    """
    Build a products row from a schema.

    Args:
        product: ProductCreate, ProductUpdate or ProductResponse
        partial: Only include fields explicitly set (for updates)
    """
    data = product.model_dump(mode="json", exclude_unset=partial)
    row = PRODUCT_MAPPER.to_row(data, partial=partial)
    if not partial and row.get("id") is None:
        row.pop("id", None)
    return row
