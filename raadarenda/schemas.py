"""
Request schemas

Each Pydantic model validates one request body or query string. Handlers call
`Schema.model_validate(...)`; a ValidationError becomes a 400 with
field-level messages.
"""
import re
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .models.models import DELIVERY_TYPES, ORDER_STATUSES, PAYMENT_METHODS
from .utils.time_utils import parse_date

PHONE_REGEX = r'^\+998\d{9}$'

DeliveryType = Literal[DELIVERY_TYPES]
PaymentMethod = Literal[PAYMENT_METHODS]
OrderStatus = Literal[ORDER_STATUSES]


class QueryModel(BaseModel):
    """Query-string filters: blank parameters count as absent."""

    @model_validator(mode='before')
    @classmethod
    def drop_blank_values(cls, data):
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v not in ('', None)}
        return data


def _coerce_date(value):
    if value is None or isinstance(value, date):
        return value
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError('Invalid date, expected YYYY-MM-DD')
    return parsed


# Auth

class SendOtpSchema(BaseModel):
    phone_number: str = Field(..., pattern=PHONE_REGEX)


class VerifyOtpSchema(BaseModel):
    phone_number: str = Field(..., pattern=PHONE_REGEX)
    code: str = Field(..., pattern=r'^\d{6}$')
    device_id: str = Field(..., min_length=1, max_length=255)


# User

class ProfileUpdateSchema(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    language: Optional[Literal['ru', 'en', 'uz']] = None


class AddressSchema(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    full_address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    district: Optional[str] = None
    street: Optional[str] = None
    building: Optional[str] = None
    apartment: Optional[str] = None
    entrance: Optional[str] = None
    floor: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class AddressUpdateSchema(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    full_address: Optional[str] = Field(None, min_length=1, max_length=500)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    district: Optional[str] = None
    street: Optional[str] = None
    building: Optional[str] = None
    apartment: Optional[str] = None
    entrance: Optional[str] = None
    floor: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator('title', 'full_address', 'city')
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError('Field cannot be null')
        return value


class CardSchema(BaseModel):
    card_number: str
    card_holder: str = Field(..., min_length=1, max_length=255)
    expiry_month: int = Field(..., ge=1, le=12)
    expiry_year: int = Field(..., ge=24, le=99)

    @field_validator('card_number')
    @classmethod
    def digits_only(cls, value):
        digits = re.sub(r'[\s-]', '', value)
        if not digits.isdigit() or not 13 <= len(digits) <= 19:
            raise ValueError('Card number must be 13-19 digits')
        return digits


class FavoriteSchema(BaseModel):
    product_id: int


# Cart and orders

class OrderItemSchema(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)


class RentalPeriodMixin(BaseModel):
    rental_start_date: date
    rental_end_date: date

    @field_validator('rental_start_date', 'rental_end_date', mode='before')
    @classmethod
    def parse_rental_date(cls, value):
        return _coerce_date(value)


class RentalItemsMixin(RentalPeriodMixin):
    items: List[OrderItemSchema] = Field(..., min_length=1)

    @field_validator('items')
    @classmethod
    def one_line_per_product(cls, items):
        product_ids = [item.product_id for item in items]
        if len(set(product_ids)) != len(product_ids):
            raise ValueError('Each product may appear only once')
        return items


class CartQuoteSchema(RentalItemsMixin):
    delivery_type: DeliveryType = 'SELF_PICKUP'
    city: Optional[str] = None


class OrderCreateSchema(RentalItemsMixin):
    delivery_type: DeliveryType
    delivery_address_id: Optional[int] = None
    payment_method: PaymentMethod
    card_id: Optional[int] = None
    notes: Optional[str] = None


class MyOrdersQuery(QueryModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)
    status: Optional[OrderStatus] = None


# Catalog

class ProductListQuery(QueryModel):
    category_id: Optional[int] = None
    search: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=50)
    sort_by: Literal['name', 'price', 'created_at'] = 'created_at'
    sort_order: Literal['asc', 'desc'] = 'desc'


class ProductSearchQuery(QueryModel):
    q: str = Field(..., min_length=1)
    limit: int = Field(20, ge=1, le=50)


# Admin

class AdminLoginSchema(BaseModel):
    api_key: str = Field(..., min_length=1)


class AdminListQuery(QueryModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    search: Optional[str] = None


class AdminProductQuery(AdminListQuery):
    category_id: Optional[int] = None
    is_active: Optional[bool] = None


class AdminOrderQuery(AdminListQuery):
    status: Optional[OrderStatus] = None


class CategorySchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    image_url: Optional[str] = None
    icon_name: Optional[str] = None
    display_order: int = 0
    is_active: bool = True


class CategoryUpdateSchema(BaseModel):
    id: int
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    image_url: Optional[str] = None
    icon_name: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class SpecificationsSchema(BaseModel):
    width: Optional[str] = None
    height: Optional[str] = None
    depth: Optional[str] = None
    weight: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None


class PricingTierSchema(BaseModel):
    min_days: int = Field(..., ge=1)
    max_days: Optional[int] = Field(None, ge=1)
    daily_price: int = Field(..., gt=0)

    @model_validator(mode='after')
    def check_range(self):
        if self.max_days is not None and self.max_days < self.min_days:
            raise ValueError('max_days must not be less than min_days')
        return self


class QuantityPricingSchema(BaseModel):
    min_quantity: int = Field(..., ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    price_per_unit: int = Field(..., gt=0)

    @model_validator(mode='after')
    def check_range(self):
        if self.max_quantity is not None and self.max_quantity < self.min_quantity:
            raise ValueError('max_quantity must not be less than min_quantity')
        return self


class ProductSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category_id: int
    photos: List[str] = Field(default_factory=list, max_length=3)
    specifications: SpecificationsSchema = Field(default_factory=SpecificationsSchema)
    daily_price: int = Field(..., gt=0)
    total_stock: int = Field(..., gt=0)
    is_active: bool = True
    pricing_tiers: List[PricingTierSchema] = Field(default_factory=list)
    quantity_pricing: List[QuantityPricingSchema] = Field(default_factory=list)


class ProductUpdateSchema(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category_id: Optional[int] = None
    photos: Optional[List[str]] = Field(None, max_length=3)
    specifications: Optional[SpecificationsSchema] = None
    daily_price: Optional[int] = Field(None, gt=0)
    total_stock: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None
    pricing_tiers: Optional[List[PricingTierSchema]] = None
    quantity_pricing: Optional[List[QuantityPricingSchema]] = None


class CustomerUpdateSchema(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None


class OrderStatusSchema(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None


class SettingsSchema(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    working_hours: Optional[str] = None
    telegram_url: Optional[str] = None


class DeliveryZoneSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: int = Field(..., ge=0)
    is_active: bool = True


class DeliveryZoneUpdateSchema(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
