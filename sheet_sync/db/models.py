"""
Pydantic models for database entities.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
import uuid


class SessionStatus(str, Enum):
    """Status of a sync session."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


class LogStatus(str, Enum):
    """Outcome of one spreadsheet row."""
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ERROR = "error"


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def normalize_shop_url(value: str) -> str:
    """Strip scheme, whitespace and trailing slash from a shop URL."""
    domain = value.strip().lower()
    for prefix in ("https://", "http://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
    return domain.rstrip("/")


class Store(BaseModel):
    """A Shopify store configuration."""
    id: str = Field(default_factory=generate_uuid)
    name: str
    shopify_url: str  # e.g., "mystore.myshopify.com"
    access_token: str  # Shopify Admin API token (shpat_...)
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class StoreCreate(BaseModel):
    """Input for creating a new store."""
    name: str
    shopify_url: str
    access_token: str


class StoreUpdate(BaseModel):
    """Input for updating a store."""
    name: Optional[str] = None
    shopify_url: Optional[str] = None
    access_token: Optional[str] = None
    is_active: Optional[bool] = None


class StorePublic(BaseModel):
    """Store as returned by the API (token hidden)."""
    id: str
    name: str
    shopify_url: str
    is_active: bool
    created_at: datetime


class GoogleSheet(BaseModel):
    """A Google Sheet feeding prices to a store."""
    id: str = Field(default_factory=generate_uuid)
    store_id: str
    sheet_id: str  # spreadsheet id from the sheet URL
    sheet_name: str = "Sheet1"
    service_account_json: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class GoogleSheetCreate(BaseModel):
    """Input for registering a sheet."""
    store_id: str
    sheet_id: str
    sheet_name: str = "Sheet1"
    service_account_json: Optional[str] = None


class GoogleSheetUpdate(BaseModel):
    """Input for updating a sheet."""
    sheet_id: Optional[str] = None
    sheet_name: Optional[str] = None
    service_account_json: Optional[str] = None
    is_active: Optional[bool] = None


class GoogleSheetPublic(BaseModel):
    """Sheet as returned by the API (credentials hidden)."""
    id: str
    store_id: str
    sheet_id: str
    sheet_name: str
    has_credentials: bool
    is_active: bool
    created_at: datetime


class SyncSession(BaseModel):
    """One reconciliation run of a sheet against a store."""
    id: str = Field(default_factory=generate_uuid)
    store_id: str
    sheet_id: str  # GoogleSheet.id
    status: SessionStatus = SessionStatus.RUNNING

    # Statistics
    total_skus: int = 0
    processed_skus: int = 0
    updated_skus: int = 0
    not_found_skus: int = 0
    error_count: int = 0

    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None


class SyncLog(BaseModel):
    """Recorded outcome of one spreadsheet row."""
    id: str = Field(default_factory=generate_uuid)
    session_id: str
    sku: str
    status: LogStatus

    old_price: Optional[str] = None
    new_price: Optional[str] = None
    old_compare_price: Optional[str] = None
    new_compare_price: Optional[str] = None

    error_message: Optional[str] = None
    shopify_variant_id: Optional[str] = None

    timestamp: datetime = Field(default_factory=datetime.utcnow)
