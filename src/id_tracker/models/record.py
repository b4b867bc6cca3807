"""
Record-related Pydantic models
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """One stored identifier with attribution, note and timestamp"""
    id: str
    added_by: str
    note: str = ""
    created_at: datetime


class InsertResult(BaseModel):
    """Outcome of a single insert under the active conflict policy"""
    record: Record
    created: bool


class RecordListResponse(BaseModel):
    items: List[Record]
    total: int
    page: int
    limit: int


class RecordSearchResponse(BaseModel):
    items: List[Record]


# Request bodies. Fields are optional so that missing values surface as
# ValidationError (400) from the service layer instead of a schema error.

class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AddIdRequest(_CamelRequest):
    id: Optional[str] = None
    ids: Optional[List[str]] = None
    api_key: Optional[str] = Field(None, alias="apiKey")


class ManualAddRequest(_CamelRequest):
    id: Optional[str] = None
    note: Optional[str] = None
    master_key: Optional[str] = Field(None, alias="masterKey")


class NoteUpdateRequest(_CamelRequest):
    id: Optional[str] = None
    note: Optional[str] = None
    master_key: Optional[str] = Field(None, alias="masterKey")


class DeleteRequest(_CamelRequest):
    id: Optional[str] = None
    master_key: Optional[str] = Field(None, alias="masterKey")


class DeleteManyRequest(_CamelRequest):
    ids: Optional[List[str]] = None
    master_key: Optional[str] = Field(None, alias="masterKey")


class MasterKeyRequest(_CamelRequest):
    master_key: Optional[str] = Field(None, alias="masterKey")


class ImportRow(BaseModel):
    """A row parsed out of an uploaded import file"""
    id: str
    added_by: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None


class ImportSummary(BaseModel):
    imported: int = 0
    skipped: int = 0
    failed: int = 0
