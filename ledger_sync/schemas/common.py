# schemas/common.py
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from ledger_sync.utils.timeutils import as_utc


# JSON on the wire is camelCase, attributes stay snake_case
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    # Naive timestamps (SQLite, clients without offset) are UTC
    @field_validator("*", mode="after")
    @classmethod
    def _utc_datetimes(cls, value):
        if isinstance(value, datetime):
            return as_utc(value)
        return value


# Shared secret of the ledger system; checked by require_onec_secret, which
# also accepts it from the query string
class SecretEnvelope(CamelModel):
    secret: Optional[str] = None


class BatchItemResult(CamelModel):
    key: str
    status: Literal["ok", "error"]
    error: Optional[str] = None


class BatchResponse(CamelModel):
    success: bool
    count: int
    results: List[BatchItemResult]
