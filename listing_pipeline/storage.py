"""
Repository seam between the pipeline and whatever stores businesses.
"""
import uuid
from dataclasses import fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from listing_pipeline.exceptions import BusinessNotFoundError
from listing_pipeline.models import BusinessRecord

_RECORD_FIELDS = {f.name for f in fields(BusinessRecord)}


class BusinessRepository(Protocol):
    def find_many(self, **filters: Any) -> List[BusinessRecord]:
        ...

    def get(self, business_id: str) -> Optional[BusinessRecord]:
        ...

    def create(self, record: BusinessRecord) -> BusinessRecord:
        ...

    def update(self, business_id: str, **changes: Any) -> BusinessRecord:
        ...


class InMemoryBusinessRepository:
    """
    Dict-backed repository. Reads and writes hand out copies, so callers
    always work on a snapshot.
    """

    def __init__(self, records: Optional[List[BusinessRecord]] = None):
        self._records: Dict[str, BusinessRecord] = {}
        for record in records or []:
            self.create(record)

    def __len__(self) -> int:
        return len(self._records)

    def find_many(self, **filters: Any) -> List[BusinessRecord]:
        """Records whose attributes equal every filter value, in insertion order."""
        unknown = set(filters) - _RECORD_FIELDS
        if unknown:
            raise ValueError(f"Unknown filter field(s): {sorted(unknown)}")
        return [
            replace(record)
            for record in self._records.values()
            if all(getattr(record, key) == value for key, value in filters.items())
        ]

    def get(self, business_id: str) -> Optional[BusinessRecord]:
        record = self._records.get(business_id)
        return replace(record) if record is not None else None

    def create(self, record: BusinessRecord) -> BusinessRecord:
        now = datetime.now(timezone.utc)
        stored = replace(
            record,
            id=record.id or str(uuid.uuid4()),
            created_at=record.created_at or now,
            updated_at=record.updated_at or now,
        )
        if stored.id in self._records:
            raise ValueError(f"Business already exists: {stored.id}")
        self._records[stored.id] = stored
        return replace(stored)

    def update(self, business_id: str, **changes: Any) -> BusinessRecord:
        if business_id not in self._records:
            raise BusinessNotFoundError(business_id)
        unknown = set(changes) - _RECORD_FIELDS
        if unknown:
            raise ValueError(f"Unknown field(s): {sorted(unknown)}")
        changes.setdefault("updated_at", datetime.now(timezone.utc))
        stored = replace(self._records[business_id], **changes)
        self._records[business_id] = stored
        return replace(stored)
