"""
RegistrationStore: persistence port for registrations.

A registration row is written as `pending` before anything is broadcast and
moves exactly once to `confirmed` or `failed`. The confirmation update sets
reference, height and registering address in one statement guarded by
`status = 'pending'`, so a row is never seen with only some of them set.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import InvalidStateTransition


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class RegistrationRecord:
    id: str
    asset: str
    memo: str
    status: RegistrationStatus
    submitted_memo: Optional[str] = None
    tx_hash: Optional[str] = None
    reference_id: Optional[str] = None
    height: Optional[str] = None
    registration_hash: Optional[str] = None
    registered_by: Optional[str] = None
    error: Optional[str] = None
    created_at: Optional[Any] = None
    confirmed_at: Optional[Any] = None
    updated_at: Optional[Any] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RegistrationRecord":
        fields = {k: row.get(k) for k in cls.__dataclass_fields__}
        fields["status"] = RegistrationStatus(row["status"])
        if fields.get("height") is not None:
            fields["height"] = str(fields["height"])
        return cls(**fields)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        for key in ("created_at", "confirmed_at", "updated_at"):
            if isinstance(data[key], datetime):
                data[key] = data[key].isoformat()
        return data


@dataclass
class StoreStatus:
    enabled: bool
    engine: str
    connected: bool
    note: str = ""


def new_registration_id() -> str:
    return uuid.uuid4().hex


def require_confirmation_fields(reference_id: str, height: str, registered_by: str):
    missing = [
        name
        for name, value in (("reference_id", reference_id), ("height", height), ("registered_by", registered_by))
        if not value
    ]
    if missing:
        raise InvalidStateTransition(f"Cannot confirm a registration without {', '.join(missing)}")


class RegistrationStore(ABC):
    enabled = True

    @abstractmethod
    def create_pending(self, asset: str, memo: str, submitted_memo: Optional[str] = None) -> str:
        """Insert a pending row; returns its id."""

    @abstractmethod
    def attach_tx_hash(self, registration_id: str, tx_hash: str) -> None:
        ...

    @abstractmethod
    def mark_confirmed(
        self,
        registration_id: str,
        reference_id: str,
        height: str,
        registration_hash: str,
        registered_by: str,
    ) -> RegistrationRecord:
        ...

    @abstractmethod
    def mark_failed(self, registration_id: str, error: str) -> None:
        ...

    @abstractmethod
    def get(self, registration_id: str) -> Optional[RegistrationRecord]:
        ...

    @abstractmethod
    def get_by_tx_hash(self, tx_hash: str) -> Optional[RegistrationRecord]:
        ...

    @abstractmethod
    def find_by_reference(self, asset: str, reference_id: str) -> List[RegistrationRecord]:
        ...

    @abstractmethod
    def status(self) -> StoreStatus:
        ...

    def close(self) -> None:
        pass
