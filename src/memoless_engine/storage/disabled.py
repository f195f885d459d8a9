"""Store used when DATABASE_URL is empty: writes are dropped, reads are refused."""

from typing import List, Optional

from ..errors import PersistenceDisabled
from .base import RegistrationRecord, RegistrationStatus, RegistrationStore, StoreStatus, new_registration_id

_DISABLED_MESSAGE = (
    "Database is disabled. Registration lookup is not available without persistent storage; "
    "use asset and reference instead."
)


class DisabledRegistrationStore(RegistrationStore):
    enabled = False
    engine = "none"

    def create_pending(self, asset: str, memo: str, submitted_memo: Optional[str] = None) -> str:
        return new_registration_id()

    def attach_tx_hash(self, registration_id: str, tx_hash: str) -> None:
        pass

    def mark_confirmed(self, registration_id, reference_id, height, registration_hash, registered_by):
        return RegistrationRecord(
            id=registration_id,
            asset="",
            memo="",
            status=RegistrationStatus.CONFIRMED,
            reference_id=reference_id,
            height=str(height),
            registration_hash=registration_hash,
            registered_by=registered_by,
        )

    def mark_failed(self, registration_id: str, error: str) -> None:
        pass

    def get(self, registration_id: str) -> Optional[RegistrationRecord]:
        raise PersistenceDisabled(_DISABLED_MESSAGE)

    def get_by_tx_hash(self, tx_hash: str) -> Optional[RegistrationRecord]:
        raise PersistenceDisabled(_DISABLED_MESSAGE)

    def find_by_reference(self, asset: str, reference_id: str) -> List[RegistrationRecord]:
        raise PersistenceDisabled(_DISABLED_MESSAGE)

    def status(self) -> StoreStatus:
        return StoreStatus(enabled=False, engine=self.engine, connected=False, note="Running without persistent storage")
