"""Medication repository backed by the Supabase ``medications`` table."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..logging_config import get_logger
from ..models.medication import DosageForm, Medication
from .supabase_client import get_supabase_client

logger = get_logger(__name__)


class MedicationStoreError(Exception):
    """A write to the document store failed."""


def _matches_search(medication: Medication, search_term: str) -> bool:
    term = search_term.lower()
    return any(
        term in (value or "").lower()
        for value in (medication.name, medication.generic_name, medication.instructions)
    )


class MedicationRepository:
    """Key-indexed access to medication records.

    A failed list read returns the last successful result for the same query,
    so the poll sees data at most one tick stale. Writes raise
    ``MedicationStoreError`` so callers can surface them.
    """

    table_name = "medications"

    def __init__(self, client=None):
        self.client = client if client is not None else get_supabase_client()
        self._last_good: Dict[tuple, List[Medication]] = {}

    def _table(self):
        return self.client.table(self.table_name)

    @staticmethod
    def _parse_rows(rows: List[Dict[str, Any]]) -> List[Medication]:
        medications = []
        for row in rows or []:
            try:
                medications.append(Medication.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed medication {row.get('id')}: {e}")
        return medications

    async def list_medications(
        self,
        user_id: str,
        is_active: Optional[bool] = None,
        search_term: Optional[str] = None,
        dosage_form: Optional[DosageForm] = None,
    ) -> List[Medication]:
        """List a user's medications, newest first."""

        if not self.client:
            logger.warning("Cannot list medications: Supabase client not available")
            return []

        cache_key = (user_id, is_active, dosage_form)
        try:
            query = self._table().select('*').eq('user_id', user_id)
            if is_active is not None:
                query = query.eq('is_active', is_active)
            if dosage_form is not None:
                query = query.eq('dosage->>form', DosageForm(dosage_form).value)
            result = query.order('created_at', desc=True).execute()
        except Exception as e:
            logger.error(f"Failed to list medications for {user_id}: {e}")
            medications = self._last_good.get(cache_key, [])
        else:
            medications = self._parse_rows(result.data)
            self._last_good[cache_key] = medications

        if search_term:
            medications = [m for m in medications if _matches_search(m, search_term)]
        return medications

    async def get_active_medications(self, user_id: str) -> List[Medication]:
        return await self.list_medications(user_id, is_active=True)

    async def get_medication(self, medication_id: str) -> Optional[Medication]:
        if not self.client:
            return None

        try:
            result = self._table().select('*').eq('id', medication_id).limit(1).execute()
        except Exception as e:
            logger.error(f"Failed to get medication {medication_id}: {e}")
            return None

        medications = self._parse_rows(result.data)
        return medications[0] if medications else None

    async def _update(self, medication_id: str, data: Dict[str, Any], action: str) -> None:
        if not self.client:
            raise MedicationStoreError(f"Cannot {action}: medication store not configured")

        data = {**data, "updated_at": datetime.now().isoformat()}
        try:
            self._table().update(data).eq('id', medication_id).execute()
        except Exception as e:
            logger.error(f"Failed to {action} for {medication_id}: {e}")
            raise MedicationStoreError(f"Failed to {action}") from e

        logger.info(f"Medication {medication_id}: {action}")

    async def record_dose_taken(self, medication_id: str, taken_at: datetime) -> None:
        await self._update(medication_id, {"last_taken_at": taken_at.isoformat()}, "record dose taken")

    async def clear_refill_date(self, medication_id: str) -> None:
        await self._update(medication_id, {"refill_date": None}, "clear refill date")

    async def deactivate(self, medication_id: str) -> None:
        await self._update(medication_id, {"is_active": False}, "deactivate medication")
