from datetime import datetime, timezone
from typing import Any, Dict

from edunity_intake.models.archive import LeadArchive
from edunity_intake.repositories.base import BaseRepository


class ArchiveRepository(BaseRepository):
    """Writes against the ``lead_archive`` table."""

    async def archive(
        self,
        lead_type: str,
        source_lead_id: str,
        canonical_lead_id: str,
        reason: str,
        snapshot: Dict[str, Any],
    ) -> LeadArchive:
        """Upsert the archive row for *source_lead_id*.

        Keyed by the source lead, so re-archiving after a partial run
        overwrites instead of duplicating.
        """
        entry = await self._db.get(LeadArchive, (lead_type, source_lead_id))
        if entry is None:
            entry = LeadArchive(lead_type=lead_type, source_lead_id=source_lead_id)
            self._db.add(entry)
        entry.canonical_lead_id = canonical_lead_id
        entry.archive_reason = reason
        entry.snapshot = snapshot
        entry.archived_at = datetime.now(timezone.utc)
        return entry
