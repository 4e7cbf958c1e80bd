from typing import Optional

from edunity_intake.models.follow_up_document import TeacherFollowUpDocument
from edunity_intake.repositories.base import BaseRepository


class FollowUpDocumentRepository(BaseRepository):
    """Queries against ``teacher_follow_up_documents``."""

    async def get_by_edunity_id(self, edunity_id: str) -> Optional[TeacherFollowUpDocument]:
        return await self._db.get(TeacherFollowUpDocument, edunity_id)

    async def create(self, **kwargs) -> TeacherFollowUpDocument:
        record = TeacherFollowUpDocument(**kwargs)
        self._db.add(record)
        return record
