"""Repository layer: all database access goes through here.

Repositories encapsulate SQLAlchemy queries so that the service layer
only contains business logic.
"""

from edunity_intake.repositories.lead_repository import LeadRepository
from edunity_intake.repositories.counter_repository import CounterRepository
from edunity_intake.repositories.unique_key_repository import UniqueKeyRepository
from edunity_intake.repositories.id_registry_repository import IdRegistryRepository
from edunity_intake.repositories.archive_repository import ArchiveRepository
from edunity_intake.repositories.assignment_repository import AssignmentRepository
from edunity_intake.repositories.follow_up_document_repository import (
    FollowUpDocumentRepository,
)

__all__ = [
    "LeadRepository",
    "CounterRepository",
    "UniqueKeyRepository",
    "IdRegistryRepository",
    "ArchiveRepository",
    "AssignmentRepository",
    "FollowUpDocumentRepository",
]
