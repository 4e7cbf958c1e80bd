"""Per-lead-type configuration for ID allocation and deduplication."""

from dataclasses import dataclass
from typing import Dict, Tuple

from edunity_intake.core.exceptions import UnknownLeadTypeError


@dataclass(frozen=True)
class LeadTypeConfig:
    """Everything that differs between teacher leads and parent requests.

    ``legacy_prefixes`` are accepted when parsing IDs but never written.
    """

    name: str
    id_prefix: str
    counter_name: str
    legacy_prefixes: Tuple[str, ...] = ()
    uses_id_registry: bool = False

    @property
    def accepted_prefixes(self) -> Tuple[str, ...]:
        return (self.id_prefix,) + self.legacy_prefixes


TEACHER = LeadTypeConfig(
    name="teacher",
    id_prefix="EDU-ON-T-",
    counter_name="teacher_onboard_serial",
    legacy_prefixes=("ED-ON-T-",),
    uses_id_registry=True,
)

PARENT = LeadTypeConfig(
    name="parent",
    id_prefix="ED-PR-",
    counter_name="parent_request_serial",
)

LEAD_TYPES: Dict[str, LeadTypeConfig] = {lt.name: lt for lt in (TEACHER, PARENT)}


def get_lead_type(name: str) -> LeadTypeConfig:
    """Look up a lead type by name, raising ``UnknownLeadTypeError``."""
    try:
        return LEAD_TYPES[name.strip().lower()]
    except KeyError:
        raise UnknownLeadTypeError(f"Unknown lead type: {name!r}") from None
