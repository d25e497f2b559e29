"""Document store protocol.

Simple keyed CRUD for applicant profiles and grant opportunities,
partitioned by a natural key: owner id for profiles, agency for grants.
"""

from typing import Protocol, runtime_checkable

from grant_matcher.entities import ApplicantProfile, GrantOpportunity


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for the durable profile/opportunity store."""

    async def get_applicant(self, applicant_id: str) -> ApplicantProfile | None:
        ...

    async def save_applicant(self, applicant: ApplicantProfile) -> None:
        ...

    async def get_grant(self, agency: str, grant_id: str) -> GrantOpportunity | None:
        ...

    async def save_grant(self, grant: GrantOpportunity, ttl_seconds: int | None = None) -> None:
        ...

    async def delete_grant(self, agency: str, grant_id: str) -> bool:
        ...
