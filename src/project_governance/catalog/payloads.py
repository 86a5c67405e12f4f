"""Payload models, one per event type.

A payload model is the full contract for an event's ``payload`` dict.
Validation failures surface as ``MalformedPayload`` via the catalog.
Unknown keys are ignored so older readers tolerate newer writers.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class Payload(BaseModel):
    """Base for all payload models."""

    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Scalar fields
# ---------------------------------------------------------------------------

class ProjectStartedPayload(Payload):
    title: str = Field(min_length=1)
    description: str = ""
    start_date: date | None = None
    end_date: date | None = None
    owning_org_node_id: str = ""


class TitleChangedPayload(Payload):
    title: str = Field(min_length=1)


class DescriptionChangedPayload(Payload):
    description: str = Field(min_length=1)


class StartDateChangedPayload(Payload):
    start_date: date


class EndDateChangedPayload(Payload):
    end_date: date


class OwningOrgNodeChangedPayload(Payload):
    owning_org_node_id: str = Field(min_length=1)


class CustomFieldValueSetPayload(Payload):
    definition_id: str = Field(min_length=1)
    value: str = ""


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------

class ProductAddedPayload(Payload):
    product_id: str = Field(min_length=1)


class ProductRemovedPayload(Payload):
    product_id: str = Field(min_length=1)


class ProductsBulkImportedPayload(Payload):
    product_ids: tuple[str, ...] = Field(min_length=1)


class ProjectRoleAssignedPayload(Payload):
    person_id: str = Field(min_length=1)
    project_role_id: str = Field(min_length=1)


class ProjectRoleUnassignedPayload(Payload):
    person_id: str = Field(min_length=1)
    project_role_id: str = Field(min_length=1)


class AffiliatedOrganisationAddedPayload(Payload):
    organisation_id: str = Field(min_length=1)


class AffiliatedOrganisationRemovedPayload(Payload):
    organisation_id: str = Field(min_length=1)
