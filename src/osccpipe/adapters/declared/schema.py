"""Schema of the declared-license source document."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DeclaredBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class DeclaredLicensesProcessed(DeclaredBaseModel):
    spdx_expression: str | None = None
    mapped: dict[str, str] = Field(default_factory=dict)


class DeclaredPackage(DeclaredBaseModel):
    id: str
    declared_licenses: list[str] = Field(default_factory=list)
    declared_licenses_processed: DeclaredLicensesProcessed = Field(
        default_factory=DeclaredLicensesProcessed
    )


class DeclaredDocument(DeclaredBaseModel):
    packages: list[DeclaredPackage] = Field(default_factory=list)
