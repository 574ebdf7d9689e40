"""Pydantic schemas for the YAML rule files of every stage."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RuleBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str


class CurationLicenseItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    modifier: str
    reason: str | None = None
    license: str | None = None
    license_text_in_archive: str | None = None


class CurationCopyrightItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    modifier: str
    reason: str | None = None
    copyright: str | None = None


class CurationScopeItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_scope: str
    file_licenses: list[CurationLicenseItem] | None = None
    file_copyrights: list[CurationCopyrightItem] | None = None


class CurationRuleModel(RuleBaseModel):
    package_modifier: str
    resolved_issues: list[str] | None = None
    source_root: str | None = None
    comment: str | None = None
    repository: str | None = None
    curations: list[CurationScopeItem] | None = None


class ResolverBlockModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    licenses: list[str | None] = Field(default_factory=list)
    result: str = ""
    scopes: list[str] = Field(default_factory=list)


class ResolverRuleModel(RuleBaseModel):
    blocks: list[ResolverBlockModel] = Field(default_factory=list)


class SelectorChoiceModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    specified: str
    selected: str


class SelectorRuleModel(RuleBaseModel):
    choices: list[SelectorChoiceModel] = Field(default_factory=list)


class TransitionModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")


class MetadataRuleModel(RuleBaseModel):
    distribution: TransitionModel | None = None
    package_type: TransitionModel | None = Field(default=None, alias="packageType")
