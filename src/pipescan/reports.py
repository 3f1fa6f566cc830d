"""Pydantic models for the raw tool reports.

Only the fields the normalizers read are declared; everything else is kept
(``extra="allow"``) and travels on as the finding's raw payload.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, TypeAdapter


class _ToolModel(BaseModel):
    model_config = {"extra": "allow", "populate_by_name": True}

    def raw(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Trivy
# ---------------------------------------------------------------------------

class TrivyVulnerability(_ToolModel):
    vulnerability_id: str | None = Field(default=None, alias="VulnerabilityID")
    severity: str | None = Field(default=None, alias="Severity")
    pkg_name: str | None = Field(default=None, alias="PkgName")
    installed_version: str | None = Field(default=None, alias="InstalledVersion")
    fixed_version: str | None = Field(default=None, alias="FixedVersion")
    title: str | None = Field(default=None, alias="Title")


class TrivyCauseMetadata(_ToolModel):
    start_line: int | None = Field(default=None, alias="StartLine")
    end_line: int | None = Field(default=None, alias="EndLine")


class TrivyMisconfiguration(_ToolModel):
    id: str | None = Field(default=None, alias="ID")
    title: str | None = Field(default=None, alias="Title")
    severity: str | None = Field(default=None, alias="Severity")
    cause_metadata: TrivyCauseMetadata | None = Field(default=None, alias="CauseMetadata")


class TrivyResult(_ToolModel):
    target: str | None = Field(default=None, alias="Target")
    type: str | None = Field(default=None, alias="Type")
    vulnerabilities: list[TrivyVulnerability] | None = Field(default=None, alias="Vulnerabilities")
    misconfigurations: list[TrivyMisconfiguration] | None = Field(
        default=None, alias="Misconfigurations",
    )


class TrivyReport(_ToolModel):
    results: list[TrivyResult] | None = Field(default=None, alias="Results")


# ---------------------------------------------------------------------------
# Gitleaks
# ---------------------------------------------------------------------------

class GitleaksLeak(_ToolModel):
    rule_id: str | None = Field(default=None, alias="RuleID")
    description: str | None = Field(default=None, alias="Description")
    file: str | None = Field(default=None, alias="File")
    match: str | None = Field(default=None, alias="Match")
    secret: str | None = Field(default=None, alias="Secret")
    start_line: int | None = Field(default=None, alias="StartLine")
    end_line: int | None = Field(default=None, alias="EndLine")
    start_column: int | None = Field(default=None, alias="StartColumn")
    end_column: int | None = Field(default=None, alias="EndColumn")


GitleaksReport = TypeAdapter(list[GitleaksLeak])
