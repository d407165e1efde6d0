from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SheetCreateBody(_Body):
    sheetName: str
    signatureId: int | None = None


class SheetUpdateBody(_Body):
    sheetName: str | None = None
    signatureId: int | None = None


class SheetDeleteBody(_Body):
    ids: list[int] | None = None
    id: int | None = None

    def requested_ids(self) -> list[int]:
        if self.ids:
            return list(self.ids)
        if self.id is not None:
            return [self.id]
        return []


class RowInput(_Body):
    businessEmail: str | None = None
    websiteUrl: str | None = None


class RowsCreateBody(RowInput):
    rows: list[RowInput] | None = None


class RowUpdateBody(_Body):
    businessEmail: str | None = None
    websiteUrl: str | None = None
    hasReplied: bool | None = None


class RowsDeleteBody(_Body):
    ids: list[int]


class RunActionBody(_Body):
    action: str = "send_mail"
    rowIds: list[int | str] | None = None
    rowCount: int | None = None


class CallbackBody(_Body):
    rowId: int | str
    status: str


class SignatureCreateBody(_Body):
    name: str
    content: str


class WebsiteInfoBody(_Body):
    websiteName: str | None = None
    websiteUrl: str | None = None


class CompanyInfoBody(WebsiteInfoBody):
    companyName: str | None = None
    companyType: str | None = None
    industryExpertise: str | list[str] | None = None
    fullTechSummary: str | list[str] | None = None
    serviceCatalog: list[str] | None = None
    theHook: str | None = None
    whatTheyDo: str | None = None
    valueProposition: str | None = None
    brandTone: list[str] | None = None
