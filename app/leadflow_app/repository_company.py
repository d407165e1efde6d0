from __future__ import annotations

import json
from typing import Any

_COMPANY_INFO_COLUMNS = {
    "website_name": "websiteName",
    "website_url": "websiteUrl",
    "company_name": "companyName",
    "company_type": "companyType",
    "industry_expertise": "industryExpertise",
    "full_tech_summary": "fullTechSummary",
    "service_catalog": "serviceCatalog",
    "the_hook": "theHook",
    "what_they_do": "whatTheyDo",
    "value_proposition": "valueProposition",
    "brand_tone": "brandTone",
}
# Stored as JSON text so strings and lists round-trip on both SQLite and Postgres.
_JSON_COLUMNS = frozenset({"industry_expertise", "full_tech_summary", "service_catalog", "brand_tone"})


def _dump_json(value: Any) -> str | None:
    return None if value is None else json.dumps(value)


def _load_json(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return value
    return json.loads(value)


class RepositoryCompanyMixin:
    def _submission_payload(self, record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": int(record["id"]),
            "userId": record.get("user_id"),
            "websiteName": record.get("website_name"),
            "websiteUrl": record.get("website_url"),
            "extractedData": _load_json(record.get("extracted_data")),
            "createdAt": self._iso(record.get("created_at")),
        }

    def _company_info_payload(self, record: dict[str, Any]) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": int(record["id"]), "userId": record.get("user_id")}
        for column, key in _COMPANY_INFO_COLUMNS.items():
            value = record.get(column)
            payload[key] = _load_json(value) if column in _JSON_COLUMNS else value
        payload["createdAt"] = self._iso(record.get("created_at"))
        payload["updatedAt"] = self._iso(record.get("updated_at"))
        return payload

    def create_website_submission(
        self,
        user_id: str,
        website_name: str,
        website_url: str,
        extracted_data: Any,
    ) -> dict[str, Any]:
        now = self._now()
        frame = self._query_file(
            "company/insert_website_submission.sql",
            params=(user_id, website_name, website_url, _dump_json(extracted_data), now),
            website_submissions=self._table("website_submissions"),
        )
        return {
            "id": int(frame.iloc[0]["id"]),
            "userId": user_id,
            "websiteName": website_name,
            "websiteUrl": website_url,
            "extractedData": extracted_data,
            "createdAt": self._iso(now),
        }

    def list_website_submissions(self, user_id: str, limit: int = 50) -> list[dict[str, Any]]:
        frame = self._query_file(
            "company/select_website_submissions.sql",
            params=(user_id, int(limit)),
            website_submissions=self._table("website_submissions"),
        )
        return [self._submission_payload(record) for record in self._records(frame)]

    def get_latest_company_info(self, user_id: str) -> dict[str, Any] | None:
        frame = self._query_file(
            "company/select_latest_company_info.sql",
            params=(user_id,),
            my_company_info=self._table("my_company_info"),
        )
        record = self._first_record(frame)
        return self._company_info_payload(record) if record else None

    @staticmethod
    def _company_info_values(columns: dict[str, Any]) -> tuple[list[str], list[Any]]:
        unknown = set(columns) - set(_COMPANY_INFO_COLUMNS)
        if unknown:
            raise ValueError(f"Unsupported company info fields: {', '.join(sorted(unknown))}.")
        names = sorted(columns)
        values = [_dump_json(columns[name]) if name in _JSON_COLUMNS else columns[name] for name in names]
        return names, values

    def create_company_info(self, user_id: str, columns: dict[str, Any]) -> dict[str, Any]:
        names, values = self._company_info_values(columns)
        now = self._now()
        self._query_file(
            "company/insert_company_info.sql",
            params=(user_id, *values, now, now),
            column_list=", ".join(names),
            value_placeholders=self._placeholders(names),
            my_company_info=self._table("my_company_info"),
        )
        return self.get_latest_company_info(user_id)

    def update_company_info(self, user_id: str, info_id: int, columns: dict[str, Any]) -> dict[str, Any] | None:
        names, values = self._company_info_values(columns)
        self._execute_file(
            "company/update_company_info.sql",
            params=(*values, self._now(), int(info_id), user_id),
            set_clause=", ".join(f"{name} = %s" for name in names),
            my_company_info=self._table("my_company_info"),
        )
        return self.get_latest_company_info(user_id)
