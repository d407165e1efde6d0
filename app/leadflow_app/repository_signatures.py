from __future__ import annotations

from typing import Any


class RepositorySignaturesMixin:
    def _signature_payload(self, record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": int(record["id"]),
            "name": record.get("name"),
            "content": record.get("content") or "",
            "createdAt": self._iso(record.get("created_at")),
            "updatedAt": self._iso(record.get("updated_at")),
        }

    def list_signatures(self, user_id: str) -> list[dict[str, Any]]:
        frame = self._query_file(
            "signatures/select_signatures.sql",
            params=(user_id,),
            signatures=self._table("signatures"),
        )
        return [self._signature_payload(record) for record in self._records(frame)]

    def get_signature(self, user_id: str, signature_id: int) -> dict[str, Any] | None:
        frame = self._query_file(
            "signatures/select_signature.sql",
            params=(int(signature_id), user_id),
            signatures=self._table("signatures"),
        )
        record = self._first_record(frame)
        return self._signature_payload(record) if record else None

    def create_signature(self, user_id: str, name: str, content: str) -> dict[str, Any]:
        now = self._now()
        frame = self._query_file(
            "signatures/insert_signature.sql",
            params=(user_id, name, content, now, now),
            signatures=self._table("signatures"),
        )
        signature_id = int(frame.iloc[0]["id"])
        return {
            "id": signature_id,
            "name": name,
            "content": content,
            "createdAt": self._iso(now),
            "updatedAt": self._iso(now),
        }

    def delete_signature(self, user_id: str, signature_id: int) -> bool:
        affected = self._execute_file(
            "signatures/delete_signature.sql",
            params=(int(signature_id), user_id),
            signatures=self._table("signatures"),
        )
        return affected > 0
