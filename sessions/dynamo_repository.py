from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from sessions.models import Session

try:
    import boto3  # type: ignore
    from botocore.exceptions import ClientError  # type: ignore
except Exception as exc:  # pragma: no cover - import guard for local envs
    boto3 = None
    ClientError = Exception
    _BOTO3_IMPORT_ERROR = exc
else:
    _BOTO3_IMPORT_ERROR = None


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DynamoSessionStore:
    def __init__(
        self,
        *,
        region_name: str | None = None,
        table_prefix: str = "payment-lookup-bot",
        sessions_table_name: str | None = None,
        update_dedupe_table_name: str | None = None,
        update_ttl_days: int = 2,
        dynamodb_resource: Any | None = None,
    ) -> None:
        if dynamodb_resource is None and boto3 is None:
            raise RuntimeError(f"boto3 is required for DynamoSessionStore: {_BOTO3_IMPORT_ERROR}")

        normalized_prefix = (table_prefix or "payment-lookup-bot").strip()
        self.update_ttl_days = max(1, int(update_ttl_days))
        self._ddb = dynamodb_resource or boto3.resource("dynamodb", region_name=region_name)
        self._sessions_table = self._ddb.Table(sessions_table_name or f"{normalized_prefix}-sessions")
        self._update_table = self._ddb.Table(update_dedupe_table_name or f"{normalized_prefix}-update-dedupe")

    def get_session(self, user_id: str) -> Session | None:
        row = self._sessions_table.get_item(
            Key={"user_id": str(user_id)},
            ConsistentRead=True,
        ).get("Item")
        if row is None:
            return None
        session = Session(
            user_id=str(row["user_id"]),
            stage=str(row.get("stage", "")),
            date=_optional_text(row.get("date")),
            expires_at=str(row.get("expires_at", "") or ""),
            created_at=str(row.get("created_at", "") or ""),
            updated_at=str(row.get("updated_at", "") or ""),
        )
        # the table TTL sweep is lazy, so expired rows can still be read
        if session.is_expired(_utc_now()):
            return None
        return session

    def save_session(self, session: Session) -> None:
        now = _utc_now()
        item: dict[str, Any] = {
            "user_id": str(session.user_id),
            "stage": session.stage,
            "expires_at": session.expires_at,
            "created_at": session.created_at or now,
            "updated_at": now,
        }
        if session.date:
            item["date"] = session.date
        if session.expires_at:
            item["expires_at_epoch"] = _iso_to_epoch(session.expires_at)
        self._sessions_table.put_item(Item=item)
        session.updated_at = now

    def delete_session(self, user_id: str) -> None:
        self._sessions_table.delete_item(Key={"user_id": str(user_id)})

    def mark_update_processed(self, update_id: str) -> bool:
        key = (update_id or "").strip()
        if not key:
            return False
        now = datetime.now(timezone.utc)
        expires = int((now + timedelta(days=self.update_ttl_days)).timestamp())
        try:
            self._update_table.put_item(
                Item={
                    "update_id": key,
                    "received_at": now.isoformat(),
                    "expires_at_epoch": expires,
                },
                ConditionExpression="attribute_not_exists(update_id)",
            )
            return True
        except ClientError as exc:
            code = str(getattr(exc, "response", {}).get("Error", {}).get("Code", ""))
            if code == "ConditionalCheckFailedException":
                return False
            raise


def _optional_text(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None


def _iso_to_epoch(text: str) -> int:
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return int(datetime.now(timezone.utc).timestamp())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())
