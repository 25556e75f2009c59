"""DynamoDB access for the document store.

Tables (names are prefixed with DYNAMODB_TABLE_PREFIX or topup-{environment}):
- transactions: key transaction_id, GSI reference-index on reference
- users: key user_id, holds wallet_balance
- admin: key admin_id, item "user" lists admin emails

Webhook handling never creates transactions. It reads them by reference and
moves their status forward with transition_transaction_status, the only
write path that touches money.
"""

import datetime as dt
import os
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

TRANSACTIONS_TABLE = "transactions"
USERS_TABLE = "users"
ADMIN_TABLE = "admin"
REFERENCE_INDEX = "reference-index"
ADMIN_ROSTER_ID = "user"

_dynamodb_service_instance: "DynamoDBService | None" = None


def get_dynamodb_service(environment: str | None = None) -> "DynamoDBService":
    """Return the process-wide DynamoDBService, creating it on first use.

    Args:
        environment: Environment name, only honoured on the first call.
    """
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(environment)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Drop the shared instance so the next call builds a new one.

    Tests call this so the service is created inside mock_aws.
    """
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


class DynamoDBService:
    """Table access for transactions, user wallets and the admin roster."""

    def __init__(self, environment: str | None = None) -> None:
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        # DYNAMODB_TABLE_PREFIX wins so tests can point at their own tables
        self.name_prefix = os.getenv("DYNAMODB_TABLE_PREFIX", f"topup-{self.environment}")
        self._resource = boto3.resource("dynamodb")
        self._client = boto3.client("dynamodb")
        self._serializer = TypeSerializer()

    def _table_name(self, table: str) -> str:
        return f"{self.name_prefix}-{table}"

    def _table(self, table: str) -> Any:
        return self._resource.Table(self._table_name(table))

    def _attribute_values(self, values: dict[str, Any]) -> dict[str, Any]:
        """Serialize Python values for the low-level client API."""
        return {k: self._serializer.serialize(v) for k, v in values.items()}

    # =========================================================================
    # Item access
    # =========================================================================

    def get_item(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        """Read one item by primary key (table name without prefix)."""
        item: dict[str, Any] | None = self._table(table).get_item(Key=key).get("Item")
        return item

    def put_item(self, table: str, item: dict[str, Any]) -> None:
        """Write one item, replacing any item with the same key."""
        self._table(table).put_item(Item=item)

    def _query_index(self, table: str, index_name: str, attribute: str, value: str) -> list[dict[str, Any]]:
        response = self._table(table).query(
            IndexName=index_name,
            KeyConditionExpression=Key(attribute).eq(value),
        )
        items: list[dict[str, Any]] = response.get("Items", [])
        return items

    def transact_write(self, items: list[dict[str, Any]]) -> bool:
        """Run TransactWriteItems.

        Returns:
            False when DynamoDB cancelled the transaction (a condition failed),
            True otherwise. Other client errors propagate.
        """
        try:
            self._client.transact_write_items(TransactItems=items)  # type: ignore[arg-type]
        except ClientError as e:
            if e.response["Error"]["Code"] == "TransactionCanceledException":
                return False
            raise
        return True

    # =========================================================================
    # Transaction records
    # =========================================================================

    def get_transaction_by_reference(self, reference: str) -> dict[str, Any] | None:
        """Find a transaction by provider reference (or eBills request_id)."""
        results = self._query_index(TRANSACTIONS_TABLE, REFERENCE_INDEX, "reference", reference)
        return results[0] if results else None

    def transition_transaction_status(
        self,
        transaction_id: str,
        new_status: str,
        from_statuses: tuple[str, ...],
        *,
        user_id: str | None = None,
        balance_delta: Decimal | None = None,
        mark_refunded: bool = False,
    ) -> bool:
        """Move a transaction to new_status, optionally adjusting a wallet.

        The status change and the wallet adjustment are written in one
        DynamoDB transaction conditioned on the record's current status being
        in from_statuses, so a repeated call changes nothing.

        Args:
            transaction_id: Transaction primary key
            new_status: Status to set
            from_statuses: Statuses the record may currently be in
            user_id: Wallet owner, required when balance_delta is given
            balance_delta: Amount to add to users.wallet_balance (negative to debit)
            mark_refunded: Also set refunded = true on the transaction

        Returns:
            True if applied, False if the condition failed (already moved on)
        """
        if balance_delta is not None and not user_id:
            raise ValueError("user_id is required when adjusting a balance")

        now = dt.datetime.now(dt.UTC).isoformat()

        status_placeholders = {f":from{i}": s for i, s in enumerate(from_statuses)}
        update_expression = "SET #status = :status, updated_at = :now"
        values: dict[str, Any] = {":status": new_status, ":now": now, **status_placeholders}
        if mark_refunded:
            update_expression += ", refunded = :refunded"
            values[":refunded"] = True

        items: list[dict[str, Any]] = [
            {
                "Update": {
                    "TableName": self._table_name(TRANSACTIONS_TABLE),
                    "Key": self._attribute_values({"transaction_id": transaction_id}),
                    "UpdateExpression": update_expression,
                    "ConditionExpression": f"#status IN ({', '.join(status_placeholders)})",
                    "ExpressionAttributeNames": {"#status": "status"},  # reserved word
                    "ExpressionAttributeValues": self._attribute_values(values),
                }
            }
        ]

        if balance_delta is not None:
            items.append(
                {
                    "Update": {
                        "TableName": self._table_name(USERS_TABLE),
                        "Key": self._attribute_values({"user_id": user_id}),
                        "UpdateExpression": (
                            "SET wallet_balance = if_not_exists(wallet_balance, :zero) + :delta, "
                            "updated_at = :now"
                        ),
                        "ExpressionAttributeValues": self._attribute_values(
                            {":zero": Decimal("0"), ":delta": balance_delta, ":now": now}
                        ),
                    }
                }
            )

        return self.transact_write(items)

    # =========================================================================
    # Users and admin roster
    # =========================================================================

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        return self.get_item(USERS_TABLE, {"user_id": user_id})

    def get_admin_emails(self) -> list[str]:
        """Return the admin email roster (empty if the roster item is missing).

        The list lives in `emails`; rosters written with the older singular
        `email` attribute are read too.
        """
        item = self.get_item(ADMIN_TABLE, {"admin_id": ADMIN_ROSTER_ID})
        if not item:
            return []
        emails = item.get("emails", item.get("email", []))
        if not isinstance(emails, (list, set)):
            return []
        return [str(e) for e in emails]
