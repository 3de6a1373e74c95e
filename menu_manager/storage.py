"""DynamoDB storage module - reads and writes items in the single users table."""

from __future__ import annotations

from typing import Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from menu_manager.errors import NotFoundError, StoreError
from menu_manager.models import PARTITION_KEY, SORT_KEY, to_dynamo

_DYNAMODB_CONFIG = Config(retries={"max_attempts": 3, "mode": "standard"})


def _default_dynamodb(region_name: Optional[str] = None):
    return boto3.resource("dynamodb", region_name=region_name, config=_DYNAMODB_CONFIG)


def _store_error(operation: str, exc: Exception) -> StoreError:
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        return StoreError(
            f"{operation} failed: {error.get('Code', 'Unknown')}: {error.get('Message', '')}"
        )
    return StoreError(f"{operation} failed: {exc}")


class DynamoTable:
    """Key-value access to one table keyed by (userid, sk)."""

    def __init__(self, table_name: str, dynamodb=None, region_name: Optional[str] = None):
        if dynamodb is None:
            dynamodb = _default_dynamodb(region_name)
        self.table_name = table_name
        self._table = dynamodb.Table(table_name)

    @staticmethod
    def _key(owner_id: str, sort_key: str) -> dict:
        return {PARTITION_KEY: owner_id, SORT_KEY: sort_key}

    def put(self, owner_id: str, sort_key: str, attributes: dict) -> None:
        """Writes the item unconditionally, replacing any existing one."""
        item = to_dynamo(dict(attributes))
        item.update(self._key(owner_id, sort_key))
        try:
            self._table.put_item(Item=item)
        except (ClientError, BotoCoreError) as exc:
            raise _store_error("PutItem", exc) from exc

    def get(self, owner_id: str, sort_key: str) -> Optional[dict]:
        """Returns the item, or None if it does not exist."""
        try:
            response = self._table.get_item(Key=self._key(owner_id, sort_key))
        except (ClientError, BotoCoreError) as exc:
            raise _store_error("GetItem", exc) from exc
        return response.get("Item")

    def update(self, owner_id: str, sort_key: str, fields: dict) -> dict:
        """
        Sets the given top-level attributes on an existing item.
        Returns the item as it is after the update (ALL_NEW).
        Raises: NotFoundError if the key does not exist; items are never created here.
        """
        if not fields:
            raise ValueError("update requires at least one field")

        names = {"#pk": PARTITION_KEY}
        values = {}
        assignments = []
        for idx, (name, value) in enumerate(fields.items()):
            names[f"#f{idx}"] = name
            values[f":v{idx}"] = to_dynamo(value)
            assignments.append(f"#f{idx} = :v{idx}")

        try:
            response = self._table.update_item(
                Key=self._key(owner_id, sort_key),
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(#pk)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code == "ConditionalCheckFailedException":
                raise NotFoundError(f"No item {sort_key} for this user") from exc
            raise _store_error("UpdateItem", exc) from exc
        except BotoCoreError as exc:
            raise _store_error("UpdateItem", exc) from exc
        return response.get("Attributes", {})

    def query(self, owner_id: str, sort_key_prefix: str) -> list[dict]:
        """Returns every item of owner_id whose sort key starts with the prefix, in table order."""
        condition = Key(PARTITION_KEY).eq(owner_id) & Key(SORT_KEY).begins_with(sort_key_prefix)
        kwargs = {"KeyConditionExpression": condition}
        items: list[dict] = []
        try:
            while True:
                response = self._table.query(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as exc:
            raise _store_error("Query", exc) from exc
        return items

    def delete(self, owner_id: str, sort_key: str) -> Optional[dict]:
        """Deletes the item. Returns the removed item, or None if nothing was there."""
        try:
            response = self._table.delete_item(
                Key=self._key(owner_id, sort_key),
                ReturnValues="ALL_OLD",
            )
        except (ClientError, BotoCoreError) as exc:
            raise _store_error("DeleteItem", exc) from exc
        return response.get("Attributes")
