"""DynamoDB-backed Store.

Items are plain dicts on the registry side; boto3's TypeSerializer and
TypeDeserializer convert them to and from DynamoDB attribute values.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from .errors import RecordError, StoreError
from .keys import KIND_ATTR, NAME_ATTR, TTL_ATTR
from .records import Item
from .store import Store

logger = logging.getLogger(__name__)

# BatchWriteItem accepts at most 25 put/delete requests per call
BATCH_WRITE_LIMIT = 25

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def new_client(region: Optional[str] = None, endpoint_url: Optional[str] = None):
    """Create a low-level DynamoDB client from the default credential chain."""
    return boto3.client("dynamodb", region_name=region, endpoint_url=endpoint_url)


def serialize_item(item: Item) -> Dict[str, Any]:
    return {k: _serializer.serialize(v) for k, v in item.items()}


def deserialize_item(raw: Dict[str, Any]) -> Item:
    return {k: _deserializer.deserialize(v) for k, v in raw.items()}


def _chunks(items: List[Item], size: int) -> Iterator[List[Item]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class DynamoDBStore(Store):
    """Store backed by a DynamoDB table with key schema (kind HASH, name RANGE)."""

    name = "dynamodb"

    def __init__(self, table_name: str, client=None,
                 region: Optional[str] = None, endpoint_url: Optional[str] = None):
        if not table_name:
            raise ValueError("table_name is required for the dynamodb store")
        self.table_name = table_name
        self.client = client if client is not None else new_client(region, endpoint_url)

    def _key(self, kind: str, name: str) -> Dict[str, Any]:
        return {KIND_ATTR: {"S": kind}, NAME_ATTR: {"S": name}}

    def get(self, kind: str, name: str, consistent: bool = True) -> Optional[Item]:
        logger.debug("GetItem %s %s/%s", self.table_name, kind, name)
        try:
            resp = self.client.get_item(
                TableName=self.table_name,
                Key=self._key(kind, name),
                ConsistentRead=consistent,
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"GetItem on {self.table_name} failed: {e}") from e
        raw = resp.get("Item")
        return deserialize_item(raw) if raw else None

    def batch_put(self, items: List[Item]) -> List[Item]:
        unprocessed: List[Item] = []
        for chunk in _chunks(items, BATCH_WRITE_LIMIT):
            try:
                requests = [{"PutRequest": {"Item": serialize_item(item)}} for item in chunk]
            except TypeError as e:
                # TypeSerializer rejects floats and other unsupported types
                raise RecordError(f"cannot serialize item: {e}") from e
            logger.debug("BatchWriteItem %s: %d items", self.table_name, len(chunk))
            try:
                resp = self.client.batch_write_item(
                    RequestItems={self.table_name: requests},
                )
            except (ClientError, BotoCoreError) as e:
                raise StoreError(f"BatchWriteItem on {self.table_name} failed: {e}") from e
            for request in resp.get("UnprocessedItems", {}).get(self.table_name, []):
                put = request.get("PutRequest")
                if put is not None:
                    unprocessed.append(deserialize_item(put["Item"]))
        return unprocessed

    def delete(self, kind: str, name: str) -> None:
        logger.debug("DeleteItem %s %s/%s", self.table_name, kind, name)
        try:
            self.client.delete_item(
                TableName=self.table_name,
                Key=self._key(kind, name),
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"DeleteItem on {self.table_name} failed: {e}") from e

    def query(self, kind: str, prefix: Optional[str] = None,
              consistent: bool = True) -> List[Item]:
        params: Dict[str, Any] = {
            "TableName": self.table_name,
            "ConsistentRead": consistent,
        }
        # "name" is a DynamoDB reserved word, hence the placeholders
        if prefix is None:
            params["KeyConditionExpression"] = "#kind = :kind"
            params["ExpressionAttributeNames"] = {"#kind": KIND_ATTR}
            params["ExpressionAttributeValues"] = {":kind": {"S": kind}}
        else:
            params["KeyConditionExpression"] = "#kind = :kind AND begins_with(#name, :prefix)"
            params["ExpressionAttributeNames"] = {"#kind": KIND_ATTR, "#name": NAME_ATTR}
            params["ExpressionAttributeValues"] = {
                ":kind": {"S": kind},
                ":prefix": {"S": prefix},
            }

        items: List[Item] = []
        while True:
            logger.debug("Query %s kind=%s prefix=%r", self.table_name, kind, prefix)
            try:
                resp = self.client.query(**params)
            except (ClientError, BotoCoreError) as e:
                raise StoreError(f"Query on {self.table_name} failed: {e}") from e
            items.extend(deserialize_item(raw) for raw in resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            params["ExclusiveStartKey"] = last_key

    def create_table(self, wait: bool = True) -> None:
        """Create the registry table and enable native TTL on the ``ttl`` attribute."""
        logger.info("Creating table %s", self.table_name)
        try:
            self.client.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {"AttributeName": KIND_ATTR, "KeyType": "HASH"},
                    {"AttributeName": NAME_ATTR, "KeyType": "RANGE"},
                ],
                AttributeDefinitions=[
                    {"AttributeName": KIND_ATTR, "AttributeType": "S"},
                    {"AttributeName": NAME_ATTR, "AttributeType": "S"},
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            if wait:
                self.client.get_waiter("table_exists").wait(TableName=self.table_name)
            self.client.update_time_to_live(
                TableName=self.table_name,
                TimeToLiveSpecification={"Enabled": True, "AttributeName": TTL_ATTR},
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"CreateTable {self.table_name} failed: {e}") from e
