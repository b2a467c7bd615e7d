"""DynamoDB-backed key-value store for the catalog cache."""
import logging
from decimal import Decimal
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class DynamoDBKeyValueStore(KeyValueStore):
    """
    Key-value store on a DynamoDB table with a string hash key "cache_key".

    Items hold either a binary "payload" or a numeric "timestamp"
    attribute. A single item is limited to 400 KB by DynamoDB.
    """

    KEY_ATTRIBUTE = 'cache_key'
    PAYLOAD_ATTRIBUTE = 'payload'
    TIMESTAMP_ATTRIBUTE = 'timestamp'

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBKeyValueStore for table: {table_name}")

    def get_bytes(self, key: str) -> Optional[bytes]:
        item = self._get_item(key)
        if item is None or self.PAYLOAD_ATTRIBUTE not in item:
            return None

        payload = item[self.PAYLOAD_ATTRIBUTE]
        # boto3 wraps binary attributes in boto3.dynamodb.types.Binary
        return bytes(getattr(payload, 'value', payload))

    def set_bytes(self, key: str, value: bytes) -> None:
        self._put_item({
            self.KEY_ATTRIBUTE: key,
            self.PAYLOAD_ATTRIBUTE: value
        })

    def get_timestamp(self, key: str) -> Optional[float]:
        item = self._get_item(self._timestamp_key(key))
        if item is None or self.TIMESTAMP_ATTRIBUTE not in item:
            return None
        return float(item[self.TIMESTAMP_ATTRIBUTE])

    def set_timestamp(self, key: str, value: float) -> None:
        self._put_item({
            self.KEY_ATTRIBUTE: self._timestamp_key(key),
            self.TIMESTAMP_ATTRIBUTE: Decimal(str(value))
        })

    def delete(self, key: str) -> None:
        try:
            with self.table.batch_writer() as writer:
                writer.delete_item(Key={self.KEY_ATTRIBUTE: key})
                writer.delete_item(Key={self.KEY_ATTRIBUTE: self._timestamp_key(key)})
        except ClientError as e:
            logger.error(f"Error deleting key {key} from DynamoDB: {e}")
            raise

    def _get_item(self, key: str) -> Optional[dict]:
        try:
            response = self.table.get_item(Key={self.KEY_ATTRIBUTE: key})
        except ClientError as e:
            logger.error(f"Error reading key {key} from DynamoDB: {e}")
            raise
        return response.get('Item')

    def _put_item(self, item: dict) -> None:
        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            logger.error(f"Error writing key {item[self.KEY_ATTRIBUTE]} to DynamoDB: {e}")
            raise

    def _timestamp_key(self, key: str) -> str:
        return f"{key}#timestamp"
