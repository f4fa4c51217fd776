"""S3 sink for daily event collections."""
import logging
from datetime import date
from typing import List

import boto3
from botocore.exceptions import ClientError

from processor.errors import CacheNotFoundError, ConfigurationError
from processor.models import Event
from storage.file_cache import decode_events, encode_events

logger = logging.getLogger(__name__)


class S3EventPublisher:
    """Publishes each day's event collection as a dated S3 object."""

    def __init__(self, bucket: str, object_key: str, region: str = 'us-east-1'):
        """
        Initialize S3 client.

        Args:
            bucket: Destination bucket name
            object_key: Key suffix; objects are stored as <YYYY-MM-DD>_<object_key>
            region: AWS region (default: us-east-1)

        Raises:
            ConfigurationError: If bucket or object_key is empty
        """
        if not bucket or not object_key:
            raise ConfigurationError('Missing S3_BUCKET or S3_OBJECT_KEY')

        self.bucket = bucket
        self.object_key = object_key
        self.s3 = boto3.client('s3', region_name=region)
        logger.info(f"Initialized S3EventPublisher for bucket: {bucket}")

    def key_for(self, day: date) -> str:
        return f"{day.strftime('%Y-%m-%d')}_{self.object_key}"

    def publish(self, events: List[Event], day: date) -> str:
        """
        Upload the events for a day, replacing any earlier upload.

        Args:
            events: Events to upload
            day: Day the events were scraped for

        Returns:
            The object key written

        Raises:
            ClientError: If the upload fails
        """
        key = self.key_for(day)
        self.s3.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=encode_events(events).encode('utf-8'),
            ContentType='application/json'
        )
        logger.info(f"Uploaded {len(events)} events to s3://{self.bucket}/{key}")
        return key

    def fetch(self, day: date) -> List[Event]:
        """
        Download the events published for a day.

        Args:
            day: Day to fetch

        Returns:
            List of Event objects

        Raises:
            CacheNotFoundError: If nothing was published for that day
            DecodeError: If the object is not a valid event collection
            ClientError: For any other S3 failure
        """
        key = self.key_for(day)
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('NoSuchKey', '404'):
                raise CacheNotFoundError(
                    f"No events published at s3://{self.bucket}/{key}"
                ) from e
            logger.error(f"Error reading s3://{self.bucket}/{key}: {e}")
            raise

        return decode_events(response['Body'].read())
