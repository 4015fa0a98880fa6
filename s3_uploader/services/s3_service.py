"""S3 service for managing AWS S3 operations."""

from typing import IO, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
from mypy_boto3_s3 import S3Client

from s3_uploader.services.errors import TransientUploadError


def create_s3_client(profile: str | None = None, region: str = "ap-northeast-2") -> S3Client:
    """Create an S3 client.

    Args:
        profile: AWS profile name, or None to use the default credential chain
            (AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY from the environment)
        region: AWS region (default: ap-northeast-2)

    Returns:
        Configured S3 client
    """
    session = boto3.Session(profile_name=profile, region_name=region)
    client: S3Client = session.client("s3")
    return client


def put_object(
    client: S3Client,
    bucket: str,
    key: str,
    body: bytes | IO[bytes],
    content_type: str,
    cache_control: str | None = None,
    metadata: dict[str, str] | None = None,
    content_length: int | None = None,
) -> None:
    """Upload an object to S3.

    Args:
        client: S3 client
        bucket: S3 bucket name
        key: S3 object key
        body: Object content, either bytes or a readable binary stream
        content_type: MIME type stored with the object
        cache_control: Optional Cache-Control directive
        metadata: Optional user metadata (x-amz-meta-*)
        content_length: Byte length of a streamed body

    Raises:
        TransientUploadError: If S3 rejects the request or the transport fails
    """
    params: dict[str, Any] = {
        "Bucket": bucket,
        "Key": key,
        "Body": body,
        "ContentType": content_type,
    }
    if cache_control:
        params["CacheControl"] = cache_control
    if metadata:
        params["Metadata"] = metadata
    if content_length is not None:
        params["ContentLength"] = content_length

    try:
        client.put_object(**params)
    except (ClientError, BotoCoreError) as e:
        raise TransientUploadError(key, "put", e) from e


def delete_object(client: S3Client, bucket: str, key: str) -> None:
    """Delete an object from S3.

    Raises:
        TransientUploadError: If S3 rejects the request or the transport fails
    """
    try:
        client.delete_object(Bucket=bucket, Key=key)
    except (ClientError, BotoCoreError) as e:
        raise TransientUploadError(key, "delete", e) from e


def validate_bucket_access(client: S3Client, bucket: str) -> dict[str, Any]:
    """Validate that we can access the specified S3 bucket.

    Args:
        client: S3 client
        bucket: S3 bucket name

    Returns:
        Dictionary with validation result
    """
    try:
        client.head_bucket(Bucket=bucket)
        return {
            "success": True,
            "bucket": bucket,
            "error": None,
        }
    except ClientError as e:
        error_code = e.response["Error"]["Code"]
        if error_code == "404":
            error_msg = f"Bucket '{bucket}' does not exist"
        elif error_code == "403":
            error_msg = f"Access denied to bucket '{bucket}'"
        else:
            error_msg = str(e)
        return {
            "success": False,
            "bucket": bucket,
            "error": error_msg,
        }
    except NoCredentialsError:
        return {
            "success": False,
            "bucket": bucket,
            "error": "AWS credentials not found",
        }
    except BotoCoreError as e:
        return {
            "success": False,
            "bucket": bucket,
            "error": str(e),
        }
