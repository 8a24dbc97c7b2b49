from __future__ import annotations

from typing import Optional
from urllib.parse import quote, urlparse

from minio import Minio
from config import settings

_client: Optional[Minio] = None

def client() -> Minio:
    global _client
    if _client is None:
        u = urlparse(settings.s3_endpoint)
        host = u.netloc or u.path  # supports "http://localhost:9000" or "localhost:9000"
        secure = (u.scheme == "https") if u.scheme else settings.s3_use_ssl
        _client = Minio(
            host,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            secure=secure,
            region=settings.s3_region,
        )
    return _client

def bucket_ready(bucket: Optional[str] = None) -> bool:
    return client().bucket_exists(bucket or settings.s3_bucket)

def build_public_url(bucket: Optional[str], key: str) -> str:
    # Videos remember the bucket they were uploaded to; older rows may not
    base = settings.s3_public_endpoint.rstrip("/")
    b = bucket or settings.s3_bucket
    return f"{base}/{b}/{quote(key.lstrip('/'))}"
