"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from engage.config import get_settings
from engage.feed import ChangeFeed, InMemoryChangeFeed, RedisChangeFeed
from engage.kv import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from engage.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from engage.store import DocumentStore, InMemoryDocumentStore, SqlDocumentStore

_change_feed: ChangeFeed | None = None
_document_store: DocumentStore | None = None
_kv_store: KeyValueStore | None = None
_storage_client: StorageClient | None = None


def get_change_feed() -> ChangeFeed:
    global _change_feed
    if _change_feed:
        return _change_feed

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.redis_url:
        _change_feed = InMemoryChangeFeed()
    else:
        _change_feed = RedisChangeFeed(
            url=settings.redis_url,
            channel_prefix=settings.redis_channel_prefix,
        )
    return _change_feed


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so state persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _document_store = InMemoryDocumentStore(
            feed=get_change_feed(), max_attempts=settings.transaction_max_attempts
        )
    else:
        _document_store = SqlDocumentStore(
            settings.database_url,
            feed=get_change_feed(),
            max_attempts=settings.transaction_max_attempts,
        )
    return _document_store


def get_kv_store() -> KeyValueStore:
    """
    Return a singleton key-value store for live game rooms.
    """
    global _kv_store
    if _kv_store:
        return _kv_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.redis_url:
        _kv_store = InMemoryKeyValueStore(feed=get_change_feed())
    else:
        _kv_store = RedisKeyValueStore(
            url=settings.redis_url,
            key_prefix=f"{settings.redis_channel_prefix}kv:",
            feed=get_change_feed(),
        )
    return _kv_store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.s3_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.storage_public_base_url,
        )
    return _storage_client
