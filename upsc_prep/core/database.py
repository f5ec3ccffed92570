# upsc_prep/core/database.py
"""
Document store backed by MongoDB.

Values live at slash-separated tree paths (``users/{uid}/subjects/{id}``).
Each write stores one document whose ``_id`` is the path; reading a path
assembles the stored documents at and below it into a nested value, deeper
documents overriding the keys of shallower ones.
"""

import asyncio
import copy
import logging
import re
import time
import uuid
import weakref
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from .config import Config, config as default_config
from .exceptions import InvalidInputError, PersistenceError

logger = logging.getLogger(__name__)

def normalize_path(path: str) -> str:
    parts = [p for p in path.strip().split("/") if p]
    if not parts:
        raise InvalidInputError("Store path must not be empty")
    for part in parts:
        if part.startswith("$") or "." in part:
            raise InvalidInputError(f"Invalid path segment: {part!r}")
    return "/".join(parts)

def ancestor_paths(path: str) -> List[str]:
    parts = path.split("/")
    return ["/".join(parts[:i]) for i in range(1, len(parts))]

def subtree_filter(path: str) -> Dict[str, Any]:
    return {"_id": {"$regex": f"^{re.escape(path)}(/|$)"}}

def embedded_value(path: str, ancestor: Dict[str, Any]) -> Any:
    """Value stored for ``path`` inside an ancestor document, if any"""
    node = ancestor.get("value")
    for key in path[len(ancestor["_id"]):].strip("/").split("/"):
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node

def assemble_tree(path: str, documents: Iterable[Dict[str, Any]], base: Any = None) -> Any:
    """Merge stored documents at and below ``path`` over ``base``"""
    ordered = sorted(documents, key=lambda doc: doc["_id"].count("/"))
    if not ordered:
        return base

    root: Any = copy.deepcopy(base)
    for doc in ordered:
        relative = doc["_id"][len(path):].strip("/")
        value = doc.get("value")

        if not relative:
            root = value
            continue

        if not isinstance(root, dict):
            root = {}
        node = root
        keys = relative.split("/")
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[keys[-1]] = value

    return root

def generate_push_key() -> str:
    """Time-ordered unique key for pushed children"""
    return f"{int(time.time() * 1000):013d}{uuid.uuid4().hex[:8]}"


class DocumentStore:
    """Tree-path document store with fire-and-forget writes"""

    def __init__(self, config: Optional[Config] = None, client: Optional[AsyncIOMotorClient] = None):
        self.config = config or default_config
        self.client = client or AsyncIOMotorClient(
            self.config.MONGO_URI,
            serverSelectionTimeoutMS=self.config.MONGO_TIMEOUT_MS,
            maxPoolSize=self.config.MONGO_POOL_SIZE,
        )
        self.db = self.client[self.config.MONGO_DB_NAME]
        self.collection = self.db[self.config.STORE_COLLECTION]
        self._pending: set = set()
        # One lock per path while writes to it are in flight
        self._path_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    async def initialize(self):
        """Ping the server and create indexes"""
        try:
            await self.client.admin.command("ping")
            await self.collection.create_index("updated_at")
            logger.info("✅ MongoDB connection established")
        except PyMongoError as e:
            logger.error(f"❌ MongoDB connection failed: {e}")
            raise PersistenceError(f"MongoDB connection failure: {e}") from e

    # ==================== Reads ====================

    async def read(self, path: str) -> Any:
        path = normalize_path(path)
        try:
            cursor = self.collection.find({
                "$or": [subtree_filter(path), {"_id": {"$in": ancestor_paths(path)}}]
            })
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"❌ Read failed at {path}: {e}")
            raise PersistenceError(f"Read failed at {path}: {e}") from e

        return self._resolve(path, documents)

    @staticmethod
    def _resolve(path: str, documents: List[Dict[str, Any]]) -> Any:
        """Value at ``path``: deepest embedding ancestor overlaid by own documents"""
        own = [d for d in documents if d["_id"] == path or d["_id"].startswith(path + "/")]
        ancestors = [d for d in documents if d not in own]

        # The deepest ancestor replaced everything above it at its own path
        base = None
        if ancestors:
            deepest = max(ancestors, key=lambda doc: doc["_id"].count("/"))
            base = embedded_value(path, deepest)

        return assemble_tree(path, own, base)

    # ==================== Writes ====================

    async def write(self, path: str, value: Any):
        """Replace the full value at ``path``; writes to one path land in call order"""
        path = normalize_path(path)
        lock = self._path_locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._path_locks[path] = lock

        async with lock:
            try:
                await self.collection.delete_many({"_id": {"$regex": f"^{re.escape(path)}/"}})
                await self.collection.replace_one(
                    {"_id": path},
                    {"_id": path, "value": value, "updated_at": time.time()},
                    upsert=True,
                )
            except PyMongoError as e:
                logger.error(f"❌ Write failed at {path}: {e}")
                raise PersistenceError(f"Write failed at {path}: {e}") from e

    def write_nowait(self, path: str, value: Any) -> "asyncio.Task":
        """Schedule a write; the returned task may be awaited or ignored"""
        task = asyncio.get_running_loop().create_task(self.write(path, value))
        self._pending.add(task)
        task.add_done_callback(self._on_write_done)
        return task

    def _on_write_done(self, task: "asyncio.Task"):
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"⚠️ Background write failed: {error}")

    async def push(self, path: str, value: Any) -> str:
        """Store ``value`` under a generated child key and return the key"""
        key = generate_push_key()
        await self.write(f"{normalize_path(path)}/{key}", value)
        return key

    async def remove(self, path: str):
        path = normalize_path(path)
        try:
            await self.collection.delete_many(subtree_filter(path))
            for ancestor in ancestor_paths(path):
                field_path = ".".join(["value"] + path[len(ancestor):].strip("/").split("/"))
                await self.collection.update_one({"_id": ancestor}, {"$unset": {field_path: ""}})
        except PyMongoError as e:
            logger.error(f"❌ Remove failed at {path}: {e}")
            raise PersistenceError(f"Remove failed at {path}: {e}") from e

    async def flush(self):
        """Wait for scheduled background writes"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ==================== Subscriptions ====================

    async def subscribe(self, path: str) -> AsyncIterator[Any]:
        """Yield the current value at ``path`` and again after every change.

        Uses MongoDB change streams, which need a replica set deployment.
        """
        path = normalize_path(path)
        yield await self.read(path)

        pipeline = [{"$match": {"$or": [
            {"documentKey._id": {"$regex": f"^{re.escape(path)}(/|$)"}},
            {"documentKey._id": {"$in": ancestor_paths(path)}},
        ]}}]
        try:
            async with self.collection.watch(pipeline) as stream:
                async for _change in stream:
                    yield await self.read(path)
        except PyMongoError as e:
            logger.error(f"❌ Subscription to {path} failed: {e}")
            raise PersistenceError(f"Subscription to {path} failed: {e}") from e

    # ==================== Health ====================

    async def validate_connection(self) -> Dict[str, Any]:
        status = {"mongodb": False, "overall": False}
        try:
            await self.client.admin.command("ping")
            status["mongodb"] = True
        except PyMongoError as e:
            logger.error(f"❌ MongoDB validation failed: {e}")
        status["overall"] = status["mongodb"]
        return status

    def close(self):
        """Close database connections"""
        if self.client:
            self.client.close()
            logger.info("✅ Database connections closed")

# Singleton pattern for document store
_store = None

def get_store() -> DocumentStore:
    """Get document store instance (singleton)"""
    global _store
    if _store is None:
        _store = DocumentStore()
    return _store

def close_store():
    """Close document store instance"""
    global _store
    if _store:
        _store.close()
        _store = None
