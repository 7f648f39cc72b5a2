"""
Collection controller: CRUD operations over one async collection.

Primitive operations are thin calls into the collection, decorated by the
soft delete and timestamp policies according to the controller's flags.
Derived operations (by-id, find-one, create) are built only from the
primitives or from direct lookups by identifier.

Composition rules:
    - The visibility filter is merged first, so a caller query on the
      deletion field overrides it.
    - include_deleted is the only way to see soft-deleted documents. It is
      ignored when soft delete is disabled.
    - Creation defaults never overwrite caller-supplied timestamps.
    - updatedAt is advanced in the update payload, never in the filter.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator, Mapping, Sequence

from collection_controller.config.logging import get_logger
from collection_controller.crud import timestamps
from collection_controller.crud.index_name import FieldOrSpec, get_index_name, to_index_keys
from collection_controller.crud.soft_delete import (
    filter_deleted,
    is_deleted,
    mark_deleted,
    restore_fragment,
    visibility_filter,
)

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorCollection
    from pymongo.results import DeleteResult, UpdateResult

    from collection_controller.crud.factory import ControllerConfig

logger = get_logger(__name__)

Document = dict[str, Any]
Query = Mapping[str, Any]
Options = Mapping[str, Any]

# Key under which the store reports inserted identifiers
STORE_ID_FIELD = "_id"


class Controller:
    """
    CRUD operations bound to a collection and an immutable configuration.

    The operation surface is the same for every flag combination;
    include_deleted is inert without soft delete and create_one/create_many
    are plain inserts without timestamps.
    """

    def __init__(self, config: ControllerConfig):
        self._config = config
        self._collection = config.collection

    @property
    def config(self) -> ControllerConfig:
        """The bound configuration."""
        return self._config

    @property
    def collection(self) -> AsyncIOMotorCollection:
        """The underlying collection handle."""
        return self._collection

    @property
    def use_timestamps(self) -> bool:
        return self._config.use_timestamps

    @property
    def use_soft_delete(self) -> bool:
        return self._config.use_soft_delete

    # =========================================================================
    # Helpers
    # =========================================================================

    def _visible(self, query: Query | None, include_deleted: bool) -> Document:
        """Compose visibility filter and caller query, caller last."""
        return {
            **visibility_filter(
                self._config.use_soft_delete,
                include_deleted,
                self._config.deleted_at_field,
            ),
            **(query or {}),
        }

    def _touch(self, update: Any) -> Any:
        if not self._config.use_timestamps:
            return update
        return timestamps.touch_on_update(
            update, timestamps.utcnow(), self._config.updated_at_field
        )

    @staticmethod
    def _with_id(document: Mapping[str, Any], inserted_id: Any) -> Document:
        # The store always assigns under _id; id_field only drives lookups
        return {**document, STORE_ID_FIELD: inserted_id}

    @contextmanager
    def _trace(self, operation: str, **data: Any) -> Iterator[None]:
        """Log a store call when the controller runs in debug mode."""
        if not self._config.debug:
            yield
            return

        collection = getattr(self._collection, "name", None)
        logger.debug(operation, collection=collection, **data)
        try:
            yield
        except Exception:
            logger.debug(f"{operation} failed", collection=collection, exc_info=True)
            raise

    # =========================================================================
    # Read Operations
    # =========================================================================

    async def count_documents(
        self,
        query: Query | None = None,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> int:
        """Count documents matching the query."""
        flt = self._visible(query, include_deleted)
        with self._trace("count_documents", filter=flt):
            return await self._collection.count_documents(flt, **(options or {}))

    async def find(
        self,
        query: Query | None = None,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> list[Document]:
        """
        Find documents matching the query.

        Args:
            query: Filter document.
            options: Driver find options (sort, limit, skip, projection...).
            include_deleted: Include soft-deleted documents.

        Returns:
            All matching documents, in the store's order.
        """
        flt = self._visible(query, include_deleted)
        with self._trace("find", filter=flt, options=options):
            cursor = self._collection.find(flt, **(options or {}))
            return await cursor.to_list(length=None)

    async def distinct(
        self,
        key: str,
        query: Query | None = None,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> list[Any]:
        """Distinct values of key across matching documents."""
        flt = self._visible(query, include_deleted)
        with self._trace("distinct", key=key, filter=flt):
            return await self._collection.distinct(key, flt, **(options or {}))

    async def find_one(
        self,
        query: Query | None = None,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> Document | None:
        """First matching document, or None."""
        items = await self.find(
            query, {**(options or {}), "limit": 1}, include_deleted=include_deleted
        )
        return items[0] if items else None

    async def find_by_id(
        self,
        entity_id: Any,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> Document | None:
        """
        Find a document by identifier.

        The lookup goes to the store without the visibility filter; a
        soft-deleted result is discarded afterwards unless include_deleted.

        Returns:
            The document, or None if missing or soft-deleted.
        """
        flt = {self._config.id_field: entity_id}
        with self._trace("find_by_id", filter=flt):
            entity = await self._collection.find_one(flt, **(options or {}))

        if entity is None:
            return None
        if (
            self._config.use_soft_delete
            and not include_deleted
            and is_deleted(entity, self._config.deleted_at_field)
        ):
            return None
        return entity

    async def find_by_ids(
        self,
        entity_ids: Sequence[Any],
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> list[Document]:
        """
        Find documents by identifiers.

        Returns at most len(entity_ids) documents, possibly fewer than
        requested. An empty list of identifiers returns without a store call.
        """
        if not entity_ids:
            return []

        flt = {self._config.id_field: {"$in": list(entity_ids)}}
        with self._trace("find_by_ids", filter=flt):
            cursor = self._collection.find(
                flt, **{"limit": len(entity_ids), **(options or {})}
            )
            items = await cursor.to_list(length=None)

        if not self._config.use_soft_delete or include_deleted:
            return items
        return filter_deleted(items, self._config.deleted_at_field)

    # =========================================================================
    # Create Operations
    # =========================================================================

    async def insert_one(
        self,
        document: Mapping[str, Any],
        options: Options | None = None,
    ) -> Document:
        """Insert a document and return it with the assigned identifier."""
        # The driver writes _id into the dict it is given
        with self._trace("insert_one"):
            result = await self._collection.insert_one(dict(document), **(options or {}))
        return self._with_id(document, result.inserted_id)

    async def insert_many(
        self,
        documents: Sequence[Mapping[str, Any]],
        options: Options | None = None,
    ) -> list[Document]:
        """Insert documents and return them with their assigned identifiers."""
        with self._trace("insert_many", count=len(documents)):
            result = await self._collection.insert_many(
                [dict(doc) for doc in documents], **(options or {})
            )
        return [
            self._with_id(doc, inserted_id)
            for doc, inserted_id in zip(documents, result.inserted_ids)
        ]

    async def create_one(self, data: Mapping[str, Any]) -> Document:
        """Insert one document, filling missing timestamps when enabled."""
        if self._config.use_timestamps:
            data = timestamps.defaults_for_create(
                data,
                timestamps.utcnow(),
                self._config.created_at_field,
                self._config.updated_at_field,
            )
        return await self.insert_one(data)

    async def create_many(self, items: Sequence[Mapping[str, Any]]) -> list[Document]:
        """Insert documents, filling missing timestamps with a shared now."""
        if self._config.use_timestamps:
            items = timestamps.defaults_for_create_many(
                items,
                timestamps.utcnow(),
                self._config.created_at_field,
                self._config.updated_at_field,
            )
        return await self.insert_many(items)

    # =========================================================================
    # Update Operations
    # =========================================================================

    async def update_one(
        self,
        query: Query,
        update: Any,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> UpdateResult:
        """Update the first matching document."""
        flt = self._visible(query, include_deleted)
        payload = self._touch(update)
        with self._trace("update_one", filter=flt, update=payload):
            return await self._collection.update_one(flt, payload, **(options or {}))

    async def update_many(
        self,
        query: Query,
        update: Any,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> UpdateResult:
        """Update every matching document."""
        flt = self._visible(query, include_deleted)
        payload = self._touch(update)
        with self._trace("update_many", filter=flt, update=payload):
            return await self._collection.update_many(flt, payload, **(options or {}))

    async def update_by_id(
        self,
        entity_id: Any,
        update: Any,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> UpdateResult:
        return await self.update_one(
            {self._config.id_field: entity_id},
            update,
            options,
            include_deleted=include_deleted,
        )

    # =========================================================================
    # Delete Operations
    # =========================================================================

    async def delete_one(
        self,
        query: Query,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> UpdateResult | DeleteResult:
        """
        Delete the first matching document.

        With soft delete the document gets a deletion timestamp instead, and
        include_deleted decides whether already deleted documents can match.
        """
        if self._config.use_soft_delete:
            flt = self._visible(query, include_deleted)
            payload = mark_deleted(self._config.deleted_at_field, timestamps.utcnow())
            with self._trace("soft_delete_one", filter=flt):
                return await self._collection.update_one(flt, payload, **(options or {}))

        with self._trace("delete_one", filter=query):
            return await self._collection.delete_one(query, **(options or {}))

    async def delete_many(
        self,
        query: Query,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> UpdateResult | DeleteResult:
        """Delete every matching document. See delete_one for soft delete."""
        if self._config.use_soft_delete:
            flt = self._visible(query, include_deleted)
            payload = mark_deleted(self._config.deleted_at_field, timestamps.utcnow())
            with self._trace("soft_delete_many", filter=flt):
                return await self._collection.update_many(flt, payload, **(options or {}))

        with self._trace("delete_many", filter=query):
            return await self._collection.delete_many(query, **(options or {}))

    async def delete_by_id(
        self,
        entity_id: Any,
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> UpdateResult | DeleteResult:
        return await self.delete_one(
            {self._config.id_field: entity_id},
            options,
            include_deleted=include_deleted,
        )

    async def delete_by_ids(
        self,
        entity_ids: Sequence[Any],
        options: Options | None = None,
        *,
        include_deleted: bool = False,
    ) -> UpdateResult | DeleteResult:
        return await self.delete_many(
            {self._config.id_field: {"$in": list(entity_ids)}},
            options,
            include_deleted=include_deleted,
        )

    # =========================================================================
    # Restore Operations
    # =========================================================================

    def _restore_args(self, query: Query) -> tuple[Document, Any]:
        if not self._config.use_soft_delete:
            raise RuntimeError("Restore requires a controller with soft delete enabled")
        flt = {self._config.deleted_at_field: {"$exists": True}, **query}
        return flt, self._touch(restore_fragment(self._config.deleted_at_field))

    async def restore_one(self, query: Query, options: Options | None = None) -> UpdateResult:
        """Remove the deletion marker from the first matching deleted document."""
        flt, payload = self._restore_args(query)
        with self._trace("restore_one", filter=flt):
            return await self._collection.update_one(flt, payload, **(options or {}))

    async def restore_many(self, query: Query, options: Options | None = None) -> UpdateResult:
        """Remove the deletion marker from every matching deleted document."""
        flt, payload = self._restore_args(query)
        with self._trace("restore_many", filter=flt):
            return await self._collection.update_many(flt, payload, **(options or {}))

    async def restore_by_id(self, entity_id: Any, options: Options | None = None) -> UpdateResult:
        return await self.restore_one({self._config.id_field: entity_id}, options)

    # =========================================================================
    # Index Operations
    # =========================================================================

    async def create_index(
        self,
        field_or_spec: FieldOrSpec,
        options: Options | None = None,
    ) -> str:
        """
        Create an index, named canonically unless options carry a name.

        Returns:
            The index name reported by the store.
        """
        opts = dict(options or {})
        opts["name"] = opts.get("name") or get_index_name(field_or_spec)
        with self._trace("create_index", name=opts["name"]):
            return await self._collection.create_index(to_index_keys(field_or_spec), **opts)

    async def drop_index(
        self,
        name_or_spec: FieldOrSpec,
        options: Options | None = None,
    ) -> None:
        """Drop an index given its literal name or its key specification."""
        name = get_index_name(name_or_spec)
        with self._trace("drop_index", name=name):
            await self._collection.drop_index(name, **(options or {}))
