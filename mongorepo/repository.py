"""
MongoRepo comes with a base repository that exposes the query language to the API user,
and implements the rest of CRUD for a collection.

```python
from mongorepo import BaseRepository, Ref

class ArticleRepository(BaseRepository):
    def __init__(self, db):
        super().__init__(db, 'articles', refs={
            'author': Ref('users', refs={
                'country': Ref('countries'),
            }),
            'tags': Ref('tags', is_many=True),
        })
```

Every document that leaves the repository has an `id` (a string) instead of the internal `_id`.
"""

import logging

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from typing import Union, Mapping, List, Optional

from .refs import RefsBag, EMPTY_REFS
from .query import MongoQuery
from .pagination import PaginatedQuery, PaginatedResponse
from .util import Reusable

logger = logging.getLogger(__name__)


class BaseRepository:
    """ Base repository: CRUD for a MongoDB collection

        * Read: find(), find_many(), find_one(), find_by_id(), count()
        * Create: create()
        * Update: update_one(), update_by_id(), upsert()
        * Delete: delete_one(), delete_by_id()

        This object is supposed to be initialized only once, and shared:
        nothing here changes after __init__(), so concurrent queries won't step on each other.

        Errors from the store (connectivity, duplicate keys, ...) are not handled here.
    """

    # The class to use for MongoQuery
    _MONGOQUERY_CLS = MongoQuery

    def __init__(self, db, collection_name: str, refs: Union[Mapping, RefsBag, None] = None, max_items: int = None):
        """ Init a repository

        :param db: Connected database
        :type db: motor.motor_asyncio.AsyncIOMotorDatabase
        :param collection_name: The collection to work with
        :param refs: Reference schema: {field name: Ref}. Fields that can be populated.
        :param max_items: The maximum number of documents a single read can return
        :raises InvalidRefError: the reference schema is malformed
        """
        self.db = db
        self.collection = db[collection_name]
        self.refs = RefsBag.for_refs(refs) if refs else EMPTY_REFS
        self.max_items = max_items
        self.reusable_mongoquery = Reusable(self._MONGOQUERY_CLS(self.refs, max_items=max_items))  # type: MongoQuery

    def _query_model(self, filter: Optional[dict] = None, **query_obj) -> MongoQuery:
        """ Make a MongoQuery """
        return self.reusable_mongoquery.from_filter(filter).query(**query_obj)

    # region Read

    async def find(self, query: PaginatedQuery) -> PaginatedResponse:
        """ Get a page of documents

            Two round trips: count, then load. They are not isolated from concurrent writes,
            so `totalDocs` may be slightly off from what `docs` has.

            :param query: The query. `where`, `select`, `populate` are optional.
            :raises InvalidQueryError: malformed `where`
        """
        # max_items caps the page size: the envelope and skip describe the page actually served
        limit = min(query.limit, self.max_items) if self.max_items else query.limit
        skip = (query.page - 1) * limit

        mq = self._query_model(where=query.where, sort=query.sort)
        filter = mq.compile_filter()
        sort = mq.handler_sort.compile_statement()

        total_docs = await self.count(filter)

        docs = await self.find_many(
            filter,
            skip=skip,
            limit=limit,
            sort=sort,
            select=query.select,
            populate=query.populate,
        )

        return PaginatedResponse.build(docs, total_docs, limit, query.page)

    async def find_many(self,
                        filter: Optional[dict] = None,
                        skip: int = None,
                        limit: int = None,
                        sort: Union[dict, str, None] = None,
                        select: List[str] = None,
                        populate: List[str] = None) -> List[dict]:
        """ Load documents

            :param filter: MongoDB filter
            :param skip: Skip that many documents
            :param limit: Load at most that many documents
            :param sort: Sort spec: {field: +1|-1}, or a sort token: '-field'
            :param select: Field names to load. The `id` is only returned if it's listed here.
            :param populate: Dotted reference paths to populate
        """
        mq = self._query_model(filter,
                               skip=skip, limit=limit, sort=sort,
                               select=select, populate=populate)

        if mq.result_is_pipeline():
            logger.debug('%s: aggregate %r', self.collection.name, mq.compile_pipeline())
        else:
            logger.debug('%s: find %r', self.collection.name, mq.compile_filter())

        docs = await mq.end(self.collection).to_list(length=None)
        return [mq.pluck_document(doc) for doc in docs]

    async def find_one(self, filter: dict, select: List[str] = None, populate: List[str] = None) -> Optional[dict]:
        """ Load one document, or None """
        if select or populate:
            docs = await self.find_many(filter, limit=1, select=select, populate=populate)
            return docs[0] if docs else None

        doc = await self.collection.find_one(filter)
        return self._to_json(doc) if doc is not None else None

    async def find_by_id(self, id: str, select: List[str] = None, populate: List[str] = None) -> Optional[dict]:
        """ Load a document by id

            An invalid id finds nothing; the store is not even asked.
        """
        pk = parse_id(id)
        if pk is None:
            return None

        docs = await self.find_many({'_id': pk}, limit=1, select=select, populate=populate)
        return docs[0] if docs else None

    async def count(self, filter: Optional[dict] = None) -> int:
        """ Count documents """
        return await self.collection.count_documents(filter or {})

    # endregion

    # region Write

    async def create(self, doc: dict) -> dict:
        """ Insert a document

            :return: The document, with its new `id`
        """
        doc = dict(doc)  # insert_one() would put an `_id` into it otherwise
        result = await self.collection.insert_one(doc)
        doc['_id'] = result.inserted_id
        return self._to_json(doc)

    async def update_one(self, filter: dict, update: dict) -> bool:
        """ Set some fields on the first matching document

            :return: Whether a document was modified
        """
        result = await self.collection.update_one(filter, {'$set': update})
        return result.modified_count > 0

    async def update_by_id(self, id: str, update: dict) -> bool:
        """ Set some fields on a document

            :return: Whether a document was modified. An invalid id modifies nothing.
        """
        pk = parse_id(id)
        if pk is None:
            return False
        return await self.update_one({'_id': pk}, update)

    async def upsert(self, filter: dict, update: dict) -> dict:
        """ Set some fields on the first matching document; create one if nothing matches

            :return: The document after the update
        """
        doc = await self.collection.find_one_and_update(
            filter,
            {'$set': update},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_json(doc)

    async def delete_one(self, filter: dict) -> bool:
        """ Delete the first matching document

            :return: Whether a document was deleted
        """
        result = await self.collection.delete_one(filter)
        return result.deleted_count > 0

    async def delete_by_id(self, id: str) -> bool:
        """ Delete a document

            :return: Whether a document was deleted. An invalid id deletes nothing.
        """
        pk = parse_id(id)
        if pk is None:
            return False
        return await self.delete_one({'_id': pk})

    # endregion

    def _to_json(self, doc: dict) -> dict:
        """ Replace `_id` with `id` """
        doc = dict(doc)
        pk = doc.pop('_id')
        doc['id'] = str(pk)
        return doc

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, self.collection.name)


def parse_id(id) -> Optional[ObjectId]:
    """ Convert an external id into an internal key; None if it's not a valid one """
    if isinstance(id, ObjectId):
        return id
    if not isinstance(id, str):
        return None
    try:
        return ObjectId(id)
    except InvalidId:
        return None
