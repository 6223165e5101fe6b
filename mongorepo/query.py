from copy import copy

from .refs import RefsBag, EMPTY_REFS
from . import handlers
from .exc import InvalidQueryError


class MongoQuery(object):
    """ Portable queries, compiled for MongoDB

        Takes a Query Object, and produces either a `find()` cursor, or an `aggregate()` cursor:

            mq = MongoQuery(refs).query(where={'age': {'greater_than': 18}}, sort='-age', limit=10)
            docs = await mq.end(collection).to_list(length=None)
            docs = [mq.pluck_document(doc) for doc in docs]

        Aggregation is only used when references have to be populated: that's the only thing
        a plain find() can't do.
    """

    def __init__(self, refs=None, max_items=None):
        """ Init a query

        :param refs: Reference schema of the collection
        :type refs: RefsBag | dict | None
        :param max_items: The maximum number of documents one query can load. See MongoLimit
        """
        self._refs = RefsBag.for_refs(refs) if refs else EMPTY_REFS
        self._max_items = max_items

        #: A MongoDB filter to start with. See from_filter()
        self._filter = None

        # Get ready: Query object handlers
        self._init_query_object_handlers()

        # NOTE: keep in mind that this object is copy()ed in order to make it reusable.
        # Every property that can't be safely reused has to be reset inside the __copy__() method.

    def __copy__(self):
        """ MongoQuery can be reused: wrap it with Reusable() which performs the automatic copy()

            It makes sense to have a reusable MongoQuery because the reference schema and the settings
            stay the same, query after query. Handlers, however, are single-use, so they're copied.
        """
        cls = self.__class__
        result = cls.__new__(cls)
        result.__dict__.update(self.__dict__)

        # Copy Query Object handlers
        for name in self.HANDLER_ATTR_NAMES:
            setattr(result, name, copy(getattr(result, name)))

        # Re-initialize properties that can't be copied
        result._filter = None

        return result

    def from_filter(self, filter):
        """ Specify a MongoDB filter to start with.

        It will be AND-ed with the `where` expression, if any.

        :param filter: MongoDB filter document, already compiled
        :type filter: dict | None
        """
        self._filter = filter or None
        return self

    def query(self, **query_object):
        """ Build a query from a Query Object

        :param where: Filter criteria: a where-expression
        :param sort: Sort token
        :param select: List of field names
        :param populate: List of dotted reference paths
        :param skip: Skip documents
        :param limit: Limit documents
        :raises InvalidQueryError: unknown Query Object operations provided (extra keys)
        :raises InvalidQueryError: syntax error for any of the Query Object sections
        :rtype: MongoQuery
        """
        # (skip, limit) hack
        # MongoLimit is the only handler that receives two arguments instead of one.
        if 'skip' in query_object or 'limit' in query_object:
            query_object['limit'] = (query_object.pop('skip', None),
                                     query_object.pop('limit', None))

        # Check if Query Object keys are all right
        invalid_keys = set(query_object.keys()) - self.HANDLER_NAMES
        if invalid_keys:
            raise InvalidQueryError(u'Unknown Query Object operations: {}'.format(', '.join(sorted(invalid_keys))))

        # Bind every handler with ourselves
        for handler_name, handler in self._handlers():
            handler.with_mongoquery(self)

        # Process every field with its method
        # Every handler should be invoked because they may have defaults even when no input was provided
        for handler_name, handler in self._handlers():
            handler.input(query_object.get(handler_name, None))

        # Populated fields have to survive the projection
        if self.handler_join.heads:
            self.handler_project.merge(self.handler_join.heads, quietly=True)

        # Done
        return self

    def result_is_pipeline(self):
        """ Test whether the query has to be run as an aggregation pipeline

            This is only the case when there are references to populate.

            :rtype: bool
        """
        return not self.handler_join.is_input_empty()

    def compile_filter(self):
        """ Get the MongoDB filter: from_filter() AND-ed with the `where` expression

            :rtype: dict
        """
        where = self.handler_filter.compile_statement()
        if self._filter and where:
            return {'$and': [self._filter, where]}
        return self._filter or where

    def compile_pipeline(self):
        """ Compile an aggregation pipeline

            Stages: $match, $sort, $skip, $limit, $lookup (+ $unwind), $project.
            Lookups go after the slicing: no point in populating documents that are going to be thrown away.

            :rtype: list[dict]
        """
        pipeline = [{'$match': self.compile_filter()}]

        sort = self.handler_sort.compile_statement()
        if sort:
            pipeline.append({'$sort': sort})

        pipeline.extend(self.handler_limit.compile_statements())
        pipeline.extend(self.handler_join.compile_statements())

        projection = self.handler_project.compile_statement()
        if projection:
            pipeline.append({'$project': projection})

        return pipeline

    def end(self, collection):
        """ Get the resulting cursor

        :param collection: The collection to query
        :type collection: motor.motor_asyncio.AsyncIOMotorCollection
        :rtype: motor.motor_asyncio.AsyncIOMotorCursor | motor.motor_asyncio.AsyncIOMotorCommandCursor
        """
        if self.result_is_pipeline():
            return collection.aggregate(self.compile_pipeline())

        projection = self.handler_project.compile_statement()
        cursor = collection.find(self.compile_filter(), projection)

        sort = self.handler_sort.compile_statement()
        if sort:
            cursor = cursor.sort(list(sort.items()))

        return self.handler_limit.alter_cursor(cursor)

    def pluck_document(self, document):
        """ Prepare a document loaded from the store for the outside world

            The internal `_id` is replaced with the external `id`, unless the projection has excluded it.

            :param document: dict loaded from MongoDB
            :rtype: dict
        """
        doc = dict(document)
        pk = doc.pop(self.handler_project.PK_FIELD, None)
        if self.handler_project.includes_id():
            doc[self.handler_project.ID_FIELD] = str(pk) if pk is not None else None
        return doc

    def get_projection_tree(self):
        """ Get a projection-like dict that maps every included field to 1, and every populated reference
            to a nested dict.

            This is mainly useful for debugging.
            :rtype: dict
        """
        ret = dict.fromkeys(self.handler_project.get_final_input_value(), 1)
        ret.update(self.handler_join.get_projection_tree())
        return ret

    def __repr__(self):
        return 'MongoQuery({!r})'.format(self._refs)

    # region Query Object handlers

    # This section initializes every Query Object handler, one per method.
    # Doing it this way enables you to override the way they are initialized, and use a custom query class with
    # custom settings.

    _QO_HANDLER_SELECT = handlers.MongoProject
    _QO_HANDLER_SORT = handlers.MongoSort
    _QO_HANDLER_POPULATE = handlers.MongoJoin
    _QO_HANDLER_WHERE = handlers.MongoFilter
    _QO_HANDLER_LIMIT = handlers.MongoLimit

    HANDLER_NAMES = frozenset(('select',
                               'sort',
                               'populate',
                               'where',
                               'limit'))
    HANDLER_ATTR_NAMES = frozenset(('handler_project',
                                    'handler_sort',
                                    'handler_join',
                                    'handler_filter',
                                    'handler_limit'))

    def _handlers(self):
        """ Get the list of all (handler_name, handler) """
        return (
            ('where', self.handler_filter),
            ('sort', self.handler_sort),
            ('limit', self.handler_limit),
            ('populate', self.handler_join),
            ('select', self.handler_project),
        )

    # for IDE completion
    handler_project = None  # type: mongorepo.handlers.MongoProject
    handler_sort = None  # type: mongorepo.handlers.MongoSort
    handler_join = None  # type: mongorepo.handlers.MongoJoin
    handler_filter = None  # type: mongorepo.handlers.MongoFilter
    handler_limit = None  # type: mongorepo.handlers.MongoLimit

    def _init_query_object_handlers(self):
        """ Initialize every Query Object handler """
        self.handler_project = self._QO_HANDLER_SELECT(self._refs)
        self.handler_sort = self._QO_HANDLER_SORT(self._refs)
        self.handler_join = self._QO_HANDLER_POPULATE(self._refs)
        self.handler_filter = self._QO_HANDLER_WHERE(self._refs)
        self.handler_limit = self._QO_HANDLER_LIMIT(self._refs, max_items=self._max_items)

    # endregion
