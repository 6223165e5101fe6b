"""
### Slice Operation
Slicing corresponds to the `$skip` and `$limit` stages, or to `cursor.skip()` and `cursor.limit()`.

The Slice operation consists of two optional parts:

* `limit` would limit the number of documents returned by the API
* `skip` would shift the "window" a number of documents

Together, these two elements implement pagination.
API users normally don't give `skip` directly: they give `page` and `limit`, and the repository
computes `skip = (page - 1) * limit`.

Values: can be a number, or a `null`.
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoLimit(MongoQueryHandlerBase):
    """ MongoDB limits and offsets

        Handles two keys:
        * 'skip': None, or int: $skip
        * 'limit': None, or int: $limit
    """

    query_object_section_name = 'limit'

    def __init__(self, refs=None, max_items=None):
        """ Init a limit

        :param refs: Reference schema
        :param max_items: The maximum number of documents that can be loaded with this query.
            The user can never go any higher than that, and this value is forced onto every query.
        """
        super(MongoLimit, self).__init__(refs)

        # Config
        self.max_items = max_items
        assert self.max_items is None or self.max_items > 0

        # On input
        self.skip = None
        self.limit = None

    def input(self, skip=None, limit=None):
        # MongoQuery actually gives us a tuple (skip, limit)
        # Adapt.
        if isinstance(skip, tuple):
            skip, limit = skip

        # Super
        super(MongoLimit, self).input((skip, limit))

        # Validate
        if not isinstance(skip, (int, NoneType)) or isinstance(skip, bool):
            raise InvalidQueryError('Skip must be either an integer, or null')
        if not isinstance(limit, (int, NoneType)) or isinstance(limit, bool):
            raise InvalidQueryError('Limit must be either an integer, or null')

        # Clamp
        # skip=0 is the same as no skip; a non-positive limit is no limit
        skip = None if skip is None or skip <= 0 else skip
        limit = None if limit is None or limit <= 0 else limit

        # Max limit
        if self.max_items:
            limit = min(self.max_items, limit or self.max_items)

        # Done
        self.skip = skip
        self.limit = limit
        return self

    def is_input_empty(self):
        return self.skip is None and self.limit is None

    def compile_statements(self):
        """ Compile $skip and $limit stages """
        stages = []
        if self.skip:
            stages.append({'$skip': self.skip})
        if self.limit:
            stages.append({'$limit': self.limit})
        return stages

    compile_statement = NotImplemented

    def alter_cursor(self, cursor):
        """ Apply skip() and limit() to a cursor """
        if self.skip:
            cursor = cursor.skip(self.skip)
        if self.limit:
            cursor = cursor.limit(self.limit)
        return cursor

    def get_final_input_value(self):
        return dict(skip=self.skip, limit=self.limit)


NoneType = type(None)
