"""
Paginated queries and responses.

An API endpoint that lists documents would take a `PaginatedQuery` from the query string,
and respond with a `PaginatedResponse`:

```python
query = PaginatedQuery.parse(**request.args)
response = await articles.find(query)
```

```javascript
{
    docs: [ ... ],
    totalDocs: 127,
    limit: 10,
    page: 2,
    totalPages: 13,
    hasNextPage: true,
    hasPrevPage: true,
}
```
"""

import json
import math

from typing import Union, Mapping, Iterable, Optional, List

from .exc import InvalidQueryError


class PaginatedQuery:
    """ A query for a page of documents

        * `where`: a where-expression (see MongoFilter), or None
        * `sort`: a sort token (see MongoSort), or None
        * `limit`: page size, 1..100; default: 10
        * `page`: page number, starting with 1; default: 1
        * `select`: list of field names, or None
        * `populate`: list of dotted reference paths, or None

        The constructor takes values that are already normalized; use parse() for raw request values.
    """

    __slots__ = ('where', 'sort', 'limit', 'page', 'select', 'populate')

    #: The default page size
    DEFAULT_LIMIT = 10
    #: The maximum page size
    MAX_LIMIT = 100

    def __init__(self,
                 where: Optional[dict] = None,
                 sort: Optional[str] = None,
                 limit: int = DEFAULT_LIMIT,
                 page: int = 1,
                 select: Optional[List[str]] = None,
                 populate: Optional[List[str]] = None):
        self.where = where or None  # empty where is no where
        self.sort = sort or None
        self.limit = _validate_positive_int('limit', limit, self.MAX_LIMIT)
        self.page = _validate_positive_int('page', page)
        self.select = list(select) if select else None
        self.populate = list(populate) if populate else None

    @classmethod
    def parse(cls, **params) -> 'PaginatedQuery':
        """ Parse raw request values

            Query string values are strings; JSON bodies give proper types. Both are fine:

            * `where`: an object, or a JSON string. Unparsable JSON is ignored.
            * `sort`: a string
            * `limit`, `page`: an integer, or a string with an integer
            * `select`, `populate`: a comma-separated string, or a list of such strings

            :raises InvalidQueryError: invalid values, or unknown keys
        """
        invalid_keys = set(params) - set(cls.__slots__)
        if invalid_keys:
            raise InvalidQueryError('Unknown query parameters: {}'.format(', '.join(sorted(invalid_keys))))

        sort = params.get('sort')
        if sort is not None and not isinstance(sort, str):
            raise InvalidQueryError('sort must be a string')

        return cls(
            where=parse_where_param(params.get('where')),
            sort=sort,
            limit=_coerce_int('limit', params.get('limit'), cls.DEFAULT_LIMIT),
            page=_coerce_int('page', params.get('page'), 1),
            select=parse_names_list('select', params.get('select')),
            populate=parse_names_list('populate', params.get('populate')),
        )

    @property
    def skip(self) -> int:
        """ The number of documents to skip to get to this page """
        return (self.page - 1) * self.limit

    def __eq__(self, other):
        if not isinstance(other, PaginatedQuery):
            return NotImplemented
        return all(getattr(self, k) == getattr(other, k) for k in self.__slots__)

    def __repr__(self):
        return '{}({})'.format(self.__class__.__name__,
                               ', '.join('{}={!r}'.format(k, getattr(self, k)) for k in self.__slots__))


class PaginatedResponse(dict):
    """ A page of documents

        This is a dict, ready to be serialized:

            {docs, totalDocs, limit, page, totalPages, hasNextPage, hasPrevPage}

        The last three are always computed from `totalDocs`, `limit` and `page`.
    """

    @classmethod
    def build(cls, docs: List[dict], total_docs: int, limit: int, page: int) -> 'PaginatedResponse':
        total_pages = math.ceil(total_docs / limit)
        return cls(
            docs=docs,
            totalDocs=total_docs,
            limit=limit,
            page=page,
            totalPages=total_pages,
            hasNextPage=page < total_pages,
            hasPrevPage=page > 1,
        )

    @property
    def docs(self) -> List[dict]:
        return self['docs']


def parse_where_param(where: Union[str, Mapping, None]) -> Optional[dict]:
    """ Parse the `where` value: an object, or an object serialized to JSON

        Anything that does not give a non-empty object yields `None`: no filtering.
    """
    if not where:
        return None

    if isinstance(where, Mapping):
        return dict(where) or None

    if isinstance(where, str):
        try:
            parsed = json.loads(where)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) and parsed else None

    return None


def parse_names_list(name: str, value: Union[str, Iterable[str], None]) -> Optional[List[str]]:
    """ Flatten a comma-separated string, or a list of them, into a list of names

        Example:
            'a,b' -> ['a', 'b']
            ['a,b', 'c'] -> ['a', 'b', 'c']
    """
    if not value:
        return None

    if isinstance(value, str):
        value = [value]
    elif not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise InvalidQueryError('{} must be a string, or a list of strings'.format(name))

    names = [n.strip()
             for v in value
             for n in v.split(',')]
    return [n for n in names if n] or None


def _coerce_int(name, value, default):
    """ Coerce a request value to int: query string values are strings """
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise InvalidQueryError('{} must be an integer'.format(name))
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidQueryError('{} must be an integer'.format(name))


def _validate_positive_int(name, value, maximum=None):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQueryError('{} must be an integer'.format(name))
    if value <= 0:
        raise InvalidQueryError('{} must be positive'.format(name))
    if maximum is not None and value > maximum:
        raise InvalidQueryError('{} must be at most {}'.format(name, maximum))
    return value
