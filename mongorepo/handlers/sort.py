"""
### Sort Operation

Sorting corresponds to the `$sort` stage of an aggregation, or to `cursor.sort()`.

The sort operation lets the API user specify the sorting of the results,
which makes sense for API endpoints that return a list of documents.

#### Syntax

A single field name, optionally prefixed with `-` for descending order:

```javascript
$.get('/api/user?sort=-age')  // sort by age, descending
$.get('/api/user?sort=age')   // sort by age, ascending
```

Only one field can be sorted by.
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoSort(MongoQueryHandlerBase):
    """ MongoDB sorting

        * None, '': no sorting
        * 'field': {field: +1}
        * '-field': {field: -1}
        * dict({a: +1}): a sort spec that's already compiled, with one key; passed through
    """

    query_object_section_name = 'sort'

    def __init__(self, refs=None):
        super(MongoSort, self).__init__(refs)

        # On input
        #: dict of a sort spec: {key: +1|-1}; at most one key
        self.sort_spec = None

    def input(self, sort_token):
        super(MongoSort, self).input(sort_token)

        # Empty
        if not sort_token:
            self.sort_spec = {}
            return self

        # Dict: an already compiled sort spec
        if isinstance(sort_token, dict):
            if len(sort_token) > 1:
                raise InvalidQueryError('{} supports only one field'.format(self.query_object_section_name))
            if not all(d in {-1, +1} for d in sort_token.values()):
                raise InvalidQueryError('{} direction can be either +1 or -1'.format(self.query_object_section_name))
            self.sort_spec = dict(sort_token)
            return self

        # Validate
        if not isinstance(sort_token, str):
            raise InvalidQueryError('{name} must be a string; {type} provided.'
                                    .format(name=self.query_object_section_name, type=type(sort_token).__name__))

        # "-field" / "field"
        sort_token = sort_token.strip()
        descending = sort_token.startswith('-')
        field = sort_token[1:] if descending else sort_token

        # A lone '-' names no field
        self.sort_spec = {field: -1 if descending else +1} if field else {}
        return self

    def compile_statement(self):
        """ Compile a sort spec

            An empty dict means "do not sort": it must never reach cursor.sort() or a $sort stage,
            because MongoDB requires at least one key there.

            :rtype: dict
        """
        return dict(self.sort_spec or {})

    compile_statements = NotImplemented

    def get_final_input_value(self):
        for name, direction in (self.sort_spec or {}).items():
            return '-' + name if direction == -1 else name
        return ''
