"""
### Filter Operation
Filtering corresponds to the `$match` stage of an aggregation, or to the filter of a `find()`.

MongoRepo-powered API endpoints would typically return the list of *all* documents, and leave it up to
the API user to filter them the way they like.

Example of filtering:

```javascript
$.get('/api/user?where=' + JSON.stringify({
    // all conditions are AND-ed together
    age: { greater_than_equal: 18, less_than_equal: 25 },  // age 18..25
    sex: 'female',  // sex = "female"
}))
```

#### Field Operators

* `{ a: 1 }` - equality check: `field = value`. This is a shortcut for the `equals` operator.
* `{ a: { equals: 1 } }` - equality check: `$eq`
* `{ a: { not_equals: 1 } }` - inequality check: `$ne`
* `{ a: { greater_than: 1 } }` - greater than: `$gt`
* `{ a: { greater_than_equal: 1 } }` - greater or equal than: `$gte`
* `{ a: { less_than: 1 } }` - less than: `$lt`
* `{ a: { less_than_equal: 1 } }` - less or equal than: `$lte`
* `{ a: { like: 'abc' } }` - case-insensitive pattern match: `$regex` with the `i` option
* `{ a: { contains: 'abc' } }` - same as `like`
* `{ a: { in: [...] } }` - any of: `$in`
* `{ a: { not_in: [...] } }` - none of: `$nin`
* `{ a: { exists: true } }` - field is present: `$exists`

Several operators on the same field are merged: `{ age: { greater_than: 18, less_than: 25 } }`.
Unknown operators are ignored, as long as at least one known operator is present.

#### Boolean Operators

* `{ or: [ {..criteria..}, .. ] }`  - any is true
* `{ and: [ {..criteria..}, .. ] }` - all are true

#### Nested documents

A field mapped to an object that contains no known operators is a nested where-expression:

```javascript
{ address: { zip: '100098' } }  // -> { address: { zip: { $eq: '100098' } } }
```
"""

from .base import MongoQueryHandlerBase
from ..exc import InvalidQueryError


class MongoFilter(MongoQueryHandlerBase):
    """ Where-expression compiler

        Converts a portable where-expression into a MongoDB filter document.

        * None, {}: no filtering (match everything)
        * { field: value }: equality
        * { field: { operator: value, ... } }: operators
        * { field: { nested: ... } }: a nested where-expression
        * { and: [ ... ] }, { or: [ ... ] }: boolean operators
    """

    query_object_section_name = 'where'

    def __init__(self, refs=None, operators=None):
        """ Init a filter expression

        :param refs: Reference schema
        :param operators: A dict of additional operators to recognize.
            A mapping: {'operator': callable(value) -> dict}. See class body for examples.
        :type operators: dict[str, callable]
        """
        super(MongoFilter, self).__init__(refs)

        # Extra configuration
        self._extra_ops = operators or {}

        # On input
        #: The compiled MongoDB filter
        self.expression = None

    # Operators
    # operator => lambda value: operator object
    _operators = {
        'equals':             lambda val: {'$eq': val},
        'not_equals':         lambda val: {'$ne': val},
        'greater_than':       lambda val: {'$gt': val},
        'greater_than_equal': lambda val: {'$gte': val},
        'less_than':          lambda val: {'$lt': val},
        'less_than_equal':    lambda val: {'$lte': val},
        # Both are case-insensitive. `like` is not an SQL LIKE: it's a regular expression
        'like':               lambda val: {'$regex': str(val), '$options': 'i'},
        'contains':           lambda val: {'$regex': str(val), '$options': 'i'},
        'in':                 lambda val: {'$in': val},
        'not_in':             lambda val: {'$nin': val},
        'exists':             lambda val: {'$exists': val},
    }

    # List of boolean operators, handled by a separate method
    _boolean_operators = {
        'and': '$and',
        'or': '$or',
    }

    @property
    def operator_names(self):
        """ The operator vocabulary: every name that makes an object an operator object """
        return self._operators.keys() | self._extra_ops.keys()

    def input(self, criteria):
        # Process input
        super(MongoFilter, self).input(criteria)
        self.expression = self._compile_criteria(criteria)
        return self

    def _compile_criteria(self, criteria):
        """ Compile a where-expression into a MongoDB filter

        :type criteria: dict | None
        :rtype: dict
        """
        # None
        if not criteria:
            return {}

        # Validation base
        if not isinstance(criteria, dict):
            raise InvalidQueryError('Filter criteria must be one of: null, object')

        result = {}
        for key, value in criteria.items():
            # Boolean expressions? {and: [...]}
            # Only a list makes it a boolean expression; anything else is a field named 'and'
            if key in self._boolean_operators and isinstance(value, (list, tuple)):
                result[self._boolean_operators[key]] = [self._compile_criteria(c) for c in value]
            # Operator object, or a nested where-expression
            elif isinstance(value, dict):
                if self._is_operator_object(value):
                    result[key] = self._compile_operators(value)
                else:
                    result[key] = self._compile_criteria(value)
            # Scalar: equality
            else:
                result[key] = self._lookup_operator('equals')(value)

        return result

    def _is_operator_object(self, value):
        """ Is `value` an operator object? At least one key has to be a known operator. """
        return not value.keys().isdisjoint(self.operator_names)

    def _compile_operators(self, value):
        """ Merge all known operators into a single operator object. Unknown ones are dropped. """
        merged = {}
        for operator, operand in value.items():
            try:
                operator_lambda = self._lookup_operator(operator)
            except KeyError:
                continue
            merged.update(operator_lambda(operand))
        return merged

    def _lookup_operator(self, operator):
        """ Lookup an operator in `self`, or extra operators

        :raises: KeyError
        """
        return self._operators.get(operator) or self._extra_ops[operator]

    def compile_statement(self):
        """ Create a MongoDB filter

        :rtype: dict
        """
        return self.expression or {}

    compile_statements = NotImplemented
