"""
### Project Operation

Projection corresponds to the `$project` stage of an aggregation, or to the `projection` argument of `find()`.

Your documents have many fields, but you do not always need them all.
The `select` operation lets you list the fields that you want to have in the data you get from the API endpoint
(*include mode* only).

```javascript
$.get('/api/user?select=id,first_name,last_name')
```

#### The identifier
Documents are returned with an `id` field.
When you give a projection, `id` is only returned if you've asked for it:

```javascript
$.get('/api/user?select=name')     // -> [{name: 'John'}]
$.get('/api/user?select=id,name')  // -> [{id: '5f..', name: 'John'}]
```
"""

from .base import MongoQueryHandlerBase


class MongoProject(MongoQueryHandlerBase):
    """ MongoDB projection operator.

        Syntax in Python:

        * None, []: use default (include all)
        * [ a, b, c ] - include only the given fields

        Note that MongoDB always loads `_id`: there's no harm in it, because the repository needs it anyway.
        Whether it makes it into the output as `id` is decided by includes_id().
    """

    query_object_section_name = 'select'

    #: The name of the external identifier field
    ID_FIELD = 'id'
    #: The name of the internal key
    PK_FIELD = '_id'

    def __init__(self, refs=None):
        super(MongoProject, self).__init__(refs)

        # On input
        #: The list of fields to include, in order
        self.fields = None
        #: The list of fields that are quietly included: they are loaded, but were not asked for
        self.quietly_included = []

    def __copy__(self):
        obj = super(MongoProject, self).__copy__()
        obj.quietly_included = obj.quietly_included.copy()
        return obj

    def input(self, fields):
        super(MongoProject, self).input(fields)
        self.fields = _unique(self._input_list_of_names(fields))
        return self

    def merge(self, fields, quietly=False):
        """ Add more fields to the projection

            :param fields: Field names
            :param quietly: Whether to include them quietly.
                Quietly included fields do not change the outcome of includes_id().
        """
        fields = self._input_list_of_names(fields)
        target = self.quietly_included if quietly else self.fields
        target.extend(f for f in fields if f not in self)
        return self

    def __contains__(self, name):
        """ Test whether the field is included by this projection """
        if not self.fields:
            return True  # include all
        return name in self.fields or name in self.quietly_included

    @property
    def is_projected(self):
        """ Was there a projection at all? """
        return bool(self.fields)

    def includes_id(self):
        """ Should the external identifier be present in the output?

            Yes when there's no projection, or when the projection explicitly mentions it.
        """
        return not self.fields or self.ID_FIELD in self.fields

    def compile_statement(self):
        """ Compile an inclusion projection

            :return: {field: 1}, or None if all fields should be included
            :rtype: dict | None
        """
        if not self.fields:
            return None

        return {
            # `id` does not exist in the store: it's `_id`
            self.PK_FIELD if name == self.ID_FIELD else name: 1
            for name in self.fields + self.quietly_included
        }

    compile_statements = NotImplemented

    def get_final_input_value(self):
        return list(self.fields or ())


def _unique(names):
    """ Remove duplicates, preserve ordering """
    return list(dict.fromkeys(names))
