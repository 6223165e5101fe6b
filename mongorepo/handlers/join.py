"""
### Populate Operation
Populating corresponds to the `$lookup` stage of an aggregation pipeline.

Documents reference each other by storing an `_id` of a document from another collection.
Whenever you need the referenced document itself, you'll have to explicitly request it.

The Populate operation lets you load those referenced documents and embed them into the result.
It only works with fields declared as references by the repository.

#### Syntax

A list of reference names:

```javascript
$.get('/api/article?populate=author,tags')
```

Dotted paths go deeper: a referenced document can have its own references populated as well.

```javascript
$.get('/api/article?populate=author.country')
```

To-one references become a single embedded document (or disappear when the referenced document is missing);
to-many references become a list of documents.

Unknown references are ignored.
"""

import logging

from .base import MongoQueryHandlerBase

logger = logging.getLogger(__name__)


class MongoJoin(MongoQueryHandlerBase):
    """ MongoRepo handler for populating referenced documents.

        Supports the following arguments:

        - List of dotted reference paths: ['author', 'author.country', 'tags']

        Produces a list of aggregation stages: one `$lookup` per top-level reference,
        with nested references resolved by a sub-pipeline inside that `$lookup`,
        and an `$unwind` after every to-one reference.
    """

    query_object_section_name = 'populate'

    #: The field in the target collection that references point to
    FOREIGN_FIELD = '_id'

    def __init__(self, refs=None):
        super(MongoJoin, self).__init__(refs)

        # On input
        #: list of dotted paths
        self.paths = None
        #: dict {head: [remainders]}, in the order of appearance
        self.groups = None

    def input(self, paths):
        super(MongoJoin, self).input(paths)
        self.paths = self._input_list_of_names(paths)
        self.groups = group_paths(self.paths)
        return self

    @property
    def heads(self):
        """ Top-level fields that were requested for populating, in order

            These are the fields a projection has to keep.
            Heads that are not references are listed as well: the user did ask for them.
        """
        return list(self.groups or ())

    def compile_statements(self):
        """ Compile a list of aggregation stages

        :rtype: list[dict]
        """
        return build_lookup_stages(self.paths or [], self.refs)

    compile_statement = NotImplemented

    def get_projection_tree(self):
        """ Get a tree of references that will actually be populated

            Example:

                MongoJoin(refs).input(['author.country', 'tags']).get_projection_tree()
                #-> {'author': {'country': {}}, 'tags': {}}

            This is mainly useful for debugging.
            :rtype: dict
        """
        return _projection_tree(self.paths or [], self.refs)

    def get_final_input_value(self):
        return list(self.paths or ())


def group_paths(paths):
    """ Group dotted paths by their first segment

        Example:
            ['author', 'author.country', 'tags'] -> {'author': ['country'], 'tags': []}

        :param paths: list of dotted paths
        :return: dict {head: [remainders]}. Ordered by the first appearance of every head.
        :rtype: dict[str, list[str]]
    """
    groups = {}
    for path in paths:
        head, _, rest = path.partition('.')
        groups.setdefault(head, [])
        if rest:
            groups[head].append(rest)
    return groups


def build_lookup_stages(paths, refs):
    """ Build `$lookup` stages for the given populate paths

        :param paths: list of dotted paths
        :param refs: Reference schema of the collection the paths start at
        :type refs: mongorepo.refs.RefsBag
        :rtype: list[dict]
    """
    stages = []

    for field, sub_paths in group_paths(paths).items():
        ref = refs.get(field)
        if ref is None:
            logger.debug('populate: %r is not a reference; ignored', field)
            continue

        lookup = {
            'from': ref.collection,
            'localField': field,
            'foreignField': MongoJoin.FOREIGN_FIELD,
        }

        # Go deeper: references of the referenced collection, resolved within the same pipeline
        if sub_paths and ref.refs:
            lookup['pipeline'] = build_lookup_stages(sub_paths, ref.refs)

        lookup['as'] = field
        stages.append({'$lookup': lookup})

        # $lookup always gives an array. A to-one reference has to become a document again.
        if not ref.is_many:
            stages.append({
                '$unwind': {'path': '$' + field, 'preserveNullAndEmptyArrays': True},
            })

    return stages


def _projection_tree(paths, refs):
    tree = {}
    for field, sub_paths in group_paths(paths).items():
        ref = refs.get(field)
        if ref is None:
            continue
        tree[field] = _projection_tree(sub_paths, ref.refs) if sub_paths and ref.refs else {}
    return tree
