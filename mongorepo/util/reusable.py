from copy import copy


class Reusable:
    """ Make a reusable handler or query

        Handlers accept their input() only once: this keeps per-query state away from other queries.
        This class wrapper makes a fresh copy every time an attribute of its wrapped object is accessed,
        so that a configured object can serve any number of queries, concurrent ones included.

        Example:

            query = Reusable(MongoQuery(refs, max_items=100))
            query.query(where=...)  # works on a copy
            query.query(where=...)  # works on another copy
    """
    __slots__ = ('__obj',)

    def __init__(self, obj):
        self.__obj = obj

    # copy-on-access

    def __getattr__(self, attr):
        return getattr(copy(self.__obj), attr)

    def __repr__(self):
        return 'Reusable({!r})'.format(self.__obj)
