from ..refs import RefsBag, EMPTY_REFS
from ..exc import InvalidQueryError


class MongoQueryHandlerBase:
    """ An implementation of a handler from MongoQuery

        Every subclass will handle a single field from the Query object
    """

    #: Name of the QueryObject section that this object is capable of handling
    query_object_section_name = None

    def __init__(self, refs=None):
        """ Initialize the Query Object section handler with a reference schema.

        This method does *not* receive any input data just yet, with the purpose of having an
        object that can be extended with some interesting defaults right at init time.

        :param refs: The reference schema of the collection being queried.
            Only some handlers need it; others ignore it.
        :type refs: RefsBag | dict | None

        NOTE: Any arguments that have default values will be treated as handler settings!!
        """
        #: References of the collection: which fields point to other collections
        self.refs = RefsBag.for_refs(refs) if refs else EMPTY_REFS

        # Has the input() method been called already?
        # This may be important for handlers that depend on other handlers
        self.input_received = False

        #: The raw input value
        self.input_value = None

        #: MongoQuery bound to this object. It may remain uninitialized.
        self.mongoquery = None

    def with_mongoquery(self, mongoquery):
        """ Bind this object with a MongoQuery

            :type mongoquery: mongorepo.query.MongoQuery
            """
        self.mongoquery = mongoquery
        return self

    def __copy__(self):
        """ Some objects may be reused: i.e. their state before input() is called.

        Reusable handlers are implemented using the Reusable() wrapper which performs the
        automatic copying on input() call
        """
        cls = self.__class__
        result = cls.__new__(cls)
        result.__dict__.update(self.__dict__)
        return result

    def input(self, qo_value):
        """ Get a section of the Query object.

        The purpose of this method is to receive the input, validate it, and store as a public
        property so that external tools may export its value.

        :param qo_value: the value of the Query object field it's handling
        :param qo_value: Any

        :rtype: MongoQueryHandlerBase
        :raises InvalidQueryError
        """
        self.input_value = qo_value  # no copying. Try not to modify it.

        # Set the flag
        self.input_received = True

        # Make sure that input() can only be used once
        self.input = self.__raise_input_not_reusable

        return self

    def is_input_empty(self):
        """ Test whether the input value was empty """
        return not self.input_value

    def __raise_input_not_reusable(self, *args, **kwargs):
        raise RuntimeError("You can't use the {}.input() method twice. "
                           "Wrap the class into Reusable(), or copy() it!"
                           .format(self.__class__.__name__))

    def _input_list_of_names(self, names):
        """ Validate a list of field names (or paths)

            The request parser has already split comma-separated strings;
            here we only accept what it produces: None, or a list of strings.

            :rtype: list[str]
            :raises InvalidQueryError
        """
        if not names:
            return []
        if not isinstance(names, (list, tuple)) or not all(isinstance(n, str) for n in names):
            raise InvalidQueryError('{} must be a list of strings; {} provided'
                                    .format(self.query_object_section_name, type(names).__name__))
        return [n for n in names if n]

    # These methods implement the logic of individual handlers
    # Note that not all methods are going to be implemented by subclasses!

    def compile_statement(self):
        """ Compile a statement

        :return: a MongoDB document: filter, sort spec, projection
        """
        raise NotImplementedError()

    def compile_statements(self):
        """ Compile a list of statements

        :return: list of MongoDB aggregation pipeline stages
        """
        raise NotImplementedError()

    def get_final_input_value(self):
        """ Get the final input of the handler """
        return self.input_value
