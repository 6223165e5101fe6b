class BaseMongoRepoException(AssertionError):  # `AssertionError`, same as the rest of the query-object errors
    pass


class InvalidQueryError(BaseMongoRepoException):
    """ Invalid input provided by the User """

    def __init__(self, err: str):
        super(InvalidQueryError, self).__init__('Query object error: {err}'.format(err=err))


class InvalidRefError(BaseMongoRepoException):
    """ A reference schema is declared incorrectly

        This is a programming error, not the user's: it is raised when a repository is constructed.
    """

    def __init__(self, field_name: str, err: str):
        self.field_name = field_name

        super(InvalidRefError, self).__init__(
            'Invalid reference "{field_name}": {err}'.format(
                field_name=field_name,
                err=err)
        )
