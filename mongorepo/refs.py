from types import MappingProxyType

from typing import Mapping, Iterable, Tuple, FrozenSet, Set, Optional, Union

from .exc import InvalidRefError


class Ref:
    """ A reference from one collection to another

    A field that stores the `_id` of a document (or a list of `_id`s) in another collection.
    Declared statically on a repository; never modified afterwards.

        Ref('users')  # to-one: `author` -> users._id
        Ref('tags', is_many=True)  # to-many: `tags` -> [tags._id, ...]
        Ref('users', refs={'country': Ref('countries')})  # with nested references: `author.country`

    A Ref is either a leaf, or a node with children: `refs` is another RefsBag.
    """

    __slots__ = ('collection', 'is_many', 'refs')

    def __init__(self, collection: str, is_many: bool = False, refs: Union[Mapping[str, 'Ref'], 'RefsBag', None] = None):
        """ Declare a reference

        :param collection: Target collection name
        :param is_many: Does the field hold a list of references?
            A to-one reference is collapsed into a single document when populated;
            a to-many reference stays a list.
        :param refs: Nested references of the target collection, for chained populates
        """
        object.__setattr__(self, 'collection', collection)
        object.__setattr__(self, 'is_many', bool(is_many))
        object.__setattr__(self, 'refs', RefsBag.for_refs(refs) if refs else None)

    def __setattr__(self, name, value):
        raise AttributeError('{} is immutable'.format(self.__class__.__name__))

    @property
    def has_refs(self) -> bool:
        """ Does this reference have nested references? """
        return bool(self.refs)

    def __eq__(self, other):
        if not isinstance(other, Ref):
            return NotImplemented
        return (self.collection, self.is_many, self.refs) == (other.collection, other.is_many, other.refs)

    def __hash__(self):
        return hash((self.collection, self.is_many))

    def __repr__(self):
        return '{}({!r}{}{})'.format(
            self.__class__.__name__,
            self.collection,
            ', is_many=True' if self.is_many else '',
            ', refs={!r}'.format(dict(self.refs)) if self.refs else '',
        )


class RefsBag:
    """ Reference schema: the references of a collection

    This is the document-store counterpart of a relationships bag: it knows which fields are references,
    which collections they point to, and whether they're arrays.

    The bag is immutable and is shared by every query made through a repository.
    """

    __slots__ = ('_refs', '_ref_names', '_array_ref_names')

    def __init__(self, refs: Mapping[str, Ref]):
        """ Init references

        :param refs: {field name: Ref}
        :raises InvalidRefError: the schema is malformed
        """
        refs = dict(refs or {})

        # Validate
        for name, ref in refs.items():
            if not isinstance(ref, Ref):
                raise InvalidRefError(name, 'must be a Ref, {} given'.format(type(ref).__name__))
            if not ref.collection or not isinstance(ref.collection, str):
                raise InvalidRefError(name, 'collection name must be a non-empty string')
            if '.' in name:
                raise InvalidRefError(name, 'field name cannot contain a dot; use nested `refs` instead')

        self._refs = MappingProxyType(refs)
        self._ref_names = frozenset(refs.keys())
        self._array_ref_names = frozenset(name
                                          for name, ref in refs.items()
                                          if ref.is_many)

    @classmethod
    def for_refs(cls, refs: Union[Mapping[str, Ref], 'RefsBag', None]) -> 'RefsBag':
        """ Get a bag for the given references; a bag is passed through as is """
        if isinstance(refs, RefsBag):
            return refs
        return cls(refs or {})

    def is_ref_array(self, name: str) -> bool:
        """ Is the reference a to-many reference? """
        return name in self._array_ref_names

    @property
    def names(self) -> FrozenSet[str]:
        """ Get the set of reference names """
        return self._ref_names

    def __iter__(self) -> Iterable[Tuple[str, Ref]]:
        """ Get references """
        return iter(self._refs.items())

    def keys(self):
        return self._refs.keys()

    def __len__(self):
        return len(self._refs)

    def __bool__(self):
        return bool(self._refs)

    def __contains__(self, name: str) -> bool:
        return name in self._refs

    def __getitem__(self, name: str) -> Ref:
        return self._refs[name]

    def get(self, name: str) -> Optional[Ref]:
        return self._refs.get(name)

    def __eq__(self, other):
        if not isinstance(other, RefsBag):
            return NotImplemented
        return dict(self._refs) == dict(other._refs)

    def __hash__(self):
        return hash(self._ref_names)

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, dict(self._refs))

    def get_invalid_names(self, names: Iterable[str]) -> Set[str]:
        """ Get the names of invalid items """
        return set(names) - self.names

    def get_target_collection(self, name: str) -> str:
        """ Get target collection of a reference """
        return self[name].collection

    def get_nested_refs(self, name: str) -> 'RefsBag':
        """ Get references of the target collection (empty bag if there are none) """
        return self[name].refs or EMPTY_REFS


EMPTY_REFS = RefsBag({})
