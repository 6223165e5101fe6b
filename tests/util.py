import re
from copy import deepcopy
from types import SimpleNamespace

from bson import ObjectId
from pymongo import ReturnDocument


class FakeDatabase:
    """ A database made of FakeCollection()s

        Enough of motor's interface for BaseRepository, with every call logged.
    """

    def __init__(self, **collections):
        self.collections = {}
        for name, docs in collections.items():
            self[name].docs.extend(deepcopy(docs))

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]


class FakeCollection:
    """ An in-memory collection that understands the subset of the query language that MongoRepo generates """

    def __init__(self, db, name):
        self.db = db
        self.name = name
        self.docs = []
        #: Calls log: [(method name, args)]
        self.calls = []

    def find(self, filter=None, projection=None):
        self.calls.append(('find', (filter, projection)))
        docs = [d for d in self.docs if matches(d, filter or {})]
        return FakeCursor(docs, projection)

    async def find_one(self, filter=None):
        self.calls.append(('find_one', (filter,)))
        for doc in self.docs:
            if matches(doc, filter or {}):
                return deepcopy(doc)
        return None

    def aggregate(self, pipeline):
        self.calls.append(('aggregate', (pipeline,)))
        return FakeCursor(run_pipeline(self.db, self.docs, pipeline))

    async def count_documents(self, filter):
        self.calls.append(('count_documents', (filter,)))
        return sum(1 for d in self.docs if matches(d, filter))

    async def insert_one(self, doc):
        self.calls.append(('insert_one', (doc,)))
        doc.setdefault('_id', ObjectId())
        self.docs.append(deepcopy(doc))
        return SimpleNamespace(inserted_id=doc['_id'])

    async def update_one(self, filter, update):
        self.calls.append(('update_one', (filter, update)))
        for doc in self.docs:
            if matches(doc, filter):
                before = deepcopy(doc)
                doc.update(update['$set'])
                return SimpleNamespace(matched_count=1, modified_count=int(before != doc))
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def find_one_and_update(self, filter, update, upsert=False, return_document=ReturnDocument.BEFORE):
        self.calls.append(('find_one_and_update', (filter, update)))
        for doc in self.docs:
            if matches(doc, filter):
                before = deepcopy(doc)
                doc.update(update['$set'])
                return deepcopy(doc if return_document == ReturnDocument.AFTER else before)
        if not upsert:
            return None
        # Upsert: equality conditions from the filter become fields
        doc = {k: v for k, v in filter.items() if not k.startswith('$') and not isinstance(v, dict)}
        doc.update(update['$set'])
        doc.setdefault('_id', ObjectId())
        self.docs.append(doc)
        return deepcopy(doc) if return_document == ReturnDocument.AFTER else None

    async def delete_one(self, filter):
        self.calls.append(('delete_one', (filter,)))
        for i, doc in enumerate(self.docs):
            if matches(doc, filter):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    @property
    def call_names(self):
        return [name for name, args in self.calls]


class FakeCursor:
    """ A cursor: sort(), skip(), limit(), to_list() """

    def __init__(self, docs, projection=None):
        self._docs = [deepcopy(d) for d in docs]
        self._projection = projection
        self._skip = 0
        self._limit = 0
        #: Log of cursor method calls
        self.calls = []

    def sort(self, key_or_list):
        self.calls.append(('sort', key_or_list))
        self._docs = sort_docs(self._docs, dict(key_or_list))
        return self

    def skip(self, n):
        self.calls.append(('skip', n))
        self._skip = n
        return self

    def limit(self, n):
        self.calls.append(('limit', n))
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = self._docs[self._skip:]
        if self._limit:
            docs = docs[:self._limit]
        if self._projection:
            docs = [project(d, self._projection) for d in docs]
        return docs


# region Query engine

def get_path(doc, path):
    """ Get a value by a dotted path; `Missing` if not there """
    for name in path.split('.'):
        if not isinstance(doc, dict) or name not in doc:
            return Missing
        doc = doc[name]
    return doc


Missing = object()


def matches(doc, filter):
    """ Test whether a document matches a MongoDB filter """
    for key, condition in filter.items():
        if key == '$and':
            if not all(matches(doc, c) for c in condition):
                return False
        elif key == '$or':
            if not any(matches(doc, c) for c in condition):
                return False
        elif isinstance(condition, dict) and condition and all(k.startswith('$') for k in condition):
            if not _matches_operators(get_path(doc, key), condition):
                return False
        elif isinstance(condition, dict):
            value = get_path(doc, key)
            if not isinstance(value, dict) or not matches(value, condition):
                return False
        else:
            if not _eq(get_path(doc, key), condition):
                return False
    return True


def _eq(value, operand):
    if isinstance(value, list) and not isinstance(operand, list):
        return operand in value
    return value is not Missing and value == operand


def _matches_operators(value, operators):
    for op, operand in operators.items():
        if op == '$eq':
            ok = _eq(value, operand)
        elif op == '$ne':
            ok = not _eq(value, operand)
        elif op in ('$gt', '$gte', '$lt', '$lte'):
            if value is Missing or value is None:
                ok = False
            else:
                ok = {'$gt': value > operand, '$gte': value >= operand,
                      '$lt': value < operand, '$lte': value <= operand}[op]
        elif op == '$in':
            ok = any(_eq(value, o) for o in operand)
        elif op == '$nin':
            ok = not any(_eq(value, o) for o in operand)
        elif op == '$exists':
            ok = (value is not Missing) == bool(operand)
        elif op == '$regex':
            flags = re.IGNORECASE if 'i' in operators.get('$options', '') else 0
            ok = isinstance(value, str) and re.search(operand, value, flags) is not None
        elif op == '$options':
            ok = True
        else:
            raise NotImplementedError(op)
        if not ok:
            return False
    return True


def sort_docs(docs, sort):
    for field, direction in reversed(list(sort.items())):
        docs = sorted(docs, key=lambda d: get_path(d, field), reverse=direction == -1)
    return docs


def project(doc, projection):
    return {k: v for k, v in doc.items()
            if k == '_id' or projection.get(k)}


def run_pipeline(db, docs, pipeline):
    """ Run an aggregation pipeline """
    docs = [deepcopy(d) for d in docs]
    for stage in pipeline:
        (name, arg), = stage.items()
        if name == '$match':
            docs = [d for d in docs if matches(d, arg)]
        elif name == '$sort':
            docs = sort_docs(docs, arg)
        elif name == '$skip':
            docs = docs[arg:]
        elif name == '$limit':
            docs = docs[:arg]
        elif name == '$lookup':
            docs = [_lookup(db, d, arg) for d in docs]
        elif name == '$unwind':
            docs = _unwind(docs, arg)
        elif name == '$project':
            docs = [project(d, arg) for d in docs]
        else:
            raise NotImplementedError(name)
    return docs


def _lookup(db, doc, lookup):
    local = get_path(doc, lookup['localField'])
    local = local if isinstance(local, list) else [local]
    foreign = [f for f in db[lookup['from']].docs
               if get_path(f, lookup['foreignField']) in local]
    doc[lookup['as']] = run_pipeline(db, foreign, lookup.get('pipeline', []))
    return doc


def _unwind(docs, unwind):
    field = unwind['path'][1:]
    ret = []
    for doc in docs:
        values = doc.get(field)
        if values:
            for v in values:
                ret.append({**doc, field: v})
        elif unwind.get('preserveNullAndEmptyArrays'):
            doc = dict(doc)
            doc.pop(field, None)
            ret.append(doc)
    return ret

# endregion
