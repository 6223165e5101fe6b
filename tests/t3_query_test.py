import unittest

from bson import ObjectId

from mongorepo import MongoQuery, Reusable
from mongorepo.exc import InvalidQueryError

from . import models
from .util import FakeDatabase


class QueryTest(unittest.TestCase):
    """ Test MongoQuery """

    maxDiff = None

    def test_query_object(self):
        """ Test query(): input validation """
        # Unknown keys
        with self.assertRaises(InvalidQueryError):
            MongoQuery().query(filter={'a': 1})

        # Single-use
        mq = MongoQuery().query()
        with self.assertRaises(RuntimeError):
            mq.query()

    def test_compile_filter(self):
        # Nothing
        self.assertEqual(MongoQuery().query().compile_filter(), {})

        # where
        self.assertEqual(MongoQuery().query(where={'a': 1}).compile_filter(), {'a': {'$eq': 1}})

        # from_filter()
        self.assertEqual(MongoQuery().from_filter({'_id': 1}).query().compile_filter(), {'_id': 1})

        # Both: AND-ed
        self.assertEqual(MongoQuery().from_filter({'_id': 1}).query(where={'a': 1}).compile_filter(),
                         {'$and': [{'_id': 1}, {'a': {'$eq': 1}}]})

    def test_compile_pipeline(self):
        mq = MongoQuery(models.ARTICLE_REFS).query(
            where={'rating': {'greater_than': 3}},
            sort='-date',
            skip=20,
            limit=10,
            select=['title'],
            populate=['author.country', 'tags'],
        )

        self.assertTrue(mq.result_is_pipeline())
        pipeline = mq.compile_pipeline()

        # Stages, in order
        self.assertEqual([list(s)[0] for s in pipeline],
                         ['$match', '$sort', '$skip', '$limit', '$lookup', '$unwind', '$lookup', '$project'])

        self.assertEqual(pipeline[0], {'$match': {'rating': {'$gt': 3}}})
        self.assertEqual(pipeline[1], {'$sort': {'date': -1}})
        self.assertEqual(pipeline[2], {'$skip': 20})
        self.assertEqual(pipeline[3], {'$limit': 10})
        self.assertEqual(pipeline[4]['$lookup']['as'], 'author')
        self.assertEqual(len(pipeline[4]['$lookup']['pipeline']), 2)
        self.assertEqual(pipeline[6]['$lookup']['as'], 'tags')
        # Populated fields survive the projection
        self.assertEqual(pipeline[7], {'$project': {'title': 1, 'author': 1, 'tags': 1}})

        # Projection tree
        self.assertEqual(mq.get_projection_tree(), {'title': 1, 'author': {'country': {}}, 'tags': {}})

    def test_compile_pipeline_minimal(self):
        """ No sort, no slicing, no projection: no stages for them """
        mq = MongoQuery(models.ARTICLE_REFS).query(populate=['tags'])
        self.assertEqual(mq.compile_pipeline(), [
            {'$match': {}},
            {'$lookup': {'from': 'tags', 'localField': 'tags', 'foreignField': '_id', 'as': 'tags'}},
        ])

    def test_end_find(self):
        """ Without populate: find(), not aggregate() """
        db = FakeDatabase(articles=[
            {'_id': models.ARTICLE_ID, 'title': 'Hello', 'rating': 5},
        ])
        collection = db['articles']

        mq = MongoQuery(models.ARTICLE_REFS).query(where={'rating': 5}, sort='-rating', skip=2, limit=3, select=['title'])
        self.assertFalse(mq.result_is_pipeline())

        cursor = mq.end(collection)
        self.assertEqual(collection.calls, [('find', ({'rating': {'$eq': 5}}, {'title': 1}))])
        self.assertEqual(cursor.calls, [('sort', [('rating', -1)]), ('skip', 2), ('limit', 3)])

        # No sort: sort() is never called
        cursor = MongoQuery().query().end(collection)
        self.assertEqual(cursor.calls, [])
        self.assertEqual(collection.calls[-1], ('find', ({}, None)))

    def test_end_aggregate(self):
        db = FakeDatabase()
        collection = db['articles']

        mq = MongoQuery(models.ARTICLE_REFS).query(populate=['author'])
        mq.end(collection)
        self.assertEqual(collection.call_names, ['aggregate'])
        self.assertEqual(collection.calls[0][1][0], mq.compile_pipeline())

        # Unknown references still go through aggregation
        mq = MongoQuery(models.ARTICLE_REFS).query(populate=['title'])
        self.assertTrue(mq.result_is_pipeline())
        self.assertEqual(mq.compile_pipeline(), [{'$match': {}}])

    def test_pluck_document(self):
        oid = ObjectId()

        # No projection: id is there
        mq = MongoQuery().query()
        self.assertEqual(mq.pluck_document({'_id': oid, 'a': 1}), {'id': str(oid), 'a': 1})

        # Projection without id: no id
        mq = MongoQuery().query(select=['a'])
        self.assertEqual(mq.pluck_document({'_id': oid, 'a': 1}), {'a': 1})

        # Projection with id
        mq = MongoQuery().query(select=['id', 'a'])
        self.assertEqual(mq.pluck_document({'_id': oid, 'a': 1}), {'id': str(oid), 'a': 1})

        # Populated fields do not bring the id back
        mq = MongoQuery(models.ARTICLE_REFS).query(select=['a'], populate=['author'])
        self.assertEqual(mq.pluck_document({'_id': oid, 'a': 1, 'author': {'_id': oid}}),
                         {'a': 1, 'author': {'_id': oid}})

        # The original document is not modified
        doc = {'_id': oid}
        MongoQuery().query().pluck_document(doc)
        self.assertEqual(doc, {'_id': oid})

    def test_max_items(self):
        mq = MongoQuery(max_items=100).query(populate=['x'])
        self.assertEqual(mq.compile_pipeline(), [{'$match': {}}, {'$limit': 100}])

    def test_reusable(self):
        """ Reusable(MongoQuery) gives a fresh copy every time """
        rmq = Reusable(MongoQuery(models.ARTICLE_REFS))

        a = rmq.query(where={'a': 1}, populate=['author'])
        b = rmq.query(where={'b': 2})

        self.assertEqual(a.compile_filter(), {'a': {'$eq': 1}})
        self.assertEqual(b.compile_filter(), {'b': {'$eq': 2}})
        self.assertTrue(a.result_is_pipeline())
        self.assertFalse(b.result_is_pipeline())

        # from_filter() on one copy does not leak into the next one
        c = rmq.from_filter({'_id': 1}).query()
        d = rmq.query()
        self.assertEqual(c.compile_filter(), {'_id': 1})
        self.assertEqual(d.compile_filter(), {})

        # Projection state is not shared either: populated heads stay with their own query
        e = rmq.query(select=['title'], populate=['author'])
        f = rmq.query(select=['title'])
        self.assertEqual(e.handler_project.compile_statement(), {'title': 1, 'author': 1})
        self.assertEqual(f.handler_project.compile_statement(), {'title': 1})
        self.assertEqual(rmq.handler_project.quietly_included, [])
