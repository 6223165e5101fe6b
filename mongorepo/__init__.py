"""
MongoRepo is a generic data-access layer for MongoDB with a portable query language
for filtering, sorting, pagination, and populating references.

The main use case is the interaction with the UI:
every time the UI needs some *sorting*, *filtering*, *pagination*, or to load some
*referenced documents*, you won't have to write a single line of repetitive code!

It will let the API user send a query along with the REST request,
which will control the way the result set is generated:

```javascript
$.get('/api/article?' + $.param({
    where: JSON.stringify({ rating: { greater_than_equal: 4 } }),  // filter: rating >= 4
    sort: '-date',  // sort by `date` DESC
    populate: 'author.country',  // load the referenced `author`, and the author's `country`
    limit: 10,  // 10 per page
    page: 2,  // second page
}))
```
"""

# Exceptions that are used here and there
from .exc import *

# MongoRepo needs to know which fields reference other collections.
# All this is handled by the following classes:
from .refs import Ref, RefsBag

# The heart of MongoRepo are the handlers:
# that's where your query objects are converted to actual MongoDB queries!
from . import handlers

# MongoQuery is the man that parses your Query Object and puts the handlers to work
from .query import MongoQuery

# Pagination: the query, and the response
from .pagination import PaginatedQuery, PaginatedResponse

# BaseRepository implements CRUD for a collection using MongoQuery
from .repository import BaseRepository

# Connecting to MongoDB
from .database import connect, connect_from_env

# Reusable query objects (so that you don't have to initialize them over and over again)
from .util import Reusable
