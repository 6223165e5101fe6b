"""

MongoRepo queries a MongoDB collection with a small, portable query language
that an API user can send in the query string.

The Query Object will let you sort, filter, paginate, and populate references.
You would typically send it as separate query string arguments, like this:

```
GET /api/article?where={"rating":{"greater_than_equal":4}}&sort=-date&page=2&limit=20&select=title&populate=author
```



Query Object Syntax
-------------------

A Query Object has the following properties:

* `where`: [Filter Operation](#filter-operation) filters the results, using your criteria
* `sort`: [Sort Operation](#sort-operation) determines the sorting of the results
* `select`: [Project Operation](#project-operation) selects the fields to be loaded
* `populate`: [Populate Operation](#populate-operation) loads referenced documents
* `skip`, `limit`: [Rows slicing](#slice-operation): paginates the results.
    The API user gives `page` and `limit`; the repository computes `skip`.

Detailed syntax for every operation is provided in the relevant sections.
"""

from .project import MongoProject
from .sort import MongoSort
from .join import MongoJoin, group_paths, build_lookup_stages
from .filter import MongoFilter
from .limit import MongoLimit
