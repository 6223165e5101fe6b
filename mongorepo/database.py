"""
Connecting to the database.

Repositories take a database handle that's already connected; this is how you get one:

```python
db = connect('mongodb://localhost:27017/blog')
articles = ArticleRepository(db)
```
"""

import os
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)

#: Environment variables used by connect_from_env()
ENV_URI = 'MONGOREPO_URI'
ENV_DB = 'MONGOREPO_DB'

DEFAULT_URI = 'mongodb://localhost:27017/test'


def connect(uri: str, db_name: str = None, **client_kwargs) -> AsyncIOMotorDatabase:
    """ Connect to MongoDB and get a database

        :param uri: MongoDB connection string
        :param db_name: Database name. Default: the database given in the connection string
        :param client_kwargs: More arguments for AsyncIOMotorClient
        :raises pymongo.errors.ConfigurationError: no database name given, and none in the URI
    """
    client = AsyncIOMotorClient(uri, **client_kwargs)
    db = client.get_database(db_name)
    logger.debug('Using MongoDB database %r', db.name)
    return db


def connect_from_env(**client_kwargs) -> AsyncIOMotorDatabase:
    """ Connect to MongoDB using environment variables: MONGOREPO_URI, MONGOREPO_DB """
    return connect(os.environ.get(ENV_URI, DEFAULT_URI),
                   os.environ.get(ENV_DB) or None,
                   **client_kwargs)
