import databases
import sqlalchemy

from voxly.events import subscribers_shutdown, subscribers_startup
from voxly.settings import settings

metadata = sqlalchemy.MetaData()

_database: databases.Database | None = None


def get_database() -> databases.Database:
    global _database
    if _database is None:
        _database = databases.Database(settings.DATABASE_URL)
    return _database


def reset_database():
    """Forget the current instance, the next `get_database()` reads settings again."""
    global _database
    _database = None


import voxly.db.jobs  # noqa


@subscribers_startup.append
async def database_connect(_):
    await get_database().connect()


@subscribers_shutdown.append
async def database_disconnect(_):
    await get_database().disconnect()
