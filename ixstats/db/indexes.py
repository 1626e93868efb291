import pymongo

from ixstats.services.models import Index


def index_keys(index: Index) -> list:
    """
    Key specification as (field, direction) pairs, in the order of ``fields``.

    Directions come from the stored key, never from the effective key, so a
    descending or special (text, 2dsphere, hashed) component is replayed as
    declared.
    """
    keys = []
    for field in index.fields or list(index.key):
        if field in index.key:
            keys.append((field, _direction(index.key[field])))
    return keys


def _direction(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def index_options(index: Index) -> dict:
    """createIndexes options for every non-default property of the index."""
    options = {"name": index.name}
    if index.version is not None:
        options["v"] = index.version
    if index.background:
        options["background"] = True
    if index.expire_after_seconds is not None and index.expire_after_seconds > 0:
        options["expireAfterSeconds"] = index.expire_after_seconds
    if index.unique:
        options["unique"] = True
    if index.sparse:
        options["sparse"] = True
    if index.collation:
        options["collation"] = dict(index.collation)
    if index.partial_filter_expression:
        options["partialFilterExpression"] = index.partial_filter_expression
    return options


def build_index_model(index: Index) -> pymongo.IndexModel:
    return pymongo.IndexModel(index_keys(index), **index_options(index))


async def create_index(collection, index: Index) -> str:
    """Create one index on a live collection with its full option set."""
    names = await collection.create_indexes([build_index_model(index)])
    return names[0]
