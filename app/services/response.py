def list_response(items, limit=None, offset=None) -> dict:
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}


class ListResponseMixin:
    """Wraps a service's ``list`` in the ``ListResponse`` envelope.

    ``limit`` and ``offset`` are expected as the last two arguments of
    ``list``, either positionally or by keyword.
    """

    @classmethod
    def list_response(cls, db, *args, **kwargs) -> dict:
        items = cls.list(db, *args, **kwargs)
        limit = kwargs.get("limit")
        offset = kwargs.get("offset")
        if limit is None and len(args) >= 2:
            limit, offset = args[-2], args[-1]
        return list_response(items, limit, offset)
