HEAD = "HEAD"
PREV = "PREV"


def resolve_id(index, symbol, notify=None):
    """Map HEAD/PREV to a concrete snapshot id using the current index order.

    Anything else is returned unchanged; whether it exists is the caller's
    problem. With a single snapshot, PREV falls back to it and notify (if
    given) is called with a short notice.
    """
    records = index.records
    if not records:
        return symbol

    if symbol == HEAD:
        return records[-1].id
    if symbol == PREV:
        if len(records) > 1:
            return records[-2].id
        if notify:
            notify("Only one snapshot exists, using HEAD for PREV")
        return records[0].id
    return symbol
