import uuid


def begin_session():
    """
    Mint the identifier for a new seating.

    Returns a random 128-bit UUID. Nothing is stored here; the caller writes
    the value onto the table in the same update that marks it occupied, and
    clearing it from the table is what ends the session.
    """
    return uuid.uuid4()
