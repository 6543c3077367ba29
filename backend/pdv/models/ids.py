import uuid


def new_id() -> str:
    """Opaque identity assigned by the application before anything is persisted."""
    return uuid.uuid4().hex
