import hashlib
import uuid
from uuid import UUID


def generate_record_id(kind: str, sequence: int, salt: int) -> UUID:
    """Deterministically generate a UUID for a fixture record.

    Identities derive from the registry seed so a failing run can be
    replayed with the same records.
    """
    base = f"{kind}:{sequence}:{salt}".encode()
    digest = hashlib.sha256(base).hexdigest()
    return uuid.UUID(digest[:32])
