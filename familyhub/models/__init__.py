"""FamilyHub Database Models."""

from familyhub.models.document import StoredDocument

__all__ = [
    "StoredDocument",
]
