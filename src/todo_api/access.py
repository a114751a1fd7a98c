from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Operation(str, Enum):
    """CRUD operations that can be individually allowed or denied."""

    CREATE = "C"
    READ = "R"
    UPDATE = "U"
    DELETE = "D"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class AccessPolicy:
    """
    Allow/deny flag per CRUD operation on the todos resource.

    The same flags apply to every caller; there is no notion of identity.
    """

    create: bool = True
    read: bool = True
    update: bool = True
    delete: bool = True

    @classmethod
    def from_flags(cls, flags: str) -> "AccessPolicy":
        """
        Build a policy from a string of operation letters, e.g. 'CRUD' or 'R'.

        A letter's presence allows the operation. Matching is
        case-insensitive and unknown letters are ignored.
        """
        letters = {c for c in (flags or "").upper()}
        return cls(
            create=Operation.CREATE.value in letters,
            read=Operation.READ.value in letters,
            update=Operation.UPDATE.value in letters,
            delete=Operation.DELETE.value in letters,
        )

    def allows(self, operation: Operation) -> bool:
        return {
            Operation.CREATE: self.create,
            Operation.READ: self.read,
            Operation.UPDATE: self.update,
            Operation.DELETE: self.delete,
        }[operation]

    @property
    def flags(self) -> str:
        return "".join(op.value for op in Operation if self.allows(op))
