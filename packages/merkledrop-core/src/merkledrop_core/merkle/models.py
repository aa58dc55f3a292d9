"""Data models and errors for the Merkle tree subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class MerkleError(Exception):
    """Base class for every error raised by the Merkle engine."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation}: {message}")


class EncodingError(MerkleError):
    """A leaf value does not match its declared field type."""

    def __init__(
        self,
        message: str,
        leaf_index: int | None = None,
        field: int | None = None,
        operation: str = "encode",
    ) -> None:
        self.leaf_index = leaf_index
        self.field = field
        where = []
        if leaf_index is not None:
            where.append(f"leaf {leaf_index}")
        if field is not None:
            where.append(f"field {field}")
        prefix = f"{', '.join(where)}: " if where else ""
        super().__init__(operation, f"{prefix}{message}")


class LeafNotFound(MerkleError):
    """No leaf matches a lookup or proof request."""

    def __init__(self, message: str = "Leaf is not in tree") -> None:
        super().__init__("lookup", message)


class AmbiguousLeaf(MerkleError):
    """A value matches several leaves and must be addressed by index."""

    def __init__(self, indices: list[int]) -> None:
        self.indices = tuple(indices)
        super().__init__(
            "lookup",
            f"value matches leaves {list(indices)}; request the proof by index",
        )


class CorruptDump(MerkleError):
    """A serialized tree is structurally inconsistent."""

    def __init__(self, message: str) -> None:
        super().__init__("load", message)


class InvalidProof(MerkleError):
    """A freshly derived proof failed to reproduce the root."""

    def __init__(self, message: str = "Unable to prove value") -> None:
        super().__init__("prove", message)


@dataclass(frozen=True)
class LeafEntry:
    """A leaf value with its position in the tree array."""

    value: tuple[Any, ...]
    tree_index: int


@dataclass(frozen=True)
class MultiProof:
    """Proof for several leaves at once, in MerkleProof.multiProofVerify form."""

    leaves: tuple[Any, ...]
    proof: tuple[str, ...]
    proof_flags: tuple[bool, ...]

    def to_dict(self) -> dict[str, list]:
        return {
            "leaves": [list(v) if isinstance(v, tuple) else v for v in self.leaves],
            "proof": list(self.proof),
            "proofFlags": list(self.proof_flags),
        }
