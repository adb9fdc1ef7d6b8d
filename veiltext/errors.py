"""Error taxonomy shared by the codec, the resolver and the HTTP adapter."""

from __future__ import annotations


class VeilTextError(ValueError):
    """Base class; ``kind`` is the stable name surfaced to callers."""

    kind = "VeilTextError"

    def to_dict(self) -> dict:
        return {"error": str(self), "kind": self.kind}


class UnsupportedScheme(VeilTextError):
    kind = "UnsupportedScheme"


class InsufficientCarrier(VeilTextError):
    kind = "InsufficientCarrier"


class NoInvisibleCharactersFound(VeilTextError):
    kind = "NoInvisibleCharactersFound"


class NoSchemeMatched(VeilTextError):
    kind = "NoSchemeMatched"


class MalformedAssignment(VeilTextError):
    kind = "MalformedAssignment"


class UnencodableMessage(VeilTextError):
    """A byte falls outside what a 7-bit or tag-range scheme can carry."""

    kind = "UnencodableMessage"
