"""Registry that builds signatures from their rule-file type names."""

from __future__ import annotations

from collections.abc import Callable

from flowinspector.rules import Signature

SignatureCreator = Callable[[str], Signature]


class SignatureFactory:
    """Maps signature type names to functions that build them."""

    def __init__(self) -> None:
        self._creators: dict[str, SignatureCreator] = {}

    def register(self, type_name: str, creator: SignatureCreator) -> None:
        """Register (or replace) the creator for ``type_name``."""
        self._creators[type_name] = creator

    def create(self, type_name: str, init_string: str) -> Signature:
        """Build a signature; raise KeyError if the type is not registered."""
        try:
            creator = self._creators[type_name]
        except KeyError:
            raise KeyError(f"unsupported signature type {type_name!r}") from None
        return creator(init_string)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._creators


_DEFAULT_FACTORY = SignatureFactory()


def default_factory() -> SignatureFactory:
    """The process-wide factory."""
    return _DEFAULT_FACTORY