"""Common interface of the wire codecs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Tuple, Type, TypeVar, Union

from cellgate.core.models import CellModel, CellSetModel, RowModel, TableListModel

Model = Union[CellModel, RowModel, CellSetModel, TableListModel]
M = TypeVar("M", CellModel, RowModel, CellSetModel, TableListModel)


class Codec(ABC):
    """
    Encoder/decoder pair for one wire encoding.

    Implementations must round-trip: ``decode(encode(m), type(m)) == m``.
    """

    media_type: str = ""
    aliases: Tuple[str, ...] = ()

    @abstractmethod
    def encode(self, model: Model) -> bytes:
        """
        Serialize a model.

        Raises:
            NotSupportedError: if the encoding has no form for this model type
        """

    @abstractmethod
    def decode(self, data: bytes, model_type: Type[M]) -> M:
        """
        Parse ``data`` into a ``model_type`` instance.

        Raises:
            MalformedError: if ``data`` is not a valid encoding
            NotSupportedError: if the encoding has no form for ``model_type``
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.media_type!r})"


__all__ = ["Codec", "Model", "M"]
