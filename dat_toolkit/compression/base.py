"""Decompressor interface used by chunk extraction."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class DecompressedData:
    """Decompressor output.

    ``size`` is the real output length and bounds ``data``. It can be larger
    than the size hint the decompressor was called with.
    """

    data: bytes
    size: int

    def payload(self) -> bytes:
        return self.data[: self.size]


class Decompressor(ABC):
    """Turns a stored chunk back into its original bytes.

    Implementations raise DecompressionError subclasses on bad input.
    """

    name: str = "decompressor"

    @abstractmethod
    def decompress(self, data: bytes, size_hint: int) -> DecompressedData:
        """Decompress ``data``.

        Args:
            data: Stored chunk bytes.
            size_hint: Initial guess at the output size (the stored size).
        """
        pass
