"""Error taxonomy and the tagged per-stage result type."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Generic, TypeVar

T = TypeVar("T")


class MosaicError(Exception):
    """Base class for every failure that aborts a mosaic run."""


class ConfigError(MosaicError, ValueError):
    """Invalid configuration, rejected before any I/O."""


class PaletteError(MosaicError):
    pass


class EmptyPalette(PaletteError):
    """No usable tile was found in the palette directory."""


class PaletteDirectoryError(PaletteError):
    """The palette path is missing or is not a directory."""


class UnreadableImage(PaletteError):
    """A single palette candidate could not be decoded or resized."""

    def __init__(self, path: str | Path, reason: str = "") -> None:
        self.path = Path(path)
        self.reason = reason
        msg = f"cannot read tile image {self.path}"
        super().__init__(f"{msg}: {reason}" if reason else msg)


class InputError(MosaicError):
    pass


class UnreadableInput(InputError):
    """The source image could not be decoded."""


class ResourceError(MosaicError):
    pass


class CanvasAllocationFailed(ResourceError):
    """The output canvas is too large to allocate."""


class OutputError(MosaicError):
    pass


class EncodeFailure(OutputError):
    """The canvas could not be encoded in the requested format."""


class WriteFailure(OutputError):
    """The encoded canvas could not be written to its destination."""


class Outcome(Enum):
    OK = "ok"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Outcome of one unit of work that may be skipped without aborting the run.

    Recoverable conditions travel as ``SKIPPED`` values carrying the error;
    fatal conditions are raised as :class:`MosaicError` instead.
    """

    outcome: Outcome
    value: T | None = None
    error: MosaicError | None = None

    @classmethod
    def ok(cls, value: T) -> StageResult[T]:
        return cls(Outcome.OK, value=value)

    @classmethod
    def skipped(cls, error: MosaicError) -> StageResult[T]:
        return cls(Outcome.SKIPPED, error=error)

    @property
    def is_ok(self) -> bool:
        return self.outcome is Outcome.OK
