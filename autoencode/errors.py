"""Error taxonomy shared by the pipeline steps and the ingestion queue."""

from __future__ import annotations


class AutoencodeError(RuntimeError):
    default_code = "ERROR"

    def __init__(self, message: str, *, code: str | None = None, hint: str | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.hint = hint or ""


class ConfigError(AutoencodeError):
    """Configuration is unusable; fatal at startup."""

    default_code = "CONFIG_ERROR"


class TransientIOError(AutoencodeError):
    """Archive streaming, copy or move failed; the submission may be retried."""

    default_code = "IO_ERROR"


class CatalogError(AutoencodeError):
    default_code = "CATALOG_ERROR"


class NoResultError(CatalogError):
    """A catalog or episode lookup found nothing."""

    default_code = "NO_RESULT"


class MissingInfoError(CatalogError):
    """A lookup was attempted without required input (title, provider key)."""

    default_code = "MISSING_INFO"


class UnacceptableMediaError(AutoencodeError):
    """Probe failed, the file is too short, or it carries no video."""

    default_code = "UNACCEPTABLE_MEDIA"


class EncodeError(AutoencodeError):
    default_code = "ENCODE_FAILED"
