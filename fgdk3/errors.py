from __future__ import annotations


class FormatError(ValueError):
    """Base for everything that means "the bytes did not match the grammar"."""


class UnexpectedEndOfData(FormatError):
    pass


class MalformedHeader(FormatError):
    pass


class MalformedShape(FormatError):
    pass


class NotSupported(FormatError):
    pass


class MissingAsset(LookupError):
    """An asset type has elements but nothing registered to export them."""

    def __init__(self, asset_type: int, name: str | None = None):
        self.asset_type = asset_type
        self.name = name
        label = f"type#{asset_type}" + (f" ({name})" if name else "")
        super().__init__(f"no exporter for {label}")
