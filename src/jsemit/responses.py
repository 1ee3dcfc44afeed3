"""Load response models.

A loader answers each load request with one of three response kinds, or with
``None`` when the specifier does not exist:

- ModuleResponse ("module"): source content that takes part in emit
- ExternalResponse ("external"): resolved elsewhere, never loaded
- BuiltInResponse ("builtIn"): provided by the runtime

The kinds form a closed, discriminated union. Consumers match on it
exhaustively so a new kind cannot be silently mishandled.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from jsemit.errors import LoadError


class ModuleResponse(BaseModel):
    """A loaded module.

    Attributes:
        kind: Response kind discriminator.
        specifier: Final URL of the module. After redirects this is the
            redirect target, otherwise the requested specifier.
        headers: Response headers for remote modules, keys lower-cased.
        content: Module source, as text or bytes.

    Example:
        >>> response = ModuleResponse(specifier="file:///mod.ts", content="export {};")
        >>> response.with_binary_content().content
        b'export {};'
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: Literal["module"] = Field(default="module", description="Response kind discriminator")
    specifier: str = Field(..., min_length=1, description="Final URL of the module")
    headers: dict[str, str] | None = Field(default=None, description="Lower-cased headers")
    content: bytes | str = Field(..., description="Module source")

    @field_validator("headers")
    @classmethod
    def lowercase_header_names(cls, v: dict[str, str] | None) -> dict[str, str] | None:
        """Normalize header names to lower case."""
        if v is None:
            return None
        return {name.lower(): value for name, value in v.items()}

    def with_binary_content(self) -> ModuleResponse:
        """Return this response with its content as UTF-8 bytes."""
        if isinstance(self.content, bytes):
            return self
        return self.model_copy(update={"content": self.content.encode("utf-8")})

    @property
    def text(self) -> str:
        """Module content decoded as UTF-8.

        Raises:
            UnicodeDecodeError: If binary content is not valid UTF-8.
        """
        if isinstance(self.content, str):
            return self.content
        return self.content.decode("utf-8")


class ExternalResponse(BaseModel):
    """A specifier resolved outside the module graph (e.g. ``npm:`` or ``node:``)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: Literal["external"] = Field(default="external", description="Response kind discriminator")
    specifier: str = Field(..., min_length=1, description="The external specifier")


class BuiltInResponse(BaseModel):
    """A specifier provided by the runtime itself."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: Literal["builtIn"] = Field(default="builtIn", description="Response kind discriminator")
    specifier: str = Field(..., min_length=1, description="The built-in specifier")


# Union type with discriminator on "kind" field
LoadResponse = Annotated[
    ModuleResponse | ExternalResponse | BuiltInResponse,
    Discriminator("kind"),
]
"""Load response with discriminated union over module, external and builtIn."""

_RESPONSE_TYPES = (ModuleResponse, ExternalResponse, BuiltInResponse)
_response_adapter: TypeAdapter[Any] = TypeAdapter(LoadResponse)


def parse_load_response(
    value: Any, specifier: str
) -> ModuleResponse | ExternalResponse | BuiltInResponse | None:
    """Parse whatever a loader returned into a load response.

    Args:
        value: A response model, a mapping with a ``kind`` key, or None.
        specifier: The requested specifier, used for error reporting.

    Returns:
        The parsed response, or None when the loader found nothing.

    Raises:
        LoadError: If the value is not a valid load response.
    """
    if value is None or isinstance(value, _RESPONSE_TYPES):
        return value
    if not isinstance(value, Mapping):
        msg = f"Loader returned {type(value).__name__} instead of a load response for {specifier}"
        raise LoadError(specifier, msg)
    try:
        return _response_adapter.validate_python(dict(value))
    except PydanticValidationError as exc:
        msg = f"Invalid load response for {specifier}: {exc.error_count()} validation error(s)"
        raise LoadError(specifier, msg) from exc
