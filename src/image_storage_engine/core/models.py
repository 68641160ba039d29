"""Shared data models for the image storage engine."""

from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from .exceptions import ConfigurationError

# Predefined ACLs understood by Google Cloud Storage.
Acl = Literal[
    "private",
    "publicRead",
    "projectPrivate",
    "authenticatedRead",
    "bucketOwnerRead",
    "bucketOwnerFullControl",
]

Color = Union[str, Tuple[int, ...]]

REQUIRED_MESSAGES = {
    "bucket": "You have to specify bucket for Google Cloud Storage to work.",
    "project_id": "You have to specify project id for Google Cloud Storage to work.",
    "key_filename": (
        "You have to specify credentials key file for Google Cloud Storage to work."
    ),
}


class SizeSpec(BaseModel):
    """Resize target; a missing side keeps the aspect ratio."""

    model_config = ConfigDict(frozen=True)

    width: Optional[int] = None
    height: Optional[int] = None
    option: Dict[str, Any] = Field(default_factory=dict)


class FormatSpec(BaseModel):
    """Output format with encoder options, e.g. ``{"type": "jpeg", "option": {"quality": 80}}``."""

    model_config = ConfigDict(frozen=True)

    type: str
    option: Dict[str, Any] = Field(default_factory=dict)


class ExtractRegion(BaseModel):
    """Region to cut out of the image, in pixels."""

    model_config = ConfigDict(frozen=True)

    left: int
    top: int
    width: int
    height: int


class ExtendSpec(BaseModel):
    """Padding added to each edge, in pixels."""

    model_config = ConfigDict(frozen=True)

    top: int = 0
    left: int = 0
    bottom: int = 0
    right: int = 0


class ConvolveSpec(BaseModel):
    """Convolution kernel; Pillow supports 3x3 and 5x5."""

    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    kernel: List[float]
    scale: Optional[float] = None
    offset: float = 0


class StorageOptions(BaseModel):
    """Options for a storage engine instance.

    Every transform toggle defaults to a disabled value. Unknown keys are
    ignored so the same options bag can be shared with the upload framework.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    bucket: Optional[str] = None
    project_id: Optional[str] = Field(default=None, alias="projectId")
    key_filename: Optional[str] = Field(default=None, alias="keyFilename")
    acl: Acl = "private"

    destination: Union[str, Callable[..., str], None] = None
    filename: Optional[Callable[..., str]] = None
    format: Union[str, FormatSpec, None] = None
    size: Optional[SizeSpec] = None

    resize: bool = True
    background: Union[bool, Color] = False
    crop: Union[bool, str] = False
    embed: bool = False
    max: bool = False
    min: bool = False
    without_enlargement: bool = Field(default=False, alias="withoutEnlargement")
    ignore_aspect_ratio: bool = Field(default=False, alias="ignoreAspectRatio")
    extract: Union[bool, ExtractRegion] = False
    trim: Union[bool, int] = False
    flatten: bool = False
    extend: Union[bool, int, ExtendSpec] = False
    negate: bool = False
    # Unrecognised angles are dropped by the compiler, never rejected here.
    rotate: Any = False
    flip: bool = False
    flop: bool = False
    blur: Union[bool, float] = False
    sharpen: Union[bool, float] = False
    gamma: Union[bool, float] = False
    grayscale: bool = False
    greyscale: bool = False
    normalize: bool = False
    normalise: bool = False
    convolve: Union[bool, ConvolveSpec] = False
    threshold: Union[bool, int] = False
    to_colourspace: Union[bool, str] = Field(default=False, alias="toColourspace")
    to_colorspace: Union[bool, str] = Field(default=False, alias="toColorspace")
    with_metadata: Union[bool, Dict[str, Any]] = Field(
        default=False, alias="withMetadata"
    )

    @field_validator("extract", "extend", "convolve", mode="before")
    @classmethod
    def _reject_bare_true(cls, value: Any, info: ValidationInfo) -> Any:
        if value is True:
            raise ValueError(f"{info.field_name} needs explicit parameters, not True")
        return value

    @field_validator("trim", mode="before")
    @classmethod
    def _numeric_trim(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                raise ValueError(f"trim threshold must be a number, got {value!r}") from None
        return value

    @classmethod
    def from_mapping(cls, mapping: Optional[Dict[str, Any]] = None) -> "StorageOptions":
        """Build options from a plain mapping, reporting bad values as ConfigurationError."""
        try:
            return cls.model_validate(mapping or {})
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid storage options: {exc}") from exc

    def missing_required(self) -> List[str]:
        """Names of the required options that are not set."""
        return [name for name in REQUIRED_MESSAGES if not getattr(self, name)]

    def ensure_required(self) -> None:
        """Raise ConfigurationError for the first missing required option."""
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(REQUIRED_MESSAGES[missing[0]])


@dataclass
class IncomingFile:
    """A file handed to the engine by the upload framework."""

    fieldname: str
    originalname: str
    mimetype: str
    stream: BinaryIO


@dataclass
class StoredFile:
    """The record of a previously stored file, as passed back for removal."""

    fieldname: str
    filename: str
    originalname: str = ""
    mimetype: str = ""
    path: str = ""


class UploadResult(BaseModel):
    """Outcome of a successful upload."""

    model_config = ConfigDict(frozen=True)

    mimetype: str
    path: str
    filename: str


@dataclass(frozen=True)
class TransformInfo:
    """Properties of the encoded output, reported after a transform."""

    format: str
    width: int
    height: int
    channels: int
    size: int = 0
