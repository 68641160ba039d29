"""Transform stages and the compiler that derives them from StorageOptions.

Stages are applied in the order ``compile_pipeline`` returns them. The order is
fixed: geometry first, then pixel operations, colourspace, metadata and finally
the output encoding.
"""

from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, List, Optional, Tuple, Union

from .models import ConvolveSpec, ExtendSpec, FormatSpec, StorageOptions
from .protocols import TransformStageBuilder, TransformerProtocol

RIGHT_ANGLES = (0, 90, 180, 270)

# Anchor name -> (x, y) centering used when cropping to cover.
GRAVITIES: Dict[str, Tuple[float, float]] = {
    "north": (0.5, 0.0),
    "northeast": (1.0, 0.0),
    "east": (1.0, 0.5),
    "southeast": (1.0, 1.0),
    "south": (0.5, 1.0),
    "southwest": (0.0, 1.0),
    "west": (0.0, 0.5),
    "northwest": (0.0, 0.0),
    "center": (0.5, 0.5),
    "centre": (0.5, 0.5),
}

DEFAULT_TRIM_THRESHOLD = 10


@dataclass(frozen=True)
class Resize:
    width: Optional[int]
    height: Optional[int]
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Background:
    color: Any


@dataclass(frozen=True)
class Crop:
    gravity: str


@dataclass(frozen=True)
class Embed:
    pass


@dataclass(frozen=True)
class Max:
    pass


@dataclass(frozen=True)
class Min:
    pass


@dataclass(frozen=True)
class WithoutEnlargement:
    pass


@dataclass(frozen=True)
class IgnoreAspectRatio:
    pass


@dataclass(frozen=True)
class Extract:
    left: int
    top: int
    width: int
    height: int


@dataclass(frozen=True)
class Trim:
    threshold: int


@dataclass(frozen=True)
class Flatten:
    pass


@dataclass(frozen=True)
class Extend:
    top: int
    left: int
    bottom: int
    right: int


@dataclass(frozen=True)
class Negate:
    pass


@dataclass(frozen=True)
class Rotate:
    angle: int


@dataclass(frozen=True)
class Flip:
    pass


@dataclass(frozen=True)
class Flop:
    pass


@dataclass(frozen=True)
class Blur:
    sigma: Optional[float] = None


@dataclass(frozen=True)
class Sharpen:
    sigma: Optional[float] = None


@dataclass(frozen=True)
class Gamma:
    gamma: float = 2.2


@dataclass(frozen=True)
class Greyscale:
    pass


@dataclass(frozen=True)
class Normalise:
    pass


@dataclass(frozen=True)
class Convolve:
    width: int
    height: int
    kernel: Tuple[float, ...]
    scale: Optional[float] = None
    offset: float = 0


@dataclass(frozen=True)
class Threshold:
    value: int = 128


@dataclass(frozen=True)
class ToColourspace:
    space: str


@dataclass(frozen=True)
class WithMetadata:
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToFormat:
    format: str
    options: Dict[str, Any] = field(default_factory=dict)


Stage = Union[
    Resize,
    Background,
    Crop,
    Embed,
    Max,
    Min,
    WithoutEnlargement,
    IgnoreAspectRatio,
    Extract,
    Trim,
    Flatten,
    Extend,
    Negate,
    Rotate,
    Flip,
    Flop,
    Blur,
    Sharpen,
    Gamma,
    Greyscale,
    Normalise,
    Convolve,
    Threshold,
    ToColourspace,
    WithMetadata,
    ToFormat,
]


def _numeric(value: Any) -> Optional[float]:
    """``value`` as a float, or None for booleans (True means "use the default")."""
    if isinstance(value, bool):
        return None
    return float(value)


def _rotation(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    if value not in RIGHT_ANGLES:
        return None
    return int(value)


def _trim_threshold(value: Any) -> int:
    if isinstance(value, bool):
        return DEFAULT_TRIM_THRESHOLD
    return int(value)


def _extend(value: Union[int, ExtendSpec]) -> Extend:
    if isinstance(value, ExtendSpec):
        return Extend(value.top, value.left, value.bottom, value.right)
    return Extend(value, value, value, value)


def _convolve(spec: ConvolveSpec) -> Convolve:
    return Convolve(
        width=spec.width,
        height=spec.height,
        kernel=tuple(spec.kernel),
        scale=spec.scale,
        offset=spec.offset,
    )


def format_name(fmt: Union[str, FormatSpec, None]) -> Optional[str]:
    """The bare format name of a ``format`` option, if one is configured."""
    if isinstance(fmt, FormatSpec):
        return fmt.type
    return fmt or None


def compile_pipeline(options: StorageOptions) -> List[Stage]:
    """Map options onto the ordered list of stages to apply.

    A stage is emitted only when its toggle is set; a disabled toggle never
    produces a stage with default arguments.
    """
    stages: List[Stage] = []

    if options.resize and options.size:
        size = options.size
        stages.append(Resize(size.width, size.height, dict(size.option)))

    if options.background:
        stages.append(Background(options.background))

    if isinstance(options.crop, str) and options.crop in GRAVITIES:
        stages.append(Crop(options.crop))

    if options.embed:
        stages.append(Embed())

    if options.max:
        stages.append(Max())

    if options.min:
        stages.append(Min())

    if options.without_enlargement:
        stages.append(WithoutEnlargement())

    if options.ignore_aspect_ratio:
        stages.append(IgnoreAspectRatio())

    if options.extract:
        region = options.extract
        stages.append(Extract(region.left, region.top, region.width, region.height))

    if options.trim:
        stages.append(Trim(_trim_threshold(options.trim)))

    if options.flatten:
        stages.append(Flatten())

    if options.extend:
        stages.append(_extend(options.extend))

    if options.negate:
        stages.append(Negate())

    angle = _rotation(options.rotate)
    if angle is not None:
        stages.append(Rotate(angle))

    if options.flip:
        stages.append(Flip())

    if options.flop:
        stages.append(Flop())

    if options.blur:
        stages.append(Blur(_numeric(options.blur)))

    if options.sharpen:
        stages.append(Sharpen(_numeric(options.sharpen)))

    if options.gamma:
        gamma = _numeric(options.gamma)
        stages.append(Gamma() if gamma is None else Gamma(gamma))

    if options.grayscale or options.greyscale:
        stages.append(Greyscale())

    if options.normalize or options.normalise:
        stages.append(Normalise())

    if options.convolve:
        stages.append(_convolve(options.convolve))

    if options.threshold:
        value = options.threshold
        stages.append(Threshold() if isinstance(value, bool) else Threshold(value))

    colourspace = options.to_colourspace or options.to_colorspace
    if colourspace:
        stages.append(ToColourspace(str(colourspace)))

    if options.with_metadata:
        metadata = options.with_metadata
        stages.append(WithMetadata(metadata if isinstance(metadata, dict) else {}))

    if options.format:
        if isinstance(options.format, FormatSpec):
            stages.append(ToFormat(options.format.type, dict(options.format.option)))
        else:
            stages.append(ToFormat(options.format))

    return stages


def build_transformer(
    options: StorageOptions, builder: TransformStageBuilder
) -> TransformerProtocol:
    """Feed the compiled stages into ``builder`` and finalize it."""
    for stage in compile_pipeline(options):
        builder.append(stage)
    return builder.finalize()
