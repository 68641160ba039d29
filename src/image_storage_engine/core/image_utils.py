"""Pillow implementations of the transform stages."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageColor, ImageChops, ImageFilter, ImageOps

from . import stages as st

# Output format name -> Pillow encoder name.
FORMATS: Dict[str, str] = {
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "tiff": "TIFF",
    "tif": "TIFF",
    "gif": "GIF",
}

COLOURSPACES: Dict[str, str] = {
    "b-w": "L",
    "grey": "L",
    "gray": "L",
    "srgb": "RGB",
    "rgb": "RGB",
    "rgba": "RGBA",
    "cmyk": "CMYK",
}

KERNELS: Dict[str, int] = {
    "nearest": Image.Resampling.NEAREST,
    "linear": Image.Resampling.BILINEAR,
    "cubic": Image.Resampling.BICUBIC,
    "mitchell": Image.Resampling.BICUBIC,
    "lanczos2": Image.Resampling.LANCZOS,
    "lanczos3": Image.Resampling.LANCZOS,
}

DEFAULT_BACKGROUND = "black"
EXIF_ORIENTATION = 0x0112


@dataclass(frozen=True)
class ResizeSettings:
    """How a Resize stage computes its geometry, from the modifiers present."""

    fit: str = "cover"
    gravity: Tuple[float, float] = (0.5, 0.5)
    without_enlargement: bool = False
    background: Any = DEFAULT_BACKGROUND


def resize_settings(stages: Sequence[Any]) -> ResizeSettings:
    """Collect resize modifiers and the background colour from a stage list."""
    fit = "cover"
    gravity = (0.5, 0.5)
    without_enlargement = False
    background: Any = DEFAULT_BACKGROUND

    for stage in stages:
        if isinstance(stage, st.Background):
            background = stage.color
        elif isinstance(stage, st.Crop):
            gravity = st.GRAVITIES[stage.gravity]
        elif isinstance(stage, st.Embed):
            fit = "contain"
        elif isinstance(stage, st.Max):
            fit = "inside"
        elif isinstance(stage, st.Min):
            fit = "outside"
        elif isinstance(stage, st.IgnoreAspectRatio):
            fit = "fill"
        elif isinstance(stage, st.WithoutEnlargement):
            without_enlargement = True

    return ResizeSettings(fit, gravity, without_enlargement, background)


def fill_color(mode: str, color: Any) -> Any:
    """Translate a colour option into a fill value for an image ``mode``."""
    if isinstance(color, (tuple, list)):
        bands = len(Image.new(mode, (1, 1)).getbands())
        color = tuple(color)
        if bands == 1:
            return color[0]
        if len(color) == 3 and bands == 4:
            return color + (255,)
        return color[:bands]
    return ImageColor.getcolor(color, mode)


def ensure_filterable(image: Image.Image) -> Image.Image:
    """Palette and bilevel images cannot be filtered; widen them first."""
    if image.mode == "P":
        return image.convert("RGBA" if "transparency" in image.info else "RGB")
    if image.mode in ("1", "I;16"):
        return image.convert("L")
    return image


def map_colour_bands(
    image: Image.Image, func: Callable[[Image.Image], Image.Image]
) -> Image.Image:
    """Apply ``func`` to the colour bands only, keeping any alpha band intact."""
    image = ensure_filterable(image)
    if image.mode == "RGBA":
        alpha = image.getchannel("A")
        result = func(image.convert("RGB")).convert("RGBA")
        result.putalpha(alpha)
        return result
    if image.mode == "LA":
        alpha = image.getchannel("A")
        result = func(image.convert("L")).convert("LA")
        result.putalpha(alpha)
        return result
    return func(image)


def resize_image(
    image: Image.Image, stage: st.Resize, settings: ResizeSettings
) -> Image.Image:
    """
    Resize following the fit mode chosen by the modifiers.

    Args:
        image: PIL Image to resize
        stage: Target width/height; either side may be missing
        settings: Fit mode, crop gravity, enlargement rule and background

    Returns:
        Resized PIL Image
    """
    width, height = stage.width, stage.height
    if not width and not height:
        return image

    kernel = str(stage.options.get("kernel", "lanczos3")).lower()
    if kernel not in KERNELS:
        raise ValueError(f"Unknown resize kernel: {kernel}")
    method = KERNELS[kernel]

    if settings.without_enlargement and (
        (not width or image.width <= width) and (not height or image.height <= height)
    ):
        return image

    if not width or not height:
        if width:
            scale = width / image.width
        else:
            scale = height / image.height
        size = (max(1, round(image.width * scale)), max(1, round(image.height * scale)))
        return image.resize(size, method)

    target = (width, height)
    if settings.fit == "fill":
        return image.resize(target, method)
    if settings.fit == "inside":
        return ImageOps.contain(image, target, method)
    if settings.fit == "outside":
        scale = max(width / image.width, height / image.height)
        size = (round(image.width * scale), round(image.height * scale))
        return image.resize(size, method)
    if settings.fit == "contain":
        return ImageOps.pad(
            image,
            target,
            method,
            color=fill_color(image.mode, settings.background),
            centering=settings.gravity,
        )
    return ImageOps.fit(image, target, method, centering=settings.gravity)


def trim_image(image: Image.Image, threshold: int) -> Image.Image:
    """Remove edges whose colour is within ``threshold`` of the top-left pixel."""
    image = ensure_filterable(image)
    reference = Image.new(image.mode, image.size, image.getpixel((0, 0)))
    diff = ImageChops.difference(image, reference).convert("L")
    bbox = diff.point(lambda value: 255 if value > threshold else 0).getbbox()
    return image.crop(bbox) if bbox else image


def flatten_image(image: Image.Image, background: Any) -> Image.Image:
    """Composite any alpha channel over the background colour."""
    if image.mode == "P" and "transparency" in image.info:
        image = image.convert("RGBA")
    if image.mode not in ("RGBA", "LA"):
        return image
    base_mode = "RGB" if image.mode == "RGBA" else "L"
    base = Image.new(base_mode, image.size, fill_color(base_mode, background))
    base.paste(image.convert(base_mode), mask=image.getchannel("A"))
    return base


def gamma_table(gamma: float, bands: int) -> List[int]:
    """Lookup table applying ``gamma`` to each of ``bands`` 8-bit bands."""
    table = [round(255 * (value / 255) ** (1 / gamma)) for value in range(256)]
    return table * bands


def threshold_image(image: Image.Image, value: int) -> Image.Image:
    """Greyscale the image and map pixels to black or white around ``value``."""
    return image.convert("L").point(lambda pixel: 255 if pixel >= value else 0)


def convert_colourspace(image: Image.Image, space: str) -> Image.Image:
    mode = COLOURSPACES.get(space.lower())
    if mode is None:
        raise ValueError(f"Unsupported colourspace: {space}")
    return image.convert(mode)


def apply_stage(
    image: Image.Image, stage: Any, settings: ResizeSettings
) -> Image.Image:
    """
    Apply a single stage to an image.

    Args:
        image: PIL Image to transform
        stage: One of the stage types from ``stages``
        settings: Resize modifiers and background collected from the pipeline

    Returns:
        Transformed PIL Image

    Raises:
        ValueError: If a stage's parameters are not supported
    """
    background = settings.background

    if isinstance(stage, st.Resize):
        return resize_image(image, stage, settings)
    if isinstance(stage, st.Extract):
        box = (stage.left, stage.top, stage.left + stage.width, stage.top + stage.height)
        if box[2] > image.width or box[3] > image.height:
            raise ValueError(f"Extract area {box} is outside a {image.size} image")
        return image.crop(box)
    if isinstance(stage, st.Trim):
        return trim_image(image, stage.threshold)
    if isinstance(stage, st.Flatten):
        return flatten_image(image, background)
    if isinstance(stage, st.Extend):
        image = ensure_filterable(image)
        border = (stage.left, stage.top, stage.right, stage.bottom)
        return ImageOps.expand(
            image, border=border, fill=fill_color(image.mode, background)
        )
    if isinstance(stage, st.Negate):
        return map_colour_bands(image, ImageOps.invert)
    if isinstance(stage, st.Rotate):
        # Rotation is clockwise; Pillow's transposes are counter-clockwise.
        transposes = {
            90: Image.Transpose.ROTATE_270,
            180: Image.Transpose.ROTATE_180,
            270: Image.Transpose.ROTATE_90,
        }
        if stage.angle == 0:
            return image
        return image.transpose(transposes[stage.angle])
    if isinstance(stage, st.Flip):
        return ImageOps.flip(image)
    if isinstance(stage, st.Flop):
        return ImageOps.mirror(image)
    if isinstance(stage, st.Blur):
        image = ensure_filterable(image)
        if stage.sigma is None:
            return image.filter(ImageFilter.BoxBlur(1))
        return image.filter(ImageFilter.GaussianBlur(stage.sigma))
    if isinstance(stage, st.Sharpen):
        image = ensure_filterable(image)
        if stage.sigma is None:
            return image.filter(ImageFilter.SHARPEN)
        return image.filter(ImageFilter.UnsharpMask(radius=stage.sigma))
    if isinstance(stage, st.Gamma):
        return map_colour_bands(
            image, lambda img: img.point(gamma_table(stage.gamma, len(img.getbands())))
        )
    if isinstance(stage, st.Greyscale):
        has_alpha = image.mode in ("RGBA", "LA") or "transparency" in image.info
        return image.convert("LA" if has_alpha else "L")
    if isinstance(stage, st.Normalise):
        return map_colour_bands(image, ImageOps.autocontrast)
    if isinstance(stage, st.Convolve):
        kernel = ImageFilter.Kernel(
            (stage.width, stage.height), stage.kernel, stage.scale, stage.offset
        )
        return ensure_filterable(image).filter(kernel)
    if isinstance(stage, st.Threshold):
        return threshold_image(image, stage.value)
    if isinstance(stage, st.ToColourspace):
        return convert_colourspace(image, stage.space)

    # Background, resize modifiers, metadata and format act through settings
    # or at encode time.
    return image


def pillow_format(name: str) -> str:
    """Pillow encoder name for an output format option."""
    encoder = FORMATS.get(name.lower())
    if encoder is None:
        raise ValueError(f"Unsupported output format: {name}")
    return encoder


def prepare_for_format(image: Image.Image, encoder: str) -> Image.Image:
    """Convert modes the target encoder cannot write."""
    if encoder == "JPEG":
        if image.mode in ("RGBA", "P"):
            return image.convert("RGB")
        if image.mode == "LA":
            return image.convert("L")
        if image.mode not in ("RGB", "L", "CMYK"):
            return image.convert("RGB")
    elif encoder in ("PNG", "WEBP", "GIF") and image.mode == "CMYK":
        return image.convert("RGB")
    return image


def metadata_save_args(
    source: Image.Image, options: Optional[Dict[str, Any]]
) -> Dict[str, Any]:
    """Encoder arguments that carry EXIF and ICC data over from ``source``."""
    args: Dict[str, Any] = {}
    exif = source.getexif()
    if options and "orientation" in options:
        exif[EXIF_ORIENTATION] = int(options["orientation"])
    if len(exif):
        args["exif"] = exif.tobytes()
    icc_profile = source.info.get("icc_profile")
    if icc_profile:
        args["icc_profile"] = icc_profile
    return args
