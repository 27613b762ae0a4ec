"""
Skin tone detectors for RealTone

A detector turns an image reference (and optional region) into a
SkinToneAnalysis. The processor only depends on the SkinToneDetector
interface so a face-detection backed implementation can be dropped in.
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ..exceptions import DetectorError
from ..processing.tone.classification import classify_sample
from ..processing.tone.models import Region, SampledColor, SkinToneAnalysis
from ..processing.tone.mst_scale import DEFAULT_CATEGORY, MSTCategory, get_category

logger = logging.getLogger(__name__)

ImageReference = Union[str, Path, np.ndarray]
RegionLike = Union[Region, Mapping[str, int]]


class SkinToneDetector(ABC):
    """Interface for anything that can estimate skin tone from an image"""

    @abstractmethod
    async def detect(self, image_ref: ImageReference,
                     region: Optional[RegionLike] = None) -> SkinToneAnalysis:
        """
        Analyse an image (or a region of it) for skin tone.

        Implementations must not raise for a well-formed image reference;
        report failure with detected=False instead.
        """
        pass


class PlaceholderSkinToneDetector(SkinToneDetector):
    """
    Fixed-result detector used until a real detection pipeline is wired in.

    Always reports the configured shade (MST-6 by default).
    """

    def __init__(self, mst_id: int = 6, confidence: float = 0.85):
        self.category = get_category(mst_id) or DEFAULT_CATEGORY
        self.confidence = confidence

    async def detect(self, image_ref: ImageReference,
                     region: Optional[RegionLike] = None) -> SkinToneAnalysis:
        logger.debug(f"Placeholder skin tone analysis for {_describe(image_ref)} region={region}")
        r, g, b = self.category.rgb
        return SkinToneAnalysis(
            detected=True,
            mst_category=self.category,
            confidence=self.confidence,
            rgb_average=SampledColor(r, g, b),
            region=region,
        )


class RegionAverageDetector(SkinToneDetector):
    """
    Average the skin-colored pixels of a region and classify the result.

    Skin pixels are selected with a fixed YCrCb box. Confidence is the
    fraction of the region that passed the skin mask.
    """

    def __init__(self,
                 classifier: Optional[Callable[[Any], MSTCategory]] = None,
                 skin_cr: Tuple[int, int] = (133, 173),
                 skin_cb: Tuple[int, int] = (77, 127),
                 min_skin_fraction: float = 0.05):
        """
        Initialize region average detector

        Args:
            classifier: Maps an average color to a category
            skin_cr: Inclusive Cr bounds of the skin mask
            skin_cb: Inclusive Cb bounds of the skin mask
            min_skin_fraction: Skin coverage below which nothing is detected
        """
        self.classifier = classifier or classify_sample
        self.skin_cr = tuple(skin_cr)
        self.skin_cb = tuple(skin_cb)
        self.min_skin_fraction = min_skin_fraction

    async def detect(self, image_ref: ImageReference,
                     region: Optional[RegionLike] = None) -> SkinToneAnalysis:
        loop = asyncio.get_event_loop()
        try:
            image = await loop.run_in_executor(None, load_rgb_image, image_ref)
            return self.analyze_pixels(image, region)
        except DetectorError as e:
            logger.warning(f"Skin tone detection failed for {_describe(image_ref)}: {e}")
            return undetected(region)

    def analyze_pixels(self, image: np.ndarray,
                       region: Optional[RegionLike] = None) -> SkinToneAnalysis:
        """
        Classify an RGB uint8 image array

        Args:
            image: RGB image array (H, W, 3)
            region: Optional region to restrict analysis to

        Returns:
            SkinToneAnalysis for the region
        """
        roi = crop_region(image, region)
        if roi.size == 0:
            logger.debug("Empty region, nothing to analyse")
            return undetected(region)

        mask = self.skin_mask(roi)
        skin_pixels = roi[mask > 0]
        skin_fraction = float(len(skin_pixels)) / (roi.shape[0] * roi.shape[1])

        if len(skin_pixels) == 0 or skin_fraction < self.min_skin_fraction:
            logger.debug(f"Insufficient skin coverage: {skin_fraction:.3f}")
            return undetected(region)

        avg = np.mean(skin_pixels.astype(np.float64), axis=0)
        sample = SampledColor(float(avg[0]), float(avg[1]), float(avg[2]))
        category = self.classifier(sample)

        logger.info(f"Detected {category.label} ({category.name}) "
                    f"from {len(skin_pixels)} skin pixels")

        return SkinToneAnalysis(
            detected=True,
            mst_category=category,
            confidence=float(np.clip(skin_fraction, 0.0, 1.0)),
            rgb_average=sample,
            region=region,
        )

    def skin_mask(self, rgb: np.ndarray) -> np.ndarray:
        """Binary mask (0/255) of pixels inside the YCrCb skin box"""
        ycrcb = cv2.cvtColor(np.ascontiguousarray(rgb), cv2.COLOR_RGB2YCrCb)
        lower = np.array([0, self.skin_cr[0], self.skin_cb[0]], dtype=np.uint8)
        upper = np.array([255, self.skin_cr[1], self.skin_cb[1]], dtype=np.uint8)
        return cv2.inRange(ycrcb, lower, upper)


DETECTORS = {
    "placeholder": PlaceholderSkinToneDetector,
    "region_average": RegionAverageDetector,
}


def undetected(region: Optional[RegionLike] = None) -> SkinToneAnalysis:
    """Analysis result for an image that could not be classified"""
    return SkinToneAnalysis(
        detected=False,
        mst_category=DEFAULT_CATEGORY,
        confidence=0.0,
        rgb_average=None,
        region=region,
    )


def resolve_image_path(image_ref: Union[str, Path]) -> Path:
    """Strip a file:// scheme and return a filesystem path"""
    ref = str(image_ref)
    if ref.startswith('file://'):
        ref = ref[len('file://'):]
    return Path(ref)


def load_rgb_image(image_ref: ImageReference) -> np.ndarray:
    """
    Load an image reference as an RGB uint8 array

    Raises:
        DetectorError: If the reference cannot be read as an image
    """
    if isinstance(image_ref, np.ndarray):
        image = image_ref
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
        if image.dtype == np.uint16:
            image = (image / 257).astype(np.uint8)
        elif image.dtype != np.uint8:
            image = np.clip(image * 255.0, 0, 255).astype(np.uint8)
        return np.ascontiguousarray(image[..., :3])

    path = resolve_image_path(image_ref)
    try:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            return np.asarray(img.convert('RGB'))
    except (OSError, UnidentifiedImageError) as e:
        raise DetectorError(f"Cannot read image {path}: {e}") from e


def normalize_region(region: Optional[RegionLike]) -> Optional[Region]:
    """Accept (x, y, w, h) or {'x', 'y', 'width', 'height'}"""
    if region is None:
        return None
    if isinstance(region, Mapping):
        return (int(region.get('x', 0)), int(region.get('y', 0)),
                int(region['width']), int(region['height']))
    x, y, w, h = region
    return (int(x), int(y), int(w), int(h))


def crop_region(image: np.ndarray, region: Optional[RegionLike]) -> np.ndarray:
    """Crop a region from an image, clipped to the image bounds"""
    roi = normalize_region(region)
    if roi is None:
        return image

    x, y, w, h = roi
    img_h, img_w = image.shape[:2]
    x1, x2 = max(0, min(img_w, x)), max(0, min(img_w, x + w))
    y1, y2 = max(0, min(img_h, y)), max(0, min(img_h, y + h))
    return image[y1:y2, x1:x2]


def create_detector(name: str = "placeholder",
                    classifier: Optional[Callable[[Any], MSTCategory]] = None,
                    **options) -> SkinToneDetector:
    """
    Build a detector by name

    Options the selected detector does not accept are logged and ignored,
    so one config section can carry settings for several detectors.

    Args:
        name: "placeholder" or "region_average"
        classifier: Classifier for detectors that sample colors
        **options: Detector-specific keyword arguments

    Raises:
        ValueError: For unknown detector names
    """
    detector_class = DETECTORS.get(name)
    if detector_class is None:
        raise ValueError(f"Unknown skin tone detector: {name}")

    accepted = set(inspect.signature(detector_class.__init__).parameters) - {'self'}
    ignored = sorted(set(options) - accepted)
    if ignored:
        logger.warning(f"Ignoring options not used by the {name} detector: {', '.join(ignored)}")

    kwargs = {key: value for key, value in options.items() if key in accepted}
    if 'classifier' in accepted:
        kwargs['classifier'] = classifier
    return detector_class(**kwargs)


def _describe(image_ref: ImageReference) -> str:
    if isinstance(image_ref, np.ndarray):
        return f"<array {image_ref.shape}>"
    return str(image_ref)
