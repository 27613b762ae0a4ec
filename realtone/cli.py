#!/usr/bin/env python3
"""
RealTone Command Line Interface

Classify skin tones on the Monk Skin Tone Scale, inspect the settings
derived for each shade and run the analysis/enhancement pipeline on images.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Tuple

import click
from tqdm import tqdm

from .config import get_config_value, load_config
from .processing.appliers import XMPSettingsApplier
from .processing.tone.mst_scale import MONK_SKIN_TONE_SCALE, get_category
from .processing.tone.real_tone_processor import RealToneProcessor
from .processing.tone.skin_tone_processor import SkinToneProcessor
from .utils.logging import AnalysisStats, StructuredLogger, setup_console_logging

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.tiff', '.tif', '.bmp', '.webp'}

# Reference samples for the classification self-check: (label, rgb, expected id)
VALIDATION_SAMPLES = [
    ("Very Light", (250, 240, 230), 1),
    ("Light", (245, 230, 215), 2),
    ("Medium", (220, 195, 165), 4),
    ("Tan", (175, 140, 110), 6),
    ("Dark", (120, 85, 60), 8),
    ("Very Dark", (90, 60, 40), 9),
    ("Deepest", (60, 40, 30), 10),
]


def _parse_region(ctx, param, value: Optional[str]) -> Optional[Tuple[int, int, int, int]]:
    if value is None:
        return None
    try:
        x, y, w, h = (int(part) for part in value.split(','))
    except ValueError:
        raise click.BadParameter("expected x,y,width,height") from None
    return (x, y, w, h)


def _processor(ctx) -> RealToneProcessor:
    return RealToneProcessor.from_config(ctx.obj['config'])


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.version_option(package_name='realtone')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    RealTone - skin tone aware camera settings

    Classifies skin tone on the 10-shade Monk Skin Tone Scale and derives
    exposure, white balance and tone mapping adjustments for each shade.
    """
    if ctx.obj is None:
        ctx.obj = {}

    ctx.obj['config'] = load_config(config)

    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'
    else:
        level = get_config_value(ctx.obj['config'], 'logging.level', 'INFO')
    setup_console_logging(level, fmt=get_config_value(
        ctx.obj['config'], 'logging.format',
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


@main.command()
def scale():
    """Show the Monk Skin Tone Scale and its exposure boosts."""
    click.echo("Monk Skin Tone Scale (MST)\n")
    for category in MONK_SKIN_TONE_SCALE:
        r, g, b = category.rgb
        click.echo(f"{category.label:>6}  {category.name:<13} "
                   f"rgb({r:3d}, {g:3d}, {b:3d})  {category.exposure_boost:+.2f} EV")


@main.command()
@click.argument('red', type=float)
@click.argument('green', type=float)
@click.argument('blue', type=float)
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
@click.pass_context
def classify(ctx, red: float, green: float, blue: float, as_json: bool):
    """
    Classify an average skin color.

    RED GREEN BLUE: channel values (0-255)
    """
    category = _processor(ctx).detect_skin_tone_category((red, green, blue))

    if as_json:
        click.echo(json.dumps(category.to_dict(), indent=2))
    else:
        click.echo(f"{category.label}: {category.name}")


@main.command()
@click.argument('mst_id', type=int)
@click.pass_context
def settings(ctx, mst_id: int):
    """
    Show the optimized settings for an MST category.

    MST_ID: category id (1-10); other ids use the fallback adjustments
    """
    category = get_category(mst_id) or {'id': mst_id}
    bundle = _processor(ctx).get_optimized_settings(category)
    click.echo(json.dumps(bundle.to_dict(), indent=2))


@main.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--region', '-r', callback=_parse_region,
              help='Region to analyse as x,y,width,height')
@click.option('--detector', '-d', type=click.Choice(['placeholder', 'region_average']),
              help='Override the configured detector')
@click.pass_context
def analyze(ctx, image: str, region, detector: Optional[str]):
    """
    Detect the skin tone of an image.

    IMAGE: path to the image file
    """
    config = ctx.obj['config']
    if detector:
        config = {**config, 'detector': {'name': detector}}

    processor = RealToneProcessor.from_config(config)
    analysis = asyncio.run(processor.analyze_skin_tone(image, region))
    click.echo(json.dumps(analysis.to_dict(), indent=2))


@main.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--mst', type=click.IntRange(1, 10),
              help='Use this MST category instead of analysing the image')
@click.option('--xmp/--no-xmp', default=None,
              help='Write the settings to an XMP sidecar')
@click.pass_context
def enhance(ctx, image: str, mst: Optional[int], xmp: Optional[bool]):
    """
    Run Real-Tone enhancement on an image.

    Pixels are never modified; with --xmp the settings are recorded in a
    sidecar file next to the image.
    """
    processor = _processor(ctx)
    if xmp is True:
        processor.applier = XMPSettingsApplier()
    elif xmp is False:
        processor.applier = None

    result = asyncio.run(processor.enhance_image(image, get_category(mst) if mst else None))
    click.echo(str(result))


@main.command()
@click.argument('directory', type=click.Path(exists=True, file_okay=False, dir_okay=True))
@click.option('--recursive/--no-recursive', default=False, help='Process subdirectories')
@click.option('--json', 'as_json', is_flag=True, help='Output the summary as JSON')
@click.pass_context
def batch(ctx, directory: str, recursive: bool, as_json: bool):
    """
    Analyse every image in a directory and summarise the detected tones.

    DIRECTORY: path to a directory of images
    """
    quiet = ctx.obj.get('quiet', False)
    directory_path = Path(directory)
    pattern = '**/*' if recursive else '*'
    images = sorted(p for p in directory_path.glob(pattern)
                    if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS)

    if not images:
        click.echo("No images found in directory", err=True)
        return

    processor = _processor(ctx)
    stats = AnalysisStats()
    stats.set_total(len(images))
    batch_logger = StructuredLogger(__name__, {'directory': str(directory_path)})

    async def run():
        for image in tqdm(images, desc="Analyzing", unit="img", disable=quiet or as_json):
            analysis = await processor.analyze_skin_tone(str(image))
            stats.add_result(analysis.detected, analysis.mst_category.id, analysis.confidence)
            batch_logger.debug("Analyzed image", image=image.name,
                               detected=analysis.detected, mst=analysis.mst_category.id)

    asyncio.run(run())
    summary = stats.get_summary()

    if as_json:
        click.echo(json.dumps(summary, indent=2, default=str))
        return

    click.echo(f"Images analysed:  {summary['analyzed_images']}")
    click.echo(f"Detected:         {summary['detected_images']} ({summary['detection_rate']:.1f}%)")
    click.echo(f"Avg confidence:   {summary['average_confidence']:.2f}")
    for mst_id, count in summary['categories'].items():
        category = get_category(mst_id)
        click.echo(f"  {category.label:>6} {category.name:<13} {count}")


@main.command()
@click.pass_context
def validate(ctx):
    """Check classification against reference samples for every shade."""
    processor = _processor(ctx)
    passed = 0

    for label, rgb, expected in VALIDATION_SAMPLES:
        detected = processor.detect_skin_tone_category(rgb)
        ok = detected.id == expected
        passed += ok
        click.echo(f"{'PASS' if ok else 'FAIL'} {label} (MST-{expected}) - detected {detected.label}")

    total = len(VALIDATION_SAMPLES)
    click.echo(f"\nAccuracy: {passed}/{total} ({round(passed / total * 100)}%)")
    if passed != total:
        ctx.exit(1)


@main.command()
@click.argument('brightness', type=float)
@click.option('--face', is_flag=True, help='Brightness was sampled from a detected face')
def legacy(brightness: float, face: bool):
    """
    Show the legacy brightness-threshold recommendation.

    BRIGHTNESS: average skin brightness (0-255)
    """
    processor = SkinToneProcessor()
    recommendation = processor.get_recommended_settings(brightness)
    if face:
        recommendation['exposure'] = processor.calculate_exposure_compensation(
            brightness, face_region=True)
    click.echo(json.dumps(recommendation, indent=2))


if __name__ == '__main__':
    main()
