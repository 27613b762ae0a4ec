"""
Settings appliers for RealTone

An applier takes a computed SettingsBundle and applies it to an image or
to camera configuration. RealTone never touches pixels itself.
"""

import asyncio
import logging
import os
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Union
from xml.dom import minidom

from ..exceptions import ApplierError
from .tone.models import SettingsBundle

logger = logging.getLogger(__name__)

# XMP namespaces
XMP_NAMESPACES = {
    'x': 'adobe:ns:meta/',
    'rdf': 'http://www.w3.org/1999/02/22-rdf-syntax-ns#',
    'crs': 'http://ns.adobe.com/camera-raw-settings/1.0/',
    'realtone': 'http://ns.realtone.app/1.0/',
}

for _prefix, _uri in XMP_NAMESPACES.items():
    ET.register_namespace(_prefix, _uri)


def _qname(prefix: str, name: str) -> str:
    return f"{{{XMP_NAMESPACES[prefix]}}}{name}"


class SettingsApplier(ABC):
    """Interface for collaborators that apply Real-Tone settings"""

    @abstractmethod
    async def apply(self, image_ref: Any, settings: SettingsBundle) -> Any:
        """
        Apply settings to an image.

        Returns:
            Reference to the resulting image (may be the input reference)

        Raises:
            ApplierError: If the settings could not be applied
        """
        pass


class XMPSettingsApplier(SettingsApplier):
    """
    Record settings non-destructively in an XMP sidecar next to the image.

    Develop settings use Camera Raw keys so editors pick them up; the MST
    classification goes into the realtone namespace.
    """

    def __init__(self, suffix: str = ".xmp"):
        self.suffix = suffix

    def sidecar_path(self, image_ref: Union[str, Path]) -> Path:
        """Get the path for the XMP sidecar file."""
        ref = str(image_ref)
        if ref.startswith('file://'):
            ref = ref[len('file://'):]
        base_path = os.path.splitext(ref)[0]
        return Path(f"{base_path}{self.suffix}")

    async def apply(self, image_ref: Any, settings: SettingsBundle) -> Any:
        if not isinstance(image_ref, (str, Path)):
            raise ApplierError(f"XMP sidecars need a file reference, got {type(image_ref).__name__}")

        loop = asyncio.get_event_loop()
        path = await loop.run_in_executor(None, self.write, image_ref, settings)
        logger.info(f"Wrote Real-Tone settings to {path}")
        return image_ref

    def write(self, image_ref: Union[str, Path], settings: SettingsBundle) -> Path:
        """
        Write settings to the sidecar, preserving other existing attributes

        Raises:
            ApplierError: If the sidecar cannot be parsed or written
        """
        path = self.sidecar_path(image_ref)
        try:
            if path.exists():
                root = ET.parse(path).getroot()
            else:
                root = self._create_xmp_structure()

            description = root.find(f".//{_qname('rdf', 'Description')}")
            if description is None:
                rdf_root = root.find(f".//{_qname('rdf', 'RDF')}")
                if rdf_root is None:
                    rdf_root = ET.SubElement(root, _qname('rdf', 'RDF'))
                description = ET.SubElement(rdf_root, _qname('rdf', 'Description'))
                description.set(_qname('rdf', 'about'), '')

            for key, value in develop_attributes(settings).items():
                prefix, name = key.split(':', 1)
                description.set(_qname(prefix, name), value)

            path.write_text(self._prettify_xml(root), encoding='utf-8')
            return path

        except (OSError, ET.ParseError) as e:
            raise ApplierError(f"Failed to write XMP sidecar {path}: {e}") from e

    def _create_xmp_structure(self) -> ET.Element:
        """Create basic XMP structure."""
        xmp_root = ET.Element(_qname('x', 'xmpmeta'))
        rdf_root = ET.SubElement(xmp_root, _qname('rdf', 'RDF'))
        description = ET.SubElement(rdf_root, _qname('rdf', 'Description'))
        description.set(_qname('rdf', 'about'), '')
        return xmp_root

    def _prettify_xml(self, elem: ET.Element) -> str:
        """Return a pretty-printed XML string wrapped in an XMP packet."""
        rough_string = ET.tostring(elem, encoding='unicode')
        reparsed = minidom.parseString(rough_string)

        xmp_header = '<?xpacket begin="﻿" id="W5M0MpCehiHzreSzNTczkc9d"?>\n'
        xmp_footer = '\n<?xpacket end="w"?>'

        pretty_xml = reparsed.documentElement.toprettyxml(indent='  ')
        lines = [line for line in pretty_xml.split('\n') if line.strip()]

        return xmp_header + '\n'.join(lines) + xmp_footer


def _signed(value: float, digits: int = 0) -> str:
    if digits:
        return f"{value:+.{digits}f}"
    return f"{int(round(value)):+d}"


def develop_attributes(settings: SettingsBundle) -> Dict[str, str]:
    """
    Map a settings bundle onto Camera Raw develop attributes.

    Relative adjustments (1.0 = unchanged) become -100..+100 sliders.
    """
    contrast = settings.contrast if settings.contrast is not None else 1.0
    return {
        'crs:Exposure2012': _signed(settings.exposure, 2),
        'crs:Shadows2012': _signed(settings.shadows * 100),
        'crs:Highlights2012': _signed(settings.highlights * 100),
        'crs:Contrast2012': _signed((contrast - 1.0) * 100),
        'crs:Saturation': _signed((settings.saturation - 1.0) * 100),
        'crs:WhiteBalance': 'As Shot' if settings.white_balance.mode == 'auto' else 'Custom',
        'crs:IncrementalTemperature': _signed(settings.white_balance.temperature * 100),
        'crs:IncrementalTint': _signed(settings.white_balance.tint * 100),
        'crs:HDREditMode': '1' if settings.hdr else '0',
        'realtone:Enabled': 'True' if settings.real_tone.enabled else 'False',
        'realtone:MSTCategory': str(settings.real_tone.mst_category),
        'realtone:CategoryName': settings.real_tone.category_name or '',
        'realtone:ISO': str(settings.iso),
        'realtone:Timestamp': settings.real_tone.timestamp,
    }
