# pipeline/excel_shape_pipeline.py
"""Shape and text-box text in spreadsheet drawings.

The workbook model does not expose DrawingML text, so this works on the raw
``xl/drawings/drawingN.xml`` parts. Replacement is keyed by the trimmed
original text: identical strings in different shapes always receive the same
translation.
"""
from dataclasses import dataclass
from html import unescape
from typing import Dict, List
from xml.sax.saxutils import escape

import regex as re

from config.log_config import app_logger
from .ooxml_package import DRAWING_PART_PATTERNS

# <a:t>...</a:t> with any prefix and optional attributes
TEXT_RUN_PATTERN = re.compile(r"<((?:[\w.-]+:)?t)((?:\s[^>]*)?)>([^<]*)</\1>")
TEXT_RUN_DETECT_PATTERN = re.compile(r"<(?:[\w.-]+:)?t(?:\s[^>]*)?>[^<]*\S[^<]*</")


@dataclass(frozen=True)
class ShapeText:
    drawing_path: str
    shape_index: int
    original_text: str


def has_shapes(package) -> bool:
    """Fast check for drawing parts that contain any non-blank text run"""
    for drawing_path in package.list_parts(DRAWING_PART_PATTERNS):
        xml_content = package.read_text(drawing_path)
        if xml_content and TEXT_RUN_DETECT_PATTERN.search(xml_content):
            return True
    return False


def extract_shape_texts(package) -> List[ShapeText]:
    shape_texts = []
    drawing_paths = package.list_parts(DRAWING_PART_PATTERNS)

    for drawing_path in drawing_paths:
        xml_content = package.read_text(drawing_path)
        if not xml_content:
            continue

        shape_index = 0
        for match in TEXT_RUN_PATTERN.finditer(xml_content):
            text = unescape(match.group(3)).strip()
            if not text:
                continue
            shape_texts.append(ShapeText(drawing_path, shape_index, text))
            shape_index += 1

    app_logger.info(f"Extracted {len(shape_texts)} shape texts from {len(drawing_paths)} drawing parts")
    return shape_texts


def replace_shape_texts(package, translations: Dict[str, str]) -> int:
    """Swap every text run whose trimmed value has a translation. Returns the replacement count."""
    replaced_count = 0

    for drawing_path in package.list_parts(DRAWING_PART_PATTERNS):
        xml_content = package.read_text(drawing_path)
        if not xml_content:
            continue

        part_replaced = 0

        def replace(match):
            nonlocal part_replaced
            raw = unescape(match.group(3))
            trimmed = raw.strip()
            translated = translations.get(trimmed)
            if not trimmed or not translated:
                return match.group(0)

            # Keep surrounding whitespace of the original run
            leading = raw[:len(raw) - len(raw.lstrip())]
            trailing = raw[len(raw.rstrip()):]
            part_replaced += 1
            tag, attributes = match.group(1), match.group(2)
            return f"<{tag}{attributes}>{escape(leading + translated + trailing)}</{tag}>"

        new_content = TEXT_RUN_PATTERN.sub(replace, xml_content)
        if part_replaced:
            package.write_text(drawing_path, new_content)
            replaced_count += part_replaced

    app_logger.info(f"Replaced {replaced_count} shape texts")
    return replaced_count
