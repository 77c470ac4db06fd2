# pipeline/excel_translation_pipeline.py
import posixpath
from dataclasses import dataclass
from io import BytesIO
from typing import Dict, List, Optional

import regex as re
from lxml import etree
from openpyxl import load_workbook

from config.languages_config import get_language_code
from config.log_config import app_logger
from llmWrapper.llm_wrapper import CriticalTranslationError
from textProcessing.text_protector import mask_batch_texts, unmask_text
from textProcessing.translation_checker import is_already_translated
from .excel_shape_pipeline import extract_shape_texts, has_shapes, replace_shape_texts
from .ooxml_package import OoxmlPackage, PackageError
from .paragraph_reconstructor import reconstruct_paragraph
from .ppt_structure_parser import (
    ParsedParagraph, TextRun, child_elements, first_child, iter_descendants, local_name
)
from .skip_pipeline import should_translate

WORKBOOK_PART = "xl/workbook.xml"
WORKBOOK_RELS_PART = "xl/_rels/workbook.xml.rels"
SHARED_STRINGS_PART = "xl/sharedStrings.xml"
MAX_SHEET_NAME_LENGTH = 31
INVALID_SHEET_NAME_CHARS = ['/', '\\', '?', '*', '[', ']', ':']


def sanitize_sheet_name(sheet_name):
    """
    Clean sheet name by removing/replacing invalid characters.
    Excel doesn't allow these characters in sheet names: / \\ ? * [ ] :
    """
    sanitized_name = sheet_name
    for char in INVALID_SHEET_NAME_CHARS:
        sanitized_name = sanitized_name.replace(char, '-')

    # No line breaks, no leading/trailing apostrophes, at most 31 characters
    sanitized_name = " ".join(sanitized_name.split()).strip("'")
    sanitized_name = sanitized_name[:MAX_SHEET_NAME_LENGTH].strip()

    if not sanitized_name:
        sanitized_name = "Sheet"

    return sanitized_name


@dataclass
class WorksheetInfo:
    name: str
    part_name: Optional[str]
    element: etree._Element


@dataclass
class CellText:
    part_name: str
    location: str
    paragraph: ParsedParagraph

    @property
    def text(self):
        return self.paragraph.full_text


def list_sheet_names(data):
    """Sheet names in workbook order"""
    workbook = load_workbook(BytesIO(data), read_only=True)
    try:
        return list(workbook.sheetnames)
    finally:
        workbook.close()


def _resolve_target(base_dir, target):
    if target.startswith('/'):
        return target.lstrip('/')
    return posixpath.normpath(posixpath.join(base_dir, target))


def read_workbook_sheets(package):
    """Return the workbook root and its sheets with their worksheet part paths"""
    workbook_root = package.read_xml(WORKBOOK_PART)
    if workbook_root is None:
        raise PackageError("Workbook part xl/workbook.xml is missing or unreadable")

    targets = {}
    rels_root = package.read_xml(WORKBOOK_RELS_PART)
    if rels_root is not None:
        for rel in iter_descendants(rels_root, "Relationship"):
            if rel.get("Id") and rel.get("Target"):
                targets[rel.get("Id")] = _resolve_target("xl", rel.get("Target"))

    sheets = []
    for sheet in iter_descendants(workbook_root, "sheet"):
        relationship_id = None
        for key, value in sheet.attrib.items():
            if etree.QName(key).localname == "id" and etree.QName(key).namespace:
                relationship_id = value
        sheets.append(WorksheetInfo(
            name=sheet.get("name", ""),
            part_name=targets.get(relationship_id),
            element=sheet,
        ))
    return workbook_root, sheets


def parse_string_item(element) -> ParsedParagraph:
    """Shared/inline string: a plain <t> or rich-text <r> runs; phonetic runs are ignored"""
    paragraph = ParsedParagraph(element=element)
    for child in element:
        name = local_name(child)
        if name == "t":
            paragraph.items.append(TextRun(element=child, text=child.text or ""))
        elif name == "r":
            t_element = first_child(child, "t")
            if t_element is not None:
                paragraph.items.append(TextRun(element=t_element, text=t_element.text or ""))
    paragraph.refresh_text()
    return paragraph


def collect_cell_texts(package, sheets, shared_root, sheet_roots) -> List[CellText]:
    """String cells of the given sheets; each shared string is collected once"""
    shared_items = child_elements(shared_root, "si") if shared_root is not None else []
    seen_shared = set()
    cell_texts = []

    for sheet in sheets:
        if not sheet.part_name:
            app_logger.warning(f"Sheet '{sheet.name}' has no worksheet part, skipping")
            continue
        root = package.read_xml(sheet.part_name)
        if root is None:
            continue
        sheet_roots[sheet.part_name] = root

        for cell in iter_descendants(root, "c"):
            if first_child(cell, "f") is not None:
                continue
            cell_type = cell.get("t")
            location = f"{sheet.name}!{cell.get('r', '?')}"

            if cell_type == "s":
                value = first_child(cell, "v")
                try:
                    index = int(value.text)
                except (AttributeError, TypeError, ValueError):
                    continue
                if index in seen_shared or index >= len(shared_items):
                    continue
                seen_shared.add(index)
                cell_texts.append(CellText(
                    part_name=SHARED_STRINGS_PART,
                    location=location,
                    paragraph=parse_string_item(shared_items[index]),
                ))
            elif cell_type == "inlineStr":
                inline = first_child(cell, "is")
                if inline is None:
                    continue
                cell_texts.append(CellText(
                    part_name=sheet.part_name,
                    location=location,
                    paragraph=parse_string_item(inline),
                ))

    return cell_texts


def _is_translatable(text, dst_code, skip_already_translated):
    stripped = text.strip()
    if not stripped or stripped.startswith('='):
        return False
    if not should_translate(stripped):
        return False
    if skip_already_translated and is_already_translated(stripped, dst_code):
        return False
    return True


def _split_padding(text):
    stripped = text.strip()
    if not stripped:
        return "", text, ""
    start = text.index(stripped)
    return text[:start], stripped, text[start + len(stripped):]


def _translate_texts(texts, batch_translator, src_code, dst_code, blacklist, desc):
    """Mask, translate and unmask a list of texts, keeping order"""
    masks = mask_batch_texts(texts, src_code, dst_code, blacklist)
    translated = batch_translator.translate_all([m.masked_text for m in masks], desc=desc)
    return [unmask_text(t, m.protection_map) for t, m in zip(translated, masks)]


def _quote_sheet_reference(name):
    return "'" + name.replace("'", "''") + "'!"


def _sheet_reference_pattern(name):
    quoted = re.escape("'" + name.replace("'", "''") + "'!")
    if re.match(r'^[A-Za-z_][\w.]*$', name):
        return re.compile(rf"(?<![\w.']){quoted}|(?<![\w.']){re.escape(name)}!")
    return re.compile(rf"(?<![\w.']){quoted}")


def rename_sheet_references(text, renames: Dict[str, str]):
    for old_name, new_name in renames.items():
        text = _sheet_reference_pattern(old_name).sub(
            lambda _: _quote_sheet_reference(new_name), text
        )
    return text


def _update_sheet_references(package, workbook_root, all_sheets, renames, sheet_roots):
    """Point formulas and defined names at the renamed sheets"""
    for defined_name in iter_descendants(workbook_root, "definedName"):
        if defined_name.text:
            defined_name.text = rename_sheet_references(defined_name.text, renames)

    for sheet in all_sheets:
        if not sheet.part_name:
            continue
        root = sheet_roots.get(sheet.part_name)
        if root is None:
            root = package.read_xml(sheet.part_name)
            if root is None:
                continue
        changed = False
        for formula in iter_descendants(root, "f"):
            if formula.text:
                updated = rename_sheet_references(formula.text, renames)
                if updated != formula.text:
                    formula.text = updated
                    changed = True
        if changed:
            sheet_roots[sheet.part_name] = root
            package.write_xml(sheet.part_name, root)


def translate_sheet_names(sheets, all_sheets, batch_translator, src_code, dst_code,
                          blacklist=None, skip_already_translated=True) -> Dict[str, str]:
    """Translate sheet names in a separate batch. Returns {old name: new name}."""
    candidates = [
        sheet for sheet in sheets
        if sheet.name.strip() and not (skip_already_translated and is_already_translated(sheet.name, dst_code))
    ]
    if not candidates:
        return {}

    try:
        translated_names = _translate_texts(
            [sheet.name for sheet in candidates], batch_translator,
            src_code, dst_code, blacklist, "Translating sheet names"
        )
    except CriticalTranslationError:
        raise
    except Exception as e:
        app_logger.error(f"Sheet name translation failed, keeping original names: {e}")
        return {}

    existing = {sheet.name.lower() for sheet in all_sheets}
    renames = {}
    for sheet, new_name in zip(candidates, translated_names):
        new_name = sanitize_sheet_name(new_name or "")
        if not new_name or new_name == sheet.name:
            continue
        if new_name.lower() in existing and new_name.lower() != sheet.name.lower():
            app_logger.warning(f"Not renaming sheet '{sheet.name}': '{new_name}' already exists")
            continue

        existing.discard(sheet.name.lower())
        existing.add(new_name.lower())
        sheet.element.set("name", new_name)
        renames[sheet.name] = new_name
        app_logger.info(f"Renamed sheet '{sheet.name}' -> '{new_name}'")
        sheet.name = new_name

    return renames


def translate_excel_content(data, make_batch_translator, dst_lang, src_lang="auto", blacklist=None,
                            selected_sheets=None, skip_already_translated=True):
    """
    Translate cell strings, drawing shape text and sheet names of an .xlsx package.
    The workbook is edited part by part in place, so charts, drawings, styles and
    any unknown parts are carried through untouched.
    """
    dst_code = get_language_code(dst_lang)
    src_code = get_language_code(src_lang)
    package = OoxmlPackage(data)

    workbook_root, all_sheets = read_workbook_sheets(package)
    if selected_sheets:
        wanted = set(selected_sheets)
        sheets = [sheet for sheet in all_sheets if sheet.name in wanted]
        if not sheets:
            raise ValueError("No sheets selected for processing")
    else:
        sheets = list(all_sheets)

    app_logger.info(f"Processing {len(sheets)} of {len(all_sheets)} sheets")
    batch_translator = make_batch_translator(len(sheets))

    # Phase 1: collect
    shared_root = package.read_xml(SHARED_STRINGS_PART) if package.has_part(SHARED_STRINGS_PART) else None
    sheet_roots = {}
    cell_texts = [
        cell for cell in collect_cell_texts(package, sheets, shared_root, sheet_roots)
        if _is_translatable(cell.text, dst_code, skip_already_translated)
    ]

    shape_originals = []
    if has_shapes(package):
        for shape_text in extract_shape_texts(package):
            text = shape_text.original_text
            if text not in shape_originals and _is_translatable(text, dst_code, skip_already_translated):
                shape_originals.append(text)

    app_logger.info(f"Found {len(cell_texts)} cell texts and {len(shape_originals)} shape texts to translate")

    # Phase 2: translate cells and shapes together, then sheet names separately
    padded = [_split_padding(cell.text) for cell in cell_texts]
    texts = [core for _, core, _ in padded] + shape_originals
    translations = _translate_texts(
        texts, batch_translator, src_code, dst_code, blacklist, "Translating cells"
    ) if texts else []

    renames = translate_sheet_names(
        sheets, all_sheets, batch_translator, src_code, dst_code, blacklist, skip_already_translated
    )

    # Phase 3: write back
    modified_parts = set()
    for cell, (leading, _, trailing), translated in zip(cell_texts, padded, translations):
        if not translated:
            continue
        reconstruct_paragraph(cell.paragraph, f"{leading}{translated}{trailing}", preserve_space=True)
        modified_parts.add(cell.part_name)

    if shared_root is not None and SHARED_STRINGS_PART in modified_parts:
        package.write_xml(SHARED_STRINGS_PART, shared_root)
    for part_name, root in sheet_roots.items():
        if part_name in modified_parts:
            package.write_xml(part_name, root)

    shape_translations = {
        original: translated
        for original, translated in zip(shape_originals, translations[len(cell_texts):])
        if translated and translated != original
    }
    if shape_translations:
        replace_shape_texts(package, shape_translations)

    if renames:
        _update_sheet_references(package, workbook_root, all_sheets, renames, sheet_roots)
        package.write_xml(WORKBOOK_PART, workbook_root)

    app_logger.info(
        f"Excel translation finished: {len(cell_texts)} cells, "
        f"{len(shape_translations)} shape texts, {len(renames)} sheet names"
    )
    return package.to_bytes()
