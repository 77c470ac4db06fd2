# pipeline/ppt_translation_pipeline.py
from typing import Dict, List, Tuple

from config.languages_config import get_language_code
from config.log_config import app_logger
from textProcessing.text_protector import default_pptx_blacklist, mask_batch_texts, unmask_text
from .ooxml_package import PPTX_PART_PATTERNS, OoxmlPackage
from .paragraph_reconstructor import reconstruct_paragraph, reconstruct_table_row
from .ppt_structure_parser import (
    ParagraphTask, TableRowTask, TranslationTask,
    build_translation_tasks, extract_shapes, extract_tables
)
from .shape_autosizer import autosize_shape


def extract_ppt_tasks(package) -> Tuple[Dict[str, object], List[TranslationTask]]:
    """Parse every slide, notes, layout and master part into translation tasks"""
    part_roots = {}
    tasks = []

    for part_name in package.list_parts(PPTX_PART_PATTERNS):
        root = package.read_xml(part_name)
        if root is None:
            continue
        shapes = extract_shapes(root)
        tables = extract_tables(root)
        part_tasks = build_translation_tasks(part_name, shapes, tables)
        if part_tasks:
            part_roots[part_name] = root
            tasks.extend(part_tasks)

    app_logger.info(f"Extracted {len(tasks)} text units from {len(part_roots)} parts")
    return part_roots, tasks


def apply_ppt_translations(tasks, translations, autosize=True):
    """Write translations back in submission order, then grow shapes that now overflow"""
    touched_parts = set()
    shape_texts = {}

    for task, translated in zip(tasks, translations):
        if isinstance(task, ParagraphTask):
            reconstruct_paragraph(task.paragraph, translated)
            touched_parts.add(task.part_name)
            if task.shape is not None:
                _, originals, translated_texts = shape_texts.setdefault(id(task.shape), (task.shape, [], []))
                originals.append(task.original_text)
                translated_texts.append(translated)
        elif isinstance(task, TableRowTask):
            if reconstruct_table_row(task.cells, translated):
                touched_parts.add(task.part_name)

    resized = 0
    if autosize:
        for shape, originals, translated_texts in shape_texts.values():
            if autosize_shape(shape, "\n".join(originals), "\n".join(translated_texts)):
                resized += 1

    return touched_parts, resized


def translate_ppt_content(data, make_batch_translator, dst_lang, src_lang="auto", blacklist=None, autosize=True):
    """
    Translate a .pptx package and return the new package bytes.
    Parsing, translation and write-back run as separate phases; only the
    parts that received text are re-serialized.
    """
    dst_code = get_language_code(dst_lang)
    src_code = get_language_code(src_lang)
    package = OoxmlPackage(data)

    part_roots, tasks = extract_ppt_tasks(package)
    if not tasks:
        app_logger.info("No translatable text found in presentation")
        return package.to_bytes()

    protected_terms = default_pptx_blacklist(blacklist)
    masks = mask_batch_texts([task.original_text for task in tasks], src_code, dst_code, protected_terms)
    masked_count = sum(m.masked_count for m in masks)
    app_logger.info(f"Protected {masked_count} spans across {len(tasks)} units")

    batch_translator = make_batch_translator(len(part_roots))
    translated = batch_translator.translate_all([m.masked_text for m in masks], desc="Translating slides")
    translations = [unmask_text(t, m.protection_map) for t, m in zip(translated, masks)]

    touched_parts, resized = apply_ppt_translations(tasks, translations, autosize=autosize)
    for part_name in touched_parts:
        package.write_xml(part_name, part_roots[part_name])

    app_logger.info(f"Updated {len(touched_parts)} parts, resized {resized} shapes")
    return package.to_bytes()
