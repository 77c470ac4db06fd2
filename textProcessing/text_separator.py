# /textProcessing/text_separator.py
import csv
import os

from openpyxl import load_workbook

from config.log_config import app_logger

GLOSSARY_ENCODINGS = ['utf-8', 'utf-8-sig', 'gbk', 'gb18030', 'big5', 'shift-jis', 'cp949', 'latin1']


def _load_csv_glossary(glossary_path, src_lang, dst_lang):
    """CSV glossary whose first row holds language codes, tried with multiple encodings"""
    for encoding in GLOSSARY_ENCODINGS:
        try:
            with open(glossary_path, 'r', encoding=encoding, newline='') as csv_file:
                csv_reader = csv.reader(csv_file)

                # First row contains language codes
                lang_codes = next(csv_reader, None)
                if not lang_codes:
                    return []

                src_idx = None
                dst_idx = None
                for i, code in enumerate(lang_codes):
                    code = code.strip().lstrip('\ufeff').lower()
                    if code == src_lang.strip().lower():
                        src_idx = i
                    if code == dst_lang.strip().lower():
                        dst_idx = i

                if src_idx is None or dst_idx is None:
                    app_logger.warning(f"Glossary {glossary_path} has no {src_lang}/{dst_lang} columns")
                    return []

                entries = []
                for row in csv_reader:
                    if len(row) > max(src_idx, dst_idx):
                        source_term = row[src_idx].strip()
                        target_term = row[dst_idx].strip()
                        if source_term and target_term:
                            entries.append((source_term, target_term))
                return entries

        except UnicodeDecodeError:
            continue

    app_logger.warning(f"Could not decode glossary {glossary_path}")
    return []


def _load_xlsx_glossary(glossary_path, term_col=0, translation_col=1):
    """First worksheet, header row skipped, term and translation read by column"""
    workbook = load_workbook(glossary_path, read_only=True, data_only=True)
    try:
        worksheet = workbook.worksheets[0]
        entries = []
        for row in worksheet.iter_rows(min_row=2, values_only=True):
            if len(row) <= max(term_col, translation_col):
                continue
            term = row[term_col]
            translation = row[translation_col]
            term = str(term).strip() if term is not None else ""
            translation = str(translation).strip() if translation is not None else ""
            if term and translation:
                entries.append((term, translation))
        return entries
    finally:
        workbook.close()


def load_glossary(glossary_path, src_lang, dst_lang):
    """Load glossary entries as (term, translation) tuples from a CSV or XLSX file"""
    if not glossary_path:
        return []
    if not os.path.exists(glossary_path):
        raise FileNotFoundError(f"Glossary not found: {glossary_path}")

    if glossary_path.lower().endswith(('.xlsx', '.xlsm')):
        entries = _load_xlsx_glossary(glossary_path)
    else:
        entries = _load_csv_glossary(glossary_path, src_lang, dst_lang)

    app_logger.info(f"Loaded {len(entries)} glossary entries from {glossary_path}")
    return entries


def find_terms_with_hashtable(text, glossary_entries):
    """Glossary terms occurring in text (case-insensitive), longest first"""
    if not text or not glossary_entries:
        return []

    term_dict = {}
    for src, dst in glossary_entries:
        term_dict.setdefault(src, dst)

    text_lower = text.lower()
    results = []
    for term in sorted(term_dict, key=len, reverse=True):
        if term and term.lower() in text_lower:
            results.append((term, term_dict[term]))
    return results


def split_into_chunks(items, chunk_size):
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]
